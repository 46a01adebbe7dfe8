"""Offline completion outbox."""
