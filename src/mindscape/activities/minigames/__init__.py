"""Timed mini-activity state machines and the outer session timer."""
