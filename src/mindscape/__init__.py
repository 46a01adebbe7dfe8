"""Mindscape: activity rotation, mini-activity sessions and break notifications."""
