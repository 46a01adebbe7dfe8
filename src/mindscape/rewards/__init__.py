"""Daily login rewards."""
