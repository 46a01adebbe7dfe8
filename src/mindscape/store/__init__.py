"""Table store port and adapters."""
