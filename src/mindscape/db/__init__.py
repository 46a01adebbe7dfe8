"""SQLAlchemy models for the backend tables."""
