"""Break reminders, notification delivery and click routing."""
