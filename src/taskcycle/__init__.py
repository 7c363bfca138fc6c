"""taskcycle: recurring household task tracker with automatic resets and reminders."""

__version__ = "0.1.0"
