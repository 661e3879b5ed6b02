"""Daily Task Tracker backend."""
