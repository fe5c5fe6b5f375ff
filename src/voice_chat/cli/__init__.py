"""Terminal front end and logging helpers."""
