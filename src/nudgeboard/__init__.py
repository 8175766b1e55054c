"""Personal kanban task tracker with reminder escalation and an AI-assisted vocabulary notebook."""

__version__ = "0.1.0"
