"""PR Review Reminder: Slack review tracking with escalating reminders."""

__version__ = "1.0.0"
