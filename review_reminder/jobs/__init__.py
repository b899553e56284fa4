"""
Background Jobs for the review reminder.

This module contains scheduled and background jobs:
- reminder_job: periodic escalation of pending reviews
"""

from .reminder_job import (
    EscalationScheduler,
    ReminderConfig,
    TickResult,
    run_reminder_job,
)

__all__ = ["EscalationScheduler", "ReminderConfig", "TickResult", "run_reminder_job"]
