"""
Actions Module
Engines that turn schedule data into reminder decisions
"""

from .reminder_engine import (
    ReminderPreferences,
    compute_notification_instant,
    validate_quiet_hours,
)


__all__ = [
    # Reminder Engine
    "ReminderPreferences",
    "compute_notification_instant",
    "validate_quiet_hours",
]
