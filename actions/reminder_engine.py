"""
Reminder Engine
Turns a dose instant into the instant its reminder should be sent,
applying the user's lead time and quiet hours
"""

import logging
from typing import Dict, Any, Optional
from dataclasses import dataclass
from datetime import datetime, timedelta

from config import scheduling_config
from errors import ValidationFailure
from tools.time_utils import is_within_quiet_window, parse_time, shift_out_of_quiet_window


logger = logging.getLogger(__name__)


@dataclass
class ReminderPreferences:
    """User reminder preferences"""
    user_id: Optional[int] = None
    enable_push: bool = scheduling_config.DEFAULT_ENABLE_PUSH
    enable_email: bool = scheduling_config.DEFAULT_ENABLE_EMAIL
    reminder_before: int = scheduling_config.DEFAULT_REMINDER_BEFORE
    quiet_hours_start: Optional[str] = None  # e.g., "22:00"
    quiet_hours_end: Optional[str] = None    # e.g., "07:00"

    def __post_init__(self):
        validate_quiet_hours(self.quiet_hours_start, self.quiet_hours_end)
        if self.reminder_before is None or self.reminder_before < 0:
            raise ValidationFailure("reminder_before must be zero or a positive number of minutes")

    @classmethod
    def from_settings(cls, settings_row) -> "ReminderPreferences":
        """Build preferences from a ReminderSettings row"""
        return cls(
            user_id=settings_row.user_id,
            enable_push=bool(settings_row.enable_push),
            enable_email=bool(settings_row.enable_email),
            reminder_before=settings_row.reminder_before or 0,
            quiet_hours_start=settings_row.quiet_hours_start,
            quiet_hours_end=settings_row.quiet_hours_end,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "enable_push": self.enable_push,
            "enable_email": self.enable_email,
            "reminder_before": self.reminder_before,
            "quiet_hours_start": self.quiet_hours_start,
            "quiet_hours_end": self.quiet_hours_end,
        }

    @property
    def has_quiet_hours(self) -> bool:
        return bool(self.quiet_hours_start and self.quiet_hours_end)

    def is_quiet_time(self, check_time: datetime) -> bool:
        """Check if a time falls within quiet hours"""
        return is_within_quiet_window(check_time, self.quiet_hours_start, self.quiet_hours_end)

    def notification_instant(self, dose_instant: datetime, now: datetime) -> Optional[datetime]:
        """Send instant for a dose under these preferences"""
        return compute_notification_instant(
            dose_instant,
            self.reminder_before,
            self.quiet_hours_start,
            self.quiet_hours_end,
            now,
            push_enabled=self.enable_push,
        )


def validate_quiet_hours(start: Optional[str], end: Optional[str]) -> None:
    """Quiet hours are either both set to valid HH:MM values or both empty"""
    if bool(start) != bool(end):
        raise ValidationFailure("quiet_hours_start and quiet_hours_end must be set together")
    if start:
        parse_time(start)
        parse_time(end)


def compute_notification_instant(
    dose_instant: datetime,
    lead_minutes: int,
    quiet_start: Optional[str],
    quiet_end: Optional[str],
    now: datetime,
    push_enabled: bool = True
) -> Optional[datetime]:
    """
    Compute when a dose reminder should be sent.

    Args:
        dose_instant: When the medication is due
        lead_minutes: Minutes before the dose to remind (0 = at the dose)
        quiet_start: Quiet hours start (HH:MM) or None
        quiet_end: Quiet hours end (HH:MM) or None
        now: Current instant
        push_enabled: Quiet hours only defer push reminders

    Returns:
        The send instant, or None when the reminder window already passed
    """
    notification_time = dose_instant
    if lead_minutes and lead_minutes > 0:
        notification_time = dose_instant - timedelta(minutes=lead_minutes)

    if notification_time <= now:
        return None

    if push_enabled and is_within_quiet_window(notification_time, quiet_start, quiet_end):
        shifted = shift_out_of_quiet_window(notification_time, quiet_end)
        logger.debug(f"Reminder for {dose_instant} moved out of quiet hours to {shifted}")
        notification_time = shifted

    return notification_time
