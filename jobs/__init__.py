"""
Jobs Package
Background work for the MedReminder application
"""

from jobs.notification_sender import NotificationSenderJob, SweepResult, build_message
from jobs.scheduler import JobScheduler


__all__ = [
    "NotificationSenderJob",
    "SweepResult",
    "build_message",
    "JobScheduler",
]
