"""
Services Module
Business logic layer for the MedReminder application
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from services.settings_service import SettingsService, load_preferences
from services.notification_service import (
    NotificationService,
    MaterializationResult,
    CancellationResult,
)
from services.schedule_service import ScheduleService
from services.medication_service import MedicationService, MedicationSetup
from services.adherence_service import AdherenceService, DoseStatus


@dataclass
class ServiceContainer:
    """Services wired together once per process"""
    settings: SettingsService
    notifications: NotificationService
    schedules: ScheduleService
    medications: MedicationService
    adherence: AdherenceService


def build_services(clock: Optional[Callable[[], datetime]] = None) -> ServiceContainer:
    """
    Build the service graph

    Args:
        clock: Returns the current local wall time; defaults to the
            configured timezone's clock
    """
    notifications = NotificationService(clock=clock)
    schedules = ScheduleService(notifications)

    return ServiceContainer(
        settings=SettingsService(),
        notifications=notifications,
        schedules=schedules,
        medications=MedicationService(schedules, notifications),
        adherence=AdherenceService(clock=clock),
    )


__all__ = [
    # Service classes
    "SettingsService",
    "NotificationService",
    "ScheduleService",
    "MedicationService",
    "AdherenceService",
    # Results
    "MaterializationResult",
    "CancellationResult",
    "MedicationSetup",
    "DoseStatus",
    # Wiring
    "ServiceContainer",
    "build_services",
    "load_preferences",
]
