"""
Medication Service
Keeps a medication's slots and reminders in step with its schedule inputs
"""

import logging
from typing import Dict, List, Optional, Any
from dataclasses import dataclass, field
from datetime import datetime
from sqlalchemy.orm import Session

from database import get_db_context
from errors import NotFound, ValidationFailure
import models
from services.notification_service import MaterializationResult, NotificationService
from services.schedule_service import ScheduleService, create_medication_schedules
from tools.recurrence import coerce_frequency
from tools.time_utils import format_time, parse_time


logger = logging.getLogger(__name__)


# Fields whose change invalidates pending reminders
_SCHEDULE_FIELDS = {"frequency", "start_time", "interval_hours"}
_PAYLOAD_FIELDS = {"name", "dosage"}
_UPDATABLE_FIELDS = _SCHEDULE_FIELDS | _PAYLOAD_FIELDS | {"notes", "active"}


@dataclass
class MedicationSetup:
    """A medication together with what scheduling produced for it"""
    medication: models.Medication
    schedules: List[models.MedicationSchedule] = field(default_factory=list)
    notifications: Optional[MaterializationResult] = None


def _validate_schedule_inputs(values: Dict[str, Any]) -> Dict[str, Any]:
    """Normalize frequency, start time and interval. Raises ValidationFailure."""
    cleaned = dict(values)

    if "frequency" in cleaned:
        cleaned["frequency"] = coerce_frequency(cleaned["frequency"])

    if cleaned.get("start_time") is not None:
        cleaned["start_time"] = format_time(parse_time(cleaned["start_time"]))

    interval = cleaned.get("interval_hours")
    if interval is not None and interval <= 0:
        raise ValidationFailure(f"interval_hours must be positive, got {interval}")

    for name in ("name", "dosage"):
        if name in cleaned and not (cleaned[name] or "").strip():
            raise ValidationFailure(f"Medication {name} is required")

    return cleaned


class MedicationService:
    """
    Service for medication scheduling side effects
    """

    def __init__(
        self,
        schedule_service: ScheduleService,
        notification_service: NotificationService
    ):
        self.schedule_service = schedule_service
        self.notification_service = notification_service

    async def create_medication(
        self,
        user_id: int,
        name: str,
        dosage: str,
        frequency: str,
        start_time: Optional[str] = None,
        interval_hours: Optional[float] = None,
        notes: Optional[str] = None,
        db: Optional[Session] = None
    ) -> MedicationSetup:
        """
        Add a medication, derive its slots and schedule its reminders

        Args:
            user_id: Owner
            name: Medication name
            dosage: Dosage (e.g., "500mg")
            frequency: Frequency tag
            start_time: First dose of the day (HH:MM)
            interval_hours: Spacing between doses
            db: Database session

        Returns:
            MedicationSetup with the created slots and materialization counts
        """
        values = _validate_schedule_inputs({
            "name": name,
            "dosage": dosage,
            "frequency": frequency,
            "start_time": start_time,
            "interval_hours": interval_hours,
        })

        async def _create(session: Session) -> MedicationSetup:
            if not session.get(models.User, user_id):
                raise NotFound("User", user_id)

            medication = models.Medication(
                user_id=user_id,
                notes=notes,
                active=True,
                **values
            )
            session.add(medication)
            session.flush()

            schedules = create_medication_schedules(session, medication)
            session.commit()
            session.refresh(medication)

            logger.info(f"Created medication {medication.id} ({medication.frequency.value}) for user {user_id}")

            notifications = await self.notification_service.schedule_notifications_for_medication(
                medication.id, db=session
            )
            return MedicationSetup(medication=medication, schedules=schedules, notifications=notifications)

        if db:
            return await _create(db)

        with get_db_context() as session:
            return await _create(session)

    async def update_medication(
        self,
        medication_id: int,
        updates: Dict[str, Any],
        db: Session
    ) -> MedicationSetup:
        """
        Update a medication

        A change to the frequency, start time or interval replaces the derived
        slots. Any change that affects reminders cancels the pending ones and
        schedules them again. Deactivating cancels without rescheduling.
        """
        unknown = set(updates) - _UPDATABLE_FIELDS
        if unknown:
            raise ValidationFailure(f"Cannot update: {', '.join(sorted(unknown))}")
        values = _validate_schedule_inputs(updates)

        medication = db.get(models.Medication, medication_id)
        if not medication:
            raise NotFound("Medication", medication_id)

        changed = {
            key for key, value in values.items()
            if getattr(medication, key) != value
        }
        for key in changed:
            setattr(medication, key, values[key])
        medication.updated_at = datetime.utcnow()
        db.commit()

        setup = MedicationSetup(medication=medication)

        if changed & _SCHEDULE_FIELDS:
            setup.schedules = await self.schedule_service.replace_derived_schedules(medication, db)

        if not medication.active:
            if "active" in changed:
                await self.notification_service.cancel_all_for_medication(medication_id, db=db)
        elif changed & (_SCHEDULE_FIELDS | _PAYLOAD_FIELDS | {"active"}):
            outcome = await self.notification_service.reschedule_for_medication(medication_id, db=db)
            setup.notifications = MaterializationResult(**outcome["scheduled"])

        if not setup.schedules:
            setup.schedules = await self.schedule_service.get_medication_schedules(medication_id, db=db)

        db.refresh(medication)
        return setup

    async def delete_medication(
        self,
        medication_id: int,
        db: Optional[Session] = None
    ) -> Dict[str, int]:
        """
        Delete a medication and everything that depends on it in one
        transaction: reminders, history, slots, then the medication.

        Returns:
            Count of deleted rows per kind
        """
        def _delete(session: Session) -> Dict[str, int]:
            if not session.get(models.Medication, medication_id):
                raise NotFound("Medication", medication_id)

            # Children first so foreign keys hold at every step
            try:
                counts = {
                    "notifications": session.query(models.ScheduledNotification).filter(
                        models.ScheduledNotification.medication_id == medication_id
                    ).delete(),
                    "history": session.query(models.MedicationHistory).filter(
                        models.MedicationHistory.medication_id == medication_id
                    ).delete(),
                    "schedules": session.query(models.MedicationSchedule).filter(
                        models.MedicationSchedule.medication_id == medication_id
                    ).delete(),
                    "medications": session.query(models.Medication).filter(
                        models.Medication.id == medication_id
                    ).delete(),
                }
                session.commit()
            except Exception:
                session.rollback()
                logger.error(f"Deleting medication {medication_id} failed, rolled back", exc_info=True)
                raise

            logger.info(f"Deleted medication {medication_id}: {counts}")
            return counts

        if db:
            return _delete(db)

        with get_db_context() as session:
            return _delete(session)
