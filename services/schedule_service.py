"""
Schedule Service
Business logic for recurring medication slots
"""

import logging
from typing import Dict, List, Optional, Any
from datetime import datetime
from sqlalchemy.orm import Session

from database import get_db_context
from errors import NotFound, ValidationFailure
import models
from services.notification_service import NotificationService
from tools.recurrence import derive_slots, normalize_weekdays
from tools.time_utils import format_time, parse_time


logger = logging.getLogger(__name__)


def create_medication_schedules(
    session: Session,
    medication: models.Medication
) -> List[models.MedicationSchedule]:
    """
    Derive and persist the slots for a medication's frequency.

    Frequencies without automatic slots (AS_NEEDED, CUSTOM) create nothing.
    The caller commits.
    """
    derived = derive_slots(medication.frequency, medication.start_time, medication.interval_hours)

    schedules = [
        models.MedicationSchedule(
            medication_id=medication.id,
            time=slot.time,
            days_of_week=[day.value for day in slot.days_of_week],
            day_offset=slot.day_offset,
            is_active=True,
            is_custom=False,
        )
        for slot in derived
    ]
    session.add_all(schedules)

    if not schedules:
        logger.info(f"No automatic schedules for medication {medication.id} ({medication.frequency})")
    else:
        logger.info(f"Created {len(schedules)} schedules for medication {medication.id}")
    return schedules


class ScheduleService:
    """
    Service for recurring slot management
    """

    def __init__(self, notification_service: NotificationService):
        self.notification_service = notification_service

    async def create_custom_schedule(
        self,
        medication_id: int,
        scheduled_time: str,
        days_of_week: List[str],
        db: Optional[Session] = None
    ) -> models.MedicationSchedule:
        """
        Create a user-defined slot and schedule its reminders

        Args:
            medication_id: Medication ID
            scheduled_time: Time of day as HH:MM
            days_of_week: Weekday tags, at least one

        Returns:
            Created MedicationSchedule
        """
        time_str = format_time(parse_time(scheduled_time))
        days = normalize_weekdays(days_of_week)

        async def _create(session: Session) -> models.MedicationSchedule:
            medication = session.get(models.Medication, medication_id)
            if not medication:
                raise NotFound("Medication", medication_id)

            schedule = models.MedicationSchedule(
                medication_id=medication_id,
                time=time_str,
                days_of_week=[day.value for day in days],
                day_offset=0,
                is_active=True,
                is_custom=True,
            )
            session.add(schedule)
            session.commit()
            session.refresh(schedule)

            logger.info(f"Created custom schedule {schedule.id} at {time_str} for medication {medication_id}")

            await self.notification_service.schedule_notifications_for_medication(medication_id, db=session)
            return schedule

        if db:
            return await _create(db)

        with get_db_context() as session:
            return await _create(session)

    async def get_schedule(
        self,
        schedule_id: int,
        db: Optional[Session] = None
    ) -> models.MedicationSchedule:
        """Get schedule by ID"""
        def _get(session: Session) -> models.MedicationSchedule:
            schedule = session.get(models.MedicationSchedule, schedule_id)
            if not schedule:
                raise NotFound("Schedule", schedule_id)
            return schedule

        if db:
            return _get(db)

        with get_db_context() as session:
            return _get(session)

    async def get_medication_schedules(
        self,
        medication_id: int,
        active_only: bool = True,
        db: Optional[Session] = None
    ) -> List[models.MedicationSchedule]:
        """Get all schedules for a medication"""
        def _get(session: Session) -> List[models.MedicationSchedule]:
            query = session.query(models.MedicationSchedule).filter(
                models.MedicationSchedule.medication_id == medication_id
            )

            if active_only:
                query = query.filter(models.MedicationSchedule.is_active == True)

            return query.order_by(models.MedicationSchedule.time).all()

        if db:
            return _get(db)

        with get_db_context() as session:
            return _get(session)

    async def deactivate_schedule(
        self,
        schedule_id: int,
        db: Optional[Session] = None
    ) -> Dict[str, Any]:
        """Deactivate a slot and cancel its pending reminders"""
        def _deactivate(session: Session) -> None:
            schedule = session.get(models.MedicationSchedule, schedule_id)
            if not schedule:
                raise NotFound("Schedule", schedule_id)

            schedule.is_active = False
            schedule.updated_at = datetime.utcnow()
            session.commit()

        if db:
            _deactivate(db)
        else:
            with get_db_context() as session:
                _deactivate(session)

        cancelled = await self.notification_service.cancel_for_schedule(schedule_id, db=db)
        logger.info(f"Deactivated schedule {schedule_id}")
        return {"schedule_id": schedule_id, "cancelled": cancelled.to_dict()}

    async def delete_schedule(
        self,
        schedule_id: int,
        db: Optional[Session] = None
    ) -> Dict[str, Any]:
        """
        Delete a slot. Its pending reminders are cancelled first; reminder and
        history rows survive with the slot reference cleared.
        """
        await self.get_schedule(schedule_id, db=db)
        cancelled = await self.notification_service.cancel_for_schedule(schedule_id, db=db)

        def _delete(session: Session) -> None:
            schedule = session.get(models.MedicationSchedule, schedule_id)
            if not schedule:
                raise NotFound("Schedule", schedule_id)

            session.query(models.ScheduledNotification).filter(
                models.ScheduledNotification.schedule_id == schedule_id
            ).update({"schedule_id": None}, synchronize_session=False)
            session.query(models.MedicationHistory).filter(
                models.MedicationHistory.schedule_id == schedule_id
            ).update({"schedule_id": None}, synchronize_session=False)

            session.delete(schedule)
            session.commit()

        if db:
            _delete(db)
        else:
            with get_db_context() as session:
                _delete(session)

        logger.info(f"Deleted schedule {schedule_id}")
        return {"schedule_id": schedule_id, "cancelled": cancelled.to_dict()}

    async def replace_derived_schedules(
        self,
        medication: models.Medication,
        db: Session
    ) -> List[models.MedicationSchedule]:
        """
        Retire a medication's derived slots and derive fresh ones from its
        current frequency. Custom slots are kept. The caller reschedules.
        """
        derived = db.query(models.MedicationSchedule).filter(
            models.MedicationSchedule.medication_id == medication.id,
            models.MedicationSchedule.is_custom == False,
            models.MedicationSchedule.is_active == True
        ).all()

        for schedule in derived:
            schedule.is_active = False
            schedule.updated_at = datetime.utcnow()

        schedules = create_medication_schedules(db, medication)
        db.commit()
        logger.info(
            f"Replaced {len(derived)} derived schedules with {len(schedules)} "
            f"for medication {medication.id}"
        )
        return schedules
