"""
Adherence Service
Medication history, per-day dose status and adherence statistics
"""

import logging
from typing import Callable, Dict, List, Optional, Any
from datetime import datetime, date, timedelta
from enum import Enum as PyEnum
from sqlalchemy.orm import Session
from sqlalchemy import and_, desc

from database import get_db_context
from errors import NotFound, ValidationFailure
import models
from models import HistoryAction
from tools.recurrence import normalize_weekdays
from tools.time_utils import combine, day_bounds, local_now, weekday_tag


logger = logging.getLogger(__name__)


# Only these actions settle what happened to a dose
DECISIVE_ACTIONS = [HistoryAction.TAKEN, HistoryAction.SKIPPED, HistoryAction.MISSED]


class DoseStatus(str, PyEnum):
    """Resolved state of one dose on one day"""
    CONFIRMED = "confirmed"
    PENDING = "pending"
    MISSED = "missed"


def slot_fires_on(schedule: models.MedicationSchedule, day: date) -> bool:
    """Whether an active slot produces a dose on a calendar day"""
    if not schedule.is_active:
        return False
    # A wrapped slot fires the day after its weekday tag
    anchor = day - timedelta(days=schedule.day_offset or 0)
    return weekday_tag(anchor) in normalize_weekdays(schedule.days_of_week)


def _latest_decisive_entry(
    session: Session,
    schedule_id: int,
    day: date
) -> Optional[models.MedicationHistory]:
    start, end = day_bounds(day)
    return session.query(models.MedicationHistory).filter(
        and_(
            models.MedicationHistory.schedule_id == schedule_id,
            models.MedicationHistory.scheduled_for >= start,
            models.MedicationHistory.scheduled_for < end,
            models.MedicationHistory.action.in_(DECISIVE_ACTIONS)
        )
    ).order_by(
        desc(models.MedicationHistory.created_at),
        desc(models.MedicationHistory.id)
    ).first()


class AdherenceService:
    """
    Service for dose history and adherence
    """

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        self.clock = clock or local_now

    async def record_history(
        self,
        action: HistoryAction,
        medication_id: Optional[int] = None,
        schedule_id: Optional[int] = None,
        scheduled_for: Optional[datetime] = None,
        quantity: Optional[int] = None,
        notes: Optional[str] = None,
        db: Optional[Session] = None
    ) -> models.MedicationHistory:
        """
        Record an action against a medication

        Args:
            action: History action
            medication_id: Medication ID; looked up through the slot when omitted
            schedule_id: Slot the action refers to
            scheduled_for: Dose instant the action refers to
            quantity: Units involved
            notes: Free text
            db: Database session

        Returns:
            Created MedicationHistory entry
        """
        try:
            action = HistoryAction(action)
        except ValueError:
            raise ValidationFailure(f"Unknown history action '{action}'") from None

        def _record(session: Session) -> models.MedicationHistory:
            resolved_id = medication_id
            if not resolved_id and schedule_id:
                schedule = session.get(models.MedicationSchedule, schedule_id)
                if not schedule:
                    raise NotFound("Schedule", schedule_id)
                resolved_id = schedule.medication_id

            if not resolved_id:
                raise ValidationFailure("A medication or schedule id is required")

            if not session.get(models.Medication, resolved_id):
                raise NotFound("Medication", resolved_id)

            entry = models.MedicationHistory(
                medication_id=resolved_id,
                schedule_id=schedule_id,
                scheduled_for=scheduled_for,
                action=action,
                quantity=quantity,
                notes=notes,
            )
            session.add(entry)
            session.commit()
            session.refresh(entry)

            logger.info(f"Recorded {action.value} for medication {resolved_id}")
            return entry

        if db:
            return _record(db)

        with get_db_context() as session:
            return _record(session)

    def _resolve(
        self,
        session: Session,
        schedule: models.MedicationSchedule,
        day: date,
        now: datetime
    ) -> Optional[DoseStatus]:
        if not slot_fires_on(schedule, day):
            return None

        entry = _latest_decisive_entry(session, schedule.id, day)
        if entry is not None:
            if entry.action == HistoryAction.TAKEN:
                return DoseStatus.CONFIRMED
            return DoseStatus.MISSED

        dose_instant = combine(day, schedule.time)
        if now <= dose_instant:
            return DoseStatus.PENDING

        # Recorded once; the entry settles later lookups for the same day
        session.add(models.MedicationHistory(
            medication_id=schedule.medication_id,
            schedule_id=schedule.id,
            scheduled_for=dose_instant,
            action=HistoryAction.MISSED,
            notes="Automatically recorded as missed",
        ))
        session.commit()
        logger.info(f"Dose of schedule {schedule.id} at {dose_instant} recorded as missed")
        return DoseStatus.MISSED

    async def resolve_dose_status(
        self,
        schedule_id: int,
        day: Optional[date] = None,
        db: Optional[Session] = None
    ) -> Optional[DoseStatus]:
        """
        Resolve one slot's dose on a day against the recorded history

        Returns:
            CONFIRMED when taken, MISSED when skipped, missed or overdue with
            nothing recorded, PENDING while still ahead, or None when the slot
            has no dose that day
        """
        def _get(session: Session) -> Optional[DoseStatus]:
            schedule = session.get(models.MedicationSchedule, schedule_id)
            if not schedule:
                raise NotFound("Schedule", schedule_id)

            now = self.clock()
            return self._resolve(session, schedule, day or now.date(), now)

        if db:
            return _get(db)

        with get_db_context() as session:
            return _get(session)

    async def get_todays_doses(
        self,
        user_id: int,
        db: Optional[Session] = None
    ) -> List[Dict[str, Any]]:
        """Every dose due today across a user's active medications, with status"""
        def _get(session: Session) -> List[Dict[str, Any]]:
            now = self.clock()
            today = now.date()

            rows = session.query(models.MedicationSchedule, models.Medication).join(
                models.Medication,
                models.MedicationSchedule.medication_id == models.Medication.id
            ).filter(
                models.Medication.user_id == user_id,
                models.Medication.active == True,
                models.MedicationSchedule.is_active == True
            ).order_by(models.MedicationSchedule.time, models.MedicationSchedule.id).all()

            doses = []
            for schedule, medication in rows:
                status = self._resolve(session, schedule, today, now)
                if status is None:
                    continue

                doses.append({
                    "schedule_id": schedule.id,
                    "medication_id": medication.id,
                    "medication_name": medication.name,
                    "dosage": medication.dosage,
                    "time": schedule.time,
                    "scheduled_for": combine(today, schedule.time),
                    "status": status.value,
                })

            return doses

        if db:
            return _get(db)

        with get_db_context() as session:
            return _get(session)

    async def get_adherence_stats(
        self,
        medication_id: int,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        db: Optional[Session] = None
    ) -> Dict[str, Any]:
        """
        Adherence counts for a medication over its decisive history entries

        Args:
            medication_id: Medication ID
            start_date: Earliest recording instant (inclusive)
            end_date: Latest recording instant (inclusive)

        Returns:
            total, taken, skipped, missed and adherence_rate (percent)
        """
        def _calculate(session: Session) -> Dict[str, Any]:
            query = session.query(models.MedicationHistory.action).filter(
                models.MedicationHistory.medication_id == medication_id,
                models.MedicationHistory.action.in_(DECISIVE_ACTIONS)
            )
            if start_date:
                query = query.filter(models.MedicationHistory.created_at >= start_date)
            if end_date:
                query = query.filter(models.MedicationHistory.created_at <= end_date)

            actions = [row.action for row in query.all()]

            total = len(actions)
            taken = sum(1 for a in actions if a == HistoryAction.TAKEN)
            skipped = sum(1 for a in actions if a == HistoryAction.SKIPPED)
            missed = sum(1 for a in actions if a == HistoryAction.MISSED)

            return {
                "medication_id": medication_id,
                "total": total,
                "taken": taken,
                "skipped": skipped,
                "missed": missed,
                "adherence_rate": round((taken / total) * 100, 2) if total > 0 else 0.0,
            }

        if db:
            return _calculate(db)

        with get_db_context() as session:
            return _calculate(session)
