"""
Notification Service
Materializes scheduled reminders from medication slots and drives each
reminder through its delivery lifecycle
"""

import logging
from typing import Callable, Dict, List, Optional, Any, Set, Tuple
from dataclasses import dataclass, asdict
from datetime import datetime, date
from sqlalchemy.orm import Session

from config import settings
from database import get_db_context
from errors import InvalidTransition, NotFound
import models
from models import NotificationStatus
from services.settings_service import load_preferences
from tools.recurrence import expand_slot
from tools.time_utils import local_now


logger = logging.getLogger(__name__)


TERMINAL_STATUSES = {
    NotificationStatus.SENT,
    NotificationStatus.FAILED,
    NotificationStatus.CANCELLED,
}


@dataclass
class MaterializationResult:
    """Outcome of one materialization run for a medication"""
    medication_id: int
    scheduled: int = 0
    skipped_existing: int = 0
    skipped_past: int = 0
    failed: int = 0
    message: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class CancellationResult:
    """Outcome of a bulk cancellation"""
    attempted: int = 0
    cancelled: int = 0

    @property
    def failed(self) -> int:
        return self.attempted - self.cancelled

    def to_dict(self) -> Dict[str, Any]:
        return {"attempted": self.attempted, "cancelled": self.cancelled, "failed": self.failed}


def transition(notification: models.ScheduledNotification, target: NotificationStatus) -> None:
    """Move a notification out of `scheduled`. Terminal statuses never change."""
    current = NotificationStatus(notification.status)
    if current in TERMINAL_STATUSES:
        raise InvalidTransition(notification.id, current.value, target.value)
    notification.status = target


class NotificationService:
    """
    Service for scheduled reminder management

    Responsibilities:
    - Expand a medication's active slots into reminder rows (idempotent)
    - Cancel reminders for a medication, a slot or a single row
    - Record delivery outcomes coming from the sender job
    """

    def __init__(
        self,
        clock: Optional[Callable[[], datetime]] = None,
        horizon_days: Optional[int] = None,
        max_per_slot: Optional[int] = None
    ):
        self.clock = clock or local_now
        self.horizon_days = horizon_days or settings.SCHEDULE_HORIZON_DAYS
        self.max_per_slot = max_per_slot or settings.MAX_NOTIFICATIONS_PER_SLOT

    # ==================== MATERIALIZATION ====================

    async def schedule_notifications_for_medication(
        self,
        medication_id: int,
        days_ahead: Optional[int] = None,
        db: Optional[Session] = None
    ) -> MaterializationResult:
        """
        Schedule reminders for every active slot of a medication

        Args:
            medication_id: Medication ID
            days_ahead: Horizon in days (defaults to SCHEDULE_HORIZON_DAYS)
            db: Database session

        Returns:
            Aggregate counts. Instants that already have a live reminder for
            the same slot and day are left untouched.
        """
        horizon = days_ahead or self.horizon_days

        def _schedule(session: Session) -> MaterializationResult:
            medication = session.get(models.Medication, medication_id)
            if not medication:
                raise NotFound("Medication", medication_id)

            result = MaterializationResult(medication_id=medication_id)

            if not medication.active:
                result.message = "Medication inactive"
                logger.info(f"Medication {medication_id} is inactive, nothing scheduled")
                return result

            preferences = load_preferences(session, medication.user_id)

            if not preferences.enable_push:
                result.message = "Push notifications disabled"
                logger.info(f"Push disabled for user {medication.user_id}, nothing scheduled")
                return result

            now = self.clock()
            slots = session.query(models.MedicationSchedule).filter(
                models.MedicationSchedule.medication_id == medication_id,
                models.MedicationSchedule.is_active == True
            ).order_by(models.MedicationSchedule.time).all()

            seen: Set[Tuple[int, date]] = set()

            for slot in slots:
                try:
                    instants = expand_slot(slot, horizon, now, self.max_per_slot)
                except Exception as e:
                    logger.error(f"Could not expand schedule {slot.id}: {e}")
                    result.failed += 1
                    continue

                for dose_time in instants:
                    key = (slot.id, dose_time.date())
                    try:
                        if key in seen or self._has_live_notification(session, slot.id, dose_time.date()):
                            result.skipped_existing += 1
                            continue

                        notification_time = preferences.notification_instant(dose_time, now)
                        if notification_time is None:
                            result.skipped_past += 1
                            continue

                        session.add(models.ScheduledNotification(
                            user_id=medication.user_id,
                            medication_id=medication.id,
                            schedule_id=slot.id,
                            medication_name=medication.name,
                            dosage=medication.dosage,
                            dose_time=dose_time,
                            dose_date=dose_time.date(),
                            notification_time=notification_time,
                            status=NotificationStatus.SCHEDULED,
                        ))
                        seen.add(key)
                        result.scheduled += 1
                    except Exception as e:
                        logger.error(
                            f"Failed to schedule reminder for schedule {slot.id} at {dose_time}: {e}"
                        )
                        result.failed += 1

            session.commit()
            result.message = f"{result.scheduled} notifications scheduled"
            logger.info(
                f"Medication {medication_id}: scheduled {result.scheduled}, "
                f"existing {result.skipped_existing}, past {result.skipped_past}, "
                f"failed {result.failed}"
            )
            return result

        if db:
            return _schedule(db)

        with get_db_context() as session:
            return _schedule(session)

    def _has_live_notification(self, session: Session, schedule_id: int, dose_date: date) -> bool:
        return session.query(models.ScheduledNotification.id).filter(
            models.ScheduledNotification.schedule_id == schedule_id,
            models.ScheduledNotification.dose_date == dose_date,
            models.ScheduledNotification.status != NotificationStatus.CANCELLED
        ).first() is not None

    # ==================== CANCELLATION ====================

    async def cancel_notification(
        self,
        notification_id: int,
        user_id: int,
        db: Optional[Session] = None
    ) -> models.ScheduledNotification:
        """Cancel one scheduled reminder owned by a user"""
        def _cancel(session: Session) -> models.ScheduledNotification:
            notification = session.query(models.ScheduledNotification).filter(
                models.ScheduledNotification.id == notification_id,
                models.ScheduledNotification.user_id == user_id
            ).first()

            if not notification:
                raise NotFound("Notification", notification_id)

            transition(notification, NotificationStatus.CANCELLED)
            session.commit()
            session.refresh(notification)

            logger.info(f"Notification {notification_id} cancelled")
            return notification

        if db:
            return _cancel(db)

        with get_db_context() as session:
            return _cancel(session)

    def _cancel_matching(self, session: Session, *criteria) -> CancellationResult:
        rows = session.query(models.ScheduledNotification).filter(
            models.ScheduledNotification.status == NotificationStatus.SCHEDULED,
            *criteria
        ).all()

        result = CancellationResult(attempted=len(rows))
        for notification in rows:
            try:
                transition(notification, NotificationStatus.CANCELLED)
                result.cancelled += 1
            except Exception as e:
                logger.error(f"Failed to cancel notification {notification.id}: {e}")

        session.commit()
        return result

    async def cancel_all_for_medication(
        self,
        medication_id: int,
        db: Optional[Session] = None
    ) -> CancellationResult:
        """Cancel every still-scheduled reminder of a medication"""
        def _cancel(session: Session) -> CancellationResult:
            result = self._cancel_matching(
                session, models.ScheduledNotification.medication_id == medication_id
            )
            logger.info(
                f"Cancelled {result.cancelled}/{result.attempted} notifications "
                f"for medication {medication_id}"
            )
            return result

        if db:
            return _cancel(db)

        with get_db_context() as session:
            return _cancel(session)

    async def cancel_for_schedule(
        self,
        schedule_id: int,
        db: Optional[Session] = None
    ) -> CancellationResult:
        """Cancel every still-scheduled reminder of one slot"""
        def _cancel(session: Session) -> CancellationResult:
            result = self._cancel_matching(
                session, models.ScheduledNotification.schedule_id == schedule_id
            )
            logger.info(
                f"Cancelled {result.cancelled}/{result.attempted} notifications "
                f"for schedule {schedule_id}"
            )
            return result

        if db:
            return _cancel(db)

        with get_db_context() as session:
            return _cancel(session)

    async def reschedule_for_medication(
        self,
        medication_id: int,
        days_ahead: Optional[int] = None,
        db: Optional[Session] = None
    ) -> Dict[str, Any]:
        """Cancel a medication's pending reminders and materialize them again"""
        cancelled = await self.cancel_all_for_medication(medication_id, db=db)
        scheduled = await self.schedule_notifications_for_medication(
            medication_id, days_ahead=days_ahead, db=db
        )
        return {
            "cancelled": cancelled.to_dict(),
            "scheduled": scheduled.to_dict(),
        }

    # ==================== DELIVERY ====================

    def get_due_notifications(
        self,
        session: Session,
        now: datetime,
        limit: int
    ) -> List[models.ScheduledNotification]:
        """Scheduled reminders whose send instant has arrived, oldest first"""
        return session.query(models.ScheduledNotification).filter(
            models.ScheduledNotification.status == NotificationStatus.SCHEDULED,
            models.ScheduledNotification.notification_time <= now
        ).order_by(
            models.ScheduledNotification.notification_time,
            models.ScheduledNotification.id
        ).limit(limit).all()

    def mark_sent(
        self,
        notification: models.ScheduledNotification,
        ticket_id: Optional[str],
        sent_at: datetime
    ) -> None:
        transition(notification, NotificationStatus.SENT)
        notification.ticket_id = ticket_id
        notification.sent_at = sent_at
        notification.failure_reason = None

    def mark_failed(self, notification: models.ScheduledNotification, reason: str) -> None:
        transition(notification, NotificationStatus.FAILED)
        notification.failure_reason = reason
        logger.warning(f"Notification {notification.id} marked as failed: {reason}")

    # ==================== QUERIES ====================

    async def get_user_notifications(
        self,
        user_id: int,
        status: Optional[NotificationStatus] = None,
        limit: int = 100,
        db: Optional[Session] = None
    ) -> List[models.ScheduledNotification]:
        """A user's reminders, soonest first"""
        def _get(session: Session) -> List[models.ScheduledNotification]:
            query = session.query(models.ScheduledNotification).filter(
                models.ScheduledNotification.user_id == user_id
            )
            if status:
                query = query.filter(models.ScheduledNotification.status == status)
            return query.order_by(
                models.ScheduledNotification.notification_time
            ).limit(limit).all()

        if db:
            return _get(db)

        with get_db_context() as session:
            return _get(session)
