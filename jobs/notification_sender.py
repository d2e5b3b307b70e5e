"""
Notification Sender Job
Periodic sweep that delivers due reminders through the push transport

Each run:
1. Selects scheduled reminders whose send instant has arrived, oldest first
2. Groups them by user and loads each user's device tokens
3. Sends one push message per reminder and device, in transport-sized chunks
4. Marks every reminder sent or failed
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, asdict
from datetime import datetime
from typing import Callable, Dict, List, Optional, Any

from sqlalchemy.orm import Session

from config import settings
from database import get_db_context
from errors import InvalidTransition
import models
from models import NotificationStatus
from services.notification_service import NotificationService
from tools.push_transport import PushMessage, PushTicket, PushTransport, is_push_token
from tools.time_utils import local_now


logger = logging.getLogger(__name__)


@dataclass
class SweepResult:
    """Outcome of one delivery sweep"""
    selected: int = 0
    sent: int = 0
    failed: int = 0
    users: int = 0
    skipped: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def build_message(notification: models.ScheduledNotification, token: str) -> PushMessage:
    """Push message for one reminder on one device"""
    return PushMessage(
        to=token,
        title=f"Reminder: {notification.medication_name}",
        body=f"Time to take {notification.dosage} of {notification.medication_name}",
        data={
            "medicationId": notification.medication_id,
            "scheduleId": notification.schedule_id,
            "notificationId": notification.id,
            "type": "medication_reminder",
            "screen": "home",
        },
    )


class NotificationSenderJob:
    """
    Delivers due reminders. Overlapping runs are skipped; a failure while
    handling one user never affects the others.
    """

    def __init__(
        self,
        notification_service: NotificationService,
        transport: PushTransport,
        session_factory=None,
        clock: Optional[Callable[[], datetime]] = None,
        batch_size: Optional[int] = None
    ):
        self.notification_service = notification_service
        self.transport = transport
        self.session_factory = session_factory
        self.clock = clock or local_now
        self.batch_size = batch_size or settings.SWEEP_BATCH_SIZE
        self._is_running = False

    @property
    def is_running(self) -> bool:
        return self._is_running

    async def run(self, db: Optional[Session] = None) -> Optional[SweepResult]:
        """
        Run one sweep

        Returns:
            SweepResult, or None when a sweep was already in progress
        """
        if self._is_running:
            logger.info("Notification sweep already running, skipping this tick")
            return None

        self._is_running = True
        try:
            if db:
                return await self._sweep(db)

            with get_db_context(self.session_factory) as session:
                return await self._sweep(session)
        except Exception as e:
            logger.error(f"Notification sweep failed: {e}", exc_info=True)
            raise
        finally:
            self._is_running = False

    run_delivery_sweep = run

    async def _sweep(self, session: Session) -> SweepResult:
        now = self.clock()
        result = SweepResult()

        due = self.notification_service.get_due_notifications(session, now, self.batch_size)
        result.selected = len(due)

        if not due:
            logger.debug(f"No reminders due at {now}")
            return result

        by_user: Dict[int, List[models.ScheduledNotification]] = defaultdict(list)
        for notification in due:
            by_user[notification.user_id].append(notification)

        result.users = len(by_user)
        logger.info(f"Sweep found {len(due)} due reminders for {len(by_user)} users")

        for user_id, notifications in by_user.items():
            outcome = SweepResult()
            try:
                await self._send_for_user(session, user_id, notifications, outcome)
                session.commit()
            except Exception as e:
                logger.error(f"Error processing reminders for user {user_id}: {e}", exc_info=True)
                session.rollback()
                outcome = SweepResult()
                self._fail_all(notifications, "processing error", outcome)
                session.commit()

            result.sent += outcome.sent
            result.failed += outcome.failed
            result.skipped += outcome.skipped

        logger.info(
            f"Sweep complete: {result.sent} sent, {result.failed} failed, "
            f"{result.skipped} skipped"
        )
        return result

    async def _send_for_user(
        self,
        session: Session,
        user_id: int,
        notifications: List[models.ScheduledNotification],
        result: SweepResult
    ) -> None:
        user = session.get(models.User, user_id)
        if not user:
            logger.warning(f"User {user_id} not found")
            self._fail_all(notifications, "user not found", result)
            return

        tokens = [device.token for device in user.device_tokens]
        if not tokens:
            logger.warning(f"User {user_id} has no registered device")
            self._fail_all(notifications, "no destination", result)
            return

        valid_tokens = [token for token in tokens if is_push_token(token)]
        if not valid_tokens:
            logger.warning(f"User {user_id} has no valid push token")
            self._fail_all(notifications, "no valid destination", result)
            return

        # Reminder-major order: tickets for one reminder are contiguous
        messages = [
            build_message(notification, token)
            for notification in notifications
            for token in valid_tokens
        ]
        tickets = await self._deliver(messages)

        width = len(valid_tokens)
        for index, notification in enumerate(notifications):
            own = tickets[index * width:(index + 1) * width]
            self._apply_tickets(notification, own, result)

    async def _deliver(self, messages: List[PushMessage]) -> List[PushTicket]:
        """Send in chunks; a failed chunk yields error tickets for its messages"""
        tickets: List[PushTicket] = []
        for chunk in self.transport.chunk(messages):
            try:
                chunk_tickets = await self.transport.send(chunk)
            except Exception as e:
                logger.error(f"Failed to send chunk of {len(chunk)} messages: {e}")
                chunk_tickets = [PushTicket.error(str(e)) for _ in chunk]

            if len(chunk_tickets) != len(chunk):
                logger.error(
                    f"Transport returned {len(chunk_tickets)} tickets for {len(chunk)} messages"
                )
                chunk_tickets = [PushTicket.error("ticket count mismatch") for _ in chunk]

            tickets.extend(chunk_tickets)
        return tickets

    def _apply_tickets(
        self,
        notification: models.ScheduledNotification,
        tickets: List[PushTicket],
        result: SweepResult
    ) -> None:
        success = next((t for t in tickets if t.ok), None)
        error = next((t for t in tickets if t.status == "error"), None)

        try:
            if success:
                self.notification_service.mark_sent(notification, success.id, self.clock())
                result.sent += 1
                logger.info(f"Reminder {notification.id} sent (ticket: {success.id})")
            elif error:
                self.notification_service.mark_failed(
                    notification, error.message or "unknown delivery error"
                )
                result.failed += 1
            else:
                self.notification_service.mark_failed(notification, "no ticket received")
                result.failed += 1
        except InvalidTransition as e:
            logger.warning(str(e))
            result.skipped += 1

    def _fail_all(
        self,
        notifications: List[models.ScheduledNotification],
        reason: str,
        result: SweepResult
    ) -> None:
        for notification in notifications:
            if notification.status != NotificationStatus.SCHEDULED:
                result.skipped += 1
                continue
            self.notification_service.mark_failed(notification, reason)
            result.failed += 1
