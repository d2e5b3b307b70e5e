"""
Settings Service
Reminder settings and push destinations per user
"""

import logging
from typing import Dict, Any, List, Optional
from sqlalchemy.orm import Session

from database import get_db_context
from errors import NotFound, ValidationFailure
import models
from actions.reminder_engine import ReminderPreferences


logger = logging.getLogger(__name__)


_SETTINGS_FIELDS = {
    "enable_push", "enable_email", "reminder_before",
    "quiet_hours_start", "quiet_hours_end",
}


def load_preferences(session: Session, user_id: int) -> ReminderPreferences:
    """Stored preferences for a user, or the defaults when none exist"""
    row = session.query(models.ReminderSettings).filter(
        models.ReminderSettings.user_id == user_id
    ).first()

    if row is None:
        return ReminderPreferences(user_id=user_id)
    return ReminderPreferences.from_settings(row)


def _require_user(session: Session, user_id: int) -> models.User:
    user = session.get(models.User, user_id)
    if not user:
        raise NotFound("User", user_id)
    return user


class SettingsService:
    """
    Reads and writes ReminderSettings. A user without stored settings gets
    the defaults: push on, email off, 15 minute lead, no quiet hours.
    """

    async def get_preferences(
        self,
        user_id: int,
        db: Optional[Session] = None
    ) -> ReminderPreferences:
        """Effective reminder preferences for a user"""
        def _get(session: Session) -> ReminderPreferences:
            return load_preferences(session, user_id)

        if db:
            return _get(db)

        with get_db_context() as session:
            return _get(session)

    async def update_settings(
        self,
        user_id: int,
        updates: Dict[str, Any],
        db: Optional[Session] = None
    ) -> ReminderPreferences:
        """
        Create or update a user's reminder settings

        Missing settings are created on first write from the defaults, with
        `updates` applied on top. The merged quiet-hour pair is validated
        before anything is written.
        """
        unknown = set(updates) - _SETTINGS_FIELDS
        if unknown:
            raise ValidationFailure(f"Unknown reminder settings: {', '.join(sorted(unknown))}")

        def _update(session: Session) -> ReminderPreferences:
            _require_user(session, user_id)

            row = session.query(models.ReminderSettings).filter(
                models.ReminderSettings.user_id == user_id
            ).first()

            current = (
                ReminderPreferences.from_settings(row) if row
                else ReminderPreferences(user_id=user_id)
            ).to_dict()
            current.update(updates)

            # Raises ValidationFailure before the row is touched
            merged = ReminderPreferences(**current)

            if row is None:
                row = models.ReminderSettings(user_id=user_id)
                session.add(row)

            row.enable_push = merged.enable_push
            row.enable_email = merged.enable_email
            row.reminder_before = merged.reminder_before
            row.quiet_hours_start = merged.quiet_hours_start or None
            row.quiet_hours_end = merged.quiet_hours_end or None

            session.commit()
            logger.info(f"Updated reminder settings for user {user_id}")
            return merged

        if db:
            return _update(db)

        with get_db_context() as session:
            return _update(session)

    async def register_device_token(
        self,
        user_id: int,
        token: str,
        platform: str,
        db: Optional[Session] = None
    ) -> models.DeviceToken:
        """Register a device token, replacing the user's token for that platform"""
        if not token or not token.strip():
            raise ValidationFailure("Device token is required")
        if not platform or not platform.strip():
            raise ValidationFailure("Device platform is required")

        def _register(session: Session) -> models.DeviceToken:
            _require_user(session, user_id)

            session.query(models.DeviceToken).filter(
                models.DeviceToken.user_id == user_id,
                models.DeviceToken.platform == platform
            ).delete(synchronize_session=False)

            device = models.DeviceToken(user_id=user_id, token=token.strip(), platform=platform)
            session.add(device)
            session.commit()
            session.refresh(device)

            logger.info(f"Registered {platform} device token for user {user_id}")
            return device

        if db:
            return _register(db)

        with get_db_context() as session:
            return _register(session)

    async def get_device_tokens(
        self,
        user_id: int,
        db: Optional[Session] = None
    ) -> List[str]:
        """All registered device tokens for a user"""
        def _get(session: Session) -> List[str]:
            rows = session.query(models.DeviceToken.token).filter(
                models.DeviceToken.user_id == user_id
            ).all()
            return [row.token for row in rows]

        if db:
            return _get(db)

        with get_db_context() as session:
            return _get(session)
