"""
API Dependencies
Common dependencies for FastAPI endpoints
"""

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from database import get_db
import models
from jobs.notification_sender import NotificationSenderJob
from services import ServiceContainer


def get_services(request: Request) -> ServiceContainer:
    """
    Services wired at startup
    """
    return request.app.state.services


def get_sender_job(request: Request) -> NotificationSenderJob:
    """
    Delivery sweep job wired at startup
    """
    job = getattr(request.app.state, "sender_job", None)
    if job is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Notification delivery is not configured",
        )
    return job


async def get_current_user_id(
    user_id: int,
    db: Session = Depends(get_db)
) -> int:
    """
    Validate user exists and return user ID
    """
    if not db.get(models.User, user_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"User {user_id} not found"
        )
    return user_id


def pagination_params(limit: int = 100) -> dict:
    """
    Common pagination parameters
    """
    if limit < 1:
        limit = 100
    if limit > 500:
        limit = 500
    return {"limit": limit}
