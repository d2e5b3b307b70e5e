"""
Notifications API Router
Endpoints for scheduled reminders and the delivery sweep
"""

from typing import List, Optional
from datetime import date, datetime
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from pydantic import BaseModel, ConfigDict

from api.deps import get_current_user_id, get_db, get_sender_job, get_services, pagination_params
from jobs.notification_sender import NotificationSenderJob
from models import NotificationStatus
from services import ServiceContainer


router = APIRouter(prefix="/notifications", tags=["notifications"])


# ==================== REQUEST SCHEMAS ====================

class CancelRequest(BaseModel):
    """Owner of the reminder being cancelled"""
    user_id: int


# ==================== RESPONSE SCHEMAS ====================

class NotificationResponse(BaseModel):
    """Schema for a scheduled reminder"""
    id: int
    user_id: int
    medication_id: int
    schedule_id: Optional[int]
    medication_name: str
    dosage: str
    dose_time: datetime
    dose_date: date
    notification_time: datetime
    status: NotificationStatus
    ticket_id: Optional[str]
    failure_reason: Optional[str]
    sent_at: Optional[datetime]

    model_config = ConfigDict(from_attributes=True)


class MaterializationResponse(BaseModel):
    """Counts from one scheduling run"""
    medication_id: int
    scheduled: int
    skipped_existing: int
    skipped_past: int
    failed: int
    message: str


class RescheduleResponse(BaseModel):
    """Counts from cancelling and scheduling again"""
    cancelled: dict
    scheduled: MaterializationResponse


class SweepResponse(BaseModel):
    """Outcome of a delivery sweep"""
    ran: bool
    selected: int = 0
    sent: int = 0
    failed: int = 0
    users: int = 0
    skipped: int = 0


# ==================== ENDPOINTS ====================

@router.get("/users/{user_id}", response_model=List[NotificationResponse])
async def get_user_notifications(
    user_id: int = Depends(get_current_user_id),
    status_filter: Optional[NotificationStatus] = Query(None, alias="status"),
    pagination: dict = Depends(pagination_params),
    db: Session = Depends(get_db),
    services: ServiceContainer = Depends(get_services)
):
    """
    Get a user's reminders, soonest first
    """
    notifications = await services.notifications.get_user_notifications(
        user_id,
        status=status_filter,
        limit=pagination["limit"],
        db=db
    )
    return [NotificationResponse.model_validate(n) for n in notifications]


@router.post("/{notification_id}/cancel", response_model=NotificationResponse)
async def cancel_notification(
    notification_id: int,
    cancel_data: CancelRequest,
    db: Session = Depends(get_db),
    services: ServiceContainer = Depends(get_services)
):
    """
    Cancel one scheduled reminder
    """
    notification = await services.notifications.cancel_notification(
        notification_id,
        cancel_data.user_id,
        db=db
    )
    return NotificationResponse.model_validate(notification)


@router.post("/medications/{medication_id}/schedule", response_model=MaterializationResponse)
async def schedule_medication(
    medication_id: int,
    days_ahead: Optional[int] = Query(None, ge=1, le=31),
    db: Session = Depends(get_db),
    services: ServiceContainer = Depends(get_services)
):
    """
    Schedule any missing reminders for a medication; existing ones are kept
    """
    result = await services.notifications.schedule_notifications_for_medication(
        medication_id,
        days_ahead=days_ahead,
        db=db
    )
    return result.to_dict()


@router.post("/medications/{medication_id}/reschedule", response_model=RescheduleResponse)
async def reschedule_medication(
    medication_id: int,
    days_ahead: Optional[int] = Query(None, ge=1, le=31),
    db: Session = Depends(get_db),
    services: ServiceContainer = Depends(get_services)
):
    """
    Cancel a medication's pending reminders and schedule them again
    """
    return await services.notifications.reschedule_for_medication(
        medication_id,
        days_ahead=days_ahead,
        db=db
    )


@router.post("/sweep", response_model=SweepResponse)
async def run_sweep(
    db: Session = Depends(get_db),
    job: NotificationSenderJob = Depends(get_sender_job)
):
    """
    Deliver due reminders now
    """
    result = await job.run(db=db)
    if result is None:
        return SweepResponse(ran=False)
    return SweepResponse(ran=True, **result.to_dict())
