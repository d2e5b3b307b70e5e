"""
Schedules API Router
Endpoints for custom slots, today's doses and adherence
"""

from typing import List, Optional
from datetime import date, datetime
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from pydantic import BaseModel, ConfigDict, Field

from api.deps import get_current_user_id, get_db, get_services
from services import ServiceContainer


router = APIRouter(prefix="/schedules", tags=["schedules"])


# ==================== REQUEST SCHEMAS ====================

class ScheduleCreate(BaseModel):
    """Schema for creating a custom slot"""
    scheduled_time: str = Field(..., description="Time in HH:MM format")
    days_of_week: List[str] = Field(..., description="Weekday tags, e.g. MONDAY")


# ==================== RESPONSE SCHEMAS ====================

class ScheduleResponse(BaseModel):
    """Schema for schedule response"""
    id: int
    medication_id: int
    time: str
    days_of_week: List[str]
    day_offset: int
    is_active: bool
    is_custom: bool

    model_config = ConfigDict(from_attributes=True)


class TodaysDose(BaseModel):
    """Today's scheduled dose"""
    schedule_id: int
    medication_id: int
    medication_name: str
    dosage: str
    time: str
    scheduled_for: datetime
    status: str


class DoseStatusResponse(BaseModel):
    """Status of one slot on one day"""
    schedule_id: int
    day: date
    status: Optional[str]


class AdherenceStats(BaseModel):
    """Adherence counts for a medication"""
    medication_id: int
    total: int
    taken: int
    skipped: int
    missed: int
    adherence_rate: float


# ==================== ENDPOINTS ====================

@router.post(
    "/medications/{medication_id}",
    response_model=ScheduleResponse,
    status_code=status.HTTP_201_CREATED
)
async def create_custom_schedule(
    medication_id: int,
    schedule_data: ScheduleCreate,
    db: Session = Depends(get_db),
    services: ServiceContainer = Depends(get_services)
):
    """
    Add a custom slot to a medication and schedule its reminders
    """
    schedule = await services.schedules.create_custom_schedule(
        medication_id=medication_id,
        scheduled_time=schedule_data.scheduled_time,
        days_of_week=schedule_data.days_of_week,
        db=db
    )
    return ScheduleResponse.model_validate(schedule)


@router.get("/medications/{medication_id}", response_model=List[ScheduleResponse])
async def get_medication_schedules(
    medication_id: int,
    active_only: bool = Query(True),
    db: Session = Depends(get_db),
    services: ServiceContainer = Depends(get_services)
):
    """
    Get all slots for a medication
    """
    schedules = await services.schedules.get_medication_schedules(
        medication_id,
        active_only=active_only,
        db=db
    )
    return [ScheduleResponse.model_validate(s) for s in schedules]


@router.get("/medications/{medication_id}/adherence", response_model=AdherenceStats)
async def get_adherence_stats(
    medication_id: int,
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    db: Session = Depends(get_db),
    services: ServiceContainer = Depends(get_services)
):
    """
    Taken, skipped and missed counts with the adherence rate
    """
    return await services.adherence.get_adherence_stats(
        medication_id,
        start_date=start_date,
        end_date=end_date,
        db=db
    )


@router.post("/{schedule_id}/deactivate")
async def deactivate_schedule(
    schedule_id: int,
    db: Session = Depends(get_db),
    services: ServiceContainer = Depends(get_services)
):
    """
    Deactivate a slot and cancel its pending reminders
    """
    return await services.schedules.deactivate_schedule(schedule_id, db=db)


@router.delete("/{schedule_id}")
async def delete_schedule(
    schedule_id: int,
    db: Session = Depends(get_db),
    services: ServiceContainer = Depends(get_services)
):
    """
    Delete a slot; its pending reminders are cancelled first
    """
    return await services.schedules.delete_schedule(schedule_id, db=db)


@router.get("/{schedule_id}/status", response_model=DoseStatusResponse)
async def get_dose_status(
    schedule_id: int,
    day: Optional[date] = Query(None, description="Defaults to today"),
    db: Session = Depends(get_db),
    services: ServiceContainer = Depends(get_services)
):
    """
    Resolve a slot's dose on a day: confirmed, pending, missed, or null
    when the slot has no dose that day
    """
    target = day or services.adherence.clock().date()
    dose_status = await services.adherence.resolve_dose_status(schedule_id, target, db=db)
    return DoseStatusResponse(
        schedule_id=schedule_id,
        day=target,
        status=dose_status.value if dose_status else None
    )


@router.get("/users/{user_id}/today", response_model=List[TodaysDose])
async def get_todays_doses(
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    services: ServiceContainer = Depends(get_services)
):
    """
    Get today's doses for a user with their status
    """
    return await services.adherence.get_todays_doses(user_id, db=db)
