"""
Reminders API Router
Endpoints for reminder settings and push device registration
"""

from typing import Optional
from datetime import datetime
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from pydantic import BaseModel, ConfigDict, Field

from api.deps import get_current_user_id, get_db, get_services
from services import ServiceContainer


router = APIRouter(prefix="/reminders", tags=["reminders"])


# ==================== REQUEST SCHEMAS ====================

class ReminderSettingsUpdate(BaseModel):
    """Schema for updating reminder settings"""
    enable_push: Optional[bool] = None
    enable_email: Optional[bool] = None
    reminder_before: Optional[int] = Field(None, ge=0, le=1440, description="Minutes before the dose")
    quiet_hours_start: Optional[str] = Field(None, description="Time in HH:MM format")
    quiet_hours_end: Optional[str] = Field(None, description="Time in HH:MM format")


class DeviceTokenCreate(BaseModel):
    """Schema for registering a device"""
    token: str = Field(..., min_length=1)
    platform: str = Field(..., description="ios, android or web")


# ==================== RESPONSE SCHEMAS ====================

class ReminderSettingsResponse(BaseModel):
    """Schema for reminder settings response"""
    user_id: int
    enable_push: bool
    enable_email: bool
    reminder_before: int
    quiet_hours_start: Optional[str]
    quiet_hours_end: Optional[str]

    model_config = ConfigDict(from_attributes=True)


class DeviceTokenResponse(BaseModel):
    """Schema for a registered device"""
    id: int
    user_id: int
    token: str
    platform: str
    created_at: Optional[datetime]

    model_config = ConfigDict(from_attributes=True)


# ==================== ENDPOINTS ====================

@router.get("/users/{user_id}/settings", response_model=ReminderSettingsResponse)
async def get_reminder_settings(
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    services: ServiceContainer = Depends(get_services)
):
    """
    Get a user's reminder settings, or the defaults when none are stored
    """
    preferences = await services.settings.get_preferences(user_id, db=db)
    return ReminderSettingsResponse.model_validate(preferences)


@router.put("/users/{user_id}/settings", response_model=ReminderSettingsResponse)
async def update_reminder_settings(
    user_id: int,
    settings_data: ReminderSettingsUpdate,
    db: Session = Depends(get_db),
    services: ServiceContainer = Depends(get_services)
):
    """
    Update a user's reminder settings

    Only the fields sent are changed. Quiet hours must be set or cleared
    together.
    """
    updates = settings_data.model_dump(exclude_unset=True)
    preferences = await services.settings.update_settings(user_id, updates, db=db)
    return ReminderSettingsResponse.model_validate(preferences)


@router.post(
    "/users/{user_id}/devices",
    response_model=DeviceTokenResponse,
    status_code=status.HTTP_201_CREATED
)
async def register_device(
    user_id: int,
    device_data: DeviceTokenCreate,
    db: Session = Depends(get_db),
    services: ServiceContainer = Depends(get_services)
):
    """
    Register a push device token, replacing the user's token for that platform
    """
    device = await services.settings.register_device_token(
        user_id,
        device_data.token,
        device_data.platform,
        db=db
    )
    return DeviceTokenResponse.model_validate(device)
