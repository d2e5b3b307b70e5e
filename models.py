"""
Database Models
SQLAlchemy ORM models for MedReminder
"""

from sqlalchemy import Column, Integer, String, Boolean, Float, DateTime, ForeignKey, Text, Date, Enum, Index, JSON
from sqlalchemy.orm import relationship
from datetime import datetime
from enum import Enum as PyEnum

from config import TableNames
from database import Base


# ==================== ENUMS ====================

class Frequency(str, PyEnum):
    """Dosing cadence of a medication"""
    ONE_TIME = "ONE_TIME"
    DAILY = "DAILY"
    TWICE_A_DAY = "TWICE_A_DAY"
    THREE_TIMES_A_DAY = "THREE_TIMES_A_DAY"
    FOUR_TIMES_A_DAY = "FOUR_TIMES_A_DAY"
    EVERY_OTHER_DAY = "EVERY_OTHER_DAY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"
    AS_NEEDED = "AS_NEEDED"
    CUSTOM = "CUSTOM"


class Weekday(str, PyEnum):
    """Weekday tags stored on recurring slots"""
    SUNDAY = "SUNDAY"
    MONDAY = "MONDAY"
    TUESDAY = "TUESDAY"
    WEDNESDAY = "WEDNESDAY"
    THURSDAY = "THURSDAY"
    FRIDAY = "FRIDAY"
    SATURDAY = "SATURDAY"


class NotificationStatus(str, PyEnum):
    """Lifecycle status of a materialized notification"""
    SCHEDULED = "scheduled"
    SENT = "sent"
    FAILED = "failed"
    CANCELLED = "cancelled"


class HistoryAction(str, PyEnum):
    """Actions recorded against a medication"""
    TAKEN = "TAKEN"
    SKIPPED = "SKIPPED"
    MISSED = "MISSED"
    POSTPONED = "POSTPONED"
    EXPIRED = "EXPIRED"
    RESTOCKED = "RESTOCKED"
    DISCARDED = "DISCARDED"


# ==================== MODELS ====================

class User(Base):
    """Owner of medications, devices and reminder settings"""
    __tablename__ = TableNames.USERS

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    medications = relationship("Medication", back_populates="user", cascade="all, delete-orphan")
    device_tokens = relationship("DeviceToken", back_populates="user", cascade="all, delete-orphan")
    reminder_settings = relationship("ReminderSettings", back_populates="user", uselist=False, cascade="all, delete-orphan")


class DeviceToken(Base):
    """Push destination registered by a user's device"""
    __tablename__ = TableNames.DEVICE_TOKENS

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    token = Column(String(255), nullable=False)
    platform = Column(String(20), nullable=False)  # "ios", "android", "web"

    created_at = Column(DateTime, default=datetime.utcnow)

    user = relationship("User", back_populates="device_tokens")

    __table_args__ = (
        Index("ix_device_tokens_user_platform", "user_id", "platform"),
    )


class Medication(Base):
    """Medication with the inputs used to derive its schedule"""
    __tablename__ = TableNames.MEDICATIONS

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)

    name = Column(String(255), nullable=False)
    dosage = Column(String(100), nullable=False)  # e.g., "500mg"

    # Schedule derivation inputs
    frequency = Column(Enum(Frequency), nullable=False)
    start_time = Column(String(5))  # "HH:MM"
    interval_hours = Column(Float)

    notes = Column(Text)
    active = Column(Boolean, default=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    user = relationship("User", back_populates="medications")
    schedules = relationship("MedicationSchedule", back_populates="medication", cascade="all, delete-orphan")

    __table_args__ = (
        Index("ix_medications_user_active", "user_id", "active"),
    )


class MedicationSchedule(Base):
    """Recurring time-of-day slot bound to a set of weekdays"""
    __tablename__ = TableNames.MEDICATION_SCHEDULES

    id = Column(Integer, primary_key=True, index=True)
    medication_id = Column(Integer, ForeignKey("medications.id"), nullable=False)

    time = Column(String(5), nullable=False)  # "HH:MM"
    days_of_week = Column(JSON, nullable=False)  # ["MONDAY", ...]
    # Whole days the slot time wrapped past midnight when it was derived
    day_offset = Column(Integer, default=0, nullable=False)

    is_active = Column(Boolean, default=True)
    is_custom = Column(Boolean, default=False)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    medication = relationship("Medication", back_populates="schedules")
    notifications = relationship("ScheduledNotification", back_populates="schedule")

    __table_args__ = (
        Index("ix_schedules_medication_active", "medication_id", "is_active"),
    )


class ScheduledNotification(Base):
    """Concrete reminder instance materialized from a slot"""
    __tablename__ = TableNames.SCHEDULED_NOTIFICATIONS

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    medication_id = Column(Integer, ForeignKey("medications.id"), nullable=False)
    schedule_id = Column(Integer, ForeignKey("medication_schedules.id"))

    # Denormalized for the push payload
    medication_name = Column(String(255), nullable=False)
    dosage = Column(String(100), nullable=False)

    # When the dose is due (never shifted) and when the reminder goes out
    dose_time = Column(DateTime, nullable=False)
    dose_date = Column(Date, nullable=False)
    notification_time = Column(DateTime, nullable=False)

    status = Column(Enum(NotificationStatus), default=NotificationStatus.SCHEDULED, nullable=False)
    ticket_id = Column(String(255))  # Transport delivery ticket
    failure_reason = Column(Text)
    sent_at = Column(DateTime)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    schedule = relationship("MedicationSchedule", back_populates="notifications")
    medication = relationship("Medication")

    __table_args__ = (
        Index("ix_notifications_status_time", "status", "notification_time"),
        Index("ix_notifications_schedule_date", "schedule_id", "dose_date"),
        Index("ix_notifications_medication_status", "medication_id", "status"),
    )


class ReminderSettings(Base):
    """Per-user reminder preferences"""
    __tablename__ = TableNames.REMINDER_SETTINGS

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)

    enable_push = Column(Boolean, default=True)
    enable_email = Column(Boolean, default=False)
    reminder_before = Column(Integer, default=15)  # minutes before the dose

    # Both set or both empty
    quiet_hours_start = Column(String(5))
    quiet_hours_end = Column(String(5))

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = relationship("User", back_populates="reminder_settings")


class MedicationHistory(Base):
    """Recorded action against a medication dose"""
    __tablename__ = TableNames.MEDICATION_HISTORY

    id = Column(Integer, primary_key=True, index=True)
    medication_id = Column(Integer, ForeignKey("medications.id"), nullable=False)
    schedule_id = Column(Integer, ForeignKey("medication_schedules.id"))

    scheduled_for = Column(DateTime)
    action = Column(Enum(HistoryAction), nullable=False)
    quantity = Column(Integer)
    notes = Column(Text)

    created_at = Column(DateTime, default=datetime.utcnow)

    medication = relationship("Medication")

    __table_args__ = (
        Index("ix_history_schedule_scheduled", "schedule_id", "scheduled_for"),
        Index("ix_history_medication_created", "medication_id", "created_at"),
    )
