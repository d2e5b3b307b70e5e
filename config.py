"""
Configuration management for MedReminder
"""

from typing import Optional
from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Application
    APP_NAME: str = "MedReminder"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ENV: str = "development"

    # API
    API_PREFIX: str = "/api/v1"
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # Database
    DATABASE_URL: str = "sqlite:///./med_reminder.db"
    DATABASE_ECHO: bool = False

    # Local wall clock used for dose instants
    TIMEZONE: str = "UTC"

    # Background delivery sweep
    SCHEDULER_ENABLED: bool = True
    SWEEP_INTERVAL_SECONDS: int = 60
    SWEEP_BATCH_SIZE: int = 100

    # Materialization window
    SCHEDULE_HORIZON_DAYS: int = 7
    MAX_NOTIFICATIONS_PER_SLOT: int = 10

    # Push delivery (Expo)
    EXPO_PUSH_URL: str = "https://exp.host/--/api/v2/push/send"
    EXPO_ACCESS_TOKEN: Optional[str] = None
    PUSH_MAX_BATCH_SIZE: int = 100
    PUSH_TIMEOUT_SECONDS: float = 30.0

    # CORS
    CORS_ORIGINS: list[str] = ["http://localhost:3000", "http://localhost:8081"]

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


class SchedulingConfig:
    """Domain constants for schedule derivation and reminders"""

    DEFAULT_START_TIME: str = "08:00"

    # Default spacing between doses, keyed by frequency tag
    DEFAULT_INTERVAL_HOURS: dict[str, int] = {
        "TWICE_A_DAY": 12,
        "THREE_TIMES_A_DAY": 8,
        "FOUR_TIMES_A_DAY": 6,
    }

    ALL_DAYS: list[str] = [
        "MONDAY", "TUESDAY", "WEDNESDAY", "THURSDAY", "FRIDAY", "SATURDAY", "SUNDAY"
    ]
    ALTERNATE_DAYS: list[str] = ["MONDAY", "WEDNESDAY", "FRIDAY", "SUNDAY"]
    # WEEKLY and MONTHLY take no day parameter and always land on Monday
    WEEKLY_DAYS: list[str] = ["MONDAY"]

    # Reminder settings applied when a user has none stored
    DEFAULT_ENABLE_PUSH: bool = True
    DEFAULT_ENABLE_EMAIL: bool = False
    DEFAULT_REMINDER_BEFORE: int = 15


# Database table names
class TableNames:
    USERS = "users"
    DEVICE_TOKENS = "device_tokens"
    MEDICATIONS = "medications"
    MEDICATION_SCHEDULES = "medication_schedules"
    SCHEDULED_NOTIFICATIONS = "scheduled_notifications"
    REMINDER_SETTINGS = "reminder_settings"
    MEDICATION_HISTORY = "medication_history"


settings = get_settings()
scheduling_config = SchedulingConfig()
