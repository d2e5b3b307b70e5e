"""
API Module
FastAPI routers for the MedReminder application
"""

from api.reminders import router as reminders_router
from api.schedules import router as schedules_router
from api.notifications import router as notifications_router

from api.deps import (
    get_db,
    get_services,
    get_sender_job,
    get_current_user_id,
    pagination_params,
)


__all__ = [
    # Routers
    "reminders_router",
    "schedules_router",
    "notifications_router",
    # Dependencies
    "get_db",
    "get_services",
    "get_sender_job",
    "get_current_user_id",
    "pagination_params",
]


def include_routers(app, prefix: str = "/api/v1"):
    """
    Include all API routers in the FastAPI app

    Usage:
        from api import include_routers
        include_routers(app)
    """
    app.include_router(reminders_router, prefix=prefix)
    app.include_router(schedules_router, prefix=prefix)
    app.include_router(notifications_router, prefix=prefix)
