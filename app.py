"""
MedReminder Backend
FastAPI application hosting the medication reminder scheduling engine
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

# Configuration and database
from config import settings
from database import init_db, is_connected

from api import include_routers
from errors import InvalidTransition, NotFound, ValidationFailure
from jobs import JobScheduler, NotificationSenderJob
from services import build_services
from tools.push_transport import ExpoPushTransport

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL),
    format=settings.LOG_FORMAT
)
logger = logging.getLogger(__name__)


# ==================== LIFESPAN ====================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup and shutdown"""
    # Startup
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
    logger.info(f"Environment: {settings.ENV}, timezone: {settings.TIMEZONE}")

    # Initialize database
    try:
        init_db()
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error(f"Database initialization failed: {e}")
        raise

    services = build_services()
    transport = ExpoPushTransport()
    sender_job = NotificationSenderJob(services.notifications, transport)

    app.state.services = services
    app.state.sender_job = sender_job

    scheduler = None
    if settings.SCHEDULER_ENABLED:
        scheduler = JobScheduler(sender_job)
        scheduler.start()
    else:
        logger.info("Job scheduler disabled (SCHEDULER_ENABLED=false)")

    yield

    # Shutdown
    if scheduler:
        scheduler.stop()
    await transport.close()
    logger.info(f"Shutting down {settings.APP_NAME}")


# ==================== APP INITIALIZATION ====================

app = FastAPI(
    title=settings.APP_NAME,
    description="""
    ## MedReminder API

    Medication reminder scheduling engine.

    ### Features
    - **Schedule derivation**: Turns a dosing frequency into recurring daily slots
    - **Reminder timing**: Applies lead time and quiet hours to every dose
    - **Delivery**: Periodic sweep sends due reminders as push notifications
    - **Dose status**: Reconciles today's doses against recorded history
    """,
    version=settings.APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Attach modular API routers
include_routers(app, prefix=settings.API_PREFIX)


# ==================== EXCEPTION HANDLERS ====================

def _error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": True,
            "message": message,
            "status_code": status_code,
            "timestamp": datetime.utcnow().isoformat()
        }
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return _error_response(exc.status_code, exc.detail)


@app.exception_handler(NotFound)
async def not_found_handler(request: Request, exc: NotFound):
    return _error_response(404, str(exc))


@app.exception_handler(InvalidTransition)
async def invalid_transition_handler(request: Request, exc: InvalidTransition):
    return _error_response(409, str(exc))


@app.exception_handler(ValidationFailure)
async def validation_failure_handler(request: Request, exc: ValidationFailure):
    return _error_response(400, str(exc))


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unexpected error: {exc}", exc_info=True)
    return _error_response(
        500,
        "An unexpected error occurred" if not settings.DEBUG else str(exc)
    )


# ==================== HEALTH ENDPOINTS ====================

@app.get("/", tags=["Health"])
async def root():
    """Root endpoint - basic health check"""
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "healthy",
        "timestamp": datetime.utcnow().isoformat()
    }


@app.get("/health", tags=["Health"])
async def health_check(request: Request):
    """Detailed health check endpoint"""
    db_connected = is_connected()
    sender_job = getattr(request.app.state, "sender_job", None)

    return {
        "status": "healthy" if db_connected else "degraded",
        "timestamp": datetime.utcnow().isoformat(),
        "checks": {
            "database": {
                "status": "up" if db_connected else "down",
                "type": "sqlite" if "sqlite" in settings.DATABASE_URL else "postgresql"
            },
            "scheduler": {
                "enabled": settings.SCHEDULER_ENABLED,
                "interval_seconds": settings.SWEEP_INTERVAL_SECONDS,
                "sweep_running": bool(sender_job and sender_job.is_running)
            }
        },
        "config": {
            "timezone": settings.TIMEZONE,
            "horizon_days": settings.SCHEDULE_HORIZON_DAYS,
            "batch_size": settings.SWEEP_BATCH_SIZE
        },
        "version": settings.APP_VERSION,
        "environment": settings.ENV
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower()
    )
