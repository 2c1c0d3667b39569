"""
MedMinder Backend
Main FastAPI application: dose tracking API plus the background reminder ticker
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, Dict

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# Configuration and database
from config import settings
from database import is_connected
from exceptions import DoseValidationError, MedicationNotFoundError, PRNLimitError
from services.llm_service import llm_service

from api import include_routers, services
from actions.ticker import ReminderTicker

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
    logger.info(f"Environment: {settings.ENV}")

    service = services.get_medication_service()
    service.load()

    ticker_task = None
    if settings.TICKER_ENABLED:
        ticker = ReminderTicker(service)
        ticker_task = asyncio.create_task(ticker.run())

    yield

    # Shutdown
    if ticker_task is not None:
        ticker_task.cancel()
        try:
            await ticker_task
        except asyncio.CancelledError:
            pass
    service.persist()
    logger.info(f"Shutting down {settings.APP_NAME}")


# ==================== APP INITIALIZATION ====================

app = FastAPI(
    title=settings.APP_NAME,
    description="""
    ## MedMinder API

    Medication dose tracking with safety checks and escalating reminders.

    ### Features
    - **Dose Ledger**: Taken / Skipped / Missing status per scheduled dose, with stock tracking
    - **Safety Gate**: Duplicate, daily-maximum, spacing and food-timing checks
    - **As-needed Dosing**: Daily caps and minimum intervals
    - **Reminders**: Three-stage escalation, snoozing and adaptive timing
    - **Adherence**: Streaks, milestones, badges, missed-dose guidance and behavior patterns
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

def error_body(status_code: int, message: str, **extra: Any) -> Dict[str, Any]:
    return {
        "error": True,
        "message": message,
        "status_code": status_code,
        "timestamp": datetime.utcnow().isoformat(),
        **extra
    }


@app.exception_handler(HTTPException)
async def http_exception_handler(request, exc: HTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.status_code, exc.detail)
    )


@app.exception_handler(DoseValidationError)
async def dose_validation_exception_handler(request, exc: DoseValidationError):
    extra: Dict[str, Any] = {"errors": exc.errors}
    if isinstance(exc, PRNLimitError) and exc.next_available_time is not None:
        extra["next_available_time"] = exc.next_available_time.isoformat()
    return JSONResponse(status_code=409, content=error_body(409, str(exc), **extra))


@app.exception_handler(MedicationNotFoundError)
async def not_found_exception_handler(request, exc: MedicationNotFoundError):
    return JSONResponse(status_code=404, content=error_body(404, str(exc)))


@app.exception_handler(ValueError)
async def value_error_handler(request, exc: ValueError):
    return JSONResponse(status_code=422, content=error_body(422, str(exc)))


@app.exception_handler(Exception)
async def general_exception_handler(request, exc: Exception):
    logger.error(f"Unexpected error: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content=error_body(500, "An unexpected error occurred" if not settings.DEBUG else str(exc))
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
async def health_check():
    """Detailed health check endpoint"""
    uses_sql = settings.STORE_BACKEND == "sql"
    db_connected = is_connected() if uses_sql else True

    return {
        "status": "healthy" if db_connected else "degraded",
        "timestamp": datetime.utcnow().isoformat(),
        "checks": {
            "store": {
                "backend": settings.STORE_BACKEND,
                "status": "up" if db_connected else "down",
            },
            "llm": {
                "provider": "cerebras",
                "configured": llm_service.is_configured,
                **llm_service.get_usage_stats()
            },
            "ticker": {
                "enabled": settings.TICKER_ENABLED,
                "interval_seconds": settings.TICK_INTERVAL_SECONDS
            }
        },
        "version": settings.APP_VERSION,
        "environment": settings.ENV
    }


# ==================== MAIN ====================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower()
    )
