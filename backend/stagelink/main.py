# backend/stagelink/main.py

import asyncio
import logging
import os

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from sqlalchemy.exc import TimeoutError as SA_TimeoutError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .api import (
    api_booking_request,
    api_calendar,
    api_contract,
    api_notification,
    api_profile,
    api_ws,
    auth,
)
from .core.config import settings
from .core.observability import setup_logging, setup_tracer
from .database import SessionLocal, create_tables
from .services.maintenance import run_maintenance
from .utils.errors import DomainError
from .utils.notifications import alert_scheduler_failure
from .utils.redis_cache import close_redis_client

setup_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title="StageLink Booking API", default_response_class=ORJSONResponse)
setup_tracer(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials="*" not in settings.CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)
logger.info("CORS origins set to: %s", settings.CORS_ORIGINS)


@app.middleware("http")
async def catch_exceptions(request: Request, call_next):
    """Return JSON responses for errors that escape the routers and log them."""
    try:
        response = await call_next(request)
    except StarletteHTTPException as exc:
        logger.error(
            "HTTP error %s at %s: %s", exc.status_code, request.url.path, exc.detail
        )
        response = ORJSONResponse(
            status_code=exc.status_code, content={"detail": exc.detail}
        )
    except SA_TimeoutError as exc:  # DB pool timeout -> 503 to reduce retry storms
        logger.error("DB timeout at %s: %s", request.url.path, str(exc))
        response = ORJSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"detail": "Database busy, please retry"},
        )
    except Exception as exc:  # pragma: no cover - generic handler
        logger.exception("Unhandled error: %s", exc)
        response = ORJSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal Server Error"},
        )
    return response


@app.exception_handler(DomainError)
async def domain_exception_handler(request: Request, exc: DomainError):
    """Render service-layer failures with the shared error body."""
    if exc.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error("Domain error at %s: %s", request.url.path, exc.message)
    else:
        logger.info(
            "%s at %s: %s %s",
            type(exc).__name__,
            request.url.path,
            exc.message,
            exc.field_errors,
        )
    return ORJSONResponse(
        status_code=exc.status_code,
        content={"detail": {"message": exc.message, "field_errors": exc.field_errors}},
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Return validation errors with details and log them for debugging."""
    errors = exc.errors()
    logger.warning("Validation error at %s: %s", request.url.path, errors)
    return ORJSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": errors},
    )


@app.get("/healthz", tags=["health"])
async def healthz():
    """Liveness plus a cheap database ping."""
    def _ping() -> None:
        with SessionLocal() as db:
            db.execute(text("SELECT 1"))

    try:
        await asyncio.to_thread(_ping)
    except OperationalError as exc:
        logger.warning("Health check DB ping failed: %s", exc)
        return ORJSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "error", "db": "unreachable"},
        )
    return {"status": "ok"}


@app.get("/")
async def root():
    return {"message": "Welcome to StageLink Booking API"}


api_prefix = settings.API_V1_STR  # usually "/api/v1"

# Clients POST to /auth/register and /auth/login
app.include_router(auth.router, prefix="/auth", tags=["auth"])
app.include_router(api_profile.router, prefix=f"{api_prefix}", tags=["profiles"])
app.include_router(api_calendar.router, prefix=f"{api_prefix}", tags=["calendar"])
app.include_router(
    api_booking_request.router, prefix=f"{api_prefix}", tags=["booking-requests"]
)
app.include_router(api_contract.router, prefix=f"{api_prefix}", tags=["contract-proposals"])
app.include_router(api_notification.router, prefix=f"{api_prefix}", tags=["notifications"])
# WebSocket routes are mounted without the version prefix
app.include_router(api_ws.router)


async def maintenance_loop(interval: int) -> None:
    """Expire overdue contract proposals and purge old deleted profiles."""
    while True:
        await asyncio.sleep(interval)
        # Retry with backoff on transient DB failures
        delay = 5
        max_retries = 5
        for attempt in range(max_retries):
            try:
                summary = await asyncio.to_thread(run_maintenance)
                logger.info("Maintenance summary: %s", summary)
                break
            except OperationalError as exc:  # pragma: no cover - transient DB outage
                alert_scheduler_failure(exc)
                if attempt < max_retries - 1:
                    await asyncio.sleep(delay)
                    delay = min(delay * 2, 60)
                    continue
                break
            except Exception as exc:  # pragma: no cover - continue running
                alert_scheduler_failure(exc)
                break


@app.on_event("startup")
async def start_background_tasks() -> None:
    """Create tables and launch the maintenance loop outside of tests."""
    if os.getenv("PYTEST_RUN") == "1":
        return
    create_tables()
    interval = settings.CONTRACT_EXPIRY_SWEEP_SECONDS
    if interval > 0:
        asyncio.create_task(maintenance_loop(interval))
    else:
        logger.info("Maintenance loop disabled; contract expiry stays lazy")


@app.on_event("shutdown")
def shutdown_redis_client() -> None:
    """Close Redis connections when the application shuts down."""
    logger.info("Closing Redis client")
    close_redis_client()
