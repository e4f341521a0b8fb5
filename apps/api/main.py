"""
FastAPI application entry point.

Sets up the coaching API: program timelines, schedules, session logging,
progress read models, the notification inbox and the cron trigger for the
daily adherence batch.
"""
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from routers import assignments, coaching, cron, notifications, progress, schedule
from core.config import settings
from core.database import check_db_connection
from core.exceptions import APIException
from core.logging import setup_logging
import logging
import time

import redis

# Setup logging first
setup_logging()
logger = logging.getLogger(__name__)


def _filter_sensitive_data(event):
    """Filter sensitive data before sending to Sentry."""
    # The cron secret travels in the Authorization header
    if "request" in event and "headers" in event["request"]:
        headers = event["request"]["headers"]
        if isinstance(headers, dict):
            headers.pop("authorization", None)
            headers.pop("cookie", None)
    return event


# Initialize Sentry for error tracking (production)
if settings.SENTRY_DSN:
    import sentry_sdk
    from sentry_sdk.integrations.fastapi import FastApiIntegration
    from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration
    from sentry_sdk.integrations.celery import CeleryIntegration

    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        environment=settings.ENVIRONMENT,
        traces_sample_rate=settings.SENTRY_TRACES_SAMPLE_RATE,
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            SqlalchemyIntegration(),
            CeleryIntegration(),
        ],
        # Don't send PII
        send_default_pii=False,
        before_send=lambda event, hint: _filter_sensitive_data(event),
    )
    logger.info(f"Sentry initialized for environment: {settings.ENVIRONMENT}")

# Create FastAPI app
app = FastAPI(
    title="Coaching Platform API",
    description="Program timelines, schedules and adherence analytics for coached clients",
    version="1.0.0",
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
)

# CORS middleware
# Production: set CORS_ORIGINS env var (comma-separated)
# Development: DEBUG=True allows all origins
if settings.DEBUG:
    allowed_origins = ["*"]
elif settings.CORS_ORIGINS:
    allowed_origins = [origin.strip() for origin in settings.CORS_ORIGINS.split(",")]
else:
    allowed_origins = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]
app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Request logging middleware
@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all requests with timing information."""
    start_time = time.time()

    try:
        response = await call_next(request)
    except Exception as e:
        logger.error(
            f"Request failed: {request.method} {request.url.path}",
            exc_info=True,
            extra={
                "extra_fields": {
                    "method": request.method,
                    "path": request.url.path,
                    "error": str(e),
                }
            }
        )
        raise

    process_time = time.time() - start_time
    logger.info(
        f"Response: {request.method} {request.url.path} - {response.status_code}",
        extra={
            "extra_fields": {
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "process_time_ms": round(process_time * 1000, 2),
            }
        }
    )
    response.headers["X-Process-Time"] = str(process_time)
    return response


@app.exception_handler(APIException)
async def api_exception_handler(request: Request, exc: APIException):
    """Domain-level HTTP errors keep their machine-readable error_code."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "error_code": exc.error_code},
        headers=exc.headers,
    )


# Error handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler for unhandled errors."""
    logger.error(
        f"Unhandled exception: {exc}",
        exc_info=True,
        extra={
            "extra_fields": {
                "method": request.method,
                "path": request.url.path,
            }
        }
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


@app.get("/health")
def health():
    """
    Simple health check for load balancers and uptime monitors.

    Returns:
        - 200: Database reachable
        - 503: Database unavailable
    """
    if not check_db_connection():
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "unhealthy",
                "database": "unavailable",
            }
        )

    return {
        "status": "healthy",
        "timestamp": time.time(),
    }


def _ping_broker() -> bool:
    client = redis.Redis.from_url(settings.CELERY_BROKER_URL, socket_connect_timeout=2)
    return bool(client.ping())


def _timed_check(name: str, probe) -> dict:
    start = time.perf_counter()
    try:
        healthy = probe()
        result = {"status": "healthy" if healthy else "unhealthy"}
    except Exception as e:
        logger.warning(f"Health probe {name} failed: {e}")
        result = {"status": "error", "error": str(e)}
    result["latency_ms"] = round((time.perf_counter() - start) * 1000, 2)
    return result


@app.get("/health/detailed")
def health_detailed():
    """
    Dependency status for monitoring dashboards. Always 200.

    The broker matters because the daily adherence batch is dispatched
    through Celery; the cron section shows whether the HTTP trigger can
    be called at all.
    """
    checks = {
        "database": _timed_check("database", check_db_connection),
        "broker": _timed_check("broker", _ping_broker),
    }

    if all(c["status"] == "healthy" for c in checks.values()):
        overall = "healthy"
    elif any(c["status"] == "error" for c in checks.values()):
        overall = "unhealthy"
    else:
        overall = "degraded"

    return {
        "status": overall,
        "version": app.version,
        "environment": settings.ENVIRONMENT,
        "timestamp": time.time(),
        "checks": checks,
        "adherence": {
            "cron_configured": bool(settings.CRON_SECRET),
            "run_hour_utc": settings.ADHERENCE_RUN_HOUR_UTC,
            "missed_after_days": settings.ADHERENCE_MISSED_AFTER_DAYS,
        },
    }


@app.get("/ping")
async def ping():
    """No dependencies checked, just confirms the API is responding."""
    return {"pong": True}


# Include routers
app.include_router(assignments.router)
app.include_router(schedule.router)
app.include_router(coaching.router)
app.include_router(progress.router)
app.include_router(notifications.router)
app.include_router(cron.router)
