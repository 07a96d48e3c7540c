"""FastAPI server for the officehub notification core"""

from __future__ import annotations

import sqlite3
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from officehub.api.middleware.rate_limit import RateLimitMiddleware
from officehub.api.middleware.request_metrics import RequestMetricsMiddleware
from officehub.api.middleware.response_cache import ResponseCache, ResponseCacheMiddleware
from officehub.api.middleware.user_auth import optional_user_id
from officehub.api.routes.health import router as health_router
from officehub.api.routes.monitoring import router as monitoring_router
from officehub.api.routes.notifications import PREFERENCES_PATH
from officehub.api.routes.notifications import router as notifications_router
from officehub.config import (
    APP_VERSION,
    CACHE_DEFAULT_TTL_SECONDS,
    CACHE_SWEEP_INTERVAL_SECONDS,
    CORS_ORIGINS,
    DIGEST_ENABLED,
    RATE_LIMIT_CLEANUP_INTERVAL_SECONDS,
    RATE_LIMIT_RPH,
    RATE_LIMIT_RPM,
)
from officehub.infrastructure.database import Database
from officehub.infrastructure.rate_limiter import RateLimitTracker
from officehub.infrastructure.scheduling import AsyncioScheduler
from officehub.notifications.assignments import AssignmentNotifier
from officehub.notifications.digest import DigestService
from officehub.notifications.queue import EmailQueue
from officehub.notifications.scheduler import DigestScheduler
from officehub.notifications.transport import MailTransport, SMTPTransport
from officehub.observability.logging import get_logger
from officehub.observability.metrics import MetricsCollector
from officehub.observability.telemetry import counter
from officehub.storage.repository import DigestStore, SQLiteDigestStore

# Load environment variables from .env file
load_dotenv()

logger = get_logger(__name__)


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """
    Validation error handler that does not leak validation internals.

    Side Effects:
        - Logs detailed validation errors for debugging
        - Increments validation error counter for monitoring
    """
    logger.warning("Validation error on %s: %s", request.url.path, exc.errors())
    counter("api.validation_errors")

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "detail": "Invalid request format. Please check your request and try again.",
            "error_count": len(exc.errors()),
            # Only expose field names, not validation logic
            "invalid_fields": [str(err["loc"][-1]) for err in exc.errors()],
        },
    )


def _init_database(db: Database) -> None:
    """Create and check the schema (idempotent - safe to run on every startup)."""
    try:
        logger.info("Initializing database schema...")
        db.initialize()
        db.validate_schema()
        logger.info("Database initialization complete")
    except sqlite3.OperationalError as e:
        logger.critical("Database schema error: %s", e)
        logger.critical("Database may be corrupted or locked by another process")
        raise RuntimeError(f"Database initialization failed: {e}") from e
    except ValueError as e:
        logger.critical("Database schema invalid: %s", e)
        raise RuntimeError(f"Database initialization failed: {e}") from e


def create_app(
    *,
    db: Database | None = None,
    store: DigestStore | None = None,
    transport: MailTransport | None = None,
    scheduler: AsyncioScheduler | None = None,
    schedule_digest: bool = DIGEST_ENABLED,
    identify: Callable[[Request], Awaitable[str | None]] = optional_user_id,
    requests_per_minute: int = RATE_LIMIT_RPM,
    requests_per_hour: int = RATE_LIMIT_RPH,
) -> FastAPI:
    """
    Build the API with its in-memory services.

    Queue, cache and rate trackers live on ``app.state``; background timers
    run on ``scheduler`` and stop when the app shuts down.  Without a
    ``store`` the app opens the SQLite database at ``db`` (default path when
    omitted).
    """
    if store is None:
        db = db or Database()
        store = SQLiteDigestStore(db)
    transport = transport or SMTPTransport()
    scheduler = scheduler or AsyncioScheduler()

    email_queue = EmailQueue(transport, scheduler)
    digest_service = DigestService(store, email_queue)
    assignment_notifier = AssignmentNotifier(store, email_queue)
    metrics = MetricsCollector()
    response_cache = ResponseCache()
    minute_tracker = RateLimitTracker(window_seconds=60, max_requests=requests_per_minute)
    hour_tracker = RateLimitTracker(window_seconds=3600, max_requests=requests_per_hour)

    async def sweep_response_cache() -> None:
        response_cache.cleanup()

    async def sweep_rate_limits() -> None:
        dropped = minute_tracker.cleanup() + hour_tracker.cleanup()
        if dropped:
            logger.debug("Rate limit sweep dropped %d idle clients", dropped)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if db is not None:
            _init_database(db)

        scheduler.call_every(CACHE_SWEEP_INTERVAL_SECONDS, sweep_response_cache)
        scheduler.call_every(RATE_LIMIT_CLEANUP_INTERVAL_SECONDS, sweep_rate_limits)

        if not schedule_digest:
            logger.info("Daily digest disabled (DIGEST_ENABLED=false)")
        elif await transport.verify():
            DigestScheduler(digest_service, scheduler).schedule()
        else:
            logger.warning("Email transport not ready; daily digest not scheduled")

        try:
            yield
        finally:
            await scheduler.shutdown()
            if db is not None:
                db.close()
            logger.info("officehub API stopped")

    app = FastAPI(title="officehub API", version=APP_VERSION, lifespan=lifespan)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore[arg-type]

    app.state.db = db
    app.state.store = store
    app.state.transport = transport
    app.state.scheduler = scheduler
    app.state.email_queue = email_queue
    app.state.digest_service = digest_service
    app.state.assignment_notifier = assignment_notifier
    app.state.metrics = metrics
    app.state.response_cache = response_cache
    app.state.rate_limit_trackers = (minute_tracker, hour_tracker)

    # Last added runs first: CORS -> request metrics -> rate limit -> response cache -> routes
    app.add_middleware(
        ResponseCacheMiddleware,
        cache=response_cache,
        cached_paths={PREFERENCES_PATH: CACHE_DEFAULT_TTL_SECONDS},
        identify=identify,
    )
    app.add_middleware(
        RateLimitMiddleware,
        minute_tracker=minute_tracker,
        hour_tracker=hour_tracker,
    )
    app.add_middleware(RequestMetricsMiddleware, collector=metrics)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Request-ID"],
    )

    app.include_router(health_router)
    app.include_router(monitoring_router)
    app.include_router(notifications_router)

    return app


app = create_app()


def main() -> None:
    """Console entry point: serve the API with uvicorn."""
    import uvicorn

    from officehub.config import API_HOST, API_PORT, LOG_LEVEL

    uvicorn.run("officehub.api.app:app", host=API_HOST, port=API_PORT, log_level=LOG_LEVEL.lower())
