"""FastAPI application factory"""

import asyncio
import logging
import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

from onair import __version__
from onair.api.core.config import Settings, get_settings
from onair.api.core.database import get_database_manager, init_storage
from onair.api.core.dependencies import get_presence_service, reset_caches
from onair.api.core.logging import setup_logging
from onair.api.routers import (
    admin_router,
    comments_router,
    engagement_router,
    presence_router,
    reactions_router,
    song_requests_router,
)
from onair.shared.clock import utcnow
from onair.shared.errors import NotFound, StoreUnavailable, ValidationError

logger = logging.getLogger(__name__)

# Track server start time
_start_time: float = 0.0
_pool_heartbeat_task: asyncio.Task | None = None
_db_retry_task: asyncio.Task | None = None
_purge_task: asyncio.Task | None = None


async def _presence_purge_loop(settings: Settings) -> None:
    """Delete presence rows that stopped heartbeating long ago.

    Counting never depends on this; it only keeps the table small.
    """
    while True:
        await asyncio.sleep(settings.presence_purge_interval_seconds)
        try:
            service = get_presence_service(clock=utcnow)
            await service.purge_stale(settings.presence_purge_after_seconds)
        except asyncio.CancelledError:
            break
        except StoreUnavailable as e:
            logger.warning(f"Presence purge skipped: {e}")
        except Exception as e:
            logger.exception(f"Presence purge failed: {e}")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handle startup and shutdown"""
    global _start_time, _pool_heartbeat_task, _db_retry_task, _purge_task
    _start_time = time.time()

    settings = get_settings()

    # Startup
    logger.info("Starting OnAir API server")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"Frontend URL: {settings.frontend_url}")

    init_storage(settings)
    reset_caches()
    db_manager = get_database_manager()

    # Wait for the pool before accepting requests; if it is slow, serve
    # degraded reads and keep retrying in the background.
    if db_manager is not None:
        try:
            await asyncio.wait_for(db_manager.connect(), timeout=settings.startup_db_timeout_seconds)
            logger.info("Database connected")
        except TimeoutError:
            logger.warning("DB connection timed out during startup, retrying in background")
            _db_retry_task = asyncio.create_task(db_manager.reconnect())
        except Exception as e:
            logger.error(
                f"DB connection failed during startup: {type(e).__name__}: {e}, retrying in background"
            )
            _db_retry_task = asyncio.create_task(db_manager.reconnect())

        _pool_heartbeat_task = asyncio.create_task(db_manager.keep_alive())

    _purge_task = asyncio.create_task(_presence_purge_loop(settings))
    logger.info(
        f"Presence purge started (every {settings.presence_purge_interval_seconds}s, "
        f"idle > {settings.presence_purge_after_seconds}s)"
    )

    yield

    # Shutdown
    logger.info("Shutting down OnAir API server")
    tasks = [t for t in (_db_retry_task, _pool_heartbeat_task, _purge_task) if t is not None]
    for task in tasks:
        task.cancel()
    # Background work must stop before the pool closes underneath it
    await asyncio.gather(*tasks, return_exceptions=True)
    _db_retry_task = _pool_heartbeat_task = _purge_task = None
    if db_manager is not None:
        try:
            await db_manager.disconnect()
            logger.info("Database disconnected")
        except Exception as e:
            logger.exception(f"Error during shutdown: {e}")


def _register_exception_handlers(app: FastAPI, settings: Settings) -> None:
    """Map domain errors that escape a route to HTTP responses."""

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
        logger.info(f"Validation error on {request.url.path}: {exc}")
        return JSONResponse(status_code=400, content={"detail": "Invalid request data"})

    @app.exception_handler(NotFound)
    async def not_found_handler(request: Request, exc: NotFound) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": f"{exc.resource} not found"})

    @app.exception_handler(StoreUnavailable)
    async def store_unavailable_handler(request: Request, exc: StoreUnavailable) -> JSONResponse:
        logger.warning(f"Store unavailable on {request.method} {request.url.path}: {exc}")
        return JSONResponse(
            status_code=503,
            content={"detail": "Service temporarily unavailable"},
            headers={"Retry-After": str(settings.heartbeat_interval_seconds)},
        )


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    settings = get_settings()

    # Setup logging first
    setup_logging(settings)

    app = FastAPI(
        title="OnAir API",
        description="Live audience presence and engagement for the station's TV and radio pages",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
    )

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    _register_exception_handlers(app, settings)

    # Register routers
    app.include_router(presence_router.router)
    app.include_router(reactions_router.router)
    app.include_router(comments_router.router)
    app.include_router(song_requests_router.router)
    app.include_router(engagement_router.router)
    app.include_router(admin_router.router)

    # Root endpoint
    @app.get("/")
    async def root():
        """Root endpoint - minimal service info"""
        return {"service": "onair-api", "status": "running"}

    # Liveness probe: always 200, no external dependency
    @app.get("/health")
    async def health():
        """Liveness check (no DB dependency)"""
        return {
            "status": "healthy",
            "uptime_seconds": int(time.time() - _start_time),
        }

    # Detailed status endpoint (includes DB health)
    @app.get("/status")
    async def status():
        """Readiness / status endpoint, includes actual DB health check"""
        db_manager = get_database_manager()
        db_ok = db_manager is not None and await db_manager.check_health()
        return {
            "service": "onair-api",
            "version": __version__,
            "uptime_seconds": int(time.time() - _start_time),
            "storage_backend": settings.storage_backend,
            "db_connected": db_ok,
            "environment": settings.environment,
        }

    # Ping endpoint
    @app.api_route("/ping", methods=["GET", "HEAD"], response_class=PlainTextResponse)
    async def ping():
        """Ping endpoint"""
        return "pong"

    logger.info("FastAPI application configured")

    return app
