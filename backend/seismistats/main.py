"""FastAPI application factory."""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Annotated, AsyncGenerator
import time

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from seismistats.config import settings
from seismistats.core.backfill import get_backfill_coordinator
from seismistats.core.database.session import engine, get_db
from seismistats.core.database.migration_check import require_migrations
from seismistats.core.logging import setup_logging, get_logger, LoggingMiddleware
from seismistats.core.shutdown import get_shutdown_coordinator
from seismistats.core.upstream.client import UpstreamClient
from seismistats.api.v1.router import api_router


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifecycle management."""

    # === STARTUP ===
    setup_logging(
        log_level=settings.log_level,
        log_format=settings.log_format,
        is_development=settings.is_development,
        logs_dir=settings.logs_dir,
        log_to_file=settings.log_to_file,
        log_file_max_bytes=settings.log_file_max_bytes,
        log_file_backup_count=settings.log_file_backup_count,
    )

    logger = get_logger(__name__)
    logger.info("application_starting", app_name=settings.app_name, environment=settings.app_env)

    try:
        await require_migrations(
            engine, fail_on_outdated=settings.require_migrations_on_startup
        )
    except RuntimeError as e:
        logger.error("migration_check_failed", error=str(e))
        raise

    # 1. Shutdown coordinator
    shutdown_coordinator = get_shutdown_coordinator()
    shutdown_coordinator.setup_signal_handlers()

    # 2. Shared upstream client
    upstream = UpstreamClient(
        settings.usgs_base_url,
        timeout=settings.usgs_request_timeout_seconds,
    )
    backfill = get_backfill_coordinator()

    async def stop_backfill() -> None:
        if backfill.is_running():
            logger.info("shutdown_stopping_backfill")
            await shutdown_coordinator.shutdown_with_timeout(backfill.stop())

    shutdown_coordinator.register_callback(stop_backfill)
    shutdown_coordinator.register_callback(upstream.close)

    app.state.upstream = upstream
    app.state.shutdown_coordinator = shutdown_coordinator
    app.state._start_time = time.time()

    logger.info(
        "application_started_successfully",
        app_name=settings.app_name,
        usgs_base_url=settings.usgs_base_url,
        admin_mode=settings.admin_mode,
    )

    yield

    # === SHUTDOWN ===
    shutdown_start = time.time()
    logger.info("application_shutting_down", app_name=settings.app_name)

    # Stops a running backfill and closes the upstream client
    await shutdown_coordinator.run_callbacks()

    await engine.dispose()

    logger.info(
        "application_shutdown_complete",
        app_name=settings.app_name,
        shutdown_duration_seconds=time.time() - shutdown_start,
    )


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""
    app = FastAPI(
        title=settings.app_name,
        version="0.1.0",
        description="Earthquake catalogue ingestion, backfill and coverage verification",
        lifespan=lifespan,
        docs_url="/api/docs" if settings.debug else None,
        redoc_url="/api/redoc" if settings.debug else None,
        openapi_url="/api/openapi.json" if settings.debug else None,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Logging middleware (adds correlation IDs and request context)
    app.add_middleware(LoggingMiddleware)

    app.include_router(api_router, prefix="/api/v1")

    @app.get("/health")
    async def health_check(db: Annotated[AsyncSession, Depends(get_db)]) -> dict:
        """Database ping and backfill state - NO AUTH REQUIRED."""
        logger = get_logger(__name__)

        db_status = "unknown"
        db_latency = None
        try:
            db_start = time.time()
            await db.execute(text("SELECT 1"))
            db_latency = round((time.time() - db_start) * 1000, 2)
            db_status = "connected"
        except Exception as e:
            db_status = "error"
            logger.error("health_database_failed", error=str(e))

        if not hasattr(app.state, "_start_time"):
            app.state._start_time = time.time()

        return {
            "status": "healthy" if db_status == "connected" else "degraded",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "uptime_seconds": round(time.time() - app.state._start_time, 2),
            "version": "0.1.0",
            "environment": settings.app_env,
            "database": {
                "status": db_status,
                "latency_ms": db_latency,
            },
            "seeding": get_backfill_coordinator().is_running(),
        }

    return app


app = create_app()
