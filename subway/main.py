"""FastAPI application for managing subway stations, lines and sections."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

import structlog
from alembic import script
from alembic.config import Config
from alembic.runtime import migration
from fastapi import FastAPI, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware
from opentelemetry import trace
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from sqlalchemy import text
from sqlalchemy.engine import Connection

from subway import __version__
from subway.api import lines, stations
from subway.core.config import settings
from subway.core.database import get_engine
from subway.core.logging import configure_logging
from subway.core.telemetry import (
    get_tracer_provider,
    set_logger_provider,
    shutdown_logger_provider,
    shutdown_tracer_provider,
)
from subway.middleware import AccessLoggingMiddleware

# Before the app exists, so uvicorn's own startup lines use the same format
configure_logging(log_level=settings.LOG_LEVEL)

logger = structlog.get_logger(__name__)


def _check_alembic_migrations(sync_conn: Connection) -> str | None:
    """
    Compare the database's Alembic revision with the migration scripts' head.

    Args:
        sync_conn: Synchronous SQLAlchemy connection

    Returns:
        Current revision ID

    Raises:
        RuntimeError: If the schema was never created or is behind head
    """
    current_rev = migration.MigrationContext.configure(sync_conn).get_current_revision()

    alembic_ini_path = Path(settings.ALEMBIC_INI_PATH)
    if not alembic_ini_path.exists():
        logger.warning("alembic_ini_not_found", path=settings.ALEMBIC_INI_PATH, action="skipping migration validation")
        return current_rev

    head_rev = script.ScriptDirectory.from_config(Config(str(alembic_ini_path))).get_current_head()

    if current_rev is None:
        msg = "Database has not been initialized! Please run: alembic upgrade head"
        raise RuntimeError(msg)
    if current_rev != head_rev:
        msg = (
            f"Database migration required! Database is at {current_rev}, scripts are at {head_rev}.\n"
            "Please run: alembic upgrade head"
        )
        raise RuntimeError(msg)

    return current_rev


async def _validate_database() -> None:
    """Check the database answers and carries the latest schema."""
    async with get_engine().begin() as conn:
        await conn.execute(text("SELECT 1"))
        logger.info("database_connection_successful")
        current_rev = await conn.run_sync(_check_alembic_migrations)
    logger.info("database_migration_valid", revision=current_rev)


def _start_telemetry() -> None:
    if settings.OTEL_ENABLED and (provider := get_tracer_provider()):
        trace.set_tracer_provider(provider)
        set_logger_provider()
        logger.info("otel_tracer_provider_initialized")


def _stop_telemetry() -> None:
    if settings.OTEL_ENABLED:
        shutdown_tracer_provider()
        shutdown_logger_provider()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """
    Start telemetry and validate the database before serving.

    DEBUG mode skips database validation: tests build their schema from the
    model metadata instead of Alembic.
    """
    _start_telemetry()

    if settings.DEBUG:
        logger.info("debug_mode_startup", message="skipping database validation")
    else:
        logger.info("startup_initializing", message="validating database")
        try:
            await _validate_database()
        except RuntimeError as e:
            logger.error("migration_validation_failed", error=str(e))
            raise
        except OSError as e:
            logger.error("startup_filesystem_error", error=str(e))
            raise
        logger.info("startup_complete")

    try:
        yield
    finally:
        logger.info("shutdown_starting")
        _stop_telemetry()
        if not settings.DEBUG:
            await get_engine().dispose()
        logger.info("shutdown_complete")


app = FastAPI(
    title="Subway API",
    description="Stations, lines, and the ordered sections that connect them",
    version=__version__,
    lifespan=lifespan,
)

if settings.OTEL_ENABLED:
    FastAPIInstrumentor().instrument_app(app, excluded_urls=",".join(settings.OTEL_EXCLUDED_URLS))
    logger.info("otel_fastapi_instrumented", excluded_urls=settings.OTEL_EXCLUDED_URLS)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(AccessLoggingMiddleware)

app.include_router(stations.router, prefix=settings.API_V1_PREFIX)
app.include_router(lines.router, prefix=settings.API_V1_PREFIX)


@app.get("/")
async def root() -> dict[str, str]:
    """Service name and version."""
    return {"message": "Subway API", "version": __version__}


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Liveness probe: the process is serving requests."""
    return {"status": "healthy"}


@app.get("/ready")
async def readiness_check() -> dict[str, str]:
    """
    Readiness probe: the database answers a trivial query.

    Raises:
        HTTPException: 503 if the database is unreachable
    """
    try:
        async with get_engine().connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        logger.error("readiness_check_failed", error=str(e))
        # Details stay in the logs
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Service unavailable") from e
    return {"status": "ready"}
