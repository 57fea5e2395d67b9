"""Pytest configuration and fixtures."""

import os

# Set DEBUG=true and an in-memory database for all tests BEFORE any app imports
# This must be done before subway.core.config loads settings
os.environ["DEBUG"] = "true"
os.environ["SECRET_DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["OTEL_ENABLED"] = "false"

from collections.abc import AsyncGenerator, Awaitable, Callable, Generator
from dataclasses import dataclass

import pytest
from fastapi.testclient import TestClient
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool
from subway.core.database import get_db
from subway.main import app
from subway.models import Base
from subway.models.line import Line
from subway.models.station import Station
from subway.schemas.lines import CreateLineRequest
from subway.services.line_service import LineService

from tests.fixtures.otel import otel_enabled_provider, reset_tracer_provider  # noqa: F401

StationFactory = Callable[[str], Awaitable[Station]]


@pytest.fixture
async def db_engine() -> AsyncGenerator[AsyncEngine]:
    """
    Create an in-memory SQLite database with the full schema.

    StaticPool keeps a single connection so every session sees the same
    in-memory database; each test gets a fresh one.

    Yields:
        AsyncEngine bound to the test database
    """
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
async def db_session(db_engine: AsyncEngine) -> AsyncGenerator[AsyncSession]:
    """
    Database session configured like the application's session factory.

    Yields:
        Async SQLAlchemy session
    """
    session_factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)
    async with session_factory() as session:
        yield session


@pytest.fixture
async def async_client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient]:
    """
    Async HTTP client whose requests share the test database session.

    Yields:
        Async HTTP client with ASGI transport
    """

    async def override_get_db() -> AsyncGenerator[AsyncSession]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    try:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            yield client
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def client() -> Generator[TestClient]:
    """
    FastAPI synchronous test client for endpoints that need no database.

    Yields:
        Synchronous test client with app context
    """
    with TestClient(app) as test_client:
        yield test_client


# ==================== Subway data fixtures ====================


@pytest.fixture
def make_station(db_session: AsyncSession) -> StationFactory:
    """Factory fixture that persists a station with the given name."""

    async def _make_station(name: str) -> Station:
        station = Station(name=name)
        db_session.add(station)
        await db_session.commit()
        await db_session.refresh(station)
        return station

    return _make_station


@dataclass
class Line4:
    """Line 4 seeded with 당고개역 → 이수역 (distance 10) and a spare station 사당역."""

    line: Line
    danggogae: Station
    isu: Station
    sadang: Station


@pytest.fixture
async def line_4(db_session: AsyncSession, make_station: StationFactory) -> Line4:
    """Create Line 4 with a single 10-long section and one station not on it."""
    danggogae = await make_station("당고개역")
    isu = await make_station("이수역")
    sadang = await make_station("사당역")

    line = await LineService(db_session).create_line(
        CreateLineRequest(
            name="4호선",
            color="blue",
            up_station_id=danggogae.id,
            down_station_id=isu.id,
            distance=10,
        )
    )
    return Line4(line=line, danggogae=danggogae, isu=isu, sadang=sadang)
