import os
import sys
from datetime import datetime, timezone

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

# Add the app directory to Python path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import app.models  # noqa: F401,E402
from app.api.deps.clock import get_clock  # noqa: E402
from app.core.database import Base, get_db  # noqa: E402
from app.main import app  # noqa: E402
from app.services.clock import CalendarClock, FixedClock  # noqa: E402

# Monday 2026-06-01, 08:00 in America/Los_Angeles (PDT)
NOW = datetime(2026, 6, 1, 15, 0, tzinfo=timezone.utc)


@pytest.fixture
def test_database_url(tmp_path):
    # A file database so concurrent sessions use separate connections
    return os.getenv(
        "TEST_DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'test_booking.db'}"
    )


@pytest.fixture
async def engine(test_database_url):
    engine = create_async_engine(test_database_url, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)  # Clean slate
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    """Create a fresh database session for each test."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def clock():
    return FixedClock(NOW)


@pytest.fixture
def calendar(clock):
    return CalendarClock(clock, "America/Los_Angeles")


@pytest.fixture
async def client(db: AsyncSession, clock: FixedClock):
    """Test client with the get_db and get_clock dependencies overridden."""

    async def _override_get_db():
        yield db

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_clock] = lambda: clock

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as client:
        yield client

    app.dependency_overrides.clear()


# Import all booking fixtures to make them available
pytest_plugins = ["tests.fixtures.booking_fixtures"]
