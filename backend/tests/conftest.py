"""
Pytest fixtures for test database, client, and reservation service.

Each test gets fresh tables. The default database is a per-test SQLite file
(aiosqlite); set TEST_DATABASE_URL to run the suite against PostgreSQL, which
also enables the concurrency tests.
"""

import os

# Must be set before reservation_api reads its settings.
os.environ.setdefault("REDIS_ENABLED", "false")
os.environ.setdefault("ENVIRONMENT", "test")

from datetime import datetime, timezone
from decimal import Decimal
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker

from reservation_api.main import app
from reservation_api.db.base import Base
from reservation_api.db.session import get_db
from reservation_api.services.reservation_service import (
    ReservationPolicy,
    ReservationService,
    ReserveRequest,
)
from reservation_api.services.service_factory import get_reservation_service

# All reservations in the suite live on 2030-01-02; "now" is the morning before.
FIXED_NOW = datetime(2030, 1, 1, 8, 0, tzinfo=timezone.utc)


@pytest.fixture
def database_url(tmp_path) -> str:
    return os.environ.get("TEST_DATABASE_URL") or f"sqlite+aiosqlite:///{tmp_path / 'reservations.db'}"


@pytest_asyncio.fixture(scope="function")
async def engine(database_url):
    """Create tables, yield the engine, then drop tables for isolation."""
    test_engine = create_async_engine(database_url, echo=False)
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def service() -> ReservationService:
    """Service with default policy and a frozen clock."""
    return ReservationService(policy=ReservationPolicy(), clock=lambda: FIXED_NOW)


@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession, service: ReservationService) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client that overrides the DB and service dependencies."""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_reservation_service] = lambda: service

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def make_request():
    """Factory for reserve requests: 10:00-10:30 on 2030-01-02 with provider 1."""

    def _make(**overrides) -> ReserveRequest:
        fields = dict(
            provider_id=1,
            slot_id=1,
            scheduled_start=datetime(2030, 1, 2, 10, 0, tzinfo=timezone.utc),
            scheduled_end=datetime(2030, 1, 2, 10, 30, tzinfo=timezone.utc),
            service_name="Haircut",
            service_price=Decimal("100.00"),
            discount_amount=Decimal("10.00"),
            tax_rate=Decimal("0.08"),
            customer_id=42,
        )
        fields.update(overrides)
        return ReserveRequest(**fields)

    return _make
