"""
Tests for settings parsing and request id handling.
"""

import pytest
from httpx import AsyncClient
from pydantic import ValidationError

from reservation_api.core.config import Settings, sync_url


def test_sync_url_strips_async_driver():
    assert sync_url("postgresql+asyncpg://u:p@db:5432/r") == "postgresql://u:p@db:5432/r"
    assert sync_url("sqlite+aiosqlite:///tmp/x.db") == "sqlite:///tmp/x.db"


def test_sync_url_is_derived_when_unset():
    settings = Settings(DATABASE_URL="postgresql+asyncpg://u:p@db/r", DATABASE_URL_SYNC=None)
    assert settings.DATABASE_URL_SYNC == "postgresql://u:p@db/r"


def test_duration_bounds_must_be_ordered():
    with pytest.raises(ValidationError):
        Settings(BOOKING_MIN_DURATION_MINUTES=90, BOOKING_MAX_DURATION_MINUTES=60)


def test_log_format_auto_follows_environment():
    assert Settings(ENVIRONMENT="production", LOG_FORMAT="auto").json_logs is True
    assert Settings(ENVIRONMENT="development", LOG_FORMAT="auto").json_logs is False
    assert Settings(ENVIRONMENT="development", LOG_FORMAT="json").json_logs is True


@pytest.mark.asyncio
async def test_generated_request_id(client: AsyncClient):
    response = await client.get("/api/v1/reservations/999")
    request_id = response.headers["X-Request-ID"]
    assert len(request_id) == 12
    assert response.json()["error"]["request_id"] == request_id


@pytest.mark.asyncio
async def test_unsafe_request_id_is_replaced(client: AsyncClient):
    response = await client.get("/health", headers={"X-Request-ID": "bad id\twith spaces"})
    assert response.headers["X-Request-ID"] != "bad id\twith spaces"
