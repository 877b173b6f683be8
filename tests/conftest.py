"""
tests.conftest
~~~~~~~~~~~~~~

Shared pytest fixtures: a controllable clock, in-memory storage, mocked
asyncpg pools and an API client wired to the memory backend.
"""
from __future__ import annotations

import os
from collections.abc import Iterator
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest

# ── Environment before any onair import reads settings ───────────────
os.environ.setdefault("ENVIRONMENT", "test")
os.environ["STORAGE_BACKEND"] = "memory"
os.environ["ADMIN_TOKEN"] = "test-admin-token"
os.environ["SNAPSHOT_CACHE_TTL_SECONDS"] = "0"

from onair.shared.storage import MemoryStorage  # noqa: E402

ADMIN_TOKEN = "test-admin-token"
T0 = datetime(2026, 5, 1, 20, 0, 0, tzinfo=UTC)


class FakeClock:
    """Clock that only moves when told to."""

    def __init__(self, start: datetime = T0) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> datetime:
        self.now += timedelta(seconds=seconds)
        return self.now

    def set(self, when: datetime) -> None:
        self.now = when


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def storage() -> MemoryStorage:
    return MemoryStorage()


# ── asyncpg mocks ─────────────────────────────────────────────────────


def make_mock_pool(conn: MagicMock) -> MagicMock:
    """Pool whose ``acquire()`` yields *conn* as an async context manager."""
    acquire_cm = MagicMock()
    acquire_cm.__aenter__ = AsyncMock(return_value=conn)
    acquire_cm.__aexit__ = AsyncMock(return_value=False)

    pool = MagicMock()
    pool.acquire.return_value = acquire_cm
    return pool


@pytest.fixture()
def mock_conn() -> MagicMock:
    conn = MagicMock()
    conn.fetchrow = AsyncMock()
    conn.fetch = AsyncMock(return_value=[])
    conn.fetchval = AsyncMock()
    conn.execute = AsyncMock()
    return conn


@pytest.fixture()
def mock_pool(mock_conn: MagicMock) -> MagicMock:
    return make_mock_pool(mock_conn)


# ── API client ────────────────────────────────────────────────────────


@pytest.fixture()
def client(clock: FakeClock) -> Iterator:
    """TestClient over a fresh app on the memory backend with a fake clock."""
    from fastapi.testclient import TestClient

    from onair.api.app import create_app
    from onair.api.core.config import get_settings
    from onair.api.core.dependencies import get_clock

    get_settings.cache_clear()
    app = create_app()
    app.dependency_overrides[get_clock] = lambda: clock

    with TestClient(app) as test_client:
        yield test_client

    get_settings.cache_clear()
