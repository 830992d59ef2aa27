"""Pytest configuration and shared fixtures."""

from collections.abc import AsyncGenerator, Generator
from datetime import UTC, datetime, timedelta

import pytest
from fastapi.testclient import TestClient

from src.core import db_client
from src.core.config import settings
from src.main import app


class FrozenClock:
    """Callable stand-in for clock.utc_now that only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta: float) -> datetime:
        self.now += timedelta(**delta)
        return self.now


@pytest.fixture
def frozen_clock(monkeypatch) -> FrozenClock:
    """Freezes the service clock at 2024-03-15 10:00 UTC."""
    clock = FrozenClock(datetime(2024, 3, 15, 10, 0, tzinfo=UTC))
    monkeypatch.setattr("src.core.clock.utc_now", clock)
    return clock


@pytest.fixture
def test_client() -> Generator[TestClient, None, None]:
    """FastAPI test client.

    The lifespan is not entered, so no database is opened; combine with
    patched_db for storage.
    """
    yield TestClient(app)


@pytest.fixture
async def sqlite_db(tmp_path, monkeypatch) -> AsyncGenerator[str, None]:
    """Points the store at a fresh SQLite file with the schema applied."""
    db_path = str(tmp_path / "taskledger-test.db")
    monkeypatch.setattr(settings, "sqlite_db_path", db_path)

    await db_client.init_db()
    yield db_path
    await db_client.close_connection()
