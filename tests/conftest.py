"""Pytest configuration and test helpers."""

from __future__ import annotations

import sys
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest


# Ensure the application package is importable when running tests without an
# editable install. This mirrors the expected runtime layout where ``app`` sits
# at the project root.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


from app.database import Database  # noqa: E402
from app.services.repository import LaneRepository  # noqa: E402
from app.store import DocumentStore  # noqa: E402


class FakeClock:
    """Deterministic clock that only moves when told to."""

    def __init__(self) -> None:
        self.now = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: int = 60) -> datetime:
        self.now = self.now + timedelta(seconds=seconds)
        return self.now


@pytest.fixture
def anyio_backend() -> str:
    """Force AnyIO tests to run on asyncio without requiring trio."""

    return "asyncio"


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def open_store(tmp_path):
    """Return a factory opening a SQLite-backed document store."""

    @asynccontextmanager
    async def _open():
        database = Database(f"sqlite+aiosqlite:///{tmp_path / 'lanes.db'}")
        await database.create_all()
        try:
            yield DocumentStore(database.session_factory)
        finally:
            await database.dispose()

    return _open


@pytest.fixture
def open_repository(open_store):
    """Return a factory opening a repository over a fresh store."""

    @asynccontextmanager
    async def _open():
        async with open_store() as store:
            yield LaneRepository(store)

    return _open
