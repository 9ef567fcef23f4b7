"""
Pytest configuration and fixtures for homie tests.

This module provides shared fixtures used across unit and integration
tests: temporary directories, a controllable clock, and in-memory stores.
"""

import tempfile
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Generator

import pytest

from homie.store import HistoryDB


class FakeClock:
    """A clock that only moves when told to."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 1, 15, 12, 0, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def clock() -> FakeClock:
    """A fixed clock starting at 2026-01-15 12:00 UTC."""
    return FakeClock()


@pytest.fixture
def db(clock: FakeClock) -> Generator[HistoryDB, None, None]:
    """An in-memory history database driven by the fake clock."""
    database = HistoryDB(":memory:", clock=clock)
    yield database
    database.close()


@pytest.fixture
def filled_db(db: HistoryDB, clock: FakeClock) -> HistoryDB:
    """A database with 'item0'..'item9', item9 being the most recent."""
    for i in range(10):
        clock.advance(seconds=1)
        db.write(f"item{i}".encode())
    return db
