"""
Unit tests for the retention policy.

Tests cover:
- Disabled cleanup
- TTL strategy and its precedence over size
- Size strategy thresholds
- Error propagation
"""

from datetime import timedelta

import pytest

from homie.errors import StorageReadError
from homie.schema import Settings
from homie.store import HistoryDB, clean_old_history
from homie.store.retention import STRATEGY_DISABLED, STRATEGY_SIZE, STRATEGY_TTL


class RecordingStore:
    """In-memory RetentionStore that records calls."""

    def __init__(self, total: int) -> None:
        self.total = total
        self.calls: list[tuple[str, int]] = []

    def count(self) -> int:
        return self.total

    def delete_oldest(self, ttl_days: int) -> int:
        self.calls.append(("delete_oldest", ttl_days))
        return 0

    def delete_excess(self, count: int) -> int:
        self.calls.append(("delete_excess", count))
        deleted = min(count, self.total)
        self.total -= deleted
        return deleted


class FailingStore(RecordingStore):
    def count(self) -> int:
        raise StorageReadError(operation="count", underlying_error="locked")


class TestDisabled:
    def test_disabled_does_nothing(self) -> None:
        store = RecordingStore(total=10_000)
        result = clean_old_history(store, Settings(clean_up=False, ttl=3))

        assert result.strategy == STRATEGY_DISABLED
        assert result.deleted == 0
        assert store.calls == []


class TestTtlStrategy:
    def test_ttl_takes_precedence(self) -> None:
        """With ttl set, size limits are ignored."""
        store = RecordingStore(total=10_000)
        result = clean_old_history(store, Settings(clean_up=True, ttl=7, max_size=10, limit=5))

        assert result.strategy == STRATEGY_TTL
        assert store.calls == [("delete_oldest", 7)]

    def test_ttl_against_real_store(self, db: HistoryDB, clock) -> None:
        start = clock()
        for days, text in ((20, b"old"), (8, b"older than a week"), (0, b"fresh")):
            clock.now = start - timedelta(days=days)
            db.write(text)
        clock.now = start

        result = clean_old_history(db, Settings(clean_up=True, ttl=7))

        assert result.deleted == 2
        assert [e.text for e in db.read(0, 10)] == ["fresh"]


class TestSizeStrategy:
    def test_trims_to_limit(self) -> None:
        """600 entries with max_size 500 and limit 20 leaves 20."""
        store = RecordingStore(total=600)
        result = clean_old_history(store, Settings(clean_up=True, max_size=500, limit=20))

        assert result.strategy == STRATEGY_SIZE
        assert result.deleted == 580
        assert store.calls == [("delete_excess", 580)]
        assert store.total == 20

    @pytest.mark.parametrize("total", [0, 20, 500])
    def test_under_threshold(self, total: int) -> None:
        store = RecordingStore(total=total)
        result = clean_old_history(store, Settings(clean_up=True, max_size=500, limit=20))

        assert result.deleted == 0
        assert store.calls == []

    def test_limit_not_below_total(self) -> None:
        """Nothing is deleted when limit already covers the history."""
        store = RecordingStore(total=50)
        result = clean_old_history(store, Settings(clean_up=True, max_size=10, limit=60))

        assert result.deleted == 0
        assert store.calls == []

    def test_non_positive_settings_use_defaults(self) -> None:
        store = RecordingStore(total=501)
        result = clean_old_history(store, Settings(clean_up=True, max_size=0, limit=-1))

        assert store.calls == [("delete_excess", 481)]
        assert result.deleted == 481

    def test_keeps_most_recent(self, filled_db: HistoryDB) -> None:
        """10 entries with max_size 5 and limit 5 leaves the 5 newest."""
        result = clean_old_history(filled_db, Settings(clean_up=True, max_size=5, limit=5))

        assert result.deleted == 5
        assert [e.text for e in filled_db.read(0, 10)] == [f"item{i}" for i in range(9, 4, -1)]

    def test_size_against_real_store(self, db: HistoryDB, clock) -> None:
        for i in range(12):
            clock.advance(seconds=1)
            db.write(f"entry {i}".encode())

        clean_old_history(db, Settings(clean_up=True, max_size=10, limit=3))

        assert [e.text for e in db.read(0, 10)] == ["entry 11", "entry 10", "entry 9"]


class TestErrors:
    def test_storage_error_propagates(self) -> None:
        with pytest.raises(StorageReadError):
            clean_old_history(FailingStore(total=0), Settings(clean_up=True))
