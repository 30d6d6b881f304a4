"""
Tests for execution records and history retention.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from indexer.services.execution_store import ExecutionStore, trim_history


NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


def record(site_id="example.com", age_days=0, status="completed", now=None):
    timestamp = (now or datetime.now(timezone.utc)) - timedelta(days=age_days)
    return {
        "site_id": site_id,
        "timestamp": timestamp.isoformat(),
        "status": status,
        "stats": {"total": 1, "successful": 1, "failed": 0, "skipped": 0},
        "batches": [],
        "channel_stats": {},
        "error": None,
    }


class TestTrimHistory:

    def test_both_bounds_apply(self):
        """150 runs spread over two years keep at most 100, none older than 365 days."""
        history = [record(age_days=i * 5, now=NOW) for i in range(150)]

        trimmed = trim_history(history, max_records=100, max_age_days=365, now=NOW)

        assert len(trimmed) <= 100
        cutoff = NOW - timedelta(days=365)
        assert all(datetime.fromisoformat(r["timestamp"]) >= cutoff for r in trimmed)
        # Ages 0, 5, ..., 365 survive
        assert len(trimmed) == 74
        assert trimmed == history[:74]

    def test_count_bound(self):
        history = [record(age_days=0, now=NOW) for _ in range(120)]

        assert len(trim_history(history, max_records=100, max_age_days=365, now=NOW)) == 100

    def test_unreadable_timestamps_dropped(self):
        history = [record(now=NOW), {"site_id": "x", "timestamp": "garbage"}, {"site_id": "y"}]

        assert trim_history(history, 100, 365, now=NOW) == history[:1]

    def test_zulu_timestamps(self):
        history = [{"site_id": "x", "timestamp": "2025-05-31T12:00:00Z"}]

        assert trim_history(history, 100, 365, now=NOW) == history


class TestExecutionStore:

    @pytest.mark.asyncio
    async def test_save_and_read_back(self):
        store = ExecutionStore()
        first = record(status="failed")
        second = record(status="completed")

        assert await store.save(first) is True
        assert await store.save(second) is True

        assert await store.get_last_execution("example.com") == second
        assert await store.get_history("example.com") == [second, first]

    @pytest.mark.asyncio
    async def test_history_limit(self):
        store = ExecutionStore()
        for _ in range(5):
            await store.save(record())

        assert len(await store.get_history("example.com", limit=2)) == 2

    @pytest.mark.asyncio
    async def test_history_bounded_on_write(self):
        store = ExecutionStore(max_records=10)
        for _ in range(15):
            await store.save(record())

        assert len(await store.get_history("example.com")) == 10

    def test_explicit_zero_bounds_are_kept(self):
        store = ExecutionStore(max_records=0, max_age_days=0)

        assert store.max_records == 0
        assert store.max_age_days == 0

    @pytest.mark.asyncio
    async def test_zero_record_bound_keeps_only_last_pointer(self):
        store = ExecutionStore(max_records=0)
        await store.save(record())

        assert await store.get_history("example.com") == []
        assert await store.get_last_execution("example.com") is not None

    @pytest.mark.asyncio
    async def test_sites_are_independent(self):
        store = ExecutionStore()
        await store.save(record(site_id="site-a"))

        assert await store.get_last_execution("site-b") is None
        assert await store.get_history("site-b") == []

    @pytest.mark.asyncio
    async def test_purge(self):
        store = ExecutionStore()
        await store.save(record())

        store.purge("example.com")

        assert await store.get_last_execution("example.com") is None
        assert await store.get_history("example.com") == []

    @pytest.mark.asyncio
    async def test_store_failure_is_reported_not_raised(self):
        mock_cache = MagicMock()
        mock_cache.aset = AsyncMock(side_effect=ConnectionError("store down"))

        with patch("indexer.services.execution_store.cache", mock_cache):
            assert await ExecutionStore().save(record()) is False
