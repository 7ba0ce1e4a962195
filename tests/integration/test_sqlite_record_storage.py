"""Integration tests for SQLite record storage."""

from pathlib import Path

import pytest

from metricgate.adapters.storage.sqlite_records import SQLiteMetricRecordStorage
from metricgate.core.errors import DuplicateMetricError, StoreFailure
from metricgate.core.fingerprint import fingerprint
from tests.fakes import make_metric

pytestmark = [pytest.mark.tier(2), pytest.mark.storage]

WINDOW = 3600.0
NOW = 1_700_000_000.0


class TestInsertAndFind:
    async def test_insert_then_find_recent(
        self, sqlite_storage: SQLiteMetricRecordStorage
    ) -> None:
        """An inserted record is found inside the lookback range."""
        metric = make_metric()
        digest = fingerprint(metric)

        inserted = await sqlite_storage.insert(metric, digest, NOW, WINDOW)
        found = await sqlite_storage.find_recent(metric, digest, NOW - WINDOW)

        assert found is not None
        assert found.id == inserted.id
        assert found.name == metric.name
        assert found.tags == metric.tags
        assert found.value == 1
        assert found.forwarded is False

    async def test_find_recent_respects_since(
        self, sqlite_storage: SQLiteMetricRecordStorage
    ) -> None:
        """Records older than since are not returned."""
        metric = make_metric()
        digest = fingerprint(metric)
        await sqlite_storage.insert(metric, digest, NOW, WINDOW)

        assert await sqlite_storage.find_recent(metric, digest, NOW) is not None
        assert await sqlite_storage.find_recent(metric, digest, NOW + 1) is None

    async def test_null_page_path_matches(
        self, sqlite_storage: SQLiteMetricRecordStorage
    ) -> None:
        """A metric without page_path is found by an equal metric."""
        metric = make_metric(page_path=None)
        digest = fingerprint(metric)
        await sqlite_storage.insert(metric, digest, NOW, WINDOW)

        found = await sqlite_storage.find_recent(metric, digest, 0)

        assert found is not None
        assert found.page_path is None

    async def test_empty_page_path_treated_as_null(
        self, sqlite_storage: SQLiteMetricRecordStorage
    ) -> None:
        stored = make_metric(page_path=None)
        await sqlite_storage.insert(stored, fingerprint(stored), NOW, WINDOW)

        probe = make_metric(page_path="")
        assert await sqlite_storage.find_recent(probe, fingerprint(probe), 0)

    async def test_integral_float_matches_int(
        self, sqlite_storage: SQLiteMetricRecordStorage
    ) -> None:
        """1.0 and 1 are the same stored value."""
        metric = make_metric(value=1)
        await sqlite_storage.insert(metric, fingerprint(metric), NOW, WINDOW)

        probe = make_metric(value=1.0)
        assert await sqlite_storage.find_recent(probe, fingerprint(probe), 0)

    async def test_different_value_not_found(
        self, sqlite_storage: SQLiteMetricRecordStorage
    ) -> None:
        metric = make_metric(value=1)
        await sqlite_storage.insert(metric, fingerprint(metric), NOW, WINDOW)

        probe = make_metric(value=2)
        assert await sqlite_storage.find_recent(probe, fingerprint(probe), 0) is None


class TestUniqueness:
    @pytest.mark.tra("Adapter.SQLiteStorage.WindowBucketUnique")
    async def test_same_bucket_insert_raises_duplicate(
        self, sqlite_storage: SQLiteMetricRecordStorage
    ) -> None:
        """A second insert in the same window bucket loses the race."""
        metric = make_metric()
        digest = fingerprint(metric)
        await sqlite_storage.insert(metric, digest, NOW, WINDOW)

        with pytest.raises(DuplicateMetricError):
            await sqlite_storage.insert(metric, digest, NOW + 1, WINDOW)

        assert await sqlite_storage.count() == 1

    async def test_null_page_path_still_unique(
        self, sqlite_storage: SQLiteMetricRecordStorage
    ) -> None:
        """NULL page paths do not slip past the unique index."""
        metric = make_metric(page_path=None)
        digest = fingerprint(metric)
        await sqlite_storage.insert(metric, digest, NOW, WINDOW)

        with pytest.raises(DuplicateMetricError):
            await sqlite_storage.insert(metric, digest, NOW, WINDOW)

    async def test_next_bucket_insert_allowed(
        self, sqlite_storage: SQLiteMetricRecordStorage
    ) -> None:
        metric = make_metric()
        digest = fingerprint(metric)
        await sqlite_storage.insert(metric, digest, NOW, WINDOW)

        await sqlite_storage.insert(metric, digest, NOW + 2 * WINDOW, WINDOW)

        assert await sqlite_storage.count() == 2


class TestMarkForwarded:
    async def test_marks_only_unforwarded_rows(
        self, sqlite_storage: SQLiteMetricRecordStorage
    ) -> None:
        """Rows already forwarded keep their original response."""
        metric = make_metric()
        digest = fingerprint(metric)
        await sqlite_storage.insert(metric, digest, NOW, WINDOW)
        assert await sqlite_storage.mark_forwarded(metric, digest, {"n": 1}) == 1

        await sqlite_storage.insert(metric, digest, NOW + 2 * WINDOW, WINDOW)
        assert await sqlite_storage.mark_forwarded(metric, digest, {"n": 2}) == 1

        records = [r async for r in sqlite_storage.read()]
        assert [r.forward_response for r in records] == [{"n": 1}, {"n": 2}]
        assert all(r.forwarded for r in records)

    async def test_other_identities_untouched(
        self, sqlite_storage: SQLiteMetricRecordStorage
    ) -> None:
        kept = make_metric(name="kept")
        sent = make_metric(name="sent")
        await sqlite_storage.insert(kept, fingerprint(kept), NOW, WINDOW)
        await sqlite_storage.insert(sent, fingerprint(sent), NOW, WINDOW)

        await sqlite_storage.mark_forwarded(sent, fingerprint(sent), "ok")

        by_name = {r.name: r async for r in sqlite_storage.read()}
        assert by_name["kept"].forwarded is False
        assert by_name["sent"].forward_response == "ok"


class TestReadCountClear:
    async def test_read_is_ordered_and_filtered(
        self, sqlite_storage: SQLiteMetricRecordStorage
    ) -> None:
        for offset, name in [(20, "c"), (0, "a"), (10, "b")]:
            metric = make_metric(name=name)
            digest = fingerprint(metric)
            await sqlite_storage.insert(metric, digest, NOW + offset, WINDOW)

        names = [r.name async for r in sqlite_storage.read(since=NOW)]

        assert names == ["b", "c"]

    async def test_count_and_clear(
        self, sqlite_storage: SQLiteMetricRecordStorage
    ) -> None:
        metric = make_metric()
        await sqlite_storage.insert(metric, fingerprint(metric), NOW, WINDOW)
        assert await sqlite_storage.count() == 1

        await sqlite_storage.clear()

        assert await sqlite_storage.count() == 0

    async def test_persists_across_instances(self, metrics_db_path: str) -> None:
        """File databases survive a new adapter instance."""
        metric = make_metric()
        first = SQLiteMetricRecordStorage(metrics_db_path)
        await first.insert(metric, fingerprint(metric), NOW, WINDOW)
        await first.close()

        second = SQLiteMetricRecordStorage(metrics_db_path)
        assert await second.find_recent(metric, fingerprint(metric), 0)
        await second.close()


class TestMemoryDatabase:
    async def test_memory_database_keeps_rows(self) -> None:
        """:memory: uses one persistent connection so rows survive calls."""
        storage = SQLiteMetricRecordStorage(":memory:")
        metric = make_metric()
        await storage.insert(metric, fingerprint(metric), NOW, WINDOW)

        assert await storage.count() == 1
        await storage.close()


class TestFailures:
    async def test_unopenable_database_raises_store_failure(
        self, tmp_path: Path
    ) -> None:
        """A path that cannot be opened surfaces as StoreFailure."""
        storage = SQLiteMetricRecordStorage(str(tmp_path / "missing" / "metrics.db"))
        metric = make_metric()

        with pytest.raises(StoreFailure):
            await storage.insert(metric, fingerprint(metric), NOW, WINDOW)
