"""In-memory storage adapter for metric records."""

import dataclasses
from collections.abc import AsyncIterable
from typing import Any

from metricgate.core.errors import DuplicateMetricError
from metricgate.core.fingerprint import value_key
from metricgate.core.gate import time_bucket
from metricgate.core.models import Metric, StoredMetricRecord


def _record_identity(record: StoredMetricRecord) -> tuple[Any, ...]:
    return (
        record.fingerprint,
        record.name,
        record.page_path,
        record.type,
        value_key(record.value),
    )


def _metric_identity(metric: Metric, fingerprint: str) -> tuple[Any, ...]:
    return (
        fingerprint,
        metric.name,
        metric.page_path or None,
        metric.type,
        value_key(metric.value),
    )


class InMemoryMetricRecordStorage:
    """In-memory implementation of MetricRecordStoragePort.

    Stores records in a list. Suitable for testing and local runs where
    persistence is not required. Enforces the same window-bucket uniqueness
    as the SQLite adapter.
    """

    def __init__(self) -> None:
        self._records: list[StoredMetricRecord] = []
        self._buckets: set[tuple[Any, ...]] = set()
        self._next_id = 1

    async def find_recent(
        self, metric: Metric, fingerprint: str, since: float
    ) -> StoredMetricRecord | None:
        key = _metric_identity(metric, fingerprint)
        matches = [
            r
            for r in self._records
            if _record_identity(r) == key and r.created_at >= since
        ]
        return max(matches, key=lambda r: r.created_at, default=None)

    async def insert(
        self,
        metric: Metric,
        fingerprint: str,
        created_at: float,
        window_seconds: float,
    ) -> StoredMetricRecord:
        bucket_key = (
            *_metric_identity(metric, fingerprint),
            window_seconds,
            time_bucket(created_at, window_seconds),
        )
        if bucket_key in self._buckets:
            raise DuplicateMetricError(f"duplicate metric {fingerprint}")
        record = StoredMetricRecord(
            id=self._next_id,
            fingerprint=fingerprint,
            name=metric.name,
            page_path=metric.page_path or None,
            value=metric.value,
            tags=dict(metric.tags),
            type=metric.type,
            created_at=created_at,
        )
        self._next_id += 1
        self._buckets.add(bucket_key)
        self._records.append(record)
        return record

    async def mark_forwarded(
        self, metric: Metric, fingerprint: str, response: Any
    ) -> int:
        key = _metric_identity(metric, fingerprint)
        updated = 0
        for index, record in enumerate(self._records):
            if record.forwarded or _record_identity(record) != key:
                continue
            self._records[index] = dataclasses.replace(
                record, forwarded=True, forward_response=response
            )
            updated += 1
        return updated

    async def read(self, since: float = 0) -> AsyncIterable[StoredMetricRecord]:
        """Read records with created_at > since, oldest first."""
        filtered = [r for r in self._records if r.created_at > since]
        for record in sorted(filtered, key=lambda r: r.created_at):
            yield record

    async def count(self) -> int:
        return len(self._records)

    async def clear(self) -> None:
        self._records.clear()
        self._buckets.clear()

    async def close(self) -> None:
        """Nothing to release."""
