"""SQLite storage adapter for accepted metric records."""

import json
import sqlite3
from collections.abc import AsyncIterable
from typing import Any

import aiosqlite

from metricgate.adapters.storage.sqlite_base import (
    AsyncConnectionManager,
    _safe_json_loads,
)
from metricgate.core.errors import DuplicateMetricError, StoreFailure
from metricgate.core.fingerprint import value_key
from metricgate.core.gate import time_bucket
from metricgate.core.models import Metric, StoredMetricRecord

_RECORDS_SCHEMA = """
CREATE TABLE IF NOT EXISTS metric_records (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    fingerprint TEXT NOT NULL,
    metric_name TEXT NOT NULL,
    page_path TEXT,
    value TEXT NOT NULL,
    tags TEXT NOT NULL DEFAULT '{}',
    type TEXT NOT NULL,
    created_at REAL NOT NULL,
    window_seconds REAL NOT NULL,
    time_bucket INTEGER NOT NULL,
    forwarded INTEGER NOT NULL DEFAULT 0,
    forward_response TEXT
);
CREATE INDEX IF NOT EXISTS idx_metric_records_created_at
    ON metric_records(created_at);
CREATE INDEX IF NOT EXISTS idx_metric_records_fingerprint
    ON metric_records(fingerprint);
CREATE UNIQUE INDEX IF NOT EXISTS uq_metric_records_identity ON metric_records (
    fingerprint, metric_name, COALESCE(page_path, ''), type, value,
    window_seconds, time_bucket
);
"""

_COLUMNS = """
id, fingerprint, metric_name, page_path, value, tags, type,
created_at, forwarded, forward_response
"""

_INSERT_RECORD = """
INSERT INTO metric_records (
    fingerprint, metric_name, page_path, type, value, tags, created_at,
    window_seconds, time_bucket
) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
"""

_SELECT_RECENT = f"""
SELECT {_COLUMNS} FROM metric_records
WHERE fingerprint = ? AND metric_name = ? AND page_path IS ?
  AND type = ? AND value = ? AND created_at >= ?
ORDER BY created_at DESC
LIMIT 1
"""

_MARK_FORWARDED = """
UPDATE metric_records SET forwarded = 1, forward_response = ?
WHERE fingerprint = ? AND metric_name = ? AND page_path IS ?
  AND type = ? AND value = ? AND forwarded = 0
"""

_SELECT_RECORDS_SINCE = f"""
SELECT {_COLUMNS} FROM metric_records
WHERE created_at > ?
ORDER BY created_at ASC, id ASC
"""

_COUNT_RECORDS = """
SELECT COUNT(*) FROM metric_records
"""


def _identity(metric: Metric, fingerprint: str) -> tuple[Any, ...]:
    return (
        fingerprint,
        metric.name,
        metric.page_path or None,
        metric.type,
        value_key(metric.value),
    )


def _from_row(row: sqlite3.Row | aiosqlite.Row) -> StoredMetricRecord:
    return StoredMetricRecord(
        id=row[0],
        fingerprint=row[1],
        name=row[2],
        page_path=row[3],
        value=json.loads(row[4]),
        tags=_safe_json_loads(row[5], default={}),
        type=row[6],
        created_at=row[7],
        forwarded=bool(row[8]),
        forward_response=_safe_json_loads(row[9]),
    )


# @tra: Adapter.SQLiteStorage.ImplementsRecordStoragePort
class SQLiteMetricRecordStorage:
    """SQLite implementation of MetricRecordStoragePort.

    A unique index over the identity tuple plus the window bucket turns two
    concurrent inserts of the same metric into a DuplicateMetricError for
    the loser instead of a second row.
    """

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path
        self._manager = AsyncConnectionManager(db_path, _RECORDS_SCHEMA)

    async def find_recent(
        self, metric: Metric, fingerprint: str, since: float
    ) -> StoredMetricRecord | None:
        """Return the newest matching record with created_at >= since."""
        async with self._manager.connection() as db:
            try:
                async with db.execute(
                    _SELECT_RECENT, (*_identity(metric, fingerprint), since)
                ) as cursor:
                    row = await cursor.fetchone()
            except sqlite3.Error as exc:
                raise StoreFailure(f"Metric lookup failed: {exc}") from exc
        return _from_row(row) if row else None

    async def insert(
        self,
        metric: Metric,
        fingerprint: str,
        created_at: float,
        window_seconds: float,
    ) -> StoredMetricRecord:
        """Insert a new record with forwarded=False."""
        async with self._manager.write_connection() as db:
            try:
                cursor = await db.execute(
                    _INSERT_RECORD,
                    (
                        *_identity(metric, fingerprint),
                        json.dumps(metric.tags),
                        created_at,
                        window_seconds,
                        time_bucket(created_at, window_seconds),
                    ),
                )
                await db.commit()
            except sqlite3.IntegrityError as exc:
                # SQLite has already undone the failed statement
                raise DuplicateMetricError(str(exc)) from exc
            except sqlite3.Error as exc:
                raise StoreFailure(f"Metric insert failed: {exc}") from exc
        return StoredMetricRecord(
            id=cursor.lastrowid or 0,
            fingerprint=fingerprint,
            name=metric.name,
            page_path=metric.page_path or None,
            value=metric.value,
            tags=metric.tags,
            type=metric.type,
            created_at=created_at,
        )

    async def mark_forwarded(
        self, metric: Metric, fingerprint: str, response: Any
    ) -> int:
        """Flag the not-yet-forwarded rows for this identity."""
        async with self._manager.write_connection() as db:
            try:
                cursor = await db.execute(
                    _MARK_FORWARDED,
                    (
                        json.dumps(response, default=str),
                        *_identity(metric, fingerprint),
                    ),
                )
                await db.commit()
            except sqlite3.Error as exc:
                raise StoreFailure(f"Marking metric forwarded failed: {exc}") from exc
            return cursor.rowcount

    async def read(self, since: float = 0) -> AsyncIterable[StoredMetricRecord]:
        """Read records with created_at > since, oldest first."""
        async with self._manager.connection() as db:
            async with db.execute(_SELECT_RECORDS_SINCE, (since,)) as cursor:
                async for row in cursor:
                    yield _from_row(row)

    async def count(self) -> int:
        """Return total number of stored records."""
        async with self._manager.connection() as db:
            async with db.execute(_COUNT_RECORDS) as cursor:
                row = await cursor.fetchone()
                return row[0] if row else 0

    async def clear(self) -> None:
        """Remove all records."""
        async with self._manager.write_connection() as db:
            await db.execute("DELETE FROM metric_records")
            await db.commit()

    async def close(self) -> None:
        """Close persistent connection (for :memory: databases)."""
        await self._manager.close()
