"""Connection handling shared by SQLite storage adapters."""

import asyncio
import json
import sqlite3
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import aiosqlite

from metricgate.core.errors import StoreFailure

# Milliseconds a writer waits on a locked database before failing
BUSY_TIMEOUT_MS = 5000


def _safe_json_loads(data: str | None, default: Any = None) -> Any:
    """Parse JSON data, returning default when missing or undecodable."""
    if data is None:
        return default
    try:
        return json.loads(data)
    except json.JSONDecodeError:
        return default


class AsyncConnectionManager:
    """Manages aiosqlite connections and one-time schema initialization.

    For :memory: databases a single persistent connection is kept, since
    SQLite in-memory databases are connection-scoped. File databases get a
    fresh connection per use and run in WAL mode.
    """

    def __init__(self, db_path: str, schema: str) -> None:
        self._db_path = db_path
        self._schema = schema
        self._initialized = False
        self._init_lock: asyncio.Lock | None = None
        self._write_lock: asyncio.Lock | None = None
        self._persistent_conn: aiosqlite.Connection | None = None

    @property
    def is_memory(self) -> bool:
        return self._db_path == ":memory:"

    def _get_lock(self) -> asyncio.Lock:
        """Get or create the initialization lock (lazy to avoid event loop issues)."""
        if self._init_lock is None:
            self._init_lock = asyncio.Lock()
        return self._init_lock

    def _get_write_lock(self) -> asyncio.Lock:
        if self._write_lock is None:
            self._write_lock = asyncio.Lock()
        return self._write_lock

    async def _ensure_initialized(self) -> None:
        if self._initialized:
            return
        async with self._get_lock():
            if self._initialized:
                return
            if self.is_memory:
                self._persistent_conn = await aiosqlite.connect(":memory:")
                await self._persistent_conn.executescript(self._schema)
            else:
                async with aiosqlite.connect(self._db_path) as db:
                    await db.execute("PRAGMA journal_mode=WAL")
                    await db.executescript(self._schema)
            self._initialized = True

    async def _get_connection(self) -> aiosqlite.Connection:
        await self._ensure_initialized()
        if self.is_memory:
            if self._persistent_conn is None:
                raise RuntimeError("Memory database connection not initialized")
            return self._persistent_conn
        db = await aiosqlite.connect(self._db_path)
        await db.execute(f"PRAGMA busy_timeout={BUSY_TIMEOUT_MS}")
        return db

    @asynccontextmanager
    async def connection(self) -> AsyncIterator[aiosqlite.Connection]:
        """Yield a connection, closing it afterwards for file databases.

        Raises:
            StoreFailure: The database could not be opened or initialized.
        """
        try:
            db = await self._get_connection()
        except (sqlite3.Error, OSError) as exc:
            raise StoreFailure(f"Unable to open metrics database: {exc}") from exc
        try:
            yield db
        finally:
            if not self.is_memory:
                await db.close()

    @asynccontextmanager
    async def write_connection(self) -> AsyncIterator[aiosqlite.Connection]:
        """Yield a connection for one write statement and its commit.

        Writers on the shared :memory: connection are serialized so that a
        commit or failed statement never lands in another writer's open
        transaction.
        """
        async with self.connection() as db:
            if not self.is_memory:
                yield db
                return
            async with self._get_write_lock():
                yield db

    async def close(self) -> None:
        """Close the persistent connection (for :memory: databases)."""
        if self._persistent_conn is not None:
            await self._persistent_conn.close()
            self._persistent_conn = None
            self._initialized = False
