"""Shared test fixtures for all test modules."""

from collections.abc import AsyncGenerator
from pathlib import Path

import httpx
import pytest

from metricgate.adapters.storage.in_memory import InMemoryMetricRecordStorage
from metricgate.adapters.storage.sqlite_records import SQLiteMetricRecordStorage
from metricgate.core.config import AppConfig, LoggingConfig, MetricsConfig
from metricgate.core.forwarder import MetricsForwarder
from metricgate.core.gate import DedupGate
from metricgate.core.intake import MetricsIntake
from tests.fakes import FakeClock, RecordingCollector


@pytest.fixture
def metrics_db_path(tmp_path: Path) -> str:
    """Provide a temporary database path for record storage tests."""
    return str(tmp_path / "metrics.db")


@pytest.fixture
def clock() -> FakeClock:
    """Controllable clock starting at a fixed timestamp."""
    return FakeClock()


@pytest.fixture
def storage() -> InMemoryMetricRecordStorage:
    """Fixture providing an empty in-memory record storage."""
    return InMemoryMetricRecordStorage()


@pytest.fixture
async def sqlite_storage(
    metrics_db_path: str,
) -> AsyncGenerator[SQLiteMetricRecordStorage]:
    """Fixture providing file-backed SQLite record storage."""
    storage = SQLiteMetricRecordStorage(metrics_db_path)
    yield storage
    await storage.close()


@pytest.fixture
def collector() -> RecordingCollector:
    """Collector double that accepts every batch."""
    return RecordingCollector()


@pytest.fixture
def make_intake(clock: FakeClock):
    """Factory fixture wiring an intake around the given storage and collector.

    Usage:
        intake = make_intake(storage, collector)
        result = await intake.process([metric])
    """

    def _make(
        storage,
        collector,
        enabled: bool = True,
        window_hours: float = 1.0,
    ) -> MetricsIntake:
        gate = DedupGate(storage, dedup_window_hours=window_hours, clock=clock)
        forwarder = MetricsForwarder(collector, storage, enabled=enabled)
        return MetricsIntake(gate, forwarder)

    return _make


@pytest.fixture
def test_config() -> AppConfig:
    """Application config with request logging off and forwarding on."""
    return AppConfig(
        database_path=":memory:",
        metrics=MetricsConfig(),
        logging=LoggingConfig(request_logging=False),
    )


@pytest.fixture
def asgi_test_client():
    """Factory fixture that creates an httpx.AsyncClient for ASGI testing.

    Usage:
        async def test_something(asgi_test_client):
            app = create_app(config, storage=storage, collector=collector)
            async with asgi_test_client(app) as client:
                response = await client.post("/api/v1/metrics", json=body)
    """

    def _get_client(app):
        """Return an AsyncClient context manager for the given app."""
        return httpx.AsyncClient(
            transport=httpx.ASGITransport(app=app), base_url="http://test"
        )

    return _get_client
