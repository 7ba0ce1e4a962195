"""metricgate - deduplicating metrics ingestion with best-effort forwarding."""

from metricgate.adapters.collectors.http import HttpCollector
from metricgate.adapters.storage.in_memory import InMemoryMetricRecordStorage
from metricgate.adapters.storage.sqlite_records import SQLiteMetricRecordStorage
from metricgate.core.config import AppConfig, LoggingConfig, MetricsConfig, ServerConfig
from metricgate.core.fingerprint import fingerprint
from metricgate.core.forwarder import MetricsForwarder
from metricgate.core.gate import DedupGate
from metricgate.core.intake import MetricsIntake
from metricgate.core.models import (
    ForwardResult,
    ForwardStatus,
    GateOutcome,
    Metric,
    ProcessResult,
    StoredMetricRecord,
)

__all__ = [
    "AppConfig",
    "DedupGate",
    "ForwardResult",
    "ForwardStatus",
    "GateOutcome",
    "HttpCollector",
    "InMemoryMetricRecordStorage",
    "LoggingConfig",
    "Metric",
    "MetricsConfig",
    "MetricsForwarder",
    "MetricsIntake",
    "ProcessResult",
    "SQLiteMetricRecordStorage",
    "ServerConfig",
    "StoredMetricRecord",
    "fingerprint",
]
