"""Storage adapters implementing core ports."""

from metricgate.adapters.storage.in_memory import InMemoryMetricRecordStorage
from metricgate.adapters.storage.sqlite_records import SQLiteMetricRecordStorage

__all__ = [
    "InMemoryMetricRecordStorage",
    "SQLiteMetricRecordStorage",
]
