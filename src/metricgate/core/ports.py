"""Port interfaces for storage and collector adapters.

These protocols define the contracts that adapters must implement.
The core pipeline depends only on these interfaces, not concrete implementations.
"""

from collections.abc import AsyncIterable, Sequence
from typing import Any, Protocol, runtime_checkable

from metricgate.core.models import Metric, StoredMetricRecord


@runtime_checkable
class MetricRecordStoragePort(Protocol):
    """Port for persisted metric records.

    Records are addressed by the identity tuple
    (fingerprint, name, page_path, type, value).
    Examples: InMemoryMetricRecordStorage, SQLiteMetricRecordStorage.
    """

    async def find_recent(
        self, metric: Metric, fingerprint: str, since: float
    ) -> StoredMetricRecord | None:
        """Return a record matching the identity tuple created at or after since."""
        ...

    async def insert(
        self,
        metric: Metric,
        fingerprint: str,
        created_at: float,
        window_seconds: float,
    ) -> StoredMetricRecord:
        """Persist a new record with forwarded=False.

        Raises:
            DuplicateMetricError: The identity tuple already exists in the
                same window bucket.
            StoreFailure: Any other persistence failure.
        """
        ...

    async def mark_forwarded(
        self, metric: Metric, fingerprint: str, response: Any
    ) -> int:
        """Flag not-yet-forwarded rows for this identity as forwarded.

        Returns:
            Number of rows updated.
        """
        ...

    def read(self, since: float = 0) -> AsyncIterable[StoredMetricRecord]:
        """Read records with created_at > since, ordered by created_at ascending."""
        ...

    async def count(self) -> int:
        """Return total number of stored records."""
        ...

    async def clear(self) -> None:
        """Remove all records."""
        ...

    async def close(self) -> None:
        """Release connections held by the adapter."""
        ...


@runtime_checkable
class CollectorPort(Protocol):
    """Port for the external metrics collector."""

    async def send(self, metrics: Sequence[Metric]) -> Any:
        """Send one batch and return the decoded response body.

        Raises:
            ForwardFailure: The collector could not accept the batch.
        """
        ...
