"""Core domain models for metric ingestion."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


@dataclass(frozen=True)
class Metric:
    """A single observation submitted by a client.

    Attributes:
        name: Metric identifier (e.g., page_view).
        value: The measurement. Compared by exact equality for dedup.
        tags: Free-form dimensions; key order carries no meaning.
        type: Classification string (e.g., count).
        page_path: Optional page the metric was recorded on.
    """

    name: str
    value: int | float
    tags: dict[str, Any] = field(default_factory=dict)
    type: str = "count"
    page_path: str | None = None

    def to_payload(self) -> dict[str, Any]:
        """Return the wire representation sent to the external collector."""
        return {
            "metric_name": self.name,
            "page_path": self.page_path,
            "value": self.value,
            "tags": self.tags,
            "type": self.type,
        }


@dataclass(frozen=True)
class StoredMetricRecord:
    """A persisted, accepted metric.

    Attributes:
        id: Storage-assigned identifier.
        fingerprint: SHA-256 hex digest of the canonical metric.
        name: Metric identifier.
        page_path: Optional page path (None when absent).
        value: The measurement.
        tags: Tags as submitted.
        type: Classification string.
        created_at: Unix timestamp in seconds, set once on insert.
        forwarded: True once the external collector accepted the batch.
        forward_response: Collector response body attached on forward.
    """

    id: int
    fingerprint: str
    name: str
    page_path: str | None
    value: int | float
    tags: dict[str, Any]
    type: str
    created_at: float
    forwarded: bool = False
    forward_response: Any = None


class GateOutcome(Enum):
    """Result of running one metric through the dedup gate."""

    STORED = "stored"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class ProcessResult:
    """Counters for one processed batch."""

    processed: int = 0
    stored: int = 0
    skipped: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "processed": self.processed,
            "stored": self.stored,
            "skipped": self.skipped,
        }


class ForwardStatus(Enum):
    """Outcome of a forwarding attempt."""

    SENT = "sent"
    DISABLED = "disabled"
    EMPTY = "empty"
    FAILED = "failed"


@dataclass(frozen=True)
class ForwardResult:
    """Typed outcome of the forward step.

    Failures are carried here instead of being raised so the caller can
    log them without affecting the response.
    """

    status: ForwardStatus
    count: int = 0
    response: Any = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.status is not ForwardStatus.FAILED
