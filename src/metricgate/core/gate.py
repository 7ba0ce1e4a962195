"""Dedup gate: decides whether a metric is new or a repeat inside the window."""

import logging
import math
import time
from collections.abc import Callable

from metricgate.core.errors import DuplicateMetricError
from metricgate.core.models import GateOutcome, Metric
from metricgate.core.ports import MetricRecordStoragePort

logger = logging.getLogger(__name__)


def time_bucket(created_at: float, window_seconds: float) -> int:
    """Index of the window-sized interval containing created_at.

    Storage adapters enforce uniqueness of the identity tuple per bucket and
    window size, since bucket numbers from different window sizes overlap.
    """
    return math.floor(created_at / window_seconds)


class DedupGate:
    """Looks up a fingerprint in the trailing window and stores it on a miss.

    A duplicate is a normal outcome and is reported as GateOutcome.SKIPPED.
    StoreFailure from the storage adapter propagates unchanged, so a metric
    is only ever reported as stored after a successful insert.
    """

    def __init__(
        self,
        storage: MetricRecordStoragePort,
        dedup_window_hours: float = 1.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the gate.

        Args:
            storage: Storage adapter implementing MetricRecordStoragePort.
            dedup_window_hours: Length of the trailing lookup window.
            clock: Source of the current unix time (injectable for tests).
        """
        self.storage = storage
        self.window_seconds = dedup_window_hours * 3600
        self._clock = clock

    async def check_and_store(self, metric: Metric, fingerprint: str) -> GateOutcome:
        """Classify one metric, persisting it when it is not a duplicate."""
        now = self._clock()
        since = now - self.window_seconds

        # @tra: Core.Gate.WindowLookup
        existing = await self.storage.find_recent(metric, fingerprint, since)
        if existing is not None:
            logger.debug(
                "Skipping duplicate metric",
                extra={"metric_name": metric.name, "fingerprint": fingerprint},
            )
            return GateOutcome.SKIPPED

        # @tra: Core.Gate.RaceLostIsDuplicate
        try:
            await self.storage.insert(metric, fingerprint, now, self.window_seconds)
        except DuplicateMetricError:
            logger.debug(
                "Concurrent insert won for metric",
                extra={"metric_name": metric.name, "fingerprint": fingerprint},
            )
            return GateOutcome.SKIPPED
        return GateOutcome.STORED
