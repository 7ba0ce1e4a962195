"""Per-request orchestration of the ingestion pipeline."""

import logging
from collections.abc import Sequence
from typing import Any

from metricgate.core.config import MetricsConfig
from metricgate.core.errors import ParameterError
from metricgate.core.fingerprint import fingerprint
from metricgate.core.forwarder import MetricsForwarder
from metricgate.core.gate import DedupGate
from metricgate.core.models import GateOutcome, Metric, ProcessResult
from metricgate.core.ports import CollectorPort, MetricRecordStoragePort
from metricgate.core.validation import EMPTY_BATCH_MESSAGE, parse_batch

logger = logging.getLogger(__name__)


class MetricsIntake:
    """Runs a batch through fingerprinting, the dedup gate and the forwarder.

    Metrics are classified strictly in submission order. A StoreFailure
    aborts the rest of the batch and propagates to the caller; the
    forwarder is then not invoked. Forwarding failures never propagate.
    """

    def __init__(self, gate: DedupGate, forwarder: MetricsForwarder) -> None:
        self.gate = gate
        self.forwarder = forwarder

    @classmethod
    def from_config(
        cls,
        config: MetricsConfig,
        storage: MetricRecordStoragePort,
        collector: CollectorPort,
    ) -> "MetricsIntake":
        """Wire a gate and forwarder from configuration."""
        gate = DedupGate(storage, dedup_window_hours=config.dedup_window_hours)
        forwarder = MetricsForwarder(
            collector, storage, enabled=config.external_api_enabled
        )
        return cls(gate, forwarder)

    async def ingest(self, payload: Any) -> ProcessResult:
        """Validate a raw request body and process its metrics."""
        return await self.process(parse_batch(payload))

    async def process(self, metrics: Sequence[Metric]) -> ProcessResult:
        """Classify every metric, then forward the newly stored ones once.

        Raises:
            ParameterError: The batch is empty.
            StoreFailure: Storage failed while classifying a metric.
        """
        if not metrics:
            raise ParameterError(EMPTY_BATCH_MESSAGE)

        processed = stored = skipped = 0
        to_forward: list[tuple[Metric, str]] = []

        for metric in metrics:
            processed += 1
            digest = fingerprint(metric)
            outcome = await self.gate.check_and_store(metric, digest)
            if outcome is GateOutcome.SKIPPED:
                skipped += 1
                continue
            stored += 1
            to_forward.append((metric, digest))

        # @tra: Core.Intake.ForwardIsolation
        result = await self.forwarder.forward(to_forward)
        if not result.ok:
            logger.warning(
                "External metrics forward failed (non-critical): %s",
                result.error,
                extra={"forward_count": result.count},
            )

        logger.info(
            "Processed metrics batch",
            extra={"processed": processed, "stored": stored, "skipped": skipped},
        )
        return ProcessResult(processed=processed, stored=stored, skipped=skipped)
