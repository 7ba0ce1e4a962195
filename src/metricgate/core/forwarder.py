"""Best-effort relay of newly stored metrics to the external collector."""

from collections.abc import Sequence

from metricgate.core.models import ForwardResult, ForwardStatus, Metric
from metricgate.core.ports import CollectorPort, MetricRecordStoragePort


class MetricsForwarder:
    """Sends one batch per call and flags the forwarded rows.

    Never raises for collector or marking failures: those come back as a
    ForwardResult with status FAILED for the caller to log.
    """

    def __init__(
        self,
        collector: CollectorPort,
        storage: MetricRecordStoragePort,
        enabled: bool = True,
    ) -> None:
        self.collector = collector
        self.storage = storage
        self.enabled = enabled

    async def forward(self, stored: Sequence[tuple[Metric, str]]) -> ForwardResult:
        """Forward metrics stored in this batch.

        Args:
            stored: (metric, fingerprint) pairs accepted by the gate, in order.

        Returns:
            ForwardResult describing what happened.
        """
        if not self.enabled:
            return ForwardResult(status=ForwardStatus.DISABLED)
        if not stored:
            return ForwardResult(status=ForwardStatus.EMPTY)

        metrics = [metric for metric, _ in stored]
        # @tra: Core.Forwarder.SingleBatchCall
        try:
            response = await self.collector.send(metrics)
            for metric, fingerprint in stored:
                await self.storage.mark_forwarded(metric, fingerprint, response)
        except Exception as exc:
            return ForwardResult(
                status=ForwardStatus.FAILED, count=len(metrics), error=exc
            )
        return ForwardResult(
            status=ForwardStatus.SENT, count=len(metrics), response=response
        )
