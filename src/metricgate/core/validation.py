"""Request payload validation.

Parses the raw ``{"metrics": [...]}`` body into Metric objects. Batch-level
problems raise ParameterError; per-metric schema violations across the whole
batch are collected into one MetricValidationError. No metric is returned
unless the entire batch is valid.
"""

import math
from typing import Annotated, Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictStr,
    ValidationError,
    field_validator,
)

from metricgate.core.errors import MetricValidationError, ParameterError
from metricgate.core.models import Metric

EMPTY_BATCH_MESSAGE = "Metrics array is required and cannot be empty"


class MetricIn(BaseModel):
    """Schema for one submitted metric."""

    model_config = ConfigDict(extra="ignore")

    metric_name: Annotated[StrictStr, Field(min_length=1)]
    page_path: StrictStr | None = None
    value: int | float
    tags: dict[str, Any]
    type: StrictStr

    @field_validator("value", mode="before")
    @classmethod
    def _finite_number(cls, value: Any) -> Any:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError("Input should be a number")
        if isinstance(value, float) and not math.isfinite(value):
            raise ValueError("Input should be a finite number")
        return value

    def to_metric(self) -> Metric:
        return Metric(
            name=self.metric_name,
            value=self.value,
            tags=dict(self.tags),
            type=self.type,
            page_path=self.page_path or None,
        )


def _format_loc(prefix: tuple[str | int, ...], loc: tuple[str | int, ...]) -> str:
    return ".".join(str(part) for part in (*prefix, *loc))


def parse_batch(payload: Any) -> list[Metric]:
    """Validate a request body and return its metrics in submission order.

    Args:
        payload: Decoded JSON body.

    Returns:
        List of Metric objects.

    Raises:
        ParameterError: ``metrics`` is missing, not a list, or empty.
        MetricValidationError: Any element fails schema checks.
    """
    # @tra: Core.Validation.EmptyBatch
    if not isinstance(payload, dict):
        raise ParameterError(EMPTY_BATCH_MESSAGE)
    raw_metrics = payload.get("metrics")
    if not isinstance(raw_metrics, list) or not raw_metrics:
        raise ParameterError(EMPTY_BATCH_MESSAGE)

    metrics: list[Metric] = []
    details: list[dict[str, Any]] = []
    for index, item in enumerate(raw_metrics):
        try:
            metrics.append(MetricIn.model_validate(item).to_metric())
        except ValidationError as exc:
            details.extend(
                {
                    "path": _format_loc(("metrics", index), tuple(err["loc"])),
                    "message": err["msg"],
                }
                for err in exc.errors()
            )

    # @tra: Core.Validation.CollectsAllViolations
    if details:
        raise MetricValidationError(details)
    return metrics
