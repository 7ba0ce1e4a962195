"""Error taxonomy for the ingestion pipeline."""

from typing import Any

INVALID_PARAMETERS = "INVALID_PARAMETERS"
INTERNAL_ERROR = "INTERNAL_ERROR"


class MetricGateError(Exception):
    """Base class for errors surfaced to API clients.

    Attributes:
        code: Machine-readable error code for the response envelope.
        status_code: HTTP status the error maps to.
    """

    code = INTERNAL_ERROR
    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ParameterError(MetricGateError):
    """The request batch is missing, malformed or empty."""

    code = INVALID_PARAMETERS
    status_code = 400


class MetricValidationError(MetricGateError):
    """One or more metrics failed schema checks.

    Attributes:
        details: Per-field violations as ``{"path": ..., "message": ...}``.
    """

    code = INVALID_PARAMETERS
    status_code = 400

    def __init__(
        self,
        details: list[dict[str, Any]],
        message: str = "Validation failed",
    ) -> None:
        super().__init__(message)
        self.details = details


class StoreFailure(MetricGateError):
    """The persistence layer failed for a reason other than a duplicate."""

    code = INTERNAL_ERROR
    status_code = 500


class DuplicateMetricError(Exception):
    """Insert rejected by the storage uniqueness constraint.

    Not a failure: the gate treats it as a skipped duplicate.
    """


class ForwardFailure(Exception):
    """The external collector was unreachable, slow or returned non-2xx."""


class ConfigError(ValueError):
    """Invalid configuration value."""
