"""JSON response envelope shared by the HTTP endpoints.

Success: ``{"success": true, "data": ...}``.
Error: ``{"success": false, "error": {"code", "message", "details"?}}``.
"""

from typing import Any

from fastapi.responses import JSONResponse

from metricgate.core.errors import MetricGateError, MetricValidationError


def success_response(data: Any, status_code: int = 200) -> JSONResponse:
    return JSONResponse({"success": True, "data": data}, status_code=status_code)


def error_response(
    code: str,
    message: str,
    status_code: int = 400,
    details: Any = None,
) -> JSONResponse:
    error: dict[str, Any] = {"code": code, "message": message}
    if details is not None:
        error["details"] = details
    return JSONResponse({"success": False, "error": error}, status_code=status_code)


def error_from_exception(exc: MetricGateError) -> JSONResponse:
    """Render a MetricGateError using its code and status."""
    details = exc.details if isinstance(exc, MetricValidationError) else None
    return error_response(exc.code, exc.message, exc.status_code, details)
