"""ASGI request logging middleware.

Framework-agnostic: wraps any ASGI application and logs one line per HTTP
request through the standard logging module.
"""

import fnmatch
import logging
import time
import uuid
from collections.abc import Callable, Coroutine
from typing import Any

# ASGI type aliases
Scope = dict[str, Any]
Receive = Callable[[], Coroutine[Any, Any, dict[str, Any]]]
Send = Callable[[dict[str, Any]], Coroutine[Any, Any, None]]
ASGIApp = Callable[[Scope, Receive, Send], Coroutine[Any, Any, None]]

logger = logging.getLogger("metricgate.requests")


def _extract_request_id(scope: Scope, header_name: str = "X-Request-ID") -> str:
    """Extract or generate a request ID from ASGI scope headers.

    Searches for the specified header (case-insensitive). If not found,
    generates a new UUID.
    """
    # @tra: Adapter.ASGI.Middleware.RequestId.Extract
    header_bytes = header_name.lower().encode()
    headers: list[tuple[bytes, bytes]] = scope.get("headers", [])
    for name, value in headers:
        if name.lower() == header_bytes:
            return value.decode("utf-8", errors="replace")

    # @tra: Adapter.ASGI.Middleware.RequestId.Generate
    return str(uuid.uuid4())


def _get_log_level_for_status(status_code: int) -> int:
    """Map an HTTP status code to a logging level.

    2xx and anything unexpected log at INFO, 4xx at WARNING, 5xx at ERROR.
    """
    if 400 <= status_code < 500:
        return logging.WARNING
    if 500 <= status_code < 600:
        return logging.ERROR
    return logging.INFO


# @tra: Adapter.ASGI.Middleware.Passthrough
class RequestLoggingMiddleware:
    """ASGI middleware that logs each HTTP request with timing and request id.

    The request id is taken from the incoming header when present and echoed
    back on the response.
    """

    def __init__(
        self,
        app: ASGIApp,
        exclude_paths: list[str] | None = None,
        request_id_header: str = "X-Request-ID",
    ) -> None:
        """Initialize the middleware.

        Args:
            app: The ASGI application to wrap.
            exclude_paths: Paths not to log. Supports exact matches and
                wildcard patterns (e.g., "/internal/*").
            request_id_header: Header carrying the request id.
        """
        self.app = app
        self.exclude_paths = exclude_paths if exclude_paths is not None else ["/health"]
        self.request_id_header = request_id_header

    def _path_excluded(self, path: str) -> bool:
        return any(fnmatch.fnmatch(path, pattern) for pattern in self.exclude_paths)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        start_time = time.perf_counter()
        request_id = _extract_request_id(scope, self.request_id_header)
        header_name = self.request_id_header.lower().encode()
        captured: dict[str, Any] = {"status": None}

        async def wrapped_send(message: dict[str, Any]) -> None:
            if message["type"] == "http.response.start":
                captured["status"] = message["status"]
                headers = [
                    (k, v) for k, v in message.get("headers", []) if k.lower() != header_name
                ]
                headers.append((header_name, request_id.encode()))
                message = {**message, "headers": headers}
            await send(message)

        try:
            await self.app(scope, receive, wrapped_send)
        except Exception:
            captured["status"] = 500
            raise
        finally:
            duration = time.perf_counter() - start_time
            self._log_request(scope, request_id, captured["status"] or 0, duration)

    def _log_request(
        self, scope: Scope, request_id: str, status_code: int, duration: float
    ) -> None:
        if self._path_excluded(scope["path"]):
            return
        logger.log(
            _get_log_level_for_status(status_code),
            "%s %s %s",
            scope["method"],
            scope["path"],
            status_code,
            extra={
                "request_id": request_id,
                "method": scope["method"],
                "path": scope["path"],
                "status_code": status_code,
                "duration_ms": duration * 1000,
            },
        )
