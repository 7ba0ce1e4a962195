"""HTTP collector adapter for forwarding metric batches."""

import json
from collections.abc import Sequence
from typing import Any

import httpx

from metricgate.core.config import DEFAULT_USER_AGENT
from metricgate.core.errors import ForwardFailure
from metricgate.core.models import Metric

# The collector expects a JSON body labelled as text/plain
CONTENT_TYPE = "text/plain;charset=UTF-8"


def encode_batch(metrics: Sequence[Metric]) -> str:
    """Serialize a batch into the collector's ``{"metrics": [...]}`` body."""
    return json.dumps({"metrics": [metric.to_payload() for metric in metrics]})


def _decode_response(response: httpx.Response) -> Any:
    if not response.content:
        return {}
    try:
        return response.json()
    except ValueError:
        return response.text


# @tra: Adapter.HttpCollector.ImplementsCollectorPort
class HttpCollector:
    """Posts metric batches to an external HTTP endpoint.

    Every failure mode (transport error, timeout, non-2xx status) is raised
    as ForwardFailure.
    """

    def __init__(
        self,
        url: str,
        timeout: float = 10.0,
        user_agent: str = DEFAULT_USER_AGENT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the collector.

        Args:
            url: Collector endpoint receiving POST requests.
            timeout: Total timeout in seconds for one request.
            user_agent: User-Agent header value.
            transport: Optional httpx transport (used in tests).
        """
        self.url = url
        self.timeout = timeout
        self.user_agent = user_agent
        self._transport = transport

    async def send(self, metrics: Sequence[Metric]) -> Any:
        """POST the batch and return the decoded response body."""
        headers = {"Content-Type": CONTENT_TYPE, "User-Agent": self.user_agent}
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.post(
                    self.url, content=encode_batch(metrics), headers=headers
                )
                response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise ForwardFailure(
                f"Collector returned HTTP {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise ForwardFailure(f"Collector request failed: {exc!r}") from exc
        return _decode_response(response)
