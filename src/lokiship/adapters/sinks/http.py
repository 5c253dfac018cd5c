"""HTTP sink pushing batches to a Loki push endpoint."""

import logging
from collections.abc import Sequence

import httpx

from lokiship.core.encoding.loki import encode_push
from lokiship.core.errors import ConfigError, SinkError
from lokiship.core.models import DEFAULT_MAX_LINE_BYTES, LogEvent, validate_push_url

logger = logging.getLogger(__name__)


def _is_retryable_status(status_code: int) -> bool:
    """Loki answers 429 when rate limited and 5xx when ingesters are unhealthy."""
    return status_code == 429 or status_code >= 500


class HttpPushSink:
    """SinkPort implementation using httpx.

    Each push is one ``POST`` with a JSON body produced by encode_push.

    Args:
        push_url: Loki push endpoint.
        timeout: Timeout for a single request, in seconds.
        tenant_id: Optional X-Scope-OrgID header value.
        max_line_bytes: Per-line size limit passed to the encoder.
        client: Preconfigured client (tests use an httpx.MockTransport).
            A client passed in is not closed by aclose().
    """

    def __init__(
        self,
        push_url: str,
        timeout: float = 10.0,
        tenant_id: str | None = None,
        max_line_bytes: int = DEFAULT_MAX_LINE_BYTES,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.push_url = validate_push_url(push_url)
        try:
            httpx.URL(self.push_url)
        except httpx.InvalidURL as e:
            raise ConfigError(f"Malformed sink push URL {push_url!r}: {e}") from e
        self._max_line_bytes = max_line_bytes
        self._headers = {"Content-Type": "application/json"}
        if tenant_id:
            self._headers["X-Scope-OrgID"] = tenant_id
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def push(self, events: Sequence[LogEvent]) -> None:
        """POST a batch to the sink.

        Raises:
            SinkError: On transport errors or a 4xx/5xx response.
        """
        # @tra: Sink.Push
        body = encode_push(events, max_line_bytes=self._max_line_bytes)
        try:
            response = await self._client.post(
                self.push_url, content=body, headers=self._headers
            )
        except httpx.HTTPError as e:
            raise SinkError(
                f"Push to {self.push_url} failed: {type(e).__name__}: {e}"
            ) from e
        if response.status_code >= 400:
            raise SinkError(
                f"Sink rejected batch of {len(events)} with status "
                f"{response.status_code}: {response.text[:200]}",
                retryable=_is_retryable_status(response.status_code),
                status_code=response.status_code,
            )
        logger.debug("Pushed %d log events to %s", len(events), self.push_url)

    async def aclose(self) -> None:
        """Close the underlying client if this sink created it."""
        if self._owns_client:
            await self._client.aclose()
