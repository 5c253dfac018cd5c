"""Integration tests for HttpPushSink against an httpx.MockTransport."""

import json

import httpx
import pytest

from lokiship.adapters.sinks.http import HttpPushSink
from lokiship.core.encoding.loki import decode_push
from lokiship.core.errors import ConfigError, SinkError
from lokiship.core.models import Level, LogEvent
from lokiship.core.ports import SinkPort

pytestmark = [
    pytest.mark.integration,
    pytest.mark.encoding,
    pytest.mark.tier(2),
]

PUSH_URL = "http://loki.test/loki/api/v1/push"


def _events(count: int = 2) -> list[LogEvent]:
    return [
        LogEvent(
            timestamp_ns=1_700_000_000_000_000_000 + i,
            level=Level.INFO,
            labels={"app": "crud-server"},
            message=f"event {i}",
        )
        for i in range(count)
    ]


def _sink(handler, **kwargs) -> tuple[HttpPushSink, httpx.AsyncClient]:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HttpPushSink(PUSH_URL, client=client, **kwargs), client


def test_http_push_sink_satisfies_sink_port() -> None:
    assert isinstance(HttpPushSink(PUSH_URL), SinkPort)


@pytest.mark.tra("Sink.Push")
async def test_push_posts_encoded_batch() -> None:
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(204)

    sink, client = _sink(handler)
    async with client:
        await sink.push(_events())

    assert len(requests) == 1
    request = requests[0]
    assert request.method == "POST"
    assert str(request.url) == PUSH_URL
    assert request.headers["content-type"] == "application/json"
    assert "x-scope-orgid" not in request.headers

    body = json.loads(request.content)
    assert body["streams"][0]["stream"] == {"app": "crud-server"}
    assert [e.message for e in decode_push(request.content)] == ["event 0", "event 1"]


async def test_tenant_id_is_sent_as_header() -> None:
    seen: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.headers["x-scope-orgid"])
        return httpx.Response(204)

    sink, client = _sink(handler, tenant_id="team-a")
    async with client:
        await sink.push(_events(1))

    assert seen == ["team-a"]


@pytest.mark.parametrize(
    ("status_code", "retryable"),
    [(500, True), (503, True), (429, True), (400, False), (401, False)],
)
async def test_error_status_raises_sink_error(status_code, retryable) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code, text="nope")

    sink, client = _sink(handler)
    async with client:
        with pytest.raises(SinkError) as exc_info:
            await sink.push(_events())

    assert exc_info.value.status_code == status_code
    assert exc_info.value.retryable is retryable
    assert "nope" in str(exc_info.value)


async def test_transport_error_is_retryable() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    sink, client = _sink(handler)
    async with client:
        with pytest.raises(SinkError) as exc_info:
            await sink.push(_events())

    assert exc_info.value.retryable is True
    assert exc_info.value.status_code is None
    assert "ConnectError" in str(exc_info.value)


async def test_long_lines_are_truncated_on_the_wire() -> None:
    bodies: list[bytes] = []

    def handler(request: httpx.Request) -> httpx.Response:
        bodies.append(request.content)
        return httpx.Response(204)

    sink, client = _sink(handler, max_line_bytes=64)
    event = LogEvent(
        timestamp_ns=1, level=Level.INFO, labels={"app": "x"}, message="y" * 500
    )
    async with client:
        await sink.push([event])

    line = decode_push(bodies[0])[0].message
    assert len(line.encode("utf-8")) <= 64
    assert line.endswith("...[truncated]")


async def test_aclose_leaves_injected_client_open() -> None:
    sink, client = _sink(lambda request: httpx.Response(204))

    await sink.aclose()

    assert not client.is_closed
    await client.aclose()


async def test_aclose_closes_own_client() -> None:
    sink = HttpPushSink(PUSH_URL)

    await sink.aclose()

    assert sink._client.is_closed


@pytest.mark.parametrize(
    "url", ["not a url", "ftp://loki.test/push", "http://", "http://loki.test:99999/"]
)
def test_malformed_url_raises_config_error(url: str) -> None:
    with pytest.raises(ConfigError):
        HttpPushSink(url)
