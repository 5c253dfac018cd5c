"""Shared test fixtures for all test modules."""

from collections.abc import Callable
from typing import Any

import httpx
import pytest

from lokiship.adapters.sinks.in_memory import InMemorySink
from lokiship.core.models import ShipperConfig
from lokiship.runtime.shipper import BatchingShipper
from tests.fakes import RecordingShipper


@pytest.fixture
def recording_shipper() -> RecordingShipper:
    """Provide a shipper fake that records lines without a sink."""
    return RecordingShipper()


@pytest.fixture
def make_config() -> Callable[..., ShipperConfig]:
    """Factory fixture for ShipperConfig with fast test defaults.

    Usage:
        def test_something(make_config):
            config = make_config(batch_max_entries=3)
    """

    def _config(**overrides: Any) -> ShipperConfig:
        options: dict[str, Any] = {
            "push_url": "http://loki.test/loki/api/v1/push",
            "labels": {"app": "test"},
            "batch_wait": 0.2,
            "batch_max_entries": 100,
            "min_backoff": 0.01,
            "max_backoff": 0.02,
            "shutdown_timeout": 2.0,
        }
        options.update(overrides)
        return ShipperConfig(**options)

    return _config


@pytest.fixture
def sink() -> InMemorySink:
    """Provide an empty in-memory sink."""
    return InMemorySink()


@pytest.fixture
async def make_shipper(make_config):
    """Factory fixture for started shippers; all are shut down after the test.

    Usage:
        async def test_something(make_shipper, sink):
            shipper = await make_shipper(sink, batch_max_entries=3)
    """
    shippers: list[BatchingShipper] = []

    async def _shipper(sink_, start: bool = True, **overrides: Any) -> BatchingShipper:
        shipper = BatchingShipper(make_config(**overrides), sink_)
        shippers.append(shipper)
        if start:
            await shipper.start()
        return shipper

    yield _shipper
    for shipper in shippers:
        await shipper.shutdown(timeout=1.0)


# === ASGI Test Fixtures ===


@pytest.fixture
def basic_asgi_app():
    """Basic ASGI app fixture that returns 200 OK."""
    from lokiship.adapters.frameworks.asgi import Receive, Scope, Send

    async def app(scope: Scope, receive: Receive, send: Send) -> None:
        """Simple ASGI app that returns 200 OK."""
        await send({"type": "http.response.start", "status": 200, "headers": []})
        await send({"type": "http.response.body", "body": b"OK"})

    return app


@pytest.fixture
def asgi_scope():
    """Factory fixture for creating ASGI scope dicts."""
    from lokiship.adapters.frameworks.asgi import Scope

    def _scope(method: str = "GET", path: str = "/test") -> Scope:
        return {
            "type": "http",
            "method": method,
            "path": path,
            "query_string": b"",
            "headers": [],
        }

    return _scope


@pytest.fixture
def asgi_receive():
    """Async receive stub returning an empty request body."""

    async def receive() -> dict[str, object]:
        return {"type": "http.request", "body": b""}

    return receive


@pytest.fixture
def asgi_send_capture():
    """Fixture that returns a send callable and a responses list for capture."""

    responses: list[dict[str, object]] = []

    async def send(message: dict[str, object]) -> None:
        """Capture ASGI messages."""
        responses.append(message)

    return send, responses


@pytest.fixture
def asgi_test_client():
    """Factory fixture that creates an httpx.AsyncClient for ASGI testing.

    Usage:
        async def test_something(asgi_test_client):
            async with asgi_test_client(app) as client:
                response = await client.get("/endpoint")
    """

    def _get_client(app):
        """Return an AsyncClient context manager for the given app."""
        return httpx.AsyncClient(
            transport=httpx.ASGITransport(app=app), base_url="http://test"
        )

    return _get_client
