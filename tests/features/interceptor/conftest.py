"""Step definitions for the request logging feature."""

import asyncio
from dataclasses import dataclass, field
from typing import Any

import pytest
from pytest_bdd import given, parsers, then, when

from lokiship.adapters.frameworks.asgi import (
    Receive,
    RequestLoggingMiddleware,
    Scope,
    Send,
)
from lokiship.core.models import Level
from tests.fakes import FailingShipper, RecordingShipper


@dataclass
class InterceptorScenarioContext:
    """Shared state between steps in a request logging scenario."""

    shipper: Any = None
    status_code: int = 200
    raise_exception: Exception | None = None
    exclude_paths: list[str] = field(default_factory=list)
    response_status: int = 0
    exception_raised: Exception | None = None


@pytest.fixture
def ctx() -> InterceptorScenarioContext:
    """Fresh scenario context for each test."""
    return InterceptorScenarioContext()


def _create_test_app(ctx: InterceptorScenarioContext):
    async def app(scope: Scope, receive: Receive, send: Send) -> None:
        if ctx.raise_exception is not None:
            raise ctx.raise_exception
        await send(
            {"type": "http.response.start", "status": ctx.status_code, "headers": []}
        )
        await send({"type": "http.response.body", "body": b"{}"})

    return app


async def _simulate_request(
    ctx: InterceptorScenarioContext, method: str, path: str
) -> None:
    middleware = RequestLoggingMiddleware(
        _create_test_app(ctx), ctx.shipper, exclude_paths=ctx.exclude_paths
    )
    scope: Scope = {
        "type": "http",
        "method": method,
        "path": path,
        "headers": [],
        "query_string": b"",
    }

    async def receive() -> dict[str, Any]:
        return {"type": "http.request", "body": b""}

    async def send(message: dict[str, Any]) -> None:
        if message["type"] == "http.response.start":
            ctx.response_status = message["status"]

    await middleware(scope, receive, send)


# === Given ===
@given("a recording shipper")
def step_recording_shipper(ctx: InterceptorScenarioContext) -> None:
    ctx.shipper = RecordingShipper()


@given("a shipper that always fails")
def step_failing_shipper(ctx: InterceptorScenarioContext) -> None:
    ctx.shipper = FailingShipper()


@given(parsers.parse("the endpoint returns status {code:d}"))
def step_endpoint_status(ctx: InterceptorScenarioContext, code: int) -> None:
    ctx.status_code = code


@given("the endpoint raises an unhandled exception")
def step_endpoint_raises(ctx: InterceptorScenarioContext) -> None:
    ctx.raise_exception = RuntimeError("Unhandled error")


@given(parsers.parse('request logging excludes "{pattern}"'))
def step_exclude_path(ctx: InterceptorScenarioContext, pattern: str) -> None:
    ctx.exclude_paths.append(pattern)


# === When ===
@when(parsers.parse('a {method} request is made to "{path}"'))
def step_request(ctx: InterceptorScenarioContext, method: str, path: str) -> None:
    try:
        asyncio.run(_simulate_request(ctx, method, path))
    except Exception as e:
        ctx.exception_raised = e


# === Then ===
@then(parsers.parse("{count:d} lines are shipped"))
def step_line_count(ctx: InterceptorScenarioContext, count: int) -> None:
    assert len(ctx.shipper.lines) == count


@then(parsers.parse('line {index:d} is "{message}" at level {level}'))
def step_line_is(
    ctx: InterceptorScenarioContext, index: int, message: str, level: str
) -> None:
    assert ctx.shipper.lines[index - 1] == (Level.parse(level), message)


@then(parsers.parse('line {index:d} starts with "{prefix}"'))
def step_line_starts_with(
    ctx: InterceptorScenarioContext, index: int, prefix: str
) -> None:
    assert ctx.shipper.lines[index - 1][1].startswith(prefix)


@then(parsers.parse("line {index:d} has level {level}"))
def step_line_level(ctx: InterceptorScenarioContext, index: int, level: str) -> None:
    assert ctx.shipper.lines[index - 1][0] is Level.parse(level)


@then("the request raised an error")
def step_request_raised(ctx: InterceptorScenarioContext) -> None:
    assert isinstance(ctx.exception_raised, RuntimeError)


@then(parsers.parse("the response status is {code:d}"))
def step_response_status(ctx: InterceptorScenarioContext, code: int) -> None:
    assert ctx.exception_raised is None
    assert ctx.response_status == code
