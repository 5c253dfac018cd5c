"""Example FastAPI application shipping request logs without a Loki instance.

Run with:
    uvicorn examples.fastapi_example:app --reload

Endpoints:
    /          - hello endpoint that also logs through the stdlib logger
    /error     - raises, producing an ERROR "completed" line with status 500
    /shipped   - events delivered to the in-memory sink so far
    /stats     - shipper delivery counters

Swap InMemorySink for HttpPushSink (or drop the sink argument) to push to a
real Loki endpoint.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import asdict

from fastapi import FastAPI

from lokiship import (
    InMemorySink,
    RequestLoggingMiddleware,
    ShipperConfig,
    ShipperHandler,
    ShipperRuntime,
)

logger = logging.getLogger("example")
logger.setLevel(logging.INFO)

sink = InMemorySink()
runtime = ShipperRuntime(
    ShipperConfig(labels={"app": "example", "env": "dev"}, batch_wait=1.0),
    sink=sink,
)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    handler = ShipperHandler(runtime.shipper)
    logger.addHandler(handler)
    async with runtime:
        yield
    logger.removeHandler(handler)


app = FastAPI(title="lokiship example", lifespan=lifespan)
app.add_middleware(
    RequestLoggingMiddleware, shipper=runtime.shipper, exclude_paths=["/shipped"]
)


@app.get("/")
async def root() -> dict[str, str]:
    logger.info("Saying hello")
    return {"message": "Hello! Check /shipped after a second."}


@app.get("/error")
async def error_endpoint() -> dict[str, str]:
    raise ValueError("Intentional error for demonstration")


@app.get("/shipped")
async def shipped() -> list[dict[str, str]]:
    return [
        {"level": event.level.name, "message": event.message} for event in sink.events
    ]


@app.get("/stats")
async def stats() -> dict[str, int]:
    return asdict(runtime.shipper.stats)
