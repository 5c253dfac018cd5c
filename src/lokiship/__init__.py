"""Request logging middleware with batched delivery to Grafana Loki."""

from lokiship.adapters.frameworks.asgi import RequestLoggingMiddleware
from lokiship.adapters.logging import ShipperHandler
from lokiship.adapters.sinks import HttpPushSink, InMemorySink
from lokiship.core.errors import ConfigError, LifecycleError, LokishipError, SinkError
from lokiship.core.models import Level, LogEvent, ShipperConfig, ShipperStats
from lokiship.runtime import BatchingShipper, LifecycleState, ShipperRuntime

__all__ = [
    "BatchingShipper",
    "ConfigError",
    "HttpPushSink",
    "InMemorySink",
    "Level",
    "LifecycleError",
    "LifecycleState",
    "LogEvent",
    "LokishipError",
    "RequestLoggingMiddleware",
    "ShipperConfig",
    "ShipperHandler",
    "ShipperRuntime",
    "ShipperStats",
    "SinkError",
]
