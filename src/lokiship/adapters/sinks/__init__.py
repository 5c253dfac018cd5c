"""Sink adapters implementing SinkPort."""

from lokiship.adapters.sinks.http import HttpPushSink
from lokiship.adapters.sinks.in_memory import InMemorySink, UnreachableSink

__all__ = [
    "HttpPushSink",
    "InMemorySink",
    "UnreachableSink",
]
