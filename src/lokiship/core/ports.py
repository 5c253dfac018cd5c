"""Port interfaces for sinks and shippers.

These protocols define the contracts that adapters must implement.
The core domain depends only on these interfaces, not concrete implementations.
"""

from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from lokiship.core.models import Level, LogEvent


@runtime_checkable
class SinkPort(Protocol):
    """Port for delivering batches to a log aggregation backend.

    Adapters implementing this protocol transmit one batch per call.
    Examples: HttpPushSink, InMemorySink.
    """

    async def push(self, events: Sequence[LogEvent]) -> None:
        """Deliver a batch of events in order.

        Raises:
            SinkError: If the batch was not accepted.
        """
        ...

    async def aclose(self) -> None:
        """Release network resources held by the sink."""
        ...


@runtime_checkable
class ShipperPort(Protocol):
    """Port for submitting log lines from the request path.

    Implementations must return promptly and never raise because the sink
    is unavailable.
    """

    def enqueue(self, level: Level | str, message: str) -> None:
        """Submit a log line for asynchronous delivery."""
        ...
