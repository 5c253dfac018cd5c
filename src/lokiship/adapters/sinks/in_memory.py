"""In-memory sink adapters."""

import asyncio
from collections.abc import Sequence

from lokiship.core.errors import SinkError
from lokiship.core.models import LogEvent


class InMemorySink:
    """In-memory implementation of SinkPort.

    Records every batch it receives. Suitable for testing and for running
    the service without a Loki instance.
    """

    def __init__(self) -> None:
        self.batches: list[list[LogEvent]] = []
        self.closed = False

    @property
    def events(self) -> list[LogEvent]:
        """All received events, in delivery order."""
        return [event for batch in self.batches for event in batch]

    async def push(self, events: Sequence[LogEvent]) -> None:
        """Record a batch."""
        self.batches.append(list(events))

    async def aclose(self) -> None:
        self.closed = True


class UnreachableSink(InMemorySink):
    """Sink that fails every push, optionally after a delay.

    Simulates an outage; ``attempts`` counts push calls.
    """

    def __init__(self, delay: float = 0.0, retryable: bool = True) -> None:
        super().__init__()
        self.delay = delay
        self.retryable = retryable
        self.attempts = 0

    async def push(self, events: Sequence[LogEvent]) -> None:
        self.attempts += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        raise SinkError("Sink unreachable", retryable=self.retryable)
