"""Bounded event buffer.

Holds events between flushes in a fixed-size deque. When the buffer is
full, the oldest event is evicted to make room and the eviction is counted,
so memory stays bounded while the sink is unreachable.
"""

from collections import deque

from lokiship.core.models import LogEvent


class EventBuffer:
    """Drop-oldest FIFO of pending log events.

    Not thread-safe on its own; the shipper guards every call with its lock.

    Args:
        max_size: Maximum number of events to hold.
    """

    def __init__(self, max_size: int) -> None:
        if max_size < 1:
            raise ValueError(f"max_size must be at least 1, got {max_size}")
        self._max_size = max_size
        self._events: deque[LogEvent] = deque(maxlen=max_size)
        self.dropped = 0

    def __len__(self) -> int:
        return len(self._events)

    def append(self, event: LogEvent) -> bool:
        """Add an event at the tail.

        Returns:
            True if the oldest event had to be evicted.
        """
        # @tra: Buffer.DropOldest
        evicted = len(self._events) == self._max_size
        if evicted:
            self.dropped += 1
        self._events.append(event)
        return evicted

    def swap(self) -> deque[LogEvent]:
        """Replace the contents with an empty buffer and return the old one."""
        events = self._events
        self._events = deque(maxlen=self._max_size)
        return events
