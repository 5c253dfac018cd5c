"""Batching log shipper.

Decouples log production on the request path from network delivery.
``enqueue`` only appends to a bounded in-memory buffer; a single background
task flushes the buffer to the sink when it reaches ``batch_max_entries`` or
when ``batch_wait`` has passed since the previous flush, whichever comes
first.
"""

import asyncio
import logging
import threading
import time
from collections.abc import Sequence

from lokiship.core.buffer import EventBuffer
from lokiship.core.errors import SinkError
from lokiship.core.models import Level, LogEvent, ShipperConfig, ShipperStats
from lokiship.core.ports import SinkPort

logger = logging.getLogger(__name__)

# Local echo of events at or above print_level.
echo_logger = logging.getLogger("lokiship.echo")


class BatchingShipper:
    """Buffers log events and pushes them to a sink in batches.

    Example:
        ```python
        shipper = BatchingShipper(config, HttpPushSink(config.push_url))
        await shipper.start()
        shipper.enqueue(Level.INFO, "hello")
        await shipper.shutdown()
        ```

    Args:
        config: Validated shipper configuration.
        sink: Destination for flushed batches.
    """

    def __init__(self, config: ShipperConfig, sink: SinkPort) -> None:
        self.config = config
        self.sink = sink
        assert config.max_buffered_entries is not None
        self._buffer = EventBuffer(config.max_buffered_entries)
        self._lock = threading.Lock()
        self._last_ns = 0

        self._loop: asyncio.AbstractEventLoop | None = None
        self._wake: asyncio.Event | None = None
        self._task: asyncio.Task[None] | None = None
        self._closing: asyncio.Task[ShipperStats] | None = None
        self._last_flush = 0.0
        self._stopping = False
        self._closed = False

        self._enqueued = 0
        self._sent = 0
        self._batches_sent = 0
        self._batches_failed = 0
        self._undelivered = 0
        self._reported_overflow = 0

    @property
    def running(self) -> bool:
        """True while the flush task is active."""
        return self._task is not None and not self._task.done()

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def stats(self) -> ShipperStats:
        """Snapshot of the delivery counters."""
        with self._lock:
            return ShipperStats(
                enqueued=self._enqueued,
                sent=self._sent,
                batches_sent=self._batches_sent,
                batches_failed=self._batches_failed,
                dropped_overflow=self._buffer.dropped,
                dropped_undelivered=self._undelivered,
                buffered=len(self._buffer),
            )

    async def start(self) -> None:
        """Start the background flush task on the running event loop."""
        if self._task is not None:
            return
        self._loop = asyncio.get_running_loop()
        self._wake = asyncio.Event()
        self._last_flush = self._loop.time()
        self._task = self._loop.create_task(self._run(), name="lokiship-flush")
        if len(self._buffer) >= self.config.batch_max_entries:
            self._wake.set()
        logger.debug(
            "Log shipper started (batch_wait=%.2fs, batch_max_entries=%d)",
            self.config.batch_wait,
            self.config.batch_max_entries,
        )

    def enqueue(self, level: Level | str, message: str) -> None:
        """Submit a log line without waiting for the network.

        Safe to call from any thread. Lines below ``send_level`` are ignored;
        lines at or above ``print_level`` are also logged locally.
        """
        # @tra: Shipper.ThreadSafeEnqueue
        # @tra: Shipper.PrintLevel
        level = Level.parse(level)
        if level >= self.config.print_level:
            echo_logger.log(level.logging_level, "%s", message)
        if level < self.config.send_level:
            return
        with self._lock:
            if self._closed:
                self._undelivered += 1
                return
            self._last_ns = max(time.time_ns(), self._last_ns + 1)
            self._buffer.append(
                LogEvent(
                    timestamp_ns=self._last_ns,
                    level=level,
                    labels=self.config.labels,
                    message=message,
                )
            )
            self._enqueued += 1
            full = len(self._buffer) >= self.config.batch_max_entries
        if full:
            self._signal()

    def _signal(self) -> None:
        """Wake the flush loop from any thread."""
        loop, wake = self._loop, self._wake
        if loop is None or wake is None or loop.is_closed():
            return
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is loop:
            wake.set()
        else:
            loop.call_soon_threadsafe(wake.set)

    async def _run(self) -> None:
        """Flush loop: wait for the size or time trigger, then flush once."""
        # @tra: Shipper.Flush.CountTrigger
        # @tra: Shipper.Flush.TimeTrigger
        # @tra: Shipper.Flush.NoDoubleSend
        assert self._loop is not None and self._wake is not None
        while not self._stopping:
            timeout = self._last_flush + self.config.batch_wait - self._loop.time()
            if timeout > 0:
                try:
                    await asyncio.wait_for(self._wake.wait(), timeout)
                except TimeoutError:
                    pass
            if self._stopping:
                break
            self._wake.clear()
            await self._flush()
        # Final drain
        await self._flush()

    async def _flush(self) -> None:
        """Swap out the buffer and send its contents."""
        # @tra: Shipper.Ordering
        assert self._loop is not None
        self._last_flush = self._loop.time()
        with self._lock:
            pending = self._buffer.swap()
        self._report_overflow()
        if not pending:
            return
        events = list(pending)
        size = self.config.batch_max_entries
        for start in range(0, len(events), size):
            try:
                await self._send(events[start : start + size])
            except asyncio.CancelledError:
                with self._lock:
                    self._undelivered += len(events) - start
                raise

    async def _send(self, batch: Sequence[LogEvent]) -> None:
        """Push one batch, retrying retryable errors with exponential backoff."""
        backoff = self.config.min_backoff
        attempt = 0
        while True:
            attempt += 1
            try:
                await self.sink.push(batch)
            except SinkError as e:
                if not e.retryable or attempt > self.config.max_retries:
                    self._drop_batch(batch, attempt, e)
                    return
                logger.debug(
                    "Push attempt %d for %d log events failed, retrying in %.2fs: %s",
                    attempt,
                    len(batch),
                    backoff,
                    e,
                )
                await asyncio.sleep(backoff)
                backoff = min(backoff * 2, self.config.max_backoff)
            except Exception as e:
                logger.exception("Unexpected error pushing log batch")
                self._drop_batch(batch, attempt, e)
                return
            else:
                with self._lock:
                    self._sent += len(batch)
                    self._batches_sent += 1
                return

    def _drop_batch(
        self, batch: Sequence[LogEvent], attempts: int, error: Exception
    ) -> None:
        with self._lock:
            self._undelivered += len(batch)
            self._batches_failed += 1
        logger.warning(
            "Dropped batch of %d log events after %d attempt(s): %s",
            len(batch),
            attempts,
            error,
        )

    def _report_overflow(self) -> None:
        """Log how many events the full buffer evicted since the last report."""
        # @tra: Shipper.Overflow
        dropped = self._buffer.dropped
        new = dropped - self._reported_overflow
        if new > 0:
            self._reported_overflow = dropped
            logger.warning(
                "Log buffer full: dropped %d oldest events (%d in total)", new, dropped
            )

    async def shutdown(self, timeout: float | None = None) -> ShipperStats:
        """Stop the flush loop and drain the buffer.

        Waits for the final flush at most ``timeout`` seconds (default
        ``config.shutdown_timeout``); events that could not be sent by then
        are counted as dropped. Concurrent and repeated calls wait on the
        same drain.

        Returns:
            Final delivery counters.
        """
        # @tra: Shipper.ShutdownIdempotent
        # @tra: Shipper.ShutdownTimeout
        # @tra: Shipper.Drain
        if self._closing is None:
            if timeout is None:
                timeout = self.config.shutdown_timeout
            self._closing = asyncio.ensure_future(self._shutdown(timeout))
        return await asyncio.shield(self._closing)

    async def _shutdown(self, timeout: float) -> ShipperStats:
        await self.start()
        assert self._task is not None and self._wake is not None
        self._stopping = True
        self._wake.set()
        try:
            await asyncio.wait_for(asyncio.shield(self._task), timeout)
        except TimeoutError:
            logger.warning("Log shipper drain timed out after %.1fs", timeout)
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        except Exception:
            logger.exception("Log shipper flush task failed")
        with self._lock:
            self._closed = True
            leftover = len(self._buffer.swap())
            self._undelivered += leftover
        self._report_overflow()
        stats = self.stats
        if stats.dropped:
            logger.warning(
                "Log shipper stopped with %d undelivered events (%d overflow, %d failed)",
                stats.dropped,
                stats.dropped_overflow,
                stats.dropped_undelivered,
            )
        else:
            logger.debug("Log shipper stopped; %d events sent", stats.sent)
        return stats
