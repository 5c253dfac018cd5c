"""Process lifecycle management for the log shipper.

The runtime owns the sink client and the shipper, starts the flush task when
the process starts serving and guarantees a final drain when it stops.

States: UNINITIALIZED → READY → DRAINING → TERMINATED. No transition skips a
state.
"""

import asyncio
import logging
from enum import Enum
from types import TracebackType

from lokiship.adapters.sinks.http import HttpPushSink
from lokiship.core.errors import LifecycleError
from lokiship.core.models import ShipperConfig, ShipperStats
from lokiship.core.ports import SinkPort
from lokiship.runtime.shipper import BatchingShipper

logger = logging.getLogger(__name__)


class LifecycleState(str, Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"
    DRAINING = "draining"
    TERMINATED = "terminated"


class ShipperRuntime:
    """Owns a BatchingShipper for the lifetime of the process.

    Construction builds the sink and the shipper, so a configuration that
    cannot produce a working client fails before any request is served.

    Example:
        ```python
        runtime = ShipperRuntime(ShipperConfig(push_url=url))
        async with runtime:
            runtime.shipper.enqueue("INFO", "serving")
        ```

    Args:
        config: Validated shipper configuration.
        sink: Sink to use instead of an HttpPushSink built from the config.
    """

    def __init__(self, config: ShipperConfig, sink: SinkPort | None = None) -> None:
        self.config = config
        self.sink: SinkPort = sink or HttpPushSink(
            config.push_url,
            timeout=config.request_timeout,
            tenant_id=config.tenant_id,
            max_line_bytes=config.max_line_bytes,
        )
        self.shipper = BatchingShipper(config, self.sink)
        self.state = LifecycleState.UNINITIALIZED
        self.final_stats: ShipperStats | None = None
        self._stopping: asyncio.Future[ShipperStats] | None = None

    async def start(self) -> None:
        """UNINITIALIZED → READY: start the background flush task."""
        # @tra: Lifecycle.Transitions
        if self.state is not LifecycleState.UNINITIALIZED:
            raise LifecycleError(f"Cannot start runtime in state {self.state.value}")
        await self.shipper.start()
        self.state = LifecycleState.READY
        logger.info(
            "Shipping logs to %s with labels %s",
            self.config.push_url,
            dict(self.config.labels),
        )

    async def stop(self) -> ShipperStats:
        """READY → DRAINING → TERMINATED: drain the shipper and close the sink.

        Safe to call more than once and from concurrent tasks; every caller
        returns only after the runtime is TERMINATED and the sink is closed.

        Raises:
            LifecycleError: If the runtime was never started.
        """
        # @tra: Lifecycle.ConcurrentStop
        if self.state is LifecycleState.UNINITIALIZED:
            raise LifecycleError("Cannot stop a runtime that was never started")
        if self._stopping is None:
            self.state = LifecycleState.DRAINING
            logger.info("Draining log shipper")
            self._stopping = asyncio.ensure_future(self._drain())
        return await asyncio.shield(self._stopping)

    async def _drain(self) -> ShipperStats:
        try:
            stats = await self.shipper.shutdown(self.config.shutdown_timeout)
        finally:
            try:
                await self.sink.aclose()
            finally:
                self.state = LifecycleState.TERMINATED
        self.final_stats = stats
        logger.info(
            "Log shipper terminated: %d sent, %d dropped", stats.sent, stats.dropped
        )
        return stats

    async def __aenter__(self) -> "ShipperRuntime":
        # @tra: Lifecycle.ContextManager
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.stop()
