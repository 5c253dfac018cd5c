"""Runtime components: the batching shipper and its lifecycle."""

from lokiship.runtime.lifecycle import LifecycleState, ShipperRuntime
from lokiship.runtime.shipper import BatchingShipper

__all__ = [
    "BatchingShipper",
    "LifecycleState",
    "ShipperRuntime",
]
