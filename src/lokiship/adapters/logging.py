"""Python logging handler adapter for lokiship.

This adapter bridges Python's standard library logging module to a shipper,
allowing application logs to be forwarded to the sink alongside request
events.
"""

import logging

from lokiship.core.models import Level
from lokiship.core.ports import ShipperPort

# Loggers whose records must never be shipped: they report on the pipeline.
_INTERNAL_LOGGER_PREFIX = "lokiship"


def _is_internal(record: logging.LogRecord) -> bool:
    # @tra: Handler.NoFeedbackLoop
    return record.name == _INTERNAL_LOGGER_PREFIX or record.name.startswith(
        _INTERNAL_LOGGER_PREFIX + "."
    )


class ShipperHandler(logging.Handler):
    """Logging handler that enqueues formatted records on a shipper.

    Records from lokiship's own loggers are ignored so shipper diagnostics
    are never routed back through the pipeline.

    Example:
        ```python
        handler = ShipperHandler(runtime.shipper)
        logging.getLogger("myapp").addHandler(handler)
        ```
    """

    def __init__(self, shipper: ShipperPort, level: int = logging.NOTSET) -> None:
        """Initialize the handler.

        Args:
            shipper: Destination for formatted records.
            level: Minimum record level handled.
        """
        super().__init__(level)
        self._shipper = shipper
        self.addFilter(lambda record: not _is_internal(record))

    def emit(self, record: logging.LogRecord) -> None:
        """Format the record and enqueue it at the mapped level."""
        try:
            message = self.format(record)
            self._shipper.enqueue(Level.from_logging(record.levelno), message)
        except Exception:
            self.handleError(record)
