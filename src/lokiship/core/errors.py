"""Exception types raised by lokiship."""


class LokishipError(Exception):
    """Base class for all lokiship errors."""


class ConfigError(LokishipError, ValueError):
    """Shipper configuration is invalid.

    Raised while building the configuration or the sink client, before any
    request is served.
    """


class SinkError(LokishipError):
    """A batch could not be delivered to the sink.

    Attributes:
        retryable: True if sending the same batch again may succeed
            (network errors, HTTP 429 and 5xx responses).
        status_code: HTTP status returned by the sink, if any.
    """

    def __init__(
        self, message: str, retryable: bool = True, status_code: int | None = None
    ) -> None:
        super().__init__(message)
        self.retryable = retryable
        self.status_code = status_code


class LifecycleError(LokishipError, RuntimeError):
    """Invalid runtime state transition."""
