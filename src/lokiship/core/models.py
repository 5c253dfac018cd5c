"""Core domain models for log shipping."""

import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import IntEnum
from types import MappingProxyType
from urllib.parse import urlsplit

from lokiship.core.errors import ConfigError

# Loki (Prometheus) label names
LABEL_NAME_RE = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")

DEFAULT_PUSH_URL = "http://localhost:3100/loki/api/v1/push"
DEFAULT_MAX_LINE_BYTES = 256 * 1024


class Level(IntEnum):
    """Severity of a log event.

    Values line up with the standard library ``logging`` levels so records
    can be compared against thresholds directly. ``DISABLE`` is only useful
    as a threshold: nothing is ever at or above it.
    """

    # @tra: Core.Level.Ordering
    DEBUG = 10
    INFO = 20
    WARN = 30
    ERROR = 40
    DISABLE = 100

    @classmethod
    def parse(cls, value: "Level | str | int") -> "Level":
        """Convert a level name, number or member into a Level.

        Names are case-insensitive; "WARNING" is accepted for WARN and
        "CRITICAL"/"FATAL" for ERROR. Numbers that are not a member's value
        are mapped like stdlib logging levels.

        Raises:
            ValueError: If the value does not name a level.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, int):
            try:
                return cls(value)
            except ValueError:
                return cls.from_logging(value)
        name = str(value).strip().upper()
        name = _LEVEL_ALIASES.get(name, name)
        try:
            return cls[name]
        except KeyError:
            raise ValueError(f"Unknown log level: {value!r}") from None

    @classmethod
    def from_logging(cls, levelno: int) -> "Level":
        """Map a stdlib logging level number onto the closest Level."""
        if levelno >= logging.ERROR:
            return cls.ERROR
        if levelno >= logging.WARNING:
            return cls.WARN
        if levelno >= logging.INFO:
            return cls.INFO
        return cls.DEBUG

    @property
    def logging_level(self) -> int:
        """Equivalent stdlib logging level number."""
        return min(int(self), logging.CRITICAL)


_LEVEL_ALIASES = {
    "WARNING": "WARN",
    "CRITICAL": "ERROR",
    "FATAL": "ERROR",
}


@dataclass(frozen=True)
class LogEvent:
    """A single log line waiting to be shipped.

    Attributes:
        timestamp_ns: Wall-clock time in nanoseconds since the epoch.
        level: Severity of the event.
        labels: Label set identifying the stream the event belongs to.
        message: Free-text log line.
    """

    timestamp_ns: int
    level: Level
    labels: Mapping[str, str] = field(default_factory=dict)
    message: str = ""

    @property
    def timestamp(self) -> float:
        """Unix timestamp in seconds."""
        return self.timestamp_ns / 1_000_000_000


def validate_labels(labels: Mapping[str, str]) -> dict[str, str]:
    """Check that a label set is usable as a Loki stream selector.

    Returns:
        A copy of the labels with values coerced to strings.

    Raises:
        ConfigError: If the label set is empty or a name is invalid.
    """
    if not labels:
        raise ConfigError("At least one label is required")
    checked: dict[str, str] = {}
    for name, value in labels.items():
        if not isinstance(name, str) or not LABEL_NAME_RE.match(name):
            raise ConfigError(f"Invalid label name: {name!r}")
        checked[name] = str(value)
    return checked


def validate_push_url(url: str) -> str:
    """Check that the sink push URL is an absolute http(s) URL.

    Raises:
        ConfigError: If the URL is malformed.
    """
    if not isinstance(url, str) or not url.strip():
        raise ConfigError("Sink push URL must not be empty")
    try:
        parts = urlsplit(url.strip())
        port = parts.port
    except ValueError as e:
        raise ConfigError(f"Malformed sink push URL {url!r}: {e}") from e
    if parts.scheme not in ("http", "https"):
        raise ConfigError(f"Sink push URL must use http or https: {url!r}")
    if not parts.hostname:
        raise ConfigError(f"Sink push URL has no host: {url!r}")
    if port == 0:
        raise ConfigError(f"Sink push URL has an invalid port: {url!r}")
    return url.strip()


@dataclass(frozen=True)
class ShipperConfig:
    """Shipper configuration, validated on construction.

    Attributes:
        push_url: Loki push endpoint.
        labels: Label set attached to every event from this process. Stored
            as a read-only mapping shared by all events.
        batch_wait: Maximum seconds an event may wait in the buffer.
        batch_max_entries: Buffered count that forces a flush.
        send_level: Events below this level are not shipped.
        print_level: Events at or above this level are also logged locally.
        max_buffered_entries: Hard cap on the buffer; the oldest events are
            dropped beyond it. Defaults to four batches.
        max_retries: Retries for a batch after a retryable sink error.
        min_backoff: First delay between retries, in seconds.
        max_backoff: Upper bound on the delay between retries.
        request_timeout: Timeout for one push request, in seconds.
        shutdown_timeout: How long shutdown may spend draining, in seconds.
        max_line_bytes: Longer messages are truncated.
        tenant_id: Sent as X-Scope-OrgID for multi-tenant Loki.
    """

    push_url: str = DEFAULT_PUSH_URL
    labels: Mapping[str, str] = field(default_factory=lambda: {"app": "crud-server"})
    batch_wait: float = 5.0
    batch_max_entries: int = 10000
    send_level: Level = Level.INFO
    print_level: Level = Level.ERROR
    max_buffered_entries: int | None = None
    max_retries: int = 3
    min_backoff: float = 0.5
    max_backoff: float = 5.0
    request_timeout: float = 10.0
    shutdown_timeout: float = 10.0
    max_line_bytes: int = DEFAULT_MAX_LINE_BYTES
    tenant_id: str | None = None

    def __post_init__(self) -> None:
        # @tra: Core.Config.MalformedURL
        object.__setattr__(self, "push_url", validate_push_url(self.push_url))
        object.__setattr__(
            self, "labels", MappingProxyType(validate_labels(self.labels))
        )
        try:
            object.__setattr__(self, "send_level", Level.parse(self.send_level))
            object.__setattr__(self, "print_level", Level.parse(self.print_level))
        except ValueError as e:
            raise ConfigError(str(e)) from e
        if self.batch_wait <= 0:
            raise ConfigError(f"batch_wait must be positive, got {self.batch_wait}")
        if self.batch_max_entries < 1:
            raise ConfigError(
                f"batch_max_entries must be at least 1, got {self.batch_max_entries}"
            )
        if self.max_buffered_entries is None:
            object.__setattr__(
                self, "max_buffered_entries", self.batch_max_entries * 4
            )
        elif self.max_buffered_entries < self.batch_max_entries:
            raise ConfigError(
                "max_buffered_entries must be at least batch_max_entries "
                f"({self.max_buffered_entries} < {self.batch_max_entries})"
            )
        if self.max_retries < 0:
            raise ConfigError(f"max_retries must not be negative: {self.max_retries}")
        if self.min_backoff < 0 or self.max_backoff < self.min_backoff:
            raise ConfigError(
                f"Invalid backoff range: {self.min_backoff}..{self.max_backoff}"
            )
        if self.request_timeout <= 0 or self.shutdown_timeout <= 0:
            raise ConfigError("Timeouts must be positive")
        if self.max_line_bytes < 64:
            raise ConfigError(f"max_line_bytes too small: {self.max_line_bytes}")


@dataclass(frozen=True)
class ShipperStats:
    """Counters describing what happened to enqueued events.

    Attributes:
        enqueued: Events accepted into the buffer.
        sent: Events acknowledged by the sink.
        batches_sent: Successful push requests.
        batches_failed: Batches dropped after a non-retryable error or
            exhausted retries.
        dropped_overflow: Oldest events evicted from a full buffer.
        dropped_undelivered: Events lost for any other reason (failed or
            cancelled batches, leftovers at shutdown, enqueued after shutdown).
        buffered: Events currently waiting in the buffer.
    """

    enqueued: int = 0
    sent: int = 0
    batches_sent: int = 0
    batches_failed: int = 0
    dropped_overflow: int = 0
    dropped_undelivered: int = 0
    buffered: int = 0

    @property
    def dropped(self) -> int:
        """Total number of events that will never reach the sink."""
        return self.dropped_overflow + self.dropped_undelivered
