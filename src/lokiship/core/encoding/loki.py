"""Loki push API encoder for log events.

Produces the JSON body accepted by ``POST /loki/api/v1/push``::

    {"streams": [{"stream": {"app": "crud-server"},
                  "values": [["1702300000000000000", "line", {"level": "info"}]]}]}

Each value carries the level as structured metadata so that decoding
recovers it without parsing the line.
"""

import json
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from lokiship.core.errors import ConfigError
from lokiship.core.models import (
    DEFAULT_MAX_LINE_BYTES,
    Level,
    LogEvent,
    validate_labels,
)

TRUNCATION_MARKER = "...[truncated]"

_LABEL_PAIR_RE = re.compile(r'\s*([^\s=,{}"]+)\s*=\s*"((?:[^"\\]|\\.)*)"\s*')


@dataclass(frozen=True)
class WireEntry:
    """One encoded log line, ready to be placed in a stream.

    Attributes:
        labels: Stream label set.
        timestamp_ns: Nanosecond timestamp as a decimal string.
        line: Log line, truncated to the configured size.
        level: Lowercase level name sent as structured metadata.
    """

    labels: Mapping[str, str]
    timestamp_ns: str
    line: str
    level: str


def truncate_line(message: str, max_bytes: int) -> str:
    """Shorten a message to at most max_bytes of UTF-8.

    Cuts on a character boundary and appends a marker so readers can tell
    the line was shortened.
    """
    # @tra: Encoder.Truncate
    encoded = message.encode("utf-8")
    if len(encoded) <= max_bytes:
        return message
    keep = max(max_bytes - len(TRUNCATION_MARKER.encode("utf-8")), 0)
    head = encoded[:keep].decode("utf-8", errors="ignore")
    return head + TRUNCATION_MARKER


def encode_entry(
    level: Level | str,
    message: Any,
    labels: Mapping[str, str],
    timestamp_ns: int,
    max_line_bytes: int = DEFAULT_MAX_LINE_BYTES,
) -> WireEntry:
    """Encode a single log line.

    Args:
        level: Event severity.
        message: Log text; non-string values are converted with str().
        labels: Label set of the stream the line belongs to.
        timestamp_ns: Nanoseconds since the epoch.
        max_line_bytes: Messages longer than this are truncated.

    Returns:
        WireEntry for the line.
    """
    if not isinstance(message, str):
        message = str(message)
    return WireEntry(
        labels=dict(labels),
        timestamp_ns=str(int(timestamp_ns)),
        line=truncate_line(message, max_line_bytes),
        level=Level.parse(level).name.lower(),
    )


def encode_push(
    events: Iterable[LogEvent], max_line_bytes: int = DEFAULT_MAX_LINE_BYTES
) -> bytes:
    """Encode a batch of events to a Loki push request body.

    Events are grouped into one stream per label set. Streams appear in the
    order their first event was seen and values keep the input order.

    Args:
        events: Events in enqueue order.
        max_line_bytes: Per-line size limit.

    Returns:
        UTF-8 JSON body.
    """
    # @tra: Encoder.Streams.Isolation
    streams: dict[tuple[tuple[str, str], ...], dict[str, Any]] = {}
    for event in events:
        entry = encode_entry(
            event.level,
            event.message,
            event.labels,
            event.timestamp_ns,
            max_line_bytes=max_line_bytes,
        )
        key = tuple(sorted(entry.labels.items()))
        stream = streams.get(key)
        if stream is None:
            stream = {"stream": dict(entry.labels), "values": []}
            streams[key] = stream
        stream["values"].append(
            [entry.timestamp_ns, entry.line, {"level": entry.level}]
        )
    body = {"streams": list(streams.values())}
    return json.dumps(body, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def decode_push(body: bytes | str) -> list[LogEvent]:
    """Decode a Loki push request body back into events.

    Values without level metadata decode as INFO.

    Raises:
        ValueError: If the body is not a valid push request.
    """
    # @tra: Encoder.RoundTrip
    try:
        payload = json.loads(body)
        streams = payload["streams"]
    except (json.JSONDecodeError, KeyError, TypeError) as e:
        raise ValueError(f"Not a Loki push body: {e}") from e

    events: list[LogEvent] = []
    try:
        for stream in streams:
            labels = {str(k): str(v) for k, v in stream.get("stream", {}).items()}
            for value in stream.get("values", []):
                metadata = value[2] if len(value) > 2 else {}
                events.append(
                    LogEvent(
                        timestamp_ns=int(value[0]),
                        level=Level.parse(metadata.get("level", "info")),
                        labels=labels,
                        message=value[1],
                    )
                )
    except (AttributeError, IndexError, TypeError) as e:
        raise ValueError(f"Malformed Loki push stream: {e}") from e
    return events


def parse_labels(text: str) -> dict[str, str]:
    """Parse a promtail-style label selector such as ``{app="crud-server"}``.

    The surrounding braces are optional.

    Raises:
        ConfigError: If the text is not a valid label selector.
    """
    inner = text.strip()
    if inner.startswith("{") and inner.endswith("}"):
        inner = inner[1:-1]
    labels: dict[str, str] = {}
    pos = 0
    while pos < len(inner):
        match = _LABEL_PAIR_RE.match(inner, pos)
        if match is None:
            raise ConfigError(f"Malformed label set: {text!r}")
        name, raw_value = match.groups()
        labels[name] = re.sub(r"\\(.)", r"\1", raw_value)
        pos = match.end()
        if pos < len(inner):
            if inner[pos] != "," or pos == len(inner) - 1:
                raise ConfigError(f"Malformed label set: {text!r}")
            pos += 1
    return validate_labels(labels)
