"""Wire encoders for the log sink."""

from lokiship.core.encoding.loki import (
    WireEntry,
    decode_push,
    encode_entry,
    encode_push,
    parse_labels,
)

__all__ = [
    "WireEntry",
    "decode_push",
    "encode_entry",
    "encode_push",
    "parse_labels",
]
