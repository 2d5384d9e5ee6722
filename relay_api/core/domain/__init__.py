"""Domain - modelos y normalización de lecturas."""

from .reading import FurnaceSample, Payload, Reading
from .payload import decode_message, normalize_payload, unwrap_payload

__all__ = [
    "FurnaceSample",
    "Payload",
    "Reading",
    "decode_message",
    "normalize_payload",
    "unwrap_payload",
]
