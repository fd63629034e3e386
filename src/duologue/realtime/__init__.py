"""Real-time delivery of session events."""

from .broadcaster import LiveChannelBroadcaster
from .events import (
    LiveEvent,
    StatusChanged,
    StreamChunk,
    StreamComplete,
    StreamError,
    StreamStart,
)

__all__ = [
    "LiveChannelBroadcaster",
    "LiveEvent",
    "StatusChanged",
    "StreamChunk",
    "StreamComplete",
    "StreamError",
    "StreamStart",
]
