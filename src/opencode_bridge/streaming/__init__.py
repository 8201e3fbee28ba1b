"""Event-stream subscription to the companion server."""

from .client import PortSource, StreamingEventClient
from .frames import FrameParser, decode_event

__all__ = ["FrameParser", "PortSource", "StreamingEventClient", "decode_event"]
