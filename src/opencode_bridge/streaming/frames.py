"""Server-sent event framing and event decoding."""

from __future__ import annotations

from typing import List, Optional, Union

import orjson

from ..errors import EventDecodeError
from ..events import Event

DATA_PREFIX = "data:"
_IGNORED_FIELDS = ("event:", "id:", "retry:")


class FrameParser:
    """
    Reassembles frames from a line-oriented event stream.

    Each ``data:`` line contributes its payload (marker and one optional space
    stripped) to the current frame; a blank line terminates the frame.
    Comment lines and other SSE fields are ignored.
    """

    def __init__(self) -> None:
        self._buffer: List[str] = []
        self._partial = b""

    def feed(self, chunk: bytes) -> List[str]:
        """Consume a raw transport chunk; return every frame it completes, in order."""
        data = self._partial + chunk
        lines = data.split(b"\n")
        self._partial = lines.pop()
        frames: List[str] = []
        for line in lines:
            payload = self.feed_line(line)
            if payload is not None:
                frames.append(payload)
        return frames

    def feed_line(self, line: Union[str, bytes]) -> Optional[str]:
        """Consume one line; return a complete frame payload when ``line`` ends one."""
        if isinstance(line, bytes):
            line = line.decode("utf-8", errors="replace")
        line = line.rstrip("\r\n")

        if line == "":
            return self.flush()
        if line.startswith(":") or line.startswith(_IGNORED_FIELDS):
            return None
        if line.startswith(DATA_PREFIX):
            line = line[len(DATA_PREFIX) :]
            if line.startswith(" "):
                line = line[1:]
        self._buffer.append(line)
        return None

    def finish(self) -> Optional[str]:
        """End of stream: consume any unterminated line and return the pending frame."""
        if self._partial:
            partial, self._partial = self._partial, b""
            self.feed_line(partial)
        return self.flush()

    def flush(self) -> Optional[str]:
        """Return the pending frame, if any, and reset the buffer."""
        if not self._buffer:
            return None
        payload = "\n".join(self._buffer)
        self._buffer = []
        return payload

    @property
    def pending(self) -> bool:
        return bool(self._buffer or self._partial)


def decode_event(payload: str, port: Optional[int] = None) -> Event:
    """
    Decode one frame payload into an ``Event``.

    Raises:
        EventDecodeError: invalid JSON, a non-object payload, or no string ``type``
    """
    try:
        data = orjson.loads(payload)
    except orjson.JSONDecodeError as exc:
        raise EventDecodeError(f"Response decode error: {payload}; {exc}", payload=payload) from exc
    if not isinstance(data, dict):
        raise EventDecodeError(f"Event is not a JSON object: {payload}", payload=payload)
    event_type = data.get("type")
    if not isinstance(event_type, str) or not event_type:
        raise EventDecodeError(f"Event has no type: {payload}", payload=payload)
    properties = data.get("properties")
    if not isinstance(properties, dict):
        properties = {}
    return Event(type=event_type, properties=properties, port=port)


__all__ = ["DATA_PREFIX", "FrameParser", "decode_event"]
