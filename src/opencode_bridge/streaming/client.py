"""
Long-lived event subscription to a companion server.

Connection Lifecycle:
  1. subscribe(port) - tear down any existing stream, open ``GET /event``
  2. First frame received - mark connected, publish ``client.connected``
  3. Every frame - rearm the heartbeat timer, decode, publish by event type
  4. Heartbeat timeout or transport failure - tear down, publish
     ``client.connection_lost`` and schedule one resolve-and-resubscribe.
     A stream that fails before its first frame is reported and dropped.
  5. unsubscribe() - tear down, publish ``client.disconnected``, never retry

The server emits ``server.heartbeat`` every 30 seconds; the default 35 second
timeout leaves a 5 second margin for latency.

Every asynchronous callback carries the generation it was created for.
Teardown bumps the generation, so callbacks from a closed stream are dropped
instead of resurrecting the connected state.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, List, Optional, Protocol, Set

import aiohttp

from ..async_helpers import safely_schedule_coroutine
from ..config.settings import (
    DEFAULT_HEARTBEAT_TIMEOUT_SECONDS,
    DEFAULT_HOST,
    DEFAULT_RECONNECT_DELAY_SECONDS,
    DEFAULT_REQUEST_TIMEOUT_SECONDS,
)
from ..connection_state import ConnectionState, ConnectionStatus
from ..errors import BridgeError, EventDecodeError
from ..events import (
    CLIENT_CONNECTED,
    CLIENT_CONNECTION_LOST,
    CLIENT_DECODE_ERROR,
    CLIENT_DISCONNECTED,
    Event,
    EventBus,
)
from ..http_utils import EVENT_STREAM_PATH, build_url, is_success_status
from ..notifications import LoggingNotifier, Notifier
from ..retry import RetryPolicy, retry_until_success
from .frames import FrameParser, decode_event

logger = logging.getLogger(__name__)

_TRANSPORT_ERRORS = (aiohttp.ClientError, asyncio.TimeoutError, OSError)


class PortSource(Protocol):
    async def resolve_port(self, allow_launch: bool = ..., callback: Any = ...) -> Optional[int]: ...


SessionFactory = Callable[[], aiohttp.ClientSession]


class StreamingEventClient:
    """Owns the single event-stream connection and its heartbeat timer."""

    def __init__(
        self,
        *,
        host: str = DEFAULT_HOST,
        event_bus: Optional[EventBus] = None,
        notifier: Optional[Notifier] = None,
        port_source: Optional[PortSource] = None,
        heartbeat_timeout: float = DEFAULT_HEARTBEAT_TIMEOUT_SECONDS,
        reconnect_delay: float = DEFAULT_RECONNECT_DELAY_SECONDS,
        connect_timeout: float = DEFAULT_REQUEST_TIMEOUT_SECONDS,
        session_factory: Optional[SessionFactory] = None,
    ):
        self.host = host
        self.event_bus = event_bus or EventBus()
        self.notifier = notifier or LoggingNotifier()
        self.port_source = port_source
        self.heartbeat_timeout = heartbeat_timeout
        self.reconnect_policy = RetryPolicy(interval_seconds=reconnect_delay, max_attempts=1)
        self._stream_timeout = aiohttp.ClientTimeout(
            total=None, sock_connect=connect_timeout, sock_read=None
        )
        self._session_factory = session_factory or self._default_session

        self._state = ConnectionState.DISCONNECTED
        self._port: Optional[int] = None
        self._connected = False
        self._generation = 0
        self._reader_task: Optional[asyncio.Task] = None
        self._reconnect_task: Optional[asyncio.Task] = None
        self._heartbeat_handle: Optional[asyncio.TimerHandle] = None
        self._closing: Set[asyncio.Task] = set()

    def _default_session(self) -> aiohttp.ClientSession:
        return aiohttp.ClientSession(
            timeout=self._stream_timeout,
            headers={"User-Agent": "opencode-bridge/1.0"},
        )

    # -- status ---------------------------------------------------------

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def port(self) -> Optional[int]:
        return self._port

    @property
    def generation(self) -> int:
        return self._generation

    def is_connected(self) -> bool:
        return self._connected

    def get_status(self) -> ConnectionStatus:
        return ConnectionStatus(connected=self._connected, port=self._port, state=self._state)

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation

    # -- transitions ----------------------------------------------------

    def subscribe(self, port: int) -> None:
        """
        Open the event stream on ``port``.

        A no-op when already connected to ``port``. Otherwise the existing
        connection is torn down before the new stream request is started.
        Must be called from a running event loop.
        """
        if self._port == port and self._state is ConnectionState.CONNECTED:
            return

        loop = asyncio.get_running_loop()
        self._teardown()
        generation = self._generation
        self._port = port
        self._state = ConnectionState.CONNECTING
        logger.debug("Subscribing to events on port %s (generation %s)", port, generation)
        self._reader_task = loop.create_task(
            self._run_stream(generation, port), name=f"opencode-events:{port}"
        )
        self._arm_heartbeat(generation)

    def unsubscribe(self) -> None:
        """Close the stream on purpose. Never schedules a reconnect."""
        was_connected = self._connected
        port = self._port
        self._teardown()
        self._state = ConnectionState.DISCONNECTED

        if was_connected:
            self.notifier.notify("SSE disconnected", logging.INFO)
            self.event_bus.publish(Event(CLIENT_DISCONNECTED, {"port": port}, port))

    async def ensure_subscribed(self, notify_on_error: bool = False) -> bool:
        """Resolve the port (without launching) and subscribe to it."""
        if self.port_source is None:
            logger.debug("No port source configured; cannot subscribe")
            return False
        try:
            port = await self.port_source.resolve_port(allow_launch=False)
        except BridgeError as exc:
            if notify_on_error:
                self.notifier.notify(f"SSE cannot connect: {exc.reason}", logging.WARNING)
            return False
        if port is None:
            return False
        self.subscribe(port)
        return True

    async def aclose(self) -> None:
        """Unsubscribe and wait for the torn-down tasks to finish."""
        self.unsubscribe()
        pending: List[asyncio.Task] = [t for t in self._closing if not t.done()]
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        self._closing.clear()

    def _teardown(self) -> None:
        """Stop the timer, cancel the stream and any pending reconnect, clear state."""
        self._generation += 1
        self._cancel_heartbeat()

        current = asyncio.current_task() if _loop_running() else None
        for task in (self._reader_task, self._reconnect_task):
            if task is None or task.done() or task is current:
                continue
            task.cancel()
            self._closing.add(task)
            task.add_done_callback(self._closing.discard)

        self._reader_task = None
        self._reconnect_task = None
        self._port = None
        self._connected = False

    def _handle_connection_failure(self, reason: str) -> None:
        was_connected = self._connected
        port = self._port
        self._teardown()

        if not was_connected:
            # Only an established connection earns a retry.
            self._state = ConnectionState.DISCONNECTED
            logger.warning("Event stream on port %s failed before connecting: %s", port, reason)
            self.notifier.notify(f"SSE cannot connect on port {port}: {reason}", logging.WARNING)
            return

        self._state = ConnectionState.RECONNECTING
        self.notifier.notify(f"SSE connection lost: {reason}", logging.WARNING)
        self.event_bus.publish(Event(CLIENT_CONNECTION_LOST, {"port": port, "reason": reason}, port))
        self._schedule_reconnect()

    def _schedule_reconnect(self) -> None:
        if self.port_source is None:
            self._state = ConnectionState.DISCONNECTED
            return
        generation = self._generation
        self._reconnect_task = safely_schedule_coroutine(
            self._reconnect(generation), name="opencode-events-reconnect"
        )

    async def _reconnect(self, generation: int) -> None:
        async def _resolve() -> Optional[int]:
            if not self._is_current(generation):
                return None
            return await self.port_source.resolve_port(allow_launch=False)

        try:
            port = await retry_until_success(
                _resolve,
                self.reconnect_policy,
                retry_on=(BridgeError,),
                description="event stream reconnect",
            )
        except BridgeError as exc:
            logger.debug("Reconnect attempt failed: %s", exc.reason)
            if self._is_current(generation):
                self._state = ConnectionState.DISCONNECTED
                self._reconnect_task = None
            return

        if not self._is_current(generation):
            return
        self._reconnect_task = None
        if port is None:
            self._state = ConnectionState.DISCONNECTED
            return
        self.subscribe(port)

    # -- heartbeat ------------------------------------------------------

    def _arm_heartbeat(self, generation: int) -> None:
        self._cancel_heartbeat()
        loop = asyncio.get_running_loop()
        self._heartbeat_handle = loop.call_later(
            self.heartbeat_timeout, self._on_heartbeat_timeout, generation
        )

    def _cancel_heartbeat(self) -> None:
        if self._heartbeat_handle is not None:
            self._heartbeat_handle.cancel()
            self._heartbeat_handle = None

    def _on_heartbeat_timeout(self, generation: int) -> None:
        if not self._is_current(generation):
            return
        self._heartbeat_handle = None
        self._handle_connection_failure("heartbeat timeout")

    # -- stream ---------------------------------------------------------

    async def _run_stream(self, generation: int, port: int) -> None:
        url = build_url(self.host, port, EVENT_STREAM_PATH)
        parser = FrameParser()
        reason = "event stream closed"
        try:
            async with self._session_factory() as session:
                async with session.get(
                    url,
                    headers={"Accept": "text/event-stream"},
                    timeout=self._stream_timeout,
                ) as response:
                    if not is_success_status(response.status):
                        reason = f"event stream answered HTTP {response.status}"
                    else:
                        async for chunk in response.content.iter_any():
                            for payload in parser.feed(chunk):
                                if not self._is_current(generation):
                                    return
                                self._handle_frame(generation, port, payload)
                        payload = parser.finish()
                        if payload is not None and self._is_current(generation):
                            self._handle_frame(generation, port, payload)
        except _TRANSPORT_ERRORS as exc:
            reason = str(exc) or type(exc).__name__

        if self._is_current(generation):
            self._handle_connection_failure(reason)

    def _handle_frame(self, generation: int, port: int, payload: str) -> None:
        if not self._connected:
            self._connected = True
            self._state = ConnectionState.CONNECTED
            self.notifier.notify(f"SSE connected on port {port}", logging.INFO)
            self.event_bus.publish(Event(CLIENT_CONNECTED, {"port": port}, port))
            if not self._is_current(generation):
                return

        self._arm_heartbeat(generation)

        try:
            event = decode_event(payload, port)
        except EventDecodeError as exc:
            self.notifier.notify(exc.reason, logging.ERROR)
            self.event_bus.publish(
                Event(CLIENT_DECODE_ERROR, {"payload": exc.payload, "error": exc.reason}, port)
            )
            return

        self.event_bus.publish(event)


def _loop_running() -> bool:
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return False
    return True


__all__ = ["PortSource", "StreamingEventClient"]
