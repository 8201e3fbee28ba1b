"""
Public entry point for editor integrations.

``OpencodeBridge`` wires discovery, the request client and the event stream
together and exposes the control interface editors call. The convenience
helpers (``start``, ``prompt``, ``command``, ``stop``) report failures as
advisories and return a success flag instead of raising into the host.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Callable, List, Optional

from .config import BridgeConfig
from .connection_state import ConnectionStatus
from .discovery import PortCallback, ProcessInspector, build_port_resolver
from .errors import BridgeError
from .events import EventBus
from .launcher import Launcher, SubprocessLauncher
from .notifications import LoggingNotifier, Notifier
from .request_client import RequestClient
from .streaming import StreamingEventClient

logger = logging.getLogger(__name__)

PROMPT_CLEAR_COMMAND = "prompt.clear"
PROMPT_SUBMIT_COMMAND = "prompt.submit"


class OpencodeBridge:
    """Discovery, requests and event subscription behind one object."""

    def __init__(
        self,
        config: Optional[BridgeConfig] = None,
        *,
        notifier: Optional[Notifier] = None,
        launcher: Optional[Launcher] = None,
        inspector: Optional[ProcessInspector] = None,
        event_bus: Optional[EventBus] = None,
        cwd_provider: Callable[[], str] = os.getcwd,
    ):
        self.config = config or BridgeConfig()
        self.notifier = notifier or LoggingNotifier()
        self.events = event_bus or EventBus()
        self.request_client = RequestClient(self.config.host, self.config.request_timeout_seconds)
        self.launcher = launcher or SubprocessLauncher(self.config.effective_launch_command)
        self.resolver = build_port_resolver(
            self.config,
            self.request_client,
            inspector=inspector,
            launcher=self.launcher,
            notifier=self.notifier,
            cwd_provider=cwd_provider,
        )
        self.stream = StreamingEventClient(
            host=self.config.host,
            event_bus=self.events,
            notifier=self.notifier,
            port_source=self.resolver,
            heartbeat_timeout=self.config.heartbeat_timeout_seconds,
            reconnect_delay=self.config.reconnect_delay_seconds,
            connect_timeout=self.config.request_timeout_seconds,
        )

    # -- control interface ---------------------------------------------

    async def resolve_port(
        self, allow_launch: bool = True, callback: Optional[PortCallback] = None
    ) -> Optional[int]:
        return await self.resolver.resolve_port(allow_launch=allow_launch, callback=callback)

    def subscribe(self, port: int) -> None:
        self.stream.subscribe(port)

    def unsubscribe(self) -> None:
        self.stream.unsubscribe()

    def is_connected(self) -> bool:
        return self.stream.is_connected()

    def get_status(self) -> ConnectionStatus:
        return self.stream.get_status()

    async def ensure_subscribed(self, notify_on_error: bool = False) -> bool:
        return await self.stream.ensure_subscribed(notify_on_error)

    async def append_text(self, port: int, text: str) -> Optional[Any]:
        return await self.request_client.append_text(port, text)

    async def execute_command(self, port: int, command: str) -> Optional[Any]:
        return await self.request_client.execute_command(port, command)

    async def request_shutdown(self, port: int) -> bool:
        return await self.request_client.request_shutdown(port)

    # -- editor helpers -------------------------------------------------

    async def _port_or_notify(self, allow_launch: bool = True) -> Optional[int]:
        try:
            return await self.resolver.resolve_port(allow_launch=allow_launch)
        except BridgeError as exc:
            self.notifier.notify(exc.reason, logging.ERROR)
            return None

    async def start(self) -> bool:
        """Find (or launch) the companion and subscribe to its events."""
        port = await self._port_or_notify(allow_launch=True)
        if port is None:
            return False
        self.stream.subscribe(port)
        return True

    async def prompt(self, text: str, *, clear: bool = False, submit: bool = False) -> bool:
        """
        Send ``text`` to the companion's prompt.

        Optionally clears the prompt first and submits it afterwards. Subscribes
        to events once the text is appended so edits made by the companion are
        observed.
        """
        port = await self._port_or_notify(allow_launch=True)
        if port is None:
            return False
        try:
            if clear:
                await self.request_client.execute_command(port, PROMPT_CLEAR_COMMAND)
            await self.request_client.append_text(port, text)
            self.stream.subscribe(port)
            if submit:
                await self.request_client.execute_command(port, PROMPT_SUBMIT_COMMAND)
        except BridgeError as exc:
            self.notifier.notify(exc.reason, logging.ERROR)
            return False
        return True

    async def command(self, name: str) -> bool:
        """Execute a companion command such as ``session.new``."""
        port = await self._port_or_notify(allow_launch=True)
        if port is None:
            return False
        try:
            await self.request_client.execute_command(port, name)
        except BridgeError as exc:
            self.notifier.notify(exc.reason, logging.ERROR)
            return False
        return True

    def status_lines(self) -> List[str]:
        status = self.stream.get_status()
        if status.connected:
            return [f"SSE: connected on port {status.port}"]
        return [f"SSE: not connected ({status.state.value})"]

    async def stop(self) -> bool:
        """Ask the subscribed companion to exit, then unsubscribe."""
        port = self.stream.port
        stopped = False
        if port is not None:
            stopped = await self.request_client.request_shutdown(port)
        self.stream.unsubscribe()
        return stopped

    async def aclose(self) -> None:
        """Release the stream and HTTP session."""
        await self.stream.aclose()
        await self.request_client.close()

    async def __aenter__(self) -> "OpencodeBridge":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()


__all__ = ["OpencodeBridge", "PROMPT_CLEAR_COMMAND", "PROMPT_SUBMIT_COMMAND"]
