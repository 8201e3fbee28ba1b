"""
Resolve the port of the companion server that belongs to the caller.

Resolution Flow:
  1. Fixed-port mode - when a port is configured, only validate it.
  2. Auto-discovery - locate candidate processes, validate each through the
     identity endpoint, then select the one inside the caller's directory.
  3. Fallback - when nothing is found and launching is allowed, start the
     companion and poll on a fixed interval until it answers.

Each call is independent; the resolver keeps no discovery state between calls.
"""

from __future__ import annotations

import asyncio
import logging
import os
from typing import Callable, Optional

from ..config import BridgeConfig
from ..errors import BridgeError, LaunchFailedError, NotFoundError
from ..launcher import Launcher
from ..notifications import LoggingNotifier, Notifier
from ..retry import RetryPolicy, retry_until_success
from .locator import ProcessLocator
from .selector import ServerSelector
from .validator import ServerValidator

logger = logging.getLogger(__name__)

PortCallback = Callable[[Optional[str], Optional[int]], object]


class PortResolver:
    """Orchestrates locator, validator and selector into one port."""

    def __init__(
        self,
        config: BridgeConfig,
        locator: ProcessLocator,
        validator: ServerValidator,
        selector: ServerSelector,
        *,
        launcher: Optional[Launcher] = None,
        notifier: Optional[Notifier] = None,
        cwd_provider: Callable[[], str] = os.getcwd,
    ):
        self.config = config
        self.locator = locator
        self.validator = validator
        self.selector = selector
        self.launcher = launcher
        self.notifier = notifier or LoggingNotifier()
        self.cwd_provider = cwd_provider
        self.poll_policy = RetryPolicy(
            interval_seconds=config.poll_interval_seconds,
            max_attempts=config.poll_max_attempts,
        )

    async def find_port(self) -> int:
        """
        Run a single resolution attempt.

        Raises:
            NotFoundError: the configured port is silent, or no valid server exists
            NoneInScopeError: servers exist but none inside the caller's directory
        """
        configured_port = self.config.port
        if configured_port is not None:
            try:
                await self.validator.validate(configured_port)
            except BridgeError as exc:
                raise NotFoundError.configured_port(configured_port) from exc
            return configured_port

        candidates = await self.locator.locate_async()
        if not candidates:
            raise NotFoundError.no_processes()

        servers = await self.validator.validate_candidates(candidates)
        if not servers:
            raise NotFoundError.no_valid_servers()

        server = await asyncio.to_thread(self.selector.select, servers, self.cwd_provider())
        return server.port

    async def _launch(self) -> None:
        if self.launcher is None:
            raise LaunchFailedError("No launcher configured for opencode")
        try:
            result = self.launcher.launch()
            if asyncio.iscoroutine(result):
                await result
        except LaunchFailedError:
            raise
        except (OSError, RuntimeError, ValueError) as exc:
            raise LaunchFailedError(f"Error starting opencode: {exc}") from exc

    async def _resolve(self, allow_launch: bool) -> int:
        try:
            return await self.find_port()
        except BridgeError as exc:
            first_error = exc

        if not allow_launch:
            raise NotFoundError(first_error.reason) from first_error

        self.notifier.notify(f"{first_error.reason}; starting opencode", logging.INFO)
        await self._launch()

        try:
            return await retry_until_success(
                self.find_port,
                self.poll_policy,
                retry_on=(BridgeError,),
                description="opencode port lookup",
            )
        except BridgeError as exc:
            raise NotFoundError(exc.reason) from exc

    async def resolve_port(
        self,
        allow_launch: bool = True,
        callback: Optional[PortCallback] = None,
    ) -> Optional[int]:
        """
        Resolve the caller's companion port.

        Without ``callback`` the port is returned and failures raise
        ``NotFoundError`` or ``LaunchFailedError``. With ``callback`` it is
        invoked as ``callback(error_message, port)`` exactly once and nothing
        is raised; the port (or None) is still returned.
        """
        if callback is None:
            return await self._resolve(allow_launch)

        try:
            port = await self._resolve(allow_launch)
        except BridgeError as exc:
            callback(exc.reason, None)
            return None
        callback(None, port)
        return port


__all__ = ["PortCallback", "PortResolver"]
