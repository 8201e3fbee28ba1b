"""Request/response calls against a companion server port."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional

import aiohttp
import orjson

from .config.settings import DEFAULT_HOST, DEFAULT_REQUEST_TIMEOUT_SECONDS
from .errors import BridgeError, InvalidResponseError, UnreachableError
from .http_utils import (
    IDENTITY_PATH,
    PUBLISH_PATH,
    build_url,
    is_aiohttp_session_open,
    is_success_status,
)
from .network_errors import is_network_unreachable_error

logger = logging.getLogger(__name__)

PROMPT_APPEND_EVENT = "tui.prompt.append"
COMMAND_EXECUTE_EVENT = "tui.command.execute"
APP_EXIT_COMMAND = "app.exit"

DEFAULT_PUBLISH_TOTAL_TIMEOUT_SECONDS = 10.0

_TRANSPORT_ERRORS = (aiohttp.ClientError, asyncio.TimeoutError, OSError)


def _transport_error(port: int, exc: BaseException) -> BridgeError:
    detail = str(exc) or type(exc).__name__
    if is_network_unreachable_error(exc):
        return UnreachableError.for_port(port, detail)
    return InvalidResponseError(f"opencode on port {port} sent a malformed response: {detail}", port=port)


class RequestClient:
    """
    Issues identity probes and publish actions against a resolved port.

    Every call uses a short connect timeout so a dead port never hangs the
    caller. The client is independent of the event stream's state. The HTTP
    session is created lazily and belongs to the event loop that first uses it.
    """

    def __init__(
        self,
        host: str = DEFAULT_HOST,
        timeout: float = DEFAULT_REQUEST_TIMEOUT_SECONDS,
        *,
        publish_total_timeout: float = DEFAULT_PUBLISH_TOTAL_TIMEOUT_SECONDS,
    ):
        self.host = host
        self.timeout = timeout
        self._probe_timeout = aiohttp.ClientTimeout(total=timeout)
        self._publish_timeout = aiohttp.ClientTimeout(
            total=max(publish_total_timeout, timeout),
            sock_connect=timeout,
        )
        self.session: Optional[aiohttp.ClientSession] = None

    async def _get_session(self) -> aiohttp.ClientSession:
        if not is_aiohttp_session_open(self.session):
            self.session = aiohttp.ClientSession(
                headers={"User-Agent": "opencode-bridge/1.0"},
            )
        return self.session

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        if not self.session:
            return
        try:
            if not self.session.closed:
                await asyncio.wait_for(self.session.close(), timeout=5.0)
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError):
            logger.warning("Error closing HTTP session")
        finally:
            self.session = None

    async def __aenter__(self) -> "RequestClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def get_path(self, port: int) -> Dict[str, Any]:
        """
        Fetch the identity payload from ``GET /path``.

        Raises:
            UnreachableError: connection refused or timed out
            InvalidResponseError: non-success status or a body that is not a JSON object
        """
        url = build_url(self.host, port, IDENTITY_PATH)
        session = await self._get_session()
        try:
            async with session.get(url, timeout=self._probe_timeout) as response:
                body = await response.read()
                status = response.status
        except _TRANSPORT_ERRORS as exc:
            raise _transport_error(port, exc) from exc

        if not is_success_status(status):
            raise InvalidResponseError.bad_status(port, status, IDENTITY_PATH)
        text = body.decode("utf-8", errors="replace")
        try:
            data = orjson.loads(body)
        except orjson.JSONDecodeError as exc:
            raise InvalidResponseError.missing_directory(port, text) from exc
        if not isinstance(data, dict):
            raise InvalidResponseError.missing_directory(port, text)
        return data

    async def publish(self, port: int, event_type: str, properties: Dict[str, Any]) -> Optional[Any]:
        """
        POST ``{"type", "properties"}`` to the publish endpoint.

        Returns the decoded JSON response body, or None when it is not JSON.
        """
        url = build_url(self.host, port, PUBLISH_PATH)
        payload = orjson.dumps({"type": event_type, "properties": properties})
        session = await self._get_session()
        logger.debug("Publishing %s to port %s", event_type, port)
        try:
            async with session.post(
                url,
                data=payload,
                headers={"Content-Type": "application/json", "Accept": "application/json"},
                timeout=self._publish_timeout,
            ) as response:
                body = await response.read()
                status = response.status
        except _TRANSPORT_ERRORS as exc:
            raise _transport_error(port, exc) from exc

        if not is_success_status(status):
            raise InvalidResponseError.bad_status(port, status, PUBLISH_PATH)
        if not body:
            return None
        try:
            return orjson.loads(body)
        except orjson.JSONDecodeError:
            logger.debug("Publish response from port %s is not JSON", port)
            return None

    async def append_text(self, port: int, text: str) -> Optional[Any]:
        """Append ``text`` to the companion's prompt."""
        return await self.publish(port, PROMPT_APPEND_EVENT, {"text": text})

    async def execute_command(self, port: int, command: str) -> Optional[Any]:
        """Execute a named companion command (``prompt.submit``, ``session.new``...)."""
        return await self.publish(port, COMMAND_EXECUTE_EVENT, {"command": command})

    async def request_shutdown(self, port: int) -> bool:
        """
        Ask the companion to exit cleanly.

        Takes the same exit path as pressing Ctrl+C in the companion's UI.
        Returns whether the request completed with a success status; never raises.
        """
        try:
            await self.execute_command(port, APP_EXIT_COMMAND)
        except BridgeError as exc:
            logger.info("Shutdown request to port %s failed: %s", port, exc.reason)
            return False
        return True


__all__ = [
    "APP_EXIT_COMMAND",
    "COMMAND_EXECUTE_EVENT",
    "PROMPT_APPEND_EVENT",
    "RequestClient",
]
