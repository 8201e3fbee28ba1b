"""Error taxonomy for server discovery, requests and event streaming."""

from __future__ import annotations

from typing import Optional


class BridgeError(RuntimeError):
    """Base class for every failure surfaced by the bridge.

    Every error carries a human-readable ``reason`` suitable for a one-line
    advisory notification.
    """

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class UnreachableError(BridgeError):
    """Raised when a port cannot be reached (connection refused, timeout)."""

    def __init__(self, reason: str, *, port: Optional[int] = None) -> None:
        super().__init__(reason)
        self.port = port

    @classmethod
    def for_port(cls, port: int, detail: str = "") -> "UnreachableError":
        """Create error for a port that did not answer."""
        msg = f"No response from opencode on port {port}"
        if detail:
            msg += f": {detail}"
        return cls(msg, port=port)


class InvalidResponseError(BridgeError):
    """Raised when a port answers with an unexpected status or body."""

    def __init__(self, reason: str, *, port: Optional[int] = None) -> None:
        super().__init__(reason)
        self.port = port

    @classmethod
    def bad_status(cls, port: int, status: int, path: str) -> "InvalidResponseError":
        """Create error for a non-success HTTP status."""
        return cls(f"opencode on port {port} answered {path} with HTTP {status}", port=port)

    @classmethod
    def missing_directory(cls, port: int, body: str) -> "InvalidResponseError":
        """Create error for an identity payload without a working directory."""
        return cls(f"Failed to parse opencode CWD data on port {port}: {body}", port=port)


class NoneInScopeError(BridgeError):
    """Raised when servers exist but none lives inside the caller's directory."""

    @classmethod
    def for_directory(cls, caller_cwd: str) -> "NoneInScopeError":
        return cls(f"No opencode servers inside {caller_cwd}")


class NotFoundError(BridgeError):
    """Raised when resolution exhausted every attempt without finding a port."""

    @classmethod
    def configured_port(cls, port: int) -> "NotFoundError":
        return cls(f"No opencode responding on configured port: {port}")

    @classmethod
    def no_processes(cls) -> "NotFoundError":
        return cls("No opencode processes found")

    @classmethod
    def no_valid_servers(cls) -> "NotFoundError":
        return cls("No valid opencode servers found")


class LaunchFailedError(BridgeError):
    """Raised when the launch collaborator could not start the server."""

    @classmethod
    def from_exception(cls, command: str, exc: BaseException) -> "LaunchFailedError":
        return cls(f"Error starting opencode ({command}): {exc}")


class EventDecodeError(BridgeError):
    """Raised when a stream frame cannot be decoded into an event record."""

    def __init__(self, reason: str, *, payload: str = "") -> None:
        super().__init__(reason)
        self.payload = payload


__all__ = [
    "BridgeError",
    "EventDecodeError",
    "InvalidResponseError",
    "LaunchFailedError",
    "NoneInScopeError",
    "NotFoundError",
    "UnreachableError",
]
