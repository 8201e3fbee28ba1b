"""
Connection state definitions for the streaming event client.

This module is the single source of truth for subscription states so the
facade, the CLI and the streaming client agree on naming.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class ConnectionState(Enum):
    """
    Lifecycle of the single event-stream subscription.

    DISCONNECTED -> CONNECTING on subscribe, CONNECTING -> CONNECTED on the
    first frame, CONNECTED -> RECONNECTING on heartbeat timeout or transport
    failure, and back to DISCONNECTED on an explicit unsubscribe.
    """

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"


@dataclass(frozen=True)
class ConnectionStatus:
    """Snapshot returned by ``get_status``."""

    connected: bool
    port: Optional[int]
    state: ConnectionState = ConnectionState.DISCONNECTED

    def to_dict(self) -> Dict[str, Any]:
        return {"connected": self.connected, "port": self.port, "state": self.state.value}


__all__ = ["ConnectionState", "ConnectionStatus"]
