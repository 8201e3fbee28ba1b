"""Discover a local opencode server, follow its events and send it prompts."""

from .bridge import OpencodeBridge
from .config import BridgeConfig, ConfigurationError
from .connection_state import ConnectionState, ConnectionStatus
from .discovery import (
    CandidateProcess,
    PortResolver,
    ProcessLocator,
    ServerSelector,
    ServerValidator,
    ValidatedServer,
)
from .errors import (
    BridgeError,
    EventDecodeError,
    InvalidResponseError,
    LaunchFailedError,
    NoneInScopeError,
    NotFoundError,
    UnreachableError,
)
from .events import Event, EventBus
from .request_client import RequestClient
from .retry import RetryPolicy, retry_until_success
from .streaming import StreamingEventClient

__all__ = [
    "BridgeConfig",
    "BridgeError",
    "CandidateProcess",
    "ConfigurationError",
    "ConnectionState",
    "ConnectionStatus",
    "Event",
    "EventBus",
    "EventDecodeError",
    "InvalidResponseError",
    "LaunchFailedError",
    "NoneInScopeError",
    "NotFoundError",
    "OpencodeBridge",
    "PortResolver",
    "ProcessLocator",
    "RequestClient",
    "RetryPolicy",
    "ServerSelector",
    "ServerValidator",
    "StreamingEventClient",
    "UnreachableError",
    "ValidatedServer",
    "retry_until_success",
]
