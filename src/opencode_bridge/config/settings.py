"""
Configuration for server discovery, requests and the event stream.

Every field is read from the environment (or a ``.env`` file) when it is not
passed explicitly, so ``BridgeConfig()`` picks up the user's settings while
tests can pin exact values with keyword arguments.

Defaults follow the companion server's behaviour: it emits a heartbeat
event every 30 seconds, so the client gives up after 35.
"""

import re
from dataclasses import dataclass, field
from functools import partial
from typing import Optional

from .errors import ConfigurationError
from .runtime import env_float, env_int, env_str

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PROCESS_PATTERN = "opencode.*--port"
DEFAULT_LAUNCH_COMMAND = "opencode --port"
DEFAULT_HEARTBEAT_TIMEOUT_SECONDS = 35.0
DEFAULT_RECONNECT_DELAY_SECONDS = 1.0
DEFAULT_POLL_INTERVAL_SECONDS = 0.5
DEFAULT_POLL_MAX_ATTEMPTS = 6
DEFAULT_REQUEST_TIMEOUT_SECONDS = 1.0
DEFAULT_ANCESTRY_MAX_DEPTH = 10

INSPECTOR_KINDS = ("auto", "psutil", "lsof")

_PORT_FLAG_RE = re.compile(r"--port(?:=\S*|\s+(?!-)\S+)?")
_MAX_TCP_PORT = 65535


@dataclass
class BridgeConfig:
    """
    Settings consumed by the discovery, request and streaming components.

    Attributes:
        port: Fixed port override; when set, discovery is skipped and the port
            is only validated
        host: Host the companion server listens on
        process_pattern: Regular expression matched against process command lines
        launch_command: Command used to start the companion when none is found
        heartbeat_timeout_seconds: Silence on the event stream before it is presumed dead
        reconnect_delay_seconds: Delay before the single reconnect attempt
        poll_interval_seconds: Interval between resolution attempts after a launch
        poll_max_attempts: Resolution attempts after a launch before giving up
        request_timeout_seconds: Timeout for identity probes and publish requests
        ancestry_max_depth: Parent hops walked when checking process ancestry
        process_inspector: ``auto``, ``psutil`` or ``lsof``
    """

    port: Optional[int] = field(default_factory=partial(env_int, "OPENCODE_PORT"))
    host: str = field(default_factory=partial(env_str, "OPENCODE_HOST", DEFAULT_HOST))
    process_pattern: str = field(
        default_factory=partial(env_str, "OPENCODE_PROCESS_PATTERN", DEFAULT_PROCESS_PATTERN)
    )
    launch_command: str = field(
        default_factory=partial(env_str, "OPENCODE_LAUNCH_COMMAND", DEFAULT_LAUNCH_COMMAND)
    )
    heartbeat_timeout_seconds: float = field(
        default_factory=partial(
            env_float, "OPENCODE_HEARTBEAT_TIMEOUT_SECONDS", DEFAULT_HEARTBEAT_TIMEOUT_SECONDS
        )
    )
    reconnect_delay_seconds: float = field(
        default_factory=partial(
            env_float, "OPENCODE_RECONNECT_DELAY_SECONDS", DEFAULT_RECONNECT_DELAY_SECONDS
        )
    )
    poll_interval_seconds: float = field(
        default_factory=partial(env_float, "OPENCODE_POLL_INTERVAL_SECONDS", DEFAULT_POLL_INTERVAL_SECONDS)
    )
    poll_max_attempts: int = field(
        default_factory=partial(env_int, "OPENCODE_POLL_MAX_ATTEMPTS", DEFAULT_POLL_MAX_ATTEMPTS)
    )
    request_timeout_seconds: float = field(
        default_factory=partial(
            env_float, "OPENCODE_REQUEST_TIMEOUT_SECONDS", DEFAULT_REQUEST_TIMEOUT_SECONDS
        )
    )
    ancestry_max_depth: int = field(
        default_factory=partial(env_int, "OPENCODE_ANCESTRY_MAX_DEPTH", DEFAULT_ANCESTRY_MAX_DEPTH)
    )
    process_inspector: str = field(
        default_factory=partial(env_str, "OPENCODE_PROCESS_INSPECTOR", "auto")
    )

    def __post_init__(self) -> None:
        if self.port is not None and not 0 < self.port <= _MAX_TCP_PORT:
            raise ConfigurationError.out_of_range("port", self.port, f"between 1 and {_MAX_TCP_PORT}")
        for name in (
            "heartbeat_timeout_seconds",
            "poll_interval_seconds",
            "request_timeout_seconds",
        ):
            value = getattr(self, name)
            if value <= 0:
                raise ConfigurationError.out_of_range(name, value, "positive")
        if self.reconnect_delay_seconds < 0:
            raise ConfigurationError.out_of_range(
                "reconnect_delay_seconds", self.reconnect_delay_seconds, "zero or positive"
            )
        if self.poll_max_attempts < 1:
            raise ConfigurationError.out_of_range("poll_max_attempts", self.poll_max_attempts, "at least 1")
        if self.ancestry_max_depth < 1:
            raise ConfigurationError.out_of_range("ancestry_max_depth", self.ancestry_max_depth, "at least 1")
        if self.process_inspector not in INSPECTOR_KINDS:
            raise ConfigurationError.invalid_format(
                "process_inspector", self.process_inspector, " or ".join(INSPECTOR_KINDS)
            )
        try:
            re.compile(self.process_pattern)
        except re.error as exc:
            raise ConfigurationError.invalid_format(
                "process_pattern", self.process_pattern, "a regular expression"
            ) from exc

    @property
    def effective_launch_command(self) -> str:
        """Launch command with ``--port`` pinned to the fixed port when one is configured."""
        if self.port is None:
            return self.launch_command
        stripped = " ".join(_PORT_FLAG_RE.sub("", self.launch_command).split())
        return f"{stripped} --port {self.port}"

    @classmethod
    def from_env(cls) -> "BridgeConfig":
        """Build a configuration entirely from the environment."""
        return cls()


__all__ = ["BridgeConfig", "INSPECTOR_KINDS"]
