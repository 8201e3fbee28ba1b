"""
One-line advisory notifications for the host editor.

Discovery, launch and reconnect outcomes are reported through a ``Notifier``
instead of raising into the host. The default implementation writes to the
``opencode_bridge.advisory`` logger; editors plug in their own.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Protocol, runtime_checkable

ADVISORY_LOGGER_NAME = "opencode_bridge.advisory"


@runtime_checkable
class Notifier(Protocol):
    def notify(self, message: str, level: int = logging.INFO) -> None: ...


class LoggingNotifier:
    """Notifier that forwards advisories to a logger."""

    def __init__(self, logger: logging.Logger | None = None):
        self.logger = logger or logging.getLogger(ADVISORY_LOGGER_NAME)

    def notify(self, message: str, level: int = logging.INFO) -> None:
        self.logger.log(level, "opencode: %s", message)


@dataclass(frozen=True)
class Advisory:
    message: str
    level: int


class RecordingNotifier:
    """Notifier that keeps every advisory in memory."""

    def __init__(self) -> None:
        self.advisories: List[Advisory] = []

    def notify(self, message: str, level: int = logging.INFO) -> None:
        self.advisories.append(Advisory(message, level))

    def messages(self, level: int | None = None) -> List[str]:
        return [a.message for a in self.advisories if level is None or a.level == level]

    def clear(self) -> None:
        self.advisories.clear()


__all__ = ["Advisory", "LoggingNotifier", "Notifier", "RecordingNotifier"]
