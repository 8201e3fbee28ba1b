"""Start the companion server when discovery finds nothing."""

from __future__ import annotations

import logging
import shlex
import subprocess
from typing import Optional, Protocol, Sequence, runtime_checkable

from .config.settings import DEFAULT_LAUNCH_COMMAND
from .errors import LaunchFailedError

logger = logging.getLogger(__name__)


@runtime_checkable
class Launcher(Protocol):
    """Fire-and-forget launch collaborator; raises ``LaunchFailedError`` on failure."""

    def launch(self) -> None: ...


class SubprocessLauncher:
    """Launches the configured command as a detached child process."""

    def __init__(self, command: str = DEFAULT_LAUNCH_COMMAND, *, cwd: Optional[str] = None):
        self.command = command
        self.cwd = cwd
        self.process: Optional[subprocess.Popen] = None

    @property
    def argv(self) -> Sequence[str]:
        return shlex.split(self.command)

    def launch(self) -> None:
        argv = self.argv
        if not argv:
            raise LaunchFailedError("Launch command is empty")
        if self.process is not None and self.process.poll() is None:
            logger.debug("Launched process %s is still running", self.process.pid)
            return
        try:
            self.process = subprocess.Popen(
                argv,
                cwd=self.cwd,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                start_new_session=True,
            )
        except (OSError, ValueError) as exc:
            raise LaunchFailedError.from_exception(self.command, exc) from exc
        logger.info("Started %r as pid %s", self.command, self.process.pid)


__all__ = ["Launcher", "SubprocessLauncher"]
