"""Pick the validated server that belongs to the caller."""

from __future__ import annotations

import logging
import os
from pathlib import PurePath
from typing import Optional, Sequence, Union

from ..config.settings import DEFAULT_ANCESTRY_MAX_DEPTH
from ..errors import NoneInScopeError
from .inspectors import ProcessInspector
from .models import ValidatedServer

logger = logging.getLogger(__name__)

PathLike = Union[str, "os.PathLike[str]"]


def _normalize(path: PathLike) -> PurePath:
    return PurePath(os.path.normpath(os.fspath(path)))


def is_within(directory: PathLike, root: PathLike) -> bool:
    """
    Return True when ``directory`` is ``root`` or lies beneath it.

    Paths are compared component by component, so ``/a/bc`` is not inside ``/a/b``.
    """
    candidate = _normalize(directory)
    base = _normalize(root)
    return candidate == base or base in candidate.parents


class ServerSelector:
    """
    Chooses among validated servers using the caller's working directory.

    Eligible servers live at or below the caller's directory. A server whose
    process descends from the caller's process wins outright; otherwise the
    first eligible server in enumeration order is returned.
    """

    def __init__(
        self,
        inspector: ProcessInspector,
        *,
        caller_pid: Optional[int] = None,
        max_depth: int = DEFAULT_ANCESTRY_MAX_DEPTH,
    ):
        self.inspector = inspector
        self.caller_pid = os.getpid() if caller_pid is None else caller_pid
        self.max_depth = max_depth

    def is_descendant(self, pid: int) -> bool:
        """Walk up to ``max_depth`` parents of ``pid`` looking for the caller's pid."""
        current = pid
        for _ in range(self.max_depth):
            parent = self.inspector.get_parent_pid(current)
            if parent is None or parent <= 1:
                return False
            if parent == self.caller_pid:
                return True
            current = parent
        return False

    def select(self, servers: Sequence[ValidatedServer], caller_cwd: PathLike) -> ValidatedServer:
        """
        Return the best server for ``caller_cwd``.

        Raises:
            NoneInScopeError: no server lives inside ``caller_cwd``
        """
        first_match: Optional[ValidatedServer] = None
        for server in servers:
            if not is_within(server.directory, caller_cwd):
                continue
            if first_match is None:
                first_match = server
            if self.is_descendant(server.pid):
                logger.debug("Selected server pid=%s port=%s (spawned by caller)", server.pid, server.port)
                return server

        if first_match is None:
            raise NoneInScopeError.for_directory(os.fspath(caller_cwd))
        logger.debug("Selected server pid=%s port=%s", first_match.pid, first_match.port)
        return first_match


__all__ = ["ServerSelector", "is_within"]
