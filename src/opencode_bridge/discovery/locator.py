"""Find companion server processes and the ports they listen on."""

from __future__ import annotations

import asyncio
import logging
import os
from typing import List, Optional

import psutil

from ..config.settings import DEFAULT_PROCESS_PATTERN
from .inspectors import ProcessInspector
from .models import CandidateProcess

logger = logging.getLogger(__name__)


class ProcessLocator:
    """
    Enumerates candidate companion processes.

    A candidate is a process whose command line matches ``pattern`` paired
    with one TCP port it listens on. Processes that exit between enumeration
    and the socket lookup are skipped, as is the caller's own process.
    """

    def __init__(
        self,
        inspector: ProcessInspector,
        pattern: str = DEFAULT_PROCESS_PATTERN,
        *,
        own_pid: Optional[int] = None,
    ):
        self.inspector = inspector
        self.pattern = pattern
        self.own_pid = os.getpid() if own_pid is None else own_pid

    def locate(self) -> List[CandidateProcess]:
        """Return candidates sorted by ``(pid, port)``; never raises."""
        try:
            pids = self.inspector.list_processes(self.pattern)
        except (psutil.Error, OSError, RuntimeError):
            logger.exception("Error while listing %s processes", self.pattern)
            return []

        candidates = set()
        for pid in pids:
            if pid == self.own_pid:
                continue
            try:
                ports = self.inspector.list_listening_ports(pid)
            except (psutil.Error, OSError, RuntimeError) as exc:
                logger.debug("Skipping process %s: %s", pid, exc)
                continue
            for port in ports:
                candidates.add(CandidateProcess(pid=pid, port=port))

        located = sorted(candidates)
        logger.debug("Located %d candidate process(es): %s", len(located), located)
        return located

    async def locate_async(self) -> List[CandidateProcess]:
        """Run :meth:`locate` in a worker thread so the loop is never blocked."""
        return await asyncio.to_thread(self.locate)


__all__ = ["ProcessLocator"]
