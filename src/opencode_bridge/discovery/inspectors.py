"""
OS process and socket inspection behind one capability interface.

Discovery needs three facts from the operating system: which processes match
a command-line pattern, which TCP ports a process listens on, and a
process's parent. ``PsutilProcessInspector`` answers them through psutil on
Linux and Windows. On macOS psutil cannot read another process's socket
table without root, so ``LsofProcessInspector`` shells out to
``pgrep``/``lsof``/``ps`` instead.

Inspectors are synchronous; callers run them off the event loop.
"""

from __future__ import annotations

import logging
import re
import subprocess
import sys
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

import psutil

logger = logging.getLogger(__name__)

_COMMAND_TIMEOUT_SECONDS = 5.0
_LSOF_NAME_PORT_RE = re.compile(r":(\d+)$")
_LSOF_NAME_COLUMN = 8


class ProcessInspector(ABC):
    """Read-only view of the OS process and socket tables."""

    @abstractmethod
    def list_processes(self, pattern: str) -> List[int]:
        """Return pids whose full command line matches the regular expression ``pattern``."""

    @abstractmethod
    def list_listening_ports(self, pid: int) -> List[int]:
        """Return TCP ports in LISTEN state owned by ``pid``; empty when it is gone."""

    @abstractmethod
    def get_parent_pid(self, pid: int) -> Optional[int]:
        """Return the parent pid of ``pid``, or None when it cannot be read."""


class PsutilProcessInspector(ProcessInspector):
    """Inspector backed by psutil."""

    def list_processes(self, pattern: str) -> List[int]:
        regex = re.compile(pattern)
        pids: List[int] = []
        for proc in psutil.process_iter(["pid", "cmdline"]):
            try:
                cmdline_value = proc.info.get("cmdline")
                if not isinstance(cmdline_value, list) or not cmdline_value:
                    continue
                cmdline = " ".join(str(arg) for arg in cmdline_value)
                if regex.search(cmdline):
                    pids.append(int(proc.info["pid"]))
            except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
                continue
        return pids

    def list_listening_ports(self, pid: int) -> List[int]:
        try:
            connections = psutil.Process(pid).net_connections(kind="tcp")
        except (psutil.NoSuchProcess, psutil.ZombieProcess):
            logger.debug("Process %s exited before its sockets could be read", pid)
            return []
        except psutil.AccessDenied:
            logger.debug("Access denied reading sockets of process %s", pid)
            return []

        ports: List[int] = []
        for conn in connections:
            if conn.status != psutil.CONN_LISTEN or not conn.laddr:
                continue
            port = conn.laddr.port
            if port not in ports:
                ports.append(port)
        return ports

    def get_parent_pid(self, pid: int) -> Optional[int]:
        try:
            return psutil.Process(pid).ppid()
        except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
            return None


class LsofProcessInspector(ProcessInspector):
    """Inspector that shells out to pgrep, lsof and ps."""

    def __init__(self, timeout: float = _COMMAND_TIMEOUT_SECONDS):
        self.timeout = timeout

    def _run(self, command: Sequence[str]) -> Optional[str]:
        try:
            result = subprocess.run(
                list(command),
                capture_output=True,
                text=True,
                timeout=self.timeout,
                check=False,
            )
        except FileNotFoundError:
            logger.warning("%s is not installed; cannot inspect processes", command[0])
            return None
        except subprocess.TimeoutExpired:
            logger.warning("%s timed out after %.1fs", command[0], self.timeout)
            return None
        return result.stdout

    def list_processes(self, pattern: str) -> List[int]:
        # pgrep exits 1 with empty output when nothing matches.
        stdout = self._run(["pgrep", "-f", pattern])
        if not stdout:
            return []
        return [int(line) for line in stdout.split() if line.strip().isdigit()]

    def list_listening_ports(self, pid: int) -> List[int]:
        stdout = self._run(["lsof", "-w", "-iTCP", "-sTCP:LISTEN", "-P", "-n", "-a", "-p", str(pid)])
        if not stdout:
            return []
        return parse_lsof_listening_ports(stdout)

    def get_parent_pid(self, pid: int) -> Optional[int]:
        stdout = self._run(["ps", "-o", "ppid=", "-p", str(pid)])
        if not stdout or not stdout.strip().isdigit():
            return None
        return int(stdout.strip())


def parse_lsof_listening_ports(output: str) -> List[int]:
    """Extract ports from the NAME column (``host:port``) of ``lsof`` output."""
    ports: List[int] = []
    for line in output.splitlines():
        parts = line.split()
        if not parts or parts[0] == "COMMAND" or len(parts) <= _LSOF_NAME_COLUMN:
            continue
        match = _LSOF_NAME_PORT_RE.search(parts[_LSOF_NAME_COLUMN])
        if match:
            port = int(match.group(1))
            if port not in ports:
                ports.append(port)
    return ports


def get_process_inspector(kind: str = "auto") -> ProcessInspector:
    """Return the inspector for ``kind``, choosing by platform when ``auto``."""
    if kind == "psutil":
        return PsutilProcessInspector()
    if kind == "lsof":
        return LsofProcessInspector()
    if kind != "auto":
        raise ValueError(f"Unknown process inspector: {kind!r}")
    if sys.platform == "darwin":
        return LsofProcessInspector()
    return PsutilProcessInspector()


__all__ = [
    "LsofProcessInspector",
    "ProcessInspector",
    "PsutilProcessInspector",
    "get_process_inspector",
    "parse_lsof_listening_ports",
]
