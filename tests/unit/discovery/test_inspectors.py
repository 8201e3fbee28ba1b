"""Tests for the process inspectors."""

import subprocess
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import psutil
import pytest

from opencode_bridge.discovery.inspectors import (
    LsofProcessInspector,
    PsutilProcessInspector,
    get_process_inspector,
    parse_lsof_listening_ports,
)

LSOF_OUTPUT = """\
COMMAND   PID USER   FD   TYPE             DEVICE SIZE/OFF NODE NAME
opencode 4242 dev   21u  IPv4 0x1234567890abcdef      0t0  TCP 127.0.0.1:4096 (LISTEN)
opencode 4242 dev   22u  IPv6 0x1234567890abcdf0      0t0  TCP [::1]:4096 (LISTEN)
opencode 4242 dev   23u  IPv4 0x1234567890abcdf1      0t0  TCP *:5173 (LISTEN)
"""


def _proc(pid, cmdline):
    return SimpleNamespace(info={"pid": pid, "cmdline": cmdline})


def _conn(port, status=psutil.CONN_LISTEN):
    return SimpleNamespace(status=status, laddr=SimpleNamespace(ip="127.0.0.1", port=port))


class TestParseLsof:
    def test_extracts_unique_ports_in_order(self) -> None:
        assert parse_lsof_listening_ports(LSOF_OUTPUT) == [4096, 5173]

    def test_ignores_header_and_short_lines(self) -> None:
        assert parse_lsof_listening_ports("COMMAND PID USER\n\nshort line\n") == []


class TestPsutilProcessInspector:
    def test_list_processes_matches_full_command_line(self) -> None:
        processes = [
            _proc(10, ["node", "/usr/bin/opencode", "--port", "4096"]),
            _proc(11, ["vim", "opencode.lua"]),
            _proc(12, None),
            _proc(13, []),
        ]
        with patch("opencode_bridge.discovery.inspectors.psutil.process_iter", return_value=processes):
            assert PsutilProcessInspector().list_processes("opencode.*--port") == [10]

    def test_list_listening_ports_filters_listen_state(self) -> None:
        process = MagicMock()
        process.net_connections.return_value = [
            _conn(4096),
            _conn(4096),
            _conn(51000, status=psutil.CONN_ESTABLISHED),
            _conn(5173),
        ]
        with patch("opencode_bridge.discovery.inspectors.psutil.Process", return_value=process):
            assert PsutilProcessInspector().list_listening_ports(10) == [4096, 5173]
        process.net_connections.assert_called_once_with(kind="tcp")

    def test_vanished_process_has_no_ports(self) -> None:
        with patch(
            "opencode_bridge.discovery.inspectors.psutil.Process",
            side_effect=psutil.NoSuchProcess(10),
        ):
            assert PsutilProcessInspector().list_listening_ports(10) == []

    def test_access_denied_has_no_ports(self) -> None:
        process = MagicMock()
        process.net_connections.side_effect = psutil.AccessDenied(10)
        with patch("opencode_bridge.discovery.inspectors.psutil.Process", return_value=process):
            assert PsutilProcessInspector().list_listening_ports(10) == []

    def test_get_parent_pid(self) -> None:
        process = MagicMock()
        process.ppid.return_value = 99
        with patch("opencode_bridge.discovery.inspectors.psutil.Process", return_value=process):
            assert PsutilProcessInspector().get_parent_pid(10) == 99

    def test_get_parent_pid_of_vanished_process(self) -> None:
        with patch(
            "opencode_bridge.discovery.inspectors.psutil.Process",
            side_effect=psutil.NoSuchProcess(10),
        ):
            assert PsutilProcessInspector().get_parent_pid(10) is None


class TestLsofProcessInspector:
    def _completed(self, stdout: str) -> subprocess.CompletedProcess:
        return subprocess.CompletedProcess(args=[], returncode=0, stdout=stdout, stderr="")

    def test_list_processes_uses_pgrep(self) -> None:
        with patch(
            "opencode_bridge.discovery.inspectors.subprocess.run",
            return_value=self._completed("4242\n4343\n"),
        ) as run:
            assert LsofProcessInspector().list_processes("opencode.*--port") == [4242, 4343]
        assert run.call_args[0][0] == ["pgrep", "-f", "opencode.*--port"]

    def test_list_listening_ports_uses_lsof(self) -> None:
        with patch(
            "opencode_bridge.discovery.inspectors.subprocess.run",
            return_value=self._completed(LSOF_OUTPUT),
        ) as run:
            assert LsofProcessInspector().list_listening_ports(4242) == [4096, 5173]
        command = run.call_args[0][0]
        assert command[0] == "lsof"
        assert "-sTCP:LISTEN" in command
        assert command[-2:] == ["-p", "4242"]

    def test_get_parent_pid_uses_ps(self) -> None:
        with patch(
            "opencode_bridge.discovery.inspectors.subprocess.run",
            return_value=self._completed("  321\n"),
        ):
            assert LsofProcessInspector().get_parent_pid(4242) == 321

    def test_get_parent_pid_of_vanished_process(self) -> None:
        with patch(
            "opencode_bridge.discovery.inspectors.subprocess.run",
            return_value=self._completed(""),
        ):
            assert LsofProcessInspector().get_parent_pid(4242) is None

    def test_missing_tool_yields_nothing(self) -> None:
        with patch(
            "opencode_bridge.discovery.inspectors.subprocess.run",
            side_effect=FileNotFoundError("lsof"),
        ):
            inspector = LsofProcessInspector()
            assert inspector.list_processes("opencode") == []
            assert inspector.list_listening_ports(1) == []

    def test_timeout_yields_nothing(self) -> None:
        with patch(
            "opencode_bridge.discovery.inspectors.subprocess.run",
            side_effect=subprocess.TimeoutExpired(cmd="lsof", timeout=5),
        ):
            assert LsofProcessInspector().list_listening_ports(1) == []


class TestGetProcessInspector:
    def test_explicit_kinds(self) -> None:
        assert isinstance(get_process_inspector("psutil"), PsutilProcessInspector)
        assert isinstance(get_process_inspector("lsof"), LsofProcessInspector)

    @pytest.mark.parametrize(
        "platform,expected",
        [("darwin", LsofProcessInspector), ("linux", PsutilProcessInspector), ("win32", PsutilProcessInspector)],
    )
    def test_auto_picks_by_platform(self, platform, expected) -> None:
        with patch("opencode_bridge.discovery.inspectors.sys.platform", platform):
            assert isinstance(get_process_inspector("auto"), expected)

    def test_unknown_kind(self) -> None:
        with pytest.raises(ValueError):
            get_process_inspector("netstat")
