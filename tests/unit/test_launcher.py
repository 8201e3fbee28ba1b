"""Tests for SubprocessLauncher."""

import subprocess
from unittest.mock import MagicMock, patch

import pytest

from opencode_bridge.errors import LaunchFailedError
from opencode_bridge.launcher import Launcher, SubprocessLauncher


class TestSubprocessLauncher:
    def test_argv_is_shell_split(self) -> None:
        launcher = SubprocessLauncher("opencode --port 4096 --title 'my project'")

        assert list(launcher.argv) == ["opencode", "--port", "4096", "--title", "my project"]

    def test_satisfies_protocol(self) -> None:
        assert isinstance(SubprocessLauncher(), Launcher)

    def test_launch_detaches_process(self) -> None:
        with patch("opencode_bridge.launcher.subprocess.Popen") as popen:
            popen.return_value.pid = 1234
            SubprocessLauncher("opencode --port", cwd="/work").launch()

        args, kwargs = popen.call_args
        assert args[0] == ["opencode", "--port"]
        assert kwargs["cwd"] == "/work"
        assert kwargs["start_new_session"] is True
        assert kwargs["stdout"] is subprocess.DEVNULL

    def test_missing_binary_raises_launch_failed(self) -> None:
        with patch(
            "opencode_bridge.launcher.subprocess.Popen",
            side_effect=FileNotFoundError(2, "No such file or directory"),
        ):
            with pytest.raises(LaunchFailedError, match="Error starting opencode"):
                SubprocessLauncher("opencode --port").launch()

    def test_empty_command_raises(self) -> None:
        with pytest.raises(LaunchFailedError, match="empty"):
            SubprocessLauncher("   ").launch()

    def test_does_not_relaunch_running_process(self) -> None:
        running = MagicMock(pid=1234)
        running.poll.return_value = None
        with patch("opencode_bridge.launcher.subprocess.Popen", return_value=running) as popen:
            launcher = SubprocessLauncher("opencode --port")
            launcher.launch()
            launcher.launch()

        assert popen.call_count == 1
