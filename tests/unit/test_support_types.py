"""Tests for notifiers, connection status and URL helpers."""

import logging

import pytest

from opencode_bridge.connection_state import ConnectionState, ConnectionStatus
from opencode_bridge.http_utils import (
    build_url,
    ensure_http_url,
    is_aiohttp_session_open,
    is_success_status,
)
from opencode_bridge.notifications import LoggingNotifier, Notifier, RecordingNotifier


class TestNotifiers:
    def test_recording_notifier_filters_by_level(self) -> None:
        notifier = RecordingNotifier()
        notifier.notify("SSE connected on port 4096")
        notifier.notify("SSE connection lost: heartbeat timeout", logging.WARNING)

        assert notifier.messages() == [
            "SSE connected on port 4096",
            "SSE connection lost: heartbeat timeout",
        ]
        assert notifier.messages(logging.WARNING) == ["SSE connection lost: heartbeat timeout"]

        notifier.clear()
        assert notifier.advisories == []

    def test_logging_notifier_writes_advisory_logger(self, caplog) -> None:
        with caplog.at_level(logging.INFO, logger="opencode_bridge.advisory"):
            LoggingNotifier().notify("SSE disconnected")

        assert caplog.records[-1].name == "opencode_bridge.advisory"
        assert caplog.records[-1].getMessage() == "opencode: SSE disconnected"

    def test_notifiers_satisfy_protocol(self) -> None:
        assert isinstance(RecordingNotifier(), Notifier)
        assert isinstance(LoggingNotifier(), Notifier)


class TestConnectionStatus:
    def test_to_dict(self) -> None:
        status = ConnectionStatus(connected=True, port=4096, state=ConnectionState.CONNECTED)

        assert status.to_dict() == {"connected": True, "port": 4096, "state": "connected"}

    def test_default_state(self) -> None:
        assert ConnectionStatus(connected=False, port=None).state is ConnectionState.DISCONNECTED


class TestHttpUtils:
    def test_build_url(self) -> None:
        assert build_url("127.0.0.1", 4096, "/event") == "http://127.0.0.1:4096/event"
        assert build_url("localhost", 4096, "path") == "http://localhost:4096/path"

    def test_build_url_brackets_ipv6(self) -> None:
        assert build_url("::1", 4096, "/path") == "http://[::1]:4096/path"

    def test_ensure_http_url_rejects_other_schemes(self) -> None:
        with pytest.raises(ValueError):
            ensure_http_url("ftp://127.0.0.1/path")
        with pytest.raises(ValueError):
            ensure_http_url("http:///path")

    @pytest.mark.parametrize("status,expected", [(200, True), (204, True), (299, True), (301, False), (500, False)])
    def test_is_success_status(self, status: int, expected: bool) -> None:
        assert is_success_status(status) is expected

    def test_session_open_checks(self) -> None:
        class _Session:
            closed = False

        assert is_aiohttp_session_open(None) is False
        assert is_aiohttp_session_open(object()) is False
        assert is_aiohttp_session_open(_Session()) is True
