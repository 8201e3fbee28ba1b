"""Tests for the environment helpers and .env loading."""

from pathlib import Path

import pytest

from opencode_bridge.config import ConfigurationError, env_bool, env_float, env_int, env_str
from opencode_bridge.config import runtime
from opencode_bridge.config.runtime_helpers import DotenvLoader


class TestEnvHelpers:
    def test_env_str_strips_and_falls_back(self, monkeypatch) -> None:
        monkeypatch.setenv("OPENCODE_HOST", "  localhost  ")

        assert env_str("OPENCODE_HOST") == "localhost"
        assert env_str("OPENCODE_MISSING", "fallback") == "fallback"

    def test_env_str_required(self) -> None:
        with pytest.raises(ConfigurationError, match="OPENCODE_MISSING"):
            env_str("OPENCODE_MISSING", required=True)

    def test_env_int(self, monkeypatch) -> None:
        monkeypatch.setenv("OPENCODE_PORT", "4096")

        assert env_int("OPENCODE_PORT") == 4096
        assert env_int("OPENCODE_MISSING", 7) == 7

    def test_env_float_rejects_garbage(self, monkeypatch) -> None:
        monkeypatch.setenv("OPENCODE_HEARTBEAT_TIMEOUT_SECONDS", "soon")

        with pytest.raises(ConfigurationError, match="float"):
            env_float("OPENCODE_HEARTBEAT_TIMEOUT_SECONDS")

    @pytest.mark.parametrize("raw,expected", [("1", True), ("yes", True), ("off", False), ("FALSE", False)])
    def test_env_bool(self, monkeypatch, raw: str, expected: bool) -> None:
        monkeypatch.setenv("OPENCODE_FLAG", raw)

        assert env_bool("OPENCODE_FLAG") is expected

    def test_env_bool_rejects_garbage(self, monkeypatch) -> None:
        monkeypatch.setenv("OPENCODE_FLAG", "maybe")

        with pytest.raises(ConfigurationError):
            env_bool("OPENCODE_FLAG")


class TestDotenvDefaults:
    def test_values_come_from_dotenv_when_unset(self, monkeypatch, tmp_path: Path) -> None:
        env_file = tmp_path / ".env"
        env_file.write_text("OPENCODE_PORT=5050\n")
        monkeypatch.setattr(runtime, "_DOTENV_CANDIDATES", (env_file,))
        runtime.reset_default_values()

        assert env_int("OPENCODE_PORT") == 5050

    def test_environment_wins_over_dotenv(self, monkeypatch, tmp_path: Path) -> None:
        env_file = tmp_path / ".env"
        env_file.write_text("OPENCODE_PORT=5050\n")
        monkeypatch.setattr(runtime, "_DOTENV_CANDIDATES", (env_file,))
        monkeypatch.setenv("OPENCODE_PORT", "6060")
        runtime.reset_default_values()

        assert env_int("OPENCODE_PORT") == 6060

    def test_first_file_wins(self, monkeypatch, tmp_path: Path) -> None:
        local = tmp_path / "local.env"
        user = tmp_path / "user.env"
        local.write_text("OPENCODE_HOST=local\n")
        user.write_text("OPENCODE_HOST=user\nOPENCODE_PORT=7070\n")
        monkeypatch.setattr(runtime, "_DOTENV_CANDIDATES", (local, user))
        runtime.reset_default_values()

        assert env_str("OPENCODE_HOST") == "local"
        assert env_int("OPENCODE_PORT") == 7070


class TestDotenvLoader:
    def test_missing_file_is_empty(self, tmp_path: Path) -> None:
        assert DotenvLoader.load_from_file(tmp_path / "absent.env") == {}

    def test_parses_comments_quotes_and_export(self, tmp_path: Path) -> None:
        env_file = tmp_path / ".env"
        env_file.write_text(
            "# comment\n"
            "\n"
            "OPENCODE_HOST='localhost'\n"
            'export OPENCODE_LAUNCH_COMMAND="opencode --port"\n'
            "not a pair\n"
        )

        assert DotenvLoader.load_from_file(env_file) == {
            "OPENCODE_HOST": "localhost",
            "OPENCODE_LAUNCH_COMMAND": "opencode --port",
        }

    def test_unreadable_file_raises(self, tmp_path: Path) -> None:
        directory = tmp_path / "dir.env"
        directory.mkdir()

        with pytest.raises(ConfigurationError):
            DotenvLoader.load_from_file(directory)
