"""Root pytest configuration and shared fixtures."""

from __future__ import annotations

import os

import pytest

from opencode_bridge.config import runtime


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch):
    """Keep the developer's OPENCODE_* settings and .env files out of tests."""
    for name in list(os.environ):
        if name.startswith("OPENCODE_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(runtime, "_DOTENV_CANDIDATES", ())
    runtime.reset_default_values()
    yield
    runtime.reset_default_values()
