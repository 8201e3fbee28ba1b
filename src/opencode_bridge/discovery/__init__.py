"""Companion server discovery: locate, validate, select, resolve."""

from __future__ import annotations

import os
from typing import Callable, Optional

from ..config import BridgeConfig
from ..launcher import Launcher
from ..notifications import Notifier
from ..request_client import RequestClient
from .inspectors import (
    LsofProcessInspector,
    ProcessInspector,
    PsutilProcessInspector,
    get_process_inspector,
)
from .locator import ProcessLocator
from .models import CandidateProcess, ValidatedServer
from .resolver import PortCallback, PortResolver
from .selector import ServerSelector, is_within
from .validator import ServerValidator


def build_port_resolver(
    config: BridgeConfig,
    request_client: RequestClient,
    *,
    inspector: Optional[ProcessInspector] = None,
    launcher: Optional[Launcher] = None,
    notifier: Optional[Notifier] = None,
    cwd_provider: Callable[[], str] = os.getcwd,
) -> PortResolver:
    """Wire a resolver from configuration."""
    inspector = inspector or get_process_inspector(config.process_inspector)
    return PortResolver(
        config,
        ProcessLocator(inspector, config.process_pattern),
        ServerValidator(request_client),
        ServerSelector(inspector, max_depth=config.ancestry_max_depth),
        launcher=launcher,
        notifier=notifier,
        cwd_provider=cwd_provider,
    )


__all__ = [
    "CandidateProcess",
    "LsofProcessInspector",
    "PortCallback",
    "PortResolver",
    "ProcessInspector",
    "ProcessLocator",
    "PsutilProcessInspector",
    "ServerSelector",
    "ServerValidator",
    "ValidatedServer",
    "build_port_resolver",
    "get_process_inspector",
    "is_within",
]
