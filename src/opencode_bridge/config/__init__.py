"""Shared configuration helpers and dataclasses."""

from .errors import ConfigurationError
from .runtime import env_bool, env_float, env_int, env_str, reset_default_values
from .settings import INSPECTOR_KINDS, BridgeConfig

__all__ = [
    "BridgeConfig",
    "ConfigurationError",
    "INSPECTOR_KINDS",
    "env_bool",
    "env_float",
    "env_int",
    "env_str",
    "reset_default_values",
]
