"""
Centralized logging configuration for the bridge and its CLI.

This module provides a single setup_logging function that configures
logging consistently with:
- Console output on stderr (stdout is reserved for CLI payloads)
- Optional file output, truncated on each start unless LOG_APPEND=1
- User-friendly mode that prints bare advisory messages
"""

import logging
import logging.handlers
import os
import sys
import threading
from pathlib import Path
from typing import Optional, Union

_config_lock = threading.Lock()
_MODULE_LOGGER = logging.getLogger(__name__)

_TECHNICAL_FORMAT = "%(asctime)s.%(msecs)03d - %(name)s - %(levelname)s - %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _close_handlers(logger: logging.Logger) -> None:
    """Close all handlers for a logger, logging any errors."""
    for handler in list(logger.handlers):
        try:
            handler.close()
        except OSError as e:
            _MODULE_LOGGER.debug("Handler close failed: %s", e)
    logger.handlers = []


def _build_console_handler(level: int, user_friendly: bool) -> logging.Handler:
    if user_friendly:
        formatter = logging.Formatter("%(message)s")
    else:
        formatter = logging.Formatter(_TECHNICAL_FORMAT, _DATE_FORMAT)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    console_handler.setLevel(level)
    return console_handler


def _build_file_handler(log_file: Path) -> logging.Handler:
    log_file.parent.mkdir(parents=True, exist_ok=True)
    file_mode = "a" if os.getenv("LOG_APPEND") == "1" else "w"

    handler_cls = getattr(logging.handlers, "WatchedFileHandler", logging.FileHandler)
    file_handler = handler_cls(log_file, mode=file_mode)
    file_handler.setFormatter(logging.Formatter(_TECHNICAL_FORMAT, _DATE_FORMAT))
    file_handler.setLevel(logging.DEBUG)
    return file_handler


def _suppress_noisy_third_parties() -> None:
    logging.getLogger("asyncio").setLevel(logging.WARNING)
    logging.getLogger("aiohttp").setLevel(logging.WARNING)


def setup_logging(
    level: Union[int, str] = logging.INFO,
    *,
    log_file: Optional[Union[str, Path]] = None,
    user_friendly: bool = False,
) -> None:
    """Configure the root logger for the bridge."""

    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    with _config_lock:
        root_logger = logging.getLogger()
        _close_handlers(root_logger)

        root_logger.addHandler(_build_console_handler(level, user_friendly))
        if log_file is not None:
            root_logger.addHandler(_build_file_handler(Path(log_file).expanduser()))

        root_logger.setLevel(min(level, logging.DEBUG) if log_file is not None else level)
        _suppress_noisy_third_parties()


__all__ = ["setup_logging"]
