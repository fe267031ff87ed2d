"""
Logging setup for cugemm_prof.

Result rows are written to stdout, so every log record goes to stderr. The
package logger is configured once and does not propagate to the root logger.
"""

from __future__ import annotations

import logging
import sys

ROOT_LOGGER = "cugemm_prof"
DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_LEVELS: dict[str, int] = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "warn": logging.WARNING,
    "error": logging.ERROR,
    "critical": logging.CRITICAL,
}

_configured = False


def level_from_string(level: str | None) -> int:
    if level is None:
        return logging.WARNING
    return _LEVELS.get(level.lower(), logging.WARNING)


def configure_logging(level: str | None = None, format_str: str | None = None) -> None:
    """Attach a stderr handler to the package logger (idempotent; later calls only change the level)."""
    global _configured

    logger = logging.getLogger(ROOT_LOGGER)
    log_level = level_from_string(level)
    logger.setLevel(log_level)

    if _configured:
        for handler in logger.handlers:
            handler.setLevel(log_level)
        return

    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(log_level)
    handler.setFormatter(logging.Formatter(format_str or DEFAULT_FORMAT))
    logger.addHandler(handler)
    logger.propagate = False

    _configured = True


def get_logger(name: str) -> logging.Logger:
    if not name.startswith(ROOT_LOGGER):
        name = f"{ROOT_LOGGER}.{name}"
    return logging.getLogger(name)
