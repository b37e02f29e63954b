from __future__ import annotations

import logging
import sys
from typing import List, Optional, TextIO

import structlog
from pythonjsonlogger import jsonlogger

from chainbuild.utils.exceptions import ConfigurationError


# Mapping from string log levels to logging module constants
LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "critical": logging.CRITICAL,
}

LOG_FORMATS = ("json", "text")

_handlers: List[logging.Handler] = []


def configure_logging(
        level: str = "info", log_format: str = "text", stream: Optional[TextIO] = None
) -> logging.Logger:
    """Configure the root logger and structlog for a build invocation.

    Replaces any handlers previously installed by this function so repeated
    calls (one per CLI run or per test) do not duplicate output.

    Args:
        level: Log level name (debug, info, warning, error, critical).
        log_format: ``json`` for JSON lines, ``text`` for a human readable format.
        stream: Destination stream, stdout when omitted.

    Returns:
        The configured root logger.

    Raises:
        ConfigurationError: If the level or format is unknown.
    """
    level_key = level.lower()
    if level_key not in LOG_LEVELS:
        raise ConfigurationError(f"Unknown log level: {level}", config_key="log_level")
    format_key = log_format.lower()
    if format_key not in LOG_FORMATS:
        raise ConfigurationError(f"Unknown log format: {log_format}", config_key="log_format")

    root_logger = logging.getLogger()
    root_logger.setLevel(LOG_LEVELS[level_key])

    shutdown_logging()

    if format_key == "json":
        formatter = _create_json_formatter()
    else:
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    console_handler = logging.StreamHandler(stream or sys.stdout)
    console_handler.setLevel(LOG_LEVELS[level_key])
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)
    _handlers.append(console_handler)

    _configure_structlog()
    return root_logger


def shutdown_logging() -> None:
    """Detach and close the handlers installed by :func:`configure_logging`."""
    root_logger = logging.getLogger()
    for handler in _handlers:
        root_logger.removeHandler(handler)
        try:
            handler.flush()
        except (OSError, ValueError):
            # Stream already closed by its owner
            pass
        handler.close()
    _handlers.clear()


def _create_json_formatter() -> logging.Formatter:
    """Create a JSON formatter for log records.

    Returns:
        logging.Formatter: A formatter that outputs logs in JSON format.
    """
    return jsonlogger.JsonFormatter(
        fmt="%(asctime)s %(name)s %(levelname)s %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S%z",
        json_ensure_ascii=False,
    )


def _configure_structlog() -> None:
    """Configure structlog to render through the stdlib handlers."""
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.KeyValueRenderer(key_order=["event"]),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
