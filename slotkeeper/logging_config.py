"""Structured logging for the engine and the CLI, built on structlog.

Every event carries ``app`` and ``env`` so snapshot tooling and services that
embed the engine can filter its lines. Output goes to stderr by default,
leaving stdout to command output such as ICS text.
"""

from __future__ import annotations

import logging
import sys
from typing import Any, Optional, TextIO

import structlog

from slotkeeper.config import get_settings

APP_NAME = "slotkeeper"


def _resolve_level(level: Optional[str]) -> int:
    name = (level or get_settings().slotkeeper_log_level).upper()
    resolved = logging.getLevelName(name)
    if not isinstance(resolved, int):
        raise ValueError(f"Unknown log level: {name}")
    return resolved


def _app_context(env: str) -> structlog.types.Processor:
    def add_app_context(_: Any, __: str, event_dict: dict[str, Any]) -> dict[str, Any]:
        event_dict.setdefault("app", APP_NAME)
        event_dict.setdefault("env", env)
        return event_dict

    return add_app_context


def setup_logging(
    level: Optional[str] = None,
    json_logs: Optional[bool] = None,
    stream: Optional[TextIO] = None,
) -> None:
    """Configure structlog for the process.

    ``level`` overrides ``SLOTKEEPER_LOG_LEVEL``; ``json_logs`` defaults to
    JSON in production and the console renderer elsewhere.
    """
    settings = get_settings()
    log_level = _resolve_level(level)
    if json_logs is None:
        json_logs = settings.slotkeeper_env == "production"
    stream = stream or sys.stderr

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            _app_context(settings.slotkeeper_env),
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.JSONRenderer() if json_logs
            else structlog.dev.ConsoleRenderer(colors=stream.isatty()),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=stream),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", stream=stream, level=log_level)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return a named structured logger."""
    return structlog.get_logger(name)
