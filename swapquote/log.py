"""Logging setup.

Modules log through ``structlog.get_logger()`` with event-name messages and
keyword context. Entry points call configure_logging() once at startup.
"""

from __future__ import annotations

import logging

import structlog


def configure_logging(level: str | int = "INFO", *, json: bool = False) -> None:
    """Configure structlog processors and the minimum log level.

    Args:
        level: Level name ("DEBUG", "INFO", ...) or logging constant
        json: Render events as JSON lines instead of the console format
    """
    if isinstance(level, str):
        level = logging.getLevelNamesMapping().get(level.upper(), logging.INFO)

    renderer = (
        structlog.processors.JSONRenderer() if json else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
    )
