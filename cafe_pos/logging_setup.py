"""Structured logging configuration."""

from __future__ import annotations

import logging
from pathlib import Path

import structlog

from cafe_pos.config import LOG_PATH

# Suppress noisy library loggers
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("websockets").setLevel(logging.WARNING)


def configure_logging(log_path: str = LOG_PATH, level: int = logging.INFO) -> None:
    """Route structlog output to a file so it never draws over the terminal UI."""
    path = Path(log_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.KeyValueRenderer(key_order=["timestamp", "level", "event"]),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.WriteLoggerFactory(file=path.open("a", encoding="utf-8")),
        cache_logger_on_first_use=True,
    )
