"""
Structured logging for the scoring engine.

structlog with ISO timestamps and log level; JSON output when
LOG_FORMAT=json, human-readable console output otherwise.
"""

from __future__ import annotations

import logging
import sys
from typing import Any, Optional

import structlog

from loan_verification.config import Settings, get_settings


def configure_logging(settings: Optional[Settings] = None) -> None:
    """Configure structlog from settings. Safe to call more than once."""
    settings = settings or get_settings()
    level = getattr(logging, settings.LOG_LEVEL, logging.INFO)

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]
    if settings.LOG_FORMAT == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )


def get_logger(name: str) -> structlog.BoundLogger:
    """
    Return a lazy structured logger carrying the module name.

        logger = get_logger(__name__)
        logger.info("deterministic_scored", total=72.5, warnings=[])

    Resolution is deferred to first use, so module-level loggers pick up
    whatever configure_logging() installed later.
    """
    return structlog.get_logger(name, module=name)
