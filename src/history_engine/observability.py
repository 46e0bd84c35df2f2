"""Structured logging configuration using structlog."""

from __future__ import annotations

import logging
import sys

import structlog

from history_engine.settings import Settings


def setup_logging(level: str = "info", json: bool = True) -> None:
    """Configure structlog for output to stderr."""
    log_level = getattr(logging, level.upper(), logging.INFO)
    renderer = structlog.processors.JSONRenderer() if json else structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso", utc=True, key="ts"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


def get_logger(component: str) -> structlog.stdlib.BoundLogger:
    """Get a logger bound with a component name."""
    return structlog.get_logger(component=component)  # type: ignore[return-value]


def configure_logging(settings: Settings | None = None) -> Settings:
    """Configure logging from engine settings and bind the service name.

    Call once at process startup, before any tracker replays.

    Args:
        settings: Engine settings. Defaults to Settings() from the environment.

    Returns:
        The settings logging was configured from.
    """
    settings = settings or Settings()
    setup_logging(settings.log_level, json=settings.log_json)
    structlog.contextvars.bind_contextvars(service=settings.service_name)
    return settings
