"""structlog configuration shared by the worker, tasks and operator scripts."""

from __future__ import annotations

import logging

import structlog

from elementsearch.config import Settings, get_settings


def configure_logging(settings: Settings | None = None) -> None:
    """Configure structlog processors and the stdlib root level."""
    settings = settings or get_settings()
    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(level=level, format="%(message)s")

    renderer = structlog.processors.JSONRenderer() if settings.log_json else structlog.dev.ConsoleRenderer()
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
    )
