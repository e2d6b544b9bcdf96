# WORKFLOW: Logging setup shared by the API and the extraction pipeline.
# Used by: api/main.py at startup
# Functions:
# 1. configure_logging() - Configure stdlib logging and structlog renderers
#
# Pipeline modules log through logging.getLogger(__name__); request logging
# goes through structlog, rendered as JSON in production or console in dev.

import logging
import sys

import structlog

from core.config import Settings


def configure_logging(settings: Settings) -> None:
    """Configure stdlib logging and structlog from settings."""
    level = getattr(logging, settings.log_level.upper(), logging.INFO)

    logging.basicConfig(
        level=level,
        stream=sys.stdout,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if settings.log_format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        cache_logger_on_first_use=True,
    )
