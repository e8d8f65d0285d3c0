"""
Structured logging setup.

Routes structlog through the standard library so third-party loggers
(SQLAlchemy, redis) share one output format.
"""

import logging
import sys

import structlog

from .config import Settings, get_settings


def configure_logging(
    level: str | None = None,
    json_output: bool | None = None,
    settings: Settings | None = None,
) -> None:
    """Configure structlog and the root stdlib logger.

    Args:
        level: Log level name, defaults to ``LOG_LEVEL`` from settings
        json_output: Render JSON lines; defaults to True outside development
        settings: Defaults to ``get_settings()``
    """
    settings = settings or get_settings()
    level = (level or settings.LOG_LEVEL).upper()
    if json_output is None:
        json_output = not settings.is_development

    renderer = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer()
    )

    logging.basicConfig(
        format="%(message)s", stream=sys.stdout, level=level, force=True
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
