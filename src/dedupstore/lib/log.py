"""Structured logging setup."""

import logging
import sys

import structlog

from dedupstore.config import LoggingConfig

__all__ = ("configure_logging",)


def configure_logging(config: LoggingConfig | None = None) -> None:
    """Route structlog through the stdlib logging module.

    Modules obtain their loggers with `structlog.stdlib.get_logger(__name__)`;
    this only decides level and rendering for the running process.
    """

    config = config or LoggingConfig()

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=config.level.upper(),
        force=True,
    )

    processors: list[structlog.typing.Processor] = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if config.render_json:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )
