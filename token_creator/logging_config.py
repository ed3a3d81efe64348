"""
Logging setup for the token creator.

All modules log through ``structlog.get_logger(__name__)``; this module wires
structlog on top of the standard library logger once per process.
"""
import logging
import sys

import structlog


def configure_logging(level: str = "INFO", format_json: bool = False) -> None:
    """
    Configure structlog for the whole package.

    Args:
        level: Logging level name (DEBUG, INFO, WARNING, ERROR)
        format_json: Emit JSON lines instead of the coloured console format
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    logging.basicConfig(
        level=log_level,
        stream=sys.stderr,
        format="%(message)s",
    )

    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if format_json:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
