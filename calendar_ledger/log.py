"""
Structured logging setup.

Library modules only call structlog.get_logger(__name__) and emit
event-style messages with keyword context. Applications call
configure_logging() once at startup to choose the renderer and level.
"""

import logging
from typing import Optional

import structlog


def configure_logging(json: bool = True, level: int = logging.INFO, processors: Optional[list] = None) -> None:
    """
    Configure structlog for the calendar ledger.

    Args:
        json: Render events as JSON lines (default) or as colored console output.
        level: Minimum stdlib log level that is emitted.
        processors: Replace the default processor chain entirely.
    """
    logging.basicConfig(format="%(message)s", level=level)

    if processors is None:
        renderer = (
            structlog.processors.JSONRenderer()
            if json
            else structlog.dev.ConsoleRenderer()
        )
        processors = [
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: Optional[str] = None):
    """Return a structlog logger bound to the given module name."""
    return structlog.get_logger(name)
