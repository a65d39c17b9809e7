"""
Structured logging for the agent loop, the replay CLI and the live runner.

Every module obtains its logger through ``get_logger(__name__)``; nothing is
emitted in a useful shape until ``configure_logging`` has run once at startup.
"""
import logging
import sys
from typing import Any, Optional, TextIO

import structlog


def configure_logging(
    level: str = "INFO",
    json_output: Optional[bool] = None,
    stream: Optional[TextIO] = None,
) -> None:
    """
    Route stdlib logging and structlog to one stream at one level.

    Args:
        level: Level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: True for JSON lines, False for the console renderer.
            None picks the console renderer only when the target is a TTY.
        stream: Destination for log lines. The replay CLI passes stderr so
            that ``--format json`` output on stdout stays parseable.
    """
    stream = stream or sys.stdout
    logging.basicConfig(
        format="%(message)s",
        stream=stream,
        level=getattr(logging, level.upper()),
        force=True,
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
    ]

    if json_output is None:
        json_output = not (hasattr(stream, "isatty") and stream.isatty())

    if json_output:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> Any:
    """Return a structlog logger named after the calling module."""
    return structlog.get_logger(name)


VERBOSITY_LEVELS = {
    0: "ERROR",
    1: "WARNING",
    2: "INFO",
    3: "DEBUG",
}


def level_for_verbosity(verbose: int) -> str:
    """Map a CLI verbosity level (0-3) to a logging level name."""
    return VERBOSITY_LEVELS[max(0, min(3, verbose))]
