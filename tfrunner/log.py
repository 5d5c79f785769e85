"""Log output for a ``tfrunner`` invocation.

Everything goes to stderr through loguru so stdout carries only the run
result.  Records from libraries that use stdlib logging are forwarded into
the same sink, tagged with their logger name.
"""

from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING, TextIO

from loguru import logger

if TYPE_CHECKING:
    from loguru import Record

# Short lines for normal runs; debug lines also say where they came from.
_FORMAT = "<green>{time:HH:mm:ss}</green> | <level>{level: <7}</level> | <level>{message}</level>"


def _debug_format(record: Record) -> str:
    origin = record["extra"].get("origin", record["name"])
    return (
        "<green>{time:HH:mm:ss.SSS}</green> | <level>{level: <7}</level> | "
        f"<cyan>{origin}</cyan> - <level>{{message}}</level>\n{{exception}}"
    )


class _ForwardHandler(logging.Handler):
    """Hand stdlib records to loguru, keeping the original logger name."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno
        logger.bind(origin=record.name).opt(exception=record.exc_info).log(level, record.getMessage())


def setup_logging(level: str = "INFO", *, debug: bool = False, sink: TextIO | None = None) -> int:
    """Install the single log sink and return its loguru handler id.

    *debug* (``--debug`` / ``TFRUNNER_DEBUG``) forces the DEBUG level, which
    adds request lines and status checks to the per-poll trace.  httpx and
    httpcore stay at WARNING either way: their INFO lines would print the
    pre-signed upload URL.
    """
    level = "DEBUG" if debug else level.upper()

    logger.remove()
    handler_id = logger.add(
        sink or sys.stderr,
        level=level,
        format=_debug_format if debug else _FORMAT,
    )

    logging.basicConfig(handlers=[_ForwardHandler()], level=logging.NOTSET, force=True)
    for name in ("httpx", "httpcore"):
        logging.getLogger(name).setLevel(logging.WARNING)

    logger.debug("Logging to stderr at level {}", level)
    return handler_id
