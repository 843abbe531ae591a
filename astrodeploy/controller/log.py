"""Logging configuration using loguru.

Every record carries the lifecycle verb and deployment it belongs to
(``extra[verb]`` / ``extra[deployment]``); the reconciler binds both for the
duration of a call with ``logger.contextualize``.  Records logged outside a
lifecycle call show ``-`` for both.

Stdlib logging (httpx, httpcore) is routed into the same sinks.
"""

from __future__ import annotations

import logging
import sys

from loguru import logger

TEXT_FORMAT = (
    "<green>{time:HH:mm:ss.SSS}</green> "
    "<level>{level: <7}</level> "
    "<magenta>{extra[verb]: <6}</magenta> "
    "<cyan>{extra[deployment]}</cyan> | "
    "<level>{message}</level>"
)


class _InterceptHandler(logging.Handler):
    """Forward stdlib log records to loguru, keeping the caller's location."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def setup_logging(level: str = "INFO", *, json: bool = False) -> None:
    """Install the controller's stderr sink.  Call once per process.

    ``json=True`` writes one JSON object per record instead, with the verb and
    deployment under ``record.extra``.
    """
    level = level.upper()

    logger.remove()
    logger.configure(extra={"verb": "-", "deployment": "-"})
    if json:
        logger.add(sys.stderr, level=level, serialize=True)
    else:
        logger.add(sys.stderr, level=level, format=TEXT_FORMAT)

    logging.basicConfig(handlers=[_InterceptHandler()], level=0, force=True)
    for name in ("httpx", "httpcore"):
        logging.getLogger(name).setLevel(logging.WARNING)
