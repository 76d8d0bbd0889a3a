"""
logging_config.py — Loguru setup for Yumi

Loguru is the only logging backend. Records from the stdlib logging
module (uvicorn, SQLAlchemy, alembic, startup.py) are forwarded to it so
everything shares one format and one sink.

Business Rules:
- Level comes from LOG_LEVEL, falling back to settings.log_level
- LOG_FORMAT=json writes one JSON object per line (containers)
- Any other LOG_FORMAT writes colored text with the request id column
- Outside a request the request id column shows "-"

Called by: yumi/main.py (at import time)
Depends on: yumi/config.py, environment (LOG_LEVEL, LOG_FORMAT)
"""

import inspect
import logging
import os
import sys

from loguru import logger

from .config import settings

TEXT_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> "
    "<level>{level: <7}</level> "
    "[<cyan>{extra[request_id]}</cyan>] "
    "<cyan>{name}</cyan>:{line} - {message}"
)

QUIET_LOGGERS = ("httpx", "httpcore", "uvicorn.access", "sqlalchemy.engine", "multipart")


def setup_logging() -> None:
    """Replace Loguru's default sink and take over stdlib logging."""
    logger.remove()

    level = (os.getenv("LOG_LEVEL") or settings.log_level).upper()
    if os.getenv("LOG_FORMAT", "").lower() == "json":
        logger.add(sys.stdout, level=level, format="{message}", serialize=True)
        fmt = "json"
    else:
        logger.add(sys.stderr, level=level, format=TEXT_FORMAT, colorize=True)
        fmt = "text"

    logger.configure(extra={"request_id": "-"})

    logging.basicConfig(handlers=[_InterceptHandler()], level=0, force=True)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logger.debug("Logging ready: level={} format={}", level, fmt)


class _InterceptHandler(logging.Handler):
    """Forward a stdlib LogRecord to Loguru, keeping the caller's location."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = inspect.currentframe(), 0
        while frame and (depth == 0 or frame.f_code.co_filename == logging.__file__):
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())
