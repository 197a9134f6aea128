"""
logging_config.py — Centralized Logging Configuration for the shop-floor data layer

Sets up Loguru as the single logging backend. Intercepts Python's stdlib
logging module so library loggers (SQLAlchemy, httpx, APScheduler) route
through Loguru with the same format.

Business Rules:
- All logs go through Loguru (no print() in library code)
- JSON lines when log_json is set, for shipping off the device
- Human-readable colored format otherwise
- Sync passes bind a pass_id so one pass can be followed across records

Called by: shopfloor/main.py (ShopfloorApp.open)
Depends on: shopfloor/config.py (log_level, log_json)
"""

import logging
import sys

from loguru import logger

from .config import get_settings

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> "
    "<level>{level: <7}</level> "
    "<magenta>[{extra[pass_id]}]</magenta> "
    "<cyan>{name}:{line}</cyan> {message}"
)


def setup_logging(level: str | None = None, json_output: bool | None = None) -> None:
    """Configure Loguru and intercept stdlib logging.

    Arguments override the settings values; call once per process.
    """
    settings = get_settings()
    log_level = (level or settings.log_level).upper()
    serialize = settings.log_json if json_output is None else json_output

    logger.remove()
    # Records outside a sync pass still carry the key the console format reads
    logger.configure(extra={"pass_id": "-"})

    if serialize:
        logger.add(sys.stdout, level=log_level, format="{message}", serialize=True)
    else:
        logger.add(sys.stdout, level=log_level, format=CONSOLE_FORMAT, colorize=True)

    logging.basicConfig(handlers=[_InterceptHandler()], level=0, force=True)

    for noisy in ("httpx", "httpcore", "sqlalchemy.engine", "aiosqlite", "apscheduler"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    logger.info("Logging configured", level=log_level, json=serialize)


class _InterceptHandler(logging.Handler):
    """Route stdlib logging records to Loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Skip frames from stdlib logging internals
        frame, depth = logging.currentframe(), 0
        while frame and (depth == 0 or frame.f_code.co_filename == logging.__file__):
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )
