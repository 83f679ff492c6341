"""Logging configuration for the AGH updater."""

import logging
import sys
from logging.handlers import RotatingFileHandler

import structlog

from agh_updater.config import get_settings

_MAX_LOG_BYTES = 5 * 1024 * 1024
_LOG_BACKUP_COUNT = 3

# Name given to handlers installed here so a repeated setup replaces them.
_HANDLER_NAME = "agh_updater"


def setup_logging() -> None:
    """Configure structured logging."""
    settings = get_settings()

    # Set log level
    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)

    logging.basicConfig(format="%(message)s", level=log_level, handlers=[])
    # basicConfig is a no-op when the root logger already has handlers.
    logging.root.setLevel(log_level)

    for handler in [h for h in logging.root.handlers if h.get_name() == _HANDLER_NAME]:
        logging.root.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler(sys.stdout)
    console.set_name(_HANDLER_NAME)
    console.setLevel(log_level)
    logging.root.addHandler(console)

    if settings.log_to_file:
        file_handler = RotatingFileHandler(
            settings.log_file_path,
            maxBytes=_MAX_LOG_BYTES,
            backupCount=_LOG_BACKUP_COUNT,
            encoding="utf-8",
        )
        file_handler.set_name(_HANDLER_NAME)
        file_handler.setLevel(log_level)
        logging.root.addHandler(file_handler)

    # Configure structlog
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_logger_name,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso"),
            (
                structlog.dev.ConsoleRenderer(colors=True)
                if settings.is_development
                else structlog.processors.JSONRenderer()
            ),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Reduce noise from httpx
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a logger instance."""
    return structlog.get_logger(name)
