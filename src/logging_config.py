"""
Structured logging configuration using structlog.

Usage:
    from src.logging_config import get_logger

    log = get_logger(__name__)
    log.info("chunks_stored", note_id="n1", count=3)
"""
import logging
import logging.handlers
import sys
from typing import Optional

import structlog

# Chatty client libraries that log every HTTP request at INFO
_NOISY_LOGGERS = ("httpx", "httpcore", "openai", "urllib3")


def configure_logging(
    log_level: str = "INFO",
    json_format: bool = True,
    log_file: Optional[str] = None,
) -> None:
    """
    Configure structlog and route stdlib logging through the same processors.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        json_format: If True, output JSON. If False, use colored console output.
        log_file: Optional path to a daily-rotated JSON log file.
    """
    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.ExtraAdder(),
    ]

    if json_format:
        console_renderer = structlog.processors.JSONRenderer()
    else:
        console_renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=shared_processors + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, log_level.upper()))

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(_formatter(shared_processors, console_renderer))
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.handlers.TimedRotatingFileHandler(
            log_file,
            when="midnight",
            interval=1,
            backupCount=7
        )
        # Files are always JSON for parseability
        file_handler.setFormatter(
            _formatter(shared_processors, structlog.processors.JSONRenderer())
        )
        root_logger.addHandler(file_handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def configure_from_settings() -> None:
    """Configure logging from application settings (LOG_LEVEL, JSON_LOGS)."""
    from src.config import get_settings
    settings = get_settings()
    configure_logging(log_level=settings.log_level, json_format=settings.json_logs)


def _formatter(shared_processors: list, renderer) -> structlog.stdlib.ProcessorFormatter:
    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )


def get_logger(name: Optional[str] = None) -> structlog.stdlib.BoundLogger:
    """
    Get a structlog logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        A bound structlog logger
    """
    return structlog.get_logger(name)


def bind_contextvars(**kwargs) -> None:
    """
    Bind key-value pairs to the context that will be included in all logs.

    Example:
        bind_contextvars(owner_id="user-1", note_id="note-9")
    """
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_contextvars() -> None:
    """Clear all context variables (call at end of request/operation)."""
    structlog.contextvars.clear_contextvars()
