"""Structured logging configuration."""

import sys
import structlog
import logging
from pathlib import Path
from typing import Any, Optional
from temporaries.core.config import Settings


def configure_logging(settings: Settings) -> None:
    """Configure structured logging based on settings.

    Log lines go to stderr so that command output on stdout stays clean.
    """
    level = getattr(logging, settings.log_level, logging.WARNING)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    handlers = [console_handler]

    if settings.log_file:
        log_path = Path(settings.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_path)
        file_handler.setLevel(level)
        handlers.append(file_handler)

    logging.basicConfig(
        level=level,
        handlers=handlers,
        format="%(message)s",
        force=True,
    )

    # Quiet database drivers
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("apscheduler").setLevel(logging.WARNING)

    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if settings.log_format == "json":
        processors.insert(0, structlog.processors.TimeStamper(fmt="iso"))
        processors.insert(0, structlog.stdlib.add_logger_name)
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.insert(0, structlog.processors.TimeStamper(fmt="%H:%M:%S"))
        processors.append(structlog.dev.ConsoleRenderer(
            colors=False,
            pad_event=35,
            exception_formatter=structlog.dev.plain_traceback
        ))

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)


def log_store_operation(logger: structlog.BoundLogger, operation: str,
                        key: str, scope: str, result: Optional[Any] = None,
                        **kwargs) -> None:
    """Log temporary store operations."""
    log_data = {
        "operation": operation,
        "temporary": key,
        "scope": scope,
        **kwargs
    }

    if result is not None:
        log_data["result"] = result

    logger.debug("Temporary operation", **log_data)
