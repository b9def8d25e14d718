"""Structured logging configuration for FlowCanvas.

This module provides the logging setup used by the editing core:
- JSON structured logging for machine parsing
- Colored console output for development (DEBUG mode)
- Optional rotating file handler
- Structured ``context`` extras attached via LogContext

Library modules log through ``logging.getLogger(__name__)``; the host
application calls ``setup_logging()`` once at startup.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, ClassVar

from flowcanvas.core.config import settings


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging.

    Format:
        {
            "timestamp": "2026-01-12T10:30:45.123Z",
            "level": "WARNING",
            "logger": "flowcanvas.services.workflow.history",
            "message": "Failed to apply workflow snapshot",
            "context": {"index": 3}
        }
    """

    def __init__(self, service_name: str = "FlowCanvas") -> None:
        """Initialize JSON formatter.

        Args:
            service_name: Name of the service stamped on every record
        """
        super().__init__()
        self.service_name = service_name

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON.

        Args:
            record: Log record to format

        Returns:
            JSON-formatted log string
        """
        log_entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC)
            .isoformat()
            .replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": self.service_name,
        }

        if hasattr(record, "context"):
            log_entry["context"] = record.context

        if record.exc_info:
            log_entry["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": self.formatException(record.exc_info),
            }

        if record.levelno >= logging.ERROR:
            log_entry["source"] = {
                "function": record.funcName,
                "line": record.lineno,
                "file": record.pathname,
            }

        return json.dumps(log_entry, default=str, ensure_ascii=False)


class ColoredConsoleFormatter(logging.Formatter):
    """Human-readable, colored console formatter for development."""

    COLORS: ClassVar[dict[str, str]] = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[41m",  # Red background
    }
    RESET: ClassVar[str] = "\033[0m"

    def __init__(self) -> None:
        super().__init__(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    def format(self, record: logging.LogRecord) -> str:
        """Format log record with colors and inline context."""
        log_color = self.COLORS.get(record.levelname, self.RESET)
        record.levelname = f"{log_color}{record.levelname}{self.RESET}"

        if hasattr(record, "context") and record.context:
            record.msg = f"{record.msg} | Context: {json.dumps(record.context, default=str)}"

        return super().format(record)


def setup_logging(
    log_level: str | None = None,
    log_file: str | None = None,
    service_name: str | None = None,
    enable_json: bool | None = None,
) -> logging.Logger:
    """Configure root logging for the host application.

    Args:
        log_level: Logging level name. Defaults to settings.LOG_LEVEL.
        log_file: Optional path of a rotating log file. Defaults to
            settings.LOG_FILE; no file handler is installed when both are unset.
        service_name: Service name for JSON records. Defaults to settings.PROJECT_NAME.
        enable_json: Use JSON records. Defaults to settings.LOG_JSON_FORMAT.
            The colored console formatter is used instead when settings.DEBUG is on.

    Returns:
        Configured root logger instance

    Examples:
        >>> logger = setup_logging(log_level="DEBUG")
        >>> logger.info("Editor ready", extra={"context": {"nodes": 3}})
    """
    log_level = (log_level or settings.LOG_LEVEL).upper()
    log_file = log_file if log_file is not None else settings.LOG_FILE
    service_name = service_name or settings.PROJECT_NAME
    if enable_json is None:
        enable_json = settings.LOG_JSON_FORMAT

    level = getattr(logging, log_level, logging.INFO)
    logger = logging.getLogger()
    logger.setLevel(level)

    # Remove existing handlers to avoid duplicates
    logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    if settings.DEBUG or not enable_json:
        console_handler.setFormatter(ColoredConsoleFormatter())
    else:
        console_handler.setFormatter(JSONFormatter(service_name=service_name))
    logger.addHandler(console_handler)

    if log_file:
        log_file_path = Path(log_file)
        log_file_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            filename=str(log_file_path),
            maxBytes=5 * 1024 * 1024,  # 5MB
            backupCount=3,
            encoding="utf-8",
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(JSONFormatter(service_name=service_name))
        logger.addHandler(file_handler)

    logger.debug(
        "Logging initialized",
        extra={"context": {"log_level": log_level, "log_file": log_file}},
    )
    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance with the specified name.

    Args:
        name: Logger name (typically __name__ of the module)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)


class LogContext:
    """Attach structured context to every record logged inside a scope.

    Examples:
        >>> logger = get_logger(__name__)
        >>> with LogContext(logger, workflow="support-bot"):
        ...     logger.info("Converting graph")
    """

    def __init__(self, logger: logging.Logger, **context: Any) -> None:
        self.logger = logger
        self.context = context
        self.old_factory = logging.getLogRecordFactory()

    def __enter__(self) -> LogContext:
        def record_factory(*args: Any, **kwargs: Any) -> logging.LogRecord:
            record = self.old_factory(*args, **kwargs)
            existing = getattr(record, "context", None) or {}
            record.context = {**existing, **self.context}
            return record

        logging.setLogRecordFactory(record_factory)
        return self

    def __exit__(self, *args: Any) -> None:
        logging.setLogRecordFactory(self.old_factory)


__all__ = [
    "ColoredConsoleFormatter",
    "JSONFormatter",
    "LogContext",
    "get_logger",
    "setup_logging",
]
