"""Structured logging configuration for the pipeline graph engine.

This module configures the standard logging system for library and
embedding applications:
- JSON structured logging for machine parsing
- Colored console output for development (DEBUG mode)
- Optional rotating file handler (10MB max, 5 backups)
- Sensitive data filtering (step configurations carry tokens and key files)
- Structured context attached to records via LogContext
"""

from __future__ import annotations

import json
import logging
import re
import sys
from datetime import UTC, datetime
from enum import Enum
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, ClassVar

from pipeline_graph.core.config import settings


class LogLevel(str, Enum):
    """Log level enumeration for type-safe log level configuration."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class SensitiveDataFilter(logging.Filter):
    """Filter to prevent secrets from appearing in logs.

    Step configurations routinely contain repository tokens, SSH key
    files and registry credentials. When a configuration or an issue
    message is logged, values following these keys are redacted.

    Examples:
        >>> logger = logging.getLogger("pipeline_graph")
        >>> logger.addFilter(SensitiveDataFilter())
        >>> logger.info("clone config token: ghp_abc123")
        # Logs: "clone config token: [REDACTED]"
    """

    SENSITIVE_PATTERNS: ClassVar[list[str]] = [
        "password",
        "passwd",
        "secret",
        "token",
        "api_key",
        "apikey",
        "keyfile",
        "key_file",
        "authorization",
        "bearer",
        "credential",
    ]

    def __init__(self) -> None:
        super().__init__()
        self._regexes = [
            (pattern, re.compile(rf"{pattern}[\"']?\s*[:=]\s*[\"']?[^\s\"',}}]+", re.IGNORECASE))
            for pattern in self.SENSITIVE_PATTERNS
        ]

    def filter(self, record: logging.LogRecord) -> bool:
        """Redact sensitive data from a log record.

        Args:
            record: Log record to filter

        Returns:
            True (always allows the record, but redacts sensitive data)
        """
        record.msg = self._redact_sensitive_data(str(record.msg))

        if record.args:
            record.args = tuple(
                self._redact_sensitive_data(arg) if isinstance(arg, str) else arg
                for arg in record.args
            )

        return True

    def _redact_sensitive_data(self, text: str) -> str:
        for pattern, regex in self._regexes:
            text = regex.sub(f"{pattern}: [REDACTED]", text)
        return text


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging.

    Format:
        {
            "timestamp": "2025-01-12T10:30:45.123Z",
            "level": "INFO",
            "logger": "pipeline_graph.services.pipeline.autofix",
            "message": "Auto-fix applied 2 of 3 fixable issues",
            "service": "Pipeline Graph",
            "context": {"fixed": 2, "requested": 3}
        }
    """

    def __init__(
        self,
        service_name: str = "Pipeline Graph",
        service_version: str = "0.1.0",
    ) -> None:
        super().__init__()
        self.service_name = service_name
        self.service_version = service_version

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
            "version": self.service_version,
        }

        context = {**getattr(record, "log_context", {}), **getattr(record, "context", {})}
        if context:
            log_entry["context"] = context

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
    """Colored console formatter for development environments."""

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
        log_color = self.COLORS.get(record.levelname, self.RESET)
        record.levelname = f"{log_color}{record.levelname}{self.RESET}"

        context = {**getattr(record, "log_context", {}), **getattr(record, "context", {})}
        if context:
            record.msg = f"{record.msg} | Context: {json.dumps(context, default=str)}"

        return super().format(record)


def setup_logging(
    log_level: str | None = None,
    log_file: str | None = None,
    service_name: str | None = None,
    enable_json: bool | None = None,
    enable_console: bool = True,
) -> logging.Logger:
    """Configure logging for the ``pipeline_graph`` logger hierarchy.

    Only the package logger is configured, never the root logger, so an
    embedding application keeps control over its own handlers.

    Args:
        log_level: Logging level. Defaults to settings.LOG_LEVEL
        log_file: Path to a log file. Defaults to settings.LOG_FILE; when
                  neither is set no file handler is installed
        service_name: Name reported in JSON records. Defaults to settings.PROJECT_NAME
        enable_json: Use JSON formatting for the file handler. Defaults to
                     settings.LOG_JSON_FORMAT
        enable_console: Enable console output handler

    Returns:
        The configured ``pipeline_graph`` logger

    Examples:
        >>> logger = setup_logging(log_level="DEBUG")
        >>> logger.info("Validator ready", extra={"context": {"rules": 8}})
    """
    if log_level is None:
        log_level = settings.LOG_LEVEL
    if log_file is None:
        log_file = settings.LOG_FILE
    if service_name is None:
        service_name = settings.PROJECT_NAME
    if enable_json is None:
        enable_json = settings.LOG_JSON_FORMAT

    level = getattr(logging, log_level.upper(), logging.INFO)

    logger = logging.getLogger("pipeline_graph")
    logger.setLevel(level)

    # Remove existing handlers to avoid duplicates on repeated setup
    logger.handlers.clear()

    sensitive_filter = SensitiveDataFilter()

    if log_file:
        log_file_path = Path(log_file)
        log_file_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = RotatingFileHandler(
            filename=str(log_file_path),
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.setLevel(logging.DEBUG)

        if enable_json:
            file_handler.setFormatter(JSONFormatter(service_name=service_name))
        else:
            file_handler.setFormatter(
                logging.Formatter(
                    "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                    datefmt="%Y-%m-%d %H:%M:%S",
                )
            )

        file_handler.addFilter(sensitive_filter)
        logger.addHandler(file_handler)

    if enable_console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(level)

        if settings.DEBUG:
            console_handler.setFormatter(ColoredConsoleFormatter())
        else:
            console_handler.setFormatter(JSONFormatter(service_name=service_name))

        console_handler.addFilter(sensitive_filter)
        logger.addHandler(console_handler)

    logger.debug(
        f"Logging initialized - Level: {log_level}, File: {log_file or '-'}",
        extra={
            "context": {
                "log_level": log_level,
                "log_file": log_file,
                "service": service_name,
            }
        },
    )

    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance with the specified name.

    Args:
        name: Logger name (typically __name__ of the module)

    Returns:
        Logger instance

    Examples:
        >>> from pipeline_graph.core.logging import get_logger
        >>> logger = get_logger(__name__)
        >>> logger.info("Validating pipeline")
    """
    return logging.getLogger(name)


class LogContext:
    """Context helper for adding structured context to log records.

    Examples:
        >>> logger = get_logger(__name__)
        >>> with LogContext(logger, pipeline="Release", checksum="ab12"):
        ...     logger.info("Exporting pipeline")
        # Logs: "Exporting pipeline" with context
        # {pipeline: "Release", checksum: "ab12"}
    """

    def __init__(self, logger: logging.Logger, **context: Any) -> None:
        self.logger = logger
        self.context = context
        self.old_factory = logging.getLogRecordFactory()

    def __enter__(self) -> None:
        def record_factory(*args: Any, **kwargs: Any) -> logging.LogRecord:
            record = self.old_factory(*args, **kwargs)
            # Kept apart from "context" so extra={"context": ...} still works
            record.log_context = {**getattr(record, "log_context", {}), **self.context}
            return record

        logging.setLogRecordFactory(record_factory)

    def __exit__(self, *args: Any) -> None:
        logging.setLogRecordFactory(self.old_factory)


__all__ = [
    "ColoredConsoleFormatter",
    "JSONFormatter",
    "LogContext",
    "LogLevel",
    "SensitiveDataFilter",
    "get_logger",
    "setup_logging",
]
