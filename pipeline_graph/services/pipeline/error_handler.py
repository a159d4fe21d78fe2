"""Error handling service for the pipeline engine.

``ErrorHandler`` is an explicitly constructed, caller-owned service. It
normalizes exceptions into ``ErrorDetails``, logs them, keeps the most
recent ones in a bounded ring buffer and forwards them to subscribers
(for example an error-reporting client or a notification layer).
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Callable
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import Field

from pipeline_graph.core.config import settings
from pipeline_graph.schemas.base import BaseSchema
from pipeline_graph.services.pipeline.exceptions import PipelineError

logger = logging.getLogger(__name__)


class ErrorCode(str, Enum):
    """Machine-readable error codes."""

    # Validation
    CIRCULAR_DEPENDENCY = "CIRCULAR_DEPENDENCY"
    ORPHANED_NODES = "ORPHANED_NODES"
    INVALID_NODE_CONFIG = "INVALID_NODE_CONFIG"
    MISSING_REQUIRED_FIELD = "MISSING_REQUIRED_FIELD"
    INVALID_CONNECTION = "INVALID_CONNECTION"
    RULE_FAILED = "RULE_FAILED"

    # Export / import
    EXPORT_FAILED = "EXPORT_FAILED"
    IMPORT_FAILED = "IMPORT_FAILED"
    INVALID_FORMAT = "INVALID_FORMAT"

    UNKNOWN_ERROR = "UNKNOWN_ERROR"


class ErrorSeverity(str, Enum):
    """How serious an error is for the user."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


# User-facing wording per code (title, message, suggestion)
ERROR_MESSAGES: dict[ErrorCode, dict[str, str]] = {
    ErrorCode.CIRCULAR_DEPENDENCY: {
        "title": "Circular Dependency Detected",
        "message": "Your pipeline contains a circular dependency. Please remove the loop to continue.",
        "suggestion": "Check your connections and remove any cycles in the flow.",
    },
    ErrorCode.ORPHANED_NODES: {
        "title": "Disconnected Nodes Found",
        "message": "Some nodes are not connected to the main pipeline flow.",
        "suggestion": "Connect all nodes or remove unused ones to improve pipeline clarity.",
    },
    ErrorCode.INVALID_NODE_CONFIG: {
        "title": "Invalid Node Configuration",
        "message": "One or more nodes have invalid configuration.",
        "suggestion": "Please check the highlighted nodes and fix their configuration.",
    },
    ErrorCode.MISSING_REQUIRED_FIELD: {
        "title": "Missing Required Information",
        "message": "Some required fields are missing.",
        "suggestion": "Please fill in all required fields before proceeding.",
    },
    ErrorCode.INVALID_CONNECTION: {
        "title": "Invalid Connection",
        "message": "This connection is not allowed between these node types.",
        "suggestion": "Check the component documentation for valid connections.",
    },
    ErrorCode.RULE_FAILED: {
        "title": "Validation Rule Failed",
        "message": "A validation rule could not be evaluated.",
        "suggestion": "Other checks still ran. Review the rule or report the problem.",
    },
    ErrorCode.EXPORT_FAILED: {
        "title": "Export Failed",
        "message": "Unable to export your pipeline.",
        "suggestion": "Please check your pipeline configuration and try again.",
    },
    ErrorCode.IMPORT_FAILED: {
        "title": "Import Failed",
        "message": "Unable to import the pipeline file.",
        "suggestion": "Please check that the file format is correct and try again.",
    },
    ErrorCode.INVALID_FORMAT: {
        "title": "Invalid File Format",
        "message": "The selected file is not in a supported format.",
        "suggestion": "Please select a valid JSON pipeline file.",
    },
    ErrorCode.UNKNOWN_ERROR: {
        "title": "Unexpected Error",
        "message": "An unexpected error occurred.",
        "suggestion": "Please try again. If the problem persists, contact support.",
    },
}

_SEVERITY_LOG_LEVELS: dict[str, int] = {
    ErrorSeverity.LOW.value: logging.INFO,
    ErrorSeverity.MEDIUM.value: logging.WARNING,
    ErrorSeverity.HIGH.value: logging.ERROR,
    ErrorSeverity.CRITICAL.value: logging.CRITICAL,
}

_CODE_SEVERITY: dict[str, ErrorSeverity] = {
    ErrorCode.RULE_FAILED.value: ErrorSeverity.MEDIUM,
    ErrorCode.INVALID_NODE_CONFIG.value: ErrorSeverity.MEDIUM,
    ErrorCode.EXPORT_FAILED.value: ErrorSeverity.HIGH,
    ErrorCode.IMPORT_FAILED.value: ErrorSeverity.HIGH,
    ErrorCode.INVALID_FORMAT.value: ErrorSeverity.HIGH,
}


class ErrorContext(BaseSchema):
    """Where an error happened."""

    component: str = "unknown"
    action: str = "unknown"
    metadata: dict[str, Any] = Field(default_factory=dict)


class ErrorDetails(BaseSchema):
    """Normalized record of a handled error."""

    code: str
    message: str
    severity: ErrorSeverity
    recoverable: bool = True
    context: ErrorContext = Field(default_factory=ErrorContext)
    occurred_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    error_type: str = "Exception"


ErrorSubscriber = Callable[[ErrorDetails], None]


class ErrorHandler:
    """Caller-owned error log and dispatcher.

    Example:
        >>> reported = []
        >>> handler = ErrorHandler(max_log_size=50, subscribers=[reported.append])
        >>> handler.handle_error(ValueError("boom"), component="validator", action="validate")
        >>> handler.get_recent_errors(1)[0].code
        'UNKNOWN_ERROR'
    """

    def __init__(
        self,
        max_log_size: int | None = None,
        subscribers: list[ErrorSubscriber] | None = None,
    ) -> None:
        """Initialize the handler.

        Args:
            max_log_size: Ring buffer capacity. Defaults to settings.ERROR_LOG_SIZE
            subscribers: Callbacks invoked with every handled error.
        """
        self.max_log_size = max_log_size or settings.ERROR_LOG_SIZE
        self._log: deque[ErrorDetails] = deque(maxlen=self.max_log_size)
        self._subscribers: list[ErrorSubscriber] = list(subscribers or [])

    def subscribe(self, callback: ErrorSubscriber) -> None:
        """Register a callback for every handled error."""
        self._subscribers.append(callback)

    def handle_error(
        self,
        error: Exception,
        component: str = "unknown",
        action: str = "unknown",
        **metadata: Any,
    ) -> ErrorDetails:
        """Record, log and dispatch an error.

        Never raises: a failing subscriber is logged and skipped.

        Args:
            error: The exception to handle.
            component: Component in which it occurred (e.g. "validator").
            action: Operation that failed (e.g. "validate").
            **metadata: Extra context stored with the record.

        Returns:
            The normalized ErrorDetails.
        """
        details = self._create_error_details(error, component, action, metadata)
        self._log.append(details)

        logger.log(
            _SEVERITY_LOG_LEVELS.get(details.severity, logging.ERROR),
            f"Pipeline error [{details.code}]: {details.message}",
            extra={
                "context": {
                    "component": component,
                    "action": action,
                    "severity": details.severity,
                    **metadata,
                }
            },
        )

        for subscriber in self._subscribers:
            try:
                subscriber(details)
            except Exception:
                logger.exception("Error subscriber failed")

        return details

    def get_recent_errors(self, count: int = 10) -> list[ErrorDetails]:
        """Return up to ``count`` most recent errors, oldest first."""
        if count <= 0:
            return []
        return list(self._log)[-count:]

    def clear_error_log(self) -> None:
        """Drop all recorded errors."""
        self._log.clear()

    @staticmethod
    def describe(code: str) -> dict[str, str]:
        """Return user-facing title/message/suggestion for an error code."""
        try:
            return ERROR_MESSAGES[ErrorCode(code)]
        except ValueError:
            return ERROR_MESSAGES[ErrorCode.UNKNOWN_ERROR]

    def __len__(self) -> int:
        return len(self._log)

    # ==========================================================================
    # Private Helper Methods
    # ==========================================================================

    def _create_error_details(
        self,
        error: Exception,
        component: str,
        action: str,
        metadata: dict[str, Any],
    ) -> ErrorDetails:
        context = ErrorContext(component=component, action=action, metadata=metadata)

        if isinstance(error, PipelineError):
            return ErrorDetails(
                code=error.error_code,
                message=error.message,
                severity=_CODE_SEVERITY.get(error.error_code, self._infer_severity(error)),
                recoverable=True,
                context=context.model_copy(
                    update={"metadata": {**error.details, **metadata}}
                ),
                error_type=type(error).__name__,
            )

        return ErrorDetails(
            code=self._infer_error_code(error).value,
            message=str(error) or type(error).__name__,
            severity=self._infer_severity(error),
            recoverable=not isinstance(error, (MemoryError, RecursionError)),
            context=context,
            error_type=type(error).__name__,
        )

    @staticmethod
    def _infer_error_code(error: Exception) -> ErrorCode:
        text = str(error).lower()
        if "import" in text or "parse" in text:
            return ErrorCode.IMPORT_FAILED
        if "export" in text:
            return ErrorCode.EXPORT_FAILED
        if "cycle" in text or "circular" in text:
            return ErrorCode.CIRCULAR_DEPENDENCY
        return ErrorCode.UNKNOWN_ERROR

    @staticmethod
    def _infer_severity(error: Exception) -> ErrorSeverity:
        if isinstance(error, (MemoryError, RecursionError)):
            return ErrorSeverity.CRITICAL
        text = str(error).lower()
        if "critical" in text or "fatal" in text:
            return ErrorSeverity.CRITICAL
        if "export" in text or "import" in text:
            return ErrorSeverity.HIGH
        if "validation" in text or "warning" in text:
            return ErrorSeverity.MEDIUM
        return ErrorSeverity.LOW


__all__ = [
    "ERROR_MESSAGES",
    "ErrorCode",
    "ErrorContext",
    "ErrorDetails",
    "ErrorHandler",
    "ErrorSeverity",
]
