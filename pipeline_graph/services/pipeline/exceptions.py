"""Pipeline engine custom exceptions.

Structural problems in a graph (cycles, orphans, bad labels) are reported
as validation issues, never raised. The exceptions here cover caller
misuse at the export/import boundary, registry load errors, and internal
rule failures that the validator catches and reports.
"""

from __future__ import annotations

from typing import Any

from pipeline_graph.core.exceptions import AppError


class PipelineError(AppError):
    """Base exception for pipeline engine errors.

    Attributes:
        message: Human-readable error message.
        error_code: Machine-readable error code (see ErrorCode).
        details: Additional error context as dictionary.
    """

    def __init__(
        self,
        message: str,
        error_code: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, error_code, details)


class EmptyPipelineError(PipelineError):
    """Raised when exporting a pipeline that has no nodes."""

    def __init__(self) -> None:
        super().__init__(
            message="Cannot export an empty pipeline: add at least one step",
            error_code="EXPORT_FAILED",
        )


class InvalidPipelineError(PipelineError):
    """Raised when exporting a pipeline that fails validation.

    Attributes:
        errors: Error messages from the validation report.
    """

    def __init__(self, errors: list[str]) -> None:
        joined = "; ".join(errors) if errors else "unknown validation error"
        super().__init__(
            message=f"Cannot export invalid pipeline: {joined}",
            error_code="EXPORT_FAILED",
            details={"errors": list(errors)},
        )
        self.errors = list(errors)


class ImportFormatError(PipelineError):
    """Raised when imported pipeline data is unusable.

    Attributes:
        reason: Why the data was rejected.
    """

    def __init__(self, reason: str) -> None:
        super().__init__(
            message=f"Invalid pipeline data: {reason}",
            error_code="INVALID_FORMAT",
            details={"reason": reason},
        )
        self.reason = reason


class RegistryError(PipelineError):
    """Raised when a component definition or registry table is inconsistent."""

    def __init__(self, message: str, step_type: str | None = None) -> None:
        super().__init__(
            message=message,
            error_code="INVALID_NODE_CONFIG",
            details={"step_type": step_type} if step_type else {},
        )
        self.step_type = step_type


class RuleExecutionError(PipelineError):
    """Raised (and caught) when a validation rule itself fails.

    Attributes:
        rule_name: Name of the failing rule.
        original_error: The exception the rule raised.
    """

    def __init__(self, rule_name: str, original_error: Exception) -> None:
        super().__init__(
            message=f'Validation rule "{rule_name}" failed: {original_error}',
            error_code="RULE_FAILED",
            details={"rule": rule_name, "error_type": type(original_error).__name__},
        )
        self.rule_name = rule_name
        self.original_error = original_error


__all__ = [
    "EmptyPipelineError",
    "ImportFormatError",
    "InvalidPipelineError",
    "PipelineError",
    "RegistryError",
    "RuleExecutionError",
]
