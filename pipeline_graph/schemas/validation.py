"""Pydantic schemas for pipeline validation results.

This module defines the issue, per-node result and aggregate report
schemas produced by the validator, plus the result of an auto-fix pass.
Reports carry no wall-clock fields, so validating an unchanged graph twice
yields equal reports.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import Field

from pipeline_graph.schemas.base import BaseSchema
from pipeline_graph.schemas.graph import Edge, Node

# =============================================================================
# Validation Enums
# =============================================================================


class Severity(str, Enum):
    """Issue severity.

    ERROR: Blocks save, execute and export
    WARNING: Displayed, non-blocking
    INFO: Advisory (performance hints)
    """

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class RuleName(str, Enum):
    """Names of the built-in validation rules."""

    CIRCULAR_DEPENDENCY = "circular-dependency"
    ORPHANED_NODES = "orphaned-nodes"
    MISSING_LABELS = "missing-labels"
    INVALID_CONNECTIONS = "invalid-connections"
    MISSING_CONFIGURATION = "missing-configuration"
    DUPLICATE_LABELS = "duplicate-labels"
    UNREACHABLE_NODES = "unreachable-nodes"
    PERFORMANCE_WARNINGS = "performance-warnings"


# =============================================================================
# Validation Result Schemas
# =============================================================================


class ValidationIssue(BaseSchema):
    """Single finding emitted by a validation rule."""

    rule: str = Field(
        ...,
        description="Name of the rule that produced the issue",
        examples=["duplicate-labels"],
    )
    severity: Severity = Field(
        ...,
        description="Issue severity",
    )
    message: str = Field(
        ...,
        description="Human-readable message",
    )
    node_id: str | None = Field(
        default=None,
        description="Affected node ID if applicable",
    )
    edge_id: str | None = Field(
        default=None,
        description="Affected edge ID if applicable",
    )
    suggestion: str | None = Field(
        default=None,
        description="Suggested fix or action",
    )
    auto_fixable: bool = Field(
        default=False,
        description="Whether the auto-fix engine can resolve this issue",
    )
    node_ids: list[str] = Field(
        default_factory=list,
        description="All node IDs involved (e.g. the cycle path)",
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional rule-specific context",
    )


class NodeValidationResult(BaseSchema):
    """Standalone validation result for a single node."""

    node_id: str
    is_valid: bool
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    suggestions: list[str] = Field(default_factory=list)


class ValidationReport(BaseSchema):
    """Aggregate validation result for a whole pipeline graph.

    ``is_valid`` is true iff no error-severity issue exists; warnings and
    info issues never block validity.
    """

    is_valid: bool = Field(
        ...,
        description="Whether the pipeline passed validation",
    )
    errors: list[str] = Field(
        default_factory=list,
        description="Messages of error-severity issues",
    )
    warnings: list[str] = Field(
        default_factory=list,
        description="Messages of warning-severity issues",
    )
    infos: list[str] = Field(
        default_factory=list,
        description="Messages of info-severity issues",
    )
    issues: list[ValidationIssue] = Field(
        default_factory=list,
        description="All issues in rule order",
    )
    node_validations: list[NodeValidationResult] = Field(
        default_factory=list,
        description="Per-node validation results",
    )
    can_auto_fix: bool = Field(
        default=False,
        description="Whether at least one issue is auto-fixable",
    )
    fixable_issues: list[ValidationIssue] = Field(
        default_factory=list,
        description="Subset of issues that are auto-fixable",
    )
    node_count: int = Field(default=0, ge=0)
    edge_count: int = Field(default=0, ge=0)
    checksum: str = Field(
        default="",
        description="Content checksum of the validated graph",
    )

    def issues_for_rule(self, rule: str) -> list[ValidationIssue]:
        """Return the issues produced by one rule."""
        return [issue for issue in self.issues if issue.rule == rule]


class AutoFixResult(BaseSchema):
    """Outcome of one auto-fix pass: the new graph plus what was fixed."""

    nodes: list[Node] = Field(default_factory=list)
    edges: list[Edge] = Field(default_factory=list)
    fixed_issues: list[ValidationIssue] = Field(default_factory=list)


__all__ = [
    "AutoFixResult",
    "NodeValidationResult",
    "RuleName",
    "Severity",
    "ValidationIssue",
    "ValidationReport",
]
