"""Pipeline Validation Service.

This module provides the PipelineValidator service: it runs the ordered
rule set (built-ins plus caller-supplied rules) against one graph
snapshot, validates every node standalone, and aggregates the results
into a ValidationReport. It also fronts the auto-fix engine, including
the validate -> fix loop that clears multiple cycles.

Rule failures are fail-soft: a rule that raises is wrapped in
RuleExecutionError, reported to the ErrorHandler and skipped, and the
remaining rules still run.
"""

from __future__ import annotations

import hashlib
import json
import logging
from collections.abc import Sequence

from pipeline_graph.schemas.graph import Edge, Node
from pipeline_graph.schemas.validation import (
    AutoFixResult,
    NodeValidationResult,
    Severity,
    ValidationIssue,
    ValidationReport,
)
from pipeline_graph.services.pipeline.autofix import AutoFixEngine
from pipeline_graph.services.pipeline.cache import ValidationCache
from pipeline_graph.services.pipeline.error_handler import ErrorHandler
from pipeline_graph.services.pipeline.exceptions import RuleExecutionError
from pipeline_graph.services.pipeline.registry import ComponentRegistry
from pipeline_graph.services.pipeline.rules import ValidationRule, default_rules

logger = logging.getLogger(__name__)

DEFAULT_MAX_FIX_PASSES = 10


def compute_checksum(nodes: Sequence[Node], edges: Sequence[Edge]) -> str:
    """SHA-256 of the canonical JSON form of a graph snapshot.

    Node and edge order are part of the snapshot, since they determine
    report and export order.
    """
    canonical = json.dumps(
        {
            "nodes": [node.to_wire() for node in nodes],
            "edges": [edge.to_wire() for edge in edges],
        },
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    )
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


class PipelineValidator:
    """Rule-based pipeline graph validator.

    The validator holds no graph state. Services it depends on are
    passed in, or built with defaults when omitted.

    Example:
        >>> validator = PipelineValidator()
        >>> report = validator.validate_pipeline(nodes, edges)
        >>> if not report.is_valid:
        ...     print(report.errors)
    """

    def __init__(
        self,
        custom_rules: Sequence[ValidationRule] | None = None,
        registry: ComponentRegistry | None = None,
        error_handler: ErrorHandler | None = None,
        cache: ValidationCache | None = None,
        autofix_engine: AutoFixEngine | None = None,
    ) -> None:
        """Initialize the validator.

        Args:
            custom_rules: Extra rules run after the built-in ones.
            registry: Component registry. Defaults to the built-in catalog.
            error_handler: Receives internal rule and fix failures.
            cache: Optional report cache, consulted by validate_pipeline.
            autofix_engine: Engine used by auto_fix_issues.
        """
        self.registry = registry or ComponentRegistry()
        self.error_handler = error_handler or ErrorHandler()
        self.cache = cache
        self.autofix_engine = autofix_engine or AutoFixEngine(error_handler=self.error_handler)
        self._rules: list[ValidationRule] = [*default_rules(self.registry), *(custom_rules or [])]

    @property
    def rules(self) -> list[ValidationRule]:
        """Rules in execution order."""
        return list(self._rules)

    def add_rule(self, rule: ValidationRule) -> None:
        """Append a rule to the end of the execution order."""
        self._rules.append(rule)

    def rule_signature(self) -> str:
        """Short hash identifying the rule set, its settings and the registry.

        Part of the cache key, so validators that would produce different
        reports for the same snapshot never share cache entries.
        """
        parts = [rule.signature() for rule in self._rules]
        # validate_node reads the registry directly
        parts.append(self.registry.fingerprint())
        return hashlib.sha256("|".join(parts).encode("utf-8")).hexdigest()[:16]

    def validate_pipeline(
        self,
        nodes: Sequence[Node],
        edges: Sequence[Edge],
    ) -> ValidationReport:
        """Validate an entire pipeline graph.

        Runs every rule, then standalone validation for every node, and
        partitions the issues by severity. ``is_valid`` is True iff no
        error-severity issue was found.

        Args:
            nodes: Graph nodes.
            edges: Graph edges.

        Returns:
            ValidationReport for the snapshot. Equal snapshots produce
            equal reports.
        """
        checksum = compute_checksum(nodes, edges)
        # Recomputed per call: registry contents and rule thresholds are mutable
        rule_signature = self.rule_signature()

        if self.cache is not None:
            cached = self.cache.get(rule_signature, checksum)
            if cached is not None:
                return cached

        issues: list[ValidationIssue] = []
        for rule in self._rules:
            issues.extend(self._run_rule(rule, nodes, edges))

        node_validations = [self.validate_node(node) for node in nodes]

        errors = [i.message for i in issues if i.severity == Severity.ERROR]
        warnings = [i.message for i in issues if i.severity == Severity.WARNING]
        infos = [i.message for i in issues if i.severity == Severity.INFO]
        fixable_issues = [i for i in issues if i.auto_fixable]

        report = ValidationReport(
            is_valid=not errors,
            errors=errors,
            warnings=warnings,
            infos=infos,
            issues=issues,
            node_validations=node_validations,
            can_auto_fix=bool(fixable_issues),
            fixable_issues=fixable_issues,
            node_count=len(nodes),
            edge_count=len(edges),
            checksum=checksum,
        )

        logger.debug(
            f"Validated pipeline: {len(nodes)} nodes, {len(edges)} edges, "
            f"{len(errors)} errors, {len(warnings)} warnings"
        )

        if self.cache is not None:
            self.cache.set(rule_signature, report)

        return report

    def validate_node(self, node: Node) -> NodeValidationResult:
        """Validate one node without looking at the rest of the graph.

        Checks label presence, step type presence, that the step type is
        registered, required configuration and deprecated keys.
        """
        errors: list[str] = []
        warnings: list[str] = []
        suggestions: list[str] = []

        try:
            if not node.label.strip():
                errors.append("Node label is required")

            if not node.step_type:
                errors.append("Node type is required")
            elif not self.registry.is_registered(node.step_type):
                errors.append(f"Unknown component type: {node.step_type}")
            else:
                for field in self.registry.missing_required_fields(node.step_type, node.configuration):
                    errors.append(f'Required field "{field}" is missing')

                for field in sorted(self.registry.deprecated_fields(node.step_type)):
                    if node.configuration.get(field):
                        warnings.append(f'Field "{field}" is deprecated')
                        suggestions.append(f'Consider using the recommended alternative for "{field}"')
        except Exception as e:
            self.error_handler.handle_error(
                e,
                component="validator",
                action="validate_node",
                node_id=node.id,
            )
            return NodeValidationResult(
                node_id=node.id,
                is_valid=False,
                errors=["Node validation failed due to an internal error"],
            )

        return NodeValidationResult(
            node_id=node.id,
            is_valid=not errors,
            errors=errors,
            warnings=warnings,
            suggestions=suggestions,
        )

    def auto_fix_issues(
        self,
        nodes: Sequence[Node],
        edges: Sequence[Edge],
        issues: Sequence[ValidationIssue],
    ) -> AutoFixResult:
        """Apply fixes for auto-fixable issues. See AutoFixEngine."""
        return self.autofix_engine.auto_fix_issues(nodes, edges, issues)

    def auto_fix_until_stable(
        self,
        nodes: Sequence[Node],
        edges: Sequence[Edge],
        max_passes: int = DEFAULT_MAX_FIX_PASSES,
    ) -> tuple[AutoFixResult, ValidationReport]:
        """Repeat validate -> fix until nothing fixable remains.

        Stops when the report has no fixable issues, when a pass fixes
        nothing, or after ``max_passes`` passes.

        Returns:
            The cumulative fix result (final graph, every issue fixed
            across passes) and the report for the final graph.
        """
        current_nodes = list(nodes)
        current_edges = list(edges)
        all_fixed: list[ValidationIssue] = []

        report = self.validate_pipeline(current_nodes, current_edges)
        for pass_number in range(1, max_passes + 1):
            if not report.can_auto_fix:
                break

            result = self.auto_fix_issues(current_nodes, current_edges, report.fixable_issues)
            if not result.fixed_issues:
                logger.debug(f"Auto-fix pass {pass_number} made no progress")
                break

            all_fixed.extend(result.fixed_issues)
            current_nodes, current_edges = result.nodes, result.edges
            report = self.validate_pipeline(current_nodes, current_edges)

        return (
            AutoFixResult(nodes=current_nodes, edges=current_edges, fixed_issues=all_fixed),
            report,
        )

    # ==========================================================================
    # Private Helper Methods
    # ==========================================================================

    def _run_rule(
        self,
        rule: ValidationRule,
        nodes: Sequence[Node],
        edges: Sequence[Edge],
    ) -> list[ValidationIssue]:
        try:
            return list(rule.validate(nodes, edges))
        except Exception as e:
            self.error_handler.handle_error(
                RuleExecutionError(rule.name, e),
                component="validator",
                action="validate",
                rule=rule.name,
            )
            return []


__all__ = ["DEFAULT_MAX_FIX_PASSES", "PipelineValidator", "compute_checksum"]
