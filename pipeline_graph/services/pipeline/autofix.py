"""Auto-fix engine for validation issues.

Resolves the narrow set of issues marked ``auto_fixable``:

- missing-labels: relabel the node to "{step_type}-{epoch_ms}"
- duplicate-labels: append "-" and a random 4-character suffix
- circular-dependency: remove one edge that closes a cycle

Only one cycle edge is removed per call, even when several cycles are
reported. Callers loop validate -> fix until ``can_auto_fix`` is False
or a pass fixes nothing (see ``PipelineValidator.auto_fix_until_stable``).

Labels produced here are not checked against the rest of the graph, so a
fix can in principle collide with an existing label; the next validation
pass reports such a collision like any other.
"""

from __future__ import annotations

import logging
import random
import string
import time
from collections.abc import Callable, Sequence

from pipeline_graph.schemas.graph import Edge, Node
from pipeline_graph.schemas.validation import AutoFixResult, RuleName, ValidationIssue
from pipeline_graph.services.pipeline.algorithms import find_cycle_edges
from pipeline_graph.services.pipeline.error_handler import ErrorHandler

logger = logging.getLogger(__name__)

SUFFIX_ALPHABET = string.ascii_lowercase + string.digits
SUFFIX_LENGTH = 4


def epoch_millis() -> int:
    return time.time_ns() // 1_000_000


def random_suffix(length: int = SUFFIX_LENGTH) -> str:
    """Random lowercase alphanumeric suffix."""
    return "".join(random.choices(SUFFIX_ALPHABET, k=length))


class AutoFixEngine:
    """Applies fixes for auto-fixable issues to a copy of the graph.

    Example:
        >>> engine = AutoFixEngine()
        >>> result = engine.auto_fix_issues(nodes, edges, report.fixable_issues)
        >>> len(result.fixed_issues)
        2
    """

    def __init__(
        self,
        error_handler: ErrorHandler | None = None,
        clock: Callable[[], int] = epoch_millis,
        suffix_factory: Callable[[], str] = random_suffix,
    ) -> None:
        """Initialize the engine.

        Args:
            error_handler: Receives exceptions raised while applying a fix.
            clock: Returns the current time in epoch milliseconds.
            suffix_factory: Produces the suffix for duplicate labels.
        """
        self.error_handler = error_handler or ErrorHandler()
        self.clock = clock
        self.suffix_factory = suffix_factory

    def auto_fix_issues(
        self,
        nodes: Sequence[Node],
        edges: Sequence[Edge],
        issues: Sequence[ValidationIssue],
    ) -> AutoFixResult:
        """Apply every applicable fix in issue order.

        Inputs are never mutated. Issues that are not auto-fixable, whose
        target node no longer exists, or that need a second cycle-edge
        removal in the same call are skipped without error. A fix that
        raises is reported to the error handler and skipped.

        Args:
            nodes: Current nodes.
            edges: Current edges.
            issues: Issues to fix, typically ``report.fixable_issues``.

        Returns:
            AutoFixResult with the new nodes/edges and the issues applied.
        """
        fixed_nodes = [node.model_copy(deep=True) for node in nodes]
        fixed_edges = [edge.model_copy(deep=True) for edge in edges]
        fixed_issues: list[ValidationIssue] = []
        cycle_edge_removed = False

        for issue in issues:
            if not issue.auto_fixable:
                continue

            try:
                if issue.rule == RuleName.MISSING_LABELS:
                    applied = self._fix_missing_label(fixed_nodes, issue)
                elif issue.rule == RuleName.DUPLICATE_LABELS:
                    applied = self._fix_duplicate_label(fixed_nodes, issue)
                elif issue.rule == RuleName.CIRCULAR_DEPENDENCY:
                    if cycle_edge_removed:
                        continue
                    fixed_edges, applied = self._remove_cycle_edge(fixed_nodes, fixed_edges)
                    cycle_edge_removed = applied
                else:
                    continue
            except Exception as e:
                self.error_handler.handle_error(
                    e,
                    component="autofix",
                    action="auto_fix",
                    rule=issue.rule,
                    node_id=issue.node_id,
                )
                continue

            if applied:
                fixed_issues.append(issue)

        if fixed_issues:
            logger.info(
                f"Auto-fix applied {len(fixed_issues)} of {len(issues)} issues",
                extra={"context": {"rules": sorted({i.rule for i in fixed_issues})}},
            )

        return AutoFixResult(nodes=fixed_nodes, edges=fixed_edges, fixed_issues=fixed_issues)

    # ==========================================================================
    # Private Helper Methods
    # ==========================================================================

    @staticmethod
    def _find_index(nodes: list[Node], node_id: str | None) -> int | None:
        if node_id is None:
            return None
        return next((i for i, node in enumerate(nodes) if node.id == node_id), None)

    def _fix_missing_label(self, nodes: list[Node], issue: ValidationIssue) -> bool:
        index = self._find_index(nodes, issue.node_id)
        if index is None:
            return False
        node = nodes[index]
        nodes[index] = node.model_copy(update={"label": f"{node.step_type}-{self.clock()}"})
        return True

    def _fix_duplicate_label(self, nodes: list[Node], issue: ValidationIssue) -> bool:
        index = self._find_index(nodes, issue.node_id)
        if index is None:
            return False
        node = nodes[index]
        nodes[index] = node.model_copy(update={"label": f"{node.label}-{self.suffix_factory()}"})
        return True

    @staticmethod
    def _remove_cycle_edge(
        nodes: list[Node],
        edges: list[Edge],
    ) -> tuple[list[Edge], bool]:
        # Last edge of the last cycle found: the back-edge that closed it
        cycle_edges = find_cycle_edges(nodes, edges)
        if not cycle_edges:
            return edges, False

        removed = cycle_edges[-1]
        logger.debug(f"Removing cycle edge {removed.id} ({removed.source} -> {removed.target})")
        return [edge for edge in edges if edge.id != removed.id], True


__all__ = ["AutoFixEngine", "epoch_millis", "random_suffix"]
