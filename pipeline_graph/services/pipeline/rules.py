"""Validation rules for pipeline graphs.

Each rule inspects one graph snapshot and returns the issues it finds.
Rules never raise for structural problems; those are what they report.
The validator runs the built-in rules followed by any custom ones.

Custom rules subclass ``ValidationRule``:

    class RequireDeployStep(ValidationRule):
        name = "require-deploy"
        description = "Pipelines must end in a deployment"
        severity = Severity.WARNING

        def validate(self, nodes, edges):
            ...
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Sequence

from pipeline_graph.core.config import settings
from pipeline_graph.schemas.graph import Edge, Node
from pipeline_graph.schemas.validation import RuleName, Severity, ValidationIssue
from pipeline_graph.services.pipeline.algorithms import (
    GraphAlgorithms,
    closing_edge,
    find_all_cycles,
    find_entry_nodes,
    find_orphaned_nodes,
    find_reachable_nodes,
)
from pipeline_graph.services.pipeline.graph import Graph
from pipeline_graph.services.pipeline.registry import ComponentRegistry

logger = logging.getLogger(__name__)


class ValidationRule(ABC):
    """Abstract base class for validation rules."""

    name: str = ""
    description: str = ""
    severity: Severity = Severity.ERROR

    @abstractmethod
    def validate(self, nodes: Sequence[Node], edges: Sequence[Edge]) -> list[ValidationIssue]:
        """Inspect the snapshot and return issues, in a stable order."""
        ...

    def issue(self, message: str, **kwargs: object) -> ValidationIssue:
        """Build an issue tagged with this rule's name and severity."""
        return ValidationIssue(
            rule=self.name,
            severity=self.severity,
            message=message,
            **kwargs,
        )

    def signature(self) -> str:
        """Identify this rule and any settings that change its output.

        Rules with constructor parameters extend this so that cached
        reports are keyed by them.
        """
        return f"{type(self).__qualname__}:{self.name}"

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, severity={self.severity!r})"


# =============================================================================
# Structural Rules
# =============================================================================


class CircularDependencyRule(ValidationRule):
    """One issue per cycle reported by a full DFS."""

    name = RuleName.CIRCULAR_DEPENDENCY.value
    description = "Detect circular dependencies in pipeline flow"
    severity = Severity.ERROR

    def validate(self, nodes: Sequence[Node], edges: Sequence[Edge]) -> list[ValidationIssue]:
        issues = []
        for cycle in find_all_cycles(nodes, edges):
            back_edge = closing_edge(cycle, edges)
            issues.append(
                self.issue(
                    f"Circular dependency detected: {' → '.join(cycle)}",
                    node_id=cycle[0],
                    edge_id=back_edge.id if back_edge else None,
                    node_ids=list(cycle),
                    suggestion="Remove one of the connections in the cycle to fix this issue",
                    auto_fixable=True,
                )
            )
        return issues


class OrphanedNodesRule(ValidationRule):
    """Nodes touched by no edge at all."""

    name = RuleName.ORPHANED_NODES.value
    description = "Find nodes not connected to the main pipeline flow"
    severity = Severity.WARNING

    def validate(self, nodes: Sequence[Node], edges: Sequence[Edge]) -> list[ValidationIssue]:
        return [
            self.issue(
                f'Node "{node.label}" is not connected to the pipeline',
                node_id=node.id,
                suggestion="Connect this node to the pipeline or remove it if not needed",
            )
            for node in find_orphaned_nodes(nodes, edges)
        ]


class MissingLabelsRule(ValidationRule):
    """Empty or whitespace-only labels."""

    name = RuleName.MISSING_LABELS.value
    description = "Check for nodes without proper labels"
    severity = Severity.ERROR

    def validate(self, nodes: Sequence[Node], edges: Sequence[Edge]) -> list[ValidationIssue]:
        return [
            self.issue(
                "Node is missing a label",
                node_id=node.id,
                suggestion="Add a descriptive label to identify this step",
                auto_fixable=True,
            )
            for node in nodes
            if not node.label.strip()
        ]


class InvalidConnectionsRule(ValidationRule):
    """Edges whose step type pair is not in the registry allow-list."""

    name = RuleName.INVALID_CONNECTIONS.value
    description = "Validate connections between incompatible node types"
    severity = Severity.ERROR

    def __init__(self, registry: ComponentRegistry) -> None:
        self.registry = registry

    def signature(self) -> str:
        return f"{super().signature()}:{self.registry.fingerprint()}"

    def validate(self, nodes: Sequence[Node], edges: Sequence[Edge]) -> list[ValidationIssue]:
        by_id = {node.id: node for node in nodes}
        issues = []
        for edge in edges:
            source = by_id.get(edge.source)
            target = by_id.get(edge.target)
            # Dangling references are not judged here
            if source is None or target is None:
                continue
            if self.registry.is_connection_allowed(source.step_type, target.step_type):
                continue
            issues.append(
                self.issue(
                    f"Invalid connection between {source.step_type} and {target.step_type}",
                    edge_id=edge.id,
                    node_ids=[source.id, target.id],
                    suggestion="Check component documentation for valid connection types",
                    details={"allowed_targets": list(self.registry.allowed_targets(source.step_type) or ())},
                )
            )
        return issues


class MissingConfigurationRule(ValidationRule):
    """Required configuration keys that are absent, None or blank."""

    name = RuleName.MISSING_CONFIGURATION.value
    description = "Check for nodes with missing required configuration"
    severity = Severity.ERROR

    def __init__(self, registry: ComponentRegistry) -> None:
        self.registry = registry

    def signature(self) -> str:
        return f"{super().signature()}:{self.registry.fingerprint()}"

    def validate(self, nodes: Sequence[Node], edges: Sequence[Edge]) -> list[ValidationIssue]:
        issues = []
        for node in nodes:
            for field in self.registry.missing_required_fields(node.step_type, node.configuration):
                issues.append(
                    self.issue(
                        f"Missing required configuration: {field}",
                        node_id=node.id,
                        suggestion=f"Configure the {field} field for this component",
                        details={"field": field},
                    )
                )
        return issues


class DuplicateLabelsRule(ValidationRule):
    """One issue per node whose trimmed, case-folded label is shared."""

    name = RuleName.DUPLICATE_LABELS.value
    description = "Check for nodes with duplicate labels"
    severity = Severity.WARNING

    def validate(self, nodes: Sequence[Node], edges: Sequence[Edge]) -> list[ValidationIssue]:
        groups: dict[str, list[str]] = {}
        for node in nodes:
            key = node.label.strip().lower()
            if key:
                groups.setdefault(key, []).append(node.id)

        issues = []
        for label, node_ids in groups.items():
            if len(node_ids) < 2:
                continue
            for node_id in node_ids:
                issues.append(
                    self.issue(
                        f'Duplicate label "{label}" found',
                        node_id=node_id,
                        node_ids=list(node_ids),
                        suggestion="Use unique labels to avoid confusion",
                        auto_fixable=True,
                    )
                )
        return issues


class UnreachableNodesRule(ValidationRule):
    """Nodes that are neither entry nodes nor reachable from one.

    Orphaned nodes have no incoming edge, so they are entry nodes and
    never reported here.
    """

    name = RuleName.UNREACHABLE_NODES.value
    description = "Find nodes that cannot be reached from entry points"
    severity = Severity.WARNING

    def validate(self, nodes: Sequence[Node], edges: Sequence[Edge]) -> list[ValidationIssue]:
        entry_nodes = find_entry_nodes(nodes, edges)
        reachable = find_reachable_nodes(entry_nodes, edges)
        entry_set = set(entry_nodes)
        return [
            self.issue(
                f'Node "{node.label}" is unreachable from pipeline entry points',
                node_id=node.id,
                suggestion="Connect this node to the main pipeline flow",
            )
            for node in nodes
            if node.id not in reachable and node.id not in entry_set
        ]


class PerformanceWarningsRule(ValidationRule):
    """Fan-out and depth hints.

    Emits one issue per node with more than ``max_parallel_branches``
    outgoing edges and one pipeline-level issue when the longest
    entry-rooted path exceeds ``max_depth`` nodes.
    """

    name = RuleName.PERFORMANCE_WARNINGS.value
    description = "Check for potential performance issues"
    severity = Severity.INFO

    def __init__(
        self,
        max_parallel_branches: int | None = None,
        max_depth: int | None = None,
    ) -> None:
        self.max_parallel_branches = (
            settings.MAX_PARALLEL_BRANCHES if max_parallel_branches is None else max_parallel_branches
        )
        self.max_depth = settings.MAX_PIPELINE_DEPTH if max_depth is None else max_depth

    def signature(self) -> str:
        return f"{super().signature()}:{self.max_parallel_branches}:{self.max_depth}"

    def validate(self, nodes: Sequence[Node], edges: Sequence[Edge]) -> list[ValidationIssue]:
        graph = Graph.from_pipeline(nodes, edges)
        issues = []

        for node_id, degree in GraphAlgorithms.out_degrees_above(graph, self.max_parallel_branches).items():
            issues.append(
                self.issue(
                    f"High number of parallel branches ({degree}) may impact performance",
                    node_id=node_id,
                    suggestion="Consider grouping related steps or using sequential execution",
                    details={"out_degree": degree, "limit": self.max_parallel_branches},
                )
            )

        depth = GraphAlgorithms.max_depth(graph)
        if depth > self.max_depth:
            issues.append(
                self.issue(
                    f"Pipeline depth ({depth}) is very high",
                    suggestion="Consider breaking into smaller, modular pipelines",
                    details={"depth": depth, "limit": self.max_depth},
                )
            )

        return issues


def default_rules(registry: ComponentRegistry) -> list[ValidationRule]:
    """Instantiate the built-in rules in presentation order."""
    return [
        CircularDependencyRule(),
        OrphanedNodesRule(),
        MissingLabelsRule(),
        InvalidConnectionsRule(registry),
        MissingConfigurationRule(registry),
        DuplicateLabelsRule(),
        UnreachableNodesRule(),
        PerformanceWarningsRule(),
    ]


__all__ = [
    "CircularDependencyRule",
    "DuplicateLabelsRule",
    "InvalidConnectionsRule",
    "MissingConfigurationRule",
    "MissingLabelsRule",
    "OrphanedNodesRule",
    "PerformanceWarningsRule",
    "UnreachableNodesRule",
    "ValidationRule",
    "default_rules",
]
