"""pytest configuration and shared fixtures.

This module provides builders for pipeline nodes and edges plus a few
canonical graphs (linear chain, cycle, orphan) used across the test
suite. Builders return fresh model instances on every call, so tests can
never leak state through shared snapshots.
"""

from __future__ import annotations

import itertools
from collections.abc import Callable, Iterator
from typing import Any

import pytest

from pipeline_graph.schemas.graph import Edge, Node
from pipeline_graph.services.pipeline.autofix import AutoFixEngine
from pipeline_graph.services.pipeline.error_handler import ErrorHandler
from pipeline_graph.services.pipeline.registry import ComponentRegistry
from pipeline_graph.services.pipeline.validator import PipelineValidator

NodeFactory = Callable[..., Node]
EdgeFactory = Callable[..., Edge]


# =============================================================================
# BUILDERS
# =============================================================================


def build_node(
    node_id: str,
    label: str | None = None,
    step_type: str = "shell-command",
    configuration: dict[str, Any] | None = None,
    command: str | None = None,
) -> Node:
    """Create a node; the label defaults to the upper-cased ID."""
    return Node(
        id=node_id,
        step_type=step_type,
        label=node_id.upper() if label is None else label,
        configuration=configuration or {},
        command=command,
    )


def build_edge(source: str, target: str, edge_id: str | None = None) -> Edge:
    """Create an edge; the ID defaults to "{source}-{target}"."""
    return Edge(id=edge_id or f"{source}-{target}", source=source, target=target)


def build_chain(*node_ids: str) -> tuple[list[Node], list[Edge]]:
    """Create a linear pipeline: ids[0] -> ids[1] -> ... -> ids[-1]."""
    nodes = [build_node(node_id) for node_id in node_ids]
    edges = [build_edge(a, b) for a, b in zip(node_ids, node_ids[1:])]
    return nodes, edges


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def make_node() -> NodeFactory:
    """Factory fixture for nodes."""
    return build_node


@pytest.fixture
def make_edge() -> EdgeFactory:
    """Factory fixture for edges."""
    return build_edge


@pytest.fixture
def make_chain() -> Callable[..., tuple[list[Node], list[Edge]]]:
    """Factory fixture for linear pipelines."""
    return build_chain


@pytest.fixture
def linear_pipeline() -> tuple[list[Node], list[Edge]]:
    """A -> B -> C."""
    return build_chain("a", "b", "c")


@pytest.fixture
def cyclic_pipeline() -> tuple[list[Node], list[Edge]]:
    """A -> B -> C -> A."""
    nodes, edges = build_chain("a", "b", "c")
    return nodes, [*edges, build_edge("c", "a")]


@pytest.fixture
def orphan_pipeline() -> tuple[list[Node], list[Edge]]:
    """A -> B -> C plus an unconnected D."""
    nodes, edges = build_chain("a", "b", "c")
    return [*nodes, build_node("d")], edges


@pytest.fixture
def registry() -> ComponentRegistry:
    """Registry loaded with the built-in catalog."""
    return ComponentRegistry()


@pytest.fixture
def error_handler() -> ErrorHandler:
    """Fresh error handler with a small ring buffer."""
    return ErrorHandler(max_log_size=20)


@pytest.fixture
def counter_suffixes() -> Iterator[str]:
    """Deterministic, always-distinct label suffixes: s001, s002, ..."""
    return (f"s{n:03d}" for n in itertools.count(1))


@pytest.fixture
def autofix_engine(error_handler: ErrorHandler, counter_suffixes: Iterator[str]) -> AutoFixEngine:
    """Auto-fix engine with a fixed clock and deterministic suffixes."""
    return AutoFixEngine(
        error_handler=error_handler,
        clock=lambda: 1700000000000,
        suffix_factory=lambda: next(counter_suffixes),
    )


@pytest.fixture
def validator(
    registry: ComponentRegistry,
    error_handler: ErrorHandler,
    autofix_engine: AutoFixEngine,
) -> PipelineValidator:
    """Validator wired to the shared registry, handler and auto-fix engine."""
    return PipelineValidator(
        registry=registry,
        error_handler=error_handler,
        autofix_engine=autofix_engine,
    )
