"""Tests for graph algorithms.

Test Coverage Strategy:
- GraphAlgorithms on Graph instances (cycles, entry nodes, ordering, depth)
- Snapshot functions on pipeline nodes/edges
- Edge cases: empty graph, self-loops, pure cycles, disconnected parts
"""

import pytest

from pipeline_graph.services.pipeline.algorithms import (
    GraphAlgorithms,
    build_adjacency,
    closing_edge,
    detect_cycle,
    find_all_cycles,
    find_cycle_edges,
    find_entry_nodes,
    find_orphaned_nodes,
    find_reachable_nodes,
    topological_sort,
)
from pipeline_graph.services.pipeline.graph import Graph

# =============================================================================
# TEST FIXTURES
# =============================================================================


@pytest.fixture
def diamond_graph() -> Graph[str]:
    """a -> b, a -> c, b -> d, c -> d."""
    graph = Graph[str]()
    graph.add_edge("a", "b")
    graph.add_edge("a", "c")
    graph.add_edge("b", "d")
    graph.add_edge("c", "d")
    return graph


@pytest.fixture
def two_cycle_graph() -> Graph[str]:
    """Disjoint cycles a <-> b and c -> d -> e -> c."""
    graph = Graph[str]()
    graph.add_edge("a", "b")
    graph.add_edge("b", "a")
    graph.add_edge("c", "d")
    graph.add_edge("d", "e")
    graph.add_edge("e", "c")
    return graph


# =============================================================================
# CYCLE DETECTION TESTS
# =============================================================================


class TestFindCycle:
    """Tests for first-cycle detection."""

    def test_acyclic_graph(self, diamond_graph: Graph[str]) -> None:
        """A DAG has no cycle."""
        assert GraphAlgorithms.find_cycle(diamond_graph) is None

    def test_empty_graph(self) -> None:
        """The empty graph has no cycle."""
        assert GraphAlgorithms.find_cycle(Graph[str]()) is None

    def test_cycle_is_closed(self) -> None:
        """The reported path repeats its first node at the end."""
        graph = Graph[str]()
        graph.add_edge("a", "b")
        graph.add_edge("b", "c")
        graph.add_edge("c", "a")
        assert GraphAlgorithms.find_cycle(graph) == ["a", "b", "c", "a"]

    def test_self_loop(self) -> None:
        """A self-loop is a cycle of length 1."""
        graph = Graph[str]()
        graph.add_edge("a", "a")
        assert GraphAlgorithms.find_cycle(graph) == ["a", "a"]


class TestFindAllCycles:
    """Tests for exhaustive back-edge reporting."""

    def test_disjoint_cycles_are_all_reported(self, two_cycle_graph: Graph[str]) -> None:
        """Every DFS root is explored, so both cycles are found."""
        cycles = GraphAlgorithms.find_all_cycles(two_cycle_graph)
        assert cycles == [["a", "b", "a"], ["c", "d", "e", "c"]]

    def test_cycles_through_shared_node(self) -> None:
        """The traversal continues after the first back-edge."""
        graph = Graph[str]()
        graph.add_edge("a", "b")
        graph.add_edge("b", "a")
        graph.add_edge("b", "b")
        assert GraphAlgorithms.find_all_cycles(graph) == [["a", "b", "a"], ["b", "b"]]

    def test_no_cycles(self, diamond_graph: Graph[str]) -> None:
        """A DAG yields an empty list."""
        assert GraphAlgorithms.find_all_cycles(diamond_graph) == []


class TestDetectCycle:
    """Tests for the boolean snapshot check."""

    def test_empty_pipeline(self) -> None:
        """No nodes, no cycle."""
        assert detect_cycle([], []) is False

    def test_linear_pipeline(self, linear_pipeline) -> None:
        """A chain is acyclic."""
        nodes, edges = linear_pipeline
        assert detect_cycle(nodes, edges) is False

    def test_cyclic_pipeline(self, cyclic_pipeline) -> None:
        """A closed loop is detected."""
        nodes, edges = cyclic_pipeline
        assert detect_cycle(nodes, edges) is True

    def test_single_self_loop(self, make_node, make_edge) -> None:
        """One node pointing at itself is a cycle."""
        assert detect_cycle([make_node("a")], [make_edge("a", "a")]) is True


# =============================================================================
# REACHABILITY TESTS
# =============================================================================


class TestEntryAndReachability:
    """Tests for entry node discovery, reachability and orphans."""

    def test_linear_pipeline(self, linear_pipeline) -> None:
        """A -> B -> C has one entry, reaches everything and has no orphans."""
        nodes, edges = linear_pipeline
        assert find_entry_nodes(nodes, edges) == ["a"]
        assert find_reachable_nodes(["a"], edges) == {"a", "b", "c"}
        assert find_orphaned_nodes(nodes, edges) == []

    def test_orphan_is_entry_node(self, orphan_pipeline) -> None:
        """An orphan has no incoming edge, so it is also an entry node."""
        nodes, edges = orphan_pipeline
        orphans = find_orphaned_nodes(nodes, edges)
        assert [node.id for node in orphans] == ["d"]
        assert find_entry_nodes(nodes, edges) == ["a", "d"]

    def test_pure_cycle_has_no_entry(self, cyclic_pipeline) -> None:
        """Every node of a pure cycle has a predecessor."""
        nodes, edges = cyclic_pipeline
        assert find_entry_nodes(nodes, edges) == []
        assert find_reachable_nodes([], edges) == set()

    def test_reachable_includes_start_nodes(self) -> None:
        """Start nodes are part of the closure even without edges."""
        assert find_reachable_nodes(["solo"], []) == {"solo"}

    def test_isolated_nodes(self, diamond_graph: Graph[str]) -> None:
        """Only nodes without any edge are isolated."""
        diamond_graph.add_node("lonely")
        assert GraphAlgorithms.find_isolated_nodes(diamond_graph) == ["lonely"]


# =============================================================================
# TOPOLOGICAL SORT TESTS
# =============================================================================


class TestTopologicalSort:
    """Tests for Kahn's algorithm and the cyclic fallback."""

    def test_every_edge_points_forward(self, make_node, make_edge) -> None:
        """For each edge u -> v, u precedes v."""
        nodes = [make_node(n) for n in ["deploy", "test", "build", "clone", "scan"]]
        edges = [
            make_edge("clone", "build"),
            make_edge("build", "test"),
            make_edge("build", "scan"),
            make_edge("test", "deploy"),
            make_edge("scan", "deploy"),
        ]

        order = [node.id for node in topological_sort(nodes, edges)]

        assert len(order) == len(nodes)
        for edge in edges:
            assert order.index(edge.source) < order.index(edge.target)

    def test_order_is_stable(self, diamond_graph: Graph[str]) -> None:
        """Ties are broken by insertion order."""
        assert GraphAlgorithms.topological_order(diamond_graph) == ["a", "b", "c", "d"]

    def test_cycle_falls_back_to_input_order(self, cyclic_pipeline) -> None:
        """A cyclic graph returns all nodes unsorted instead of raising."""
        nodes, edges = cyclic_pipeline
        reversed_nodes = list(reversed(nodes))
        result = topological_sort(reversed_nodes, edges)
        assert result == reversed_nodes

    def test_topological_order_none_on_cycle(self, two_cycle_graph: Graph[str]) -> None:
        """The graph-level variant signals the cycle with None."""
        assert GraphAlgorithms.topological_order(two_cycle_graph) is None


# =============================================================================
# DEPTH AND FAN-OUT TESTS
# =============================================================================


class TestDepthAndFanOut:
    """Tests for max_depth and out_degrees_above."""

    def test_max_depth_counts_nodes(self, diamond_graph: Graph[str]) -> None:
        """a -> b -> d is three nodes deep."""
        assert GraphAlgorithms.max_depth(diamond_graph) == 3

    def test_max_depth_empty_and_entryless(self, two_cycle_graph: Graph[str]) -> None:
        """No entry nodes means depth 0."""
        assert GraphAlgorithms.max_depth(Graph[str]()) == 0
        assert GraphAlgorithms.max_depth(two_cycle_graph) == 0

    def test_max_depth_terminates_on_reachable_cycle(self) -> None:
        """A cycle below an entry node does not recurse forever."""
        graph = Graph[str]()
        graph.add_edge("start", "a")
        graph.add_edge("a", "b")
        graph.add_edge("b", "a")
        assert GraphAlgorithms.max_depth(graph) == 3

    def test_out_degrees_above_threshold(self) -> None:
        """Only degrees strictly above the threshold are reported."""
        graph = Graph[str]()
        for i in range(3):
            graph.add_edge("wide", f"t{i}")
        graph.add_edge("narrow", "t0")
        assert GraphAlgorithms.out_degrees_above(graph, 2) == {"wide": 3}
        assert GraphAlgorithms.out_degrees_above(graph, 3) == {}


# =============================================================================
# EDGE MAPPING TESTS
# =============================================================================


class TestEdgeHelpers:
    """Tests for adjacency construction and cycle-edge mapping."""

    def test_build_adjacency_groups_by_source(self, make_edge) -> None:
        """Targets are grouped per source in edge order."""
        edges = [make_edge("a", "b"), make_edge("a", "c"), make_edge("b", "c")]
        assert build_adjacency(edges) == {"a": ["b", "c"], "b": ["c"]}

    def test_find_cycle_edges_in_cycle_order(self, cyclic_pipeline) -> None:
        """Edges are returned along the cycle, the closing edge last."""
        nodes, edges = cyclic_pipeline
        cycle_edges = find_cycle_edges(nodes, edges)
        assert [edge.id for edge in cycle_edges] == ["a-b", "b-c", "c-a"]

    def test_find_cycle_edges_acyclic(self, linear_pipeline) -> None:
        """No cycles, no edges."""
        nodes, edges = linear_pipeline
        assert find_cycle_edges(nodes, edges) == []

    def test_closing_edge(self, cyclic_pipeline) -> None:
        """The back-edge is the pair formed by the last two path entries."""
        nodes, edges = cyclic_pipeline
        (cycle,) = find_all_cycles(nodes, edges)
        edge = closing_edge(cycle, edges)
        assert edge is not None
        assert edge.id == "c-a"
        assert closing_edge(["a"], edges) is None
