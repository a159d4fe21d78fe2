"""Graph algorithms for pipeline validation and topology analysis.

This module provides the graph analyses the validator, auto-fix engine
and serializer are built on:
- Cycle detection using DFS with a recursion stack (first cycle / all cycles)
- Entry node discovery and reachability using BFS
- Orphaned (fully disconnected) node detection
- Topological sort using Kahn's algorithm, with input-order fallback
- Longest entry-rooted path and fan-out measurements

``GraphAlgorithms`` operates on a ``Graph``. The module-level functions
take a pipeline snapshot (nodes, edges), build the graph and delegate.
None of them raise on cyclic or otherwise malformed-but-typed graphs.

Time Complexity:
- Cycle detection: O(V + E)
- All cycles: O(V + E) traversal plus path slicing per back-edge
- Topological sort: O(V + E)
- Reachability: O(V + E)

Space Complexity: O(V + E) for all algorithms.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Hashable, Iterable, Sequence
from typing import Generic, TypeVar

from pipeline_graph.schemas.graph import Edge, Node
from pipeline_graph.services.pipeline.graph import Graph

logger = logging.getLogger(__name__)

NodeId = TypeVar("NodeId", bound=Hashable)


class GraphAlgorithms(Generic[NodeId]):
    """Collection of graph algorithms for pipeline validation.

    All methods are static and side-effect free.

    Example:
        >>> graph = Graph[str]()
        >>> graph.add_edge("a", "b")
        >>> graph.add_edge("b", "a")
        >>> GraphAlgorithms.find_cycle(graph)
        ['a', 'b', 'a']
    """

    @staticmethod
    def find_cycle(graph: Graph[NodeId]) -> list[NodeId] | None:
        """Find the first cycle using DFS with path tracking.

        Args:
            graph: The graph to check for cycles.

        Returns:
            Node IDs forming the cycle, closed by repeating the first node,
            or None if the graph is acyclic.

        Time Complexity: O(V + E)
        Space Complexity: O(V)
        """
        visited: set[NodeId] = set()
        rec_stack: set[NodeId] = set()
        path: list[NodeId] = []

        def dfs(node: NodeId) -> list[NodeId] | None:
            visited.add(node)
            rec_stack.add(node)
            path.append(node)

            for neighbor in graph.get_successors(node):
                if neighbor not in visited:
                    result = dfs(neighbor)
                    if result:
                        return result
                elif neighbor in rec_stack:
                    cycle_start = path.index(neighbor)
                    return [*path[cycle_start:], neighbor]

            path.pop()
            rec_stack.remove(node)
            return None

        for node in graph:
            if node not in visited:
                result = dfs(node)
                if result:
                    return result

        return None

    @staticmethod
    def find_all_cycles(graph: Graph[NodeId]) -> list[list[NodeId]]:
        """Report every back-edge found by a full DFS as a cycle.

        Unlike ``find_cycle`` the traversal does not stop at the first
        back-edge, so several cycles through shared nodes may all be
        reported. Every unvisited node seeds a new DFS root, which covers
        disconnected graphs. A self-loop yields ``[a, a]``.

        Args:
            graph: The graph to analyze.

        Returns:
            List of cycles, each closed by repeating its first node.

        Example:
            >>> graph = Graph[str]()
            >>> graph.add_edge("a", "b")
            >>> graph.add_edge("b", "a")
            >>> graph.add_edge("b", "b")
            >>> GraphAlgorithms.find_all_cycles(graph)
            [['a', 'b', 'a'], ['b', 'b']]
        """
        cycles: list[list[NodeId]] = []
        visited: set[NodeId] = set()
        rec_stack: set[NodeId] = set()
        path: list[NodeId] = []

        def dfs(node: NodeId) -> None:
            visited.add(node)
            rec_stack.add(node)
            path.append(node)

            for neighbor in graph.get_successors(node):
                if neighbor not in visited:
                    dfs(neighbor)
                elif neighbor in rec_stack:
                    cycle_start = path.index(neighbor)
                    cycles.append([*path[cycle_start:], neighbor])

            rec_stack.remove(node)
            path.pop()

        for node in graph:
            if node not in visited:
                dfs(node)

        return cycles

    @staticmethod
    def find_entry_nodes(graph: Graph[NodeId]) -> list[NodeId]:
        """Find nodes with no incoming edges, in insertion order.

        Returns an empty list when every node has a predecessor (for
        example a pure cycle); callers must handle that case.
        """
        return [node for node in graph if graph.get_in_degree(node) == 0]

    @staticmethod
    def find_reachable(
        graph: Graph[NodeId],
        start_nodes: Iterable[NodeId],
    ) -> set[NodeId]:
        """Find all nodes reachable from any start node using BFS.

        Args:
            graph: The graph to analyze.
            start_nodes: Starting node IDs (typically entry nodes).

        Returns:
            The closure of the start nodes, including the start nodes.

        Time Complexity: O(V + E)
        """
        reachable: set[NodeId] = set(start_nodes)
        queue: deque[NodeId] = deque(reachable)

        while queue:
            current = queue.popleft()
            for successor in graph.get_successors(current):
                if successor not in reachable:
                    reachable.add(successor)
                    queue.append(successor)

        return reachable

    @staticmethod
    def find_isolated_nodes(graph: Graph[NodeId]) -> list[NodeId]:
        """Find nodes with no incoming or outgoing edges."""
        return [
            node
            for node in graph
            if graph.get_in_degree(node) == 0 and graph.get_out_degree(node) == 0
        ]

    @staticmethod
    def topological_order(graph: Graph[NodeId]) -> list[NodeId] | None:
        """Kahn's algorithm.

        Zero in-degree nodes are queued in insertion order and processed
        FIFO, so the order is stable for a given snapshot.

        Args:
            graph: The graph to sort.

        Returns:
            Node IDs in topological order, or None if a cycle prevents
            a complete ordering.

        Time Complexity: O(V + E)
        """
        in_degree: dict[NodeId, int] = {node: graph.get_in_degree(node) for node in graph}
        queue: deque[NodeId] = deque(node for node in graph if in_degree[node] == 0)
        order: list[NodeId] = []

        while queue:
            node = queue.popleft()
            order.append(node)

            for successor in graph.get_successors(node):
                in_degree[successor] -= 1
                if in_degree[successor] == 0:
                    queue.append(successor)

        if len(order) < graph.node_count:
            return None

        return order

    @staticmethod
    def max_depth(graph: Graph[NodeId]) -> int:
        """Length in nodes of the longest path starting at an entry node.

        Successors already on the current path are skipped, so cycles
        reachable from an entry node cannot cause unbounded recursion.
        Depths are memoized; on cyclic graphs the result is therefore an
        approximation.

        Returns:
            The maximum depth, 0 for an empty graph or a graph with no
            entry nodes.
        """
        memo: dict[NodeId, int] = {}
        on_path: set[NodeId] = set()

        def depth(node: NodeId) -> int:
            if node in memo:
                return memo[node]

            on_path.add(node)
            best = 1
            for successor in graph.get_successors(node):
                if successor in on_path:
                    continue
                best = max(best, depth(successor) + 1)
            on_path.discard(node)

            memo[node] = best
            return best

        return max(
            (depth(node) for node in GraphAlgorithms.find_entry_nodes(graph)),
            default=0,
        )

    @staticmethod
    def out_degrees_above(graph: Graph[NodeId], threshold: int) -> dict[NodeId, int]:
        """Map each node whose out-degree exceeds ``threshold`` to that degree."""
        return {
            node: graph.get_out_degree(node)
            for node in graph
            if graph.get_out_degree(node) > threshold
        }


# =============================================================================
# Pipeline snapshot API
# =============================================================================


def build_adjacency(edges: Iterable[Edge]) -> dict[str, list[str]]:
    """Group edge targets by source, preserving edge order per source."""
    adjacency: dict[str, list[str]] = {}
    for edge in edges:
        adjacency.setdefault(edge.source, []).append(edge.target)
    return adjacency


def detect_cycle(nodes: Sequence[Node], edges: Sequence[Edge]) -> bool:
    """Return True if the pipeline contains any cycle, self-loops included."""
    return GraphAlgorithms.find_cycle(Graph.from_pipeline(nodes, edges)) is not None


def find_all_cycles(nodes: Sequence[Node], edges: Sequence[Edge]) -> list[list[str]]:
    """Return every cycle reported by a full DFS over the pipeline."""
    return GraphAlgorithms.find_all_cycles(Graph.from_pipeline(nodes, edges))


def find_entry_nodes(nodes: Sequence[Node], edges: Sequence[Edge]) -> list[str]:
    """Return the IDs of nodes that no edge targets, in node order."""
    targets = {edge.target for edge in edges}
    return [node.id for node in nodes if node.id not in targets]


def find_reachable_nodes(entry_nodes: Iterable[str], edges: Sequence[Edge]) -> set[str]:
    """Return the entry nodes plus everything reachable from them."""
    graph = Graph[str]()
    for edge in edges:
        graph.add_edge(edge.source, edge.target)
    return GraphAlgorithms.find_reachable(graph, entry_nodes)


def find_orphaned_nodes(nodes: Sequence[Node], edges: Sequence[Edge]) -> list[Node]:
    """Return nodes touched by no edge at all (neither source nor target)."""
    connected: set[str] = set()
    for edge in edges:
        connected.add(edge.source)
        connected.add(edge.target)
    return [node for node in nodes if node.id not in connected]


def topological_sort(nodes: Sequence[Node], edges: Sequence[Edge]) -> list[Node]:
    """Order nodes so that every edge points forward.

    If a cycle prevents a complete ordering the nodes are returned in
    their original order instead. Callers must not assume topological
    order for cyclic graphs.
    """
    order = GraphAlgorithms.topological_order(Graph.from_pipeline(nodes, edges))
    if order is None:
        logger.debug("Topological sort fell back to input order (cycle present)")
        return list(nodes)

    by_id = {node.id: node for node in nodes}
    result = [by_id[node_id] for node_id in order if node_id in by_id]
    if len(result) != len(nodes):
        return list(nodes)
    return result


def find_cycle_edges(nodes: Sequence[Node], edges: Sequence[Edge]) -> list[Edge]:
    """Map every reported cycle back to the edges that form it.

    Edges are returned in cycle order, cycles in discovery order, without
    repeats. When parallel edges connect the same pair, the first one not
    already taken is used. The last element is the closing edge of the
    last cycle found.
    """
    by_pair: dict[tuple[str, str], list[Edge]] = {}
    for edge in edges:
        by_pair.setdefault((edge.source, edge.target), []).append(edge)

    result: list[Edge] = []
    seen: set[str] = set()
    for cycle in find_all_cycles(nodes, edges):
        for source, target in zip(cycle, cycle[1:]):
            candidates = by_pair.get((source, target), [])
            edge = next((e for e in candidates if e.id not in seen), None)
            if edge is not None:
                seen.add(edge.id)
                result.append(edge)
    return result


def closing_edge(cycle: Sequence[str], edges: Sequence[Edge]) -> Edge | None:
    """Return the back-edge that closes ``cycle``, if it is present in ``edges``."""
    if len(cycle) < 2:
        return None
    source, target = cycle[-2], cycle[-1]
    return next((e for e in edges if e.source == source and e.target == target), None)


__all__ = [
    "GraphAlgorithms",
    "build_adjacency",
    "closing_edge",
    "detect_cycle",
    "find_all_cycles",
    "find_cycle_edges",
    "find_entry_nodes",
    "find_orphaned_nodes",
    "find_reachable_nodes",
    "topological_sort",
]
