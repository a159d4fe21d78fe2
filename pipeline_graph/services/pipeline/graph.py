"""Directed graph data structure for pipeline analysis.

This module provides a generic directed graph used by every analysis in
the engine: cycle detection, topological sorting, reachability and
layering. Nodes and adjacency lists preserve insertion order so that all
traversals, and therefore all reports and exports, are deterministic.

Time Complexity:
- Node/Edge addition: O(1)
- Cycle detection: O(V + E)
- Topological sort: O(V + E)
- Reachability analysis: O(V + E)

Space Complexity: O(V + E)
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Hashable, Iterable, Iterator
from typing import TYPE_CHECKING, Generic, TypeVar

if TYPE_CHECKING:
    from pipeline_graph.schemas.graph import Edge, Node

NodeId = TypeVar("NodeId", bound=Hashable)


class Graph(Generic[NodeId]):
    """Directed graph with forward and reverse adjacency lists.

    Parallel edges are kept (each contributes to degree counts) and
    self-loops are legal; both are judged by higher layers.

    Type Parameters:
        NodeId: Hashable type used as node identifier (node ID strings).

    Example:
        >>> graph = Graph[str]()
        >>> graph.add_edge("clone", "build")
        >>> graph.get_successors("clone")
        ['build']
    """

    __slots__ = ("_adjacency", "_edge_count", "_nodes", "_reverse_adjacency")

    def __init__(self) -> None:
        self._adjacency: defaultdict[NodeId, list[NodeId]] = defaultdict(list)
        self._reverse_adjacency: defaultdict[NodeId, list[NodeId]] = defaultdict(list)
        # dict used as an insertion-ordered set
        self._nodes: dict[NodeId, None] = {}
        self._edge_count: int = 0

    @classmethod
    def from_pipeline(cls, nodes: Iterable[Node], edges: Iterable[Edge]) -> Graph[str]:
        """Build a graph from a pipeline snapshot.

        Nodes are added first, in snapshot order, then edges in snapshot
        order. An edge referencing an unknown node adds that ID as a node
        of the graph (dangling references are tolerated, not repaired).

        Args:
            nodes: Pipeline nodes.
            edges: Pipeline edges.

        Returns:
            A new Graph keyed by node ID.
        """
        graph = Graph[str]()
        for node in nodes:
            graph.add_node(node.id)
        for edge in edges:
            graph.add_edge(edge.source, edge.target)
        return graph

    @property
    def nodes(self) -> list[NodeId]:
        """Node IDs in insertion order."""
        return list(self._nodes)

    @property
    def node_count(self) -> int:
        """Get the number of nodes in the graph."""
        return len(self._nodes)

    @property
    def edge_count(self) -> int:
        """Get the number of edges in the graph."""
        return self._edge_count

    def add_node(self, node_id: NodeId) -> None:
        """Add a node to the graph.

        If the node already exists, this is a no-op.

        Args:
            node_id: The identifier for the node to add.
        """
        self._nodes.setdefault(node_id, None)

    def add_edge(self, source: NodeId, target: NodeId) -> None:
        """Add a directed edge from source to target.

        Both nodes are added to the graph if they don't exist.
        Duplicate edges are allowed.

        Args:
            source: The source node ID.
            target: The target node ID.
        """
        self.add_node(source)
        self.add_node(target)
        self._adjacency[source].append(target)
        self._reverse_adjacency[target].append(source)
        self._edge_count += 1

    def get_successors(self, node_id: NodeId) -> list[NodeId]:
        """Get all successor nodes (outgoing neighbors), one per edge.

        Args:
            node_id: The node ID.

        Returns:
            List of successor node IDs in edge order. Empty list if none.
        """
        return self._adjacency.get(node_id, [])

    def get_predecessors(self, node_id: NodeId) -> list[NodeId]:
        """Get all predecessor nodes (incoming neighbors), one per edge.

        Args:
            node_id: The node ID.

        Returns:
            List of predecessor node IDs in edge order. Empty list if none.
        """
        return self._reverse_adjacency.get(node_id, [])

    def get_in_degree(self, node_id: NodeId) -> int:
        """Get the number of incoming edges for a node."""
        return len(self._reverse_adjacency.get(node_id, []))

    def get_out_degree(self, node_id: NodeId) -> int:
        """Get the number of outgoing edges for a node."""
        return len(self._adjacency.get(node_id, []))

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    def __iter__(self) -> Iterator[NodeId]:
        return iter(self._nodes)

    def __len__(self) -> int:
        return len(self._nodes)

    def __repr__(self) -> str:
        return f"Graph(nodes={self.node_count}, edges={self.edge_count})"


__all__ = ["Graph", "NodeId"]
