"""Layered auto-layout for pipeline graphs.

Each node is placed in a layer one past its deepest predecessor, layers
become columns, and nodes are centered vertically within their column.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from pipeline_graph.core.config import settings
from pipeline_graph.schemas.graph import Edge, Node, Position
from pipeline_graph.services.pipeline.graph import Graph

logger = logging.getLogger(__name__)


def calculate_layers(nodes: Sequence[Node], edges: Sequence[Edge]) -> dict[str, int]:
    """Assign each node a layer: 0 without predecessors, else 1 + max(predecessor layers).

    Layers are memoized. A node reached again while its own layer is
    still being computed (i.e. it sits on a cycle) is treated as layer 0
    for that lookup, which guarantees termination but only approximates a
    layering for cyclic graphs.

    The returned dict is ordered by the moment each layer was resolved,
    which is the order used to stack nodes within a column.
    """
    graph = Graph.from_pipeline(nodes, edges)
    layers: dict[str, int] = {}
    in_progress: set[str] = set()

    def layer_of(node_id: str) -> int:
        if node_id in layers:
            return layers[node_id]
        if node_id in in_progress:
            return 0

        predecessors = graph.get_predecessors(node_id)
        if not predecessors:
            layers[node_id] = 0
            return 0

        in_progress.add(node_id)
        layer = max(layer_of(pred) for pred in predecessors) + 1
        in_progress.discard(node_id)

        layers[node_id] = layer
        return layer

    for node in nodes:
        layer_of(node.id)

    return layers


def auto_layout_nodes(
    nodes: Sequence[Node],
    edges: Sequence[Edge],
    horizontal_spacing: float | None = None,
    vertical_spacing: float | None = None,
) -> list[Node]:
    """Return copies of ``nodes`` with positions assigned from their layers.

    ``x = layer * horizontal_spacing`` and
    ``y = (index_in_layer - (count_in_layer - 1) / 2) * vertical_spacing``.
    Input nodes are not modified.

    Args:
        nodes: Pipeline nodes.
        edges: Pipeline edges.
        horizontal_spacing: Column spacing. Defaults to settings.LAYOUT_HORIZONTAL_SPACING
        vertical_spacing: Row spacing. Defaults to settings.LAYOUT_VERTICAL_SPACING

    Returns:
        New node list in the same order as ``nodes``.
    """
    if horizontal_spacing is None:
        horizontal_spacing = settings.LAYOUT_HORIZONTAL_SPACING
    if vertical_spacing is None:
        vertical_spacing = settings.LAYOUT_VERTICAL_SPACING

    layers = calculate_layers(nodes, edges)

    columns: dict[int, list[str]] = {}
    for node_id, layer in layers.items():
        columns.setdefault(layer, []).append(node_id)

    positions: dict[str, Position] = {}
    for layer, members in columns.items():
        offset = (len(members) - 1) / 2
        for index, node_id in enumerate(members):
            positions[node_id] = Position(
                x=layer * horizontal_spacing,
                y=(index - offset) * vertical_spacing,
            )

    logger.debug(f"Auto-layout placed {len(nodes)} nodes in {len(columns)} layers")

    return [
        node.model_copy(update={"position": positions.get(node.id, Position())}, deep=True)
        for node in nodes
    ]


__all__ = ["auto_layout_nodes", "calculate_layers"]
