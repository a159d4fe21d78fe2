"""Pydantic schemas for pipeline graph entities.

A pipeline graph is a snapshot of nodes (steps) and edges (must-happen-
before relationships). The engine never mutates a snapshot in place:
operations that change the graph return new model instances.
"""

from __future__ import annotations

from typing import Any

from pydantic import Field

from pipeline_graph.schemas.base import BaseSchema, ConfigField


class Position(BaseSchema):
    """2D canvas coordinate owned by the layout layer."""

    x: float = Field(default=0.0, description="Horizontal canvas coordinate")
    y: float = Field(default=0.0, description="Vertical canvas coordinate")


class EdgeData(BaseSchema):
    """Optional edge payload."""

    condition: str | None = Field(
        default=None,
        description="Condition expression gating the transition",
    )
    label: str | None = Field(
        default=None,
        description="Display label for the connection",
    )


class Node(BaseSchema):
    """One pipeline step.

    ``label`` is kept verbatim. Emptiness and uniqueness are checked by the
    validator, never enforced by the model, because an unlabelled node is a
    normal editing state.
    """

    id: str = Field(
        ...,
        min_length=1,
        description="Unique node identifier within the graph",
        examples=["github-clone-1726000000000-k3j9x0a2b"],
    )
    step_type: str = Field(
        default="",
        description="Registered component type (e.g. github-clone)",
        examples=["docker-build"],
    )
    label: str = Field(
        default="",
        description="Human-readable display label",
        examples=["Build image"],
    )
    configuration: dict[str, Any] = ConfigField
    command: str | None = Field(
        default=None,
        description="Optional command override",
    )
    position: Position = Field(
        default_factory=Position,
        description="Canvas position",
    )


class Edge(BaseSchema):
    """Directed precedence constraint between two nodes."""

    id: str = Field(
        ...,
        min_length=1,
        description="Unique edge identifier within the graph",
        examples=["edge-a-b"],
    )
    source: str = Field(..., description="Source node ID")
    target: str = Field(..., description="Target node ID")
    data: EdgeData | None = Field(
        default=None,
        description="Optional condition / label payload",
    )

    @property
    def is_self_loop(self) -> bool:
        return self.source == self.target


__all__ = [
    "Edge",
    "EdgeData",
    "Node",
    "Position",
]
