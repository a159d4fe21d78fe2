"""Pydantic schemas for pipeline export and import artifacts."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import Field

from pipeline_graph.schemas.base import BaseSchema, NameField
from pipeline_graph.schemas.graph import Edge, Node


class ExportFormat(str, Enum):
    """Supported export formats."""

    JSON = "json"
    YAML = "yaml"


class PipelineMetadata(BaseSchema):
    """Metadata block stored alongside exported graphs."""

    exported_at: datetime | None = Field(
        default=None,
        description="Export timestamp (UTC, ISO 8601 on the wire)",
    )
    version: str = Field(
        default="1.0.0",
        description="Export format version",
    )
    description: str | None = Field(
        default=None,
        description="Optional pipeline description",
    )
    node_count: int = Field(default=0, ge=0)
    edge_count: int = Field(default=0, ge=0)


class PipelineDocument(BaseSchema):
    """A named pipeline graph as written to or read from a JSON artifact."""

    name: str = NameField
    nodes: list[Node] = Field(default_factory=list)
    edges: list[Edge] = Field(default_factory=list)
    metadata: PipelineMetadata = Field(default_factory=PipelineMetadata)


class ExportArtifact(BaseSchema):
    """Serialized pipeline ready to be written to a file."""

    content: str = Field(..., description="Serialized document text")
    mime_type: str = Field(..., examples=["application/json"])
    filename: str = Field(..., examples=["Release_Pipeline.json"])
    format: ExportFormat = Field(...)


__all__ = [
    "ExportArtifact",
    "ExportFormat",
    "PipelineDocument",
    "PipelineMetadata",
]
