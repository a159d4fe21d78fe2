"""Pydantic schemas for pipeline graphs, validation and export."""

from pipeline_graph.schemas.base import BaseSchema
from pipeline_graph.schemas.export import (
    ExportArtifact,
    ExportFormat,
    PipelineDocument,
    PipelineMetadata,
)
from pipeline_graph.schemas.graph import Edge, EdgeData, Node, Position
from pipeline_graph.schemas.validation import (
    AutoFixResult,
    NodeValidationResult,
    RuleName,
    Severity,
    ValidationIssue,
    ValidationReport,
)

__all__ = [
    # Base
    "BaseSchema",
    # Graph
    "Edge",
    "EdgeData",
    "Node",
    "Position",
    # Validation
    "AutoFixResult",
    "NodeValidationResult",
    "RuleName",
    "Severity",
    "ValidationIssue",
    "ValidationReport",
    # Export
    "ExportArtifact",
    "ExportFormat",
    "PipelineDocument",
    "PipelineMetadata",
]
