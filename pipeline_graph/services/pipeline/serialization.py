"""Pipeline export and import.

Two artifact formats are supported:

- YAML pipeline description, steps in topological order. Export is
  gated on validity: an empty or invalid graph raises.
- JSON document holding nodes, edges and metadata verbatim. Export is not
  gated; import is permissive about optional fields and strict about the
  ``nodes`` array.

Imports accept both the flat exported node shape
(``{id, stepType, label, configuration, command, position}``) and the
browser canvas shape (``{id, position, data: {label, stepType, ...}}``).
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Mapping, Sequence
from datetime import UTC, datetime
from typing import Any

import yaml
from pydantic import ValidationError

from pipeline_graph.core.config import settings
from pipeline_graph.schemas.export import (
    ExportArtifact,
    ExportFormat,
    PipelineDocument,
    PipelineMetadata,
)
from pipeline_graph.schemas.graph import Edge, Node
from pipeline_graph.services.pipeline.algorithms import topological_sort
from pipeline_graph.services.pipeline.autofix import epoch_millis, random_suffix
from pipeline_graph.services.pipeline.exceptions import (
    EmptyPipelineError,
    ImportFormatError,
    InvalidPipelineError,
)
from pipeline_graph.services.pipeline.validator import PipelineValidator

logger = logging.getLogger(__name__)

MIME_TYPES: dict[str, str] = {
    ExportFormat.JSON.value: "application/json",
    ExportFormat.YAML.value: "text/yaml",
}

_NAME_STRIP_PATTERN = re.compile(r"[^\w\s-]")
_FILENAME_PATTERN = re.compile(r"[^a-zA-Z0-9\-_.]")


# =============================================================================
# Identifier and name helpers
# =============================================================================


def generate_node_id(step_type: str) -> str:
    """Node ID of the form "{step_type}-{epoch_ms}-{9 random base36 chars}"."""
    return f"{step_type}-{epoch_millis()}-{random_suffix(9)}"


def generate_edge_id(source_id: str, target_id: str) -> str:
    return f"edge-{source_id}-{target_id}"


def sanitize_pipeline_name(name: str | None, default: str | None = None) -> str:
    """Strip characters outside ``[\\w\\s-]``; fall back to ``default`` if nothing is left."""
    cleaned = _NAME_STRIP_PATTERN.sub("", name or "").strip()
    return cleaned or (default or settings.DEFAULT_PIPELINE_NAME)


def sanitize_filename(filename: str) -> str:
    """Replace characters outside ``[A-Za-z0-9._-]`` with underscores."""
    return _FILENAME_PATTERN.sub("_", filename)


# =============================================================================
# YAML emitter
# =============================================================================


class _Quoted(str):
    """String emitted in double-quoted style."""


class _PipelineDumper(yaml.SafeDumper):
    def ignore_aliases(self, data: Any) -> bool:
        return True


def _represent_quoted(dumper: yaml.SafeDumper, data: _Quoted) -> yaml.ScalarNode:
    return dumper.represent_scalar("tag:yaml.org,2002:str", str(data), style='"')


_PipelineDumper.add_representer(_Quoted, _represent_quoted)


class PipelineSerializer:
    """Exports graphs to YAML/JSON artifacts and imports JSON documents.

    Example:
        >>> serializer = PipelineSerializer()
        >>> artifact = serializer.export_pipeline_data(nodes, edges, "Release", format="yaml")
        >>> artifact.filename
        'Release.yaml'
    """

    def __init__(self, validator: PipelineValidator | None = None) -> None:
        """Initialize the serializer.

        Args:
            validator: Validator used to gate YAML export.
        """
        self.validator = validator or PipelineValidator()

    def pipeline_to_yaml(
        self,
        nodes: Sequence[Node],
        edges: Sequence[Edge],
        name: str | None = None,
        description: str | None = None,
    ) -> str:
        """Render the pipeline as a YAML description.

        Args:
            nodes: Graph nodes.
            edges: Graph edges.
            name: Pipeline name, sanitized. Defaults to settings.DEFAULT_PIPELINE_NAME
            description: Defaults to settings.YAML_DESCRIPTION

        Returns:
            YAML text.

        Raises:
            EmptyPipelineError: If there are no nodes.
            InvalidPipelineError: If the graph has validation errors.
        """
        if not nodes:
            raise EmptyPipelineError()

        report = self.validator.validate_pipeline(nodes, edges)
        if not report.is_valid:
            raise InvalidPipelineError(report.errors)

        steps = [self._step_entry(node) for node in topological_sort(nodes, edges)]
        document = {
            "pipeline": {
                "name": _Quoted(sanitize_pipeline_name(name)),
                "description": _Quoted(description or settings.YAML_DESCRIPTION),
                "stages": [{"name": _Quoted("main"), "steps": steps}],
            }
        }
        return yaml.dump(
            document,
            Dumper=_PipelineDumper,
            default_flow_style=False,
            sort_keys=False,
            allow_unicode=True,
        )

    def export_pipeline_data(
        self,
        nodes: Sequence[Node],
        edges: Sequence[Edge],
        name: str | None = None,
        format: ExportFormat | str = ExportFormat.JSON,
        description: str | None = None,
    ) -> ExportArtifact:
        """Serialize the pipeline into a downloadable artifact.

        JSON keeps nodes and edges in their given order with a metadata
        block (UTC timestamp, format version). YAML goes through
        ``pipeline_to_yaml`` and is therefore gated on validity.

        Raises:
            ValueError: If ``format`` is not a supported export format.
            EmptyPipelineError: YAML export of an empty graph.
            InvalidPipelineError: YAML export of an invalid graph.
        """
        export_format = ExportFormat(format)
        pipeline_name = sanitize_pipeline_name(name)[:255]

        if export_format == ExportFormat.YAML:
            content = self.pipeline_to_yaml(nodes, edges, pipeline_name, description)
        else:
            document = PipelineDocument(
                name=pipeline_name,
                nodes=list(nodes),
                edges=list(edges),
                metadata=PipelineMetadata(
                    exported_at=datetime.now(UTC),
                    version=settings.EXPORT_FORMAT_VERSION,
                    description=description,
                    node_count=len(nodes),
                    edge_count=len(edges),
                ),
            )
            content = json.dumps(document.to_wire(), indent=2, ensure_ascii=False)

        logger.info(
            f"Exported pipeline '{pipeline_name}' as {export_format.value}",
            extra={"context": {"nodes": len(nodes), "edges": len(edges)}},
        )

        return ExportArtifact(
            content=content,
            mime_type=MIME_TYPES[export_format.value],
            filename=f"{sanitize_filename(pipeline_name)}.{export_format.value}",
            format=export_format,
        )

    def import_pipeline_data(self, content: str | bytes | Mapping[str, Any]) -> PipelineDocument:
        """Parse a JSON pipeline document.

        Missing node IDs are generated, missing positions default to the
        origin, missing configuration to ``{}``, a missing name to
        settings.IMPORTED_PIPELINE_NAME and missing edges to ``[]``.

        Args:
            content: JSON text or an already-parsed mapping.

        Returns:
            The imported document.

        Raises:
            ImportFormatError: Malformed JSON, a missing or non-list
                ``nodes`` field, a non-object node or edge, or an edge
                without source/target.
        """
        data = self._parse(content)

        raw_nodes = data.get("nodes")
        if not isinstance(raw_nodes, list):
            raise ImportFormatError("missing or invalid 'nodes' array")

        raw_edges = data.get("edges")
        if raw_edges is None:
            raw_edges = []
        if not isinstance(raw_edges, list):
            raise ImportFormatError("'edges' must be an array")

        nodes = [self._import_node(index, raw) for index, raw in enumerate(raw_nodes)]
        edges = [self._import_edge(index, raw) for index, raw in enumerate(raw_edges)]

        name = data.get("name")
        if not isinstance(name, str) or not name.strip():
            name = settings.IMPORTED_PIPELINE_NAME

        document = PipelineDocument(
            name=name[:255],
            nodes=nodes,
            edges=edges,
            metadata=self._import_metadata(data.get("metadata"), len(nodes), len(edges)),
        )

        logger.info(
            f"Imported pipeline '{document.name}'",
            extra={"context": {"nodes": len(nodes), "edges": len(edges)}},
        )
        return document

    # ==========================================================================
    # Private Helper Methods
    # ==========================================================================

    @staticmethod
    def _step_entry(node: Node) -> dict[str, Any]:
        step: dict[str, Any] = {
            "name": _Quoted(node.label),
            "type": _Quoted(node.step_type),
        }
        if node.command:
            step["command"] = _Quoted(node.command)
        if node.configuration:
            step["config"] = node.configuration
        return step

    @staticmethod
    def _parse(content: str | bytes | Mapping[str, Any]) -> Mapping[str, Any]:
        if isinstance(content, Mapping):
            return content
        try:
            data = json.loads(content)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ImportFormatError(f"malformed JSON ({e})") from e
        if not isinstance(data, dict):
            raise ImportFormatError("top-level value must be an object")
        return data

    @staticmethod
    def _import_node(index: int, raw: Any) -> Node:
        if not isinstance(raw, dict):
            raise ImportFormatError(f"node {index} is not an object")

        # Canvas shape keeps step fields under "data"
        fields = raw.get("data") if isinstance(raw.get("data"), dict) else raw

        step_type = fields.get("stepType", fields.get("step_type")) or ""
        candidate = {
            "id": raw.get("id") or generate_node_id(step_type or "node"),
            "step_type": step_type,
            "label": fields.get("label") or "",
            "configuration": fields.get("configuration") or {},
            "command": fields.get("command"),
            "position": raw.get("position") or {},
        }
        try:
            return Node.model_validate(candidate)
        except ValidationError as e:
            raise ImportFormatError(f"node {index}: {e.errors()[0]['msg']}") from e

    @staticmethod
    def _import_edge(index: int, raw: Any) -> Edge:
        if not isinstance(raw, dict):
            raise ImportFormatError(f"edge {index} is not an object")

        source = raw.get("source")
        target = raw.get("target")
        if not source or not target:
            raise ImportFormatError(f"edge {index} is missing source or target")

        candidate = {
            "id": raw.get("id") or generate_edge_id(str(source), str(target)),
            "source": source,
            "target": target,
            "data": raw.get("data"),
        }
        try:
            return Edge.model_validate(candidate)
        except ValidationError as e:
            raise ImportFormatError(f"edge {index}: {e.errors()[0]['msg']}") from e

    @staticmethod
    def _import_metadata(raw: Any, node_count: int, edge_count: int) -> PipelineMetadata:
        counts = {"node_count": node_count, "edge_count": edge_count}
        if not isinstance(raw, dict):
            return PipelineMetadata(**counts)
        try:
            metadata = PipelineMetadata.model_validate(raw)
        except ValidationError as e:
            logger.warning(f"Ignoring unreadable pipeline metadata: {e.error_count()} errors")
            return PipelineMetadata(**counts)
        return metadata.model_copy(update=counts)


__all__ = [
    "MIME_TYPES",
    "PipelineSerializer",
    "generate_edge_id",
    "generate_node_id",
    "sanitize_filename",
    "sanitize_pipeline_name",
]
