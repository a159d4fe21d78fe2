"""Pipeline graph validation and analysis package.

This package provides the analysis engine behind the visual pipeline
builder. All services are plain objects constructed by the caller; none
of them keeps global state.

Components:
- Graph: Generic directed graph data structure
- GraphAlgorithms: Cycle detection, reachability, topological order
- Layout: Layered auto-layout
- ComponentRegistry: Step type catalog, required fields, connection rules
- PipelineValidator: Rule-based validation service
- AutoFixEngine: Fixes for auto-fixable issues
- PipelineSerializer: YAML/JSON export and JSON import
- ErrorHandler: Error log and dispatch
- ValidationCache: Optional Redis-backed report cache

Example:
    >>> from pipeline_graph.services.pipeline import PipelineValidator
    >>> validator = PipelineValidator()
    >>> report = validator.validate_pipeline(nodes, edges)
    >>> if report.can_auto_fix:
    ...     result, report = validator.auto_fix_until_stable(nodes, edges)
"""

# ============================================================================
# Graph Analysis
# ============================================================================

from pipeline_graph.services.pipeline.algorithms import (
    GraphAlgorithms,
    build_adjacency,
    detect_cycle,
    find_all_cycles,
    find_cycle_edges,
    find_entry_nodes,
    find_orphaned_nodes,
    find_reachable_nodes,
    topological_sort,
)
from pipeline_graph.services.pipeline.graph import Graph
from pipeline_graph.services.pipeline.layout import auto_layout_nodes, calculate_layers

# ============================================================================
# Validation
# ============================================================================

from pipeline_graph.services.pipeline.autofix import AutoFixEngine
from pipeline_graph.services.pipeline.cache import ValidationCache
from pipeline_graph.services.pipeline.error_handler import (
    ErrorCode,
    ErrorDetails,
    ErrorHandler,
    ErrorSeverity,
)
from pipeline_graph.services.pipeline.exceptions import (
    EmptyPipelineError,
    ImportFormatError,
    InvalidPipelineError,
    PipelineError,
    RegistryError,
    RuleExecutionError,
)
from pipeline_graph.services.pipeline.registry import ComponentDefinition, ComponentRegistry
from pipeline_graph.services.pipeline.rules import ValidationRule, default_rules
from pipeline_graph.services.pipeline.validator import PipelineValidator, compute_checksum

# ============================================================================
# Serialization
# ============================================================================

from pipeline_graph.services.pipeline.serialization import (
    PipelineSerializer,
    generate_edge_id,
    generate_node_id,
    sanitize_filename,
    sanitize_pipeline_name,
)

__all__ = [
    # Data structures
    "Graph",
    # Algorithms
    "GraphAlgorithms",
    "build_adjacency",
    "detect_cycle",
    "find_all_cycles",
    "find_cycle_edges",
    "find_entry_nodes",
    "find_orphaned_nodes",
    "find_reachable_nodes",
    "topological_sort",
    # Layout
    "auto_layout_nodes",
    "calculate_layers",
    # Registry
    "ComponentDefinition",
    "ComponentRegistry",
    # Validation
    "AutoFixEngine",
    "PipelineValidator",
    "ValidationCache",
    "ValidationRule",
    "compute_checksum",
    "default_rules",
    # Errors
    "EmptyPipelineError",
    "ErrorCode",
    "ErrorDetails",
    "ErrorHandler",
    "ErrorSeverity",
    "ImportFormatError",
    "InvalidPipelineError",
    "PipelineError",
    "RegistryError",
    "RuleExecutionError",
    # Serialization
    "PipelineSerializer",
    "generate_edge_id",
    "generate_node_id",
    "sanitize_filename",
    "sanitize_pipeline_name",
]
