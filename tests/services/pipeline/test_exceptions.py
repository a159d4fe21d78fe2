"""Tests for pipeline engine exceptions."""

import pytest

from pipeline_graph.core.exceptions import AppError
from pipeline_graph.services.pipeline.exceptions import (
    EmptyPipelineError,
    ImportFormatError,
    InvalidPipelineError,
    PipelineError,
    RegistryError,
    RuleExecutionError,
)


class TestPipelineError:
    """Tests for the base exception."""

    @pytest.mark.parametrize(
        "error",
        [
            EmptyPipelineError(),
            InvalidPipelineError(["x"]),
            ImportFormatError("bad"),
            RegistryError("bad"),
            RuleExecutionError("rule", ValueError("x")),
        ],
    )
    def test_hierarchy(self, error: PipelineError) -> None:
        """Every engine exception is an AppError."""
        assert isinstance(error, PipelineError)
        assert isinstance(error, AppError)
        assert str(error) == error.message

    def test_details_default_to_empty(self) -> None:
        """details is always a dict."""
        error = PipelineError("boom", "UNKNOWN_ERROR")
        assert error.details == {}
        assert error.error_code == "UNKNOWN_ERROR"


class TestExportErrors:
    """Tests for export failures."""

    def test_empty_pipeline(self) -> None:
        """Empty exports use the EXPORT_FAILED code."""
        error = EmptyPipelineError()
        assert error.error_code == "EXPORT_FAILED"
        assert "empty pipeline" in error.message

    def test_invalid_pipeline_lists_errors(self) -> None:
        """All validation errors appear in the message and details."""
        error = InvalidPipelineError(["Node is missing a label", "Circular dependency detected: a → a"])

        assert error.errors == ["Node is missing a label", "Circular dependency detected: a → a"]
        assert error.details["errors"] == error.errors
        assert "Node is missing a label; Circular dependency" in error.message

    def test_invalid_pipeline_without_errors(self) -> None:
        """An empty error list still yields a readable message."""
        assert "unknown validation error" in InvalidPipelineError([]).message


class TestOtherErrors:
    """Tests for import, registry and rule errors."""

    def test_import_format_error(self) -> None:
        """The reason is kept as an attribute and in details."""
        error = ImportFormatError("missing or invalid 'nodes' array")
        assert error.reason == "missing or invalid 'nodes' array"
        assert error.error_code == "INVALID_FORMAT"
        assert error.message.startswith("Invalid pipeline data:")

    def test_registry_error_step_type(self) -> None:
        """The step type is recorded when known."""
        assert RegistryError("nope", step_type="teleport").details == {"step_type": "teleport"}
        assert RegistryError("nope").details == {}

    def test_rule_execution_error_wraps_original(self) -> None:
        """The original exception is preserved."""
        original = KeyError("configuration")
        error = RuleExecutionError("custom-rule", original)

        assert error.rule_name == "custom-rule"
        assert error.original_error is original
        assert error.error_code == "RULE_FAILED"
        assert error.details == {"rule": "custom-rule", "error_type": "KeyError"}
        assert error.message.startswith('Validation rule "custom-rule" failed')
