"""Tests for the pipeline error handler."""

import logging

import pytest

from pipeline_graph.services.pipeline.error_handler import (
    ERROR_MESSAGES,
    ErrorCode,
    ErrorDetails,
    ErrorHandler,
    ErrorSeverity,
)
from pipeline_graph.services.pipeline.exceptions import (
    ImportFormatError,
    RuleExecutionError,
)


class TestRecording:
    """Tests for the bounded error log."""

    def test_ring_buffer_keeps_most_recent(self) -> None:
        """Older entries are dropped once the capacity is reached."""
        handler = ErrorHandler(max_log_size=3)
        for i in range(5):
            handler.handle_error(ValueError(f"problem {i}"))

        assert len(handler) == 3
        assert [e.message for e in handler.get_recent_errors()] == [
            "problem 2",
            "problem 3",
            "problem 4",
        ]

    def test_get_recent_errors_count(self, error_handler: ErrorHandler) -> None:
        """count limits the result to the newest entries."""
        for i in range(4):
            error_handler.handle_error(ValueError(f"problem {i}"))

        assert [e.message for e in error_handler.get_recent_errors(2)] == ["problem 2", "problem 3"]
        assert error_handler.get_recent_errors(0) == []

    def test_clear_error_log(self, error_handler: ErrorHandler) -> None:
        """clear_error_log empties the buffer."""
        error_handler.handle_error(ValueError("x"))
        error_handler.clear_error_log()
        assert len(error_handler) == 0

    def test_default_capacity_from_settings(self) -> None:
        """Capacity defaults to ERROR_LOG_SIZE."""
        assert ErrorHandler().max_log_size == 100


class TestNormalization:
    """Tests for error code and severity inference."""

    def test_pipeline_error_keeps_code_and_details(self, error_handler: ErrorHandler) -> None:
        """Package exceptions carry their own code; details merge into metadata."""
        details = error_handler.handle_error(
            ImportFormatError("top-level value must be an object"),
            component="serializer",
            action="import",
            filename="pipe.json",
        )

        assert details.code == ErrorCode.INVALID_FORMAT
        assert details.severity == ErrorSeverity.HIGH
        assert details.error_type == "ImportFormatError"
        assert details.context.metadata == {
            "reason": "top-level value must be an object",
            "filename": "pipe.json",
        }

    def test_rule_failure_is_medium(self, error_handler: ErrorHandler) -> None:
        """Rule failures do not escalate past medium."""
        details = error_handler.handle_error(RuleExecutionError("custom", KeyError("x")))
        assert details.code == ErrorCode.RULE_FAILED
        assert details.severity == ErrorSeverity.MEDIUM
        assert details.recoverable is True

    @pytest.mark.parametrize(
        ("message", "code", "severity"),
        [
            ("could not parse file", ErrorCode.IMPORT_FAILED, ErrorSeverity.LOW),
            ("import failed", ErrorCode.IMPORT_FAILED, ErrorSeverity.HIGH),
            ("export failed", ErrorCode.EXPORT_FAILED, ErrorSeverity.HIGH),
            ("circular reference", ErrorCode.CIRCULAR_DEPENDENCY, ErrorSeverity.LOW),
            ("validation went wrong", ErrorCode.UNKNOWN_ERROR, ErrorSeverity.MEDIUM),
            ("fatal state", ErrorCode.UNKNOWN_ERROR, ErrorSeverity.CRITICAL),
            ("something odd", ErrorCode.UNKNOWN_ERROR, ErrorSeverity.LOW),
        ],
    )
    def test_inference_from_message(
        self,
        error_handler: ErrorHandler,
        message: str,
        code: ErrorCode,
        severity: ErrorSeverity,
    ) -> None:
        """Foreign exceptions are classified by their message."""
        details = error_handler.handle_error(RuntimeError(message))
        assert details.code == code
        assert details.severity == severity

    def test_recursion_error_is_critical_and_unrecoverable(self, error_handler: ErrorHandler) -> None:
        """Resource exhaustion cannot be retried."""
        details = error_handler.handle_error(RecursionError("maximum depth"))
        assert details.severity == ErrorSeverity.CRITICAL
        assert details.recoverable is False

    def test_empty_message_uses_type_name(self, error_handler: ErrorHandler) -> None:
        """Exceptions without text are named by type."""
        details = error_handler.handle_error(KeyError())
        assert details.message == "KeyError"

    def test_log_level_follows_severity(
        self, error_handler: ErrorHandler, caplog: pytest.LogCaptureFixture
    ) -> None:
        """High severity is logged at ERROR."""
        with caplog.at_level(logging.INFO, logger="pipeline_graph"):
            error_handler.handle_error(RuntimeError("export failed"), component="serializer")

        record = caplog.records[-1]
        assert record.levelno == logging.ERROR
        assert "[EXPORT_FAILED]" in record.getMessage()
        assert record.context["component"] == "serializer"


class TestSubscribers:
    """Tests for subscriber dispatch."""

    def test_subscribers_receive_details(self) -> None:
        """Constructor and later subscribers both get every error."""
        first: list[ErrorDetails] = []
        second: list[ErrorDetails] = []
        handler = ErrorHandler(subscribers=[first.append])
        handler.subscribe(second.append)

        details = handler.handle_error(ValueError("boom"), component="validator", action="validate")

        assert first == [details]
        assert second == [details]
        assert details.context.component == "validator"
        assert details.context.action == "validate"

    def test_failing_subscriber_does_not_propagate(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        """A broken subscriber is logged; later subscribers still run."""
        received: list[ErrorDetails] = []

        def broken(details: ErrorDetails) -> None:
            raise RuntimeError("subscriber down")

        handler = ErrorHandler(subscribers=[broken, received.append])

        with caplog.at_level(logging.ERROR, logger="pipeline_graph"):
            handler.handle_error(ValueError("boom"))

        assert len(received) == 1
        assert any(r.getMessage() == "Error subscriber failed" for r in caplog.records)


class TestDescribe:
    """Tests for user-facing error text."""

    def test_known_code(self) -> None:
        """Every code has a title, message and suggestion."""
        for code in ErrorCode:
            assert set(ERROR_MESSAGES[code]) == {"title", "message", "suggestion"}
        assert ErrorHandler.describe("CIRCULAR_DEPENDENCY")["title"] == "Circular Dependency Detected"

    def test_unknown_code_falls_back(self) -> None:
        """Unrecognized codes use the generic text."""
        assert ErrorHandler.describe("NOPE") == ERROR_MESSAGES[ErrorCode.UNKNOWN_ERROR]
