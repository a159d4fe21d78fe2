"""Tests for the logging module.

This module tests the logging setup used by the pipeline engine:
- Structured JSON logging
- Redaction of secrets found in step configurations
- Package-scoped handler setup with optional rotating file output
- Scoped context via LogContext
"""

import json
import logging
from collections.abc import Iterator
from logging.handlers import RotatingFileHandler
from pathlib import Path

import pytest

from pipeline_graph.core.logging import (
    ColoredConsoleFormatter,
    JSONFormatter,
    LogContext,
    SensitiveDataFilter,
    get_logger,
    setup_logging,
)


def make_record(msg: str, level: int = logging.INFO, name: str = "pipeline_graph.test") -> logging.LogRecord:
    return logging.LogRecord(
        name=name,
        level=level,
        pathname="test.py",
        lineno=1,
        msg=msg,
        args=(),
        exc_info=None,
    )


@pytest.fixture(autouse=True)
def restore_package_logger() -> Iterator[None]:
    """Undo setup_logging side effects on the package logger."""
    logger = logging.getLogger("pipeline_graph")
    level, handlers = logger.level, list(logger.handlers)
    yield
    for handler in logger.handlers:
        if handler not in handlers:
            handler.close()
    logger.handlers[:] = handlers
    logger.setLevel(level)


class TestSensitiveDataFilter:
    """Test redaction of secrets in log messages."""

    def test_filter_token_in_message(self) -> None:
        """Repository tokens are redacted."""
        record = make_record("clone config token: ghp_abc123")

        assert SensitiveDataFilter().filter(record) is True
        assert record.msg == "clone config token: [REDACTED]"

    def test_filter_serialized_configuration(self) -> None:
        """Secrets inside a dumped configuration dict are redacted."""
        record = make_record(
            "config={'repository': 'org/app', 'token': 'ghp_abc123', 'keyFile': '~/.ssh/id_rsa'}"
        )

        SensitiveDataFilter().filter(record)

        assert "ghp_abc123" not in record.msg
        assert "id_rsa" not in record.msg
        assert "org/app" in record.msg

    def test_filter_string_args(self) -> None:
        """Format arguments are redacted as well."""
        record = make_record("deploying with %s")
        record.args = ("password=hunter2",)

        SensitiveDataFilter().filter(record)

        assert "hunter2" not in record.getMessage()


class TestJSONFormatter:
    """Test JSON log formatting."""

    def test_json_formatter_creates_valid_json(self) -> None:
        """The output is one JSON object with the standard fields."""
        formatter = JSONFormatter(service_name="Pipeline Graph")

        log_entry = json.loads(formatter.format(make_record("Validated pipeline")))

        assert log_entry["level"] == "INFO"
        assert log_entry["logger"] == "pipeline_graph.test"
        assert log_entry["message"] == "Validated pipeline"
        assert log_entry["service"] == "Pipeline Graph"
        assert log_entry["timestamp"].endswith("Z")
        assert "source" not in log_entry

    def test_json_formatter_includes_context(self) -> None:
        """Context from extra= and from LogContext is merged."""
        record = make_record("Auto-fix applied")
        record.log_context = {"pipeline": "Release"}
        record.context = {"rules": ["missing-labels"]}

        log_entry = json.loads(JSONFormatter().format(record))

        assert log_entry["context"] == {"pipeline": "Release", "rules": ["missing-labels"]}

    def test_errors_include_source(self) -> None:
        """ERROR records carry their source location."""
        log_entry = json.loads(JSONFormatter().format(make_record("Rule failed", logging.ERROR)))
        assert log_entry["source"]["line"] == 1


class TestColoredConsoleFormatter:
    """Test development console formatting."""

    def test_context_is_appended(self) -> None:
        """Context is rendered after the message."""
        record = make_record("Exported pipeline")
        record.context = {"nodes": 3}

        output = ColoredConsoleFormatter().format(record)

        assert 'Exported pipeline | Context: {"nodes": 3}' in output


class TestLogContext:
    """Test LogContext context manager."""

    def test_log_context_adds_context_to_records(self) -> None:
        """Records created inside the block carry the scoped context."""
        logger = get_logger("pipeline_graph.test_context")
        records: list[logging.LogRecord] = []
        handler = logging.Handler()
        handler.emit = records.append  # type: ignore[method-assign]
        logger.addHandler(handler)
        logger.setLevel(logging.DEBUG)

        try:
            with LogContext(logger, pipeline="Release", checksum="ab12"):
                logger.info("Exporting pipeline")
                logger.info("Exported", extra={"context": {"nodes": 3}})
            logger.info("Outside")
        finally:
            logger.removeHandler(handler)

        assert records[0].log_context == {"pipeline": "Release", "checksum": "ab12"}
        assert records[1].context == {"nodes": 3}
        assert not hasattr(records[2], "log_context")


class TestSetupLogging:
    """Test logging setup function."""

    def test_configures_package_logger_only(self) -> None:
        """The package logger is configured; the root logger is untouched."""
        root_handlers = list(logging.getLogger().handlers)

        logger = setup_logging(log_level="debug", enable_console=True)

        assert logger.name == "pipeline_graph"
        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 1
        assert logging.getLogger().handlers == root_handlers

    def test_creates_rotating_file_handler(self, tmp_path: Path) -> None:
        """A log file path adds a rotating file handler and its directory."""
        log_file = tmp_path / "logs" / "pipeline.log"

        logger = setup_logging(log_file=str(log_file), enable_console=False)

        assert log_file.parent.exists()
        (handler,) = logger.handlers
        assert isinstance(handler, RotatingFileHandler)
        assert isinstance(handler.formatter, JSONFormatter)

    def test_repeated_setup_does_not_duplicate_handlers(self) -> None:
        """Calling setup twice leaves one console handler."""
        setup_logging(enable_console=True)
        logger = setup_logging(enable_console=True)
        assert len(logger.handlers) == 1

    def test_file_output_is_json(self, tmp_path: Path) -> None:
        """Records written to the file are JSON lines."""
        log_file = tmp_path / "pipeline.log"
        logger = setup_logging(log_level="INFO", log_file=str(log_file), enable_console=False)

        get_logger("pipeline_graph.services.pipeline.validator").info(
            "Validated pipeline", extra={"context": {"token": "x"}}
        )
        for handler in logger.handlers:
            handler.flush()

        (line,) = log_file.read_text(encoding="utf-8").splitlines()
        assert json.loads(line)["message"] == "Validated pipeline"
