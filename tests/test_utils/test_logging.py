"""Tests for the structured logging utilities."""

import logging
import time
from unittest.mock import MagicMock, patch

from xls_table_parser.utils.logging import (
    LogContext,
    PerformanceMetrics,
    StructuredLogFormatter,
    StructuredLogger,
    clear_context,
    configure_logging,
    get_extra_context,
    get_logger,
    get_run_id,
    set_extra_context,
    set_run_id,
    timed_operation,
)


class TestContextVariables:
    """Tests for context variable management."""

    def setup_method(self) -> None:
        """Clear context before each test."""
        clear_context()

    def teardown_method(self) -> None:
        """Clear context after each test."""
        clear_context()

    def test_run_id_default_none(self) -> None:
        """Run ID should default to None."""
        assert get_run_id() is None

    def test_set_and_get_run_id(self) -> None:
        """Should be able to set and get the run ID."""
        set_run_id("run-123")
        assert get_run_id() == "run-123"

    def test_extra_context_default_empty(self) -> None:
        """Extra context should default to empty dict."""
        assert get_extra_context() == {}

    def test_clear_context(self) -> None:
        """Clear context should reset all context variables."""
        set_run_id("run-123")
        set_extra_context({"stage": 1})

        clear_context()

        assert get_run_id() is None
        assert get_extra_context() == {}


class TestPerformanceMetrics:
    """Tests for PerformanceMetrics class."""

    def test_initialization(self) -> None:
        """Test basic initialization."""
        metrics = PerformanceMetrics(operation="stage")
        assert metrics.operation == "stage"
        assert metrics.duration_seconds == 0.0
        assert metrics.rows_scanned == 0
        assert metrics.records_emitted == 0
        assert metrics.stages_run == 0
        assert metrics.custom_metrics == {}

    def test_finish_calculates_duration(self) -> None:
        """Finish should calculate duration."""
        metrics = PerformanceMetrics(operation="stage")
        time.sleep(0.01)
        metrics.finish()
        assert metrics.duration_seconds > 0
        assert metrics.end_time is not None

    def test_to_dict_with_all_fields(self) -> None:
        """Test to_dict with all fields populated."""
        metrics = PerformanceMetrics(operation="plan")
        metrics.duration_seconds = 2.0
        metrics.rows_scanned = 40
        metrics.records_emitted = 12
        metrics.stages_run = 2
        metrics.custom_metrics = {"sheets": 1}

        result = metrics.to_dict()
        assert result["operation"] == "plan"
        assert result["rows_scanned"] == 40
        assert result["records_emitted"] == 12
        assert result["stages_run"] == 2
        assert result["custom_metrics"] == {"sheets": 1}

    def test_to_dict_excludes_zero_values(self) -> None:
        """to_dict should exclude zero values."""
        metrics = PerformanceMetrics(operation="stage")
        result = metrics.to_dict()
        assert "rows_scanned" not in result
        assert "records_emitted" not in result
        assert "stages_run" not in result


class TestStructuredLogger:
    """Tests for StructuredLogger class."""

    def setup_method(self) -> None:
        """Set up test fixtures."""
        self.logger = get_logger("test_logger")

    def test_get_logger_returns_structured_logger(self) -> None:
        """get_logger should return StructuredLogger."""
        assert isinstance(get_logger(__name__), StructuredLogger)
        assert isinstance(self.logger.logger, logging.Logger)

    def test_build_message_with_kwargs(self) -> None:
        """_build_message with kwargs should include key-value pairs."""
        assert self.logger._build_message("Stage finished") == "Stage finished"
        msg = self.logger._build_message("Stage finished", records=2, stop_index=4)
        assert msg == "Stage finished | records=2, stop_index=4"

    @patch.object(logging.Logger, "info")
    def test_info_logging(self, mock_info: MagicMock) -> None:
        """Info method should log at INFO level."""
        self.logger.info("Test info", status="ok")
        mock_info.assert_called_once()
        assert "status=ok" in mock_info.call_args[0][0]

    @patch.object(logging.Logger, "warning")
    def test_warning_logging(self, mock_warning: MagicMock) -> None:
        """Warning method should log at WARNING level."""
        self.logger.warning("Test warning")
        mock_warning.assert_called_once()

    @patch.object(logging.Logger, "error")
    def test_error_logging(self, mock_error: MagicMock) -> None:
        """Error method should pass exc_info through."""
        self.logger.error("Test error", exc_info=True)
        mock_error.assert_called_once()
        assert mock_error.call_args[1]["exc_info"] is True

    @patch.object(logging.Logger, "log")
    def test_explicit_level(self, mock_log: MagicMock) -> None:
        """log() should forward the given level."""
        self.logger.log(logging.DEBUG, "Row has more cells", row=3)
        mock_log.assert_called_once()
        assert mock_log.call_args[0][0] == logging.DEBUG
        assert "row=3" in mock_log.call_args[0][1]

    @patch.object(logging.Logger, "info")
    def test_log_progress(self, mock_info: MagicMock) -> None:
        """log_progress should log progress information."""
        self.logger.log_progress("plan", current=1, total=4)
        call_args = mock_info.call_args[0][0]
        assert "Progress: plan" in call_args
        assert "current=1" in call_args
        assert "25.0%" in call_args


class TestLogContext:
    """Tests for LogContext context manager."""

    def setup_method(self) -> None:
        """Clear context before each test."""
        clear_context()

    def teardown_method(self) -> None:
        """Clear context after each test."""
        clear_context()

    def test_context_sets_and_restores_values(self) -> None:
        """LogContext should set values within the block and restore them after."""
        set_extra_context({"original": "value"})

        with LogContext(run_id="run-1", stage=0):
            assert get_run_id() == "run-1"
            assert get_extra_context() == {"original": "value", "stage": 0}

        assert get_run_id() is None
        assert get_extra_context() == {"original": "value"}

    def test_nested_contexts(self) -> None:
        """Nested LogContext should keep the outer run id."""
        with LogContext(run_id="outer"):
            with LogContext(stage=1, sheet="Prices"):
                assert get_run_id() == "outer"
                assert get_extra_context() == {"stage": 1, "sheet": "Prices"}
            assert get_extra_context() == {}
            assert get_run_id() == "outer"


class TestStructuredLogFormatter:
    """Tests for the context-aware formatter."""

    def teardown_method(self) -> None:
        clear_context()

    def test_prefix_with_context(self) -> None:
        formatter = StructuredLogFormatter("%(message)s")
        record = logging.LogRecord("x", logging.INFO, __file__, 1, "Scanning", None, None)

        with LogContext(run_id="abc", stage=2):
            formatted = formatter.format(record)

        assert formatted == "[run_id=abc stage=2] Scanning"
        assert record.msg == "Scanning"

    def test_no_prefix_without_context(self) -> None:
        formatter = StructuredLogFormatter("%(message)s")
        record = logging.LogRecord("x", logging.INFO, __file__, 1, "Scanning", None, None)

        assert formatter.format(record) == "Scanning"


class TestTimedOperation:
    """Tests for timed_operation context manager."""

    @patch.object(StructuredLogger, "log_performance")
    def test_timed_operation_logs_metrics(self, mock_log: MagicMock) -> None:
        """timed_operation should log the collected metrics on exit."""
        logger = get_logger("test_timed")
        with timed_operation(logger, "stage") as metrics:
            metrics.records_emitted = 3

        mock_log.assert_called_once()
        logged = mock_log.call_args[0][0]
        assert logged.operation == "stage"
        assert logged.records_emitted == 3
        assert logged.end_time is not None


class TestConfigureLogging:
    """Tests for configure_logging."""

    def test_configures_root_logger(self) -> None:
        root = logging.getLogger()
        saved_handlers = root.handlers[:]
        saved_level = root.level
        try:
            configure_logging(level="debug")

            assert root.level == logging.DEBUG
            assert len(root.handlers) == 1
            assert isinstance(root.handlers[0].formatter, StructuredLogFormatter)
        finally:
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)
