"""Tests for structured logging."""

import json
import logging
from concurrent.futures import ThreadPoolExecutor
from contextvars import copy_context
from pathlib import Path

import structlog

from brxm_inspect.config.models import InspectionConfig, LoggingConfig, LogOutputConfig
from brxm_inspect.core.logging import bind_run, configure_logging, current_run_id


class TestRunBinding:
    """Run id binding through structlog context variables."""

    def setup_method(self) -> None:
        structlog.contextvars.clear_contextvars()

    def test_given_explicit_id_when_bound_then_visible_inside_block_only(self) -> None:
        # When
        with bind_run("run-123") as rid:
            inside = current_run_id()

        # Then
        assert rid == "run-123"
        assert inside == "run-123"
        assert current_run_id() is None

    def test_given_no_id_when_bound_then_generates_short_hex(self) -> None:
        with bind_run() as rid:
            assert len(rid) == 12
            int(rid, 16)

    def test_given_nested_runs_when_inner_exits_then_outer_id_restored(self) -> None:
        with bind_run("outer"):
            with bind_run("inner"):
                assert current_run_id() == "inner"
            assert current_run_id() == "outer"

    def test_given_bound_run_when_work_submitted_with_copied_context_then_worker_sees_id(self) -> None:
        """Pool workers run in a copy of the submitting context."""
        with bind_run("pooled"), ThreadPoolExecutor(max_workers=1) as pool:
            seen = pool.submit(copy_context().run, current_run_id).result()

        assert seen == "pooled"


class TestLoggingConfiguration:
    """Logging configuration tests."""

    def setup_method(self) -> None:
        """Reset structlog and stdlib logging before each test."""
        structlog.reset_defaults()
        structlog.contextvars.clear_contextvars()
        logging.getLogger().handlers.clear()

    def teardown_method(self) -> None:
        structlog.reset_defaults()
        structlog.contextvars.clear_contextvars()
        for handler in list(logging.getLogger().handlers):
            logging.getLogger().removeHandler(handler)
            handler.close()

    def test_given_inspection_config_when_configure_then_logging_section_applies(self, tmp_path: Path) -> None:
        """JSON file output carries level, timestamp and the bound run id."""
        # Given
        log_file = tmp_path / "inspect.log"
        config = InspectionConfig(
            logging=LoggingConfig(
                level="DEBUG",
                outputs=[LogOutputConfig(format="json", destination=str(log_file))],
            )
        )
        configure_logging(config)

        # When
        with bind_run("abc123"):
            structlog.get_logger().info("inspection_run_started", files=3)

        # Then
        data = json.loads(log_file.read_text().strip().splitlines()[-1])
        assert data["event"] == "inspection_run_started"
        assert data["files"] == 3
        assert data["run_id"] == "abc123"
        assert data["level"] == "info"
        assert "timestamp" in data

    def test_given_multi_output_config_when_configure_then_levels_apply_per_output(
        self, tmp_path: Path
    ) -> None:
        """Each output filters by its own level."""
        # Given
        debug_file = tmp_path / "debug.log"
        warn_file = tmp_path / "warn.log"
        configure_logging(
            LoggingConfig(
                level="DEBUG",
                outputs=[
                    LogOutputConfig(format="json", destination=str(warn_file), level="WARNING"),
                    LogOutputConfig(format="json", destination=str(debug_file)),
                ],
            )
        )
        logger = structlog.get_logger()

        # When
        logger.debug("parse_failed")
        logger.warning("issue_dropped")

        # Then
        warn_content = warn_file.read_text()
        assert "issue_dropped" in warn_content
        assert "parse_failed" not in warn_content
        debug_content = debug_file.read_text()
        assert "parse_failed" in debug_content
        assert "issue_dropped" in debug_content

    def test_given_no_config_when_configure_then_single_stderr_handler(self) -> None:
        configure_logging()

        handlers = logging.getLogger().handlers
        assert len(handlers) == 1
        assert isinstance(handlers[0], logging.StreamHandler)
        assert logging.getLogger().level == logging.INFO

    def test_given_reconfigure_when_called_twice_then_handlers_replaced(self, tmp_path: Path) -> None:
        first = LoggingConfig(outputs=[LogOutputConfig(destination=str(tmp_path / "a.log"))])
        configure_logging(first)
        configure_logging(first)

        assert len(logging.getLogger().handlers) == 1
