"""
Unit tests for logging infrastructure.

Tests TwigLogger and the operation tracking decorator.
"""

import tempfile
from pathlib import Path
from typing import Iterator, List

import pytest
from loguru import logger

from twig.logging import (
    TwigLogger,
    get_logger_instance,
    get_twig_logger,
    initialize_logging,
    log_repository_operation,
    track_operation,
)


@pytest.fixture
def records() -> Iterator[List[dict]]:
    """Capture loguru records emitted during a test."""
    captured: List[dict] = []
    logger.configure(extra={"component": "system"})
    handler_id = logger.add(lambda message: captured.append(message.record), level="DEBUG")
    yield captured
    logger.remove(handler_id)


class TestTwigLogger:
    """Tests for TwigLogger class."""

    def test_logger_initialization(self) -> None:
        """Test logger initialization."""
        with tempfile.TemporaryDirectory() as tmpdir:
            twig_logger = TwigLogger(
                log_dir=Path(tmpdir),
                level="INFO",
                enable_file_logging=False,
            )
            assert twig_logger.log_dir == Path(tmpdir)
            assert twig_logger.level == "INFO"

    def test_file_logging_creates_log_directory(self) -> None:
        """Test that file logging creates the log directory."""
        with tempfile.TemporaryDirectory() as tmpdir:
            log_dir = Path(tmpdir) / "logs"
            assert not log_dir.exists()

            twig_logger = TwigLogger(log_dir=log_dir, enable_file_logging=True)
            twig_logger.get_logger("storage").warning("written to file")
            logger.remove()

            # The closed log file may already be compressed
            assert any(p.name.startswith("twig") for p in log_dir.iterdir())

    def test_no_log_directory_without_file_logging(self) -> None:
        """Test that console-only logging leaves the filesystem alone."""
        with tempfile.TemporaryDirectory() as tmpdir:
            log_dir = Path(tmpdir) / "logs"
            TwigLogger(log_dir=log_dir, enable_file_logging=False)
            assert not log_dir.exists()

    def test_get_component_logger(self) -> None:
        """Test getting a component-specific logger."""
        captured: List[dict] = []
        with tempfile.TemporaryDirectory() as tmpdir:
            twig_logger = TwigLogger(log_dir=Path(tmpdir), enable_console_logging=False)
            handler_id = logger.add(
                lambda message: captured.append(message.record), level="DEBUG"
            )
            twig_logger.get_logger("merge").info("merging")
            logger.remove(handler_id)

        assert captured[-1]["extra"]["component"] == "merge"


class TestGetTwigLogger:
    """Tests for get_twig_logger function."""

    def test_get_twig_logger_binds_component(self, records: List[dict]) -> None:
        """Test that get_twig_logger binds the component name."""
        get_twig_logger("storage").debug("hello")
        assert records[-1]["extra"]["component"] == "storage"


class TestInitializeLogging:
    """Tests for initialize_logging function."""

    def test_initialize_logging_returns_instance(self) -> None:
        """Test that initialize_logging returns a TwigLogger instance."""
        with tempfile.TemporaryDirectory() as tmpdir:
            logger_instance = initialize_logging(
                log_dir=Path(tmpdir), level="INFO", enable_file_logging=False
            )
            assert isinstance(logger_instance, TwigLogger)
            assert get_logger_instance() is logger_instance


class TestLogRepositoryOperation:
    """Tests for log_repository_operation."""

    def test_operation_context_is_attached(self, records: List[dict]) -> None:
        log_repository_operation(get_twig_logger("repository"), "commit", commit_id="abc")

        record = records[-1]
        assert record["level"].name == "DEBUG"
        assert record["extra"]["operation"] == "commit"
        assert record["extra"]["commit_id"] == "abc"
        assert "timestamp" in record["extra"]


class TestTrackOperation:
    """Tests for track_operation decorator."""

    def test_track_operation_basic(self, records: List[dict]) -> None:
        """Test start and completion are logged."""

        @track_operation("add")
        def add_file(path: str) -> str:
            return "digest"

        assert add_file(path="a.txt") == "digest"

        operations = [r["extra"].get("operation") for r in records]
        assert operations == ["add", "add_complete"]
        assert records[0]["extra"]["arguments"] == {"path": "a.txt"}
        assert records[-1]["extra"]["elapsed_ms"] >= 0

    def test_track_operation_skips_self(self, records: List[dict]) -> None:
        """Test bound-method receivers are not logged as arguments."""

        class Thing:
            @track_operation("rename")
            def rename(self, name: str) -> None:
                pass

        Thing().rename("new")
        assert records[0]["extra"]["arguments"] == {"name": "new"}

    def test_track_operation_truncates_arguments(self, records: List[dict]) -> None:
        """Test long argument values are truncated."""

        @track_operation("commit")
        def commit(message: str) -> None:
            pass

        commit("x" * 500)
        assert len(records[0]["extra"]["arguments"]["message"]) == 100

    def test_track_operation_captures_error(self, records: List[dict]) -> None:
        """Test that decorator logs and re-raises errors."""

        @track_operation("merge")
        def failing_merge() -> None:
            raise RuntimeError("Operation failed")

        with pytest.raises(RuntimeError, match="Operation failed"):
            failing_merge()

        error = records[-1]["extra"]
        assert error["operation"] == "merge_error"
        assert error["error_type"] == "RuntimeError"
        assert error["success"] is False

    def test_track_operation_preserves_metadata(self) -> None:
        """Test functools.wraps keeps the wrapped function's name and docs."""

        @track_operation("status")
        def status() -> None:
            """Report status."""

        assert status.__name__ == "status"
        assert status.__doc__ == "Report status."
