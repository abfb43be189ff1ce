"""Tests for logging service configuration."""

import logging
import tempfile
from pathlib import Path
from unittest.mock import patch

from equb.services.logging import get_log_level, setup_logging


class TestSetupLogging:
    """Test engine logging configuration."""

    def setup_method(self):
        """Save original handlers before each test."""
        self.root_logger = logging.getLogger()
        self.original_handlers = self.root_logger.handlers.copy()
        self.original_level = self.root_logger.level

    def teardown_method(self):
        """Restore original handlers after each test."""
        self.root_logger = logging.getLogger()
        for handler in self.root_logger.handlers[:]:
            handler.close()
            self.root_logger.removeHandler(handler)
        for handler in self.original_handlers:
            self.root_logger.addHandler(handler)
        self.root_logger.setLevel(self.original_level)

    def test_setup_logging_creates_log_directory(self) -> None:
        """Verify setup_logging creates the log directory if missing."""
        with tempfile.TemporaryDirectory() as temp_dir:
            log_file = Path(temp_dir) / "nested" / "equb.log"
            assert not log_file.parent.exists()

            setup_logging(str(log_file))

            assert log_file.parent.exists()

    def test_setup_logging_creates_handlers(self) -> None:
        """Verify setup_logging creates both stdout and file handlers."""
        with tempfile.TemporaryDirectory() as temp_dir:
            setup_logging(str(Path(temp_dir) / "equb.log"))

            assert len(self.root_logger.handlers) == 2
            assert any(isinstance(h, logging.FileHandler) for h in self.root_logger.handlers)

    def test_setup_logging_is_idempotent(self) -> None:
        """Calling setup twice must not duplicate handlers."""
        with tempfile.TemporaryDirectory() as temp_dir:
            log_file = str(Path(temp_dir) / "equb.log")
            setup_logging(log_file)
            setup_logging(log_file)

            assert len(self.root_logger.handlers) == 2

    def test_setup_logging_handler_levels(self) -> None:
        """Verify root logger and handlers use LOG_LEVEL."""
        with tempfile.TemporaryDirectory() as temp_dir:
            with patch.dict("os.environ", {"LOG_LEVEL": "WARNING"}, clear=False):
                setup_logging(str(Path(temp_dir) / "equb.log"))

                assert self.root_logger.level == logging.WARNING
                for handler in self.root_logger.handlers:
                    assert handler.level == logging.WARNING

    def test_setup_logging_writes_to_file(self) -> None:
        """Verify engine loggers end up in the log file."""
        with tempfile.TemporaryDirectory() as temp_dir:
            log_file = Path(temp_dir) / "equb.log"

            with patch.dict("os.environ", {"LOG_LEVEL": "INFO"}, clear=False):
                logger = setup_logging(str(log_file))
                logging.getLogger("equb.services.equb_service").info("Created group: code=E000001")

                for handler in self.root_logger.handlers:
                    handler.flush()

            assert logger.name == "equb"
            content = log_file.read_text()
            assert "equb.services.equb_service - INFO - Created group: code=E000001" in content


class TestGetLogLevel:
    """LOG_LEVEL resolution."""

    def test_known_level(self) -> None:
        """Level names are case-insensitive."""
        with patch.dict("os.environ", {"LOG_LEVEL": "debug"}, clear=False):
            assert get_log_level() == logging.DEBUG

    def test_unknown_level_falls_back_to_info(self) -> None:
        """Unknown level names fall back to INFO."""
        with patch.dict("os.environ", {"LOG_LEVEL": "chatty"}, clear=False):
            assert get_log_level() == logging.INFO
