"""Tests for logging configuration."""

import logging
import tempfile
from pathlib import Path

from blockcharge.config import settings
from blockcharge.logging import get_log_level, setup_server_logging


class TestServerLogging:
    """Test server logging configuration."""

    def setup_method(self):
        """Save original handlers before each test."""
        self.root_logger = logging.getLogger()
        self.original_handlers = self.root_logger.handlers.copy()
        self.original_level = self.root_logger.level

    def teardown_method(self):
        """Restore original handlers after each test."""
        for handler in self.root_logger.handlers[:]:
            handler.close()
            self.root_logger.removeHandler(handler)
        for handler in self.original_handlers:
            self.root_logger.addHandler(handler)
        self.root_logger.setLevel(self.original_level)

    def test_creates_log_directory(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            log_file = Path(temp_dir) / "nested" / "sweep.log"

            setup_server_logging(str(log_file))

            assert log_file.parent.exists()

    def test_creates_stdout_and_file_handlers(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            setup_server_logging(str(Path(temp_dir) / "server.log"))

            handlers = self.root_logger.handlers
            assert len(handlers) == 2
            assert any(isinstance(h, logging.FileHandler) for h in handlers)

    def test_repeated_setup_does_not_duplicate(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            setup_server_logging(str(Path(temp_dir) / "server.log"))
            setup_server_logging(str(Path(temp_dir) / "server.log"))

            assert len(self.root_logger.handlers) == 2

    def test_writes_formatted_messages(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            log_file = Path(temp_dir) / "server.log"
            setup_server_logging(str(log_file))

            logging.getLogger("blockcharge.test").warning("Penalty sweep skipped demand 7")
            for handler in self.root_logger.handlers:
                handler.flush()

            content = log_file.read_text()
            assert "blockcharge.test - WARNING - Penalty sweep skipped demand 7" in content

    def test_level_and_file_default_to_settings(self, monkeypatch, tmp_path) -> None:
        log_file = tmp_path / "configured.log"
        monkeypatch.setattr(settings, "log_level", "WARNING")
        monkeypatch.setattr(settings, "log_file", str(log_file))

        setup_server_logging()

        assert self.root_logger.level == logging.WARNING
        assert log_file.exists()

    def test_explicit_level_overrides_settings(self, monkeypatch, tmp_path) -> None:
        monkeypatch.setattr(settings, "log_level", "WARNING")

        setup_server_logging(str(tmp_path / "server.log"), level="debug")

        assert self.root_logger.level == logging.DEBUG

    def test_sql_logging_quiet_without_echo(self, monkeypatch, tmp_path) -> None:
        monkeypatch.setattr(settings, "database_echo", False)
        monkeypatch.setattr(settings, "log_level", "DEBUG")

        setup_server_logging(str(tmp_path / "server.log"))

        assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING


class TestGetLogLevel:
    def test_reads_settings(self, monkeypatch):
        monkeypatch.setattr(settings, "log_level", "error")
        assert get_log_level() == logging.ERROR

    def test_default_info(self, monkeypatch):
        monkeypatch.setattr(settings, "log_level", "INFO")
        assert get_log_level() == logging.INFO

    def test_explicit_name(self):
        assert get_log_level("debug") == logging.DEBUG

    def test_unknown_level_falls_back(self):
        assert get_log_level("CHATTY") == logging.INFO
