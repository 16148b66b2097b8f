"""
risqlab: Tests for Logging Setup

Test suite for ``risqlab.core.logging``. Covers:
- File and console handlers
- Namespaced logger retrieval
"""

from __future__ import annotations

import logging
import time
from pathlib import Path

import pytest

from risqlab.core.config import RisqlabConfig
from risqlab.core.logging import build_formatter, get_logger, setup_logging


class TestLogging:
    """Tests for logging configuration and helpers."""

    def test_setup_logging_creates_log_file(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """setup_logging should create a log file and write messages to it."""

        log_file = tmp_path / "test.log"

        root_logger = logging.getLogger()
        saved = list(root_logger.handlers)
        for handler in saved:
            root_logger.removeHandler(handler)

        try:
            monkeypatch.setenv("LOG_FILE", str(log_file))
            config = RisqlabConfig()

            setup_logging(config)
            logger = get_logger("test.logging")
            logger.info("Test log message")

            for handler in root_logger.handlers:
                handler.flush()
            assert log_file.exists()
            assert "Test log message" in log_file.read_text()
        finally:
            for handler in list(root_logger.handlers):
                root_logger.removeHandler(handler)
                handler.close()
            for handler in saved:
                root_logger.addHandler(handler)

    def test_setup_logging_is_idempotent(self) -> None:
        setup_logging()
        count = len(logging.getLogger().handlers)
        setup_logging()
        assert len(logging.getLogger().handlers) == count

    def test_get_logger_returns_namespaced_logger(self) -> None:
        """get_logger should prefix loggers with the 'risqlab.' namespace."""

        logger = get_logger("core.test")
        assert logger.name == "risqlab.core.test"
        assert logger.handlers or logging.getLogger().handlers


class TestRisqlabLoggingWiring:
    """Project-specific handler wiring."""

    def test_module_names_are_not_prefixed_twice(self) -> None:
        assert get_logger("risqlab.risk.engine").name == "risqlab.risk.engine"
        assert get_logger("risqlab").name == "risqlab"
        assert get_logger("risqlabx").name == "risqlab.risqlabx"

    def test_formatter_renders_utc(self) -> None:
        formatter = build_formatter()

        assert formatter.converter is time.gmtime
        record = logging.LogRecord("risqlab.x", logging.INFO, __file__, 1, "hello", None, None)
        record.created = 0.0
        assert formatter.format(record).startswith("1970-01-01 00:00:00Z - risqlab.x - INFO - hello")

    def test_setup_creates_log_directory_and_quiets_http_stack(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        log_file = tmp_path / "logs" / "nested" / "risqlab.log"

        root_logger = logging.getLogger()
        saved = list(root_logger.handlers)
        saved_level = logging.getLogger("urllib3").level
        for handler in saved:
            root_logger.removeHandler(handler)

        try:
            monkeypatch.setenv("LOG_FILE", str(log_file))
            monkeypatch.setenv("LOG_LEVEL", "INFO")

            setup_logging(RisqlabConfig())

            assert log_file.parent.is_dir()
            assert logging.getLogger("urllib3").level == logging.WARNING
        finally:
            for handler in list(root_logger.handlers):
                root_logger.removeHandler(handler)
                handler.close()
            for handler in saved:
                root_logger.addHandler(handler)
            logging.getLogger("urllib3").setLevel(saved_level)
