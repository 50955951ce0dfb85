"""Unit tests for logger setup and the optional log file."""

import logging
import uuid

import pytest

from utils import logger as logger_module
from utils.logger import configure_root_logging, setup_logger


def _unique_name(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:8]}"


@pytest.fixture
def log_file(tmp_path, monkeypatch):
    monkeypatch.setattr(logger_module, "_file_handler", None)
    path = tmp_path / "app.log"
    yield path

    root = logging.getLogger()
    for handler in root.handlers[:]:
        if getattr(handler, "baseFilename", None) == str(path):
            root.removeHandler(handler)
            handler.close()


def _flush_root():
    for handler in logging.getLogger().handlers:
        handler.flush()


class TestSetupLogger:
    def test_handlers_attached_once(self):
        name = _unique_name("ONCE")

        first = setup_logger(name)
        second = setup_logger(name)

        assert first is second
        assert len(first.handlers) == 1

    def test_no_propagation_without_log_file(self):
        assert setup_logger(_unique_name("PLAIN")).propagate is False


class TestLogFile:
    def test_existing_logger_reaches_file(self, log_file):
        logger = setup_logger(_unique_name("EARLY"))

        configure_root_logging(str(log_file))
        logger.info("created before the file handler")
        _flush_root()

        assert "created before the file handler" in log_file.read_text()

    def test_logger_created_later_reaches_file(self, log_file):
        configure_root_logging(str(log_file))

        logger = setup_logger(_unique_name("LATE"))
        logger.info("created after the file handler")
        _flush_root()

        assert logger.propagate is True
        assert "created after the file handler" in log_file.read_text()

    def test_quiet_loggers_raised_to_warning(self):
        name = _unique_name("NOISY")

        configure_root_logging(quiet_loggers=[name])

        assert logging.getLogger(name).level == logging.WARNING
