"""
Tests for observability: logging setup and output muting.
"""

import logging
from pathlib import Path

import pytest

from bundlectl.core.observability.logging_config import (
    NOISY_LOGGERS,
    parse_level,
    quiet_output,
    setup_logging,
)


class TestParseLevel:
    def test_names(self):
        assert parse_level("debug") == logging.DEBUG
        assert parse_level("ERROR") == logging.ERROR

    def test_fallback(self):
        assert parse_level(None) == logging.WARNING
        assert parse_level("loud") == logging.WARNING


class TestSetupLogging:
    def test_console_level(self):
        setup_logging(level="INFO")
        root = logging.getLogger()
        assert root.level == logging.INFO
        assert len(root.handlers) == 1

    def test_file_handler(self, tmp_path: Path):
        log_file = tmp_path / "bundlectl.log"
        setup_logging(level="WARNING", log_file=str(log_file), log_file_level="DEBUG")
        root = logging.getLogger()
        assert root.level == logging.DEBUG
        logging.getLogger("bundlectl.test").debug("to the file only")
        for handler in root.handlers:
            handler.flush()
        assert "to the file only" in log_file.read_text()

    def test_third_party_quieted(self):
        setup_logging(level="INFO", quiet_third_party=True)
        assert logging.getLogger("urllib3").level == logging.WARNING


class TestQuietOutput:
    def test_silences_and_restores(self):
        name = NOISY_LOGGERS[0]
        logger = logging.getLogger(name)
        previous = logger.level
        logger.setLevel(logging.DEBUG)
        try:
            with quiet_output():
                assert logger.level == logging.ERROR
            assert logger.level == logging.DEBUG
        finally:
            logger.setLevel(previous)

    def test_restores_on_error(self):
        logger = logging.getLogger("bundlectl.test.noisy")
        logger.setLevel(logging.INFO)
        with pytest.raises(RuntimeError):
            with quiet_output(names=("bundlectl.test.noisy",)):
                assert logger.level == logging.ERROR
                raise RuntimeError("boom")
        assert logger.level == logging.INFO
