"""
Tests for logging setup — level resolution and handlers.
"""

import logging
from pathlib import Path

import pytest

from sharespace_installer.core.observability.logging_config import (
    ENV_LEVEL,
    resolve_level,
    setup_logging,
)


@pytest.fixture(autouse=True)
def _restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


class TestResolveLevel:
    def test_flag_precedence(self):
        assert resolve_level(debug=True, verbose=True, quiet=True, environ={}) == "DEBUG"
        assert resolve_level(verbose=True, quiet=True, environ={}) == "INFO"
        assert resolve_level(quiet=True, environ={ENV_LEVEL: "DEBUG"}) == "ERROR"

    def test_environment(self):
        assert resolve_level(environ={ENV_LEVEL: "INFO"}) == "INFO"

    def test_default(self):
        assert resolve_level(environ={}) == "WARNING"


class TestSetupLogging:
    def test_console_level(self):
        setup_logging("INFO")
        root = logging.getLogger()
        assert len(root.handlers) == 1
        assert root.handlers[0].level == logging.INFO

    def test_unknown_level_falls_back(self):
        setup_logging("LOUD")
        assert logging.getLogger().level == logging.WARNING

    def test_file_handler(self, tmp_path: Path):
        log_file = tmp_path / "install.log"
        setup_logging("WARNING", log_file=str(log_file), log_file_level="DEBUG")
        root = logging.getLogger()
        assert root.level == logging.DEBUG
        logging.getLogger("sharespace_installer.test").debug("detail line")
        for handler in root.handlers:
            handler.flush()
        assert "detail line" in log_file.read_text()
        for handler in root.handlers:
            handler.close()
