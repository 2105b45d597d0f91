"""Tests for CLI logging configuration."""

from __future__ import annotations

import logging

import pytest
from rich.logging import RichHandler

from mintforge.log_setup import configure_logging


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


class TestConfigureLogging:
    def test_installs_single_rich_handler(self):
        configure_logging("INFO")
        configure_logging("INFO")
        root = logging.getLogger()
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0], RichHandler)

    def test_level_is_case_insensitive(self):
        configure_logging("debug")
        assert logging.getLogger().level == logging.DEBUG

    def test_http_loggers_stay_quiet(self):
        configure_logging("DEBUG")
        assert logging.getLogger("httpx").level == logging.WARNING

    def test_unknown_level(self):
        with pytest.raises(ValueError):
            configure_logging("LOUD")
