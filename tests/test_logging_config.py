"""Tests for drf_scaffold.logging_config."""

from __future__ import annotations

import logging

import pytest
from rich.logging import RichHandler

from drf_scaffold.logging_config import _parse_level, setup_logging

pytestmark = pytest.mark.unit


@pytest.fixture(autouse=True)
def _restore_root_logger(monkeypatch):
    monkeypatch.delenv("DRF_SCAFFOLD_LOG_LEVEL", raising=False)
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


class TestSetupLogging:
    def test_default_level_is_warning(self):
        assert setup_logging() == logging.WARNING
        assert logging.getLogger().level == logging.WARNING

    def test_explicit_level(self):
        assert setup_logging("debug") == logging.DEBUG

    def test_env_var_used_when_no_flag(self, monkeypatch):
        monkeypatch.setenv("DRF_SCAFFOLD_LOG_LEVEL", "INFO")
        assert setup_logging() == logging.INFO

    def test_flag_beats_env_var(self, monkeypatch):
        monkeypatch.setenv("DRF_SCAFFOLD_LOG_LEVEL", "INFO")
        assert setup_logging("ERROR") == logging.ERROR

    def test_single_rich_handler_installed(self):
        setup_logging()
        setup_logging()
        handlers = logging.getLogger().handlers
        assert len(handlers) == 1
        assert isinstance(handlers[0], RichHandler)

    def test_third_party_quieted(self):
        setup_logging("INFO")
        assert logging.getLogger("asyncio").level == logging.WARNING


class TestParseLevel:
    @pytest.mark.parametrize(
        "name,expected",
        [("warning", logging.WARNING), (" error ", logging.ERROR), ("bogus", logging.WARNING)],
    )
    def test_parse(self, name, expected):
        assert _parse_level(name) == expected
