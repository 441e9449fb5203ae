"""Tests for framework/logging/config.py.

Covers:
- is_configured()
- configure_logging idempotency (second call no-op without force)
- Defaults taken from UNIFIED_* settings
- Renderer selection
- Per-processor debug filter
"""

import logging

import pytest
import structlog

import unified.framework.logging.config as log_config
from unified.core.settings import reset_settings
from unified.framework.logging.config import (
    _family_debug_filter,
    configure_logging,
    is_configured,
)
from unified.framework.logging.context import set_context


@pytest.fixture(autouse=True)
def _reset_logging(monkeypatch):
    """Reset the _configured flag and UNIFIED_* variables around each test."""
    for key in ("UNIFIED_LOG_LEVEL", "UNIFIED_LOG_FORMAT", "UNIFIED_LOG_DEBUG_PROCESSORS"):
        monkeypatch.delenv(key, raising=False)
    reset_settings()
    root = logging.getLogger()
    saved_level, saved_handlers = root.level, list(root.handlers)
    package_level = logging.getLogger("unified").level
    log_config._configured = False
    yield
    log_config._configured = False
    root.handlers[:] = saved_handlers
    root.setLevel(saved_level)
    logging.getLogger("unified").setLevel(package_level)


def _renderer():
    return structlog.get_config()["processors"][-1]


class TestIsConfigured:
    def test_not_configured_initially(self):
        assert is_configured() is False

    def test_configured_after_call(self):
        configure_logging(level="INFO")
        assert is_configured() is True


class TestIdempotency:
    def test_second_call_is_noop(self):
        configure_logging(level="WARNING")
        configure_logging(level="DEBUG")
        assert logging.getLogger().level == logging.WARNING

    def test_force_reconfigures(self):
        configure_logging(level="WARNING")
        configure_logging(level="DEBUG", force=True)
        assert logging.getLogger().level == logging.DEBUG


class TestSettingsDefaults:
    def test_level_from_environment(self, monkeypatch):
        monkeypatch.setenv("UNIFIED_LOG_LEVEL", "error")
        reset_settings()
        configure_logging()
        assert logging.getLogger().level == logging.ERROR

    def test_format_from_environment(self, monkeypatch):
        monkeypatch.setenv("UNIFIED_LOG_FORMAT", "json")
        reset_settings()
        configure_logging()
        assert isinstance(_renderer(), structlog.processors.JSONRenderer)

    def test_console_by_default(self):
        configure_logging()
        assert isinstance(_renderer(), structlog.dev.ConsoleRenderer)

    def test_explicit_argument_wins(self, monkeypatch):
        monkeypatch.setenv("UNIFIED_LOG_FORMAT", "json")
        reset_settings()
        configure_logging(format="console")
        assert isinstance(_renderer(), structlog.dev.ConsoleRenderer)


class TestProcessorDebugFilter:
    def test_verbose_family_lowers_stdlib_level(self):
        configure_logging(level="WARNING", debug_processors=["markdown"])
        assert logging.getLogger().level == logging.DEBUG
        assert structlog.get_config()["processors"][0] is not structlog.stdlib.filter_by_level

    def test_listed_family_passes_debug(self):
        filt = _family_debug_filter(["markdown"], "INFO")
        event = {"event": "processor.run.start", "processor": "markdown"}
        assert filt(None, "debug", event) is event

    def test_other_family_dropped_below_level(self):
        filt = _family_debug_filter(["markdown"], "INFO")
        with pytest.raises(structlog.DropEvent):
            filt(None, "debug", {"event": "processor.run.start", "processor": "text"})

    def test_other_family_kept_at_level(self):
        filt = _family_debug_filter(["markdown"], "INFO")
        event = {"event": "processor.parse.end", "processor": "text"}
        assert filt(None, "info", event) is event

    def test_family_read_from_context(self):
        filt = _family_debug_filter(["markdown"], "INFO")
        set_context(processor="markdown")
        event = {"event": "ware.step.error"}
        assert filt(None, "debug", event) is event
