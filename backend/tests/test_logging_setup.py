"""
Tests for logging_setup.py - console handler and third-party noise filter.
"""
import logging
import pytest
import sys
import os
from pathlib import Path

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from logging_setup import APP_LOGGERS, _ThirdPartyFilter, setup_logging


def record(name, level):
    return logging.LogRecord(name, level, __file__, 1, "message", None, None)


@pytest.fixture
def restore_root():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    for h in list(root.handlers):
        root.removeHandler(h)
    for h in handlers:
        root.addHandler(h)
    root.setLevel(level)
    logging.captureWarnings(False)


class TestThirdPartyFilter:

    @pytest.mark.parametrize("name", ["database", "suggestions.lifecycle", "ai", "__main__", "recurrence", "xp", "prompts"])
    def test_app_loggers_pass_at_any_level(self, name):
        assert _ThirdPartyFilter().filter(record(name, logging.DEBUG))

    def test_every_backend_module_is_an_app_logger(self):
        backend_dir = Path(__file__).resolve().parent.parent
        modules = {path.stem for path in backend_dir.glob("*.py")}
        modules |= {path.name for path in backend_dir.iterdir() if (path / "__init__.py").exists()}
        assert modules <= set(APP_LOGGERS)

    def test_uvicorn_info_passes(self):
        log_filter = _ThirdPartyFilter()
        assert log_filter.filter(record("uvicorn.access", logging.INFO))
        assert not log_filter.filter(record("uvicorn.error", logging.DEBUG))

    def test_other_libraries_need_warning(self):
        log_filter = _ThirdPartyFilter()
        assert not log_filter.filter(record("httpx", logging.INFO))
        assert log_filter.filter(record("anthropic._base_client", logging.WARNING))


class TestSetupLogging:

    def test_single_handler_replaced_on_repeat(self, restore_root):
        setup_logging("DEBUG")
        setup_logging("WARNING")

        assert len(restore_root.handlers) == 1
        assert restore_root.handlers[0].level == logging.WARNING

    def test_unknown_level_falls_back_to_info(self, restore_root):
        setup_logging("chatty")
        assert restore_root.handlers[0].level == logging.INFO
