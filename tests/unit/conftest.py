"""Shared test fixtures for unit tests."""

import logging

import pytest

from taskpilot.core.config import clear_config_cache
from taskpilot.utils.rich_logging import ROOT_LOGGER


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Keep every test away from the real ~/.taskpilotrc and TASKPILOT_* settings."""
    monkeypatch.setenv("TASKPILOT_CONFIG", str(tmp_path / "default-taskpilotrc"))
    for name in ("TASKPILOT_LLM__API_KEY", "TASKPILOT_LLM__MODEL", "TASKPILOT_SETTINGS__DEBUG"):
        monkeypatch.delenv(name, raising=False)
    clear_config_cache()
    yield
    clear_config_cache()


@pytest.fixture(autouse=True)
def reset_engine_logger():
    """Undo setup_logging calls made by CLI and logging tests."""
    yield
    engine_logger = logging.getLogger(ROOT_LOGGER)
    for handler in engine_logger.handlers[:]:
        handler.close()
        engine_logger.removeHandler(handler)
    engine_logger.setLevel(logging.NOTSET)
    engine_logger.propagate = True
