"""Tests for atomic writes, process control and logging setup."""

import asyncio
import logging
import signal
import sys
from unittest.mock import patch

import pytest

from taskpilot.core.config import DebugLevel
from taskpilot.utils.atomic_io import atomic_write_text
from taskpilot.utils.process_utils import kill_process_tree, terminate_process_tree
from taskpilot.utils.rich_logging import (
    ROOT_LOGGER,
    ContextLogger,
    EngineLogFormatter,
    WarningCollector,
    setup_logging,
)


def test_atomic_write_creates_parents(tmp_path):
    """Test atomic_write_text creates missing directories and leaves no temp file."""
    target = tmp_path / "nested" / "rc"

    atomic_write_text(target, "a: 1\n")

    assert target.read_text() == "a: 1\n"
    assert [p.name for p in target.parent.iterdir()] == ["rc"]


def test_atomic_write_failed_verify_keeps_original(tmp_path):
    """Test a failing verify callback leaves the original file untouched."""
    target = tmp_path / "rc"
    target.write_text("old")

    def reject(path):
        raise ValueError("bad content")

    with pytest.raises(ValueError):
        atomic_write_text(target, "new", verify=reject)

    assert target.read_text() == "old"
    assert [p.name for p in tmp_path.iterdir()] == ["rc"]


def test_kill_process_tree_ignores_missing_process():
    """Test signalling a process that is already gone is a no-op."""
    with patch("taskpilot.utils.process_utils.os.getpgid", side_effect=ProcessLookupError):
        kill_process_tree(999999)


def test_kill_process_tree_falls_back_to_pid():
    """Test a process without its own group is signalled directly."""
    with patch("taskpilot.utils.process_utils.os.getpgid", side_effect=OSError), \
            patch("taskpilot.utils.process_utils.os.kill") as kill:
        kill_process_tree(1234, signal.SIGTERM)

    kill.assert_called_once_with(1234, signal.SIGTERM)


@pytest.mark.asyncio
@pytest.mark.skipif(sys.platform == "win32", reason="process groups are POSIX-only")
async def test_terminate_process_tree_stops_sleeping_shell():
    """Test terminate_process_tree ends a shell and its children."""
    process = await asyncio.create_subprocess_shell("sleep 30", start_new_session=True)

    await terminate_process_tree(process, grace_period=2)

    assert process.returncode is not None


class TestLogging:

    def test_formatter_adds_unit_context(self):
        record = logging.LogRecord("taskpilot.x", logging.INFO, __file__, 1, "hello", None, None)
        record.unit_kind = "execute"
        record.unit_id = "abcdef123456"

        output = EngineLogFormatter(use_colors=False).format(record)

        assert "INFO" in output
        assert "[execute:abcdef] hello" in output

    def test_context_logger_tags_records(self):
        collected = []

        class Keep(logging.Handler):
            def emit(self, record):
                collected.append(record)

        base = logging.getLogger("taskpilot.tests.context")
        base.setLevel(logging.DEBUG)
        handler = Keep()
        base.addHandler(handler)
        try:
            log = ContextLogger(base)
            log.set_unit("unit123", "config")
            log.info("with context")
            log.clear_context()
            log.info("without context")
        finally:
            base.removeHandler(handler)

        assert collected[0].unit_kind == "config"
        assert not hasattr(collected[1], "unit_id")

    def test_setup_logging_levels_and_file(self, tmp_path):
        logger = setup_logging(DebugLevel.VERBOSE, log_dir=tmp_path)
        try:
            assert logger.name == ROOT_LOGGER
            assert logger.level == logging.DEBUG
            assert len(logger.handlers) == 2

            logger = setup_logging(DebugLevel.NONE)
            assert logger.level == logging.WARNING
            assert len(logger.handlers) == 1
        finally:
            setup_logging(DebugLevel.NONE)
        assert (tmp_path / "taskpilot.log").exists()

    def test_warning_collector_drains(self):
        collector = WarningCollector()
        log = logging.getLogger("taskpilot.tests.collector")
        log.addHandler(collector)
        try:
            log.info("ignored")
            log.warning("first")
            log.error("second")
        finally:
            log.removeHandler(collector)

        assert collector.drain() == ["first", "second"]
        assert collector.drain() == []
