"""Shared utilities: atomic file writes, process control and logging setup."""

from .atomic_io import atomic_write_text
from .process_utils import kill_process_tree, terminate_process_tree
from .rich_logging import ContextLogger, EngineLogFormatter, WarningCollector, setup_logging

__all__ = [
    "atomic_write_text",
    "kill_process_tree",
    "terminate_process_tree",
    "ContextLogger",
    "EngineLogFormatter",
    "WarningCollector",
    "setup_logging",
]
