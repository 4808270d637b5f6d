"""Rich logging with unit context and better formatting."""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from ..core.config import DebugLevel

ROOT_LOGGER = "taskpilot"

_LEVELS = {
    DebugLevel.NONE: logging.WARNING,
    DebugLevel.INFO: logging.INFO,
    DebugLevel.VERBOSE: logging.DEBUG,
}


class EngineLogFormatter(logging.Formatter):
    """Formatter that prefixes records with the unit they belong to."""

    def __init__(self, use_colors: bool = True):
        super().__init__()
        self.use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")

        unit_context = ""
        if hasattr(record, "unit_kind") and hasattr(record, "unit_id"):
            unit_context = f"[{record.unit_kind}:{record.unit_id[:6]}] "

        if self.use_colors:
            level_colors = {
                "DEBUG": "\033[36m",      # Cyan
                "INFO": "\033[32m",       # Green
                "WARNING": "\033[33m",    # Yellow
                "ERROR": "\033[31m",      # Red
                "CRITICAL": "\033[35m",   # Magenta
            }
            reset = "\033[0m"
            level_color = level_colors.get(record.levelname, "")
        else:
            level_color = ""
            reset = ""

        message = (
            f"{timestamp} {level_color}{record.levelname:8s}{reset} "
            f"{unit_context}{record.getMessage()}"
        )
        if record.exc_info:
            message += "\n" + self.formatException(record.exc_info)
        return message


class ContextLogger(logging.LoggerAdapter):
    """Logger adapter that tags records with the active unit."""

    def __init__(self, logger: logging.Logger):
        super().__init__(logger, {})
        self.unit_id: Optional[str] = None
        self.unit_kind: Optional[str] = None

    def set_unit(self, unit_id: str, unit_kind: str) -> None:
        self.unit_id = unit_id
        self.unit_kind = unit_kind

    def clear_context(self) -> None:
        self.unit_id = None
        self.unit_kind = None

    def process(self, msg, kwargs):
        extra = kwargs.get("extra", {})
        if self.unit_id:
            extra["unit_id"] = self.unit_id
            extra["unit_kind"] = self.unit_kind
        kwargs["extra"] = extra
        return msg, kwargs


class WarningCollector(logging.Handler):
    """Keeps warning messages so they can be shown to the user in the timeline."""

    def __init__(self):
        super().__init__(level=logging.WARNING)
        self._messages: List[str] = []

    def emit(self, record: logging.LogRecord) -> None:
        self._messages.append(record.getMessage())

    def drain(self) -> List[str]:
        messages, self._messages = self._messages, []
        return messages


def level_for(debug: DebugLevel) -> int:
    return _LEVELS[DebugLevel(debug)]


def setup_logging(
    debug: DebugLevel = DebugLevel.NONE,
    log_dir: Optional[Path] = None,
) -> logging.Logger:
    """
    Configure the ``taskpilot`` logger hierarchy.

    Args:
        debug: none (warnings only), info, or verbose (debug records)
        log_dir: When set, records are also written to ``taskpilot.log`` there

    Returns:
        The configured root engine logger. Calling again replaces its handlers.
    """
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(level_for(debug))
    logger.propagate = False

    # Close existing handlers before clearing (prevents file descriptor leak)
    for handler in logger.handlers[:]:
        handler.close()
        logger.removeHandler(handler)

    use_colors = hasattr(sys.stderr, "isatty") and sys.stderr.isatty()
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(EngineLogFormatter(use_colors=use_colors))
    logger.addHandler(console_handler)

    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_dir / "taskpilot.log")
        # Plain formatter for files (no ANSI codes)
        file_handler.setFormatter(EngineLogFormatter(use_colors=False))
        file_handler.setLevel(logging.DEBUG)
        logger.addHandler(file_handler)

    return logger
