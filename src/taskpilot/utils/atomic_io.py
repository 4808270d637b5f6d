"""Crash-safe writes for the configuration file."""

import logging
import os
import tempfile
from pathlib import Path
from typing import Callable, Optional

logger = logging.getLogger(__name__)


def atomic_write_text(
    file_path: Path,
    content: str,
    verify: Optional[Callable[[Path], None]] = None,
) -> None:
    """
    Replace ``file_path`` with ``content`` in one step.

    The text goes to a sibling temp file, is flushed to disk, optionally
    checked, and only then renamed over the target. Readers see either the
    old file or the new one, never a partial write.

    Args:
        file_path: Target file path; parent directories are created
        content: Text to write
        verify: Called with the temp file path before the rename; whatever
            it raises aborts the write and propagates

    Raises:
        OSError: The temp file could not be written or renamed
    """
    file_path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{file_path.name}.", suffix=".tmp", dir=file_path.parent)
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        if file_path.exists():
            os.chmod(tmp_path, file_path.stat().st_mode & 0o777)
        if verify is not None:
            verify(tmp_path)
        os.replace(tmp_path, file_path)
    except BaseException:
        try:
            tmp_path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.debug(f"Could not remove temp file {tmp_path}: {e}")
        raise
