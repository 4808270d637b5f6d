"""Process management utilities for stopping shell commands and their children."""

import asyncio
import logging
import os
import signal

logger = logging.getLogger(__name__)

SIGKILL_GRACE_PERIOD = 3.0


def kill_process_tree(pid: int, sig: int = signal.SIGTERM) -> None:
    """Send signal to entire process group, falling back to single process.

    Shell commands are spawned with start_new_session=True so they lead their
    own process group, and killpg reaches every child the shell started.
    """
    try:
        pgid = os.getpgid(pid)
        os.killpg(pgid, sig)
    except (ProcessLookupError, PermissionError):
        pass
    except OSError:
        # Not a group leader: signal the process itself
        try:
            os.kill(pid, sig)
        except (ProcessLookupError, PermissionError):
            pass


async def terminate_process_tree(
    process: asyncio.subprocess.Process,
    grace_period: float = SIGKILL_GRACE_PERIOD,
) -> None:
    """SIGTERM the process group, escalating to SIGKILL after ``grace_period``."""
    if process.returncode is not None:
        return

    kill_process_tree(process.pid, signal.SIGTERM)
    try:
        await asyncio.wait_for(process.wait(), timeout=grace_period)
    except asyncio.TimeoutError:
        logger.warning(f"Process {process.pid} ignored SIGTERM for {grace_period}s, sending SIGKILL")
        kill_process_tree(process.pid, signal.SIGKILL)
        await process.wait()
