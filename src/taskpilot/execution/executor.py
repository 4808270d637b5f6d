"""Command executors.

ShellExecutor runs commands through the system shell. Each command is
wrapped so that the shell prints a marker followed by its final working
directory; the pipeline uses that to carry ``cd`` effects over to the next
command. DummyExecutor never spawns anything and is used for dry runs and
tests.
"""

import asyncio
import logging
import os
from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Optional, Tuple, Union

from ..core.messages import format_duration
from ..utils.process_utils import terminate_process_tree
from .models import CommandOutput, ExecuteCommand, ExecutionResult

logger = logging.getLogger(__name__)

PWD_MARKER = "__PWD_MARKER_7x9k2m__"

# Called with (text, stream) where stream is "stdout" or "stderr"
ProgressCallback = Callable[[str, str], None]


class CommandExecutor(ABC):
    """Runs one command and reports how it went."""

    @abstractmethod
    async def execute(
        self,
        command: ExecuteCommand,
        on_progress: Optional[ProgressCallback] = None,
    ) -> CommandOutput:
        """Run ``command``.

        Failures are reported through ``CommandOutput.result``; only
        cancellation propagates as an exception.
        """
        pass


def wrap_command(command: str) -> str:
    """Append a working-directory report that keeps the command's exit code."""
    return f'{command}; __exit=$?; echo ""; echo "{PWD_MARKER}"; pwd; exit $__exit'


def parse_workdir(raw_output: str) -> Tuple[str, Optional[str]]:
    """Split wrapped output into (command output, final working directory)."""
    marker_index = raw_output.rfind(PWD_MARKER)
    if marker_index == -1:
        return raw_output, None
    output = raw_output[:marker_index].rstrip()
    lines = [line.strip() for line in raw_output[marker_index + len(PWD_MARKER):].split("\n") if line.strip()]
    return output, (lines[0] if lines else None)


class ShellExecutor(CommandExecutor):
    """Runs commands with ``asyncio.create_subprocess_shell``.

    Args:
        default_timeout_ms: Timeout for commands that do not set one (None = no limit)
        env: Extra environment variables merged into the child environment
    """

    def __init__(
        self,
        default_timeout_ms: Optional[int] = None,
        env: Optional[Dict[str, str]] = None,
    ):
        self.default_timeout_ms = default_timeout_ms
        self.env = env

    async def execute(
        self,
        command: ExecuteCommand,
        on_progress: Optional[ProgressCallback] = None,
    ) -> CommandOutput:
        cwd = os.path.expanduser(command.workdir) if command.workdir else None
        env = {**os.environ, **self.env} if self.env else None
        logger.debug(f"Running: {command.command} (cwd={cwd or os.getcwd()})")

        try:
            process = await asyncio.create_subprocess_shell(
                wrap_command(command.command),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=cwd,
                env=env,
                start_new_session=True,
            )
        except OSError as e:
            logger.error(f"Failed to spawn '{command.command}': {e}")
            return CommandOutput(errors=str(e), result=ExecutionResult.ERROR, error=str(e))

        stdout_chunks: List[str] = []
        stderr_chunks: List[str] = []
        marker_seen = False

        async def read_stdout() -> None:
            nonlocal marker_seen
            while True:
                line = await process.stdout.readline()
                if not line:
                    break
                text = line.decode("utf-8", errors="replace")
                stdout_chunks.append(text)
                if PWD_MARKER in text:
                    marker_seen = True
                if on_progress and not marker_seen:
                    on_progress(text, "stdout")

        async def read_stderr() -> None:
            while True:
                line = await process.stderr.readline()
                if not line:
                    break
                text = line.decode("utf-8", errors="replace")
                stderr_chunks.append(text)
                if on_progress:
                    on_progress(text, "stderr")

        timeout_ms = command.timeout or self.default_timeout_ms
        timeout = timeout_ms / 1000 if timeout_ms else None

        try:
            await asyncio.wait_for(
                asyncio.gather(read_stdout(), read_stderr(), process.wait()),
                timeout=timeout,
            )
        except asyncio.TimeoutError:
            await terminate_process_tree(process)
            output, _ = parse_workdir("".join(stdout_chunks))
            message = f"Timed out after {format_duration(timeout_ms)}"
            logger.warning(f"Command '{command.command}' {message.lower()}")
            return CommandOutput(
                output=output,
                errors="".join(stderr_chunks),
                result=ExecutionResult.ERROR,
                error=message,
            )
        except asyncio.CancelledError:
            await terminate_process_tree(process)
            raise

        output, workdir = parse_workdir("".join(stdout_chunks))
        code = process.returncode
        success = code == 0
        return CommandOutput(
            output=output,
            errors="".join(stderr_chunks),
            result=ExecutionResult.SUCCESS if success else ExecutionResult.ERROR,
            error=None if success else f"Exit code: {code}",
            workdir=workdir,
        )


class DummyExecutor(CommandExecutor):
    """Pretends to run commands. Responses can be mocked per command string.

    Args:
        delay: Seconds to wait per command, or a callable taking the command's
            index in this executor's history
    """

    def __init__(self, delay: Union[float, Callable[[int], float]] = 0.0):
        self._delay = delay
        self._mocked: Dict[str, CommandOutput] = {}
        self.calls: List[ExecuteCommand] = []

    def mock(self, command: str, **response) -> None:
        self._mocked[command] = CommandOutput(**response)

    async def execute(
        self,
        command: ExecuteCommand,
        on_progress: Optional[ProgressCallback] = None,
    ) -> CommandOutput:
        index = len(self.calls)
        self.calls.append(command)
        delay = self._delay(index) if callable(self._delay) else self._delay
        if delay:
            await asyncio.sleep(delay)

        mocked = self._mocked.get(command.command)
        if mocked is None:
            return CommandOutput()
        if on_progress and mocked.output:
            on_progress(mocked.output, "stdout")
        return CommandOutput(
            output=mocked.output,
            errors=mocked.errors,
            result=mocked.result,
            error=mocked.error,
            workdir=mocked.workdir,
        )
