"""Sequential execution of prepared commands.

The per-task state machine is expressed as pure functions over the frozen
ExecuteState, so every transition can be tested without running anything::

    pending -> running -> success | failed
    running -> aborted      (cancelled mid-flight)
    pending -> cancelled    (cancelled before starting)

ExecutionPipeline drives those transitions against a CommandExecutor, one
command at a time, and publishes each new state through ``update_state``.
"""

import asyncio
import contextlib
import logging
import time
from dataclasses import replace
from typing import Callable, Optional, Sequence

from ..core.messages import format_completion_message, format_task_failure
from .executor import CommandExecutor, ProgressCallback
from .models import (
    CommandOutput,
    ExecuteCommand,
    ExecuteState,
    ExecutionResult,
    ExecutionStatus,
    TaskRun,
    Transition,
)

logger = logging.getLogger(__name__)

DEFAULT_OUTPUT_LINES = 128


def initial_state(
    commands: Sequence[ExecuteCommand],
    message: str = "",
    summary: str = "",
) -> ExecuteState:
    tasks = tuple(TaskRun(label=cmd.description, command=cmd) for cmd in commands)
    return ExecuteState(tasks=tasks, message=message, summary=summary)


def _replace_task(state: ExecuteState, index: int, task: TaskRun, **changes) -> ExecuteState:
    tasks = state.tasks[:index] + (task,) + state.tasks[index + 1:]
    return replace(state, tasks=tasks, **changes)


def _total_elapsed(state: ExecuteState) -> float:
    return sum(task.elapsed_ms for task in state.tasks)


def _finish(state: ExecuteState) -> ExecuteState:
    return replace(
        state,
        completion_message=format_completion_message(state.summary, _total_elapsed(state)),
    )


def start_task(state: ExecuteState, index: int, started_at: float) -> ExecuteState:
    task = state.tasks[index].with_status(ExecutionStatus.RUNNING, started_at=started_at)
    return _replace_task(state, index, task)


def record_output(
    state: ExecuteState,
    index: int,
    output: str,
    errors: str,
    max_lines: int = DEFAULT_OUTPUT_LINES,
) -> ExecuteState:
    """Store the tail of a command's output on its task."""
    task = replace(
        state.tasks[index],
        output=_tail(output, max_lines),
        errors=_tail(errors, max_lines),
    )
    return _replace_task(state, index, task)


def complete_task(state: ExecuteState, index: int, elapsed_ms: float) -> Transition:
    task = state.tasks[index].with_status(ExecutionStatus.SUCCESS, elapsed_ms=elapsed_ms)
    state = _replace_task(state, index, task, completed=index + 1)
    if index == len(state.tasks) - 1:
        return Transition(state=_finish(state), finished=True)
    return Transition(state=state)


def fail_task(state: ExecuteState, index: int, error: str, elapsed_ms: float) -> Transition:
    """Record a failure.

    A critical failure ends the run with a fatal error and leaves later tasks
    pending. A non-critical failure is recorded and the run continues; when
    it was the last task, the run completes with the usual summary.
    """
    current = state.tasks[index]
    task = current.with_status(ExecutionStatus.FAILED, elapsed_ms=elapsed_ms, error=error)

    if current.command.is_critical:
        fatal = format_task_failure(current.label, error)
        state = _replace_task(state, index, task, error=fatal)
        return Transition(state=state, finished=True, fatal_error=fatal)

    state = _replace_task(state, index, task, completed=index + 1)
    if index == len(state.tasks) - 1:
        return Transition(state=_finish(state), finished=True)
    return Transition(state=state)


def cancel_execution(state: ExecuteState) -> ExecuteState:
    """Freeze the run: running becomes aborted, pending becomes cancelled."""
    tasks = []
    for task in state.tasks:
        if task.status == ExecutionStatus.RUNNING:
            tasks.append(task.with_status(ExecutionStatus.ABORTED))
        elif task.status == ExecutionStatus.PENDING:
            tasks.append(task.with_status(ExecutionStatus.CANCELLED))
        else:
            tasks.append(task)
    return replace(state, tasks=tuple(tasks), cancelled=True)


def _tail(text: str, max_lines: int) -> str:
    if not text:
        return text
    lines = text.splitlines()
    return "\n".join(lines[-max_lines:])


class ExecutionPipeline:
    """Runs the tasks of an ExecuteState strictly in order.

    Args:
        executor: Runs individual commands
        update_state: Receives every new ExecuteState
        cancel_event: When set, the run is cancelled at the next boundary or
            while a command is in flight
        clock: Monotonic seconds; injectable for tests
        output_lines: How many trailing output lines each task keeps
    """

    def __init__(
        self,
        executor: CommandExecutor,
        update_state: Optional[Callable[[ExecuteState], None]] = None,
        cancel_event: Optional[asyncio.Event] = None,
        clock: Callable[[], float] = time.monotonic,
        output_lines: int = DEFAULT_OUTPUT_LINES,
    ):
        self.executor = executor
        self.update_state = update_state
        self.cancel_event = cancel_event
        self.clock = clock
        self.output_lines = output_lines
        self.workdir: Optional[str] = None

    def _publish(self, state: ExecuteState) -> ExecuteState:
        if self.update_state is not None:
            self.update_state(state)
        return state

    def _cancel_requested(self) -> bool:
        return self.cancel_event is not None and self.cancel_event.is_set()

    async def run(self, state: ExecuteState) -> ExecuteState:
        """Run every remaining task and return the final state."""
        for index in range(state.completed, len(state.tasks)):
            if self._cancel_requested():
                logger.info(f"Execution cancelled before task {index + 1}")
                return self._publish(cancel_execution(state))

            run = state.tasks[index]
            started = self.clock()
            state = self._publish(start_task(state, index, started))
            logger.debug(f"Task {index + 1}/{len(state.tasks)}: {run.label}")

            command = run.command
            if command.workdir is None and self.workdir:
                command = command.model_copy(update={"workdir": self.workdir})

            streamed = {"stdout": [], "stderr": []}
            running_state = state

            def on_progress(text: str, stream: str, index: int = index) -> None:
                streamed[stream].append(text)
                self._publish(record_output(
                    running_state, index,
                    "".join(streamed["stdout"]), "".join(streamed["stderr"]),
                    self.output_lines,
                ))

            output = await self._execute(command, on_progress)
            if output is None:
                logger.info(f"Execution cancelled while running '{run.label}'")
                return self._publish(cancel_execution(state))

            elapsed_ms = (self.clock() - started) * 1000
            state = record_output(state, index, output.output, output.errors, self.output_lines)
            if output.workdir:
                self.workdir = output.workdir

            if output.succeeded:
                transition = complete_task(state, index, elapsed_ms)
            else:
                error = output.error or output.errors.strip() or "Command failed"
                logger.warning(f"Task '{run.label}' failed: {error}")
                transition = fail_task(state, index, error, elapsed_ms)

            state = self._publish(transition.state)
            if transition.finished:
                return state

        return state

    async def _execute(
        self,
        command: ExecuteCommand,
        on_progress: Optional[ProgressCallback] = None,
    ) -> Optional[CommandOutput]:
        """Run one command; None means the run was cancelled meanwhile."""
        execution = asyncio.ensure_future(self._safe_execute(command, on_progress))
        if self.cancel_event is None:
            return await execution

        cancel_wait = asyncio.ensure_future(self.cancel_event.wait())
        try:
            done, _ = await asyncio.wait(
                {execution, cancel_wait}, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            cancel_wait.cancel()

        if execution in done:
            return execution.result()

        execution.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await execution
        return None

    async def _safe_execute(
        self,
        command: ExecuteCommand,
        on_progress: Optional[ProgressCallback] = None,
    ) -> CommandOutput:
        try:
            return await self.executor.execute(command, on_progress)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.exception(f"Executor raised while running '{command.command}'")
            return CommandOutput(errors=str(e), result=ExecutionResult.ERROR, error=str(e))
