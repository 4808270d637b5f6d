"""Execute controller: prepare commands, then run them through the pipeline."""

import asyncio
import contextlib
import logging
import signal
from typing import Any, Awaitable, Callable, Mapping, Optional, TypeVar

from ..errors import TaskpilotError, format_error_message
from ..execution.executor import CommandExecutor
from ..execution.models import ExecuteState
from ..execution.pipeline import DEFAULT_OUTPUT_LINES, ExecutionPipeline, initial_state
from ..execution.processing import PreparedExecution, prepare_commands
from ..llm.base import AdvisoryService
from ..queue.handlers import Handlers
from ..queue.units import Unit
from ..queue.workflow import Controller
from ..skills.expander import SkillLookup

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ExecuteController(Controller):
    """Runs one execute unit.

    Args:
        service: Translates tasks without a skill into commands
        lookup: Resolves skill names
        load_config: Returns the user's configuration mapping
        executor: Runs individual commands
        cancel_event: Set to cancel preparation or the running pipeline
        output_lines: Trailing output lines kept per task
        handle_sigint: Set ``cancel_event`` on Ctrl-C while this unit runs
    """

    def __init__(
        self,
        service: AdvisoryService,
        lookup: SkillLookup,
        load_config: Callable[[], Mapping[str, Any]],
        executor: CommandExecutor,
        cancel_event: Optional[asyncio.Event] = None,
        output_lines: int = DEFAULT_OUTPUT_LINES,
        handle_sigint: bool = False,
    ):
        self.service = service
        self.lookup = lookup
        self.load_config = load_config
        self.executor = executor
        self.cancel_event = cancel_event or asyncio.Event()
        self.output_lines = output_lines
        self.handle_sigint = handle_sigint

    async def run(self, unit: Unit, handlers: Handlers) -> None:
        self.cancel_event.clear()
        with self._sigint_cancels():
            await self._run(unit, handlers)

    async def _run(self, unit: Unit, handlers: Handlers) -> None:
        tasks = unit.props["tasks"]
        try:
            prepared = await self._until_cancelled(
                prepare_commands(tasks, self.service, self.lookup, self.load_config)
            )
        except TaskpilotError as e:
            message = format_error_message(e)
            logger.warning(f"Could not prepare '{unit.props.get('label')}': {message}")
            handlers.on_completed({"error": message})
            handlers.on_error(message)
            return

        if prepared is None:
            handlers.on_aborted("execution")
            return
        if not prepared.commands:
            logger.info("Nothing to execute")
            handlers.complete_active()
            return

        final = await self._run_pipeline(prepared, handlers)
        handlers.on_completed({"execution": final})
        if final.cancelled:
            handlers.on_aborted("execution")
        elif final.error is not None:
            handlers.on_error(final.error)
        else:
            handlers.complete_active()

    async def _run_pipeline(self, prepared: PreparedExecution, handlers: Handlers) -> ExecuteState:
        pipeline = ExecutionPipeline(
            self.executor,
            update_state=lambda state: handlers.update_state(execution=state),
            cancel_event=self.cancel_event,
            output_lines=self.output_lines,
        )
        state = initial_state(prepared.commands, prepared.message, prepared.summary)
        return await pipeline.run(state)

    async def _until_cancelled(self, coro: Awaitable[T]) -> Optional[T]:
        """Await ``coro`` unless the cancel event fires first; None when it does."""
        work = asyncio.ensure_future(coro)
        cancel_wait = asyncio.ensure_future(self.cancel_event.wait())
        try:
            done, _ = await asyncio.wait({work, cancel_wait}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            cancel_wait.cancel()
        if work in done:
            return work.result()
        work.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await work
        return None

    @contextlib.contextmanager
    def _sigint_cancels(self):
        if not self.handle_sigint:
            yield
            return
        loop = asyncio.get_running_loop()
        try:
            loop.add_signal_handler(signal.SIGINT, self.cancel_event.set)
        except (NotImplementedError, RuntimeError):
            # No signal support on this platform/loop
            yield
            return
        try:
            yield
        finally:
            loop.remove_signal_handler(signal.SIGINT)
