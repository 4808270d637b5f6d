"""Lifecycle of units of work: Queue, Active, Pending and Timeline.

WorkflowState is immutable and every transition below is a pure function
returning the next state. LifecycleManager drives those transitions: it
promotes the head of the queue, runs the Active unit's controller with a
fresh Handlers instance, and repeats until nothing is left.

    queue --promote--> active --complete_active--> pending --flush--> timeline
                         |                                              ^
                         +------ on_error / on_aborted / stateless -----+

A Confirm unit is promoted without flushing Pending, so the plan it asks
about stays visible next to it.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, Mapping, Optional, Sequence, Tuple

from ..core.messages import get_cancellation_message
from ..errors import format_error_message
from ..utils.rich_logging import ContextLogger, WarningCollector
from .handlers import Handlers
from .units import FeedbackType, Unit, UnitKind, UnitStatus, describe_units, feedback

logger = ContextLogger(logging.getLogger(__name__))


@dataclass(frozen=True)
class WorkflowState:
    queue: Tuple[Unit, ...] = ()
    active: Optional[Unit] = None
    pending: Optional[Unit] = None
    timeline: Tuple[Unit, ...] = ()

    @property
    def is_idle(self) -> bool:
        return self.active is None and not self.queue


def _done(unit: Unit) -> Unit:
    return unit.with_status(UnitStatus.DONE)


def _awaiting(units: Sequence[Unit]) -> Tuple[Unit, ...]:
    return tuple(unit.with_status(UnitStatus.AWAITING) for unit in units)


def enqueue(state: WorkflowState, *units: Unit) -> WorkflowState:
    return replace(state, queue=state.queue + _awaiting(units))


def prepend(state: WorkflowState, *units: Unit) -> WorkflowState:
    return replace(state, queue=_awaiting(units) + state.queue)


def add_to_timeline(state: WorkflowState, *units: Unit) -> WorkflowState:
    return replace(state, timeline=state.timeline + tuple(_done(unit) for unit in units))


def flush_pending(state: WorkflowState) -> WorkflowState:
    if state.pending is None:
        return state
    return replace(state, pending=None, timeline=state.timeline + (_done(state.pending),))


def move_active_to_timeline(state: WorkflowState) -> WorkflowState:
    if state.active is None:
        return state
    return replace(state, active=None, timeline=state.timeline + (_done(state.active),))


def complete_active(state: WorkflowState, *units: Unit) -> WorkflowState:
    """Park the Active unit in Pending and put ``units`` at the front of the queue.

    A unit already in Pending is flushed to the timeline first so it is never
    lost.
    """
    if state.active is not None:
        state = flush_pending(state)
        state = replace(state, active=None, pending=state.active.with_status(UnitStatus.PENDING))
    return prepend(state, *units)


def complete_active_and_pending(state: WorkflowState, *units: Unit) -> WorkflowState:
    """Move Pending, then Active, to the timeline."""
    state = flush_pending(state)
    state = move_active_to_timeline(state)
    return prepend(state, *units)


def on_error(state: WorkflowState, message: str) -> WorkflowState:
    """Move Active to the timeline; the failed feedback is all that remains queued.

    Queued units are dropped rather than kept behind the feedback, so nothing
    planned after a failure runs.
    """
    state = move_active_to_timeline(state)
    return replace(state, queue=_awaiting([feedback(FeedbackType.FAILED, message)]))


def on_aborted(state: WorkflowState, operation: str) -> WorkflowState:
    """Move Active to the timeline and drop everything queued after it."""
    state = move_active_to_timeline(state)
    message = get_cancellation_message(operation)
    return replace(state, queue=_awaiting([feedback(FeedbackType.ABORTED, message)]))


def update_active(state: WorkflowState, **partial: Any) -> WorkflowState:
    if state.active is None:
        return state
    return replace(state, active=state.active.with_state(**partial))


def set_active_state(state: WorkflowState, final_state: Mapping[str, Any]) -> WorkflowState:
    if state.active is None:
        return state
    return replace(state, active=state.active.replace_state(final_state))


def promote(state: WorkflowState) -> WorkflowState:
    """Activate the head of the queue. Confirm keeps Pending; others flush it."""
    if state.active is not None or not state.queue:
        return state
    first, rest = state.queue[0], state.queue[1:]
    if first.kind != UnitKind.CONFIRM:
        state = flush_pending(state)
    return replace(state, queue=rest, active=first.with_status(UnitStatus.ACTIVE))


def advance(state: WorkflowState) -> WorkflowState:
    """Settle the state until a stateful unit is Active or the workflow is idle.

    Stateless units are moved to the timeline as soon as they are promoted,
    before anything else is promoted. Going idle flushes Pending.
    """
    while True:
        if state.active is not None:
            if state.active.is_stateless:
                state = move_active_to_timeline(state)
                continue
            return state
        if state.queue:
            state = promote(state)
            continue
        return flush_pending(state)


def exit_code(state: WorkflowState) -> int:
    """1 when the last timeline unit (warnings aside) is a failed feedback."""
    for unit in reversed(state.timeline):
        if unit.kind == UnitKind.FEEDBACK and unit.props.get("type") == FeedbackType.WARNING:
            continue
        return 1 if unit.is_failure else 0
    return 0


class Controller(ABC):
    """Runs one stateful unit while it is Active."""

    @abstractmethod
    async def run(self, unit: Unit, handlers: Handlers) -> None:
        pass


class LifecycleManager:
    """Drives units through the workflow one Active unit at a time.

    Args:
        controllers: Controller per stateful unit kind
        on_change: Called with every new WorkflowState (rendering hook)
        warnings: When given, collected warnings are added to the timeline
            as warning feedback
    """

    def __init__(
        self,
        controllers: Mapping[UnitKind, Controller],
        on_change: Optional[Callable[[WorkflowState], None]] = None,
        warnings: Optional[WarningCollector] = None,
    ):
        self.controllers: Dict[UnitKind, Controller] = dict(controllers)
        self.on_change = on_change
        self.warnings = warnings
        self.state = WorkflowState()

    def _set(self, state: WorkflowState) -> None:
        self.state = state
        if self.warnings is not None:
            messages = self.warnings.drain()
            if messages:
                self.state = add_to_timeline(
                    self.state, *(feedback(FeedbackType.WARNING, m) for m in messages)
                )
        if self.on_change is not None:
            self.on_change(self.state)

    async def run(self, initial_units: Sequence[Unit]) -> int:
        """Process ``initial_units`` and everything they queue. Returns the exit code."""
        self._set(enqueue(self.state, *initial_units))

        while True:
            self._set(advance(self.state))
            active = self.state.active
            if active is None:
                break

            logger.set_unit(active.id, active.kind.value)
            controller = self.controllers.get(active.kind)
            if controller is None:
                logger.error(f"No controller registered for {active.kind.value} units")
                self._set(on_error(self.state, f"Cannot run {active.kind.value} units"))
                continue

            handlers = self._make_handlers(active)
            try:
                await controller.run(active, handlers)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.exception(f"Controller for {active.kind.value} raised")
                handlers.on_error(format_error_message(e))
            finally:
                handlers.close()

            if self.state.active is not None and self.state.active.id == active.id:
                logger.warning(
                    f"{active.kind.value} unit returned without completing; moving it to the timeline"
                )
                self._set(move_active_to_timeline(self.state))

        logger.clear_context()
        logger.debug(f"Workflow finished with timeline {describe_units(self.state.timeline)}")
        return exit_code(self.state)

    def _make_handlers(self, unit: Unit) -> Handlers:
        """Handlers bound to ``unit``; they go quiet once closed.

        Moves of the Active slot apply only while ``unit`` is still Active.
        Everything else applies until the controller returns; only this
        controller runs meanwhile, so an empty Active slot means ``unit``
        already left it and on_error / on_aborted just queue their feedback.
        """
        closed = False

        def is_open() -> bool:
            return not closed

        def is_active() -> bool:
            return not closed and self.state.active is not None and self.state.active.id == unit.id

        def on_completed(final_state: Mapping[str, Any]) -> None:
            if is_active():
                self._set(set_active_state(self.state, final_state))

        def update_state(**partial: Any) -> None:
            if is_active():
                self._set(update_active(self.state, **partial))

        def handle_error(message: str) -> None:
            if not is_open():
                return
            logger.info(f"Error reported: {message}")
            self._set(on_error(self.state, message))

        def handle_aborted(operation: str) -> None:
            if not is_open():
                return
            logger.info(f"Aborted: {operation}")
            self._set(on_aborted(self.state, operation))

        def add_to_queue(*units: Unit) -> None:
            if is_open():
                self._set(enqueue(self.state, *units))

        def add_units_to_timeline(*units: Unit) -> None:
            if is_open():
                self._set(add_to_timeline(self.state, *units))

        def handle_complete_active(*units: Unit) -> None:
            if is_active():
                self._set(complete_active(self.state, *units))

        def handle_complete_active_and_pending(*units: Unit) -> None:
            if is_active():
                self._set(complete_active_and_pending(self.state, *units))

        def close() -> None:
            nonlocal closed
            closed = True

        return Handlers(
            on_completed=on_completed,
            on_error=handle_error,
            on_aborted=handle_aborted,
            add_to_queue=add_to_queue,
            add_to_timeline=add_units_to_timeline,
            complete_active=handle_complete_active,
            complete_active_and_pending=handle_complete_active_and_pending,
            update_state=update_state,
            close=close,
        )
