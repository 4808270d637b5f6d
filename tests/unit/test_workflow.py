"""Tests for workflow transitions and the lifecycle manager."""

import logging

import pytest

from taskpilot.queue import units
from taskpilot.queue.units import FeedbackType, UnitKind, UnitStatus
from taskpilot.queue.workflow import (
    Controller,
    LifecycleManager,
    WorkflowState,
    advance,
    complete_active,
    complete_active_and_pending,
    enqueue,
    exit_code,
    on_aborted,
    on_error,
    promote,
)
from taskpilot.utils.rich_logging import WarningCollector


def _kinds(seq):
    return [unit.kind for unit in seq]


def _with_active(unit, **fields):
    return WorkflowState(active=unit.with_status(UnitStatus.ACTIVE), **fields)


class FakeController(Controller):
    """Runs ``behaviour(unit, handlers)`` and records each activation."""

    def __init__(self, behaviour):
        self.behaviour = behaviour
        self.seen = []

    async def run(self, unit, handlers):
        self.seen.append(unit)
        result = self.behaviour(unit, handlers)
        if hasattr(result, "__await__"):
            await result


class TestTransitions:

    def test_stateless_units_go_straight_to_timeline(self):
        state = enqueue(WorkflowState(), units.message("hi"), units.feedback(FeedbackType.INFO, "fyi"))

        state = advance(state)

        assert state.is_idle
        assert _kinds(state.timeline) == [UnitKind.MESSAGE, UnitKind.FEEDBACK]
        assert all(unit.status == UnitStatus.DONE for unit in state.timeline)

    def test_advance_stops_at_stateful_unit(self):
        state = enqueue(WorkflowState(), units.message("hi"), units.answer("why?"), units.message("later"))

        state = advance(state)

        assert state.active.kind == UnitKind.ANSWER
        assert _kinds(state.queue) == [UnitKind.MESSAGE]
        assert _kinds(state.timeline) == [UnitKind.MESSAGE]

    def test_complete_active_parks_in_pending_and_prepends(self):
        state = _with_active(units.command("go"), queue=(units.message("tail"),))

        state = complete_active(state, units.message("first"))

        assert state.active is None
        assert state.pending.kind == UnitKind.COMMAND
        assert state.pending.status == UnitStatus.PENDING
        assert [u.props["text"] for u in state.queue] == ["first", "tail"]

    def test_complete_active_flushes_existing_pending(self):
        state = _with_active(units.answer("q"), pending=units.command("old"))

        state = complete_active(state)

        assert _kinds(state.timeline) == [UnitKind.COMMAND]
        assert state.pending.kind == UnitKind.ANSWER

    def test_confirm_keeps_pending_visible(self):
        state = WorkflowState(pending=units.schedule("plan", []), queue=(units.confirm("ok?", "execution"),))

        state = promote(state)

        assert state.active.kind == UnitKind.CONFIRM
        assert state.pending.kind == UnitKind.SCHEDULE

    def test_other_units_flush_pending_on_promote(self):
        state = WorkflowState(pending=units.schedule("plan", []), queue=(units.answer("q"),))

        state = promote(state)

        assert state.pending is None
        assert _kinds(state.timeline) == [UnitKind.SCHEDULE]

    def test_complete_active_and_pending_order(self):
        state = _with_active(units.confirm("ok?", "execution"), pending=units.schedule("plan", []))

        state = complete_active_and_pending(state, units.answer("q"))

        assert _kinds(state.timeline) == [UnitKind.SCHEDULE, UnitKind.CONFIRM]
        assert _kinds(state.queue) == [UnitKind.ANSWER]

    def test_on_error_replaces_queue(self):
        state = _with_active(units.answer("q"), queue=(units.message("never shown"),))

        state = on_error(state, "boom")

        assert _kinds(state.timeline) == [UnitKind.ANSWER]
        (unit,) = state.queue
        assert unit.props == {"type": FeedbackType.FAILED, "text": "boom"}

    def test_on_aborted_replaces_queue(self):
        state = _with_active(units.config(["a.b"]), queue=(units.execute([]),))

        state = on_aborted(state, "configuration")

        (unit,) = state.queue
        assert unit.props["type"] == FeedbackType.ABORTED
        assert "configuration" in unit.props["text"]


class TestExitCode:

    def test_empty_timeline(self):
        assert exit_code(WorkflowState()) == 0

    def test_last_failed_feedback(self):
        state = WorkflowState(timeline=(units.message("x"), units.feedback(FeedbackType.FAILED, "no")))

        assert exit_code(state) == 1

    def test_warnings_after_failure_are_ignored(self):
        state = WorkflowState(timeline=(
            units.feedback(FeedbackType.FAILED, "no"),
            units.feedback(FeedbackType.WARNING, "careful"),
        ))

        assert exit_code(state) == 1

    def test_aborted_is_not_failure(self):
        state = WorkflowState(timeline=(units.feedback(FeedbackType.ABORTED, "stopped"),))

        assert exit_code(state) == 0


class TestLifecycleManager:

    @pytest.mark.asyncio
    async def test_controller_chain(self):
        def on_command(unit, handlers):
            handlers.on_completed({"planned": True})
            handlers.complete_active(units.answer("q"))

        def on_answer(unit, handlers):
            handlers.complete_active(units.feedback(FeedbackType.SUCCEEDED, "done"))

        command, answer = FakeController(on_command), FakeController(on_answer)
        states = []
        manager = LifecycleManager(
            {UnitKind.COMMAND: command, UnitKind.ANSWER: answer}, on_change=states.append
        )

        code = await manager.run([units.command("hello")])

        assert code == 0
        assert _kinds(manager.state.timeline) == [UnitKind.COMMAND, UnitKind.ANSWER, UnitKind.FEEDBACK]
        assert manager.state.timeline[0].state == {"planned": True}
        assert manager.state.is_idle and manager.state.pending is None
        assert states[-1] is manager.state

    @pytest.mark.asyncio
    async def test_error_ends_run_with_failure(self):
        def fail(unit, handlers):
            handlers.on_error("it broke")

        manager = LifecycleManager({UnitKind.ANSWER: FakeController(fail)})

        code = await manager.run([units.answer("q"), units.message("skipped")])

        assert code == 1
        assert _kinds(manager.state.timeline) == [UnitKind.ANSWER, UnitKind.FEEDBACK]

    @pytest.mark.asyncio
    async def test_raising_controller_becomes_error(self):
        async def explode(unit, handlers):
            raise RuntimeError("kaboom")

        manager = LifecycleManager({UnitKind.ANSWER: FakeController(explode)})

        code = await manager.run([units.answer("q")])

        assert code == 1
        assert "kaboom" in manager.state.timeline[-1].props["text"]

    @pytest.mark.asyncio
    async def test_missing_controller(self):
        manager = LifecycleManager({})

        code = await manager.run([units.introspect([])])

        assert code == 1
        assert "introspect" in manager.state.timeline[-1].props["text"]

    @pytest.mark.asyncio
    async def test_unit_left_active_is_moved_to_timeline(self):
        manager = LifecycleManager({UnitKind.ANSWER: FakeController(lambda unit, handlers: None)})

        code = await manager.run([units.answer("q"), units.message("after")])

        assert code == 0
        assert _kinds(manager.state.timeline) == [UnitKind.ANSWER, UnitKind.MESSAGE]

    @pytest.mark.asyncio
    async def test_handlers_are_inert_after_controller_returns(self):
        saved = []

        def keep(unit, handlers):
            saved.append(handlers)
            handlers.complete_active()

        manager = LifecycleManager({UnitKind.ANSWER: FakeController(keep)})
        await manager.run([units.answer("q")])

        saved[0].on_error("late")
        saved[0].add_to_queue(units.message("late"))

        assert manager.state.queue == ()
        assert _kinds(manager.state.timeline) == [UnitKind.ANSWER]

    @pytest.mark.asyncio
    async def test_warnings_become_feedback(self):
        collector = WarningCollector()
        log = logging.getLogger("taskpilot.tests.workflow")
        log.addHandler(collector)

        def warn(unit, handlers):
            log.warning("Skill file skipped")
            handlers.complete_active()

        try:
            manager = LifecycleManager({UnitKind.ANSWER: FakeController(warn)}, warnings=collector)
            code = await manager.run([units.answer("q")])
        finally:
            log.removeHandler(collector)

        assert code == 0
        warnings = [u for u in manager.state.timeline if u.props.get("type") == FeedbackType.WARNING]
        assert [u.props["text"] for u in warnings] == ["Skill file skipped"]
