"""Terminal rendering of the workflow as it changes."""

from typing import Dict, List, Set, Tuple

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ..core.config import DebugLevel
from ..core.messages import format_duration
from ..core.task import Task
from ..execution.models import ExecuteState, ExecutionStatus
from ..llm.base import CapabilityOrigin
from ..queue.units import FeedbackType, Unit, UnitKind
from ..queue.workflow import WorkflowState

FEEDBACK_STYLES = {
    FeedbackType.SUCCEEDED: "green",
    FeedbackType.ABORTED: "yellow",
    FeedbackType.FAILED: "red",
    FeedbackType.WARNING: "yellow",
    FeedbackType.INFO: "dim",
}

STATUS_MARKS = {
    ExecutionStatus.SUCCESS: "[green]✓[/]",
    ExecutionStatus.FAILED: "[red]✗[/]",
    ExecutionStatus.ABORTED: "[yellow]■[/]",
    ExecutionStatus.CANCELLED: "[dim]-[/]",
}


def format_task_tree(tasks: List[Task], indent: int = 0) -> List[str]:
    lines = []
    for task in tasks:
        lines.append(f"{'  ' * indent}- {escape(task.action)} [dim]({task.type})[/]")
        if task.subtasks:
            lines.extend(format_task_tree(task.subtasks, indent + 1))
    return lines


class TimelineRenderer:
    """``on_change`` hook for the LifecycleManager.

    Prints every unit once: interactive units when they become Active (so
    the plan is visible before the prompt), the rest when they reach the
    timeline. Execution progress is printed task by task as it happens.
    """

    def __init__(self, console: Console, debug: DebugLevel = DebugLevel.NONE):
        self.console = console
        self.debug = debug
        self._shown: Set[str] = set()
        self._finished: Set[str] = set()
        self._task_marks: Dict[str, Set[Tuple[int, str]]] = {}

    def __call__(self, state: WorkflowState) -> None:
        for unit in state.timeline:
            self._render_done(unit)
        if state.active is not None:
            self._render_active(state.active)

    def _render_active(self, unit: Unit) -> None:
        if unit.kind == UnitKind.EXECUTE:
            if unit.id not in self._shown:
                self._shown.add(unit.id)
                self._render_execute_header(unit)
            execution = (unit.state or {}).get("execution")
            if execution is not None:
                self._render_progress(unit.id, execution)
            return

        if unit.id in self._shown:
            return
        if unit.kind == UnitKind.SCHEDULE:
            self._shown.add(unit.id)
            self._render_plan(unit)
        elif unit.kind == UnitKind.REFINEMENT:
            self._shown.add(unit.id)
            self.console.print(f"[dim]{escape(unit.props['text'])}[/]")

    def _render_done(self, unit: Unit) -> None:
        if unit.kind == UnitKind.EXECUTE:
            execution = (unit.state or {}).get("execution")
            if execution is not None:
                self._render_progress(unit.id, execution)
                if execution.completion_message and unit.id not in self._finished:
                    self._finished.add(unit.id)
                    self.console.print(f"[green]{execution.completion_message}[/]")
            return

        if unit.id in self._shown:
            return
        self._shown.add(unit.id)

        if unit.kind == UnitKind.MESSAGE:
            self.console.print(escape(unit.props["text"]))
        elif unit.kind == UnitKind.FEEDBACK:
            style = FEEDBACK_STYLES.get(unit.props["type"], "")
            text = escape(unit.props["text"])
            self.console.print(f"[{style}]{text}[/]" if style else text)
        elif unit.kind == UnitKind.REPORT:
            self._render_report(unit)
        elif unit.kind == UnitKind.ANSWER:
            answer = (unit.state or {}).get("answer")
            if answer:
                self.console.print(answer, markup=False)
        elif unit.kind == UnitKind.SCHEDULE:
            self._render_plan(unit)
        elif unit.kind == UnitKind.COMMAND and self.debug != DebugLevel.NONE:
            self.console.print(f"[dim]> {escape(unit.props['request'])}[/]")

    def _render_plan(self, unit: Unit) -> None:
        if unit.props.get("message"):
            self.console.print(f"\n[bold]{escape(unit.props['message'])}[/]")
        for line in format_task_tree(unit.props["tasks"]):
            self.console.print(f"  {line}")

    def _render_execute_header(self, unit: Unit) -> None:
        label = unit.props.get("label")
        if label:
            self.console.print(f"\n[bold cyan]{escape(label)}[/]")
        upcoming = unit.props.get("upcoming") or []
        if upcoming and self.debug != DebugLevel.NONE:
            self.console.print(f"[dim]Next: {', '.join(upcoming)}[/]")

    def _render_progress(self, unit_id: str, execution: ExecuteState) -> None:
        marks = self._task_marks.setdefault(unit_id, set())
        for index, task in enumerate(execution.tasks):
            status = ExecutionStatus(task.status)
            if status not in STATUS_MARKS or (index, status.value) in marks:
                continue
            marks.add((index, status.value))
            line = f"  {STATUS_MARKS[status]} {escape(task.label)}"
            if status in (ExecutionStatus.SUCCESS, ExecutionStatus.FAILED):
                line += f" [dim]({format_duration(task.elapsed_ms)})[/]"
            self.console.print(line)
            if status == ExecutionStatus.FAILED and task.error:
                self.console.print(f"    [red]{escape(task.error)}[/]")
            if self.debug == DebugLevel.VERBOSE and task.output:
                self.console.print(task.output, markup=False, highlight=False)

    def _render_report(self, unit: Unit) -> None:
        if unit.props.get("message"):
            self.console.print(f"[bold]{escape(unit.props['message'])}[/]")
        table = Table()
        table.add_column("Capability")
        table.add_column("Description")
        table.add_column("Origin")
        for capability in unit.props["capabilities"]:
            name = capability.name
            if capability.is_incomplete:
                name += " [yellow](INCOMPLETE)[/]"
            table.add_row(name, capability.description, CapabilityOrigin(capability.origin).value)
        self.console.print(table)
