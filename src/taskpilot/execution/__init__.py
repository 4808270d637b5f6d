"""Command preparation, executors and the sequential execution pipeline."""

from .executor import CommandExecutor, DummyExecutor, ShellExecutor
from .models import (
    CommandOutput,
    ExecuteCommand,
    ExecuteState,
    ExecutionResult,
    ExecutionStatus,
    TaskRun,
    Transition,
)
from .pipeline import (
    ExecutionPipeline,
    cancel_execution,
    complete_task,
    fail_task,
    initial_state,
    start_task,
)

__all__ = [
    "CommandExecutor",
    "DummyExecutor",
    "ShellExecutor",
    "CommandOutput",
    "ExecuteCommand",
    "ExecuteState",
    "ExecutionResult",
    "ExecutionStatus",
    "TaskRun",
    "Transition",
    "ExecutionPipeline",
    "cancel_execution",
    "complete_task",
    "fail_task",
    "initial_state",
    "start_task",
]
