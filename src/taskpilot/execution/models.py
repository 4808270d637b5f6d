"""Execution data models."""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Optional, Tuple

from pydantic import BaseModel, Field, field_validator


class ExecutionStatus(str, Enum):
    """Per-task state in a pipeline run."""
    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"
    ABORTED = "aborted"
    CANCELLED = "cancelled"


class ExecutionResult(str, Enum):
    """Outcome reported by a command executor."""
    SUCCESS = "success"
    ERROR = "error"
    ABORTED = "aborted"


class ExecuteCommand(BaseModel):
    """A single shell command to run."""
    description: str
    command: str
    workdir: Optional[str] = None
    timeout: Optional[int] = Field(default=None, description="Milliseconds")
    critical: Optional[bool] = None

    @field_validator("command")
    @classmethod
    def validate_command(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("command must not be empty")
        return v

    @property
    def is_critical(self) -> bool:
        """Absent means critical; only an explicit False opts out."""
        return self.critical is not False


@dataclass
class CommandOutput:
    """What the executor returns for one command."""
    output: str = ""
    errors: str = ""
    result: ExecutionResult = ExecutionResult.SUCCESS
    error: Optional[str] = None
    workdir: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.result == ExecutionResult.SUCCESS


@dataclass(frozen=True)
class TaskRun:
    """Runtime view of one command in the pipeline."""
    label: str
    command: ExecuteCommand
    status: ExecutionStatus = ExecutionStatus.PENDING
    elapsed_ms: float = 0.0
    started_at: Optional[float] = None
    output: str = ""
    errors: str = ""
    error: Optional[str] = None

    def with_status(self, status: ExecutionStatus, **changes) -> "TaskRun":
        return replace(self, status=status, **changes)


@dataclass(frozen=True)
class ExecuteState:
    """Immutable snapshot of a pipeline run."""
    tasks: Tuple[TaskRun, ...] = field(default_factory=tuple)
    message: str = ""
    summary: str = ""
    completed: int = 0
    completion_message: Optional[str] = None
    error: Optional[str] = None
    cancelled: bool = False

    @property
    def finished(self) -> bool:
        return self.cancelled or self.error is not None or self.completion_message is not None

    def statuses(self) -> Tuple[ExecutionStatus, ...]:
        return tuple(task.status for task in self.tasks)


@dataclass(frozen=True)
class Transition:
    """Result of applying a task outcome to an ExecuteState."""
    state: ExecuteState
    finished: bool = False
    fatal_error: Optional[str] = None
