"""Task model shared by the advisory service, router and execution pipeline."""

from enum import Enum
from typing import Any, Iterator, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class TaskType(str, Enum):
    """Kinds of work a planned task can stand for."""
    CONFIG = "config"
    PLAN = "plan"
    EXECUTE = "execute"
    ANSWER = "answer"
    INTROSPECT = "introspect"
    REPORT = "report"
    DEFINE = "define"
    IGNORE = "ignore"
    SELECT = "select"
    DISCARD = "discard"
    GROUP = "group"
    SCHEDULE = "schedule"


# Dropped by the router before confirmation
NON_ACTIONABLE_TYPES = frozenset({TaskType.IGNORE, TaskType.DISCARD})


class Task(BaseModel):
    """A unit of planned work.

    Leaves carry a concrete type and run on their own. A ``group`` task owns
    ``subtasks`` and is the only recursive shape; nothing else may have
    children.
    """

    model_config = ConfigDict(use_enum_values=True)

    action: str
    type: TaskType
    params: dict[str, Any] = Field(default_factory=dict)
    config: list[str] = Field(default_factory=list)
    subtasks: List["Task"] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_structure(self) -> "Task":
        if self.type == TaskType.GROUP and not self.subtasks:
            raise ValueError(f"Group task '{self.action}' has no subtasks")
        if self.subtasks and self.type != TaskType.GROUP:
            raise ValueError(
                f"Only group tasks may have subtasks (got type '{self.type}' for '{self.action}')"
            )
        return self

    @property
    def is_group(self) -> bool:
        return self.type == TaskType.GROUP

    @property
    def skill(self) -> Optional[str]:
        """Name of the skill this task was planned from, if any."""
        value = self.params.get("skill")
        return value if isinstance(value, str) and value else None

    @property
    def variant(self) -> Optional[str]:
        """Variant used to resolve ``{a.VARIANT.b}`` placeholders.

        ``params["variant"]`` wins; otherwise the first other string param
        that is not ``skill`` or ``type`` is used. Always lower-cased.
        """
        value = self.params.get("variant")
        if isinstance(value, str):
            return value.lower()
        for key, value in self.params.items():
            if key in ("skill", "type", "variant"):
                continue
            if isinstance(value, str):
                return value.lower()
        return None

    def leaves(self) -> Iterator["Task"]:
        """Yield leaf tasks depth-first, in order."""
        if self.is_group:
            for subtask in self.subtasks:
                yield from subtask.leaves()
        else:
            yield self

    def subtask_types(self) -> List[str]:
        """Distinct effective types of direct subtasks, in first-seen order."""
        seen: List[str] = []
        for subtask in self.subtasks:
            kind = subtask.effective_type
            if kind not in seen:
                seen.append(kind)
        return seen

    @property
    def effective_type(self) -> str:
        """Type this task stands for.

        A group with uniform subtasks stands for their type; a mixed group
        stays ``group``.
        """
        if not self.is_group:
            return self.type
        kinds = self.subtask_types()
        return kinds[0] if len(kinds) == 1 else TaskType.GROUP.value

    def describe(self) -> str:
        """Human-readable one-liner used in logs and refinement requests."""
        return f"{self.action} (type: {self.type})"


def flatten_tasks(tasks: List[Task]) -> List[Task]:
    """Expand groups into their leaves, preserving order."""
    flat: List[Task] = []
    for task in tasks:
        flat.extend(task.leaves())
    return flat


def has_define_task(tasks: List[Task]) -> bool:
    return any(task.type == TaskType.DEFINE for task in tasks)
