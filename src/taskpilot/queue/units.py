"""Units of work moved through the Queue, Active slot and Timeline."""

import uuid
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence

from ..core.task import Task


class UnitKind(str, Enum):
    MESSAGE = "message"
    FEEDBACK = "feedback"
    REPORT = "report"
    COMMAND = "command"
    SCHEDULE = "schedule"
    REFINEMENT = "refinement"
    CONFIRM = "confirm"
    ANSWER = "answer"
    INTROSPECT = "introspect"
    CONFIG = "config"
    VALIDATE = "validate"
    EXECUTE = "execute"


# Display-only kinds; they never get a controller
STATELESS_KINDS = frozenset({UnitKind.MESSAGE, UnitKind.FEEDBACK, UnitKind.REPORT})


class UnitStatus(str, Enum):
    AWAITING = "awaiting"
    ACTIVE = "active"
    PENDING = "pending"
    DONE = "done"


class FeedbackType(str, Enum):
    SUCCEEDED = "succeeded"
    ABORTED = "aborted"
    FAILED = "failed"
    WARNING = "warning"
    INFO = "info"


def _new_id() -> str:
    return uuid.uuid4().hex[:12]


@dataclass(frozen=True)
class Unit:
    """One unit of work.

    ``props`` is what the unit was created with and never changes. ``state``
    is what its controller reported while it ran; stateless units have
    ``state=None``.
    """
    kind: UnitKind
    props: Mapping[str, Any] = field(default_factory=dict)
    state: Optional[Mapping[str, Any]] = None
    status: UnitStatus = UnitStatus.AWAITING
    id: str = field(default_factory=_new_id)

    @property
    def is_stateless(self) -> bool:
        return self.state is None

    @property
    def is_failure(self) -> bool:
        return self.kind == UnitKind.FEEDBACK and self.props.get("type") == FeedbackType.FAILED

    def with_status(self, status: UnitStatus) -> "Unit":
        return replace(self, status=status)

    def with_state(self, **partial: Any) -> "Unit":
        """Merge ``partial`` into the state. Stateless units stay stateless."""
        if self.state is None:
            return self
        return replace(self, state={**self.state, **partial})

    def replace_state(self, state: Mapping[str, Any]) -> "Unit":
        if self.state is None:
            return self
        return replace(self, state=dict(state))


def _stateful(kind: UnitKind, **props: Any) -> Unit:
    return Unit(kind=kind, props=props, state={})


def message(text: str) -> Unit:
    return Unit(kind=UnitKind.MESSAGE, props={"text": text})


def feedback(feedback_type: FeedbackType, text: str) -> Unit:
    return Unit(kind=UnitKind.FEEDBACK, props={"type": feedback_type, "text": text})


def report(message: str, capabilities: Sequence[Any]) -> Unit:
    return Unit(kind=UnitKind.REPORT, props={"message": message, "capabilities": list(capabilities)})


def command(request: str) -> Unit:
    return _stateful(UnitKind.COMMAND, request=request)


def schedule(message: str, tasks: Sequence[Task], has_define: bool = False) -> Unit:
    return _stateful(UnitKind.SCHEDULE, message=message, tasks=list(tasks), has_define=has_define)


def refinement(text: str, tasks: Sequence[Task], request: str) -> Unit:
    """``request`` is what gets sent back to the advisory service."""
    return _stateful(UnitKind.REFINEMENT, text=text, tasks=list(tasks), request=request)


def confirm(message: str, operation: str, tasks: Sequence[Task] = ()) -> Unit:
    """``tasks`` are routed when the user confirms."""
    return _stateful(UnitKind.CONFIRM, message=message, operation=operation, tasks=list(tasks))


def answer(question: str) -> Unit:
    return _stateful(UnitKind.ANSWER, question=question)


def introspect(tasks: Sequence[Task]) -> Unit:
    return _stateful(UnitKind.INTROSPECT, tasks=list(tasks))


def config(
    keys: Sequence[str],
    labels: Optional[Dict[str, str]] = None,
    tasks: Sequence[Task] = (),
) -> Unit:
    """With no ``keys``, the controller asks the advisory service which keys ``tasks`` mean."""
    return _stateful(UnitKind.CONFIG, keys=list(keys), labels=dict(labels or {}), tasks=list(tasks))


def validate(missing_config: Sequence[Any], tasks: Sequence[Task], then: Sequence[Unit] = ()) -> Unit:
    """``then`` is queued once the missing values are saved."""
    return _stateful(
        UnitKind.VALIDATE, missing_config=list(missing_config), tasks=list(tasks), then=list(then)
    )


def execute(tasks: Sequence[Task], label: str = "", upcoming: Sequence[str] = ()) -> Unit:
    return _stateful(UnitKind.EXECUTE, tasks=list(tasks), label=label, upcoming=list(upcoming))


def describe_units(units: Sequence[Unit]) -> List[str]:
    """Short ``kind:id`` labels for logging."""
    return [f"{unit.kind.value}:{unit.id}" for unit in units]
