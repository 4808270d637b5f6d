"""Task router: turns a planned task list into units of work.

    drafting --define tasks--> refining --selection--> (advisory) --> drafting
    drafting --------------------------> confirming --cancel--> done
                                              |
                                           confirm
                                              v
    routing --answer--> answering | introspect --> introspecting
            --config--> configuring | otherwise --> executing
    any step --error--> failed

The router never performs I/O itself. It queues units whose controllers do
the work and call back into ``confirmed`` / ``cancelled`` /
``route_tasks_with_confirm`` as the user and the advisory service respond.
"""

import logging
import random
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..errors import MixedTaskTypesError, TaskpilotError, format_error_message
from ..queue import units
from ..queue.handlers import Handlers
from ..queue.units import FeedbackType, Unit
from ..skills.validator import ExecutionValidator
from .config_store import key_to_label
from .messages import (
    format_skill_issues,
    get_cancellation_message,
    get_confirmation_message,
    get_refining_message,
    get_unknown_request_message,
)
from .task import NON_ACTIONABLE_TYPES, Task, TaskType, flatten_tasks

logger = logging.getLogger(__name__)


class RouterState(str, Enum):
    DRAFTING = "drafting"
    REFINING = "refining"
    CONFIRMING = "confirming"
    ROUTING = "routing"
    EXECUTING = "executing"
    ANSWERING = "answering"
    INTROSPECTING = "introspecting"
    CONFIGURING = "configuring"
    DONE = "done"
    FAILED = "failed"


def get_operation_name(tasks: Sequence[Task]) -> str:
    """Name used in cancellation messages for this task list."""
    if tasks and all(task.type == TaskType.INTROSPECT for task in tasks):
        return "introspection"
    if tasks and all(task.type == TaskType.ANSWER for task in tasks):
        return "answer"
    return "execution"


def validate_task_types(tasks: Sequence[Task]) -> str:
    """Check that the list stands for a single type and return it.

    Every group must have uniform subtasks (checked innermost first) and all
    top-level effective types must be equal.

    Raises:
        MixedTaskTypesError: two or more types are present
    """
    for task in tasks:
        if task.is_group:
            validate_task_types(task.subtasks)

    kinds: List[str] = []
    for task in tasks:
        kind = task.effective_type
        if kind not in kinds:
            kinds.append(kind)
    if len(kinds) > 1:
        raise MixedTaskTypesError(kinds)
    return kinds[0] if kinds else TaskType.EXECUTE.value


def _option_label(option: Any) -> str:
    if isinstance(option, dict):
        return str(option.get("name") or option.get("command") or "")
    return str(option)


def define_options(task: Task) -> List[str]:
    """Display labels of a define task's options."""
    options = task.params.get("options")
    if not isinstance(options, list):
        return []
    return [_option_label(option) for option in options]


def refine_selected_tasks(
    tasks: Sequence[Task],
    selections: Sequence[int],
) -> Tuple[List[Task], str]:
    """Replace each define task by its selected option.

    ``selections`` holds one option index per define task, in order. Selected
    options become execute tasks; the advisory service reclassifies them when
    the returned request is planned again.

    Returns:
        (refined tasks, request text for the advisory service)
    """
    refined: List[Task] = []
    define_index = 0
    for task in tasks:
        if task.type in NON_ACTIONABLE_TYPES:
            continue
        if task.type == TaskType.DEFINE:
            options = define_options(task)
            if not options:
                logger.warning(f"Define task '{task.action}' has no options; dropping it")
                continue
            selected = selections[define_index]
            define_index += 1
            refined.append(Task(action=options[selected], type=TaskType.EXECUTE))
        else:
            refined.append(task)

    request = ", ".join(
        f"{task.action.lower().replace(',', ' -')} (type: {task.type})" for task in refined
    )
    return refined, request


class TaskRouter:
    """Central state machine between planning and execution.

    Args:
        validator: Finds malformed skills and unset config before execution
        rng: Random source for message variations; fixed in tests
    """

    def __init__(
        self,
        validator: ExecutionValidator,
        rng: Optional[random.Random] = None,
    ):
        self.validator = validator
        self.rng = rng
        self.state = RouterState.DRAFTING

    def _transition(self, state: RouterState) -> None:
        if state != self.state:
            logger.debug(f"Router: {self.state.value} -> {state.value}")
        self.state = state

    def _fail(self, handlers: Handlers, error: BaseException) -> None:
        self._transition(RouterState.FAILED)
        handlers.on_error(format_error_message(error))

    def route_tasks_with_confirm(
        self,
        tasks: Sequence[Task],
        message: str,
        handlers: Handlers,
        has_define: bool = False,
    ) -> None:
        """Queue the plan for selection (define tasks) or confirmation."""
        self._transition(RouterState.DRAFTING)

        valid = [task for task in tasks if task.type not in NON_ACTIONABLE_TYPES]
        if not valid:
            logger.info(f"No actionable tasks among {len(tasks)} planned")
            handlers.add_to_queue(units.message(get_unknown_request_message(self.rng)))
            self._transition(RouterState.DONE)
            return

        if has_define:
            self._transition(RouterState.REFINING)
            handlers.add_to_queue(units.schedule(message, valid, has_define=True))
            return

        self._transition(RouterState.CONFIRMING)
        handlers.add_to_queue(units.schedule(message, valid, has_define=False))

    def selection_confirmed(self, tasks: Sequence[Task], selections: Sequence[int], handlers: Handlers) -> None:
        """Define options were picked: park the schedule and queue a refinement."""
        refined, request = refine_selected_tasks(tasks, selections)
        logger.debug(f"Refinement request: {request}")
        handlers.complete_active(units.refinement(get_refining_message(self.rng), refined, request))

    def plan_shown(self, tasks: Sequence[Task], handlers: Handlers) -> None:
        """A concrete plan was displayed: keep it pending and ask for confirmation."""
        confirm = units.confirm(
            message=get_confirmation_message(self.rng),
            operation=get_operation_name(tasks),
            tasks=tasks,
        )
        handlers.complete_active(confirm)

    def confirmed(self, tasks: Sequence[Task], handlers: Handlers) -> None:
        handlers.complete_active_and_pending()
        self.execute_tasks_after_confirm(tasks, handlers)

    def cancelled(self, operation: str, handlers: Handlers) -> None:
        handlers.complete_active_and_pending()
        handlers.add_to_queue(
            units.feedback(FeedbackType.ABORTED, get_cancellation_message(operation, self.rng))
        )
        self._transition(RouterState.DONE)

    def execute_tasks_after_confirm(self, tasks: Sequence[Task], handlers: Handlers) -> None:
        """Check types, then dispatch by the uniform type."""
        self._transition(RouterState.ROUTING)
        try:
            task_type = validate_task_types(tasks)
        except MixedTaskTypesError as e:
            logger.info(f"Rejected plan: {e}")
            self._fail(handlers, e)
            return

        if task_type == TaskType.ANSWER:
            self._route_answer(tasks, handlers)
        elif task_type == TaskType.INTROSPECT:
            self._transition(RouterState.INTROSPECTING)
            handlers.add_to_queue(units.introspect(tasks))
        elif task_type == TaskType.CONFIG:
            self._route_config(tasks, handlers)
        else:
            self._route_execute(tasks, handlers)

    def _route_answer(self, tasks: Sequence[Task], handlers: Handlers) -> None:
        self._transition(RouterState.ANSWERING)
        question = flatten_tasks(list(tasks))[0].action
        handlers.add_to_queue(units.answer(question))

    def _route_config(self, tasks: Sequence[Task], handlers: Handlers) -> None:
        self._transition(RouterState.CONFIGURING)
        keys: List[str] = []
        labels: Dict[str, str] = {}
        for task in flatten_tasks(list(tasks)):
            key = task.params.get("key")
            if not isinstance(key, str) or not key or key in keys:
                continue
            keys.append(key)
            labels[key] = task.action or key_to_label(key)
        if not keys:
            logger.debug("Config tasks name no keys; the config tool will pick them")
        handlers.add_to_queue(units.config(keys, labels, tasks=flatten_tasks(list(tasks))))

    def _route_execute(self, tasks: Sequence[Task], handlers: Handlers) -> None:
        try:
            validation = self.validator.validate(tasks)
        except TaskpilotError as e:
            logger.info(f"Validation failed: {e}")
            self._fail(handlers, e)
            return

        if validation.validation_errors:
            text = "\n\n".join(
                format_skill_issues(error.skill, error.issues) for error in validation.validation_errors
            )
            self._transition(RouterState.FAILED)
            handlers.add_to_queue(units.feedback(FeedbackType.FAILED, text))
            return

        self._transition(RouterState.EXECUTING)
        execute_units = build_execute_units(tasks)
        if validation.missing_config:
            logger.info(f"{len(validation.missing_config)} config values missing before execution")
            handlers.add_to_queue(units.validate(validation.missing_config, tasks, then=execute_units))
            return
        handlers.add_to_queue(*execute_units)


def build_execute_units(tasks: Sequence[Task]) -> List[Unit]:
    """One execute unit per group, one per run of consecutive standalone tasks."""
    batches: List[Tuple[str, List[Task]]] = []
    standalone: List[Task] = []

    def flush() -> None:
        if standalone:
            label = standalone[0].action if len(standalone) == 1 else f"{len(standalone)} tasks"
            batches.append((label, list(standalone)))
            standalone.clear()

    for task in tasks:
        if task.is_group:
            flush()
            batches.append((task.action, list(task.leaves())))
        else:
            standalone.append(task)
    flush()

    labels = [label for label, _ in batches]
    return [
        units.execute(batch, label=label, upcoming=labels[i + 1:])
        for i, (label, batch) in enumerate(batches)
    ]
