"""Controllers for the planning half of a request: command, schedule,
confirm and refinement units."""

import logging

from ..core.router import TaskRouter, define_options
from ..core.task import TaskType, has_define_task
from ..errors import AdvisoryServiceError, format_error_message
from ..interaction import Prompter
from ..llm.base import AdvisoryService
from ..queue.handlers import Handlers
from ..queue.units import Unit
from ..queue.workflow import Controller

logger = logging.getLogger(__name__)


class CommandController(Controller):
    """Plans the user's request with the ``schedule`` tool and hands it to the router."""

    def __init__(self, service: AdvisoryService, router: TaskRouter):
        self.service = service
        self.router = router

    async def run(self, unit: Unit, handlers: Handlers) -> None:
        request = unit.props["request"]
        logger.info(f"Planning request: {request}")
        try:
            result = await self.service.process_with_tool(request, "schedule")
        except AdvisoryServiceError as e:
            handlers.on_error(format_error_message(e))
            return

        handlers.on_completed({"message": result.message, "tasks": result.tasks})
        handlers.complete_active()
        self.router.route_tasks_with_confirm(
            result.tasks, result.message, handlers, has_define_task(result.tasks)
        )


class ScheduleController(Controller):
    """Shows the plan. Define tasks are resolved by asking the user to pick an option."""

    def __init__(self, router: TaskRouter, prompter: Prompter):
        self.router = router
        self.prompter = prompter

    async def run(self, unit: Unit, handlers: Handlers) -> None:
        tasks = unit.props["tasks"]
        if not unit.props.get("has_define"):
            self.router.plan_shown(tasks, handlers)
            return

        selections = []
        for task in tasks:
            if task.type != TaskType.DEFINE:
                continue
            options = define_options(task)
            if not options:
                continue
            choice = await self.prompter.select(task.action, options)
            if choice is None:
                handlers.on_aborted("task selection")
                return
            selections.append(choice)
            handlers.update_state(selections=list(selections))

        self.router.selection_confirmed(tasks, selections, handlers)


class ConfirmController(Controller):

    def __init__(self, router: TaskRouter, prompter: Prompter):
        self.router = router
        self.prompter = prompter

    async def run(self, unit: Unit, handlers: Handlers) -> None:
        answer = await self.prompter.confirm(unit.props["message"])
        handlers.update_state(confirmed=bool(answer))
        if answer:
            self.router.confirmed(unit.props["tasks"], handlers)
        else:
            self.router.cancelled(unit.props["operation"], handlers)


class RefinementController(Controller):
    """Sends the user's selections back for planning, then routes the refined plan."""

    def __init__(self, service: AdvisoryService, router: TaskRouter):
        self.service = service
        self.router = router

    async def run(self, unit: Unit, handlers: Handlers) -> None:
        try:
            result = await self.service.process_with_tool(unit.props["request"], "schedule")
        except AdvisoryServiceError as e:
            handlers.complete_active()
            handlers.on_error(format_error_message(e))
            return

        handlers.complete_active()
        self.router.route_tasks_with_confirm(result.tasks, result.message, handlers, has_define=False)
