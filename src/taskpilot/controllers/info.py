"""Controllers that only talk to the advisory service: answer and introspect."""

import logging

from ..core.config import DebugLevel
from ..core.task import flatten_tasks
from ..errors import AdvisoryServiceError, format_error_message
from ..llm.base import AdvisoryService
from ..queue import units
from ..queue.handlers import Handlers
from ..queue.units import Unit
from ..queue.workflow import Controller

logger = logging.getLogger(__name__)


class AnswerController(Controller):

    def __init__(self, service: AdvisoryService):
        self.service = service

    async def run(self, unit: Unit, handlers: Handlers) -> None:
        question = unit.props["question"]
        try:
            result = await self.service.process_with_tool(question, "answer")
        except AdvisoryServiceError as e:
            message = format_error_message(e)
            handlers.on_completed({"error": message})
            handlers.on_error(message)
            return

        handlers.on_completed({"answer": result.answer or ""})
        handlers.complete_active()


class IntrospectController(Controller):
    """Lists capabilities; the listing is queued as a report unit."""

    def __init__(self, service: AdvisoryService, debug: DebugLevel = DebugLevel.NONE):
        self.service = service
        self.debug = debug

    async def run(self, unit: Unit, handlers: Handlers) -> None:
        request = "\n".join(task.action for task in flatten_tasks(unit.props["tasks"]))
        context = {"debug": self.debug != DebugLevel.NONE}
        try:
            result = await self.service.process_with_tool(request, "introspect", context)
        except AdvisoryServiceError as e:
            handlers.on_error(format_error_message(e))
            return

        logger.debug(f"Introspection listed {len(result.capabilities)} capabilities")
        handlers.on_completed({"message": result.message})
        handlers.complete_active(units.report(result.message, result.capabilities))
