"""Controllers that collect configuration values from the user."""

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..core.config import BUILTIN_CONFIG_KEYS
from ..core.config_store import ConfigStore, flatten_config, key_to_label
from ..core.messages import CONFIGURATION_UPDATED, get_unknown_request_message
from ..core.task import Task, flatten_tasks
from ..errors import AdvisoryServiceError, ConfigError, format_error_message
from ..interaction import Prompter
from ..llm.base import AdvisoryService
from ..queue import units
from ..queue.handlers import Handlers
from ..queue.units import FeedbackType, Unit
from ..queue.workflow import Controller
from ..skills.models import ConfigRequirement

logger = logging.getLogger(__name__)


async def collect_values(
    prompter: Prompter,
    store: ConfigStore,
    keys: Sequence[str],
    labels: Dict[str, str],
) -> Optional[Dict[str, str]]:
    """Ask for each key, offering the current value as default. None on abort."""
    values: Dict[str, str] = {}
    for key in keys:
        current = store.get_value(key)
        if current is None:
            default = None
        elif isinstance(current, bool):
            default = str(current).lower()
        else:
            default = str(current)
        value = await prompter.ask(labels.get(key) or key_to_label(key), default=default)
        if value is None:
            return None
        values[key] = value
    return values


class ConfigController(Controller):
    """Asks for the requested keys and saves them.

    When the planned tasks did not name keys, the ``config`` tool picks them
    from the known settings and the keys already in the file.
    """

    def __init__(self, store: ConfigStore, prompter: Prompter, service: Optional[AdvisoryService] = None):
        self.store = store
        self.prompter = prompter
        self.service = service

    def _tool_context(self) -> Dict[str, Any]:
        configured = flatten_config(self.store.load())
        structure = dict(BUILTIN_CONFIG_KEYS)
        for key in configured:
            structure.setdefault(key, key_to_label(key))
        return {"config_structure": structure, "configured_keys": sorted(configured)}

    async def _resolve_keys(self, unit: Unit) -> Tuple[List[str], Dict[str, str]]:
        keys = list(unit.props["keys"])
        labels = dict(unit.props.get("labels", {}))
        if keys or self.service is None:
            return keys, labels

        request = "\n".join(task.action for task in unit.props.get("tasks", []))
        result = await self.service.process_with_tool(request, "config", self._tool_context())
        for task in result.tasks:
            key = task.params.get("key")
            if isinstance(key, str) and key and key not in keys:
                keys.append(key)
                labels[key] = task.action or key_to_label(key)
        return keys, labels

    async def run(self, unit: Unit, handlers: Handlers) -> None:
        try:
            keys, labels = await self._resolve_keys(unit)
        except AdvisoryServiceError as e:
            handlers.on_error(format_error_message(e))
            return
        if not keys:
            handlers.complete_active(units.message(get_unknown_request_message()))
            return

        handlers.update_state(keys=keys, labels=labels)
        values = await collect_values(self.prompter, self.store, keys, labels)
        if values is None:
            handlers.on_aborted("configuration")
            return

        try:
            self.store.save_flat(values)
        except ConfigError as e:
            handlers.on_error(format_error_message(e))
            return

        logger.info(f"Saved {len(values)} config values")
        handlers.on_completed({"keys": keys, "values": values})
        handlers.complete_active(units.feedback(FeedbackType.SUCCEEDED, CONFIGURATION_UPDATED))


def describe_missing(missing: Sequence[ConfigRequirement], tasks: Sequence[Task]) -> str:
    """Request text for the ``validate`` tool."""
    actions = "\n".join(f"- {task.action}" for task in flatten_tasks(list(tasks)))
    paths = "\n".join(f"- {req.path} ({req.type})" for req in missing)
    return f"Tasks:\n{actions}\n\nMissing configuration:\n{paths}"


class ValidateController(Controller):
    """Collects every missing config value before execution, then queues the execute units."""

    def __init__(self, service: AdvisoryService, store: ConfigStore, prompter: Prompter):
        self.service = service
        self.store = store
        self.prompter = prompter

    async def run(self, unit: Unit, handlers: Handlers) -> None:
        missing = unit.props["missing_config"]
        labels = {req.path: key_to_label(req.path) for req in missing}

        try:
            result = await self.service.process_with_tool(
                describe_missing(missing, unit.props["tasks"]), "validate"
            )
        except AdvisoryServiceError as e:
            handlers.on_error(format_error_message(e))
            return
        for task in result.tasks:
            key = task.params.get("key")
            if key in labels and task.action:
                labels[key] = task.action

        keys = [req.path for req in missing]
        handlers.update_state(labels=labels)
        values = await collect_values(self.prompter, self.store, keys, labels)
        if values is None:
            handlers.on_aborted("configuration")
            return

        try:
            self.store.save_flat(values, {req.path: req.type for req in missing})
        except ConfigError as e:
            handlers.on_error(format_error_message(e))
            return

        handlers.on_completed({"labels": labels, "values": values})
        handlers.complete_active(*unit.props.get("then", []))
