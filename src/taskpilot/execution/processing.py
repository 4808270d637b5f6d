"""Turn confirmed execute tasks into concrete shell commands.

Tasks planned from valid skills are expanded locally: the skill's execution
lines (references included) become commands, variant slots are filled from
the task and config placeholders from the user's configuration. Any other
task list is translated by the advisory service's ``execute`` tool.
Either way, no command may leave here with an unresolved placeholder.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, List, Mapping, Optional, Sequence

from ..core.task import Task
from ..errors import ExecutionError
from ..llm.base import AdvisoryService
from ..skills.expander import SkillLookup, expand_skill_references
from ..skills.models import SkillDefinition
from ..skills.placeholders import (
    replace_placeholders,
    substitute_variant,
    validate_placeholder_resolution,
)
from .models import ExecuteCommand

logger = logging.getLogger(__name__)


@dataclass
class PreparedExecution:
    """Commands ready for the pipeline, with the texts shown around them."""
    commands: List[ExecuteCommand] = field(default_factory=list)
    message: str = ""
    summary: str = ""


def _skill_for(task: Task, lookup: SkillLookup) -> Optional[SkillDefinition]:
    name = task.skill
    if name is None:
        return None
    skill = lookup(name)
    if skill is None or not skill.is_valid:
        return None
    return skill


def _selected_lines(task: Task, skill: SkillDefinition) -> List[int]:
    """Indexes of the execution lines this task stands for."""
    step = task.params.get("step")
    if isinstance(step, (int, float)) and not isinstance(step, bool):
        index = int(step) - 1
        if 0 <= index < len(skill.execution):
            return [index]
        logger.warning(
            f"Task '{task.action}' asks for step {step} but skill '{skill.name}' has "
            f"{len(skill.execution)} execution lines; running all of them"
        )
    return list(range(len(skill.execution)))


def expand_skill_commands(
    task: Task,
    skill: SkillDefinition,
    lookup: SkillLookup,
    user_config: Mapping[str, Any],
) -> List[ExecuteCommand]:
    """Concrete commands for one skill-backed task."""
    variant = task.variant
    commands: List[ExecuteCommand] = []
    for index in _selected_lines(task, skill):
        description = skill.steps[index] if index < len(skill.steps) else task.action
        for line in expand_skill_references([skill.execution[index]], lookup, (skill.name,)):
            if variant:
                line = substitute_variant(line, variant)
            resolved = replace_placeholders(line, user_config)
            validate_placeholder_resolution(resolved)
            commands.append(ExecuteCommand(description=description, command=resolved))
    return commands


def format_tasks_for_service(tasks: Sequence[Task], user_config: Mapping[str, Any]) -> str:
    lines = []
    for task in tasks:
        action = replace_placeholders(task.action, user_config)
        params = f" (params: {json.dumps(task.params, sort_keys=True)})" if task.params else ""
        lines.append(f"- {action}{params}")
    return "\n".join(lines)


async def prepare_commands(
    tasks: Sequence[Task],
    service: AdvisoryService,
    lookup: SkillLookup,
    load_config: Callable[[], Mapping[str, Any]],
) -> PreparedExecution:
    """Produce the command list for ``tasks``.

    Raises:
        UnresolvedPlaceholdersError: a command still has placeholders
        SkillCompositionError: a skill reference is circular or unknown
        AdvisoryServiceError: the service could not translate the tasks
        ExecutionError: the service declined to produce commands
    """
    user_config = load_config()
    skills = [_skill_for(task, lookup) for task in tasks]

    if tasks and all(skill is not None for skill in skills):
        commands: List[ExecuteCommand] = []
        for task, skill in zip(tasks, skills):
            commands.extend(expand_skill_commands(task, skill, lookup, user_config))
        logger.debug(f"Expanded {len(tasks)} skill tasks into {len(commands)} commands")
        return PreparedExecution(commands=commands)

    result = await service.process_with_tool(format_tasks_for_service(tasks, user_config), "execute")
    if result.error and not result.commands:
        raise ExecutionError(result.error)
    commands = []
    for command in result.commands:
        resolved = replace_placeholders(command.command, user_config)
        validate_placeholder_resolution(resolved)
        commands.append(command.model_copy(update={"command": resolved}))
    return PreparedExecution(commands=commands, message=result.message, summary=result.summary or "")
