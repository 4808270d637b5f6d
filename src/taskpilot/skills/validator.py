"""Pre-execution checks for planned tasks.

Two kinds of problem are reported before anything runs: skills whose
documents are malformed, and configuration paths that commands need but the
user has not set yet.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, List, Mapping, Optional, Sequence, Set

from ..core.config_store import has_config_path
from ..core.task import Task, flatten_tasks
from .expander import expand_skill_references, get_referenced_skills
from .models import ConfigRequirement, SkillDefinition
from .parser import get_config_type
from .placeholders import extract_placeholders, path_to_string, resolve_variant

logger = logging.getLogger(__name__)


@dataclass
class SkillIssues:
    """Validation problems for one skill."""
    skill: str
    issues: List[str]


@dataclass
class ExecuteValidationResult:
    """Outcome of validating tasks before execution."""
    validation_errors: List[SkillIssues] = field(default_factory=list)
    missing_config: List[ConfigRequirement] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.validation_errors and not self.missing_config


class ExecutionValidator:
    """Finds malformed skills and unset configuration for a task list.

    Args:
        lookup: skill lookup by name (a SkillLibrary works)
        load_config: returns the current user configuration mapping
    """

    def __init__(
        self,
        lookup: Callable[[str], Optional[SkillDefinition]],
        load_config: Callable[[], Mapping[str, Any]],
    ):
        self._lookup = lookup
        self._load_config = load_config

    def validate(self, tasks: Sequence[Task]) -> ExecuteValidationResult:
        """Validate ``tasks`` (groups are checked through their leaves).

        Raises:
            SkillCompositionError: a skill reference is circular or unknown
        """
        leaves = flatten_tasks(list(tasks))

        errors = self._find_invalid_skills(leaves)
        if errors:
            return ExecuteValidationResult(validation_errors=errors)

        user_config = self._load_config()
        seen: Set[str] = set()
        missing: List[ConfigRequirement] = []

        def require(path: str, config_type: str) -> None:
            if path in seen:
                return
            seen.add(path)
            if not has_config_path(user_config, path):
                missing.append(ConfigRequirement(path=path, type=config_type))

        for task in leaves:
            skill_name = task.skill
            if skill_name:
                skill = self._lookup(skill_name)
                if skill is None:
                    logger.debug(f"Task '{task.action}' names unknown skill '{skill_name}'")
                    continue
                self._collect_skill_paths(skill, task.variant, require)
            else:
                for placeholder in extract_placeholders(task.action):
                    if placeholder.has_variant:
                        continue
                    require(placeholder.dotted, "string")

        return ExecuteValidationResult(missing_config=missing)

    def _find_invalid_skills(self, tasks: Sequence[Task]) -> List[SkillIssues]:
        errors: List[SkillIssues] = []
        seen: Set[str] = set()
        for task in tasks:
            name = task.skill
            if not name or name in seen:
                continue
            seen.add(name)
            skill = self._lookup(name)
            if skill is not None and not skill.is_valid:
                errors.append(SkillIssues(
                    skill=skill.name,
                    issues=[skill.validation_error or "Unknown validation error"],
                ))
        return errors

    def _collect_skill_paths(
        self,
        skill: SkillDefinition,
        variant: Optional[str],
        require: Callable[[str, str], None],
    ) -> None:
        commands = expand_skill_references(skill.execution, self._lookup, (skill.name,))
        schemas = [skill.config] + [
            referenced.config
            for referenced in (self._lookup(name) for name in get_referenced_skills(skill.execution, self._lookup))
            if referenced is not None
        ]

        for command in commands:
            for placeholder in extract_placeholders(command):
                if placeholder.has_variant:
                    if not variant:
                        continue
                    path = path_to_string(resolve_variant(placeholder.path, variant))
                else:
                    path = placeholder.dotted
                config_type = next(
                    (t for t in (get_config_type(schema, path) for schema in schemas) if t),
                    "string",
                )
                require(path, config_type)
