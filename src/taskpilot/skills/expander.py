"""Expand skill references into flat command lists.

An execution entry of the form ``[ Skill Name ]`` (spaces inside the brackets
are required) stands for the referenced skill's whole execution list.
Expansion is depth-first and in place. The set of names checked for cycles is
the current expansion path only, so a skill reached through two sibling
references expands twice, while a skill reaching itself is an error.
"""

import re
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

from ..core.task import Task
from ..errors import CircularSkillReferenceError, SkillCompositionError, UnknownSkillError
from .models import SkillDefinition
from .placeholders import extract_placeholders

SKILL_REFERENCE_RE = re.compile(r"^\[\s+(.+?)\s+\]$")

SkillLookup = Callable[[str], Optional[SkillDefinition]]


def parse_skill_reference(line: str) -> Optional[str]:
    """``"[ My Skill ]"`` -> ``"My Skill"``; anything else -> None."""
    match = SKILL_REFERENCE_RE.match(line.strip())
    return match.group(1) if match else None


def is_skill_reference(line: str) -> bool:
    return parse_skill_reference(line) is not None


def expand_skill_references(
    commands: Sequence[str],
    lookup: SkillLookup,
    path: Tuple[str, ...] = (),
) -> List[str]:
    """Return ``commands`` with every reference replaced by its expansion.

    Raises:
        CircularSkillReferenceError: a name re-enters the current path
        UnknownSkillError: a referenced name is not found by ``lookup``
    """
    expanded: List[str] = []
    for line in commands:
        name = parse_skill_reference(line)
        if name is None:
            expanded.append(line)
            continue

        if name in path:
            raise CircularSkillReferenceError([*path, name])

        skill = lookup(name)
        if skill is None:
            raise UnknownSkillError(name)

        expanded.extend(expand_skill_references(skill.execution, lookup, (*path, name)))
    return expanded


def get_referenced_skills(
    commands: Sequence[str],
    lookup: SkillLookup,
    path: Tuple[str, ...] = (),
) -> List[str]:
    """Every skill name reachable from ``commands``, nested ones included.

    Cycles and unknown names are skipped rather than raised.
    """
    referenced: List[str] = []
    for line in commands:
        name = parse_skill_reference(line)
        if name is None or name in path:
            continue
        if name not in referenced:
            referenced.append(name)
        skill = lookup(name)
        if skill is None:
            continue
        for nested in get_referenced_skills(skill.execution, lookup, (*path, name)):
            if nested not in referenced:
                referenced.append(nested)
    return referenced


def has_no_cycles(commands: Sequence[str], lookup: SkillLookup) -> bool:
    """False when expansion would hit a circular reference.

    Unknown references are not a cycle and propagate as UnknownSkillError.
    """
    try:
        expand_skill_references(commands, lookup)
    except CircularSkillReferenceError:
        return False
    return True


def collect_config_paths(commands: Sequence[str]) -> List[str]:
    """Distinct placeholder paths across ``commands``, first occurrence first.

    Variant placeholders are reported as written (``a.VARIANT.b``).
    """
    paths: List[str] = []
    for command in commands:
        for info in extract_placeholders(command):
            if info.dotted not in paths:
                paths.append(info.dotted)
    return paths


@dataclass(frozen=True)
class ExpandedSkill:
    """Result of expanding one skill for a task."""
    skill_name: str
    commands: List[str]
    config: List[str]


def expand_skill(skill: SkillDefinition, lookup: SkillLookup) -> ExpandedSkill:
    """Expand a skill's own execution list, with the skill itself on the path."""
    if not skill.is_valid:
        raise SkillCompositionError(
            f"Skill \"{skill.name}\" cannot be expanded: {skill.validation_error}"
        )
    commands = expand_skill_references(skill.execution, lookup, (skill.name,))
    return ExpandedSkill(
        skill_name=skill.name,
        commands=commands,
        config=collect_config_paths(commands),
    )


def expand_task(task: Task, lookup: SkillLookup) -> Tuple[List[str], Task]:
    """Expanded commands for a skill-backed task plus the task with ``config`` filled.

    Library helper for callers that want a task's config paths up front. The
    engine itself checks config through ExecutionValidator and builds
    commands in ``execution.processing``, so it never fills ``Task.config``.
    """
    name = task.skill
    if name is None:
        return [], task
    skill = lookup(name)
    if skill is None:
        raise UnknownSkillError(name)
    result = expand_skill(skill, lookup)
    merged = list(task.config)
    for path in result.config:
        if path not in merged:
            merged.append(path)
    return result.commands, task.model_copy(update={"config": merged})

