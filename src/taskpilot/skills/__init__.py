"""Skill documents: parsing, lookup, expansion and validation."""

from .expander import (
    expand_skill,
    expand_skill_references,
    expand_task,
    get_referenced_skills,
    has_no_cycles,
    parse_skill_reference,
)
from .library import SkillLibrary
from .models import ConfigRequirement, PlaceholderInfo, SkillDefinition
from .parser import parse_skill_markdown
from .validator import ExecuteValidationResult, ExecutionValidator, SkillIssues

__all__ = [
    "expand_skill",
    "expand_skill_references",
    "expand_task",
    "get_referenced_skills",
    "has_no_cycles",
    "parse_skill_reference",
    "SkillLibrary",
    "ConfigRequirement",
    "PlaceholderInfo",
    "SkillDefinition",
    "parse_skill_markdown",
    "ExecuteValidationResult",
    "ExecutionValidator",
    "SkillIssues",
]
