"""Skill library: loads skill documents and looks them up by name."""

import logging
import re
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional

from .models import SkillDefinition
from .parser import display_name_to_key, parse_skill_markdown

logger = logging.getLogger(__name__)

SKILLS_PROMPT_HEADER = """

## Available Skills

The following skills define domain-specific workflows. When the user's
query matches a skill, incorporate the skill's steps into your plan.

Skills marked with (INCOMPLETE) have validation errors or need more
documentation, and cannot be executed. These should be listed in
introspection with their markers.

**IMPORTANT**: When creating options from skill descriptions, do NOT use
brackets for additional information. Use commas instead. For example:
- CORRECT: "Build project Alpha, the legacy version"
- WRONG: "Build project Alpha (the legacy version)"

"""

_NAME_SECTION_RE = re.compile(r"^(#{1,6}\s+Name\s*\n+)(.+?)(\n|$)", re.IGNORECASE | re.MULTILINE)


class SkillLibrary:
    """In-memory collection of parsed skills, invalid ones included.

    Lookup is by display name first, then by key, then by alias, so a
    reference written as ``[ Deploy App ]`` finds ``deploy-app.md``.
    """

    def __init__(self, skills: Iterable[SkillDefinition] = ()):
        self._skills: Dict[str, SkillDefinition] = {}
        self._by_name: Dict[str, SkillDefinition] = {}
        self._by_alias: Dict[str, SkillDefinition] = {}
        for skill in skills:
            self.add(skill)

    @classmethod
    def from_directory(cls, directory: Path) -> "SkillLibrary":
        """Load every ``*.md`` file in ``directory``. A missing directory is empty."""
        library = cls()
        if not directory.is_dir():
            logger.debug(f"Skills directory {directory} does not exist")
            return library

        for path in sorted(directory.iterdir()):
            if not path.is_file() or path.suffix.lower() != ".md":
                continue
            try:
                content = path.read_text(encoding="utf-8")
            except OSError as e:
                logger.warning(f"Could not read skill file {path}: {e}")
                continue
            skill = parse_skill_markdown(path.stem, content)
            if not skill.is_valid:
                logger.warning(f"Skill '{skill.name}' is invalid: {skill.validation_error}")
            library.add(skill)

        logger.debug(f"Loaded {len(library)} skills from {directory}")
        return library

    def add(self, skill: SkillDefinition) -> None:
        if skill.key in self._skills:
            logger.warning(f"Duplicate skill key '{skill.key}', replacing earlier definition")
        self._skills[skill.key] = skill
        self._by_name[skill.name] = skill
        for alias in skill.aliases:
            self._by_alias.setdefault(alias.lower(), skill)

    def lookup(self, name: str) -> Optional[SkillDefinition]:
        """Find a skill by display name, key or alias."""
        skill = self._by_name.get(name)
        if skill is not None:
            return skill
        skill = self._skills.get(name) or self._skills.get(display_name_to_key(name))
        if skill is not None:
            return skill
        return self._by_alias.get(name.lower())

    def __call__(self, name: str) -> Optional[SkillDefinition]:
        return self.lookup(name)

    def __iter__(self) -> Iterator[SkillDefinition]:
        return iter(self._skills.values())

    def __len__(self) -> int:
        return len(self._skills)

    def __contains__(self, name: str) -> bool:
        return self.lookup(name) is not None

    def sources_with_markers(self) -> List[str]:
        """Raw documents, with ``(INCOMPLETE)`` appended to incomplete names."""
        sources = []
        for skill in self:
            source = skill.source or f"### Name\n{skill.name}\n\n### Description\n{skill.description}\n"
            if skill.is_incomplete:
                if _NAME_SECTION_RE.search(source):
                    source = _NAME_SECTION_RE.sub(
                        lambda m: f"{m.group(1)}{m.group(2)} (INCOMPLETE){m.group(3)}", source, count=1
                    )
                else:
                    source = f"### Name\n{skill.display_name}\n\n{source}"
            sources.append(source)
        return sources

    def format_for_prompt(self) -> str:
        """Skills section appended to the advisory service's system prompt."""
        sources = self.sources_with_markers()
        if not sources:
            return ""
        return SKILLS_PROMPT_HEADER + "\n\n".join(sources)
