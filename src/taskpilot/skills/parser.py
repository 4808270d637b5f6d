"""Parse skill Markdown documents.

A skill document is a series of Markdown headers (any level) naming
sections: Name, Description, Aliases, Config, Steps and Execution. Steps,
Aliases and Execution are bullet lists; Config is a YAML mapping whose leaves
are the type tags ``string``, ``boolean`` or ``number``.

Example::

    ### Name
    Build Project

    ### Description
    Build a product variant from its repository.

    ### Config
    product:
      VARIANT:
        path: string

    ### Steps
    - Enter the repository
    - Compile

    ### Execution
    - cd {product.VARIANT.path}
    - Compile: make all
"""

import logging
import re
from typing import Any, Dict, List, Optional

import yaml

from .expander import is_skill_reference
from .models import SkillDefinition

logger = logging.getLogger(__name__)

MIN_DESCRIPTION_LENGTH = 20
CONFIG_TYPES = ("string", "boolean", "number")

HEADER_RE = re.compile(r"^#{1,6}\s+(.+)$")
BULLET_RE = re.compile(r"^[-*]\s+(.+)$")
# "Label: command" - a short capitalised label followed by ": "
LABEL_RE = re.compile(r"^[A-Z][A-Za-z0-9 _-]{0,40}:\s+(\S.*)$")


def key_to_display_name(key: str) -> str:
    """``deploy-app`` -> ``Deploy App``."""
    return " ".join(word[:1].upper() + word[1:] for word in key.split("-") if word)


def display_name_to_key(name: str) -> str:
    """``Deploy App`` -> ``deploy-app``."""
    key = re.sub(r"\s+", "-", name.strip().lower())
    return re.sub(r"[^a-z0-9-]", "", key)


def strip_label(entry: str) -> str:
    """Drop a leading ``Label:`` from an execution entry. References are kept."""
    if is_skill_reference(entry):
        return entry
    match = LABEL_RE.match(entry)
    return match.group(1).strip() if match else entry


def _extract_bullets(content: str) -> List[str]:
    items = []
    for line in content.split("\n"):
        match = BULLET_RE.match(line.strip())
        if match:
            items.append(match.group(1).strip())
    return items


def _parse_config_schema(content: str) -> Optional[Dict[str, Any]]:
    try:
        parsed = yaml.safe_load(content)
    except yaml.YAMLError as e:
        logger.warning(f"Failed to parse config schema in skill: {e}")
        return None
    return parsed if isinstance(parsed, dict) else None


def extract_sections(content: str) -> Dict[str, Any]:
    """Split a document into its known sections. Empty sections are omitted."""
    sections: Dict[str, Any] = {}
    current: Optional[str] = None
    buffer: List[str] = []

    def flush() -> None:
        if current is None:
            return
        text = "\n".join(buffer).strip()
        if not text:
            return
        if current in ("name", "description"):
            sections[current] = text
        elif current in ("aliases", "steps"):
            sections[current] = _extract_bullets(text)
        elif current == "execution":
            sections[current] = [strip_label(item) for item in _extract_bullets(text)]
        elif current == "config":
            schema = _parse_config_schema(text)
            if schema is not None:
                sections[current] = schema

    for line in content.split("\n"):
        header = HEADER_RE.match(line)
        if header:
            flush()
            current = header.group(1).strip().lower()
            buffer = []
        elif current is not None:
            buffer.append(line)
    flush()

    return sections


def validate_skill_structure(sections: Dict[str, Any]) -> Optional[str]:
    """Return the first structural problem, or None for a well-formed skill."""
    if not sections.get("description"):
        return "The skill file is missing a Description section"
    steps = sections.get("steps") or []
    if not steps:
        return "The skill file is missing a Steps section"
    execution = sections.get("execution") or []
    if not execution:
        return "The skill file is missing an Execution section"
    if len(steps) != len(execution):
        return f"The skill has {len(steps)} steps but {len(execution)} execution lines"
    return None


def parse_skill_markdown(key: str, content: str) -> SkillDefinition:
    """Parse one document. Malformed skills are returned with ``is_valid=False``."""
    sections = extract_sections(content)
    name = sections.get("name") or key_to_display_name(key)
    error = validate_skill_structure(sections)

    if error:
        return SkillDefinition(
            key=key,
            name=name,
            description=sections.get("description", ""),
            aliases=sections.get("aliases", []),
            steps=sections.get("steps", []),
            execution=sections.get("execution", []),
            config=sections.get("config"),
            is_valid=False,
            is_incomplete=True,
            validation_error=error,
            source=content,
        )

    description = sections["description"]
    return SkillDefinition(
        key=key,
        name=name,
        description=description,
        aliases=sections.get("aliases", []),
        steps=sections["steps"],
        execution=sections["execution"],
        config=sections.get("config"),
        is_valid=True,
        is_incomplete=len(description.strip()) < MIN_DESCRIPTION_LENGTH,
        source=content,
    )


def generate_config_paths(schema: Dict[str, Any], prefix: str = "") -> List[str]:
    """All leaf paths declared by a config schema."""
    paths = []
    for key, value in schema.items():
        full_key = f"{prefix}.{key}" if prefix else str(key)
        if isinstance(value, str):
            paths.append(full_key)
        elif isinstance(value, dict):
            paths.extend(generate_config_paths(value, full_key))
    return paths


def get_config_type(schema: Optional[Dict[str, Any]], path: str) -> Optional[str]:
    """Declared type of ``path``.

    Upper-case schema segments (``VARIANT``) match any concrete segment, so
    ``product.alpha.path`` finds ``product.VARIANT.path``.
    """
    if not schema:
        return None
    current: Any = schema
    for part in path.split("."):
        if not isinstance(current, dict):
            return None
        if part in current:
            current = current[part]
            continue
        wildcard = next(
            (k for k in current if isinstance(k, str) and k == k.upper() and k != k.lower()),
            None,
        )
        if wildcard is None:
            return None
        current = current[wildcard]
    if isinstance(current, str) and current in CONFIG_TYPES:
        return current
    return None
