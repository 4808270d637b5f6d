"""Placeholder discovery and substitution.

A placeholder is a dotted config path in braces: ``{project.alpha.repo}``.
A path segment written in upper case (``{project.VARIANT.repo}``) is a
variant slot, filled with the task's variant before the config lookup.
Shell parameter expansions such as ``${HOME}`` are not placeholders.
"""

import re
from typing import Any, List, Mapping, Optional, Sequence, Tuple

from ..errors import UnresolvedPlaceholdersError
from .models import PlaceholderInfo

_SEGMENT = r"[A-Za-z_][A-Za-z0-9_-]*"
PLACEHOLDER_RE = re.compile(r"(?<!\$)\{(" + _SEGMENT + r"(?:\." + _SEGMENT + r")*)\}")


def is_upper_case(segment: str) -> bool:
    return segment == segment.upper() and segment != segment.lower()


def _to_info(match: "re.Match[str]") -> PlaceholderInfo:
    path = tuple(match.group(1).split("."))
    variant_index = next((i for i, part in enumerate(path) if is_upper_case(part)), None)
    return PlaceholderInfo(original=match.group(0), path=path, variant_index=variant_index)


def parse_placeholder(text: str) -> Optional[PlaceholderInfo]:
    """First placeholder in ``text``, or None."""
    match = PLACEHOLDER_RE.search(text)
    return _to_info(match) if match else None


def extract_placeholders(text: str) -> List[PlaceholderInfo]:
    return [_to_info(match) for match in PLACEHOLDER_RE.finditer(text)]


def has_placeholders(text: str) -> bool:
    return PLACEHOLDER_RE.search(text) is not None


def resolve_variant(path: Sequence[str], variant: str) -> Tuple[str, ...]:
    """Replace every upper-case segment with ``variant``."""
    return tuple(variant if is_upper_case(part) else part for part in path)


def path_to_string(path: Sequence[str]) -> str:
    return ".".join(path)


def resolve_from_config(config: Mapping[str, Any], path: Sequence[str]) -> Optional[Any]:
    current: Any = config
    for part in path:
        if not isinstance(current, Mapping):
            return None
        current = current.get(part)
        if current is None:
            return None
    if isinstance(current, (str, bool, int, float)):
        return current
    return None


def _format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def substitute_variant(text: str, variant: str) -> str:
    """Fill variant slots in every placeholder of ``text``."""
    def replace(match: "re.Match[str]") -> str:
        info = _to_info(match)
        if not info.has_variant:
            return info.original
        return "{" + path_to_string(resolve_variant(info.path, variant)) + "}"

    return PLACEHOLDER_RE.sub(replace, text)


def replace_placeholders(text: str, config: Mapping[str, Any]) -> str:
    """Substitute config values; unknown placeholders are kept as written."""
    def replace(match: "re.Match[str]") -> str:
        value = resolve_from_config(config, match.group(1).split("."))
        return match.group(0) if value is None else _format_value(value)

    return PLACEHOLDER_RE.sub(replace, text)


def get_required_config_paths(text: str) -> List[str]:
    """Distinct non-variant paths in ``text``, first occurrence first."""
    paths: List[str] = []
    for info in extract_placeholders(text):
        if info.has_variant:
            continue
        if info.dotted not in paths:
            paths.append(info.dotted)
    return paths


def validate_placeholder_resolution(command: str) -> None:
    """Raise when ``command`` still contains placeholders."""
    remaining = PLACEHOLDER_RE.findall(command)
    if remaining:
        raise UnresolvedPlaceholdersError(len(remaining))
