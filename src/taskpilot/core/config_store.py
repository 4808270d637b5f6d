"""User configuration values referenced by skill placeholders.

The values live in the same YAML file as the engine settings, one top-level
section per product or domain (``project``, ``env``...). Reads go through
an mtime check so a value saved mid-run is visible to the next validation.
"""

import copy
import logging
import math
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

import yaml

from ..errors import ConfigError
from ..utils.atomic_io import atomic_write_text
from .config import default_config_path

logger = logging.getLogger(__name__)

ScalarValue = Union[str, bool, int, float]


def _is_scalar(value: Any) -> bool:
    return isinstance(value, (str, bool, int, float)) and value is not None


def get_config_value(config: Mapping[str, Any], path: str) -> Optional[ScalarValue]:
    """Return the scalar leaf at dotted ``path`` or None."""
    current: Any = config
    for part in path.split("."):
        if not isinstance(current, Mapping):
            return None
        current = current.get(part)
        if current is None:
            return None
    return current if _is_scalar(current) else None


def has_config_path(config: Mapping[str, Any], path: str) -> bool:
    """True when ``path`` leads to a string, boolean or number."""
    return get_config_value(config, path) is not None


def parse_config_value(value: str, type_hint: Optional[str] = None) -> ScalarValue:
    """Convert a string entered by the user into a typed value.

    With a ``boolean``/``number`` hint the conversion is forced; without one
    ``true``/``false`` and numeric strings are inferred.

    Raises:
        ValueError: a ``number`` hint and text that is not a finite number
    """
    if type_hint == "boolean":
        return value.strip().lower() == "true"
    if type_hint == "number":
        return _to_number(value.strip())
    if type_hint == "string":
        return value

    stripped = value.strip()
    if stripped in ("true", "false"):
        return stripped == "true"
    if stripped:
        try:
            return _to_number(stripped)
        except ValueError:
            pass
    return value


def _to_number(value: str) -> Union[int, float]:
    number = float(value)
    if math.isnan(number) or math.isinf(number):
        raise ValueError(f"Not a finite number: {value}")
    return int(number) if number.is_integer() and "." not in value and "e" not in value.lower() else number


def unflatten_config(
    values: Mapping[str, str],
    types: Optional[Mapping[str, str]] = None,
) -> Dict[str, Dict[str, Any]]:
    """Turn ``{"a.b.c": "1"}`` into ``{"a": {"b": {"c": 1}}}`` grouped by section."""
    types = types or {}
    result: Dict[str, Dict[str, Any]] = {}
    for dotted_key, raw in values.items():
        parts = dotted_key.split(".")
        section = result.setdefault(parts[0], {})
        if len(parts) == 1:
            raise ConfigError(f"Config key '{dotted_key}' must include a section, e.g. '{dotted_key}.value'")
        current = section
        for part in parts[1:-1]:
            nxt = current.get(part)
            if not isinstance(nxt, dict):
                nxt = {}
                current[part] = nxt
            current = nxt
        if isinstance(raw, str):
            try:
                typed = parse_config_value(raw, types.get(dotted_key))
            except ValueError as e:
                raise ConfigError(f"Invalid value for '{dotted_key}': expected a number, got '{raw}'") from e
        else:
            typed = raw
        current[parts[-1]] = typed
    return result


def flatten_config(config: Mapping[str, Any], prefix: str = "") -> Dict[str, ScalarValue]:
    """Inverse of unflatten_config for scalar leaves."""
    flat: Dict[str, ScalarValue] = {}
    for key, value in config.items():
        full_key = f"{prefix}.{key}" if prefix else str(key)
        if isinstance(value, Mapping):
            flat.update(flatten_config(value, full_key))
        elif _is_scalar(value):
            flat[full_key] = value
    return flat


def _deep_merge(base: Dict[str, Any], updates: Mapping[str, Any]) -> Dict[str, Any]:
    for key, value in updates.items():
        if isinstance(value, Mapping) and isinstance(base.get(key), dict):
            _deep_merge(base[key], value)
        else:
            base[key] = dict(value) if isinstance(value, Mapping) else value
    return base


def merge_config(existing: Mapping[str, Any], section: str, values: Mapping[str, Any]) -> Dict[str, Any]:
    """Merge ``values`` into ``section`` and return the config with sorted sections."""
    merged = copy.deepcopy(dict(existing))
    current = merged.get(section)
    section_data = current if isinstance(current, dict) else {}
    merged[section] = _deep_merge(section_data, values)
    return {key: merged[key] for key in sorted(merged)}


def key_to_label(key: str) -> str:
    """``project.alpha.repo_path`` -> ``Project Alpha Repo Path``."""
    words = key.replace(".", " ").replace("_", " ").replace("-", " ").split()
    return " ".join(word[:1].upper() + word[1:] for word in words)


class ConfigStore:
    """Reads and writes the user's configuration file."""

    def __init__(self, path: Optional[Path] = None):
        self.path = path or default_config_path()
        self._cache: Optional[Dict[str, Any]] = None
        self._cache_mtime: Optional[float] = None

    def load(self) -> Dict[str, Any]:
        """Return the parsed file, or {} when missing or unreadable."""
        try:
            mtime = self.path.stat().st_mtime
        except FileNotFoundError:
            self._cache = None
            return {}

        if self._cache is not None and self._cache_mtime == mtime:
            return self._cache

        try:
            data = yaml.safe_load(self.path.read_text()) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.warning(f"Failed to load user config {self.path}: {e}")
            return {}

        if not isinstance(data, dict):
            logger.warning(f"User config {self.path} is not a mapping; ignoring it")
            return {}

        self._cache = data
        self._cache_mtime = mtime
        return data

    def has_path(self, path: str) -> bool:
        return has_config_path(self.load(), path)

    def get_value(self, path: str) -> Optional[ScalarValue]:
        return get_config_value(self.load(), path)

    def missing_paths(self, paths: Iterable[str]) -> List[str]:
        config = self.load()
        return [path for path in paths if not has_config_path(config, path)]

    def save_section(self, section: str, values: Mapping[str, Any]) -> None:
        """Merge ``values`` into ``section`` and write the file atomically.

        The temp file is parsed back before it replaces the original.
        """
        merged = merge_config(self.load(), section, values)
        content = yaml.safe_dump(merged, sort_keys=False, default_flow_style=False)

        try:
            atomic_write_text(self.path, content, verify=_verify_yaml)
        except yaml.YAMLError as e:
            raise ConfigError(f"Refusing to save configuration: generated YAML is invalid ({e})") from e
        except OSError as e:
            raise ConfigError(f"Failed to save configuration to {self.path}: {e}") from e

        self._cache = None
        logger.debug(f"Saved section '{section}' to {self.path}")

    def save_flat(
        self,
        values: Mapping[str, str],
        types: Optional[Mapping[str, str]] = None,
    ) -> Dict[str, Dict[str, Any]]:
        """Save dotted-key values, one section at a time. Returns what was written."""
        by_section = unflatten_config(values, types)
        for section, section_values in by_section.items():
            self.save_section(section, section_values)
        return by_section


def _verify_yaml(path: Path) -> None:
    yaml.safe_load(path.read_text())
