"""Configuration loading and validation."""

import logging
import os
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = ".taskpilotrc"
CONFIG_PATH_ENV = "TASKPILOT_CONFIG"


class DebugLevel(str, Enum):
    """How much internal detail is logged and rendered."""
    NONE = "none"
    INFO = "info"
    VERBOSE = "verbose"


class LLMConfig(BaseModel):
    """Advisory service (language model) settings."""
    model: str = "anthropic/claude-haiku-4-5-20251001"
    api_key: Optional[str] = None
    api_base: Optional[str] = None
    max_tokens: int = 1024
    temperature: float = 0.0
    timeout: float = 120

    @field_validator('api_base')
    @classmethod
    def validate_api_base(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.startswith(("http://", "https://")):
            raise ValueError(
                f"api_base must start with http:// or https://, got '{v}'"
            )
        return v

    @field_validator('max_tokens')
    @classmethod
    def validate_max_tokens(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"max_tokens must be >= 1, got {v}")
        return v


class SettingsConfig(BaseModel):
    """Runtime behaviour settings."""
    debug: DebugLevel = DebugLevel.NONE
    # Default per-command timeout in milliseconds when the command has none
    command_timeout_ms: int = 30_000
    # Lines of command output kept in execution state
    output_lines: int = 128


class EngineConfig(BaseSettings):
    """Main engine configuration.

    Sections the engine does not know about (user-defined values referenced by
    skill placeholders) are kept as extras and reached through ConfigStore.
    """
    llm: LLMConfig = Field(default_factory=LLMConfig)
    settings: SettingsConfig = Field(default_factory=SettingsConfig)
    skills_dir: Path = Field(default_factory=lambda: Path.home() / ".taskpilot" / "skills")
    log_dir: Optional[Path] = None

    class Config:
        env_prefix = "TASKPILOT_"
        env_nested_delimiter = "__"
        extra = "allow"


# Engine settings the config tool may offer, with descriptions
BUILTIN_CONFIG_KEYS = {
    "llm.model": "Language model used for planning (litellm model name)",
    "llm.api_key": "API key for the language model provider",
    "llm.api_base": "Custom API base URL",
    "llm.max_tokens": "Maximum tokens per advisory response",
    "llm.timeout": "Advisory request timeout in seconds",
    "settings.debug": "Debug level: none, info or verbose",
    "settings.command_timeout_ms": "Default command timeout in milliseconds",
    "settings.output_lines": "Lines of command output kept per task",
}


def default_config_path() -> Path:
    """Config file location: $TASKPILOT_CONFIG, else ~/.taskpilotrc."""
    override = os.environ.get(CONFIG_PATH_ENV)
    if override:
        return Path(override).expanduser()
    return Path.home() / CONFIG_FILE_NAME


# Module-level mtime-based config cache: path -> (parsed_config, file_mtime)
_config_cache: Dict[str, tuple] = {}


def _get_cached_or_load(resolved_path: Path, loader):
    """Return cached config if file mtime unchanged, else reload."""
    key = str(resolved_path)
    try:
        current_mtime = resolved_path.stat().st_mtime
    except FileNotFoundError:
        _config_cache.pop(key, None)
        return None

    cached = _config_cache.get(key)
    if cached is not None:
        cached_result, cached_mtime = cached
        if cached_mtime == current_mtime:
            return cached_result

    result = loader(resolved_path)
    _config_cache[key] = (result, current_mtime)
    return result


def _load_config_from_file(config_path: Path) -> EngineConfig:
    """Internal loader for engine config (no caching)."""
    with open(config_path) as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ValueError(f"Config file {config_path} must contain a mapping at the top level")

    data = _expand_env_vars(data)
    return EngineConfig(**data)


def load_config(config_path: Optional[Path] = None) -> EngineConfig:
    """Load engine configuration from YAML file.

    Uses mtime-based caching - returns cached config if the file hasn't changed.
    """
    config_path = config_path or default_config_path()
    if not config_path.exists():
        logger.warning(
            f"Config file not found: {config_path}. Using default configuration. "
            "Run 'taskpilot config set <key> <value>' to create it."
        )
        return EngineConfig()

    resolved = config_path.resolve()
    result = _get_cached_or_load(resolved, _load_config_from_file)
    return result if result is not None else EngineConfig()


def clear_config_cache() -> None:
    """Clear the module-level config cache. Useful for tests."""
    _config_cache.clear()


def _expand_env_vars(data: Any, _path: str = "") -> Any:
    """Recursively expand ``${VAR}`` values in config data.

    Args:
        data: Config data to process
        _path: Internal tracking for error messages (e.g., "llm.api_key")
    """
    if isinstance(data, dict):
        return {k: _expand_env_vars(v, f"{_path}.{k}" if _path else k) for k, v in data.items()}
    elif isinstance(data, list):
        return [_expand_env_vars(item, f"{_path}[{i}]") for i, item in enumerate(data)]
    elif isinstance(data, str) and data.startswith("${") and data.endswith("}"):
        env_var = data[2:-1]
        value = os.environ.get(env_var)
        if value is None:
            logger.warning(
                f"Environment variable '{env_var}' not set (referenced at config path: {_path or 'root'}). "
                f"The literal string '{data}' will be used, which may cause errors."
            )
            return data
        return value
    return data
