"""Core models and configuration."""

from .task import Task, TaskType
from .config import DebugLevel, EngineConfig, load_config
from .config_store import ConfigStore

__all__ = [
    "Task",
    "TaskType",
    "DebugLevel",
    "EngineConfig",
    "load_config",
    "ConfigStore",
]
