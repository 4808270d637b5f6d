"""Engine exceptions and user-facing error translation."""

from .exceptions import (
    AdvisoryServiceError,
    CircularSkillReferenceError,
    ConfigError,
    ExecutionError,
    MixedTaskTypesError,
    SkillCompositionError,
    TaskpilotError,
    UnknownSkillError,
    UnresolvedPlaceholdersError,
)
from .translator import ErrorTranslator, UserFriendlyError, format_error_message

__all__ = [
    "AdvisoryServiceError",
    "CircularSkillReferenceError",
    "ConfigError",
    "ExecutionError",
    "MixedTaskTypesError",
    "SkillCompositionError",
    "TaskpilotError",
    "UnknownSkillError",
    "UnresolvedPlaceholdersError",
    "ErrorTranslator",
    "UserFriendlyError",
    "format_error_message",
]
