"""Exception hierarchy for the orchestration engine.

Composition errors are raised by the skill layer and caught at the router
boundary, where they become feedback units. Malformed skills and unset config
paths are not exceptions; the execution validator returns them as data.
Advisory-service errors end the current flow with a failed feedback unit.
"""

from typing import List


class TaskpilotError(Exception):
    """Base class for all engine errors."""


class SkillCompositionError(TaskpilotError):
    """Skill references could not be expanded."""


class CircularSkillReferenceError(SkillCompositionError):
    """A skill reaches itself through its own execution references."""

    def __init__(self, path: List[str]):
        self.path = list(path)
        super().__init__(f"Circular skill reference detected: {' → '.join(self.path)}")


class UnknownSkillError(SkillCompositionError):
    """An execution line references a skill that is not in the library."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(
            f"Referenced skill \"{name}\" does not exist. "
            "Create it in your skills directory or fix the reference."
        )


class ExecutionError(TaskpilotError):
    """Commands for the tasks could not be prepared."""


class UnresolvedPlaceholdersError(ExecutionError):
    """Placeholders are still present after config substitution."""

    def __init__(self, count: int):
        self.count = count
        noun = "placeholder" if count == 1 else "placeholders"
        super().__init__(
            f"Cannot run the command: {count} configuration {noun} could not be resolved. "
            "Set the missing values with `taskpilot config set`."
        )


class AdvisoryServiceError(TaskpilotError):
    """The advisory service returned a malformed, truncated or failed response."""


class MixedTaskTypesError(TaskpilotError):
    """Tasks that survived confirmation do not share a single type."""

    def __init__(self, types: List[str]):
        self.types = list(types)
        super().__init__(
            f"Mixed task types are not supported: {', '.join(self.types)}. "
            "Split the request so every step has the same kind."
        )


class ConfigError(TaskpilotError):
    """Configuration file could not be read or written."""
