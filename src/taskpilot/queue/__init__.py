"""Units of work and the lifecycle that moves them from Queue to Timeline."""

from .handlers import Handlers
from .units import FeedbackType, Unit, UnitKind, UnitStatus
from .workflow import Controller, LifecycleManager, WorkflowState, exit_code

__all__ = [
    "Handlers",
    "FeedbackType",
    "Unit",
    "UnitKind",
    "UnitStatus",
    "Controller",
    "LifecycleManager",
    "WorkflowState",
    "exit_code",
]
