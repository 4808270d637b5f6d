"""One controller per unit kind."""

from .config import ConfigController, ValidateController
from .execute import ExecuteController
from .info import AnswerController, IntrospectController
from .planning import CommandController, ConfirmController, RefinementController, ScheduleController

__all__ = [
    "AnswerController",
    "CommandController",
    "ConfigController",
    "ConfirmController",
    "ExecuteController",
    "IntrospectController",
    "RefinementController",
    "ScheduleController",
    "ValidateController",
]
