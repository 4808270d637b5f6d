"""Advisory service interface."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from ..core.task import Task
from ..execution.models import ExecuteCommand


class CapabilityOrigin(str, Enum):
    SYSTEM = "system"
    META = "meta"
    USER = "user"


@dataclass
class Capability:
    """One entry of an introspection listing."""
    name: str
    description: str
    origin: CapabilityOrigin = CapabilityOrigin.USER
    is_incomplete: bool = False


@dataclass
class CommandResult:
    """Structured result of one advisory tool call.

    Which fields are filled depends on the tool: ``schedule``, ``config`` and
    ``validate`` return tasks, ``execute`` returns commands and a summary,
    ``answer`` returns an answer and ``introspect`` returns capabilities.
    """
    message: str = ""
    tasks: List[Task] = field(default_factory=list)
    capabilities: List[Capability] = field(default_factory=list)
    answer: Optional[str] = None
    commands: List[ExecuteCommand] = field(default_factory=list)
    summary: Optional[str] = None
    error: Optional[str] = None


class AdvisoryService(ABC):
    """Plans and translates requests through named tools."""

    @abstractmethod
    async def process_with_tool(
        self,
        request: str,
        tool_name: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> CommandResult:
        """
        Run ``request`` through the tool ``tool_name``.

        Args:
            request: Natural-language request or task listing
            tool_name: One of schedule, execute, answer, introspect, config, validate
            context: Extra sections for the system prompt (e.g. config keys)

        Raises:
            AdvisoryServiceError: the response was truncated, missing the tool
                call, or failed structural validation
        """
        pass
