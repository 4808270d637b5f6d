"""Advisory service backed by litellm tool calling.

Every request forces a single tool call; the call's JSON arguments are
validated here so the router only ever sees well-formed tasks and commands.
"""

import asyncio
import json
import logging
import re
from typing import Any, Callable, Dict, List, Optional

import litellm
from pydantic import ValidationError

from ..core.config import LLMConfig
from ..core.task import Task
from ..errors import AdvisoryServiceError
from ..execution.models import ExecuteCommand
from .base import AdvisoryService, Capability, CapabilityOrigin, CommandResult
from .prompts import build_system_prompt
from .tools import as_litellm_tools, get_tool

logger = logging.getLogger(__name__)

TRUNCATED_MESSAGE = (
    "Response was truncated due to length. Please simplify your request or break it into smaller parts."
)
ANSWER_WIDTH = 80

# Older tool schemas used "configure" for config tasks
_TYPE_ALIASES = {"configure": "config"}


def wrap_text(text: str, width: int = ANSWER_WIDTH) -> str:
    """Greedy word wrap; a single word longer than ``width`` gets its own line."""
    lines: List[str] = []
    current = ""
    for word in text.split():
        if current and len(current) + 1 + len(word) > width:
            lines.append(current)
            current = word
        else:
            current = f"{current} {word}" if current else word
    if current:
        lines.append(current)
    return "\n".join(lines)


def clean_answer_text(text: str) -> str:
    """Strip citation and other markup, collapse whitespace, wrap to 80 columns."""
    cleaned = re.sub(r"<cite[^>]*>(.*?)</cite>", r"\1", text, flags=re.DOTALL)
    cleaned = re.sub(r"<[^>]+>", "", cleaned)
    cleaned = re.sub(r"\s+", " ", cleaned).strip()
    return wrap_text(cleaned)


def _normalize_task(raw: Any, index: int) -> Dict[str, Any]:
    if not isinstance(raw, dict):
        raise AdvisoryServiceError(f"Invalid task at index {index}: expected an object")
    action = raw.get("action")
    if not isinstance(action, str) or not action:
        raise AdvisoryServiceError(f"Invalid task at index {index}: missing or invalid 'action' field")

    task = dict(raw)
    task["type"] = _TYPE_ALIASES.get(task.get("type"), task.get("type"))
    params = dict(task.get("params") or {})
    if "step" in task and "step" not in params:
        params["step"] = task.pop("step")
    task["params"] = params
    task["subtasks"] = [_normalize_task(sub, i) for i, sub in enumerate(task.get("subtasks") or [])]
    return task


def parse_tasks(raw_tasks: Any) -> List[Task]:
    """Validate the ``tasks`` array of a tool call."""
    if not isinstance(raw_tasks, list):
        raise AdvisoryServiceError("Invalid tool response: missing or invalid tasks array")
    tasks = []
    for i, raw in enumerate(raw_tasks):
        try:
            tasks.append(Task.model_validate(_normalize_task(raw, i)))
        except ValidationError as e:
            raise AdvisoryServiceError(f"Invalid task at index {i}: {e.errors()[0]['msg']}") from e
    return tasks


def parse_commands(raw_commands: Any) -> List[ExecuteCommand]:
    if not isinstance(raw_commands, list):
        raise AdvisoryServiceError("Invalid tool response: missing or invalid commands array")
    commands = []
    for i, raw in enumerate(raw_commands):
        if not isinstance(raw, dict):
            raise AdvisoryServiceError(f"Invalid command at index {i}: expected an object")
        for required in ("description", "command"):
            if not isinstance(raw.get(required), str) or not raw.get(required):
                raise AdvisoryServiceError(
                    f"Invalid command at index {i}: missing or invalid '{required}' field"
                )
        try:
            commands.append(ExecuteCommand.model_validate(raw))
        except ValidationError as e:
            raise AdvisoryServiceError(f"Invalid command at index {i}: {e.errors()[0]['msg']}") from e
    return commands


def parse_capabilities(raw_capabilities: Any) -> List[Capability]:
    if not isinstance(raw_capabilities, list):
        raise AdvisoryServiceError("Invalid tool response: missing or invalid capabilities array")
    capabilities = []
    for i, raw in enumerate(raw_capabilities):
        if not isinstance(raw, dict) or not isinstance(raw.get("name"), str):
            raise AdvisoryServiceError(f"Invalid capability at index {i}: missing or invalid 'name' field")
        try:
            origin = CapabilityOrigin(raw.get("origin", "user"))
        except ValueError:
            origin = CapabilityOrigin.USER
        capabilities.append(Capability(
            name=raw["name"],
            description=str(raw.get("description", "")),
            origin=origin,
            is_incomplete=bool(raw.get("isIncomplete", False)),
        ))
    return capabilities


def _require_message(arguments: Dict[str, Any], allow_empty: bool = True) -> str:
    message = arguments.get("message")
    if not isinstance(message, str) or (not allow_empty and not message):
        raise AdvisoryServiceError("Invalid tool response: missing or invalid message field")
    return message


def build_result(tool_name: str, arguments: Dict[str, Any]) -> CommandResult:
    """Validate one tool call's arguments and convert them to a CommandResult."""
    if tool_name == "execute":
        error = arguments.get("error")
        return CommandResult(
            message=_require_message(arguments, allow_empty=bool(error)),
            commands=parse_commands(arguments.get("commands")),
            summary=arguments.get("summary") if isinstance(arguments.get("summary"), str) else None,
            error=error if isinstance(error, str) and error else None,
        )

    if tool_name == "answer":
        for required in ("question", "answer"):
            if not isinstance(arguments.get(required), str) or not arguments.get(required):
                raise AdvisoryServiceError(f"Invalid tool response: missing or invalid {required} field")
        return CommandResult(answer=clean_answer_text(arguments["answer"]))

    if tool_name == "introspect":
        return CommandResult(
            message=_require_message(arguments),
            capabilities=parse_capabilities(arguments.get("capabilities")),
        )

    return CommandResult(
        message=_require_message(arguments),
        tasks=parse_tasks(arguments.get("tasks")),
    )


class LiteLLMAdvisoryService(AdvisoryService):
    """AdvisoryService using ``litellm.acompletion`` with a forced tool call.

    Args:
        config: Model, credentials and limits
        skills_section: Callable returning the skills prompt section; called
            per request so edits to skill files are picked up
    """

    def __init__(
        self,
        config: LLMConfig,
        skills_section: Optional[Callable[[], str]] = None,
    ):
        self.config = config
        self._skills_section = skills_section or (lambda: "")

    async def process_with_tool(
        self,
        request: str,
        tool_name: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> CommandResult:
        get_tool(tool_name)
        system_prompt = build_system_prompt(tool_name, self._skills_section(), context)

        kwargs = {
            "model": self.config.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": request},
            ],
            "tools": as_litellm_tools(tool_name),
            "tool_choice": {"type": "function", "function": {"name": tool_name}},
            "max_tokens": self.config.max_tokens,
            "temperature": self.config.temperature,
        }
        if self.config.api_key:
            kwargs["api_key"] = self.config.api_key
        if self.config.api_base:
            kwargs["api_base"] = self.config.api_base

        logger.debug(f"Calling {self.config.model} with tool '{tool_name}'")
        try:
            response = await asyncio.wait_for(
                litellm.acompletion(**kwargs),
                timeout=self.config.timeout,
            )
        except asyncio.TimeoutError as e:
            raise AdvisoryServiceError(
                f"Advisory service timed out after {self.config.timeout} seconds"
            ) from e

        return self._parse_response(tool_name, response)

    def _parse_response(self, tool_name: str, response: Any) -> CommandResult:
        choice = response.choices[0]
        if choice.finish_reason == "length":
            raise AdvisoryServiceError(TRUNCATED_MESSAGE)

        message = choice.message
        tool_calls = getattr(message, "tool_calls", None) or []
        call = next((c for c in tool_calls if c.function.name == tool_name), None)

        if call is None:
            text = getattr(message, "content", None)
            if tool_name == "answer" and isinstance(text, str) and text.strip():
                return CommandResult(answer=clean_answer_text(text))
            raise AdvisoryServiceError(f"Expected a '{tool_name}' tool call from the advisory service")

        try:
            arguments = json.loads(call.function.arguments or "{}")
        except json.JSONDecodeError as e:
            raise AdvisoryServiceError(f"Tool call arguments are not valid JSON: {e}") from e
        if not isinstance(arguments, dict):
            raise AdvisoryServiceError("Tool call arguments must be a JSON object")

        result = build_result(tool_name, arguments)
        logger.debug(
            f"Tool '{tool_name}' returned {len(result.tasks)} tasks, "
            f"{len(result.commands)} commands"
        )
        return result
