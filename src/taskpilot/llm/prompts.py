"""System prompts for the advisory tools."""

import json
from typing import Any, Dict, Optional

from .tools import SKILL_AWARE_TOOLS

SCHEDULE_INSTRUCTIONS = """You are the planner of a terminal assistant.

Turn the user's request into tasks by calling the schedule tool.

- Use "execute" for anything that runs shell commands. When the work comes
  from a skill, set params.skill to the skill name and "step" to the 1-based
  execution line the task stands for.
- Use "answer" for questions, "introspect" for requests to list what you can
  do, and "config" for requests to change settings.
- When a skill has variants and the request does not say which one to use,
  emit a single "define" task whose params.options lists each choice as
  {"name": ..., "command": ...}.
- Use "ignore" for parts of the request you cannot do.
- Group tasks that belong to the same phase under a "group" task. A group
  must only contain tasks of one type.
"""

EXECUTE_INSTRUCTIONS = """You translate confirmed tasks into shell commands.

Call the execute tool with one command per task, in order. Keep commands
portable, do not chain unrelated steps with &&, and mark a command
"critical": false only when later commands can run without it. If the
tasks cannot be executed, return an empty commands array and set "error".
"""

ANSWER_INSTRUCTIONS = """You answer questions for a terminal user.

Call the answer tool. Keep the answer to at most four short lines.
"""

INTROSPECT_INSTRUCTIONS = """You describe what this assistant can do.

Call the introspect tool. List the system capabilities Introspect, Config,
Answer and Execute with origin "system", then every skill from the Available
Skills section with origin "user". Mark skills shown as (INCOMPLETE) with
isIncomplete.
"""

CONFIG_INSTRUCTIONS = """You help the user change settings.

Call the config tool with one config task per key the user wants to set.
Only use keys from the Available Configuration section.
"""

VALIDATE_INSTRUCTIONS = """You explain missing configuration values.

Call the validate tool with one config task per missing path. Describe what
each value is for using the skill documents, then append the path in braces.
"""

INSTRUCTIONS: Dict[str, str] = {
    "schedule": SCHEDULE_INSTRUCTIONS,
    "execute": EXECUTE_INSTRUCTIONS,
    "answer": ANSWER_INSTRUCTIONS,
    "introspect": INTROSPECT_INSTRUCTIONS,
    "config": CONFIG_INSTRUCTIONS,
    "validate": VALIDATE_INSTRUCTIONS,
}


def build_system_prompt(
    tool_name: str,
    skills_section: str = "",
    context: Optional[Dict[str, Any]] = None,
) -> str:
    """Instructions for ``tool_name`` plus the sections it needs.

    ``context`` keys: ``config_structure`` and ``configured_keys`` for the
    config tool, ``debug`` for introspect.
    """
    prompt = INSTRUCTIONS[tool_name]
    context = context or {}

    if tool_name in SKILL_AWARE_TOOLS and skills_section:
        prompt += skills_section

    if tool_name == "config":
        prompt += (
            "\n\n## Available Configuration\n\n"
            "Config structure (key: description):\n"
            + json.dumps(context.get("config_structure", {}), indent=2)
            + "\n\nConfigured keys (keys that exist in config file):\n"
            + json.dumps(context.get("configured_keys", []), indent=2)
        )

    if tool_name == "introspect":
        debug = bool(context.get("debug"))
        prompt += (
            "\n\n## Debug Mode\n\n"
            f"Debug mode is {'ENABLED' if debug else 'DISABLED'}.\n"
            + ("Include the workflow tools Schedule, Validate and Report with origin \"meta\".\n"
               if debug else "Do NOT include workflow tools in the listing.\n")
        )

    return prompt
