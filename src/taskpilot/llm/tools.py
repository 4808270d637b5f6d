"""Tool schemas offered to the advisory model.

Schemas are OpenAI-style function definitions, which litellm translates for
every provider it supports.
"""

from typing import Any, Dict, List

from ..core.task import TaskType

_TASK_TYPES = [t.value for t in TaskType]

_CONFIG_TASKS = {
    "type": "array",
    "description": 'Config tasks. Each task has type "config" and params.key with the config path.',
    "items": {
        "type": "object",
        "properties": {
            "action": {
                "type": "string",
                "description": "What the config value is for, followed by its path in braces. Max 64 chars.",
            },
            "type": {"type": "string", "description": 'Always "config".'},
            "params": {
                "type": "object",
                "properties": {
                    "key": {"type": "string", "description": 'Config path, e.g. "project.alpha.repo".'},
                },
                "required": ["key"],
            },
        },
        "required": ["action", "type", "params"],
    },
}

SCHEDULE_TOOL: Dict[str, Any] = {
    "name": "schedule",
    "description": (
        "Organize the user's request into a hierarchical task list. Group related tasks "
        "under parent tasks of type \"group\"; leaf tasks carry a concrete type."
    ),
    "parameters": {
        "type": "object",
        "properties": {
            "message": {
                "type": "string",
                "description": "Introductory sentence shown before the plan. Max 64 chars.",
            },
            "tasks": {
                "type": "array",
                "description": "Top-level tasks with optional nested subtasks.",
                "items": {"$ref": "#/$defs/task"},
            },
        },
        "required": ["message", "tasks"],
        "$defs": {
            "task": {
                "type": "object",
                "properties": {
                    "action": {"type": "string", "description": "What needs to be done. Max 64 chars."},
                    "type": {"type": "string", "enum": _TASK_TYPES},
                    "step": {
                        "type": "number",
                        "description": "1-based execution line of the skill this execute task stands for.",
                    },
                    "params": {
                        "type": "object",
                        "description": (
                            'Leaf parameters. Skill tasks set "skill". Define tasks set '
                            '"options": [{"name": str, "command": str}].'
                        ),
                    },
                    "config": {
                        "type": "array",
                        "description": "Config paths the task needs, in dot notation.",
                        "items": {"type": "string"},
                    },
                    "subtasks": {
                        "type": "array",
                        "description": "Nested subtasks; only for group tasks.",
                        "items": {"$ref": "#/$defs/task"},
                    },
                },
                "required": ["action", "type"],
            },
        },
    },
}

EXECUTE_TOOL: Dict[str, Any] = {
    "name": "execute",
    "description": "Translate confirmed execute tasks into shell commands run one after another.",
    "parameters": {
        "type": "object",
        "properties": {
            "message": {"type": "string", "description": "Status sentence ending with a period. Max 64 chars."},
            "summary": {
                "type": "string",
                "description": (
                    "Report as if execution had finished, without a period. Max 48 chars. "
                    "The elapsed time is appended."
                ),
            },
            "commands": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "description": {"type": "string", "description": "What the command does. Max 64 chars."},
                        "command": {"type": "string", "description": "Exact shell command."},
                        "workdir": {"type": "string", "description": "Working directory, optional."},
                        "timeout": {"type": "number", "description": "Timeout in milliseconds, optional."},
                        "critical": {
                            "type": "boolean",
                            "description": "Whether a failure stops later commands. Defaults to true.",
                        },
                    },
                    "required": ["description", "command"],
                },
            },
            "error": {
                "type": "string",
                "description": "Why execution cannot proceed; only with an empty commands array.",
            },
        },
        "required": ["message", "summary", "commands"],
    },
}

ANSWER_TOOL: Dict[str, Any] = {
    "name": "answer",
    "description": "Answer the user's question concisely for terminal display.",
    "parameters": {
        "type": "object",
        "properties": {
            "question": {"type": "string", "description": "The question as a complete sentence."},
            "answer": {"type": "string", "description": "At most 4 lines of at most 80 chars."},
        },
        "required": ["question", "answer"],
    },
}

INTROSPECT_TOOL: Dict[str, Any] = {
    "name": "introspect",
    "description": "List the available capabilities and user-provided skills.",
    "parameters": {
        "type": "object",
        "properties": {
            "message": {"type": "string", "description": "Introductory sentence ending with a colon."},
            "capabilities": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "name": {"type": "string", "description": "Title case. Max 32 chars."},
                        "description": {"type": "string", "description": "Lowercase start, no period. Max 64 chars."},
                        "origin": {"type": "string", "enum": ["system", "meta", "user"]},
                        "isIncomplete": {"type": "boolean"},
                    },
                    "required": ["name", "description", "origin"],
                },
            },
        },
        "required": ["message", "capabilities"],
    },
}

CONFIG_TOOL: Dict[str, Any] = {
    "name": "config",
    "description": "Pick the configuration keys the user wants to set.",
    "parameters": {
        "type": "object",
        "properties": {
            "message": {"type": "string", "description": "Sentence shown before the keys. Max 64 chars."},
            "tasks": _CONFIG_TASKS,
        },
        "required": ["message", "tasks"],
    },
}

VALIDATE_TOOL: Dict[str, Any] = {
    "name": "validate",
    "description": "Describe missing configuration values a skill needs, as config tasks.",
    "parameters": {
        "type": "object",
        "properties": {
            "message": {"type": "string", "description": "May be empty."},
            "tasks": _CONFIG_TASKS,
        },
        "required": ["message", "tasks"],
    },
}

TOOLS: Dict[str, Dict[str, Any]] = {
    tool["name"]: tool
    for tool in (SCHEDULE_TOOL, EXECUTE_TOOL, ANSWER_TOOL, INTROSPECT_TOOL, CONFIG_TOOL, VALIDATE_TOOL)
}

# Tools whose system prompt carries the full skill documents
SKILL_AWARE_TOOLS = frozenset({"schedule", "execute", "introspect", "validate"})


def get_tool(name: str) -> Dict[str, Any]:
    try:
        return TOOLS[name]
    except KeyError:
        raise ValueError(f"Unknown tool '{name}'. Available: {', '.join(sorted(TOOLS))}") from None


def as_litellm_tools(name: str) -> List[Dict[str, Any]]:
    return [{"type": "function", "function": get_tool(name)}]
