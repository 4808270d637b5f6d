"""Translate technical errors to user-friendly messages."""

import re
from dataclasses import dataclass
from typing import List, Optional

from .exceptions import TaskpilotError


UNEXPECTED_ERROR = "Unexpected error occurred:"


@dataclass
class UserFriendlyError:
    """User-friendly error representation."""
    original_error: Exception
    title: str
    explanation: str
    actions: List[str]
    show_technical: bool = False


class ErrorTranslator:
    """Translate technical errors to user-friendly messages."""

    ERROR_PATTERNS = {
        # Provider credentials
        r"AuthenticationError|invalid.*api.*key|401": {
            "title": "Advisory service rejected the credentials",
            "explanation": "The API key configured for the language model is missing or invalid.",
            "actions": [
                "Set llm.api_key in your config file",
                "Or export TASKPILOT_LLM__API_KEY",
            ],
        },

        # Rate limiting
        r"rate.*limit|429|too many requests": {
            "title": "Rate limit reached",
            "explanation": "The advisory service is throttling requests.",
            "actions": [
                "Wait a minute and run the request again",
            ],
        },

        # Network errors
        r"connection.*refused|connection.*timeout|network.*unreachable|timed out": {
            "title": "Cannot reach the advisory service",
            "explanation": "The request to the language model did not complete.",
            "actions": [
                "Check your network connection",
                "Check llm.api_base if you use a proxy",
            ],
        },

        # Config errors
        r"config.*not.*found|no such file.*config": {
            "title": "Configuration file problem",
            "explanation": "The configuration file could not be read.",
            "actions": [
                "Run: taskpilot config set <key> <value>",
            ],
        },
    }

    def translate(self, error: Exception) -> UserFriendlyError:
        error_str = str(error)
        error_type = type(error).__name__
        full_error = f"{error_type}: {error_str}"

        # Engine errors already carry a readable message
        if isinstance(error, TaskpilotError):
            return UserFriendlyError(
                original_error=error,
                title=error_type,
                explanation=error_str,
                actions=[],
            )

        for pattern, translation in self.ERROR_PATTERNS.items():
            if re.search(pattern, full_error, re.IGNORECASE):
                return UserFriendlyError(
                    original_error=error,
                    title=translation["title"],
                    explanation=translation["explanation"],
                    actions=translation["actions"],
                    show_technical=False,
                )

        return UserFriendlyError(
            original_error=error,
            title="Unexpected error",
            explanation=f"{UNEXPECTED_ERROR} {error_str}" if error_str else UNEXPECTED_ERROR,
            actions=[
                "Run again with --debug verbose for details",
            ],
            show_technical=True,
        )

    def format_for_cli(self, friendly_error: UserFriendlyError) -> str:
        output = f"[bold red]{friendly_error.title}[/]\n\n"
        output += f"{friendly_error.explanation}\n"

        if friendly_error.actions:
            output += "\n[bold]How to fix:[/]\n"
            for i, action in enumerate(friendly_error.actions, 1):
                output += f"  {i}. {action}\n"

        if friendly_error.show_technical:
            output += f"\n[dim]Technical details:[/]\n[dim]{type(friendly_error.original_error).__name__}[/]"

        return output


def format_error_message(error: BaseException, translator: Optional[ErrorTranslator] = None) -> str:
    """Render an exception as plain feedback text."""
    if isinstance(error, TaskpilotError):
        return str(error)
    if not isinstance(error, Exception):
        return f"{UNEXPECTED_ERROR} {error}"
    friendly = (translator or ErrorTranslator()).translate(error)
    if friendly.show_technical:
        return friendly.explanation
    return f"{friendly.title}: {friendly.explanation}"
