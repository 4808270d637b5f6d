"""User-facing message text.

Confirmation, refinement and cancellation texts come in a few variations so
repeated runs read less mechanically; pass ``rng`` to make the choice
deterministic.
"""

import math
import random
from typing import List, Optional


CONFIRMATION_MESSAGES = [
    "Should I execute this plan?",
    "Do you want me to proceed with these tasks?",
    "Ready to execute?",
    "Shall I execute this plan?",
    "Would you like me to run these tasks?",
    "Execute this plan?",
]

REFINING_MESSAGES = [
    "Let me work out the specifics for you.",
    "I'll figure out the concrete steps.",
    "Let me break this down into tasks.",
    "I'll plan out the details.",
    "Let me arrange the steps.",
    "I'll prepare everything you need.",
]

CANCELLATION_TEMPLATES = [
    "I've cancelled the {operation}.",
    "I've aborted the {operation}.",
    "The {operation} was cancelled.",
    "The {operation} has been aborted.",
]

UNKNOWN_REQUEST_MESSAGES = [
    "I'm not sure what you want me to do. Could you rephrase the request?",
    "I couldn't find anything I can do for that request.",
    "That request doesn't match anything I know how to do.",
]

CONFIGURATION_COMPLETE = "Configuration complete."
CONFIGURATION_UPDATED = "Configuration updated successfully."
DEFAULT_EXECUTION_SUMMARY = "Execution completed"


def _pick(options: List[str], rng: Optional[random.Random]) -> str:
    return (rng or random).choice(options)


def get_confirmation_message(rng: Optional[random.Random] = None) -> str:
    return _pick(CONFIRMATION_MESSAGES, rng)


def get_refining_message(rng: Optional[random.Random] = None) -> str:
    return _pick(REFINING_MESSAGES, rng)


def get_cancellation_message(operation: str, rng: Optional[random.Random] = None) -> str:
    return _pick(CANCELLATION_TEMPLATES, rng).format(operation=operation.lower())


def get_unknown_request_message(rng: Optional[random.Random] = None) -> str:
    return _pick(UNKNOWN_REQUEST_MESSAGES, rng)


def format_skill_issues(skill: str, issues: List[str]) -> str:
    issues_list = "\n".join(f"  - {issue}" for issue in issues)
    return f'Invalid skill definition "{skill}":\n\n{issues_list}'


def format_duration(milliseconds: float) -> str:
    """Format elapsed time as whole hours, minutes and seconds.

    Fractions of a second are dropped, so 1250ms reads "1 second". Seconds are
    shown when non-zero or when nothing else would be shown.
    """
    total_seconds = int(math.floor(max(milliseconds, 0) / 1000))
    hours, remainder = divmod(total_seconds, 3600)
    minutes, seconds = divmod(remainder, 60)

    parts = []
    if hours > 0:
        parts.append(f"{hours} {'hour' if hours == 1 else 'hours'}")
    if minutes > 0:
        parts.append(f"{minutes} {'minute' if minutes == 1 else 'minutes'}")
    if seconds > 0 or not parts:
        parts.append(f"{seconds} {'second' if seconds == 1 else 'seconds'}")
    return " ".join(parts)


def format_completion_message(summary: Optional[str], elapsed_ms: float) -> str:
    text = (summary or "").strip() or DEFAULT_EXECUTION_SUMMARY
    return f"{text} in {format_duration(elapsed_ms)}."


def format_task_failure(description: str, error: str) -> str:
    return f'Task "{description}" failed: {error}'
