"""Advisory service: interface, tool schemas and the litellm implementation."""

from .base import AdvisoryService, Capability, CapabilityOrigin, CommandResult
from .litellm_service import LiteLLMAdvisoryService, clean_answer_text

__all__ = [
    "AdvisoryService",
    "Capability",
    "CapabilityOrigin",
    "CommandResult",
    "LiteLLMAdvisoryService",
    "clean_answer_text",
]
