"""Skill data models."""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class SkillDefinition(BaseModel):
    """A parsed skill document. Never mutated after load."""

    model_config = ConfigDict(frozen=True)

    key: str
    name: str
    description: str = ""
    aliases: List[str] = Field(default_factory=list)
    steps: List[str] = Field(default_factory=list)
    execution: List[str] = Field(default_factory=list)
    config: Optional[Dict[str, Any]] = None
    is_valid: bool = True
    is_incomplete: bool = False
    validation_error: Optional[str] = None
    source: str = ""  # raw markdown, used when describing skills to the advisory service

    @property
    def display_name(self) -> str:
        return f"{self.name} (INCOMPLETE)" if self.is_incomplete else self.name


@dataclass(frozen=True)
class ConfigRequirement:
    """A configuration path that must be set before execution."""
    path: str
    type: str = "string"


@dataclass(frozen=True)
class PlaceholderInfo:
    """One ``{a.b.c}`` occurrence in a command."""
    original: str
    path: Tuple[str, ...]
    variant_index: Optional[int] = None

    @property
    def has_variant(self) -> bool:
        return self.variant_index is not None

    @property
    def dotted(self) -> str:
        return ".".join(self.path)
