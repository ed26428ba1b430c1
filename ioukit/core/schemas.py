"""IOU Kit shared Pydantic models and data schemas."""

from __future__ import annotations

import re
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, model_validator

_WHITESPACE = re.compile(r"\s+")


class EntityType(str, Enum):
    """Entity labels produced by the recognizer."""

    ORGANIZATION = "organization"
    LAW = "law"
    LOCATION = "location"
    PERSON = "person"
    PROJECT = "project"
    POLICY = "policy"


class EntityMention(BaseModel):
    """One occurrence of a named entity at a specific offset in a document."""

    text: str
    normalized: str
    entity_type: EntityType
    document_id: Optional[str] = None
    start: int = Field(ge=0)
    end: int = Field(gt=0)
    confidence: float = Field(ge=0.0, le=1.0)
    rule_id: str = ""

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _check_span(self) -> "EntityMention":
        if self.end <= self.start:
            raise ValueError(f"empty or inverted span {self.start}-{self.end}")
        return self

    @property
    def key(self) -> str:
        """Canonical identity key shared by every mention of the same entity."""
        return canonical_key(self.normalized, self.entity_type)

    @property
    def ref(self) -> str:
        """Stable reference used by graph nodes to point back at this mention."""
        return f"{self.document_id}:{self.start}-{self.end}"

    def overlaps(self, other: "EntityMention") -> bool:
        return self.start < other.end and other.start < self.end


def normalize_surface(text: str) -> str:
    """Collapse whitespace and casefold a surface form for identity comparison."""
    return _WHITESPACE.sub(" ", text).strip().casefold()


def canonical_key(normalized: str, entity_type: EntityType | str) -> str:
    """Node identity: a pure function of (normalized form, type)."""
    type_value = entity_type.value if isinstance(entity_type, EntityType) else str(entity_type)
    return f"{type_value}:{normalize_surface(normalized)}"
