"""Compliance vocabulary — classifications, privacy levels and results."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from ioukit.core.exceptions import InvalidInputError


class _Ranked(str, Enum):
    """String enum whose declaration order is its severity order."""

    @property
    def rank(self) -> int:
        return list(type(self)).index(self)

    @classmethod
    def strictest(cls, values):
        return max(values, key=lambda v: v.rank, default=None)


class Classification(_Ranked):
    OPENBAAR = "openbaar"
    INTERN = "intern"
    VERTROUWELIJK = "vertrouwelijk"
    GEHEIM = "geheim"


class PrivacyLevel(_Ranked):
    GEEN = "geen"
    NORMAAL = "normaal"
    STRAFRECHTELIJK = "strafrechtelijk"
    BIJZONDER = "bijzonder"


class ArchivalValue(str, Enum):
    TIJDELIJK = "tijdelijk"
    PERMANENT = "permanent"


class RegulatoryBasis(str, Enum):
    WOO = "Woo"
    AVG = "AVG"
    ARCHIEFWET = "Archiefwet"


class ObjectType(str, Enum):
    DOCUMENT = "document"
    EMAIL = "email"
    CHAT = "chat"
    BESLUIT = "besluit"
    DATA = "data"


class DomainType(str, Enum):
    ZAAK = "zaak"
    PROJECT = "project"
    BELEID = "beleid"
    EXPERTISE = "expertise"


class ComplianceSignal(BaseModel):
    """One fired rule and what it contributes."""

    rule_id: str
    condition: str
    regulatory_basis: RegulatoryBasis
    classification: Optional[Classification] = None
    woo_relevant: bool = False
    retention_years: Optional[int] = None
    privacy_level: Optional[PrivacyLevel] = None
    archival_value: Optional[ArchivalValue] = None

    model_config = {"frozen": True}


class ComplianceResult(BaseModel):
    classification: Classification = Classification.OPENBAAR
    retention_years: int
    woo_relevant: bool = False
    privacy_level: PrivacyLevel = PrivacyLevel.GEEN
    archival_value: ArchivalValue = ArchivalValue.TIJDELIJK
    signals: list[ComplianceSignal] = Field(default_factory=list)

    model_config = {"frozen": True}

    @property
    def fired_rules(self) -> list[str]:
        return [s.rule_id for s in self.signals]


def parse_choice(enum_cls, value, name: str):
    """Coerce a raw value to ``enum_cls``; None passes through."""
    if value is None or isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(e.value for e in enum_cls)
        raise InvalidInputError(f"Unknown {name} {value!r}; expected one of: {allowed}") from None
