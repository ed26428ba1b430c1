"""Compliance rule table.

Rules are plain pydantic data.  Each carries one or more tagged
conditions that must all hold, and the contribution it makes when they
do.  :func:`evaluate` is the only place conditions are interpreted.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Annotated, Any, Callable, Iterable, Literal, Optional, Union

from pydantic import BaseModel, Field, ValidationError, field_validator

from ioukit.core.exceptions import ConfigurationError
from ioukit.core.schemas import EntityMention, EntityType
from .context import GraphContext
from .models import (
    ArchivalValue,
    Classification,
    ComplianceSignal,
    DomainType,
    ObjectType,
    PrivacyLevel,
    RegulatoryBasis,
)

# ----------------------------------------------------------------------
# Conditions
# ----------------------------------------------------------------------


class EntityTypeCondition(BaseModel):
    kind: Literal["entity_type"] = "entity_type"
    entity_type: EntityType
    min_count: int = Field(default=1, ge=1)


class KeywordCondition(BaseModel):
    """Any keyword starting a word in the text, case-insensitive."""

    kind: Literal["keyword"] = "keyword"
    keywords: list[str] = Field(min_length=1)

    @field_validator("keywords")
    @classmethod
    def _fold(cls, v: list[str]) -> list[str]:
        return [k.casefold() for k in v]


class PatternCondition(BaseModel):
    kind: Literal["pattern"] = "pattern"
    pattern: str
    label: str = ""
    ignore_case: bool = False

    @field_validator("pattern")
    @classmethod
    def _compiles(cls, v: str) -> str:
        try:
            re.compile(v)
        except re.error as exc:
            raise ValueError(f"invalid pattern {v!r}: {exc}") from exc
        return v


class GraphCondition(BaseModel):
    kind: Literal["graph"] = "graph"
    predicate: Literal["public_body", "public_body_neighbor", "related_documents"]
    min_count: int = Field(default=1, ge=1)


class ObjectTypeCondition(BaseModel):
    kind: Literal["object_type"] = "object_type"
    object_types: list[ObjectType] = Field(min_length=1)


class DomainTypeCondition(BaseModel):
    kind: Literal["domain_type"] = "domain_type"
    domain_types: list[DomainType] = Field(min_length=1)


Condition = Annotated[
    Union[
        EntityTypeCondition,
        KeywordCondition,
        PatternCondition,
        GraphCondition,
        ObjectTypeCondition,
        DomainTypeCondition,
    ],
    Field(discriminator="kind"),
]


class ComplianceRule(BaseModel):
    rule_id: str = Field(min_length=1)
    description: str
    regulatory_basis: RegulatoryBasis
    conditions: list[Condition] = Field(min_length=1)
    classification: Optional[Classification] = None
    woo_relevant: bool = False
    retention_years: Optional[int] = Field(default=None, ge=0)
    privacy_level: Optional[PrivacyLevel] = None
    archival_value: Optional[ArchivalValue] = None

    model_config = {"frozen": True, "extra": "forbid"}


# ----------------------------------------------------------------------
# Evaluation
# ----------------------------------------------------------------------


@dataclass(frozen=True)
class Subject:
    """Everything a rule may look at for one assessment."""

    content: str
    entities: tuple[EntityMention, ...]
    context: GraphContext
    object_type: Optional[ObjectType] = None
    domain_type: Optional[DomainType] = None


@lru_cache(maxsize=256)
def _keyword_regex(keywords: tuple[str, ...]) -> re.Pattern:
    alternation = "|".join(re.escape(k) for k in sorted(keywords, key=len, reverse=True))
    return re.compile(rf"(?<!\w)(?:{alternation})", re.IGNORECASE)


@lru_cache(maxsize=256)
def _pattern_regex(pattern: str, ignore_case: bool) -> re.Pattern:
    return re.compile(pattern, re.IGNORECASE if ignore_case else 0)


def _entity_type(cond: EntityTypeCondition, subject: Subject) -> Optional[str]:
    count = sum(1 for m in subject.entities if m.entity_type == cond.entity_type)
    if count < cond.min_count:
        return None
    return f"{count} {cond.entity_type.value} entit{'y' if count == 1 else 'ies'}"


def _keyword(cond: KeywordCondition, subject: Subject) -> Optional[str]:
    match = _keyword_regex(tuple(cond.keywords)).search(subject.content)
    return f"keyword '{match.group().casefold()}'" if match else None


def _pattern(cond: PatternCondition, subject: Subject) -> Optional[str]:
    match = _pattern_regex(cond.pattern, cond.ignore_case).search(subject.content)
    if not match:
        return None
    return f"{cond.label or 'pattern'} at {match.start()}"


def _graph(cond: GraphCondition, subject: Subject) -> Optional[str]:
    ctx = subject.context
    if cond.predicate == "public_body":
        count = len(ctx.public_bodies)
    elif cond.predicate == "public_body_neighbor":
        count = len(ctx.neighbor_public_bodies)
    else:
        count = ctx.related_document_count
    if count < cond.min_count:
        return None
    return f"{cond.predicate.replace('_', ' ')} ({count})"


def _object_type(cond: ObjectTypeCondition, subject: Subject) -> Optional[str]:
    if subject.object_type in cond.object_types:
        return f"object type {subject.object_type.value}"
    return None


def _domain_type(cond: DomainTypeCondition, subject: Subject) -> Optional[str]:
    if subject.domain_type in cond.domain_types:
        return f"domain {subject.domain_type.value}"
    return None


_DISPATCH: dict[str, Callable[[Any, Subject], Optional[str]]] = {
    "entity_type": _entity_type,
    "keyword": _keyword,
    "pattern": _pattern,
    "graph": _graph,
    "object_type": _object_type,
    "domain_type": _domain_type,
}


def evaluate(rule: ComplianceRule, subject: Subject) -> Optional[ComplianceSignal]:
    """Signal for ``rule`` when every condition holds, else None."""
    matched = []
    for condition in rule.conditions:
        hit = _DISPATCH[condition.kind](condition, subject)
        if hit is None:
            return None
        matched.append(hit)
    return ComplianceSignal(
        rule_id=rule.rule_id,
        condition=f"{rule.description}: {'; '.join(matched)}",
        regulatory_basis=rule.regulatory_basis,
        classification=rule.classification,
        woo_relevant=rule.woo_relevant,
        retention_years=rule.retention_years,
        privacy_level=rule.privacy_level,
        archival_value=rule.archival_value,
    )


# ----------------------------------------------------------------------
# Rule tables
# ----------------------------------------------------------------------


def build_rules(specs: Iterable[Any]) -> list[ComplianceRule]:
    """Validate rule specs (dicts or ComplianceRule instances)."""
    rules: list[ComplianceRule] = []
    seen: set[str] = set()
    for spec in specs:
        try:
            rule = spec if isinstance(spec, ComplianceRule) else ComplianceRule.model_validate(spec)
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid compliance rule: {exc}") from exc
        if rule.rule_id in seen:
            raise ConfigurationError(f"Duplicate compliance rule id: {rule.rule_id!r}")
        seen.add(rule.rule_id)
        rules.append(rule)
    return rules


def load_rules(path: str | Path) -> list[ComplianceRule]:
    """Load rules from a JSON file holding a list or ``{"rules": [...]}``."""
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigurationError(f"Cannot read compliance rules from {path}: {exc}") from exc
    if isinstance(data, dict):
        data = data.get("rules", [])
    if not isinstance(data, list):
        raise ConfigurationError(f"{path}: expected a list of rules")
    return build_rules(data)


_ADDRESS = (
    r"\b[A-Z][a-z]+(?:straat|laan|weg|plein|gracht|kade|dijk|singel|hof|pad)\s+\d+[a-zA-Z]?\b"
    r"|\b\d{4}\s?[A-Z]{2}\b"
)

SPECIAL_CATEGORY_TERMS = [
    "gezondheid", "medisch", "diagnose", "religie", "religieus",
    "geloofsovertuiging", "politieke voorkeur", "politieke overtuiging",
    "vakbond", "seksuele geaardheid", "biometrisch", "genetisch",
    "etnische afkomst", "raciale",
]
CRIMINAL_TERMS = [
    "strafblad", "veroordeling", "veroordeeld", "delict", "strafrechtelijk",
    "strafbaar feit", "verdachte",
]
DECISION_TERMS = ["besluit", "vergunning", "beschikking", "subsidie"]
STATE_SECRET_TERMS = ["staatsgeheim", "stg. geheim", "stg geheim", "staatsveiligheid"]


def default_rules() -> list[ComplianceRule]:
    """Built-in rule table, evaluated top to bottom."""
    return build_rules([
        {
            "rule_id": "avg.person_with_address",
            "description": "Persoonsgegevens: naam met adres",
            "regulatory_basis": "AVG",
            "conditions": [
                {"kind": "entity_type", "entity_type": "person"},
                {"kind": "pattern", "pattern": _ADDRESS, "label": "address"},
            ],
            "classification": "intern",
            "privacy_level": "normaal",
        },
        {
            "rule_id": "avg.identifiers",
            "description": "Persoonsgegevens: BSN of geboortedatum",
            "regulatory_basis": "AVG",
            "conditions": [
                {"kind": "keyword", "keywords": ["bsn", "burgerservicenummer", "geboortedatum", "geboren op"]},
            ],
            "classification": "intern",
            "privacy_level": "normaal",
        },
        {
            "rule_id": "avg.special_category",
            "description": "Bijzondere persoonsgegevens (art. 9 AVG)",
            "regulatory_basis": "AVG",
            "conditions": [{"kind": "keyword", "keywords": SPECIAL_CATEGORY_TERMS}],
            "classification": "vertrouwelijk",
            "privacy_level": "bijzonder",
        },
        {
            "rule_id": "avg.criminal_data",
            "description": "Strafrechtelijke persoonsgegevens (art. 10 AVG)",
            "regulatory_basis": "AVG",
            "conditions": [{"kind": "keyword", "keywords": CRIMINAL_TERMS}],
            "classification": "vertrouwelijk",
            "privacy_level": "strafrechtelijk",
        },
        {
            "rule_id": "woo.public_body",
            "description": "Bestuursorgaan betrokken",
            "regulatory_basis": "Woo",
            "conditions": [{"kind": "graph", "predicate": "public_body"}],
            "woo_relevant": True,
        },
        {
            "rule_id": "woo.decision_terms",
            "description": "Besluitvormingstermen",
            "regulatory_basis": "Woo",
            "conditions": [{"kind": "keyword", "keywords": DECISION_TERMS}],
            "woo_relevant": True,
        },
        {
            "rule_id": "archief.besluit",
            "description": "Besluiten zijn standaard Woo-relevant en blijvend te bewaren",
            "regulatory_basis": "Archiefwet",
            "conditions": [{"kind": "object_type", "object_types": ["besluit"]}],
            "woo_relevant": True,
            "retention_years": 20,
            "archival_value": "permanent",
        },
        {
            "rule_id": "archief.zaak_document",
            "description": "Selectielijst: zaakdocument",
            "regulatory_basis": "Archiefwet",
            "conditions": [
                {"kind": "domain_type", "domain_types": ["zaak"]},
                {"kind": "object_type", "object_types": ["document"]},
            ],
            "retention_years": 10,
        },
        {
            "rule_id": "archief.zaak_email",
            "description": "Selectielijst: e-mail in zaak",
            "regulatory_basis": "Archiefwet",
            "conditions": [
                {"kind": "domain_type", "domain_types": ["zaak"]},
                {"kind": "object_type", "object_types": ["email"]},
            ],
            "retention_years": 5,
        },
        {
            "rule_id": "archief.project_document",
            "description": "Selectielijst: projectdocument",
            "regulatory_basis": "Archiefwet",
            "conditions": [
                {"kind": "domain_type", "domain_types": ["project"]},
                {"kind": "object_type", "object_types": ["document"]},
            ],
            "retention_years": 10,
        },
        {
            "rule_id": "archief.project_other",
            "description": "Selectielijst: overige projectstukken",
            "regulatory_basis": "Archiefwet",
            "conditions": [
                {"kind": "domain_type", "domain_types": ["project"]},
                {"kind": "object_type", "object_types": ["email", "chat", "data"]},
            ],
            "retention_years": 7,
        },
        {
            "rule_id": "archief.beleid_document",
            "description": "Selectielijst: beleidsdocument",
            "regulatory_basis": "Archiefwet",
            "conditions": [
                {"kind": "domain_type", "domain_types": ["beleid"]},
                {"kind": "object_type", "object_types": ["document"]},
            ],
            "retention_years": 15,
            "archival_value": "permanent",
        },
        {
            "rule_id": "archief.beleid_other",
            "description": "Selectielijst: overige beleidsstukken",
            "regulatory_basis": "Archiefwet",
            "conditions": [
                {"kind": "domain_type", "domain_types": ["beleid"]},
                {"kind": "object_type", "object_types": ["email", "chat", "data"]},
            ],
            "retention_years": 10,
        },
        {
            "rule_id": "archief.expertise",
            "description": "Selectielijst: expertisedomein",
            "regulatory_basis": "Archiefwet",
            "conditions": [{"kind": "domain_type", "domain_types": ["expertise"]}],
            "retention_years": 5,
        },
        {
            "rule_id": "woo.state_secret",
            "description": "Staatsgeheim gerubriceerd",
            "regulatory_basis": "Woo",
            "conditions": [{"kind": "keyword", "keywords": STATE_SECRET_TERMS}],
            "classification": "geheim",
        },
    ])
