"""Entity recognition rules — pattern and dictionary matchers as plain data.

A rule is a :class:`PatternRule` tagged with its ``kind``.  All rules are
evaluated by the single dispatch function :func:`iter_matches`, so a new
rule is configuration, never a subclass.  :func:`default_rules` returns
the built-in table for Dutch government text; :func:`load_rules` reads
extra rules from JSON.
"""

from __future__ import annotations

import json
import logging
import re
from enum import Enum
from functools import lru_cache
from pathlib import Path
from string import Formatter
from typing import Iterator, NamedTuple, Optional, Union

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from ioukit.core.exceptions import ConfigurationError
from ioukit.core.schemas import EntityType
from . import gazetteers

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")


class RuleKind(str, Enum):
    REGEX = "regex"
    GAZETTEER = "gazetteer"


class RuleMatch(NamedTuple):
    start: int
    end: int
    text: str
    normalized: str


class PatternRule(BaseModel):
    """One typed matcher.

    ``regex`` rules carry a ``pattern``; the mention span is the whole
    match, or the named group ``span_group`` when set.  ``template``
    builds the normalized form from named groups (a group called
    ``prefix`` is capitalized), and ``aliases`` canonicalizes the
    ``name`` group, keyed case-insensitively.

    ``gazetteer`` rules carry ``terms``: surface form -> canonical form,
    an empty canonical meaning "the surface form itself".  Gazetteer hits
    are exact and always score 1.0.
    """

    rule_id: str
    kind: RuleKind
    entity_type: EntityType
    priority: int = 0
    confidence: float = Field(default=1.0, ge=0.0, le=1.0)
    pattern: Optional[str] = None
    terms: dict[str, str] = Field(default_factory=dict)
    ignore_case: bool = False
    span_group: Optional[str] = None
    template: Optional[str] = None
    aliases: dict[str, str] = Field(default_factory=dict)
    locales: Optional[list[str]] = None
    description: str = ""

    model_config = {"extra": "forbid"}

    @field_validator("terms", mode="before")
    @classmethod
    def _terms_from_list(cls, value):
        if isinstance(value, (list, tuple)):
            return {term: "" for term in value}
        return value

    @field_validator("aliases")
    @classmethod
    def _casefold_aliases(cls, value: dict[str, str]) -> dict[str, str]:
        return {k.casefold(): v for k, v in value.items()}

    @model_validator(mode="after")
    def _check_kind(self) -> "PatternRule":
        if self.kind is RuleKind.REGEX:
            if not self.pattern:
                raise ValueError(f"regex rule {self.rule_id!r} needs a pattern")
            if self.confidence >= 1.0:
                raise ValueError(
                    f"regex rule {self.rule_id!r} must have confidence < 1.0, "
                    "exact hits belong in a gazetteer"
                )
        else:
            if not self.terms:
                raise ValueError(f"gazetteer rule {self.rule_id!r} needs terms")
            self.confidence = 1.0
        try:
            compiled = _compile(self)
        except re.error as exc:
            raise ValueError(f"rule {self.rule_id!r}: bad pattern: {exc}") from exc
        if self.span_group and self.span_group not in compiled.groupindex:
            raise ValueError(
                f"rule {self.rule_id!r}: span_group {self.span_group!r} not in pattern"
            )
        if self.template:
            fields = {f for _, f, _, _ in Formatter().parse(self.template) if f}
            missing = fields - set(compiled.groupindex)
            if missing:
                raise ValueError(
                    f"rule {self.rule_id!r}: template uses unknown groups {sorted(missing)}"
                )
        return self

    def applies_to(self, locale: Optional[str]) -> bool:
        if not self.locales or locale is None:
            return True
        return locale.split("-")[0].lower() in {loc.lower() for loc in self.locales}


@lru_cache(maxsize=256)
def _compile_cached(kind: RuleKind, pattern: Optional[str], terms: tuple[str, ...], flags: int) -> re.Pattern:
    if kind is RuleKind.REGEX:
        return re.compile(pattern, flags)
    # Longest terms first so the alternation prefers the most specific hit.
    ordered = sorted(terms, key=lambda t: (-len(t), t))
    alternation = "|".join(re.escape(t) for t in ordered)
    return re.compile(rf"(?<!\w)(?:{alternation})(?!\w)", flags)


def _compile(rule: PatternRule) -> re.Pattern:
    flags = re.IGNORECASE if rule.ignore_case else 0
    return _compile_cached(rule.kind, rule.pattern, tuple(sorted(rule.terms)), flags)


def _canonical_term(rule: PatternRule, surface: str) -> str:
    if rule.ignore_case:
        for term, canonical in rule.terms.items():
            if term.casefold() == surface.casefold():
                return canonical or term
        return surface
    return rule.terms.get(surface) or surface


def _collapse(text: str) -> str:
    return _WHITESPACE.sub(" ", text).strip()


def _regex_matches(rule: PatternRule, text: str) -> Iterator[RuleMatch]:
    for m in _compile(rule).finditer(text):
        if rule.span_group:
            start, end = m.span(rule.span_group)
        else:
            start, end = m.span()
        if start < 0 or end <= start:
            continue
        surface = text[start:end]
        groups = {k: _collapse(v) for k, v in m.groupdict(default="").items()}
        if "name" in groups and rule.aliases:
            groups["name"] = rule.aliases.get(groups["name"].casefold(), groups["name"])
        if "prefix" in groups and groups["prefix"]:
            groups["prefix"] = groups["prefix"][:1].upper() + groups["prefix"][1:].lower()
        if rule.template:
            normalized = _collapse(rule.template.format(**groups))
        else:
            collapsed = _collapse(surface)
            normalized = rule.aliases.get(collapsed.casefold(), collapsed)
        yield RuleMatch(start, end, surface, normalized)


def _gazetteer_matches(rule: PatternRule, text: str) -> Iterator[RuleMatch]:
    for m in _compile(rule).finditer(text):
        surface = m.group(0)
        yield RuleMatch(m.start(), m.end(), surface, _canonical_term(rule, surface))


_DISPATCH = {
    RuleKind.REGEX: _regex_matches,
    RuleKind.GAZETTEER: _gazetteer_matches,
}


def iter_matches(rule: PatternRule, text: str) -> Iterator[RuleMatch]:
    """Yield every match of ``rule`` in ``text``, left to right."""
    return _DISPATCH[rule.kind](rule, text)


# --- Rule table loading ---

RuleSpec = Union[PatternRule, dict]


def build_rules(specs: list[RuleSpec]) -> list[PatternRule]:
    """Validate rule specs, raising ConfigurationError on the first bad one."""
    rules: list[PatternRule] = []
    seen: set[str] = set()
    for spec in specs:
        if isinstance(spec, PatternRule):
            rule = spec
        else:
            try:
                rule = PatternRule(**spec)
            except (ValidationError, TypeError, ValueError) as exc:
                raise ConfigurationError(f"Invalid entity rule {spec!r}: {exc}") from exc
        if rule.rule_id in seen:
            raise ConfigurationError(f"Duplicate entity rule id: {rule.rule_id}")
        seen.add(rule.rule_id)
        rules.append(rule)
    return rules


def load_rules(path: str | Path) -> list[PatternRule]:
    """Load extra rules from a JSON file.

    The file holds either a list of rule objects or ``{"rules": [...]}``.
    """
    try:
        with open(path, encoding="utf-8") as fh:
            data = json.load(fh)
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigurationError(f"Cannot read entity rules from {path}: {exc}") from exc

    if isinstance(data, dict):
        data = data.get("rules", [])
    if not isinstance(data, list):
        raise ConfigurationError(f"Entity rules in {path} must be a list")

    rules = build_rules(data)
    logger.info("Loaded %d entity rules from %s", len(rules), path)
    return rules


# --- Built-in rule table ---

_GIVEN = r"(?:(?:[A-Z]\.\s?)+\s*|[A-Z][a-zà-ÿ]+\s+)"
_SURNAME = (
    r"(?:(?:" + "|".join(gazetteers.SURNAME_PARTICLES) + r")\s+)?"
    r"[A-Z][a-zà-ÿ]+(?:-[A-Z][a-zà-ÿ]+)?"
)
_HONORIFIC = r"(?:[Dd]e\s+heer|[Mm]evrouw|[Dd]hr\.|[Mm]evr\.|[Mm]w\.)"


def _alternation(names) -> str:
    return "|".join(re.escape(n) for n in sorted(names, key=lambda n: (-len(n), n)))


def default_rules() -> list[PatternRule]:
    """The built-in rule table for Dutch government text."""
    municipalities = _alternation(gazetteers.MUNICIPALITY_PROVINCE)
    provinces = _alternation(gazetteers.PROVINCES)
    ministries = _alternation(gazetteers.MINISTRIES)

    return build_rules([
        {
            "rule_id": "law.gazetteer",
            "kind": "gazetteer",
            "entity_type": "law",
            "priority": 100,
            "terms": gazetteers.LAWS,
            "description": "Nederlandse wetten en verordeningen",
        },
        {
            "rule_id": "law.citation",
            "kind": "regex",
            "entity_type": "law",
            "priority": 95,
            "confidence": 0.85,
            "pattern": r"\b[A-Z][a-z]+wet\b",
            "description": "Wetsnaam eindigend op -wet",
        },
        {
            "rule_id": "organization.public_body",
            "kind": "gazetteer",
            "entity_type": "organization",
            "priority": 90,
            "terms": gazetteers.PUBLIC_BODIES,
            "description": "Bekende bestuursorganen",
        },
        {
            "rule_id": "organization.ministry",
            "kind": "regex",
            "entity_type": "organization",
            "priority": 88,
            "confidence": 0.97,
            "pattern": rf"\b[Mm]inisterie\s+van\s+(?P<name>{ministries})(?!\w)",
            "template": "Ministerie van {name}",
            "aliases": gazetteers.MINISTRIES,
        },
        {
            "rule_id": "organization.province",
            "kind": "regex",
            "entity_type": "organization",
            "priority": 86,
            "confidence": 0.95,
            "pattern": rf"\b(?P<prefix>[Pp]rovincie)\s+(?P<name>{provinces})(?!\w)",
            "template": "{prefix} {name}",
        },
        {
            "rule_id": "organization.municipality",
            "kind": "regex",
            "entity_type": "organization",
            "priority": 85,
            "confidence": 0.93,
            "pattern": rf"\b(?P<prefix>[Gg]emeente)\s+(?P<name>{municipalities})(?!\w)",
            "template": "{prefix} {name}",
        },
        {
            "rule_id": "organization.water_board",
            "kind": "regex",
            "entity_type": "organization",
            "priority": 84,
            "confidence": 0.85,
            "pattern": r"\b(?P<prefix>[Ww]aterschap)\s+(?P<name>[A-Z][\w'-]*(?:\s+[A-Z][\w'-]*){0,3})",
            "template": "{prefix} {name}",
        },
        {
            "rule_id": "project.named",
            "kind": "regex",
            "entity_type": "project",
            "priority": 70,
            "confidence": 0.8,
            "pattern": r"\b(?P<prefix>[Pp]roject|[Pp]rogramma)\s+(?P<name>[A-Z0-9][\w-]*(?:\s+[A-Z0-9][\w-]*){0,4})",
            "template": "{prefix} {name}",
        },
        {
            "rule_id": "person.honorific",
            "kind": "regex",
            "entity_type": "person",
            "priority": 65,
            "confidence": 0.9,
            "pattern": rf"\b{_HONORIFIC}\s+(?P<name>{_GIVEN}?{_SURNAME})",
            "span_group": "name",
            "locales": ["nl"],
        },
        {
            "rule_id": "person.given_name",
            "kind": "regex",
            "entity_type": "person",
            "priority": 60,
            "confidence": 0.75,
            "pattern": rf"\b(?:{_alternation(gazetteers.GIVEN_NAMES)})\s+{_SURNAME}\b",
            "locales": ["nl"],
        },
        {
            "rule_id": "location.place",
            "kind": "gazetteer",
            "entity_type": "location",
            "priority": 50,
            "terms": gazetteers.place_names(),
        },
        {
            "rule_id": "policy.term",
            "kind": "gazetteer",
            "entity_type": "policy",
            "priority": 40,
            "terms": list(gazetteers.POLICY_TERMS),
            "ignore_case": True,
            "locales": ["nl"],
        },
    ])
