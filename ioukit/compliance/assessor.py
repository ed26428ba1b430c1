"""Compliance assessment — Woo, AVG and Archiefwet metadata for one document."""

import logging
from typing import Any, Iterable, Optional, Sequence

from ioukit.core.config import Settings, get_settings
from ioukit.core.exceptions import InvalidInputError
from ioukit.core.schemas import EntityMention
from .context import GraphContext, OrganizationRegistry, context_from_mentions
from .models import (
    ArchivalValue,
    Classification,
    ComplianceResult,
    DomainType,
    ObjectType,
    PrivacyLevel,
    parse_choice,
)
from .rules import ComplianceRule, Subject, build_rules, default_rules, evaluate

logger = logging.getLogger(__name__)


class ComplianceAssessor:
    """Evaluates the rule table against a document and resolves the result.

    Every fired rule yields a signal.  The strictest classification and
    privacy level win, Woo relevance is true if any signal says so, and
    the retention suggestion is the longest contributed period (the
    configured default only when nothing contributes one).

    Usage:
        assessor = ComplianceAssessor()
        result = assessor.assess(text, mentions)
    """

    def __init__(
        self,
        rules: Optional[Sequence[Any]] = None,
        registry: Optional[OrganizationRegistry] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.registry = registry or OrganizationRegistry()
        self._rules: list[ComplianceRule] = build_rules(rules) if rules is not None else default_rules()

    @property
    def rules(self) -> list[ComplianceRule]:
        return list(self._rules)

    def assess(
        self,
        content: str,
        entities: Iterable[EntityMention] = (),
        graph_context: Optional[GraphContext] = None,
        object_type: Optional[ObjectType] = None,
        domain_type: Optional[DomainType] = None,
    ) -> ComplianceResult:
        """Assess one document.

        Args:
            content: Document text.
            entities: Mentions extracted from ``content``.
            graph_context: What the graph knows about the document.  When
                omitted, public bodies are looked up among ``entities``.
            object_type: Kind of information object, e.g. ``"besluit"``.
            domain_type: Information domain, e.g. ``"zaak"``.

        Raises:
            InvalidInputError: for non-text content or an unknown
                object/domain type.
        """
        if not isinstance(content, str):
            raise InvalidInputError(f"Document text must be str, got {type(content).__name__}")
        entities = tuple(entities)
        if graph_context is None:
            graph_context = context_from_mentions(entities, self.registry)
        subject = Subject(
            content=content,
            entities=entities,
            context=graph_context,
            object_type=parse_choice(ObjectType, object_type, "object type"),
            domain_type=parse_choice(DomainType, domain_type, "domain type"),
        )

        signals = []
        for rule in self._rules:
            signal = evaluate(rule, subject)
            if signal is not None:
                signals.append(signal)

        years = [s.retention_years for s in signals if s.retention_years is not None]
        result = ComplianceResult(
            classification=Classification.strictest(
                s.classification for s in signals if s.classification is not None
            ) or Classification.OPENBAAR,
            retention_years=max(years) if years else self.settings.default_retention_years,
            woo_relevant=any(s.woo_relevant for s in signals),
            privacy_level=PrivacyLevel.strictest(
                s.privacy_level for s in signals if s.privacy_level is not None
            ) or PrivacyLevel.GEEN,
            archival_value=(
                ArchivalValue.PERMANENT
                if any(s.archival_value == ArchivalValue.PERMANENT for s in signals)
                else ArchivalValue.TIJDELIJK
            ),
            signals=signals,
        )
        logger.debug(
            "assess: %s, woo=%s, %d years, rules=%s",
            result.classification.value, result.woo_relevant,
            result.retention_years, result.fired_rules,
        )
        return result
