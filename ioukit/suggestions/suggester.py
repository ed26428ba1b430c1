"""Metadata suggestion — runs the whole pipeline for one document.

Extraction, graph ingestion, indexing, similarity and compliance are
wired together here; each step stays in its own module.  This is the
only place callers mutate the shared graph and index through.
"""

import logging
from typing import Any, Iterable, Optional

from ioukit.compliance.assessor import ComplianceAssessor
from ioukit.compliance.context import build_graph_context
from ioukit.compliance.models import DomainType, ObjectType, parse_choice
from ioukit.core.config import Settings, get_settings
from ioukit.core.events import DOCUMENT_DELETED, EventBus, event_bus
from ioukit.core.exceptions import InvalidInputError
from ioukit.core.schemas import EntityMention, EntityType
from ioukit.graph.schemas import IngestReport
from ioukit.graph.store import KnowledgeGraph
from ioukit.ner.extractor import EntityExtractor, ensure_text
from ioukit.semantic.index import VectorIndex
from .models import MetadataSuggestion, SimilarDocument

logger = logging.getLogger(__name__)


def rank_entities(mentions: Iterable[EntityMention]) -> list[str]:
    """Canonical entity keys, heaviest first.

    An entity weighs the sum of its mention confidences; ties go to the
    entity mentioned first.
    """
    weight: dict[str, float] = {}
    first: dict[str, int] = {}
    for mention in mentions:
        weight[mention.key] = weight.get(mention.key, 0.0) + mention.confidence
        first[mention.key] = min(first.get(mention.key, mention.start), mention.start)
    return sorted(weight, key=lambda key: (-weight[key], first[key], key))


def suggest_tags(mentions: Iterable[EntityMention], max_tags: int) -> list[str]:
    return rank_entities(mentions)[:max_tags]


def subject_area(mentions: Iterable[EntityMention]) -> Optional[str]:
    """Label of the most prominent policy term, if any."""
    policy = [m for m in mentions if m.entity_type == EntityType.POLICY]
    ranked = rank_entities(policy)
    if not ranked:
        return None
    labels = {m.key: m.normalized for m in policy}
    return labels[ranked[0]]


class MetadataSuggester:
    """Suggests metadata for documents as they arrive.

    Usage:
        suggester = MetadataSuggester()
        suggestion = suggester.suggest("doc-1", text, object_type="besluit")
        suggester.subscribe(event_bus)   # retract documents on deletion
    """

    def __init__(
        self,
        extractor: Optional[EntityExtractor] = None,
        graph: Optional[KnowledgeGraph] = None,
        index: Optional[VectorIndex] = None,
        assessor: Optional[ComplianceAssessor] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.extractor = extractor or EntityExtractor(settings=self.settings)
        self.graph = graph or KnowledgeGraph(settings=self.settings)
        self.index = index or VectorIndex(settings=self.settings)
        self.assessor = assessor or ComplianceAssessor(settings=self.settings)
        self._subscriptions: list[EventBus] = []

    def suggest(
        self,
        document_id: str,
        text: Any,
        object_type: Optional[ObjectType] = None,
        domain_type: Optional[DomainType] = None,
        locale: Optional[str] = None,
    ) -> MetadataSuggestion:
        """Extract, ingest, index and assess one document.

        Re-suggesting a document replaces its previous graph and index
        contributions.

        Raises:
            InvalidInputError: for an empty id, undecodable text or an
                unknown object/domain type.  Nothing is mutated then.
        """
        if not isinstance(document_id, str) or not document_id.strip():
            raise InvalidInputError("document_id must be a non-empty string")
        text = ensure_text(text)
        object_type = parse_choice(ObjectType, object_type, "object type")
        domain_type = parse_choice(DomainType, domain_type, "domain type")

        mentions = self.extractor.extract(text, document_id=document_id, locale=locale)
        report = self.graph.ingest(document_id, mentions)
        self.index.build_signature(document_id, text, mentions)

        similar = [
            SimilarDocument(document_id=other, score=score)
            for other, score in self.index.rank_similar(document_id, self.settings.similar_top_k)
            if score > self.settings.min_similarity
        ]
        context = build_graph_context(self.graph, document_id, self.assessor.registry)
        compliance = self.assessor.assess(
            text, mentions, context, object_type=object_type, domain_type=domain_type,
        )

        suggestion = MetadataSuggestion(
            document_id=document_id,
            entities=mentions,
            similar_documents=similar,
            compliance=compliance,
            suggested_tags=suggest_tags(mentions, self.settings.max_tags),
            subject_area=subject_area(mentions),
            graph_context=context,
            ingest_report=report,
        )
        logger.info(
            "Suggested metadata for %s: %d entities, %d similar, %s",
            document_id, len(mentions), len(similar), compliance.classification.value,
        )
        return suggestion

    def remove_document(self, document_id: str) -> IngestReport:
        """Forget a deleted document in both the graph and the index."""
        report = self.graph.remove_document(document_id)
        self.index.remove(document_id)
        return report

    def _on_document_deleted(self, document_id: str, **_: Any) -> None:
        self.remove_document(document_id)

    def subscribe(self, bus: Optional[EventBus] = None) -> None:
        """Retract documents whenever ``document.deleted`` is emitted."""
        bus = bus or event_bus
        bus.on(DOCUMENT_DELETED, self._on_document_deleted)
        self._subscriptions.append(bus)

    def unsubscribe(self) -> None:
        for bus in self._subscriptions:
            bus.off(DOCUMENT_DELETED, self._on_document_deleted)
        self._subscriptions.clear()
