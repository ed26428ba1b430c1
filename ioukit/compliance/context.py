"""Graph context for compliance assessment.

A :class:`GraphContext` summarises what the Knowledge Graph knows about a
document's entities: which of them are public bodies (bestuursorganen),
which public bodies sit one hop away, and how connected the document is.
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, Iterable, Optional

from pydantic import BaseModel, Field

from ioukit.core.exceptions import NotFoundError
from ioukit.core.schemas import EntityMention, EntityType, normalize_surface
from ioukit.ner.gazetteers import MINISTRIES, PUBLIC_BODIES

if TYPE_CHECKING:
    from ioukit.graph import KnowledgeGraph

logger = logging.getLogger(__name__)

_GOVERNMENT_PREFIX = re.compile(r"^(?:gemeente|provincie|waterschap|ministerie van)\s+\S")


class GraphContext(BaseModel):
    document_id: Optional[str] = None
    public_bodies: list[str] = Field(default_factory=list)
    neighbor_public_bodies: list[str] = Field(default_factory=list)
    community_ids: list[str] = Field(default_factory=list)
    related_document_count: int = 0

    model_config = {"frozen": True}

    @property
    def involves_public_body(self) -> bool:
        return bool(self.public_bodies)


class OrganizationRegistry:
    """Reference list of Dutch public bodies.

    An organization counts as a public body when its name is listed, or
    when it carries a government prefix such as ``Gemeente`` or
    ``Ministerie van``.
    """

    def __init__(self, names: Optional[Iterable[str]] = None, match_prefixes: bool = True):
        if names is None:
            names = list(PUBLIC_BODIES.values())
            names += [f"Ministerie van {m}" for m in MINISTRIES.values()]
        self._names = frozenset(normalize_surface(n) for n in names)
        self.match_prefixes = match_prefixes

    def __len__(self) -> int:
        return len(self._names)

    def is_public_body(self, name: str) -> bool:
        folded = normalize_surface(name)
        if folded in self._names:
            return True
        return self.match_prefixes and bool(_GOVERNMENT_PREFIX.match(folded))


def context_from_mentions(
    mentions: Iterable[EntityMention],
    registry: OrganizationRegistry,
    document_id: Optional[str] = None,
) -> GraphContext:
    """Context from a document's own mentions, without graph neighbours."""
    bodies = {
        m.key for m in mentions
        if m.entity_type == EntityType.ORGANIZATION and registry.is_public_body(m.normalized)
    }
    return GraphContext(document_id=document_id, public_bodies=sorted(bodies))


def build_graph_context(
    graph: "KnowledgeGraph",
    document_id: str,
    registry: Optional[OrganizationRegistry] = None,
) -> GraphContext:
    """Summarise an ingested document's place in the graph.

    Returns an empty context for a document the graph has never seen.
    """
    registry = registry or OrganizationRegistry()
    try:
        nodes = graph.document_nodes(document_id)
        related = graph.related_documents(document_id)
    except NotFoundError:
        logger.debug("No graph context for unknown document %s", document_id)
        return GraphContext(document_id=document_id)

    own_ids = {n.id for n in nodes}
    bodies: set[str] = set()
    nearby: set[str] = set()
    communities: set[str] = set()
    for node in nodes:
        if node.entity_type == EntityType.ORGANIZATION and registry.is_public_body(node.label):
            bodies.add(node.id)
        for neighbor in graph.neighbors(node.id):
            if neighbor.id in own_ids or neighbor.entity_type != EntityType.ORGANIZATION:
                continue
            if registry.is_public_body(neighbor.label):
                nearby.add(neighbor.id)
        community = graph.community_of(node.id)
        if community is not None:
            communities.add(community.id)

    return GraphContext(
        document_id=document_id,
        public_bodies=sorted(bodies),
        neighbor_public_bodies=sorted(nearby),
        community_ids=sorted(communities),
        related_document_count=len(related),
    )
