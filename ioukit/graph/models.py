"""Knowledge Graph storage records — nodes, edges and per-document support.

Records live in id-keyed tables owned by :class:`KnowledgeGraph` and
reference each other only by id.  Mentions are referenced by their
``document:start-end`` key, never held.
"""

from dataclasses import dataclass, field
from typing import NamedTuple

from ioukit.core.schemas import EntityType
from .schemas import GraphEdge, GraphNode, RelationKind


class EdgeKey(NamedTuple):
    kind: RelationKind
    source: str
    target: str

    def other(self, node_id: str) -> str:
        return self.target if node_id == self.source else self.source


@dataclass
class NodeRecord:
    """One entity.  ``support`` maps document id -> {mention ref: confidence}."""

    id: str
    entity_type: EntityType
    label: str
    support: dict[str, dict[str, float]] = field(default_factory=dict)

    def is_supported(self) -> bool:
        return any(self.support.values())

    def snapshot(self) -> GraphNode:
        refs = sorted(ref for doc in self.support.values() for ref in doc)
        confidence = max(
            (c for doc in self.support.values() for c in doc.values()),
            default=0.0,
        )
        return GraphNode(
            id=self.id,
            entity_type=self.entity_type,
            label=self.label,
            mentions=refs,
            documents=sorted(self.support),
            confidence=confidence,
        )


@dataclass
class EdgeRecord:
    """One relation.  ``support`` maps document id -> weight contributed."""

    key: EdgeKey
    support: dict[str, int] = field(default_factory=dict)

    @property
    def weight(self) -> int:
        return sum(self.support.values())

    def snapshot(self) -> GraphEdge:
        return GraphEdge(
            source=self.key.source,
            target=self.key.target,
            kind=self.key.kind,
            weight=self.weight,
            documents=sorted(self.support),
        )


@dataclass
class DocumentContribution:
    """Everything one document added, so it can be retracted exactly."""

    node_refs: dict[str, set[str]] = field(default_factory=dict)
    edge_keys: set[EdgeKey] = field(default_factory=set)
    mention_count: int = 0


@dataclass(frozen=True)
class GraphSnapshot:
    """Immutable copy of the graph topology taken under the read lock.

    ``pair_weights`` folds every edge kind joining two nodes into one
    undirected weight keyed by the sorted id pair.
    """

    version: int
    node_types: dict[str, EntityType]
    pair_weights: dict[tuple[str, str], int]

    @property
    def node_ids(self) -> list[str]:
        return sorted(self.node_types)

    @property
    def total_weight(self) -> int:
        return sum(self.pair_weights.values())
