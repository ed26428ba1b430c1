"""Pydantic response schemas for the Knowledge Graph.

These are immutable snapshots handed to callers; the graph's own
bookkeeping lives in :mod:`ioukit.graph.models`.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from ioukit.core.schemas import EntityType


class RelationKind(str, Enum):
    CO_OCCURRENCE = "co_occurrence"
    EXPLICIT_REFERENCE = "explicit_reference"
    HIERARCHICAL = "hierarchical"


# Tie-break order when several edge kinds join the same pair.
RELATION_KIND_ORDER = (
    RelationKind.EXPLICIT_REFERENCE,
    RelationKind.HIERARCHICAL,
    RelationKind.CO_OCCURRENCE,
)


class GraphNode(BaseModel):
    id: str
    entity_type: EntityType
    label: str
    mentions: list[str] = Field(default_factory=list)
    documents: list[str] = Field(default_factory=list)
    confidence: float = 0.0

    model_config = {"frozen": True}

    @property
    def mention_count(self) -> int:
        return len(self.mentions)


class GraphEdge(BaseModel):
    source: str
    target: str
    kind: RelationKind
    weight: int = Field(default=1, ge=1)
    documents: list[str] = Field(default_factory=list)

    model_config = {"frozen": True}


class Community(BaseModel):
    id: str
    members: list[str] = Field(default_factory=list)
    cohesion: float = 0.0
    label: str = ""

    model_config = {"frozen": True}


class CommunityPartition(BaseModel):
    """Result of one community detection run."""

    communities: list[Community] = Field(default_factory=list)
    modularity: float = 0.0
    resolution: float = 1.0
    iterations: int = 0
    converged: bool = True
    graph_version: int = 0

    model_config = {"frozen": True}


class IngestReport(BaseModel):
    document_id: str
    mention_count: int = 0
    nodes_created: int = 0
    nodes_pruned: int = 0
    edges_created: int = 0
    edges_pruned: int = 0
    node_ids: list[str] = Field(default_factory=list)

    model_config = {"frozen": True}


class RelatedDocument(BaseModel):
    document_id: str
    shared_node_ids: list[str] = Field(default_factory=list)
    strength: float = 0.0

    model_config = {"frozen": True}


class GraphStats(BaseModel):
    node_count: int = 0
    edge_count: int = 0
    document_count: int = 0
    density: float = 0.0
    community_count: Optional[int] = None
