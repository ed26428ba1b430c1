"""IOU Kit Knowledge Graph — entities, relations and communities across documents."""

from .schemas import (
    Community,
    CommunityPartition,
    GraphEdge,
    GraphNode,
    GraphStats,
    IngestReport,
    RelatedDocument,
    RelationKind,
)
from .store import COMMUNITY_LABELS, KnowledgeGraph

__all__ = [
    "KnowledgeGraph",
    "COMMUNITY_LABELS",
    "Community",
    "CommunityPartition",
    "GraphEdge",
    "GraphNode",
    "GraphStats",
    "IngestReport",
    "RelatedDocument",
    "RelationKind",
]
