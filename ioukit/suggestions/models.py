"""Metadata suggestion result schemas."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from ioukit.compliance.context import GraphContext
from ioukit.compliance.models import ComplianceResult
from ioukit.core.schemas import EntityMention
from ioukit.graph.schemas import IngestReport


class SimilarDocument(BaseModel):
    document_id: str
    score: float

    model_config = {"frozen": True}


class MetadataSuggestion(BaseModel):
    """Everything suggested for one document in a single pass."""

    document_id: str
    entities: list[EntityMention] = Field(default_factory=list)
    similar_documents: list[SimilarDocument] = Field(default_factory=list)
    compliance: ComplianceResult
    suggested_tags: list[str] = Field(default_factory=list)
    subject_area: Optional[str] = None
    graph_context: GraphContext = Field(default_factory=GraphContext)
    ingest_report: IngestReport

    model_config = {"frozen": True}
