"""IOU Kit metadata suggestions — the end-to-end document pipeline."""

from .models import MetadataSuggestion, SimilarDocument
from .suggester import MetadataSuggester, rank_entities, subject_area, suggest_tags

__all__ = [
    "MetadataSuggester",
    "MetadataSuggestion",
    "SimilarDocument",
    "rank_entities",
    "subject_area",
    "suggest_tags",
]
