"""TF-IDF vector index for document similarity.

Signatures keep raw term counts.  Weights are derived on demand against
the index's current document frequencies with the smoothed inverse
document frequency ``ln((1 + N) / (1 + df)) + 1``, so adding a document
immediately re-weights every comparison.
"""

import logging
import math
from collections import Counter
from typing import Iterable, Optional

from pydantic import BaseModel, Field

from ioukit.core.config import Settings, get_settings
from ioukit.core.exceptions import InvalidInputError, NotFoundError
from ioukit.core.locks import ReadWriteLock
from ioukit.core.schemas import EntityMention
from .tokenizer import TermSignatureBuilder

logger = logging.getLogger(__name__)

_PRECISION = 12


class VectorSignature(BaseModel):
    """Raw term counts of one document."""

    id: str
    terms: dict[str, float] = Field(default_factory=dict)

    model_config = {"frozen": True}

    @property
    def is_empty(self) -> bool:
        return not self.terms


def cosine(a: dict[str, float], b: dict[str, float]) -> float:
    """Cosine similarity of two sparse vectors.

    Sums run over sorted terms so the result does not depend on argument
    order, then the value is clamped to [-1, 1] and rounded.
    """
    if not a or not b:
        return 0.0
    norm_a = math.sqrt(sum(a[t] * a[t] for t in sorted(a)))
    norm_b = math.sqrt(sum(b[t] * b[t] for t in sorted(b)))
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0
    dot = sum(a[t] * b[t] for t in sorted(a.keys() & b.keys()))
    score = dot / (norm_a * norm_b)
    return round(max(-1.0, min(1.0, score)), _PRECISION)


class VectorIndex:
    """Thread-safe in-memory index of document signatures.

    Usage:
        index = VectorIndex()
        index.build_signature("doc-1", text, mentions)
        index.rank_similar("doc-1", top_k=5)
    """

    def __init__(
        self,
        builder: Optional[TermSignatureBuilder] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.builder = builder or TermSignatureBuilder(entity_boost=self.settings.entity_term_boost)
        self._lock = ReadWriteLock()
        self._signatures: dict[str, VectorSignature] = {}
        self._df: Counter = Counter()

    def __len__(self) -> int:
        return len(self._signatures)

    def __contains__(self, signature_id: object) -> bool:
        return signature_id in self._signatures

    def build_signature(
        self,
        signature_id: str,
        text: str,
        mentions: Optional[Iterable[EntityMention]] = None,
    ) -> VectorSignature:
        """Compute and store the signature of a document.

        Rebuilding an existing id replaces the old signature along with its
        document-frequency contributions.

        Raises:
            InvalidInputError: for an empty id or non-text content.
        """
        if not isinstance(signature_id, str) or not signature_id.strip():
            raise InvalidInputError("signature id must be a non-empty string")
        signature = VectorSignature(
            id=signature_id,
            terms=self.builder.term_counts(text, mentions),
        )
        with self._lock.write_locked():
            self._forget(signature_id)
            self._signatures[signature_id] = signature
            self._df.update(signature.terms.keys())
        logger.debug("Indexed %s with %d terms", signature_id, len(signature.terms))
        return signature

    def remove(self, signature_id: str) -> bool:
        """Drop a signature.  Returns False when it was not indexed."""
        with self._lock.write_locked():
            return self._forget(signature_id)

    def _forget(self, signature_id: str) -> bool:
        old = self._signatures.pop(signature_id, None)
        if old is None:
            return False
        self._df.subtract(old.terms.keys())
        for term in old.terms:
            if self._df[term] <= 0:
                del self._df[term]
        return True

    def signature(self, signature_id: str) -> VectorSignature:
        with self._lock.read_locked():
            try:
                return self._signatures[signature_id]
            except KeyError:
                raise NotFoundError("signature", signature_id) from None

    def _weights(self, terms: dict[str, float]) -> dict[str, float]:
        n = len(self._signatures)
        return {
            term: count * (math.log((1 + n) / (1 + self._df.get(term, 0))) + 1.0)
            for term, count in terms.items()
        }

    def _require(self, signature_id: str) -> VectorSignature:
        signature = self._signatures.get(signature_id)
        if signature is None:
            raise NotFoundError("signature", signature_id)
        return signature

    def similarity(self, a: str, b: str) -> float:
        """Cosine similarity of two indexed documents.

        Symmetric, and exactly 1.0 for a non-empty document against itself.

        Raises:
            NotFoundError: if either id has no signature.
        """
        with self._lock.read_locked():
            sig_a = self._require(a)
            sig_b = self._require(b)
            if a == b:
                return 1.0 if any(sig_a.terms.values()) else 0.0
            return cosine(self._weights(sig_a.terms), self._weights(sig_b.terms))

    @staticmethod
    def _check_top_k(top_k: int) -> None:
        if isinstance(top_k, bool) or not isinstance(top_k, int) or top_k < 0:
            raise InvalidInputError(f"top_k must be a non-negative integer, got {top_k!r}")

    def _rank(self, query: dict[str, float], exclude: Optional[str], top_k: int) -> list[tuple[str, float]]:
        scored = [
            (other_id, cosine(query, self._weights(signature.terms)))
            for other_id, signature in self._signatures.items()
            if other_id != exclude
        ]
        scored.sort(key=lambda item: (-item[1], item[0]))
        return scored[:top_k]

    def rank_similar(self, query_id: str, top_k: int) -> list[tuple[str, float]]:
        """Other documents ranked by similarity to ``query_id``.

        Highest score first, ties by id.  Zero-scored documents are
        included; the query itself never is.

        Raises:
            NotFoundError: if ``query_id`` has no signature.
            InvalidInputError: if ``top_k`` is negative.
        """
        self._check_top_k(top_k)
        with self._lock.read_locked():
            query = self._weights(self._require(query_id).terms)
            return self._rank(query, query_id, top_k)

    def search(self, text: str, top_k: int = 10) -> list[tuple[str, float]]:
        """Rank indexed documents against free text."""
        self._check_top_k(top_k)
        terms = self.builder.term_counts(text)
        with self._lock.read_locked():
            return self._rank(self._weights(terms), None, top_k)
