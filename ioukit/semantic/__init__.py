"""IOU Kit semantic index — TF-IDF document signatures and similarity."""

from .index import VectorIndex, VectorSignature, cosine
from .tokenizer import DUTCH_STOPWORDS, TermSignatureBuilder, tokenize

__all__ = [
    "VectorIndex",
    "VectorSignature",
    "TermSignatureBuilder",
    "DUTCH_STOPWORDS",
    "cosine",
    "tokenize",
]
