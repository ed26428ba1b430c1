"""Term extraction for document signatures."""

import re
from collections import Counter
from typing import Iterable, Optional

from ioukit.core.exceptions import InvalidInputError
from ioukit.core.schemas import EntityMention

_TOKEN = re.compile(r"[^\W_]+(?:['-][^\W_]+)*")

DUTCH_STOPWORDS = frozenset({
    "aan", "al", "alle", "als", "ben", "bij", "dan", "dat", "de", "deze",
    "die", "dit", "door", "du", "een", "en", "er", "geen", "had", "heb",
    "hebben", "heeft", "het", "hier", "hij", "hoe", "hun", "ik", "in", "is",
    "ja", "je", "kan", "kon", "kunnen", "maar", "me", "meer", "met", "mij",
    "moet", "na", "naar", "nee", "niet", "nog", "nu", "of", "om", "omdat",
    "ons", "ook", "op", "over", "te", "ten", "ter", "tot", "tussen", "u",
    "uit", "van", "veel", "voor", "want", "was", "wat", "we", "wel", "werd",
    "wie", "wij", "wil", "worden", "wordt", "zal", "ze", "zich", "zij",
    "zijn", "zo", "zoals", "zonder", "zou",
})


def tokenize(text: str, stopwords: Iterable[str] = DUTCH_STOPWORDS) -> list[str]:
    """Casefolded word tokens with stopwords and one-letter tokens removed."""
    stop = stopwords if isinstance(stopwords, (set, frozenset)) else set(stopwords)
    tokens = []
    for match in _TOKEN.finditer(text):
        token = match.group().casefold()
        if len(token) < 2 or token in stop:
            continue
        tokens.append(token)
    return tokens


class TermSignatureBuilder:
    """Turns a document into raw term counts.

    Word tokens count 1 each; every entity mention adds its canonical
    ``<type>:<normalized>`` term with weight ``entity_boost`` so shared
    entities pull documents together more than shared vocabulary.
    Subclass and override :meth:`term_counts` to plug in a different
    term model.
    """

    def __init__(self, entity_boost: float = 2.0, stopwords: Iterable[str] = DUTCH_STOPWORDS):
        if entity_boost < 0:
            raise InvalidInputError(f"entity_boost must be >= 0, got {entity_boost}")
        self.entity_boost = entity_boost
        self.stopwords = frozenset(stopwords)

    def term_counts(
        self,
        text: str,
        mentions: Optional[Iterable[EntityMention]] = None,
    ) -> dict[str, float]:
        if not isinstance(text, str):
            raise InvalidInputError(f"Document text must be str, got {type(text).__name__}")
        counts: Counter = Counter(tokenize(text, self.stopwords))
        terms = {term: float(n) for term, n in counts.items()}
        if self.entity_boost:
            for mention in mentions or ():
                terms[mention.key] = terms.get(mention.key, 0.0) + self.entity_boost
        return terms
