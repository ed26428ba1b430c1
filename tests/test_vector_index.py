"""Tests for the TF-IDF vector index.

Covers:
- Tokenization and entity-term boosting
- Similarity symmetry and self-similarity
- Ranking order, exclusions and ties (scenario D)
- Rebuild/remove bookkeeping and free-text search
"""
from __future__ import annotations

from dataclasses import replace

import pytest

from ioukit.core import EntityType, InvalidInputError, NotFoundError
from ioukit.semantic import TermSignatureBuilder, VectorIndex, cosine, tokenize

TEXT_ROADS = "Onderhoud van provinciale wegen en fietspaden in de regio."
TEXT_WATER = "Waterkwaliteit en dijkversterking langs het IJsselmeer."
TEXT_MIXED = "Fietspaden langs de dijkversterking worden verbreed."


# ---------------------------------------------------------------------------
# Terms
# ---------------------------------------------------------------------------

class TestTerms:

    def test_tokenize_drops_stopwords_and_short_tokens(self):
        assert tokenize("De gemeente en het Rijk, a b c: samen!") == ["gemeente", "rijk", "samen"]

    def test_tokenize_keeps_hyphenated_words(self):
        assert tokenize("Noord-Holland") == ["noord-holland"]

    def test_entity_terms_are_boosted(self, make_mention):
        builder = TermSignatureBuilder(entity_boost=2.5)
        mention = make_mention("Gemeente Almere", start=0)
        counts = builder.term_counts("gemeente almere almere", [mention])
        assert counts["almere"] == 2.0
        assert counts["organization:gemeente almere"] == 2.5

    def test_negative_boost_rejected(self):
        with pytest.raises(InvalidInputError):
            TermSignatureBuilder(entity_boost=-1)


# ---------------------------------------------------------------------------
# Similarity
# ---------------------------------------------------------------------------

class TestSimilarity:

    @pytest.fixture
    def filled(self, index):
        index.build_signature("roads", TEXT_ROADS)
        index.build_signature("water", TEXT_WATER)
        index.build_signature("mixed", TEXT_MIXED)
        return index

    def test_symmetric(self, filled):
        for a in ("roads", "water", "mixed"):
            for b in ("roads", "water", "mixed"):
                assert filled.similarity(a, b) == filled.similarity(b, a)

    def test_self_similarity_is_exactly_one(self, filled):
        for doc in ("roads", "water", "mixed"):
            assert filled.similarity(doc, doc) == 1.0

    def test_bounded(self, filled):
        score = filled.similarity("roads", "mixed")
        assert 0.0 < score < 1.0

    def test_disjoint_documents_score_zero(self, filled):
        assert filled.similarity("roads", "water") == 0.0

    def test_empty_signature_scores_zero(self, index):
        index.build_signature("empty", "de het een")
        index.build_signature("roads", TEXT_ROADS)
        assert index.similarity("empty", "empty") == 0.0
        assert index.similarity("empty", "roads") == 0.0

    def test_unknown_id(self, filled):
        with pytest.raises(NotFoundError):
            filled.similarity("roads", "nope")

    def test_cosine_is_order_independent(self):
        a = {"x": 0.1, "y": 0.7, "z": 1e-9}
        b = {"z": 3.0, "x": 0.2, "y": 0.3}
        assert cosine(a, b) == cosine(b, a)
        assert cosine({}, b) == 0.0


# ---------------------------------------------------------------------------
# Ranking
# ---------------------------------------------------------------------------

class TestRankSimilar:

    def test_scenario_d(self, index):
        index.build_signature("1", TEXT_ROADS)
        index.build_signature("2", TEXT_ROADS)
        index.build_signature("3", TEXT_WATER)
        assert index.rank_similar("1", 2) == [("2", 1.0), ("3", 0.0)]

    def test_excludes_query_and_truncates(self, index):
        for doc in ("a", "b", "c", "d"):
            index.build_signature(doc, TEXT_ROADS)
        ranked = index.rank_similar("b", 2)
        assert [doc for doc, _ in ranked] == ["a", "c"]

    def test_ties_broken_by_id(self, index):
        index.build_signature("q", TEXT_ROADS)
        index.build_signature("z", TEXT_WATER)
        index.build_signature("y", TEXT_WATER)
        assert index.rank_similar("q", 5) == [("y", 0.0), ("z", 0.0)]

    def test_entities_pull_documents_together(self, index, make_mention):
        almere = make_mention("Gemeente Almere", start=0)
        index.build_signature("a", "Verslag overleg wijkraad.", [almere])
        index.build_signature("b", "Notitie begroting haven.", [almere])
        index.build_signature("c", "Notitie begroting dijk.")
        [(top, _), _] = index.rank_similar("a", 2)
        assert top == "b"

    def test_unknown_query(self, index):
        with pytest.raises(NotFoundError):
            index.rank_similar("ghost", 3)

    def test_negative_top_k(self, index):
        index.build_signature("a", TEXT_ROADS)
        with pytest.raises(InvalidInputError):
            index.rank_similar("a", -1)

    def test_search_free_text(self, index):
        index.build_signature("roads", TEXT_ROADS)
        index.build_signature("water", TEXT_WATER)
        [(best, score), _] = index.search("dijkversterking IJsselmeer")
        assert best == "water"
        assert score > 0.0


# ---------------------------------------------------------------------------
# Bookkeeping
# ---------------------------------------------------------------------------

class TestBookkeeping:

    def test_rebuild_replaces_signature(self, index):
        index.build_signature("a", TEXT_ROADS)
        index.build_signature("a", TEXT_WATER)
        assert len(index) == 1
        assert "ijsselmeer" in index.signature("a").terms
        assert "fietspaden" not in index.signature("a").terms

    def test_rebuild_does_not_inflate_document_frequency(self, index):
        index.build_signature("a", TEXT_ROADS)
        index.build_signature("b", TEXT_MIXED)
        before = index.rank_similar("b", 1)
        assert before[0][1] > 0.0
        index.build_signature("a", TEXT_ROADS)
        assert index.rank_similar("b", 1) == before

    def test_remove(self, index):
        index.build_signature("a", TEXT_ROADS)
        assert index.remove("a") is True
        assert index.remove("a") is False
        assert "a" not in index
        with pytest.raises(NotFoundError):
            index.signature("a")

    def test_bad_input(self, index):
        with pytest.raises(InvalidInputError):
            index.build_signature("", TEXT_ROADS)
        with pytest.raises(InvalidInputError):
            index.build_signature("a", 12)

    def test_entity_boost_from_settings(self, settings):
        index = VectorIndex(settings=replace(settings, entity_term_boost=4.0))
        assert index.builder.entity_boost == 4.0

    def test_signature_keys_use_entity_identity(self, index, make_mention):
        law = make_mention("Omgevingswet", EntityType.LAW, start=0)
        signature = index.build_signature("a", "De Omgevingswet", [law])
        assert "law:omgevingswet" in signature.terms
