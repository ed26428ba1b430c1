"""Tests for the compliance assessor.

Covers:
- Default classification and retention
- AVG personal-data rules (scenario C), special and criminal categories
- Woo relevance from public bodies and decision terms
- Archiefwet retention table by domain and object type
- Resolution monotonicity as rules are added
- Graph context construction and custom rule tables
"""
from __future__ import annotations

import json

import pytest

from ioukit.compliance import (
    ArchivalValue,
    Classification,
    ComplianceAssessor,
    GraphContext,
    OrganizationRegistry,
    PrivacyLevel,
    RegulatoryBasis,
    build_graph_context,
    build_rules,
    default_rules,
    load_rules,
)
from ioukit.core import ConfigurationError, InvalidInputError

SCENARIO_C = "De heer Jan de Vries woont aan de Stationsstraat 12, 1315 AB Almere."

SAMPLE_TEXTS = [
    SCENARIO_C,
    "Het college neemt een besluit over de vergunning.",
    "Medische gegevens en een strafrechtelijke veroordeling van betrokkene.",
    "Rubricering: Stg. Geheim. Alleen voor de minister.",
    "Een gewone notitie over de lunch.",
]


# ---------------------------------------------------------------------------
# Baseline
# ---------------------------------------------------------------------------

class TestDefaults:

    def test_plain_text(self, assessor):
        result = assessor.assess("Een gewone notitie over de lunch.", [])
        assert result.classification == Classification.OPENBAAR
        assert result.retention_years == 7
        assert result.woo_relevant is False
        assert result.privacy_level == PrivacyLevel.GEEN
        assert result.archival_value == ArchivalValue.TIJDELIJK
        assert result.signals == []

    def test_non_text_rejected(self, assessor):
        with pytest.raises(InvalidInputError):
            assessor.assess(b"bytes", [])

    def test_unknown_object_type_rejected(self, assessor):
        with pytest.raises(InvalidInputError):
            assessor.assess("tekst", [], object_type="fax")


# ---------------------------------------------------------------------------
# AVG
# ---------------------------------------------------------------------------

class TestPersonalData:

    def test_scenario_c(self, assessor, extractor):
        result = assessor.assess(SCENARIO_C, extractor.extract(SCENARIO_C))
        assert result.classification == Classification.INTERN
        assert result.woo_relevant is False
        assert result.privacy_level == PrivacyLevel.NORMAAL
        assert result.fired_rules == ["avg.person_with_address"]
        [signal] = result.signals
        assert signal.regulatory_basis == RegulatoryBasis.AVG
        assert "address" in signal.condition

    def test_address_without_person_is_not_personal(self, assessor):
        result = assessor.assess("Het pand aan de Stationsstraat 12 wordt gesloopt.", [])
        assert result.classification == Classification.OPENBAAR

    def test_identifiers(self, assessor):
        result = assessor.assess("Aanvrager met BSN 123456789.", [])
        assert result.classification == Classification.INTERN
        assert result.fired_rules == ["avg.identifiers"]

    def test_special_category(self, assessor):
        result = assessor.assess("Medische gegevens van de aanvrager.", [])
        assert result.classification == Classification.VERTROUWELIJK
        assert result.privacy_level == PrivacyLevel.BIJZONDER

    def test_criminal_data(self, assessor):
        result = assessor.assess("Een strafrechtelijke veroordeling uit 2019.", [])
        assert result.classification == Classification.VERTROUWELIJK
        assert result.privacy_level == PrivacyLevel.STRAFRECHTELIJK

    def test_most_severe_privacy_wins(self, assessor):
        result = assessor.assess(SAMPLE_TEXTS[2], [])
        assert result.privacy_level == PrivacyLevel.BIJZONDER
        assert set(result.fired_rules) == {"avg.special_category", "avg.criminal_data"}

    def test_keywords_match_word_starts_only(self, assessor):
        result = assessor.assess("Het voorbesluit over de bouwvergunning.", [])
        assert result.signals == []
        result = assessor.assess("Vergunningverlening loopt.", [])
        assert result.fired_rules == ["woo.decision_terms"]


# ---------------------------------------------------------------------------
# Woo
# ---------------------------------------------------------------------------

class TestWoo:

    def test_decision_terms(self, assessor):
        result = assessor.assess(SAMPLE_TEXTS[1], [])
        assert result.woo_relevant is True
        assert result.fired_rules == ["woo.decision_terms"]

    def test_public_body_among_entities(self, assessor, extractor):
        text = "Rijkswaterstaat publiceert het jaarverslag."
        result = assessor.assess(text, extractor.extract(text))
        assert result.woo_relevant is True
        assert "woo.public_body" in result.fired_rules

    def test_public_body_from_graph_context(self, assessor):
        context = GraphContext(public_bodies=["organization:gemeente almere"])
        result = assessor.assess("Notulen.", [], graph_context=context)
        assert result.woo_relevant is True

    def test_woo_is_or_of_signals(self, assessor, extractor):
        text = "De heer Jan de Vries, Stationsstraat 12, vraagt een vergunning aan."
        result = assessor.assess(text, extractor.extract(text))
        assert result.woo_relevant is True
        assert result.classification == Classification.INTERN

    def test_state_secret(self, assessor):
        result = assessor.assess(SAMPLE_TEXTS[3], [])
        assert result.classification == Classification.GEHEIM


# ---------------------------------------------------------------------------
# Archiefwet
# ---------------------------------------------------------------------------

class TestRetention:

    @pytest.mark.parametrize("domain,object_type,years", [
        ("zaak", "document", 10),
        ("zaak", "email", 5),
        ("zaak", "chat", 7),
        ("project", "document", 10),
        ("project", "chat", 7),
        ("beleid", "document", 15),
        ("beleid", "email", 10),
        ("beleid", "besluit", 20),
        ("expertise", "data", 5),
        (None, None, 7),
    ])
    def test_retention_table(self, assessor, domain, object_type, years):
        result = assessor.assess("Notitie.", [], object_type=object_type, domain_type=domain)
        assert result.retention_years == years

    def test_besluit_is_woo_relevant_and_permanent(self, assessor):
        result = assessor.assess("Notitie.", [], object_type="besluit")
        assert result.woo_relevant is True
        assert result.retention_years == 20
        assert result.archival_value == ArchivalValue.PERMANENT

    def test_policy_documents_are_permanent(self, assessor):
        result = assessor.assess("Notitie.", [], object_type="document", domain_type="beleid")
        assert result.archival_value == ArchivalValue.PERMANENT

    def test_default_retention_from_settings(self, settings):
        from dataclasses import replace

        assessor = ComplianceAssessor(settings=replace(settings, default_retention_years=3))
        assert assessor.assess("Notitie.", []).retention_years == 3

    def test_contributed_retention_below_default_is_kept(self, assessor):
        result = assessor.assess("Notitie.", [], domain_type="expertise")
        assert result.retention_years == 5


# ---------------------------------------------------------------------------
# Monotonicity
# ---------------------------------------------------------------------------

class TestMonotonicity:

    @pytest.mark.parametrize("text", SAMPLE_TEXTS)
    def test_adding_rules_never_loosens(self, settings, extractor, text):
        rules = default_rules()
        mentions = extractor.extract(text)
        previous = None
        for k in range(len(rules) + 1):
            result = ComplianceAssessor(rules=rules[:k], settings=settings).assess(
                text, mentions, object_type="besluit",
            )
            if previous is not None:
                assert result.classification.rank >= previous.classification.rank
                assert result.privacy_level.rank >= previous.privacy_level.rank
                assert result.woo_relevant >= previous.woo_relevant
            previous = result

    def test_repeatable(self, assessor, extractor):
        mentions = extractor.extract(SCENARIO_C)
        assert assessor.assess(SCENARIO_C, mentions) == assessor.assess(SCENARIO_C, mentions)


# ---------------------------------------------------------------------------
# Graph context
# ---------------------------------------------------------------------------

class TestGraphContext:

    def test_registry(self):
        registry = OrganizationRegistry()
        assert registry.is_public_body("Rijkswaterstaat")
        assert registry.is_public_body("Ministerie van Financiën")
        assert registry.is_public_body("gemeente  Utrecht")
        assert not registry.is_public_body("Stichting Beter Wonen")

    def test_registry_without_prefixes(self):
        registry = OrganizationRegistry(names=["Havenbedrijf"], match_prefixes=False)
        assert registry.is_public_body("havenbedrijf")
        assert not registry.is_public_body("Gemeente Almere")

    def test_build_from_graph(self, graph, extractor):
        graph.ingest("d1", extractor.extract("Rijkswaterstaat en de Gemeente Almere.", document_id="d1"))
        graph.ingest("d2", extractor.extract("Project Nieuwe Dijk met Rijkswaterstaat.", document_id="d2"))
        context = build_graph_context(graph, "d2")
        assert context.public_bodies == ["organization:rijkswaterstaat"]
        assert context.neighbor_public_bodies == ["organization:gemeente almere"]
        assert context.related_document_count == 1
        assert context.community_ids == []

        graph.detect_communities()
        assert build_graph_context(graph, "d2").community_ids

    def test_unknown_document_gives_empty_context(self, graph):
        context = build_graph_context(graph, "missing")
        assert context == GraphContext(document_id="missing")

    def test_neighbor_condition(self, settings):
        assessor = ComplianceAssessor(rules=[{
            "rule_id": "woo.nearby_body",
            "description": "Bestuursorgaan in de nabijheid",
            "regulatory_basis": "Woo",
            "conditions": [{"kind": "graph", "predicate": "public_body_neighbor"}],
            "woo_relevant": True,
        }], settings=settings)
        context = GraphContext(neighbor_public_bodies=["organization:kadaster"])
        assert assessor.assess("Notitie.", [], graph_context=context).woo_relevant is True
        assert assessor.assess("Notitie.", [], graph_context=GraphContext()).woo_relevant is False


# ---------------------------------------------------------------------------
# Rule tables
# ---------------------------------------------------------------------------

class TestRuleTables:

    def test_default_table_is_valid_and_ordered(self):
        ids = [r.rule_id for r in default_rules()]
        assert ids[0] == "avg.person_with_address"
        assert len(ids) == len(set(ids))

    def test_all_of_semantics(self, settings):
        assessor = ComplianceAssessor(rules=[{
            "rule_id": "x",
            "description": "beide",
            "regulatory_basis": "Archiefwet",
            "conditions": [
                {"kind": "keyword", "keywords": ["subsidie"]},
                {"kind": "domain_type", "domain_types": ["zaak"]},
            ],
            "retention_years": 12,
        }], settings=settings)
        assert assessor.assess("Subsidie toegekend.", []).retention_years == 7
        assert assessor.assess("Subsidie toegekend.", [], domain_type="zaak").retention_years == 12

    @pytest.mark.parametrize("spec", [
        {"rule_id": "a", "description": "", "regulatory_basis": "Woo", "conditions": []},
        {"rule_id": "b", "description": "", "regulatory_basis": "Woo",
         "conditions": [{"kind": "telepathy"}]},
        {"rule_id": "c", "description": "", "regulatory_basis": "Woo",
         "conditions": [{"kind": "pattern", "pattern": "("}]},
        {"rule_id": "d", "description": "", "regulatory_basis": "GDPR",
         "conditions": [{"kind": "keyword", "keywords": ["x"]}]},
        {"rule_id": "e", "description": "", "regulatory_basis": "Woo",
         "conditions": [{"kind": "keyword", "keywords": ["x"]}], "retention_years": -1},
    ])
    def test_invalid_rules(self, spec):
        with pytest.raises(ConfigurationError):
            build_rules([spec])

    def test_duplicate_ids(self):
        rule = {"rule_id": "a", "description": "", "regulatory_basis": "Woo",
                "conditions": [{"kind": "keyword", "keywords": ["x"]}]}
        with pytest.raises(ConfigurationError):
            build_rules([rule, rule])

    def test_load_rules(self, tmp_path):
        path = tmp_path / "compliance.json"
        path.write_text(json.dumps({"rules": [{
            "rule_id": "woo.convenant",
            "description": "Convenanten",
            "regulatory_basis": "Woo",
            "conditions": [{"kind": "keyword", "keywords": ["convenant"]}],
            "woo_relevant": True,
        }]}), encoding="utf-8")
        [rule] = load_rules(path)
        assert rule.rule_id == "woo.convenant"
        with pytest.raises(ConfigurationError):
            load_rules(tmp_path / "missing.json")
