"""
Unit tests for diagnosis priority scoring.
"""

import pytest

from icd_triage.schemas.diagnosis import Candidate, RankingOptions, ScoringWeights
from icd_triage.services.ranking.scoring import (
    calculate_priority_score,
    code_type_score,
    count_mentions,
    frequency_score,
    get_code_specificity,
    get_score_breakdown,
    is_acute_condition,
    is_low_priority_z_code,
    is_symptom_code,
    is_unspecified_code,
    is_z_code,
    score,
    status_score,
)


def make_candidate(**overrides) -> Candidate:
    data = {
        "code": "E11.9",
        "description": "Type 2 diabetes mellitus without complications",
        "confidence": 0.9,
        "status": "confirmed",
        "evidence": "",
    }
    data.update(overrides)
    return Candidate(**data)


class TestCodeSpecificity:
    """Tests for the specificity step function."""

    def test_ordering(self):
        assert (
            get_code_specificity("I10")
            < get_code_specificity("E11.9")
            < get_code_specificity("E11.65")
            < get_code_specificity("E11.649")
        )

    @pytest.mark.parametrize(
        "code,expected",
        [
            ("I10", 0.3),
            ("E11.9", 0.5),
            ("E11.65", 0.7),
            ("E11.649", 0.9),
            ("S72.001A", 1.0),
            ("I1", 0.1),
            ("", 0.1),
        ],
    )
    def test_values(self, code, expected):
        assert get_code_specificity(code) == expected


class TestStatusScore:
    """Tests for the status factor."""

    @pytest.mark.parametrize(
        "status,expected",
        [
            ("confirmed", 1.0),
            ("suspected", 0.7),
            ("history_of", 0.4),
            ("rule_out", 0.0),
            ("possible", 0.5),
        ],
    )
    def test_values(self, status, expected):
        assert status_score(status) == expected

    def test_unknown_status_candidate(self):
        candidate = make_candidate(status="probable")
        assert candidate.status == "probable"
        assert status_score(candidate.status) == 0.5


class TestMentions:
    """Tests for mention counting in the clinical note."""

    def test_counts_long_description_words(self):
        candidate = make_candidate(description="Essential hypertension")
        note = "Hypertension noted. Essential HYPERTENSION confirmed."
        # "essential" x1 + "hypertension" x2
        assert count_mentions(note, candidate) == 3

    def test_whole_words_only(self):
        candidate = make_candidate(description="Hypertension")
        assert count_mentions("hypertensionitis and prehypertension", candidate) == 0

    def test_short_words_ignored(self):
        candidate = make_candidate(description="Pain in leg")
        assert count_mentions("pain in the leg, leg pain", candidate) == 2

    def test_punctuation_stripped_from_description(self):
        candidate = make_candidate(description="Chest pain, unspecified")
        assert count_mentions("Chest pain since morning", candidate) == 2

    def test_evidence_adds_one(self):
        candidate = make_candidate(description="Gout", evidence="uric acid high")
        assert count_mentions("no relevant words", candidate) == 1

    def test_capped_at_five(self):
        candidate = make_candidate(description="Diabetes", evidence="diabetes")
        note = " ".join(["diabetes"] * 10)
        assert count_mentions(note, candidate) == 5

    def test_empty_note(self):
        candidate = make_candidate(evidence="something")
        assert count_mentions("", candidate) == 0

    @pytest.mark.parametrize("mentions,expected", [(0, 0.0), (1, 0.3), (2, 0.6), (3, 1.0), (5, 1.0)])
    def test_frequency_mapping(self, mentions, expected):
        candidate = make_candidate(description="Asthma")
        assert frequency_score(candidate, " ".join(["asthma"] * mentions) or "none") == expected


class TestCodeType:
    """Tests for code classification and penalties."""

    def test_predicates(self):
        assert is_symptom_code("R07.9")
        assert not is_symptom_code("I10")
        assert is_z_code("z00.00")
        assert not is_z_code("E11.9")
        assert is_low_priority_z_code("Z23")
        assert is_low_priority_z_code("Z71.3")
        assert not is_low_priority_z_code("Z87.891")
        assert not is_low_priority_z_code("E11.9")

    @pytest.mark.parametrize(
        "description,expected",
        [
            ("Chest pain, unspecified", True),
            ("Anemia, not otherwise specified", True),
            ("Anxiety NOS", True),
            ("Spinal stenosis", False),
            ("Essential hypertension", False),
        ],
    )
    def test_unspecified(self, description, expected):
        assert is_unspecified_code(description) is expected

    def test_no_penalty(self):
        assert code_type_score(make_candidate()) == 1.0

    def test_unspecified_symptom(self):
        candidate = make_candidate(code="R07.9", description="Chest pain, unspecified")
        assert code_type_score(candidate) == pytest.approx(0.5)

    def test_unspecified_z_code(self):
        candidate = make_candidate(code="Z00.00", description="Encounter, unspecified")
        assert code_type_score(candidate) == pytest.approx(0.3)

    def test_floor_at_zero(self):
        # Cannot happen with real codes, but penalties never go negative
        candidate = make_candidate(code="Z00.00", description="unspecified")
        weights = {"code_type": 1.0}
        breakdown = get_score_breakdown(candidate, "", {"weights": weights})
        assert breakdown.code_type >= 0.0


class TestAcuity:
    """Tests for acute condition detection."""

    @pytest.mark.parametrize(
        "code,description,expected",
        [
            ("I21.9", "Acute myocardial infarction", True),
            ("J45.901", "Asthma with exacerbation", True),
            ("R56.9", "New onset seizure", True),
            ("S72.001A", "Femur", True),
            ("T39.1X1A", "Poisoning by 4-Aminophenol derivatives", True),
            ("E11.9", "Type 2 diabetes mellitus", False),
            ("I10", "Essential hypertension", False),
        ],
    )
    def test_is_acute(self, code, description, expected):
        assert is_acute_condition(code, description) is expected

    def test_acute_boost_disabled(self):
        candidate = make_candidate(code="I21.9", description="Acute myocardial infarction")
        enabled = get_score_breakdown(candidate, "", RankingOptions())
        disabled = get_score_breakdown(candidate, "", RankingOptions(enable_acute_boost=False))
        assert enabled.acute == pytest.approx(0.05)
        assert disabled.acute == pytest.approx(0.025)


class TestScoreBreakdown:
    """Tests for the weighted score and its breakdown."""

    def test_known_values(self):
        candidate = make_candidate(
            code="I10",
            description="Essential hypertension",
            confidence=0.92,
            evidence="Blood pressure 150/95, hypertension",
        )
        note = "History of hypertension."
        breakdown = get_score_breakdown(candidate, note)

        assert breakdown.confidence == pytest.approx(0.92 * 0.30)
        assert breakdown.status == pytest.approx(0.25)
        assert breakdown.specificity == pytest.approx(0.3 * 0.15)
        assert breakdown.frequency == pytest.approx(0.6 * 0.15)  # 1 mention + evidence
        assert breakdown.code_type == pytest.approx(0.10)
        assert breakdown.acute == pytest.approx(0.5 * 0.05)

    @pytest.mark.parametrize(
        "overrides",
        [
            {},
            {"code": "R07.9", "description": "Chest pain, unspecified", "status": "suspected"},
            {"code": "Z23", "description": "Encounter for immunization", "status": "history_of"},
            {"code": "S72.001A", "description": "Fracture of femur", "confidence": 1.3},
            {"status": "whatever", "evidence": "note says so"},
        ],
    )
    def test_components_sum_to_total(self, overrides, clinical_note):
        candidate = make_candidate(**overrides)
        breakdown = get_score_breakdown(candidate, clinical_note)
        assert sum(breakdown.components().values()) == pytest.approx(breakdown.total)
        assert calculate_priority_score(candidate, clinical_note) == pytest.approx(breakdown.total)

    def test_partial_weight_override(self):
        candidate = make_candidate()
        breakdown = get_score_breakdown(candidate, "", {"weights": {"confidence": 0.5}})
        assert breakdown.confidence == pytest.approx(0.45)
        assert breakdown.status == pytest.approx(0.25)

    def test_camel_case_weight_override(self):
        candidate = make_candidate()
        breakdown = get_score_breakdown(candidate, "", {"weights": {"codeType": 0.2}})
        assert breakdown.code_type == pytest.approx(0.2)

    def test_each_component_bounded_by_weight(self, clinical_note):
        candidate = make_candidate(code="S72.001A", description="Acute fracture", confidence=1.0, evidence="x")
        weights = ScoringWeights()
        breakdown = get_score_breakdown(candidate, clinical_note)
        assert breakdown.status <= weights.status
        assert breakdown.specificity <= weights.specificity
        assert breakdown.frequency <= weights.frequency
        assert breakdown.code_type <= weights.code_type
        assert breakdown.acute <= weights.acute

    def test_confidence_not_clamped(self):
        candidate = make_candidate(confidence=1.5)
        assert get_score_breakdown(candidate, "").confidence == pytest.approx(0.45)

    def test_score_matches_breakdown(self, clinical_note):
        candidates = [make_candidate(), make_candidate(code="I10", description="Essential hypertension")]
        for candidate in candidates:
            assert score(candidate, candidates, clinical_note) == pytest.approx(
                get_score_breakdown(candidate, clinical_note).total
            )

    def test_scoring_weights_accepts_model(self):
        candidate = make_candidate()
        weights = ScoringWeights(confidence=0.0, status=0.0, specificity=0.0, frequency=0.0, code_type=0.0, acute=1.0)
        assert calculate_priority_score(candidate, "", weights) == pytest.approx(0.5)
