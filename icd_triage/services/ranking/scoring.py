"""
Diagnosis Priority Scoring.

Scores a candidate on six weighted components:
- confidence: classifier confidence
- status: confirmed > suspected > history_of > rule_out
- specificity: longer codes carry more sub-classification
- frequency: how often the diagnosis is mentioned in the note
- code_type: penalties for unspecified, Z (administrative) and R (symptom) codes
- acute: acute conditions score full weight, chronic ones half
"""

import re
from typing import Optional, Sequence, Union

from icd_triage.core.enums import DiagnosisStatus
from icd_triage.schemas.diagnosis import (
    Candidate,
    RankingOptions,
    ScoreBreakdown,
    ScoringWeights,
)

STATUS_SCORES = {
    DiagnosisStatus.CONFIRMED: 1.0,
    DiagnosisStatus.SUSPECTED: 0.7,
    DiagnosisStatus.HISTORY_OF: 0.4,
    DiagnosisStatus.RULE_OUT: 0.0,
}
UNKNOWN_STATUS_SCORE = 0.5

# Keywords that indicate acute conditions
ACUTE_KEYWORDS = (
    "acute",
    "sudden",
    "new onset",
    "recent",
    "exacerbation",
    "flare",
    "attack",
    "episode",
    "injury",
    "trauma",
    "fracture",
)

# Injury, poisoning, external causes
ACUTE_CATEGORIES = frozenset("STVWXY")

ADMINISTRATIVE_PREFIX = "Z"
SYMPTOM_PREFIX = "R"

# Low-priority Z codes (administrative/contact)
LOW_PRIORITY_Z_CODES = (
    "Z00", "Z01", "Z02",  # Encounters for examinations
    "Z23",  # Immunization
    "Z71", "Z72",  # Counseling, lifestyle
    "Z76",  # Healthcare facility contact
)

MAX_MENTIONS = 5

_UNSPECIFIED = re.compile(r"unspecified|not otherwise specified|\bnos\b", re.IGNORECASE)
_PUNCTUATION = re.compile(r"[^\w\s]")

WeightsLike = Union[ScoringWeights, dict, None]


def _resolve_weights(weights: WeightsLike) -> ScoringWeights:
    if weights is None:
        return ScoringWeights()
    if isinstance(weights, ScoringWeights):
        return weights
    return RankingOptions.from_overrides({"weights": weights}).weights


# =============================================================================
# Component Scores
# =============================================================================


def status_score(status: Union[DiagnosisStatus, str]) -> float:
    """Status factor; unrecognized statuses score 0.5."""
    try:
        return STATUS_SCORES[DiagnosisStatus(status)]
    except ValueError:
        return UNKNOWN_STATUS_SCORE


def get_code_specificity(code: str) -> float:
    """
    Specificity factor from the code length, ignoring the decimal point.

    "I10" (3) -> 0.3, "E11.9" (4) -> 0.5, "E11.65" (5) -> 0.7,
    "E11.649" (6) -> 0.9, seven characters -> 1.0.
    """
    length = len(code.strip().replace(".", "", 1))
    if length >= 7:
        return 1.0
    if length == 6:
        return 0.9
    if length == 5:
        return 0.7
    if length == 4:
        return 0.5
    if length == 3:
        return 0.3
    return 0.1


def count_mentions(source_text: str, candidate: Candidate) -> int:
    """
    Count mentions of a diagnosis in the clinical note.

    Each description word longer than three characters contributes its
    whole-word occurrences; supporting evidence adds one. Capped at 5.
    """
    if not source_text:
        return 0

    words = _PUNCTUATION.sub("", candidate.description.lower()).split()
    count = 0
    for word in words:
        if len(word) <= 3:
            continue
        count += len(re.findall(rf"\b{re.escape(word)}\b", source_text, re.IGNORECASE))

    if candidate.evidence:
        count += 1

    return min(count, MAX_MENTIONS)


def frequency_score(candidate: Candidate, source_text: str) -> float:
    """1 mention -> 0.3, 2 -> 0.6, 3+ -> 1.0."""
    mentions = count_mentions(source_text, candidate)
    if mentions >= 3:
        return 1.0
    if mentions == 2:
        return 0.6
    if mentions == 1:
        return 0.3
    return 0.0


def is_symptom_code(code: str) -> bool:
    """R codes: symptoms, signs and abnormal findings."""
    return code.strip().upper().startswith(SYMPTOM_PREFIX)


def is_z_code(code: str) -> bool:
    """Z codes: factors influencing health status and contact with services."""
    return code.strip().upper().startswith(ADMINISTRATIVE_PREFIX)


def is_low_priority_z_code(code: str) -> bool:
    """Routine encounter, immunization, counseling or facility contact codes."""
    normalized = code.strip().upper()
    return is_z_code(normalized) and normalized.startswith(LOW_PRIORITY_Z_CODES)


def is_unspecified_code(description: str) -> bool:
    """Check if a description marks an unspecified diagnosis."""
    return _UNSPECIFIED.search(description) is not None


def code_type_score(candidate: Candidate) -> float:
    """Start at 1.0 and subtract additive penalties, never below zero."""
    score = 1.0
    if is_unspecified_code(candidate.description):
        score -= 0.3
    if is_z_code(candidate.code):
        score -= 0.4
    if is_symptom_code(candidate.code):
        score -= 0.2
    return max(score, 0.0)


def is_acute_condition(code: str, description: str) -> bool:
    """Acute keyword in the description, or an injury/external-cause chapter."""
    description = description.lower()
    if any(keyword in description for keyword in ACUTE_KEYWORDS):
        return True
    return code.strip().upper()[:1] in ACUTE_CATEGORIES


def acute_score(candidate: Candidate, enable_acute_boost: bool = True) -> float:
    """Acute conditions score 1.0, chronic ones 0.5."""
    if enable_acute_boost and is_acute_condition(candidate.code, candidate.description):
        return 1.0
    return 0.5


# =============================================================================
# Totals
# =============================================================================


def get_score_breakdown(
    candidate: Candidate,
    source_text: str,
    options: Union[RankingOptions, dict, None] = None,
) -> ScoreBreakdown:
    """
    Weighted component scores for a candidate.

    The six components always add up to ``total``.
    """
    opts = RankingOptions.from_overrides(options)
    weights = opts.weights

    components = {
        "confidence": candidate.confidence * weights.confidence,
        "status": status_score(candidate.status) * weights.status,
        "specificity": get_code_specificity(candidate.code) * weights.specificity,
        "frequency": frequency_score(candidate, source_text) * weights.frequency,
        "code_type": code_type_score(candidate) * weights.code_type,
        "acute": acute_score(candidate, opts.enable_acute_boost) * weights.acute,
    }
    return ScoreBreakdown(total=sum(components.values()), **components)


def calculate_priority_score(
    candidate: Candidate,
    source_text: str,
    weights: WeightsLike = None,
    enable_acute_boost: bool = True,
) -> float:
    """Sum of the six weighted component scores."""
    options = RankingOptions(
        weights=_resolve_weights(weights),
        enable_acute_boost=enable_acute_boost,
    )
    return get_score_breakdown(candidate, source_text, options).total


def score(
    candidate: Candidate,
    candidates: Optional[Sequence[Candidate]],
    source_text: str,
    weights: WeightsLike = None,
    enable_acute_boost: bool = True,
) -> float:
    """
    Priority score of one candidate within its candidate set.

    The current factors depend only on the candidate and the note; the set
    is accepted so callers score every candidate the same way.
    """
    return calculate_priority_score(candidate, source_text, weights, enable_acute_boost)
