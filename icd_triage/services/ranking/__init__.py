"""
Diagnosis Ranking Services.

Provides multi-factor scoring and the billing-form ranking pipeline.
"""

from icd_triage.services.ranking.scoring import (
    calculate_priority_score,
    count_mentions,
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
from icd_triage.services.ranking.prioritizer import (
    DiagnosisPrioritizer,
    coerce_candidates,
    prioritize_diagnoses,
    ranking_options_from_settings,
)

__all__ = [
    # Scoring
    "calculate_priority_score",
    "count_mentions",
    "get_code_specificity",
    "get_score_breakdown",
    "is_acute_condition",
    "is_low_priority_z_code",
    "is_symptom_code",
    "is_unspecified_code",
    "is_z_code",
    "score",
    "status_score",
    # Prioritizer
    "DiagnosisPrioritizer",
    "coerce_candidates",
    "prioritize_diagnoses",
    "ranking_options_from_settings",
]
