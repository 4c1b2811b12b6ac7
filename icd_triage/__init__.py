"""
ICD-10 diagnosis code triage.

Validates classifier-suggested diagnosis codes against the official code set
and ranks them for the billing form.
"""

from icd_triage.schemas.diagnosis import Candidate, RankingOptions, ScoredCandidate
from icd_triage.schemas.validation import ValidationResult
from icd_triage.services.medical.validation_service import (
    CodeValidationService,
    create_validation_service,
)
from icd_triage.services.ranking.prioritizer import (
    DiagnosisPrioritizer,
    prioritize_diagnoses,
)
from icd_triage.services.triage import DiagnosisTriageService, TriageResult

__version__ = "0.1.0"

__all__ = [
    "Candidate",
    "RankingOptions",
    "ScoredCandidate",
    "ValidationResult",
    "CodeValidationService",
    "create_validation_service",
    "DiagnosisPrioritizer",
    "prioritize_diagnoses",
    "DiagnosisTriageService",
    "TriageResult",
]
