"""
Diagnosis Prioritization.

Scores, filters and orders validated candidates for the billing form:
- which diagnosis is primary
- which are excluded from billing
- order of the remaining lines (at most 12 on a CMS-1500)
"""

from typing import Any, Mapping, Optional, Sequence, Union

from pydantic import ValidationError

from icd_triage.core.config import TriageSettings
from icd_triage.core.enums import DiagnosisPriority, DiagnosisStatus
from icd_triage.core.exceptions import InvalidCandidateError
from icd_triage.schemas.diagnosis import Candidate, RankingOptions, ScoredCandidate
from icd_triage.services.ranking.scoring import (
    get_score_breakdown,
    is_low_priority_z_code,
    is_symptom_code,
    is_z_code,
)
from icd_triage.utils.logging import get_logger

logger = get_logger(__name__)

# A confirmed diagnosis above this confidence supersedes bare symptoms
DEFINITIVE_CONFIDENCE = 0.7

CandidateLike = Union[Candidate, Mapping[str, Any]]
OptionsLike = Union[RankingOptions, Mapping[str, Any], None]


def coerce_candidates(candidates: Sequence[CandidateLike]) -> list[Candidate]:
    """
    Turn raw payloads into Candidate models.

    Raises:
        InvalidCandidateError: If a candidate lacks required fields
    """
    coerced = []
    for index, candidate in enumerate(candidates):
        if isinstance(candidate, Candidate):
            coerced.append(candidate)
            continue
        try:
            coerced.append(Candidate.model_validate(candidate))
        except ValidationError as e:
            raise InvalidCandidateError(
                f"Candidate {index} is malformed: {e.error_count()} invalid field(s)",
                index=index,
                original_error=e,
            ) from e
    return coerced


class DiagnosisPrioritizer:
    """
    Ranks diagnosis candidates.

    Each call is a pure function of its arguments; options given at
    construction are only the defaults for calls that pass none.
    """

    def __init__(self, default_options: OptionsLike = None):
        self._default_options = RankingOptions.from_overrides(default_options)

    @property
    def default_options(self) -> RankingOptions:
        return self._default_options

    def rank(
        self,
        candidates: Sequence[CandidateLike],
        source_text: str,
        options: OptionsLike = None,
    ) -> list[ScoredCandidate]:
        """
        Score, filter, sort, truncate and relabel candidates.

        Args:
            candidates: Validated classifier candidates
            source_text: Clinical note the candidates were extracted from
            options: Ranking options, partial overrides allowed

        Returns:
            At most max_results candidates, highest score first, the first
            one marked primary and the rest secondary. Equal scores keep
            their input order.
        """
        if not candidates:
            return []

        opts = self._default_options if options is None else RankingOptions.from_overrides(options)
        source_text = source_text or ""

        # Materialized: filters below look at the whole scored set
        scored = [
            ScoredCandidate(
                **candidate.model_dump(),
                priority_score=get_score_breakdown(candidate, source_text, opts).total,
            )
            for candidate in coerce_candidates(candidates)
        ]

        kept = [c for c in scored if not self.should_filter_out(c, scored, opts)]
        ranked = sorted(kept, key=lambda c: c.priority_score, reverse=True)
        ranked = ranked[: opts.max_results]

        logger.debug(
            f"Ranked {len(scored)} candidates: {len(scored) - len(kept)} filtered, "
            f"{len(ranked)} returned"
        )

        return [
            candidate.model_copy(
                update={
                    "priority": (
                        DiagnosisPriority.PRIMARY if index == 0 else DiagnosisPriority.SECONDARY
                    )
                }
            )
            for index, candidate in enumerate(ranked)
        ]

    @staticmethod
    def should_filter_out(
        candidate: Candidate,
        all_candidates: Sequence[Candidate],
        options: RankingOptions,
    ) -> bool:
        """
        Decide whether a candidate is excluded from billing.

        Competitor checks use the full candidate set, including competitors
        that are themselves filtered out.
        """
        if candidate.status == DiagnosisStatus.RULE_OUT:
            return True

        if candidate.confidence < options.min_confidence:
            return True

        if candidate.has_validation_failure:
            return True

        if is_symptom_code(candidate.code):
            has_definitive_diagnosis = any(
                other is not candidate
                and not is_symptom_code(other.code)
                and other.status == DiagnosisStatus.CONFIRMED
                and other.confidence > DEFINITIVE_CONFIDENCE
                for other in all_candidates
            )
            if has_definitive_diagnosis:
                return True

        if options.enable_z_code_filtering and is_low_priority_z_code(candidate.code):
            has_other_diagnoses = any(
                other is not candidate
                and not is_z_code(other.code)
                and other.status == DiagnosisStatus.CONFIRMED
                for other in all_candidates
            )
            if has_other_diagnoses:
                return True

        return False


def ranking_options_from_settings(settings: TriageSettings) -> RankingOptions:
    """Default ranking options taken from settings."""
    return RankingOptions(
        max_results=settings.RANKING_MAX_RESULTS,
        min_confidence=settings.RANKING_MIN_CONFIDENCE,
        enable_acute_boost=settings.RANKING_ENABLE_ACUTE_BOOST,
        enable_z_code_filtering=settings.RANKING_ENABLE_Z_CODE_FILTERING,
    )


def prioritize_diagnoses(
    candidates: Sequence[CandidateLike],
    source_text: str,
    options: OptionsLike = None,
    settings: Optional[TriageSettings] = None,
) -> list[ScoredCandidate]:
    """Rank candidates with a one-off prioritizer."""
    defaults = ranking_options_from_settings(settings) if settings else None
    return DiagnosisPrioritizer(defaults).rank(candidates, source_text, options)
