"""
Diagnosis Triage Service.

Runs classifier candidates through validation and ranking:
1. Validate every candidate code in one batch
2. Attach validation outcomes to the candidates
3. Rank the enriched candidates for the billing form
"""

import time
from typing import Optional, Sequence

from pydantic import BaseModel, Field

from icd_triage.core.config import TriageSettings, get_settings
from icd_triage.schemas.diagnosis import Candidate, ScoredCandidate
from icd_triage.schemas.validation import ValidationResult
from icd_triage.services.medical.validation_service import (
    CodeValidationService,
    get_validation_service,
)
from icd_triage.services.ranking.prioritizer import (
    CandidateLike,
    DiagnosisPrioritizer,
    OptionsLike,
    coerce_candidates,
    ranking_options_from_settings,
)
from icd_triage.utils.logging import get_logger, setup_logging

logger = get_logger(__name__)


class TriageResult(BaseModel):
    """Outcome of a triage run."""

    diagnoses: list[ScoredCandidate] = Field(default_factory=list)
    validations: list[ValidationResult] = Field(default_factory=list)
    excluded_count: int = 0
    unverified_codes: list[str] = Field(default_factory=list)
    processing_time_ms: float = 0.0


class DiagnosisTriageService:
    """Validation followed by ranking."""

    def __init__(
        self,
        validation_service: CodeValidationService,
        prioritizer: Optional[DiagnosisPrioritizer] = None,
    ):
        self._validation = validation_service
        self._prioritizer = prioritizer or DiagnosisPrioritizer()

    async def triage(
        self,
        candidates: Sequence[CandidateLike],
        source_text: str,
        options: OptionsLike = None,
    ) -> TriageResult:
        """
        Validate and rank candidates.

        Codes the authority could not verify (transient outage) are listed in
        ``unverified_codes`` so operators can retry them later.

        Raises:
            InvalidCandidateError: If a candidate lacks required fields
            AuthorityError: If the authority fails in a non-transient way
        """
        start_time = time.perf_counter()
        models: list[Candidate] = coerce_candidates(candidates)
        if not models:
            return TriageResult()

        enriched, validations = await self._validation.validate_candidates(models)

        ranked = self._prioritizer.rank(enriched, source_text, options)
        unverified = [r.code for r in validations if r.is_transient]
        if unverified:
            logger.warning(f"Authority unavailable for {len(unverified)} code(s): {unverified}")

        elapsed = (time.perf_counter() - start_time) * 1000
        return TriageResult(
            diagnoses=ranked,
            validations=validations,
            excluded_count=len(models) - len(ranked),
            unverified_codes=unverified,
            processing_time_ms=elapsed,
        )


async def create_triage_service(
    settings: Optional[TriageSettings] = None,
) -> DiagnosisTriageService:
    """
    Build a triage service on the shared validation service.

    Configures logging from settings first, as an application entry point would.
    """
    settings = settings or get_settings()
    setup_logging(
        level=settings.LOG_LEVEL,
        log_file=settings.LOG_FILE,
        json_logs=settings.LOG_JSON,
    )
    return DiagnosisTriageService(
        validation_service=await get_validation_service(settings),
        prioritizer=DiagnosisPrioritizer(ranking_options_from_settings(settings)),
    )
