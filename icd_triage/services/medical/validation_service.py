"""
ICD-10 Code Validation Service.

Fast-path: format check -> cache -> authority.
Each verdict records the stage that produced it in ``source``.
"""

import asyncio
from typing import Iterable, Optional, Sequence

from icd_triage.core.config import TriageSettings, get_settings
from icd_triage.core.enums import ValidationErrorKind, ValidationSource
from icd_triage.core.exceptions import BatchTooLargeError
from icd_triage.data.common_codes import COMMON_CODES
from icd_triage.gateways.authority_gateway import ClinicalTablesGateway
from icd_triage.schemas.diagnosis import Candidate
from icd_triage.schemas.validation import CacheEntry, CacheStats, ValidationResult
from icd_triage.services.code_cache import CodeCache, create_code_cache
from icd_triage.services.medical.code_format import is_valid_format, normalize_code
from icd_triage.utils.logging import get_logger

logger = get_logger(__name__)

FORMAT_ERROR_MESSAGE = "Invalid ICD-10 code format"


def attach_validation(candidate: Candidate, result: ValidationResult) -> Candidate:
    """Copy of a candidate carrying a validation outcome."""
    return candidate.model_copy(
        update={
            "validated": result.is_valid,
            "validation_error": result.error_message,
            "official_description": result.official_description,
        }
    )


class CodeValidationService:
    """
    Validates ICD-10 codes against the official code set.

    Supports:
    - Single code validation
    - Batch validation with one authority call per distinct code
    - Cache preloading and introspection
    """

    def __init__(
        self,
        cache: CodeCache,
        gateway: ClinicalTablesGateway,
        max_batch_size: int = 50,
    ):
        """
        Initialize CodeValidationService.

        Args:
            cache: Lookup cache shared with the gateway
            gateway: Remote authority client
            max_batch_size: Largest batch accepted by validate_batch
        """
        self._cache = cache
        self._gateway = gateway
        self._max_batch_size = max_batch_size

    @property
    def cache(self) -> CodeCache:
        return self._cache

    @property
    def gateway(self) -> ClinicalTablesGateway:
        return self._gateway

    # =========================================================================
    # Single Code
    # =========================================================================

    async def validate(self, code: str) -> ValidationResult:
        """
        Validate a single code.

        Args:
            code: ICD-10 code in any case, whitespace tolerated

        Returns:
            ValidationResult tagged with the stage that decided it

        Raises:
            AuthorityError: If the authority fails in a non-transient way
        """
        normalized = normalize_code(code)

        result = self._check_format(normalized)
        if result is not None:
            return result

        result = await self._check_cache(normalized)
        if result is not None:
            return result

        logger.debug(f"Cache miss for {normalized}, validating with authority")
        return await self._gateway.lookup(normalized)

    # =========================================================================
    # Batch
    # =========================================================================

    async def validate_batch(self, codes: Sequence[str]) -> list[ValidationResult]:
        """
        Validate a caller-supplied list of codes, preserving input order.

        This is the entry point for batch requests from outside the pipeline,
        so it enforces ``max_batch_size``. Candidates produced by the
        classifier go through validate_candidates, which has no limit.

        Args:
            codes: Codes to validate

        Returns:
            One ValidationResult per input code, in input order

        Raises:
            BatchTooLargeError: If more than max_batch_size codes are given
            AuthorityError: If any authority lookup fails in a non-transient way
        """
        if len(codes) > self._max_batch_size:
            raise BatchTooLargeError(len(codes), self._max_batch_size)
        return await self._validate_many(codes)

    async def validate_candidates(
        self,
        candidates: Sequence[Candidate],
    ) -> tuple[list[Candidate], list[ValidationResult]]:
        """
        Validate classifier candidates and attach the outcomes.

        Returns:
            Enriched copies of the candidates and the matching verdicts,
            both in input order

        Raises:
            AuthorityError: If any authority lookup fails in a non-transient way
        """
        if not candidates:
            return [], []

        results = await self._validate_many([c.code for c in candidates])
        enriched = [
            attach_validation(candidate, result)
            for candidate, result in zip(candidates, results)
        ]
        return enriched, results

    async def enrich_candidates(self, candidates: Sequence[Candidate]) -> list[Candidate]:
        """
        Attach validation outcomes to classifier candidates.

        Returns copies carrying ``validated``, ``validation_error`` and
        ``official_description``; the inputs are left untouched.
        """
        enriched, _ = await self.validate_candidates(candidates)
        return enriched

    async def _validate_many(self, codes: Sequence[str]) -> list[ValidationResult]:
        # Format and cache checks run per code first. Codes that still need
        # the authority are de-duplicated, so a repeated code costs one call.
        results: list[Optional[ValidationResult]] = [None] * len(codes)
        pending: dict[str, list[int]] = {}

        for index, code in enumerate(codes):
            normalized = normalize_code(code)

            if normalized in pending:
                pending[normalized].append(index)
                continue

            result = self._check_format(normalized)
            if result is None:
                result = await self._check_cache(normalized)
            if result is not None:
                results[index] = result
                continue

            pending[normalized] = [index]

        if pending:
            logger.debug(
                f"Batch of {len(codes)}: {len(pending)} distinct codes need the authority"
            )
            lookups = await self._lookup_all(list(pending))
            for indexes, result in zip(pending.values(), lookups):
                for index in indexes:
                    results[index] = result

        return [result for result in results if result is not None]

    async def _lookup_all(self, codes: list[str]) -> list[ValidationResult]:
        """
        Look codes up concurrently.

        On the first hard failure the remaining lookups are cancelled and
        awaited before the error propagates, so nothing reaches the cache
        after the caller has seen the failure.
        """
        tasks = [asyncio.ensure_future(self._gateway.lookup(code)) for code in codes]
        try:
            return list(await asyncio.gather(*tasks))
        except Exception:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

    # =========================================================================
    # Cache Management
    # =========================================================================

    async def preload(
        self,
        known_codes: Iterable[tuple[str, str, str]] = COMMON_CODES,
    ) -> int:
        """
        Seed the cache with known (code, description, category) tuples.

        Returns:
            Number of codes loaded
        """
        count = 0
        for code, description, category in known_codes:
            await self._cache.set(code, description, category)
            count += 1
        logger.info(f"Preloaded {count} common ICD-10 codes into cache")
        return count

    async def cache_stats(self) -> CacheStats:
        """Cache size, TTL and hit counters for diagnostics."""
        return await self._cache.stats()

    async def clear_cache(self) -> None:
        """Drop every cached code."""
        await self._cache.clear()
        logger.info("Validation cache cleared")

    # =========================================================================
    # Stages
    # =========================================================================

    def _check_format(self, normalized: str) -> Optional[ValidationResult]:
        if is_valid_format(normalized):
            return None
        return ValidationResult(
            code=normalized,
            is_valid=False,
            error_message=FORMAT_ERROR_MESSAGE,
            error_kind=ValidationErrorKind.FORMAT_ERROR,
            source=ValidationSource.FORMAT,
        )

    async def _check_cache(self, normalized: str) -> Optional[ValidationResult]:
        entry: Optional[CacheEntry] = await self._cache.get(normalized)
        if entry is None:
            return None
        return ValidationResult(
            code=entry.code,
            is_valid=True,
            official_description=entry.description,
            category=entry.category,
            source=ValidationSource.CACHE,
        )


# =============================================================================
# Factory Functions
# =============================================================================


_validation_service: Optional[CodeValidationService] = None


def create_validation_service(
    settings: Optional[TriageSettings] = None,
    cache: Optional[CodeCache] = None,
    gateway: Optional[ClinicalTablesGateway] = None,
) -> CodeValidationService:
    """Create a new CodeValidationService wired from settings."""
    settings = settings or get_settings()
    cache = cache or create_code_cache(settings)
    gateway = gateway or ClinicalTablesGateway(cache, settings=settings)
    return CodeValidationService(
        cache=cache,
        gateway=gateway,
        max_batch_size=settings.MAX_BATCH_SIZE,
    )


async def get_validation_service(
    settings: Optional[TriageSettings] = None,
) -> CodeValidationService:
    """Get singleton CodeValidationService, preloading the cache on first use."""
    global _validation_service
    if _validation_service is None:
        settings = settings or get_settings()
        service = create_validation_service(settings)
        if settings.PRELOAD_COMMON_CODES:
            await service.preload()
        _validation_service = service
    return _validation_service
