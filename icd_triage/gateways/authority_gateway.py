"""
ICD-10-CM Authority Gateway using the NLM Clinical Tables search API.

Confirms that a code exists in the official code set and returns its
official description. API: https://clinicaltables.nlm.nih.gov/apidoc/icd10cm/v3/doc.html

Response format: [count, [codes], extra_data, [names]]
Example: [1, ["I10"], null, ["Essential (primary) hypertension"]]

Failure classes:
- timeout / network failure: reported as an "unavailable" verdict, not cached
- anything else (HTTP error status, malformed payload): raised to the caller
"""

import asyncio
import time
from typing import Any, Optional

import httpx

from icd_triage.core.config import TriageSettings, get_settings
from icd_triage.core.enums import ValidationErrorKind, ValidationSource
from icd_triage.gateways.base import (
    AuthorityError,
    AuthorityResponseError,
    AuthorityTimeoutError,
    AuthorityUnavailableError,
    GatewayConfig,
    ProviderHealth,
)
from icd_triage.schemas.validation import ValidationResult
from icd_triage.services.code_cache import CodeCache
from icd_triage.services.medical.code_format import code_category
from icd_triage.utils.logging import get_logger

logger = get_logger(__name__)

NOT_FOUND_MESSAGE = "Code not found in CMS ICD-10 database"
UNAVAILABLE_MESSAGE = "Validation service temporarily unavailable"


class ClinicalTablesGateway:
    """
    Single-code lookups against the NLM ICD-10-CM service.

    Valid results are written to the injected cache before being returned.
    There is no retry; callers decide whether to try again later.
    """

    def __init__(
        self,
        cache: CodeCache,
        config: Optional[GatewayConfig] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        settings: Optional[TriageSettings] = None,
    ):
        if config is None:
            settings = settings or get_settings()
            config = GatewayConfig(
                base_url=settings.AUTHORITY_BASE_URL,
                timeout_seconds=settings.AUTHORITY_TIMEOUT_SECONDS,
            )
        self.config = config
        self._cache = cache
        self._http_client = http_client
        self._owns_client = http_client is None
        self._health = ProviderHealth()

    @property
    def gateway_name(self) -> str:
        return "ICD-10 Authority"

    def _client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=self.config.timeout_seconds,
                headers={"Accept": "application/json"},
            )
        return self._http_client

    async def lookup(self, code: str) -> ValidationResult:
        """
        Look up a normalized code.

        Args:
            code: Normalized (uppercase, whitespace-free) ICD-10 code

        Returns:
            ValidationResult with source=api

        Raises:
            AuthorityError: On failures other than timeout/network errors
        """
        start_time = time.perf_counter()
        try:
            payload = await asyncio.wait_for(
                self._fetch(code),
                timeout=self.config.timeout_seconds,
            )
            description = self._extract_description(payload, code)
        except asyncio.TimeoutError:
            return self._unavailable(
                code,
                AuthorityTimeoutError(
                    f"Timeout after {self.config.timeout_seconds}s",
                    code=code,
                    provider=self.config.provider,
                ),
            )
        except AuthorityUnavailableError as e:
            return self._unavailable(code, e)
        except AuthorityError as e:
            self._health.record_failure(str(e), self.config.degraded_after_failures)
            logger.error(f"{self.gateway_name}: lookup of {code} failed: {e}")
            raise

        latency = (time.perf_counter() - start_time) * 1000
        self._health.record_success(latency)

        if description is None:
            logger.debug(f"{self.gateway_name}: {code} not found ({latency:.1f}ms)")
            return ValidationResult(
                code=code,
                is_valid=False,
                error_message=NOT_FOUND_MESSAGE,
                error_kind=ValidationErrorKind.NOT_FOUND,
                source=ValidationSource.API,
            )

        category = code_category(code)
        await self._cache.set(code, description, category)
        logger.debug(f"{self.gateway_name}: {code} confirmed in {latency:.1f}ms")
        return ValidationResult(
            code=code,
            is_valid=True,
            official_description=description,
            category=category,
            source=ValidationSource.API,
        )

    async def _fetch(self, code: str) -> Any:
        """Issue the search request and decode the JSON body."""
        try:
            response = await self._client().get(
                self.config.base_url,
                params={"sf": "code,name", "terms": code},
            )
        except httpx.TimeoutException as e:
            raise AuthorityTimeoutError(
                "Authority request timed out",
                code=code,
                provider=self.config.provider,
                original_error=e,
            )
        except httpx.TransportError as e:
            raise AuthorityUnavailableError(
                f"Could not reach authority: {e}",
                code=code,
                provider=self.config.provider,
                original_error=e,
            )

        if response.status_code != 200:
            raise AuthorityResponseError(
                f"Authority API error: {response.status_code}",
                code=code,
                provider=self.config.provider,
            )

        try:
            return response.json()
        except ValueError as e:
            raise AuthorityResponseError(
                "Authority returned a non-JSON body",
                code=code,
                provider=self.config.provider,
                original_error=e,
            )

    def _extract_description(self, payload: Any, code: str) -> Optional[str]:
        """
        Return the description paired with an exact code match, or None.

        Raises:
            AuthorityResponseError: If the payload does not have the documented shape
        """
        if not isinstance(payload, list) or len(payload) < 4:
            raise AuthorityResponseError(
                "Unexpected authority response shape",
                code=code,
                provider=self.config.provider,
            )

        count, codes, names = payload[0], payload[1], payload[3]
        if not count or not codes:
            return None
        if not isinstance(codes, list) or not isinstance(names, list):
            raise AuthorityResponseError(
                "Authority code and name lists are missing",
                code=code,
                provider=self.config.provider,
            )

        for index, candidate in enumerate(codes):
            if str(candidate).upper() == code:
                if index >= len(names):
                    raise AuthorityResponseError(
                        "Authority code and name lists differ in length",
                        code=code,
                        provider=self.config.provider,
                    )
                return names[index]
        return None

    def _unavailable(self, code: str, error: AuthorityUnavailableError) -> ValidationResult:
        self._health.record_failure(str(error), self.config.degraded_after_failures)
        logger.warning(f"{self.gateway_name}: {code} could not be verified: {error}")
        return ValidationResult(
            code=code,
            is_valid=False,
            error_message=UNAVAILABLE_MESSAGE,
            error_kind=ValidationErrorKind.UNAVAILABLE,
            source=ValidationSource.API,
        )

    def health(self) -> ProviderHealth:
        """Get current health status of the authority."""
        return self._health

    async def close(self) -> None:
        """Clean up gateway resources."""
        if self._http_client is not None and self._owns_client:
            await self._http_client.aclose()
            self._http_client = None
        logger.info(f"{self.gateway_name} gateway closed")

    async def __aenter__(self) -> "ClinicalTablesGateway":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()
