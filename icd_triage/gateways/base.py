"""
Base definitions for remote code authority gateways.

- Error taxonomy (transient vs hard failures)
- Gateway configuration
- Health monitoring
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from icd_triage.core.enums import ProviderStatus


class AuthorityError(Exception):
    """Base exception for code authority errors."""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        provider: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        super().__init__(message)
        self.code = code
        self.provider = provider
        self.original_error = original_error


class AuthorityUnavailableError(AuthorityError):
    """Raised when the authority cannot be reached. The verdict is unknown."""

    pass


class AuthorityTimeoutError(AuthorityUnavailableError):
    """Raised when an authority request exceeds its timeout."""

    pass


class AuthorityResponseError(AuthorityError):
    """Raised when the authority answers with something unusable."""

    pass


@dataclass
class GatewayConfig:
    """Configuration for a code authority gateway."""

    base_url: str
    timeout_seconds: float = 5.0
    provider: str = "nlm_clinical_tables"
    degraded_after_failures: int = 3


@dataclass
class ProviderHealth:
    """Health status for the authority."""

    status: ProviderStatus = ProviderStatus.HEALTHY
    last_check: Optional[datetime] = None
    consecutive_failures: int = 0
    last_error: Optional[str] = None
    avg_latency_ms: float = 0.0
    request_count: int = 0
    error_count: int = 0

    def record_success(self, latency_ms: float) -> None:
        """Record a successful request."""
        self.consecutive_failures = 0
        self.request_count += 1
        self.last_check = datetime.now(timezone.utc)
        # Update rolling average latency
        if self.request_count == 1:
            self.avg_latency_ms = latency_ms
        else:
            self.avg_latency_ms = self.avg_latency_ms * 0.9 + latency_ms * 0.1
        self.status = ProviderStatus.HEALTHY

    def record_failure(self, error: str, degraded_after: int) -> None:
        """Record a failed request."""
        self.consecutive_failures += 1
        self.error_count += 1
        self.request_count += 1
        self.last_error = error
        self.last_check = datetime.now(timezone.utc)

        if self.consecutive_failures >= degraded_after * 2:
            self.status = ProviderStatus.UNHEALTHY
        elif self.consecutive_failures >= degraded_after:
            self.status = ProviderStatus.DEGRADED
