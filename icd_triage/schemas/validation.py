"""
Code Validation Schemas
Pydantic models for validation verdicts and cached authority lookups.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from pydantic import BaseModel, Field

from icd_triage.core.enums import ValidationErrorKind, ValidationSource


def utcnow() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


class ValidationResult(BaseModel):
    """
    Verdict for a single diagnosis code.

    ``official_description`` and ``category`` are set only for valid codes;
    ``error_message`` and ``error_kind`` only for invalid ones.
    """

    code: str
    is_valid: bool
    official_description: Optional[str] = None
    category: Optional[str] = None
    error_message: Optional[str] = None
    error_kind: Optional[ValidationErrorKind] = None
    source: ValidationSource
    validated_at: datetime = Field(default_factory=utcnow)

    @property
    def is_transient(self) -> bool:
        """True when the verdict could not be determined (retry later)."""
        return self.error_kind == ValidationErrorKind.UNAVAILABLE


class CacheEntry(BaseModel):
    """A confirmed authority lookup held by the code cache."""

    code: str
    description: str
    category: str
    cached_at: datetime
    expires_at: datetime

    @classmethod
    def create(
        cls,
        code: str,
        description: str,
        category: str,
        ttl_seconds: int,
        now: Optional[datetime] = None,
    ) -> "CacheEntry":
        """Build an entry expiring ``ttl_seconds`` after ``now``."""
        cached_at = now or utcnow()
        return cls(
            code=code,
            description=description,
            category=category,
            cached_at=cached_at,
            expires_at=cached_at + timedelta(seconds=ttl_seconds),
        )

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """An entry is visible only while now < expires_at."""
        return (now or utcnow()) >= self.expires_at


class CacheStats(BaseModel):
    """Cache introspection for health and diagnostics reporting."""

    backend: str
    size: int
    ttl_seconds: int
    hits: int = 0
    misses: int = 0
    sets: int = 0
    expired: int = 0
    hit_rate: float = 0.0
