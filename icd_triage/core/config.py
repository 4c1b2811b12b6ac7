"""
Diagnosis Triage Configuration.

Settings for the code validation service and the ranking engine.
Source: https://docs.pydantic.dev/latest/concepts/pydantic_settings/
"""

from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from icd_triage.core.enums import CacheBackend


class TriageSettings(BaseSettings):
    """
    Triage configuration settings.

    Every field can be overridden with an ``ICD_TRIAGE_`` prefixed
    environment variable or a ``.env`` file entry.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_prefix="ICD_TRIAGE_",
    )

    # =========================================================================
    # Remote Code Authority
    # =========================================================================
    AUTHORITY_BASE_URL: str = Field(
        default="https://clinicaltables.nlm.nih.gov/api/icd10cm/v3/search",
        description="NLM Clinical Tables ICD-10-CM search endpoint",
    )
    AUTHORITY_TIMEOUT_SECONDS: float = Field(
        default=5.0,
        gt=0.0,
        le=60.0,
        description="Hard timeout for a single authority lookup",
    )

    # =========================================================================
    # Lookup Cache
    # =========================================================================
    CACHE_BACKEND: CacheBackend = Field(
        default=CacheBackend.MEMORY,
        description="memory (single process) or redis (shared)",
    )
    CACHE_TTL_SECONDS: int = Field(
        default=7 * 24 * 60 * 60,
        ge=1,
        description="Lifetime of a confirmed code in the cache (7 days)",
    )
    REDIS_URL: Optional[str] = Field(
        default=None,
        description="Redis connection URL, required for the redis backend",
    )
    CACHE_KEY_PREFIX: str = Field(
        default="icd",
        description="Key namespace for cached codes in Redis",
    )
    PRELOAD_COMMON_CODES: bool = Field(
        default=True,
        description="Seed the cache with common codes at startup",
    )
    MAX_BATCH_SIZE: int = Field(
        default=50,
        ge=1,
        le=1000,
        description="Maximum number of codes accepted by one batch validation",
    )

    # =========================================================================
    # Ranking
    # =========================================================================
    RANKING_MAX_RESULTS: int = Field(
        default=12,
        ge=1,
        description="Maximum diagnoses on the billing form (CMS-1500 lines)",
    )
    RANKING_MIN_CONFIDENCE: float = Field(
        default=0.3,
        ge=0.0,
        le=1.0,
        description="Candidates below this confidence are dropped",
    )
    RANKING_ENABLE_ACUTE_BOOST: bool = Field(default=True)
    RANKING_ENABLE_Z_CODE_FILTERING: bool = Field(default=True)

    # =========================================================================
    # Logging
    # =========================================================================
    LOG_LEVEL: str = Field(default="INFO")
    LOG_JSON: bool = Field(default=False)
    LOG_FILE: Optional[str] = Field(
        default=None,
        description="Rotated log file written in addition to stderr",
    )

    @field_validator("AUTHORITY_BASE_URL")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Authority URL must be http(s)."""
        if not v.startswith(("http://", "https://")):
            raise ValueError("AUTHORITY_BASE_URL must start with http:// or https://")
        return v.rstrip("/")

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalize and check the log level name."""
        level = v.upper()
        if level not in {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level

    @property
    def uses_redis(self) -> bool:
        """Check if the shared Redis cache is configured."""
        return self.CACHE_BACKEND == CacheBackend.REDIS


# Singleton instance
_settings: Optional[TriageSettings] = None


def get_settings() -> TriageSettings:
    """
    Get cached triage settings instance.

    Returns:
        TriageSettings instance
    """
    global _settings
    if _settings is None:
        _settings = TriageSettings()
    return _settings


def reset_settings() -> None:
    """Drop the cached settings so the next call re-reads the environment."""
    global _settings
    _settings = None
