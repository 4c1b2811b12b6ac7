"""
Core Enumerations for Diagnosis Code Triage.

Shared vocabulary for candidate status, billing priority, and the
provenance of validation verdicts.
"""

from enum import Enum


# =============================================================================
# Candidate Enums
# =============================================================================


class DiagnosisStatus(str, Enum):
    """Clinical status reported by the upstream classifier."""

    CONFIRMED = "confirmed"
    SUSPECTED = "suspected"
    RULE_OUT = "rule_out"  # Never billable
    HISTORY_OF = "history_of"


class DiagnosisPriority(str, Enum):
    """Position of a diagnosis on the billing form."""

    PRIMARY = "primary"
    SECONDARY = "secondary"


# =============================================================================
# Validation Enums
# =============================================================================


class ValidationSource(str, Enum):
    """Stage of the validation pipeline that produced a verdict."""

    FORMAT = "format"
    CACHE = "cache"
    API = "api"


class ValidationErrorKind(str, Enum):
    """Classification of a negative validation verdict."""

    FORMAT_ERROR = "format_error"  # Structurally invalid, local rejection
    NOT_FOUND = "not_found"  # Well-formed but absent from the authority
    UNAVAILABLE = "unavailable"  # Authority unreachable, verdict indeterminate


# =============================================================================
# Infrastructure Enums
# =============================================================================


class CacheBackend(str, Enum):
    """Lookup cache backends."""

    MEMORY = "memory"
    REDIS = "redis"


class ProviderStatus(str, Enum):
    """Health status of the remote code authority."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"
