"""
Triage Exceptions.

Errors raised by the ranking engine and the validation service for
conditions the caller must handle. Authority client failures live in
``icd_triage.gateways.base``.
"""

from typing import Optional


class TriageError(Exception):
    """Base exception for triage errors."""


class InvalidCandidateError(TriageError, ValueError):
    """Raised when a candidate is missing required fields or has bad values."""

    def __init__(
        self,
        message: str,
        index: Optional[int] = None,
        original_error: Optional[Exception] = None,
    ):
        super().__init__(message)
        self.index = index
        self.original_error = original_error


class BatchTooLargeError(TriageError, ValueError):
    """Raised when a batch validation exceeds the configured size."""

    def __init__(self, size: int, limit: int):
        super().__init__(f"Maximum {limit} codes can be validated at once (got {size})")
        self.size = size
        self.limit = limit
