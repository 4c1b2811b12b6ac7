"""
ICD-10 Code Validation Services.

The validation service itself lives in
``icd_triage.services.medical.validation_service``.
"""

from icd_triage.services.medical.code_format import (
    ICD10_PATTERN,
    code_category,
    is_valid_format,
    normalize_code,
)

__all__ = [
    "ICD10_PATTERN",
    "code_category",
    "is_valid_format",
    "normalize_code",
]
