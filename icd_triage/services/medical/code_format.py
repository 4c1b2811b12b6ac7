"""
ICD-10 Code Format Validation.

Structural check run before any cache or network access.
Pattern: letter (A-Z except U) + digit + digit/A/B, optionally followed by
a decimal point and one to four characters (digits, letters except U).
"""

import re

ICD10_PATTERN = re.compile(r"[A-TV-Z][0-9][0-9AB](\.[0-9A-TV-Z]{1,4})?")

_WHITESPACE = re.compile(r"\s+")


def normalize_code(code: str) -> str:
    """Remove all whitespace and uppercase a code."""
    return _WHITESPACE.sub("", code).upper()


def is_valid_format(code: str) -> bool:
    """
    Check if a code matches the ICD-10 grammar.

    Args:
        code: Code to check (case-insensitive)

    Returns:
        True if format is valid
    """
    return ICD10_PATTERN.fullmatch(code.upper()) is not None


def code_category(code: str) -> str:
    """ICD-10 chapter letter of a normalized code."""
    return code[:1]
