"""Validation, caching and ranking services."""
