"""
Remote code authority gateways.
"""

from icd_triage.gateways.base import (
    AuthorityError,
    AuthorityResponseError,
    AuthorityTimeoutError,
    AuthorityUnavailableError,
    GatewayConfig,
    ProviderHealth,
)
from icd_triage.gateways.authority_gateway import ClinicalTablesGateway

__all__ = [
    "AuthorityError",
    "AuthorityResponseError",
    "AuthorityTimeoutError",
    "AuthorityUnavailableError",
    "GatewayConfig",
    "ProviderHealth",
    "ClinicalTablesGateway",
]
