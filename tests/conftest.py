"""
Pytest Configuration and Fixtures.
Shared test fixtures for all test modules.
"""

from datetime import datetime, timedelta, timezone

import httpx
import pytest

from icd_triage.gateways.authority_gateway import ClinicalTablesGateway
from icd_triage.gateways.base import GatewayConfig
from icd_triage.services.code_cache import InMemoryCodeCache
from icd_triage.services.medical.validation_service import CodeValidationService

AUTHORITY_URL = "https://authority.test/api/icd10cm/v3/search"

AUTHORITY_CODES = {
    "I10": "Essential (primary) hypertension",
    "E11.9": "Type 2 diabetes mellitus without complications",
    "I21.9": "Acute myocardial infarction, unspecified",
    "R07.9": "Chest pain, unspecified",
    "J18.9": "Pneumonia, unspecified organism",
    "Z00.00": "Encounter for general adult medical examination without abnormal findings",
}


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2024, 1, 15, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class MockAuthority:
    """
    Stand-in for the NLM Clinical Tables API.

    Answers with the documented [count, [codes], null, [names]] payload and
    records every requested code.
    """

    def __init__(self, codes: dict[str, str] | None = None):
        self.codes = dict(AUTHORITY_CODES if codes is None else codes)
        self.requests: list[str] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        term = request.url.params["terms"]
        self.requests.append(term)
        matches = [c for c in self.codes if c.startswith(term.upper())]
        return httpx.Response(
            200,
            json=[len(matches), matches, None, [self.codes[c] for c in matches]],
        )

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))

    @property
    def call_count(self) -> int:
        return len(self.requests)


@pytest.fixture
def clock():
    """Controllable clock for cache expiry tests."""
    return FakeClock()


@pytest.fixture
def memory_cache(clock):
    """Fresh in-memory cache per test."""
    return InMemoryCodeCache(ttl_seconds=7 * 24 * 60 * 60, clock=clock)


@pytest.fixture
def mock_authority():
    """Mocked authority that knows AUTHORITY_CODES."""
    return MockAuthority()


@pytest.fixture
def gateway_config():
    """Gateway configuration pointing at the mocked authority."""
    return GatewayConfig(base_url=AUTHORITY_URL, timeout_seconds=0.5)


@pytest.fixture
def gateway(memory_cache, mock_authority, gateway_config):
    """Authority gateway wired to the mocked transport."""
    return ClinicalTablesGateway(
        memory_cache,
        config=gateway_config,
        http_client=mock_authority.client(),
    )


@pytest.fixture
def validation_service(memory_cache, gateway):
    """Validation service over an isolated cache and mocked authority."""
    return CodeValidationService(cache=memory_cache, gateway=gateway, max_batch_size=50)


@pytest.fixture
def clinical_note():
    """Clinical note used by the ranking tests."""
    return """
    Patient presents with acute chest pain and shortness of breath.
    History of type 2 diabetes mellitus and hypertension.
    Recent exacerbation of symptoms. Patient reports chest pain started suddenly
    this morning. Diabetes has been well-controlled on metformin.
    Blood pressure elevated at 150/95.
    """


@pytest.fixture
def candidate_payloads():
    """Classifier output as received from the extraction step."""
    return [
        {
            "code": "E11.9",
            "description": "Type 2 diabetes mellitus without complications",
            "confidence": 0.95,
            "status": "confirmed",
            "evidence": "History of type 2 diabetes",
            "priority": "secondary",
            "validated": True,
        },
        {
            "code": "I10",
            "description": "Essential hypertension",
            "confidence": 0.92,
            "status": "confirmed",
            "evidence": "Blood pressure 150/95, hypertension",
            "priority": "secondary",
            "validated": True,
        },
        {
            "code": "R07.9",
            "description": "Chest pain, unspecified",
            "confidence": 0.88,
            "status": "confirmed",
            "evidence": "Patient reports chest pain",
            "priority": "secondary",
            "validated": True,
        },
        {
            "code": "I21.9",
            "description": "Acute myocardial infarction, unspecified",
            "confidence": 0.75,
            "status": "suspected",
            "evidence": "Acute chest pain and elevated BP",
            "priority": "primary",
            "validated": True,
        },
        {
            "code": "J18.9",
            "description": "Pneumonia, unspecified organism",
            "confidence": 0.6,
            "status": "rule_out",
            "evidence": "Rule out pneumonia",
            "priority": "secondary",
            "validated": True,
        },
    ]


# Configure pytest markers
def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test"
    )
    config.addinivalue_line(
        "markers", "slow: mark test as slow running"
    )
