"""Shared pytest fixtures and test markers.

Test tiers
----------
  unit        Fast, fully offline. Upstream HTTP is mocked with requests-mock.

  integration Drive the FastAPI app through TestClient with Epic's token and
              FHIR endpoints mocked. Validates the full route → assertion →
              token → FHIR call chain without real network calls.

  quality     Property-based tests (Hypothesis) on the pure builders.

  live        Real Epic sandbox calls. Skipped unless the required environment
              variables are set. See tests/live/conftest.py for guards.

Run specific tiers:
  pytest tests/unit tests/integration tests/quality   # offline only
  pytest tests/live -m live                           # live only
  pytest tests/ -v                                    # everything
"""

from __future__ import annotations

from pathlib import Path

import pytest
import requests_mock as req_mock
from fastapi.testclient import TestClient

from epic_gateway.api.app import create_app
from epic_gateway.auth.credentials import SigningCredential
from epic_gateway.auth.token_client import TokenExchangeClient
from epic_gateway.config import Settings
from epic_gateway.fhir.gateway import ResourceGateway
from tests.fixtures.epic import ACCESS_TOKEN, R4_URL, STU3_URL, TOKEN_URL
from tests.fixtures.keys import rsa_private_pem


# ---------------------------------------------------------------------------
# Pytest markers
# ---------------------------------------------------------------------------

def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast offline unit tests")
    config.addinivalue_line("markers", "integration: mock-based integration tests")
    config.addinivalue_line("markers", "quality: property-based tests")
    config.addinivalue_line("markers", "live: requires real credentials (skipped by default)")


# ---------------------------------------------------------------------------
# Credential / settings fixtures
# ---------------------------------------------------------------------------

@pytest.fixture(scope="session")
def private_key_pem() -> str:
    return rsa_private_pem()


@pytest.fixture
def private_key_file(tmp_path: Path, private_key_pem: str) -> Path:
    path = tmp_path / "privatekey.pem"
    path.write_text(private_key_pem)
    return path


@pytest.fixture
def credential(private_key_pem: str) -> SigningCredential:
    return SigningCredential.from_pem(issuer="test-client", client_id="test-client", pem=private_key_pem)


@pytest.fixture
def settings(private_key_file: Path) -> Settings:
    return Settings(
        client_id="test-client",
        issuer="test-client",
        private_key_path=private_key_file,
        token_url=TOKEN_URL,
        r4_base_url=R4_URL,
        stu3_base_url=STU3_URL,
        default_patient_id="p-default",
        timeout=5.0,
    )


# ---------------------------------------------------------------------------
# Client / gateway fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def token_client(credential: SigningCredential) -> TokenExchangeClient:
    return TokenExchangeClient(credential, TOKEN_URL)


@pytest.fixture
def gateway(settings: Settings, token_client: TokenExchangeClient) -> ResourceGateway:
    return ResourceGateway(settings, token_client)


@pytest.fixture
def epic_mock():
    """requests-mock Mocker with Epic's token endpoint already answering 200."""
    with req_mock.Mocker() as m:
        m.post(TOKEN_URL, json={"access_token": ACCESS_TOKEN, "token_type": "Bearer", "expires_in": 3600})
        yield m


@pytest.fixture
def client(settings: Settings, gateway: ResourceGateway) -> TestClient:
    return TestClient(create_app(settings, gateway))

