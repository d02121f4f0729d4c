"""
Shared fixtures: an app wired to an in-memory tenant store and helpers to
sign Connect tokens the way Jira does.
"""
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest
from fastapi.testclient import TestClient

from main import create_app
from services.connect_jwt import create_token
from services.credential_store import InMemoryCredentialStore, TenantCredentials
from src.aava_jira_connect.config import AppConfig

BASE_URL = "https://addon.example.com"
TENANT = TenantCredentials(
    clientKey="tenant-client-key",
    baseUrl="https://example.atlassian.net",
    sharedSecret="tenant-shared-secret-0123456789abcdef",
    productType="jira",
)


def make_config(**overrides) -> AppConfig:
    settings = {
        "GEMINI_API_KEY": "test-gemini-key",
        "APP_BASE_URL": BASE_URL,
        "APP_KEY": "aava-jira-connect",
    }
    settings.update(overrides)
    return AppConfig(**settings)


def sign(method: str, path: str, tenant: TenantCredentials = TENANT, **kwargs) -> str:
    """Token as Jira would sign it for a request to this app."""
    return create_token(tenant.client_key, tenant.shared_secret, method, BASE_URL + path, base_url=BASE_URL, **kwargs)


def jwt_header(token: str) -> dict:
    return {"Authorization": f"JWT {token}"}


@pytest.fixture
def store():
    credential_store = InMemoryCredentialStore()
    credential_store.save(TENANT)
    return credential_store


@pytest.fixture
def config():
    return make_config()


@pytest.fixture
def client(config, store):
    app = create_app(config, credential_store=store)
    with TestClient(app) as test_client:
        yield test_client
