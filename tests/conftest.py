"""
Pytest configuration and shared fixtures for VIGIL tests.

This module provides common test fixtures for:
- Auth core components wired to an in-memory credential store
- A FastAPI test client backed by the same service
"""
import pytest
from fastapi.testclient import TestClient

from src.api.main import app
from src.api.deps import get_auth_service
from src.auth.cipher import SecretCipher
from src.auth.config import AuthSettings
from src.auth.manager import MFAStateManager
from src.auth.passwords import PasswordAuthenticator
from src.auth.service import AuthService, build_auth_service
from src.auth.tokens import TokenIssuer
from src.database.store import InMemoryCredentialStore
from src.utils.secrets import get_secret

# Keeps hashing fast; production default is 10
TEST_BCRYPT_ROUNDS = 4
TEST_ENCRYPTION_KEY = "0123456789abcdef" * 4
TEST_JWT_SECRET = "test-jwt-signing-key-0123456789abcdef"


# ============================================
# Environment Fixtures
# ============================================

@pytest.fixture(autouse=True)
def clear_secret_cache():
    """get_secret is cached; tests that patch the environment need a clean slate."""
    get_secret.cache_clear()
    yield
    get_secret.cache_clear()


@pytest.fixture
def settings():
    return AuthSettings(
        jwt_secret=TEST_JWT_SECRET,
        encryption_key=TEST_ENCRYPTION_KEY,
        bcrypt_rounds=TEST_BCRYPT_ROUNDS,
        environment="development",
    )


# ============================================
# Core Component Fixtures
# ============================================

@pytest.fixture
def store():
    return InMemoryCredentialStore()


@pytest.fixture
def cipher():
    return SecretCipher(TEST_ENCRYPTION_KEY)


@pytest.fixture
def authenticator(store):
    return PasswordAuthenticator(store, rounds=TEST_BCRYPT_ROUNDS)


@pytest.fixture
def token_issuer():
    return TokenIssuer(TEST_JWT_SECRET)


@pytest.fixture
def manager(store, cipher):
    return MFAStateManager(store, cipher, window=5)


@pytest.fixture
def service(settings, store) -> AuthService:
    return build_auth_service(settings, store)


@pytest.fixture
def account_id(authenticator):
    """A registered account: alice@example.com / pw123456."""
    return authenticator.register("alice@example.com", "pw123456")


# ============================================
# API Fixtures
# ============================================

@pytest.fixture
def client(service):
    """Test client whose routes share the `service` fixture."""
    app.dependency_overrides[get_auth_service] = lambda: service

    client = TestClient(app)
    yield client

    app.dependency_overrides.clear()
