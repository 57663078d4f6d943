"""Integration test fixtures.

Provides FastAPI test clients running the real application: real routing,
real exception handlers, real worker pool. Only the key-derivation primitive
differs between fixtures (fake for speed, real scrypt for end-to-end checks).
"""

from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient

from scrypt_offload.infrastructure.config.settings import Settings
from scrypt_offload.infrastructure.security.scrypt_key_derivation import ScryptKeyDerivation
from scrypt_offload.main import create_app
from tests.fakes.key_derivation_fake import FakeKeyDerivation


@pytest.fixture
def test_settings() -> Settings:
    """Small pool, docs disabled, as in production."""
    return Settings(min_workers=1, max_workers=2, debug=False)


@pytest.fixture
def client(test_settings, fake_key_derivation) -> Generator[TestClient]:
    """
    Create a FastAPI test client backed by FakeKeyDerivation.

    Entering the client runs the app lifespan, which starts the worker pool.
    """
    app = create_app(test_settings, key_derivation=fake_key_derivation)

    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def scrypt_client(test_settings) -> Generator[TestClient]:
    """Create a FastAPI test client backed by real scrypt."""
    app = create_app(test_settings, key_derivation=ScryptKeyDerivation())

    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def disabled_pool_client(fake_key_derivation) -> Generator[TestClient]:
    """Create a client whose server has no workers at all."""
    app = create_app(Settings(min_workers=0, max_workers=0), key_derivation=fake_key_derivation)

    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def hash_body() -> dict:
    """Valid /hash body with the cheapest current parameters."""
    return {
        "data": "correct horse battery staple",
        "cost": 4096,
        "blockSize": 8,
        "parallelization": 1,
        "saltLen": 16,
        "keyLen": 32,
    }
