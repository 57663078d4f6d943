"""Pytest configuration and fixtures.

This file contains shared fixtures that can be used across all tests.

These fixtures follow the Dependency Inversion Principle:
- Use fake implementations (FakeKeyDerivation)
- Tests run fast (no real scrypt unless a test asks for it)
- Tests are isolated (each test gets fresh fakes and its own worker pool)
"""

from collections.abc import Generator

import pytest

from scrypt_offload.application.services.derivation_service import DerivationService
from scrypt_offload.domain.entities.scrypt_params import ScryptParams
from scrypt_offload.domain.services.hash_record_codec import HashRecordCodec
from scrypt_offload.infrastructure.security.scrypt_key_derivation import ScryptKeyDerivation
from scrypt_offload.infrastructure.workers.work_dispatcher import WorkDispatcher
from tests.fakes.key_derivation_fake import FakeKeyDerivation


@pytest.fixture
def fake_key_derivation() -> FakeKeyDerivation:
    """
    Provide a FakeKeyDerivation for tests.

    This fake primitive is fast and deterministic, making tests easier to write.
    """
    return FakeKeyDerivation()


@pytest.fixture
def codec() -> HashRecordCodec:
    """Provide a record codec."""
    return HashRecordCodec()


@pytest.fixture
def params() -> ScryptParams:
    """
    Smallest valid parameters for the current record version.

    Cheap enough for the real scrypt primitive (4 MiB per derivation).
    """
    return ScryptParams(cost=4096, block_size=8, parallelization=1, salt_len=16, key_len=32)


@pytest.fixture
def derivation_service(fake_key_derivation) -> DerivationService:
    """
    Create DerivationService with the fake primitive.

    This is the main fixture for testing hash/compare orchestration.
    """
    return DerivationService(fake_key_derivation)


@pytest.fixture
def real_derivation_service() -> DerivationService:
    """DerivationService backed by real scrypt, for end-to-end checks."""
    return DerivationService(ScryptKeyDerivation())


@pytest.fixture
def dispatcher() -> Generator[WorkDispatcher]:
    """
    Provide a small worker pool, shut down after the test.

    Shutdown cancels queued jobs so a failing test cannot hang teardown.
    """
    pool = WorkDispatcher(min_workers=0, max_workers=2, idle_timeout=5.0)
    yield pool
    pool.shutdown(wait=True, cancel_futures=True)
