"""Fake implementations for testing."""

from tests.fakes.key_derivation_fake import DeriveCall, FakeKeyDerivation

__all__ = ["FakeKeyDerivation", "DeriveCall"]
