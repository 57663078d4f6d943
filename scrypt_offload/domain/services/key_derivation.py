"""Key derivation interface - domain service abstraction.

This interface defines the contract for the two cryptographic primitives the
system relies on but does not implement:

1. A memory-hard key-derivation function (scrypt)
2. A constant-time byte comparison

The domain decides WHEN these run and with WHICH parameters (validation,
record encoding, version dispatch). It does NOT care which library provides
them. DerivationService depends on this abstraction; the cryptography-backed
ScryptKeyDerivation implements it in the infrastructure layer, and unit tests
substitute a fast fake.
"""

from abc import ABC, abstractmethod


class IKeyDerivation(ABC):
    """
    Interface for the scrypt primitive and constant-time comparison.

    Implementations must be safe to call from several worker threads at once.
    """

    @abstractmethod
    def derive(
        self,
        data: bytes,
        salt: bytes,
        key_len: int,
        cost: int,
        block_size: int,
        parallelization: int,
    ) -> bytes:
        """
        Derive a key from input bytes and salt.

        Args:
            data: Input bytes (UTF-8 encoded text)
            salt: Salt bytes
            key_len: Requested key length in bytes
            cost: CPU/memory cost (scrypt N)
            block_size: Block size (scrypt r)
            parallelization: Parallelization (scrypt p)

        Returns:
            Derived key; callers check that its length equals key_len

        Raises:
            Exception: Any failure of the underlying primitive
        """
        pass

    @abstractmethod
    def constant_time_equals(self, left: bytes, right: bytes) -> bool:
        """
        Compare two byte strings in time independent of their contents.

        Returns:
            True if the byte strings are equal, False otherwise
        """
        pass
