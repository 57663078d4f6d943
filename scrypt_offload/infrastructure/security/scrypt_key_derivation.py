"""Scrypt key derivation implementation using the cryptography package.

This is an INFRASTRUCTURE detail. The domain layer (IKeyDerivation interface)
defines WHAT we need (derive and constant-time compare), while this module
defines HOW we do it.

Dependency flow:
    DerivationService (application) → IKeyDerivation (domain) ← ScryptKeyDerivation (infrastructure)

cryptography is only imported here, so unit tests can exercise the whole
hash/compare pipeline with a fake primitive.
"""

from cryptography.hazmat.primitives import constant_time
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt

from scrypt_offload.domain.services.key_derivation import IKeyDerivation


class ScryptKeyDerivation(IKeyDerivation):
    """
    Production key derivation using scrypt via cryptography (OpenSSL).

    A new Scrypt object is built per call: cryptography KDF instances are
    single-use, and building one holds no shared state, so concurrent calls
    from worker threads never interfere.

    Usage:
        kdf = ScryptKeyDerivation()
        key = kdf.derive(b"secret", salt, 32, cost=16384, block_size=8, parallelization=1)
        kdf.constant_time_equals(key, stored_key)
    """

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
        Derive ``key_len`` bytes with scrypt.

        Raises:
            ValueError, TypeError: cryptography rejected the parameters
                (e.g. a cost that is not a power of two, a zero block size)
            MemoryError: OpenSSL could not allocate the working memory
        """
        kdf = Scrypt(
            salt=salt,
            length=key_len,
            n=cost,
            r=block_size,
            p=parallelization,
        )
        return kdf.derive(data)

    def constant_time_equals(self, left: bytes, right: bytes) -> bool:
        return constant_time.bytes_eq(left, right)
