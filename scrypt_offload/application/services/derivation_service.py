"""Derivation service - application layer hash and compare use cases.

This service is the only component that invokes the key-derivation and
constant-time comparison primitives. It orchestrates:

1. Hash: validate → random salt → derive → check key length → encode (V2)
2. Compare: check data → decode (any version) → derive → constant-time compare

DEPENDENCY INVERSION in action:
- DerivationService depends on IKeyDerivation (abstraction)
- No dependency on cryptography, FastAPI or threads

Both operations are synchronous and CPU-bound. Callers run them inside a
WorkDispatcher so a request-accepting event loop is never blocked. Nothing is
retried here; retry policy belongs to the caller.
"""

import logging
import secrets
from collections.abc import Callable

from scrypt_offload.domain.entities.hash_record import CURRENT_VERSION, HashRecord
from scrypt_offload.domain.entities.scrypt_params import ScryptParams
from scrypt_offload.domain.exceptions import (
    DerivationFailedError,
    DerivationLengthMismatchError,
)
from scrypt_offload.domain.services.hash_record_codec import HashRecordCodec
from scrypt_offload.domain.services.key_derivation import IKeyDerivation
from scrypt_offload.domain.services.parameter_validator import ParameterValidator

logger = logging.getLogger(__name__)


class DerivationService:
    """
    Hash and compare use cases on top of an injected key-derivation primitive.

    The service holds no per-call state and may be shared by every worker
    thread of a dispatcher.

    Testing:
    - Unit tests use FakeKeyDerivation (no real scrypt)
    - Integration tests use ScryptKeyDerivation with small cost values
    """

    def __init__(
        self,
        key_derivation: IKeyDerivation,
        codec: HashRecordCodec | None = None,
        validator: ParameterValidator | None = None,
        salt_factory: Callable[[int], bytes] = secrets.token_bytes,
    ):
        """
        Initialize derivation service with dependencies.

        Args:
            key_derivation: scrypt primitive (abstraction)
            codec: Record codec, a default HashRecordCodec if omitted
            validator: Validator for new hashes, current-version bounds if omitted
            salt_factory: Source of cryptographically random salt bytes
        """
        self._key_derivation = key_derivation
        self._codec = codec or HashRecordCodec()
        self._validator = validator or ParameterValidator(CURRENT_VERSION)
        self._salt_factory = salt_factory

    def hash(self, data: str, params: ScryptParams) -> bytes:
        """
        Hash text into an encoded record.

        Args:
            data: Text to hash (1..2048 characters)
            params: Derivation parameters, checked against current bounds

        Returns:
            Encoded record (current version)

        Raises:
            MissingOrTooMuchDataError, InvalidCostError, InvalidBlockSizeError,
            InvalidParallelizationError, InvalidSaltLenError, InvalidKeyLenError:
                validation failed (raised before any derivation work)
            DerivationFailedError: The primitive raised
            DerivationLengthMismatchError: The primitive returned a key of the
                wrong length
        """
        self._validator.validate(data, params)

        salt = self._salt_factory(params.salt_len)
        derived_key = self._derive(data, salt, params)
        if len(derived_key) != params.key_len:
            logger.error(
                "Derived key length %d does not match keyLen %d",
                len(derived_key),
                params.key_len,
            )
            raise DerivationLengthMismatchError()

        record = HashRecord(
            version=CURRENT_VERSION,
            cost=params.cost,
            block_size=params.block_size,
            parallelization=params.parallelization,
            salt=salt,
            derived_key=derived_key,
        )
        return self._codec.encode(record)

    def compare(self, data: str, encoded: bytes | str) -> bool:
        """
        Check text against an encoded record of any supported version.

        The decoded parameters are deliberately not checked against the
        current bounds: a record stored under older limits must stay
        verifiable.

        Args:
            data: Text to check
            encoded: Record bytes, or their base64 text form

        Returns:
            True if the text produced the record, False otherwise

        Raises:
            MissingOrTooMuchDataError: data is not 1..2048 characters
            InvalidRecordEncodingError: text form is not valid base64
            TruncatedRecordError, UnsupportedVersionError, LengthMismatchError:
                the record could not be decoded
            DerivationFailedError: The primitive raised (never reported as a
                mismatch)
        """
        ParameterValidator.validate_data(data)
        if isinstance(encoded, str):
            encoded = self._codec.decode_base64(encoded)
        record = self._codec.decode(encoded)

        derived_key = self._derive(data, record.salt, record.params)
        return self._key_derivation.constant_time_equals(derived_key, record.derived_key)

    def _derive(self, data: str, salt: bytes, params: ScryptParams) -> bytes:
        try:
            return self._key_derivation.derive(
                data.encode("utf-8"),
                salt,
                params.key_len,
                params.cost,
                params.block_size,
                params.parallelization,
            )
        except MemoryError:
            raise
        except Exception as exc:
            # Log the primitive's message, report only a short one
            logger.error("Key derivation failed: %s", exc, exc_info=True)
            raise DerivationFailedError() from exc
