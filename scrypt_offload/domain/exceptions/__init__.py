"""Domain exceptions - parameter, record and derivation failures."""

from scrypt_offload.domain.exceptions.domain_exceptions import (
    DerivationFailedError,
    DerivationLengthMismatchError,
    DomainException,
    InvalidBlockSizeError,
    InvalidCostError,
    InvalidKeyLenError,
    InvalidParallelizationError,
    InvalidRecordEncodingError,
    InvalidSaltLenError,
    LengthMismatchError,
    MissingOrTooMuchDataError,
    TruncatedRecordError,
    UnsupportedVersionError,
)

__all__ = [
    "DomainException",
    "MissingOrTooMuchDataError",
    "InvalidCostError",
    "InvalidBlockSizeError",
    "InvalidParallelizationError",
    "InvalidSaltLenError",
    "InvalidKeyLenError",
    "TruncatedRecordError",
    "LengthMismatchError",
    "UnsupportedVersionError",
    "InvalidRecordEncodingError",
    "DerivationLengthMismatchError",
    "DerivationFailedError",
]
