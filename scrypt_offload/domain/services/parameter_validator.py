"""Parameter validation - reject unsafe derivation input before any work.

Validation runs before the key-derivation primitive is invoked, so a rejected
request costs microseconds no matter how expensive the requested parameters
would have been, and the time taken does not depend on the derivation cost.

The bounds are those representable by a record format version. New hashes are
always written in the current format (V2), so callers validate against V2
bounds. The legacy V1 bounds exist so that the codec can refuse to emit a V1
record it could not faithfully represent.

The validator holds no mutable state and is safe to share between threads.
"""

from dataclasses import dataclass

from scrypt_offload.domain.entities.hash_record import CURRENT_VERSION, RecordVersion
from scrypt_offload.domain.entities.scrypt_params import ScryptParams
from scrypt_offload.domain.exceptions import (
    InvalidBlockSizeError,
    InvalidCostError,
    InvalidKeyLenError,
    InvalidParallelizationError,
    InvalidSaltLenError,
    MissingOrTooMuchDataError,
)

MIN_DATA_LENGTH = 1
MAX_DATA_LENGTH = 2048


@dataclass(frozen=True)
class ParameterBounds:
    """Inclusive numeric bounds for one record format version."""

    min_cost: int
    max_cost: int
    max_block_size: int
    max_parallelization: int
    min_salt_len: int
    max_salt_len: int
    min_key_len: int
    max_key_len: int
    min_block_size: int = 1
    min_parallelization: int = 1


PARAMETER_BOUNDS: dict[RecordVersion, ParameterBounds] = {
    RecordVersion.V1: ParameterBounds(
        min_cost=1024,
        max_cost=65535,
        max_block_size=15,
        max_parallelization=15,
        min_salt_len=16,
        max_salt_len=255,
        min_key_len=16,
        max_key_len=255,
    ),
    # cost is stored as a 3-bit exponent offset from 2^12, blockSize and
    # parallelization as 4-bit offsets from 1, saltLen as a 5-bit offset
    # from 16 and keyLen as an 8-bit offset from 16
    RecordVersion.V2: ParameterBounds(
        min_cost=4096,
        max_cost=524288,
        max_block_size=16,
        max_parallelization=16,
        min_salt_len=16,
        max_salt_len=47,
        min_key_len=16,
        max_key_len=271,
    ),
}


def _is_integer(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def is_power_of_two(value: int) -> bool:
    return value > 0 and (value & (value - 1)) == 0


class ParameterValidator:
    """
    Enforces per-version parameter bounds.

    Checks run in a fixed order and stop at the first failure:
    data length, cost, blockSize, parallelization, saltLen, keyLen.

    Usage:
        validator = ParameterValidator()
        validator.validate("my secret", params)  # raises on the first bad field
    """

    def __init__(self, version: RecordVersion = CURRENT_VERSION):
        self._version = version
        self._bounds = PARAMETER_BOUNDS[version]

    @property
    def version(self) -> RecordVersion:
        return self._version

    @property
    def bounds(self) -> ParameterBounds:
        return self._bounds

    def validate(self, data: str, params: ScryptParams) -> None:
        """
        Validate input text and derivation parameters.

        Raises:
            MissingOrTooMuchDataError: data is not 1..2048 characters
            InvalidCostError: cost out of range or not a power of two
            InvalidBlockSizeError: blockSize out of range
            InvalidParallelizationError: parallelization out of range
            InvalidSaltLenError: saltLen out of range
            InvalidKeyLenError: keyLen out of range
        """
        self.validate_data(data)
        self.validate_params(params)

    @staticmethod
    def validate_data(data: str) -> None:
        """Check the input text length (1..2048 characters)."""
        if not isinstance(data, str) or not MIN_DATA_LENGTH <= len(data) <= MAX_DATA_LENGTH:
            raise MissingOrTooMuchDataError()

    def validate_params(self, params: ScryptParams) -> None:
        """Check numeric parameters against the bounds of this validator's version."""
        bounds = self._bounds

        if not _is_integer(params.cost) or not bounds.min_cost <= params.cost <= bounds.max_cost:
            raise InvalidCostError(
                f"Invalid cost parameter ({bounds.min_cost}-{bounds.max_cost})"
            )
        if not is_power_of_two(params.cost):
            raise InvalidCostError("Invalid cost (not a power of 2)")

        if not _is_integer(params.block_size) or not (
            bounds.min_block_size <= params.block_size <= bounds.max_block_size
        ):
            raise InvalidBlockSizeError(
                f"Invalid blockSize parameter ({bounds.min_block_size}-{bounds.max_block_size})"
            )

        if not _is_integer(params.parallelization) or not (
            bounds.min_parallelization <= params.parallelization <= bounds.max_parallelization
        ):
            raise InvalidParallelizationError(
                "Invalid parallelization parameter "
                f"({bounds.min_parallelization}-{bounds.max_parallelization})"
            )

        if not _is_integer(params.salt_len) or not (
            bounds.min_salt_len <= params.salt_len <= bounds.max_salt_len
        ):
            raise InvalidSaltLenError(
                f"Invalid saltLen ({bounds.min_salt_len}-{bounds.max_salt_len})"
            )

        if not _is_integer(params.key_len) or not (
            bounds.min_key_len <= params.key_len <= bounds.max_key_len
        ):
            raise InvalidKeyLenError(
                f"Invalid keyLen ({bounds.min_key_len}-{bounds.max_key_len})"
            )
