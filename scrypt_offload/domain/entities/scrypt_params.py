"""Scrypt derivation parameters - pure value object, no infrastructure."""

from dataclasses import dataclass, replace
from typing import Any, Mapping


@dataclass(frozen=True)
class ScryptParams:
    """
    Parameters for one scrypt derivation.

    This is a value object: two instances with the same fields are equal and
    nothing refers to a particular instance. It is created per request by
    the caller and is not validated on construction, because records in the
    legacy format may legitimately carry values outside the current bounds.
    Use ParameterValidator before hashing with a caller-supplied instance.

    Attributes:
        cost: CPU/memory cost (scrypt N), a power of two
        block_size: Block size (scrypt r)
        parallelization: Parallelization (scrypt p)
        salt_len: Number of random salt bytes
        key_len: Number of derived key bytes
    """

    cost: int
    block_size: int
    parallelization: int
    salt_len: int
    key_len: int

    def merged(self, overrides: Mapping[str, Any] | None) -> "ScryptParams":
        """
        Return a copy with the non-None values of ``overrides`` applied.

        Unknown keys raise TypeError, the same way the dataclass constructor
        would.
        """
        if not overrides:
            return self
        changes = {key: value for key, value in overrides.items() if value is not None}
        return replace(self, **changes)


# Parameters used by the client when the caller gives none
DEFAULT_SCRYPT_PARAMS = ScryptParams(
    cost=16384,
    block_size=8,
    parallelization=1,
    salt_len=16,
    key_len=32,
)
