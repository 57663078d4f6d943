"""Hash record domain entity - decoded form of a stored scrypt hash."""

from dataclasses import dataclass
from enum import IntEnum

from scrypt_offload.domain.entities.scrypt_params import ScryptParams


class RecordVersion(IntEnum):
    """Binary record format version, stored in the first byte of a record."""

    V1 = 0x01
    V2 = 0x02


CURRENT_VERSION = RecordVersion.V2


@dataclass(frozen=True)
class HashRecord:
    """
    Decoded logical form of one stored or transmitted hash.

    A record is created either by DerivationService.hash (fresh random salt)
    or by HashRecordCodec.decode (from a received buffer). It is never
    mutated; compare consumes it once and discards it.

    salt_len and key_len are not stored separately: they are the lengths of
    salt and derived_key, so a record can never disagree with its own body.
    """

    version: RecordVersion
    cost: int
    block_size: int
    parallelization: int
    salt: bytes
    derived_key: bytes

    @property
    def salt_len(self) -> int:
        return len(self.salt)

    @property
    def key_len(self) -> int:
        return len(self.derived_key)

    @property
    def params(self) -> ScryptParams:
        """Derivation parameters this record was produced with."""
        return ScryptParams(
            cost=self.cost,
            block_size=self.block_size,
            parallelization=self.parallelization,
            salt_len=self.salt_len,
            key_len=self.key_len,
        )
