"""Binary hash record codec.

A record is the persisted and transmitted form of one scrypt hash: a small
header describing the derivation parameters, followed by the salt and the
derived key. Two header layouts exist and both must stay bit-exact, because
records written by older releases are still stored by callers.

V1 (legacy, 6-byte header)::

    byte 0      0x01
    bytes 1-2   cost, big-endian unsigned 16-bit
    byte 3      (blockSize << 4) | parallelization
    byte 4      saltLen
    byte 5      keyLen

V2 (current, 4-byte header)::

    byte 0      0x02
    byte 1      ((blockSize - 1) << 4) | (parallelization - 1)
    byte 2      ((log2(cost) - 12) << 5) | (saltLen - 16)
    byte 3      keyLen - 16

In both layouts the salt follows the header and the derived key follows the
salt. The total length must equal header + saltLen + keyLen exactly.

Each version is one layout class registered in ``RECORD_LAYOUTS``. Decoding
dispatches on the version byte; supporting a new version means adding a
layout and registering it, without touching the existing ones.
"""

import base64
import binascii
import struct
from abc import ABC, abstractmethod
from typing import NamedTuple

from scrypt_offload.domain.entities.hash_record import (
    CURRENT_VERSION,
    HashRecord,
    RecordVersion,
)
from scrypt_offload.domain.exceptions import (
    InvalidRecordEncodingError,
    LengthMismatchError,
    TruncatedRecordError,
    UnsupportedVersionError,
)
from scrypt_offload.domain.services.parameter_validator import ParameterValidator


class RecordHeader(NamedTuple):
    """Header fields shared by every layout."""

    cost: int
    block_size: int
    parallelization: int
    salt_len: int
    key_len: int


class RecordLayout(ABC):
    """Header layout of one record format version."""

    version: RecordVersion
    header_size: int

    @abstractmethod
    def pack_header(self, header: RecordHeader) -> bytes:
        """Serialize header fields (version byte included)."""

    @abstractmethod
    def unpack_header(self, buffer: bytes) -> RecordHeader:
        """Parse header fields; ``buffer`` is at least ``header_size`` long."""


class V1Layout(RecordLayout):
    """Legacy layout with raw cost, saltLen and keyLen fields."""

    version = RecordVersion.V1
    header_size = 6

    _struct = struct.Struct(">BHBBB")

    def pack_header(self, header: RecordHeader) -> bytes:
        return self._struct.pack(
            self.version,
            header.cost,
            (header.block_size << 4) | header.parallelization,
            header.salt_len,
            header.key_len,
        )

    def unpack_header(self, buffer: bytes) -> RecordHeader:
        _, cost, block_parallel, salt_len, key_len = self._struct.unpack_from(buffer)
        return RecordHeader(
            cost=cost,
            block_size=block_parallel >> 4,
            parallelization=block_parallel & 0x0F,
            salt_len=salt_len,
            key_len=key_len,
        )


class V2Layout(RecordLayout):
    """Compact layout storing cost as an exponent and small fields as offsets."""

    version = RecordVersion.V2
    header_size = 4

    COST_EXPONENT_OFFSET = 12
    SALT_LEN_OFFSET = 16
    KEY_LEN_OFFSET = 16

    _struct = struct.Struct(">BBBB")

    def pack_header(self, header: RecordHeader) -> bytes:
        cost_exponent = header.cost.bit_length() - 1
        return self._struct.pack(
            self.version,
            ((header.block_size - 1) << 4) | (header.parallelization - 1),
            ((cost_exponent - self.COST_EXPONENT_OFFSET) << 5)
            | (header.salt_len - self.SALT_LEN_OFFSET),
            header.key_len - self.KEY_LEN_OFFSET,
        )

    def unpack_header(self, buffer: bytes) -> RecordHeader:
        _, block_parallel, cost_salt, key_len = self._struct.unpack_from(buffer)
        return RecordHeader(
            cost=1 << ((cost_salt >> 5) + self.COST_EXPONENT_OFFSET),
            block_size=(block_parallel >> 4) + 1,
            parallelization=(block_parallel & 0x0F) + 1,
            salt_len=(cost_salt & 0x1F) + self.SALT_LEN_OFFSET,
            key_len=key_len + self.KEY_LEN_OFFSET,
        )


RECORD_LAYOUTS: dict[int, RecordLayout] = {
    layout.version: layout for layout in (V1Layout(), V2Layout())
}

MIN_HEADER_SIZE = min(layout.header_size for layout in RECORD_LAYOUTS.values())


class HashRecordCodec:
    """
    Encodes and decodes hash records.

    The codec is stateless and thread-safe.

    Usage:
        codec = HashRecordCodec()
        blob = codec.encode(record)          # always V2 unless asked otherwise
        record = codec.decode(blob)          # V1 or V2, chosen by byte 0
    """

    def encode(self, record: HashRecord, version: RecordVersion = CURRENT_VERSION) -> bytes:
        """
        Serialize a record.

        New records are always written in the current version. Passing
        ``RecordVersion.V1`` reproduces a legacy record byte for byte.

        Args:
            record: Record to serialize
            version: Layout to emit

        Returns:
            Header, salt and derived key as one bytes object

        Raises:
            InvalidCostError, InvalidBlockSizeError, InvalidParallelizationError,
            InvalidSaltLenError, InvalidKeyLenError: the record's parameters
            cannot be represented in the requested layout
        """
        layout = RECORD_LAYOUTS[version]
        ParameterValidator(version).validate_params(record.params)
        header = RecordHeader(
            cost=record.cost,
            block_size=record.block_size,
            parallelization=record.parallelization,
            salt_len=record.salt_len,
            key_len=record.key_len,
        )
        return layout.pack_header(header) + record.salt + record.derived_key

    def decode(self, buffer: bytes) -> HashRecord:
        """
        Parse a record of any supported version.

        Decoded parameters are not checked against the current bounds, so
        records written under older limits remain verifiable.

        Raises:
            TruncatedRecordError: shorter than the smallest header, or than
                the header of the declared version
            UnsupportedVersionError: unknown version byte
            LengthMismatchError: body length differs from saltLen + keyLen
        """
        buffer = bytes(buffer)
        if len(buffer) < MIN_HEADER_SIZE:
            raise TruncatedRecordError(
                f"Hash record is truncated ({len(buffer)} bytes, at least {MIN_HEADER_SIZE} required)"
            )

        layout = RECORD_LAYOUTS.get(buffer[0])
        if layout is None:
            raise UnsupportedVersionError(
                f"Unsupported hash record version: 0x{buffer[0]:02x}"
            )
        if len(buffer) < layout.header_size:
            raise TruncatedRecordError(
                f"Hash record is truncated ({len(buffer)} bytes, "
                f"version {layout.version:d} header is {layout.header_size})"
            )

        header = layout.unpack_header(buffer)
        expected_length = layout.header_size + header.salt_len + header.key_len
        if expected_length != len(buffer):
            raise LengthMismatchError(
                f"Invalid hash buffer length ({len(buffer)} bytes, expected {expected_length})"
            )

        salt_end = layout.header_size + header.salt_len
        return HashRecord(
            version=layout.version,
            cost=header.cost,
            block_size=header.block_size,
            parallelization=header.parallelization,
            salt=buffer[layout.header_size:salt_end],
            derived_key=buffer[salt_end:],
        )

    @staticmethod
    def decode_base64(text: str) -> bytes:
        """Convert the base64 wire form of a record to bytes."""
        try:
            return base64.b64decode(text, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise InvalidRecordEncodingError() from exc

    @staticmethod
    def encode_base64(buffer: bytes) -> str:
        """Convert a record to its base64 wire form."""
        return base64.b64encode(buffer).decode("ascii")
