"""Hash and compare DTOs for the application layer.

The request DTOs are the strict schema of the wire protocol: every field is
type-checked (no coercion of "16384" or 16384.0 to an int, no bool for an int)
before any value is consumed. The client validates its own requests with
the same models, so a call the server would reject never leaves the process.
The response DTOs are shared by the service, which serializes them, and by
the client, which returns them to its callers.
"""

from dataclasses import asdict
from typing import Any, Mapping

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, StrictInt, StrictStr

from scrypt_offload.domain.entities.scrypt_params import ScryptParams

INVALID_DATA_MESSAGE = "Invalid or missing data"
INVALID_PARAMS_MESSAGE = "Invalid or missing params"

# Request fields whose absence or wrong type means the payload itself is unusable
_DATA_FIELDS = {"data", "hash"}


def describe_request_errors(errors: list[dict]) -> str:
    """
    Summarize request validation errors into one short message.

    Malformed JSON, a non-object body, or a missing or non-string ``data``
    or ``hash`` field is reported as invalid data; anything else is a
    parameter problem. Locations may carry the FastAPI ``body`` prefix.
    """
    for error in errors:
        location = tuple(error.get("loc", ()))
        if location[:1] == ("body",):
            location = location[1:]
        if error.get("type") == "json_invalid" or not location:
            return INVALID_DATA_MESSAGE
        if location[0] in _DATA_FIELDS:
            return INVALID_DATA_MESSAGE
    return INVALID_PARAMS_MESSAGE


class HashRequestDTO(BaseModel):
    """DTO for a hash request."""

    data: StrictStr = Field(..., description="Text to hash (1-2048 characters)")
    cost: StrictInt = Field(..., description="CPU/memory cost, a power of two (4096-524288)")
    block_size: StrictInt = Field(
        ...,
        validation_alias=AliasChoices("blockSize", "block_size"),
        serialization_alias="blockSize",
        description="Block size (1-16)",
    )
    parallelization: StrictInt = Field(..., description="Parallelization (1-16)")
    salt_len: StrictInt = Field(
        ...,
        validation_alias=AliasChoices("saltLen", "saltlen", "salt_len"),
        serialization_alias="saltLen",
        description="Salt length in bytes (16-47)",
    )
    key_len: StrictInt = Field(
        ...,
        validation_alias=AliasChoices("keyLen", "keylen", "key_len"),
        serialization_alias="keyLen",
        description="Derived key length in bytes (16-271)",
    )

    model_config = ConfigDict(
        json_schema_extra={
            "examples": [
                {
                    "data": "correct horse battery staple",
                    "cost": 16384,
                    "blockSize": 8,
                    "parallelization": 1,
                    "saltLen": 16,
                    "keyLen": 32,
                }
            ]
        }
    )

    @classmethod
    def from_params(cls, data: str, params: ScryptParams) -> "HashRequestDTO":
        return cls(
            data=data,
            cost=params.cost,
            block_size=params.block_size,
            parallelization=params.parallelization,
            salt_len=params.salt_len,
            key_len=params.key_len,
        )

    @classmethod
    def from_overrides(
        cls,
        data: Any,
        base: ScryptParams,
        overrides: Mapping[str, Any] | None = None,
    ) -> "HashRequestDTO":
        """
        Build and validate a request from base parameters and a partial mapping.

        Override keys may use field names (``key_len``) or wire names
        (``keyLen``, ``keylen``). None values keep the base value.

        Raises:
            ValueError: Unknown override key, or the request does not match
                the schema (pydantic's ValidationError is a ValueError)
        """
        fields = {**asdict(base), **cls.normalize_overrides(overrides)}
        return cls.model_validate({"data": data, **fields})

    @classmethod
    def normalize_overrides(cls, overrides: Mapping[str, Any] | None) -> dict[str, Any]:
        """Rename override keys to field names, dropping None values."""
        if overrides is None:
            return {}
        if not isinstance(overrides, Mapping):
            raise ValueError("Parameters must be a mapping")

        names = cls._param_field_names()
        normalized: dict[str, Any] = {}
        for key, value in overrides.items():
            if key not in names:
                raise ValueError(f"Unknown parameter: {key}")
            if value is not None:
                normalized[names[key]] = value
        return normalized

    @classmethod
    def _param_field_names(cls) -> dict[str, str]:
        names: dict[str, str] = {}
        for field_name, field in cls.model_fields.items():
            if field_name == "data":
                continue
            names[field_name] = field_name
            if isinstance(field.validation_alias, AliasChoices):
                for choice in field.validation_alias.choices:
                    if isinstance(choice, str):
                        names[choice] = field_name
        return names

    def to_params(self) -> ScryptParams:
        return ScryptParams(
            cost=self.cost,
            block_size=self.block_size,
            parallelization=self.parallelization,
            salt_len=self.salt_len,
            key_len=self.key_len,
        )


class CompareRequestDTO(BaseModel):
    """DTO for a compare request."""

    data: StrictStr = Field(..., description="Text to check")
    hash: StrictStr = Field(..., description="Base64 encoded hash record")

    model_config = ConfigDict(
        json_schema_extra={
            "examples": [
                {
                    "data": "correct horse battery staple",
                    "hash": "AnAARAAB...",
                }
            ]
        }
    )


class HashResponseDTO(BaseModel):
    """DTO for a hash outcome: a base64 record or an error message."""

    result: str | None = Field(default=None, description="Base64 encoded hash record")
    error: str | None = Field(default=None, description="Why the operation failed")

    model_config = ConfigDict(
        json_schema_extra={
            "examples": [
                {"result": "AnAARAAB..."},
                {"error": "Invalid cost (not a power of 2)"},
            ]
        }
    )

    @property
    def ok(self) -> bool:
        return self.error is None and self.result is not None


class CompareResponseDTO(BaseModel):
    """DTO for a compare outcome: a match flag or an error message."""

    result: bool | None = Field(default=None, description="True if the data matches the hash")
    error: str | None = Field(default=None, description="Why the operation failed")

    model_config = ConfigDict(
        json_schema_extra={
            "examples": [
                {"result": True},
                {"error": "Unsupported hash record version: 0x03"},
            ]
        }
    )

    @property
    def ok(self) -> bool:
        return self.error is None and self.result is not None
