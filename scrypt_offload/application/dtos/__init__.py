"""Data Transfer Objects for application layer."""

from scrypt_offload.application.dtos.scrypt_dto import (
    CompareRequestDTO,
    CompareResponseDTO,
    HashRequestDTO,
    HashResponseDTO,
)

__all__ = ["HashRequestDTO", "CompareRequestDTO", "HashResponseDTO", "CompareResponseDTO"]
