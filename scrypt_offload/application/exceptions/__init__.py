"""Application layer exceptions."""

from scrypt_offload.application.exceptions.exceptions import (
    ApplicationError,
    NoWorkersAvailableError,
    ServiceOfflineError,
    TransportError,
)

__all__ = [
    "ApplicationError",
    "TransportError",
    "ServiceOfflineError",
    "NoWorkersAvailableError",
]
