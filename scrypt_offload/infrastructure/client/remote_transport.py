"""HTTP transport to a remote hashing service.

Wraps one ``httpx.AsyncClient`` with the timeouts the client needs: a remote
that stalls must turn into a TransportError quickly so the caller can fall
back to local computation, instead of hanging the call.

Only the transport concerns live here. Whether to call the remote at all,
and what to do when it fails, is AvailabilityClient's decision.
"""

import ssl
from pathlib import Path
from typing import TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from scrypt_offload.application.dtos.scrypt_dto import (
    CompareRequestDTO,
    CompareResponseDTO,
    HashRequestDTO,
    HashResponseDTO,
)
from scrypt_offload.application.exceptions import TransportError

ResponseT = TypeVar("ResponseT", HashResponseDTO, CompareResponseDTO)

# connect 2s, response headers and body 5s each
DEFAULT_TIMEOUT = httpx.Timeout(connect=2.0, read=5.0, write=5.0, pool=5.0)


def build_ssl_context(ca_cert: str | Path | bytes | None) -> ssl.SSLContext | bool:
    """
    Build the TLS verification setting for httpx.

    Args:
        ca_cert: Path to a PEM CA bundle, PEM data itself, or None for the
            system trust store

    Returns:
        An SSLContext trusting the given CA, or True for default verification
    """
    if ca_cert is None:
        return True
    if isinstance(ca_cert, bytes):
        return ssl.create_default_context(cadata=ca_cert.decode("ascii"))
    return ssl.create_default_context(cafile=str(ca_cert))


class RemoteScryptTransport:
    """
    Sends hash and compare requests to a remote service.

    Any failure to obtain a well-formed 200 answer (connection refused,
    timeout, non-200 status, unparseable body) raises TransportError. A 200
    answer carrying an ``error`` is NOT a transport failure: it is returned
    as is, because the remote did its job and rejected the input.

    Requests are validated DTOs; the transport sends them as they are.
    """

    def __init__(
        self,
        base_url: str,
        ca_cert: str | Path | bytes | None = None,
        timeout: httpx.Timeout = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Args:
            base_url: Service root, e.g. ``https://hash.internal:8001``
            ca_cert: CA used to verify the service certificate
            timeout: Per-request timeouts
            transport: Custom httpx transport (tests use httpx.MockTransport)
        """
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            verify=build_ssl_context(ca_cert),
            follow_redirects=False,
            transport=transport,
            headers={"Accept-Encoding": "gzip, deflate"},
        )

    async def hash(self, request: HashRequestDTO) -> HashResponseDTO:
        return await self._post("/hash", request, HashResponseDTO)

    async def compare(self, request: CompareRequestDTO) -> CompareResponseDTO:
        return await self._post("/compare", request, CompareResponseDTO)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _post(self, path: str, payload: BaseModel, response_model: type[ResponseT]) -> ResponseT:
        try:
            response = await self._client.post(path, json=payload.model_dump(by_alias=True))
        except httpx.HTTPError as exc:
            raise TransportError(str(exc) or exc.__class__.__name__) from exc

        if response.status_code != httpx.codes.OK:
            raise TransportError(f"Remote service answered {response.status_code}")

        try:
            body = response_model.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise TransportError("Malformed response from remote service") from exc

        if body.result is None and body.error is None:
            raise TransportError("Empty response from remote service")
        return body
