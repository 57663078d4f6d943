"""Embeddable client with remote-first routing and local fallback.

The client asks a remote hashing service first. When the remote cannot be
reached, or answers with anything but a well-formed 200, the client records
the failure, backs off, and runs the same DerivationService logic locally on
its own bounded worker pool.

Availability is a two-state machine per client instance:

    Online ──failure──▶ Offline until T
      ▲                     │
      └──────success────────┘   (first attempt after T)

- Failure n sets T = now + min(300s, n * 5s)
- While now <= T the remote is skipped entirely (ServiceOffline)
- After T the next call tries the remote again; its outcome decides
- Any remote success resets the failure count to zero

Validation and derivation errors from the remote (200 with ``{"error"}``)
count as a success for availability and are returned unchanged: the same
input would fail the same way locally, so there is nothing to fall back to.

Requests are validated locally before anything is sent. A request the
server would reject as malformed (unknown parameter, float cost, non-string
data) is answered with an error and never reaches the remote, so it cannot
trip the backoff.

Calls are not serialized. Each call reads and updates the shared state once
per attempt under a lock, so concurrent successes and failures cannot
corrupt the backoff accounting.
"""

import asyncio
import logging
import threading
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, TypeVar

import httpx
from pydantic import ValidationError

from scrypt_offload.application.dtos.scrypt_dto import (
    CompareRequestDTO,
    CompareResponseDTO,
    HashRequestDTO,
    HashResponseDTO,
    describe_request_errors,
)
from scrypt_offload.application.exceptions import (
    ApplicationError,
    NoWorkersAvailableError,
    ServiceOfflineError,
    TransportError,
)
from scrypt_offload.application.services.derivation_service import DerivationService
from scrypt_offload.domain.entities.scrypt_params import DEFAULT_SCRYPT_PARAMS, ScryptParams
from scrypt_offload.domain.exceptions import DomainException
from scrypt_offload.domain.services.hash_record_codec import HashRecordCodec
from scrypt_offload.domain.services.key_derivation import IKeyDerivation
from scrypt_offload.infrastructure.client.remote_transport import (
    DEFAULT_TIMEOUT,
    RemoteScryptTransport,
)
from scrypt_offload.infrastructure.security.scrypt_key_derivation import ScryptKeyDerivation
from scrypt_offload.infrastructure.workers.work_dispatcher import (
    WorkDispatcher,
    resolve_worker_count,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")
ResponseT = TypeVar("ResponseT", HashResponseDTO, CompareResponseDTO)

BACKOFF_INCREMENT = 5.0
MAX_BACKOFF = 300.0


@dataclass(frozen=True)
class AvailabilityState:
    """Snapshot of a client's view of its remote endpoint."""

    consecutive_errors: int = 0
    offline_until: float = 0.0

    def is_offline(self, now: float) -> bool:
        return self.consecutive_errors > 0 and now <= self.offline_until


def backoff_delay(consecutive_errors: int) -> float:
    """Seconds to skip the remote after ``consecutive_errors`` failures in a row."""
    return min(MAX_BACKOFF, consecutive_errors * BACKOFF_INCREMENT)


class AvailabilityClient:
    """
    Client for a remote hashing service with local fallback.

    Usage:
        async with AvailabilityClient("https://hash.internal:8001", ca_cert="ca.pem") as client:
            hashed = await client.hash("secret")
            if hashed.error:
                ...
            verified = await client.compare("secret", hashed.result)

    Results are always HashResponseDTO / CompareResponseDTO objects with
    either ``result`` or ``error`` set; only unexpected faults are raised.
    """

    def __init__(
        self,
        base_url: str,
        default_params: ScryptParams | Mapping[str, Any] | None = None,
        ca_cert: str | Path | bytes | None = None,
        max_concurrency_fallback: int = 2,
        *,
        key_derivation: IKeyDerivation | None = None,
        timeout: httpx.Timeout = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the client.

        Args:
            base_url: Remote service root URL
            default_params: Parameters used when a call gives none; a partial
                mapping is merged over the built-in defaults
            ca_cert: CA certificate (path or PEM bytes) trusted for TLS
            max_concurrency_fallback: Local worker count; 0 disables local
                fallback, -1 sizes it from the CPU count
            key_derivation: scrypt primitive for local fallback
            timeout: Remote request timeouts
            transport: Custom httpx transport
            clock: Monotonic time source in seconds

        Raises:
            ValueError: default_params names an unknown parameter
        """
        if isinstance(default_params, ScryptParams):
            self._default_params = default_params
        else:
            self._default_params = DEFAULT_SCRYPT_PARAMS.merged(
                HashRequestDTO.normalize_overrides(default_params)
            )

        self._remote = RemoteScryptTransport(
            base_url, ca_cert=ca_cert, timeout=timeout, transport=transport
        )
        self._service = DerivationService(key_derivation or ScryptKeyDerivation())

        fallback_workers = resolve_worker_count(max_concurrency_fallback)
        self._dispatcher: WorkDispatcher | None = None
        if fallback_workers > 0:
            self._dispatcher = WorkDispatcher(
                min_workers=0,
                max_workers=fallback_workers,
                name="scrypt-fallback",
            )

        self._clock = clock
        self._lock = threading.Lock()
        self._state = AvailabilityState()
        self._closed = False

    @property
    def default_params(self) -> ScryptParams:
        return self._default_params

    @property
    def fallback_enabled(self) -> bool:
        return self._dispatcher is not None

    @property
    def state(self) -> AvailabilityState:
        """Consistent copy of the availability state."""
        with self._lock:
            return self._state

    async def hash(
        self,
        data: str,
        params: ScryptParams | Mapping[str, Any] | None = None,
    ) -> HashResponseDTO:
        """
        Hash data, remotely if possible.

        Args:
            data: Text to hash
            params: Full parameters, or a partial mapping (e.g.
                ``{"cost": 8192}`` or ``{"keyLen": 64}``) merged over the
                client defaults

        Returns:
            ``result`` holds the base64 record, or ``error`` says why not
        """
        try:
            if isinstance(params, ScryptParams):
                request = HashRequestDTO.from_overrides(data, params)
            else:
                request = HashRequestDTO.from_overrides(data, self._default_params, params)
        except ValueError as exc:
            return HashResponseDTO(error=_request_error_message(exc))

        async def local() -> HashResponseDTO:
            encoded = await self._run_locally(
                self._service.hash, request.data, request.to_params()
            )
            return HashResponseDTO(result=HashRecordCodec.encode_base64(encoded))

        return await self._route(lambda: self._remote.hash(request), local, HashResponseDTO)

    async def compare(self, data: str, hash: bytes | str) -> CompareResponseDTO:
        """
        Check data against a hash record.

        Args:
            data: Text to check
            hash: Record bytes, or the base64 text returned by hash()

        Returns:
            ``result`` is True/False, or ``error`` says why the check failed
        """
        if isinstance(hash, (bytes, bytearray)):
            hash = HashRecordCodec.encode_base64(bytes(hash))
        try:
            request = CompareRequestDTO.model_validate({"data": data, "hash": hash})
        except ValidationError as exc:
            return CompareResponseDTO(error=_request_error_message(exc))

        async def local() -> CompareResponseDTO:
            matches = await self._run_locally(self._service.compare, request.data, request.hash)
            return CompareResponseDTO(result=matches)

        return await self._route(lambda: self._remote.compare(request), local, CompareResponseDTO)

    async def aclose(self) -> None:
        """
        Release the fallback pool and HTTP connections; idempotent.

        Queued fallback jobs are cancelled. A derivation already running
        finishes first; the wait happens off the event loop.
        """
        if self._closed:
            return
        self._closed = True
        if self._dispatcher is not None:
            await asyncio.to_thread(self._dispatcher.shutdown, wait=True, cancel_futures=True)
        await self._remote.aclose()

    async def __aenter__(self) -> "AvailabilityClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def _route(
        self,
        remote: Callable[[], Awaitable[ResponseT]],
        local: Callable[[], Awaitable[ResponseT]],
        response_model: type[ResponseT],
    ) -> ResponseT:
        try:
            return await self._call_remote(remote)
        except (TransportError, ServiceOfflineError) as exc:
            if self._dispatcher is None:
                return response_model(error=exc.message)
            logger.debug("Using local fallback: %s", exc.message)

        try:
            return await local()
        except (DomainException, ApplicationError) as exc:
            return response_model(error=exc.message)

    async def _call_remote(self, remote: Callable[[], Awaitable[ResponseT]]) -> ResponseT:
        with self._lock:
            state = self._state
        now = self._clock()
        if state.is_offline(now):
            raise ServiceOfflineError(
                f"Remote service is offline for {state.offline_until - now:.1f}s"
            )

        try:
            response = await remote()
        except TransportError as exc:
            self._record_failure(exc)
            raise

        self._record_success()
        return response

    async def _run_locally(self, fn: Callable[..., T], *args: Any) -> T:
        if self._dispatcher is None:
            raise NoWorkersAvailableError("Local fallback is disabled")
        return await self._dispatcher.run(fn, *args)

    def _record_failure(self, exc: TransportError) -> None:
        with self._lock:
            errors = self._state.consecutive_errors + 1
            delay = backoff_delay(errors)
            self._state = AvailabilityState(errors, self._clock() + delay)
        logger.warning(
            "Remote scrypt service failed (%s); %d consecutive error(s), offline for %.0fs",
            exc.message,
            errors,
            delay,
        )

    def _record_success(self) -> None:
        with self._lock:
            recovered = self._state.consecutive_errors > 0
            self._state = AvailabilityState(0, self._state.offline_until)
        if recovered:
            logger.info("Remote scrypt service is back online")


def _request_error_message(exc: ValueError) -> str:
    if isinstance(exc, ValidationError):
        return describe_request_errors(exc.errors())
    return str(exc)
