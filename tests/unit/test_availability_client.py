"""Unit tests for AvailabilityClient.

The remote service is an httpx.MockTransport handler and time is a fake
clock, so the backoff schedule is checked exactly without sleeping.
Local fallback runs on FakeKeyDerivation.
"""

import asyncio
import json
import threading

import httpx
import pytest
import pytest_asyncio

from scrypt_offload.application.services.derivation_service import DerivationService
from scrypt_offload.domain.entities.scrypt_params import DEFAULT_SCRYPT_PARAMS, ScryptParams
from scrypt_offload.domain.services.hash_record_codec import HashRecordCodec
from scrypt_offload.infrastructure.client.availability_client import (
    AvailabilityClient,
    AvailabilityState,
    backoff_delay,
)
from tests.fakes.key_derivation_fake import FakeKeyDerivation

pytestmark = pytest.mark.unit

BASE_URL = "http://scrypt.test"
PARAMS = ScryptParams(cost=4096, block_size=8, parallelization=1, salt_len=16, key_len=32)


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeRemote:
    """
    Scripted remote service.

    ``mode`` selects the behavior of the next requests:
    - "ok": answer like a real server, backed by FakeKeyDerivation
    - "down": refuse the connection
    - "500": answer with an HTTP error status
    - "garbage": answer 200 with a body that is not JSON
    """

    def __init__(self):
        self.mode = "ok"
        self.requests: list[httpx.Request] = []
        self.service = DerivationService(FakeKeyDerivation())

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.mode == "down":
            raise httpx.ConnectError("Connection refused", request=request)
        if self.mode == "500":
            return httpx.Response(500, json={"error": "Internal server error"})
        if self.mode == "garbage":
            return httpx.Response(200, content=b"<html>")

        body = json.loads(request.content)
        if request.url.path == "/hash":
            if body["cost"] % 2:
                return httpx.Response(200, json={"error": "Invalid cost (not a power of 2)"})
            params = ScryptParams(
                cost=body["cost"],
                block_size=body["blockSize"],
                parallelization=body["parallelization"],
                salt_len=body["saltLen"],
                key_len=body["keyLen"],
            )
            encoded = self.service.hash(body["data"], params)
            return httpx.Response(200, json={"result": HashRecordCodec.encode_base64(encoded)})
        return httpx.Response(
            200, json={"result": self.service.compare(body["data"], body["hash"])}
        )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def remote() -> FakeRemote:
    return FakeRemote()


@pytest.fixture
def local_kdf() -> FakeKeyDerivation:
    return FakeKeyDerivation()


@pytest_asyncio.fixture
async def client(remote, clock, local_kdf):
    """Client with local fallback, talking to the scripted remote."""
    async with AvailabilityClient(
        BASE_URL,
        default_params=PARAMS,
        max_concurrency_fallback=2,
        key_derivation=local_kdf,
        transport=httpx.MockTransport(remote),
        clock=clock,
    ) as instance:
        yield instance


class TestRemoteSuccess:
    """Test cases for a healthy remote."""

    @pytest.mark.asyncio
    async def test_hash_and_compare_use_remote(self, client, remote, local_kdf):
        # Act
        hashed = await client.hash("password123")
        matches = await client.compare("password123", hashed.result)

        # Assert
        assert hashed.ok
        assert matches.result is True
        assert [r.url.path for r in remote.requests] == ["/hash", "/compare"]
        assert local_kdf.calls == []

    @pytest.mark.asyncio
    async def test_request_uses_camel_case_fields(self, client, remote):
        await client.hash("data", {"cost": 8192})

        body = json.loads(remote.requests[0].content)
        assert body == {
            "data": "data",
            "cost": 8192,
            "blockSize": 8,
            "parallelization": 1,
            "saltLen": 16,
            "keyLen": 32,
        }

    @pytest.mark.asyncio
    async def test_compare_accepts_record_bytes(self, client, remote):
        hashed = await client.hash("data")
        raw = HashRecordCodec.decode_base64(hashed.result)

        matches = await client.compare("data", raw)

        assert matches.result is True
        assert json.loads(remote.requests[1].content)["hash"] == hashed.result

    @pytest.mark.asyncio
    async def test_remote_error_body_is_returned_without_fallback(
        self, client, remote, local_kdf
    ):
        """Test a 200 with an error is the remote's answer, not an outage."""
        result = await client.hash("data", {"cost": 4097})

        assert result.error == "Invalid cost (not a power of 2)"
        assert result.result is None
        assert local_kdf.calls == []
        assert client.state.consecutive_errors == 0


class TestFallback:
    """Test cases for remote failures."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("mode", ["down", "500", "garbage"])
    async def test_transport_failure_falls_back_locally(self, client, remote, local_kdf, mode):
        # Arrange
        remote.mode = mode

        # Act
        result = await client.hash("password123")

        # Assert
        assert result.ok
        assert len(local_kdf.calls) == 1
        assert client.state.consecutive_errors == 1

    @pytest.mark.asyncio
    async def test_local_compare_verifies_remote_hash(self, client, remote):
        """Test records produced remotely verify locally (same algorithm)."""
        hashed = await client.hash("secret")
        remote.mode = "down"

        matches = await client.compare("secret", hashed.result)
        mismatch = await client.compare("other", hashed.result)

        assert matches.result is True
        assert mismatch.result is False

    @pytest.mark.asyncio
    async def test_local_validation_error_is_returned(self, client, remote):
        remote.mode = "down"

        result = await client.hash("")

        assert result.result is None
        assert result.error == "Missing, invalid or too much data"

    @pytest.mark.asyncio
    async def test_no_fallback_returns_error(self, remote, clock):
        """Test a client without local workers reports the transport failure."""
        remote.mode = "down"

        async with AvailabilityClient(
            BASE_URL,
            max_concurrency_fallback=0,
            key_derivation=FakeKeyDerivation(),
            transport=httpx.MockTransport(remote),
            clock=clock,
        ) as client:
            assert client.fallback_enabled is False
            first = await client.hash("data")
            second = await client.compare("data", "AAAA")

        assert first.error
        assert second.error == "Remote service is offline for 5.0s"


class TestBackoff:
    """Test cases for the offline window."""

    @pytest.mark.asyncio
    async def test_remote_skipped_while_offline(self, client, remote, clock):
        # Arrange
        remote.mode = "down"
        await client.hash("data")
        attempts = len(remote.requests)

        # Act
        clock.advance(4.9)
        await client.hash("data")

        # Assert
        assert len(remote.requests) == attempts
        assert client.state.consecutive_errors == 1

    @pytest.mark.asyncio
    async def test_offline_window_is_inclusive(self, client, remote, clock):
        remote.mode = "down"
        await client.hash("data")

        clock.advance(5.0)
        await client.hash("data")

        assert len(remote.requests) == 1

    @pytest.mark.asyncio
    async def test_retry_after_window_extends_backoff(self, client, remote, clock):
        """Test each failed retry adds 5 seconds to the window."""
        remote.mode = "down"
        await client.hash("data")

        clock.advance(5.1)
        await client.hash("data")

        state = client.state
        assert len(remote.requests) == 2
        assert state.consecutive_errors == 2
        assert state.offline_until == pytest.approx(clock.now + 10.0)

    @pytest.mark.asyncio
    async def test_success_after_window_resets(self, client, remote, clock):
        remote.mode = "down"
        await client.hash("data")
        clock.advance(5.1)

        remote.mode = "ok"
        result = await client.hash("data")

        assert result.ok
        assert client.state.consecutive_errors == 0
        assert client.state.is_offline(clock.now) is False

    def test_backoff_schedule_is_capped(self):
        assert backoff_delay(1) == 5.0
        assert backoff_delay(2) == 10.0
        assert backoff_delay(60) == 300.0
        assert backoff_delay(1000) == 300.0

    def test_fresh_state_is_online(self):
        assert AvailabilityState().is_offline(0.0) is False


class TestConcurrency:
    """Test cases for many calls at once."""

    @pytest.mark.asyncio
    async def test_fallback_queues_beyond_pool_size(self, remote, clock):
        """Test more concurrent calls than local workers all complete."""
        # Arrange
        remote.mode = "down"
        active = 0
        peak = 0
        lock = threading.Lock()

        class SlowKeyDerivation(FakeKeyDerivation):
            def derive(self, *args, **kwargs):
                nonlocal active, peak
                with lock:
                    active += 1
                    peak = max(peak, active)
                try:
                    threading.Event().wait(0.02)
                    return super().derive(*args, **kwargs)
                finally:
                    with lock:
                        active -= 1

        async with AvailabilityClient(
            BASE_URL,
            default_params=PARAMS,
            max_concurrency_fallback=2,
            key_derivation=SlowKeyDerivation(),
            transport=httpx.MockTransport(remote),
            clock=clock,
        ) as client:
            # Act
            results = await asyncio.gather(*(client.hash(f"data-{i}") for i in range(6)))

        # Assert
        assert all(result.ok for result in results)
        assert peak <= 2

    @pytest.mark.asyncio
    async def test_concurrent_failures_count_once_each(self, client, remote):
        remote.mode = "down"

        await asyncio.gather(*(client.hash("data") for _ in range(3)))

        # Only calls that reached the remote are counted
        assert client.state.consecutive_errors == len(remote.requests)


class TestConfiguration:
    """Test cases for client construction."""

    @pytest.mark.asyncio
    async def test_partial_default_params_are_merged(self, remote):
        async with AvailabilityClient(
            BASE_URL,
            default_params={"cost": 8192},
            transport=httpx.MockTransport(remote),
        ) as client:
            assert client.default_params == ScryptParams(
                cost=8192,
                block_size=DEFAULT_SCRYPT_PARAMS.block_size,
                parallelization=DEFAULT_SCRYPT_PARAMS.parallelization,
                salt_len=DEFAULT_SCRYPT_PARAMS.salt_len,
                key_len=DEFAULT_SCRYPT_PARAMS.key_len,
            )

    @pytest.mark.asyncio
    async def test_aclose_is_idempotent(self, remote):
        client = AvailabilityClient(BASE_URL, transport=httpx.MockTransport(remote))

        await client.aclose()
        await client.aclose()


class TestRequestValidation:
    """Test cases for requests checked before anything is sent."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "overrides, field, value",
        [
            ({"blockSize": 4}, "blockSize", 4),
            ({"block_size": 4}, "blockSize", 4),
            ({"keylen": 40}, "keyLen", 40),
            ({"saltLen": 24}, "saltLen", 24),
        ],
    )
    async def test_wire_names_accepted_as_overrides(self, client, remote, overrides, field, value):
        result = await client.hash("data", overrides)

        assert result.ok
        assert json.loads(remote.requests[0].content)[field] == value

    @pytest.mark.asyncio
    async def test_unknown_parameter_is_an_error(self, client, remote, local_kdf):
        """Test an unknown key is reported instead of raised."""
        result = await client.hash("data", {"rounds": 4})

        assert result.result is None
        assert result.error == "Unknown parameter: rounds"
        assert remote.requests == []
        assert local_kdf.calls == []

    @pytest.mark.asyncio
    async def test_float_cost_is_rejected_locally(self, client, remote, local_kdf):
        """Test a request the server would answer with 400 leaves the backoff alone."""
        # Act
        result = await client.hash("data", {"cost": 16384.0})

        # Assert
        assert result.error == "Invalid or missing params"
        assert remote.requests == []
        assert local_kdf.calls == []
        assert client.state == AvailabilityState()

    @pytest.mark.asyncio
    async def test_non_string_data_is_rejected_locally(self, client, remote):
        hashed = await client.hash(12345)
        compared = await client.compare(None, "AAAA")

        assert hashed.error == "Invalid or missing data"
        assert compared.error == "Invalid or missing data"
        assert remote.requests == []
        assert client.state.consecutive_errors == 0

    @pytest.mark.asyncio
    async def test_non_string_data_with_full_params(self, client, remote):
        result = await client.hash(b"bytes", PARAMS)

        assert result.error == "Invalid or missing data"
        assert remote.requests == []

    @pytest.mark.asyncio
    async def test_non_string_hash_is_rejected_locally(self, client, remote):
        result = await client.compare("data", 42)

        assert result.error == "Invalid or missing data"
        assert remote.requests == []

    def test_unknown_default_parameter_raises(self, remote):
        with pytest.raises(ValueError, match="Unknown parameter: rounds"):
            AvailabilityClient(
                BASE_URL,
                default_params={"rounds": 4},
                transport=httpx.MockTransport(remote),
            )


class TestClose:
    """Test cases for releasing the client."""

    @pytest.mark.asyncio
    async def test_aclose_waits_off_the_event_loop(self, remote, clock):
        """Test the loop keeps running while aclose waits for a local derivation."""
        # Arrange
        remote.mode = "down"
        started = threading.Event()
        release = threading.Event()

        class BlockingKeyDerivation(FakeKeyDerivation):
            def derive(self, *args, **kwargs):
                started.set()
                release.wait(10)
                return super().derive(*args, **kwargs)

        client = AvailabilityClient(
            BASE_URL,
            default_params=PARAMS,
            max_concurrency_fallback=1,
            key_derivation=BlockingKeyDerivation(),
            transport=httpx.MockTransport(remote),
            clock=clock,
        )
        hash_task = asyncio.create_task(client.hash("data"))
        assert await asyncio.to_thread(started.wait, 5)

        # Unblocks the worker even if aclose stalls the loop
        safety = threading.Timer(2.0, release.set)
        safety.start()
        try:
            # Act
            close_task = asyncio.create_task(client.aclose())
            await asyncio.sleep(0.05)

            # Assert
            assert not release.is_set()
            assert not close_task.done()

            release.set()
            await close_task
            result = await hash_task
        finally:
            safety.cancel()
            release.set()

        assert result.ok
