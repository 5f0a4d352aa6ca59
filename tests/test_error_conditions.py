import asyncio
import gc

import aiohttp
import pytest
from aioresponses import aioresponses

from bundle_relay.errors import (
    RelayError,
    SubmissionError,
    SubmissionExhaustedError,
    SubmissionRelayError,
    SubmissionTransportError,
)
from bundle_relay.models import Bundle
from bundle_relay.submitter import BundleSubmitter
from conftest import RELAY_URL, rpc_error


class TestErrorConditions:
    """Test various error conditions and edge cases."""

    pytestmark = pytest.mark.error

    @pytest.fixture
    def submitter(self, fake_clock):
        return BundleSubmitter(RELAY_URL, max_retries=1, sleep=fake_clock.sleep)

    @pytest.mark.asyncio
    async def test_invalid_json_response(self, submitter, bundle):
        """A 200 with a non-JSON body is a terminal relay error."""
        with aioresponses() as m:
            m.post(RELAY_URL, body="invalid json", status=200)

            with pytest.raises(SubmissionRelayError) as exc_info:
                await submitter.submit(bundle)

        assert exc_info.value.code == "INVALID_RESPONSE"

    @pytest.mark.asyncio
    async def test_undecodable_response_body(self, submitter, bundle):
        with aioresponses() as m:
            m.post(RELAY_URL, body=b"\xff\xfe\xfa", content_type="application/json")

            with pytest.raises(SubmissionRelayError) as exc_info:
                await submitter.submit(bundle)

        assert exc_info.value.code == "INVALID_RESPONSE"
        assert exc_info.value.retriable is False

    @pytest.mark.asyncio
    async def test_missing_result_field(self, submitter, bundle):
        with aioresponses() as m:
            m.post(RELAY_URL, payload={"jsonrpc": "2.0", "id": 1})

            with pytest.raises(SubmissionRelayError, match="missing 'result' field"):
                await submitter.submit(bundle)

    @pytest.mark.asyncio
    async def test_rpc_error_with_details(self, submitter, bundle):
        error_response = rpc_error(
            -32002,
            "Transaction simulation failed",
            data={"err": "InsufficientFundsForRent", "logs": ["Program log: Insufficient funds for rent"]},
        )
        with aioresponses() as m:
            m.post(RELAY_URL, payload=error_response)

            with pytest.raises(SubmissionRelayError, match="Transaction simulation failed") as exc_info:
                await submitter.submit(bundle)

        assert exc_info.value.details["data"]["err"] == "InsufficientFundsForRent"

    @pytest.mark.asyncio
    async def test_connection_refused_against_closed_port(self, bundle, fake_clock):
        """A real refused connection goes through the retry path and is exhausted."""
        submitter = BundleSubmitter("http://127.0.0.1:9/api/v1/bundles", max_retries=1, timeout_ms=2_000,
                                    sleep=fake_clock.sleep)
        with pytest.raises(SubmissionExhaustedError) as exc_info:
            await submitter.submit(bundle)

        assert exc_info.value.attempts == 2
        assert isinstance(exc_info.value.cause, SubmissionTransportError)
        assert fake_clock.sleeps == [1.0]

    @pytest.mark.asyncio
    async def test_error_codes_allow_branching(self, submitter, bundle):
        """Callers can tell a timeout from a rejection by code alone."""
        codes = []
        for mock in (
            {"exception": asyncio.TimeoutError(), "repeat": True},
            {"payload": rpc_error(-32602, "rejected"), "repeat": True},
        ):
            with aioresponses() as m:
                m.post(RELAY_URL, **mock)
                try:
                    await submitter.submit(bundle)
                except RelayError as exc:
                    codes.append(exc.code)

        assert codes == ["TIMEOUT", "-32602"]

    @pytest.mark.asyncio
    async def test_large_transaction_data(self, submitter):
        bundle = Bundle.of(b"x" * (1024 * 1024))
        with aioresponses() as m:
            m.post(RELAY_URL, payload={"jsonrpc": "2.0", "id": 1, "result": "large_bundle"})

            result = await submitter.submit(bundle)

        assert result.bundle_id == "large_bundle"

    @pytest.mark.asyncio
    async def test_special_characters_in_response(self, submitter, bundle):
        with aioresponses() as m:
            m.post(RELAY_URL, payload={"jsonrpc": "2.0", "id": 1, "result": "id_with_special_chars_🚀"})

            result = await submitter.submit(bundle)

        assert result.bundle_id == "id_with_special_chars_🚀"

    @pytest.mark.asyncio
    async def test_concurrent_submissions_do_not_interfere(self, fake_clock):
        submitter = BundleSubmitter(RELAY_URL, max_retries=2, sleep=fake_clock.sleep)
        bundles = [Bundle.of(f"tx-{i}".encode()) for i in range(3)]

        with aioresponses() as m:
            m.post(RELAY_URL, payload=rpc_error(429, "Rate limited"))
            for i in range(3):
                m.post(RELAY_URL, payload={"jsonrpc": "2.0", "id": 1, "result": f"id-{i}"})

            results = await asyncio.gather(*(submitter.submit(b) for b in bundles))

        assert all(r.accepted for r in results)
        assert sorted(r.bundle_id for r in results) == ["id-0", "id-1", "id-2"]
        assert sum(r.attempts for r in results) == 4

    @pytest.mark.asyncio
    async def test_memory_cleanup_after_errors(self, submitter, bundle):
        """Failed submissions don't leak sessions or responses."""
        gc.collect()
        initial_objects = len(gc.get_objects())

        for _ in range(10):
            with aioresponses() as m:
                m.post(RELAY_URL, exception=aiohttp.ServerDisconnectedError(), repeat=True)
                with pytest.raises(SubmissionError):
                    await submitter.submit(bundle)

        gc.collect()
        final_objects = len(gc.get_objects())

        assert final_objects - initial_objects < 1000

    def test_error_string_includes_code(self):
        err = SubmissionRelayError("Relay API error: nope", "-32602")
        assert str(err) == "[-32602] Relay API error: nope"
        assert err.details == {}
        assert isinstance(err, RelayError)
