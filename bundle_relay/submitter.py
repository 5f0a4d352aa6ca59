import asyncio
import contextlib
import errno
import logging
from typing import Awaitable, Callable, Optional

import aiohttp

from .backoff import BackoffPolicy
from .classifier import is_network_error, is_retriable_error, is_retriable_status
from .config import RelayConfig
from .errors import (
    SubmissionError,
    SubmissionExhaustedError,
    SubmissionRelayError,
    SubmissionTransportError,
)
from .models import Bundle, SubmissionResult
from .rpc import RpcResponse, post_rpc, rpc_payload

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


class BundleSubmitter:
    """Submits bundles with bounded, sequential retries.

    At most ``max_retries + 1`` requests go out per ``submit`` call and every
    one of them carries the same serialized payload. The call either returns
    an accepted ``SubmissionResult`` or raises a single ``SubmissionError``.
    """

    def __init__(
        self,
        url: str,
        max_retries: int = 3,
        timeout_ms: int = 30_000,
        backoff: Optional[BackoffPolicy] = None,
        session: Optional[aiohttp.ClientSession] = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self.url = url
        self.max_retries = max_retries
        self.timeout_ms = timeout_ms
        self.backoff = backoff or BackoffPolicy()
        self._session = session
        self._sleep = sleep

    @classmethod
    def from_config(cls, config: RelayConfig, **kwargs) -> "BundleSubmitter":
        return cls(
            config.bundles_url,
            max_retries=config.max_retries,
            timeout_ms=config.timeout_ms,
            backoff=config.backoff,
            **kwargs,
        )

    async def submit(self, bundle: Bundle) -> SubmissionResult:
        payload = rpc_payload("sendBundle", [bundle.encoded()])
        total = self.max_retries + 1

        async with self._open_session() as session:
            for attempt in range(total):
                logger.info(
                    "Submitting bundle of %d transaction(s) (attempt %d/%d)",
                    len(bundle), attempt + 1, total,
                )
                try:
                    bundle_id = await self._send_once(session, payload)
                except SubmissionError as exc:
                    if not exc.retriable:
                        logger.warning("Bundle rejected: %s", exc)
                        raise
                    if attempt >= self.max_retries:
                        logger.warning("Giving up after %d attempts: %s", total, exc)
                        raise SubmissionExhaustedError(total, exc) from exc
                    delay_ms = self.backoff.delay(attempt)
                    logger.warning("%s. Retrying in %.0f ms", exc, delay_ms)
                    await self._sleep(delay_ms / 1000)
                    continue

                logger.info("Bundle accepted by relay: %s", bundle_id)
                return SubmissionResult(bundle_id=bundle_id, accepted=True, attempts=attempt + 1)

        raise RuntimeError("Unexpected exit from submission loop")

    def _open_session(self):
        if self._session is not None:
            return contextlib.nullcontext(self._session)
        return aiohttp.ClientSession()

    async def _send_once(self, session: aiohttp.ClientSession, payload: dict) -> str:
        try:
            response = await post_rpc(session, self.url, payload, self.timeout_ms)
        except asyncio.TimeoutError as exc:
            raise SubmissionTransportError(
                "Request timed out",
                "TIMEOUT",
                {"timeout_ms": self.timeout_ms},
                retriable=True,
            ) from exc
        except (aiohttp.ClientError, OSError) as exc:
            network = is_network_error(exc)
            raise SubmissionTransportError(
                f"Network error: {exc}",
                _transport_code(exc, network),
                {"error": repr(exc)},
                retriable=network,
            ) from exc
        return _interpret(response)


def _transport_code(exc: BaseException, network: bool) -> str:
    if not network:
        return "UNKNOWN_ERROR"
    code = getattr(exc, "errno", None)
    return errno.errorcode.get(code, "NETWORK_ERROR") if isinstance(code, int) else "NETWORK_ERROR"


def _interpret(response: RpcResponse) -> str:
    error = response.error
    if not response.ok:
        raise SubmissionRelayError(
            f"Relay HTTP error: {response.status}",
            f"HTTP_{response.status}",
            {"body": response.text, "status": response.status},
            retriable=is_retriable_status(response.status) or (error is not None and is_retriable_error(error)),
        )
    if error is not None:
        raise SubmissionRelayError(
            f"Relay API error: {error.get('message', 'Unknown error')}",
            str(error.get("code", "UNKNOWN_ERROR")),
            {"data": error.get("data")},
            retriable=is_retriable_error(error),
        )
    if response.body is None:
        raise SubmissionRelayError(
            "Invalid response format: body is not JSON",
            "INVALID_RESPONSE",
            {"body": response.text[:500]},
        )
    result = response.result
    if not isinstance(result, str) or not result:
        raise SubmissionRelayError(
            "Invalid response format: missing 'result' field",
            "INVALID_RESPONSE",
            {"body": response.body},
        )
    return result
