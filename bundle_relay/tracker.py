import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Optional

import aiohttp

from .config import RelayConfig
from .errors import ConfirmationFailedError, ConfirmationTimeoutError, StatusQueryError
from .models import BundleStatus, BundleStatusResponse
from .rpc import post_rpc, rpc_payload

logger = logging.getLogger(__name__)

LANDED_CONFIRMATIONS = frozenset({"confirmed", "finalized"})

# getInflightBundleStatuses vocabulary
_INFLIGHT_STATUSES = {
    "Landed": BundleStatus.LANDED,
    "Failed": BundleStatus.FAILED,
    "Invalid": BundleStatus.INVALID,
    "Pending": BundleStatus.PENDING,
}


class BundleStatusTracker:
    def __init__(
        self,
        url: str,
        timeout_ms: int = 30_000,
        confirm_timeout_ms: int = 60_000,
        poll_interval_ms: int = 2_000,
        session: Optional[aiohttp.ClientSession] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.url = url
        self.timeout_ms = timeout_ms
        self.confirm_timeout_ms = confirm_timeout_ms
        self.poll_interval_ms = poll_interval_ms
        self._session = session
        self._sleep = sleep
        self._clock = clock

    @classmethod
    def from_config(cls, config: RelayConfig, **kwargs) -> "BundleStatusTracker":
        return cls(
            config.bundles_url,
            timeout_ms=config.timeout_ms,
            confirm_timeout_ms=config.confirm_timeout_ms,
            poll_interval_ms=config.poll_interval_ms,
            **kwargs,
        )

    async def get_status(self, bundle_id: str) -> BundleStatusResponse:
        """One ``getBundleStatuses`` round-trip. No retries.

        A bundle the relay has no record of yet is reported as pending.
        """
        payload = rpc_payload("getBundleStatuses", [[bundle_id]])
        try:
            if self._session is not None:
                response = await post_rpc(self._session, self.url, payload, self.timeout_ms)
            else:
                async with aiohttp.ClientSession() as session:
                    response = await post_rpc(session, self.url, payload, self.timeout_ms)
        except asyncio.TimeoutError as exc:
            raise StatusQueryError(
                "Bundle status request timed out",
                "TIMEOUT",
                {"bundle_id": bundle_id, "timeout_ms": self.timeout_ms},
            ) from exc
        except (aiohttp.ClientError, OSError) as exc:
            raise StatusQueryError(
                f"Failed to check bundle status: {exc}",
                "STATUS_CHECK_FAILED",
                {"bundle_id": bundle_id, "error": repr(exc)},
            ) from exc

        if not response.ok:
            raise StatusQueryError(
                f"Failed to get bundle status: {response.status}",
                f"HTTP_{response.status}",
                {"bundle_id": bundle_id, "body": response.text},
            )
        if response.error is not None:
            raise StatusQueryError(
                f"Bundle status error: {response.error.get('message', 'Unknown error')}",
                str(response.error.get("code", "STATUS_CHECK_FAILED")),
                {"bundle_id": bundle_id, "data": response.error.get("data")},
            )
        if response.body is None:
            raise StatusQueryError(
                "Invalid status response: body is not JSON",
                "INVALID_RESPONSE",
                {"bundle_id": bundle_id, "body": response.text[:500]},
            )

        result = response.result
        values = result.get("value") if isinstance(result, dict) else None
        if values is not None and not isinstance(values, list):
            raise _malformed(bundle_id, response.body)
        record = values[0] if values else None
        if not record:
            return BundleStatusResponse.pending()
        if not isinstance(record, dict):
            raise _malformed(bundle_id, response.body)
        return parse_status_record(record)

    async def confirm(
        self,
        bundle_id: str,
        timeout_ms: Optional[int] = None,
        poll_interval_ms: Optional[int] = None,
    ) -> BundleStatusResponse:
        """Poll until the bundle lands.

        Raises ``ConfirmationFailedError`` as soon as the relay reports a
        failed or invalid bundle, and ``ConfirmationTimeoutError`` if it is
        still pending after ``timeout_ms``. Cancel the awaiting task to stop
        early.
        """
        if timeout_ms is None:
            timeout_ms = self.confirm_timeout_ms
        if poll_interval_ms is None:
            poll_interval_ms = self.poll_interval_ms
        if timeout_ms < 0:
            raise ValueError("timeout_ms must be non-negative")
        if poll_interval_ms <= 0:
            raise ValueError("poll_interval_ms must be positive")
        deadline = self._clock() + timeout_ms / 1000
        polls = 0

        while self._clock() < deadline:
            status = await self.get_status(bundle_id)
            polls += 1

            if status.status is BundleStatus.LANDED:
                logger.info("Bundle %s landed at slot %s", bundle_id, status.landed_slot)
                return status
            if status.status.is_terminal:
                logger.warning("Bundle %s %s: %s", bundle_id, status.status.value, status.error)
                raise ConfirmationFailedError(
                    f"Bundle {status.status.value}",
                    status.status.value.upper(),
                    {"bundle_id": bundle_id, "error": status.error},
                )

            remaining = deadline - self._clock()
            logger.debug("Bundle %s pending after %d poll(s)", bundle_id, polls)
            if remaining <= 0:
                break
            await self._sleep(min(poll_interval_ms / 1000, remaining))

        raise ConfirmationTimeoutError(
            "Bundle confirmation timeout",
            "CONFIRMATION_TIMEOUT",
            {"bundle_id": bundle_id, "timeout_ms": timeout_ms, "polls": polls},
        )


def _malformed(bundle_id: str, body: Any) -> StatusQueryError:
    return StatusQueryError(
        "Invalid status response: unexpected 'value' shape",
        "INVALID_RESPONSE",
        {"bundle_id": bundle_id, "body": body},
    )


def parse_status_record(record: dict[str, Any]) -> BundleStatusResponse:
    """Map one relay status record onto a BundleStatusResponse."""
    err = record.get("err")
    if "status" in record and "confirmation_status" not in record:
        status = _INFLIGHT_STATUSES.get(record["status"], BundleStatus.PENDING)
    elif record.get("confirmation_status") in LANDED_CONFIRMATIONS:
        status = BundleStatus.LANDED
    elif _is_error(err):
        status = BundleStatus.FAILED
    else:
        status = BundleStatus.PENDING

    if not status.is_terminal:
        return BundleStatusResponse.pending()
    return BundleStatusResponse(
        status=status,
        landed_slot=record.get("slot", record.get("landed_slot")) if status is BundleStatus.LANDED else None,
        transactions=list(record.get("transactions") or []),
        error=err if _is_error(err) else None,
    )


def _is_error(err: Any) -> bool:
    # The relay reports success as {"Ok": null}.
    if not err:
        return False
    if isinstance(err, dict) and set(err) == {"Ok"}:
        return False
    return True
