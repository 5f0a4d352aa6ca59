import asyncio
import logging
import time
from typing import Optional
from urllib.parse import urlparse

logger = logging.getLogger(__name__)


async def _tcp_ping_once(host: str, port: int, timeout: float) -> Optional[float]:
    start = time.perf_counter()
    try:
        _, writer = await asyncio.wait_for(asyncio.open_connection(host, port), timeout)
    except (OSError, asyncio.TimeoutError) as exc:
        logger.debug("TCP ping %s:%d failed: %s", host, port, exc)
        return None
    elapsed = (time.perf_counter() - start) * 1000.0
    writer.close()
    return elapsed


async def tcp_ping(url: str, count: int = 3, timeout: float = 0.75) -> dict:
    """TCP connect latency to a block engine, in milliseconds."""
    parsed = urlparse(url)
    host = parsed.hostname or url
    port = parsed.port or (443 if parsed.scheme == "https" else 80)

    samples = [await _tcp_ping_once(host, port, timeout) for _ in range(count)]

    valid_samples = [x for x in samples if x is not None]
    avg = sum(valid_samples) / len(valid_samples) if valid_samples else None

    return {"avg_ms": avg, "samples_ms": samples}
