import asyncio

from .latency import tcp_ping
from .regions import DEFAULT_REGION, REGIONS, Region, region_for


async def probe_regions() -> list[tuple[Region, dict]]:
    metrics_list = await asyncio.gather(*(tcp_ping(region.block_engine_url) for region in REGIONS))
    return list(zip(REGIONS, metrics_list))


def _pick_fastest(results: list[tuple[Region, dict]]) -> Region:
    valid_results = [(r, m["avg_ms"]) for r, m in results if m["avg_ms"] is not None]

    if not valid_results:
        # nothing reachable: fall back to the main block engine
        return region_for(DEFAULT_REGION)

    valid_results.sort(key=lambda x: x[1])
    return valid_results[0][0]


async def pick_fastest_region() -> Region:
    results = await probe_regions()
    return _pick_fastest(results)
