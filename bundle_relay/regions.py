from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping

from .errors import ConfigurationError


@dataclass(frozen=True)
class TipAccount:
    address: str
    name: str


@dataclass(frozen=True)
class Region:
    code: str              # "default", "amsterdam", "frankfurt", "ny", "tokyo"
    block_engine_url: str  # base URL, bundles go to {url}/api/v1/bundles


REGIONS: list[Region] = [
    Region(code="default", block_engine_url="https://mainnet.block-engine.jito.wtf"),
    Region(code="amsterdam", block_engine_url="https://amsterdam.mainnet.block-engine.jito.wtf"),
    Region(code="frankfurt", block_engine_url="https://frankfurt.mainnet.block-engine.jito.wtf"),
    Region(code="ny", block_engine_url="https://ny.mainnet.block-engine.jito.wtf"),
    Region(code="tokyo", block_engine_url="https://tokyo.mainnet.block-engine.jito.wtf"),
]

DEFAULT_REGION = "default"

DEVNET_BLOCK_ENGINE_URL = "https://dallas.devnet.block-engine.jito.wtf"

_MAINNET_TIP_ADDRESSES = [
    "96gYZGLnJYVFmbjzopPSU6QiEV5fGqZNyN9nmNhvrZU5",
    "HFqU5x63VTqvQss8hp11i4wVV8bD44PvwucfZ2bU7gRe",
    "Cw8CFyM9FkoMi7K7Crf6HNQqf4uEMzpKw6QNghXLvLkY",
    "ADaUMid9yfUytqMBgopwjb2DTLSokTSzL1zt6iGPaS49",
    "DfXygSm4jCyNCybVYYK6DwvWqjKee8pbDmJGcLWNDXjh",
    "ADuUkR4vqLUMWXxW9gh6D6L8pMSawimctcNZ5pGwDcEt",
    "DttWaMuVvTiduZRnguLF7jNxTgiMBZ1hyAumKUiL2KRL",
    "3AVi9Tg9Uo68tJfuvoKvqKNWKkC5wPdSSdeBnizKZ6jT",
]

# Mainnet tip accounts per region. Read-only; pass a different mapping to
# RelayConfig(tip_accounts=...) to override.
TIP_ACCOUNTS: Mapping[str, tuple[TipAccount, ...]] = MappingProxyType({
    "default": tuple(
        TipAccount(address=address, name=f"Jito Tip {i}")
        for i, address in enumerate(_MAINNET_TIP_ADDRESSES, start=1)
    ),
    "amsterdam": (TipAccount(address=_MAINNET_TIP_ADDRESSES[0], name="Amsterdam Tip 1"),),
    "frankfurt": (TipAccount(address=_MAINNET_TIP_ADDRESSES[1], name="Frankfurt Tip 1"),),
    "ny": (TipAccount(address=_MAINNET_TIP_ADDRESSES[2], name="New York Tip 1"),),
    "tokyo": (TipAccount(address=_MAINNET_TIP_ADDRESSES[3], name="Tokyo Tip 1"),),
})


def region_for(code: str) -> Region:
    for region in REGIONS:
        if region.code == code:
            return region
    raise ConfigurationError(f"Unknown region code: {code}")
