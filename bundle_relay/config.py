import os
from dataclasses import dataclass, field
from typing import Mapping, Optional

from .backoff import BackoffPolicy
from .errors import ConfigurationError
from .regions import DEFAULT_REGION, TIP_ACCOUNTS, TipAccount, region_for

DEFAULT_RPC_URL = "https://api.mainnet-beta.solana.com"
BUNDLES_PATH = "/api/v1/bundles"


@dataclass(frozen=True)
class RelayConfig:
    """Engine configuration. Set once, never mutated."""

    block_engine_url: Optional[str] = None  # overrides the region's URL
    region: str = DEFAULT_REGION
    max_retries: int = 3
    timeout_ms: int = 30_000
    confirm_timeout_ms: int = 60_000
    poll_interval_ms: int = 2_000
    rpc_url: str = DEFAULT_RPC_URL
    tip_accounts: Mapping[str, tuple[TipAccount, ...]] = field(default_factory=lambda: TIP_ACCOUNTS, repr=False, compare=False)
    backoff: BackoffPolicy = field(default_factory=BackoffPolicy)

    def __post_init__(self):
        if self.block_engine_url is None:
            region_for(self.region)
        if not self.tip_accounts.get(self.region):
            raise ConfigurationError(f"No tip accounts registered for region '{self.region}'")
        if self.max_retries < 0:
            raise ConfigurationError("max_retries must be >= 0")
        for name in ("timeout_ms", "confirm_timeout_ms", "poll_interval_ms"):
            if getattr(self, name) <= 0:
                raise ConfigurationError(f"{name} must be positive")

    @property
    def bundles_url(self) -> str:
        base = self.block_engine_url or region_for(self.region).block_engine_url
        return base.rstrip("/") + BUNDLES_PATH

    @classmethod
    def from_env(cls, **overrides) -> "RelayConfig":
        """Build a config from RELAY_* environment variables; kwargs win."""
        values = {
            "block_engine_url": os.environ.get("RELAY_BLOCK_ENGINE_URL") or None,
            "region": os.environ.get("RELAY_REGION", DEFAULT_REGION),
            "max_retries": _env_int("RELAY_MAX_RETRIES", 3),
            "timeout_ms": _env_int("RELAY_TIMEOUT_MS", 30_000),
            "confirm_timeout_ms": _env_int("RELAY_CONFIRM_TIMEOUT_MS", 60_000),
            "poll_interval_ms": _env_int("RELAY_POLL_INTERVAL_MS", 2_000),
            "rpc_url": os.environ.get("RELAY_RPC_URL", DEFAULT_RPC_URL),
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from None
