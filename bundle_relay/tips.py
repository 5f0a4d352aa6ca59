import logging
import math
import random
from enum import IntEnum
from typing import Mapping, Optional, Sequence, Union

from solders.instruction import Instruction
from solders.pubkey import Pubkey
from solders.system_program import TransferParams, transfer

from .errors import ConfigurationError
from .regions import DEFAULT_REGION, TIP_ACCOUNTS, TipAccount

logger = logging.getLogger(__name__)


class TipLevel(IntEnum):
    """Canonical tip sizes in lamports."""

    NONE = 0
    LOW = 1_000            # 0.000001 SOL
    MEDIUM = 10_000        # 0.00001 SOL
    HIGH = 100_000         # 0.0001 SOL
    VERY_HIGH = 1_000_000  # 0.001 SOL
    TURBO = 10_000_000     # 0.01 SOL


def dynamic_tip(level: Union[TipLevel, int], multiplier: float = 1) -> int:
    """Scale a tip level, floored to whole lamports."""
    if multiplier < 0:
        raise ValueError("Tip multiplier must be non-negative")
    if level < 0:
        raise ValueError("Tip level must be non-negative")
    return int(math.floor(int(level) * multiplier))


class TipSelector:
    """Picks tip accounts from a region-keyed pool and builds tip transfers."""

    def __init__(
        self,
        pool: Mapping[str, Sequence[TipAccount]] = TIP_ACCOUNTS,
        region: str = DEFAULT_REGION,
        rng: Optional[random.Random] = None,
    ):
        self.pool = pool
        self.region = region
        self._rng = rng or random.Random()

    def select_tip_account(self, region: Optional[str] = None) -> TipAccount:
        region = region or self.region
        accounts = self.pool.get(region)
        if not accounts:
            raise ConfigurationError(f"No tip accounts registered for region '{region}'")
        return self._rng.choice(accounts)

    def build_tip_instruction(
        self,
        payer: Union[Pubkey, str],
        amount: int = TipLevel.MEDIUM,
        region: Optional[str] = None,
    ) -> Instruction:
        """System transfer of ``amount`` lamports from ``payer`` to a random tip account."""
        if amount < 0:
            raise ValueError("Tip amount must be non-negative")
        if isinstance(payer, str):
            payer = Pubkey.from_string(payer)
        account = self.select_tip_account(region)
        logger.debug("Tipping %s lamports to %s (%s)", int(amount), account.address, account.name)
        return transfer(
            TransferParams(
                from_pubkey=payer,
                to_pubkey=Pubkey.from_string(account.address),
                lamports=int(amount),
            )
        )

    dynamic_tip = staticmethod(dynamic_tip)
