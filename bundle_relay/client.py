import asyncio
import logging
import time
from typing import Any, Optional, Union

from solders.instruction import Instruction
from solders.pubkey import Pubkey

from .config import RelayConfig
from .models import Bundle, BundleStatusResponse, SubmissionResult
from .router import _pick_fastest, probe_regions
from .simulation import BundleSimulator
from .submitter import BundleSubmitter
from .tips import TipLevel, TipSelector, dynamic_tip
from .tracker import BundleStatusTracker

logger = logging.getLogger(__name__)


class BundleRelayClient:
    """Submit bundles to a block engine and follow them until they land.

    Every call is independent: the client keeps no per-bundle state, so
    several bundles can be submitted or confirmed concurrently.
    """

    def __init__(
        self,
        config: Optional[RelayConfig] = None,
        *,
        sleep=asyncio.sleep,
        clock=time.monotonic,
        tip_selector: Optional[TipSelector] = None,
        simulator: Optional[BundleSimulator] = None,
    ):
        self.config = config or RelayConfig()
        self.submitter = BundleSubmitter.from_config(self.config, sleep=sleep)
        self.tracker = BundleStatusTracker.from_config(self.config, sleep=sleep, clock=clock)
        self.tips = tip_selector or TipSelector(self.config.tip_accounts, region=self.config.region)
        self.simulator = simulator or BundleSimulator(self.config.rpc_url)

    def get_random_tip_account(self) -> Pubkey:
        return Pubkey.from_string(self.tips.select_tip_account().address)

    def create_tip_instruction(self, payer: Union[Pubkey, str], tip_amount: int = TipLevel.MEDIUM) -> Instruction:
        return self.tips.build_tip_instruction(payer, tip_amount)

    def calculate_dynamic_tip(self, priority: Union[TipLevel, int], multiplier: float = 1) -> int:
        return dynamic_tip(priority, multiplier)

    async def simulate_bundle(self, bundle: Bundle) -> None:
        await self.simulator.simulate(bundle)

    async def submit_bundle(self, bundle: Bundle) -> SubmissionResult:
        return await self.submitter.submit(bundle)

    async def get_bundle_status(self, bundle_id: str) -> BundleStatusResponse:
        return await self.tracker.get_status(bundle_id)

    async def confirm_bundle(
        self,
        bundle_id: str,
        timeout_ms: Optional[int] = None,
        poll_interval_ms: Optional[int] = None,
    ) -> BundleStatusResponse:
        return await self.tracker.confirm(bundle_id, timeout_ms, poll_interval_ms)

    async def send_bundle(
        self,
        bundle: Bundle,
        simulate: bool = False,
        confirm: bool = False,
        timeout_ms: Optional[int] = None,
    ) -> tuple[SubmissionResult, Optional[BundleStatusResponse]]:
        """Optionally simulate, submit, then optionally wait for the bundle to land."""
        if simulate:
            await self.simulate_bundle(bundle)
        result = await self.submit_bundle(bundle)
        status = None
        if confirm:
            status = await self.confirm_bundle(result.bundle_id, timeout_ms)
        return result, status

    async def list_regions(self) -> list[dict[str, Any]]:
        """Latency to every region's block engine."""
        results = await probe_regions()
        fastest = _pick_fastest(results)

        regions_info = []
        for region, metrics in results:
            regions_info.append({
                "region": region.code,
                "url": region.block_engine_url,
                "avg_ms": metrics["avg_ms"],
                "samples_ms": metrics["samples_ms"],
                "fastest": region.code == fastest.code,
                "tip_accounts": len(self.config.tip_accounts.get(region.code, ())),
            })

        return regions_info
