"""Optional pre-flight check: simulate every bundle transaction against a ledger RPC node."""
import logging
from typing import Optional

from solana.rpc.async_api import AsyncClient
from solders.transaction import VersionedTransaction

from .errors import SimulationFailedError
from .models import Bundle

logger = logging.getLogger(__name__)


class BundleSimulator:
    def __init__(self, rpc_url: str, client: Optional[AsyncClient] = None):
        self.rpc_url = rpc_url
        self._client = client

    async def simulate(self, bundle: Bundle) -> None:
        """Raise SimulationFailedError on the first transaction that would fail."""
        client = self._client or AsyncClient(self.rpc_url)
        try:
            for index, blob in enumerate(bundle.transactions):
                try:
                    tx = VersionedTransaction.from_bytes(blob)
                except ValueError as exc:
                    raise SimulationFailedError(
                        f"Transaction {index} is not a valid signed transaction",
                        details={"index": index, "error": str(exc)},
                    ) from exc

                response = await client.simulate_transaction(tx)
                if response.value.err:
                    logs = list(response.value.logs or [])
                    logger.warning("Simulation failed for transaction %d: %s", index, response.value.err)
                    raise SimulationFailedError(
                        "Transaction simulation failed",
                        details={"index": index, "error": str(response.value.err), "logs": logs},
                    )
            logger.info("Bundle simulation passed (%d transaction(s))", len(bundle))
        finally:
            if self._client is None:
                await client.close()
