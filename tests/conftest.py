import os
import sys
from pathlib import Path

import pytest
from solders.hash import Hash
from solders.keypair import Keypair
from solders.message import Message
from solders.system_program import TransferParams, transfer
from solders.transaction import Transaction

# Add the project root to the Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from bundle_relay.config import RelayConfig  # noqa: E402
from bundle_relay.models import Bundle  # noqa: E402

os.environ.setdefault("RELAY_LOG_LEVEL", "DEBUG")

RELAY_BASE_URL = "https://relay.test"
RELAY_URL = RELAY_BASE_URL + "/api/v1/bundles"


class FakeClock:
    """Stands in for both time.monotonic and asyncio.sleep; sleeping advances time."""

    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


def make_signed_tx(lamports: int = 1_000, payer: Keypair = None) -> Transaction:
    payer = payer or Keypair()
    ix = transfer(
        TransferParams(
            from_pubkey=payer.pubkey(),
            to_pubkey=Keypair().pubkey(),
            lamports=lamports,
        )
    )
    return Transaction([payer], Message([ix], payer.pubkey()), Hash.default())


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def relay_url():
    return RELAY_URL


@pytest.fixture
def config():
    return RelayConfig(block_engine_url=RELAY_BASE_URL)


@pytest.fixture
def mock_signed_tx():
    return b"mock_signed_transaction_bytes_12345"


@pytest.fixture
def bundle(mock_signed_tx):
    return Bundle.of(mock_signed_tx, b"second_tx_bytes")


@pytest.fixture
def accepted_response():
    return {"jsonrpc": "2.0", "id": 1, "result": "bundle-id-123"}


def rpc_error(code, message="error", data=None):
    error = {"code": code, "message": message}
    if data is not None:
        error["data"] = data
    return {"jsonrpc": "2.0", "id": 1, "error": error}


def status_response(*records):
    return {"jsonrpc": "2.0", "id": 1, "result": {"context": {"slot": 1}, "value": list(records)}}
