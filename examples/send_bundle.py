#!/usr/bin/env python3
"""
Build a one-transaction bundle (transfer + tip), submit it to the block engine
and wait for it to land.
"""

import anyio
import base58
import getpass
from solana.rpc.async_api import AsyncClient
from solders.keypair import Keypair
from solders.message import Message
from solders.pubkey import Pubkey
from solders.system_program import TransferParams, transfer
from solders.transaction import Transaction

from bundle_relay.client import BundleRelayClient
from bundle_relay.config import RelayConfig
from bundle_relay.errors import RelayError
from bundle_relay.models import Bundle
from bundle_relay.tips import TipLevel

RPC_URL = "https://api.mainnet-beta.solana.com"


def load_wallet() -> Keypair:
    private_key_input = getpass.getpass("Enter your wallet private key (base58 encoded): ").strip()
    if not private_key_input:
        raise ValueError("Private key is required")
    return Keypair.from_bytes(base58.b58decode(private_key_input))


async def build_transfer_with_tip(client: BundleRelayClient, keypair, to_address, amount_lamports, tip_lamports):
    async with AsyncClient(RPC_URL) as rpc:
        blockhash_resp = await rpc.get_latest_blockhash()
    blockhash = blockhash_resp.value.blockhash

    transfer_ix = transfer(
        TransferParams(
            from_pubkey=keypair.pubkey(),
            to_pubkey=Pubkey.from_string(to_address),
            lamports=amount_lamports,
        )
    )
    # the tip goes last so it only pays out if everything before it succeeds
    tip_ix = client.create_tip_instruction(keypair.pubkey(), tip_lamports)

    message = Message([transfer_ix, tip_ix], keypair.pubkey())
    return Transaction([keypair], message, blockhash)


async def main():
    keypair = load_wallet()
    client = BundleRelayClient(RelayConfig.from_env(rpc_url=RPC_URL))

    to_address = "2aDCackvygC59makgc7ndifFGft1ru35qJXsqbfVeiJr"
    amount = 1_000_000
    tip = client.calculate_dynamic_tip(TipLevel.MEDIUM, 1.5)

    print(f"From: {keypair.pubkey()}")
    print(f"To: {to_address}")
    print(f"Amount: {amount} lamports, tip: {tip} lamports")
    print(f"Block engine: {client.config.bundles_url}")

    tx = await build_transfer_with_tip(client, keypair, to_address, amount, tip)
    bundle = Bundle.of(tx, tip=tip)

    try:
        result, status = await client.send_bundle(bundle, simulate=True, confirm=True)
    except RelayError as exc:
        print(f"Error [{exc.code}]: {exc.message}")
        return

    print(f"Bundle ID: {result.bundle_id}")
    print(f"Landed at slot {status.landed_slot}")
    print(f"Explorer: https://explorer.jito.wtf/bundle/{result.bundle_id}")


if __name__ == "__main__":
    anyio.run(main)
