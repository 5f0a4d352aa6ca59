import asyncio
import base64
import binascii
import logging
import os
from typing import List, Optional

import base58
import typer

from .client import BundleRelayClient
from .config import RelayConfig
from .errors import RelayError
from .models import Bundle
from .router import pick_fastest_region
from .tips import TipLevel, dynamic_tip

app = typer.Typer(help="Bundle relay client: submit bundles and track them until they land")


@app.callback()
def main(
    log_level: str = typer.Option(
        os.environ.get("RELAY_LOG_LEVEL", "WARNING"), help="DEBUG|INFO|WARNING|ERROR"
    ),
):
    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def list_regions():
    """Show latency to all block engines and highlight the fastest."""
    async def run():
        client = BundleRelayClient()
        regions = await client.list_regions()

        regions.sort(key=lambda x: (x["avg_ms"] is None, x["avg_ms"] or 999999))

        for region in regions:
            mark = "★" if region["fastest"] else " "
            avg = "n/a" if region["avg_ms"] is None else f"{region['avg_ms']:.1f} ms"
            print(f"{mark} {region['region']:10}  avg={avg:8}  url={region['url']}")

    asyncio.run(run())


def tip_accounts(region: str = typer.Option("default", help="Region code")):
    """List the tip accounts registered for a region."""
    config = RelayConfig()
    accounts = config.tip_accounts.get(region)
    if not accounts:
        print(f"Error [CONFIGURATION_ERROR]: no tip accounts for region '{region}'")
        raise typer.Exit(code=1)
    for account in accounts:
        print(f"{account.address}  {account.name}")


def tip(
    level: str = typer.Option("medium", help="none|low|medium|high|very_high|turbo"),
    multiplier: float = typer.Option(1.0, help="Scale factor, must be >= 0"),
):
    """Print the tip in lamports for a priority level."""
    try:
        lamports = dynamic_tip(TipLevel[level.upper()], multiplier)
    except KeyError:
        print(f"Unknown tip level: {level}")
        raise typer.Exit(code=1)
    except ValueError as exc:
        print(str(exc))
        raise typer.Exit(code=1)
    print(lamports)


def send_bundle(
    tx_paths: List[str] = typer.Argument(..., help="Signed transaction files, in bundle order"),
    region: Optional[str] = typer.Option(None, help="default|amsterdam|frankfurt|ny|tokyo|fastest"),
    encoding: str = typer.Option("auto", help="auto|base64|base58|raw"),
    max_retries: Optional[int] = typer.Option(None, help="Retries after the first attempt"),
    timeout_ms: Optional[int] = typer.Option(None, help="Per-attempt timeout in ms"),
    simulate: bool = typer.Option(False, help="Simulate against the ledger RPC first"),
    confirm: bool = typer.Option(False, help="Wait until the bundle lands"),
):
    """Submit a bundle of signed transactions."""
    async def run():
        transactions = []
        for path in tx_paths:
            with open(path, "rb") as f:
                transactions.append(_decode_tx(f.read(), encoding))

        bundle = Bundle(tuple(transactions))
        config = await _build_config(region, max_retries=max_retries, timeout_ms=timeout_ms)
        client = BundleRelayClient(config)
        result, status = await client.send_bundle(bundle, simulate=simulate, confirm=confirm)
        print(f"Bundle ID: {result.bundle_id} (attempts: {result.attempts})")
        if status is not None:
            print(f"Landed at slot {status.landed_slot}")

    _run_or_exit(run())


def status(
    bundle_id: str = typer.Argument(..., help="Bundle ID returned by send-bundle"),
    region: Optional[str] = typer.Option(None, help="Region code"),
):
    """Query the current status of a bundle once."""
    async def run():
        client = BundleRelayClient(await _build_config(region))
        response = await client.get_bundle_status(bundle_id)
        print(f"{response.status.value}  slot={response.landed_slot}  error={response.error}")

    _run_or_exit(run())


def confirm(
    bundle_id: str = typer.Argument(..., help="Bundle ID returned by send-bundle"),
    region: Optional[str] = typer.Option(None, help="Region code"),
    timeout_ms: Optional[int] = typer.Option(None, help="Give up after this many ms"),
    poll_interval_ms: Optional[int] = typer.Option(None, help="Delay between status polls"),
):
    """Poll a bundle until it lands, fails, or times out."""
    async def run():
        client = BundleRelayClient(await _build_config(region))
        response = await client.confirm_bundle(bundle_id, timeout_ms, poll_interval_ms)
        print(f"Landed at slot {response.landed_slot}")

    _run_or_exit(run())


async def _build_config(region: Optional[str], **overrides) -> RelayConfig:
    if region == "fastest":
        fastest = await pick_fastest_region()
        print(f"Using fastest region: {fastest.code}")
        region = fastest.code
    return RelayConfig.from_env(region=region, **overrides)


def _run_or_exit(coro):
    try:
        asyncio.run(coro)
    except RelayError as exc:
        print(f"Error [{exc.code}]: {exc.message}")
        raise typer.Exit(code=1)
    except (OSError, ValueError) as exc:
        print(f"Error: {exc}")
        raise typer.Exit(code=1)


def _decode_tx(data: bytes, encoding: str) -> bytes:
    if encoding == "raw":
        return data
    text = data.strip()
    if encoding == "base64" or (encoding == "auto" and _looks_b64(text)):
        return base64.b64decode(text)
    if encoding == "base58" or (encoding == "auto" and _looks_b58(text)):
        return base58.b58decode(text)
    if encoding == "auto":
        return data
    raise ValueError(f"Unsupported encoding: {encoding}")


def _looks_b64(data: bytes) -> bool:
    """Check if data looks like base64."""
    try:
        base64.b64decode(data, validate=True)
        return True
    except (binascii.Error, ValueError):
        return False


def _looks_b58(data: bytes) -> bool:
    try:
        base58.b58decode(data)
        return bool(data)
    except ValueError:
        return False


app.command()(list_regions)
app.command()(tip_accounts)
app.command()(tip)
app.command()(send_bundle)
app.command()(status)
app.command()(confirm)

if __name__ == "__main__":
    app()
