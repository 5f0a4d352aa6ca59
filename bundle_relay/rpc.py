import json
from dataclasses import dataclass
from typing import Any, Optional

import aiohttp

JSONRPC_VERSION = "2.0"


def rpc_payload(method: str, params: list) -> dict[str, Any]:
    return {
        "jsonrpc": JSONRPC_VERSION,
        "id": 1,
        "method": method,
        "params": params,
    }


@dataclass(frozen=True)
class RpcResponse:
    status: int
    text: str
    body: Optional[Any] = None  # None when the body was not JSON

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @property
    def error(self) -> Optional[dict[str, Any]]:
        if isinstance(self.body, dict) and self.body.get("error"):
            error = self.body["error"]
            return error if isinstance(error, dict) else {"message": str(error)}
        return None

    @property
    def result(self) -> Any:
        return self.body.get("result") if isinstance(self.body, dict) else None


async def post_rpc(
    session: aiohttp.ClientSession,
    url: str,
    payload: dict[str, Any],
    timeout_ms: int,
) -> RpcResponse:
    """POST one JSON-RPC request; the whole exchange is bounded by ``timeout_ms``."""
    timeout = aiohttp.ClientTimeout(total=timeout_ms / 1000)
    async with session.post(url, json=payload, timeout=timeout) as response:
        text = await response.text(errors="replace")
        status = response.status
    try:
        body = json.loads(text)
    except ValueError:
        body = None
    return RpcResponse(status=status, text=text, body=body)
