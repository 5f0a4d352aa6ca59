"""Decide which submission failures are worth retrying.

Anything not recognised here is terminal.
"""
import asyncio
import errno
import socket
from typing import Any, Union

import aiohttp

RETRIABLE_RPC_CODES = frozenset({
    -32005,  # node is behind
    -32603,  # internal error
    429,     # rate limited
})

RETRIABLE_HTTP_STATUSES = frozenset({429})

_NETWORK_ERRNOS = frozenset({errno.ECONNREFUSED, errno.ETIMEDOUT})

_NETWORK_MESSAGES = ("fetch failed", "connection refused", "name or service not known")


def is_retriable_error(error: Union[dict[str, Any], int, str, None]) -> bool:
    """True if a relay JSON-RPC error object (or bare code) is transient."""
    code = error.get("code") if isinstance(error, dict) else error
    try:
        return int(code) in RETRIABLE_RPC_CODES
    except (TypeError, ValueError):
        return False


def is_retriable_status(status: int) -> bool:
    return status in RETRIABLE_HTTP_STATUSES


def is_network_error(exc: BaseException) -> bool:
    """True for connection refusal, DNS failure, transport timeout or 'fetch failed'."""
    if isinstance(exc, (asyncio.TimeoutError, socket.gaierror, ConnectionRefusedError)):
        return True
    if isinstance(exc, aiohttp.ClientConnectionError):
        return True
    if isinstance(exc, OSError) and exc.errno in _NETWORK_ERRNOS:
        return True
    message = str(exc).lower()
    return any(fragment in message for fragment in _NETWORK_MESSAGES)
