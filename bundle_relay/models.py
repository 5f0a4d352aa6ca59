import base64
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Union

# The block engine rejects bundles with more transactions than this.
MAX_BUNDLE_TRANSACTIONS = 5


@dataclass(frozen=True)
class Bundle:
    """Ordered, signed transactions executed all-or-nothing by the relay.

    Transactions are opaque wire bytes. Anything with a ``__bytes__``
    (solders ``VersionedTransaction`` / ``Transaction``) is accepted and
    serialized on construction.
    """

    transactions: tuple[bytes, ...]
    tip: Optional[int] = None  # lamports

    def __post_init__(self):
        txs = tuple(_to_bytes(tx) for tx in self.transactions)
        if not txs:
            raise ValueError("Bundle must contain at least one transaction")
        if len(txs) > MAX_BUNDLE_TRANSACTIONS:
            raise ValueError(f"Bundle holds at most {MAX_BUNDLE_TRANSACTIONS} transactions, got {len(txs)}")
        if self.tip is not None and self.tip < 0:
            raise ValueError("Tip must be non-negative")
        object.__setattr__(self, "transactions", txs)

    @classmethod
    def of(cls, *transactions: Union[bytes, Any], tip: Optional[int] = None) -> "Bundle":
        return cls(tuple(transactions), tip=tip)

    def encoded(self) -> list[str]:
        """Base64 wire encoding, in bundle order."""
        return [base64.b64encode(tx).decode("ascii") for tx in self.transactions]

    def __len__(self) -> int:
        return len(self.transactions)


def _to_bytes(tx: Union[bytes, bytearray, Any]) -> bytes:
    if isinstance(tx, (bytes, bytearray)):
        return bytes(tx)
    if isinstance(tx, str) or not hasattr(tx, "__bytes__"):
        raise ValueError("Transaction must be bytes or a signed transaction object")
    return bytes(tx)


@dataclass(frozen=True)
class SubmissionResult:
    bundle_id: str
    accepted: bool
    error: Optional[str] = None
    attempts: int = 1


class BundleStatus(str, Enum):
    PENDING = "pending"
    LANDED = "landed"
    FAILED = "failed"
    INVALID = "invalid"

    @property
    def is_terminal(self) -> bool:
        return self is not BundleStatus.PENDING


@dataclass(frozen=True)
class BundleStatusResponse:
    status: BundleStatus
    landed_slot: Optional[int] = None
    transactions: list[str] = field(default_factory=list)
    error: Optional[Any] = None

    @classmethod
    def pending(cls) -> "BundleStatusResponse":
        return cls(status=BundleStatus.PENDING)

