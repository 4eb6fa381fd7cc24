"""
Broadcast modes and the response handed back to callers.
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import TYPE_CHECKING, Optional

from cosmos_wallet.node.interface import AccountSnapshot, BroadcastResult

if TYPE_CHECKING:
    from cosmos_wallet.tx.transaction import SignedTransaction


class BroadcastMode(str, Enum):
    """Confirmation depth requested when submitting a transaction."""
    ASYNC = "async"     # Returned once the node queued the transaction
    SYNC = "sync"       # Returned after mempool admission (CheckTx)
    COMMIT = "commit"   # Returned after inclusion in a committed block


@dataclass(frozen=True)
class TransactionResponse:
    """
    Outcome of a build-and-broadcast call.

    Attributes:
        result: Broadcast result; None if broadcasting failed
        account: Account that signed the transaction; None if the build failed
        tx: Transaction that was broadcast; None if the build failed
    """
    result: Optional[BroadcastResult] = None
    account: Optional[AccountSnapshot] = None
    tx: Optional["SignedTransaction"] = None

    def with_account(self, account: AccountSnapshot) -> "TransactionResponse":
        return replace(self, account=account)

    def with_tx(self, tx: "SignedTransaction") -> "TransactionResponse":
        return replace(self, tx=tx)

    def with_result(self, result: BroadcastResult) -> "TransactionResponse":
        return replace(self, result=result)

    @property
    def tx_hash(self) -> Optional[str]:
        if self.result is not None and self.result.tx_hash:
            return self.result.tx_hash
        if self.tx is not None:
            return self.tx.tx_hash
        return None

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "tx_hash": self.tx_hash,
            "result": self.result.to_dict() if self.result else None,
            "account": self.account.to_dict() if self.account else None,
        }
