"""
Broadcast Dispatcher - delivers signed transactions.

Maps each broadcast mode onto exactly one ledger client primitive.
"""

from typing import Awaitable, Callable, Dict

import structlog

from cosmos_wallet.core.response import BroadcastMode
from cosmos_wallet.node.interface import BroadcastResult, LedgerClient
from cosmos_wallet.tx.errors import BroadcastError
from cosmos_wallet.tx.transaction import SignedTransaction

logger = structlog.get_logger(__name__)

BroadcastMethod = Callable[[bytes], Awaitable[BroadcastResult]]


class BroadcastDispatcher:
    """
    Submits signed transactions with the requested broadcast mode.

    The mode is never upgraded or downgraded. A non-zero result code is
    returned to the caller as is; only failures to deliver raise.
    """

    def __init__(self, client: LedgerClient):
        self.client = client
        self._methods: Dict[BroadcastMode, BroadcastMethod] = {
            BroadcastMode.ASYNC: client.broadcast_tx_async,
            BroadcastMode.SYNC: client.broadcast_tx_sync,
            BroadcastMode.COMMIT: client.broadcast_tx_commit,
        }

    async def dispatch(
        self,
        tx: SignedTransaction,
        mode: BroadcastMode,
    ) -> BroadcastResult:
        """
        Broadcast a signed transaction.

        Args:
            tx: Transaction to submit
            mode: Broadcast mode

        Returns:
            Result reported by the node

        Raises:
            BroadcastError: If the transaction could not be delivered
        """
        mode = BroadcastMode(mode)
        method = self._methods[mode]

        try:
            result = await method(tx.to_bytes())
        except Exception as e:
            logger.error(
                "tx_broadcast_failed",
                tx_hash=tx.tx_hash[:16] + "...",
                mode=mode.value,
                error=str(e),
            )
            raise BroadcastError(f"error while broadcasting tx: {e}") from e

        log = logger.info if result.is_success else logger.warning
        log(
            "tx_broadcast",
            tx_hash=result.tx_hash,
            mode=mode.value,
            code=result.code,
        )

        return result
