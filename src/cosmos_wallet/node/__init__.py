"""
Ledger Integration Layer.

Provides abstracted access to Cosmos chain state, gas simulation and
transaction broadcast.
"""

from cosmos_wallet.node.interface import (
    AccountNotFoundError,
    AccountSnapshot,
    BroadcastResult,
    LedgerClient,
    LedgerConnectionError,
    LedgerRequestError,
)
from cosmos_wallet.node.cosmos import CosmosAdapter

__all__ = [
    "AccountNotFoundError",
    "AccountSnapshot",
    "BroadcastResult",
    "CosmosAdapter",
    "LedgerClient",
    "LedgerConnectionError",
    "LedgerRequestError",
]
