"""
Cosmos Wallet

Builds, signs, gas-estimates and broadcasts transactions for Cosmos SDK chains
on behalf of a single account.
"""

__version__ = "0.1.0"

from cosmos_wallet.core.coins import Coin, GasPrice
from cosmos_wallet.core.request import AUTO, TransactionRequest
from cosmos_wallet.core.response import BroadcastMode, TransactionResponse
from cosmos_wallet.wallet import Wallet

__all__ = [
    "AUTO",
    "BroadcastMode",
    "Coin",
    "GasPrice",
    "TransactionRequest",
    "TransactionResponse",
    "Wallet",
]
