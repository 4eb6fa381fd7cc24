"""
Core models.

Value objects describing coins, transaction requests and broadcast responses.
"""

from cosmos_wallet.core.coins import Coin, GasPrice
from cosmos_wallet.core.request import AUTO, Auto, Fixed, TransactionRequest

__all__ = [
    "AUTO",
    "Auto",
    "Coin",
    "Fixed",
    "GasPrice",
    "TransactionRequest",
]
