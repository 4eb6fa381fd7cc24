"""
Errors raised while building and broadcasting transactions.

Each error names the pipeline phase that failed. The original cause is
chained as ``__cause__``.
"""

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from cosmos_wallet.core.response import TransactionResponse


class WalletError(Exception):
    """Base class for transaction pipeline failures."""

    phase = "unknown"

    def __init__(self, message: str):
        super().__init__(f"{self.phase}: {message}")
        self.message = message


class EmptyMessagesError(WalletError):
    """Raised when a transaction is requested without messages."""
    phase = "messages"


class AccountLookupError(WalletError):
    """Raised when the signer account cannot be fetched."""
    phase = "account"


class SimulationError(WalletError):
    """Raised when gas simulation fails or reports no gas usage."""
    phase = "simulation"


class ChainIDError(WalletError):
    """Raised when the chain identifier cannot be fetched."""
    phase = "chain_id"


class SigningError(WalletError):
    """Raised when the transaction cannot be signed."""
    phase = "signing"


class BroadcastError(WalletError):
    """
    Raised when the node cannot be reached or refuses the submission.

    ``response`` carries the account and transaction that were built.
    """
    phase = "broadcast"

    def __init__(self, message: str, response: Optional["TransactionResponse"] = None):
        super().__init__(message)
        self.response = response
