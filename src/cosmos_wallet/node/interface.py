"""
Abstract interface for Cosmos ledger access.

Defines the contract for chain access that the wallet relies on.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from typing import Any, List, Optional

from cosmos_wallet.address import parse_address
from cosmos_wallet.config import ChainParams
from cosmos_wallet.core.coins import Coin


@dataclass(frozen=True)
class AccountSnapshot:
    """
    On-chain account state used to sign a transaction.

    Attributes:
        address: Bech32 address of the account
        account_number: Chain assigned, permanent account identifier
        sequence: Number of transactions already accepted from this account
    """
    address: str
    account_number: int
    sequence: int

    def with_sequence(self, sequence: int) -> "AccountSnapshot":
        return replace(self, sequence=sequence)

    def to_dict(self) -> dict:
        return {
            "address": self.address,
            "account_number": self.account_number,
            "sequence": self.sequence,
        }


@dataclass(frozen=True)
class BroadcastResult:
    """
    Result returned by the node for a broadcast transaction.

    ``height``, ``gas_wanted``, ``gas_used`` and ``events`` are only
    populated for commit broadcasts.
    """
    tx_hash: str
    code: int = 0
    codespace: str = ""
    raw_log: str = ""
    data: str = ""
    height: Optional[int] = None
    gas_wanted: Optional[int] = None
    gas_used: Optional[int] = None
    events: Optional[List[dict]] = field(default=None, hash=False, compare=False)

    @property
    def is_success(self) -> bool:
        return self.code == 0

    def to_dict(self) -> dict:
        return {
            "tx_hash": self.tx_hash,
            "code": self.code,
            "codespace": self.codespace,
            "raw_log": self.raw_log,
            "height": self.height,
            "gas_wanted": self.gas_wanted,
            "gas_used": self.gas_used,
        }


class LedgerClient(ABC):
    """
    Abstract interface for Cosmos ledger access.

    Every operation is a single round trip to the network:
    - Account and balance queries
    - Chain identity
    - Gas simulation
    - Transaction broadcast (async, sync, commit)
    """

    def __init__(self, params: ChainParams):
        self._params = params

    @property
    def params(self) -> ChainParams:
        """Chain parameters this client was configured with."""
        return self._params

    @property
    def account_prefix(self) -> str:
        return self._params.bech32_prefix

    @property
    def fee_denom(self) -> str:
        """Denom used to pay for fees, taken from the gas price."""
        return self._params.gas_price.denom

    def get_fees(self, gas: int) -> List[Coin]:
        """Fees to pay for a transaction using the given gas."""
        return self._params.gas_price.fees_for(gas)

    def parse_address(self, address: str) -> bytes:
        """Decode an address, requiring this chain's prefix."""
        return parse_address(address, self.account_prefix)

    async def __aenter__(self) -> "LedgerClient":
        await self.connect()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.disconnect()

    @abstractmethod
    async def connect(self) -> None:
        """
        Establish connection to the node.

        Raises:
            LedgerConnectionError: If connection cannot be established
        """
        pass

    @abstractmethod
    async def disconnect(self) -> None:
        """Close connection to the node."""
        pass

    @abstractmethod
    async def get_account(self, address: str) -> AccountSnapshot:
        """
        Get the account number and sequence of an address.

        Raises:
            AccountNotFoundError: If the account does not exist on-chain
        """
        pass

    @abstractmethod
    async def get_balances(self, address: str) -> List[Coin]:
        """Get all balances held by an address."""
        pass

    @abstractmethod
    async def get_chain_id(self) -> str:
        """Get the identifier of the chain the node belongs to."""
        pass

    @abstractmethod
    async def simulate_tx(self, tx_bytes: bytes) -> int:
        """
        Simulate an encoded transaction.

        Returns:
            Gas used by the simulated execution
        """
        pass

    @abstractmethod
    async def broadcast_tx_async(self, tx_bytes: bytes) -> BroadcastResult:
        """Submit without waiting for any validation."""
        pass

    @abstractmethod
    async def broadcast_tx_sync(self, tx_bytes: bytes) -> BroadcastResult:
        """Submit and wait for mempool admission."""
        pass

    @abstractmethod
    async def broadcast_tx_commit(self, tx_bytes: bytes) -> BroadcastResult:
        """Submit and wait for the transaction to be committed in a block."""
        pass


class LedgerConnectionError(Exception):
    """Raised when the node cannot be reached."""
    pass


class LedgerRequestError(Exception):
    """Raised when the node answers a request with an error."""

    def __init__(self, message: str, code: Optional[int] = None):
        super().__init__(message)
        self.code = code


class AccountNotFoundError(LedgerRequestError):
    """Raised when an address has no account on-chain."""
    pass
