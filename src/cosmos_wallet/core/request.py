"""
Transaction Request model.

Describes what the caller wants signed and broadcast.
"""

from dataclasses import dataclass, replace
from typing import Generic, Iterable, List, Optional, Tuple, TypeVar, Union

from google.protobuf.message import Message

from cosmos_wallet.core.coins import Coin

T = TypeVar("T")


@dataclass(frozen=True)
class Fixed(Generic[T]):
    """A caller supplied value used as is (zero included)."""
    value: T


@dataclass(frozen=True)
class Auto:
    """Marker asking the builder to compute the value itself."""

    def __repr__(self) -> str:
        return "AUTO"


AUTO = Auto()

GasSetting = Union[Fixed[int], Auto]
FeeSetting = Union[Fixed[Tuple[Coin, ...]], Auto]


@dataclass(frozen=True)
class TransactionRequest:
    """
    Immutable description of a transaction to build.

    Use the ``with_*`` methods to derive variants:

        ```python
        request = (
            TransactionRequest.of(msg)
            .with_memo("hello")
            .with_gas_auto()
            .with_fee_auto()
        )
        ```

    Attributes:
        messages: Ordered protobuf messages to include
        memo: Free-text annotation
        gas: Fixed gas limit or AUTO for simulation
        fee: Fixed fee coins or AUTO for gas * gas price
        fee_granter: Address paying the fees through a fee grant
        sequence: Explicit sequence number overriding the on-chain one
    """

    messages: Tuple[Message, ...] = ()
    memo: str = ""
    gas: GasSetting = Fixed(0)
    fee: FeeSetting = Fixed(())
    fee_granter: Optional[str] = None
    sequence: Optional[int] = None

    def __post_init__(self):
        if not isinstance(self.messages, tuple):
            object.__setattr__(self, "messages", tuple(self.messages))
        if isinstance(self.fee, Fixed) and not isinstance(self.fee.value, tuple):
            object.__setattr__(self, "fee", Fixed(tuple(self.fee.value)))
        if isinstance(self.gas, Fixed) and self.gas.value < 0:
            raise ValueError(f"negative gas limit: {self.gas.value}")
        if self.sequence is not None and self.sequence < 0:
            raise ValueError(f"negative sequence: {self.sequence}")

    @classmethod
    def of(cls, *messages: Message) -> "TransactionRequest":
        """Create a request holding the given messages."""
        return cls(messages=tuple(messages))

    def with_memo(self, memo: str) -> "TransactionRequest":
        return replace(self, memo=memo)

    def with_gas_limit(self, limit: int) -> "TransactionRequest":
        return replace(self, gas=Fixed(limit))

    def with_gas_auto(self) -> "TransactionRequest":
        """Derive the gas limit from a simulation of the transaction."""
        return replace(self, gas=AUTO)

    def with_fee_amount(self, amount: Iterable[Coin]) -> "TransactionRequest":
        return replace(self, fee=Fixed(tuple(amount)))

    def with_fee_auto(self) -> "TransactionRequest":
        """Derive the fee from the gas limit and the configured gas price."""
        return replace(self, fee=AUTO)

    def with_fee_granter(self, granter: str) -> "TransactionRequest":
        """
        Set the address that will pay for fees.

        A fee grant from the granter towards the signer must exist on-chain.
        """
        return replace(self, fee_granter=granter)

    def with_sequence(self, sequence: int) -> "TransactionRequest":
        return replace(self, sequence=sequence)

    @property
    def gas_auto(self) -> bool:
        return isinstance(self.gas, Auto)

    @property
    def fee_auto(self) -> bool:
        return isinstance(self.fee, Auto)

    def fee_coins(self) -> List[Coin]:
        """Explicit fee coins; empty when the fee is automatic."""
        if isinstance(self.fee, Fixed):
            return list(self.fee.value)
        return []
