"""
Coin amounts and gas prices.
"""

import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_CEILING, localcontext
from typing import List

# Cosmos SDK denom rules: a letter followed by 2-127 letters, digits or /:._-
_DENOM = r"[a-zA-Z][a-zA-Z0-9/:._-]{2,127}"
_COIN_RE = re.compile(rf"^\s*([0-9]+)\s*({_DENOM})\s*$")
_DEC_COIN_RE = re.compile(rf"^\s*([0-9]+(?:\.[0-9]+)?)\s*({_DENOM})\s*$")

# Large enough to multiply a 2^63 gas limit by an 18-decimal price exactly
_FEE_PRECISION = 80


@dataclass(frozen=True)
class Coin:
    """A whole amount of a single denomination."""
    denom: str
    amount: int

    def __post_init__(self):
        if self.amount < 0:
            raise ValueError(f"negative coin amount: {self.amount}")

    @classmethod
    def parse(cls, text: str) -> "Coin":
        """Parse a coin such as ``100uatom``."""
        match = _COIN_RE.match(text)
        if not match:
            raise ValueError(f"invalid coin expression: {text!r}")
        return cls(denom=match.group(2), amount=int(match.group(1)))

    @classmethod
    def parse_list(cls, text: str) -> List["Coin"]:
        """Parse a comma separated list of coins."""
        return [cls.parse(part) for part in text.split(",") if part.strip()]

    def to_dict(self) -> dict:
        return {"denom": self.denom, "amount": str(self.amount)}

    def __str__(self) -> str:
        return f"{self.amount}{self.denom}"


@dataclass(frozen=True)
class GasPrice:
    """
    Decimal price of one gas unit in a given denomination.

    Configured once per client and never changed afterwards.
    """
    denom: str
    amount: Decimal

    def __post_init__(self):
        if not isinstance(self.amount, Decimal):
            object.__setattr__(self, "amount", Decimal(str(self.amount)))
        if self.amount < 0:
            raise ValueError(f"negative gas price: {self.amount}")

    @classmethod
    def parse(cls, text: str) -> "GasPrice":
        """
        Parse a gas price such as ``0.025uatom``.

        Raises:
            ValueError: If the text is not a decimal amount followed by a denom
        """
        match = _DEC_COIN_RE.match(text or "")
        if not match:
            raise ValueError(f"invalid gas price: {text!r}")
        try:
            amount = Decimal(match.group(1))
        except InvalidOperation as e:
            raise ValueError(f"invalid gas price amount: {text!r}") from e
        return cls(denom=match.group(2), amount=amount)

    def fees_for(self, gas: int) -> List[Coin]:
        """
        Compute the fee for the given amount of gas.

        The product is rounded up to the next whole unit. A zero fee is
        returned as no coins at all.
        """
        if gas < 0:
            raise ValueError(f"negative gas: {gas}")
        with localcontext() as ctx:
            ctx.prec = _FEE_PRECISION
            fee = (Decimal(gas) * self.amount).to_integral_value(rounding=ROUND_CEILING)
        if fee == 0:
            return []
        return [Coin(denom=self.denom, amount=int(fee))]

    def __str__(self) -> str:
        return f"{self.amount}{self.denom}"
