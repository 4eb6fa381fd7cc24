"""
Configuration management for the Cosmos wallet.

Supports configuration via environment variables and .env files.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from cosmos_wallet.core.coins import GasPrice


DEFAULT_GAS_ADJUSTMENT = Decimal("1.5")


@dataclass(frozen=True)
class ChainParams:
    """
    Read-only chain settings shared by the ledger client and the builder.

    Attributes:
        bech32_prefix: Human readable part of account addresses
        gas_price: Price paid per gas unit
        gas_adjustment: Factor applied to simulated gas usage
    """
    bech32_prefix: str
    gas_price: GasPrice
    gas_adjustment: Decimal = DEFAULT_GAS_ADJUSTMENT

    def __post_init__(self):
        if not isinstance(self.gas_adjustment, Decimal):
            object.__setattr__(self, "gas_adjustment", Decimal(str(self.gas_adjustment)))
        if self.gas_adjustment <= 0:
            raise ValueError("gas adjustment must be positive")


class WalletConfig(BaseSettings):
    """
    Configuration settings for the Cosmos wallet.

    All settings can be configured via environment variables with the COSMOS_WALLET_ prefix.
    """

    model_config = SettingsConfigDict(
        env_prefix="COSMOS_WALLET_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Chain settings
    bech32_prefix: str = Field(
        default="cosmos",
        description="Bech32 prefix of account addresses"
    )
    gas_price: str = Field(
        default="0.025uatom",
        description="Gas price as amount followed by denom (e.g. 0.025uatom)"
    )
    gas_adjustment: float = Field(
        default=1.5,
        gt=0,
        description="Multiplier applied to simulated gas usage"
    )

    # Endpoints
    rpc_addr: str = Field(
        default="http://localhost:26657",
        description="CometBFT RPC endpoint"
    )
    api_addr: str = Field(
        default="http://localhost:1317",
        description="Cosmos SDK REST (LCD) endpoint"
    )
    request_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Timeout applied to every network request"
    )

    # Key settings
    private_key_hex: Optional[str] = Field(
        default=None,
        description="Hex-encoded secp256k1 private key"
    )
    private_key_path: Optional[str] = Field(
        default=None,
        description="Path to a file holding the hex-encoded private key"
    )
    mnemonic: Optional[str] = Field(
        default=None,
        description="BIP-39 mnemonic the private key is derived from"
    )
    hd_path: str = Field(
        default="m/44'/118'/0'/0/0",
        description="BIP-32 derivation path used with the mnemonic"
    )

    # Logging settings
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)"
    )
    log_json: bool = Field(
        default=False,
        description="Output logs in JSON format"
    )

    @field_validator("gas_price")
    @classmethod
    def _check_gas_price(cls, value: str) -> str:
        GasPrice.parse(value)
        return value

    def chain_params(self) -> ChainParams:
        """Build the immutable chain parameters from this configuration."""
        return ChainParams(
            bech32_prefix=self.bech32_prefix,
            gas_price=GasPrice.parse(self.gas_price),
            gas_adjustment=Decimal(str(self.gas_adjustment)),
        )


# Global config instance
_config: Optional[WalletConfig] = None


def get_config() -> WalletConfig:
    """Get or create the global configuration instance."""
    global _config
    if _config is None:
        _config = WalletConfig()
    return _config


def set_config(config: WalletConfig) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config
