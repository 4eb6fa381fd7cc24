"""
Transaction Signer - handles transaction signing.

Holds the wallet's secp256k1 key and produces SIGN_MODE_DIRECT signatures.
"""

import hashlib
from pathlib import Path
from typing import Optional

import ecdsa
import structlog
from bip_utils import Bip32Slip10Secp256k1, Bip39MnemonicValidator, Bip39SeedGenerator
from ecdsa.util import sigdecode_string, sigencode_string_canonize

from cosmos_wallet.address import derive_address
from cosmos_wallet.config import WalletConfig, get_config
from cosmos_wallet.tx.transaction import (
    FinalizedTransaction,
    SignedTransaction,
    SignerData,
)

logger = structlog.get_logger(__name__)

PRIVATE_KEY_LENGTH = 32

# BIP-44 path of the first account for coin type 118 (ATOM)
DEFAULT_HD_PATH = "m/44'/118'/0'/0/0"


class TransactionSigner:
    """
    Handles transaction signing with the wallet's key.

    Supports loading keys from:
    - File path (hex-encoded private key)
    - Hex string (for environment variable configuration)
    - BIP-39 mnemonic and BIP-32 derivation path

    Signatures are deterministic (RFC 6979) ECDSA over SHA-256 with a
    low-S, 64-byte ``r || s`` encoding, as expected by Cosmos SDK chains.
    """

    def __init__(self, config: Optional[WalletConfig] = None):
        """
        Initialize the transaction signer.

        Args:
            config: Wallet configuration
        """
        self.config = config or get_config()
        self._signing_key: Optional[ecdsa.SigningKey] = None
        self._public_key: Optional[bytes] = None

    def load_key_from_file(self, key_path: str) -> None:
        """
        Load the private key from a file holding its hex encoding.

        Args:
            key_path: Path to the key file
        """
        path = Path(key_path)
        if not path.exists():
            raise FileNotFoundError(f"Private key file not found: {key_path}")

        self._set_key(bytes.fromhex(path.read_text().strip()))
        logger.info("private_key_loaded", path=key_path)

    def load_key_from_hex(self, key_hex: str) -> None:
        """
        Load the private key from a hex string.

        Args:
            key_hex: Hex-encoded 32-byte private key
        """
        self._set_key(bytes.fromhex(key_hex.strip().removeprefix("0x")))
        logger.info("private_key_loaded_from_hex")

    def load_key_from_mnemonic(self, mnemonic: str, hd_path: str = DEFAULT_HD_PATH) -> None:
        """
        Derive the private key from a BIP-39 mnemonic.

        Args:
            mnemonic: Space separated mnemonic words
            hd_path: BIP-32 derivation path of the key
        """
        words = " ".join(mnemonic.split())
        if not Bip39MnemonicValidator().IsValid(words):
            raise ValueError("invalid mnemonic")

        seed = Bip39SeedGenerator(words).Generate()
        node = Bip32Slip10Secp256k1.FromSeedAndPath(seed, hd_path)
        self._set_key(node.PrivateKey().Raw().ToBytes())
        logger.info("private_key_loaded_from_mnemonic", hd_path=hd_path)

    def load_from_config(self) -> None:
        """Load the private key from configuration."""
        if self.config.private_key_path:
            self.load_key_from_file(self.config.private_key_path)
        elif self.config.private_key_hex:
            self.load_key_from_hex(self.config.private_key_hex)
        elif self.config.mnemonic:
            self.load_key_from_mnemonic(self.config.mnemonic, self.config.hd_path)
        else:
            raise ValueError("No private key configured")

    @classmethod
    def generate(cls, config: Optional[WalletConfig] = None) -> "TransactionSigner":
        """Create a signer holding a new random key."""
        signer = cls(config)
        signer._set_key(ecdsa.SigningKey.generate(curve=ecdsa.SECP256k1).to_string())
        return signer

    def _set_key(self, key_bytes: bytes) -> None:
        if len(key_bytes) != PRIVATE_KEY_LENGTH:
            raise ValueError(
                f"private key must be {PRIVATE_KEY_LENGTH} bytes, got {len(key_bytes)}"
            )
        self._signing_key = ecdsa.SigningKey.from_string(key_bytes, curve=ecdsa.SECP256k1)
        self._public_key = self._signing_key.get_verifying_key().to_string("compressed")

    @property
    def is_loaded(self) -> bool:
        """Check if a private key is loaded."""
        return self._signing_key is not None

    @property
    def public_key(self) -> bytes:
        """Compressed 33-byte public key."""
        if self._public_key is None:
            raise RuntimeError("No private key loaded")
        return self._public_key

    def address(self, prefix: str) -> str:
        """Bech32 address of the key under the given prefix."""
        return derive_address(self.public_key, prefix)

    def export_hex(self) -> str:
        """Hex encoding of the private key."""
        if not self._signing_key:
            raise RuntimeError("No private key loaded")
        return self._signing_key.to_string().hex()

    def sign_bytes(self, data: bytes) -> bytes:
        """
        Sign arbitrary bytes.

        Args:
            data: Message to sign; hashed with SHA-256 before signing

        Returns:
            64-byte canonical signature
        """
        if not self._signing_key:
            raise RuntimeError("No private key loaded")

        return self._signing_key.sign_deterministic(
            data,
            hashfunc=hashlib.sha256,
            sigencode=sigencode_string_canonize,
        )

    def verify(self, signature: bytes, data: bytes) -> bool:
        """Check a signature produced by this key."""
        if not self._signing_key:
            raise RuntimeError("No private key loaded")
        try:
            return self._signing_key.get_verifying_key().verify(
                signature, data, hashfunc=hashlib.sha256, sigdecode=sigdecode_string,
            )
        except ecdsa.BadSignatureError:
            return False

    def sign_transaction(
        self,
        tx: FinalizedTransaction,
        signer_data: SignerData,
    ) -> SignedTransaction:
        """
        Sign a transaction whose gas and fee are final.

        Args:
            tx: The finalized transaction
            signer_data: Chain id, account number and sequence to sign with

        Returns:
            Signed transaction
        """
        sign_doc = tx.sign_doc(signer_data, self.public_key)
        signature = self.sign_bytes(sign_doc.SerializeToString(deterministic=True))
        signed_tx = tx.with_signature(sign_doc, signature)

        logger.debug(
            "transaction_signed",
            tx_hash=signed_tx.tx_hash[:16] + "...",
            sequence=signer_data.sequence,
        )

        return signed_tx

