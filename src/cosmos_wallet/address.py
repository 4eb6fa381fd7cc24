"""
Bech32 account addresses.
"""

import hashlib

import bech32

# Cosmos SDK VerifyAddressFormat upper bound
MAX_ADDRESS_LENGTH = 255


class InvalidAddressError(ValueError):
    """Raised when a text address cannot be decoded."""
    pass


def _hash160(data: bytes) -> bytes:
    """RIPEMD-160(SHA-256(data))."""
    ripemd = hashlib.new("ripemd160")
    ripemd.update(hashlib.sha256(data).digest())
    return ripemd.digest()


def derive_address(public_key: bytes, prefix: str) -> str:
    """
    Derive the account address of a compressed secp256k1 public key.

    Args:
        public_key: 33-byte compressed public key
        prefix: Bech32 human readable part (e.g. ``cosmos``)

    Returns:
        Bech32 encoded address
    """
    words = bech32.convertbits(_hash160(public_key), 8, 5)
    return bech32.bech32_encode(prefix, words)


def parse_address(address: str, prefix: str) -> bytes:
    """
    Decode a bech32 account address, checking its prefix.

    Args:
        address: Bech32 encoded address
        prefix: Expected human readable part

    Returns:
        Raw address bytes

    Raises:
        InvalidAddressError: If the address is empty, malformed or uses another prefix
    """
    if not address or not address.strip():
        raise InvalidAddressError("empty address string is not allowed")

    hrp, words = bech32.bech32_decode(address.strip())
    if hrp is None or words is None:
        raise InvalidAddressError(f"invalid bech32 address: {address}")

    if hrp != prefix:
        raise InvalidAddressError(f"invalid bech32 prefix: expected {prefix}, got {hrp}")

    data = bech32.convertbits(words, 5, 8, False)
    if data is None:
        raise InvalidAddressError(f"invalid bech32 payload: {address}")

    raw = bytes(data)
    if not raw:
        raise InvalidAddressError("addresses cannot be empty")
    if len(raw) > MAX_ADDRESS_LENGTH:
        raise InvalidAddressError(
            f"address max length is {MAX_ADDRESS_LENGTH}, got {len(raw)}"
        )

    return raw
