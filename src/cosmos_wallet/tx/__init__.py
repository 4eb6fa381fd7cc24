"""
Transaction module.

Handles transaction construction, signing, and submission.
"""

from cosmos_wallet.tx.builder import TransactionBuilder
from cosmos_wallet.tx.signer import TransactionSigner
from cosmos_wallet.tx.transaction import SignedTransaction, msg_send, pack_message

__all__ = [
    "SignedTransaction",
    "TransactionBuilder",
    "TransactionSigner",
    "msg_send",
    "pack_message",
]
