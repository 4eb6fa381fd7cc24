"""
Transaction pipeline types.

A transaction moves through three immutable stages:

    DraftTransaction  ->  FinalizedTransaction  ->  SignedTransaction
    (messages, memo)      (+ gas limit and fee)     (+ signer info, signature)

A SignedTransaction can only be produced from a FinalizedTransaction, so gas
and fee are always fixed before the sign bytes are computed.
"""

import hashlib
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from google.protobuf.any_pb2 import Any as ProtoAny
from google.protobuf.message import Message

from cosmpy.protos.cosmos.bank.v1beta1 import tx_pb2 as bank_tx_pb2
from cosmpy.protos.cosmos.base.v1beta1 import coin_pb2
from cosmpy.protos.cosmos.crypto.secp256k1 import keys_pb2
from cosmpy.protos.cosmos.tx.signing.v1beta1 import signing_pb2
from cosmpy.protos.cosmos.tx.v1beta1 import tx_pb2

from cosmos_wallet.core.coins import Coin
from cosmos_wallet.core.request import TransactionRequest


def pack_message(msg: Message) -> ProtoAny:
    """
    Wrap a protobuf message into an Any with a ``/full.Name`` type URL.

    Messages that are already packed are copied unchanged.
    """
    packed = ProtoAny()
    if isinstance(msg, ProtoAny):
        packed.CopyFrom(msg)
    else:
        packed.Pack(msg, type_url_prefix="/", deterministic=True)
    return packed


def msg_send(from_address: str, to_address: str, amount: Iterable[Coin]) -> bank_tx_pb2.MsgSend:
    """Build a bank MsgSend message."""
    return bank_tx_pb2.MsgSend(
        from_address=from_address,
        to_address=to_address,
        amount=_coins_to_proto(amount),
    )


def _coins_to_proto(coins: Iterable[Coin]) -> List[coin_pb2.Coin]:
    return [coin_pb2.Coin(denom=c.denom, amount=str(c.amount)) for c in coins]


def _coins_from_proto(coins: Iterable[coin_pb2.Coin]) -> List[Coin]:
    return [Coin(denom=c.denom, amount=int(c.amount)) for c in coins]


def _encode(msg: Message) -> bytes:
    return msg.SerializeToString(deterministic=True)


def _pubkey_any(public_key: bytes) -> ProtoAny:
    return pack_message(keys_pb2.PubKey(key=public_key))


def _direct_signer_info(public_key: bytes, sequence: int) -> tx_pb2.SignerInfo:
    return tx_pb2.SignerInfo(
        public_key=_pubkey_any(public_key),
        mode_info=tx_pb2.ModeInfo(
            single=tx_pb2.ModeInfo.Single(mode=signing_pb2.SIGN_MODE_DIRECT),
        ),
        sequence=sequence,
    )


@dataclass(frozen=True)
class SignerData:
    """Data bound into the signature besides the transaction itself."""
    chain_id: str
    account_number: int
    sequence: int


@dataclass(frozen=True)
class DraftTransaction:
    """Messages, memo and fee granter; gas and fee still open."""
    messages: Tuple[ProtoAny, ...]
    memo: str = ""
    fee_granter: Optional[str] = None

    @classmethod
    def from_request(cls, request: TransactionRequest) -> "DraftTransaction":
        return cls(
            messages=tuple(pack_message(m) for m in request.messages),
            memo=request.memo or "",
            fee_granter=request.fee_granter,
        )

    def body(self) -> tx_pb2.TxBody:
        return tx_pb2.TxBody(messages=list(self.messages), memo=self.memo)

    def finalize(self, gas_limit: int, fee: Iterable[Coin]) -> "FinalizedTransaction":
        """Fix the gas limit and fee of this draft."""
        return FinalizedTransaction(draft=self, gas_limit=gas_limit, fee=tuple(fee))


@dataclass(frozen=True)
class FinalizedTransaction:
    """A draft whose gas limit and fee can no longer change."""
    draft: DraftTransaction
    gas_limit: int
    fee: Tuple[Coin, ...]

    def _fee_proto(self) -> tx_pb2.Fee:
        return tx_pb2.Fee(
            amount=_coins_to_proto(self.fee),
            gas_limit=self.gas_limit,
            granter=self.draft.fee_granter or "",
        )

    def auth_info(self, signer_info: tx_pb2.SignerInfo) -> tx_pb2.AuthInfo:
        return tx_pb2.AuthInfo(signer_infos=[signer_info], fee=self._fee_proto())

    def simulation_bytes(self, sequence: int) -> bytes:
        """
        Encode this transaction for gas simulation.

        The signer is a sentinel empty secp256k1 public key with an empty
        signature, which the node accepts in simulation mode.
        """
        tx_raw = tx_pb2.TxRaw(
            body_bytes=_encode(self.draft.body()),
            auth_info_bytes=_encode(
                self.auth_info(_direct_signer_info(b"", sequence))
            ),
            signatures=[b""],
        )
        return _encode(tx_raw)

    def sign_doc(self, signer_data: SignerData, public_key: bytes) -> tx_pb2.SignDoc:
        """Build the SIGN_MODE_DIRECT document for the given signer."""
        return tx_pb2.SignDoc(
            body_bytes=_encode(self.draft.body()),
            auth_info_bytes=_encode(
                self.auth_info(_direct_signer_info(public_key, signer_data.sequence))
            ),
            chain_id=signer_data.chain_id,
            account_number=signer_data.account_number,
        )

    def with_signature(self, sign_doc: tx_pb2.SignDoc, signature: bytes) -> "SignedTransaction":
        """Attach the signature computed over ``sign_doc``."""
        return SignedTransaction(
            body_bytes=sign_doc.body_bytes,
            auth_info_bytes=sign_doc.auth_info_bytes,
            signature=signature,
        )


@dataclass(frozen=True)
class SignedTransaction:
    """
    A single-signer transaction ready to be broadcast.

    Holds the exact bytes that were signed; encoding the same instance twice
    yields identical bytes.
    """
    body_bytes: bytes
    auth_info_bytes: bytes
    signature: bytes

    def to_bytes(self) -> bytes:
        """Encode as a protobuf TxRaw."""
        return _encode(tx_pb2.TxRaw(
            body_bytes=self.body_bytes,
            auth_info_bytes=self.auth_info_bytes,
            signatures=[self.signature],
        ))

    @property
    def tx_hash(self) -> str:
        return hashlib.sha256(self.to_bytes()).hexdigest().upper()

    @property
    def body(self) -> tx_pb2.TxBody:
        return tx_pb2.TxBody.FromString(self.body_bytes)

    @property
    def auth_info(self) -> tx_pb2.AuthInfo:
        return tx_pb2.AuthInfo.FromString(self.auth_info_bytes)

    @property
    def messages(self) -> List[ProtoAny]:
        return list(self.body.messages)

    @property
    def memo(self) -> str:
        return self.body.memo

    @property
    def gas_limit(self) -> int:
        return self.auth_info.fee.gas_limit

    @property
    def fee(self) -> List[Coin]:
        return _coins_from_proto(self.auth_info.fee.amount)

    @property
    def fee_granter(self) -> str:
        return self.auth_info.fee.granter

    @property
    def sequence(self) -> int:
        return self.auth_info.signer_infos[0].sequence

    @property
    def public_key(self) -> bytes:
        pubkey = keys_pb2.PubKey()
        self.auth_info.signer_infos[0].public_key.Unpack(pubkey)
        return pubkey.key

    def sign_bytes(self, chain_id: str, account_number: int) -> bytes:
        """Rebuild the bytes that were signed, for verification."""
        return _encode(tx_pb2.SignDoc(
            body_bytes=self.body_bytes,
            auth_info_bytes=self.auth_info_bytes,
            chain_id=chain_id,
            account_number=account_number,
        ))
