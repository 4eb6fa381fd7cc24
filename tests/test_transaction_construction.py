"""
Test suite for transaction construction functionality.

Tests the ability to resolve gas and fees, sign and encode transactions.
"""

from decimal import Decimal

import pytest

from cosmpy.protos.cosmos.bank.v1beta1 import tx_pb2 as bank_tx_pb2
from cosmpy.protos.cosmos.crypto.secp256k1 import keys_pb2
from cosmpy.protos.cosmos.tx.v1beta1 import tx_pb2

from cosmos_wallet.core.coins import Coin, GasPrice
from cosmos_wallet.core.request import TransactionRequest
from cosmos_wallet.tx.builder import SIMULATION_GAS_LIMIT, TransactionBuilder, adjust_gas
from cosmos_wallet.tx.errors import (
    AccountLookupError,
    ChainIDError,
    EmptyMessagesError,
    SigningError,
    SimulationError,
    WalletError,
)
from cosmos_wallet.tx.signer import DEFAULT_HD_PATH, TransactionSigner
from cosmos_wallet.tx.transaction import (
    DraftTransaction,
    SignerData,
    msg_send,
    pack_message,
)

from tests.conftest import RECIPIENT, TEST_PRIVATE_KEY_HEX

# BIP-39 test mnemonic and its published Cosmos address at m/44'/118'/0'/0/0
TEST_MNEMONIC = " ".join(["abandon"] * 11 + ["about"])
TEST_MNEMONIC_ADDRESS = "cosmos19rl4cm2hmr8afy4kldpxz3fka4jguq0auqdal4"


# ============================================================================
# Test Transaction Signer
# ============================================================================

class TestTransactionSigner:
    """Tests for transaction signing functionality."""

    def test_generate_key(self, test_config):
        """Test generating a random key."""
        signer = TransactionSigner.generate(test_config)

        assert signer.is_loaded is True
        assert len(signer.public_key) == 33
        assert signer.address("cosmos").startswith("cosmos1")

    def test_signer_not_loaded(self, test_config):
        """Test that signer raises error when key not loaded."""
        signer = TransactionSigner(test_config)

        assert signer.is_loaded is False

        with pytest.raises(RuntimeError, match="No private key loaded"):
            signer.sign_bytes(b"payload")
        with pytest.raises(RuntimeError, match="No private key loaded"):
            signer.public_key

    def test_load_key_from_hex_with_prefix(self, test_config):
        """Test that a 0x prefix is accepted."""
        signer = TransactionSigner(test_config)
        signer.load_key_from_hex("0x" + TEST_PRIVATE_KEY_HEX)

        assert signer.export_hex() == TEST_PRIVATE_KEY_HEX

    def test_load_key_from_file(self, test_config, tmp_path):
        """Test loading a key from a file."""
        key_file = tmp_path / "wallet.key"
        key_file.write_text(TEST_PRIVATE_KEY_HEX + "\n")

        signer = TransactionSigner(test_config)
        signer.load_key_from_file(str(key_file))

        assert signer.export_hex() == TEST_PRIVATE_KEY_HEX

    def test_load_key_missing_file(self, test_config, tmp_path):
        signer = TransactionSigner(test_config)

        with pytest.raises(FileNotFoundError):
            signer.load_key_from_file(str(tmp_path / "missing.key"))

    def test_invalid_key_length(self, test_config):
        signer = TransactionSigner(test_config)

        with pytest.raises(ValueError, match="32 bytes"):
            signer.load_key_from_hex("ab" * 16)

    def test_load_from_config(self, test_config):
        """Test loading the key named by the configuration."""
        signer = TransactionSigner(test_config)
        signer.load_from_config()

        assert signer.export_hex() == TEST_PRIVATE_KEY_HEX

    def test_load_from_empty_config(self, test_config):
        config = test_config.model_copy(update={"private_key_hex": None})
        signer = TransactionSigner(config)

        with pytest.raises(ValueError, match="No private key configured"):
            signer.load_from_config()

    def test_load_key_from_mnemonic(self, test_config):
        """Test deriving the key at the default Cosmos path."""
        signer = TransactionSigner(test_config)
        signer.load_key_from_mnemonic(TEST_MNEMONIC)

        assert signer.address("cosmos") == TEST_MNEMONIC_ADDRESS

    def test_mnemonic_whitespace_is_normalized(self, test_config):
        signer = TransactionSigner(test_config)
        signer.load_key_from_mnemonic("  " + TEST_MNEMONIC.replace(" ", "\n  ") + "\n")

        assert signer.address("cosmos") == TEST_MNEMONIC_ADDRESS

    def test_mnemonic_path_selects_key(self, test_config):
        first = TransactionSigner(test_config)
        first.load_key_from_mnemonic(TEST_MNEMONIC, DEFAULT_HD_PATH)
        second = TransactionSigner(test_config)
        second.load_key_from_mnemonic(TEST_MNEMONIC, "m/44'/118'/0'/0/1")

        assert first.export_hex() != second.export_hex()

    def test_invalid_mnemonic(self, test_config):
        signer = TransactionSigner(test_config)

        with pytest.raises(ValueError, match="invalid mnemonic"):
            signer.load_key_from_mnemonic(" ".join(["abandon"] * 12))

        assert signer.is_loaded is False

    def test_load_mnemonic_from_config(self, test_config):
        config = test_config.model_copy(update={
            "private_key_hex": None,
            "mnemonic": TEST_MNEMONIC,
        })
        signer = TransactionSigner(config)
        signer.load_from_config()

        assert signer.address("cosmos") == TEST_MNEMONIC_ADDRESS

    def test_signature_is_deterministic(self, test_signer):
        """Test that signing the same bytes twice yields the same signature."""
        first = test_signer.sign_bytes(b"payload")
        second = test_signer.sign_bytes(b"payload")

        assert first == second
        assert len(first) == 64
        assert test_signer.verify(first, b"payload")
        assert not test_signer.verify(first, b"other payload")

    def test_signature_is_low_s(self, test_signer):
        """Test that signatures use the lower half of the curve order."""
        import ecdsa

        half_order = ecdsa.SECP256k1.order // 2
        for i in range(10):
            signature = test_signer.sign_bytes(f"message {i}".encode())
            assert int.from_bytes(signature[32:], "big") <= half_order


# ============================================================================
# Test Transaction Encoding
# ============================================================================

class TestTransactionEncoding:
    """Tests for the draft, finalized and signed transaction stages."""

    def test_pack_message_type_url(self, send_msg):
        packed = pack_message(send_msg)

        assert packed.type_url == "/cosmos.bank.v1beta1.MsgSend"

        unpacked = bank_tx_pb2.MsgSend()
        assert packed.Unpack(unpacked)
        assert unpacked.to_address == RECIPIENT

    def test_pack_message_keeps_any(self, send_msg):
        packed = pack_message(send_msg)

        assert pack_message(packed) == packed

    def test_draft_preserves_message_order(self, test_signer):
        sender = test_signer.address("cosmos")
        first = msg_send(sender, RECIPIENT, [Coin("uatom", 1)])
        second = msg_send(sender, RECIPIENT, [Coin("uatom", 2)])

        draft = DraftTransaction.from_request(TransactionRequest.of(first, second))
        amounts = []
        for packed in draft.body().messages:
            msg = bank_tx_pb2.MsgSend()
            packed.Unpack(msg)
            amounts.append(msg.amount[0].amount)

        assert amounts == ["1", "2"]

    def test_simulation_bytes(self, send_msg):
        """Test that simulation uses an empty key and an empty signature."""
        draft = DraftTransaction.from_request(TransactionRequest.of(send_msg))
        finalized = draft.finalize(SIMULATION_GAS_LIMIT, [Coin("uatom", 5000)])

        tx_raw = tx_pb2.TxRaw.FromString(finalized.simulation_bytes(4))
        auth_info = tx_pb2.AuthInfo.FromString(tx_raw.auth_info_bytes)

        assert list(tx_raw.signatures) == [b""]
        assert auth_info.signer_infos[0].sequence == 4
        assert auth_info.fee.gas_limit == SIMULATION_GAS_LIMIT

        pubkey = keys_pb2.PubKey()
        auth_info.signer_infos[0].public_key.Unpack(pubkey)
        assert pubkey.key == b""

    def test_signed_transaction_round_trip(self, test_signer, send_msg):
        request = TransactionRequest.of(send_msg).with_memo("note").with_fee_granter(RECIPIENT)
        finalized = DraftTransaction.from_request(request).finalize(
            100_000, [Coin("uatom", 2500)]
        )

        signed = test_signer.sign_transaction(
            finalized, SignerData(chain_id="test-1", account_number=3, sequence=9),
        )

        tx_raw = tx_pb2.TxRaw.FromString(signed.to_bytes())
        assert tx_raw.body_bytes == signed.body_bytes
        assert list(tx_raw.signatures) == [signed.signature]

        assert signed.memo == "note"
        assert signed.gas_limit == 100_000
        assert signed.fee == [Coin("uatom", 2500)]
        assert signed.fee_granter == RECIPIENT
        assert signed.sequence == 9
        assert signed.public_key == test_signer.public_key
        assert len(signed.tx_hash) == 64
        assert signed.tx_hash == signed.tx_hash.upper()

    def test_signature_covers_chain_id(self, test_signer, send_msg):
        finalized = DraftTransaction.from_request(TransactionRequest.of(send_msg)).finalize(
            100_000, [Coin("uatom", 2500)]
        )
        signed = test_signer.sign_transaction(
            finalized, SignerData(chain_id="test-1", account_number=3, sequence=0),
        )

        assert test_signer.verify(signed.signature, signed.sign_bytes("test-1", 3))
        assert not test_signer.verify(signed.signature, signed.sign_bytes("test-2", 3))
        assert not test_signer.verify(signed.signature, signed.sign_bytes("test-1", 4))


# ============================================================================
# Test Transaction Builder
# ============================================================================

class TestGasAdjustment:
    """Tests for the gas safety factor."""

    def test_adjust_exact(self):
        assert adjust_gas(80_000, Decimal("1.5")) == 120_000

    def test_adjust_rounds_up(self):
        assert adjust_gas(100_001, Decimal("1.5")) == 150_002
        assert adjust_gas(3, Decimal("1.1")) == 4

    def test_adjust_large_values(self):
        assert adjust_gas(2**62, Decimal("1.3")) == -(-(2**62) * 13 // 10)


class TestTransactionBuilder:
    """Tests for building transactions against a mock ledger."""

    @pytest.mark.asyncio
    async def test_fixed_gas_and_fee(self, mock_client, test_signer, send_msg):
        """Test that fixed values are used as is without simulating."""
        builder = TransactionBuilder(mock_client, test_signer)
        request = (
            TransactionRequest.of(send_msg)
            .with_gas_limit(150_000)
            .with_fee_amount([Coin("uatom", 4000)])
        )

        account, tx = await builder.build(request)

        assert tx.gas_limit == 150_000
        assert tx.fee == [Coin("uatom", 4000)]
        assert mock_client.calls["simulate_tx"] == 0
        assert account.account_number == 7
        assert account.sequence == 2

    @pytest.mark.asyncio
    async def test_fixed_zero_gas_is_not_simulated(self, mock_client, test_signer, send_msg):
        builder = TransactionBuilder(mock_client, test_signer)

        _, tx = await builder.build(TransactionRequest.of(send_msg))

        assert tx.gas_limit == 0
        assert tx.fee == []
        assert mock_client.calls["simulate_tx"] == 0

    @pytest.mark.asyncio
    async def test_auto_fee_uses_gas_price(self, mock_client, test_signer, send_msg):
        """Test that the automatic fee is gas times gas price, rounded up."""
        builder = TransactionBuilder(mock_client, test_signer)
        request = TransactionRequest.of(send_msg).with_gas_limit(100_001).with_fee_auto()

        _, tx = await builder.build(request)

        assert tx.fee == [Coin("uatom", 2501)]

    @pytest.mark.asyncio
    async def test_auto_gas_simulates_once(self, mock_client, test_signer, send_msg):
        """Test the account 7/2, 80000 gas used, 0.025uatom scenario."""
        builder = TransactionBuilder(mock_client, test_signer)
        request = TransactionRequest.of(send_msg).with_gas_auto().with_fee_auto()

        account, tx = await builder.build(request)

        assert mock_client.calls["simulate_tx"] == 1
        assert tx.gas_limit == 120_000
        assert tx.fee == [Coin("uatom", 3000)]
        assert tx.sequence == 2
        assert test_signer.verify(tx.signature, tx.sign_bytes("cosmoshub-test", 7))

    @pytest.mark.asyncio
    async def test_simulation_uses_account_sequence(self, mock_client, test_signer, send_msg):
        builder = TransactionBuilder(mock_client, test_signer)
        request = TransactionRequest.of(send_msg).with_gas_auto().with_sequence(11)

        await builder.build(request)

        tx_raw = tx_pb2.TxRaw.FromString(mock_client.simulated[0])
        auth_info = tx_pb2.AuthInfo.FromString(tx_raw.auth_info_bytes)
        assert auth_info.signer_infos[0].sequence == 11

    @pytest.mark.asyncio
    async def test_auto_gas_with_fixed_fee(self, mock_client, test_signer, send_msg):
        builder = TransactionBuilder(mock_client, test_signer)
        request = (
            TransactionRequest.of(send_msg)
            .with_gas_auto()
            .with_fee_amount([Coin("uatom", 1)])
        )

        _, tx = await builder.build(request)

        assert tx.gas_limit == 120_000
        assert tx.fee == [Coin("uatom", 1)]

    @pytest.mark.asyncio
    async def test_build_order(self, mock_client, test_signer, send_msg):
        """Test that the account is fetched before simulating and signing."""
        builder = TransactionBuilder(mock_client, test_signer)

        await builder.build(TransactionRequest.of(send_msg).with_gas_auto())

        assert mock_client.order == ["get_account", "simulate_tx", "get_chain_id"]

    @pytest.mark.asyncio
    async def test_deterministic_build(self, mock_client, test_signer, send_msg):
        """Test that identical inputs give byte-identical transactions."""
        builder = TransactionBuilder(mock_client, test_signer)
        request = TransactionRequest.of(send_msg).with_gas_auto().with_fee_auto()

        _, first = await builder.build(request)
        _, second = await builder.build(request)

        assert first.to_bytes() == second.to_bytes()
        assert first.tx_hash == second.tx_hash

    @pytest.mark.asyncio
    async def test_empty_messages(self, mock_client, test_signer):
        """Test that an empty request fails before touching the network."""
        builder = TransactionBuilder(mock_client, test_signer)

        with pytest.raises(EmptyMessagesError) as exc_info:
            await builder.build(TransactionRequest().with_gas_auto().with_fee_auto())

        assert exc_info.value.phase == "messages"
        assert mock_client.network_calls == 0

    @pytest.mark.asyncio
    async def test_sequence_override(self, mock_client, test_signer, send_msg):
        mock_client.sequence = 3
        builder = TransactionBuilder(mock_client, test_signer)

        account, tx = await builder.build(TransactionRequest.of(send_msg).with_sequence(5))

        assert account.sequence == 5
        assert tx.sequence == 5
        assert mock_client.calls["get_account"] == 1

    @pytest.mark.asyncio
    async def test_zero_sequence_override_is_ignored(self, mock_client, test_signer, send_msg):
        mock_client.sequence = 3
        builder = TransactionBuilder(mock_client, test_signer)

        account, tx = await builder.build(TransactionRequest.of(send_msg).with_sequence(0))

        assert account.sequence == 3
        assert tx.sequence == 3

    @pytest.mark.asyncio
    async def test_memo_and_granter(self, mock_client, test_signer, send_msg):
        builder = TransactionBuilder(mock_client, test_signer)
        request = (
            TransactionRequest.of(send_msg)
            .with_memo("invoice 42")
            .with_fee_granter(RECIPIENT)
            .with_gas_auto()
            .with_fee_auto()
        )

        _, tx = await builder.build(request)

        assert tx.memo == "invoice 42"
        assert tx.fee_granter == RECIPIENT

        tx_raw = tx_pb2.TxRaw.FromString(mock_client.simulated[0])
        auth_info = tx_pb2.AuthInfo.FromString(tx_raw.auth_info_bytes)
        assert auth_info.fee.granter == RECIPIENT

    @pytest.mark.asyncio
    async def test_custom_gas_adjustment(self, mock_client, test_signer, send_msg, chain_params):
        from dataclasses import replace

        params = replace(chain_params, gas_adjustment=Decimal("1.2"))
        builder = TransactionBuilder(mock_client, test_signer, params)
        mock_client.gas_used = 50_001

        _, tx = await builder.build(TransactionRequest.of(send_msg).with_gas_auto())

        assert tx.gas_limit == 60_002

    @pytest.mark.asyncio
    async def test_builder_gas_price(self, mock_client, test_signer, send_msg, chain_params):
        """Test that the builder's gas price overrides the client's."""
        from dataclasses import replace

        params = replace(chain_params, gas_price=GasPrice.parse("0.1uatom"))
        builder = TransactionBuilder(mock_client, test_signer, params)

        _, tx = await builder.build(
            TransactionRequest.of(send_msg).with_gas_limit(100_000).with_fee_auto()
        )

        assert tx.fee == [Coin("uatom", 10_000)]

    @pytest.mark.asyncio
    async def test_simulation_fee_uses_builder_gas_price(
        self, mock_client, test_signer, send_msg, chain_params
    ):
        from dataclasses import replace

        params = replace(chain_params, gas_price=GasPrice.parse("0.5ustake"))
        builder = TransactionBuilder(mock_client, test_signer, params)

        _, tx = await builder.build(TransactionRequest.of(send_msg).with_gas_auto().with_fee_auto())

        auth_info = tx_pb2.AuthInfo.FromString(
            tx_pb2.TxRaw.FromString(mock_client.simulated[0]).auth_info_bytes
        )
        assert [(c.denom, c.amount) for c in auth_info.fee.amount] == [("ustake", "100000")]
        assert tx.fee == [Coin("ustake", 60_000)]

    @pytest.mark.asyncio
    async def test_zero_gas_price_gives_empty_fee(
        self, mock_client, test_signer, send_msg, chain_params
    ):
        from dataclasses import replace

        params = replace(chain_params, gas_price=GasPrice.parse("0uatom"))
        builder = TransactionBuilder(mock_client, test_signer, params)

        _, tx = await builder.build(
            TransactionRequest.of(send_msg).with_gas_limit(100_000).with_fee_auto()
        )

        assert tx.fee == []


class TestTransactionBuilderErrors:
    """Tests that each failing phase is reported with its own error."""

    @pytest.mark.asyncio
    async def test_account_lookup_failure(self, mock_client, test_signer, send_msg):
        mock_client.fail = "get_account"
        builder = TransactionBuilder(mock_client, test_signer)

        with pytest.raises(AccountLookupError) as exc_info:
            await builder.build(TransactionRequest.of(send_msg))

        assert exc_info.value.phase == "account"
        assert exc_info.value.__cause__ is not None
        assert mock_client.calls["simulate_tx"] == 0

    @pytest.mark.asyncio
    async def test_missing_account(self, mock_client, test_signer, send_msg):
        mock_client.missing_account = True
        builder = TransactionBuilder(mock_client, test_signer)

        with pytest.raises(AccountLookupError, match="not found"):
            await builder.build(TransactionRequest.of(send_msg))

    @pytest.mark.asyncio
    async def test_simulation_failure(self, mock_client, test_signer, send_msg):
        mock_client.fail = "simulate_tx"
        builder = TransactionBuilder(mock_client, test_signer)

        with pytest.raises(SimulationError) as exc_info:
            await builder.build(TransactionRequest.of(send_msg).with_gas_auto())

        assert exc_info.value.phase == "simulation"
        assert mock_client.calls["get_chain_id"] == 0

    @pytest.mark.asyncio
    async def test_simulation_without_gas(self, mock_client, test_signer, send_msg):
        mock_client.gas_used = 0
        builder = TransactionBuilder(mock_client, test_signer)

        with pytest.raises(SimulationError, match="no gas"):
            await builder.build(TransactionRequest.of(send_msg).with_gas_auto())

    @pytest.mark.asyncio
    async def test_chain_id_failure(self, mock_client, test_signer, send_msg):
        mock_client.fail = "get_chain_id"
        builder = TransactionBuilder(mock_client, test_signer)

        with pytest.raises(ChainIDError) as exc_info:
            await builder.build(TransactionRequest.of(send_msg))

        assert exc_info.value.phase == "chain_id"

    @pytest.mark.asyncio
    async def test_signer_not_loaded(self, mock_client, test_config, send_msg):
        builder = TransactionBuilder(mock_client, TransactionSigner(test_config))

        with pytest.raises(SigningError):
            await builder.build(TransactionRequest.of(send_msg))

        assert mock_client.network_calls == 0

    @pytest.mark.asyncio
    async def test_errors_share_base_class(self, mock_client, test_signer, send_msg):
        mock_client.fail = "get_account"
        builder = TransactionBuilder(mock_client, test_signer)

        with pytest.raises(WalletError, match="^account: "):
            await builder.build(TransactionRequest.of(send_msg))
