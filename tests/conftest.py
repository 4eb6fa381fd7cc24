"""
Pytest configuration and shared fixtures for the test suite.
"""

import hashlib
from collections import Counter
from decimal import Decimal
from typing import List, Optional

import pytest

from cosmpy.protos.cosmos.bank.v1beta1 import tx_pb2 as bank_tx_pb2

from cosmos_wallet.address import derive_address
from cosmos_wallet.config import ChainParams, WalletConfig
from cosmos_wallet.core.coins import Coin, GasPrice
from cosmos_wallet.node.interface import (
    AccountNotFoundError,
    AccountSnapshot,
    BroadcastResult,
    LedgerClient,
    LedgerConnectionError,
)
from cosmos_wallet.tx.signer import TransactionSigner
from cosmos_wallet.tx.transaction import msg_send


# Fixed key so that addresses and signatures are reproducible across runs
TEST_PRIVATE_KEY_HEX = "1f" * 32

RECIPIENT = derive_address(bytes.fromhex("02" + "11" * 32), "cosmos")


# ============================================================================
# Configuration Fixtures
# ============================================================================

@pytest.fixture
def test_config() -> WalletConfig:
    """Create a test configuration."""
    return WalletConfig(
        bech32_prefix="cosmos",
        gas_price="0.025uatom",
        gas_adjustment=1.5,
        rpc_addr="http://rpc.test",
        api_addr="http://api.test",
        private_key_hex=TEST_PRIVATE_KEY_HEX,
        log_level="DEBUG",
    )


@pytest.fixture
def chain_params() -> ChainParams:
    return ChainParams(
        bech32_prefix="cosmos",
        gas_price=GasPrice.parse("0.025uatom"),
        gas_adjustment=Decimal("1.5"),
    )


# ============================================================================
# Mock Ledger Client
# ============================================================================

class MockLedgerClient(LedgerClient):
    """Mock ledger client recording every call it receives."""

    def __init__(self, params: ChainParams):
        super().__init__(params)
        self.calls: Counter = Counter()
        self.order: List[str] = []
        self.account_number = 7
        self.sequence = 2
        self.chain_id = "cosmoshub-test"
        self.gas_used = 80_000
        self.broadcast_code = 0
        self.simulated: List[bytes] = []
        self.broadcasts: List[tuple] = []
        self.fail: Optional[str] = None
        self.missing_account = False

    def _maybe_fail(self, operation: str) -> None:
        self.calls[operation] += 1
        self.order.append(operation)
        if self.fail == operation:
            raise LedgerConnectionError(f"{operation} unavailable")

    @property
    def network_calls(self) -> int:
        return sum(self.calls.values())

    async def connect(self) -> None:
        pass

    async def disconnect(self) -> None:
        pass

    async def get_account(self, address: str) -> AccountSnapshot:
        self._maybe_fail("get_account")
        if self.missing_account:
            raise AccountNotFoundError(f"account {address} not found")
        return AccountSnapshot(
            address=address,
            account_number=self.account_number,
            sequence=self.sequence,
        )

    async def get_balances(self, address: str) -> List[Coin]:
        self._maybe_fail("get_balances")
        return [Coin("uatom", 1_000_000)]

    async def get_chain_id(self) -> str:
        self._maybe_fail("get_chain_id")
        return self.chain_id

    async def simulate_tx(self, tx_bytes: bytes) -> int:
        self._maybe_fail("simulate_tx")
        self.simulated.append(tx_bytes)
        return self.gas_used

    def _result(self, tx_bytes: bytes, commit: bool) -> BroadcastResult:
        tx_hash = hashlib.sha256(tx_bytes).hexdigest().upper()
        if not commit:
            return BroadcastResult(tx_hash=tx_hash, code=self.broadcast_code)
        return BroadcastResult(
            tx_hash=tx_hash,
            code=self.broadcast_code,
            height=100,
            gas_wanted=120_000,
            gas_used=81_234,
            events=[{"type": "transfer", "attributes": []}],
        )

    async def broadcast_tx_async(self, tx_bytes: bytes) -> BroadcastResult:
        self._maybe_fail("broadcast_tx_async")
        self.broadcasts.append(("async", tx_bytes))
        return self._result(tx_bytes, commit=False)

    async def broadcast_tx_sync(self, tx_bytes: bytes) -> BroadcastResult:
        self._maybe_fail("broadcast_tx_sync")
        self.broadcasts.append(("sync", tx_bytes))
        return self._result(tx_bytes, commit=False)

    async def broadcast_tx_commit(self, tx_bytes: bytes) -> BroadcastResult:
        self._maybe_fail("broadcast_tx_commit")
        self.broadcasts.append(("commit", tx_bytes))
        return self._result(tx_bytes, commit=True)


@pytest.fixture
def mock_client(chain_params) -> MockLedgerClient:
    """Create a mock ledger client."""
    return MockLedgerClient(chain_params)


# ============================================================================
# Test Signer and Messages
# ============================================================================

@pytest.fixture
def test_signer(test_config) -> TransactionSigner:
    """Create a signer holding the fixed test key."""
    signer = TransactionSigner(test_config)
    signer.load_key_from_hex(TEST_PRIVATE_KEY_HEX)
    return signer


@pytest.fixture
def send_msg(test_signer) -> bank_tx_pb2.MsgSend:
    """A bank transfer from the test signer."""
    return msg_send(
        test_signer.address("cosmos"),
        RECIPIENT,
        [Coin("uatom", 1000)],
    )
