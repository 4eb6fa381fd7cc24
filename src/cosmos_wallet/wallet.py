"""
Wallet - builds, signs and broadcasts transactions for one account.
"""

from typing import Optional, Tuple

import structlog

from cosmos_wallet.address import derive_address
from cosmos_wallet.config import ChainParams
from cosmos_wallet.core.request import TransactionRequest
from cosmos_wallet.core.response import BroadcastMode, TransactionResponse
from cosmos_wallet.node.interface import AccountSnapshot, LedgerClient
from cosmos_wallet.tx.broadcaster import BroadcastDispatcher
from cosmos_wallet.tx.builder import TransactionBuilder
from cosmos_wallet.tx.errors import BroadcastError
from cosmos_wallet.tx.signer import TransactionSigner
from cosmos_wallet.tx.transaction import SignedTransaction

logger = structlog.get_logger(__name__)


class Wallet:
    """
    A Cosmos wallet used to create and send transactions to the chain.

    Usage:
        ```python
        async with CosmosAdapter(config) as client:
            wallet = Wallet(signer, client)
            request = TransactionRequest.of(msg).with_gas_auto().with_fee_auto()
            response = await wallet.broadcast_tx_sync(request)
        ```

    Concurrent builds for the same account are not coordinated. Callers that
    sign in parallel must serialize them or pass distinct sequence overrides.
    """

    def __init__(
        self,
        signer: TransactionSigner,
        client: LedgerClient,
        params: Optional[ChainParams] = None,
    ):
        """
        Initialize the wallet.

        Args:
            signer: Signer holding the account's private key
            client: Ledger client used for queries and broadcasts
            params: Chain parameters (defaults to the client's)
        """
        self.signer = signer
        self.client = client
        self.params = params or client.params
        self.builder = TransactionBuilder(client, signer, self.params)
        self.dispatcher = BroadcastDispatcher(client)

    @property
    def address(self) -> str:
        """Address of the account used to sign transactions."""
        return derive_address(self.signer.public_key, self.params.bech32_prefix)

    async def build_tx(
        self,
        request: TransactionRequest,
    ) -> Tuple[AccountSnapshot, SignedTransaction]:
        """Build and sign a transaction without broadcasting it."""
        return await self.builder.build(request)

    async def broadcast_tx(
        self,
        request: TransactionRequest,
        mode: BroadcastMode,
    ) -> TransactionResponse:
        """
        Build, sign and broadcast a transaction with the given mode.

        Raises:
            WalletError: Subclass naming the phase that failed. A
                BroadcastError carries the built account and transaction.
        """
        account, tx = await self.build_tx(request)
        response = TransactionResponse().with_account(account).with_tx(tx)

        try:
            result = await self.dispatcher.dispatch(tx, mode)
        except BroadcastError as e:
            e.response = response
            raise

        return response.with_result(result)

    async def broadcast_tx_async(self, request: TransactionRequest) -> TransactionResponse:
        """Broadcast without waiting for the node to check the transaction."""
        return await self.broadcast_tx(request, BroadcastMode.ASYNC)

    async def broadcast_tx_sync(self, request: TransactionRequest) -> TransactionResponse:
        """Broadcast and wait for mempool admission."""
        return await self.broadcast_tx(request, BroadcastMode.SYNC)

    async def broadcast_tx_commit(self, request: TransactionRequest) -> TransactionResponse:
        """Broadcast and wait for the transaction to be committed."""
        return await self.broadcast_tx(request, BroadcastMode.COMMIT)
