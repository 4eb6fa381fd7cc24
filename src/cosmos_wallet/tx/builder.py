"""
Transaction Builder - constructs and signs transactions.

Turns a TransactionRequest into a signed transaction, resolving the account
state, gas limit and fee against the ledger.
"""

from decimal import Decimal, ROUND_CEILING, localcontext
from typing import List, Optional, Tuple

import structlog

from cosmos_wallet.address import derive_address
from cosmos_wallet.config import ChainParams
from cosmos_wallet.core.coins import Coin
from cosmos_wallet.core.request import TransactionRequest
from cosmos_wallet.node.interface import AccountSnapshot, LedgerClient
from cosmos_wallet.tx.errors import (
    AccountLookupError,
    ChainIDError,
    EmptyMessagesError,
    SigningError,
    SimulationError,
)
from cosmos_wallet.tx.signer import TransactionSigner
from cosmos_wallet.tx.transaction import (
    DraftTransaction,
    FinalizedTransaction,
    SignedTransaction,
    SignerData,
)

logger = structlog.get_logger(__name__)

# Gas limit used while simulating; only needs to be large enough to run
SIMULATION_GAS_LIMIT = 200_000


def adjust_gas(gas_used: int, adjustment: Decimal) -> int:
    """Apply the safety factor to a simulated gas usage, rounding up."""
    with localcontext() as ctx:
        ctx.prec = 80
        adjusted = (Decimal(gas_used) * adjustment).to_integral_value(rounding=ROUND_CEILING)
    return int(adjusted)


class TransactionBuilder:
    """
    Builds and signs transactions.

    Coordinates between the ledger client and the signer to produce signed
    transactions. The steps always run in the same order: account, gas,
    fee, then signature. No state is kept between builds.
    """

    def __init__(
        self,
        client: LedgerClient,
        signer: TransactionSigner,
        params: Optional[ChainParams] = None,
    ):
        """
        Initialize the transaction builder.

        Args:
            client: Ledger client for chain queries
            signer: Transaction signer
            params: Chain parameters (defaults to the client's)
        """
        self.client = client
        self.signer = signer
        self.params = params or client.params

    async def build(
        self,
        request: TransactionRequest,
    ) -> Tuple[AccountSnapshot, SignedTransaction]:
        """
        Build and sign a transaction.

        Args:
            request: What to include in the transaction

        Returns:
            The account used to sign and the signed transaction

        Raises:
            EmptyMessagesError: If the request has no messages
            AccountLookupError: If the signer account cannot be fetched
            SimulationError: If gas simulation fails
            ChainIDError: If the chain id cannot be fetched
            SigningError: If the key is missing or signing fails
        """
        if not request.messages:
            raise EmptyMessagesError("cannot build a transaction with no messages")

        if not self.signer.is_loaded:
            raise SigningError("signer key not loaded")

        address = derive_address(self.signer.public_key, self.params.bech32_prefix)
        account = await self._fetch_account(address, request.sequence)

        logger.info(
            "building_transaction",
            address=address,
            messages=len(request.messages),
            sequence=account.sequence,
        )

        draft = DraftTransaction.from_request(request)

        gas_limit = await self._resolve_gas(request, draft, account)
        fee = self._resolve_fee(request, gas_limit)
        finalized = draft.finalize(gas_limit, fee)

        chain_id = await self._fetch_chain_id()

        signed_tx = self._sign(finalized, SignerData(
            chain_id=chain_id,
            account_number=account.account_number,
            sequence=account.sequence,
        ))

        logger.info(
            "transaction_built",
            tx_hash=signed_tx.tx_hash[:16] + "...",
            gas_limit=gas_limit,
            fee=",".join(str(c) for c in fee),
        )

        return account, signed_tx

    async def _fetch_account(
        self,
        address: str,
        sequence: Optional[int],
    ) -> AccountSnapshot:
        try:
            account = await self.client.get_account(address)
        except Exception as e:
            logger.error("account_lookup_failed", address=address, error=str(e))
            raise AccountLookupError(
                f"error while getting the account from the chain: {e}"
            ) from e

        # Only a positive override replaces the fetched sequence
        if sequence is not None and sequence > 0:
            account = account.with_sequence(sequence)

        return account

    async def _resolve_gas(
        self,
        request: TransactionRequest,
        draft: DraftTransaction,
        account: AccountSnapshot,
    ) -> int:
        if request.gas_auto:
            return await self.simulate(draft, account)
        return request.gas.value

    async def simulate(self, draft: DraftTransaction, account: AccountSnapshot) -> int:
        """
        Simulate a draft and return the adjusted gas limit to use.

        Raises:
            SimulationError: If the simulation fails or uses no gas
        """
        placeholder = draft.finalize(
            SIMULATION_GAS_LIMIT,
            self.params.gas_price.fees_for(SIMULATION_GAS_LIMIT),
        )

        try:
            gas_used = await self.client.simulate_tx(
                placeholder.simulation_bytes(account.sequence)
            )
        except Exception as e:
            logger.error("gas_simulation_failed", error=str(e))
            raise SimulationError(f"error while simulating tx: {e}") from e

        if not gas_used or gas_used <= 0:
            raise SimulationError(f"simulation reported no gas usage: {gas_used}")

        gas_limit = adjust_gas(gas_used, self.params.gas_adjustment)
        logger.debug("gas_simulated", gas_used=gas_used, gas_limit=gas_limit)
        return gas_limit

    def _resolve_fee(self, request: TransactionRequest, gas_limit: int) -> List[Coin]:
        if request.fee_auto:
            return self.params.gas_price.fees_for(gas_limit)
        return request.fee_coins()

    async def _fetch_chain_id(self) -> str:
        try:
            return await self.client.get_chain_id()
        except Exception as e:
            logger.error("chain_id_lookup_failed", error=str(e))
            raise ChainIDError(f"error while getting chain id: {e}") from e

    def _sign(self, tx: FinalizedTransaction, signer_data: SignerData) -> SignedTransaction:
        try:
            return self.signer.sign_transaction(tx, signer_data)
        except Exception as e:
            logger.error("transaction_signing_failed", error=str(e))
            raise SigningError(f"error while signing the transaction: {e}") from e
