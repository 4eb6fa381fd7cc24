"""
Cosmos SDK adapter for ledger access.

Queries accounts, balances and gas through the Cosmos SDK REST gateway and
reads the chain id and broadcasts transactions through the CometBFT RPC.
"""

import base64
import itertools
from typing import Any, Dict, List, Optional

import httpx
import structlog

from cosmos_wallet.config import ChainParams, WalletConfig, get_config
from cosmos_wallet.core.coins import Coin
from cosmos_wallet.node.interface import (
    AccountNotFoundError,
    AccountSnapshot,
    BroadcastResult,
    LedgerClient,
    LedgerConnectionError,
    LedgerRequestError,
)

logger = structlog.get_logger(__name__)

# gRPC status code returned by the gateway for missing accounts
GRPC_NOT_FOUND = 5

# Keys under which Cosmos SDK account types nest their base account
_NESTED_ACCOUNT_KEYS = ("base_account", "base_vesting_account")


def _normalize_url(url: str) -> str:
    """CometBFT configs often use tcp://; httpx needs http://."""
    if url.startswith("tcp://"):
        return "http://" + url[len("tcp://"):]
    return url.rstrip("/")


def _parse_account(address: str, data: Dict[str, Any]) -> AccountSnapshot:
    """Extract account number and sequence from any supported account layout."""
    node = data
    while "account_number" not in node:
        for key in _NESTED_ACCOUNT_KEYS:
            if isinstance(node.get(key), dict):
                node = node[key]
                break
        else:
            raise LedgerRequestError(
                f"unsupported account type: {data.get('@type', 'unknown')}"
            )

    return AccountSnapshot(
        address=address,
        account_number=int(node.get("account_number", 0)),
        sequence=int(node.get("sequence", 0)),
    )


def _parse_broadcast_result(result: Dict[str, Any]) -> BroadcastResult:
    """Parse a broadcast_tx_async / broadcast_tx_sync result."""
    return BroadcastResult(
        tx_hash=result.get("hash", ""),
        code=int(result.get("code", 0)),
        codespace=result.get("codespace", ""),
        raw_log=result.get("log", ""),
        data=result.get("data", "") or "",
    )


def _parse_commit_result(result: Dict[str, Any]) -> BroadcastResult:
    """
    Parse a broadcast_tx_commit result.

    A transaction rejected by CheckTx reports the CheckTx outcome, otherwise
    the execution outcome is reported.
    """
    check_tx = result.get("check_tx") or {}
    if int(check_tx.get("code", 0)) != 0:
        outcome = check_tx
    else:
        outcome = result.get("tx_result") or result.get("deliver_tx") or {}

    return BroadcastResult(
        tx_hash=result.get("hash", ""),
        code=int(outcome.get("code", 0)),
        codespace=outcome.get("codespace", ""),
        raw_log=outcome.get("log", ""),
        data=outcome.get("data", "") or "",
        height=int(result.get("height", 0)),
        gas_wanted=int(outcome.get("gas_wanted", 0)),
        gas_used=int(outcome.get("gas_used", 0)),
        events=list(outcome.get("events") or []),
    )


class CosmosAdapter(LedgerClient):
    """
    Cosmos SDK adapter.

    Implements the LedgerClient using the REST gateway and CometBFT JSON-RPC.
    """

    def __init__(
        self,
        config: Optional[WalletConfig] = None,
        params: Optional[ChainParams] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the Cosmos adapter.

        Args:
            config: Wallet configuration. Uses global config if not provided.
            params: Chain parameters. Derived from the config if not provided.
            transport: Custom httpx transport (used by tests)
        """
        self.config = config or get_config()
        super().__init__(params or self.config.chain_params())
        self.rpc_url = _normalize_url(self.config.rpc_addr)
        self.api_url = _normalize_url(self.config.api_addr)
        self._transport = transport
        self._rpc: Optional[httpx.AsyncClient] = None
        self._api: Optional[httpx.AsyncClient] = None
        self._ids = itertools.count(1)

    async def connect(self) -> None:
        """Create the HTTP clients and check the node is reachable."""
        if self._rpc is not None:
            return

        timeout = self.config.request_timeout_seconds
        self._rpc = httpx.AsyncClient(
            base_url=self.rpc_url, timeout=timeout, transport=self._transport,
        )
        self._api = httpx.AsyncClient(
            base_url=self.api_url, timeout=timeout, transport=self._transport,
        )

        try:
            await self._rpc_call("health")
        except (LedgerConnectionError, LedgerRequestError) as e:
            await self.disconnect()
            raise LedgerConnectionError(f"Failed to connect to node: {e}") from e

        logger.info("cosmos_connected", rpc_url=self.rpc_url, api_url=self.api_url)

    async def disconnect(self) -> None:
        """Close the HTTP clients."""
        for client in (self._rpc, self._api):
            if client is not None:
                await client.aclose()
        if self._rpc is not None:
            logger.info("cosmos_disconnected")
        self._rpc = None
        self._api = None

    async def _ensure_connected(self) -> None:
        if self._rpc is None:
            await self.connect()

    async def _rpc_call(self, method: str, params: Optional[dict] = None) -> Any:
        """Make a CometBFT JSON-RPC call and return its result."""
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params or {},
        }

        try:
            response = await self._rpc.post("/", json=payload)
        except httpx.RequestError as e:
            logger.error("rpc_request_error", method=method, error=str(e))
            raise LedgerConnectionError(f"RPC request failed: {e}") from e

        try:
            body = response.json()
        except ValueError:
            raise LedgerRequestError(
                f"RPC error ({response.status_code}): {response.text}"
            )

        error = body.get("error")
        if error:
            message = error.get("message", "unknown error")
            if error.get("data"):
                message = f"{message}: {error['data']}"
            logger.error("rpc_request_failed", method=method, error=message)
            raise LedgerRequestError(message, code=error.get("code"))

        if response.status_code != 200:
            raise LedgerRequestError(f"RPC error ({response.status_code}): {response.text}")

        return body.get("result")

    async def _api_request(self, method: str, path: str, **kwargs) -> Any:
        """Make a REST gateway request. Returns None on 404."""
        await self._ensure_connected()

        try:
            response = await self._api.request(method, path, **kwargs)
        except httpx.RequestError as e:
            logger.error("api_request_error", path=path, error=str(e))
            raise LedgerConnectionError(f"API request failed: {e}") from e

        if response.status_code == 404:
            return None

        if response.status_code != 200:
            code = None
            message = response.text
            try:
                body = response.json()
                code = body.get("code")
                message = body.get("message", message)
            except ValueError:
                pass
            logger.error(
                "api_request_failed",
                path=path,
                status=response.status_code,
                error=message,
            )
            raise LedgerRequestError(f"API error: {message}", code=code)

        return response.json()

    async def get_account(self, address: str) -> AccountSnapshot:
        """Get account number and sequence."""
        try:
            data = await self._api_request("GET", f"/cosmos/auth/v1beta1/accounts/{address}")
        except LedgerRequestError as e:
            if e.code == GRPC_NOT_FOUND:
                raise AccountNotFoundError(f"account {address} not found", code=e.code) from e
            raise

        if not data or not data.get("account"):
            raise AccountNotFoundError(f"account {address} not found")

        account = _parse_account(address, data["account"])
        logger.debug(
            "account_fetched",
            address=address,
            account_number=account.account_number,
            sequence=account.sequence,
        )
        return account

    async def get_balances(self, address: str) -> List[Coin]:
        """Get all balances of an address, following pagination."""
        balances: List[Coin] = []
        next_key: Optional[str] = None

        while True:
            params = {"pagination.key": next_key} if next_key else None
            data = await self._api_request(
                "GET", f"/cosmos/bank/v1beta1/balances/{address}", params=params,
            )
            if not data:
                break

            for item in data.get("balances", []):
                balances.append(Coin(denom=item["denom"], amount=int(item["amount"])))

            next_key = (data.get("pagination") or {}).get("next_key")
            if not next_key:
                break

        logger.debug("balances_fetched", address=address, count=len(balances))
        return balances

    async def get_chain_id(self) -> str:
        """Get the chain id from the node status."""
        await self._ensure_connected()
        status = await self._rpc_call("status")
        try:
            return status["node_info"]["network"]
        except (KeyError, TypeError) as e:
            raise LedgerRequestError(f"malformed status response: {status}") from e

    async def simulate_tx(self, tx_bytes: bytes) -> int:
        """Simulate a transaction and return the gas it used."""
        data = await self._api_request(
            "POST",
            "/cosmos/tx/v1beta1/simulate",
            json={"tx_bytes": base64.b64encode(tx_bytes).decode()},
        )
        if not data:
            raise LedgerRequestError("simulation endpoint not available")

        try:
            return int(data["gas_info"]["gas_used"])
        except (KeyError, TypeError, ValueError) as e:
            raise LedgerRequestError(f"malformed simulation response: {data}") from e

    async def _broadcast(self, method: str, tx_bytes: bytes) -> Dict[str, Any]:
        await self._ensure_connected()
        return await self._rpc_call(method, {"tx": base64.b64encode(tx_bytes).decode()})

    async def broadcast_tx_async(self, tx_bytes: bytes) -> BroadcastResult:
        return _parse_broadcast_result(await self._broadcast("broadcast_tx_async", tx_bytes))

    async def broadcast_tx_sync(self, tx_bytes: bytes) -> BroadcastResult:
        return _parse_broadcast_result(await self._broadcast("broadcast_tx_sync", tx_bytes))

    async def broadcast_tx_commit(self, tx_bytes: bytes) -> BroadcastResult:
        return _parse_commit_result(await self._broadcast("broadcast_tx_commit", tx_bytes))
