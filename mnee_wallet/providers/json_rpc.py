import itertools
import logging
from typing import Any, Dict, List, Optional

import httpx

from ..config import settings
from .base import (
    ACCOUNTS_CHANGED,
    CHAIN_CHANGED,
    UNRECOGNIZED_CHAIN_CODE,
    EthereumProvider,
    EventEmitterMixin,
    ProviderRpcError,
)


logger = logging.getLogger(__name__)


class JsonRpcWalletProvider(EventEmitterMixin, EthereumProvider):
    """
    Wallet provider backed by a JSON-RPC node.

    Intended for development nodes (anvil, hardhat) whose accounts are
    unlocked, so ``eth_sendTransaction`` is signed by the node itself.
    There is no user to prompt: account requests return the node's
    accounts and a network switch only succeeds when the node already
    serves the requested chain.
    """

    name = "json-rpc"

    def __init__(
        self,
        rpc_url: Optional[str] = None,
        timeout_s: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        super().__init__()
        self.rpc_url = rpc_url or settings.rpc_url
        self.timeout_s = timeout_s or settings.request_timeout_seconds
        self._client = client or httpx.AsyncClient(timeout=self.timeout_s)
        self._ids = itertools.count(1)
        self._last_accounts: Optional[List[str]] = None
        self._last_chain_id: Optional[str] = None

    async def _rpc_call(self, method: str, params: List[Any]) -> Any:
        payload = {
            "jsonrpc": "2.0",
            "method": method,
            "params": params,
            "id": next(self._ids),
        }

        response = await self._client.post(
            self.rpc_url,
            json=payload,
            headers={"Content-Type": "application/json"},
        )
        response.raise_for_status()
        data = response.json()

        if "error" in data:
            error = data["error"] or {}
            raise ProviderRpcError(
                code=int(error.get("code", -32603)),
                message=error.get("message", "RPC error"),
                data=error.get("data"),
            )

        return data.get("result")

    async def request(self, method: str, params: Optional[List[Any]] = None) -> Any:
        params = list(params or [])

        if method == "eth_requestAccounts":
            return await self._rpc_call("eth_accounts", [])

        if method == "wallet_switchEthereumChain":
            target = str(params[0]["chainId"]).lower()
            current = str(await self._rpc_call("eth_chainId", [])).lower()
            if int(target, 16) != int(current, 16):
                raise ProviderRpcError(
                    code=UNRECOGNIZED_CHAIN_CODE,
                    message=f"Node at {self.rpc_url} does not serve chain {target}",
                )
            return None

        return await self._rpc_call(method, params)

    async def poll_events(self) -> None:
        """Emit ``accountsChanged``/``chainChanged`` when the node state differs from the last poll."""
        accounts = await self._rpc_call("eth_accounts", [])
        chain_id = await self._rpc_call("eth_chainId", [])

        first_poll = self._last_accounts is None
        accounts_changed = not first_poll and accounts != self._last_accounts
        chain_changed = not first_poll and chain_id != self._last_chain_id

        self._last_accounts = list(accounts or [])
        self._last_chain_id = chain_id

        if chain_changed:
            logger.info(f"Node chain changed to {chain_id}")
            self.emit(CHAIN_CHANGED, chain_id)
        elif accounts_changed:
            logger.info(f"Node accounts changed ({len(self._last_accounts)} available)")
            self.emit(ACCOUNTS_CHANGED, list(self._last_accounts))

    async def health_check(self) -> Dict[str, Any]:
        if not self.rpc_url:
            return {"status": "unavailable", "reason": "RPC URL not configured"}

        try:
            chain_id = await self._rpc_call("eth_chainId", [])
            return {"status": "healthy", "chain_id": int(chain_id, 16)}
        except Exception as e:
            return {"status": "error", "reason": str(e)}

    async def close(self) -> None:
        """Close HTTP client."""
        await self._client.aclose()
