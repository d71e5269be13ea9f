"""
Provider adapter.

The only module that talks to the injected wallet object. It converts
JSON-RPC shapes (hex quantities, receipts, error codes) into plain Python
values and ``WalletError`` subclasses. Nothing here retries.
"""

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Set, Tuple

from mnee_wallet.config import Settings, settings as default_settings
from mnee_wallet.providers.base import ACCOUNTS_CHANGED, CHAIN_CHANGED, EthereumProvider
from mnee_wallet.providers.injected import get_injected_provider
from mnee_wallet.services.chains import explorer_tx_url, to_hex_chain_id

from . import abi
from .errors import (
    ConfirmationTimeoutError,
    ProviderUnavailableError,
    TransactionRevertedError,
    WalletErrorKind,
    classify_provider_error,
)
from .models import TransactionReceipt


logger = logging.getLogger(__name__)

EventHandler = Callable[..., Optional[Awaitable[None]]]

SUPPORTED_EVENTS = (ACCOUNTS_CHANGED, CHAIN_CHANGED)


def _to_int(value: Any) -> int:
    if isinstance(value, int):
        return value
    text = str(value).strip()
    if text.startswith(("0x", "0X")):
        return int(text, 16)
    return int(text, 10)


class ProviderAdapter:
    """
    Stable interface over the injected wallet provider.

    The provider is resolved on every call (explicit one first, then the
    injected global), so a wallet that appears or disappears at runtime is
    picked up without rebuilding the adapter.
    """

    def __init__(
        self,
        provider: Optional[EthereumProvider] = None,
        config: Optional[Settings] = None,
    ):
        self._provider = provider
        self.config = config or default_settings
        self._subscriptions: Dict[Tuple[str, EventHandler], Callable[..., None]] = {}
        self._event_tasks: Set[asyncio.Task] = set()

    @property
    def provider(self) -> Optional[EthereumProvider]:
        return self._provider or get_injected_provider()

    @property
    def available(self) -> bool:
        return self.provider is not None

    def _require_provider(self) -> EthereumProvider:
        provider = self.provider
        if provider is None:
            raise ProviderUnavailableError()
        return provider

    async def _request(
        self,
        method: str,
        params: Optional[List[Any]] = None,
        failure: WalletErrorKind = WalletErrorKind.PROVIDER_ERROR,
    ) -> Any:
        provider = self._require_provider()
        try:
            return await provider.request(method, params or [])
        except Exception as e:
            error = classify_provider_error(e, fallback=failure)
            logger.warning(f"Provider request {method} failed: {error.kind.value}: {error.message}")
            raise error from e

    # =========================================================================
    # Accounts & network
    # =========================================================================

    async def list_accounts(self) -> List[str]:
        """Accounts already authorized for this origin. Never prompts."""
        accounts = await self._request("eth_accounts")
        return list(accounts or [])

    async def request_accounts(self) -> List[str]:
        """Prompt the user to authorize an account."""
        accounts = await self._request(
            "eth_requestAccounts",
            failure=WalletErrorKind.PROVIDER_UNAVAILABLE,
        )
        return list(accounts or [])

    async def get_network_id(self) -> int:
        chain_id = await self._request("eth_chainId")
        return _to_int(chain_id)

    async def request_network_switch(self, target_id: int) -> None:
        await self._request(
            "wallet_switchEthereumChain",
            [{"chainId": to_hex_chain_id(target_id)}],
            failure=WalletErrorKind.NETWORK_UNRECOGNIZED,
        )

    # =========================================================================
    # Reads
    # =========================================================================

    async def read_native_balance(self, address: str) -> int:
        balance = await self._request("eth_getBalance", [address, "latest"])
        return _to_int(balance)

    async def call_read(
        self,
        contract_address: str,
        function_signature: str,
        args: Sequence[Any] = (),
    ) -> Any:
        """Run an ``eth_call`` against one of the supported token functions and decode it."""
        calldata = abi.encode_call(function_signature, args)
        result = await self._request(
            "eth_call",
            [{"to": contract_address, "data": calldata}, "latest"],
        )
        try:
            return abi.decode_result(function_signature, result or "0x")
        except ValueError as e:
            raise classify_provider_error(e) from e

    # =========================================================================
    # Writes
    # =========================================================================

    async def submit_transfer(
        self,
        contract_address: str,
        sender: str,
        recipient: str,
        amount_smallest_unit: int,
    ) -> str:
        """Sign and broadcast ``transfer(recipient, amount)``; returns the transaction hash."""
        calldata = abi.encode_call(abi.TRANSFER, [recipient, amount_smallest_unit])
        tx_hash = await self._request(
            "eth_sendTransaction",
            [{"from": sender, "to": contract_address, "data": calldata, "value": "0x0"}],
            failure=WalletErrorKind.SUBMISSION_FAILED,
        )
        logger.info(f"Transaction submitted: {tx_hash}")
        return tx_hash

    async def await_confirmation(
        self,
        tx_hash: str,
        timeout_seconds: Optional[float] = None,
        poll_interval: Optional[float] = None,
        network_id: Optional[int] = None,
    ) -> TransactionReceipt:
        """
        Poll for the receipt of ``tx_hash``.

        Raises TransactionRevertedError when mined with status 0 and
        ConfirmationTimeoutError when no receipt arrives in time. Read errors
        while polling are logged and polling continues until the deadline.
        """
        timeout = timeout_seconds or self.config.confirmation_timeout_seconds
        interval = poll_interval or self.config.confirmation_poll_interval_seconds
        deadline = time.monotonic() + timeout

        while True:
            try:
                receipt = await self._request("eth_getTransactionReceipt", [tx_hash])
            except ProviderUnavailableError:
                raise
            except Exception as e:
                logger.warning(f"Error checking transaction status for {tx_hash}: {e}")
                receipt = None

            if receipt:
                # Pre-Byzantium receipts carry no status (absent or null)
                status = receipt.get("status")
                parsed = TransactionReceipt(
                    tx_hash=receipt.get("transactionHash", tx_hash),
                    block_number=_to_int(receipt["blockNumber"]) if receipt.get("blockNumber") else None,
                    status=_to_int(status) if status is not None else 1,
                    gas_used=_to_int(receipt["gasUsed"]) if receipt.get("gasUsed") else None,
                )
                if not parsed.succeeded:
                    raise TransactionRevertedError(
                        tx_hash,
                        details={"blockNumber": parsed.block_number, "gasUsed": parsed.gas_used},
                    )
                logger.info(f"Transaction confirmed: {tx_hash} (block {parsed.block_number})")
                return parsed

            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise ConfirmationTimeoutError(
                    tx_hash,
                    timeout,
                    explorer_url=explorer_tx_url(tx_hash, network_id),
                )
            await asyncio.sleep(min(interval, remaining))

    # =========================================================================
    # Events
    # =========================================================================

    def subscribe(self, event_name: str, handler: EventHandler) -> None:
        """
        Register ``handler`` for a provider event.

        Coroutine handlers are scheduled on the running loop; use
        ``wait_for_events()`` to await everything dispatched so far.
        """
        if event_name not in SUPPORTED_EVENTS:
            raise ValueError(f"Unsupported provider event: {event_name}")
        key = (event_name, handler)
        if key in self._subscriptions:
            return

        def dispatch(*args: Any) -> None:
            result = handler(*args)
            if asyncio.iscoroutine(result):
                task = asyncio.get_running_loop().create_task(result)
                self._event_tasks.add(task)
                task.add_done_callback(self._event_tasks.discard)

        provider = self._require_provider()
        provider.on(event_name, dispatch)
        self._subscriptions[key] = dispatch

    def unsubscribe(self, event_name: str, handler: EventHandler) -> None:
        dispatch = self._subscriptions.pop((event_name, handler), None)
        provider = self.provider
        if dispatch is not None and provider is not None:
            provider.remove_listener(event_name, dispatch)

    async def wait_for_events(self) -> None:
        """Await every event handler task dispatched so far."""
        while self._event_tasks:
            await asyncio.gather(*list(self._event_tasks))
