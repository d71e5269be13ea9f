"""
Shared fixtures for wallet tests.

``FakeWalletProvider`` stands in for an injected browser wallet: it answers
the JSON-RPC methods the wallet layer uses, records every call, and can be
told to fail, block, or emit events.
"""

import asyncio
from typing import Any, Callable, Dict, List, Optional

import pytest

from mnee_wallet.config import Settings
from mnee_wallet.core.wallet import ProviderAdapter, WalletSessionManager
from mnee_wallet.providers.base import (
    CHAIN_CHANGED,
    UNRECOGNIZED_CHAIN_CODE,
    USER_REJECTED_CODE,
    EthereumProvider,
    EventEmitterMixin,
    ProviderRpcError,
)
from mnee_wallet.providers.injected import clear_injected_provider


TOKEN_ADDRESS = "0x8ccedbAe4916b79da7F3F612EfB2EB93A2bFD6cF"
ALICE = "0xabc0000000000000000000000000000000000001"


def _abi_string(value: str) -> str:
    data = value.encode()
    padded = data.hex().ljust(((len(data) + 31) // 32) * 64 or 64, "0")
    return "0x" + format(32, "064x") + format(len(data), "064x") + padded


class FakeWalletProvider(EventEmitterMixin, EthereumProvider):
    """Scriptable in-memory wallet."""

    name = "fake"

    def __init__(
        self,
        accounts: Optional[List[str]] = None,
        authorized: Optional[List[str]] = None,
        chain_id: int = 1,
        native_balances: Optional[Dict[str, int]] = None,
        token_balances: Optional[Dict[str, int]] = None,
        decimals: int = 6,
        symbol: str = "MNEE",
        token_name: str = "MNEE USD Stablecoin",
        known_chains: Optional[List[int]] = None,
    ):
        super().__init__()
        self.prompt_accounts = list(accounts if accounts is not None else [ALICE])
        self.authorized = list(authorized or [])
        self.chain_id = chain_id
        self.native_balances = {k.lower(): v for k, v in (native_balances or {}).items()}
        self.token_balances = {k.lower(): v for k, v in (token_balances or {}).items()}
        self.decimals = decimals
        self.symbol = symbol
        self.token_name = token_name
        self.known_chains = set(known_chains or [1, 11155111, 137])
        self.emit_on_switch = False
        self.receipt_mode = "confirm"    # confirm | revert | pending
        self.sent: List[Dict[str, Any]] = []
        self.calls: List[tuple] = []
        self._failures: Dict[str, Exception] = {}
        self._gates: Dict[str, asyncio.Event] = {}
        self._tx_counter = 0
        self.on_receipt_poll: Optional[Callable[[], None]] = None

    # Scripting helpers -------------------------------------------------

    def fail(self, method: str, error: Exception) -> None:
        self._failures[method] = error

    def clear_failure(self, method: str) -> None:
        self._failures.pop(method, None)

    def hold(self, method: str) -> asyncio.Event:
        """Delay responses to ``method`` until the returned gate is set.

        A held request has already been answered against the state at send
        time; only the delivery of that answer waits.
        """
        gate = asyncio.Event()
        self._gates[method] = gate
        return gate

    def unhold(self, method: str) -> None:
        """Let later calls through; requests already waiting stay blocked until their gate is set."""
        self._gates.pop(method, None)

    def call_count(self, method: Optional[str] = None) -> int:
        if method is None:
            return len(self.calls)
        return sum(1 for m, _ in self.calls if m == method)

    def eth_call_count(self, selector: str) -> int:
        return sum(
            1 for m, p in self.calls
            if m == "eth_call" and p[0]["data"].startswith(selector)
        )

    # EthereumProvider --------------------------------------------------

    async def request(self, method: str, params: Optional[List[Any]] = None) -> Any:
        params = list(params or [])
        self.calls.append((method, params))

        # Answered against the wallet state at send time, like a real node
        failure = self._failures.get(method)
        result = None
        if failure is None:
            handler = getattr(self, "_" + method, None)
            if handler is None:
                failure = ProviderRpcError(4200, f"Unsupported method: {method}")
            else:
                try:
                    result = handler(params)
                except ProviderRpcError as e:
                    failure = e

        gate = self._gates.get(method)
        if gate is not None:
            await gate.wait()
        if failure is not None:
            raise failure
        return result

    def _eth_accounts(self, params: List[Any]) -> List[str]:
        return list(self.authorized)

    def _eth_requestAccounts(self, params: List[Any]) -> List[str]:
        if not self.prompt_accounts:
            raise ProviderRpcError(USER_REJECTED_CODE, "User rejected the request.")
        self.authorized = list(self.prompt_accounts)
        return list(self.authorized)

    def _eth_chainId(self, params: List[Any]) -> str:
        return hex(self.chain_id)

    def _eth_getBalance(self, params: List[Any]) -> str:
        return hex(self.native_balances.get(params[0].lower(), 0))

    def _eth_call(self, params: List[Any]) -> str:
        data = params[0]["data"]
        selector = data[:10]
        if selector == "0x313ce567":
            return "0x" + format(self.decimals, "064x")
        if selector == "0x70a08231":
            owner = "0x" + data[10:][-40:]
            return "0x" + format(self.token_balances.get(owner.lower(), 0), "064x")
        if selector == "0x95d89b41":
            return _abi_string(self.symbol)
        if selector == "0x06fdde03":
            return _abi_string(self.token_name)
        raise ProviderRpcError(-32000, "execution reverted")

    def _eth_sendTransaction(self, params: List[Any]) -> str:
        self._tx_counter += 1
        self.sent.append(params[0])
        return "0x" + format(self._tx_counter, "064x")

    def _eth_getTransactionReceipt(self, params: List[Any]) -> Optional[Dict[str, Any]]:
        if self.on_receipt_poll is not None:
            self.on_receipt_poll()
        if self.receipt_mode == "pending":
            return None
        return {
            "transactionHash": params[0],
            "blockNumber": "0x10",
            "gasUsed": "0x5208",
            "status": "0x1" if self.receipt_mode == "confirm" else "0x0",
        }

    def _wallet_switchEthereumChain(self, params: List[Any]) -> None:
        target = int(params[0]["chainId"], 16)
        if target not in self.known_chains:
            raise ProviderRpcError(UNRECOGNIZED_CHAIN_CODE, f"Unrecognized chain ID {hex(target)}")
        self.chain_id = target
        if self.emit_on_switch:
            self.emit(CHAIN_CHANGED, hex(target))
        return None


@pytest.fixture(autouse=True)
def _no_injected_provider():
    """Keep the process-wide provider slot empty between tests."""
    clear_injected_provider()
    yield
    clear_injected_provider()


@pytest.fixture
def wallet_settings() -> Settings:
    return Settings(
        rpc_url="",
        token_contract_address=TOKEN_ADDRESS,
        expected_chain_id=1,
        confirmation_timeout_seconds=0.2,
        confirmation_poll_interval_seconds=0.01,
    )


@pytest.fixture
def make_provider() -> Callable[..., FakeWalletProvider]:
    return FakeWalletProvider


@pytest.fixture
def fake_provider() -> FakeWalletProvider:
    return FakeWalletProvider(
        accounts=[ALICE],
        native_balances={ALICE: 1_250_000_000_000_000_000},
        token_balances={ALICE: 340_000_000},
    )


@pytest.fixture
def adapter(fake_provider: FakeWalletProvider, wallet_settings: Settings) -> ProviderAdapter:
    return ProviderAdapter(provider=fake_provider, config=wallet_settings)


@pytest.fixture
def manager(adapter: ProviderAdapter, wallet_settings: Settings) -> WalletSessionManager:
    return WalletSessionManager(adapter=adapter, config=wallet_settings)
