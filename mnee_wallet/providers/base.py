from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional


ACCOUNTS_CHANGED = "accountsChanged"
CHAIN_CHANGED = "chainChanged"

# EIP-1193 / MetaMask error codes
USER_REJECTED_CODE = 4001
UNAUTHORIZED_CODE = 4100
UNSUPPORTED_METHOD_CODE = 4200
DISCONNECTED_CODE = 4900
CHAIN_DISCONNECTED_CODE = 4901
UNRECOGNIZED_CHAIN_CODE = 4902
REQUEST_PENDING_CODE = -32002


class ProviderRpcError(Exception):
    """Error raised by an injected provider, shaped like an EIP-1193 ProviderRpcError."""

    def __init__(self, code: int, message: str, data: Any = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.data = data

    def __repr__(self) -> str:
        return f"ProviderRpcError(code={self.code}, message={self.message!r})"


class EthereumProvider(ABC):
    """
    Injected wallet provider interface.

    Mirrors the object a browser wallet exposes as ``window.ethereum``:
    a single ``request`` entry point plus an event emitter.
    """

    name: str = "provider"

    @abstractmethod
    async def request(self, method: str, params: Optional[List[Any]] = None) -> Any:
        """Send a JSON-RPC request through the wallet"""
        pass

    @abstractmethod
    def on(self, event: str, callback: Callable[..., Any]) -> None:
        """Subscribe to a provider event"""
        pass

    @abstractmethod
    def remove_listener(self, event: str, callback: Callable[..., Any]) -> None:
        """Unsubscribe from a provider event"""
        pass


class EventEmitterMixin:
    """In-process listener registry implementing ``on``/``remove_listener``."""

    def __init__(self) -> None:
        self._listeners: Dict[str, List[Callable[..., Any]]] = {}

    def on(self, event: str, callback: Callable[..., Any]) -> None:
        self._listeners.setdefault(event, []).append(callback)

    def remove_listener(self, event: str, callback: Callable[..., Any]) -> None:
        listeners = self._listeners.get(event, [])
        if callback in listeners:
            listeners.remove(callback)

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, []))

    def emit(self, event: str, *args: Any) -> None:
        """Invoke every listener for ``event`` in registration order."""
        for callback in list(self._listeners.get(event, [])):
            callback(*args)
