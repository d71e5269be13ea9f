"""
Wallet session models.

The ``Session`` is an immutable snapshot; the session manager replaces it
wholesale on every transition, so a snapshot handed to a caller never
changes underneath them.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Generic, List, Optional, TypeVar

from .errors import WalletError


T = TypeVar("T")


class ConnectionStatus(str, Enum):
    """Connection state of the wallet session."""
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"    # Transient, always resolves
    CONNECTED = "connected"


class PendingTransactionStatus(str, Enum):
    """Lifecycle of an in-flight transfer."""
    BUILDING = "building"
    AWAITING_SIGNATURE = "awaiting_signature"
    SUBMITTED = "submitted"
    CONFIRMED = "confirmed"
    FAILED = "failed"


@dataclass(frozen=True)
class Session:
    """Process-wide wallet state. ``address`` is set iff the status is CONNECTED."""
    address: Optional[str] = None
    network_id: Optional[int] = None
    connection_status: ConnectionStatus = ConnectionStatus.DISCONNECTED
    native_balance: str = "0"
    token_balance: str = "0"
    expected_network_id: Optional[int] = None
    epoch: int = 0

    @property
    def is_connected(self) -> bool:
        return self.connection_status == ConnectionStatus.CONNECTED

    @property
    def wrong_network(self) -> bool:
        """Standing warning: connected, but not on the chain the app expects."""
        if not self.is_connected or self.expected_network_id is None:
            return False
        return self.network_id != self.expected_network_id

    def to_dict(self) -> Dict[str, Any]:
        return {
            "address": self.address,
            "networkId": self.network_id,
            "connectionStatus": self.connection_status.value,
            "nativeBalance": self.native_balance,
            "tokenBalance": self.token_balance,
            "expectedNetworkId": self.expected_network_id,
            "wrongNetwork": self.wrong_network,
            "epoch": self.epoch,
        }


@dataclass(frozen=True)
class TokenMetadata:
    """On-chain token metadata; immutable once fetched."""
    decimals: int
    symbol: str
    name: str


@dataclass
class BalanceSnapshot:
    """Result of one balance sync. A ``None`` balance means that read failed."""
    address: str
    native: Optional[str] = None
    token: Optional[str] = None
    errors: Dict[str, WalletError] = field(default_factory=dict)

    @property
    def complete(self) -> bool:
        return not self.errors


@dataclass(frozen=True)
class TransactionReceipt:
    tx_hash: str
    block_number: Optional[int] = None
    status: int = 1
    gas_used: Optional[int] = None

    @property
    def succeeded(self) -> bool:
        return self.status == 1


@dataclass
class PendingTransaction:
    """An in-flight transfer. Discarded once confirmed or failed."""
    recipient: str
    amount: str
    status: PendingTransactionStatus = PendingTransactionStatus.BUILDING
    submitted_hash: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.utcnow)

    @property
    def is_final(self) -> bool:
        return self.status in (
            PendingTransactionStatus.CONFIRMED,
            PendingTransactionStatus.FAILED,
        )


@dataclass
class WalletResult(Generic[T]):
    """Structured outcome of a consumer-facing wallet call."""
    value: Optional[T] = None
    error: Optional[WalletError] = None
    warnings: List[WalletError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: Optional[T] = None, warnings: Optional[List[WalletError]] = None) -> "WalletResult[T]":
        return cls(value=value, warnings=list(warnings or []))

    @classmethod
    def failure(
        cls,
        error: WalletError,
        value: Optional[T] = None,
        warnings: Optional[List[WalletError]] = None,
    ) -> "WalletResult[T]":
        return cls(value=value, error=error, warnings=list(warnings or []))
