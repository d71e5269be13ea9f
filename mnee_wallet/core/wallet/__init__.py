"""
Wallet Session Module

Connects to the injected wallet provider and tracks the marketplace's
wallet session:
- WalletSessionManager: connect, disconnect, switch network, refresh balances
- BalanceSynchronizer: native + token balances as display strings
- TransactionSubmitter: token transfers with submission/confirmation checkpoints
- ProviderAdapter: the only code that talks to the provider

Usage:
    from mnee_wallet.core.wallet import get_wallet_session_manager

    manager = get_wallet_session_manager()
    await manager.start()                 # probes, never prompts

    result = await manager.connect()      # prompts the wallet
    if not result.ok:
        print(result.error.kind, result.error.message)

    transfer = await manager.transfer(
        "0x...",
        "10.00",
        on_submitted=lambda tx_hash: record_pending(tx_hash),
    )
    if transfer.ok:
        print("confirmed", transfer.value)
"""

from .models import (
    BalanceSnapshot,
    ConnectionStatus,
    PendingTransaction,
    PendingTransactionStatus,
    Session,
    TokenMetadata,
    TransactionReceipt,
    WalletResult,
)
from .errors import (
    WalletErrorKind,
    WalletError,
    ProviderUnavailableError,
    UserRejectedError,
    WrongNetworkError,
    NetworkUnrecognizedError,
    BalanceFetchFailedError,
    InvalidAmountError,
    InvalidRecipientError,
    SubmissionFailedError,
    TransactionRevertedError,
    ConfirmationTimeoutError,
    AlreadyConnectingError,
    NotConnectedError,
    ProviderError,
    classify_provider_error,
)
from .adapter import ProviderAdapter
from .balances import BalanceSynchronizer, TokenMetadataCache
from .transfers import TransactionSubmitter
from .session_manager import (
    InvalidTransitionError,
    WalletSessionManager,
    get_wallet_session_manager,
    reset_wallet_session_manager,
)

__all__ = [
    # Models
    "BalanceSnapshot",
    "ConnectionStatus",
    "PendingTransaction",
    "PendingTransactionStatus",
    "Session",
    "TokenMetadata",
    "TransactionReceipt",
    "WalletResult",
    # Errors
    "WalletErrorKind",
    "WalletError",
    "ProviderUnavailableError",
    "UserRejectedError",
    "WrongNetworkError",
    "NetworkUnrecognizedError",
    "BalanceFetchFailedError",
    "InvalidAmountError",
    "InvalidRecipientError",
    "SubmissionFailedError",
    "TransactionRevertedError",
    "ConfirmationTimeoutError",
    "AlreadyConnectingError",
    "NotConnectedError",
    "ProviderError",
    "classify_provider_error",
    # Components
    "ProviderAdapter",
    "BalanceSynchronizer",
    "TokenMetadataCache",
    "TransactionSubmitter",
    "InvalidTransitionError",
    "WalletSessionManager",
    "get_wallet_session_manager",
    "reset_wallet_session_manager",
]
