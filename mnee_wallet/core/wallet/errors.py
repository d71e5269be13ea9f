"""
Wallet error taxonomy.

Every failure the wallet layer reports is a ``WalletError`` carrying a
``WalletErrorKind``. Provider exceptions are normalized here so that
provider-specific error shapes never reach callers.
"""

from enum import Enum
from typing import Any, Dict, Optional

from mnee_wallet.providers.base import (
    CHAIN_DISCONNECTED_CODE,
    DISCONNECTED_CODE,
    REQUEST_PENDING_CODE,
    UNAUTHORIZED_CODE,
    UNRECOGNIZED_CHAIN_CODE,
    USER_REJECTED_CODE,
)


class WalletErrorKind(str, Enum):
    """Classified outcomes of a failed wallet operation."""

    PROVIDER_UNAVAILABLE = "ProviderUnavailable"
    USER_REJECTED = "UserRejected"
    WRONG_NETWORK = "WrongNetwork"
    NETWORK_UNRECOGNIZED = "NetworkUnrecognized"
    BALANCE_FETCH_FAILED = "BalanceFetchFailed"
    INVALID_AMOUNT = "InvalidAmount"
    INVALID_RECIPIENT = "InvalidRecipient"
    SUBMISSION_FAILED = "SubmissionFailed"
    TRANSACTION_REVERTED = "TransactionReverted"
    TIMEOUT = "Timeout"
    ALREADY_CONNECTING = "AlreadyConnecting"
    NOT_CONNECTED = "NotConnected"
    PROVIDER_ERROR = "ProviderError"


class WalletError(Exception):
    """Base class for classified wallet failures."""

    kind: WalletErrorKind = WalletErrorKind.PROVIDER_ERROR
    recoverable: bool = True
    suggested_action: Optional[str] = None

    def __init__(
        self,
        message: str,
        tx_hash: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.tx_hash = tx_hash
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Error payload handed to callers."""
        return {
            "kind": self.kind.value,
            "message": self.message,
            "recoverable": self.recoverable,
            "suggestedAction": self.suggested_action,
            "txHash": self.tx_hash,
            "details": self.details,
        }

    def __repr__(self) -> str:
        return f"{type(self).__name__}(kind={self.kind.value}, message={self.message!r})"


class ProviderUnavailableError(WalletError):
    kind = WalletErrorKind.PROVIDER_UNAVAILABLE
    recoverable = False
    suggested_action = "Install or enable a wallet extension"

    def __init__(self, message: str = "No wallet provider detected", **kwargs: Any):
        super().__init__(message, **kwargs)


class UserRejectedError(WalletError):
    kind = WalletErrorKind.USER_REJECTED

    def __init__(self, message: str = "Request rejected by user", **kwargs: Any):
        super().__init__(message, **kwargs)


class WrongNetworkError(WalletError):
    """Standing warning: the wallet is on a different chain than expected."""

    kind = WalletErrorKind.WRONG_NETWORK
    suggested_action = "Switch the wallet to the expected network"

    def __init__(self, network_id: Optional[int], expected_network_id: int):
        super().__init__(
            f"Connected to network {network_id}, expected {expected_network_id}",
            details={"networkId": network_id, "expectedNetworkId": expected_network_id},
        )


class NetworkUnrecognizedError(WalletError):
    kind = WalletErrorKind.NETWORK_UNRECOGNIZED
    recoverable = False
    suggested_action = "Add the network to the wallet before switching"

    def __init__(self, message: str = "Network not recognized by wallet", **kwargs: Any):
        super().__init__(message, **kwargs)


class BalanceFetchFailedError(WalletError):
    kind = WalletErrorKind.BALANCE_FETCH_FAILED
    suggested_action = "Retry with refresh_balances()"

    def __init__(self, message: str = "Balance read failed", **kwargs: Any):
        super().__init__(message, **kwargs)


class InvalidAmountError(WalletError):
    kind = WalletErrorKind.INVALID_AMOUNT
    recoverable = False

    def __init__(self, message: str = "Invalid amount", amount: Any = None):
        super().__init__(message, details={"amount": amount} if amount is not None else {})


class InvalidRecipientError(WalletError):
    kind = WalletErrorKind.INVALID_RECIPIENT
    recoverable = False

    def __init__(self, recipient: Any):
        super().__init__(f"Invalid recipient address: {recipient!r}", details={"recipient": recipient})


class SubmissionFailedError(WalletError):
    kind = WalletErrorKind.SUBMISSION_FAILED
    suggested_action = "Check gas and token balance, then retry"

    def __init__(self, message: str = "Transaction submission failed", **kwargs: Any):
        super().__init__(message, **kwargs)


class TransactionRevertedError(WalletError):
    """The transaction was mined and reverted; gas was consumed."""

    kind = WalletErrorKind.TRANSACTION_REVERTED
    recoverable = False
    suggested_action = "Review transaction parameters"

    def __init__(self, tx_hash: str, message: str = "Transaction reverted", **kwargs: Any):
        super().__init__(message, tx_hash=tx_hash, **kwargs)


class ConfirmationTimeoutError(WalletError):
    """
    No receipt arrived within the confirmation bound.

    The transaction may still be mined; the outcome is unknown, not failed.
    """

    kind = WalletErrorKind.TIMEOUT
    suggested_action = "Status unknown, check the transaction on a block explorer"

    def __init__(self, tx_hash: str, timeout_seconds: float, explorer_url: Optional[str] = None):
        super().__init__(
            f"No confirmation for {tx_hash} after {timeout_seconds:g}s; status unknown",
            tx_hash=tx_hash,
            details={
                "outcome": "unknown",
                "timeoutSeconds": timeout_seconds,
                "explorerUrl": explorer_url,
            },
        )


class AlreadyConnectingError(WalletError):
    kind = WalletErrorKind.ALREADY_CONNECTING

    def __init__(self, message: str = "A connection request is already in progress", **kwargs: Any):
        super().__init__(message, **kwargs)


class NotConnectedError(WalletError):
    kind = WalletErrorKind.NOT_CONNECTED
    suggested_action = "Connect the wallet first"

    def __init__(self, message: str = "Wallet not connected", **kwargs: Any):
        super().__init__(message, **kwargs)


class ProviderError(WalletError):
    kind = WalletErrorKind.PROVIDER_ERROR

    def __init__(self, message: str = "Wallet provider error", **kwargs: Any):
        super().__init__(message, **kwargs)


_REJECTION_PATTERNS = ("user rejected", "user denied", "rejected by user", "action_rejected")

_FALLBACKS = {
    WalletErrorKind.PROVIDER_UNAVAILABLE: ProviderUnavailableError,
    WalletErrorKind.SUBMISSION_FAILED: SubmissionFailedError,
    WalletErrorKind.BALANCE_FETCH_FAILED: BalanceFetchFailedError,
    WalletErrorKind.NETWORK_UNRECOGNIZED: NetworkUnrecognizedError,
    WalletErrorKind.PROVIDER_ERROR: ProviderError,
}


def classify_provider_error(
    error: Exception,
    fallback: WalletErrorKind = WalletErrorKind.PROVIDER_ERROR,
) -> WalletError:
    """
    Normalize an exception raised by a provider into a ``WalletError``.

    EIP-1193 codes are checked first, then message patterns. Anything
    unrecognized becomes the ``fallback`` kind for the calling operation.
    """
    if isinstance(error, WalletError):
        return error

    code = getattr(error, "code", None)
    message = getattr(error, "message", None) or str(error) or type(error).__name__
    lowered = message.lower()
    details: Dict[str, Any] = {"providerMessage": message}
    if code is not None:
        details["providerCode"] = code

    if code == USER_REJECTED_CODE or any(p in lowered for p in _REJECTION_PATTERNS):
        return UserRejectedError(details=details)
    if code == UNRECOGNIZED_CHAIN_CODE:
        return NetworkUnrecognizedError(message, details=details)
    if code == REQUEST_PENDING_CODE:
        return AlreadyConnectingError("A wallet request is already pending", details=details)
    if code in (UNAUTHORIZED_CODE, DISCONNECTED_CODE, CHAIN_DISCONNECTED_CODE):
        return ProviderUnavailableError(message, details=details)

    error_cls = _FALLBACKS.get(fallback, ProviderError)
    return error_cls(message, details=details)
