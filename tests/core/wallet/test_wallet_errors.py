"""
Tests for the wallet error taxonomy and provider error normalization.
"""

import pytest

from mnee_wallet.core.wallet import (
    AlreadyConnectingError,
    BalanceFetchFailedError,
    ConfirmationTimeoutError,
    NetworkUnrecognizedError,
    ProviderError,
    ProviderUnavailableError,
    SubmissionFailedError,
    TransactionRevertedError,
    UserRejectedError,
    WalletError,
    WalletErrorKind,
    WrongNetworkError,
    classify_provider_error,
)
from mnee_wallet.providers.base import ProviderRpcError


# =============================================================================
# Error Classes
# =============================================================================

class TestWalletErrors:
    """Tests for individual error kinds."""

    def test_kinds_match_classes(self):
        assert ProviderUnavailableError().kind == WalletErrorKind.PROVIDER_UNAVAILABLE
        assert UserRejectedError().kind == WalletErrorKind.USER_REJECTED
        assert AlreadyConnectingError().kind == WalletErrorKind.ALREADY_CONNECTING
        assert ConfirmationTimeoutError("0xabc", 5).kind == WalletErrorKind.TIMEOUT

    def test_wrong_network_details(self):
        error = WrongNetworkError(137, 1)

        assert error.kind == WalletErrorKind.WRONG_NETWORK
        assert error.details == {"networkId": 137, "expectedNetworkId": 1}
        assert "137" in error.message

    def test_timeout_outcome_is_unknown(self):
        error = ConfirmationTimeoutError("0xabc", 180, explorer_url="https://etherscan.io/tx/0xabc")

        assert error.tx_hash == "0xabc"
        assert error.details["outcome"] == "unknown"
        assert error.details["explorerUrl"] == "https://etherscan.io/tx/0xabc"
        assert "unknown" in error.message

    def test_reverted_carries_hash(self):
        error = TransactionRevertedError("0xdead")

        assert error.tx_hash == "0xdead"
        assert error.recoverable is False

    def test_to_dict(self):
        payload = UserRejectedError().to_dict()

        assert payload["kind"] == "UserRejected"
        assert payload["message"] == "Request rejected by user"
        assert payload["recoverable"] is True
        assert payload["txHash"] is None

    def test_errors_are_exceptions(self):
        with pytest.raises(WalletError):
            raise SubmissionFailedError()


# =============================================================================
# Classification
# =============================================================================

class TestClassifyProviderError:
    """Tests for mapping provider failures onto the taxonomy."""

    def test_user_rejected_code(self):
        error = classify_provider_error(ProviderRpcError(4001, "User rejected the request."))

        assert isinstance(error, UserRejectedError)
        assert error.details["providerCode"] == 4001

    def test_user_rejected_message_without_code(self):
        error = classify_provider_error(Exception("MetaMask Tx Signature: User denied transaction signature."))
        assert isinstance(error, UserRejectedError)

    def test_unrecognized_chain(self):
        error = classify_provider_error(ProviderRpcError(4902, "Unrecognized chain ID"))
        assert isinstance(error, NetworkUnrecognizedError)

    def test_request_pending(self):
        error = classify_provider_error(ProviderRpcError(-32002, "Request already pending"))
        assert isinstance(error, AlreadyConnectingError)

    @pytest.mark.parametrize("code", [4100, 4900, 4901])
    def test_disconnected_codes(self, code):
        error = classify_provider_error(ProviderRpcError(code, "Provider disconnected"))
        assert isinstance(error, ProviderUnavailableError)

    def test_unknown_error_uses_fallback(self):
        error = classify_provider_error(
            ProviderRpcError(-32000, "insufficient funds for gas"),
            fallback=WalletErrorKind.SUBMISSION_FAILED,
        )

        assert isinstance(error, SubmissionFailedError)
        assert error.message == "insufficient funds for gas"
        assert error.details["providerMessage"] == "insufficient funds for gas"

    def test_default_fallback_is_provider_error(self):
        error = classify_provider_error(RuntimeError("boom"))

        assert isinstance(error, ProviderError)
        assert "providerCode" not in error.details

    def test_balance_fallback(self):
        error = classify_provider_error(
            ValueError("Empty call result"),
            fallback=WalletErrorKind.BALANCE_FETCH_FAILED,
        )
        assert isinstance(error, BalanceFetchFailedError)

    def test_wallet_errors_pass_through(self):
        original = WrongNetworkError(5, 1)
        assert classify_provider_error(original, fallback=WalletErrorKind.SUBMISSION_FAILED) is original

    def test_rejection_code_beats_fallback(self):
        error = classify_provider_error(
            ProviderRpcError(4001, "denied"),
            fallback=WalletErrorKind.SUBMISSION_FAILED,
        )
        assert isinstance(error, UserRejectedError)
