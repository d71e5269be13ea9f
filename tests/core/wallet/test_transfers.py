"""
Tests for the Transaction Submitter

Covers the submission and confirmation checkpoints, input validation and
the post-confirmation balance refresh.
"""

import pytest

from mnee_wallet.core.wallet import WalletErrorKind
from mnee_wallet.core.wallet import abi
from mnee_wallet.providers.base import ProviderRpcError


ALICE = "0xabc0000000000000000000000000000000000001"
BOB = "0xdef0000000000000000000000000000000000002"


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def refresh_calls(manager, monkeypatch):
    """Count refresh_balances() calls made after the fixture is set up."""
    calls = []
    original = manager.refresh_balances

    async def counting_refresh():
        calls.append(manager.epoch)
        return await original()

    monkeypatch.setattr(manager, "refresh_balances", counting_refresh)
    return calls


# =============================================================================
# Successful Transfer
# =============================================================================

class TestTransferConfirmed:
    """Tests for a transfer that is signed and mined."""

    @pytest.mark.asyncio
    async def test_submitted_then_confirmed(self, manager, fake_provider, refresh_calls):
        await manager.connect()
        submitted = []

        def on_submitted(tx_hash):
            submitted.append((tx_hash, fake_provider.call_count("eth_getTransactionReceipt")))
            fake_provider.token_balances[ALICE.lower()] = 330_000_000

        result = await manager.transfer(BOB, "10.00", on_submitted)

        assert result.ok
        assert result.value == "0x" + format(1, "064x")
        # Called once, before any receipt was polled
        assert submitted == [(result.value, 0)]
        assert len(refresh_calls) == 1
        assert manager.get_session().token_balance == "330.00"

    @pytest.mark.asyncio
    async def test_sends_token_transfer(self, manager, fake_provider):
        await manager.connect()

        await manager.transfer(BOB, "10.00")

        sent = fake_provider.sent[0]
        assert sent["from"] == ALICE
        assert sent["to"] == manager.token_cache.token_address
        assert sent["data"] == abi.encode_call(abi.TRANSFER, [BOB, 10_000_000])

    @pytest.mark.asyncio
    async def test_on_submitted_error_does_not_abort(self, manager, refresh_calls):
        await manager.connect()

        def on_submitted(tx_hash):
            raise RuntimeError("ui went away")

        result = await manager.transfer(BOB, "1", on_submitted)

        assert result.ok
        assert len(refresh_calls) == 1

    @pytest.mark.asyncio
    async def test_pending_cleared_after_completion(self, manager):
        await manager.connect()

        await manager.transfer(BOB, "1")

        assert manager.submitter.pending == {}

    @pytest.mark.asyncio
    async def test_refresh_skipped_when_session_changed(self, manager, fake_provider, refresh_calls):
        await manager.connect()
        fake_provider.on_receipt_poll = manager.disconnect

        result = await manager.transfer(BOB, "1")

        assert result.ok
        assert refresh_calls == []


# =============================================================================
# Timeout
# =============================================================================

class TestTransferTimeout:
    """Tests for confirmation timeouts."""

    @pytest.mark.asyncio
    async def test_timeout_leaves_balances_unchanged(self, manager, fake_provider, refresh_calls):
        await manager.connect()
        before = manager.get_session()
        fake_provider.receipt_mode = "pending"
        fake_provider.token_balances[ALICE.lower()] = 1
        submitted = []

        result = await manager.transfer(BOB, "10.00", submitted.append)

        assert result.value is None
        assert result.error.kind == WalletErrorKind.TIMEOUT
        assert result.error.tx_hash == submitted[0]
        assert result.error.details["outcome"] == "unknown"
        assert result.error.details["explorerUrl"] == f"https://etherscan.io/tx/{submitted[0]}"
        assert refresh_calls == []
        assert manager.get_session() is before
        assert manager.get_session().token_balance == "340.00"


# =============================================================================
# Validation
# =============================================================================

class TestTransferValidation:
    """Tests for inputs rejected before any provider call."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("amount", ["-1", "abc", "0", "", "1e3"])
    async def test_invalid_amount_makes_no_calls(self, manager, fake_provider, amount):
        await manager.connect()
        calls = fake_provider.call_count()

        result = await manager.transfer(BOB, amount)

        assert result.value is None
        assert result.error.kind == WalletErrorKind.INVALID_AMOUNT
        assert fake_provider.call_count() == calls

    @pytest.mark.asyncio
    async def test_invalid_recipient_makes_no_calls(self, manager, fake_provider):
        await manager.connect()
        calls = fake_provider.call_count()

        result = await manager.transfer("0xDEF", "10.00")

        assert result.error.kind == WalletErrorKind.INVALID_RECIPIENT
        assert fake_provider.call_count() == calls

    @pytest.mark.asyncio
    async def test_too_many_decimal_places(self, manager, fake_provider):
        await manager.connect()

        result = await manager.transfer(BOB, "1.0000001")

        assert result.error.kind == WalletErrorKind.INVALID_AMOUNT
        assert fake_provider.call_count("eth_sendTransaction") == 0

    @pytest.mark.asyncio
    async def test_requires_connection(self, manager, fake_provider):
        result = await manager.transfer(BOB, "10.00")

        assert result.error.kind == WalletErrorKind.NOT_CONNECTED
        assert fake_provider.call_count() == 0


# =============================================================================
# Failures
# =============================================================================

class TestTransferFailures:
    """Tests for signing, submission and on-chain failures."""

    @pytest.mark.asyncio
    async def test_user_rejects_signature(self, manager, fake_provider, refresh_calls):
        await manager.connect()
        fake_provider.fail("eth_sendTransaction", ProviderRpcError(4001, "User denied transaction signature."))
        submitted = []

        result = await manager.transfer(BOB, "10.00", submitted.append)

        assert result.error.kind == WalletErrorKind.USER_REJECTED
        assert submitted == []
        assert fake_provider.call_count("eth_getTransactionReceipt") == 0
        assert refresh_calls == []

    @pytest.mark.asyncio
    async def test_submission_failure(self, manager, fake_provider):
        await manager.connect()
        fake_provider.fail("eth_sendTransaction", ProviderRpcError(-32000, "insufficient funds for gas"))

        result = await manager.transfer(BOB, "10.00")

        assert result.error.kind == WalletErrorKind.SUBMISSION_FAILED
        assert result.error.message == "insufficient funds for gas"

    @pytest.mark.asyncio
    async def test_reverted(self, manager, fake_provider, refresh_calls):
        await manager.connect()
        fake_provider.receipt_mode = "revert"

        result = await manager.transfer(BOB, "10.00")

        assert result.value is None
        assert result.error.kind == WalletErrorKind.TRANSACTION_REVERTED
        assert result.error.tx_hash == "0x" + format(1, "064x")
        assert refresh_calls == []
