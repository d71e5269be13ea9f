"""
Token transfer execution.

Two checkpoints are reported to the caller: submission (through the
``on_submitted`` callback, before confirmation is awaited) and the final
outcome (the returned ``WalletResult``).
"""

from typing import TYPE_CHECKING, Any, Callable, Dict, Optional

import structlog

from . import abi
from .errors import (
    InvalidRecipientError,
    NotConnectedError,
    WalletError,
    WalletErrorKind,
    classify_provider_error,
)
from .models import (
    ConnectionStatus,
    PendingTransaction,
    PendingTransactionStatus,
    WalletResult,
)

if TYPE_CHECKING:
    from .session_manager import WalletSessionManager


logger = structlog.stdlib.get_logger(__name__)

SubmittedCallback = Callable[[str], Any]


class TransactionSubmitter:
    """
    Executes token transfers for the connected session.

    In-flight transfers are tracked in ``pending`` until they reach a final
    state; no history is kept beyond that.
    """

    def __init__(self, manager: "WalletSessionManager"):
        self.manager = manager
        self.pending: Dict[int, PendingTransaction] = {}

    def _advance(self, tx: PendingTransaction, status: PendingTransactionStatus, **fields: Any) -> None:
        previous = tx.status
        tx.status = status
        for name, value in fields.items():
            setattr(tx, name, value)
        logger.info(
            "transfer_status",
            from_status=previous.value,
            to_status=status.value,
            recipient=tx.recipient,
            amount=tx.amount,
            tx_hash=tx.submitted_hash,
        )

    async def transfer(
        self,
        recipient: str,
        amount: str,
        on_submitted: Optional[SubmittedCallback] = None,
    ) -> WalletResult[str]:
        """
        Transfer ``amount`` (human units) of the token to ``recipient``.

        Returns the transaction hash once confirmed. On any failure the value
        is ``None`` and ``error`` holds the classified kind; a Timeout error
        means the outcome is unknown, not that the transfer failed. Balances
        are refreshed once after a confirmed transfer, never after a timeout.
        """
        session = self.manager.get_session()
        if session.connection_status != ConnectionStatus.CONNECTED or not session.address:
            return WalletResult.failure(NotConnectedError())

        tx = PendingTransaction(recipient=recipient, amount=str(amount))
        key = id(tx)
        self.pending[key] = tx
        try:
            return await self._execute(tx, session.address, session.epoch, session.network_id, on_submitted)
        finally:
            self.pending.pop(key, None)

    async def _execute(
        self,
        tx: PendingTransaction,
        sender: str,
        epoch: int,
        network_id: Optional[int],
        on_submitted: Optional[SubmittedCallback],
    ) -> WalletResult[str]:
        adapter = self.manager.adapter
        token_address = self.manager.token_cache.token_address

        # Input checks happen before any provider call
        try:
            if not abi.is_address(tx.recipient):
                raise InvalidRecipientError(tx.recipient)
            abi.parse_amount(tx.amount)
        except WalletError as e:
            return self._fail(tx, e)

        try:
            decimals = await self.manager.token_cache.get_decimals()
            amount_units = abi.parse_units(tx.amount, decimals)
        except Exception as e:
            return self._fail(tx, classify_provider_error(e))

        self._advance(tx, PendingTransactionStatus.AWAITING_SIGNATURE)
        try:
            tx_hash = await adapter.submit_transfer(token_address, sender, tx.recipient, amount_units)
        except Exception as e:
            return self._fail(tx, classify_provider_error(e, fallback=WalletErrorKind.SUBMISSION_FAILED))

        self._advance(tx, PendingTransactionStatus.SUBMITTED, submitted_hash=tx_hash)
        if on_submitted is not None:
            try:
                on_submitted(tx_hash)
            except Exception:
                logger.exception("transfer_on_submitted_failed", tx_hash=tx_hash)

        try:
            await adapter.await_confirmation(tx_hash, network_id=network_id)
        except Exception as e:
            error = classify_provider_error(e)
            if error.tx_hash is None:
                error.tx_hash = tx_hash
            return self._fail(tx, error)

        self._advance(tx, PendingTransactionStatus.CONFIRMED)

        if self.manager.epoch == epoch:
            refreshed = await self.manager.refresh_balances()
            if not refreshed.ok:
                logger.warning("transfer_balance_refresh_failed", tx_hash=tx_hash, reason=refreshed.error.message)
        else:
            logger.info("transfer_refresh_skipped", tx_hash=tx_hash, reason="session_changed")

        return WalletResult.success(tx_hash)

    def _fail(self, tx: PendingTransaction, error: WalletError) -> WalletResult[str]:
        self._advance(tx, PendingTransactionStatus.FAILED)
        logger.warning(
            "transfer_failed",
            kind=error.kind.value,
            reason=error.message,
            tx_hash=error.tx_hash or tx.submitted_hash,
        )
        return WalletResult.failure(error)
