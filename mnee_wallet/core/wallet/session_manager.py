"""
Wallet session manager.

Owns the single process-wide ``Session`` and is its only writer:
- Connect / disconnect / network switch / balance refresh
- Startup probe of previously authorized accounts (never prompts)
- Reaction to provider ``accountsChanged`` / ``chainChanged`` events
- Stale-result protection via a session epoch bumped on every connect
  and disconnect

Public operations return ``WalletResult`` and never raise.
"""

from dataclasses import replace
from typing import Any, Callable, Dict, List, Optional, Set

import structlog

from mnee_wallet.config import Settings, settings as default_settings
from mnee_wallet.logging_config import clear_wallet_context, set_wallet_context
from mnee_wallet.providers.base import ACCOUNTS_CHANGED, CHAIN_CHANGED

from .adapter import ProviderAdapter
from .balances import BalanceSynchronizer, TokenMetadataCache
from .errors import (
    AlreadyConnectingError,
    BalanceFetchFailedError,
    NotConnectedError,
    ProviderError,
    ProviderUnavailableError,
    WalletError,
    WrongNetworkError,
    classify_provider_error,
)
from .models import ConnectionStatus, Session, TokenMetadata, WalletResult
from .transfers import TransactionSubmitter


logger = structlog.stdlib.get_logger(__name__)


class InvalidTransitionError(Exception):
    """Raised when the manager attempts a transition its own table forbids."""

    def __init__(self, from_status: ConnectionStatus, to_status: ConnectionStatus):
        super().__init__(f"Invalid transition from {from_status.value} to {to_status.value}")
        self.from_status = from_status
        self.to_status = to_status


class WalletSessionManager:
    """
    State machine for the wallet connection.

    Disconnected -> Connecting -> Connected, with Connected -> Disconnected
    on disconnect or when the provider reports no accounts. The startup
    probe and account switches go Disconnected -> Connected directly.
    """

    TRANSITIONS: Dict[ConnectionStatus, Set[ConnectionStatus]] = {
        ConnectionStatus.DISCONNECTED: {
            ConnectionStatus.DISCONNECTED,
            ConnectionStatus.CONNECTING,
            ConnectionStatus.CONNECTED,    # Startup probe / account switch
        },
        ConnectionStatus.CONNECTING: {
            ConnectionStatus.CONNECTED,
            ConnectionStatus.DISCONNECTED,
        },
        ConnectionStatus.CONNECTED: {
            ConnectionStatus.CONNECTED,    # Balance / network updates
            ConnectionStatus.DISCONNECTED,
        },
    }

    def __init__(
        self,
        adapter: Optional[ProviderAdapter] = None,
        config: Optional[Settings] = None,
        token_cache: Optional[TokenMetadataCache] = None,
        synchronizer: Optional[BalanceSynchronizer] = None,
    ):
        self.config = config or default_settings
        self.adapter = adapter or ProviderAdapter(config=self.config)
        self.token_cache = token_cache or TokenMetadataCache(
            self.adapter, self.config.token_contract_address
        )
        self.balances = synchronizer or BalanceSynchronizer(
            self.adapter, self.token_cache, config=self.config
        )
        self.submitter = TransactionSubmitter(self)

        self._expected_network_id: int = self.config.expected_chain_id
        self._epoch = 0
        self._session = Session(expected_network_id=self._expected_network_id)
        self._handlers: Dict[str, Callable[..., Any]] = {}

    # =========================================================================
    # State
    # =========================================================================

    def get_session(self) -> Session:
        """Read-only snapshot of the current session."""
        return self._session

    @property
    def epoch(self) -> int:
        return self._epoch

    @property
    def connection_status(self) -> ConnectionStatus:
        return self._session.connection_status

    def _transition_to(self, to_status: ConnectionStatus, **changes: Any) -> Session:
        from_status = self._session.connection_status
        if to_status not in self.TRANSITIONS[from_status]:
            raise InvalidTransitionError(from_status, to_status)

        if to_status == ConnectionStatus.CONNECTED:
            session = replace(self._session, connection_status=to_status, epoch=self._epoch, **changes)
            if not session.address:
                raise ValueError("A connected session requires an address")
        else:
            session = Session(
                connection_status=to_status,
                expected_network_id=self._expected_network_id,
                epoch=self._epoch,
            )

        self._session = session
        set_wallet_context(
            wallet_address=session.address,
            network_id=session.network_id,
            wallet_status=session.connection_status.value,
            wallet_epoch=self._epoch,
        )
        if from_status != to_status:
            logger.info(
                "wallet_session_transition",
                from_status=from_status.value,
                to_status=to_status.value,
                epoch=self._epoch,
                address=session.address,
                network_id=session.network_id,
            )
        return session

    def _bump_epoch(self) -> int:
        self._epoch += 1
        return self._epoch

    def _is_current(self, epoch: int) -> bool:
        return self._epoch == epoch

    def _wrong_network_warning(self) -> List[WalletError]:
        session = self._session
        if session.wrong_network:
            logger.warning(
                "wallet_wrong_network",
                network_id=session.network_id,
                expected_network_id=session.expected_network_id,
            )
            return [WrongNetworkError(session.network_id, self._expected_network_id)]
        return []

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def start(self) -> WalletResult[Session]:
        """Subscribe to provider events and re-derive the session from the provider."""
        self._ensure_subscribed()
        return await self.probe()

    def close(self) -> None:
        """Detach from provider events. The session itself is left untouched."""
        for event_name, handler in self._handlers.items():
            self.adapter.unsubscribe(event_name, handler)
        self._handlers = {}

    def _ensure_subscribed(self) -> None:
        if self._handlers or not self.adapter.available:
            return
        handlers = {
            ACCOUNTS_CHANGED: self._on_accounts_changed,
            CHAIN_CHANGED: self._on_chain_changed,
        }
        for event_name, handler in handlers.items():
            self.adapter.subscribe(event_name, handler)
        self._handlers = handlers

    async def probe(self) -> WalletResult[Session]:
        """
        Adopt an already-authorized account without prompting.

        Leaves the session Disconnected when the provider is missing or
        has no authorized accounts.
        """
        if self.connection_status != ConnectionStatus.DISCONNECTED:
            return WalletResult.success(self._session)
        if not self.adapter.available:
            logger.info("wallet_probe_skipped", reason="provider_unavailable")
            return WalletResult.failure(ProviderUnavailableError(), value=self._session)

        epoch = self._epoch
        try:
            accounts = await self.adapter.list_accounts()
            if not accounts:
                logger.info("wallet_probe_no_accounts")
                return WalletResult.success(self._session)
            network_id = await self.adapter.get_network_id()
        except Exception as e:
            error = classify_provider_error(e)
            logger.warning("wallet_probe_failed", kind=error.kind.value, reason=error.message)
            return WalletResult.failure(error, value=self._session)

        if not self._is_current(epoch) or self.connection_status != ConnectionStatus.DISCONNECTED:
            return WalletResult.success(self._session)

        warnings = await self._establish(accounts[0], network_id, self._bump_epoch())
        return WalletResult.success(self._session, warnings)

    async def _establish(self, address: str, network_id: int, epoch: int) -> List[WalletError]:
        """Enter Connected for ``address`` and load its balances."""
        self._transition_to(
            ConnectionStatus.CONNECTED,
            address=address,
            network_id=network_id,
            native_balance="0",
            token_balance="0",
        )
        warnings = self._wrong_network_warning()
        balance_error = await self._apply_balances(epoch)
        if balance_error is not None:
            warnings.append(balance_error)
        return warnings

    # =========================================================================
    # Consumer operations
    # =========================================================================

    async def connect(self) -> WalletResult[Session]:
        """Prompt the wallet for an account and connect to it."""
        status = self.connection_status
        if status == ConnectionStatus.CONNECTING:
            return WalletResult.failure(AlreadyConnectingError(), value=self._session)
        if status == ConnectionStatus.CONNECTED:
            return WalletResult.success(self._session)

        epoch = self._bump_epoch()
        self._transition_to(ConnectionStatus.CONNECTING)

        try:
            accounts = await self.adapter.request_accounts()
            if not accounts:
                raise ProviderError("Wallet returned no accounts")
            network_id = await self.adapter.get_network_id()
        except Exception as e:
            error = classify_provider_error(e)
            if self._is_current(epoch):
                self._transition_to(ConnectionStatus.DISCONNECTED)
            logger.warning("wallet_connect_failed", kind=error.kind.value, reason=error.message)
            return WalletResult.failure(error, value=self._session)

        if not self._is_current(epoch):
            logger.info("wallet_connect_superseded", epoch=epoch, current_epoch=self._epoch)
            return WalletResult.failure(
                NotConnectedError("Connection superseded by an external account change"),
                value=self._session,
            )

        self._ensure_subscribed()
        warnings = await self._establish(accounts[0], network_id, epoch)
        return WalletResult.success(self._session, warnings)

    def disconnect(self) -> WalletResult[Session]:
        """
        Reset the session to its initial values.

        Local only: the wallet's authorization for this app is not revoked,
        so a later probe or account event can reconnect.
        """
        previous = self.connection_status
        self._bump_epoch()
        self._transition_to(ConnectionStatus.DISCONNECTED)
        logger.info("wallet_disconnected", previous_status=previous.value, epoch=self._epoch)
        return WalletResult.success(self._session)

    async def switch_network(self, target_id: int) -> WalletResult[Session]:
        """
        Ask the wallet to move to ``target_id``.

        The target becomes the expected network. The wallet stays the source
        of truth: its ``chainChanged`` event triggers a full reset. With
        ``verify_network_switch`` enabled the network id is also read back once.
        """
        if self.connection_status != ConnectionStatus.CONNECTED:
            return WalletResult.failure(NotConnectedError(), value=self._session)

        epoch = self._epoch
        try:
            await self.adapter.request_network_switch(target_id)
        except Exception as e:
            error = classify_provider_error(e)
            logger.warning("wallet_switch_failed", target_id=target_id, kind=error.kind.value)
            return WalletResult.failure(error, value=self._session)

        self._expected_network_id = target_id
        if self.connection_status == ConnectionStatus.CONNECTED:
            self._transition_to(ConnectionStatus.CONNECTED, expected_network_id=target_id)
        else:
            self._session = replace(self._session, expected_network_id=target_id)
        logger.info("wallet_switch_requested", target_id=target_id)

        if self.config.verify_network_switch and self._is_current(epoch):
            try:
                network_id = await self.adapter.get_network_id()
            except Exception as e:
                error = classify_provider_error(e)
                logger.warning("wallet_switch_verify_failed", reason=error.message)
                return WalletResult.success(self._session, [error])
            if self._is_current(epoch) and self.connection_status == ConnectionStatus.CONNECTED:
                self._transition_to(ConnectionStatus.CONNECTED, network_id=network_id)

        return WalletResult.success(self._session, self._wrong_network_warning())

    async def refresh_balances(self) -> WalletResult[Session]:
        """Re-read both balances for the connected address. Safe to call repeatedly."""
        if self.connection_status != ConnectionStatus.CONNECTED:
            return WalletResult.failure(NotConnectedError(), value=self._session)

        error = await self._apply_balances(self._epoch)
        if error is not None:
            return WalletResult.failure(error, value=self._session)
        return WalletResult.success(self._session)

    async def get_token_metadata(self) -> WalletResult[TokenMetadata]:
        try:
            metadata = await self.token_cache.get_metadata()
        except Exception as e:
            return WalletResult.failure(classify_provider_error(e))
        return WalletResult.success(metadata)

    async def transfer(
        self,
        recipient: str,
        amount: str,
        on_submitted: Optional[Callable[[str], Any]] = None,
    ) -> WalletResult[str]:
        """Transfer ``amount`` tokens to ``recipient``. See ``TransactionSubmitter.transfer``."""
        return await self.submitter.transfer(recipient, amount, on_submitted)

    # =========================================================================
    # Balances
    # =========================================================================

    async def _apply_balances(self, epoch: int) -> Optional[WalletError]:
        """
        Sync balances and write them only if the session is still ``epoch``.

        Sides that fail keep their last-known value.
        """
        address = self._session.address
        if address is None:
            return NotConnectedError()

        snapshot = await self.balances.sync_balances(address)

        if (
            not self._is_current(epoch)
            or self.connection_status != ConnectionStatus.CONNECTED
            or self._session.address != address
        ):
            logger.info(
                "stale_balance_discarded",
                address=address,
                epoch=epoch,
                current_epoch=self._epoch,
            )
            return None

        updates: Dict[str, str] = {}
        if snapshot.native is not None:
            updates["native_balance"] = snapshot.native
        if snapshot.token is not None:
            updates["token_balance"] = snapshot.token
        if updates:
            self._transition_to(ConnectionStatus.CONNECTED, **updates)
            logger.debug("wallet_balances_updated", address=address, **updates)

        if snapshot.errors:
            failed = sorted(snapshot.errors)
            return BalanceFetchFailedError(
                "; ".join(snapshot.errors[side].message for side in failed),
                details={"failed": failed},
            )
        return None

    # =========================================================================
    # Provider events
    # =========================================================================

    async def _on_accounts_changed(self, accounts: Optional[List[str]] = None) -> None:
        accounts = list(accounts or [])
        try:
            if not accounts:
                logger.info("wallet_accounts_cleared")
                self.disconnect()
                return

            new_address = accounts[0]
            status = self.connection_status
            if status == ConnectionStatus.CONNECTING:
                logger.debug("wallet_accounts_changed_ignored", reason="connecting")
                return
            current = self._session.address
            if status == ConnectionStatus.CONNECTED and current and current.lower() == new_address.lower():
                return

            await self._switch_account(new_address)
        except Exception:
            logger.exception("wallet_accounts_changed_failed")

    async def _switch_account(self, address: str) -> None:
        """Run the connect sequence for ``address`` without prompting."""
        logger.info("wallet_account_switch", address=address)
        epoch = self._bump_epoch()
        self._transition_to(ConnectionStatus.DISCONNECTED)

        try:
            network_id = await self.adapter.get_network_id()
        except Exception as e:
            error = classify_provider_error(e)
            logger.warning("wallet_account_switch_failed", address=address, reason=error.message)
            return

        if self._is_current(epoch) and self.connection_status == ConnectionStatus.DISCONNECTED:
            await self._establish(address, network_id, epoch)

    async def _on_chain_changed(self, chain_id: Any = None) -> None:
        logger.info("wallet_chain_changed", chain_id=chain_id)
        try:
            await self.reinitialize()
        except Exception:
            logger.exception("wallet_reinitialize_failed")

    async def reinitialize(self) -> WalletResult[Session]:
        """
        Tear down the session and cached token metadata, then probe again.

        Used on network changes: balances and pending transactions do not
        carry over to another chain, so nothing is repaired in place.
        """
        self._bump_epoch()
        self._transition_to(ConnectionStatus.DISCONNECTED)
        self.token_cache.clear()
        logger.info("wallet_environment_reset", epoch=self._epoch)
        return await self.probe()


# Singleton instance
_session_manager: Optional[WalletSessionManager] = None


def get_wallet_session_manager() -> WalletSessionManager:
    """Get the process-wide wallet session manager."""
    global _session_manager
    if _session_manager is None:
        _session_manager = WalletSessionManager()
    return _session_manager


def reset_wallet_session_manager() -> None:
    """Drop the singleton; the next call to ``get_wallet_session_manager`` builds a fresh one."""
    global _session_manager
    if _session_manager is not None:
        _session_manager.close()
    _session_manager = None
    clear_wallet_context()
