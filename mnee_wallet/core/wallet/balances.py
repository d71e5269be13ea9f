"""
Balance synchronization for the connected address.

Reads the native balance and the token balance concurrently and renders
both as fixed-place decimal strings. A failed read never zeroes a balance;
it is reported alongside whatever did succeed.
"""

import asyncio
from typing import Optional

import structlog

from mnee_wallet.config import Settings, settings as default_settings

from . import abi
from .adapter import ProviderAdapter
from .errors import BalanceFetchFailedError, WalletError, classify_provider_error
from .models import BalanceSnapshot, TokenMetadata


logger = structlog.stdlib.get_logger(__name__)


class TokenMetadataCache:
    """
    Lazily fetched token metadata, kept for the life of the process.

    Cleared only when the environment is torn down (network change). Each
    clear starts a new generation; a read sent before the clear is returned
    to its caller but never cached.
    """

    def __init__(self, adapter: ProviderAdapter, token_address: str):
        self.adapter = adapter
        self.token_address = token_address
        self._decimals: Optional[int] = None
        self._metadata: Optional[TokenMetadata] = None
        self._lock = asyncio.Lock()
        self._generation = 0

    @property
    def cached_decimals(self) -> Optional[int]:
        return self._decimals

    @property
    def generation(self) -> int:
        return self._generation

    async def get_decimals(self) -> int:
        if self._decimals is not None:
            return self._decimals

        generation = self._generation
        async with self._lock:
            if generation != self._generation:
                # Cleared while waiting on the previous generation's lock
                return await self.get_decimals()
            if self._decimals is not None:
                return self._decimals

            decimals = await self.adapter.call_read(self.token_address, abi.DECIMALS)
            if not 0 <= decimals <= 18:
                raise BalanceFetchFailedError(
                    f"Token reported unsupported decimals: {decimals}",
                    details={"decimals": decimals},
                )
            if generation != self._generation:
                logger.info(
                    "stale_token_decimals_discarded",
                    token=self.token_address,
                    decimals=decimals,
                    generation=generation,
                    current_generation=self._generation,
                )
                return decimals

            self._decimals = decimals
            logger.debug("token_decimals_cached", token=self.token_address, decimals=decimals)
            return decimals

    async def get_metadata(self) -> TokenMetadata:
        if self._metadata is not None:
            return self._metadata

        generation = self._generation
        decimals = await self.get_decimals()
        symbol, name = await asyncio.gather(
            self.adapter.call_read(self.token_address, abi.SYMBOL),
            self.adapter.call_read(self.token_address, abi.NAME),
        )
        metadata = TokenMetadata(decimals=decimals, symbol=symbol, name=name)
        if generation != self._generation:
            logger.info("stale_token_metadata_discarded", token=self.token_address, generation=generation)
            return metadata

        self._metadata = metadata
        return metadata

    def clear(self) -> None:
        """Drop cached metadata and detach any read still in flight."""
        self._generation += 1
        self._decimals = None
        self._metadata = None
        self._lock = asyncio.Lock()
        logger.debug("token_metadata_cleared", token=self.token_address, generation=self._generation)


class BalanceSynchronizer:
    """Produces human-readable native and token balances for an address."""

    def __init__(
        self,
        adapter: ProviderAdapter,
        token_cache: TokenMetadataCache,
        config: Optional[Settings] = None,
    ):
        self.adapter = adapter
        self.token_cache = token_cache
        self.config = config or default_settings

    async def _native(self, address: str) -> str:
        raw = await self.adapter.read_native_balance(address)
        return abi.format_units(raw, self.config.native_decimals, self.config.native_display_places)

    async def _token(self, address: str) -> str:
        decimals = await self.token_cache.get_decimals()
        raw = await self.adapter.call_read(
            self.token_cache.token_address,
            abi.BALANCE_OF,
            [address],
        )
        return abi.format_units(raw, decimals, self.config.token_display_places)

    async def sync_balances(self, address: str) -> BalanceSnapshot:
        """
        Read both balances for ``address``.

        Returns a snapshot whose failed side is ``None`` with the matching
        BalanceFetchFailedError recorded under ``errors["native"]`` or
        ``errors["token"]``. Cancellation propagates; every other failure,
        including a missing provider, is reported per side.
        """
        native, token = await asyncio.gather(
            self._native(address),
            self._token(address),
            return_exceptions=True,
        )

        snapshot = BalanceSnapshot(address=address)
        for side, outcome in (("native", native), ("token", token)):
            if isinstance(outcome, BaseException):
                if not isinstance(outcome, Exception):
                    raise outcome
                snapshot.errors[side] = self._as_fetch_failure(side, outcome)
                logger.warning(
                    "balance_read_failed",
                    address=address,
                    side=side,
                    reason=snapshot.errors[side].message,
                )
            else:
                setattr(snapshot, side, outcome)

        return snapshot

    @staticmethod
    def _as_fetch_failure(side: str, error: Exception) -> WalletError:
        classified = classify_provider_error(error, fallback=BalanceFetchFailedError.kind)
        if isinstance(classified, BalanceFetchFailedError):
            classified.details.setdefault("balance", side)
            return classified
        return BalanceFetchFailedError(
            f"{side} balance read failed: {classified.message}",
            details={"balance": side, "cause": classified.kind.value},
        )
