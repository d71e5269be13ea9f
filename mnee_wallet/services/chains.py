"""Metadata for the EVM networks a wallet session may land on."""

from __future__ import annotations

from typing import Any, Dict, Optional

from ..config import settings

CHAIN_METADATA: Dict[int, Dict[str, Any]] = {
    1: {
        'name': 'Ethereum',
        'native_symbol': 'ETH',
        'native_decimals': 18,
        'explorer_url': 'https://etherscan.io',
    },
    11155111: {
        'name': 'Sepolia',
        'native_symbol': 'ETH',
        'native_decimals': 18,
        'explorer_url': 'https://sepolia.etherscan.io',
        'is_testnet': True,
    },
    8453: {
        'name': 'Base',
        'native_symbol': 'ETH',
        'native_decimals': 18,
        'explorer_url': 'https://basescan.org',
    },
    42161: {
        'name': 'Arbitrum',
        'native_symbol': 'ETH',
        'native_decimals': 18,
        'explorer_url': 'https://arbiscan.io',
    },
    10: {
        'name': 'Optimism',
        'native_symbol': 'ETH',
        'native_decimals': 18,
        'explorer_url': 'https://optimistic.etherscan.io',
    },
    137: {
        'name': 'Polygon',
        'native_symbol': 'MATIC',
        'native_decimals': 18,
        'explorer_url': 'https://polygonscan.com',
    },
    31337: {
        'name': 'Local Devnet',
        'native_symbol': 'ETH',
        'native_decimals': 18,
        'explorer_url': None,
        'is_testnet': True,
    },
}


def to_hex_chain_id(chain_id: int) -> str:
    """Return the ``0x``-prefixed form wallets expect for ``wallet_switchEthereumChain``."""

    if chain_id <= 0:
        raise ValueError(f"Invalid chain id: {chain_id}")
    return hex(chain_id)


def chain_name(chain_id: Optional[int]) -> str:
    if chain_id is None:
        return 'Unknown'
    details = CHAIN_METADATA.get(chain_id)
    return details['name'] if details else f'Chain {chain_id}'


def explorer_tx_url(tx_hash: str, chain_id: Optional[int] = None) -> Optional[str]:
    """Block explorer link for a transaction.

    Falls back to the configured explorer when the chain is unknown or not given.
    Returns ``None`` for chains without a public explorer.
    """

    if chain_id is not None and chain_id in CHAIN_METADATA:
        base_url = CHAIN_METADATA[chain_id].get('explorer_url')
    else:
        base_url = settings.explorer_base_url
    if not base_url:
        return None
    return f"{base_url.rstrip('/')}/tx/{tx_hash}"


__all__ = [
    'CHAIN_METADATA',
    'to_hex_chain_id',
    'chain_name',
    'explorer_tx_url',
]
