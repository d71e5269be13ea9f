"""Process-wide slot for the injected wallet provider.

A browser wallet publishes itself as a single global object; here the
hosting application (or a test) places its provider in this slot and the
wallet layer looks it up on every call. An empty slot is an expected state.
"""

from typing import Optional

from .base import EthereumProvider

_injected_provider: Optional[EthereumProvider] = None


def inject_provider(provider: EthereumProvider) -> None:
    global _injected_provider
    _injected_provider = provider


def clear_injected_provider() -> None:
    global _injected_provider
    _injected_provider = None


def get_injected_provider() -> Optional[EthereumProvider]:
    return _injected_provider


__all__ = [
    "inject_provider",
    "clear_injected_provider",
    "get_injected_provider",
]
