from .wallet import (
    SessionModel,
    SessionResponse,
    SwitchNetworkRequest,
    TokenMetadataResponse,
    TransferRequest,
    TransferResponse,
    WalletEnvelope,
    WalletErrorPayload,
)

__all__ = [
    "SessionModel",
    "SessionResponse",
    "SwitchNetworkRequest",
    "TokenMetadataResponse",
    "TransferRequest",
    "TransferResponse",
    "WalletEnvelope",
    "WalletErrorPayload",
]
