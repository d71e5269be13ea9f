from typing import List

from fastapi import APIRouter

from ..core.wallet import WalletResult, get_wallet_session_manager
from ..types import (
    SessionResponse,
    SwitchNetworkRequest,
    TokenMetadataResponse,
    TransferRequest,
    TransferResponse,
)

router = APIRouter(prefix="/wallet")


@router.get("/session", response_model=SessionResponse)
async def get_session() -> SessionResponse:
    manager = get_wallet_session_manager()
    return SessionResponse.from_result(WalletResult.success(manager.get_session()))


@router.post("/connect", response_model=SessionResponse)
async def connect() -> SessionResponse:
    result = await get_wallet_session_manager().connect()
    return SessionResponse.from_result(result)


@router.post("/disconnect", response_model=SessionResponse)
async def disconnect() -> SessionResponse:
    result = get_wallet_session_manager().disconnect()
    return SessionResponse.from_result(result)


@router.post("/switch-network", response_model=SessionResponse)
async def switch_network(request: SwitchNetworkRequest) -> SessionResponse:
    result = await get_wallet_session_manager().switch_network(request.chain_id)
    return SessionResponse.from_result(result)


@router.post("/refresh", response_model=SessionResponse)
async def refresh_balances() -> SessionResponse:
    result = await get_wallet_session_manager().refresh_balances()
    return SessionResponse.from_result(result)


@router.post("/transfer", response_model=TransferResponse)
async def transfer(request: TransferRequest) -> TransferResponse:
    submitted: List[str] = []
    result = await get_wallet_session_manager().transfer(
        request.recipient,
        request.amount,
        on_submitted=submitted.append,
    )
    return TransferResponse.from_result(result, submitted_hash=submitted[0] if submitted else None)


@router.get("/token", response_model=TokenMetadataResponse)
async def token_metadata() -> TokenMetadataResponse:
    manager = get_wallet_session_manager()
    result = await manager.get_token_metadata()
    return TokenMetadataResponse.from_result(manager.token_cache.token_address, result)
