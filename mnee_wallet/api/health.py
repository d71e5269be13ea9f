from typing import Any, Dict

from fastapi import APIRouter

from ..core.wallet import get_wallet_session_manager
from ..providers.injected import get_injected_provider

router = APIRouter()


@router.get("/healthz")
async def health_check() -> Dict[str, Any]:
    """Report whether a wallet provider is injected and reachable"""

    provider = get_injected_provider()
    session = get_wallet_session_manager().get_session()

    if provider is None:
        provider_status: Dict[str, Any] = {
            "status": "unavailable",
            "reason": "No wallet provider injected",
        }
    else:
        health_check_fn = getattr(provider, "health_check", None)
        if health_check_fn is not None:
            provider_status = await health_check_fn()
        else:
            provider_status = {"status": "healthy"}

    return {
        "status": "healthy" if provider_status["status"] == "healthy" else "degraded",
        "provider": provider_status,
        "connection_status": session.connection_status.value,
    }
