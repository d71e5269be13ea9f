import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api import health, wallet
from .config import settings
from .core.wallet import get_wallet_session_manager
from .logging_config import setup_logging
from .providers.injected import clear_injected_provider, inject_provider
from .providers.json_rpc import JsonRpcWalletProvider


logger = logging.getLogger(__name__)


async def _poll_provider_events(provider: JsonRpcWalletProvider, interval: float) -> None:
    """Surface node account/chain changes as provider events."""
    while True:
        try:
            await provider.poll_events()
        except Exception as e:
            logger.warning(f"Provider event poll failed: {e}")
        await asyncio.sleep(interval)


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    setup_logging()

    provider: Optional[JsonRpcWalletProvider] = None
    poll_task: Optional[asyncio.Task] = None
    if settings.has_rpc_url:
        provider = JsonRpcWalletProvider(settings.rpc_url)
        inject_provider(provider)
        logger.info(f"Injected JSON-RPC wallet provider for {settings.rpc_url}")
    else:
        logger.info("No wallet provider configured; session stays disconnected")

    manager = get_wallet_session_manager()
    probe = await manager.start()
    if not probe.ok:
        logger.info(f"Startup probe: {probe.error.kind.value}: {probe.error.message}")

    if provider is not None:
        poll_task = asyncio.create_task(
            _poll_provider_events(provider, settings.event_poll_interval_seconds)
        )

    try:
        yield
    finally:
        if poll_task is not None:
            poll_task.cancel()
            try:
                await poll_task
            except asyncio.CancelledError:
                pass
        manager.close()
        if provider is not None:
            await provider.close()
            clear_injected_provider()


# Create FastAPI app
app = FastAPI(
    title="MNEE Wallet API",
    description="Wallet session service for the MNEE agent marketplace",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router, tags=["Health"])
app.include_router(wallet.router, tags=["Wallet"])


@app.get("/")
async def root():
    """Root endpoint with basic info"""
    return {
        "name": "MNEE Wallet API",
        "version": "0.1.0",
        "description": "Wallet session service for the MNEE agent marketplace",
        "docs": "/docs",
        "health": "/healthz",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "mnee_wallet.main:app",
        host=settings.host,
        port=settings.port,
        reload=True,
        log_level=settings.log_level.lower()
    )
