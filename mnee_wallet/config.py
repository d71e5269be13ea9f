from pathlib import Path
from typing import Any

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


BASE_DIR = Path(__file__).resolve().parents[1]

MNEE_CONTRACT_ADDRESS = "0x8ccedbAe4916b79da7F3F612EfB2EB93A2bFD6cF"
ETHEREUM_CHAIN_ID = 1


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    def model_post_init(self, __context: Any) -> None:
        """Normalize values that are compared case-insensitively elsewhere."""

        super().model_post_init(__context)

        object.__setattr__(self, "token_contract_address", self.token_contract_address.strip())
        object.__setattr__(self, "rpc_url", self.rpc_url.strip())

    # Server Settings
    host: str = Field(default="127.0.0.1", description="Server host")
    port: int = Field(default=8000, description="Server port")
    log_level: str = Field(default="INFO", description="Logging level")

    # Wallet provider
    rpc_url: str = Field(
        default="",
        description="JSON-RPC node used as the wallet provider; empty means no provider is injected",
        validation_alias=AliasChoices("rpc_url", "wallet_rpc_url", "WALLET_RPC_URL"),
    )
    request_timeout_seconds: int = Field(default=30, description="Provider request timeout")
    event_poll_interval_seconds: float = Field(
        default=4.0,
        gt=0,
        description="How often the node-backed provider is polled for account/chain changes",
    )

    # Token & network
    token_contract_address: str = Field(
        default=MNEE_CONTRACT_ADDRESS,
        description="ERC-20 token whose balance is tracked and transferred",
    )
    expected_chain_id: int = Field(
        default=ETHEREUM_CHAIN_ID,
        description="Chain the marketplace expects the wallet to be on",
    )
    native_decimals: int = Field(default=18, ge=0, le=18, description="Decimals of the native currency")
    native_display_places: int = Field(default=4, ge=0, description="Decimal places shown for native balance")
    token_display_places: int = Field(default=2, ge=0, description="Decimal places shown for token balance")
    explorer_base_url: str = Field(
        default="https://etherscan.io",
        description="Block explorer used for transaction links on the expected chain",
    )

    # Transactions
    confirmation_timeout_seconds: float = Field(
        default=180.0,
        gt=0,
        le=600,
        description="Maximum time to wait for a transfer receipt",
    )
    confirmation_poll_interval_seconds: float = Field(
        default=2.0,
        gt=0,
        description="Delay between receipt polls",
    )
    verify_network_switch: bool = Field(
        default=True,
        description="Re-read the network id after a successful switch request",
    )

    @property
    def has_rpc_url(self) -> bool:
        return bool(self.rpc_url)


# Global settings instance
settings = Settings()
