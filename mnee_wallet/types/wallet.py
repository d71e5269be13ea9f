from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from ..core.wallet import Session, TokenMetadata, WalletError, WalletResult


class WalletErrorPayload(BaseModel):
    kind: str = Field(description="Classified error kind")
    message: str = Field(description="Human-readable description")
    recoverable: bool = Field(default=True, description="Whether retrying may succeed")
    suggested_action: Optional[str] = Field(default=None, description="What the user can do next")
    tx_hash: Optional[str] = Field(default=None, description="On-chain hash when the failure has one")
    details: Dict[str, Any] = Field(default_factory=dict, description="Kind-specific details")

    @classmethod
    def from_error(cls, error: WalletError) -> "WalletErrorPayload":
        return cls(
            kind=error.kind.value,
            message=error.message,
            recoverable=error.recoverable,
            suggested_action=error.suggested_action,
            tx_hash=error.tx_hash,
            details=error.details,
        )


class SessionModel(BaseModel):
    address: Optional[str] = Field(default=None, description="Connected account")
    network_id: Optional[int] = Field(default=None, description="Chain id reported by the wallet")
    connection_status: str = Field(description="disconnected, connecting or connected")
    native_balance: str = Field(default="0", description="Native currency balance")
    token_balance: str = Field(default="0", description="Token balance")
    expected_network_id: Optional[int] = Field(default=None, description="Chain the app expects")
    wrong_network: bool = Field(default=False, description="Connected to an unexpected chain")

    @classmethod
    def from_session(cls, session: Session) -> "SessionModel":
        return cls(
            address=session.address,
            network_id=session.network_id,
            connection_status=session.connection_status.value,
            native_balance=session.native_balance,
            token_balance=session.token_balance,
            expected_network_id=session.expected_network_id,
            wrong_network=session.wrong_network,
        )


class WalletEnvelope(BaseModel):
    success: bool = Field(description="Whether the operation succeeded")
    error: Optional[WalletErrorPayload] = Field(default=None, description="Error when unsuccessful")
    warnings: List[WalletErrorPayload] = Field(default_factory=list, description="Non-fatal conditions")


class SessionResponse(WalletEnvelope):
    session: Optional[SessionModel] = Field(default=None, description="Session snapshot")

    @classmethod
    def from_result(cls, result: WalletResult[Session]) -> "SessionResponse":
        return cls(
            success=result.ok,
            session=SessionModel.from_session(result.value) if result.value is not None else None,
            error=WalletErrorPayload.from_error(result.error) if result.error else None,
            warnings=[WalletErrorPayload.from_error(w) for w in result.warnings],
        )


class TransferRequest(BaseModel):
    recipient: str = Field(description="Recipient address")
    amount: str = Field(description="Amount in token units, e.g. \"10.00\"")


class TransferResponse(WalletEnvelope):
    tx_hash: Optional[str] = Field(default=None, description="Confirmed transaction hash")
    submitted_hash: Optional[str] = Field(default=None, description="Hash reported at submission")

    @classmethod
    def from_result(cls, result: WalletResult[str], submitted_hash: Optional[str] = None) -> "TransferResponse":
        return cls(
            success=result.ok,
            tx_hash=result.value,
            submitted_hash=submitted_hash,
            error=WalletErrorPayload.from_error(result.error) if result.error else None,
        )


class SwitchNetworkRequest(BaseModel):
    chain_id: int = Field(gt=0, description="Target chain id")


class TokenMetadataResponse(WalletEnvelope):
    address: str = Field(description="Token contract address")
    decimals: Optional[int] = Field(default=None, description="Token decimals")
    symbol: Optional[str] = Field(default=None, description="Token symbol")
    name: Optional[str] = Field(default=None, description="Token name")

    @classmethod
    def from_result(cls, address: str, result: WalletResult[TokenMetadata]) -> "TokenMetadataResponse":
        metadata = result.value
        return cls(
            success=result.ok,
            address=address,
            decimals=metadata.decimals if metadata else None,
            symbol=metadata.symbol if metadata else None,
            name=metadata.name if metadata else None,
            error=WalletErrorPayload.from_error(result.error) if result.error else None,
        )
