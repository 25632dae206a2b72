"""
Transaction Schemas

Pydantic models for transaction preparation requests and responses.
uint256 quantities are returned as decimal strings.
"""

from typing import Any

from pydantic import BaseModel, Field

from api.enums import DispatchEncoding, IntentKind, TokenStandard


# ============================================================================
# Prepare Request Schemas
# ============================================================================


class PrepareRequestBase(BaseModel):
    """Caller context shared by every prepare request"""

    signer_address: str = Field(description="External signer (owner) address")
    account: str = Field(description="Smart wallet executing the calls")
    chain_id: int | None = Field(None, description="Chain id (defaults to the configured chain)")


class NativeTransferRequest(PrepareRequestBase):
    """Send native currency from the smart wallet"""

    recipient: str = Field(description="Destination address")
    amount: int = Field(ge=0, description="Amount in wei")


class FungibleTransferRequest(PrepareRequestBase):
    """Send ERC-20 tokens from the smart wallet"""

    token: str = Field(description="Token contract address")
    recipient: str = Field(description="Destination address")
    amount: int = Field(ge=0, description="Amount in the token's smallest unit")


class NonFungibleTransferRequest(PrepareRequestBase):
    """Send an NFT (ERC-721, ERC-1155 or ENS name) from the smart wallet"""

    collection: str = Field(description="NFT contract address")
    recipient: str = Field(description="Destination address")
    token_id: int = Field(ge=0, description="Token id")
    standard: TokenStandard = Field(default=TokenStandard.ERC721, description="Token standard")
    amount: int = Field(default=1, ge=1, description="Units to send (ERC-1155 only)")
    sender: str | None = Field(None, description="Declared sender, defaults to the account")


class OwnerAddRequest(PrepareRequestBase):
    """Register an additional owner address"""

    new_owner: str = Field(description="Address to add as owner")


class OwnerRemoveRequest(PrepareRequestBase):
    """Remove the owner stored at a slot index"""

    index: int = Field(ge=0, description="Owner slot index")
    owner_bytes: str = Field(description="Raw owner bytes at the slot, hex encoded")


# ============================================================================
# Prepare Response Schemas
# ============================================================================


class CallInfo(BaseModel):
    """One call executed by the smart wallet"""

    label: str = Field(description="Human readable step label")
    target: str
    value: str = Field(description="Value in wei")
    data: str = Field(description="Call payload, hex encoded")
    kind: str = Field(description="Classification of the call")


class TransactionPlanInfo(BaseModel):
    """Unsigned transaction handed to the external signer"""

    to: str = Field(description="Smart wallet address (dispatch recipient)")
    value: str
    data: str = Field(description="Dispatch calldata, hex encoded")
    nonce: int
    max_fee_per_gas: str
    max_priority_fee_per_gas: str
    gas_limit: int
    chain_id: int
    encoding: DispatchEncoding
    step_labels: list[str] = Field(default_factory=list)
    max_cost: str = Field(description="gas_limit * max_fee_per_gas in wei")


class PreparedTransactionResponse(BaseModel):
    """Response for every prepare endpoint"""

    success: bool = True
    intent: IntentKind
    atomic: bool = Field(description="True when the calls run as one batch")
    calls: list[CallInfo]
    plan: TransactionPlanInfo
    tx_params: dict[str, Any] = Field(description="EIP-1559 parameters for the signer")
    warnings: list[dict[str, Any]] = Field(default_factory=list)
    explorer_url: str | None = Field(None, description="Explorer base URL for the chain")


class ErrorResponse(BaseModel):
    """Structured pipeline error"""

    detail: dict[str, Any] = Field(description="kind, retryable, message and details")
