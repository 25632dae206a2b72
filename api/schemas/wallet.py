"""
Wallet Schemas

Pydantic models for smart wallet discovery, owners and diagnostics.
"""

from pydantic import BaseModel, Field

from api.enums import AccountSource, FactoryVersion


# ============================================================================
# Discovery Schemas
# ============================================================================


class AccountRecordInfo(BaseModel):
    """A smart wallet associated with a signer"""

    address: str
    factory_version: FactoryVersion
    derivation_nonce: int = Field(description="Factory derivation index")
    deployed: bool
    owner_confirmed: bool = Field(description="Whether isOwnerAddress confirmed the signer")
    source: AccountSource


class AccountListResponse(BaseModel):
    """Accounts discovered for a signer"""

    signer: str
    chain_id: int
    accounts: list[AccountRecordInfo]
    total: int


class PrimaryAccountResponse(BaseModel):
    """Primary account chosen by the default selection policy"""

    signer: str
    chain_id: int
    account: AccountRecordInfo | None = Field(None, description="None when no account was found")


# ============================================================================
# Owner Schemas
# ============================================================================


class OwnerInfoItem(BaseModel):
    """One owner slot of a smart wallet"""

    index: int = Field(description="Storage slot index, required for removal")
    address: str | None = Field(None, description="Owner address, None for public-key owners")
    raw_bytes: str = Field(description="Raw owner bytes, hex encoded")


class OwnerListResponse(BaseModel):
    account: str
    chain_id: int
    owners: list[OwnerInfoItem]
    total: int


# ============================================================================
# Diagnostics Schemas
# ============================================================================


class DiagnosticsResponse(BaseModel):
    """Troubleshooting data for a signer/account pair"""

    account: str
    signer: str
    chain_id: int
    contract_exists: bool
    code_size: int
    is_owner: bool | None = None
    owners: list[OwnerInfoItem] = Field(default_factory=list)
    native_balance: str | None = Field(None, description="Account balance in wei")
    execute_simulation_ok: bool | None = None
    execute_simulation_error: str | None = None
    errors: list[str] = Field(default_factory=list)


# ============================================================================
# Token Schemas
# ============================================================================


class TokenInfoResponse(BaseModel):
    """Fungible token metadata"""

    address: str
    chain_id: int
    name: str
    symbol: str
    decimals: int
    balance: str | None = Field(None, description="Holder balance in the smallest unit")
