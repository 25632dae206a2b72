"""
Wallet Endpoints

FastAPI endpoints for smart wallet discovery, owner listing and diagnostics.
"""

from fastapi import APIRouter, Depends, Path, Query

from api.config import Settings
from api.dependencies.chain_context import ChainContextProvider, get_chain_provider, get_registry, get_settings
from api.schemas.transaction import ErrorResponse
from api.schemas.wallet import (
    AccountListResponse,
    DiagnosticsResponse,
    OwnerListResponse,
    PrimaryAccountResponse,
)
from api.services.wallet_service import (
    WalletService,
    to_account_info,
    to_diagnostics_response,
    to_owner_item,
)
from api.utils.errors import to_http_exception
from smart_wallet_offchain.discovery import AccountRegistry
from smart_wallet_offchain.errors import SmartWalletError


router = APIRouter()

READ_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Malformed address"},
    503: {"model": ErrorResponse, "description": "RPC endpoint timed out or unreachable"},
}


# ============================================================================
# Discovery Endpoints
# ============================================================================


@router.get(
    "/{signer}/accounts",
    response_model=AccountListResponse,
    summary="Discover smart wallets of a signer",
    description="Registry lookup first; on failure or empty result, on-chain derivation across factory versions and indices.",
    responses=READ_RESPONSES,
)
async def list_accounts(
    signer: str = Path(description="Owner (signer) address"),
    chain_id: int | None = Query(None, description="Chain id"),
    provider: ChainContextProvider = Depends(get_chain_provider),
    registry: AccountRegistry = Depends(get_registry),
    config: Settings = Depends(get_settings),
) -> AccountListResponse:
    reader = provider.get(chain_id)
    service = WalletService(reader, config, registry=registry)
    try:
        records = await service.discover_accounts(signer)
    except SmartWalletError as e:
        raise to_http_exception(e)

    return AccountListResponse(
        signer=signer,
        chain_id=reader.chain_id,
        accounts=[to_account_info(record) for record in records],
        total=len(records),
    )


@router.get(
    "/{signer}/primary",
    response_model=PrimaryAccountResponse,
    summary="Primary smart wallet of a signer",
    description="Newest factory at index 0, then oldest factory at index 0, then the first account found.",
    responses=READ_RESPONSES,
)
async def primary_account(
    signer: str = Path(description="Owner (signer) address"),
    chain_id: int | None = Query(None, description="Chain id"),
    provider: ChainContextProvider = Depends(get_chain_provider),
    registry: AccountRegistry = Depends(get_registry),
    config: Settings = Depends(get_settings),
) -> PrimaryAccountResponse:
    reader = provider.get(chain_id)
    service = WalletService(reader, config, registry=registry)
    try:
        record = await service.primary_account(signer)
    except SmartWalletError as e:
        raise to_http_exception(e)

    return PrimaryAccountResponse(
        signer=signer,
        chain_id=reader.chain_id,
        account=to_account_info(record) if record else None,
    )


# ============================================================================
# Account Endpoints
# ============================================================================


@router.get(
    "/accounts/{account}/owners",
    response_model=OwnerListResponse,
    summary="List owners of a smart wallet",
    responses=READ_RESPONSES,
)
async def list_owners(
    account: str = Path(description="Smart wallet address"),
    chain_id: int | None = Query(None, description="Chain id"),
    provider: ChainContextProvider = Depends(get_chain_provider),
    config: Settings = Depends(get_settings),
) -> OwnerListResponse:
    reader = provider.get(chain_id)
    service = WalletService(reader, config)
    try:
        owners = await service.list_owners(account)
    except SmartWalletError as e:
        raise to_http_exception(e)

    return OwnerListResponse(
        account=account,
        chain_id=reader.chain_id,
        owners=[to_owner_item(owner) for owner in owners],
        total=len(owners),
    )


@router.get(
    "/accounts/{account}/diagnostics",
    response_model=DiagnosticsResponse,
    summary="Diagnose a signer/account pair",
    responses=READ_RESPONSES,
)
async def diagnose_account(
    account: str = Path(description="Smart wallet address"),
    signer: str = Query(description="Signer address to check"),
    chain_id: int | None = Query(None, description="Chain id"),
    provider: ChainContextProvider = Depends(get_chain_provider),
    config: Settings = Depends(get_settings),
) -> DiagnosticsResponse:
    """
    Collect troubleshooting data:

    - contract bytecode size
    - whether the signer is an owner, and the full owner list
    - native balance of the account
    - preflight of an empty execute() from the signer
    """
    reader = provider.get(chain_id)
    service = WalletService(reader, config)
    try:
        diagnostics = await service.diagnose(account, signer)
    except SmartWalletError as e:
        raise to_http_exception(e)
    return to_diagnostics_response(diagnostics)
