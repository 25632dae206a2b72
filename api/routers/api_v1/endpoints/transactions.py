"""
Transaction Endpoints

FastAPI endpoints preparing unsigned smart wallet transactions.
Every endpoint validates, simulates and assembles before returning a plan;
nothing is signed or broadcast here.
"""

from typing import Awaitable, Callable

from fastapi import APIRouter, Depends

from api.config import Settings
from api.dependencies.chain_context import ChainContextProvider, get_chain_provider, get_settings
from api.enums import IntentKind
from api.schemas.transaction import (
    ErrorResponse,
    FungibleTransferRequest,
    NativeTransferRequest,
    NonFungibleTransferRequest,
    OwnerAddRequest,
    OwnerRemoveRequest,
    PrepareRequestBase,
    PreparedTransactionResponse,
)
from api.services.transaction_service import TransactionService, to_prepared_response
from api.utils.errors import to_http_exception
from smart_wallet_offchain.chain_context import get_network_info
from smart_wallet_offchain.errors import SmartWalletError
from smart_wallet_offchain.models import PreparedTransaction


router = APIRouter()

PREPARE_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Malformed input or undecodable call"},
    422: {"model": ErrorResponse, "description": "Precondition, simulation or assembly failure"},
    503: {"model": ErrorResponse, "description": "RPC endpoint timed out or unreachable"},
}


async def _prepare(
    request: PrepareRequestBase,
    intent: IntentKind,
    provider: ChainContextProvider,
    config: Settings,
    action: Callable[[TransactionService], Awaitable[PreparedTransaction]],
) -> PreparedTransactionResponse:
    reader = provider.get(request.chain_id)
    service = TransactionService(reader, config)
    try:
        prepared = await action(service)
    except SmartWalletError as e:
        raise to_http_exception(e)
    network = get_network_info(reader.chain_id)
    return to_prepared_response(prepared, intent, explorer_url=network.explorer_url or None)


# ============================================================================
# Transfer Endpoints
# ============================================================================


@router.post(
    "/prepare/native",
    response_model=PreparedTransactionResponse,
    summary="Prepare a native currency transfer",
    responses=PREPARE_RESPONSES,
)
async def prepare_native_transfer(
    request: NativeTransferRequest,
    provider: ChainContextProvider = Depends(get_chain_provider),
    config: Settings = Depends(get_settings),
) -> PreparedTransactionResponse:
    return await _prepare(
        request, IntentKind.NATIVE_TRANSFER, provider, config,
        lambda service: service.prepare_native_transfer(request),
    )


@router.post(
    "/prepare/fungible",
    response_model=PreparedTransactionResponse,
    summary="Prepare an ERC-20 transfer",
    responses=PREPARE_RESPONSES,
)
async def prepare_fungible_transfer(
    request: FungibleTransferRequest,
    provider: ChainContextProvider = Depends(get_chain_provider),
    config: Settings = Depends(get_settings),
) -> PreparedTransactionResponse:
    """
    Prepare a token transfer from the smart wallet.

    The account's token balance is checked before any gas estimation.
    """
    return await _prepare(
        request, IntentKind.FUNGIBLE_TRANSFER, provider, config,
        lambda service: service.prepare_fungible_transfer(request),
    )


@router.post(
    "/prepare/non-fungible",
    response_model=PreparedTransactionResponse,
    summary="Prepare an NFT or ENS name transfer",
    responses=PREPARE_RESPONSES,
)
async def prepare_non_fungible_transfer(
    request: NonFungibleTransferRequest,
    provider: ChainContextProvider = Depends(get_chain_provider),
    config: Settings = Depends(get_settings),
) -> PreparedTransactionResponse:
    """
    Prepare an NFT transfer from the smart wallet.

    **ENS names** held in the base registrar are moved with one atomic batch:
    - Update ETH Record (when a resolver is set)
    - Update Manager (Registry)
    - Transfer NFT Token (Owner)

    Wrapped names are a single ERC-1155 transfer.
    """
    return await _prepare(
        request, IntentKind.NON_FUNGIBLE_TRANSFER, provider, config,
        lambda service: service.prepare_non_fungible_transfer(request),
    )


# ============================================================================
# Owner Management Endpoints
# ============================================================================


@router.post(
    "/prepare/owner-add",
    response_model=PreparedTransactionResponse,
    summary="Prepare adding an owner",
    responses=PREPARE_RESPONSES,
)
async def prepare_owner_add(
    request: OwnerAddRequest,
    provider: ChainContextProvider = Depends(get_chain_provider),
    config: Settings = Depends(get_settings),
) -> PreparedTransactionResponse:
    return await _prepare(
        request, IntentKind.OWNER_ADD, provider, config,
        lambda service: service.prepare_owner_add(request),
    )


@router.post(
    "/prepare/owner-remove",
    response_model=PreparedTransactionResponse,
    summary="Prepare removing an owner",
    description="Removal is keyed by slot index and raw owner bytes, as returned by the owners endpoint.",
    responses=PREPARE_RESPONSES,
)
async def prepare_owner_remove(
    request: OwnerRemoveRequest,
    provider: ChainContextProvider = Depends(get_chain_provider),
    config: Settings = Depends(get_settings),
) -> PreparedTransactionResponse:
    return await _prepare(
        request, IntentKind.OWNER_REMOVE, provider, config,
        lambda service: service.prepare_owner_remove(request),
    )
