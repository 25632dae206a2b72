"""
Token Endpoints

FastAPI endpoint for fungible token metadata.
"""

from fastapi import APIRouter, Depends, Path, Query

from api.config import Settings
from api.dependencies.chain_context import ChainContextProvider, get_chain_provider, get_settings
from api.schemas.transaction import ErrorResponse
from api.schemas.wallet import TokenInfoResponse
from api.services.wallet_service import WalletService, to_token_response
from api.utils.errors import to_http_exception
from smart_wallet_offchain.errors import SmartWalletError


router = APIRouter()


@router.get(
    "/{token}",
    response_model=TokenInfoResponse,
    summary="Token metadata",
    description="Name, symbol and decimals of an ERC-20 token, plus a holder balance when requested.",
    responses={
        400: {"model": ErrorResponse, "description": "Malformed address"},
        503: {"model": ErrorResponse, "description": "RPC endpoint timed out or unreachable"},
    },
)
async def get_token(
    token: str = Path(description="Token contract address"),
    holder: str | None = Query(None, description="Address whose balance is included"),
    chain_id: int | None = Query(None, description="Chain id"),
    provider: ChainContextProvider = Depends(get_chain_provider),
    config: Settings = Depends(get_settings),
) -> TokenInfoResponse:
    reader = provider.get(chain_id)
    service = WalletService(reader, config)
    try:
        info = await service.token_info(token, holder)
    except SmartWalletError as e:
        raise to_http_exception(e)
    return to_token_response(info, reader.chain_id)
