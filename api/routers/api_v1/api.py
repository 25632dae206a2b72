from fastapi import APIRouter

from api.routers.api_v1.endpoints import tokens, transactions, wallets


api_router = APIRouter()

api_router.include_router(wallets.router, prefix="/wallets", tags=["Wallets"])
api_router.include_router(
    transactions.router, prefix="/transactions", tags=["Transactions"]
)
api_router.include_router(tokens.router, prefix="/tokens", tags=["Tokens"])
