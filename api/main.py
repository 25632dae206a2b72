import logging
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.responses import HTMLResponse, JSONResponse


# Load environment variables from .env file
PROJECT_ROOT = Path(__file__).parent.parent
ENV_FILE = PROJECT_ROOT / ".env"
load_dotenv(ENV_FILE)

from api.config import settings
from api.routers.api_v1.api import api_router
from smart_wallet_offchain.chain_context import get_network_info


logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Logs the effective configuration on startup.
    """
    logger.info("=" * 60)
    logger.info(f"Starting {settings.api_title} v{settings.api_version}")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"Default chain: {get_network_info(settings.default_chain_id).name} ({settings.default_chain_id})")
    if settings.rpc_urls:
        chains = ", ".join(f"{get_network_info(chain_id).name} ({chain_id})" for chain_id in settings.rpc_urls)
        logger.info(f"RPC endpoints configured for: {chains}")
    else:
        logger.warning("No RPC endpoints configured (set RPC_URLS)")
    logger.info(f"Account registry: {settings.registry_url}")
    logger.info("=" * 60)

    yield

    logger.info("Shutting down API")


app = FastAPI(
    title=settings.api_title,
    description=settings.api_description,
    version=settings.api_version,
    lifespan=lifespan,
)

@app.get("/")
async def root():
    """Basic HTML response."""
    body = (
        "<html>"
        "<body style='padding: 10px;'>"
        "<h1>Welcome to the Smart Wallet Transactions API</h1>"
        "<div>"
        "Check the docs: <a href='/docs'>here</a>"
        "</div>"
        "</body>"
        "</html>"
    )

    return HTMLResponse(content=body)


@app.get("/health")
async def health_check():
    """
    Health check endpoint.

    Returns:
        - status: "healthy" if at least one RPC endpoint is configured
        - chains: configured chain ids
        - api_version: API version
        - environment: Current environment
    """
    configured = sorted(settings.rpc_urls)
    health_status = {
        "status": "healthy" if configured else "unhealthy",
        "api_version": settings.api_version,
        "environment": settings.environment,
        "chains": configured,
        "default_chain_id": settings.default_chain_id,
    }
    return JSONResponse(content=health_status, status_code=200 if configured else 503)


app.include_router(api_router, prefix=settings.API_V1_STR)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "api.main:app",
        host="0.0.0.0",
        port=settings.api_port,
        reload=settings.is_development
    )
