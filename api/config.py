"""
API Configuration

Centralized settings for the FastAPI application.
API metadata is hardcoded, while environment-specific settings load from .env file.
"""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from smart_wallet_offchain.discovery import DEFAULT_REGISTRY_URL
from smart_wallet_offchain.models import PipelineConfig


# Get the project root directory (one level up from api/)
PROJECT_ROOT = Path(__file__).parent.parent


class Settings(BaseSettings):
    """
    Application settings for the Smart Wallet API

    API metadata (title, description, version, contact) are hardcoded.
    Environment-specific settings are loaded from .env file.
    """

    # ============================================================================
    # API Metadata (hardcoded - versioned with code)
    # ============================================================================

    api_title: str = "Smart Wallet Transactions API"
    api_description: str = (
        "Prepares pre-validated, unsigned transactions for Coinbase Smart Wallet accounts: "
        "native, token and NFT transfers (including atomic ENS batches), owner management, "
        "account discovery and diagnostics."
    )
    api_version: str = "1.0.0"
    API_V1_STR: str = "/api/v1"

    # ============================================================================
    # Environment Settings (loaded from .env)
    # ============================================================================

    environment: str = "development"  # development, staging, production
    api_port: int = 8000
    log_level: str = "INFO"

    # RPC endpoints keyed by chain id, e.g. RPC_URLS='{"1": "https://..."}'
    rpc_urls: dict[int, str] = Field(default_factory=dict)
    default_chain_id: int = 1
    rpc_timeout_seconds: float = 10.0

    registry_url: str = DEFAULT_REGISTRY_URL
    registry_timeout_seconds: float = 10.0

    # Pipeline tunables
    gas_buffer_percent: int = 150
    default_gas_limit: int = 200_000
    default_batch_gas_limit: int = 300_000
    discovery_max_index: int = 3
    discovery_concurrency: int = 4
    strict_from_check: bool = False
    network_retries: int = 1

    model_config = SettingsConfigDict(
        env_file=str(PROJECT_ROOT / ".env"), env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )

    @property
    def is_development(self) -> bool:
        """Check if running in development mode"""
        return self.environment.lower() == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode"""
        return self.environment.lower() == "production"

    def rpc_url_for(self, chain_id: int) -> str | None:
        return self.rpc_urls.get(chain_id)

    def pipeline_config(self) -> PipelineConfig:
        """Core pipeline tunables derived from these settings"""
        return PipelineConfig(
            gas_buffer_percent=self.gas_buffer_percent,
            default_gas_limit=self.default_gas_limit,
            default_batch_gas_limit=self.default_batch_gas_limit,
            strict_from_check=self.strict_from_check,
            discovery_max_index=self.discovery_max_index,
            discovery_concurrency=self.discovery_concurrency,
        )


# ============================================================================
# Global settings instance
# ============================================================================

settings = Settings()
