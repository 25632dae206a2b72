"""
Chain Context Dependency

FastAPI dependencies for the EVM chain clients and the account registry.
One EVMChainContext is kept per chain id and reused across requests.
"""

from fastapi import HTTPException

from api.config import Settings, settings
from smart_wallet_offchain.chain_context import EVMChainContext
from smart_wallet_offchain.discovery import AccountRegistry, RecoveryRegistryClient


class ChainContextProvider:
    """Builds and caches chain clients from the configured RPC endpoints"""

    def __init__(self, config: Settings):
        self.config = config
        self._contexts: dict[int, EVMChainContext] = {}

    def resolve_chain_id(self, chain_id: int | None) -> int:
        return chain_id if chain_id is not None else self.config.default_chain_id

    def get(self, chain_id: int | None = None) -> EVMChainContext:
        """
        Get or initialize the chain context for a chain.

        Raises:
            HTTPException: If no RPC endpoint is configured for the chain
        """
        chain_id = self.resolve_chain_id(chain_id)
        context = self._contexts.get(chain_id)
        if context is None:
            rpc_url = self.config.rpc_url_for(chain_id)
            if not rpc_url:
                raise HTTPException(
                    status_code=400,
                    detail=f"No RPC endpoint configured for chain {chain_id}",
                )
            context = EVMChainContext(rpc_url, chain_id, timeout=self.config.rpc_timeout_seconds)
            self._contexts[chain_id] = context
        return context


# Global state for chain contexts
_provider: ChainContextProvider | None = None
_registry: AccountRegistry | None = None


def get_chain_provider() -> ChainContextProvider:
    global _provider
    if _provider is None:
        _provider = ChainContextProvider(settings)
    return _provider


def get_registry() -> AccountRegistry:
    global _registry
    if _registry is None:
        _registry = RecoveryRegistryClient(settings.registry_url, timeout=settings.registry_timeout_seconds)
    return _registry


def get_settings() -> Settings:
    return settings
