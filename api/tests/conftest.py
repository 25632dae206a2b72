"""
Pytest configuration for API tests

Fixtures and configuration for FastAPI endpoint testing.
Chain access goes through the in-memory mock chain; no RPC endpoint or
registry is contacted.
"""

from pathlib import Path

import pytest
from dotenv import load_dotenv
from fastapi import HTTPException
from fastapi.testclient import TestClient

from api.config import Settings
from api.dependencies.chain_context import get_chain_provider, get_registry, get_settings
from api.main import app

from tests.factories import ChainFactory
from tests.mocks import MockChainClient, MockRegistry


# Load test environment variables
@pytest.fixture(scope="session", autouse=True)
def load_env():
    """Load environment variables for testing"""
    env_file = Path(__file__).parent.parent.parent / ".env"
    if env_file.exists():
        load_dotenv(env_file)

    yield


class MockChainProvider:
    """Stands in for ChainContextProvider, serving mock chains by id"""

    def __init__(self, chains: dict[int, MockChainClient], default_chain_id: int = 1):
        self.chains = chains
        self.default_chain_id = default_chain_id

    def get(self, chain_id: int | None = None) -> MockChainClient:
        chain_id = chain_id if chain_id is not None else self.default_chain_id
        chain = self.chains.get(chain_id)
        if chain is None:
            raise HTTPException(status_code=400, detail=f"No RPC endpoint configured for chain {chain_id}")
        return chain


@pytest.fixture
def chain() -> MockChainClient:
    """Mainnet mock chain with a deployed smart wallet owned by SIGNER"""
    return ChainFactory.create()


@pytest.fixture
def registry() -> MockRegistry:
    return MockRegistry()


@pytest.fixture
def test_settings() -> Settings:
    return Settings(rpc_urls={1: "mock://chain"}, default_chain_id=1, network_retries=1, _env_file=None)


@pytest.fixture
def client(chain, registry, test_settings):
    """Create FastAPI test client wired to the mock chain"""
    provider = MockChainProvider({chain.chain_id: chain})
    app.dependency_overrides[get_chain_provider] = lambda: provider
    app.dependency_overrides[get_registry] = lambda: registry
    app.dependency_overrides[get_settings] = lambda: test_settings

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
