"""
Account Discovery

Locates the smart wallets a signer controls: a remote registry lookup first,
then deterministic on-chain derivation across factory versions and indices.
"""

import asyncio
import logging
from typing import List, Optional, Protocol, Sequence

import httpx
from eth_abi.exceptions import DecodingError
from eth_utils import is_address, to_checksum_address

from .calls import normalize_address
from .chain_context import ChainReader
from .contracts import FACTORY_GET_ADDRESS, SMART_WALLET_FACTORIES, WALLET_IS_OWNER_ADDRESS
from .errors import ExecutionReverted, NetworkError, NetworkTimeoutError, NetworkUnavailableError
from .models import AccountRecord, AccountSource, FactoryVersion, PipelineConfig
from .tokens import read_contract


logger = logging.getLogger(__name__)

DEFAULT_REGISTRY_URL = "https://api.markushaas.com/api/get-recovery-setups"


class AccountRegistry(Protocol):
    async def lookup(self, owner: str) -> List[str]: ...


class RecoveryRegistryClient:
    """HTTP client for the recovery-setup registry"""

    def __init__(self, url: str = DEFAULT_REGISTRY_URL, timeout: float = 10.0, client: Optional[httpx.AsyncClient] = None):
        self.url = url
        self.timeout = timeout
        self.client = client

    async def _get(self, owner: str) -> httpx.Response:
        params = {"recoveryAddress": owner}
        if self.client is not None:
            return await self.client.get(self.url, params=params, timeout=self.timeout)
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await client.get(self.url, params=params)

    async def lookup(self, owner: str) -> List[str]:
        """
        Account addresses registered for an owner

        Args:
            owner: Signer address

        Returns:
            Checksum addresses; malformed entries are dropped

        Raises:
            NetworkTimeoutError: If the registry does not answer in time
            NetworkUnavailableError: On transport, HTTP status or payload errors
        """
        try:
            response = await self._get(owner)
            response.raise_for_status()
            data = response.json()
        except httpx.TimeoutException as e:
            raise NetworkTimeoutError("registry lookup", self.timeout) from e
        except httpx.HTTPError as e:
            raise NetworkUnavailableError("registry lookup", str(e)) from e
        except ValueError as e:
            raise NetworkUnavailableError("registry lookup", f"invalid JSON: {e}") from e

        setups = data.get("setups") if isinstance(data, dict) else None
        if not isinstance(setups, list):
            return []

        addresses = []
        for setup in setups:
            address = setup.get("aaWalletAddress") if isinstance(setup, dict) else None
            if isinstance(address, str) and is_address(address):
                addresses.append(to_checksum_address(address))
            else:
                logger.debug(f"Dropping registry entry without a valid account address: {setup!r}")
        return addresses


class AccountDiscovery:
    """Registry-first account discovery with on-chain fallback"""

    def __init__(
        self,
        reader: ChainReader,
        registry: Optional[AccountRegistry] = None,
        config: Optional[PipelineConfig] = None,
    ):
        self.reader = reader
        self.registry = registry
        self.config = config or PipelineConfig()

    async def discover(self, signer: str) -> List[AccountRecord]:
        """
        Find every account associated with a signer

        Registry results are returned as-is when non-empty. A registry
        failure or empty answer falls back to on-chain derivation.

        Args:
            signer: Owner address

        Returns:
            Account records, deduplicated, in factory/index order
        """
        signer = normalize_address(signer, "signer")
        if self.registry is not None:
            try:
                addresses = await self.registry.lookup(signer)
            except NetworkError as e:
                logger.warning(f"Registry lookup failed, falling back to on-chain search: {e}")
                addresses = []
            if addresses:
                logger.info(f"Registry returned {len(addresses)} account(s) for {signer}")
                return _unique(
                    AccountRecord(
                        address=address,
                        factory_version=FactoryVersion.V1,
                        derivation_nonce=0,
                        deployed=True,
                        owner_confirmed=True,
                        source=AccountSource.REGISTRY,
                    )
                    for address in addresses
                )
        return await self.discover_on_chain(signer)

    async def discover_on_chain(self, signer: str) -> List[AccountRecord]:
        signer = normalize_address(signer, "signer")
        semaphore = asyncio.Semaphore(self.config.discovery_concurrency)

        async def bounded(version: FactoryVersion, index: int) -> Optional[AccountRecord]:
            async with semaphore:
                return await self._check_candidate(signer, version, index)

        candidates = [
            (version, index)
            for version in FactoryVersion
            for index in range(self.config.discovery_max_index)
        ]
        results = await asyncio.gather(*(bounded(version, index) for version, index in candidates))
        records = _unique(record for record in results if record is not None)
        logger.info(f"On-chain search found {len(records)} account(s) for {signer}")
        return records

    async def _check_candidate(self, signer: str, version: FactoryVersion, index: int) -> Optional[AccountRecord]:
        factory = SMART_WALLET_FACTORIES[version]
        try:
            address = await read_contract(self.reader, factory, FACTORY_GET_ADDRESS, [signer], index)
        except (ExecutionReverted, DecodingError) as e:
            logger.debug(f"Factory {version.value} getAddress failed at index {index}: {e}")
            return None

        code = await self.reader.get_code(address)
        if not code:
            return None

        try:
            owner_confirmed = bool(await read_contract(self.reader, address, WALLET_IS_OWNER_ADDRESS, signer))
        except (ExecutionReverted, DecodingError) as e:
            logger.info(f"Could not verify ownership of {address}, keeping it unconfirmed: {e}")
            return AccountRecord(address, version, index, deployed=True, owner_confirmed=False)

        if not owner_confirmed:
            logger.debug(f"{signer} is not an owner of {address}")
            return None
        return AccountRecord(address, version, index, deployed=True, owner_confirmed=True)


def _unique(records) -> List[AccountRecord]:
    seen = set()
    unique = []
    for record in records:
        if record.address not in seen:
            seen.add(record.address)
            unique.append(record)
    return unique


def select_primary(records: Sequence[AccountRecord]) -> Optional[AccountRecord]:
    """
    Default primary-account policy

    Prefers the newest factory at index 0, then the oldest factory at index 0,
    then the first record. A heuristic, not a statement of user intent.
    """
    deployed = [record for record in records if record.deployed]
    if not deployed:
        return None
    for version in (FactoryVersion.V1_1, FactoryVersion.V1):
        for record in deployed:
            if record.factory_version == version and record.derivation_nonce == 0:
                return record
    return deployed[0]
