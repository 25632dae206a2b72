"""
Smart Wallet Account Reads

Owner listing and account diagnostics for Coinbase Smart Wallet accounts.
"""

import asyncio
import logging
from typing import List, Optional, Tuple

from eth_abi.exceptions import DecodingError
from eth_utils import to_checksum_address

from .calls import normalize_address
from .chain_context import ChainReader, get_network_info
from .contracts import WALLET_EXECUTE, WALLET_IS_OWNER_ADDRESS, WALLET_OWNER_AT_INDEX, WALLET_OWNER_COUNT
from .errors import AccountNotDeployedError, ExecutionReverted, NotSmartWalletError
from .models import AccountDiagnostics, OwnerInfo
from .tokens import read_contract


logger = logging.getLogger(__name__)


def parse_owner_bytes(raw: bytes) -> Optional[str]:
    """
    Address held in an owner slot

    Args:
        raw: Bytes returned by ownerAtIndex

    Returns:
        Checksum address for 32-byte padded or 20-byte owners, None for
        public-key owners
    """
    if len(raw) == 20:
        return to_checksum_address(raw)
    if len(raw) == 32:
        return to_checksum_address(raw[-20:])
    return None


class SmartWalletAccount:
    """Read-only view of one smart wallet account"""

    def __init__(self, reader: ChainReader, address: str):
        self.reader = reader
        self.address = normalize_address(address, "account")

    async def owner_count(self) -> int:
        try:
            return await read_contract(self.reader, self.address, WALLET_OWNER_COUNT)
        except DecodingError as e:
            raise NotSmartWalletError(self.address, f"ownerCount returned no usable value ({e})") from e

    async def owner_at_index(self, index: int) -> bytes:
        return await read_contract(self.reader, self.address, WALLET_OWNER_AT_INDEX, index)

    async def list_owners(self) -> List[OwnerInfo]:
        """
        Read every registered owner

        Empty (removed) slots are skipped; the index of each remaining owner
        is its storage slot, which removal requires.

        Returns:
            Owners ordered by slot index

        Raises:
            AccountNotDeployedError: If there is no contract at the address
            NotSmartWalletError: If the contract has no readable owner count
        """
        code = await self.reader.get_code(self.address)
        if not code:
            network = get_network_info(self.reader.chain_id)
            raise AccountNotDeployedError(self.address, self.reader.chain_id, network.name)
        return await self._read_owners()

    async def _read_owners(self) -> List[OwnerInfo]:
        count = await self.owner_count()
        slots = await asyncio.gather(*(self.owner_at_index(i) for i in range(count)))

        owners = []
        for index, raw in enumerate(slots):
            if not raw:
                continue
            owners.append(OwnerInfo(address=parse_owner_bytes(raw), raw_bytes=bytes(raw), index=index))
        logger.info(f"Smart wallet {self.address} has {len(owners)} owner(s)")
        return owners

    async def find_owner(self, owner: str) -> Optional[OwnerInfo]:
        owner = owner.lower()
        for info in await self.list_owners():
            if info.address and info.address.lower() == owner:
                return info
        return None

    async def is_owner(self, candidate: str) -> bool:
        return bool(await read_contract(self.reader, self.address, WALLET_IS_OWNER_ADDRESS, candidate))

    async def diagnose(self, signer: str) -> AccountDiagnostics:
        """
        Collect diagnostics for troubleshooting a signer/account pair

        Every probe is independent; a failing probe is recorded in errors and
        the remaining ones still run. Network errors propagate.
        """
        signer = normalize_address(signer, "signer")
        errors: List[str] = []

        code = await self.reader.get_code(self.address)
        if not code:
            return AccountDiagnostics(
                account=self.address,
                signer=signer,
                chain_id=self.reader.chain_id,
                code_size=0,
                is_owner=None,
                errors=("no contract code at account",),
            )

        is_owner, owners, balance, simulation = await asyncio.gather(
            self._probe(self.is_owner(signer), "isOwnerAddress", errors),
            self._probe(self._read_owners(), "owners", errors),
            self.reader.get_balance(self.address),
            self._simulate_empty_execute(signer),
        )
        simulation_ok, simulation_error = simulation

        return AccountDiagnostics(
            account=self.address,
            signer=signer,
            chain_id=self.reader.chain_id,
            code_size=len(code),
            is_owner=is_owner,
            owners=tuple(owners or ()),
            native_balance=balance,
            execute_simulation_ok=simulation_ok,
            execute_simulation_error=simulation_error,
            errors=tuple(errors),
        )

    async def _probe(self, awaitable, label: str, errors: List[str]):
        try:
            return await awaitable
        except ExecutionReverted as e:
            errors.append(f"{label} reverted: {e.reason or 'no reason'}")
            return None
        except DecodingError as e:
            errors.append(f"{label} returned malformed data: {e}")
            return None
        except NotSmartWalletError as e:
            errors.append(f"{label} unavailable: {e.details['reason']}")
            return None

    async def _simulate_empty_execute(self, signer: str) -> Tuple[bool, Optional[str]]:
        data = WALLET_EXECUTE.encode(signer, 0, b"")
        try:
            await self.reader.call(self.address, data, from_address=signer)
        except ExecutionReverted as e:
            return False, e.reason or ("0x" + e.data.hex() if e.data else "execution reverted")
        return True, None
