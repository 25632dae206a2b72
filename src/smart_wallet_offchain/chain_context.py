"""
EVM Chain Context Management

Chain read/simulate client shared by every stage of one pipeline run.
Wraps AsyncWeb3 so each request carries a timeout and every failure leaves
here already tagged as a revert, a transient network error, or an
estimation the endpoint cannot perform.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Dict, Optional, Protocol, TypeVar

import aiohttp
from eth_utils import to_checksum_address
from hexbytes import HexBytes
from web3 import AsyncWeb3
from web3.exceptions import ContractLogicError, Web3Exception

from .contracts import decode_revert_reason
from .errors import (
    EstimationUnavailableError,
    ExecutionReverted,
    NetworkTimeoutError,
    NetworkUnavailableError,
)
from .models import FeeData


logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class NetworkInfo:
    name: str
    explorer_url: str
    native_symbol: str = "ETH"


NETWORKS: Dict[int, NetworkInfo] = {
    1: NetworkInfo("Ethereum", "https://etherscan.io"),
    11155111: NetworkInfo("Sepolia", "https://sepolia.etherscan.io"),
    8453: NetworkInfo("Base", "https://basescan.org"),
    84532: NetworkInfo("Base Sepolia", "https://sepolia.basescan.org"),
    10: NetworkInfo("Optimism", "https://optimistic.etherscan.io"),
    42161: NetworkInfo("Arbitrum", "https://arbiscan.io"),
    137: NetworkInfo("Polygon", "https://polygonscan.com", native_symbol="POL"),
}


def get_network_info(chain_id: int) -> NetworkInfo:
    """Known network metadata, with a generic entry for unlisted chains"""
    return NETWORKS.get(chain_id, NetworkInfo(f"Chain {chain_id}", ""))


class ChainReader(Protocol):
    """Read/simulate capability consumed by the pipeline"""

    chain_id: int

    async def get_code(self, address: str) -> bytes: ...

    async def call(self, to: str, data: bytes, from_address: Optional[str] = None, value: int = 0) -> bytes: ...

    async def get_balance(self, address: str) -> int: ...

    async def estimate_gas(self, from_address: str, to: str, data: bytes, value: int = 0) -> int: ...

    async def get_fee_data(self) -> FeeData: ...

    async def get_transaction_count(self, address: str) -> int: ...


class EVMChainContext:
    """
    Chain read client for one chain/RPC endpoint.

    Reused across all steps of a pipeline run so every read goes to the
    same endpoint.
    """

    def __init__(
        self,
        rpc_url: str,
        chain_id: int,
        timeout: float = 10.0,
        web3: Optional[AsyncWeb3] = None,
    ):
        """
        Initialize chain context

        Args:
            rpc_url: JSON-RPC endpoint
            chain_id: Expected chain id of the endpoint
            timeout: Per-request timeout in seconds
            web3: Pre-built AsyncWeb3 instance (tests, custom providers)
        """
        self.rpc_url = rpc_url
        self.chain_id = chain_id
        self.timeout = timeout
        self.network = get_network_info(chain_id)
        self.web3 = web3 or AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(rpc_url))

    async def _guard(self, operation: str, awaitable: Awaitable[T], rpc_errors: bool = True) -> T:
        """
        Await one RPC request with the timeout applied.

        Reverts pass through untouched. Transport failures become
        NetworkUnavailableError, and so do node-side RPC errors unless
        rpc_errors is False (the caller handles Web3Exception itself).
        """
        try:
            return await asyncio.wait_for(awaitable, timeout=self.timeout)
        except ContractLogicError:
            raise
        except asyncio.TimeoutError:
            logger.warning(f"{operation} timed out after {self.timeout}s on {self.rpc_url}")
            raise NetworkTimeoutError(operation, self.timeout)
        except (OSError, aiohttp.ClientError) as e:
            logger.warning(f"{operation} failed on {self.rpc_url}: {e}")
            raise NetworkUnavailableError(operation, str(e) or type(e).__name__) from e
        except Web3Exception as e:
            if not rpc_errors:
                raise
            logger.warning(f"{operation} rejected by {self.rpc_url}: {e}")
            raise NetworkUnavailableError(operation, str(e) or type(e).__name__) from e

    async def get_code(self, address: str) -> bytes:
        code = await self._guard("eth_getCode", self.web3.eth.get_code(to_checksum_address(address)))
        return bytes(code)

    async def call(self, to: str, data: bytes, from_address: Optional[str] = None, value: int = 0) -> bytes:
        """
        Read-only call against the latest block.

        Raises:
            ExecutionReverted: If the call reverts (reason decoded when possible)
        """
        tx: Dict[str, Any] = {"to": to_checksum_address(to), "data": HexBytes(data)}
        if from_address:
            tx["from"] = to_checksum_address(from_address)
        if value:
            tx["value"] = value
        try:
            result = await self._guard("eth_call", self.web3.eth.call(tx))
        except ContractLogicError as e:
            raise _reverted(e) from e
        return bytes(result)

    async def get_balance(self, address: str) -> int:
        return int(await self._guard("eth_getBalance", self.web3.eth.get_balance(to_checksum_address(address))))

    async def estimate_gas(self, from_address: str, to: str, data: bytes, value: int = 0) -> int:
        """
        Estimate gas for a transaction.

        Raises:
            ExecutionReverted: If the transaction would revert
            EstimationUnavailableError: If the endpoint rejects the estimate for another reason
        """
        tx = {
            "from": to_checksum_address(from_address),
            "to": to_checksum_address(to),
            "data": HexBytes(data),
            "value": value,
        }
        try:
            return int(await self._guard("eth_estimateGas", self.web3.eth.estimate_gas(tx), rpc_errors=False))
        except ContractLogicError as e:
            raise _reverted(e) from e
        except (Web3Exception, ValueError) as e:
            raise EstimationUnavailableError(str(e)) from e

    async def get_fee_data(self) -> FeeData:
        """
        Current EIP-1559 fee parameters.

        max_fee is twice the latest base fee plus the priority fee. Chains
        without a base fee report the legacy gas price for every field.
        """
        block, priority_fee = await asyncio.gather(
            self._guard("eth_getBlockByNumber", self.web3.eth.get_block("latest")),
            self._guard("eth_maxPriorityFeePerGas", self.web3.eth.max_priority_fee),
        )
        base_fee = block.get("baseFeePerGas")
        if base_fee is None:
            gas_price = int(await self._guard("eth_gasPrice", self.web3.eth.gas_price))
            return FeeData(base_fee=gas_price, priority_fee=gas_price, max_fee=gas_price)
        return FeeData(
            base_fee=int(base_fee),
            priority_fee=int(priority_fee),
            max_fee=int(base_fee) * 2 + int(priority_fee),
        )

    async def get_transaction_count(self, address: str) -> int:
        return int(
            await self._guard(
                "eth_getTransactionCount",
                self.web3.eth.get_transaction_count(to_checksum_address(address), "pending"),
            )
        )

    async def broadcast(self, signed_transaction: bytes) -> str:
        """Send a signed raw transaction and return its hash"""
        tx_hash = await self._guard(
            "eth_sendRawTransaction", self.web3.eth.send_raw_transaction(HexBytes(signed_transaction))
        )
        return "0x" + bytes(tx_hash).hex()

    def get_explorer_url(self, tx_hash: str) -> str:
        """
        Get explorer URL for transaction

        Args:
            tx_hash: Transaction hash

        Returns:
            Explorer URL, empty string on chains without a known explorer
        """
        if not self.network.explorer_url:
            return ""
        return f"{self.network.explorer_url}/tx/{tx_hash}"


def _reverted(error: ContractLogicError) -> ExecutionReverted:
    data = _revert_bytes(getattr(error, "data", None))
    reason = decode_revert_reason(data) or _message_reason(getattr(error, "message", None))
    return ExecutionReverted(reason=reason, data=data)


def _revert_bytes(raw: Any) -> bytes:
    if isinstance(raw, (bytes, bytearray)):
        return bytes(raw)
    if isinstance(raw, str) and raw.startswith("0x"):
        try:
            return bytes.fromhex(raw[2:])
        except ValueError:
            return b""
    return b""


def _message_reason(message: Optional[str]) -> Optional[str]:
    if not message:
        return None
    prefix = "execution reverted: "
    if message.startswith(prefix):
        return message[len(prefix):]
    return None if message == "execution reverted" else message
