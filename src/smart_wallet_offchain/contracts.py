"""
Contract Definitions

Closed, versioned set of contract interfaces the pipeline knows how to
encode, decode and classify: token standards, the Coinbase Smart Wallet
account and factory, and the ENS contracts.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Sequence, Tuple

from eth_abi import decode as abi_decode
from eth_abi import encode as abi_encode
from eth_abi.exceptions import DecodingError
from eth_utils import keccak, to_checksum_address

from .models import FactoryVersion


SELECTOR_SET_VERSION = 1


@dataclass(frozen=True)
class FunctionSpec:
    """
    Immutable contract function definition.

    Holds the canonical argument and return types so calldata can be
    produced and parsed without a JSON ABI.
    """

    name: str
    arg_types: Tuple[str, ...] = ()
    return_types: Tuple[str, ...] = ()
    selector: bytes = field(init=False, repr=False)

    def __post_init__(self):
        object.__setattr__(self, "selector", keccak(text=self.signature)[:4])

    @property
    def signature(self) -> str:
        return f"{self.name}({','.join(self.arg_types)})"

    def encode(self, *args: Any) -> bytes:
        """Full calldata: selector followed by the ABI-encoded arguments"""
        if not self.arg_types:
            return self.selector
        return self.selector + abi_encode(list(self.arg_types), list(args))

    def decode_args(self, payload: bytes) -> Tuple[Any, ...]:
        """
        Decode the arguments of calldata built for this function.

        Args:
            payload: Calldata including the 4-byte selector

        Returns:
            Tuple of decoded arguments, addresses checksummed

        Raises:
            ValueError: If the selector does not match
            eth_abi.exceptions.DecodingError: If the argument bytes are malformed
        """
        if payload[:4] != self.selector:
            raise ValueError(f"selector mismatch for {self.signature}")
        values = abi_decode(list(self.arg_types), payload[4:])
        return tuple(_checksum_decoded(t, v) for t, v in zip(self.arg_types, values))

    def decode_result(self, data: bytes) -> Any:
        """Decode return data; single return values are unwrapped"""
        values = abi_decode(list(self.return_types), data)
        values = tuple(_checksum_decoded(t, v) for t, v in zip(self.return_types, values))
        if len(values) == 1:
            return values[0]
        return values


def _checksum_decoded(abi_type: str, value: Any) -> Any:
    if abi_type == "address":
        return to_checksum_address(value)
    if abi_type == "address[]":
        return [to_checksum_address(v) for v in value]
    return value


# ============================================================================
# Token standards
# ============================================================================

ERC20_TRANSFER = FunctionSpec("transfer", ("address", "uint256"), ("bool",))
ERC20_BALANCE_OF = FunctionSpec("balanceOf", ("address",), ("uint256",))
ERC20_NAME = FunctionSpec("name", (), ("string",))
ERC20_SYMBOL = FunctionSpec("symbol", (), ("string",))
ERC20_DECIMALS = FunctionSpec("decimals", (), ("uint8",))

ERC721_TRANSFER_FROM = FunctionSpec("transferFrom", ("address", "address", "uint256"))
ERC721_SAFE_TRANSFER_FROM = FunctionSpec("safeTransferFrom", ("address", "address", "uint256"))
ERC721_SAFE_TRANSFER_FROM_WITH_DATA = FunctionSpec(
    "safeTransferFrom", ("address", "address", "uint256", "bytes")
)
ERC721_OWNER_OF = FunctionSpec("ownerOf", ("uint256",), ("address",))

ERC1155_SAFE_TRANSFER_FROM = FunctionSpec(
    "safeTransferFrom", ("address", "address", "uint256", "uint256", "bytes")
)
ERC1155_BALANCE_OF = FunctionSpec("balanceOf", ("address", "uint256"), ("uint256",))

# ============================================================================
# Coinbase Smart Wallet account and factory
# ============================================================================

WALLET_EXECUTE = FunctionSpec("execute", ("address", "uint256", "bytes"))
WALLET_EXECUTE_BATCH = FunctionSpec("executeBatch", ("(address,uint256,bytes)[]",))
WALLET_IS_OWNER_ADDRESS = FunctionSpec("isOwnerAddress", ("address",), ("bool",))
WALLET_OWNER_AT_INDEX = FunctionSpec("ownerAtIndex", ("uint256",), ("bytes",))
WALLET_OWNER_COUNT = FunctionSpec("ownerCount", (), ("uint256",))
WALLET_ADD_OWNER_ADDRESS = FunctionSpec("addOwnerAddress", ("address",))
WALLET_REMOVE_OWNER_AT_INDEX = FunctionSpec("removeOwnerAtIndex", ("uint256", "bytes"))

FACTORY_GET_ADDRESS = FunctionSpec("getAddress", ("address[]", "uint256"), ("address",))

SMART_WALLET_FACTORIES: Dict[FactoryVersion, str] = {
    FactoryVersion.V1: "0x0BA5ED0c6AA8c49038F819E587E2633c4A9F428a",
    FactoryVersion.V1_1: "0xBA5ED110eFDBa3D005bfC882d75358ACBbB85842",
}

# ============================================================================
# ENS
# ============================================================================

ENS_REGISTRY_OWNER = FunctionSpec("owner", ("bytes32",), ("address",))
ENS_REGISTRY_RESOLVER = FunctionSpec("resolver", ("bytes32",), ("address",))
ENS_REGISTRY_SET_OWNER = FunctionSpec("setOwner", ("bytes32", "address"))
ENS_RESOLVER_ADDR = FunctionSpec("addr", ("bytes32",), ("address",))
ENS_RESOLVER_SET_ADDR = FunctionSpec("setAddr", ("bytes32", "address"))

# namehash("eth")
ETH_NODE = bytes.fromhex("93cdeb708b7545dc668eb9280176169d1c33cfd8ed6f04690a0bcc88a93fc4ae")
ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


@dataclass(frozen=True)
class EnsDeployment:
    """ENS contract addresses for one chain"""

    registry: str
    base_registrar: str
    public_resolver: str
    name_wrapper: str

    def is_name_collection(self, collection: str) -> bool:
        return collection.lower() in (self.base_registrar.lower(), self.name_wrapper.lower())

    def is_wrapped(self, collection: str) -> bool:
        return collection.lower() == self.name_wrapper.lower()


ENS_DEPLOYMENTS: Dict[int, EnsDeployment] = {
    1: EnsDeployment(
        registry="0x00000000000C2E074eC69A0dFb2997BA6C7d2e1e",
        base_registrar="0x57f1887a8BF19b14fC0dF6Fd9B2acc9Af147eA85",
        public_resolver="0x231b0Ee14048e9dCcD1d247744d114a4EB5E8E63",
        name_wrapper="0xD4416b13d2b3a9aBae7AcD5D6C2BbDBE25686401",
    ),
}


def get_ens_deployment(chain_id: int) -> Optional[EnsDeployment]:
    return ENS_DEPLOYMENTS.get(chain_id)


def token_id_to_node(token_id: int) -> bytes:
    """ENS node of a .eth second-level name from its registrar token id (the labelhash)"""
    return keccak(ETH_NODE + token_id.to_bytes(32, "big"))


# ============================================================================
# Revert data
# ============================================================================

ERROR_STRING = FunctionSpec("Error", ("string",))
PANIC_CODE = FunctionSpec("Panic", ("uint256",))


def decode_revert_reason(data: Optional[bytes]) -> Optional[str]:
    """
    Decode standard Solidity revert payloads.

    Args:
        data: Raw revert data returned by the node

    Returns:
        Reason string for Error(string) and Panic(uint256), None otherwise
    """
    if not data or len(data) < 4:
        return None
    try:
        if data[:4] == ERROR_STRING.selector:
            return ERROR_STRING.decode_args(data)[0]
        if data[:4] == PANIC_CODE.selector:
            return f"panic code 0x{PANIC_CODE.decode_args(data)[0]:02x}"
    except (DecodingError, ValueError):
        return None
    return None


def encode_batch(calls: Sequence[Tuple[str, int, bytes]]) -> bytes:
    return WALLET_EXECUTE_BATCH.encode([tuple(call) for call in calls])
