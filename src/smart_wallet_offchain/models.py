"""
Smart Wallet Data Model

Immutable values passed between pipeline stages: calls, classifications,
account records, fee data and the unsigned transaction plan handed to the
external signer.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple


UINT256_MAX = 2**256 - 1


class FactoryVersion(str, Enum):
    """Coinbase Smart Wallet factory versions, oldest first"""

    V1 = "v1"
    V1_1 = "v1.1"


class AccountSource(str, Enum):
    """Where a discovered account record came from"""

    REGISTRY = "registry"
    ON_CHAIN = "on_chain"


class DispatchEncoding(str, Enum):
    """Smart wallet entry point used to dispatch the calls"""

    EXECUTE = "execute"
    EXECUTE_BATCH = "executeBatch"


class TokenStandard(str, Enum):
    """Non-fungible token standards accepted by the encoder"""

    ERC721 = "ERC721"
    ERC1155 = "ERC1155"


# ============================================================================
# Calls
# ============================================================================


@dataclass(frozen=True)
class Call:
    """One atomic contract invocation executed by the smart wallet"""

    target: str
    value: int = 0
    payload: bytes = b""

    @property
    def selector(self) -> bytes:
        return self.payload[:4]

    def to_tuple(self) -> Tuple[str, int, bytes]:
        return (self.target, self.value, self.payload)


# ============================================================================
# Call classifications
# ============================================================================


@dataclass(frozen=True)
class CallClassification:
    """Base of the closed set of recognized call shapes"""

    kind = "unknown"


@dataclass(frozen=True)
class UnknownCall(CallClassification):
    selector: bytes = b""


@dataclass(frozen=True)
class NativeTransfer(CallClassification):
    recipient: str
    amount: int

    kind = "native_transfer"


@dataclass(frozen=True)
class FungibleTransfer(CallClassification):
    token: str
    recipient: str
    amount: int

    kind = "fungible_transfer"


@dataclass(frozen=True)
class NonFungibleTransfer(CallClassification):
    collection: str
    sender: str
    recipient: str
    token_id: int

    kind = "non_fungible_transfer"


@dataclass(frozen=True)
class MultiTokenTransfer(CallClassification):
    collection: str
    sender: str
    recipient: str
    token_id: int
    amount: int

    kind = "multi_token_transfer"


@dataclass(frozen=True)
class OwnerAdd(CallClassification):
    new_owner: str

    kind = "owner_add"


@dataclass(frozen=True)
class OwnerRemove(CallClassification):
    index: int
    owner_bytes: bytes

    kind = "owner_remove"


# ============================================================================
# Accounts and owners
# ============================================================================


@dataclass(frozen=True)
class AccountRecord:
    """A smart wallet associated with a signer, produced by discovery"""

    address: str
    factory_version: FactoryVersion
    derivation_nonce: int
    deployed: bool
    owner_confirmed: bool
    source: AccountSource = AccountSource.ON_CHAIN


@dataclass(frozen=True)
class OwnerInfo:
    """
    One registered authority of a smart wallet.

    index and raw_bytes together identify the storage slot; both are needed
    to remove the owner. address is None for public-key owners.
    """

    address: Optional[str]
    raw_bytes: bytes
    index: int


# ============================================================================
# Plans
# ============================================================================


@dataclass(frozen=True)
class TransferStep:
    label: str
    call: Call


@dataclass(frozen=True)
class TransferPlan:
    """Ordered calls for one intent; multi-step plans run as one atomic batch"""

    steps: Tuple[TransferStep, ...]

    @property
    def calls(self) -> Tuple[Call, ...]:
        return tuple(step.call for step in self.steps)

    @property
    def labels(self) -> Tuple[str, ...]:
        return tuple(step.label for step in self.steps)

    @property
    def atomic(self) -> bool:
        return len(self.steps) > 1

    @classmethod
    def single(cls, call: Call, label: str) -> "TransferPlan":
        return cls(steps=(TransferStep(label=label, call=call),))


@dataclass(frozen=True)
class FeeData:
    base_fee: int
    priority_fee: int
    max_fee: int


@dataclass(frozen=True)
class TransactionPlan:
    """Fully parameterized unsigned transaction, ready for the external signer"""

    recipient: str
    value: int
    payload: bytes
    nonce: int
    fee_per_gas: int
    priority_fee_per_gas: int
    gas_limit: int
    chain_id: int
    encoding: DispatchEncoding
    step_labels: Tuple[str, ...] = ()

    @property
    def max_cost(self) -> int:
        return self.gas_limit * self.fee_per_gas

    def to_tx_params(self) -> Dict[str, Any]:
        """EIP-1559 transaction parameters as accepted by web3 signers"""
        return {
            "type": 2,
            "chainId": self.chain_id,
            "to": self.recipient,
            "value": self.value,
            "data": "0x" + self.payload.hex(),
            "nonce": self.nonce,
            "gas": self.gas_limit,
            "maxFeePerGas": self.fee_per_gas,
            "maxPriorityFeePerGas": self.priority_fee_per_gas,
        }


@dataclass(frozen=True)
class OwnershipMismatchWarning:
    """Transfer declares a sender other than the executing account"""

    collection: str
    token_id: int
    declared_from: str
    account: str

    kind = "ownership_mismatch"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "collection": self.collection,
            "token_id": str(self.token_id),
            "declared_from": self.declared_from,
            "account": self.account,
        }


@dataclass(frozen=True)
class PreparedTransaction:
    """Successful result of one intent: the plan plus non-fatal advisories"""

    plan: TransactionPlan
    transfer_plan: TransferPlan
    classifications: Tuple[CallClassification, ...]
    warnings: Tuple[OwnershipMismatchWarning, ...] = ()


@dataclass(frozen=True)
class PipelineContext:
    """Per-invocation context supplied by the caller"""

    signer_address: str
    chain_id: int
    rpc_endpoint: str
    active_account: str


@dataclass(frozen=True)
class PipelineConfig:
    """Tunables for the core pipeline, independent of the settings loader"""

    gas_buffer_percent: int = 150
    default_gas_limit: int = 200_000
    default_batch_gas_limit: int = 300_000
    strict_from_check: bool = False
    discovery_max_index: int = 3
    discovery_concurrency: int = 4


# ============================================================================
# Read models
# ============================================================================


@dataclass(frozen=True)
class TokenInfo:
    address: str
    name: str
    symbol: str
    decimals: int
    balance: Optional[int] = None


@dataclass(frozen=True)
class EnsInfo:
    token_id: int
    node: bytes
    wrapped: bool
    token_owner: Optional[str] = None
    registry_owner: Optional[str] = None
    resolver: Optional[str] = None
    address_record: Optional[str] = None


@dataclass(frozen=True)
class AccountDiagnostics:
    account: str
    signer: str
    chain_id: int
    code_size: int
    is_owner: Optional[bool]
    owners: Tuple[OwnerInfo, ...] = ()
    native_balance: Optional[int] = None
    execute_simulation_ok: Optional[bool] = None
    execute_simulation_error: Optional[str] = None
    errors: Tuple[str, ...] = field(default_factory=tuple)
