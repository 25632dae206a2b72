"""
Token Operations

Token metadata reads and the batch planner for compound transfers.
ENS names held in the base registrar are moved with an ordered, atomic
three-step batch; wrapped names and every other collection are a single call.
"""

import asyncio
import logging
from typing import Any, Optional

from eth_abi.exceptions import DecodingError

from .calls import encode_non_fungible_transfer, normalize_address
from .chain_context import ChainReader
from .contracts import (
    ENS_REGISTRY_OWNER,
    ENS_REGISTRY_RESOLVER,
    ENS_REGISTRY_SET_OWNER,
    ENS_RESOLVER_ADDR,
    ENS_RESOLVER_SET_ADDR,
    ERC20_BALANCE_OF,
    ERC20_DECIMALS,
    ERC20_NAME,
    ERC20_SYMBOL,
    ERC721_OWNER_OF,
    ZERO_ADDRESS,
    EnsDeployment,
    FunctionSpec,
    get_ens_deployment,
    token_id_to_node,
)
from .errors import ExecutionReverted
from .models import Call, EnsInfo, TokenInfo, TokenStandard, TransferPlan, TransferStep


logger = logging.getLogger(__name__)

UNKNOWN_SYMBOL = "UNKNOWN"
DEFAULT_DECIMALS = 18

STEP_UPDATE_ETH_RECORD = "Update ETH Record"
STEP_UPDATE_MANAGER = "Update Manager (Registry)"
STEP_TRANSFER_NFT = "Transfer NFT Token (Owner)"
STEP_TRANSFER_WRAPPED = "Transfer Wrapped ENS Token"


async def read_contract(reader: ChainReader, to: str, spec: FunctionSpec, *args: Any) -> Any:
    """
    Read a view function and decode its result

    Raises:
        ExecutionReverted: If the call reverts
        DecodingError: If the contract returned data of the wrong shape
    """
    data = await reader.call(to, spec.encode(*args))
    return spec.decode_result(data)


async def try_read_contract(reader: ChainReader, to: str, spec: FunctionSpec, *args: Any) -> Any:
    """Same as read_contract, but a revert or undecodable result yields None"""
    try:
        return await read_contract(reader, to, spec, *args)
    except (ExecutionReverted, DecodingError) as e:
        logger.debug(f"{spec.signature} on {to} unavailable: {e}")
        return None


class TokenOperations:
    """Token metadata reads and compound transfer planning"""

    def __init__(self, reader: ChainReader):
        self.reader = reader

    @property
    def ens(self) -> Optional[EnsDeployment]:
        return get_ens_deployment(self.reader.chain_id)

    async def get_symbol_and_decimals(self, token: str):
        """Best-effort symbol and decimals, falling back to UNKNOWN / 18"""
        symbol, decimals = await asyncio.gather(
            try_read_contract(self.reader, token, ERC20_SYMBOL),
            try_read_contract(self.reader, token, ERC20_DECIMALS),
        )
        if symbol is None:
            logger.warning(f"Could not read symbol of {token}, using {UNKNOWN_SYMBOL}")
            symbol = UNKNOWN_SYMBOL
        if decimals is None:
            logger.warning(f"Could not read decimals of {token}, using {DEFAULT_DECIMALS}")
            decimals = DEFAULT_DECIMALS
        return symbol, decimals

    async def get_token_info(self, token: str, holder: Optional[str] = None) -> TokenInfo:
        """
        Read fungible token metadata

        Args:
            token: Token contract address
            holder: Optional address whose balance is included

        Returns:
            TokenInfo; missing name falls back to the symbol
        """
        token = normalize_address(token, "token")
        reads = [
            try_read_contract(self.reader, token, ERC20_NAME),
            self.get_symbol_and_decimals(token),
        ]
        if holder:
            reads.append(try_read_contract(self.reader, token, ERC20_BALANCE_OF, normalize_address(holder, "holder")))
        results = await asyncio.gather(*reads)

        name = results[0]
        symbol, decimals = results[1]
        balance = results[2] if holder else None
        return TokenInfo(
            address=token,
            name=name if name is not None else symbol,
            symbol=symbol,
            decimals=decimals,
            balance=balance,
        )

    async def get_ens_info(self, token_id: int, wrapped: bool = False) -> EnsInfo:
        """
        Read the state of a .eth name

        Wrapped names only report the node; their holder is checked through
        the ERC-1155 balance instead.

        Raises:
            ValueError: If no ENS deployment is known for the chain
        """
        ens = self.ens
        if ens is None:
            raise ValueError(f"ENS is not available on chain {self.reader.chain_id}")

        node = token_id_to_node(token_id)
        if wrapped:
            return EnsInfo(token_id=token_id, node=node, wrapped=True)

        token_owner, registry_owner, resolver = await asyncio.gather(
            try_read_contract(self.reader, ens.base_registrar, ERC721_OWNER_OF, token_id),
            try_read_contract(self.reader, ens.registry, ENS_REGISTRY_OWNER, node),
            try_read_contract(self.reader, ens.registry, ENS_REGISTRY_RESOLVER, node),
        )

        address_record = None
        if resolver and resolver != ZERO_ADDRESS:
            address_record = await try_read_contract(self.reader, resolver, ENS_RESOLVER_ADDR, node)
        else:
            resolver = None

        return EnsInfo(
            token_id=token_id,
            node=node,
            wrapped=False,
            token_owner=token_owner,
            registry_owner=registry_owner,
            resolver=resolver,
            address_record=address_record,
        )

    # ========================================================================
    # Batch planner
    # ========================================================================

    async def plan_non_fungible_transfer(
        self,
        collection: str,
        sender: str,
        recipient: str,
        token_id: int,
        standard: TokenStandard = TokenStandard.ERC721,
        amount: int = 1,
    ) -> TransferPlan:
        """
        Decompose a non-fungible transfer into ordered calls

        Args:
            collection: Token contract address
            sender: Current holder (the account)
            recipient: Destination address
            token_id: Token id
            standard: Token standard for collections outside the name system
            amount: ERC-1155 units

        Returns:
            TransferPlan; atomic whenever it holds more than one step

        Raises:
            EncodingError: On malformed input, before any chain read
        """
        call = encode_non_fungible_transfer(collection, sender, recipient, token_id, standard, amount)
        ens = self.ens
        if ens is None or not ens.is_name_collection(call.target):
            return TransferPlan.single(call, _transfer_label(standard))

        if ens.is_wrapped(call.target):
            wrapped_call = encode_non_fungible_transfer(
                call.target, sender, recipient, token_id, TokenStandard.ERC1155, 1
            )
            return TransferPlan.single(wrapped_call, STEP_TRANSFER_WRAPPED)

        # the base registrar is ERC-721 only
        if standard != TokenStandard.ERC721:
            call = encode_non_fungible_transfer(call.target, sender, recipient, token_id)
        return await self._plan_ens_transfer(ens, call, recipient, token_id)

    async def _plan_ens_transfer(
        self, ens: EnsDeployment, transfer_call: Call, recipient: str, token_id: int
    ) -> TransferPlan:
        recipient = normalize_address(recipient, "recipient")
        node = token_id_to_node(token_id)
        resolver = await try_read_contract(self.reader, ens.registry, ENS_REGISTRY_RESOLVER, node)

        steps = []
        if resolver and resolver != ZERO_ADDRESS:
            steps.append(
                TransferStep(
                    label=STEP_UPDATE_ETH_RECORD,
                    call=Call(target=resolver, value=0, payload=ENS_RESOLVER_SET_ADDR.encode(node, recipient)),
                )
            )
        else:
            logger.info(f"No resolver set for ENS token {token_id}, skipping address record update")

        steps.append(
            TransferStep(
                label=STEP_UPDATE_MANAGER,
                call=Call(target=ens.registry, value=0, payload=ENS_REGISTRY_SET_OWNER.encode(node, recipient)),
            )
        )
        steps.append(TransferStep(label=STEP_TRANSFER_NFT, call=transfer_call))

        logger.info(f"Planned ENS transfer of {token_id} in {len(steps)} steps")
        return TransferPlan(steps=tuple(steps))


def _transfer_label(standard: TokenStandard) -> str:
    if standard == TokenStandard.ERC1155:
        return "Transfer Multi-Token"
    return "Transfer NFT"
