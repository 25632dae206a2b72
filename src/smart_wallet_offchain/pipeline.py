"""
Transaction Preparation Pipeline

One entry point per intent kind. Each run encodes the calls, classifies them,
validates preconditions, simulates, and assembles the unsigned transaction,
in that order. Any fatal error aborts the run; warnings ride on the result.
"""

import dataclasses
import logging
from typing import Optional, Protocol, Union

from .calls import (
    encode_fungible_transfer,
    encode_native_transfer,
    encode_owner_add,
    encode_owner_remove,
    normalize_address,
)
from .chain_context import ChainReader, EVMChainContext
from .classifier import classify_call
from .events import EventSink, LoggingEventSink, timed_step
from .models import (
    PipelineConfig,
    PipelineContext,
    PreparedTransaction,
    TokenStandard,
    TransactionPlan,
    TransferPlan,
)
from .simulation import PreflightSimulator
from .tokens import TokenOperations
from .transactions import TransactionAssembler
from .validation import OwnershipValidator


logger = logging.getLogger(__name__)


class TransactionSigner(Protocol):
    """External signer holding the owner key"""

    async def sign(self, plan: TransactionPlan, authorization: str) -> bytes: ...


class Broadcaster(Protocol):
    async def broadcast(self, signed_transaction: bytes) -> str: ...


class SmartWalletPipeline:
    """
    Prepares smart wallet transactions for one caller context.

    All stages share a single chain client so they read from the same
    endpoint.
    """

    def __init__(
        self,
        context: PipelineContext,
        reader: Optional[ChainReader] = None,
        config: Optional[PipelineConfig] = None,
        sink: Optional[EventSink] = None,
    ):
        """
        Initialize pipeline

        Args:
            context: Signer, chain, endpoint and active account of the caller
            reader: Chain client; built from context.rpc_endpoint when omitted
            config: Gas and validation tunables
            sink: Event sink; defaults to the logging sink
        """
        self.context = context
        self.reader = reader or EVMChainContext(context.rpc_endpoint, context.chain_id)
        self.config = config or PipelineConfig()
        self.sink = sink or LoggingEventSink()

        self.tokens = TokenOperations(self.reader)
        self.validator = OwnershipValidator(self.reader, self.config)
        self.simulator = PreflightSimulator(self.reader)
        self.assembler = TransactionAssembler(self.reader, self.config)

    @property
    def account(self) -> str:
        return normalize_address(self.context.active_account, "active_account")

    @property
    def signer(self) -> str:
        return normalize_address(self.context.signer_address, "signer_address")

    def _entities(self, **extra):
        entities = {
            "account": self.context.active_account,
            "signer": self.context.signer_address,
            "chain_id": self.context.chain_id,
        }
        entities.update(extra)
        return entities

    # ========================================================================
    # Entry points
    # ========================================================================

    async def prepare_native_transfer(self, recipient: str, amount: int) -> PreparedTransaction:
        async with timed_step(self.sink, "encode", **self._entities(intent="native_transfer")):
            call = encode_native_transfer(recipient, amount)
        return await self.run(TransferPlan.single(call, "Transfer Native"), "native_transfer")

    async def prepare_fungible_transfer(self, token: str, recipient: str, amount: int) -> PreparedTransaction:
        async with timed_step(self.sink, "encode", **self._entities(intent="fungible_transfer")):
            call = encode_fungible_transfer(token, recipient, amount)
        return await self.run(TransferPlan.single(call, "Transfer Token"), "fungible_transfer")

    async def prepare_non_fungible_transfer(
        self,
        collection: str,
        recipient: str,
        token_id: int,
        standard: TokenStandard = TokenStandard.ERC721,
        amount: int = 1,
        sender: Optional[str] = None,
    ) -> PreparedTransaction:
        """
        Transfer an NFT held by the account

        Name-system collections are expanded by the batch planner into an
        ordered, atomic batch.

        Args:
            collection: Token contract address
            recipient: Destination address
            token_id: Token id
            standard: ERC721 or ERC1155 for ordinary collections
            amount: ERC-1155 units
            sender: Declared sender; defaults to the account
        """
        async with timed_step(self.sink, "plan", **self._entities(intent="non_fungible_transfer")) as entities:
            transfer_plan = await self.tokens.plan_non_fungible_transfer(
                collection, sender or self.account, recipient, token_id, standard, amount
            )
            entities["steps"] = len(transfer_plan.steps)
        return await self.run(transfer_plan, "non_fungible_transfer")

    async def prepare_owner_add(self, new_owner: str) -> PreparedTransaction:
        async with timed_step(self.sink, "encode", **self._entities(intent="owner_add")):
            call = encode_owner_add(self.account, new_owner)
        return await self.run(TransferPlan.single(call, "Add Owner"), "owner_add")

    async def prepare_owner_remove(self, index: int, owner_bytes: Union[bytes, str]) -> PreparedTransaction:
        """Remove the owner at a slot; index and raw bytes must both match on-chain"""
        async with timed_step(self.sink, "encode", **self._entities(intent="owner_remove")):
            call = encode_owner_remove(self.account, index, owner_bytes)
        return await self.run(TransferPlan.single(call, "Remove Owner"), "owner_remove")

    # ========================================================================
    # Stages
    # ========================================================================

    async def run(self, transfer_plan: TransferPlan, intent: str = "custom") -> PreparedTransaction:
        """
        Classify, validate, simulate and assemble a transfer plan

        Returns:
            PreparedTransaction with the unsigned plan and any warnings

        Raises:
            SmartWalletError: The first fatal error; later stages do not run
        """
        account, signer = self.account, self.signer
        entities = self._entities(intent=intent)

        async with timed_step(self.sink, "classify", **entities):
            classifications = tuple(classify_call(call) for call in transfer_plan.calls)

        async with timed_step(self.sink, "validate", **entities):
            warnings = await self.validator.validate(account, signer, classifications)

        async with timed_step(self.sink, "simulate", **entities):
            await self.simulator.simulate(account, signer, transfer_plan.calls)

        async with timed_step(self.sink, "assemble", **entities) as assembled:
            plan = await self.assembler.assemble(account, signer, transfer_plan.calls, self.context.chain_id)
            plan = dataclasses.replace(plan, step_labels=transfer_plan.labels)
            assembled.update(encoding=plan.encoding.value, gas_limit=plan.gas_limit, nonce=plan.nonce)

        return PreparedTransaction(
            plan=plan,
            transfer_plan=transfer_plan,
            classifications=classifications,
            warnings=warnings,
        )


async def submit_prepared(
    prepared: PreparedTransaction,
    signer: TransactionSigner,
    broadcaster: Broadcaster,
    authorization: str,
    sink: Optional[EventSink] = None,
) -> str:
    """
    Sign and broadcast a prepared transaction

    Signer errors propagate unchanged; confirmation is left to the caller.

    Returns:
        Transaction hash
    """
    sink = sink or LoggingEventSink()
    entities = {"account": prepared.plan.recipient, "chain_id": prepared.plan.chain_id}
    async with timed_step(sink, "sign", **entities):
        signed = await signer.sign(prepared.plan, authorization)
    async with timed_step(sink, "broadcast", **entities) as broadcast:
        tx_hash = await broadcaster.broadcast(signed)
        broadcast["tx_hash"] = tx_hash
    logger.info(f"Broadcast {tx_hash} for {prepared.plan.recipient}")
    return tx_hash
