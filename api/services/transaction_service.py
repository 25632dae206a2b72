"""
Transaction Service

Business logic behind the prepare endpoints: one entry point per intent kind,
each running the smart wallet pipeline with a bounded retry on transient
network errors.
"""

import logging
from typing import Awaitable, Callable, TypeVar

from api.config import Settings
from api.enums import IntentKind
from api.schemas.transaction import (
    CallInfo,
    FungibleTransferRequest,
    NativeTransferRequest,
    NonFungibleTransferRequest,
    OwnerAddRequest,
    OwnerRemoveRequest,
    PrepareRequestBase,
    PreparedTransactionResponse,
    TransactionPlanInfo,
)
from smart_wallet_offchain.chain_context import ChainReader
from smart_wallet_offchain.errors import SmartWalletError
from smart_wallet_offchain.events import EventSink
from smart_wallet_offchain.models import PipelineContext, PreparedTransaction
from smart_wallet_offchain.pipeline import SmartWalletPipeline


logger = logging.getLogger(__name__)

T = TypeVar("T")


async def with_network_retry(operation: Callable[[], Awaitable[T]], retries: int = 1) -> T:
    """
    Run an operation, retrying only errors tagged retryable.

    Args:
        operation: Zero-argument coroutine factory, called once per attempt
        retries: Extra attempts after the first one

    Raises:
        SmartWalletError: The last error once attempts are exhausted, or the
            first non-retryable error immediately
    """
    attempt = 0
    while True:
        try:
            return await operation()
        except SmartWalletError as e:
            if not e.retryable or attempt >= retries:
                raise
            attempt += 1
            logger.warning(f"Retrying after transient error ({e.kind}), attempt {attempt} of {retries}: {e}")


class TransactionService:
    """Service for preparing smart wallet transactions"""

    def __init__(self, reader: ChainReader, config: Settings, sink: EventSink | None = None):
        self.reader = reader
        self.config = config
        self.sink = sink

    def _pipeline(self, request: PrepareRequestBase) -> SmartWalletPipeline:
        context = PipelineContext(
            signer_address=request.signer_address,
            chain_id=self.reader.chain_id,
            rpc_endpoint=getattr(self.reader, "rpc_url", ""),
            active_account=request.account,
        )
        return SmartWalletPipeline(context, reader=self.reader, config=self.config.pipeline_config(), sink=self.sink)

    async def _run(self, operation: Callable[[], Awaitable[PreparedTransaction]]) -> PreparedTransaction:
        return await with_network_retry(operation, self.config.network_retries)

    async def prepare_native_transfer(self, request: NativeTransferRequest) -> PreparedTransaction:
        pipeline = self._pipeline(request)
        return await self._run(lambda: pipeline.prepare_native_transfer(request.recipient, request.amount))

    async def prepare_fungible_transfer(self, request: FungibleTransferRequest) -> PreparedTransaction:
        pipeline = self._pipeline(request)
        return await self._run(
            lambda: pipeline.prepare_fungible_transfer(request.token, request.recipient, request.amount)
        )

    async def prepare_non_fungible_transfer(self, request: NonFungibleTransferRequest) -> PreparedTransaction:
        pipeline = self._pipeline(request)
        return await self._run(
            lambda: pipeline.prepare_non_fungible_transfer(
                request.collection,
                request.recipient,
                request.token_id,
                standard=request.standard,
                amount=request.amount,
                sender=request.sender,
            )
        )

    async def prepare_owner_add(self, request: OwnerAddRequest) -> PreparedTransaction:
        pipeline = self._pipeline(request)
        return await self._run(lambda: pipeline.prepare_owner_add(request.new_owner))

    async def prepare_owner_remove(self, request: OwnerRemoveRequest) -> PreparedTransaction:
        pipeline = self._pipeline(request)
        return await self._run(lambda: pipeline.prepare_owner_remove(request.index, request.owner_bytes))


def to_prepared_response(
    prepared: PreparedTransaction, intent: IntentKind, explorer_url: str | None = None
) -> PreparedTransactionResponse:
    """Convert a PreparedTransaction into its API representation"""
    plan = prepared.plan
    calls = [
        CallInfo(
            label=step.label,
            target=step.call.target,
            value=str(step.call.value),
            data="0x" + step.call.payload.hex(),
            kind=classification.kind,
        )
        for step, classification in zip(prepared.transfer_plan.steps, prepared.classifications)
    ]
    tx_params = plan.to_tx_params()
    tx_params["value"] = str(tx_params["value"])
    tx_params["maxFeePerGas"] = str(tx_params["maxFeePerGas"])
    tx_params["maxPriorityFeePerGas"] = str(tx_params["maxPriorityFeePerGas"])

    return PreparedTransactionResponse(
        intent=intent,
        atomic=prepared.transfer_plan.atomic,
        calls=calls,
        plan=TransactionPlanInfo(
            to=plan.recipient,
            value=str(plan.value),
            data="0x" + plan.payload.hex(),
            nonce=plan.nonce,
            max_fee_per_gas=str(plan.fee_per_gas),
            max_priority_fee_per_gas=str(plan.priority_fee_per_gas),
            gas_limit=plan.gas_limit,
            chain_id=plan.chain_id,
            encoding=plan.encoding,
            step_labels=list(plan.step_labels),
            max_cost=str(plan.max_cost),
        ),
        tx_params=tx_params,
        warnings=[warning.to_dict() for warning in prepared.warnings],
        explorer_url=explorer_url,
    )
