"""
Transaction Assembler

Turns validated, simulated calls into a fully parameterized unsigned
transaction that the signer sends to the account's dispatch entry point.
"""

import asyncio
import logging
from typing import Optional, Sequence

from .calls import encode_dispatch
from .chain_context import ChainReader
from .errors import (
    EstimationUnavailableError,
    ExecutionReverted,
    GasEstimationFailedError,
    InsufficientGasFundsError,
)
from .models import Call, DispatchEncoding, PipelineConfig, TransactionPlan


logger = logging.getLogger(__name__)


class TransactionAssembler:
    """Builds TransactionPlans for smart wallet dispatches"""

    def __init__(self, reader: ChainReader, config: Optional[PipelineConfig] = None):
        """
        Initialize assembler

        Args:
            reader: Chain client of the pipeline run
            config: Gas buffer and default limits
        """
        self.reader = reader
        self.config = config or PipelineConfig()

    def apply_buffer(self, estimate: int) -> int:
        return estimate * self.config.gas_buffer_percent // 100

    def default_gas_limit(self, encoding: DispatchEncoding) -> int:
        if encoding == DispatchEncoding.EXECUTE_BATCH:
            return self.config.default_batch_gas_limit
        return self.config.default_gas_limit

    async def estimate_gas_limit(
        self, account: str, signer: str, payload: bytes, calls: Sequence[Call], encoding: DispatchEncoding
    ) -> int:
        """
        Buffered gas limit for the dispatch

        A revert always aborts. When the endpoint cannot estimate at all, the
        configured default is used only if none of the inner calls carries a
        payload.

        Raises:
            GasEstimationFailedError: If no gas limit can be justified
        """
        try:
            estimate = await self.reader.estimate_gas(signer, account, payload, 0)
        except ExecutionReverted as e:
            logger.warning(f"Gas estimation for {account} reverted: {e.reason or 'no reason'}")
            raise GasEstimationFailedError(account, e.reason, e.data) from e
        except EstimationUnavailableError as e:
            if any(call.payload for call in calls):
                raise GasEstimationFailedError(account, e.reason) from e
            limit = self.default_gas_limit(encoding)
            logger.warning(f"Gas estimation unavailable for {account}, using default limit {limit}")
            return limit

        limit = self.apply_buffer(estimate)
        logger.debug(f"Gas estimate {estimate}, buffered limit {limit}")
        return limit

    async def assemble(self, account: str, signer: str, calls: Sequence[Call], chain_id: int) -> TransactionPlan:
        """
        Assemble the unsigned transaction

        Args:
            account: Smart wallet receiving the dispatch
            signer: Owner sending the transaction
            calls: Calls of the intent; more than one becomes executeBatch
            chain_id: Chain the transaction is bound to

        Returns:
            TransactionPlan with value 0 (value travels inside the calls)

        Raises:
            GasEstimationFailedError: If estimation reverts
            InsufficientGasFundsError: If the signer cannot pay gas_limit * max_fee
        """
        calls = tuple(calls)
        encoding, payload = encode_dispatch(calls)

        nonce, fees, balance = await asyncio.gather(
            self.reader.get_transaction_count(signer),
            self.reader.get_fee_data(),
            self.reader.get_balance(signer),
        )
        gas_limit = await self.estimate_gas_limit(account, signer, payload, calls, encoding)

        required = gas_limit * fees.max_fee
        if balance < required:
            raise InsufficientGasFundsError(signer, required, balance)

        plan = TransactionPlan(
            recipient=account,
            value=0,
            payload=payload,
            nonce=nonce,
            fee_per_gas=fees.max_fee,
            priority_fee_per_gas=fees.priority_fee,
            gas_limit=gas_limit,
            chain_id=chain_id,
            encoding=encoding,
        )
        logger.info(
            f"Assembled {encoding.value} for {account}: nonce {nonce}, gas {gas_limit}, max fee {fees.max_fee}"
        )
        return plan
