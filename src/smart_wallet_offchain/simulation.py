"""
Preflight Simulator

Read-only execution of the encoded calls against current chain state.
A single call is simulated from the account itself; a batch is simulated as
the full executeBatch dispatch from the signer, since its steps depend on
each other's effects.
"""

import logging
from typing import Sequence

from .calls import encode_dispatch
from .chain_context import ChainReader
from .errors import ExecutionReverted, SimulationFailedError
from .models import Call


logger = logging.getLogger(__name__)


class PreflightSimulator:
    def __init__(self, reader: ChainReader):
        self.reader = reader

    async def simulate(self, account: str, signer: str, calls: Sequence[Call]) -> bytes:
        """
        Dry-run the calls

        Args:
            account: Smart wallet executing the calls
            signer: Owner that will send the dispatch
            calls: Calls of the intent, in order

        Returns:
            Raw return data of the simulated call

        Raises:
            SimulationFailedError: If execution reverts
        """
        calls = tuple(calls)
        if len(calls) == 1:
            call = calls[0]
            target, data, sender, value = call.target, call.payload, account, call.value
        else:
            _, data = encode_dispatch(calls)
            target, sender, value = account, signer, 0

        try:
            result = await self.reader.call(target, data, from_address=sender, value=value)
        except ExecutionReverted as e:
            logger.warning(f"Preflight of call to {target} reverted: {e.reason or 'no reason'}")
            raise SimulationFailedError(target, e.reason, e.data) from e

        logger.info(f"Preflight of {len(calls)} call(s) from {sender} passed")
        return result
