"""
Ownership & Balance Validator

Precondition checks run strictly before simulation:
the account must have code, the signer must be one of its owners and the
account must hold the assets the calls move.
"""

import asyncio
import logging
from typing import Dict, List, Optional, Sequence, Tuple

from .chain_context import ChainReader, get_network_info
from .contracts import ERC721_OWNER_OF, ERC1155_BALANCE_OF, ERC20_BALANCE_OF, ERC20_SYMBOL, WALLET_IS_OWNER_ADDRESS
from .errors import AccountNotDeployedError, InsufficientAssetError, NotOwnerError, OwnershipMismatchError
from .models import (
    CallClassification,
    FungibleTransfer,
    MultiTokenTransfer,
    NativeTransfer,
    NonFungibleTransfer,
    OwnershipMismatchWarning,
    PipelineConfig,
)
from .tokens import TokenOperations, try_read_contract


logger = logging.getLogger(__name__)


class OwnershipValidator:
    """Checks account existence, signer authority and asset balances"""

    def __init__(self, reader: ChainReader, config: Optional[PipelineConfig] = None):
        self.reader = reader
        self.config = config or PipelineConfig()
        self.tokens = TokenOperations(reader)
        self.network = get_network_info(reader.chain_id)

    async def ensure_deployed(self, account: str) -> bytes:
        """
        Raises:
            AccountNotDeployedError: If the account has no bytecode
        """
        code = await self.reader.get_code(account)
        if not code:
            raise AccountNotDeployedError(account, self.reader.chain_id, self.network.name)
        return code

    async def is_owner(self, account: str, signer: str) -> bool:
        """isOwnerAddress(signer); a revert means the account does not recognize the signer"""
        result = await try_read_contract(self.reader, account, WALLET_IS_OWNER_ADDRESS, signer)
        return bool(result)

    async def _ensure_owner(self, account: str, signer: str) -> None:
        if not await self.is_owner(account, signer):
            raise NotOwnerError(account, signer)

    async def validate(
        self, account: str, signer: str, classifications: Sequence[CallClassification]
    ) -> Tuple[OwnershipMismatchWarning, ...]:
        """
        Run every precondition for one intent

        Bytecode is checked first; authority and asset reads then run
        concurrently. The authority result is reported ahead of any asset
        shortfall.

        Args:
            account: Smart wallet executing the calls
            signer: External signer (expected owner)
            classifications: Classified calls of the intent

        Returns:
            Non-fatal ownership mismatch warnings

        Raises:
            AccountNotDeployedError, NotOwnerError, InsufficientAssetError,
            OwnershipMismatchError (strict mode only)
        """
        await self.ensure_deployed(account)

        checks = [self._ensure_owner(account, signer)]
        checks.extend(self._asset_checks(account, classifications))
        results = await asyncio.gather(*checks, return_exceptions=True)
        for result in results:
            if isinstance(result, BaseException):
                raise result

        warnings = self._ownership_mismatches(account, classifications)
        for warning in warnings:
            logger.warning(
                f"Transfer of {warning.collection} #{warning.token_id} declares sender "
                f"{warning.declared_from}, executing account is {warning.account}"
            )
        if warnings and self.config.strict_from_check:
            raise OwnershipMismatchError(warnings[0].declared_from, account)
        return warnings

    # ========================================================================
    # Asset checks
    # ========================================================================

    def _asset_checks(self, account: str, classifications: Sequence[CallClassification]) -> List:
        native_total = 0
        fungible_totals: Dict[str, int] = {}
        held_counts: Dict[Tuple[str, int], int] = {}
        multi_totals: Dict[Tuple[str, int], int] = {}
        checks = []

        for classification in classifications:
            if isinstance(classification, NativeTransfer):
                native_total += classification.amount
            elif isinstance(classification, FungibleTransfer):
                fungible_totals[classification.token] = (
                    fungible_totals.get(classification.token, 0) + classification.amount
                )
            elif isinstance(classification, NonFungibleTransfer):
                key = (classification.collection, classification.token_id)
                held_counts[key] = held_counts.get(key, 0) + 1
            elif isinstance(classification, MultiTokenTransfer):
                key = (classification.collection, classification.token_id)
                multi_totals[key] = multi_totals.get(key, 0) + classification.amount

        if native_total:
            checks.insert(0, self._check_native_balance(account, native_total))
        for token, amount in fungible_totals.items():
            checks.append(self._check_fungible_balance(account, token, amount))
        for (collection, token_id), count in held_counts.items():
            checks.append(self._check_token_held(account, collection, token_id, count))
        for (collection, token_id), amount in multi_totals.items():
            checks.append(self._check_multi_token_balance(account, collection, token_id, amount))
        return checks

    async def _check_native_balance(self, account: str, required: int) -> None:
        available = await self.reader.get_balance(account)
        if available < required:
            raise InsufficientAssetError(self.network.native_symbol, required, available)

    async def _check_fungible_balance(self, account: str, token: str, required: int) -> None:
        balance = await try_read_contract(self.reader, token, ERC20_BALANCE_OF, account)
        available = balance or 0
        if available < required:
            symbol, _ = await self.tokens.get_symbol_and_decimals(token)
            raise InsufficientAssetError(symbol, required, available, asset=token)

    async def _check_token_held(self, account: str, collection: str, token_id: int, required: int) -> None:
        """A unique token is held by the account and moved at most once"""
        holder = await try_read_contract(self.reader, collection, ERC721_OWNER_OF, token_id)
        available = 1 if holder is not None and holder.lower() == account.lower() else 0
        if available < required:
            symbol = await self._collection_symbol(collection)
            raise InsufficientAssetError(f"{symbol} #{token_id}", required, available, asset=collection)

    async def _check_multi_token_balance(
        self, account: str, collection: str, token_id: int, required: int
    ) -> None:
        balance = await try_read_contract(self.reader, collection, ERC1155_BALANCE_OF, account, token_id)
        available = balance or 0
        if available < required:
            symbol = await self._collection_symbol(collection)
            raise InsufficientAssetError(f"{symbol} #{token_id}", required, available, asset=collection)

    async def _collection_symbol(self, collection: str) -> str:
        symbol = await try_read_contract(self.reader, collection, ERC20_SYMBOL)
        return symbol or "NFT"

    @staticmethod
    def _ownership_mismatches(
        account: str, classifications: Sequence[CallClassification]
    ) -> Tuple[OwnershipMismatchWarning, ...]:
        warnings = []
        for classification in classifications:
            if isinstance(classification, (NonFungibleTransfer, MultiTokenTransfer)):
                if classification.sender.lower() != account.lower():
                    warnings.append(
                        OwnershipMismatchWarning(
                            collection=classification.collection,
                            token_id=classification.token_id,
                            declared_from=classification.sender,
                            account=account,
                        )
                    )
        return tuple(warnings)
