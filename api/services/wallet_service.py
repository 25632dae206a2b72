"""
Wallet Service

Business logic for smart wallet discovery, owner listing, diagnostics and
token metadata.
"""

import logging

from api.config import Settings
from api.schemas.wallet import (
    AccountRecordInfo,
    DiagnosticsResponse,
    OwnerInfoItem,
    TokenInfoResponse,
)
from api.services.transaction_service import with_network_retry
from smart_wallet_offchain.chain_context import ChainReader
from smart_wallet_offchain.discovery import AccountDiscovery, AccountRegistry, select_primary
from smart_wallet_offchain.models import AccountDiagnostics, AccountRecord, OwnerInfo, TokenInfo
from smart_wallet_offchain.tokens import TokenOperations
from smart_wallet_offchain.wallet import SmartWalletAccount


logger = logging.getLogger(__name__)


class WalletService:
    """Service for read-only smart wallet queries"""

    def __init__(self, reader: ChainReader, config: Settings, registry: AccountRegistry | None = None):
        self.reader = reader
        self.config = config
        self.discovery = AccountDiscovery(reader, registry=registry, config=config.pipeline_config())

    async def discover_accounts(self, signer: str) -> list[AccountRecord]:
        return await with_network_retry(lambda: self.discovery.discover(signer), self.config.network_retries)

    async def primary_account(self, signer: str) -> AccountRecord | None:
        records = await self.discover_accounts(signer)
        primary = select_primary(records)
        if primary:
            logger.info(f"Primary account for {signer}: {primary.address} ({primary.factory_version.value})")
        return primary

    async def list_owners(self, account: str) -> list[OwnerInfo]:
        wallet = SmartWalletAccount(self.reader, account)
        return await with_network_retry(wallet.list_owners, self.config.network_retries)

    async def diagnose(self, account: str, signer: str) -> AccountDiagnostics:
        wallet = SmartWalletAccount(self.reader, account)
        return await with_network_retry(lambda: wallet.diagnose(signer), self.config.network_retries)

    async def token_info(self, token: str, holder: str | None = None) -> TokenInfo:
        tokens = TokenOperations(self.reader)
        return await with_network_retry(lambda: tokens.get_token_info(token, holder), self.config.network_retries)


# ============================================================================
# Response converters
# ============================================================================


def to_account_info(record: AccountRecord) -> AccountRecordInfo:
    return AccountRecordInfo(
        address=record.address,
        factory_version=record.factory_version,
        derivation_nonce=record.derivation_nonce,
        deployed=record.deployed,
        owner_confirmed=record.owner_confirmed,
        source=record.source,
    )


def to_owner_item(owner: OwnerInfo) -> OwnerInfoItem:
    return OwnerInfoItem(index=owner.index, address=owner.address, raw_bytes="0x" + owner.raw_bytes.hex())


def to_diagnostics_response(diagnostics: AccountDiagnostics) -> DiagnosticsResponse:
    return DiagnosticsResponse(
        account=diagnostics.account,
        signer=diagnostics.signer,
        chain_id=diagnostics.chain_id,
        contract_exists=diagnostics.code_size > 0,
        code_size=diagnostics.code_size,
        is_owner=diagnostics.is_owner,
        owners=[to_owner_item(owner) for owner in diagnostics.owners],
        native_balance=str(diagnostics.native_balance) if diagnostics.native_balance is not None else None,
        execute_simulation_ok=diagnostics.execute_simulation_ok,
        execute_simulation_error=diagnostics.execute_simulation_error,
        errors=list(diagnostics.errors),
    )


def to_token_response(info: TokenInfo, chain_id: int) -> TokenInfoResponse:
    return TokenInfoResponse(
        address=info.address,
        chain_id=chain_id,
        name=info.name,
        symbol=info.symbol,
        decimals=info.decimals,
        balance=str(info.balance) if info.balance is not None else None,
    )
