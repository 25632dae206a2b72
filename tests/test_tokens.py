"""
Tests for token metadata reads and the batch planner
"""

import pytest

from smart_wallet_offchain.contracts import (
    ENS_DEPLOYMENTS,
    ENS_REGISTRY_RESOLVER,
    ERC20_SYMBOL,
    ERC721_SAFE_TRANSFER_FROM,
    ERC1155_SAFE_TRANSFER_FROM,
    token_id_to_node,
)
from smart_wallet_offchain.errors import EncodingError, ExecutionReverted
from smart_wallet_offchain.models import TokenStandard
from smart_wallet_offchain.tokens import (
    STEP_TRANSFER_NFT,
    STEP_TRANSFER_WRAPPED,
    STEP_UPDATE_ETH_RECORD,
    STEP_UPDATE_MANAGER,
    TokenOperations,
    read_contract,
    try_read_contract,
)

from tests.factories import ACCOUNT, COLLECTION, OTHER, RECIPIENT, TOKEN
from tests.mocks import MockChainClient


ENS = ENS_DEPLOYMENTS[1]


@pytest.mark.unit
class TestContractReads:
    @pytest.mark.asyncio
    async def test_read_contract_decodes(self):
        chain = MockChainClient()
        chain.add_erc20(TOKEN, symbol="DAI")
        assert await read_contract(chain, TOKEN, ERC20_SYMBOL) == "DAI"

    @pytest.mark.asyncio
    async def test_read_contract_propagates_revert(self):
        chain = MockChainClient()
        chain.revert_on(TOKEN, ERC20_SYMBOL, reason="nope")
        with pytest.raises(ExecutionReverted):
            await read_contract(chain, TOKEN, ERC20_SYMBOL)

    @pytest.mark.asyncio
    async def test_try_read_contract_swallows_revert_and_empty_result(self):
        chain = MockChainClient()
        chain.revert_on(TOKEN, ERC20_SYMBOL)
        assert await try_read_contract(chain, TOKEN, ERC20_SYMBOL) is None
        assert await try_read_contract(chain, OTHER, ERC20_SYMBOL) is None


@pytest.mark.unit
class TestTokenInfo:
    """Fungible token metadata"""

    @pytest.mark.asyncio
    async def test_full_metadata_with_balance(self):
        chain = MockChainClient()
        chain.add_erc20(TOKEN, symbol="USDC", decimals=6, balances={ACCOUNT: 2_500_000})

        info = await TokenOperations(chain).get_token_info(TOKEN.lower(), holder=ACCOUNT)

        assert info.address == TOKEN
        assert info.name == "USDC Token"
        assert info.symbol == "USDC"
        assert info.decimals == 6
        assert info.balance == 2_500_000

    @pytest.mark.asyncio
    async def test_balance_omitted_without_holder(self):
        chain = MockChainClient()
        chain.add_erc20(TOKEN)
        info = await TokenOperations(chain).get_token_info(TOKEN)
        assert info.balance is None

    @pytest.mark.asyncio
    async def test_fallbacks_for_non_standard_token(self):
        """Missing name, symbol and decimals fall back to UNKNOWN / 18"""
        chain = MockChainClient()
        chain.deploy(TOKEN)

        info = await TokenOperations(chain).get_token_info(TOKEN)

        assert (info.name, info.symbol, info.decimals) == ("UNKNOWN", "UNKNOWN", 18)

    @pytest.mark.asyncio
    async def test_invalid_token_address(self):
        with pytest.raises(EncodingError):
            await TokenOperations(MockChainClient()).get_token_info("0x123")


@pytest.mark.unit
class TestEnsInfo:
    @pytest.mark.asyncio
    async def test_unwrapped_name_state(self):
        chain = MockChainClient()
        node = token_id_to_node(55)
        chain.add_ens_name(ENS, 55, node, holder=ACCOUNT, resolver=ENS.public_resolver, address_record=ACCOUNT)

        info = await TokenOperations(chain).get_ens_info(55)

        assert info.node == node
        assert info.token_owner == ACCOUNT
        assert info.registry_owner == ACCOUNT
        assert info.resolver == ENS.public_resolver
        assert info.address_record == ACCOUNT

    @pytest.mark.asyncio
    async def test_no_resolver(self):
        chain = MockChainClient()
        chain.add_ens_name(ENS, 55, token_id_to_node(55), holder=ACCOUNT, resolver=None)
        info = await TokenOperations(chain).get_ens_info(55)
        assert info.resolver is None
        assert info.address_record is None

    @pytest.mark.asyncio
    async def test_wrapped_name_reads_nothing(self):
        chain = MockChainClient()
        info = await TokenOperations(chain).get_ens_info(55, wrapped=True)
        assert info.wrapped is True
        assert chain.count() == 0

    @pytest.mark.asyncio
    async def test_unavailable_off_mainnet(self):
        with pytest.raises(ValueError):
            await TokenOperations(MockChainClient(chain_id=8453)).get_ens_info(55)


@pytest.mark.unit
class TestBatchPlanner:
    """Decomposition of non-fungible transfers into ordered steps"""

    @pytest.mark.asyncio
    async def test_ordinary_collection_is_one_step(self):
        chain = MockChainClient()
        plan = await TokenOperations(chain).plan_non_fungible_transfer(COLLECTION, ACCOUNT, RECIPIENT, 1)

        assert len(plan.steps) == 1
        assert plan.atomic is False
        assert plan.steps[0].call.target == COLLECTION
        assert chain.count() == 0

    @pytest.mark.asyncio
    async def test_ens_with_resolver_is_three_ordered_steps(self):
        chain = MockChainClient()
        node = token_id_to_node(99)
        chain.add_ens_name(ENS, 99, node, holder=ACCOUNT, resolver=ENS.public_resolver)

        plan = await TokenOperations(chain).plan_non_fungible_transfer(ENS.base_registrar, ACCOUNT, RECIPIENT, 99)

        assert plan.labels == (STEP_UPDATE_ETH_RECORD, STEP_UPDATE_MANAGER, STEP_TRANSFER_NFT)
        assert plan.atomic is True
        assert [step.call.value for step in plan.steps] == [0, 0, 0]
        assert plan.steps[2].call.target == ENS.base_registrar

    @pytest.mark.asyncio
    async def test_ens_without_resolver_skips_record_update(self):
        chain = MockChainClient()
        chain.add_ens_name(ENS, 99, token_id_to_node(99), holder=ACCOUNT, resolver=None)

        plan = await TokenOperations(chain).plan_non_fungible_transfer(ENS.base_registrar, ACCOUNT, RECIPIENT, 99)

        assert plan.labels == (STEP_UPDATE_MANAGER, STEP_TRANSFER_NFT)
        assert plan.atomic is True

    @pytest.mark.asyncio
    async def test_resolver_read_uses_name_node(self):
        chain = MockChainClient()
        chain.add_ens_name(ENS, 99, token_id_to_node(99), holder=ACCOUNT, resolver=ENS.public_resolver)

        await TokenOperations(chain).plan_non_fungible_transfer(ENS.base_registrar, ACCOUNT, RECIPIENT, 99)

        (read,) = chain.calls_to(ENS_REGISTRY_RESOLVER)
        assert ENS_REGISTRY_RESOLVER.decode_args(read["data"]) == (token_id_to_node(99),)

    @pytest.mark.asyncio
    async def test_wrapped_name_is_single_multi_token_transfer(self):
        chain = MockChainClient()

        plan = await TokenOperations(chain).plan_non_fungible_transfer(ENS.name_wrapper, ACCOUNT, RECIPIENT, 99)

        assert plan.labels == (STEP_TRANSFER_WRAPPED,)
        call = plan.steps[0].call
        assert call.selector == ERC1155_SAFE_TRANSFER_FROM.selector
        assert ERC1155_SAFE_TRANSFER_FROM.decode_args(call.payload) == (ACCOUNT, RECIPIENT, 99, 1, b"")

    @pytest.mark.asyncio
    async def test_registrar_transfer_is_always_erc721(self):
        """A multi-token standard passed for the registrar is ignored"""
        chain = MockChainClient()
        chain.add_ens_name(ENS, 99, token_id_to_node(99), holder=ACCOUNT, resolver=ENS.public_resolver)

        plan = await TokenOperations(chain).plan_non_fungible_transfer(
            ENS.base_registrar, ACCOUNT, RECIPIENT, 99, TokenStandard.ERC1155, 3
        )

        transfer = plan.steps[-1].call
        assert plan.labels[-1] == STEP_TRANSFER_NFT
        assert transfer.selector == ERC721_SAFE_TRANSFER_FROM.selector
        assert ERC721_SAFE_TRANSFER_FROM.decode_args(transfer.payload) == (ACCOUNT, RECIPIENT, 99)

    @pytest.mark.asyncio
    async def test_registrar_is_ordinary_collection_off_mainnet(self):
        chain = MockChainClient(chain_id=8453)
        plan = await TokenOperations(chain).plan_non_fungible_transfer(
            ENS.base_registrar, ACCOUNT, RECIPIENT, 99, TokenStandard.ERC721
        )
        assert len(plan.steps) == 1

    @pytest.mark.asyncio
    async def test_bad_input_rejected_before_reads(self):
        chain = MockChainClient()
        with pytest.raises(EncodingError):
            await TokenOperations(chain).plan_non_fungible_transfer(ENS.base_registrar, ACCOUNT, "0xbad", 99)
        assert chain.count() == 0
