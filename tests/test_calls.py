"""
Call Encoder and Classifier Tests

Encoding is pure and deterministic; classification of encoded calls gives
back the typed input.
"""

import pytest

from smart_wallet_offchain.calls import (
    encode_dispatch,
    encode_fungible_transfer,
    encode_native_transfer,
    encode_non_fungible_transfer,
    encode_owner_add,
    encode_owner_remove,
)
from smart_wallet_offchain.classifier import classify_call, recognized_selectors
from smart_wallet_offchain.contracts import (
    ERC721_TRANSFER_FROM,
    WALLET_EXECUTE,
    WALLET_EXECUTE_BATCH,
)
from smart_wallet_offchain.errors import EncodingError, MalformedCallError
from smart_wallet_offchain.models import (
    UINT256_MAX,
    Call,
    DispatchEncoding,
    FungibleTransfer,
    MultiTokenTransfer,
    NativeTransfer,
    NonFungibleTransfer,
    OwnerAdd,
    OwnerRemove,
    TokenStandard,
    UnknownCall,
)

from tests.factories import ACCOUNT, COLLECTION, RECIPIENT, SIGNER, TOKEN


@pytest.mark.unit
class TestCallEncoder:
    """Tests for the pure call encoders"""

    def test_native_transfer_has_empty_payload(self):
        call = encode_native_transfer(RECIPIENT, 5)
        assert call == Call(target=RECIPIENT, value=5, payload=b"")

    def test_fungible_transfer_uses_erc20_selector(self):
        call = encode_fungible_transfer(TOKEN, RECIPIENT, 1000)
        assert call.target == TOKEN
        assert call.value == 0
        assert call.payload[:4].hex() == "a9059cbb"

    def test_erc721_transfer_uses_safe_transfer_from(self):
        call = encode_non_fungible_transfer(COLLECTION, ACCOUNT, RECIPIENT, 42)
        assert call.payload[:4].hex() == "42842e0e"

    def test_erc1155_transfer_uses_multi_token_selector(self):
        call = encode_non_fungible_transfer(COLLECTION, ACCOUNT, RECIPIENT, 42, TokenStandard.ERC1155, 3)
        assert call.payload[:4].hex() == "f242432a"

    def test_encoding_is_deterministic(self):
        assert encode_fungible_transfer(TOKEN, RECIPIENT, 7) == encode_fungible_transfer(TOKEN, RECIPIENT, 7)
        assert encode_native_transfer(RECIPIENT, 7) == encode_native_transfer(RECIPIENT, 7)
        assert encode_non_fungible_transfer(COLLECTION, ACCOUNT, RECIPIENT, 1) == encode_non_fungible_transfer(
            COLLECTION, ACCOUNT, RECIPIENT, 1
        )

    def test_lowercase_addresses_are_checksummed(self):
        call = encode_fungible_transfer(TOKEN.lower(), RECIPIENT.lower(), 1)
        assert call.target == TOKEN
        assert call == encode_fungible_transfer(TOKEN, RECIPIENT, 1)

    @pytest.mark.parametrize("address", ["0x1234", "not-an-address", "", "0x" + "zz" * 20])
    def test_invalid_address_rejected(self, address):
        with pytest.raises(EncodingError):
            encode_fungible_transfer(TOKEN, address, 1)

    def test_token_id_out_of_range_rejected(self):
        with pytest.raises(EncodingError):
            encode_non_fungible_transfer(COLLECTION, ACCOUNT, RECIPIENT, UINT256_MAX + 1)

    def test_negative_amount_rejected(self):
        with pytest.raises(EncodingError):
            encode_native_transfer(RECIPIENT, -1)

    def test_owner_calls_target_the_account(self):
        add = encode_owner_add(ACCOUNT, SIGNER)
        remove = encode_owner_remove(ACCOUNT, 1, b"\x01" * 32)
        assert add.target == ACCOUNT and add.value == 0
        assert remove.target == ACCOUNT and remove.value == 0

    def test_owner_remove_requires_bytes(self):
        with pytest.raises(EncodingError):
            encode_owner_remove(ACCOUNT, 0, b"")
        with pytest.raises(EncodingError):
            encode_owner_remove(ACCOUNT, 0, "0xnothex")

    def test_single_call_dispatches_through_execute(self):
        encoding, payload = encode_dispatch([encode_native_transfer(RECIPIENT, 1)])
        assert encoding == DispatchEncoding.EXECUTE
        assert payload[:4] == WALLET_EXECUTE.selector

    def test_multiple_calls_dispatch_through_execute_batch(self):
        calls = [encode_native_transfer(RECIPIENT, 1), encode_fungible_transfer(TOKEN, RECIPIENT, 2)]
        encoding, payload = encode_dispatch(calls)
        assert encoding == DispatchEncoding.EXECUTE_BATCH
        (decoded,) = WALLET_EXECUTE_BATCH.decode_args(payload)
        assert [(item[0].lower(), item[1], item[2]) for item in decoded] == [
            (RECIPIENT.lower(), 1, b""),
            (TOKEN.lower(), 0, calls[1].payload),
        ]

    def test_empty_dispatch_rejected(self):
        with pytest.raises(EncodingError):
            encode_dispatch([])


@pytest.mark.unit
class TestCallClassifier:
    """Tests for selector-based classification"""

    @pytest.mark.parametrize("amount", [0, 1, 10**18, UINT256_MAX])
    def test_fungible_round_trip(self, amount):
        classification = classify_call(encode_fungible_transfer(TOKEN, RECIPIENT, amount))
        assert classification == FungibleTransfer(token=TOKEN, recipient=RECIPIENT, amount=amount)

    def test_native_transfer(self):
        assert classify_call(encode_native_transfer(RECIPIENT, 3)) == NativeTransfer(recipient=RECIPIENT, amount=3)

    def test_erc721_transfer(self):
        classification = classify_call(encode_non_fungible_transfer(COLLECTION, ACCOUNT, RECIPIENT, 9))
        assert classification == NonFungibleTransfer(
            collection=COLLECTION, sender=ACCOUNT, recipient=RECIPIENT, token_id=9
        )

    def test_plain_transfer_from_is_recognized(self):
        call = Call(target=COLLECTION, payload=ERC721_TRANSFER_FROM.encode(ACCOUNT, RECIPIENT, 9))
        assert isinstance(classify_call(call), NonFungibleTransfer)

    def test_multi_token_transfer(self):
        call = encode_non_fungible_transfer(COLLECTION, ACCOUNT, RECIPIENT, 9, TokenStandard.ERC1155, 4)
        assert classify_call(call) == MultiTokenTransfer(
            collection=COLLECTION, sender=ACCOUNT, recipient=RECIPIENT, token_id=9, amount=4
        )

    def test_owner_add(self):
        assert classify_call(encode_owner_add(ACCOUNT, SIGNER)) == OwnerAdd(new_owner=SIGNER)

    def test_owner_remove_round_trip(self):
        owner_bytes = bytes.fromhex("aa" * 32)
        classification = classify_call(encode_owner_remove(ACCOUNT, 2, owner_bytes))
        assert classification == OwnerRemove(index=2, owner_bytes=owner_bytes)

    def test_unknown_selector(self):
        call = Call(target=TOKEN, payload=bytes.fromhex("deadbeef") + bytes(32))
        classification = classify_call(call)
        assert isinstance(classification, UnknownCall)
        assert classification.selector == bytes.fromhex("deadbeef")
        assert classification.kind == "unknown"

    def test_truncated_recognized_call_is_malformed(self):
        payload = encode_fungible_transfer(TOKEN, RECIPIENT, 1).payload[:20]
        with pytest.raises(MalformedCallError) as exc_info:
            classify_call(Call(target=TOKEN, payload=payload))
        assert exc_info.value.kind == "malformed_call"

    def test_selector_set_lists_transfer_signatures(self):
        selectors = recognized_selectors()
        assert selectors["0xa9059cbb"] == "transfer(address,uint256)"
        assert selectors["0x23b872dd"] == "transferFrom(address,address,uint256)"
        assert selectors["0xb88d4fde"] == "safeTransferFrom(address,address,uint256,bytes)"
        assert selectors["0xf242432a"] == "safeTransferFrom(address,address,uint256,uint256,bytes)"
