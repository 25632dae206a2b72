"""
Call Classifier

Recognizes known call shapes from the leading selector bytes of a payload.
classify_call is total: unrecognized selectors map to UnknownCall, while a
recognized selector whose arguments do not decode raises MalformedCallError.
"""

from typing import Callable, Dict, Tuple

from eth_abi.exceptions import DecodingError
from eth_utils import to_checksum_address

from .contracts import (
    ERC20_TRANSFER,
    ERC721_SAFE_TRANSFER_FROM,
    ERC721_SAFE_TRANSFER_FROM_WITH_DATA,
    ERC721_TRANSFER_FROM,
    ERC1155_SAFE_TRANSFER_FROM,
    SELECTOR_SET_VERSION,
    WALLET_ADD_OWNER_ADDRESS,
    WALLET_REMOVE_OWNER_AT_INDEX,
    FunctionSpec,
)
from .errors import MalformedCallError
from .models import (
    Call,
    CallClassification,
    FungibleTransfer,
    MultiTokenTransfer,
    NativeTransfer,
    NonFungibleTransfer,
    OwnerAdd,
    OwnerRemove,
    UnknownCall,
)


Decoder = Callable[[Call, Tuple], CallClassification]


def _fungible(call: Call, args: Tuple) -> CallClassification:
    recipient, amount = args
    return FungibleTransfer(token=call.target, recipient=recipient, amount=amount)


def _non_fungible(call: Call, args: Tuple) -> CallClassification:
    sender, recipient, token_id = args[:3]
    return NonFungibleTransfer(collection=call.target, sender=sender, recipient=recipient, token_id=token_id)


def _multi_token(call: Call, args: Tuple) -> CallClassification:
    sender, recipient, token_id, amount, _data = args
    return MultiTokenTransfer(
        collection=call.target, sender=sender, recipient=recipient, token_id=token_id, amount=amount
    )


def _owner_add(call: Call, args: Tuple) -> CallClassification:
    return OwnerAdd(new_owner=args[0])


def _owner_remove(call: Call, args: Tuple) -> CallClassification:
    index, owner_bytes = args
    return OwnerRemove(index=index, owner_bytes=owner_bytes)


RECOGNIZED_CALLS: Dict[bytes, Tuple[FunctionSpec, Decoder]] = {
    spec.selector: (spec, decoder)
    for spec, decoder in (
        (ERC20_TRANSFER, _fungible),
        (ERC721_TRANSFER_FROM, _non_fungible),
        (ERC721_SAFE_TRANSFER_FROM, _non_fungible),
        (ERC721_SAFE_TRANSFER_FROM_WITH_DATA, _non_fungible),
        (ERC1155_SAFE_TRANSFER_FROM, _multi_token),
        (WALLET_ADD_OWNER_ADDRESS, _owner_add),
        (WALLET_REMOVE_OWNER_AT_INDEX, _owner_remove),
    )
}


def recognized_selectors() -> Dict[str, str]:
    """Hex selector to signature for the current selector set"""
    return {"0x" + selector.hex(): spec.signature for selector, (spec, _) in RECOGNIZED_CALLS.items()}


def classify_call(call: Call) -> CallClassification:
    """
    Classify a call by its selector

    Args:
        call: Call to inspect

    Returns:
        The matching classification; NativeTransfer for an empty payload and
        UnknownCall for anything outside the selector set

    Raises:
        MalformedCallError: If a recognized selector carries undecodable arguments
    """
    if not call.payload:
        return NativeTransfer(recipient=to_checksum_address(call.target), amount=call.value)

    selector = call.selector
    entry = RECOGNIZED_CALLS.get(selector)
    if entry is None:
        return UnknownCall(selector=selector)

    spec, decoder = entry
    try:
        args = spec.decode_args(call.payload)
    except (DecodingError, ValueError, OverflowError) as e:
        raise MalformedCallError(selector, f"{spec.signature}: {e}") from e
    return decoder(call, args)


__all__ = ["SELECTOR_SET_VERSION", "RECOGNIZED_CALLS", "classify_call", "recognized_selectors"]
