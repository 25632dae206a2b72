"""
Call Encoder

Pure functions building one atomic Call per primitive operation.
No network access; identical input always yields an identical Call.
"""

from typing import Sequence, Tuple, Union

from eth_utils import is_address, to_checksum_address

from .contracts import (
    ERC20_TRANSFER,
    ERC721_SAFE_TRANSFER_FROM,
    ERC1155_SAFE_TRANSFER_FROM,
    WALLET_ADD_OWNER_ADDRESS,
    WALLET_EXECUTE,
    WALLET_REMOVE_OWNER_AT_INDEX,
    encode_batch,
)
from .errors import EncodingError
from .models import UINT256_MAX, Call, DispatchEncoding, TokenStandard


def normalize_address(value: str, field: str = "address") -> str:
    """
    Validate and checksum an address

    Args:
        value: Hex address, any case
        field: Name used in the error message

    Returns:
        EIP-55 checksum address

    Raises:
        EncodingError: If the value is not a 20-byte hex address
    """
    if not isinstance(value, str) or not is_address(value):
        raise EncodingError(f"Invalid {field}: {value!r}", field=field, value=str(value))
    return to_checksum_address(value)


def check_uint256(value: int, field: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise EncodingError(f"{field} must be an integer", field=field, value=str(value))
    if value < 0 or value > UINT256_MAX:
        raise EncodingError(f"{field} out of uint256 range: {value}", field=field, value=str(value))
    return value


def _as_bytes(value: Union[bytes, str], field: str) -> bytes:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if isinstance(value, str):
        hex_value = value[2:] if value.startswith("0x") else value
        try:
            return bytes.fromhex(hex_value)
        except ValueError:
            raise EncodingError(f"{field} is not valid hex", field=field, value=value)
    raise EncodingError(f"{field} must be bytes or hex", field=field, value=str(value))


# ============================================================================
# Transfers
# ============================================================================


def encode_native_transfer(recipient: str, amount: int) -> Call:
    """Native currency transfer: empty payload, value carries the amount"""
    return Call(
        target=normalize_address(recipient, "recipient"),
        value=check_uint256(amount, "amount"),
        payload=b"",
    )


def encode_fungible_transfer(token: str, recipient: str, amount: int) -> Call:
    """ERC-20 transfer(address,uint256) executed by the account"""
    token = normalize_address(token, "token")
    recipient = normalize_address(recipient, "recipient")
    amount = check_uint256(amount, "amount")
    return Call(target=token, value=0, payload=ERC20_TRANSFER.encode(recipient, amount))


def encode_non_fungible_transfer(
    collection: str,
    sender: str,
    recipient: str,
    token_id: int,
    standard: TokenStandard = TokenStandard.ERC721,
    amount: int = 1,
) -> Call:
    """
    Non-fungible transfer from the account to a recipient

    ERC-721 uses safeTransferFrom(address,address,uint256); ERC-1155 uses
    safeTransferFrom(address,address,uint256,uint256,bytes) with empty data.

    Args:
        collection: Token contract address
        sender: Current holder, normally the account itself
        recipient: Destination address
        token_id: Token id, must fit uint256
        standard: Token standard of the collection
        amount: Units to move (ERC-1155 only)

    Returns:
        Call targeting the collection

    Raises:
        EncodingError: On malformed addresses or out-of-range numbers
    """
    collection = normalize_address(collection, "collection")
    sender = normalize_address(sender, "sender")
    recipient = normalize_address(recipient, "recipient")
    token_id = check_uint256(token_id, "token_id")

    if standard == TokenStandard.ERC1155:
        amount = check_uint256(amount, "amount")
        payload = ERC1155_SAFE_TRANSFER_FROM.encode(sender, recipient, token_id, amount, b"")
    else:
        payload = ERC721_SAFE_TRANSFER_FROM.encode(sender, recipient, token_id)
    return Call(target=collection, value=0, payload=payload)


# ============================================================================
# Owner set mutations (call targets the account itself)
# ============================================================================


def encode_owner_add(account: str, new_owner: str) -> Call:
    account = normalize_address(account, "account")
    new_owner = normalize_address(new_owner, "new_owner")
    return Call(target=account, value=0, payload=WALLET_ADD_OWNER_ADDRESS.encode(new_owner))


def encode_owner_remove(account: str, index: int, owner_bytes: Union[bytes, str]) -> Call:
    """
    Remove the owner stored at a slot index

    Both the index and the raw owner bytes are required; the account checks
    that the slot still holds those bytes.
    """
    account = normalize_address(account, "account")
    index = check_uint256(index, "index")
    raw = _as_bytes(owner_bytes, "owner_bytes")
    if not raw:
        raise EncodingError("owner_bytes must not be empty", field="owner_bytes")
    return Call(target=account, value=0, payload=WALLET_REMOVE_OWNER_AT_INDEX.encode(index, raw))


# ============================================================================
# Dispatch
# ============================================================================


def encode_dispatch(calls: Sequence[Call]) -> Tuple[DispatchEncoding, bytes]:
    """
    Wrap calls into the account's entry point

    Returns:
        (encoding, payload): execute for one call, executeBatch otherwise
    """
    calls = tuple(calls)
    if not calls:
        raise EncodingError("At least one call is required")
    if len(calls) == 1:
        call = calls[0]
        return DispatchEncoding.EXECUTE, WALLET_EXECUTE.encode(call.target, call.value, call.payload)
    return DispatchEncoding.EXECUTE_BATCH, encode_batch([call.to_tuple() for call in calls])
