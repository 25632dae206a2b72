"""
Shared Enums

Single source of truth for enums used across API schemas and services.
Core enums are re-exported so routers import from one place.
"""

from enum import Enum

from smart_wallet_offchain.models import AccountSource, DispatchEncoding, FactoryVersion, TokenStandard


# ============================================================================
# Intent Enums
# ============================================================================


class IntentKind(str, Enum):
    """Intent kinds accepted by the prepare endpoints"""

    NATIVE_TRANSFER = "native_transfer"
    FUNGIBLE_TRANSFER = "fungible_transfer"
    NON_FUNGIBLE_TRANSFER = "non_fungible_transfer"
    OWNER_ADD = "owner_add"
    OWNER_REMOVE = "owner_remove"


class ErrorCategory(str, Enum):
    """
    HTTP-facing grouping of pipeline error kinds

    - INPUT: malformed input or undecodable call (400)
    - PRECONDITION: validation, simulation or assembly rejection (422)
    - TRANSIENT: network failure, caller may retry (503)
    """

    INPUT = "input"
    PRECONDITION = "precondition"
    TRANSIENT = "transient"


__all__ = [
    "AccountSource",
    "DispatchEncoding",
    "ErrorCategory",
    "FactoryVersion",
    "IntentKind",
    "TokenStandard",
]
