"""
Error Translation

Maps pipeline error kinds to HTTP status codes. The response body carries
the structured error so clients can localize messages themselves.
"""

from fastapi import HTTPException

from api.enums import ErrorCategory
from smart_wallet_offchain.errors import (
    EncodingError,
    MalformedCallError,
    NetworkError,
    SmartWalletError,
)


STATUS_BY_CATEGORY = {
    ErrorCategory.INPUT: 400,
    ErrorCategory.PRECONDITION: 422,
    ErrorCategory.TRANSIENT: 503,
}


def categorize(error: SmartWalletError) -> ErrorCategory:
    if isinstance(error, (EncodingError, MalformedCallError)):
        return ErrorCategory.INPUT
    if isinstance(error, NetworkError):
        return ErrorCategory.TRANSIENT
    return ErrorCategory.PRECONDITION


def to_http_exception(error: SmartWalletError) -> HTTPException:
    category = categorize(error)
    detail = error.to_dict()
    detail["category"] = category.value
    return HTTPException(status_code=STATUS_BY_CATEGORY[category], detail=detail)
