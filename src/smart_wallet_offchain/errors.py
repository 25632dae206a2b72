"""
Smart Wallet Errors

Structured error taxonomy for transaction preparation.
Each error is tagged fatal or retryable where it is defined, never inferred
later from its message text.
"""

from typing import Any, Dict, Optional


class SmartWalletError(Exception):
    """Base class for every error raised by the transaction pipeline"""

    kind: str = "smart_wallet_error"
    retryable: bool = False

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        """Locale-independent representation for callers"""
        return {
            "kind": self.kind,
            "retryable": self.retryable,
            "message": self.message,
            "details": {key: _plain(value) for key, value in self.details.items()},
        }


def _plain(value: Any) -> Any:
    if isinstance(value, bytes):
        return "0x" + value.hex()
    if isinstance(value, int) and not isinstance(value, bool) and value > 2**53:
        return str(value)
    return value


# ============================================================================
# Input errors (no network call made)
# ============================================================================


class EncodingError(SmartWalletError):
    """Typed input could not be encoded into a call"""

    kind = "encoding_error"


class MalformedCallError(SmartWalletError):
    """A call with a recognized selector could not be decoded"""

    kind = "malformed_call"

    def __init__(self, selector: bytes, reason: str):
        super().__init__(
            f"Call with selector 0x{selector.hex()} could not be decoded: {reason}",
            selector=selector,
            reason=reason,
        )


# ============================================================================
# Precondition errors (validator)
# ============================================================================


class AccountNotDeployedError(SmartWalletError):
    """No contract code at the smart wallet address"""

    kind = "account_not_deployed"

    def __init__(self, account: str, chain_id: int, chain_name: str):
        super().__init__(
            f"No contract found at {account} on {chain_name}",
            account=account,
            chain_id=chain_id,
            chain_name=chain_name,
        )


class NotSmartWalletError(SmartWalletError):
    """Contract at the address does not answer the smart wallet interface"""

    kind = "not_smart_wallet"

    def __init__(self, account: str, reason: str):
        super().__init__(
            f"{account} is not a smart wallet: {reason}",
            account=account,
            reason=reason,
        )


class NotOwnerError(SmartWalletError):
    """The signer is not a registered owner of the smart wallet"""

    kind = "not_owner"

    def __init__(self, account: str, signer: str):
        super().__init__(
            f"{signer} is not an owner of smart wallet {account}",
            account=account,
            signer=signer,
        )


class InsufficientAssetError(SmartWalletError):
    """The smart wallet does not hold enough of the requested asset"""

    kind = "insufficient_asset"

    def __init__(self, symbol: str, required: int, available: int, asset: Optional[str] = None):
        super().__init__(
            f"Insufficient {symbol}: required {required}, available {available}",
            symbol=symbol,
            required=required,
            available=available,
            asset=asset,
        )
        self.symbol = symbol
        self.required = required
        self.available = available


class OwnershipMismatchError(SmartWalletError):
    """Decoded transfer sender differs from the account (strict mode only)"""

    kind = "ownership_mismatch"

    def __init__(self, declared_from: str, account: str):
        super().__init__(
            f"Transfer declares sender {declared_from} but executes from {account}",
            declared_from=declared_from,
            account=account,
        )


# ============================================================================
# Simulation and assembly errors
# ============================================================================


class ExecutionReverted(SmartWalletError):
    """Raised by the chain client when a call or estimate reverts"""

    kind = "execution_reverted"

    def __init__(self, reason: Optional[str] = None, data: bytes = b""):
        super().__init__(reason or "execution reverted", reason=reason, data=data)
        self.reason = reason
        self.data = data


class SimulationFailedError(SmartWalletError):
    """Preflight simulation reverted"""

    kind = "simulation_failed"

    def __init__(self, target: str, reason: Optional[str], data: bytes = b""):
        shown = reason if reason else ("0x" + data.hex() if data else "no revert data")
        super().__init__(
            f"Preflight call to {target} would revert: {shown}",
            target=target,
            reason=reason,
            data=data,
        )
        self.reason = reason
        self.data = data


class GasEstimationFailedError(SmartWalletError):
    """Gas estimation failed, the dispatch would revert on-chain"""

    kind = "gas_estimation_failed"

    def __init__(self, account: str, reason: Optional[str], data: bytes = b""):
        super().__init__(
            f"Gas estimation for {account} failed: {reason or 'execution reverted'}",
            account=account,
            reason=reason,
            data=data,
        )
        self.reason = reason


class InsufficientGasFundsError(SmartWalletError):
    """Signer cannot cover the worst-case gas cost"""

    kind = "insufficient_gas_funds"

    def __init__(self, signer: str, required: int, available: int):
        super().__init__(
            f"Insufficient funds for gas on {signer}: required {required} wei, available {available} wei",
            signer=signer,
            required=required,
            available=available,
        )
        self.required = required
        self.available = available


# ============================================================================
# Transient network errors
# ============================================================================


class NetworkError(SmartWalletError):
    """Base for transient transport failures"""

    kind = "network_error"
    retryable = True


class NetworkTimeoutError(NetworkError):
    """A network call exceeded its timeout"""

    kind = "network_timeout"

    def __init__(self, operation: str, timeout: float):
        super().__init__(f"{operation} timed out after {timeout}s", operation=operation, timeout=timeout)


class NetworkUnavailableError(NetworkError):
    """The endpoint could not be reached"""

    kind = "network_unavailable"

    def __init__(self, operation: str, reason: str):
        super().__init__(f"{operation} failed: {reason}", operation=operation, reason=reason)


class EstimationUnavailableError(SmartWalletError):
    """The endpoint could not estimate gas for a reason other than a revert"""

    kind = "estimation_unavailable"

    def __init__(self, reason: str):
        super().__init__(f"Gas estimation unavailable: {reason}", reason=reason)
        self.reason = reason
