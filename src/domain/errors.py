"""Wallet domain errors

Every error carries a stable code. Use cases convert these into
libs.result.Error values; the API layer maps codes to HTTP statuses.
"""

from typing import Any, List, Optional
from libs.result import Error


class WalletError(Exception):
    """Base class for ledger errors"""

    code = "WALLET_ERROR"
    retryable = False

    def __init__(self, message: str, reason: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.reason = reason

    def to_error(self) -> Error:
        return Error(
            code=self.code,
            message=self.message,
            reason=self.reason,
            retryable=self.retryable,
        )


class WalletNotFound(WalletError):
    code = "WALLET_NOT_FOUND"


class TransactionNotFound(WalletError):
    code = "TRANSACTION_NOT_FOUND"


class WalletBlocked(WalletError):
    """Wallet status is not ACTIVE"""
    code = "WALLET_BLOCKED"


class InsufficientFunds(WalletError):
    code = "INSUFFICIENT_FUNDS"


class CurrencyMismatch(WalletError):
    code = "CURRENCY_MISMATCH"


class InvalidStateTransition(WalletError):
    code = "INVALID_STATE_TRANSITION"


class ConcurrencyConflict(WalletError):
    """Optimistic concurrency retries exhausted"""
    code = "CONCURRENCY_CONFLICT"
    retryable = True


class DuplicateTransaction(WalletError):
    """Idempotency key reused for a different transaction

    A replay of the same request is not an error: the existing transaction
    is returned with a duplicate flag.
    """
    code = "DUPLICATE_TRANSACTION"


class DailyLimitExceeded(WalletError):
    code = "DAILY_LIMIT_EXCEEDED"


class GatewayCallbackMismatch(WalletError):
    code = "GATEWAY_CALLBACK_MISMATCH"


class GatewayUnavailable(WalletError):
    code = "GATEWAY_UNAVAILABLE"
    retryable = True


class InvalidSignature(WalletError):
    code = "INVALID_SIGNATURE"


class WalletValidationError(WalletError):
    """Malformed input rejected before touching storage"""

    code = "VALIDATION_ERROR"

    def __init__(
        self,
        message: str,
        details: Optional[List[dict[str, Any]]] = None,
        reason: Optional[str] = None,
    ):
        super().__init__(message, reason=reason)
        self.details = details or []

    @classmethod
    def from_pydantic(cls, exc) -> "WalletValidationError":
        details = [
            {
                "field": ".".join(str(part) for part in err.get("loc", ())),
                "message": err.get("msg", ""),
            }
            for err in exc.errors()
        ]
        return cls("Invalid request parameters", details=details)

    def to_error(self) -> Error:
        error = super().to_error()
        error.details = self.details or None
        return error
