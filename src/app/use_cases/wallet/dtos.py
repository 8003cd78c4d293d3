"""Data Transfer Objects for Wallet Use Cases

Pydantic models for command inputs and response outputs. Amounts cross this
boundary as Decimal and are converted to integer minor units by the use
cases.
"""

from datetime import datetime
from decimal import Decimal
from typing import Annotated, Any, Dict, List, Literal, Optional
from pydantic import AfterValidator, BaseModel, Field, field_validator
from src.domain.money import Money
from src.domain.transaction_state import TransactionStatus
from src.domain.wallet import Wallet, WalletStatus
from src.domain.wallet_transaction import (
    WalletTransaction,
    TransactionType,
    ReferenceType,
    InitiatedByActor,
    PaymentMethod,
    GatewayCallbackStatus,
)

OBJECT_ID_PATTERN = r"^[0-9a-fA-F]{24}$"

CurrencyCode = Annotated[str, AfterValidator(str.upper)]


class TopupCommandDTO(BaseModel):
    """
    Command DTO for starting a wallet top-up

    Used as input to InitiateTopup use case.
    """

    owner_id: str = Field(..., pattern=OBJECT_ID_PATTERN, description="User ID")

    amount: Decimal = Field(..., gt=0, description="Amount to add (must be > 0)")

    payment_method: PaymentMethod = Field(..., description="Payment method")

    currency: Optional[CurrencyCode] = Field(
        default=None,
        description="Currency code (defaults to the configured default currency)",
    )

    class Config:
        json_schema_extra = {
            "example": {
                "owner_id": "64b7f0c2a1e4d5f6a7b8c9d0",
                "amount": "500.00",
                "payment_method": "UPI",
                "currency": "INR"
            }
        }


class GatewayCallbackCommandDTO(BaseModel):
    """
    Command DTO for a payment gateway callback

    amount and currency are optional; when present they must match the
    pending top-up.
    """

    gateway_transaction_id: str = Field(..., min_length=1, max_length=128)

    status: GatewayCallbackStatus = Field(..., description="Status reported by the gateway")

    amount: Optional[Decimal] = Field(default=None, gt=0)

    currency: Optional[CurrencyCode] = Field(default=None)

    failure_reason: Optional[str] = Field(default=None, max_length=500)

    gateway_response: Optional[Dict[str, Any]] = Field(
        default=None,
        description="Raw gateway payload stored on the transaction",
    )


class AdjustBalanceCommandDTO(BaseModel):
    """
    Command DTO for an admin balance adjustment

    Used as input to AdjustBalance use case.
    """

    owner_id: str = Field(..., pattern=OBJECT_ID_PATTERN)

    amount: Decimal = Field(..., gt=0)

    transaction_type: TransactionType = Field(..., description="CREDIT or DEBIT")

    description: str = Field(..., min_length=5, max_length=250)

    admin_id: str = Field(..., pattern=OBJECT_ID_PATTERN, description="Acting admin")

    currency: Optional[CurrencyCode] = Field(default=None)

    idempotency_key: Optional[str] = Field(default=None, min_length=1, max_length=128)

    @field_validator("description")
    @classmethod
    def strip_description(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 5:
            raise ValueError("Description must be at least 5 characters")
        return v

    class Config:
        json_schema_extra = {
            "example": {
                "owner_id": "64b7f0c2a1e4d5f6a7b8c9d0",
                "amount": "100.00",
                "transaction_type": "CREDIT",
                "description": "Goodwill credit for delayed delivery",
                "admin_id": "64b7f0c2a1e4d5f6a7b8c9ff"
            }
        }


class OwnerQueryDTO(BaseModel):
    """Identifies one user, optionally one of their currencies"""

    owner_id: str = Field(..., pattern=OBJECT_ID_PATTERN)
    currency: Optional[CurrencyCode] = None


class SetWalletStatusCommandDTO(BaseModel):
    owner_id: str = Field(..., pattern=OBJECT_ID_PATTERN)
    status: WalletStatus
    currency: Optional[CurrencyCode] = Field(
        default=None,
        description="Restrict to one currency; all of the owner's wallets otherwise",
    )


class OrderDebitCommandDTO(BaseModel):
    """
    Command DTO for paying an order from the wallet

    idempotency_key defaults to ORDER_DEBIT_<order_id>.
    """

    owner_id: str = Field(..., pattern=OBJECT_ID_PATTERN)

    amount: Decimal = Field(..., gt=0)

    order_id: str = Field(..., min_length=1, max_length=64)

    currency: Optional[CurrencyCode] = Field(default=None)

    idempotency_key: Optional[str] = Field(default=None, min_length=1, max_length=128)


class RefundCreditCommandDTO(BaseModel):
    """
    Command DTO for refunding an order into the wallet

    A refund is a new CREDIT, never a rollback of the order debit.
    idempotency_key defaults to REFUND_<refund_id or order_id>.
    """

    owner_id: str = Field(..., pattern=OBJECT_ID_PATTERN)

    amount: Decimal = Field(..., gt=0)

    order_id: str = Field(..., min_length=1, max_length=64)

    refund_id: Optional[str] = Field(default=None, min_length=1, max_length=64)

    reason: Optional[str] = Field(default=None, max_length=250)

    currency: Optional[CurrencyCode] = Field(default=None)

    idempotency_key: Optional[str] = Field(default=None, min_length=1, max_length=128)


class RollbackCommandDTO(BaseModel):
    transaction_id: str = Field(..., min_length=1, max_length=128)
    reason: Optional[str] = Field(default=None, max_length=250)
    admin_id: Optional[str] = Field(default=None, pattern=OBJECT_ID_PATTERN)


TransactionSortField = Literal["created_at", "amount", "status", "transaction_type"]


class ListTransactionsQueryDTO(BaseModel):
    """Filters and pagination for transaction history"""

    transaction_type: Optional[TransactionType] = None
    status: Optional[TransactionStatus] = None
    reference_type: Optional[ReferenceType] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=20, ge=1, le=100)
    sort_by: TransactionSortField = "created_at"
    sort_order: Literal["asc", "desc"] = "desc"

    @field_validator("sort_by", mode="before")
    @classmethod
    def accept_camel_case(cls, v: Any) -> Any:
        return "created_at" if v == "createdAt" else v


class ListWalletsQueryDTO(BaseModel):
    """Filters and pagination for the admin wallet listing"""

    status: Optional[WalletStatus] = None
    currency: Optional[CurrencyCode] = None
    owner_id: Optional[str] = Field(default=None, pattern=OBJECT_ID_PATTERN)
    min_balance: Optional[Decimal] = Field(default=None, ge=0)
    max_balance: Optional[Decimal] = Field(default=None, ge=0)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    search: Optional[str] = Field(default=None, max_length=64)
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=20, ge=1, le=100)


def _decimal(amount_minor: Optional[int], currency: str) -> Optional[Decimal]:
    if amount_minor is None:
        return None
    return Money(amount_minor=amount_minor, currency=currency).to_decimal()


class WalletDTO(BaseModel):
    wallet_id: str
    owner_id: str
    currency: str
    balance: Decimal
    status: WalletStatus
    allow_negative_balance: bool
    version: int
    last_transaction_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_entity(cls, wallet: Wallet) -> "WalletDTO":
        return cls(
            wallet_id=wallet.id,
            owner_id=wallet.owner_id,
            currency=wallet.currency,
            balance=_decimal(wallet.balance, wallet.currency),
            status=wallet.status,
            allow_negative_balance=wallet.allow_negative_balance,
            version=wallet.version,
            last_transaction_at=wallet.last_transaction_at,
            created_at=wallet.created_at,
            updated_at=wallet.updated_at,
        )


class BalanceResponseDTO(BaseModel):
    """
    Response DTO for wallet balance queries

    available_balance excludes in-flight PENDING debits; pending_credit is
    the total of in-flight PENDING credits (e.g. unpaid top-ups).
    """

    wallet_id: str = Field(..., description="Wallet identifier")
    owner_id: str = Field(..., description="User ID")
    currency: str = Field(..., description="Currency code")
    balance: Decimal = Field(..., description="Committed balance")
    available_balance: Decimal = Field(..., description="Balance minus pending debits")
    pending_credit: Decimal = Field(..., description="Total of PENDING credits")
    pending_debit: Decimal = Field(..., description="Total of PENDING debits")
    status: WalletStatus = Field(..., description="Wallet status")
    last_transaction_at: Optional[datetime] = Field(default=None)

    class Config:
        json_schema_extra = {
            "example": {
                "wallet_id": "7d9f2c1e-3b4a-4c5d-8e6f-0a1b2c3d4e5f",
                "owner_id": "64b7f0c2a1e4d5f6a7b8c9d0",
                "currency": "INR",
                "balance": "500.00",
                "available_balance": "500.00",
                "pending_credit": "100.00",
                "pending_debit": "0.00",
                "status": "ACTIVE",
                "last_transaction_at": "2024-01-01T00:00:00Z"
            }
        }


class TransactionDTO(BaseModel):
    transaction_id: str
    wallet_id: str
    owner_id: str
    transaction_type: TransactionType
    amount: Decimal
    currency: str
    status: TransactionStatus
    reference_type: ReferenceType
    reference_id: Optional[str] = None
    initiated_by_actor: InitiatedByActor
    gateway_transaction_id: Optional[str] = None
    payment_method: Optional[PaymentMethod] = None
    description: Optional[str] = None
    adjusted_by_admin_id: Optional[str] = None
    compensates_transaction_id: Optional[str] = None
    balance_after: Optional[Decimal] = None
    failure_reason: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None
    created_at: datetime
    completed_at: Optional[datetime] = None
    failed_at: Optional[datetime] = None

    @classmethod
    def from_entity(cls, transaction: WalletTransaction) -> "TransactionDTO":
        return cls(
            transaction_id=transaction.id,
            wallet_id=transaction.wallet_id,
            owner_id=transaction.owner_id,
            transaction_type=transaction.transaction_type,
            amount=_decimal(transaction.amount, transaction.currency),
            currency=transaction.currency,
            status=transaction.status,
            reference_type=transaction.reference_type,
            reference_id=transaction.reference_id,
            initiated_by_actor=transaction.initiated_by_actor,
            gateway_transaction_id=transaction.gateway_transaction_id,
            payment_method=transaction.payment_method,
            description=transaction.description,
            adjusted_by_admin_id=transaction.adjusted_by_admin_id,
            compensates_transaction_id=transaction.compensates_transaction_id,
            balance_after=_decimal(transaction.balance_after, transaction.currency),
            failure_reason=transaction.failure_reason,
            metadata=transaction.extra,
            created_at=transaction.created_at,
            completed_at=transaction.completed_at,
            failed_at=transaction.failed_at,
        )


class TopupResponseDTO(BaseModel):
    """Pending top-up plus where to pay for it"""

    transaction: TransactionDTO
    gateway_transaction_id: str
    payment_url: str
    expires_at: datetime


class CallbackResponseDTO(BaseModel):
    """
    Result of processing a gateway callback

    replayed is True when the transaction had already left PENDING and
    the callback changed nothing.
    """

    transaction: TransactionDTO
    replayed: bool = False
    balance: Optional[Decimal] = None


class LedgerMutationResponseDTO(BaseModel):
    """Transaction and wallet after a synchronous ledger mutation"""

    transaction: TransactionDTO
    wallet: WalletDTO
    duplicate: bool = Field(
        default=False,
        description="True when the idempotency key matched an existing transaction",
    )


class ListTransactionsResponseDTO(BaseModel):
    transactions: List[TransactionDTO]
    total: int
    page: int
    limit: int
    total_pages: int


class ListWalletsResponseDTO(BaseModel):
    wallets: List[WalletDTO]
    total: int
    page: int
    limit: int
    total_pages: int


class SummaryBucketDTO(BaseModel):
    count: int = 0
    total: Decimal = Decimal("0")


class WalletSummaryDTO(BaseModel):
    """Completed-transaction totals over a trailing window"""

    owner_id: str
    currency: str
    period_days: int
    since: datetime
    balance: Decimal
    total_credit: Decimal
    total_debit: Decimal
    net_change: Decimal
    by_type: Dict[str, SummaryBucketDTO]
    by_reference_type: Dict[str, SummaryBucketDTO]


class CurrencyStatsDTO(BaseModel):
    wallets: int
    total_balance: Decimal
    average_balance: Decimal


class WalletStatsDTO(BaseModel):
    total_wallets: int
    by_status: Dict[str, int]
    by_currency: Dict[str, CurrencyStatsDTO]


class SweepResultDTO(BaseModel):
    """Outcome of one stale top-up sweep"""

    scanned: int
    failed: int
    skipped: int = 0
    errors: int
    cutoff: datetime
    execution_time_ms: int


class WalletDiscrepancyDTO(BaseModel):
    wallet_id: str
    owner_id: str
    currency: str
    wallet_balance: int = Field(..., description="Cached balance in minor units")
    calculated_balance: int = Field(..., description="Sum of applied signed deltas")
    discrepancy: int = Field(..., description="wallet_balance - calculated_balance")


class ReconciliationResultDTO(BaseModel):
    total_wallets_checked: int
    discrepancies_found: int
    discrepancies: List[WalletDiscrepancyDTO]
    reconciliation_time: datetime
    execution_time_ms: int
