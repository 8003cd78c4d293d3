"""Wallet Transaction Domain Entity

Append-only log of every wallet balance mutation. Rows are never deleted;
only status and completion fields change, and only along the transitions
allowed by src.domain.transaction_state.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional
from sqlmodel import Field, Column, Index
from sqlalchemy import BigInteger, JSON, String, CheckConstraint
from src.domain.base import BaseModel, UTCDateTime, generate_uuid, utcnow
from src.domain.money import Money
from src.domain.transaction_state import TransactionStatus


class TransactionType(str, Enum):
    """Direction of the balance change"""
    CREDIT = "CREDIT"
    DEBIT = "DEBIT"

    def inverted(self) -> "TransactionType":
        return TransactionType.DEBIT if self == TransactionType.CREDIT else TransactionType.CREDIT


class ReferenceType(str, Enum):
    """What caused the transaction"""
    ORDER = "ORDER"
    REFUND = "REFUND"
    PAYMENT_GATEWAY = "PAYMENT_GATEWAY"
    ADMIN_ADJUSTMENT = "ADMIN_ADJUSTMENT"
    WITHDRAWAL = "WITHDRAWAL"


class InitiatedByActor(str, Enum):
    USER = "USER"
    ADMIN = "ADMIN"
    SYSTEM = "SYSTEM"


class PaymentMethod(str, Enum):
    UPI = "UPI"
    CREDIT_CARD = "CREDIT_CARD"
    DEBIT_CARD = "DEBIT_CARD"
    NET_BANKING = "NET_BANKING"
    WALLET = "WALLET"


class GatewayCallbackStatus(str, Enum):
    """Statuses a payment gateway may report"""
    SUCCESS = "SUCCESS"
    COMPLETED = "COMPLETED"
    PENDING = "PENDING"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"

    def is_success(self) -> bool:
        return self in (GatewayCallbackStatus.SUCCESS, GatewayCallbackStatus.COMPLETED)

    def is_failure(self) -> bool:
        return self in (GatewayCallbackStatus.FAILED, GatewayCallbackStatus.CANCELLED)


class WalletTransaction(BaseModel, table=True):
    """
    Wallet Transaction - Append-only record of a wallet balance change

    Domain Rules:
    - id is the caller's idempotency key when supplied
    - amount is always positive; direction comes from transaction_type
    - gateway_transaction_id is unique when present
    - status only moves PENDING -> COMPLETED/FAILED and COMPLETED -> ROLLED_BACK
    - A rollback is a separate compensating transaction that points back to
      the original through compensates_transaction_id
    """

    __tablename__ = "wallet_transactions"
    __table_args__ = (
        Index("ix_wallet_transactions_wallet_created", "wallet_id", "created_at"),
        Index("ix_wallet_transactions_reference", "reference_type", "reference_id"),
        Index("ix_wallet_transactions_status_created", "status", "created_at"),
        CheckConstraint("amount > 0", name="wallet_transaction_amount_positive"),
    )

    id: str = Field(
        default_factory=generate_uuid,
        sa_column=Column(String(128), primary_key=True),
        description="Transaction identifier / idempotency key",
    )

    wallet_id: str = Field(
        foreign_key="wallets.id",
        index=True,
        description="Foreign key to Wallet",
    )

    owner_id: str = Field(
        index=True,
        description="Owning user ID (denormalized for queries)",
    )

    transaction_type: TransactionType = Field(
        description="CREDIT or DEBIT",
    )

    amount: int = Field(
        sa_column=Column(BigInteger, nullable=False),
        description="Unsigned amount in minor units",
    )

    currency: str = Field(
        sa_column=Column(String(3), nullable=False),
        description="Currency code (matches the wallet)",
    )

    status: TransactionStatus = Field(
        default=TransactionStatus.PENDING,
        description="PENDING, COMPLETED, FAILED or ROLLED_BACK",
    )

    reference_type: ReferenceType = Field(
        description="Origin of the transaction",
    )

    reference_id: Optional[str] = Field(
        default=None,
        sa_column=Column(String(255), nullable=True),
        description="ID of the referenced entity (order, refund, payment)",
    )

    initiated_by_actor: InitiatedByActor = Field(
        default=InitiatedByActor.USER,
        description="USER, ADMIN or SYSTEM",
    )

    gateway_transaction_id: Optional[str] = Field(
        default=None,
        sa_column=Column(String(128), nullable=True, unique=True),
        description="Payment gateway reference (unique when present)",
    )

    payment_method: Optional[PaymentMethod] = Field(
        default=None,
        description="Payment method for gateway top-ups",
    )

    description: Optional[str] = Field(
        default=None,
        sa_column=Column(String(300), nullable=True),
        description="Human readable description",
    )

    adjusted_by_admin_id: Optional[str] = Field(
        default=None,
        sa_column=Column(String(64), nullable=True),
        description="Admin who made an ADMIN_ADJUSTMENT",
    )

    compensates_transaction_id: Optional[str] = Field(
        default=None,
        sa_column=Column(String(128), nullable=True, index=True),
        description="Original transaction reversed by this compensating entry",
    )

    balance_after: Optional[int] = Field(
        default=None,
        sa_column=Column(BigInteger, nullable=True),
        description="Wallet balance snapshot written on completion",
    )

    failure_reason: Optional[str] = Field(
        default=None,
        sa_column=Column(String(500), nullable=True),
        description="Why the transaction failed or was rolled back",
    )

    gateway_response: Optional[Dict[str, Any]] = Field(
        default=None,
        sa_column=Column(JSON, nullable=True),
        description="Raw payload from the payment gateway",
    )

    extra: Optional[Dict[str, Any]] = Field(
        default=None,
        sa_column=Column("metadata", JSON, nullable=True),
        description="Free-form metadata (e.g. original_order_id)",
    )

    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(UTCDateTime(), nullable=False),
        description="Transaction creation timestamp",
    )

    completed_at: Optional[datetime] = Field(
        default=None,
        sa_column=Column(UTCDateTime(), nullable=True),
        description="When the delta was applied",
    )

    failed_at: Optional[datetime] = Field(
        default=None,
        sa_column=Column(UTCDateTime(), nullable=True),
        description="When the transaction failed",
    )

    def signed_amount(self) -> int:
        """Amount with sign applied: CREDIT positive, DEBIT negative"""
        if TransactionType(self.transaction_type) == TransactionType.DEBIT:
            return -self.amount
        return self.amount

    def amount_money(self) -> Money:
        return Money(amount_minor=self.amount, currency=self.currency)

    class Config:
        """SQLModel configuration"""
        json_schema_extra = {
            "example": {
                "id": "TXN_1704067200000_4821",
                "wallet_id": "7d9f2c1e-3b4a-4c5d-8e6f-0a1b2c3d4e5f",
                "owner_id": "64b7f0c2a1e4d5f6a7b8c9d0",
                "transaction_type": "CREDIT",
                "amount": 50000,
                "currency": "INR",
                "status": "COMPLETED",
                "reference_type": "PAYMENT_GATEWAY",
                "reference_id": "TXN_1704067200000_4821",
                "initiated_by_actor": "USER",
                "gateway_transaction_id": "TXN_1704067200000_4821",
                "payment_method": "UPI",
                "description": "Wallet top-up via UPI",
                "balance_after": 50000,
                "created_at": "2024-01-01T00:00:00Z",
                "completed_at": "2024-01-01T00:01:00Z"
            }
        }
