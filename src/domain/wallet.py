"""Wallet Domain Entity

Holds the cached balance for one owner-currency pair. The balance is a
projection of the append-only transaction log and only changes through
the ledger store's compare-and-swap on `version`.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from sqlmodel import Field, Column
from sqlalchemy import BigInteger, Boolean, Integer, String, UniqueConstraint, CheckConstraint
from src.domain.base import BaseModel, UTCDateTime, generate_uuid, utcnow
from src.domain.money import Money


class WalletStatus(str, Enum):
    """Administrative wallet status"""
    ACTIVE = "ACTIVE"
    BLOCKED = "BLOCKED"
    INACTIVE = "INACTIVE"


class Wallet(BaseModel, table=True):
    """
    Wallet - Per-owner, per-currency balance

    Domain Rules:
    - One wallet per (owner_id, currency)
    - Balance is stored in integer minor units
    - Balance must be non-negative unless allow_negative_balance is set
    - version increments on every balance mutation (optimistic concurrency)
    - Never hard-deleted; INACTIVE is the soft-delete status
    """

    __tablename__ = "wallets"
    __table_args__ = (
        UniqueConstraint("owner_id", "currency", name="uq_wallets_owner_currency"),
        CheckConstraint(
            "allow_negative_balance OR balance >= 0", name="wallet_balance_non_negative"
        ),
    )

    id: str = Field(
        default_factory=generate_uuid,
        sa_column=Column(String(36), primary_key=True),
        description="Wallet identifier (UUID)",
    )

    owner_id: str = Field(
        sa_column=Column(String(64), nullable=False, index=True),
        description="Owning user ID",
    )

    currency: str = Field(
        default="INR",
        sa_column=Column(String(3), nullable=False),
        description="Currency code (ISO 4217)",
    )

    balance: int = Field(
        default=0,
        sa_column=Column(BigInteger, nullable=False, default=0),
        description="Current balance in minor units",
    )

    status: WalletStatus = Field(
        default=WalletStatus.ACTIVE,
        index=True,
        description="Wallet status (ACTIVE, BLOCKED, INACTIVE)",
    )

    allow_negative_balance: bool = Field(
        default=False,
        sa_column=Column(Boolean, nullable=False, default=False),
        description="Permit DEBITs below zero (overdraft)",
    )

    version: int = Field(
        default=0,
        sa_column=Column(Integer, nullable=False, default=0),
        description="Optimistic concurrency counter",
    )

    last_transaction_at: Optional[datetime] = Field(
        default=None,
        sa_column=Column(UTCDateTime(), nullable=True),
        description="Timestamp of the last applied transaction",
    )

    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(UTCDateTime(), nullable=False),
        description="Wallet creation timestamp",
    )

    updated_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(UTCDateTime(), nullable=False),
        description="Last update timestamp",
    )

    def can_transact(self) -> bool:
        return WalletStatus(self.status) == WalletStatus.ACTIVE

    def balance_money(self) -> Money:
        return Money(amount_minor=self.balance, currency=self.currency)

    class Config:
        """SQLModel configuration"""
        json_schema_extra = {
            "example": {
                "id": "7d9f2c1e-3b4a-4c5d-8e6f-0a1b2c3d4e5f",
                "owner_id": "64b7f0c2a1e4d5f6a7b8c9d0",
                "currency": "INR",
                "balance": 50000,
                "status": "ACTIVE",
                "allow_negative_balance": False,
                "version": 3,
                "last_transaction_at": "2024-01-01T00:00:00Z",
                "created_at": "2024-01-01T00:00:00Z",
                "updated_at": "2024-01-01T00:00:00Z"
            }
        }
