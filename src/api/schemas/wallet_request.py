"""Request schemas for Wallet API

Pydantic models for validating incoming HTTP requests.
"""

from decimal import Decimal
from typing import Any, Dict, Optional
from pydantic import BaseModel, Field, field_validator
from src.domain.wallet import WalletStatus
from src.domain.wallet_transaction import (
    TransactionType,
    PaymentMethod,
    GatewayCallbackStatus,
)


def _check_precision(v: Optional[Decimal]) -> Optional[Decimal]:
    if v is not None and v.as_tuple().exponent < -2:
        raise ValueError("Amount can have at most 2 decimal places")
    return v


class TopupRequestSchema(BaseModel):
    """
    Request schema for a wallet top-up

    Used for POST /wallets/{user_id}/topup endpoint.
    """

    amount: Decimal = Field(
        ...,
        ge=Decimal("0.01"),
        le=Decimal("100000"),
        description="Top-up amount (0.01 - 100,000)"
    )

    payment_method: PaymentMethod = Field(
        ...,
        description="UPI, CREDIT_CARD, DEBIT_CARD, NET_BANKING or WALLET"
    )

    currency: Optional[str] = Field(
        default=None,
        min_length=3,
        max_length=3,
        description="Currency code (defaults to INR)"
    )

    @field_validator('amount')
    @classmethod
    def validate_amount(cls, v):
        return _check_precision(v)

    class Config:
        json_schema_extra = {
            "example": {
                "amount": "500.00",
                "payment_method": "UPI"
            }
        }


class GatewayCallbackRequestSchema(BaseModel):
    """
    Request schema for payment gateway callbacks

    Used for POST /webhooks/payment-gateway endpoint.
    """

    gateway_transaction_id: str = Field(..., min_length=1, max_length=128)

    status: GatewayCallbackStatus = Field(
        ...,
        description="SUCCESS, COMPLETED, PENDING, FAILED or CANCELLED"
    )

    amount: Optional[Decimal] = Field(default=None, gt=0)

    currency: Optional[str] = Field(default=None, min_length=3, max_length=3)

    failure_reason: Optional[str] = Field(default=None, max_length=500)

    gateway_response: Optional[Dict[str, Any]] = Field(default=None)

    class Config:
        json_schema_extra = {
            "example": {
                "gateway_transaction_id": "TXN_1704067200000_4821",
                "status": "SUCCESS",
                "amount": "500.00",
                "currency": "INR",
                "gateway_response": {"payment_id": "pay_29QQoUBi66xm2f"}
            }
        }


class AdjustBalanceRequestSchema(BaseModel):
    """
    Request schema for admin balance adjustments

    Used for POST /admin/wallets/{user_id}/adjust endpoint.
    """

    amount: Decimal = Field(
        ...,
        ge=Decimal("0.01"),
        le=Decimal("500000"),
        description="Adjustment amount (0.01 - 500,000)"
    )

    type: TransactionType = Field(..., description="CREDIT or DEBIT")

    description: str = Field(..., min_length=5, max_length=250)

    currency: Optional[str] = Field(default=None, min_length=3, max_length=3)

    idempotency_key: Optional[str] = Field(default=None, min_length=1, max_length=128)

    @field_validator('amount')
    @classmethod
    def validate_amount(cls, v):
        return _check_precision(v)

    class Config:
        json_schema_extra = {
            "example": {
                "amount": "100.00",
                "type": "CREDIT",
                "description": "Goodwill credit for delayed delivery"
            }
        }


class WalletStatusRequestSchema(BaseModel):
    status: WalletStatus = Field(..., description="ACTIVE, BLOCKED or INACTIVE")
    currency: Optional[str] = Field(default=None, min_length=3, max_length=3)


class RollbackRequestSchema(BaseModel):
    reason: Optional[str] = Field(default=None, max_length=250)


class OrderDebitRequestSchema(BaseModel):
    """Used for POST /internal/wallets/{user_id}/order-debit endpoint."""

    amount: Decimal = Field(..., gt=0)
    order_id: str = Field(..., min_length=1, max_length=64)
    currency: Optional[str] = Field(default=None, min_length=3, max_length=3)
    idempotency_key: Optional[str] = Field(default=None, min_length=1, max_length=128)


class RefundCreditRequestSchema(BaseModel):
    """Used for POST /internal/wallets/{user_id}/refund-credit endpoint."""

    amount: Decimal = Field(..., gt=0)
    order_id: str = Field(..., min_length=1, max_length=64)
    refund_id: Optional[str] = Field(default=None, min_length=1, max_length=64)
    reason: Optional[str] = Field(default=None, max_length=250)
    currency: Optional[str] = Field(default=None, min_length=3, max_length=3)
    idempotency_key: Optional[str] = Field(default=None, min_length=1, max_length=128)
