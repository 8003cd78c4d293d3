from .base import BaseModel, generate_uuid, utcnow
from .money import Money, SUPPORTED_CURRENCIES
from .transaction_state import TransactionStatus, ensure_transition
from .wallet import Wallet, WalletStatus
from .wallet_transaction import (
    WalletTransaction,
    TransactionType,
    ReferenceType,
    InitiatedByActor,
    PaymentMethod,
    GatewayCallbackStatus,
)

__all__ = [
    "BaseModel",
    "generate_uuid",
    "utcnow",
    "Money",
    "SUPPORTED_CURRENCIES",
    "TransactionStatus",
    "ensure_transition",
    "Wallet",
    "WalletStatus",
    "WalletTransaction",
    "TransactionType",
    "ReferenceType",
    "InitiatedByActor",
    "PaymentMethod",
    "GatewayCallbackStatus",
]
