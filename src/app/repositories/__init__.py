from .wallet_repository import WalletRepository
from .wallet_transaction_repository import WalletTransactionRepository

__all__ = [
    "WalletRepository",
    "WalletTransactionRepository",
]
