from .wallet_repository import SqlAlchemyWalletRepository
from .wallet_transaction_repository import SqlAlchemyWalletTransactionRepository

__all__ = [
    "SqlAlchemyWalletRepository",
    "SqlAlchemyWalletTransactionRepository",
]
