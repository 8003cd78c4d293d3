"""Wallet Transaction Repository Interface

Defines the contract for wallet transaction persistence operations.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple
from src.domain.transaction_state import TransactionStatus
from src.domain.wallet_transaction import (
    WalletTransaction,
    TransactionType,
    ReferenceType,
)


class WalletTransactionRepository(ABC):
    """
    Repository interface for WalletTransaction persistence

    Transactions are append-only. Status changes are conditional updates
    on the current status so that two writers can never both finalize the
    same transaction.
    """

    @abstractmethod
    async def create(self, transaction: WalletTransaction) -> WalletTransaction:
        """
        Create a new wallet transaction

        Args:
            transaction: WalletTransaction entity to persist

        Returns:
            Created WalletTransaction

        Raises:
            IntegrityError: If id or gateway_transaction_id already exists
        """
        pass

    @abstractmethod
    async def get_by_id(
        self, transaction_id: str, refresh: bool = False
    ) -> Optional[WalletTransaction]:
        """
        Retrieve transaction by ID

        Args:
            transaction_id: Transaction ID (idempotency key)
            refresh: If True, reload the row from the database

        Returns:
            WalletTransaction if found, None otherwise
        """
        pass

    @abstractmethod
    async def get_by_gateway_transaction_id(
        self, gateway_transaction_id: str
    ) -> Optional[WalletTransaction]:
        """
        Retrieve transaction by payment gateway reference

        Args:
            gateway_transaction_id: Gateway transaction ID

        Returns:
            WalletTransaction if found, None otherwise
        """
        pass

    @abstractmethod
    async def mark_completed(
        self, transaction_id: str, balance_after: int, completed_at: datetime
    ) -> bool:
        """
        PENDING -> COMPLETED

        Returns:
            True if the row was PENDING and is now COMPLETED
        """
        pass

    @abstractmethod
    async def mark_failed(
        self, transaction_id: str, reason: str, failed_at: datetime
    ) -> bool:
        """
        PENDING -> FAILED

        Returns:
            True if the row was PENDING and is now FAILED
        """
        pass

    @abstractmethod
    async def mark_rolled_back(self, transaction_id: str, reason: Optional[str]) -> bool:
        """
        COMPLETED -> ROLLED_BACK

        Returns:
            True if the row was COMPLETED and is now ROLLED_BACK
        """
        pass

    @abstractmethod
    async def set_gateway_response(
        self, transaction_id: str, gateway_response: Dict[str, Any]
    ) -> None:
        """Store the raw gateway payload on a transaction"""
        pass

    @abstractmethod
    async def list_by_wallet(
        self,
        wallet_ids: Sequence[str],
        transaction_type: Optional[TransactionType] = None,
        status: Optional[TransactionStatus] = None,
        reference_type: Optional[ReferenceType] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        sort_by: str = "created_at",
        sort_order: str = "desc",
        limit: int = 20,
        offset: int = 0,
    ) -> Tuple[List[WalletTransaction], int]:
        """
        Filtered, paginated transaction history

        Args:
            wallet_ids: Wallets to include
            transaction_type: CREDIT/DEBIT filter
            status: Status filter
            reference_type: Reference type filter
            start_date: Created on or after
            end_date: Created on or before
            sort_by: created_at, amount, status or transaction_type
            sort_order: asc or desc
            limit: Page size
            offset: Rows to skip

        Returns:
            Tuple of (transactions, total count)
        """
        pass

    @abstractmethod
    async def find_stale_pending(
        self, reference_type: ReferenceType, older_than: datetime, limit: int = 100
    ) -> List[WalletTransaction]:
        """
        PENDING transactions created before a cutoff (oldest first)

        Args:
            reference_type: Only transactions of this origin
            older_than: Creation cutoff
            limit: Maximum rows to return

        Returns:
            List of stale PENDING transactions
        """
        pass

    @abstractmethod
    async def get_applied_sum_by_wallet(self) -> Dict[str, int]:
        """
        Signed sum of every applied transaction per wallet

        Applied means COMPLETED or ROLLED_BACK: a rolled-back original
        keeps its delta and its compensating entry cancels it.

        Returns:
            Mapping of wallet_id -> signed sum in minor units
        """
        pass

    @abstractmethod
    async def get_pending_totals(self, wallet_id: str) -> Dict[TransactionType, int]:
        """
        Unsigned totals of PENDING transactions by type

        Returns:
            Mapping of TransactionType -> amount in minor units
        """
        pass

    @abstractmethod
    async def sum_amount_since(
        self,
        wallet_id: str,
        transaction_type: TransactionType,
        since: datetime,
        statuses: Sequence[TransactionStatus],
        reference_type: Optional[ReferenceType] = None,
    ) -> int:
        """
        Total amount of a wallet's transactions created since a timestamp

        Used for daily limits.
        """
        pass

    @abstractmethod
    async def get_summary(self, wallet_ids: Sequence[str], since: datetime) -> List[Dict[str, Any]]:
        """
        Aggregate COMPLETED transactions since a timestamp

        Returns:
            Rows of {transaction_type, reference_type, count, total}
        """
        pass
