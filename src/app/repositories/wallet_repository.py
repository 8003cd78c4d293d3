"""Wallet Repository Interface

Defines the contract for wallet persistence operations.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple
from src.domain.wallet import Wallet, WalletStatus


class WalletRepository(ABC):
    """
    Repository interface for Wallet persistence

    Balance writes go through compare_and_set_balance only. There is no
    row locking: concurrent writers race on the version column and the
    loser retries.
    """

    @abstractmethod
    async def get_by_id(self, wallet_id: str, refresh: bool = False) -> Optional[Wallet]:
        """
        Retrieve wallet by ID

        Args:
            wallet_id: Wallet identifier
            refresh: If True, overwrite any cached identity-map state with
                the row as it is now in the database

        Returns:
            Wallet if found, None otherwise
        """
        pass

    @abstractmethod
    async def get_by_owner(self, owner_id: str, currency: str) -> Optional[Wallet]:
        """
        Retrieve the wallet of an owner for one currency

        Args:
            owner_id: Owning user ID
            currency: Currency code

        Returns:
            Wallet if found, None otherwise
        """
        pass

    @abstractmethod
    async def list_by_owner(self, owner_id: str) -> List[Wallet]:
        """All wallets of an owner, any currency"""
        pass

    @abstractmethod
    async def create(self, wallet: Wallet) -> Wallet:
        """
        Create a new wallet

        Args:
            wallet: Wallet entity to persist

        Returns:
            Created Wallet

        Raises:
            IntegrityError: If the owner already has a wallet in this currency
        """
        pass

    @abstractmethod
    async def compare_and_set_balance(
        self,
        wallet_id: str,
        expected_version: int,
        new_balance: int,
        at: datetime,
    ) -> bool:
        """
        Write a new balance only if the wallet is still at expected_version

        Increments version and stamps last_transaction_at/updated_at.

        Args:
            wallet_id: Wallet ID
            expected_version: Version observed when the balance was read
            new_balance: New balance in minor units
            at: Timestamp of the mutation

        Returns:
            True if the row was updated, False on a version conflict
        """
        pass

    @abstractmethod
    async def update_status(self, wallet_id: str, status: WalletStatus) -> Optional[Wallet]:
        """
        Update wallet status

        Args:
            wallet_id: Wallet ID
            status: New status

        Returns:
            Updated Wallet if found, None otherwise
        """
        pass

    @abstractmethod
    async def list_wallets(
        self,
        status: Optional[WalletStatus] = None,
        currency: Optional[str] = None,
        owner_id: Optional[str] = None,
        min_balance: Optional[int] = None,
        max_balance: Optional[int] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        search: Optional[str] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> Tuple[List[Wallet], int]:
        """
        Filtered, paginated wallet listing (newest first)

        Args:
            status: Wallet status filter
            currency: Currency filter
            owner_id: Exact owner filter
            min_balance: Minimum balance in minor units (inclusive)
            max_balance: Maximum balance in minor units (inclusive)
            start_date: Created on or after
            end_date: Created on or before
            search: Substring match on owner ID or wallet ID
            limit: Page size
            offset: Rows to skip

        Returns:
            Tuple of (wallets, total count)
        """
        pass

    @abstractmethod
    async def get_all(self) -> List[Wallet]:
        """Every wallet, used by the reconciliation audit"""
        pass

    @abstractmethod
    async def get_stats(self) -> Dict[str, Any]:
        """
        Aggregate wallet statistics

        Returns:
            Dict with total_wallets, counts by status, and per-currency
            total and average balance in minor units
        """
        pass
