"""SQLAlchemy implementation of WalletRepository

Provides persistence for Wallet entities with optimistic concurrency on the
version column.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple
from sqlalchemy import update
from sqlmodel import select, func, or_
from sqlmodel.ext.asyncio.session import AsyncSession
from src.app.repositories.wallet_repository import WalletRepository
from src.domain.base import utcnow
from src.domain.wallet import Wallet, WalletStatus


class SqlAlchemyWalletRepository(WalletRepository):
    """
    SQLAlchemy implementation of WalletRepository

    Features:
    - Compare-and-swap balance updates conditioned on version
    - Filtered pagination for the admin listing
    - Aggregate statistics
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, wallet_id: str, refresh: bool = False) -> Optional[Wallet]:
        stmt = select(Wallet).where(Wallet.id == wallet_id)

        if refresh:
            stmt = stmt.execution_options(populate_existing=True)

        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_owner(self, owner_id: str, currency: str) -> Optional[Wallet]:
        stmt = select(Wallet).where(
            Wallet.owner_id == owner_id,
            Wallet.currency == currency,
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_by_owner(self, owner_id: str) -> List[Wallet]:
        stmt = (
            select(Wallet)
            .where(Wallet.owner_id == owner_id)
            .order_by(Wallet.created_at.asc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def create(self, wallet: Wallet) -> Wallet:
        self.session.add(wallet)
        await self.session.flush()
        await self.session.refresh(wallet)
        return wallet

    async def compare_and_set_balance(
        self,
        wallet_id: str,
        expected_version: int,
        new_balance: int,
        at: datetime,
    ) -> bool:
        """
        Conditional UPDATE on (id, version)

        Returns:
            True if exactly one row matched the expected version

        Note:
            Bypasses the identity map; callers re-read with refresh=True
        """
        stmt = (
            update(Wallet)
            .where(Wallet.id == wallet_id, Wallet.version == expected_version)
            .values(
                balance=new_balance,
                version=Wallet.version + 1,
                last_transaction_at=at,
                updated_at=at,
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def update_status(self, wallet_id: str, status: WalletStatus) -> Optional[Wallet]:
        wallet = await self.get_by_id(wallet_id)
        if not wallet:
            return None

        wallet.status = status
        wallet.updated_at = utcnow()

        self.session.add(wallet)
        await self.session.flush()
        await self.session.refresh(wallet)
        return wallet

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
        conditions = []
        if status is not None:
            conditions.append(Wallet.status == status)
        if currency:
            conditions.append(Wallet.currency == currency)
        if owner_id:
            conditions.append(Wallet.owner_id == owner_id)
        if min_balance is not None:
            conditions.append(Wallet.balance >= min_balance)
        if max_balance is not None:
            conditions.append(Wallet.balance <= max_balance)
        if start_date:
            conditions.append(Wallet.created_at >= start_date)
        if end_date:
            conditions.append(Wallet.created_at <= end_date)
        if search:
            conditions.append(
                or_(Wallet.owner_id.contains(search), Wallet.id.contains(search))
            )

        # Get total count
        count_stmt = select(func.count()).select_from(Wallet).where(*conditions)
        count_result = await self.session.execute(count_stmt)
        total = count_result.scalar()

        stmt = (
            select(Wallet)
            .where(*conditions)
            .order_by(Wallet.created_at.desc())
            .limit(limit)
            .offset(offset)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all()), total

    async def get_all(self) -> List[Wallet]:
        result = await self.session.execute(select(Wallet))
        return list(result.scalars().all())

    async def get_stats(self) -> Dict[str, Any]:
        status_stmt = select(Wallet.status, func.count()).group_by(Wallet.status)
        status_rows = (await self.session.execute(status_stmt)).all()

        currency_stmt = select(
            Wallet.currency,
            func.count(),
            func.coalesce(func.sum(Wallet.balance), 0),
        ).group_by(Wallet.currency)
        currency_rows = (await self.session.execute(currency_stmt)).all()

        by_status = {s.value: 0 for s in WalletStatus}
        for status, count in status_rows:
            by_status[WalletStatus(status).value] = count

        return {
            "total_wallets": sum(by_status.values()),
            "by_status": by_status,
            "by_currency": {
                currency: {"wallets": count, "total_balance": int(total)}
                for currency, count, total in currency_rows
            },
        }
