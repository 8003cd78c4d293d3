"""SQLAlchemy implementation of WalletTransactionRepository

Provides persistence for WalletTransaction entities. Idempotency is
enforced by the primary key (caller idempotency key) and the unique
gateway_transaction_id column.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple
from sqlalchemy import case, update
from sqlmodel import select, func
from sqlmodel.ext.asyncio.session import AsyncSession
from src.app.repositories.wallet_transaction_repository import WalletTransactionRepository
from src.domain.transaction_state import TransactionStatus, APPLIED_STATUSES
from src.domain.wallet_transaction import (
    WalletTransaction,
    TransactionType,
    ReferenceType,
)

SORT_COLUMNS = {
    "created_at": WalletTransaction.created_at,
    "amount": WalletTransaction.amount,
    "status": WalletTransaction.status,
    "transaction_type": WalletTransaction.transaction_type,
}


class SqlAlchemyWalletTransactionRepository(WalletTransactionRepository):
    """
    SQLAlchemy implementation of WalletTransactionRepository

    Features:
    - Append-only inserts with unique id / gateway id
    - Status changes as conditional UPDATEs (WHERE status = expected)
    - Aggregates for reconciliation, pending totals and summaries
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, transaction: WalletTransaction) -> WalletTransaction:
        """
        Create a new wallet transaction

        Raises:
            IntegrityError: If id or gateway_transaction_id already exists
        """
        self.session.add(transaction)
        await self.session.flush()
        await self.session.refresh(transaction)
        return transaction

    async def get_by_id(
        self, transaction_id: str, refresh: bool = False
    ) -> Optional[WalletTransaction]:
        stmt = select(WalletTransaction).where(WalletTransaction.id == transaction_id)

        if refresh:
            stmt = stmt.execution_options(populate_existing=True)

        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_gateway_transaction_id(
        self, gateway_transaction_id: str
    ) -> Optional[WalletTransaction]:
        stmt = select(WalletTransaction).where(
            WalletTransaction.gateway_transaction_id == gateway_transaction_id
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def _transition(
        self, transaction_id: str, expected: TransactionStatus, **values: Any
    ) -> bool:
        stmt = (
            update(WalletTransaction)
            .where(
                WalletTransaction.id == transaction_id,
                WalletTransaction.status == expected,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def mark_completed(
        self, transaction_id: str, balance_after: int, completed_at: datetime
    ) -> bool:
        return await self._transition(
            transaction_id,
            TransactionStatus.PENDING,
            status=TransactionStatus.COMPLETED,
            balance_after=balance_after,
            completed_at=completed_at,
        )

    async def mark_failed(
        self, transaction_id: str, reason: str, failed_at: datetime
    ) -> bool:
        return await self._transition(
            transaction_id,
            TransactionStatus.PENDING,
            status=TransactionStatus.FAILED,
            failure_reason=reason,
            failed_at=failed_at,
        )

    async def mark_rolled_back(self, transaction_id: str, reason: Optional[str]) -> bool:
        return await self._transition(
            transaction_id,
            TransactionStatus.COMPLETED,
            status=TransactionStatus.ROLLED_BACK,
            failure_reason=reason,
        )

    async def set_gateway_response(
        self, transaction_id: str, gateway_response: Dict[str, Any]
    ) -> None:
        stmt = (
            update(WalletTransaction)
            .where(WalletTransaction.id == transaction_id)
            .values(gateway_response=gateway_response)
            .execution_options(synchronize_session=False)
        )
        await self.session.execute(stmt)

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
        conditions = [WalletTransaction.wallet_id.in_(list(wallet_ids))]
        if transaction_type is not None:
            conditions.append(WalletTransaction.transaction_type == transaction_type)
        if status is not None:
            conditions.append(WalletTransaction.status == status)
        if reference_type is not None:
            conditions.append(WalletTransaction.reference_type == reference_type)
        if start_date:
            conditions.append(WalletTransaction.created_at >= start_date)
        if end_date:
            conditions.append(WalletTransaction.created_at <= end_date)

        # Get total count
        count_stmt = select(func.count()).select_from(WalletTransaction).where(*conditions)
        count_result = await self.session.execute(count_stmt)
        total = count_result.scalar()

        column = SORT_COLUMNS.get(sort_by, WalletTransaction.created_at)
        order = column.asc() if sort_order == "asc" else column.desc()

        stmt = (
            select(WalletTransaction)
            .where(*conditions)
            .order_by(order, WalletTransaction.id)
            .limit(limit)
            .offset(offset)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all()), total

    async def find_stale_pending(
        self, reference_type: ReferenceType, older_than: datetime, limit: int = 100
    ) -> List[WalletTransaction]:
        stmt = (
            select(WalletTransaction)
            .where(
                WalletTransaction.status == TransactionStatus.PENDING,
                WalletTransaction.reference_type == reference_type,
                WalletTransaction.created_at < older_than,
            )
            .order_by(WalletTransaction.created_at.asc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_applied_sum_by_wallet(self) -> Dict[str, int]:
        signed = case(
            (WalletTransaction.transaction_type == TransactionType.DEBIT, -WalletTransaction.amount),
            else_=WalletTransaction.amount,
        )
        stmt = (
            select(WalletTransaction.wallet_id, func.sum(signed))
            .where(WalletTransaction.status.in_(list(APPLIED_STATUSES)))
            .group_by(WalletTransaction.wallet_id)
        )
        result = await self.session.execute(stmt)
        return {wallet_id: int(total or 0) for wallet_id, total in result.all()}

    async def get_pending_totals(self, wallet_id: str) -> Dict[TransactionType, int]:
        stmt = (
            select(WalletTransaction.transaction_type, func.sum(WalletTransaction.amount))
            .where(
                WalletTransaction.wallet_id == wallet_id,
                WalletTransaction.status == TransactionStatus.PENDING,
            )
            .group_by(WalletTransaction.transaction_type)
        )
        result = await self.session.execute(stmt)
        totals = {TransactionType.CREDIT: 0, TransactionType.DEBIT: 0}
        for transaction_type, total in result.all():
            totals[TransactionType(transaction_type)] = int(total or 0)
        return totals

    async def sum_amount_since(
        self,
        wallet_id: str,
        transaction_type: TransactionType,
        since: datetime,
        statuses: Sequence[TransactionStatus],
        reference_type: Optional[ReferenceType] = None,
    ) -> int:
        conditions = [
            WalletTransaction.wallet_id == wallet_id,
            WalletTransaction.transaction_type == transaction_type,
            WalletTransaction.created_at >= since,
            WalletTransaction.status.in_(list(statuses)),
        ]
        if reference_type is not None:
            conditions.append(WalletTransaction.reference_type == reference_type)

        stmt = select(func.coalesce(func.sum(WalletTransaction.amount), 0)).where(*conditions)
        result = await self.session.execute(stmt)
        return int(result.scalar() or 0)

    async def get_summary(self, wallet_ids: Sequence[str], since: datetime) -> List[Dict[str, Any]]:
        stmt = (
            select(
                WalletTransaction.transaction_type,
                WalletTransaction.reference_type,
                func.count(),
                func.sum(WalletTransaction.amount),
            )
            .where(
                WalletTransaction.wallet_id.in_(list(wallet_ids)),
                WalletTransaction.status == TransactionStatus.COMPLETED,
                WalletTransaction.created_at >= since,
            )
            .group_by(WalletTransaction.transaction_type, WalletTransaction.reference_type)
        )
        result = await self.session.execute(stmt)
        return [
            {
                "transaction_type": TransactionType(transaction_type),
                "reference_type": ReferenceType(reference_type),
                "count": count,
                "total": int(total or 0),
            }
            for transaction_type, reference_type, count, total in result.all()
        ]
