"""In-memory repositories for ledger tests

They honour the same contracts as the SQLAlchemy adapters: unique
(owner_id, currency) and unique transaction/gateway ids raise
IntegrityError, balance writes are a version compare-and-swap, and status
changes are conditional on the current status.
"""

import asyncio
from collections import defaultdict
from typing import Any, Dict, List, Optional, Sequence, Tuple
from sqlalchemy.exc import IntegrityError
from src.app.repositories.wallet_repository import WalletRepository
from src.app.repositories.wallet_transaction_repository import WalletTransactionRepository
from src.domain.transaction_state import APPLIED_STATUSES, TransactionStatus
from src.domain.wallet import Wallet, WalletStatus
from src.domain.wallet_transaction import ReferenceType, TransactionType, WalletTransaction

OWNER_ID = "64b7f0c2a1e4d5f6a7b8c9d0"
ADMIN_ID = "64b7f0c2a1e4d5f6a7b8c9ff"


def _integrity_error(message: str) -> IntegrityError:
    return IntegrityError("INSERT", {}, Exception(message))


class InMemoryWalletRepository(WalletRepository):
    def __init__(self):
        self.wallets: Dict[str, Wallet] = {}
        self.cas_calls = 0
        self.cas_misses = 0

    async def get_by_id(self, wallet_id, refresh=False):
        wallet = self.wallets.get(wallet_id)
        snapshot = Wallet(**wallet.model_dump()) if wallet else None
        # Yield so concurrent appliers interleave between read and write
        await asyncio.sleep(0)
        return snapshot

    async def get_by_owner(self, owner_id, currency):
        for wallet in self.wallets.values():
            if wallet.owner_id == owner_id and wallet.currency == currency:
                return wallet
        return None

    async def list_by_owner(self, owner_id):
        return [w for w in self.wallets.values() if w.owner_id == owner_id]

    async def create(self, wallet):
        if await self.get_by_owner(wallet.owner_id, wallet.currency):
            raise _integrity_error("uq_wallets_owner_currency")
        self.wallets[wallet.id] = wallet
        return wallet

    async def compare_and_set_balance(self, wallet_id, expected_version, new_balance, at):
        self.cas_calls += 1
        wallet = self.wallets.get(wallet_id)
        if wallet is None or wallet.version != expected_version:
            self.cas_misses += 1
            return False
        wallet.balance = new_balance
        wallet.version += 1
        wallet.last_transaction_at = at
        wallet.updated_at = at
        return True

    async def update_status(self, wallet_id, status):
        wallet = self.wallets.get(wallet_id)
        if wallet:
            wallet.status = status
        return wallet

    async def list_wallets(
        self,
        status=None,
        currency=None,
        owner_id=None,
        min_balance=None,
        max_balance=None,
        start_date=None,
        end_date=None,
        search=None,
        limit=20,
        offset=0,
    ) -> Tuple[List[Wallet], int]:
        rows = list(self.wallets.values())
        if status is not None:
            rows = [w for w in rows if w.status == status]
        if currency is not None:
            rows = [w for w in rows if w.currency == currency]
        if owner_id is not None:
            rows = [w for w in rows if w.owner_id == owner_id]
        if min_balance is not None:
            rows = [w for w in rows if w.balance >= min_balance]
        if max_balance is not None:
            rows = [w for w in rows if w.balance <= max_balance]
        if start_date is not None:
            rows = [w for w in rows if w.created_at >= start_date]
        if end_date is not None:
            rows = [w for w in rows if w.created_at <= end_date]
        if search:
            rows = [w for w in rows if search in w.owner_id or search in w.id]
        rows.sort(key=lambda w: w.created_at, reverse=True)
        return rows[offset:offset + limit], len(rows)

    async def get_all(self):
        return list(self.wallets.values())

    async def get_stats(self) -> Dict[str, Any]:
        by_status = {status.value: 0 for status in WalletStatus}
        by_currency: Dict[str, Dict[str, int]] = {}
        for wallet in self.wallets.values():
            by_status[WalletStatus(wallet.status).value] += 1
            bucket = by_currency.setdefault(wallet.currency, {"wallets": 0, "total_balance": 0})
            bucket["wallets"] += 1
            bucket["total_balance"] += wallet.balance
        return {
            "total_wallets": len(self.wallets),
            "by_status": by_status,
            "by_currency": by_currency,
        }


class InMemoryWalletTransactionRepository(WalletTransactionRepository):
    def __init__(self):
        self.transactions: Dict[str, WalletTransaction] = {}

    async def create(self, transaction):
        if transaction.id in self.transactions:
            raise _integrity_error("wallet_transactions_pkey")
        if transaction.gateway_transaction_id and await self.get_by_gateway_transaction_id(
            transaction.gateway_transaction_id
        ):
            raise _integrity_error("wallet_transactions_gateway_transaction_id_key")
        self.transactions[transaction.id] = transaction
        return transaction

    async def get_by_id(self, transaction_id, refresh=False):
        return self.transactions.get(transaction_id)

    async def get_by_gateway_transaction_id(self, gateway_transaction_id):
        for transaction in self.transactions.values():
            if transaction.gateway_transaction_id == gateway_transaction_id:
                return transaction
        return None

    def _transition(self, transaction_id, expected, **values) -> bool:
        transaction = self.transactions.get(transaction_id)
        if transaction is None or transaction.status != expected:
            return False
        for key, value in values.items():
            setattr(transaction, key, value)
        return True

    async def mark_completed(self, transaction_id, balance_after, completed_at):
        return self._transition(
            transaction_id,
            TransactionStatus.PENDING,
            status=TransactionStatus.COMPLETED,
            balance_after=balance_after,
            completed_at=completed_at,
        )

    async def mark_failed(self, transaction_id, reason, failed_at):
        return self._transition(
            transaction_id,
            TransactionStatus.PENDING,
            status=TransactionStatus.FAILED,
            failure_reason=reason,
            failed_at=failed_at,
        )

    async def mark_rolled_back(self, transaction_id, reason):
        return self._transition(
            transaction_id,
            TransactionStatus.COMPLETED,
            status=TransactionStatus.ROLLED_BACK,
            failure_reason=reason,
        )

    async def set_gateway_response(self, transaction_id, gateway_response):
        self.transactions[transaction_id].gateway_response = gateway_response

    async def list_by_wallet(
        self,
        wallet_ids: Sequence[str],
        transaction_type=None,
        status=None,
        reference_type=None,
        start_date=None,
        end_date=None,
        sort_by="created_at",
        sort_order="desc",
        limit=20,
        offset=0,
    ):
        rows = [t for t in self.transactions.values() if t.wallet_id in wallet_ids]
        if transaction_type is not None:
            rows = [t for t in rows if t.transaction_type == transaction_type]
        if status is not None:
            rows = [t for t in rows if t.status == status]
        if reference_type is not None:
            rows = [t for t in rows if t.reference_type == reference_type]
        if start_date is not None:
            rows = [t for t in rows if t.created_at >= start_date]
        if end_date is not None:
            rows = [t for t in rows if t.created_at <= end_date]
        rows.sort(key=lambda t: getattr(t, sort_by), reverse=sort_order == "desc")
        return rows[offset:offset + limit], len(rows)

    async def find_stale_pending(self, reference_type, older_than, limit=100):
        rows = [
            t for t in self.transactions.values()
            if t.status == TransactionStatus.PENDING
            and t.reference_type == reference_type
            and t.created_at < older_than
        ]
        rows.sort(key=lambda t: t.created_at)
        return rows[:limit]

    async def get_applied_sum_by_wallet(self):
        sums: Dict[str, int] = defaultdict(int)
        for transaction in self.transactions.values():
            if transaction.status in APPLIED_STATUSES:
                sums[transaction.wallet_id] += transaction.signed_amount()
        return dict(sums)

    async def get_pending_totals(self, wallet_id):
        totals = {TransactionType.CREDIT: 0, TransactionType.DEBIT: 0}
        for transaction in self.transactions.values():
            if transaction.wallet_id == wallet_id and transaction.status == TransactionStatus.PENDING:
                totals[TransactionType(transaction.transaction_type)] += transaction.amount
        return totals

    async def sum_amount_since(
        self, wallet_id, transaction_type, since, statuses, reference_type=None
    ):
        return sum(
            t.amount for t in self.transactions.values()
            if t.wallet_id == wallet_id
            and t.transaction_type == transaction_type
            and t.created_at >= since
            and t.status in statuses
            and (reference_type is None or t.reference_type == reference_type)
        )

    async def get_summary(self, wallet_ids, since):
        buckets: Dict[Tuple[TransactionType, ReferenceType], Dict[str, Any]] = {}
        for t in self.transactions.values():
            if (
                t.wallet_id in wallet_ids
                and t.status == TransactionStatus.COMPLETED
                and t.created_at >= since
            ):
                key = (TransactionType(t.transaction_type), ReferenceType(t.reference_type))
                bucket = buckets.setdefault(key, {"count": 0, "total": 0})
                bucket["count"] += 1
                bucket["total"] += t.amount
        return [
            {"transaction_type": k[0], "reference_type": k[1], **v}
            for k, v in buckets.items()
        ]
