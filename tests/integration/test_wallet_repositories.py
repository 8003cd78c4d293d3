"""Integration tests for the SQLAlchemy wallet repositories"""

import pytest
from datetime import timedelta
from sqlalchemy.exc import IntegrityError
from src.adapter.repositories.wallet_repository import SqlAlchemyWalletRepository
from src.adapter.repositories.wallet_transaction_repository import (
    SqlAlchemyWalletTransactionRepository,
)
from src.domain.base import utcnow
from src.domain.transaction_state import TransactionStatus
from src.domain.wallet import Wallet, WalletStatus
from src.domain.wallet_transaction import (
    ReferenceType,
    TransactionType,
    WalletTransaction,
)

OWNER_ID = "64b7f0c2a1e4d5f6a7b8c9d0"
OTHER_OWNER_ID = "64b7f0c2a1e4d5f6a7b8c9d1"


async def create_wallet(session, owner_id=OWNER_ID, currency="INR", balance=0, **fields):
    return await SqlAlchemyWalletRepository(session).create(
        Wallet(owner_id=owner_id, currency=currency, balance=balance, **fields)
    )


async def create_transaction(session, wallet, **fields):
    values = dict(
        wallet_id=wallet.id,
        owner_id=wallet.owner_id,
        transaction_type=TransactionType.CREDIT,
        amount=1000,
        currency=wallet.currency,
        status=TransactionStatus.COMPLETED,
        reference_type=ReferenceType.ADMIN_ADJUSTMENT,
    )
    values.update(fields)
    return await SqlAlchemyWalletTransactionRepository(session).create(WalletTransaction(**values))


@pytest.mark.asyncio
class TestWalletRepository:
    async def test_compare_and_set_balance(self, db_session):
        """
        Given: A wallet at version 0
        When: Two writers both expect version 0
        Then: Only the first write lands and the version becomes 1
        """
        # Arrange
        repo = SqlAlchemyWalletRepository(db_session)
        wallet = await create_wallet(db_session)
        now = utcnow()

        # Act
        first = await repo.compare_and_set_balance(wallet.id, 0, 5000, now)
        second = await repo.compare_and_set_balance(wallet.id, 0, 9000, now)

        # Assert
        assert first is True
        assert second is False
        stored = await repo.get_by_id(wallet.id, refresh=True)
        assert stored.balance == 5000
        assert stored.version == 1
        assert stored.last_transaction_at == now
        assert stored.last_transaction_at.tzinfo is not None
        assert stored.created_at.tzinfo is not None

    async def test_duplicate_owner_currency_rejected(self, db_session):
        await create_wallet(db_session)

        with pytest.raises(IntegrityError):
            await create_wallet(db_session)

    async def test_negative_balance_rejected_without_overdraft(self, db_session):
        with pytest.raises(IntegrityError):
            await create_wallet(db_session, balance=-1)

    async def test_get_by_owner_and_update_status(self, db_session):
        repo = SqlAlchemyWalletRepository(db_session)
        wallet = await create_wallet(db_session)
        await create_wallet(db_session, currency="USD")

        found = await repo.get_by_owner(OWNER_ID, "INR")
        updated = await repo.update_status(wallet.id, WalletStatus.BLOCKED)

        assert found.id == wallet.id
        assert updated.status == WalletStatus.BLOCKED
        assert len(await repo.list_by_owner(OWNER_ID)) == 2
        assert await repo.update_status("missing", WalletStatus.ACTIVE) is None

    async def test_list_wallets_filters(self, db_session):
        repo = SqlAlchemyWalletRepository(db_session)
        await create_wallet(db_session, balance=10000)
        await create_wallet(db_session, owner_id=OTHER_OWNER_ID, balance=100)
        await create_wallet(db_session, currency="USD", balance=500)

        rich, rich_total = await repo.list_wallets(min_balance=5000)
        inr, inr_total = await repo.list_wallets(currency="INR", limit=1)
        searched, searched_total = await repo.list_wallets(search=OTHER_OWNER_ID)

        assert rich_total == 1
        assert rich[0].balance == 10000
        assert inr_total == 2
        assert len(inr) == 1
        assert searched_total == 1
        assert searched[0].owner_id == OTHER_OWNER_ID

    async def test_get_stats(self, db_session):
        repo = SqlAlchemyWalletRepository(db_session)
        await create_wallet(db_session, balance=10000)
        await create_wallet(db_session, owner_id=OTHER_OWNER_ID, balance=500)
        await create_wallet(db_session, currency="USD", balance=700, status=WalletStatus.BLOCKED)

        stats = await repo.get_stats()

        assert stats["total_wallets"] == 3
        assert stats["by_status"]["ACTIVE"] == 2
        assert stats["by_status"]["BLOCKED"] == 1
        assert stats["by_currency"]["INR"] == {"wallets": 2, "total_balance": 10500}


@pytest.mark.asyncio
class TestWalletTransactionRepository:
    async def test_duplicate_id_rejected(self, db_session):
        wallet = await create_wallet(db_session)
        await create_transaction(db_session, wallet, id="KEY_1")

        with pytest.raises(IntegrityError):
            await create_transaction(db_session, wallet, id="KEY_1")

    async def test_duplicate_gateway_id_rejected(self, db_session):
        wallet = await create_wallet(db_session)
        await create_transaction(db_session, wallet, gateway_transaction_id="TXN_1")

        with pytest.raises(IntegrityError):
            await create_transaction(db_session, wallet, gateway_transaction_id="TXN_1")

    async def test_conditional_transitions(self, db_session):
        """
        Given: A PENDING transaction
        When: It is completed, then failed, then rolled back twice
        Then: Only transitions from the expected status succeed
        """
        # Arrange
        repo = SqlAlchemyWalletTransactionRepository(db_session)
        wallet = await create_wallet(db_session)
        txn = await create_transaction(db_session, wallet, status=TransactionStatus.PENDING)
        now = utcnow()

        # Act / Assert
        assert await repo.mark_completed(txn.id, 1000, now) is True
        assert await repo.mark_completed(txn.id, 1000, now) is False
        assert await repo.mark_failed(txn.id, "late failure", now) is False
        assert await repo.mark_rolled_back(txn.id, "mistake") is True
        assert await repo.mark_rolled_back(txn.id, "mistake") is False

        stored = await repo.get_by_id(txn.id, refresh=True)
        assert stored.status == TransactionStatus.ROLLED_BACK
        assert stored.balance_after == 1000
        assert stored.failure_reason == "mistake"

    async def test_get_by_gateway_transaction_id(self, db_session):
        repo = SqlAlchemyWalletTransactionRepository(db_session)
        wallet = await create_wallet(db_session)
        txn = await create_transaction(db_session, wallet, gateway_transaction_id="TXN_9")

        assert (await repo.get_by_gateway_transaction_id("TXN_9")).id == txn.id
        assert await repo.get_by_gateway_transaction_id("TXN_X") is None

    async def test_applied_sum_counts_completed_and_rolled_back(self, db_session):
        repo = SqlAlchemyWalletTransactionRepository(db_session)
        wallet = await create_wallet(db_session)
        await create_transaction(db_session, wallet, amount=5000)
        await create_transaction(
            db_session, wallet, amount=2000, status=TransactionStatus.ROLLED_BACK
        )
        await create_transaction(
            db_session, wallet, amount=2000, transaction_type=TransactionType.DEBIT
        )
        await create_transaction(db_session, wallet, amount=700, status=TransactionStatus.PENDING)
        await create_transaction(db_session, wallet, amount=300, status=TransactionStatus.FAILED)

        sums = await repo.get_applied_sum_by_wallet()

        assert sums == {wallet.id: 5000}

    async def test_pending_totals(self, db_session):
        repo = SqlAlchemyWalletTransactionRepository(db_session)
        wallet = await create_wallet(db_session)
        await create_transaction(db_session, wallet, amount=700, status=TransactionStatus.PENDING)
        await create_transaction(
            db_session,
            wallet,
            amount=200,
            status=TransactionStatus.PENDING,
            transaction_type=TransactionType.DEBIT,
        )
        await create_transaction(db_session, wallet, amount=5000)

        totals = await repo.get_pending_totals(wallet.id)

        assert totals == {TransactionType.CREDIT: 700, TransactionType.DEBIT: 200}

    async def test_list_by_wallet_filters_and_sort(self, db_session):
        repo = SqlAlchemyWalletTransactionRepository(db_session)
        wallet = await create_wallet(db_session)
        await create_transaction(db_session, wallet, amount=300)
        await create_transaction(db_session, wallet, amount=100)
        await create_transaction(
            db_session, wallet, amount=200, transaction_type=TransactionType.DEBIT
        )

        by_amount, total = await repo.list_by_wallet([wallet.id], sort_by="amount", sort_order="asc")
        debits, debit_total = await repo.list_by_wallet(
            [wallet.id], transaction_type=TransactionType.DEBIT
        )
        paged, paged_total = await repo.list_by_wallet([wallet.id], limit=1, offset=1)

        assert total == 3
        assert [t.amount for t in by_amount] == [100, 200, 300]
        assert debit_total == 1
        assert debits[0].amount == 200
        assert paged_total == 3
        assert len(paged) == 1

    async def test_find_stale_pending(self, db_session):
        repo = SqlAlchemyWalletTransactionRepository(db_session)
        wallet = await create_wallet(db_session)
        old = utcnow() - timedelta(hours=2)
        stale = await create_transaction(
            db_session,
            wallet,
            status=TransactionStatus.PENDING,
            reference_type=ReferenceType.PAYMENT_GATEWAY,
            created_at=old,
        )
        await create_transaction(
            db_session,
            wallet,
            status=TransactionStatus.PENDING,
            reference_type=ReferenceType.PAYMENT_GATEWAY,
        )

        found = await repo.find_stale_pending(
            ReferenceType.PAYMENT_GATEWAY, utcnow() - timedelta(minutes=30)
        )

        assert [t.id for t in found] == [stale.id]

    async def test_naive_cutoff_is_treated_as_utc(self, db_session):
        repo = SqlAlchemyWalletTransactionRepository(db_session)
        wallet = await create_wallet(db_session)
        stale = await create_transaction(
            db_session,
            wallet,
            status=TransactionStatus.PENDING,
            reference_type=ReferenceType.PAYMENT_GATEWAY,
            created_at=utcnow() - timedelta(hours=2),
        )
        naive_cutoff = (utcnow() - timedelta(minutes=30)).replace(tzinfo=None)

        found = await repo.find_stale_pending(ReferenceType.PAYMENT_GATEWAY, naive_cutoff)

        assert [t.id for t in found] == [stale.id]
        assert found[0].created_at.tzinfo is not None

    async def test_sum_amount_since_and_summary(self, db_session):
        repo = SqlAlchemyWalletTransactionRepository(db_session)
        wallet = await create_wallet(db_session)
        await create_transaction(
            db_session, wallet, amount=4000, reference_type=ReferenceType.PAYMENT_GATEWAY
        )
        await create_transaction(
            db_session,
            wallet,
            amount=1000,
            reference_type=ReferenceType.PAYMENT_GATEWAY,
            status=TransactionStatus.PENDING,
        )
        await create_transaction(
            db_session,
            wallet,
            amount=1500,
            transaction_type=TransactionType.DEBIT,
            reference_type=ReferenceType.ORDER,
        )
        since = utcnow() - timedelta(days=1)

        topped_up = await repo.sum_amount_since(
            wallet.id,
            TransactionType.CREDIT,
            since,
            [TransactionStatus.PENDING, TransactionStatus.COMPLETED],
            reference_type=ReferenceType.PAYMENT_GATEWAY,
        )
        summary = await repo.get_summary([wallet.id], since)

        assert topped_up == 5000
        rows = {(r["transaction_type"], r["reference_type"]): r for r in summary}
        assert rows[(TransactionType.CREDIT, ReferenceType.PAYMENT_GATEWAY)]["total"] == 4000
        assert rows[(TransactionType.DEBIT, ReferenceType.ORDER)]["count"] == 1
        assert len(rows) == 2
