"""Unit tests for ReconcileWallets use case

Tests cover:
- Discrepancy detection between cached balance and applied transactions
- No discrepancies scenario
- Rolled-back transactions net to zero
- Error handling
"""

import pytest
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock
from src.app.use_cases.wallet.reconcile_wallets import ReconcileWallets
from src.domain.wallet import Wallet
from tests.unit.fakes import OWNER_ID


@pytest.fixture
def mock_wallet_repo():
    return MagicMock()


@pytest.fixture
def mock_transaction_repo():
    return MagicMock()


@pytest.fixture
def reconcile_use_case(mock_wallet_repo, mock_transaction_repo):
    return ReconcileWallets(
        wallet_repo=mock_wallet_repo,
        transaction_repo=mock_transaction_repo,
    )


@pytest.fixture
def sample_wallet():
    def _create_wallet(wallet_id: str, owner_id: str, balance: int):
        wallet = MagicMock(spec=Wallet)
        wallet.id = wallet_id
        wallet.owner_id = owner_id
        wallet.currency = "INR"
        wallet.balance = balance
        return wallet
    return _create_wallet


@pytest.mark.asyncio
class TestReconcileWallets:
    async def test_detects_discrepancy_when_balance_differs(
        self, reconcile_use_case, mock_wallet_repo, mock_transaction_repo, sample_wallet
    ):
        """
        Given: Wallet balance differs from the applied transaction sum
        When: Reconciliation runs
        Then: Discrepancy is reported and nothing is corrected
        """
        # Arrange
        wallet = sample_wallet("w1", "user_1", 100000)
        mock_wallet_repo.get_all = AsyncMock(return_value=[wallet])
        mock_transaction_repo.get_applied_sum_by_wallet = AsyncMock(return_value={"w1": 98550})

        # Act
        result = await reconcile_use_case.execute()

        # Assert
        assert result.is_ok()
        response = result.value
        assert response.total_wallets_checked == 1
        assert response.discrepancies_found == 1
        discrepancy = response.discrepancies[0]
        assert discrepancy.wallet_id == "w1"
        assert discrepancy.owner_id == "user_1"
        assert discrepancy.wallet_balance == 100000
        assert discrepancy.calculated_balance == 98550
        assert discrepancy.discrepancy == 1450
        assert wallet.balance == 100000

    async def test_no_discrepancy_when_balances_match(
        self, reconcile_use_case, mock_wallet_repo, mock_transaction_repo, sample_wallet
    ):
        mock_wallet_repo.get_all = AsyncMock(return_value=[sample_wallet("w1", "user_1", 5000)])
        mock_transaction_repo.get_applied_sum_by_wallet = AsyncMock(return_value={"w1": 5000})

        result = await reconcile_use_case.execute()

        assert result.value.discrepancies_found == 0

    async def test_wallet_without_transactions_expects_zero(
        self, reconcile_use_case, mock_wallet_repo, mock_transaction_repo, sample_wallet
    ):
        mock_wallet_repo.get_all = AsyncMock(
            return_value=[sample_wallet("w1", "user_1", 0), sample_wallet("w2", "user_2", 700)]
        )
        mock_transaction_repo.get_applied_sum_by_wallet = AsyncMock(return_value={})

        result = await reconcile_use_case.execute()

        assert result.value.total_wallets_checked == 2
        assert result.value.discrepancies_found == 1
        assert result.value.discrepancies[0].wallet_id == "w2"

    async def test_handles_repository_error(
        self, reconcile_use_case, mock_wallet_repo
    ):
        mock_wallet_repo.get_all = AsyncMock(side_effect=Exception("Database error"))

        result = await reconcile_use_case.execute()

        assert result.is_err()
        assert result.error.code == "RECONCILIATION_FAILED"
        assert "Database error" in result.error.reason


@pytest.mark.asyncio
class TestReconcileAfterLedgerActivity:
    async def test_ledger_activity_reconciles_cleanly(self, service, make_wallet):
        """
        Given: Top-up, order debit, refund and a rollback through the ledger
        When: Reconciliation runs
        Then: Every wallet balance equals its applied transaction sum
        """
        make_wallet()
        topup = await service.initiate_topup(OWNER_ID, Decimal("500.00"), "UPI")
        await service.handle_gateway_callback(topup.value.gateway_transaction_id, "SUCCESS")
        debit = await service.debit_for_order(OWNER_ID, Decimal("120.00"), "ORD-1")
        await service.credit_for_refund(OWNER_ID, Decimal("20.00"), "ORD-1")
        await service.rollback_transaction(debit.value.transaction.transaction_id)
        failed = await service.initiate_topup(OWNER_ID, Decimal("50.00"), "UPI")
        await service.handle_gateway_callback(failed.value.gateway_transaction_id, "FAILED")

        result = await service.reconcile()

        assert result.is_ok()
        assert result.value.total_wallets_checked == 1
        assert result.value.discrepancies_found == 0

    async def test_tampered_balance_is_reported(self, service, make_wallet):
        wallet = make_wallet()
        await service.credit_for_refund(OWNER_ID, Decimal("20.00"), "ORD-1")
        wallet.balance += 1

        result = await service.reconcile()

        assert result.value.discrepancies_found == 1
        assert result.value.discrepancies[0].discrepancy == 1
