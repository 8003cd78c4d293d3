"""Unit tests for WalletReconcilerWorker and PendingTopupSweeperWorker

Tests cover:
- Worker initialization with configuration
- run_once execution
- Disabled scenario
- Error handling
- Shutdown and cleanup
"""

import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from src.app.use_cases.wallet.dtos import (
    ReconciliationResultDTO,
    SweepResultDTO,
    WalletDiscrepancyDTO,
)
from src.app.use_cases.wallet.policy import WalletPolicy
from src.domain.base import utcnow
from src.worker.pending_topup_sweeper import PendingTopupSweeperWorker
from src.worker.wallet_reconciler import (
    EXIT_DISCREPANCIES,
    EXIT_OK,
    WalletReconcilerWorker,
    describe_discrepancy,
    discrepancies_by_currency,
    main as reconciler_main,
)


def mock_session_factory(mock_sessionmaker):
    session = MagicMock()
    session.__aenter__ = AsyncMock(return_value=session)
    session.__aexit__ = AsyncMock(return_value=False)
    mock_sessionmaker.return_value = MagicMock(return_value=session)
    return session


def use_case_returning(mock_use_case_class, value=None, error=None):
    result = MagicMock()
    result.is_err.return_value = error is not None
    result.value = value
    result.error = error
    use_case = MagicMock()
    use_case.execute = AsyncMock(return_value=result)
    mock_use_case_class.return_value = use_case
    return use_case


@pytest.fixture
def sample_reconciliation_result():
    return ReconciliationResultDTO(
        total_wallets_checked=10,
        discrepancies_found=1,
        discrepancies=[
            WalletDiscrepancyDTO(
                wallet_id="w1",
                owner_id="user_1",
                currency="INR",
                wallet_balance=100000,
                calculated_balance=98550,
                discrepancy=1450,
            )
        ],
        reconciliation_time=utcnow(),
        execution_time_ms=150,
    )


@pytest.mark.asyncio
class TestWalletReconcilerWorker:
    @patch("src.worker.wallet_reconciler.ApplicationConfig")
    @patch("src.worker.wallet_reconciler.create_async_engine")
    async def test_initializes_with_custom_db_uri(self, mock_create_engine, mock_app_config):
        mock_app_config.DB_URI = "postgresql+asyncpg://default@localhost/db"

        worker = WalletReconcilerWorker(db_uri="sqlite+aiosqlite:///custom.db")

        assert worker.db_uri == "sqlite+aiosqlite:///custom.db"
        mock_create_engine.assert_called_once()

    @patch("src.worker.wallet_reconciler.ApplicationConfig")
    @patch("src.worker.wallet_reconciler.ReconcileWallets")
    @patch("src.worker.wallet_reconciler.SqlAlchemyWalletRepository")
    @patch("src.worker.wallet_reconciler.SqlAlchemyWalletTransactionRepository")
    @patch("src.worker.wallet_reconciler.create_async_engine")
    @patch("src.worker.wallet_reconciler.sessionmaker")
    async def test_run_once_returns_result(
        self,
        mock_sessionmaker,
        mock_create_engine,
        mock_transaction_repo_class,
        mock_wallet_repo_class,
        mock_use_case_class,
        mock_app_config,
        sample_reconciliation_result,
    ):
        """
        Given: Reconciliation is enabled
        When: run_once is called
        Then: Executes the use case and returns its result
        """
        mock_app_config.RECONCILIATION_ENABLED = True
        mock_session_factory(mock_sessionmaker)
        use_case = use_case_returning(mock_use_case_class, sample_reconciliation_result)

        worker = WalletReconcilerWorker()
        result = await worker.run_once()

        assert result.total_wallets_checked == 10
        assert result.discrepancies_found == 1
        use_case.execute.assert_called_once()

    @patch("src.worker.wallet_reconciler.ApplicationConfig")
    @patch("src.worker.wallet_reconciler.ReconcileWallets")
    @patch("src.worker.wallet_reconciler.create_async_engine")
    async def test_run_once_skips_when_disabled(
        self, mock_create_engine, mock_use_case_class, mock_app_config
    ):
        mock_app_config.RECONCILIATION_ENABLED = False

        worker = WalletReconcilerWorker()
        result = await worker.run_once()

        assert result.total_wallets_checked == 0
        mock_use_case_class.assert_not_called()

    @patch("src.worker.wallet_reconciler.ApplicationConfig")
    @patch("src.worker.wallet_reconciler.ReconcileWallets")
    @patch("src.worker.wallet_reconciler.SqlAlchemyWalletRepository")
    @patch("src.worker.wallet_reconciler.SqlAlchemyWalletTransactionRepository")
    @patch("src.worker.wallet_reconciler.create_async_engine")
    @patch("src.worker.wallet_reconciler.sessionmaker")
    async def test_run_once_raises_on_use_case_error(
        self,
        mock_sessionmaker,
        mock_create_engine,
        mock_transaction_repo_class,
        mock_wallet_repo_class,
        mock_use_case_class,
        mock_app_config,
    ):
        mock_app_config.RECONCILIATION_ENABLED = True
        mock_session_factory(mock_sessionmaker)
        error = MagicMock()
        error.message = "Failed to reconcile wallet balances"
        use_case_returning(mock_use_case_class, error=error)

        worker = WalletReconcilerWorker()

        with pytest.raises(RuntimeError, match="Reconciliation failed"):
            await worker.run_once()

    @patch("src.worker.wallet_reconciler.create_async_engine")
    async def test_shutdown_disposes_engine(self, mock_create_engine):
        engine = MagicMock()
        engine.dispose = AsyncMock()
        mock_create_engine.return_value = engine

        worker = WalletReconcilerWorker(db_uri="sqlite+aiosqlite:///test.db")
        await worker.shutdown()

        engine.dispose.assert_awaited_once()


class TestDiscrepancyReport:
    def test_describe_discrepancy_in_major_units(self, sample_reconciliation_result):
        line = describe_discrepancy(sample_reconciliation_result.discrepancies[0])

        assert line == (
            "user user_1 wallet w1: "
            "balance=1000.00 INR ledger=985.50 INR diff=14.50 INR"
        )

    def test_discrepancies_net_per_currency(self, sample_reconciliation_result):
        report = sample_reconciliation_result.model_copy(
            update={
                "discrepancies": sample_reconciliation_result.discrepancies
                + [
                    WalletDiscrepancyDTO(
                        wallet_id="w2", owner_id="user_2", currency="INR",
                        wallet_balance=0, calculated_balance=450, discrepancy=-450,
                    ),
                    WalletDiscrepancyDTO(
                        wallet_id="w3", owner_id="user_3", currency="USD",
                        wallet_balance=10, calculated_balance=0, discrepancy=10,
                    ),
                ]
            }
        )

        assert discrepancies_by_currency(report) == {"INR": 1000, "USD": 10}


@pytest.mark.asyncio
class TestWalletReconcilerMain:
    @patch("src.worker.wallet_reconciler.WalletReconcilerWorker")
    async def test_once_exits_non_zero_on_discrepancies(
        self, mock_worker_class, sample_reconciliation_result
    ):
        """
        Given: The audit finds a wallet out of balance
        When: The worker runs with --once
        Then: main returns the discrepancy exit status and disposes the engine
        """
        # Arrange
        worker = MagicMock()
        worker.run_once = AsyncMock(return_value=sample_reconciliation_result)
        worker.shutdown = AsyncMock()
        mock_worker_class.return_value = worker

        # Act
        status = await reconciler_main(["--once"])

        # Assert
        assert status == EXIT_DISCREPANCIES
        worker.shutdown.assert_awaited_once()

    @patch("src.worker.wallet_reconciler.WalletReconcilerWorker")
    async def test_once_exits_zero_when_balanced(self, mock_worker_class):
        worker = MagicMock()
        worker.run_once = AsyncMock(
            return_value=ReconciliationResultDTO(
                total_wallets_checked=4,
                discrepancies_found=0,
                discrepancies=[],
                reconciliation_time=utcnow(),
                execution_time_ms=5,
            )
        )
        worker.shutdown = AsyncMock()
        mock_worker_class.return_value = worker

        status = await reconciler_main(["--once"])

        assert status == EXIT_OK


@pytest.mark.asyncio
class TestPendingTopupSweeperWorker:
    @patch("src.worker.pending_topup_sweeper.ApplicationConfig")
    @patch("src.worker.pending_topup_sweeper.SweepPendingTopups")
    @patch("src.worker.pending_topup_sweeper.SqlAlchemyUnitOfWork")
    @patch("src.worker.pending_topup_sweeper.SqlAlchemyWalletRepository")
    @patch("src.worker.pending_topup_sweeper.SqlAlchemyWalletTransactionRepository")
    @patch("src.worker.pending_topup_sweeper.create_async_engine")
    @patch("src.worker.pending_topup_sweeper.sessionmaker")
    async def test_run_once_sweeps(
        self,
        mock_sessionmaker,
        mock_create_engine,
        mock_transaction_repo_class,
        mock_wallet_repo_class,
        mock_uow_class,
        mock_use_case_class,
        mock_app_config,
    ):
        """
        Given: Sweeping is enabled
        When: run_once is called
        Then: The sweep use case runs with the worker's policy and batch size
        """
        mock_app_config.TOPUP_SWEEP_ENABLED = True
        mock_session_factory(mock_sessionmaker)
        sweep_result = SweepResultDTO(
            scanned=3, failed=2, skipped=1, errors=0,
            cutoff=utcnow(), execution_time_ms=12,
        )
        use_case = use_case_returning(mock_use_case_class, sweep_result)
        policy = WalletPolicy(topup_timeout_minutes=10)

        worker = PendingTopupSweeperWorker(
            db_uri="sqlite+aiosqlite:///test.db", policy=policy, batch_size=50
        )
        result = await worker.run_once()

        assert result.failed == 2
        use_case.execute.assert_called_once()
        kwargs = mock_use_case_class.call_args.kwargs
        assert kwargs["policy"] is policy
        assert kwargs["batch_size"] == 50

    @patch("src.worker.pending_topup_sweeper.ApplicationConfig")
    @patch("src.worker.pending_topup_sweeper.SweepPendingTopups")
    @patch("src.worker.pending_topup_sweeper.create_async_engine")
    async def test_run_once_skips_when_disabled(
        self, mock_create_engine, mock_use_case_class, mock_app_config
    ):
        mock_app_config.TOPUP_SWEEP_ENABLED = False

        worker = PendingTopupSweeperWorker(policy=WalletPolicy())
        result = await worker.run_once()

        assert result is None
        mock_use_case_class.assert_not_called()

    @patch("src.worker.pending_topup_sweeper.create_async_engine")
    async def test_shutdown_disposes_engine(self, mock_create_engine):
        engine = MagicMock()
        engine.dispose = AsyncMock()
        mock_create_engine.return_value = engine

        worker = PendingTopupSweeperWorker(
            db_uri="sqlite+aiosqlite:///test.db", policy=WalletPolicy()
        )
        await worker.shutdown()

        engine.dispose.assert_awaited_once()
