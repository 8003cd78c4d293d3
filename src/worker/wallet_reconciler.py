"""Wallet Reconciliation Background Worker

Audits every cached wallet balance against the signed sum of its applied
transactions. The audit is read-only: discrepancies are logged and reported,
never corrected.

Run from cron with --once; the process exits with status 1 when any wallet
is out of balance so the scheduler can page on it.
"""

import asyncio
import logging
import sys
from typing import List, Optional
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel.ext.asyncio.session import AsyncSession

from config import ApplicationConfig
from src.adapter.repositories.wallet_repository import SqlAlchemyWalletRepository
from src.adapter.repositories.wallet_transaction_repository import (
    SqlAlchemyWalletTransactionRepository,
)
from src.app.use_cases.wallet import ReconcileWallets, ReconciliationResultDTO
from src.app.use_cases.wallet.dtos import WalletDiscrepancyDTO
from src.domain.base import utcnow
from src.domain.money import Money

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_DISCREPANCIES = 1


def describe_discrepancy(d: WalletDiscrepancyDTO) -> str:
    """One-line human readable description in major units"""
    wallet = Money(amount_minor=d.wallet_balance, currency=d.currency)
    expected = Money(amount_minor=d.calculated_balance, currency=d.currency)
    diff = Money(amount_minor=d.discrepancy, currency=d.currency)
    return (
        f"user {d.owner_id} wallet {d.wallet_id}: "
        f"balance={wallet} ledger={expected} diff={diff}"
    )


def discrepancies_by_currency(result: ReconciliationResultDTO) -> dict:
    """Net discrepancy per currency in minor units"""
    totals: dict = {}
    for d in result.discrepancies:
        totals[d.currency] = totals.get(d.currency, 0) + d.discrepancy
    return totals


class WalletReconcilerWorker:
    """
    Background worker for the wallet balance audit

    Usage:
        worker = WalletReconcilerWorker()
        result = await worker.run_once()

        await worker.run_forever(interval_seconds=86400)
    """

    def __init__(self, db_uri: Optional[str] = None):
        self.db_uri = db_uri or ApplicationConfig.DB_URI

        self.engine = create_async_engine(self.db_uri, echo=False, future=True)
        self.async_session_factory = sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
        )

        logger.info("WalletReconcilerWorker initialized")

    async def run_once(self) -> ReconciliationResultDTO:
        """
        Audit every wallet once

        Returns:
            ReconciliationResultDTO (empty when reconciliation is disabled)

        Raises:
            RuntimeError: The reconciliation use case failed
        """
        if not ApplicationConfig.RECONCILIATION_ENABLED:
            logger.info("Wallet reconciliation is disabled, skipping")
            return ReconciliationResultDTO(
                total_wallets_checked=0,
                discrepancies_found=0,
                discrepancies=[],
                reconciliation_time=utcnow(),
                execution_time_ms=0,
            )

        async with self.async_session_factory() as session:
            use_case = ReconcileWallets(
                wallet_repo=SqlAlchemyWalletRepository(session),
                transaction_repo=SqlAlchemyWalletTransactionRepository(session),
            )
            result = await use_case.execute()

        if result.is_err():
            logger.error(f"Reconciliation failed: {result.error.message}")
            raise RuntimeError(f"Reconciliation failed: {result.error.message}")

        report = result.value
        self._alert(report)
        return report

    def _alert(self, report: ReconciliationResultDTO) -> None:
        if not report.discrepancies_found:
            return

        logger.error(f"ALERT: {report.discrepancies_found} wallets out of balance")
        for currency, total in sorted(discrepancies_by_currency(report).items()):
            logger.error(f"  net {currency}: {Money(amount_minor=total, currency=currency)}")
        for d in report.discrepancies:
            logger.error(f"  - {describe_discrepancy(d)}")

    async def run_forever(self, interval_seconds: int = 86400):
        logger.info(
            f"Starting continuous wallet reconciliation with {interval_seconds}s interval"
        )

        while True:
            try:
                result = await self.run_once()
                logger.info(
                    f"Reconciliation cycle complete. "
                    f"Checked {result.total_wallets_checked} wallets, "
                    f"found {result.discrepancies_found} discrepancies "
                    f"in {result.execution_time_ms}ms"
                )
            except Exception as e:
                logger.error(f"Reconciliation cycle failed: {e}")

            await asyncio.sleep(interval_seconds)

    async def shutdown(self):
        await self.engine.dispose()
        logger.info("WalletReconcilerWorker shutdown complete")


async def main(argv: Optional[List[str]] = None) -> int:
    """
    Usage:
        python -m src.worker.wallet_reconciler --once
        python -m src.worker.wallet_reconciler --interval 3600

    Returns:
        Process exit status: 1 when a --once audit found discrepancies
    """
    import argparse

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    parser = argparse.ArgumentParser(description="Wallet Reconciliation Worker")
    parser.add_argument("--once", action="store_true", help="Audit once and exit")
    parser.add_argument(
        "--interval", type=int, default=ApplicationConfig.RECONCILIATION_INTERVAL_SECONDS,
        help="Interval between runs in seconds (default: 86400 = 24 hours)"
    )
    args = parser.parse_args(argv)

    worker = WalletReconcilerWorker()

    try:
        if args.once:
            result = await worker.run_once()
            print(
                f"Checked {result.total_wallets_checked} wallets in "
                f"{result.execution_time_ms}ms, "
                f"{result.discrepancies_found} out of balance"
            )
            for d in result.discrepancies:
                print(f"  - {describe_discrepancy(d)}")
            return EXIT_DISCREPANCIES if result.discrepancies_found else EXIT_OK

        await worker.run_forever(interval_seconds=args.interval)
    except KeyboardInterrupt:
        logger.info("Received shutdown signal")
    finally:
        await worker.shutdown()

    return EXIT_OK


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
