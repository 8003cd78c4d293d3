"""Pending Top-up Sweeper

Expires gateway top-ups that never received a callback. Runs on a fixed
interval next to the API process or once from a scheduler.
"""

import asyncio
import logging
from typing import Optional
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel.ext.asyncio.session import AsyncSession

from config import ApplicationConfig
from src.adapter.repositories.wallet_repository import SqlAlchemyWalletRepository
from src.adapter.repositories.wallet_transaction_repository import (
    SqlAlchemyWalletTransactionRepository,
)
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from src.app.services.ledger_store import LedgerStore
from src.app.use_cases.wallet import SweepPendingTopups, SweepResultDTO, WalletPolicy

logger = logging.getLogger(__name__)


class PendingTopupSweeperWorker:
    """
    Background worker that fails stale PENDING top-ups

    Usage:
        worker = PendingTopupSweeperWorker()
        result = await worker.run_once()

        await worker.run_forever(interval_seconds=300)
    """

    def __init__(
        self,
        db_uri: Optional[str] = None,
        policy: Optional[WalletPolicy] = None,
        batch_size: int = 100,
    ):
        self.db_uri = db_uri or ApplicationConfig.DB_URI
        self.batch_size = batch_size
        self.policy = policy or WalletPolicy.from_config(ApplicationConfig)

        self.engine = create_async_engine(self.db_uri, echo=False, future=True)
        self.async_session_factory = sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
        )

        logger.info(
            f"PendingTopupSweeperWorker initialized "
            f"(timeout={self.policy.topup_timeout_minutes}m)"
        )

    async def run_once(self) -> Optional[SweepResultDTO]:
        """
        Run one sweep

        Returns:
            SweepResultDTO, or None when sweeping is disabled

        Raises:
            RuntimeError: Candidates could not be loaded
        """
        if not ApplicationConfig.TOPUP_SWEEP_ENABLED:
            logger.info("Pending top-up sweep is disabled, skipping")
            return None

        async with self.async_session_factory() as session:
            uow = SqlAlchemyUnitOfWork(session)
            wallet_repo = SqlAlchemyWalletRepository(session)
            transaction_repo = SqlAlchemyWalletTransactionRepository(session)
            ledger = LedgerStore(
                uow,
                wallet_repo,
                transaction_repo,
                max_attempts=self.policy.ledger_max_attempts,
                base_delay=self.policy.ledger_base_delay_seconds,
                max_delay=self.policy.ledger_max_delay_seconds,
            )

            use_case = SweepPendingTopups(
                uow=uow,
                ledger=ledger,
                transaction_repo=transaction_repo,
                policy=self.policy,
                batch_size=self.batch_size,
            )

            result = await use_case.execute()

            if result.is_err():
                logger.error(f"Sweep failed: {result.error.message}")
                raise RuntimeError(f"Sweep failed: {result.error.message}")

            return result.value

    async def run_forever(self, interval_seconds: int = 300):
        logger.info(f"Starting pending top-up sweeper with {interval_seconds}s interval")

        while True:
            try:
                result = await self.run_once()
                if result is not None:
                    logger.info(
                        f"Sweep cycle complete. Scanned {result.scanned}, "
                        f"expired {result.failed}, skipped {result.skipped}, "
                        f"errors {result.errors}"
                    )
            except Exception as e:
                logger.error(f"Sweep cycle failed: {e}")

            await asyncio.sleep(interval_seconds)

    async def shutdown(self):
        """Cleanup resources"""
        await self.engine.dispose()
        logger.info("PendingTopupSweeperWorker shutdown complete")


async def main():
    """
    Usage:
        python -m src.worker.pending_topup_sweeper --once
        python -m src.worker.pending_topup_sweeper --interval 60
    """
    import argparse

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    parser = argparse.ArgumentParser(description="Pending Top-up Sweeper")
    parser.add_argument("--once", action="store_true", help="Run once and exit")
    parser.add_argument(
        "--interval", type=int, default=ApplicationConfig.TOPUP_SWEEP_INTERVAL_SECONDS,
        help="Interval between sweeps in seconds (default: 300)"
    )
    parser.add_argument("--batch-size", type=int, default=100)
    args = parser.parse_args()

    worker = PendingTopupSweeperWorker(batch_size=args.batch_size)

    try:
        if args.once:
            result = await worker.run_once()
            if result is None:
                print("Sweep disabled")
            else:
                print("Sweep complete:")
                print(f"  Scanned: {result.scanned}")
                print(f"  Expired: {result.failed}")
                print(f"  Skipped: {result.skipped}")
                print(f"  Errors: {result.errors}")
        else:
            await worker.run_forever(interval_seconds=args.interval)
    except KeyboardInterrupt:
        logger.info("Received shutdown signal")
    finally:
        await worker.shutdown()


if __name__ == "__main__":
    asyncio.run(main())
