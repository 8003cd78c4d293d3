"""SweepPendingTopups Use Case

Fails top-ups whose gateway payment never settled.
"""

import logging
import time
from datetime import timedelta
from libs.result import Result, Return, Error
from src.app.repositories.wallet_transaction_repository import WalletTransactionRepository
from src.app.services.ledger_store import LedgerStore
from src.app.services.unit_of_work import UnitOfWork
from src.domain.base import utcnow
from src.domain.errors import InvalidStateTransition
from src.domain.wallet_transaction import ReferenceType
from .dtos import SweepResultDTO
from .policy import WalletPolicy

logger = logging.getLogger(__name__)

TIMEOUT_REASON = "timeout"


class SweepPendingTopups:
    """
    Use Case: Expire stale top-ups

    Business Rules:
    1. PENDING PAYMENT_GATEWAY transactions older than
       TOPUP_TIMEOUT_MINUTES become FAILED with reason "timeout"
    2. Balances are never touched
    3. A failure on one transaction is logged and the sweep continues
    4. A transaction settled by a callback mid-sweep is skipped
    """

    def __init__(
        self,
        uow: UnitOfWork,
        ledger: LedgerStore,
        transaction_repo: WalletTransactionRepository,
        policy: WalletPolicy,
        batch_size: int = 100,
    ):
        self.uow = uow
        self.ledger = ledger
        self.transaction_repo = transaction_repo
        self.policy = policy
        self.batch_size = batch_size

    async def execute(self) -> Result[SweepResultDTO]:
        start_time = time.time()
        cutoff = utcnow() - timedelta(minutes=self.policy.topup_timeout_minutes)

        try:
            stale = await self.transaction_repo.find_stale_pending(
                ReferenceType.PAYMENT_GATEWAY, cutoff, limit=self.batch_size
            )
        except Exception as e:
            logger.error(f"Stale top-up sweep could not load candidates: {e}")
            return Return.err(
                Error(
                    code="SWEEP_PENDING_TOPUPS_FAILED",
                    message="Failed to sweep pending top-ups",
                    reason=str(e),
                )
            )

        logger.info(f"Found {len(stale)} stale top-ups created before {cutoff.isoformat()}")

        failed = 0
        skipped = 0
        errors = 0
        for transaction in stale:
            try:
                await self.ledger.fail(transaction.id, TIMEOUT_REASON)
                failed += 1
            except InvalidStateTransition:
                await self.uow.rollback()
                skipped += 1
                logger.info(f"Top-up {transaction.id} settled before it could be expired")
            except Exception as e:
                await self.uow.rollback()
                errors += 1
                logger.warning(f"Could not expire top-up {transaction.id}: {e}")

        execution_time_ms = int((time.time() - start_time) * 1000)
        logger.info(
            f"Sweep complete. Expired {failed}/{len(stale)} top-ups "
            f"({errors} errors) in {execution_time_ms}ms"
        )

        return Return.ok(
            SweepResultDTO(
                scanned=len(stale),
                failed=failed,
                skipped=skipped,
                errors=errors,
                cutoff=cutoff,
                execution_time_ms=execution_time_ms,
            )
        )
