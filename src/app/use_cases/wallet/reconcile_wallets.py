"""ReconcileWallets Use Case

Audits cached wallet balances against the transaction log.
"""

import logging
import time
from libs.result import Result, Return, Error
from src.app.repositories.wallet_repository import WalletRepository
from src.app.repositories.wallet_transaction_repository import WalletTransactionRepository
from src.domain.base import utcnow
from .dtos import WalletDiscrepancyDTO, ReconciliationResultDTO

logger = logging.getLogger(__name__)


class ReconcileWallets:
    """
    Use Case: Reconcile wallet balances against transactions

    Business Rules:
    1. Expected balance = signed sum of applied transactions (COMPLETED and
       ROLLED_BACK; a rollback's compensating entry is itself COMPLETED)
    2. PENDING and FAILED transactions never count
    3. Discrepancies are reported and logged, never corrected
       (read-only reconciliation)

    Flow:
    1. Get all wallets
    2. Get applied sums for every wallet in one aggregate query
    3. Compare and record discrepancies
    4. Return reconciliation result
    """

    def __init__(
        self,
        wallet_repo: WalletRepository,
        transaction_repo: WalletTransactionRepository,
    ):
        self.wallet_repo = wallet_repo
        self.transaction_repo = transaction_repo

    async def execute(self) -> Result[ReconciliationResultDTO]:
        start_time = time.time()
        reconciliation_time = utcnow()

        try:
            logger.info("Starting wallet reconciliation")

            # Step 1: Get all wallets
            wallets = await self.wallet_repo.get_all()
            total_wallets = len(wallets)

            logger.info(f"Found {total_wallets} wallets to reconcile")

            # Step 2: Applied sums per wallet
            applied_sums = await self.transaction_repo.get_applied_sum_by_wallet()

            # Step 3: Compare
            discrepancies: list[WalletDiscrepancyDTO] = []

            for wallet in wallets:
                calculated = applied_sums.get(wallet.id, 0)
                if wallet.balance != calculated:
                    discrepancy = WalletDiscrepancyDTO(
                        wallet_id=wallet.id,
                        owner_id=wallet.owner_id,
                        currency=wallet.currency,
                        wallet_balance=wallet.balance,
                        calculated_balance=calculated,
                        discrepancy=wallet.balance - calculated,
                    )
                    discrepancies.append(discrepancy)

                    logger.warning(
                        f"Discrepancy found for user {wallet.owner_id} "
                        f"(wallet_id={wallet.id}, {wallet.currency}): "
                        f"wallet_balance={wallet.balance}, "
                        f"transaction_sum={calculated}, "
                        f"discrepancy={discrepancy.discrepancy}"
                    )

            # Step 4: Build response
            execution_time_ms = int((time.time() - start_time) * 1000)

            response = ReconciliationResultDTO(
                total_wallets_checked=total_wallets,
                discrepancies_found=len(discrepancies),
                discrepancies=discrepancies,
                reconciliation_time=reconciliation_time,
                execution_time_ms=execution_time_ms,
            )

            if discrepancies:
                logger.warning(
                    f"Reconciliation complete. Found {len(discrepancies)} discrepancies "
                    f"out of {total_wallets} wallets in {execution_time_ms}ms"
                )
            else:
                logger.info(
                    f"Reconciliation complete. All {total_wallets} wallets balanced "
                    f"in {execution_time_ms}ms"
                )

            return Return.ok(response)

        except Exception as e:
            logger.error(f"Wallet reconciliation failed: {e}")
            return Return.err(
                Error(
                    code="RECONCILIATION_FAILED",
                    message="Failed to reconcile wallet balances",
                    reason=str(e),
                )
            )
