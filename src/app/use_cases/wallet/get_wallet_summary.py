"""
Get Wallet Summary Use Case

Completed-transaction totals for a user over a trailing window of days.
"""
import logging
from datetime import timedelta
from typing import Dict, Optional
from libs.result import Result, Return, Error
from src.app.repositories.wallet_repository import WalletRepository
from src.app.repositories.wallet_transaction_repository import WalletTransactionRepository
from src.domain.base import utcnow
from src.domain.errors import WalletError, WalletNotFound
from src.domain.money import Money
from src.domain.wallet_transaction import TransactionType
from .dtos import SummaryBucketDTO, WalletSummaryDTO
from .policy import WalletPolicy

logger = logging.getLogger(__name__)


class GetWalletSummary:
    """
    Use case: Wallet transaction summary

    Groups COMPLETED transactions created in the last `days` days by
    transaction type and by reference type.
    """

    def __init__(
        self,
        wallet_repo: WalletRepository,
        transaction_repo: WalletTransactionRepository,
        policy: WalletPolicy,
    ):
        self.wallet_repo = wallet_repo
        self.transaction_repo = transaction_repo
        self.policy = policy

    async def execute(
        self, owner_id: str, days: int = 30, currency: Optional[str] = None
    ) -> Result[WalletSummaryDTO]:
        try:
            currency = self.policy.resolve_currency(currency)
            wallet = await self.wallet_repo.get_by_owner(owner_id, currency)
            if not wallet:
                raise WalletNotFound(f"{currency} wallet not found for user {owner_id}")

            since = utcnow() - timedelta(days=days)
            rows = await self.transaction_repo.get_summary([wallet.id], since)

            by_type: Dict[str, Dict[str, int]] = {
                t.value: {"count": 0, "total": 0} for t in TransactionType
            }
            by_reference_type: Dict[str, Dict[str, int]] = {}

            for row in rows:
                type_bucket = by_type[row["transaction_type"].value]
                type_bucket["count"] += row["count"]
                type_bucket["total"] += row["total"]

                ref_bucket = by_reference_type.setdefault(
                    row["reference_type"].value, {"count": 0, "total": 0}
                )
                ref_bucket["count"] += row["count"]
                ref_bucket["total"] += row["total"]

            def to_decimal(amount_minor: int):
                return Money(amount_minor=amount_minor, currency=currency).to_decimal()

            def bucket(values: Dict[str, int]) -> SummaryBucketDTO:
                return SummaryBucketDTO(count=values["count"], total=to_decimal(values["total"]))

            total_credit = by_type[TransactionType.CREDIT.value]["total"]
            total_debit = by_type[TransactionType.DEBIT.value]["total"]

            return Return.ok(
                WalletSummaryDTO(
                    owner_id=owner_id,
                    currency=currency,
                    period_days=days,
                    since=since,
                    balance=wallet.balance_money().to_decimal(),
                    total_credit=to_decimal(total_credit),
                    total_debit=to_decimal(total_debit),
                    net_change=to_decimal(total_credit - total_debit),
                    by_type={k: bucket(v) for k, v in by_type.items()},
                    by_reference_type={k: bucket(v) for k, v in by_reference_type.items()},
                )
            )

        except WalletError as e:
            return Return.err(e.to_error())
        except Exception as e:
            logger.error(f"Failed to build wallet summary for user {owner_id}: {e}")
            return Return.err(
                Error(
                    code="GET_WALLET_SUMMARY_FAILED",
                    message="Failed to build wallet summary",
                    reason=str(e),
                )
            )
