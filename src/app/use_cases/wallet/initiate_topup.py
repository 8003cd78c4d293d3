"""InitiateTopup Use Case

Starts a wallet top-up: creates a gateway payment session and records a
PENDING CREDIT that the gateway callback later settles.
"""

import logging
from datetime import datetime, time, timezone
from libs.result import Result, Return, Error
from src.app.repositories.wallet_transaction_repository import WalletTransactionRepository
from src.app.services.ledger_store import LedgerStore
from src.app.services.payment_gateway import PaymentGateway
from src.app.services.unit_of_work import UnitOfWork
from src.domain.base import utcnow
from src.domain.errors import DailyLimitExceeded, WalletBlocked, WalletError
from src.domain.money import Money
from src.domain.transaction_state import TransactionStatus
from src.domain.wallet import Wallet
from src.domain.wallet_transaction import (
    TransactionType,
    ReferenceType,
    InitiatedByActor,
)
from .dtos import TopupCommandDTO, TopupResponseDTO, TransactionDTO
from .policy import WalletPolicy

logger = logging.getLogger(__name__)


class InitiateTopup:
    """
    Use Case: Initiate a wallet top-up

    Business Rules:
    1. Amount within TOPUP_MIN_AMOUNT..TOPUP_MAX_AMOUNT, currency precision
    2. Wallet is provisioned on first top-up and must be ACTIVE
    3. Optional daily top-up limit (PENDING + COMPLETED gateway credits today)
    4. Balance is untouched until the gateway confirms the payment

    Flow:
    1. Validate amount and currency
    2. Provision wallet
    3. Check daily limit
    4. Create gateway payment session
    5. Open PENDING CREDIT keyed by the gateway transaction ID
    6. Commit and return payment URL
    """

    def __init__(
        self,
        uow: UnitOfWork,
        ledger: LedgerStore,
        transaction_repo: WalletTransactionRepository,
        gateway: PaymentGateway,
        policy: WalletPolicy,
    ):
        self.uow = uow
        self.ledger = ledger
        self.transaction_repo = transaction_repo
        self.gateway = gateway
        self.policy = policy

    async def execute(self, command: TopupCommandDTO) -> Result[TopupResponseDTO]:
        try:
            # Step 1: Validate amount against limits and currency precision
            currency = self.policy.resolve_currency(command.currency)
            amount = self.policy.to_money(
                command.amount,
                currency,
                minimum=self.policy.topup_min_amount,
                maximum=self.policy.topup_max_amount,
            )

            # Step 2: Get or create wallet
            wallet = await self.ledger.provision(command.owner_id, currency)
            if not wallet.can_transact():
                raise WalletBlocked(
                    "Wallet is not active for transactions",
                    reason=f"status={wallet.status.value}",
                )

            # Step 3: Daily limit
            await self._check_daily_limit(wallet, amount)

            # Step 4: Outbound gateway call
            session = await self.gateway.create_payment(
                command.owner_id, amount, command.payment_method
            )

            # Step 5: Record the pending credit
            transaction, _ = await self.ledger.open(
                wallet_id=wallet.id,
                amount=amount,
                transaction_type=TransactionType.CREDIT,
                reference_type=ReferenceType.PAYMENT_GATEWAY,
                reference_id=session.gateway_transaction_id,
                initiated_by_actor=InitiatedByActor.USER,
                gateway_transaction_id=session.gateway_transaction_id,
                payment_method=command.payment_method,
                description=f"Wallet top-up via {command.payment_method.value}",
                extra={
                    "payment_url": session.payment_url,
                    "expires_at": session.expires_at.isoformat(),
                },
            )

            # Step 6: Commit
            await self.uow.commit()

            logger.info(
                f"Top-up {transaction.id} of {amount} initiated for user {command.owner_id}"
            )

            return Return.ok(
                TopupResponseDTO(
                    transaction=TransactionDTO.from_entity(transaction),
                    gateway_transaction_id=session.gateway_transaction_id,
                    payment_url=session.payment_url,
                    expires_at=session.expires_at,
                )
            )

        except WalletError as e:
            await self.uow.rollback()
            return Return.err(e.to_error())
        except Exception as e:
            await self.uow.rollback()
            logger.error(f"Top-up failed for user {command.owner_id}: {e}")
            return Return.err(
                Error(
                    code="INITIATE_TOPUP_FAILED",
                    message="Failed to initiate wallet top-up",
                    reason=str(e),
                )
            )

    async def _check_daily_limit(self, wallet: Wallet, amount: Money) -> None:
        if self.policy.daily_topup_limit is None:
            return

        limit = Money.from_decimal(self.policy.daily_topup_limit, wallet.currency)
        start_of_day = datetime.combine(utcnow().date(), time.min, tzinfo=timezone.utc)
        today_total = await self.transaction_repo.sum_amount_since(
            wallet.id,
            TransactionType.CREDIT,
            start_of_day,
            statuses=[TransactionStatus.PENDING, TransactionStatus.COMPLETED],
            reference_type=ReferenceType.PAYMENT_GATEWAY,
        )
        today = Money(amount_minor=today_total, currency=wallet.currency)

        if today + amount > limit:
            remaining = limit - today
            raise DailyLimitExceeded(
                f"Daily top-up limit exceeded. Remaining limit: {remaining.to_decimal()}",
                reason=f"daily_limit={limit.to_decimal()}, today_total={today.to_decimal()}",
            )
