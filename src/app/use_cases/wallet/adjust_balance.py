"""AdjustBalance Use Case

Admin credit or debit applied synchronously to a user's wallet.
"""

import logging
from libs.result import Result, Return, Error
from src.app.services.ledger_store import LedgerStore
from src.app.services.unit_of_work import UnitOfWork
from src.domain.errors import WalletError
from src.domain.wallet_transaction import ReferenceType, InitiatedByActor
from .dtos import AdjustBalanceCommandDTO, LedgerMutationResponseDTO, TransactionDTO, WalletDTO
from .policy import WalletPolicy

logger = logging.getLogger(__name__)

DESCRIPTION_PREFIX = "Admin Adjustment: "


class AdjustBalance:
    """
    Use Case: Admin balance adjustment

    Business Rules:
    1. Amount capped by ADMIN_ADJUSTMENT_MAX
    2. Description (5-250 chars) and admin ID are mandatory
    3. Open + apply in one unit: a rejected debit leaves neither a balance
       change nor a transaction record
    4. Optional idempotency key makes retries safe
    """

    def __init__(self, uow: UnitOfWork, ledger: LedgerStore, policy: WalletPolicy):
        self.uow = uow
        self.ledger = ledger
        self.policy = policy

    async def execute(self, command: AdjustBalanceCommandDTO) -> Result[LedgerMutationResponseDTO]:
        try:
            currency = self.policy.resolve_currency(command.currency)
            amount = self.policy.to_money(
                command.amount, currency, maximum=self.policy.admin_adjustment_max
            )

            wallet = await self.ledger.provision(command.owner_id, currency)

            transaction, wallet, duplicate = await self.ledger.open_and_apply(
                wallet.id,
                amount,
                command.transaction_type,
                ReferenceType.ADMIN_ADJUSTMENT,
                reference_id=command.admin_id,
                initiated_by_actor=InitiatedByActor.ADMIN,
                transaction_id=command.idempotency_key,
                description=f"{DESCRIPTION_PREFIX}{command.description}",
                adjusted_by_admin_id=command.admin_id,
                extra={"admin_id": command.admin_id},
            )

            logger.info(
                f"Admin {command.admin_id} adjusted wallet {wallet.id}: "
                f"{command.transaction_type.value} {amount}"
            )

            return Return.ok(
                LedgerMutationResponseDTO(
                    transaction=TransactionDTO.from_entity(transaction),
                    wallet=WalletDTO.from_entity(wallet),
                    duplicate=duplicate,
                )
            )

        except WalletError as e:
            await self.uow.rollback()
            return Return.err(e.to_error())
        except Exception as e:
            await self.uow.rollback()
            logger.error(f"Admin adjustment failed for user {command.owner_id}: {e}")
            return Return.err(
                Error(
                    code="ADJUST_BALANCE_FAILED",
                    message="Failed to adjust wallet balance",
                    reason=str(e),
                )
            )
