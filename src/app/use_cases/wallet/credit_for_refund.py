"""CreditForRefund Use Case

Credits a refunded order amount back into the user's wallet. A refund is a
new CREDIT entry; the original order debit stays COMPLETED.
"""

import logging
from libs.result import Result, Return, Error
from src.app.services.ledger_store import LedgerStore
from src.app.services.unit_of_work import UnitOfWork
from src.domain.errors import WalletError
from src.domain.wallet_transaction import TransactionType, ReferenceType, InitiatedByActor
from .dtos import LedgerMutationResponseDTO, RefundCreditCommandDTO, TransactionDTO, WalletDTO
from .policy import WalletPolicy

logger = logging.getLogger(__name__)

REFUND_KEY_PREFIX = "REFUND_"


class CreditForRefund:
    """
    Use Case: Credit wallet for a refund

    Business Rules:
    1. reference_type=REFUND, actor SYSTEM, reference_id = refund ID
       (order ID when no refund ID is given)
    2. Original order ID kept in metadata
    3. Idempotency key defaults to REFUND_<reference_id>
    4. Wallet must be ACTIVE for the credit to be opened
    """

    def __init__(self, uow: UnitOfWork, ledger: LedgerStore, policy: WalletPolicy):
        self.uow = uow
        self.ledger = ledger
        self.policy = policy

    async def execute(self, command: RefundCreditCommandDTO) -> Result[LedgerMutationResponseDTO]:
        try:
            currency = self.policy.resolve_currency(command.currency)
            amount = self.policy.to_money(command.amount, currency)
            reference_id = command.refund_id or command.order_id

            wallet = await self.ledger.provision(command.owner_id, currency)

            extra = {"original_order_id": command.order_id}
            if command.reason:
                extra["reason"] = command.reason

            transaction, wallet, duplicate = await self.ledger.open_and_apply(
                wallet.id,
                amount,
                TransactionType.CREDIT,
                ReferenceType.REFUND,
                reference_id=reference_id,
                initiated_by_actor=InitiatedByActor.SYSTEM,
                transaction_id=command.idempotency_key or f"{REFUND_KEY_PREFIX}{reference_id}",
                description=f"Refund for Order #{command.order_id}",
                extra=extra,
            )

            if not duplicate:
                logger.info(
                    f"Refund {reference_id} for order {command.order_id} credited to wallet {wallet.id}: {amount}"
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
            logger.error(f"Refund credit failed for order {command.order_id}: {e}")
            return Return.err(
                Error(
                    code="REFUND_CREDIT_FAILED",
                    message="Failed to credit wallet for refund",
                    reason=str(e),
                )
            )
