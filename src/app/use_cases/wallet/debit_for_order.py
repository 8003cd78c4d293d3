"""DebitForOrder Use Case

Pays an order from the user's wallet.
"""

import logging
from libs.result import Result, Return, Error
from src.app.services.ledger_store import LedgerStore
from src.app.services.unit_of_work import UnitOfWork
from src.domain.errors import WalletError
from src.domain.wallet_transaction import TransactionType, ReferenceType, InitiatedByActor
from .dtos import LedgerMutationResponseDTO, OrderDebitCommandDTO, TransactionDTO, WalletDTO
from .policy import WalletPolicy

logger = logging.getLogger(__name__)

ORDER_DEBIT_KEY_PREFIX = "ORDER_DEBIT_"


class DebitForOrder:
    """
    Use Case: Debit wallet for an order

    Business Rules:
    1. Idempotency key defaults to ORDER_DEBIT_<order_id>, so paying the
       same order twice returns the first debit
    2. Wallet must be ACTIVE with sufficient balance
    3. Open + apply in one unit; a failure persists nothing
    """

    def __init__(self, uow: UnitOfWork, ledger: LedgerStore, policy: WalletPolicy):
        self.uow = uow
        self.ledger = ledger
        self.policy = policy

    async def execute(self, command: OrderDebitCommandDTO) -> Result[LedgerMutationResponseDTO]:
        try:
            currency = self.policy.resolve_currency(command.currency)
            amount = self.policy.to_money(command.amount, currency)

            wallet = await self.ledger.provision(command.owner_id, currency)

            transaction, wallet, duplicate = await self.ledger.open_and_apply(
                wallet.id,
                amount,
                TransactionType.DEBIT,
                ReferenceType.ORDER,
                reference_id=command.order_id,
                initiated_by_actor=InitiatedByActor.USER,
                transaction_id=command.idempotency_key
                or f"{ORDER_DEBIT_KEY_PREFIX}{command.order_id}",
                description=f"Payment for Order #{command.order_id}",
            )

            if not duplicate:
                logger.info(
                    f"Order {command.order_id} paid from wallet {wallet.id}: {amount}"
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
            logger.error(f"Order debit failed for order {command.order_id}: {e}")
            return Return.err(
                Error(
                    code="ORDER_DEBIT_FAILED",
                    message="Failed to debit wallet for order",
                    reason=str(e),
                )
            )
