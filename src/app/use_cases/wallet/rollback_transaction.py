"""RollbackTransaction Use Case

Admin reversal of a COMPLETED transaction through a compensating entry.
"""

import logging
from libs.result import Result, Return, Error
from src.app.services.ledger_store import LedgerStore
from src.app.services.unit_of_work import UnitOfWork
from src.domain.errors import WalletError
from src.domain.wallet_transaction import InitiatedByActor
from .dtos import LedgerMutationResponseDTO, RollbackCommandDTO, TransactionDTO, WalletDTO

logger = logging.getLogger(__name__)


class RollbackTransaction:
    """
    Use Case: Roll back a completed transaction

    Business Rules:
    1. Only COMPLETED transactions can be rolled back
    2. History is never deleted: a compensating transaction of the opposite
       type is applied and the original is marked ROLLED_BACK
    3. A second rollback of the same transaction is INVALID_STATE_TRANSITION
    """

    def __init__(self, uow: UnitOfWork, ledger: LedgerStore):
        self.uow = uow
        self.ledger = ledger

    async def execute(self, command: RollbackCommandDTO) -> Result[LedgerMutationResponseDTO]:
        try:
            actor = InitiatedByActor.ADMIN if command.admin_id else InitiatedByActor.SYSTEM
            compensation, wallet = await self.ledger.rollback(
                command.transaction_id, reason=command.reason, actor=actor
            )

            logger.info(
                f"Transaction {command.transaction_id} rolled back by "
                f"{command.admin_id or 'system'}: {command.reason}"
            )

            return Return.ok(
                LedgerMutationResponseDTO(
                    transaction=TransactionDTO.from_entity(compensation),
                    wallet=WalletDTO.from_entity(wallet),
                )
            )

        except WalletError as e:
            await self.uow.rollback()
            return Return.err(e.to_error())
        except Exception as e:
            await self.uow.rollback()
            logger.error(f"Rollback of transaction {command.transaction_id} failed: {e}")
            return Return.err(
                Error(
                    code="ROLLBACK_TRANSACTION_FAILED",
                    message="Failed to roll back transaction",
                    reason=str(e),
                )
            )
