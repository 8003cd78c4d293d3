"""HandleGatewayCallback Use Case

Settles a pending top-up from a payment gateway callback. Gateways retry
callbacks, so replays must be harmless.
"""

import logging
from decimal import Decimal
from typing import Optional
from libs.result import Result, Return, Error
from src.app.repositories.wallet_transaction_repository import WalletTransactionRepository
from src.app.services.ledger_store import LedgerStore
from src.app.services.unit_of_work import UnitOfWork
from src.domain.errors import (
    GatewayCallbackMismatch,
    InvalidStateTransition,
    WalletError,
    WalletValidationError,
)
from src.domain.money import Money
from src.domain.transaction_state import is_resolved
from src.domain.wallet_transaction import WalletTransaction, GatewayCallbackStatus
from .dtos import CallbackResponseDTO, GatewayCallbackCommandDTO, TransactionDTO

logger = logging.getLogger(__name__)

DEFAULT_FAILURE_REASONS = {
    GatewayCallbackStatus.FAILED: "Payment failed",
    GatewayCallbackStatus.CANCELLED: "Payment cancelled",
}


class HandleGatewayCallback:
    """
    Use Case: Process a payment gateway callback

    Business Rules:
    1. Unknown gateway_transaction_id -> GATEWAY_CALLBACK_MISMATCH
    2. amount/currency, when supplied, must match the pending top-up
    3. Transaction already out of PENDING -> no-op replay (replayed=true)
    4. PENDING -> acknowledged, nothing changes
    5. SUCCESS/COMPLETED -> apply the credit
    6. FAILED/CANCELLED -> fail the transaction, balance untouched

    A concurrent callback that finalizes the transaction first turns this
    one into a replay.
    """

    def __init__(
        self,
        uow: UnitOfWork,
        ledger: LedgerStore,
        transaction_repo: WalletTransactionRepository,
    ):
        self.uow = uow
        self.ledger = ledger
        self.transaction_repo = transaction_repo

    async def execute(self, command: GatewayCallbackCommandDTO) -> Result[CallbackResponseDTO]:
        try:
            # Step 1: Find the top-up
            transaction = await self.transaction_repo.get_by_gateway_transaction_id(
                command.gateway_transaction_id
            )
            if not transaction:
                raise GatewayCallbackMismatch(
                    f"No transaction for gateway transaction {command.gateway_transaction_id}",
                    reason="unknown gateway_transaction_id",
                )

            # Step 2: Cross-check what the gateway says it collected
            self._check_matches(transaction, command.amount, command.currency)

            # Step 3: Replays change nothing
            if is_resolved(transaction.status):
                logger.info(
                    f"Replayed {command.status.value} callback for {transaction.id} "
                    f"({transaction.status.value})"
                )
                return Return.ok(self._response(transaction, replayed=True))

            if command.gateway_response:
                await self.transaction_repo.set_gateway_response(
                    transaction.id, command.gateway_response
                )

            # Step 4: Dispatch on reported status
            balance: Optional[Decimal] = None
            try:
                if command.status.is_success():
                    wallet = await self.ledger.apply(transaction.id)
                    balance = wallet.balance_money().to_decimal()
                elif command.status.is_failure():
                    reason = command.failure_reason or DEFAULT_FAILURE_REASONS[command.status]
                    await self.ledger.fail(transaction.id, reason)
                else:
                    await self.uow.commit()
                    logger.info(f"Gateway reports {transaction.id} still pending")
            except InvalidStateTransition:
                await self.uow.rollback()
                current = await self.transaction_repo.get_by_id(transaction.id, refresh=True)
                if current and is_resolved(current.status):
                    logger.info(f"Callback for {transaction.id} lost the race; treated as replay")
                    return Return.ok(self._response(current, replayed=True))
                raise

            current = await self.transaction_repo.get_by_id(transaction.id, refresh=True)
            return Return.ok(self._response(current, replayed=False, balance=balance))

        except WalletError as e:
            await self.uow.rollback()
            logger.warning(
                f"Gateway callback {command.gateway_transaction_id} rejected: {e.code} {e.message}"
            )
            return Return.err(e.to_error())
        except Exception as e:
            await self.uow.rollback()
            logger.error(f"Gateway callback {command.gateway_transaction_id} failed: {e}")
            return Return.err(
                Error(
                    code="GATEWAY_CALLBACK_FAILED",
                    message="Failed to process gateway callback",
                    reason=str(e),
                )
            )

    def _check_matches(
        self,
        transaction: WalletTransaction,
        amount: Optional[Decimal],
        currency: Optional[str],
    ) -> None:
        if currency is not None and currency != transaction.currency:
            raise GatewayCallbackMismatch(
                f"Callback currency {currency} does not match {transaction.currency}",
                reason=f"transaction_id={transaction.id}",
            )
        if amount is not None:
            try:
                reported = Money.from_decimal(amount, transaction.currency)
            except WalletValidationError:
                reported = None
            if reported is None or reported.amount_minor != transaction.amount:
                raise GatewayCallbackMismatch(
                    f"Callback amount {amount} does not match {transaction.amount_money().to_decimal()}",
                    reason=f"transaction_id={transaction.id}",
                )

    def _response(
        self,
        transaction: WalletTransaction,
        replayed: bool,
        balance: Optional[Decimal] = None,
    ) -> CallbackResponseDTO:
        return CallbackResponseDTO(
            transaction=TransactionDTO.from_entity(transaction),
            replayed=replayed,
            balance=balance,
        )
