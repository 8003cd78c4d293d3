"""Wallet Service

In-process boundary used by the order, refund, admin and gateway
collaborators and by the HTTP routes. Every method validates its inputs
into a command DTO and delegates to one use case.
"""

from decimal import Decimal
from typing import Any, Dict, List, Optional, Union
from pydantic import ValidationError
from libs.result import Result, Return
from src.app.repositories.wallet_repository import WalletRepository
from src.app.repositories.wallet_transaction_repository import WalletTransactionRepository
from src.app.services.ledger_store import LedgerStore
from src.app.services.payment_gateway import PaymentGateway
from src.app.services.unit_of_work import UnitOfWork
from src.app.use_cases.wallet import (
    AdjustBalance,
    CreditForRefund,
    DebitForOrder,
    GetBalance,
    GetOwnerBalance,
    GetWalletStats,
    GetWalletSummary,
    HandleGatewayCallback,
    InitiateTopup,
    ListTransactions,
    ListWallets,
    ReconcileWallets,
    RollbackTransaction,
    SetWalletStatus,
    SweepPendingTopups,
    WalletPolicy,
    AdjustBalanceCommandDTO,
    GatewayCallbackCommandDTO,
    ListTransactionsQueryDTO,
    ListWalletsQueryDTO,
    OrderDebitCommandDTO,
    OwnerQueryDTO,
    RefundCreditCommandDTO,
    RollbackCommandDTO,
    SetWalletStatusCommandDTO,
    TopupCommandDTO,
    BalanceResponseDTO,
    CallbackResponseDTO,
    LedgerMutationResponseDTO,
    ListTransactionsResponseDTO,
    ListWalletsResponseDTO,
    ReconciliationResultDTO,
    SweepResultDTO,
    TopupResponseDTO,
    WalletDTO,
    WalletStatsDTO,
    WalletSummaryDTO,
)
from src.domain.errors import InvalidSignature, WalletValidationError

Amount = Union[Decimal, str, int]


def _validate(dto_class, **fields):
    try:
        return dto_class(**fields), None
    except ValidationError as e:
        return None, Return.err(WalletValidationError.from_pydantic(e).to_error())


class WalletService:
    """
    Wallet Service API

    Constructed with explicit limits (a WalletPolicy or an
    ApplicationConfig-like object) so the ledger path reads no globals.
    """

    def __init__(
        self,
        config: Union[WalletPolicy, Any],
        uow: UnitOfWork,
        wallet_repo: WalletRepository,
        transaction_repo: WalletTransactionRepository,
        gateway: PaymentGateway,
    ):
        self.policy = config if isinstance(config, WalletPolicy) else WalletPolicy.from_config(config)
        self.uow = uow
        self.wallet_repo = wallet_repo
        self.transaction_repo = transaction_repo
        self.gateway = gateway
        self.ledger = LedgerStore(
            uow,
            wallet_repo,
            transaction_repo,
            max_attempts=self.policy.ledger_max_attempts,
            base_delay=self.policy.ledger_base_delay_seconds,
            max_delay=self.policy.ledger_max_delay_seconds,
        )

    async def get_balance(self, wallet_id: str) -> Result[BalanceResponseDTO]:
        return await GetBalance(self.wallet_repo, self.transaction_repo).execute(wallet_id)

    async def get_owner_balance(
        self, owner_id: str, currency: Optional[str] = None
    ) -> Result[BalanceResponseDTO]:
        query, error = _validate(OwnerQueryDTO, owner_id=owner_id, currency=currency)
        if error:
            return error
        use_case = GetOwnerBalance(self.uow, self.ledger, self.transaction_repo, self.policy)
        return await use_case.execute(query.owner_id, query.currency)

    async def initiate_topup(
        self,
        owner_id: str,
        amount: Amount,
        payment_method: str,
        currency: Optional[str] = None,
    ) -> Result[TopupResponseDTO]:
        command, error = _validate(
            TopupCommandDTO,
            owner_id=owner_id,
            amount=amount,
            payment_method=payment_method,
            currency=currency,
        )
        if error:
            return error
        use_case = InitiateTopup(
            self.uow, self.ledger, self.transaction_repo, self.gateway, self.policy
        )
        return await use_case.execute(command)

    def verify_callback_signature(self, payload: bytes, signature: Optional[str]) -> None:
        """
        Raises:
            InvalidSignature: A webhook secret is configured and the
                signature is missing or wrong
        """
        if not self.gateway.verify_signature(payload, signature):
            raise InvalidSignature("Invalid webhook signature")

    async def handle_gateway_callback(
        self,
        gateway_transaction_id: str,
        status: str,
        amount: Optional[Amount] = None,
        currency: Optional[str] = None,
        failure_reason: Optional[str] = None,
        gateway_response: Optional[Dict[str, Any]] = None,
    ) -> Result[CallbackResponseDTO]:
        command, error = _validate(
            GatewayCallbackCommandDTO,
            gateway_transaction_id=gateway_transaction_id,
            status=status,
            amount=amount,
            currency=currency,
            failure_reason=failure_reason,
            gateway_response=gateway_response,
        )
        if error:
            return error
        use_case = HandleGatewayCallback(self.uow, self.ledger, self.transaction_repo)
        return await use_case.execute(command)

    async def adjust_balance(
        self,
        owner_id: str,
        amount: Amount,
        transaction_type: str,
        description: str,
        admin_id: str,
        currency: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> Result[LedgerMutationResponseDTO]:
        command, error = _validate(
            AdjustBalanceCommandDTO,
            owner_id=owner_id,
            amount=amount,
            transaction_type=transaction_type,
            description=description,
            admin_id=admin_id,
            currency=currency,
            idempotency_key=idempotency_key,
        )
        if error:
            return error
        return await AdjustBalance(self.uow, self.ledger, self.policy).execute(command)

    async def set_status(
        self, owner_id: str, status: str, currency: Optional[str] = None
    ) -> Result[List[WalletDTO]]:
        command, error = _validate(
            SetWalletStatusCommandDTO, owner_id=owner_id, status=status, currency=currency
        )
        if error:
            return error
        return await SetWalletStatus(self.uow, self.wallet_repo, self.policy).execute(command)

    async def debit_for_order(
        self,
        owner_id: str,
        amount: Amount,
        order_id: str,
        currency: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> Result[LedgerMutationResponseDTO]:
        command, error = _validate(
            OrderDebitCommandDTO,
            owner_id=owner_id,
            amount=amount,
            order_id=order_id,
            currency=currency,
            idempotency_key=idempotency_key,
        )
        if error:
            return error
        return await DebitForOrder(self.uow, self.ledger, self.policy).execute(command)

    async def credit_for_refund(
        self,
        owner_id: str,
        amount: Amount,
        order_id: str,
        refund_id: Optional[str] = None,
        reason: Optional[str] = None,
        currency: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> Result[LedgerMutationResponseDTO]:
        command, error = _validate(
            RefundCreditCommandDTO,
            owner_id=owner_id,
            amount=amount,
            order_id=order_id,
            refund_id=refund_id,
            reason=reason,
            currency=currency,
            idempotency_key=idempotency_key,
        )
        if error:
            return error
        return await CreditForRefund(self.uow, self.ledger, self.policy).execute(command)

    async def rollback_transaction(
        self,
        transaction_id: str,
        reason: Optional[str] = None,
        admin_id: Optional[str] = None,
    ) -> Result[LedgerMutationResponseDTO]:
        command, error = _validate(
            RollbackCommandDTO, transaction_id=transaction_id, reason=reason, admin_id=admin_id
        )
        if error:
            return error
        return await RollbackTransaction(self.uow, self.ledger).execute(command)

    async def list_transactions(
        self, wallet_id: str, **filters: Any
    ) -> Result[ListTransactionsResponseDTO]:
        query, error = _validate(ListTransactionsQueryDTO, **filters)
        if error:
            return error
        use_case = ListTransactions(self.wallet_repo, self.transaction_repo, self.policy)
        return await use_case.execute(wallet_id, query)

    async def list_owner_transactions(
        self, owner_id: str, currency: Optional[str] = None, **filters: Any
    ) -> Result[ListTransactionsResponseDTO]:
        owner, error = _validate(OwnerQueryDTO, owner_id=owner_id, currency=currency)
        if error:
            return error
        query, error = _validate(ListTransactionsQueryDTO, **filters)
        if error:
            return error
        use_case = ListTransactions(self.wallet_repo, self.transaction_repo, self.policy)
        return await use_case.execute_for_owner(owner.owner_id, query, currency=owner.currency)

    async def list_wallets(self, **filters: Any) -> Result[ListWalletsResponseDTO]:
        query, error = _validate(ListWalletsQueryDTO, **filters)
        if error:
            return error
        return await ListWallets(self.wallet_repo, self.policy).execute(query)

    async def get_summary(
        self, owner_id: str, days: int = 30, currency: Optional[str] = None
    ) -> Result[WalletSummaryDTO]:
        owner, error = _validate(OwnerQueryDTO, owner_id=owner_id, currency=currency)
        if error:
            return error
        if days < 1 or days > 365:
            return Return.err(
                WalletValidationError(
                    "days must be between 1 and 365",
                    details=[{"field": "days", "message": "days must be between 1 and 365"}],
                ).to_error()
            )
        use_case = GetWalletSummary(self.wallet_repo, self.transaction_repo, self.policy)
        return await use_case.execute(owner.owner_id, days=days, currency=owner.currency)

    async def get_stats(self) -> Result[WalletStatsDTO]:
        return await GetWalletStats(self.wallet_repo).execute()

    async def sweep_pending_topups(self) -> Result[SweepResultDTO]:
        use_case = SweepPendingTopups(
            self.uow, self.ledger, self.transaction_repo, self.policy
        )
        return await use_case.execute()

    async def reconcile(self) -> Result[ReconciliationResultDTO]:
        return await ReconcileWallets(self.wallet_repo, self.transaction_repo).execute()
