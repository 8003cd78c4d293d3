"""Ledger Store

Durable wallet balances plus the append-only transaction log. Every balance
change is a compare-and-swap on Wallet.version, so concurrent writers on the
same wallet serialize without row locks and writers on different wallets
never contend.
"""

import asyncio
import logging
import random
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple
from sqlalchemy.exc import IntegrityError
from src.app.repositories.wallet_repository import WalletRepository
from src.app.repositories.wallet_transaction_repository import WalletTransactionRepository
from src.app.services.unit_of_work import UnitOfWork
from src.domain.base import utcnow
from src.domain.errors import (
    ConcurrencyConflict,
    CurrencyMismatch,
    DuplicateTransaction,
    InsufficientFunds,
    InvalidStateTransition,
    TransactionNotFound,
    WalletBlocked,
    WalletNotFound,
    WalletValidationError,
)
from src.domain.money import Money
from src.domain.transaction_state import TransactionStatus, ensure_transition
from src.domain.wallet import Wallet
from src.domain.wallet_transaction import (
    WalletTransaction,
    TransactionType,
    ReferenceType,
    InitiatedByActor,
    PaymentMethod,
)

logger = logging.getLogger(__name__)

ROLLBACK_ID_PREFIX = "ROLLBACK_"


def calculate_backoff(
    attempt: int,
    base_delay: float = 0.01,
    max_delay: float = 0.5,
    jitter: bool = True,
) -> float:
    """Calculate exponential backoff delay with optional jitter.

    Args:
        attempt: The current attempt number (0-indexed)
        base_delay: Base delay in seconds
        max_delay: Maximum delay in seconds
        jitter: Whether to add random jitter

    Returns:
        Delay in seconds
    """
    delay = min(base_delay * (2**attempt), max_delay)
    if jitter:
        delay = delay * (0.5 + random.random())
    return delay


class LedgerStore:
    """
    Atomic wallet mutation primitive

    Operations:
    - provision: get-or-create the wallet of an owner in a currency
    - open: record a PENDING transaction (balance untouched)
    - apply: move a PENDING transaction's delta into the balance and mark it
      COMPLETED in one commit
    - fail: PENDING -> FAILED without touching the balance
    - rollback: reverse a COMPLETED transaction through a compensating entry

    open() only flushes. Callers either commit themselves or call apply(),
    which commits on success. On any raised error the caller rolls back the
    unit of work.
    """

    def __init__(
        self,
        uow: UnitOfWork,
        wallet_repo: WalletRepository,
        transaction_repo: WalletTransactionRepository,
        max_attempts: int = 5,
        base_delay: float = 0.01,
        max_delay: float = 0.5,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.uow = uow
        self.wallet_repo = wallet_repo
        self.transaction_repo = transaction_repo
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.max_delay = max_delay
        self._sleep = sleep

    async def provision(self, owner_id: str, currency: str) -> Wallet:
        """
        Return the owner's wallet in a currency, creating it if needed

        A concurrent creator losing the unique (owner_id, currency) race
        re-reads the winner's row.
        """
        wallet = await self.wallet_repo.get_by_owner(owner_id, currency)
        if wallet:
            return wallet

        try:
            wallet = await self.wallet_repo.create(Wallet(owner_id=owner_id, currency=currency))
            await self.uow.commit()
            logger.info(f"Provisioned {currency} wallet {wallet.id} for user {owner_id}")
            return wallet
        except IntegrityError:
            await self.uow.rollback()
            wallet = await self.wallet_repo.get_by_owner(owner_id, currency)
            if wallet is None:
                raise
            return wallet

    async def open(
        self,
        wallet_id: str,
        amount: Money,
        transaction_type: TransactionType,
        reference_type: ReferenceType,
        reference_id: Optional[str] = None,
        initiated_by_actor: InitiatedByActor = InitiatedByActor.USER,
        transaction_id: Optional[str] = None,
        gateway_transaction_id: Optional[str] = None,
        payment_method: Optional[PaymentMethod] = None,
        description: Optional[str] = None,
        adjusted_by_admin_id: Optional[str] = None,
        compensates_transaction_id: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> Tuple[WalletTransaction, bool]:
        """
        Record a PENDING transaction

        Args:
            wallet_id: Target wallet
            amount: Positive amount in the wallet's currency
            transaction_type: CREDIT or DEBIT
            reference_type: Origin of the transaction
            transaction_id: Idempotency key (UUID generated when omitted)
            gateway_transaction_id: Unique gateway reference

        Returns:
            Tuple of (transaction, duplicate). duplicate is True when a
            transaction with the same id or gateway id already existed; the
            existing record is returned unchanged.

        Raises:
            WalletNotFound: Unknown wallet
            WalletBlocked: Wallet status is not ACTIVE
            CurrencyMismatch: Amount currency differs from the wallet's
            WalletValidationError: Amount is not positive
            DuplicateTransaction: Key already used for a different wallet,
                amount or direction
        """
        existing = await self._find_existing(transaction_id, gateway_transaction_id)
        if existing:
            self._ensure_same_intent(existing, wallet_id, amount, transaction_type)
            logger.info(f"Duplicate transaction {existing.id} ({existing.status.value}) returned")
            return existing, True

        wallet = await self.wallet_repo.get_by_id(wallet_id)
        if not wallet:
            raise WalletNotFound(f"Wallet {wallet_id} not found")
        if not wallet.can_transact():
            raise WalletBlocked(
                f"Wallet {wallet_id} is not active",
                reason=f"status={wallet.status.value}",
            )
        if amount.currency != wallet.currency:
            raise CurrencyMismatch(
                f"Transaction currency {amount.currency} does not match wallet currency {wallet.currency}"
            )
        if amount.amount_minor <= 0:
            raise WalletValidationError(
                "Amount must be greater than zero",
                details=[{"field": "amount", "message": "Amount must be greater than zero"}],
            )

        fields = dict(
            wallet_id=wallet.id,
            owner_id=wallet.owner_id,
            transaction_type=transaction_type,
            amount=amount.amount_minor,
            currency=amount.currency,
            status=TransactionStatus.PENDING,
            reference_type=reference_type,
            reference_id=reference_id,
            initiated_by_actor=initiated_by_actor,
            gateway_transaction_id=gateway_transaction_id,
            payment_method=payment_method,
            description=description,
            adjusted_by_admin_id=adjusted_by_admin_id,
            compensates_transaction_id=compensates_transaction_id,
            extra=extra,
        )
        if transaction_id:
            fields["id"] = transaction_id

        try:
            transaction = await self.transaction_repo.create(WalletTransaction(**fields))
        except IntegrityError:
            # Lost an insert race on id or gateway id
            await self.uow.rollback()
            existing = await self._find_existing(transaction_id, gateway_transaction_id)
            if existing is None:
                raise
            self._ensure_same_intent(existing, wallet_id, amount, transaction_type)
            return existing, True

        logger.debug(
            f"Opened {transaction_type.value} {transaction.id} of {amount} on wallet {wallet.id}"
        )
        return transaction, False

    async def apply(self, transaction_id: str) -> Wallet:
        """
        Apply a PENDING transaction to its wallet balance and commit

        Re-reads wallet and transaction on every attempt, writes the new
        balance conditioned on the version it read, then marks the
        transaction COMPLETED. Version conflicts are retried with
        exponential backoff and jitter.

        Returns:
            Wallet as committed

        Raises:
            TransactionNotFound: Unknown transaction
            InvalidStateTransition: Transaction is not PENDING
            WalletBlocked: DEBIT on a wallet that is not ACTIVE
            InsufficientFunds: DEBIT would take the balance below zero
            ConcurrencyConflict: Version conflicts on every attempt
        """
        return await self._apply(transaction_id)

    async def open_and_apply(
        self,
        wallet_id: str,
        amount: Money,
        transaction_type: TransactionType,
        reference_type: ReferenceType,
        **fields: Any,
    ) -> Tuple[WalletTransaction, Wallet, bool]:
        """
        Open and apply in one unit of work

        Nothing is persisted if apply() raises and the caller rolls back.
        A replayed idempotency key that already left PENDING returns the
        stored transaction without touching the balance.

        Returns:
            Tuple of (transaction, wallet, duplicate)
        """
        transaction, duplicate = await self.open(
            wallet_id, amount, transaction_type, reference_type, **fields
        )
        if duplicate and TransactionStatus(transaction.status) != TransactionStatus.PENDING:
            wallet = await self.wallet_repo.get_by_id(transaction.wallet_id, refresh=True)
            return transaction, wallet, True

        wallet = await self._apply(transaction.id)
        transaction = await self.transaction_repo.get_by_id(transaction.id, refresh=True)
        return transaction, wallet, duplicate

    async def fail(self, transaction_id: str, reason: str) -> WalletTransaction:
        """
        PENDING -> FAILED and commit; the balance is never touched

        Raises:
            TransactionNotFound: Unknown transaction
            InvalidStateTransition: Transaction is not PENDING
        """
        transaction = await self._get_transaction(transaction_id)
        ensure_transition(transaction.status, TransactionStatus.FAILED, transaction.id)

        if not await self.transaction_repo.mark_failed(transaction.id, reason, utcnow()):
            raise InvalidStateTransition(
                f"Transaction {transaction.id} was finalized concurrently",
                reason="status changed",
            )

        await self.uow.commit()
        logger.info(f"Transaction {transaction.id} failed: {reason}")
        return await self.transaction_repo.get_by_id(transaction.id, refresh=True)

    async def rollback(
        self,
        transaction_id: str,
        reason: Optional[str] = None,
        actor: InitiatedByActor = InitiatedByActor.SYSTEM,
    ) -> Tuple[WalletTransaction, Wallet]:
        """
        Reverse a COMPLETED transaction

        Opens a compensating entry of the inverted type and the same
        amount with id ROLLBACK_<original id>, applies it through the same
        compare-and-swap path and marks the original ROLLED_BACK in the
        same commit.

        Returns:
            Tuple of (compensating transaction, wallet as committed)

        Raises:
            TransactionNotFound: Unknown transaction
            InvalidStateTransition: Original is not COMPLETED (including a
                second rollback of the same original)
            InsufficientFunds: Reversing a credit that was already spent
        """
        original = await self._get_transaction(transaction_id)
        ensure_transition(original.status, TransactionStatus.ROLLED_BACK, original.id)

        compensation, _ = await self.open(
            wallet_id=original.wallet_id,
            amount=original.amount_money(),
            transaction_type=TransactionType(original.transaction_type).inverted(),
            reference_type=original.reference_type,
            reference_id=original.id,
            initiated_by_actor=actor,
            transaction_id=f"{ROLLBACK_ID_PREFIX}{original.id}",
            description=f"Rollback of transaction {original.id}",
            compensates_transaction_id=original.id,
            extra={"reason": reason} if reason else None,
        )

        async def mark_original_rolled_back(_: WalletTransaction) -> None:
            if not await self.transaction_repo.mark_rolled_back(original.id, reason):
                raise InvalidStateTransition(
                    f"Transaction {original.id} was rolled back concurrently",
                    reason="status changed",
                )

        wallet = await self._apply(compensation.id, on_applied=mark_original_rolled_back)
        logger.info(
            f"Rolled back transaction {original.id} via {compensation.id}; "
            f"wallet {wallet.id} balance {wallet.balance_money()}"
        )
        compensation = await self.transaction_repo.get_by_id(compensation.id, refresh=True)
        return compensation, wallet

    async def _apply(
        self,
        transaction_id: str,
        on_applied: Optional[Callable[[WalletTransaction], Awaitable[None]]] = None,
    ) -> Wallet:
        for attempt in range(self.max_attempts):
            transaction = await self._get_transaction(transaction_id)
            ensure_transition(transaction.status, TransactionStatus.COMPLETED, transaction.id)

            wallet = await self.wallet_repo.get_by_id(transaction.wallet_id, refresh=True)
            if not wallet:
                raise WalletNotFound(f"Wallet {transaction.wallet_id} not found")

            is_debit = TransactionType(transaction.transaction_type) == TransactionType.DEBIT
            if is_debit and not wallet.can_transact():
                raise WalletBlocked(
                    f"Wallet {wallet.id} is not active",
                    reason=f"status={wallet.status.value}",
                )

            delta = Money(amount_minor=transaction.signed_amount(), currency=transaction.currency)
            new_balance = wallet.balance_money() + delta

            if is_debit and new_balance.is_negative() and not wallet.allow_negative_balance:
                raise InsufficientFunds(
                    f"Insufficient balance. Required: {transaction.amount_money()}, "
                    f"Available: {wallet.balance_money()}",
                    reason=f"balance={wallet.balance}, required={transaction.amount}",
                )

            now = utcnow()
            swapped = await self.wallet_repo.compare_and_set_balance(
                wallet.id, wallet.version, new_balance.amount_minor, now
            )
            if not swapped:
                if attempt + 1 < self.max_attempts:
                    delay = calculate_backoff(attempt, self.base_delay, self.max_delay)
                    logger.debug(
                        f"Version conflict on wallet {wallet.id} applying {transaction.id} "
                        f"(attempt {attempt + 1}/{self.max_attempts}), retrying in {delay:.3f}s"
                    )
                    await self._sleep(delay)
                continue

            if not await self.transaction_repo.mark_completed(
                transaction.id, new_balance.amount_minor, now
            ):
                await self.uow.rollback()
                raise InvalidStateTransition(
                    f"Transaction {transaction.id} was finalized concurrently",
                    reason="status changed",
                )

            if on_applied:
                try:
                    await on_applied(transaction)
                except Exception:
                    await self.uow.rollback()
                    raise

            await self.uow.commit()
            logger.info(
                f"Applied {transaction.transaction_type.value} {transaction.id} of "
                f"{transaction.amount_money()} to wallet {wallet.id}; balance {new_balance}"
            )
            return await self.wallet_repo.get_by_id(wallet.id, refresh=True)

        logger.warning(
            f"Giving up on transaction {transaction_id} after {self.max_attempts} version conflicts"
        )
        raise ConcurrencyConflict(
            f"Could not apply transaction {transaction_id} after {self.max_attempts} attempts",
            reason="wallet version conflict",
        )

    @staticmethod
    def _ensure_same_intent(
        existing: WalletTransaction,
        wallet_id: str,
        amount: Money,
        transaction_type: TransactionType,
    ) -> None:
        if (
            existing.wallet_id != wallet_id
            or existing.amount != amount.amount_minor
            or existing.currency != amount.currency
            or TransactionType(existing.transaction_type) != TransactionType(transaction_type)
        ):
            raise DuplicateTransaction(
                f"Idempotency key {existing.id} was already used for a different transaction",
                reason=f"existing={existing.transaction_type.value} {existing.amount_money()} on wallet {existing.wallet_id}",
            )

    async def _get_transaction(self, transaction_id: str) -> WalletTransaction:
        transaction = await self.transaction_repo.get_by_id(transaction_id, refresh=True)
        if not transaction:
            raise TransactionNotFound(f"Transaction {transaction_id} not found")
        return transaction

    async def _find_existing(
        self, transaction_id: Optional[str], gateway_transaction_id: Optional[str]
    ) -> Optional[WalletTransaction]:
        if transaction_id:
            existing = await self.transaction_repo.get_by_id(transaction_id)
            if existing:
                return existing
        if gateway_transaction_id:
            return await self.transaction_repo.get_by_gateway_transaction_id(gateway_transaction_id)
        return None
