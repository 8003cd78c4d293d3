"""
Get Balance Use Case

Retrieves a wallet balance together with in-flight PENDING totals.
"""
import logging
from typing import Optional
from libs.result import Result, Return, Error
from src.app.repositories.wallet_repository import WalletRepository
from src.app.repositories.wallet_transaction_repository import WalletTransactionRepository
from src.app.services.ledger_store import LedgerStore
from src.app.services.unit_of_work import UnitOfWork
from src.domain.errors import WalletError, WalletNotFound
from src.domain.money import Money
from src.domain.wallet import Wallet
from src.domain.wallet_transaction import TransactionType
from .dtos import BalanceResponseDTO
from .policy import WalletPolicy

logger = logging.getLogger(__name__)


async def build_balance_response(
    wallet: Wallet, transaction_repo: WalletTransactionRepository
) -> BalanceResponseDTO:
    pending = await transaction_repo.get_pending_totals(wallet.id)
    pending_credit = Money(amount_minor=pending[TransactionType.CREDIT], currency=wallet.currency)
    pending_debit = Money(amount_minor=pending[TransactionType.DEBIT], currency=wallet.currency)
    balance = wallet.balance_money()

    return BalanceResponseDTO(
        wallet_id=wallet.id,
        owner_id=wallet.owner_id,
        currency=wallet.currency,
        balance=balance.to_decimal(),
        available_balance=(balance - pending_debit).to_decimal(),
        pending_credit=pending_credit.to_decimal(),
        pending_debit=pending_debit.to_decimal(),
        status=wallet.status,
        last_transaction_at=wallet.last_transaction_at,
    )


class GetBalance:
    """
    Use case: Get wallet balance by wallet ID

    Read-only: reports only committed state.
    """

    def __init__(
        self,
        wallet_repo: WalletRepository,
        transaction_repo: WalletTransactionRepository,
    ):
        self.wallet_repo = wallet_repo
        self.transaction_repo = transaction_repo

    async def execute(self, wallet_id: str) -> Result[BalanceResponseDTO]:
        """
        Get balance for a wallet

        Args:
            wallet_id: Wallet identifier

        Returns:
            Result[BalanceResponseDTO]: Balance details or WALLET_NOT_FOUND
        """
        try:
            wallet = await self.wallet_repo.get_by_id(wallet_id, refresh=True)
            if not wallet:
                raise WalletNotFound(f"Wallet {wallet_id} not found")

            return Return.ok(await build_balance_response(wallet, self.transaction_repo))

        except WalletError as e:
            return Return.err(e.to_error())
        except Exception as e:
            logger.error(f"Failed to get balance for wallet {wallet_id}: {e}")
            return Return.err(
                Error(
                    code="GET_BALANCE_FAILED",
                    message="Failed to retrieve wallet balance",
                    reason=str(e),
                )
            )


class GetOwnerBalance:
    """
    Use case: Get a user's balance in one currency

    Business Rules:
    1. Currency defaults to the configured default currency
    2. The wallet is provisioned on first access
    """

    def __init__(
        self,
        uow: UnitOfWork,
        ledger: LedgerStore,
        transaction_repo: WalletTransactionRepository,
        policy: WalletPolicy,
    ):
        self.uow = uow
        self.ledger = ledger
        self.transaction_repo = transaction_repo
        self.policy = policy

    async def execute(
        self, owner_id: str, currency: Optional[str] = None
    ) -> Result[BalanceResponseDTO]:
        try:
            currency = self.policy.resolve_currency(currency)
            wallet = await self.ledger.provision(owner_id, currency)
            return Return.ok(await build_balance_response(wallet, self.transaction_repo))

        except WalletError as e:
            await self.uow.rollback()
            return Return.err(e.to_error())
        except Exception as e:
            await self.uow.rollback()
            logger.error(f"Failed to get balance for user {owner_id}: {e}")
            return Return.err(
                Error(
                    code="GET_BALANCE_FAILED",
                    message="Failed to retrieve wallet balance",
                    reason=str(e),
                )
            )
