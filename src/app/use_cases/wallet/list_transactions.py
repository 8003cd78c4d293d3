"""
List Transactions Use Case

Retrieves wallet transaction history with filters and pagination.
"""
import math
from typing import List, Optional
from libs.result import Result, Return, Error
from src.app.repositories.wallet_repository import WalletRepository
from src.app.repositories.wallet_transaction_repository import WalletTransactionRepository
from src.domain.errors import WalletError, WalletNotFound
from .dtos import ListTransactionsQueryDTO, ListTransactionsResponseDTO, TransactionDTO
from .policy import WalletPolicy


class ListTransactions:
    """
    Use case: View wallet transactions

    Pages are 1-based. Default ordering is created_at DESC.
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
        self, wallet_id: str, query: ListTransactionsQueryDTO
    ) -> Result[ListTransactionsResponseDTO]:
        """
        List transactions of one wallet

        Args:
            wallet_id: Wallet identifier
            query: Filters, sorting and pagination

        Returns:
            Result[ListTransactionsResponseDTO]: Paginated transaction list
        """
        wallet = await self.wallet_repo.get_by_id(wallet_id)
        if not wallet:
            return Return.err(WalletNotFound(f"Wallet {wallet_id} not found").to_error())
        return await self._list([wallet.id], query)

    async def execute_for_owner(
        self,
        owner_id: str,
        query: ListTransactionsQueryDTO,
        currency: Optional[str] = None,
    ) -> Result[ListTransactionsResponseDTO]:
        """
        List transactions across a user's wallets

        An owner without wallets has an empty history.
        """
        try:
            if currency:
                wallet = await self.wallet_repo.get_by_owner(
                    owner_id, self.policy.resolve_currency(currency)
                )
                wallets = [wallet] if wallet else []
            else:
                wallets = await self.wallet_repo.list_by_owner(owner_id)
        except WalletError as e:
            return Return.err(e.to_error())

        return await self._list([w.id for w in wallets], query)

    async def _list(
        self, wallet_ids: List[str], query: ListTransactionsQueryDTO
    ) -> Result[ListTransactionsResponseDTO]:
        try:
            if wallet_ids:
                transactions, total = await self.transaction_repo.list_by_wallet(
                    wallet_ids,
                    transaction_type=query.transaction_type,
                    status=query.status,
                    reference_type=query.reference_type,
                    start_date=query.start_date,
                    end_date=query.end_date,
                    sort_by=query.sort_by,
                    sort_order=query.sort_order,
                    limit=query.limit,
                    offset=(query.page - 1) * query.limit,
                )
            else:
                transactions, total = [], 0
        except Exception as e:
            return Return.err(
                Error(
                    code="LIST_TRANSACTIONS_FAILED",
                    message="Failed to list transactions",
                    reason=str(e),
                )
            )

        return Return.ok(
            ListTransactionsResponseDTO(
                transactions=[TransactionDTO.from_entity(t) for t in transactions],
                total=total,
                page=query.page,
                limit=query.limit,
                total_pages=math.ceil(total / query.limit) if total else 0,
            )
        )
