"""
List Wallets Use Case

Admin listing of wallets with filters and pagination.
"""
import math
from libs.result import Result, Return, Error
from src.app.repositories.wallet_repository import WalletRepository
from src.domain.errors import WalletError
from src.domain.money import Money
from .dtos import ListWalletsQueryDTO, ListWalletsResponseDTO, WalletDTO
from .policy import WalletPolicy


class ListWallets:
    """
    Use case: Admin wallet listing

    Balance bounds are given in major units of the filtered currency (the
    default currency when no currency filter is set).
    """

    def __init__(self, wallet_repo: WalletRepository, policy: WalletPolicy):
        self.wallet_repo = wallet_repo
        self.policy = policy

    async def execute(self, query: ListWalletsQueryDTO) -> Result[ListWalletsResponseDTO]:
        try:
            currency = self.policy.resolve_currency(query.currency)
            min_balance = (
                Money.from_decimal(query.min_balance, currency).amount_minor
                if query.min_balance is not None else None
            )
            max_balance = (
                Money.from_decimal(query.max_balance, currency).amount_minor
                if query.max_balance is not None else None
            )

            wallets, total = await self.wallet_repo.list_wallets(
                status=query.status,
                currency=query.currency and currency,
                owner_id=query.owner_id,
                min_balance=min_balance,
                max_balance=max_balance,
                start_date=query.start_date,
                end_date=query.end_date,
                search=query.search,
                limit=query.limit,
                offset=(query.page - 1) * query.limit,
            )

            return Return.ok(
                ListWalletsResponseDTO(
                    wallets=[WalletDTO.from_entity(w) for w in wallets],
                    total=total,
                    page=query.page,
                    limit=query.limit,
                    total_pages=math.ceil(total / query.limit) if total else 0,
                )
            )

        except WalletError as e:
            return Return.err(e.to_error())
        except Exception as e:
            return Return.err(
                Error(
                    code="LIST_WALLETS_FAILED",
                    message="Failed to list wallets",
                    reason=str(e),
                )
            )
