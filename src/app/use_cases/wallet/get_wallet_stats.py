"""
Get Wallet Stats Use Case

Admin dashboard aggregates: wallet counts by status and balances by
currency.
"""
from fractions import Fraction
from libs.result import Result, Return, Error
from src.app.repositories.wallet_repository import WalletRepository
from src.domain.money import Money
from .dtos import CurrencyStatsDTO, WalletStatsDTO


class GetWalletStats:
    def __init__(self, wallet_repo: WalletRepository):
        self.wallet_repo = wallet_repo

    async def execute(self) -> Result[WalletStatsDTO]:
        try:
            stats = await self.wallet_repo.get_stats()

            by_currency = {}
            for currency, values in stats["by_currency"].items():
                total = Money(amount_minor=values["total_balance"], currency=currency)
                count = values["wallets"]
                average = total.multiply(Fraction(1, count)) if count else Money.zero(currency)
                by_currency[currency] = CurrencyStatsDTO(
                    wallets=count,
                    total_balance=total.to_decimal(),
                    average_balance=average.to_decimal(),
                )

            return Return.ok(
                WalletStatsDTO(
                    total_wallets=stats["total_wallets"],
                    by_status=stats["by_status"],
                    by_currency=by_currency,
                )
            )

        except Exception as e:
            return Return.err(
                Error(
                    code="GET_WALLET_STATS_FAILED",
                    message="Failed to compute wallet statistics",
                    reason=str(e),
                )
            )
