"""Wallet Policy

Explicit limits and ledger tuning derived from ApplicationConfig once, at
construction time. Use cases read this object, never the config globals.
"""

from decimal import Decimal
from typing import Optional, Tuple
from pydantic import BaseModel, Field
from src.domain.errors import WalletValidationError
from src.domain.money import Money, SUPPORTED_CURRENCIES


class WalletPolicy(BaseModel):
    """Limits enforced by the wallet use cases"""

    default_currency: str = "INR"
    supported_currencies: Tuple[str, ...] = SUPPORTED_CURRENCIES
    topup_min_amount: Decimal = Decimal("0.01")
    topup_max_amount: Decimal = Decimal("100000")
    admin_adjustment_max: Decimal = Decimal("500000")
    daily_topup_limit: Optional[Decimal] = None
    topup_timeout_minutes: int = Field(default=30, ge=1)
    ledger_max_attempts: int = Field(default=5, ge=1)
    ledger_base_delay_seconds: float = Field(default=0.01, ge=0)
    ledger_max_delay_seconds: float = Field(default=0.5, ge=0)

    @classmethod
    def from_config(cls, config) -> "WalletPolicy":
        daily_limit = getattr(config, "DAILY_TOPUP_LIMIT", None)
        return cls(
            default_currency=config.DEFAULT_CURRENCY,
            supported_currencies=tuple(c.upper() for c in config.SUPPORTED_CURRENCIES),
            topup_min_amount=Decimal(str(config.TOPUP_MIN_AMOUNT)),
            topup_max_amount=Decimal(str(config.TOPUP_MAX_AMOUNT)),
            admin_adjustment_max=Decimal(str(config.ADMIN_ADJUSTMENT_MAX)),
            daily_topup_limit=Decimal(str(daily_limit)) if daily_limit is not None else None,
            topup_timeout_minutes=config.TOPUP_TIMEOUT_MINUTES,
            ledger_max_attempts=config.LEDGER_MAX_ATTEMPTS,
            ledger_base_delay_seconds=config.LEDGER_BASE_DELAY_SECONDS,
            ledger_max_delay_seconds=config.LEDGER_MAX_DELAY_SECONDS,
        )

    def resolve_currency(self, currency: Optional[str]) -> str:
        currency = (currency or self.default_currency).upper()
        if currency not in self.supported_currencies:
            raise WalletValidationError(
                f"Unsupported currency: {currency}",
                details=[{
                    "field": "currency",
                    "message": f"Currency must be one of {', '.join(self.supported_currencies)}",
                }],
            )
        return currency

    def to_money(
        self,
        amount: Decimal,
        currency: str,
        minimum: Optional[Decimal] = None,
        maximum: Optional[Decimal] = None,
    ) -> Money:
        """
        Convert a boundary amount into Money, enforcing precision and range

        Raises:
            WalletValidationError: Too many decimals or out of range
        """
        if minimum is not None and amount < minimum:
            raise WalletValidationError(
                f"Amount must be at least {minimum}",
                details=[{"field": "amount", "message": f"Amount must be at least {minimum}"}],
            )
        if maximum is not None and amount > maximum:
            raise WalletValidationError(
                f"Amount cannot exceed {maximum}",
                details=[{"field": "amount", "message": f"Amount cannot exceed {maximum}"}],
            )
        money = Money.from_decimal(amount, currency)
        if money.amount_minor <= 0:
            raise WalletValidationError(
                "Amount must be greater than zero",
                details=[{"field": "amount", "message": "Amount must be greater than zero"}],
            )
        return money
