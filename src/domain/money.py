"""Money Value Object

Amounts are held as integer minor units (paise, cents) so ledger arithmetic
never touches floating point. Decimal conversion happens only at the API
boundary via from_decimal()/to_decimal().
"""

from decimal import Decimal, InvalidOperation
from fractions import Fraction
from typing import Union
from pydantic import BaseModel, ConfigDict, field_validator
from src.domain.errors import CurrencyMismatch, WalletValidationError

# Number of fractional digits per supported ISO 4217 currency
CURRENCY_EXPONENTS = {
    "INR": 2,
    "USD": 2,
    "EUR": 2,
    "GBP": 2,
    "AUD": 2,
    "CAD": 2,
}

SUPPORTED_CURRENCIES = tuple(CURRENCY_EXPONENTS.keys())

Rational = Union[int, Fraction, Decimal]


def currency_exponent(currency: str) -> int:
    try:
        return CURRENCY_EXPONENTS[currency]
    except KeyError:
        raise WalletValidationError(
            f"Unsupported currency: {currency}",
            details=[{"field": "currency", "message": f"Unsupported currency: {currency}"}],
        )


class Money(BaseModel):
    """
    Immutable currency amount in minor units

    Domain Rules:
    - Arithmetic between different currencies raises CurrencyMismatch
    - Amounts may be negative (signed deltas); stored transaction
      amounts are always positive
    """

    model_config = ConfigDict(frozen=True)

    amount_minor: int
    currency: str

    @field_validator("currency")
    @classmethod
    def validate_currency(cls, v: str) -> str:
        v = v.upper()
        currency_exponent(v)
        return v

    @classmethod
    def zero(cls, currency: str) -> "Money":
        return cls(amount_minor=0, currency=currency)

    @classmethod
    def from_decimal(cls, value: Union[Decimal, str, int], currency: str) -> "Money":
        """
        Build Money from a decimal amount

        Raises:
            WalletValidationError: value is not a number or carries more
                fractional digits than the currency allows
        """
        currency = currency.upper()
        exponent = currency_exponent(currency)
        try:
            decimal_value = Decimal(str(value))
        except InvalidOperation:
            raise WalletValidationError(
                f"Invalid amount: {value}",
                details=[{"field": "amount", "message": "Amount must be a number"}],
            )
        if not decimal_value.is_finite():
            raise WalletValidationError(
                f"Invalid amount: {value}",
                details=[{"field": "amount", "message": "Amount must be finite"}],
            )
        scaled = decimal_value.scaleb(exponent)
        if scaled != scaled.to_integral_value():
            raise WalletValidationError(
                f"Amount {value} has more than {exponent} decimal places for {currency}",
                details=[{
                    "field": "amount",
                    "message": f"At most {exponent} decimal places allowed for {currency}",
                }],
            )
        return cls(amount_minor=int(scaled), currency=currency)

    def to_decimal(self) -> Decimal:
        exponent = currency_exponent(self.currency)
        quantum = Decimal(1).scaleb(-exponent)
        return Decimal(self.amount_minor).scaleb(-exponent).quantize(quantum)

    def _check_currency(self, other: "Money") -> None:
        if not isinstance(other, Money):
            raise TypeError(f"Cannot combine Money with {type(other).__name__}")
        if other.currency != self.currency:
            raise CurrencyMismatch(
                f"Currency mismatch: {self.currency} vs {other.currency}"
            )

    def __add__(self, other: "Money") -> "Money":
        self._check_currency(other)
        return Money(amount_minor=self.amount_minor + other.amount_minor, currency=self.currency)

    def __sub__(self, other: "Money") -> "Money":
        self._check_currency(other)
        return Money(amount_minor=self.amount_minor - other.amount_minor, currency=self.currency)

    def __neg__(self) -> "Money":
        return Money(amount_minor=-self.amount_minor, currency=self.currency)

    def __lt__(self, other: "Money") -> bool:
        self._check_currency(other)
        return self.amount_minor < other.amount_minor

    def __le__(self, other: "Money") -> bool:
        self._check_currency(other)
        return self.amount_minor <= other.amount_minor

    def __gt__(self, other: "Money") -> bool:
        self._check_currency(other)
        return self.amount_minor > other.amount_minor

    def __ge__(self, other: "Money") -> bool:
        self._check_currency(other)
        return self.amount_minor >= other.amount_minor

    def multiply(self, factor: Rational) -> "Money":
        """Multiply by a rational factor, rounding half to even"""
        if isinstance(factor, Decimal):
            factor = Fraction(factor)
        product = Fraction(self.amount_minor) * Fraction(factor)
        quotient, remainder = divmod(product.numerator, product.denominator)
        twice = 2 * remainder
        if twice > product.denominator or (twice == product.denominator and quotient % 2 == 1):
            quotient += 1
        return Money(amount_minor=quotient, currency=self.currency)

    def is_negative(self) -> bool:
        return self.amount_minor < 0

    def is_zero(self) -> bool:
        return self.amount_minor == 0

    def __str__(self) -> str:
        return f"{self.to_decimal()} {self.currency}"
