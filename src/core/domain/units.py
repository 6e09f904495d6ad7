"""
Units — денежные величины в base units

Единственный допустимый способ представления количеств в ядре:
- CurrencyAmount: (Token, целое количество в base units)
- Percent: точная рациональная доля (collateralization, cdr)
- Price: точная цена одного base unit base-токена в base units quote-токена

ЗАПРЕЩЕНО смешивать amounts разных токенов без явной конверсии через Price.
Отображаемые (human-scaled) значения нужны только для вывода и вычисляются
через Decimal, никогда не участвуя в расчётах.
"""

from decimal import Decimal
from fractions import Fraction
from typing import Final

from pydantic import BaseModel, Field

from src.core.domain.token import Token
from src.core.errors import InvalidInput
from src.core.math.integer_math import MAX_UINT256, floor_div, pow10

# =============================================================================
# КОНСТАНТЫ
# =============================================================================

# Множитель процентов (Percent хранит долю, отображает value * 100)
PERCENT_SCALE: Final[int] = 100


# =============================================================================
# CURRENCY AMOUNT
# =============================================================================


class CurrencyAmount(BaseModel):
    """
    Количество токена в base units.

    Immutable модель (frozen=True). Арифметика и сравнения разрешены только
    между amounts одного и того же токена.
    """

    currency: Token = Field(..., description="Токен, в котором выражено количество")
    quotient: int = Field(..., ge=0, le=MAX_UINT256, description="Количество в base units")

    model_config = {"frozen": True}

    @classmethod
    def from_raw_amount(cls, currency: Token, raw_amount: int | str) -> "CurrencyAmount":
        """Создание amount из base-unit значения (int или десятичная строка)."""
        return cls(currency=currency, quotient=int(raw_amount))

    @classmethod
    def zero(cls, currency: Token) -> "CurrencyAmount":
        return cls(currency=currency, quotient=0)

    def _require_same_currency(self, other: "CurrencyAmount") -> None:
        if not self.currency.equals(other.currency):
            raise InvalidInput(
                f"Currency mismatch: {self.currency.address} vs {other.currency.address}"
            )

    def __add__(self, other: "CurrencyAmount") -> "CurrencyAmount":
        self._require_same_currency(other)
        return CurrencyAmount(currency=self.currency, quotient=self.quotient + other.quotient)

    def __sub__(self, other: "CurrencyAmount") -> "CurrencyAmount":
        self._require_same_currency(other)
        if other.quotient > self.quotient:
            raise InvalidInput(
                f"Negative amount: {self.quotient} - {other.quotient} for {self.currency}"
            )
        return CurrencyAmount(currency=self.currency, quotient=self.quotient - other.quotient)

    def __lt__(self, other: "CurrencyAmount") -> bool:
        self._require_same_currency(other)
        return self.quotient < other.quotient

    def __le__(self, other: "CurrencyAmount") -> bool:
        self._require_same_currency(other)
        return self.quotient <= other.quotient

    def __gt__(self, other: "CurrencyAmount") -> bool:
        self._require_same_currency(other)
        return self.quotient > other.quotient

    def __ge__(self, other: "CurrencyAmount") -> bool:
        self._require_same_currency(other)
        return self.quotient >= other.quotient

    def multiply(self, factor: int) -> "CurrencyAmount":
        return CurrencyAmount(currency=self.currency, quotient=self.quotient * factor)

    def divide(self, divisor: int) -> "CurrencyAmount":
        """Floor деление количества."""
        return CurrencyAmount(currency=self.currency, quotient=floor_div(self.quotient, divisor))

    def to_exact(self) -> Decimal:
        """
        Отображаемое значение (quotient / 10^decimals).

        Только для вывода: в расчётах не используется.
        """
        return Decimal(self.quotient) / Decimal(pow10(self.currency.decimals))

    def __str__(self) -> str:
        return f"{self.to_exact()} {self.currency}"


# =============================================================================
# PERCENT
# =============================================================================


class Percent(BaseModel):
    """
    Точная доля numerator / denominator.

    Отображение (to_fixed) показывает значение в процентах, т.е. * 100.
    """

    numerator: int = Field(..., ge=0)
    denominator: int = Field(..., gt=0)

    model_config = {"frozen": True}

    @classmethod
    def of(cls, numerator: int, denominator: int) -> "Percent":
        return cls(numerator=numerator, denominator=denominator)

    def to_fraction(self) -> Fraction:
        return Fraction(self.numerator, self.denominator)

    def to_fixed(self, decimal_places: int = 2) -> str:
        """
        Значение в процентах с округлением half-up.

        Examples:
            >>> Percent.of(3_000_000, 1_000_000).to_fixed(0)
            '300'
            >>> Percent.of(1, 3).to_fixed(2)
            '33.33'
        """
        scaled, remainder = divmod(
            self.numerator * PERCENT_SCALE * pow10(decimal_places), self.denominator
        )
        if remainder * 2 >= self.denominator:
            scaled += 1
        if decimal_places == 0:
            return str(scaled)
        integer_part, fractional_part = divmod(scaled, pow10(decimal_places))
        return f"{integer_part}.{fractional_part:0{decimal_places}d}"

    def __str__(self) -> str:
        return f"{self.to_fixed(2)}%"


# =============================================================================
# PRICE
# =============================================================================


class Price(BaseModel):
    """
    Цена base-токена в quote-токене: numerator quote units за denominator base units.

    Хранится в base units обеих сторон, поэтому разница decimals учитывается
    только при отображении (adjusted_fraction).
    """

    base_currency: Token
    quote_currency: Token
    denominator: int = Field(..., gt=0, description="Base units base-токена")
    numerator: int = Field(..., ge=0, description="Base units quote-токена")

    model_config = {"frozen": True}

    def to_fraction(self) -> Fraction:
        return Fraction(self.numerator, self.denominator)

    def invert(self) -> "Price":
        if self.numerator == 0:
            raise ZeroDivisionError("Cannot invert zero price")
        return Price(
            base_currency=self.quote_currency,
            quote_currency=self.base_currency,
            denominator=self.numerator,
            numerator=self.denominator,
        )

    def quote(self, amount: CurrencyAmount) -> CurrencyAmount:
        """Конверсия amount base-токена в quote-токен (floor)."""
        if not amount.currency.equals(self.base_currency):
            raise InvalidInput("Price.quote: amount is not in base currency")
        return CurrencyAmount(
            currency=self.quote_currency,
            quotient=floor_div(amount.quotient * self.numerator, self.denominator),
        )

    def adjusted_fraction(self) -> Fraction:
        """Цена в отображаемых единицах (с поправкой на decimals)."""
        return self.to_fraction() * Fraction(
            pow10(self.base_currency.decimals), pow10(self.quote_currency.decimals)
        )
