"""
Venues — внешние источники котировок для продажи tranche токенов

Venue: протокол с двумя котировками (обе потенциально удалённые и async):
- get_output_amount(amount_in)  -> сколько получим за amount_in
- get_input_amount(amount_out)  -> сколько нужно отдать за amount_out

ConstantProductVenue: эталонный x*y=k пул с комиссией на входе.
Целочисленная математика: output округляется вниз, input вверх (ceil),
поэтому get_output_amount(get_input_amount(x)) >= x. Котировки не меняют
резервы (только preview).
"""

import logging
from typing import Final, Protocol, runtime_checkable

from src.core.domain.token import Token
from src.core.domain.units import CurrencyAmount, Price
from src.core.errors import InvalidInput, InvalidStructure, NoLiquidity
from src.core.math.integer_math import ceil_div

logger = logging.getLogger("TrancheBond.Venues")

# =============================================================================
# КОНСТАНТЫ
# =============================================================================

# Знаменатель комиссии (pips: 1e-6)
FEE_PIPS_DENOMINATOR: Final[int] = 1_000_000

# 0.3% комиссия по умолчанию
DEFAULT_FEE_PIPS: Final[int] = 3000


# =============================================================================
# PROTOCOL
# =============================================================================


@runtime_checkable
class Venue(Protocol):
    """Пара (tranche token, output currency) с двумя котировками."""

    @property
    def token0(self) -> Token: ...

    @property
    def token1(self) -> Token: ...

    @property
    def token0_price(self) -> Price: ...

    @property
    def token1_price(self) -> Price: ...

    async def get_output_amount(self, input_amount: CurrencyAmount) -> CurrencyAmount: ...

    async def get_input_amount(self, output_amount: CurrencyAmount) -> CurrencyAmount: ...


def venue_involves_token(venue: Venue, token: Token) -> bool:
    return venue.token0.equals(token) or venue.token1.equals(token)


def venue_counter_token(venue: Venue, token: Token) -> Token:
    """Второй токен пары относительно token."""
    if venue.token0.equals(token):
        return venue.token1
    if venue.token1.equals(token):
        return venue.token0
    raise InvalidInput(f"Token {token.address} is not in venue pair")


def venue_price_of(venue: Venue, token: Token) -> Price:
    """Цена token, выраженная в другом токене пары."""
    if venue.token0.equals(token):
        return venue.token0_price
    if venue.token1.equals(token):
        return venue.token1_price
    raise InvalidInput(f"Token {token.address} is not in venue pair")


# =============================================================================
# CONSTANT PRODUCT VENUE
# =============================================================================


class ConstantProductVenue:
    """
    x*y=k пул с комиссией на входе.

    Токены хранятся отсортированными по адресу (token0 < token1),
    резервы переставляются соответственно.
    """

    def __init__(
        self,
        token_a: Token,
        token_b: Token,
        reserve_a: int,
        reserve_b: int,
        fee_pips: int = DEFAULT_FEE_PIPS,
    ):
        if reserve_a < 0 or reserve_b < 0:
            raise InvalidStructure("Reserves must be non-negative")
        if not 0 <= fee_pips < FEE_PIPS_DENOMINATOR:
            raise InvalidStructure(f"fee_pips out of range: {fee_pips}")

        if token_a.sorts_before(token_b):
            self._token0, self._token1 = token_a, token_b
            self._reserve0, self._reserve1 = reserve_a, reserve_b
        else:
            self._token0, self._token1 = token_b, token_a
            self._reserve0, self._reserve1 = reserve_b, reserve_a
        self.fee_pips = fee_pips

    @property
    def token0(self) -> Token:
        return self._token0

    @property
    def token1(self) -> Token:
        return self._token1

    def reserve_of(self, token: Token) -> int:
        if token.equals(self._token0):
            return self._reserve0
        if token.equals(self._token1):
            return self._reserve1
        raise InvalidInput(f"Token {token.address} is not in venue pair")

    @property
    def token0_price(self) -> Price:
        """Цена token0 в token1 (reserve1 / reserve0)."""
        if self._reserve0 == 0:
            raise NoLiquidity("Empty reserve0")
        return Price(
            base_currency=self._token0,
            quote_currency=self._token1,
            denominator=self._reserve0,
            numerator=self._reserve1,
        )

    @property
    def token1_price(self) -> Price:
        """Цена token1 в token0 (reserve0 / reserve1)."""
        if self._reserve1 == 0:
            raise NoLiquidity("Empty reserve1")
        return Price(
            base_currency=self._token1,
            quote_currency=self._token0,
            denominator=self._reserve1,
            numerator=self._reserve0,
        )

    def _reserves_for_input(self, token: Token) -> tuple[int, int, Token]:
        """(reserve_in, reserve_out, output_token) для продажи token."""
        if token.equals(self._token0):
            return self._reserve0, self._reserve1, self._token1
        if token.equals(self._token1):
            return self._reserve1, self._reserve0, self._token0
        raise InvalidInput(f"Token {token.address} is not in venue pair")

    async def get_output_amount(self, input_amount: CurrencyAmount) -> CurrencyAmount:
        """
        Output за input_amount.

        out = in * (1e6 - fee) * R_out / (R_in * 1e6 + in * (1e6 - fee))
        """
        reserve_in, reserve_out, output_token = self._reserves_for_input(input_amount.currency)
        amount_in = input_amount.quotient
        if amount_in == 0:
            return CurrencyAmount.zero(output_token)
        if reserve_in == 0 or reserve_out == 0:
            raise NoLiquidity("Venue has no liquidity")

        amount_in_with_fee = amount_in * (FEE_PIPS_DENOMINATOR - self.fee_pips)
        amount_out = (amount_in_with_fee * reserve_out) // (
            reserve_in * FEE_PIPS_DENOMINATOR + amount_in_with_fee
        )
        logger.debug("quote output in=%d out=%d", amount_in, amount_out)
        return CurrencyAmount.from_raw_amount(output_token, amount_out)

    async def get_input_amount(self, output_amount: CurrencyAmount) -> CurrencyAmount:
        """
        Input, необходимый для получения output_amount.

        in = ceil(R_in * out * 1e6 / ((R_out - out) * (1e6 - fee)))

        Минимальный input, для которого get_output_amount(in) >= out.

        Raises:
            NoLiquidity: out >= R_out (пул не может отдать столько)
        """
        reserve_out, reserve_in, input_token = self._reserves_for_input(output_amount.currency)
        amount_out = output_amount.quotient
        if amount_out == 0:
            return CurrencyAmount.zero(input_token)
        if amount_out >= reserve_out:
            raise NoLiquidity(
                f"Requested output {amount_out} exceeds venue reserve {reserve_out}"
            )

        amount_in = ceil_div(
            reserve_in * amount_out * FEE_PIPS_DENOMINATOR,
            (reserve_out - amount_out) * (FEE_PIPS_DENOMINATOR - self.fee_pips),
        )
        logger.debug("quote input out=%d in=%d", amount_out, amount_in)
        return CurrencyAmount.from_raw_amount(input_token, amount_in)

    def __repr__(self) -> str:
        return (
            f"ConstantProductVenue({self._token0}/{self._token1}, "
            f"reserves=({self._reserve0}, {self._reserve1}), fee_pips={self.fee_pips})"
        )
