"""
Tranche — snapshot одного транша

Проекция над TrancheData плюс одна конверсия: redeem_value
(пропорциональная доля обеспечения по live полям транша).
Выбор live/frozen полей делает вызывающий код (или Bond через at_maturity()).
"""

import logging

from src.core.domain.snapshots import TrancheData
from src.core.domain.token import Token, address_equals
from src.core.domain.units import CurrencyAmount
from src.core.errors import InsufficientCollateral, InvalidInput
from src.core.math.integer_math import mul_div

logger = logging.getLogger("TrancheBond.Tranche")


class Tranche:
    """Immutable snapshot транша, принадлежащий ровно одной Bond."""

    def __init__(self, data: TrancheData, collateral: Token, chain_id: int = 1):
        self._data = data
        self._collateral = collateral
        self._chain_id = chain_id
        self._token = Token(
            chain_id=chain_id,
            address=data.id,
            decimals=data.token.decimals,
            symbol=data.token.symbol,
            name=data.token.name,
        )

    # -------------------------------------------------------------------------
    # Identity
    # -------------------------------------------------------------------------

    @property
    def data(self) -> TrancheData:
        return self._data

    @property
    def address(self) -> str:
        return self._data.id

    @property
    def index(self) -> int:
        return self._data.index

    @property
    def ratio(self) -> int:
        return self._data.ratio

    @property
    def decimals(self) -> int:
        return self._data.token.decimals

    @property
    def symbol(self) -> str:
        return self._data.token.symbol

    @property
    def name(self) -> str:
        return self._data.token.name

    @property
    def token(self) -> Token:
        return self._token

    @property
    def collateral_token(self) -> Token:
        return self._collateral

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    @property
    def total_collateral(self) -> int:
        return self._data.total_collateral

    @property
    def total_supply(self) -> int:
        return self._data.token.total_supply

    @property
    def total_collateral_at_maturity(self) -> int:
        return self._data.total_collateral_at_maturity or 0

    @property
    def total_supply_at_maturity(self) -> int:
        return self._data.total_supply_at_maturity or 0

    def at_maturity(self) -> "Tranche":
        """
        Вид транша, в котором live поля заменены frozen snapshot'ом maturity.

        Используется Bond, чтобы redeem_value считался по замороженному состоянию.
        """
        frozen = self._data.model_copy(
            update={
                "total_collateral": self.total_collateral_at_maturity,
                "token": self._data.token.model_copy(
                    update={"total_supply": self.total_supply_at_maturity}
                ),
            }
        )
        return Tranche(frozen, self._collateral, self._chain_id)

    def owns(self, amount: CurrencyAmount) -> bool:
        """True если amount выражен в токене этого транша."""
        return (
            amount.currency.chain_id == self._chain_id
            and address_equals(amount.currency.address, self.address)
        )

    # -------------------------------------------------------------------------
    # Conversion
    # -------------------------------------------------------------------------

    def redeem_value(self, amount: CurrencyAmount) -> CurrencyAmount:
        """
        Обеспечение, причитающееся за amount токенов транша.

        collateral_out = floor(total_collateral * amount / total_supply)

        Args:
            amount: Количество токенов этого транша

        Returns:
            CurrencyAmount в collateral токене

        Raises:
            InvalidInput: amount не в токене этого транша
            InsufficientCollateral: у транша нет supply, но запрошен ненулевой amount
        """
        if not self.owns(amount):
            raise InvalidInput("Invalid tranche amount")

        if self.total_supply == 0:
            if amount.quotient == 0:
                return CurrencyAmount.zero(self._collateral)
            raise InsufficientCollateral(f"Tranche {self.address} has zero supply")

        collateral_out = mul_div(amount.quotient, (self.total_collateral,), (self.total_supply,))
        logger.debug(
            "redeem_value tranche=%s amount=%d collateral_out=%d",
            self.address,
            amount.quotient,
            collateral_out,
        )
        return CurrencyAmount.from_raw_amount(self._collateral, collateral_out)

    def __repr__(self) -> str:
        return f"Tranche(index={self.index}, ratio={self.ratio}, address={self.address!r})"
