"""
Bond — waterfall accounting tranche-облигации

Immutable snapshot облигации, владеющий упорядоченным списком Tranche.
Реализует:
- deposit: сколько токенов каждого транша минтится за депозит обеспечения
- get_required_deposit: обратная к deposit формула для одного транша
- tranche_redeem_value / redeem_mature / redeem: возврат обеспечения
- collateralization: доля обеспечения транша после waterfall выплат senior траншам

ПРАВИЛО ВЫБОРА СОСТОЯНИЯ:
    is_mature=True  -> totalCollateral/totalDebt/totalSupply берутся из *AtMaturity
    is_mature=False -> live поля

ФОРМУЛЫ (целочисленные, floor):
    virgin bond:   out_i = input * ratio_i / GRANULARITY
    existing debt: out_i = input * ratio_i * totalDebt / (GRANULARITY * totalCollateral)
    inverse:       input = out * GRANULARITY * totalCollateral / (ratio * totalDebt)

Порядок "все умножения, затем деление" совпадает с контрактом; перестановка
меняет округление.
"""

import logging
from typing import Any, Final, Mapping, Optional

from src.core.contracts import validate_bond_snapshot
from src.core.domain.snapshots import BondData
from src.core.domain.token import Token, address_equals
from src.core.domain.tranche import Tranche
from src.core.domain.units import CurrencyAmount, Percent
from src.core.errors import (
    InsufficientCollateral,
    InvalidInput,
    InvalidStructure,
    LimitExceeded,
    NotMature,
)
from src.core.math.integer_math import mul_div

logger = logging.getLogger("TrancheBond.Bond")

# =============================================================================
# КОНСТАНТЫ
# =============================================================================

# Знаменатель, относительно которого выражены ratio траншей
TRANCHE_RATIO_GRANULARITY: Final[int] = 1000

# Минимум: один senior + один residual (Z) транш
MIN_TRANCHES: Final[int] = 2


# =============================================================================
# BOND
# =============================================================================


class Bond:
    """
    Immutable snapshot облигации.

    Транши пересортировываются по возрастанию index (seniority), порядок во
    входном массиве не важен. Новый snapshot требует нового экземпляра.
    """

    def __init__(self, data: BondData, chain_id: int = 1):
        if len(data.tranches) < MIN_TRANCHES:
            raise InvalidStructure("Invalid tranches")

        self._data = data
        self._chain_id = chain_id
        self.collateral = Token(
            chain_id=chain_id,
            address=data.collateral.id,
            decimals=data.collateral.decimals,
            symbol=data.collateral.symbol,
            name=data.collateral.name,
        )
        self.tranches: tuple[Tranche, ...] = tuple(
            Tranche(t, self.collateral, chain_id)
            for t in sorted(data.tranches, key=lambda t: t.index)
        )

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any], chain_id: int = 1) -> "Bond":
        """
        Построение Bond из сырого JSON индексатора.

        Raises:
            InvalidPayload: payload не соответствует bond_snapshot контракту
            pydantic.ValidationError: значения вне допустимых диапазонов
            InvalidStructure: меньше двух траншей
        """
        validate_bond_snapshot(payload)
        return cls(BondData.model_validate(payload), chain_id=chain_id)

    # -------------------------------------------------------------------------
    # Identity / dates
    # -------------------------------------------------------------------------

    @property
    def data(self) -> BondData:
        return self._data

    @property
    def address(self) -> str:
        return self._data.id

    @property
    def creator(self) -> Optional[str]:
        return self._data.creator

    @property
    def mature(self) -> bool:
        return self._data.is_mature

    @property
    def start_date(self) -> int:
        return self._data.start_date

    @property
    def maturity_date(self) -> int:
        """maturedDate после maturity, иначе запланированная дата."""
        if self.mature:
            return self._data.matured_date or 0
        return self._data.maturity_date

    @property
    def deposit_limit(self) -> int:
        """0 означает отсутствие лимита."""
        return self._data.deposit_limit or 0

    @property
    def terminal_tranche(self) -> Tranche:
        return self.tranches[-1]

    # -------------------------------------------------------------------------
    # State (с учётом правила выбора live/frozen)
    # -------------------------------------------------------------------------

    @property
    def total_debt_at_maturity(self) -> int:
        return self._data.total_debt_at_maturity or 0

    @property
    def total_collateral_at_maturity(self) -> int:
        return self._data.total_collateral_at_maturity or 0

    @property
    def total_debt(self) -> int:
        if self.mature:
            return self.total_debt_at_maturity
        return self._data.total_debt

    @property
    def total_collateral(self) -> int:
        if self.mature:
            return self.total_collateral_at_maturity
        return self._data.total_collateral

    @property
    def cdr(self) -> Percent:
        """Collateral / debt всей облигации (0 при нулевом долге)."""
        if self.total_debt == 0:
            return Percent.of(0, 1)
        return Percent.of(self.total_collateral, self.total_debt)

    def _tranche_supply(self, tranche: Tranche) -> int:
        if self.mature:
            return tranche.total_supply_at_maturity
        return tranche.total_supply

    # -------------------------------------------------------------------------
    # Lookup
    # -------------------------------------------------------------------------

    def tranche_by_address(self, address: str) -> Optional[Tranche]:
        for tranche in self.tranches:
            if address_equals(tranche.address, address):
                return tranche
        return None

    def _tranche_for(self, amount: CurrencyAmount) -> Optional[Tranche]:
        for tranche in self.tranches:
            if tranche.owns(amount):
                return tranche
        return None

    # -------------------------------------------------------------------------
    # Collateralization
    # -------------------------------------------------------------------------

    def collateralization(self, tranche_index: int) -> Percent:
        """
        Доля обеспечения транша после полной выплаты всем более senior траншам.

        Waterfall: из пула обеспечения последовательно вычитается supply
        траншей 0..tranche_index-1 (с полом в 0). Остаток делится на supply
        целевого транша.

        Returns:
            Percent(remaining_collateral, tranche_supply); Percent(0, 1) если supply == 0

        Raises:
            InvalidInput: tranche_index вне диапазона
        """
        if not 0 <= tranche_index < len(self.tranches):
            raise InvalidInput(f"Invalid tranche index {tranche_index}")

        tranche_supply = self._tranche_supply(self.tranches[tranche_index])
        if tranche_supply == 0:
            return Percent.of(0, 1)

        collateral = self.total_collateral
        for tranche in self.tranches[:tranche_index]:
            collateral = max(collateral - self._tranche_supply(tranche), 0)

        return Percent.of(collateral, tranche_supply)

    # -------------------------------------------------------------------------
    # Redemption
    # -------------------------------------------------------------------------

    def tranche_redeem_value(self, tranche_amount: CurrencyAmount) -> CurrencyAmount:
        """
        Обеспечение за tranche_amount с учётом waterfall.

        Mature: делегирует Tranche.redeem_value по frozen snapshot.
        Live: senior-to-junior каждый транш забирает min(remaining, supply);
        Z-транш получает весь остаток.

        Raises:
            InvalidInput: amount не в токене ни одного транша облигации
        """
        input_tranche = self._tranche_for(tranche_amount)
        if input_tranche is None:
            raise InvalidInput("Invalid input currency")

        if self.mature:
            return input_tranche.at_maturity().redeem_value(tranche_amount)

        remaining_collateral = self.total_collateral
        for tranche in self.tranches[:-1]:
            tranche_collateral = min(remaining_collateral, tranche.total_supply)
            remaining_collateral -= tranche_collateral

            if tranche is input_tranche:
                return self._proportional(tranche_collateral, tranche_amount, tranche.total_supply)

        return self._proportional(
            remaining_collateral, tranche_amount, self.terminal_tranche.total_supply
        )

    def _proportional(
        self, claim: int, tranche_amount: CurrencyAmount, supply: int
    ) -> CurrencyAmount:
        if supply == 0:
            if tranche_amount.quotient == 0:
                return CurrencyAmount.zero(self.collateral)
            raise InsufficientCollateral("Tranche has zero supply")
        return CurrencyAmount.from_raw_amount(
            self.collateral, mul_div(tranche_amount.quotient, (claim,), (supply,))
        )

    def redeem_mature(self, tranche_amount: CurrencyAmount) -> CurrencyAmount:
        """
        Обеспечение за tranche_amount одного транша после maturity.

        output = floor(tranche.totalCollateral * amount / tranche.totalSupply)
        (frozen поля maturity)

        Raises:
            NotMature: облигация ещё live
            InvalidInput: amount не в токене транша
            InsufficientCollateral: amount больше frozen collateral транша
        """
        if not self.mature:
            raise NotMature("Bond is not mature")

        tranche = self._tranche_for(tranche_amount)
        if tranche is None:
            raise InvalidInput("Invalid input currency")

        frozen = tranche.at_maturity()
        if tranche_amount.quotient > frozen.total_collateral:
            raise InsufficientCollateral("Insufficient collateral")

        output = frozen.redeem_value(tranche_amount)
        logger.debug(
            "redeem_mature tranche=%d amount=%d output=%d",
            tranche.index,
            tranche_amount.quotient,
            output.quotient,
        )
        return output

    def redeem(self, tranche_inputs: list[CurrencyAmount]) -> CurrencyAmount:
        """
        Pre-maturity redemption всех траншей сразу.

        Args:
            tranche_inputs: Amounts по одному на транш, в порядке seniority

        Returns:
            floor(sum(inputs) * totalCollateral / totalDebt) в collateral токене

        Raises:
            InvalidInput: неверная длина или порядок/валюта входов
            InsufficientCollateral: sum(inputs) > totalCollateral
        """
        if len(tranche_inputs) != len(self.tranches):
            raise InvalidInput("Invalid tranche inputs")

        total_debt_redeemed = 0
        for tranche_input, tranche in zip(tranche_inputs, self.tranches):
            if not tranche.owns(tranche_input):
                raise InvalidInput("Invalid tranche inputs")
            total_debt_redeemed += tranche_input.quotient

        if total_debt_redeemed > self.total_collateral:
            raise InsufficientCollateral("Insufficient collateral")

        if self.total_debt == 0:
            return CurrencyAmount.zero(self.collateral)

        output = mul_div(total_debt_redeemed, (self.total_collateral,), (self.total_debt,))
        logger.debug("redeem debt_redeemed=%d output=%d", total_debt_redeemed, output)
        return CurrencyAmount.from_raw_amount(self.collateral, output)

    # -------------------------------------------------------------------------
    # Deposit
    # -------------------------------------------------------------------------

    def deposit(self, collateral_input: CurrencyAmount) -> list[CurrencyAmount]:
        """
        Токены траншей, минтящиеся за депозит обеспечения.

        Args:
            collateral_input: Amount collateral токена

        Returns:
            Amounts токенов траншей в порядке seniority

        Raises:
            InvalidInput: валюта не совпадает с collateral
            LimitExceeded: totalCollateral + input > depositLimit (если лимит задан)
        """
        if not collateral_input.currency.equals(self.collateral):
            raise InvalidInput("Invalid input currency - not bond collateral")

        if (
            self.deposit_limit != 0
            and self.total_collateral + collateral_input.quotient > self.deposit_limit
        ):
            raise LimitExceeded("Exceeded deposit limit")

        amount_in = collateral_input.quotient
        result: list[CurrencyAmount] = []
        for tranche in self.tranches:
            if self.total_collateral == 0:
                minted = mul_div(amount_in, (tranche.ratio,), (TRANCHE_RATIO_GRANULARITY,))
            else:
                minted = mul_div(
                    amount_in,
                    (tranche.ratio, self.total_debt),
                    (TRANCHE_RATIO_GRANULARITY, self.total_collateral),
                )
            result.append(CurrencyAmount.from_raw_amount(tranche.token, minted))

        logger.debug(
            "deposit input=%d minted=%s", amount_in, [amount.quotient for amount in result]
        )
        return result

    def get_required_deposit(self, desired_tranche_output: CurrencyAmount) -> CurrencyAmount:
        """
        Депозит обеспечения, дающий desired_tranche_output токенов одного транша.

        Обратная к deposit формула; deposit(get_required_deposit(x))[i] == x
        когда деление точное, иначе результат меньше x на ошибку округления.

        Raises:
            InvalidInput: токен не является траншем облигации, или транш
                нельзя минтить (нулевой ratio / нулевой долг при ненулевом обеспечении)
        """
        tranche = self._tranche_for(desired_tranche_output)
        if tranche is None:
            raise InvalidInput("Invalid desired output - not a tranche token")
        if tranche.ratio == 0:
            raise InvalidInput(f"Tranche {tranche.index} has zero ratio")

        desired = desired_tranche_output.quotient
        if self.total_collateral == 0:
            required = mul_div(desired, (TRANCHE_RATIO_GRANULARITY,), (tranche.ratio,))
        else:
            if self.total_debt == 0:
                raise InvalidInput("Bond has collateral but no debt")
            required = mul_div(
                desired,
                (TRANCHE_RATIO_GRANULARITY, self.total_collateral),
                (tranche.ratio, self.total_debt),
            )
        return CurrencyAmount.from_raw_amount(self.collateral, required)

    def __repr__(self) -> str:
        return (
            f"Bond(address={self.address!r}, tranches={len(self.tranches)}, "
            f"mature={self.mature})"
        )
