"""
LoanManager — конверсия депозита в currency через продажу траншей

Композиция Bond + упорядоченный список venue (по одному на каждый
не-терминальный транш, Z-транш не продаётся). Реализует:
- get_discount: совокупный дисконт продажи к номиналу
- get_sales: greedy senior-first sale sequencing до desired output
- get_maximum/minimum_required_deposit: оценки границ депозита
- borrow / borrow_max: preview результата займа

Все котировки venue выполняются строго последовательно: каждое следующее
решение зависит от running output предыдущего. Ошибка venue прерывает проход
без частичного результата; повторов нет.
"""

import logging
from dataclasses import dataclass
from typing import Final, Sequence

from src.core.domain.bond import TRANCHE_RATIO_GRANULARITY, Bond
from src.core.domain.token import Token
from src.core.domain.units import CurrencyAmount, Price
from src.core.errors import InsufficientDeposit, InvalidInput, InvalidStructure, NoLiquidity
from src.core.math.integer_math import MAX_UINT256, align_decimals, truncated_ratio
from src.loans.venues import Venue, venue_counter_token, venue_involves_token, venue_price_of

logger = logging.getLogger("TrancheBond.LoanManager")

# =============================================================================
# КОНСТАНТЫ
# =============================================================================

# Дисконт усекается до 5 десятичных знаков
DISCOUNT_PRECISION: Final[int] = 100_000

# Sentinel "продать весь доступный баланс" для on-chain settlement
SELL_ALL: Final[int] = MAX_UINT256


# =============================================================================
# CONFIG / RESULT
# =============================================================================


@dataclass(frozen=True)
class GetSalesOptions:
    """
    Опции get_sales.

    contract_input=True форматирует план для контракта: полная продажа
    транша записывается sentinel'ом SELL_ALL, Z-транш всегда нулевой.
    """

    contract_input: bool = False


@dataclass(frozen=True)
class BorrowOutput:
    """Результат займа: оставшиеся у пользователя tranche токены + полученная currency."""

    tranche_tokens: list[CurrencyAmount]
    currency_output: CurrencyAmount


# =============================================================================
# LOAN MANAGER
# =============================================================================


class LoanManager:
    """
    Sale-sequencing поверх Bond и venue.

    Immutable после конструирования: Bond и venue принадлежат вызывающему коду.
    """

    def __init__(self, bond: Bond, venues: Sequence[Venue]):
        # Z-транш не продаётся, venue для него не нужен
        # Bond держит минимум два транша, поэтому venue минимум один
        if len(venues) != len(bond.tranches) - 1:
            raise InvalidStructure("Invalid venues")

        for venue, tranche in zip(venues, bond.tranches):
            if not venue_involves_token(venue, tranche.token):
                raise InvalidStructure(f"Invalid venues: tranche {tranche.index} not in pair")

        currency = venue_counter_token(venues[0], bond.tranches[0].token)
        for venue, tranche in zip(venues[1:], bond.tranches[1:]):
            if not venue_counter_token(venue, tranche.token).equals(currency):
                raise InvalidStructure("Invalid venues: output currency differs between venues")

        self.bond = bond
        self.venues: tuple[Venue, ...] = tuple(venues)
        self._currency: Token = currency

    @property
    def currency(self) -> Token:
        """Output currency, общая для всех venue."""
        return self._currency

    def _require_output_currency(self, amount: CurrencyAmount) -> None:
        if not amount.currency.equals(self._currency):
            raise InvalidInput("Invalid output currency")

    def _require_collateral(self, amount: CurrencyAmount) -> None:
        if not amount.currency.equals(self.bond.collateral):
            raise InvalidInput("Invalid deposit currency")

    # -------------------------------------------------------------------------
    # Prices / discount
    # -------------------------------------------------------------------------

    def get_tranche_price(self, tranche_index: int) -> Price:
        """Цена tranche токена в output currency по venue."""
        if not 0 <= tranche_index < len(self.venues):
            raise InvalidInput(f"No venue for tranche {tranche_index}")
        tranche = self.bond.tranches[tranche_index]
        return venue_price_of(self.venues[tranche_index], tranche.token)

    async def get_discount(self, sales: Sequence[CurrencyAmount]) -> float:
        """
        Совокупный дисконт при продаже tranche токенов.

        discount = (total_in - total_out) / total_out, усечено до 5 знаков.
        Сторона с меньшей точностью масштабируется до точности другой
        (collateral decimals vs currency decimals).

        Args:
            sales: Tranche токены к продаже (например, результат get_sales)

        Returns:
            Положительное значение: продажа хуже номинала; отрицательное: лучше

        Raises:
            InvalidInput: sales короче числа venue
            NoLiquidity: суммарный output равен 0
        """
        if len(sales) < len(self.venues):
            raise InvalidInput("Invalid sales")

        total_in = 0
        total_out = 0
        for venue, sale in zip(self.venues, sales):
            amount_out = await venue.get_output_amount(sale)
            total_out += amount_out.quotient
            total_in += sale.quotient

        total_out, total_in = align_decimals(
            total_out, self._currency.decimals, total_in, self.bond.collateral.decimals
        )

        if total_out <= 0:
            logger.warning("get_discount: zero output for sales %s", [s.quotient for s in sales])
            raise NoLiquidity("No output")

        return truncated_ratio(total_in - total_out, total_out, DISCOUNT_PRECISION)

    # -------------------------------------------------------------------------
    # Sale sequencing
    # -------------------------------------------------------------------------

    async def get_sales(
        self,
        desired_output: CurrencyAmount,
        deposit: CurrencyAmount,
        options: GetSalesOptions = GetSalesOptions(),
    ) -> list[CurrencyAmount]:
        """
        Продажи по траншам, дающие desired_output при депозите deposit.

        Greedy senior-first: senior транши торгуются с наименьшим дисконтом,
        поэтому они продаются целиком раньше junior. Последний нужный транш
        продаётся частично (inverse quote на недостающий остаток).

        Args:
            desired_output: Желаемая сумма в output currency
            deposit: Депозит collateral
            options: GetSalesOptions

        Returns:
            Amounts к продаже по каждому траншу в порядке seniority

        Raises:
            InvalidInput: неверная валюта desired_output или deposit
            InsufficientDeposit: даже полная продажа не даёт desired_output
        """
        self._require_output_currency(desired_output)
        self._require_collateral(deposit)

        tranche_amounts = self.bond.deposit(deposit)

        sales: list[CurrencyAmount] = []
        running_output = CurrencyAmount.zero(self._currency)
        for i, (tranche, tranche_amount) in enumerate(zip(self.bond.tranches, tranche_amounts)):
            # Z-транш не имеет venue и никогда не продаётся
            if i >= len(self.venues):
                sales.append(CurrencyAmount.zero(tranche.token))
                continue

            if running_output >= desired_output:
                sales.append(CurrencyAmount.zero(tranche.token))
                continue

            venue = self.venues[i]
            max_output = await venue.get_output_amount(tranche_amount)
            logger.debug(
                "get_sales tranche=%d minted=%d max_output=%d running=%d",
                i,
                tranche_amount.quotient,
                max_output.quotient,
                running_output.quotient,
            )

            if running_output + max_output < desired_output:
                running_output = running_output + max_output
                if options.contract_input:
                    sales.append(CurrencyAmount.from_raw_amount(tranche.token, SELL_ALL))
                else:
                    sales.append(tranche_amount)
            else:
                remaining = desired_output - running_output
                sale = await venue.get_input_amount(remaining)
                logger.debug("get_sales tranche=%d partial sale=%d", i, sale.quotient)
                sales.append(sale)
                running_output = desired_output

        if running_output < desired_output:
            logger.warning(
                "get_sales: deposit %d reaches %d of desired %d",
                deposit.quotient,
                running_output.quotient,
                desired_output.quotient,
            )
            raise InsufficientDeposit("Insufficient deposit")

        return sales

    # -------------------------------------------------------------------------
    # Deposit bounds
    # -------------------------------------------------------------------------

    async def get_maximum_required_deposit(self, desired_output: CurrencyAmount) -> CurrencyAmount:
        """
        Максимальный осмысленный депозит для desired_output.

        Считается продажей только senior (A) транша, у которого минимальный
        дисконт. Больший депозит не даёт пользователю выгоды; меньший
        возможен ценой большего дисконта.
        """
        self._require_output_currency(desired_output)

        senior_in = await self.venues[0].get_input_amount(desired_output)
        return self.bond.get_required_deposit(senior_in)

    async def get_minimum_required_deposit(self, desired_output: CurrencyAmount) -> CurrencyAmount:
        """
        Минимальный депозит для desired_output (приближение).

        Считается по venue второго с конца (Y) транша для его доли ratio
        в desired_output. Это приближение: меньший дисконт более senior
        траншей может дать дополнительный output, поэтому реальный минимум
        может быть ниже.
        """
        self._require_output_currency(desired_output)

        junior_index = len(self.bond.tranches) - 2
        junior_ratio = self.bond.tranches[junior_index].ratio
        desired_junior_output = desired_output.multiply(junior_ratio).divide(
            TRANCHE_RATIO_GRANULARITY
        )
        junior_in = await self.venues[junior_index].get_input_amount(desired_junior_output)
        return self.bond.get_required_deposit(junior_in)

    # -------------------------------------------------------------------------
    # Borrow
    # -------------------------------------------------------------------------

    async def borrow_max(self, collateral_amount: CurrencyAmount) -> BorrowOutput:
        """
        Займ с продажей всех траншей кроме Z.

        Returns:
            BorrowOutput: нули для проданных траншей, полный Z-транш, суммарная currency
        """
        tranche_amounts = self.bond.deposit(collateral_amount)

        currency_output = CurrencyAmount.zero(self._currency)
        tranche_tokens: list[CurrencyAmount] = []
        for venue, tranche_amount in zip(self.venues, tranche_amounts[:-1]):
            currency_output = currency_output + await venue.get_output_amount(tranche_amount)
            tranche_tokens.append(CurrencyAmount.zero(tranche_amount.currency))
        tranche_tokens.append(tranche_amounts[-1])

        return BorrowOutput(tranche_tokens=tranche_tokens, currency_output=currency_output)

    async def borrow(
        self,
        collateral_amount: CurrencyAmount,
        sales: Sequence[CurrencyAmount],
    ) -> BorrowOutput:
        """
        Займ с заданными продажами по траншам.

        Returns:
            BorrowOutput: непроданный остаток каждого транша, полный Z-транш, currency

        Raises:
            InvalidInput: продажа больше заминченного количества или не в токене транша
        """
        tranche_amounts = self.bond.deposit(collateral_amount)
        if len(sales) < len(self.venues):
            raise InvalidInput("Invalid sales")

        currency_output = CurrencyAmount.zero(self._currency)
        tranche_tokens: list[CurrencyAmount] = []
        for venue, tranche_amount, sale in zip(self.venues, tranche_amounts[:-1], sales):
            if not sale.currency.equals(tranche_amount.currency) or sale > tranche_amount:
                raise InvalidInput("Invalid sale")
            currency_output = currency_output + await venue.get_output_amount(sale)
            tranche_tokens.append(tranche_amount - sale)
        tranche_tokens.append(tranche_amounts[-1])

        return BorrowOutput(tranche_tokens=tranche_tokens, currency_output=currency_output)
