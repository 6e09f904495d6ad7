"""
Тесты для LoanManager

Облигация по умолчанию: транши 200/300/500, debt == collateral, поэтому
депозит 100,000,000 base units collateral минтит [20M, 30M, 50M].

Venue: A = 0.95 USDC за tranche token, B = 0.90 USDC за tranche token
(tranche 9 decimals, USDC 6 decimals: numerator/denominator = 95/100000 и 90/100000).
"""

import asyncio

import pytest

from src.core.domain import Bond, CurrencyAmount, Token
from src.core.errors import InsufficientDeposit, InvalidInput, InvalidStructure, NoLiquidity
from src.loans import SELL_ALL, ConstantProductVenue, GetSalesOptions, LoanManager
from tests.unit.conftest import FixedRateVenue, make_bond

DEPOSIT = 100_000_000


@pytest.fixture
def venues(bond: Bond, currency: Token) -> list[FixedRateVenue]:
    return [
        FixedRateVenue(bond.tranches[0].token, currency, 95, 100_000),
        FixedRateVenue(bond.tranches[1].token, currency, 90, 100_000),
    ]


@pytest.fixture
def manager(bond: Bond, venues: list[FixedRateVenue]) -> LoanManager:
    return LoanManager(bond, venues)


def _collateral(bond: Bond, quotient: int = DEPOSIT) -> CurrencyAmount:
    return CurrencyAmount.from_raw_amount(bond.collateral, quotient)


def _usdc(currency: Token, quotient: int) -> CurrencyAmount:
    return CurrencyAmount.from_raw_amount(currency, quotient)


def _quotients(amounts: list[CurrencyAmount]) -> list[int]:
    return [a.quotient for a in amounts]


# =============================================================================
# CONSTRUCTION
# =============================================================================


class TestConstruction:
    """Проверки структуры venue при конструировании"""

    def test_valid(self, manager: LoanManager, bond: Bond, currency: Token) -> None:
        assert manager.currency == currency
        assert manager.bond is bond
        assert len(manager.venues) == 2

    def test_venue_count_mismatch(self, bond: Bond, venues) -> None:
        with pytest.raises(InvalidStructure, match="Invalid venues"):
            LoanManager(bond, venues[:1])
        with pytest.raises(InvalidStructure, match="Invalid venues"):
            LoanManager(bond, venues + venues[:1])

    def test_venue_for_wrong_tranche(self, bond: Bond, venues) -> None:
        with pytest.raises(InvalidStructure):
            LoanManager(bond, list(reversed(venues)))

    def test_currency_differs_between_venues(self, bond: Bond, currency: Token) -> None:
        other = Token(chain_id=1, address="0xf000000000000000000000000000000000000002", decimals=6)
        venues = [
            FixedRateVenue(bond.tranches[0].token, currency, 1, 1),
            FixedRateVenue(bond.tranches[1].token, other, 1, 1),
        ]
        with pytest.raises(InvalidStructure):
            LoanManager(bond, venues)

    def test_two_tranche_bond(self, currency: Token) -> None:
        bond = make_bond(ratios=(400, 600))
        manager = LoanManager(bond, [FixedRateVenue(bond.tranches[0].token, currency, 1, 1)])
        assert manager.currency == currency

    def test_pool_oriented_either_way(self, bond: Bond, currency: Token) -> None:
        """Tranche может быть token0 или token1 пула"""
        pools = [
            ConstantProductVenue(currency, bond.tranches[0].token, 10**9, 10**6),
            ConstantProductVenue(bond.tranches[1].token, currency, 10**9, 10**6),
        ]
        assert LoanManager(bond, pools).currency == currency


# =============================================================================
# PRICE / DISCOUNT
# =============================================================================


class TestTranchePrice:
    """get_tranche_price"""

    def test_oriented_tranche_in_currency(self, manager: LoanManager, bond: Bond, currency) -> None:
        price = manager.get_tranche_price(0)
        assert price.base_currency == bond.tranches[0].token
        assert price.quote_currency == currency
        assert price.quote(CurrencyAmount.from_raw_amount(bond.tranches[0].token, 10**9)).quotient == 950_000

    def test_pool_price_oriented(self, bond: Bond, currency: Token) -> None:
        pools = [
            ConstantProductVenue(currency, bond.tranches[0].token, 2_000, 1_000),
            ConstantProductVenue(bond.tranches[1].token, currency, 1_000, 3_000),
        ]
        manager = LoanManager(bond, pools)
        assert manager.get_tranche_price(0).base_currency == bond.tranches[0].token
        assert manager.get_tranche_price(1).base_currency == bond.tranches[1].token

    @pytest.mark.parametrize("index", [-1, 2])
    def test_no_venue(self, manager: LoanManager, index: int) -> None:
        with pytest.raises(InvalidInput):
            manager.get_tranche_price(index)


class TestGetDiscount:
    """get_discount: совокупный дисконт к номиналу"""

    def test_discount_with_decimal_alignment(self, manager: LoanManager, bond: Bond) -> None:
        # out = 19,000 + 27,000 USDC units -> 46,000,000 в 9 decimals; in = 50,000,000
        sales = bond.deposit(_collateral(bond))
        discount = asyncio.run(manager.get_discount(sales))
        assert discount == 0.08695

    def test_premium_is_negative(self, bond: Bond, currency: Token) -> None:
        manager = LoanManager(
            bond,
            [
                FixedRateVenue(bond.tranches[0].token, currency, 110, 100_000),
                FixedRateVenue(bond.tranches[1].token, currency, 110, 100_000),
            ],
        )
        sales = [
            CurrencyAmount.from_raw_amount(bond.tranches[0].token, 1_000_000),
            CurrencyAmount.zero(bond.tranches[1].token),
            CurrencyAmount.zero(bond.tranches[2].token),
        ]
        assert asyncio.run(manager.get_discount(sales)) == -0.0909

    def test_same_decimals_par(self, bond: Bond, currency_9: Token) -> None:
        manager = LoanManager(
            bond,
            [
                FixedRateVenue(bond.tranches[0].token, currency_9, 1, 1),
                FixedRateVenue(bond.tranches[1].token, currency_9, 1, 1),
            ],
        )
        assert asyncio.run(manager.get_discount(bond.deposit(_collateral(bond)))) == 0.0

    def test_zero_output(self, manager: LoanManager, bond: Bond) -> None:
        sales = [CurrencyAmount.zero(t.token) for t in bond.tranches]
        with pytest.raises(NoLiquidity):
            asyncio.run(manager.get_discount(sales))

    def test_too_few_sales(self, manager: LoanManager, bond: Bond) -> None:
        with pytest.raises(InvalidInput):
            asyncio.run(manager.get_discount(bond.deposit(_collateral(bond))[:1]))

    def test_terminal_sale_ignored(self, manager: LoanManager, venues, bond: Bond) -> None:
        sales = bond.deposit(_collateral(bond))
        asyncio.run(manager.get_discount(sales))
        assert [call for venue in venues for call in venue.calls] == [
            ("output", 20_000_000),
            ("output", 30_000_000),
        ]


# =============================================================================
# SALE SEQUENCING
# =============================================================================


class TestGetSales:
    """get_sales: greedy senior-first"""

    def test_senior_partial_sale(self, manager: LoanManager, bond: Bond, currency) -> None:
        sales = asyncio.run(manager.get_sales(_usdc(currency, 10_000), _collateral(bond)))
        # ceil(10,000 * 100,000 / 95)
        assert _quotients(sales) == [10_526_316, 0, 0]
        assert [s.currency for s in sales] == [t.token for t in bond.tranches]

    def test_senior_exhausted_then_junior_partial(
        self, manager: LoanManager, venues, bond: Bond, currency
    ) -> None:
        sales = asyncio.run(manager.get_sales(_usdc(currency, 30_000), _collateral(bond)))
        # A целиком (19,000), B добирает 11,000: ceil(11,000 * 100,000 / 90)
        assert _quotients(sales) == [20_000_000, 12_222_223, 0]
        assert venues[0].calls == [("output", 20_000_000)]
        assert venues[1].calls == [("output", 30_000_000), ("input", 11_000)]

    def test_exact_fill_uses_inverse_quote(self, manager: LoanManager, venues, bond, currency) -> None:
        sales = asyncio.run(manager.get_sales(_usdc(currency, 46_000), _collateral(bond)))
        assert _quotients(sales) == [20_000_000, 30_000_000, 0]
        assert venues[1].calls[-1] == ("input", 27_000)

    def test_contract_input_sentinel(self, manager: LoanManager, bond: Bond, currency) -> None:
        sales = asyncio.run(
            manager.get_sales(
                _usdc(currency, 30_000),
                _collateral(bond),
                GetSalesOptions(contract_input=True),
            )
        )
        assert _quotients(sales) == [SELL_ALL, 12_222_223, 0]

    def test_reached_target_skips_remaining_venues(
        self, manager: LoanManager, venues, bond: Bond, currency
    ) -> None:
        asyncio.run(manager.get_sales(_usdc(currency, 10_000), _collateral(bond)))
        assert venues[1].calls == []

    def test_zero_desired_output(self, manager: LoanManager, venues, bond: Bond, currency) -> None:
        sales = asyncio.run(manager.get_sales(_usdc(currency, 0), _collateral(bond)))
        assert _quotients(sales) == [0, 0, 0]
        assert venues[0].calls == []

    def test_insufficient_deposit(self, manager: LoanManager, bond: Bond, currency) -> None:
        with pytest.raises(InsufficientDeposit, match="Insufficient deposit"):
            asyncio.run(manager.get_sales(_usdc(currency, 46_001), _collateral(bond)))

    def test_realized_output_covers_desired(self, bond: Bond, currency: Token) -> None:
        """Применение плана к тем же venue даёт не меньше desired output"""
        pools = [
            ConstantProductVenue(bond.tranches[0].token, currency, 10**12, 10**9),
            ConstantProductVenue(bond.tranches[1].token, currency, 10**12, 8 * 10**8),
        ]
        manager = LoanManager(bond, pools)
        desired = _usdc(currency, 30_000)
        deposit = _collateral(bond)

        async def plan_and_apply() -> int:
            sales = await manager.get_sales(desired, deposit)
            return (await manager.borrow(deposit, sales)).currency_output.quotient

        assert asyncio.run(plan_and_apply()) >= desired.quotient

    def test_exact_pool_quote_keeps_sale_within_minted(self, bond: Bond, currency: Token) -> None:
        """Полная продажа транша через точную inverse котировку исполнима в borrow"""
        pools = [
            ConstantProductVenue(bond.tranches[0].token, currency, 20_000_000, 40_000_000, fee_pips=0),
            ConstantProductVenue(bond.tranches[1].token, currency, 30_000_000, 30_000_000, fee_pips=0),
        ]
        manager = LoanManager(bond, pools)
        deposit = _collateral(bond)
        desired = _usdc(currency, 20_000_000)

        async def plan_and_apply():
            sales = await manager.get_sales(desired, deposit)
            return sales, await manager.borrow(deposit, sales)

        sales, result = asyncio.run(plan_and_apply())
        # A: 20M in -> 20M out; inverse котировка на 20M out ровно 20M in
        assert _quotients(sales) == [20_000_000, 0, 0]
        assert result.currency_output.quotient == 20_000_000
        assert _quotients(result.tranche_tokens) == [0, 30_000_000, 50_000_000]

    def test_wrong_output_currency(self, manager: LoanManager, bond: Bond) -> None:
        with pytest.raises(InvalidInput, match="Invalid output currency"):
            asyncio.run(manager.get_sales(_collateral(bond, 1), _collateral(bond)))

    def test_wrong_deposit_currency(self, manager: LoanManager, currency: Token) -> None:
        with pytest.raises(InvalidInput, match="Invalid deposit currency"):
            asyncio.run(manager.get_sales(_usdc(currency, 1), _usdc(currency, 1)))

    def test_venue_failure_propagates(self, bond: Bond, currency: Token) -> None:
        class TimedOutVenue(FixedRateVenue):
            async def get_input_amount(self, output_amount: CurrencyAmount) -> CurrencyAmount:
                raise TimeoutError("quote timed out")

        failing = TimedOutVenue(bond.tranches[1].token, currency, 90, 100_000)
        manager = LoanManager(
            bond, [FixedRateVenue(bond.tranches[0].token, currency, 95, 100_000), failing]
        )
        with pytest.raises(TimeoutError):
            asyncio.run(manager.get_sales(_usdc(currency, 30_000), _collateral(bond)))

    def test_pool_reserve_exceeded(self, bond: Bond, currency: Token) -> None:
        pools = [
            ConstantProductVenue(bond.tranches[0].token, currency, 10, 10),
            ConstantProductVenue(bond.tranches[1].token, currency, 10, 10),
        ]
        # inverse quote на весь резерв пула невозможен
        with pytest.raises(NoLiquidity):
            asyncio.run(LoanManager(bond, pools).get_maximum_required_deposit(_usdc(currency, 10)))

    def test_independent_sequential_calls(self, manager: LoanManager, bond: Bond, currency) -> None:
        first = asyncio.run(manager.get_sales(_usdc(currency, 30_000), _collateral(bond)))
        second = asyncio.run(manager.get_sales(_usdc(currency, 30_000), _collateral(bond)))
        assert first == second


# =============================================================================
# DEPOSIT BOUNDS
# =============================================================================


class TestRequiredDeposit:
    """get_maximum_required_deposit / get_minimum_required_deposit"""

    def test_maximum_via_senior_venue(self, manager: LoanManager, venues, bond, currency) -> None:
        required = asyncio.run(manager.get_maximum_required_deposit(_usdc(currency, 19_000)))
        assert required.currency == bond.collateral
        # A: 20,000,000 tranche units -> 20M * 1000 / 200
        assert required.quotient == 100_000_000
        assert venues[0].calls == [("input", 19_000)]

    def test_minimum_via_second_most_junior_venue(
        self, manager: LoanManager, venues, bond, currency
    ) -> None:
        required = asyncio.run(manager.get_minimum_required_deposit(_usdc(currency, 10_000)))
        # доля B: 10,000 * 300 / 1000 = 3,000 -> ceil(3,000 * 100,000 / 90) = 3,333,334
        assert venues[1].calls == [("input", 3_000)]
        assert required.quotient == 3_333_334 * 1000 // 300

    def test_minimum_not_above_maximum(self, manager: LoanManager, currency) -> None:
        desired = _usdc(currency, 10_000)
        minimum = asyncio.run(manager.get_minimum_required_deposit(desired))
        maximum = asyncio.run(manager.get_maximum_required_deposit(desired))
        assert minimum <= maximum

    def test_wrong_currency(self, manager: LoanManager, bond: Bond) -> None:
        with pytest.raises(InvalidInput):
            asyncio.run(manager.get_maximum_required_deposit(_collateral(bond, 1)))
        with pytest.raises(InvalidInput):
            asyncio.run(manager.get_minimum_required_deposit(_collateral(bond, 1)))


# =============================================================================
# BORROW
# =============================================================================


class TestBorrow:
    """borrow_max / borrow"""

    def test_borrow_max(self, manager: LoanManager, bond: Bond) -> None:
        result = asyncio.run(manager.borrow_max(_collateral(bond)))
        assert _quotients(result.tranche_tokens) == [0, 0, 50_000_000]
        assert [a.currency for a in result.tranche_tokens] == [t.token for t in bond.tranches]
        assert result.currency_output.quotient == 46_000

    def test_borrow_keeps_unsold_remainder(self, manager: LoanManager, bond: Bond) -> None:
        sales = [
            CurrencyAmount.from_raw_amount(bond.tranches[0].token, 10_000_000),
            CurrencyAmount.from_raw_amount(bond.tranches[1].token, 30_000_000),
        ]
        result = asyncio.run(manager.borrow(_collateral(bond), sales))
        assert _quotients(result.tranche_tokens) == [10_000_000, 0, 50_000_000]
        assert result.currency_output.quotient == 9_500 + 27_000

    def test_borrow_all_equals_borrow_max(self, manager: LoanManager, bond: Bond) -> None:
        deposit = _collateral(bond)
        sales = bond.deposit(deposit)
        assert asyncio.run(manager.borrow(deposit, sales)) == asyncio.run(manager.borrow_max(deposit))

    def test_sale_above_minted(self, manager: LoanManager, bond: Bond) -> None:
        sales = [
            CurrencyAmount.from_raw_amount(bond.tranches[0].token, 20_000_001),
            CurrencyAmount.zero(bond.tranches[1].token),
        ]
        with pytest.raises(InvalidInput, match="Invalid sale"):
            asyncio.run(manager.borrow(_collateral(bond), sales))

    def test_sale_in_wrong_token(self, manager: LoanManager, bond: Bond) -> None:
        sales = [
            CurrencyAmount.zero(bond.tranches[1].token),
            CurrencyAmount.zero(bond.tranches[0].token),
        ]
        with pytest.raises(InvalidInput, match="Invalid sale"):
            asyncio.run(manager.borrow(_collateral(bond), sales))

    def test_too_few_sales(self, manager: LoanManager, bond: Bond) -> None:
        with pytest.raises(InvalidInput):
            asyncio.run(manager.borrow(_collateral(bond), []))
