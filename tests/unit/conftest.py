"""
Общие фикстуры и фабрики для unit-тестов tranche-bond ядра.

Bond snapshot по умолчанию: три транша 200/300/500, collateral AMPL (9 decimals),
totalDebt = totalCollateral = 30,000,000, у каждого транша
totalCollateral = totalSupply = 1,000,000.
"""

from typing import Any, Optional

import pytest

from src.core.domain import Bond, BondData, CurrencyAmount, Price, Token
from src.core.math.integer_math import ceil_div

BOND_ADDRESS = "0x8feb0797217962c517fac6da4f8667cc000129ff"
CREATOR_ADDRESS = "0x53462c34c2da0ac7cf391e305327f2c566d40d8d"
COLLATERAL_ADDRESS = "0x1439b0429a3ad079c55093fbfd59a7c00c888d00"
CURRENCY_ADDRESS = "0xf000000000000000000000000000000000000001"
TRANCHE_ADDRESSES = [
    "0xd6d8d269933c02db9f46f0f5b630ae91796a6afc",
    "0x881d40237659c251811cec9c364ef91dc08d300c",
    "0xd24400ae8bfebb18ca49be86258a3c749cf46853",
]


# =============================================================================
# PAYLOAD FACTORIES
# =============================================================================


def make_tranche_payload(
    address: str,
    ratio: int,
    index: int,
    total_collateral: str,
    total_supply: str,
    is_mature: bool = False,
) -> dict[str, Any]:
    """Tranche snapshot в формате индексатора (camelCase, числа строками)."""
    return {
        "id": address,
        "ratio": str(ratio),
        "index": str(index),
        "totalCollateral": total_collateral,
        "totalCollateralAtMaturity": total_collateral if is_mature else "0",
        "totalSupplyAtMaturity": total_supply if is_mature else "0",
        "token": {
            "id": address,
            "symbol": "tranche",
            "name": "tranche Z",
            "decimals": "9",
            "totalSupply": total_supply,
        },
    }


def make_bond_payload(
    total_debt: str = "30000000",
    total_collateral: str = "30000000",
    is_mature: bool = False,
    ratios: tuple[int, ...] = (200, 300, 500),
    deposit_limit: Optional[str] = None,
) -> dict[str, Any]:
    """Bond snapshot в формате индексатора."""
    payload: dict[str, Any] = {
        "id": BOND_ADDRESS,
        "creator": CREATOR_ADDRESS,
        "startDate": "1630432337",
        "maturityDate": "1630532337",
        "maturedDate": "1630532337" if is_mature else "0",
        "collateral": {
            "id": COLLATERAL_ADDRESS,
            "symbol": "AMPL",
            "name": "Ampleforth",
            "decimals": "9",
            "totalSupply": "123123123123123",
        },
        "tranches": [
            make_tranche_payload(
                TRANCHE_ADDRESSES[i], ratio, i, "1000000", "1000000", is_mature
            )
            for i, ratio in enumerate(ratios)
        ],
        "isMature": is_mature,
        "totalDebt": total_debt,
        "totalDebtAtMaturity": total_debt if is_mature else "0",
        "totalCollateral": total_collateral,
        "totalCollateralAtMaturity": total_collateral if is_mature else "0",
    }
    if deposit_limit is not None:
        payload["depositLimit"] = deposit_limit
    return payload


def make_bond(**kwargs: Any) -> Bond:
    return Bond(BondData.model_validate(make_bond_payload(**kwargs)))


# =============================================================================
# FAKE VENUE
# =============================================================================


class FixedRateVenue:
    """
    Venue с постоянным курсом: 1 base unit транша = numerator/denominator base units currency.

    Output округляется вниз, input вверх. Записывает все запросы в calls.
    """

    def __init__(
        self,
        tranche_token: Token,
        currency: Token,
        numerator: int,
        denominator: int,
        max_output: Optional[int] = None,
    ):
        self._tranche = tranche_token
        self._currency = currency
        self.numerator = numerator
        self.denominator = denominator
        self.max_output = max_output
        self.calls: list[tuple[str, int]] = []

    @property
    def token0(self) -> Token:
        return self._tranche

    @property
    def token1(self) -> Token:
        return self._currency

    @property
    def token0_price(self) -> Price:
        return Price(
            base_currency=self._tranche,
            quote_currency=self._currency,
            denominator=self.denominator,
            numerator=self.numerator,
        )

    @property
    def token1_price(self) -> Price:
        return self.token0_price.invert()

    async def get_output_amount(self, input_amount: CurrencyAmount) -> CurrencyAmount:
        self.calls.append(("output", input_amount.quotient))
        out = input_amount.quotient * self.numerator // self.denominator
        if self.max_output is not None:
            out = min(out, self.max_output)
        return CurrencyAmount.from_raw_amount(self._currency, out)

    async def get_input_amount(self, output_amount: CurrencyAmount) -> CurrencyAmount:
        self.calls.append(("input", output_amount.quotient))
        return CurrencyAmount.from_raw_amount(
            self._tranche, ceil_div(output_amount.quotient * self.denominator, self.numerator)
        )


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def bond() -> Bond:
    """Live облигация, debt:collateral = 1."""
    return make_bond()


@pytest.fixture
def mature_bond() -> Bond:
    """Mature облигация с frozen полями, равными live."""
    return make_bond(is_mature=True)


@pytest.fixture
def currency() -> Token:
    """Output currency (USDC-подобная, 6 decimals)."""
    return Token(chain_id=1, address=CURRENCY_ADDRESS, decimals=6, symbol="USDC", name="USD Coin")


@pytest.fixture
def currency_9() -> Token:
    """Output currency с той же точностью, что и collateral (9 decimals)."""
    return Token(chain_id=1, address=CURRENCY_ADDRESS, decimals=9, symbol="USD9", name="USD 9")
