"""Loans — конверсия tranche токенов в output currency через venue.

- LoanManager: discount measurement и greedy sale sequencing
- Venue протокол и эталонный ConstantProductVenue
"""

from .loan_manager import (
    DISCOUNT_PRECISION,
    SELL_ALL,
    BorrowOutput,
    GetSalesOptions,
    LoanManager,
)
from .venues import (
    DEFAULT_FEE_PIPS,
    FEE_PIPS_DENOMINATOR,
    ConstantProductVenue,
    Venue,
    venue_counter_token,
    venue_involves_token,
    venue_price_of,
)

__all__ = [
    "LoanManager",
    "GetSalesOptions",
    "BorrowOutput",
    "DISCOUNT_PRECISION",
    "SELL_ALL",
    "Venue",
    "ConstantProductVenue",
    "DEFAULT_FEE_PIPS",
    "FEE_PIPS_DENOMINATOR",
    "venue_counter_token",
    "venue_involves_token",
    "venue_price_of",
]
