"""
Domain models and value objects.

Contains the tranche-bond entities: Token, CurrencyAmount, Percent, Price,
snapshot models, Tranche and Bond.
"""

from src.core.domain.bond import MIN_TRANCHES, TRANCHE_RATIO_GRANULARITY, Bond
from src.core.domain.snapshots import BondData, TokenData, TrancheData
from src.core.domain.token import Token, address_equals
from src.core.domain.tranche import Tranche
from src.core.domain.units import CurrencyAmount, Percent, Price

__all__ = [
    # Token
    "Token",
    "address_equals",
    # Units
    "CurrencyAmount",
    "Percent",
    "Price",
    # Snapshots
    "TokenData",
    "TrancheData",
    "BondData",
    # Entities
    "Tranche",
    "Bond",
    "TRANCHE_RATIO_GRANULARITY",
    "MIN_TRANCHES",
]
