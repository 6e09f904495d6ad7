"""
Core math modules

Целочисленные примитивы для base-unit арифметики с семантикой контракта.
"""

from src.core.math.integer_math import (
    DECIMAL_BASE,
    MAX_UINT256,
    align_decimals,
    ceil_div,
    floor_div,
    mul_div,
    pow10,
    trunc_div,
    truncated_ratio,
    validate_non_negative_int,
)

__all__ = [
    # Constants
    "DECIMAL_BASE",
    "MAX_UINT256",
    # Division
    "floor_div",
    "ceil_div",
    "trunc_div",
    "mul_div",
    # Decimals
    "pow10",
    "align_decimals",
    "truncated_ratio",
    # Validation
    "validate_non_negative_int",
]
