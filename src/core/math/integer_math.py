"""
Integer Math — точная арифметика в base units

Модуль повторяет целочисленную арифметику on-chain контракта, чтобы off-chain
preview совпадал с on-chain результатом бит в бит:
- Floor / ceil / truncating деление с явной семантикой
- mul_div: сначала все умножения, затем одно деление
- Масштабирование между разной точностью (decimals)
- Усечение отношения до N десятичных знаков

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. Никаких float внутри денежной арифметики
2. Порядок "умножить, затем делить" не переставляется (меняет округление)
3. Деление на ноль поднимает ZeroDivisionError, а не возвращает fallback
4. Все операции детерминированы и воспроизводимы
"""

from typing import Final

# =============================================================================
# КОНСТАНТЫ
# =============================================================================

# Максимальное значение uint256 (sentinel "продать всё" для контрактов)
MAX_UINT256: Final[int] = 2**256 - 1

# Основание десятичного масштабирования
DECIMAL_BASE: Final[int] = 10


# =============================================================================
# ДЕЛЕНИЕ
# =============================================================================


def floor_div(numerator: int, denominator: int) -> int:
    """
    Floor деление для неотрицательных base-unit целых.

    Args:
        numerator: Числитель (>= 0)
        denominator: Знаменатель (> 0)

    Returns:
        floor(numerator / denominator)

    Raises:
        ZeroDivisionError: Если denominator == 0
        ValueError: Если аргументы отрицательные

    Examples:
        >>> floor_div(7, 2)
        3
        >>> floor_div(0, 5)
        0
    """
    validate_non_negative_int(numerator, "numerator")
    validate_non_negative_int(denominator, "denominator")
    if denominator == 0:
        raise ZeroDivisionError("floor_div: denominator is zero")
    return numerator // denominator


def ceil_div(numerator: int, denominator: int) -> int:
    """
    Ceil деление для неотрицательных целых.

    Examples:
        >>> ceil_div(7, 2)
        4
        >>> ceil_div(8, 2)
        4
    """
    validate_non_negative_int(numerator, "numerator")
    validate_non_negative_int(denominator, "denominator")
    if denominator == 0:
        raise ZeroDivisionError("ceil_div: denominator is zero")
    return -(-numerator // denominator)


def trunc_div(numerator: int, denominator: int) -> int:
    """
    Деление с усечением к нулю (знаковое).

    В отличие от `//` в Python, отрицательный результат округляется к нулю,
    как у BigNumber/uint арифметики.

    Examples:
        >>> trunc_div(-7, 2)
        -3
        >>> trunc_div(7, -2)
        -3
        >>> trunc_div(7, 2)
        3
    """
    if denominator == 0:
        raise ZeroDivisionError("trunc_div: denominator is zero")
    quotient = abs(numerator) // abs(denominator)
    if (numerator < 0) != (denominator < 0):
        return -quotient
    return quotient


def mul_div(value: int, multipliers: tuple[int, ...], divisors: tuple[int, ...]) -> int:
    """
    Произведение value на все multipliers, затем floor деление на произведение divisors.

    Для неотрицательных целых floor(floor(a / b) / c) == floor(a / (b * c)),
    поэтому одно деление эквивалентно цепочке делений контракта.

    Args:
        value: Исходное значение в base units
        multipliers: Множители (применяются первыми)
        divisors: Делители (применяются после всех умножений)

    Returns:
        floor(value * prod(multipliers) / prod(divisors))

    Examples:
        >>> mul_div(100_000_000, (200, 30_000_000), (1000, 30_000_000))
        20000000
    """
    numerator = value
    for m in multipliers:
        numerator *= m
    denominator = 1
    for d in divisors:
        denominator *= d
    return floor_div(numerator, denominator)


# =============================================================================
# МАСШТАБИРОВАНИЕ DECIMALS
# =============================================================================


def pow10(exponent: int) -> int:
    """10 ** exponent для неотрицательного exponent."""
    validate_non_negative_int(exponent, "exponent")
    return DECIMAL_BASE**exponent


def align_decimals(
    left_amount: int,
    left_decimals: int,
    right_amount: int,
    right_decimals: int,
) -> tuple[int, int]:
    """
    Приведение двух base-unit значений к общей точности.

    Сторона с меньшей точностью масштабируется вверх на 10^(разница decimals),
    так что сравнение не теряет младших разрядов.

    Returns:
        (left_scaled, right_scaled)

    Examples:
        >>> align_decimals(5, 6, 5_000, 9)
        (5000, 5000)
        >>> align_decimals(1, 9, 1, 9)
        (1, 1)
    """
    if left_decimals < right_decimals:
        return left_amount * pow10(right_decimals - left_decimals), right_amount
    if left_decimals > right_decimals:
        return left_amount, right_amount * pow10(left_decimals - right_decimals)
    return left_amount, right_amount


def truncated_ratio(numerator: int, denominator: int, precision: int) -> float:
    """
    numerator / denominator, усечённое к нулю до шага 1/precision.

    Args:
        numerator: Числитель (может быть отрицательным)
        denominator: Знаменатель (!= 0)
        precision: Масштаб усечения (например 100000 = 5 знаков)

    Returns:
        float вида k / precision

    Examples:
        >>> truncated_ratio(1, 3, 100000)
        0.33333
        >>> truncated_ratio(-1, 3, 100000)
        -0.33333
    """
    return trunc_div(numerator * precision, denominator) / precision


# =============================================================================
# ВАЛИДАЦИЯ
# =============================================================================


def validate_non_negative_int(value: int, name: str = "value") -> None:
    """
    Проверка, что значение неотрицательное целое (bool не принимается).

    Raises:
        TypeError: Если value не int
        ValueError: Если value < 0
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{name} must be an int, got {type(value).__name__}")
    if value < 0:
        raise ValueError(f"{name} must be non-negative, got {value}")
