"""
Errors — иерархия исключений tranche-bond ядра

Все исключения поднимаются синхронно в точке нарушения предусловия.
Ядро их не перехватывает: сущности immutable, откатывать нечего.

Виды ошибок:
- InvalidStructure: неверное число/порядок траншей или venue при конструировании
- InvalidInput: чужая валюта/токен передан в операцию
- LimitExceeded: превышен deposit limit облигации
- InsufficientCollateral: redemption превышает обеспечение
- InsufficientDeposit: sale sequencing не достигает desired output
- NotMature: mature-only операция на live облигации
- NoLiquidity: нулевой output при котировке
- InvalidPayload: сырой snapshot нарушает JSON Schema контракт
"""


class TrancheBondError(Exception):
    """Базовое исключение для всех ошибок tranche-bond ядра."""

    pass


class InvalidStructure(TrancheBondError, ValueError):
    """Неверная структура облигации или набора venue при конструировании."""

    pass


class InvalidInput(TrancheBondError, ValueError):
    """Операция получила amount в неподходящей валюте или неверный вектор."""

    pass


class LimitExceeded(TrancheBondError):
    """Депозит превысил бы deposit limit облигации."""

    pass


class InsufficientCollateral(TrancheBondError):
    """Запрошенный redemption больше доступного обеспечения."""

    pass


class InsufficientDeposit(TrancheBondError):
    """
    Депозит не покрывает desired output даже при продаже всех траншей.

    Поднимается из LoanManager.get_sales после полного прохода по траншам.
    """

    pass


class NotMature(TrancheBondError):
    """Операция допустима только после maturity облигации."""

    pass


class NoLiquidity(TrancheBondError):
    """Venue не может отдать запрошенный output (или суммарный output равен 0)."""

    pass


class InvalidPayload(TrancheBondError, ValueError):
    """
    Сырой snapshot индексатора не соответствует JSON Schema контракту.

    Attributes:
        contract: Имя нарушенного контракта (например 'bond_snapshot')
        violations: Нарушения в виде '<json path>: <сообщение>'
    """

    def __init__(self, contract: str, violations: list[str]):
        self.contract = contract
        self.violations = violations
        super().__init__(f"Invalid {contract}: " + "; ".join(violations))
