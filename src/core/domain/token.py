"""
Token — идентичность токена

Immutable Pydantic модель: chain id + address + decimals (+ отображаемые
symbol/name). Используется только для сравнения на равенство и для
маркировки CurrencyAmount. Равенство определяется парой
(chain_id, address в нижнем регистре); symbol/name на равенство не влияют.
"""

from typing import Optional

from pydantic import BaseModel, Field


def address_equals(a: str, b: str) -> bool:
    """Сравнение адресов без учёта регистра (checksum vs lower-case)."""
    return a.lower() == b.lower()


class Token(BaseModel):
    """
    Идентичность ERC20-подобного токена.

    Immutable модель (frozen=True). Все количества этого токена выражаются
    целыми base units (10^-decimals от отображаемой единицы).
    """

    chain_id: int = Field(..., ge=1, description="Идентификатор сети")
    address: str = Field(..., min_length=1, description="Адрес токена")
    decimals: int = Field(..., ge=0, le=255, description="Точность (число знаков)")
    symbol: Optional[str] = Field(default=None, description="Тикер (только для отображения)")
    name: Optional[str] = Field(default=None, description="Имя (только для отображения)")

    model_config = {"frozen": True}

    def equals(self, other: "Token") -> bool:
        """Тот же токен: совпадают chain_id и address."""
        return self.chain_id == other.chain_id and address_equals(self.address, other.address)

    def sorts_before(self, other: "Token") -> bool:
        """
        Порядок токенов в паре (token0 < token1 по адресу).

        Raises:
            ValueError: Если токены совпадают или из разных сетей
        """
        if self.chain_id != other.chain_id:
            raise ValueError("Tokens are on different chains")
        if address_equals(self.address, other.address):
            raise ValueError("Tokens are identical")
        return self.address.lower() < other.address.lower()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Token):
            return NotImplemented
        return self.equals(other)

    def __hash__(self) -> int:
        return hash((self.chain_id, self.address.lower()))

    def __str__(self) -> str:
        return self.symbol or self.address
