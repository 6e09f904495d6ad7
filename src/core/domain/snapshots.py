"""
Snapshots — point-in-time состояние облигации из индексатора

Immutable Pydantic модели входных данных для Bond/Tranche. Поля принимают
как camelCase (формат индексатора), так и snake_case имена. Целые значения
могут приходить десятичными строками (uint256 не помещается в JSON number)
и приводятся к int.

Frozen-поля (*AtMaturity) до maturity отсутствуют или равны 0.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class _SnapshotModel(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


# =============================================================================
# TOKEN DATA
# =============================================================================


class TokenData(_SnapshotModel):
    """Метаданные и supply токена (collateral или tranche token)."""

    id: str = Field(..., min_length=1, description="Адрес токена")
    symbol: str = Field(default="", description="Тикер")
    name: str = Field(default="", description="Имя токена")
    decimals: int = Field(..., ge=0, le=255)
    total_supply: int = Field(default=0, ge=0, description="Total supply в base units")


# =============================================================================
# TRANCHE DATA
# =============================================================================


class TrancheData(_SnapshotModel):
    """
    Состояние одного транша.

    ratio выражен в долях TRANCHE_RATIO_GRANULARITY (1000). Сумма ratio всех
    траншей облигации равна granularity; это предусловие данных, модель
    его не проверяет.
    """

    id: str = Field(..., min_length=1, description="Адрес транша")
    index: int = Field(..., ge=0, description="Позиция по seniority (0 = senior)")
    ratio: int = Field(..., ge=0, le=1000)
    total_collateral: int = Field(..., ge=0)
    total_collateral_at_maturity: Optional[int] = Field(default=None, ge=0)
    total_supply_at_maturity: Optional[int] = Field(default=None, ge=0)
    token: TokenData


# =============================================================================
# BOND DATA
# =============================================================================


class BondData(_SnapshotModel):
    """Состояние облигации со всеми траншами."""

    id: str = Field(..., min_length=1, description="Адрес BondController")
    creator: Optional[str] = Field(default=None)
    start_date: int = Field(..., ge=0, description="Unix timestamp (сек)")
    maturity_date: int = Field(..., ge=0, description="Запланированная maturity (сек)")
    matured_date: Optional[int] = Field(default=None, ge=0)
    collateral: TokenData
    tranches: list[TrancheData]
    is_mature: bool = False
    total_debt: int = Field(..., ge=0)
    total_debt_at_maturity: Optional[int] = Field(default=None, ge=0)
    total_collateral: int = Field(..., ge=0)
    total_collateral_at_maturity: Optional[int] = Field(default=None, ge=0)
    deposit_limit: Optional[int] = Field(default=None, ge=0)

    @field_validator("tranches")
    @classmethod
    def validate_unique_indexes(cls, v: list[TrancheData]) -> list[TrancheData]:
        """Индексы траншей не должны повторяться (seniority однозначна)."""
        indexes = [t.index for t in v]
        if len(indexes) != len(set(indexes)):
            raise ValueError(f"duplicate tranche index in {indexes}")
        return v
