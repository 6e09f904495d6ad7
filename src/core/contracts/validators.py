"""
Snapshot Contracts — JSON Schema проверка сырых payload'ов индексатора

Payload проверяется до построения pydantic моделей. Все нарушения схемы
собираются сразу и поднимаются одним InvalidPayload с путями до полей
(например "$.tranches[1].token: 'token' is a required property"), чтобы
вызывающий код видел весь список, а не первую ошибку.

Контракт проверяет только форму данных. Доменные правила (минимум два
транша, уникальные индексы, ratio <= granularity) проверяют Bond и модели.

uint256 значения принимаются как неотрицательные integer или десятичные строки.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Mapping

import jsonschema
from jsonschema import Draft202012Validator

from src.core.errors import InvalidPayload

logger = logging.getLogger("TrancheBond.Contracts")


# =============================================================================
# SCHEMA LOADER
# =============================================================================


class SchemaLoader:
    """
    Загрузчик и кэш JSON Schema файлов из каталога schema/ рядом с модулем.

    Каждая схема проходит meta-валидацию (Draft 2020-12) при первой загрузке.
    """

    def __init__(self, schema_dir: Path | None = None):
        self._schema_dir = schema_dir or Path(__file__).parent / "schema"
        if not self._schema_dir.exists():
            raise RuntimeError(f"Schema directory not found: {self._schema_dir}")
        self._schemas: Dict[str, Dict[str, Any]] = {}

    def load_schema(self, schema_name: str) -> Dict[str, Any]:
        """
        Args:
            schema_name: Имя схемы без расширения (например, 'bond_snapshot')

        Raises:
            FileNotFoundError: Файл схемы не найден
            ValueError: Файл не является валидной JSON Schema
        """
        if schema_name not in self._schemas:
            schema_path = self._schema_dir / f"{schema_name}.json"
            if not schema_path.exists():
                raise FileNotFoundError(f"Schema not found: {schema_path}")

            schema = json.loads(schema_path.read_text(encoding="utf-8"))
            try:
                Draft202012Validator.check_schema(schema)
            except jsonschema.SchemaError as e:
                raise ValueError(f"Invalid JSON Schema in {schema_name}.json: {e.message}") from e
            self._schemas[schema_name] = schema

        return self._schemas[schema_name]


_SCHEMA_LOADER = SchemaLoader()


# =============================================================================
# SNAPSHOT CONTRACT
# =============================================================================


class SnapshotContract:
    """
    Контракт одного вида snapshot'а: схема + перевод нарушений в InvalidPayload.

    Args:
        schema_name: Имя схемы в каталоге загрузчика
        loader: SchemaLoader (по умолчанию общий для пакета)
    """

    def __init__(self, schema_name: str, loader: SchemaLoader | None = None):
        self.name = schema_name
        self._validator = Draft202012Validator((loader or _SCHEMA_LOADER).load_schema(schema_name))

    def violations(self, payload: Mapping[str, Any]) -> list[str]:
        """Все нарушения, отсортированные по JSON path; пустой список для валидного payload."""
        errors = sorted(self._validator.iter_errors(payload), key=lambda e: e.json_path)
        return [f"{e.json_path}: {e.message}" for e in errors]

    def check(self, payload: Mapping[str, Any]) -> None:
        """
        Raises:
            InvalidPayload: payload нарушает схему
        """
        violations = self.violations(payload)
        if violations:
            logger.warning("%s rejected: %d violation(s)", self.name, len(violations))
            raise InvalidPayload(self.name, violations)


BOND_SNAPSHOT = SnapshotContract("bond_snapshot")


def validate_bond_snapshot(payload: Mapping[str, Any]) -> None:
    """
    Проверка bond snapshot (облигация со всеми траншами).

    Raises:
        InvalidPayload: payload нарушает bond_snapshot контракт
    """
    BOND_SNAPSHOT.check(payload)
