"""
JSON Schema Contract Validators

Валидация данных, пересекающих границу движка (API layer, solver), против
формальных JSON Schema контрактов. Целые величины передаются десятичными
строками: uint256 не помещается в JSON number без потери точности.

Схемы поставляются в пакете (каталог schema/ рядом с модулем):
- pool_state.json    снимок пула (PoolState.to_contract)
- swap_request.json  входящий запрос свопа (SwapRequest.from_contract)
- trade_info.json    квитанция сделки (TradeInfo.to_contract)
"""

import json
from pathlib import Path
from typing import Any, ClassVar, Dict, Iterator

import jsonschema
from jsonschema import Draft202012Validator

SCHEMA_DIR = Path(__file__).parent / "schema"


# =============================================================================
# SCHEMA LOADER
# =============================================================================


class SchemaLoader:
    """
    Загрузчик и кэш контрактных схем.

    Каждая схема проходит meta-validation (Draft 2020-12) один раз, при
    первой загрузке.
    """

    def __init__(self, schema_dir: Path | None = None):
        self._schema_dir = schema_dir or SCHEMA_DIR
        if not self._schema_dir.is_dir():
            raise RuntimeError(f"Schema directory not found: {self._schema_dir}")
        self._cache: Dict[str, Dict[str, Any]] = {}

    def load_schema(self, schema_name: str) -> Dict[str, Any]:
        """
        Схема по имени контракта (без расширения .json).

        Raises:
            FileNotFoundError: Файла схемы нет
            ValueError: Схема не проходит meta-validation
        """
        cached = self._cache.get(schema_name)
        if cached is not None:
            return cached

        path = self._schema_dir / f"{schema_name}.json"
        if not path.is_file():
            raise FileNotFoundError(f"Schema not found: {path}")
        schema = json.loads(path.read_text(encoding="utf-8"))

        try:
            Draft202012Validator.check_schema(schema)
        except jsonschema.SchemaError as exc:
            raise ValueError(f"Invalid JSON Schema in {path.name}: {exc.message}") from exc

        self._cache[schema_name] = schema
        return schema


_LOADER = SchemaLoader()


# =============================================================================
# CONTRACT VALIDATORS
# =============================================================================


class ContractValidator:
    """
    Валидатор одного контракта.

    Подклассы задают только SCHEMA_NAME.
    """

    SCHEMA_NAME: ClassVar[str]

    def __init__(self, loader: SchemaLoader | None = None):
        self.schema = (loader or _LOADER).load_schema(self.SCHEMA_NAME)
        self._validator = Draft202012Validator(self.schema)

    def validate(self, data: Dict[str, Any]) -> None:
        """
        Raises:
            jsonschema.ValidationError: Первое найденное нарушение схемы
        """
        self._validator.validate(data)

    def is_valid(self, data: Dict[str, Any]) -> bool:
        return self._validator.is_valid(data)

    def iter_errors(self, data: Dict[str, Any]) -> Iterator[jsonschema.ValidationError]:
        return self._validator.iter_errors(data)

    def describe_errors(self, data: Dict[str, Any]) -> list[str]:
        """Все нарушения в виде "путь: сообщение" (пустой список для валидных данных)."""
        return [
            f"{'/'.join(str(p) for p in error.absolute_path) or '<root>'}: {error.message}"
            for error in self._validator.iter_errors(data)
        ]


class PoolStateValidator(ContractValidator):
    SCHEMA_NAME = "pool_state"


class SwapRequestValidator(ContractValidator):
    SCHEMA_NAME = "swap_request"


class TradeInfoValidator(ContractValidator):
    SCHEMA_NAME = "trade_info"


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================


def validate_pool_state(data: Dict[str, Any]) -> None:
    """Проверка pool_state; jsonschema.ValidationError при нарушении."""
    PoolStateValidator().validate(data)


def validate_swap_request(data: Dict[str, Any]) -> None:
    """Проверка swap_request; jsonschema.ValidationError при нарушении."""
    SwapRequestValidator().validate(data)


def validate_trade_info(data: Dict[str, Any]) -> None:
    """Проверка trade_info; jsonschema.ValidationError при нарушении."""
    TradeInfoValidator().validate(data)
