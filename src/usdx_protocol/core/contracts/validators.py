"""
JSON Schema Contract Validators

Модуль для валидации JSON payload, пересекающих границу доменов через
relayer, согласно формальным JSON Schema контрактам.
Использует библиотеку jsonschema (Draft 2020-12).

Схемы:
- log_entry.json          — конверт записи event log
- deposited.json          — событие Deposited (hub)
- withdrawn.json          — событие Withdrawn (hub)
- mint_requested.json     — событие MintRequested (spoke)
- transfer_initiated.json — событие TransferInitiated (bridge)
- position_snapshot.json  — attested позиция hub, доставляемая на spoke
"""

import json
from pathlib import Path
from typing import Any, Dict, Final, Mapping

import jsonschema
from jsonschema import Draft202012Validator


# =============================================================================
# SCHEMA LOADER
# =============================================================================


class SchemaLoader:
    """
    Загрузчик JSON Schema файлов.

    Схемы поставляются внутри пакета (contracts/schema/).
    """

    def __init__(self):
        self._schema_dir = Path(__file__).parent / "schema"
        if not self._schema_dir.exists():
            raise RuntimeError(f"Schema directory not found: {self._schema_dir}")

        # Кэш загруженных схем
        self._schemas: Dict[str, Dict[str, Any]] = {}

    def load_schema(self, schema_name: str) -> Dict[str, Any]:
        """
        Загрузка JSON Schema файла.

        Args:
            schema_name: Имя схемы без расширения (например, 'log_entry')

        Returns:
            Загруженная схема как dict

        Raises:
            FileNotFoundError: Если файл схемы не найден
            ValueError: Если файл не является валидной JSON Schema
        """
        if schema_name in self._schemas:
            return self._schemas[schema_name]

        schema_path = self._schema_dir / f"{schema_name}.json"
        if not schema_path.exists():
            raise FileNotFoundError(f"Schema not found: {schema_path}")

        with open(schema_path, "r", encoding="utf-8") as f:
            schema = json.load(f)

        # Meta-validation самой схемы
        try:
            Draft202012Validator.check_schema(schema)
        except jsonschema.SchemaError as e:
            raise ValueError(f"Invalid JSON Schema in {schema_name}.json: {e}")

        self._schemas[schema_name] = schema
        return schema


# Глобальный экземпляр загрузчика
_SCHEMA_LOADER = SchemaLoader()


# =============================================================================
# CONTRACT VALIDATORS
# =============================================================================


class ContractValidator:
    """
    Базовый класс для валидаторов контрактов.

    Инкапсулирует логику валидации данных против JSON Schema.
    """

    def __init__(self, schema_name: str):
        self.schema_name = schema_name
        self.schema = _SCHEMA_LOADER.load_schema(schema_name)
        self.validator = Draft202012Validator(self.schema)

    def validate(self, data: Mapping[str, Any]) -> None:
        """
        Валидация данных против схемы.

        Raises:
            jsonschema.ValidationError: Если данные не соответствуют схеме
        """
        self.validator.validate(data)

    def is_valid(self, data: Mapping[str, Any]) -> bool:
        return self.validator.is_valid(data)

    def iter_errors(self, data: Mapping[str, Any]):
        return self.validator.iter_errors(data)


class LogEntryValidator(ContractValidator):
    def __init__(self):
        super().__init__("log_entry")


class PositionSnapshotValidator(ContractValidator):
    def __init__(self):
        super().__init__("position_snapshot")


# Схемы событий, которые relayer доставляет между доменами.
# Остальные события проверяются только по конверту.
RELAYED_EVENT_SCHEMAS: Final[Mapping[str, str]] = {
    "Deposited": "deposited",
    "Withdrawn": "withdrawn",
    "MintRequested": "mint_requested",
    "TransferInitiated": "transfer_initiated",
}

_EVENT_VALIDATORS: Dict[str, ContractValidator] = {}


def _event_validator(kind: str) -> ContractValidator:
    if kind not in _EVENT_VALIDATORS:
        _EVENT_VALIDATORS[kind] = ContractValidator(RELAYED_EVENT_SCHEMAS[kind])
    return _EVENT_VALIDATORS[kind]


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================


def validate_log_entry(data: Mapping[str, Any]) -> None:
    """
    Валидация записи event log: конверт + схема события (для relayed событий).

    Raises:
        jsonschema.ValidationError: Если данные не соответствуют схеме
    """
    LogEntryValidator().validate(data)
    kind = data["event"]["kind"]
    if kind in RELAYED_EVENT_SCHEMAS:
        _event_validator(kind).validate(data["event"])


def validate_position_snapshot(data: Mapping[str, Any]) -> None:
    """
    Валидация attested позиции перед отправкой на spoke.

    Raises:
        jsonschema.ValidationError: Если данные не соответствуют схеме
    """
    PositionSnapshotValidator().validate(data)
