"""
JSON Schema Contract Validators

Контракты данных, которые покидают процесс или читаются с диска:
- sizing_result.json — результат расчёта в payload журнала
- journal_entry.json — payload вебхука журнала (open/close)
- calculator_settings.json — файл настроек калькулятора

Схемы лежат в contracts/schema/ в корне проекта и проходят meta-валидацию
Draft 2020-12 при первой загрузке. Скомпилированные валидаторы кэшируются
по имени контракта.
"""

import json
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Final, Iterator, List

import jsonschema
from jsonschema import Draft202012Validator, FormatChecker, ValidationError

SIZING_RESULT: Final[str] = "sizing_result"
JOURNAL_ENTRY: Final[str] = "journal_entry"
CALCULATOR_SETTINGS: Final[str] = "calculator_settings"

CONTRACTS: Final[tuple[str, ...]] = (SIZING_RESULT, JOURNAL_ENTRY, CALCULATOR_SETTINGS)

DEFAULT_SCHEMA_DIR: Final[Path] = (
    Path(__file__).resolve().parents[3] / "contracts" / "schema"
)


# =============================================================================
# SCHEMA LOADER
# =============================================================================


class SchemaLoader:
    """
    Чтение JSON Schema файлов контрактов.

    Args:
        schema_dir: каталог схем (по умолчанию contracts/schema/ проекта)
    """

    def __init__(self, schema_dir: Path | None = None):
        self._schema_dir = schema_dir or DEFAULT_SCHEMA_DIR
        if not self._schema_dir.is_dir():
            raise RuntimeError(f"Schema directory not found: {self._schema_dir}")

    @property
    def schema_dir(self) -> Path:
        return self._schema_dir

    def load_schema(self, schema_name: str) -> Dict[str, Any]:
        """
        Загрузка и meta-валидация схемы.

        Args:
            schema_name: имя контракта без расширения ('journal_entry')

        Raises:
            FileNotFoundError: файла схемы нет
            ValueError: файл не является валидной JSON Schema
        """
        schema_path = self._schema_dir / f"{schema_name}.json"
        if not schema_path.exists():
            raise FileNotFoundError(f"Schema not found: {schema_path}")

        with open(schema_path, "r", encoding="utf-8") as f:
            schema = json.load(f)

        try:
            Draft202012Validator.check_schema(schema)
        except jsonschema.SchemaError as e:
            raise ValueError(f"Invalid JSON Schema in {schema_name}.json: {e.message}") from e

        return schema


@lru_cache(maxsize=None)
def get_validator(schema_name: str) -> Draft202012Validator:
    """Скомпилированный валидатор контракта из каталога проекта (кэшируется)."""
    schema = SchemaLoader().load_schema(schema_name)
    return Draft202012Validator(schema, format_checker=FormatChecker())


def describe_errors(errors: Iterator[ValidationError]) -> List[str]:
    """Ошибки в виде 'путь: сообщение', отсортированные по пути."""
    described = []
    for error in errors:
        path = "/".join(str(part) for part in error.absolute_path) or "<root>"
        described.append(f"{path}: {error.message}")
    return sorted(described)


# =============================================================================
# CONTRACT VALIDATORS
# =============================================================================


class ContractValidator:
    """Проверка данных против одного контракта."""

    schema_name: str = ""

    def __init__(self, schema_name: str | None = None):
        name = schema_name or self.schema_name
        if name not in CONTRACTS:
            raise ValueError(f"Unknown contract: {name!r}")
        self.schema_name = name
        self.validator = get_validator(name)

    @property
    def schema(self) -> Dict[str, Any]:
        return self.validator.schema

    def validate(self, data: Dict[str, Any]) -> None:
        """
        Raises:
            ValidationError: данные не соответствуют контракту
        """
        self.validator.validate(data)

    def is_valid(self, data: Dict[str, Any]) -> bool:
        return self.validator.is_valid(data)

    def iter_errors(self, data: Dict[str, Any]) -> Iterator[ValidationError]:
        return self.validator.iter_errors(data)

    def error_messages(self, data: Dict[str, Any]) -> List[str]:
        return describe_errors(self.iter_errors(data))


class SizingResultValidator(ContractValidator):
    schema_name = SIZING_RESULT


class JournalEntryValidator(ContractValidator):
    """Payload журнала; вложенный sizing проверяется отдельно."""

    schema_name = JOURNAL_ENTRY


class CalculatorSettingsValidator(ContractValidator):
    schema_name = CALCULATOR_SETTINGS


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================


def validate_sizing_result(data: Dict[str, Any]) -> None:
    """
    Raises:
        ValidationError: результат не соответствует sizing_result
    """
    SizingResultValidator().validate(data)


def validate_journal_entry(data: Dict[str, Any]) -> None:
    """
    Валидация payload журнала сделок вместе с вложенным sizing.

    Raises:
        ValidationError: payload или его sizing не соответствуют контракту
    """
    JournalEntryValidator().validate(data)
    if "sizing" in data:
        validate_sizing_result(data["sizing"])


def validate_calculator_settings(data: Dict[str, Any]) -> None:
    """
    Raises:
        ValidationError: файл настроек не соответствует контракту
    """
    CalculatorSettingsValidator().validate(data)
