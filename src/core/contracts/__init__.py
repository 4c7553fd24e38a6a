"""
Contract Validation Module

JSON Schema контракты: результат расчёта, payload журнала сделок,
сохранённые настройки калькулятора.
"""

from .validators import (
    CALCULATOR_SETTINGS,
    CONTRACTS,
    JOURNAL_ENTRY,
    SIZING_RESULT,
    CalculatorSettingsValidator,
    ContractValidator,
    JournalEntryValidator,
    SchemaLoader,
    SizingResultValidator,
    describe_errors,
    get_validator,
    validate_calculator_settings,
    validate_journal_entry,
    validate_sizing_result,
)

__all__ = [
    # Contract names
    "CALCULATOR_SETTINGS",
    "CONTRACTS",
    "JOURNAL_ENTRY",
    "SIZING_RESULT",
    # Classes
    "SchemaLoader",
    "ContractValidator",
    "SizingResultValidator",
    "JournalEntryValidator",
    "CalculatorSettingsValidator",
    # Functions
    "describe_errors",
    "get_validator",
    "validate_sizing_result",
    "validate_journal_entry",
    "validate_calculator_settings",
]
