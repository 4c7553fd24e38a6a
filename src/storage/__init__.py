"""
Storage — сохранённые настройки калькулятора.
"""

from src.storage.settings_store import (
    CalculatorSettings,
    JsonSettingsStore,
    SettingsStoreError,
)

__all__ = [
    "CalculatorSettings",
    "JsonSettingsStore",
    "SettingsStoreError",
]
