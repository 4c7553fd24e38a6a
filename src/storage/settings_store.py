"""
Settings Store — сохранённые настройки калькулятора

Последние комиссии, риск, капитал, число знаков, выбор типов комиссий и
список избранных инструментов. Загружаются один раз при старте и
записываются при каждом изменении.

Настройки рекомендательные: отсутствующий или повреждённый файл не мешает
расчёту, вместо него используются значения по умолчанию.
"""

import json
import logging
from pathlib import Path

from jsonschema import ValidationError as SchemaValidationError
from pydantic import BaseModel, Field, ValidationError, field_validator

from src.core.contracts import validate_calculator_settings
from src.core.math.fees import (
    DEFAULT_LIMIT_FEE_PCT,
    DEFAULT_MARKET_FEE_PCT,
    FeeSchedule,
    FeeSelection,
)

logger = logging.getLogger(__name__)


DEFAULT_SETTINGS_FILENAME = "trading_calculator_settings.json"


class SettingsStoreError(Exception):
    """Не удалось записать настройки."""

    pass


# =============================================================================
# SETTINGS MODEL
# =============================================================================


class CalculatorSettings(BaseModel):
    """
    Настройки калькулятора.

    Комиссии хранятся в процентах, как их вводит пользователь.
    """

    market_fee_pct: float = Field(
        DEFAULT_MARKET_FEE_PCT, ge=0, allow_inf_nan=False, description="Taker fee (%)"
    )
    limit_fee_pct: float = Field(
        DEFAULT_LIMIT_FEE_PCT, ge=0, allow_inf_nan=False, description="Maker fee (%)"
    )
    risk_amount: float = Field(50.0, gt=0, allow_inf_nan=False, description="Риск (USDT)")
    available_capital: float = Field(
        1000.0, gt=0, allow_inf_nan=False, description="Капитал (USDT)"
    )

    is_market_entry: bool = True
    is_limit_entry: bool = False
    is_market_exit: bool = True
    is_limit_exit: bool = False

    decimal_places: int = Field(2, ge=0, le=8)
    is_always_on_top: bool = False

    selected_symbol: str = Field("BTCUSDT", min_length=1)
    use_live_price: bool = True
    favorite_symbols: tuple[str, ...] = ()

    model_config = {"frozen": True, "extra": "forbid"}

    @field_validator("favorite_symbols")
    @classmethod
    def dedupe_favorites(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        """Избранное без повторов, порядок первого появления."""
        return tuple(dict.fromkeys(v))

    def fee_schedule(self) -> FeeSchedule:
        return FeeSchedule.from_percent(self.market_fee_pct, self.limit_fee_pct)

    def entry_selection(self) -> FeeSelection:
        return FeeSelection(is_market=self.is_market_entry, is_limit=self.is_limit_entry)

    def exit_selection(self) -> FeeSelection:
        return FeeSelection(is_market=self.is_market_exit, is_limit=self.is_limit_exit)

    def add_favorite(self, symbol: str) -> "CalculatorSettings":
        """Новые настройки с символом в избранном (без дублей)."""
        if symbol in self.favorite_symbols:
            return self
        return self.model_copy(update={"favorite_symbols": self.favorite_symbols + (symbol,)})

    def remove_favorite(self, symbol: str) -> "CalculatorSettings":
        """Новые настройки без символа в избранном."""
        remaining = tuple(s for s in self.favorite_symbols if s != symbol)
        return self.model_copy(update={"favorite_symbols": remaining})


# =============================================================================
# JSON STORE
# =============================================================================


class JsonSettingsStore:
    """
    Хранение настроек в JSON файле.

    Args:
        path: путь к файлу настроек
    """

    def __init__(self, path: Path | str = DEFAULT_SETTINGS_FILENAME):
        self.path = Path(path)

    def load(self) -> CalculatorSettings:
        """
        Загрузка настроек.

        Отсутствующий, нечитаемый или невалидный файл → настройки по умолчанию.
        """
        if not self.path.exists():
            logger.debug("Settings file %s not found, using defaults", self.path)
            return CalculatorSettings()

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
            validate_calculator_settings(data)
            return CalculatorSettings.model_validate(data)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Cannot read settings file %s: %s, using defaults", self.path, e)
        except (SchemaValidationError, ValidationError) as e:
            logger.warning("Invalid settings in %s: %s, using defaults", self.path, e)

        return CalculatorSettings()

    def save(self, settings: CalculatorSettings) -> None:
        """
        Запись настроек.

        Raises:
            SettingsStoreError: настройки не проходят контракт или файл
                не удалось записать
        """
        data = settings.model_dump(mode="json")
        try:
            validate_calculator_settings(data)
        except SchemaValidationError as e:
            logger.error("Refusing to save invalid settings: %s", e.message)
            raise SettingsStoreError(f"Invalid settings: {e.message}") from e

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
        except OSError as e:
            logger.error("Cannot write settings file %s: %s", self.path, e)
            raise SettingsStoreError(f"Cannot write settings to {self.path}: {e}") from e

    def update(self, settings: CalculatorSettings, **changes) -> CalculatorSettings:
        """
        Применение изменений с валидацией и немедленной записью.

        Raises:
            pydantic.ValidationError: если изменения невалидны (файл не трогается)
            SettingsStoreError: если файл не удалось записать
        """
        updated = CalculatorSettings.model_validate({**settings.model_dump(), **changes})
        self.save(updated)
        return updated
