"""
Sizing — входные и выходные записи расчёта размера позиции

Immutable Pydantic модели входа (TradeInputs, ExistingPosition) и
frozen dataclass результата (SizingResult).

Все записи создаются заново на каждый расчёт и отбрасываются после него:
состояния между вызовами нет.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, NamedTuple, Optional

from pydantic import BaseModel, Field, field_validator


# =============================================================================
# ENUMS
# =============================================================================


class Direction(str, Enum):
    """
    Направление позиции.

    Выводится только из цен: LONG если entry < stop, иначе SHORT.
    Вызывающая сторона направление не передаёт.
    """

    LONG = "long"
    SHORT = "short"

    @classmethod
    def from_prices(cls, entry_price: float, stop_loss_price: float) -> "Direction":
        """
        Examples:
            >>> Direction.from_prices(95.0, 100.0)
            <Direction.LONG: 'long'>
            >>> Direction.from_prices(100.0, 95.0)
            <Direction.SHORT: 'short'>
        """
        if entry_price < stop_loss_price:
            return cls.LONG
        return cls.SHORT


# =============================================================================
# INPUT MODELS
# =============================================================================


class TradeInputs(BaseModel):
    """
    Параметры сделки для расчёта размера позиции.

    Ставки комиссий — доли от notional (0.00055 = 0.055%), не проценты.
    Числовые поля принимают строки формы ("100.5") и отвергают NaN/Inf.
    """

    entry_price: float = Field(..., gt=0, allow_inf_nan=False, description="Цена входа")
    stop_loss_price: float = Field(
        ..., gt=0, allow_inf_nan=False, description="Цена stop-loss"
    )
    risk_amount: float = Field(
        ..., gt=0, allow_inf_nan=False, description="Риск (USD), включая комиссии"
    )
    available_capital: float = Field(
        ..., gt=0, allow_inf_nan=False, description="Доступный капитал (USD)"
    )
    entry_fee_rate: float = Field(
        ..., ge=0, allow_inf_nan=False, description="Ставка комиссии входа (доля)"
    )
    exit_fee_rate: float = Field(
        ..., ge=0, allow_inf_nan=False, description="Ставка комиссии выхода (доля)"
    )
    decimal_places: int = Field(
        2, ge=0, le=8, description="Знаков после запятой для размеров"
    )

    model_config = {"frozen": True}

    @field_validator("stop_loss_price")
    @classmethod
    def validate_stop_differs_from_entry(cls, v: float, info) -> float:
        """Stop-loss не может совпадать с входом (нулевая разница цен)."""
        if "entry_price" in info.data and v == info.data["entry_price"]:
            raise ValueError("stop_loss_price must differ from entry_price")
        return v

    @property
    def direction(self) -> Direction:
        return Direction.from_prices(self.entry_price, self.stop_loss_price)

    @property
    def price_difference(self) -> float:
        return abs(self.entry_price - self.stop_loss_price)


class ExistingPosition(BaseModel):
    """
    Уже открытая позиция против того же stop-loss и того же общего
    бюджета риска (режим compounding).
    """

    size: float = Field(..., ge=0, allow_inf_nan=False, description="Размер позиции")
    entry_price: float = Field(
        ..., gt=0, allow_inf_nan=False, description="Цена входа позиции"
    )

    model_config = {"frozen": True}


# =============================================================================
# RESULT
# =============================================================================


class SolverDiagnostics(NamedTuple):
    """Неокруглённые значения расчёта для диагностики и проверок."""

    position_size: float
    total_fees: float
    actual_risk: float
    tolerance_amount: float
    leverage: float
    iterations: int
    converged: bool


@dataclass(frozen=True)
class SizingResult:
    """
    Результат расчёта размера позиции.

    Размеры и суммы риска округлены до decimal_places; плечо, комиссии,
    цены ликвидации и средняя цена входа — до 2 знаков.

    В стандартном режиме заполнен max_risk_after_fees, в режиме compounding —
    remaining_risk, weighted_average_entry, combined_position_size,
    existing_risk.
    """

    direction: Direction
    raw_position_size: float
    position_size: float
    total_fees: float
    leverage: float
    liquidation_price: float
    liquidation_before_stop: bool
    decimal_places: int
    diagnostics: SolverDiagnostics

    # Стандартный режим
    max_risk_after_fees: Optional[float] = None

    # Режим compounding
    remaining_risk: Optional[float] = None
    weighted_average_entry: Optional[float] = None
    combined_position_size: Optional[float] = None
    existing_risk: Optional[float] = None

    @property
    def is_compounding(self) -> bool:
        return self.combined_position_size is not None

    def to_payload(self) -> dict[str, Any]:
        """
        Сериализация для журнала сделок.

        Соответствует схеме contracts/schema/sizing_result.json.
        Поля compounding включаются только в режиме compounding.
        """
        payload: dict[str, Any] = {
            "mode": "compounding" if self.is_compounding else "standard",
            "direction": self.direction.value,
            "raw_position_size": self.raw_position_size,
            "position_size": self.position_size,
            "total_fees": self.total_fees,
            "leverage": self.leverage,
            "liquidation_price": self.liquidation_price,
            "liquidation_before_stop": self.liquidation_before_stop,
            "decimal_places": self.decimal_places,
        }

        if self.is_compounding:
            payload["remaining_risk"] = self.remaining_risk
            payload["weighted_average_entry"] = self.weighted_average_entry
            payload["combined_position_size"] = self.combined_position_size
            payload["existing_risk"] = self.existing_risk
        else:
            payload["max_risk_after_fees"] = self.max_risk_after_fees

        return payload
