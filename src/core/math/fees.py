"""
Fees — комиссии биржи для входа и выхода

Модуль описывает двухуровневую модель комиссий:
- MARKET (taker) — исполнение по рынку
- LIMIT (maker) — исполнение лимитным ордером

Комиссия каждого плеча всегда считается от notional: size × price × rate,
и никогда от суммы риска напрямую.

Пользователь вводит комиссии в процентах (0.055 = 0.055%), ядро работает
с долями (0.00055).
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Final

from src.core.errors import MissingFeeSelection
from src.core.math.numerical_safeguards import validate_non_negative

logger = logging.getLogger(__name__)


# Комиссии по умолчанию (проценты), как в настройках калькулятора
DEFAULT_MARKET_FEE_PCT: Final[float] = 0.055
DEFAULT_LIMIT_FEE_PCT: Final[float] = 0.02


# =============================================================================
# ТИПЫ
# =============================================================================


class FeeType(str, Enum):
    """Тип комиссии плеча"""

    MARKET = "MARKET"  # taker
    LIMIT = "LIMIT"  # maker


class FeeLeg(str, Enum):
    """Плечо сделки, на котором взимается комиссия"""

    ENTRY = "entry"
    EXIT = "exit"


def pct_to_fraction(pct: float) -> float:
    """
    Конверсия процента в долю.

    Examples:
        >>> pct_to_fraction(0.055)
        0.00055
        >>> pct_to_fraction(0.0)
        0.0
    """
    return pct / 100.0


@dataclass(frozen=True)
class FeeSchedule:
    """Ставки комиссий биржи (доли, не проценты)."""

    market_fee_rate: float
    limit_fee_rate: float

    def __post_init__(self) -> None:
        validate_non_negative(self.market_fee_rate, "market_fee_rate")
        validate_non_negative(self.limit_fee_rate, "limit_fee_rate")

    @classmethod
    def from_percent(cls, market_fee_pct: float, limit_fee_pct: float) -> "FeeSchedule":
        """Построение из процентов, как их вводит пользователь."""
        return cls(
            market_fee_rate=pct_to_fraction(market_fee_pct),
            limit_fee_rate=pct_to_fraction(limit_fee_pct),
        )

    def rate_for(self, fee_type: FeeType) -> float:
        if fee_type == FeeType.MARKET:
            return self.market_fee_rate
        return self.limit_fee_rate


@dataclass(frozen=True)
class FeeSelection:
    """Выбор типа комиссии для одного плеча (флажки формы)."""

    is_market: bool
    is_limit: bool

    @classmethod
    def market(cls) -> "FeeSelection":
        return cls(is_market=True, is_limit=False)

    @classmethod
    def limit(cls) -> "FeeSelection":
        return cls(is_market=False, is_limit=True)


# =============================================================================
# ВЫБОР ТИПА КОМИССИИ
# =============================================================================


def resolve_fee_type(
    selection: FeeSelection,
    leg: FeeLeg,
    allow_ambiguous: bool = False,
) -> FeeType:
    """
    Определение типа комиссии плеча по выбору пользователя.

    Требуется ровно один выбранный тип. Если выбраны оба и
    allow_ambiguous=True, побеждает MARKET (поведение исходного
    калькулятора), а неоднозначность пишется в лог.

    Args:
        selection: Флажки market/limit для плеча
        leg: Плечо (для сообщения об ошибке)
        allow_ambiguous: Разрешить оба флажка одновременно

    Returns:
        FeeType плеча

    Raises:
        MissingFeeSelection: Не выбран ни один тип, либо выбраны оба
            при allow_ambiguous=False
    """
    if selection.is_market and selection.is_limit:
        if not allow_ambiguous:
            raise MissingFeeSelection(
                f"Select exactly one {leg.value} fee type (both market and limit are selected)",
                leg=leg.value,
            )
        logger.warning(
            "Both market and limit fee types selected for %s leg, using market",
            leg.value,
        )
        return FeeType.MARKET

    if selection.is_market:
        return FeeType.MARKET

    if selection.is_limit:
        return FeeType.LIMIT

    raise MissingFeeSelection(
        f"Please select the {leg.value} fee type",
        leg=leg.value,
    )


# =============================================================================
# РАСЧЁТ КОМИССИЙ
# =============================================================================


def calculate_leg_fees(
    size: float,
    entry_price: float,
    exit_price: float,
    entry_fee_rate: float,
    exit_fee_rate: float,
) -> tuple[float, float, float]:
    """
    Комиссии входа и выхода для позиции заданного размера.

    entry_fee = size × entry_price × entry_fee_rate
    exit_fee  = size × exit_price  × exit_fee_rate

    Returns:
        (entry_fee, exit_fee, total_fees)
    """
    entry_fee = size * entry_price * entry_fee_rate
    exit_fee = size * exit_price * exit_fee_rate
    return entry_fee, exit_fee, entry_fee + exit_fee


def calculate_unit_cost(
    entry_price: float,
    stop_loss_price: float,
    entry_fee_rate: float,
    exit_fee_rate: float,
) -> float:
    """
    Полный убыток на единицу позиции при срабатывании stop-loss.

    unit_cost = |entry − stop| + entry × entry_fee_rate + stop × exit_fee_rate

    Returns:
        Убыток на единицу (USD), всегда >= |entry − stop|
    """
    return (
        abs(entry_price - stop_loss_price)
        + entry_price * entry_fee_rate
        + stop_loss_price * exit_fee_rate
    )
