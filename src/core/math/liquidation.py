"""
Liquidation — плечо и цена ликвидации

Упрощённая модель изолированной маржи: позиция ликвидируется при
неблагоприятном движении цены на 1/leverage от входа. Буфер
поддерживающей маржи не учитывается.

    leverage    = size × entry / capital
    LONG:  liq  = entry × (1 − 1/leverage)
    SHORT: liq  = entry × (1 + 1/leverage)

Направление выводится только из цен входа и stop-loss (см. Direction).
"""

from typing import Final

from src.core.domain.sizing import Direction
from src.core.math.numerical_safeguards import safe_divide, validate_positive

# Лимит плеча политики калькулятора
MAX_LEVERAGE: Final[float] = 100.0


def calculate_leverage(
    position_size: float,
    entry_price: float,
    available_capital: float,
) -> float:
    """
    Необходимое плечо: notional / capital.

    Examples:
        >>> calculate_leverage(10.0, 100.0, 1000.0)
        1.0
    """
    validate_positive(available_capital, "available_capital")
    return position_size * entry_price / available_capital


def calculate_liquidation_price(
    direction: Direction,
    entry_price: float,
    leverage: float,
) -> float:
    """
    Цена ликвидации для заданного плеча.

    При нулевом плече ликвидация недостижима: возвращается 0 для LONG и
    inf для SHORT.

    Examples:
        >>> calculate_liquidation_price(Direction.LONG, 100.0, 2.0)
        50.0
        >>> calculate_liquidation_price(Direction.SHORT, 100.0, 2.0)
        150.0
    """
    if direction == Direction.LONG:
        return entry_price * (1.0 - safe_divide(1.0, leverage, fallback=1.0))

    inverse = safe_divide(1.0, leverage, fallback=float("inf"))
    return entry_price * (1.0 + inverse)


def is_liquidation_before_stop(
    direction: Direction,
    liquidation_price: float,
    stop_loss_price: float,
) -> bool:
    """
    Срабатывает ли ликвидация раньше stop-loss.

    LONG: liquidation > stop; SHORT: liquidation < stop.
    Флаг рекомендательный: расчёт не блокируется.
    """
    if direction == Direction.LONG:
        return liquidation_price > stop_loss_price
    return liquidation_price < stop_loss_price
