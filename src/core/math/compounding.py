"""
Compounding — добавление объёма к открытой позиции в рамках общего риска

Трейдер уже держит позицию против того же stop-loss и хочет добавить объём
по новой цене, не превышая ИСХОДНЫЙ общий бюджет риска. risk_amount здесь —
общий бюджет, а не приращение.

ФОРМУЛЫ:
    existing_risk  = size_e × |entry_e − stop| + size_e × entry_e × r_in + size_e × stop × r_out
    remaining_risk = max(0, risk_amount − existing_risk)

    combined       = size_e + inc
    wavg_entry     = (size_e × entry_e + inc × entry_new) / combined
    total_fees     = combined × wavg_entry × r_in + combined × stop × r_out
    total_risk     = combined × |wavg_entry − stop| + total_fees

Ставки комиссий обоих плеч считаются одинаковыми.

Если бюджет уже исчерпан, но новый вход выгоднее (для LONG — выше, для
SHORT — ниже исходного), выполняется ограниченный линейный поиск
приращения. Это эвристика с фиксированным числом шагов, а не точное
решение: результат — последний шаг, при котором total_risk не превышает
бюджет.
"""

from typing import Final, NamedTuple

from src.core.domain.sizing import Direction, ExistingPosition
from src.core.math.fees import calculate_leg_fees
from src.core.math.numerical_safeguards import safe_divide

# =============================================================================
# ПАРАМЕТРЫ ПОИСКА
# =============================================================================

# Максимальный начальный шаг приращения
INCREMENT_STEP_MAX: Final[float] = 1.0

# Начальный шаг как доля существующего размера
INCREMENT_STEP_FRAC: Final[float] = 0.1

# Жёсткий лимит шагов поиска
MAX_INCREMENT_STEPS: Final[int] = 100


# =============================================================================
# ТИПЫ
# =============================================================================


class CombinedRisk(NamedTuple):
    """Риск объединённой позиции (существующая + приращение)."""

    combined_size: float
    weighted_average_entry: float
    total_fees: float
    total_risk: float


class IncrementSearch(NamedTuple):
    """Результат ограниченного поиска приращения."""

    increment: float  # 0.0 если ни один шаг не допустим
    steps: int  # выполнено шагов
    step_size: float
    total_risk: float  # риск объединённой позиции на найденном приращении


# =============================================================================
# РИСК СУЩЕСТВУЮЩЕЙ ПОЗИЦИИ
# =============================================================================


def existing_position_risk(
    existing: ExistingPosition,
    stop_loss_price: float,
    entry_fee_rate: float,
    exit_fee_rate: float,
) -> float:
    """
    Риск уже открытой позиции при срабатывании stop-loss, включая комиссии.

    Комиссии считаются по тем же ставкам, что и для нового плеча.

    Examples:
        >>> existing_position_risk(ExistingPosition(size=5, entry_price=100), 95.0, 0.0, 0.0)
        25.0
    """
    _, _, fees = calculate_leg_fees(
        existing.size,
        existing.entry_price,
        stop_loss_price,
        entry_fee_rate,
        exit_fee_rate,
    )
    return existing.size * abs(existing.entry_price - stop_loss_price) + fees


def remaining_risk_budget(risk_amount: float, existing_risk: float) -> float:
    """Остаток бюджета риска, не меньше нуля."""
    return max(0.0, risk_amount - existing_risk)


# =============================================================================
# ОБЪЕДИНЁННАЯ ПОЗИЦИЯ
# =============================================================================


def weighted_average_entry(
    existing_size: float,
    existing_entry: float,
    added_size: float,
    added_entry: float,
) -> float:
    """
    Средневзвешенная по размеру цена входа.

    При нулевом суммарном размере возвращается цена нового входа.

    Examples:
        >>> weighted_average_entry(5.0, 100.0, 5.0, 98.0)
        99.0
    """
    combined = existing_size + added_size
    return safe_divide(
        existing_size * existing_entry + added_size * added_entry,
        combined,
        fallback=added_entry,
    )


def combined_position_risk(
    existing: ExistingPosition,
    added_size: float,
    added_entry: float,
    stop_loss_price: float,
    entry_fee_rate: float,
    exit_fee_rate: float,
) -> CombinedRisk:
    """Риск позиции после добавления added_size по цене added_entry."""
    combined = existing.size + added_size
    wavg = weighted_average_entry(
        existing.size, existing.entry_price, added_size, added_entry
    )
    _, _, total_fees = calculate_leg_fees(
        combined, wavg, stop_loss_price, entry_fee_rate, exit_fee_rate
    )
    total_risk = combined * abs(wavg - stop_loss_price) + total_fees

    return CombinedRisk(
        combined_size=combined,
        weighted_average_entry=wavg,
        total_fees=total_fees,
        total_risk=total_risk,
    )


# =============================================================================
# ВЫГОДНЫЙ ВХОД И ПОИСК ПРИРАЩЕНИЯ
# =============================================================================


def is_favorable_entry(
    direction: Direction,
    new_entry: float,
    existing_entry: float,
) -> bool:
    """
    Улучшает ли новый вход среднюю цену относительно направления.

    LONG: new_entry > existing_entry; SHORT: new_entry < existing_entry.
    """
    if direction == Direction.LONG:
        return new_entry > existing_entry
    return new_entry < existing_entry


def search_favorable_increment(
    existing: ExistingPosition,
    new_entry: float,
    stop_loss_price: float,
    risk_amount: float,
    entry_fee_rate: float,
    exit_fee_rate: float,
    max_steps: int = MAX_INCREMENT_STEPS,
) -> IncrementSearch:
    """
    Ограниченный линейный поиск приращения при исчерпанном бюджете.

    Приращение растёт от нуля шагами min(1, size_e / 10). На каждом шаге
    пересчитываются средняя цена, комиссии и риск объединённой позиции.
    Результат — последний шаг, при котором риск не превышает бюджет.
    Поиск прекращается на первом превышении после найденного допустимого
    шага либо по лимиту шагов.

    Args:
        existing: Открытая позиция
        new_entry: Цена нового входа
        stop_loss_price: Общий stop-loss
        risk_amount: Общий бюджет риска (USD)
        entry_fee_rate: Ставка комиссии входа (доля)
        exit_fee_rate: Ставка комиссии выхода (доля)
        max_steps: Лимит шагов

    Returns:
        IncrementSearch; increment == 0.0 если ни один шаг не допустим
    """
    step_size = min(INCREMENT_STEP_MAX, existing.size * INCREMENT_STEP_FRAC)

    if step_size <= 0:
        return IncrementSearch(increment=0.0, steps=0, step_size=0.0, total_risk=0.0)

    best_increment = 0.0
    best_risk = 0.0
    steps = 0

    for step in range(1, max_steps + 1):
        steps = step
        increment = step * step_size
        combined = combined_position_risk(
            existing,
            increment,
            new_entry,
            stop_loss_price,
            entry_fee_rate,
            exit_fee_rate,
        )

        if combined.total_risk > risk_amount:
            if best_increment > 0.0:
                break
            continue

        best_increment = increment
        best_risk = combined.total_risk

    return IncrementSearch(
        increment=best_increment,
        steps=steps,
        step_size=step_size,
        total_risk=best_risk,
    )
