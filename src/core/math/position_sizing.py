"""
Position Sizing — размер позиции с учётом комиссий

Модуль подбирает размер позиции так, чтобы фактический убыток при
срабатывании stop-loss (ценовой убыток + комиссии входа и выхода) совпадал
с целевым риском в пределах толерантности.

Комиссии растут вместе с размером, поэтому размер уточняется итеративно:

    raw_size    = risk / |entry − stop|
    size_0      = raw_size
    actual_risk = size × |entry − stop| + size × entry × r_in + size × stop × r_out
    если |risk − actual_risk| > tol:
        size *= (risk − tol) / actual_risk   (перелёт)
        size *= (risk + tol) / actual_risk   (недолёт)

Это демпфированная пропорциональная коррекция, не метод Ньютона. Сходимость
геометрическая, обычно за 1-3 итерации. Лимит итераций — 100; при его
исчерпании возвращается лучшая оценка, это не ошибка.

ИНВАРИАНТЫ:
1. |risk − actual_risk| <= tol ИЛИ iterations == max_iterations
2. Больше ставка комиссии → меньше размер позиции
3. Функции чистые: одинаковый вход даёт побитово одинаковый выход
"""

from typing import Final, NamedTuple

from src.core.math.fees import calculate_leg_fees, calculate_unit_cost
from src.core.math.numerical_safeguards import (
    exceeds_tolerance,
    is_valid_float,
    validate_in_range,
    validate_non_negative,
    validate_positive,
)

# =============================================================================
# ПАРАМЕТРЫ РЕШАТЕЛЯ
# =============================================================================

# Толерантность по риску: 0.1% от целевого риска
RISK_TOLERANCE_FRAC: Final[float] = 0.001

# Жёсткий лимит итераций
MAX_SOLVER_ITERATIONS: Final[int] = 100


# =============================================================================
# ТИПЫ
# =============================================================================


class FeeAdjustedSolution(NamedTuple):
    """Результат итеративного подбора размера (без округления)."""

    raw_position_size: float  # risk / price_difference, без учёта комиссий
    position_size: float  # размер с учётом комиссий
    entry_fee: float
    exit_fee: float
    total_fees: float
    actual_risk: float  # size × price_difference + total_fees
    tolerance_amount: float  # RISK_TOLERANCE_FRAC × risk
    iterations: int
    converged: bool


# =============================================================================
# РЕШАТЕЛЬ
# =============================================================================


def solve_fee_adjusted_size(
    entry_price: float,
    stop_loss_price: float,
    risk_amount: float,
    entry_fee_rate: float,
    exit_fee_rate: float,
    tolerance_frac: float = RISK_TOLERANCE_FRAC,
    max_iterations: int = MAX_SOLVER_ITERATIONS,
) -> FeeAdjustedSolution:
    """
    Итеративный подбор размера позиции под целевой риск с учётом комиссий.

    Args:
        entry_price: Цена входа
        stop_loss_price: Цена stop-loss
        risk_amount: Целевой риск (USD), включая комиссии
        entry_fee_rate: Ставка комиссии входа (доля)
        exit_fee_rate: Ставка комиссии выхода (доля)
        tolerance_frac: Толерантность как доля риска
        max_iterations: Лимит итераций

    Returns:
        FeeAdjustedSolution с размером, комиссиями и диагностикой сходимости

    Raises:
        ValueError: Если параметры некорректны или entry == stop

    Examples:
        >>> s = solve_fee_adjusted_size(100.0, 95.0, 50.0, 0.0, 0.0)
        >>> s.position_size, s.iterations, s.converged
        (10.0, 1, True)
    """
    validate_positive(entry_price, "entry_price")
    validate_positive(stop_loss_price, "stop_loss_price")
    validate_positive(risk_amount, "risk_amount")
    validate_non_negative(entry_fee_rate, "entry_fee_rate")
    validate_non_negative(exit_fee_rate, "exit_fee_rate")
    validate_in_range(tolerance_frac, "tolerance_frac", 0.0, 0.5)

    if max_iterations < 1:
        raise ValueError(f"max_iterations must be >= 1, got {max_iterations}")

    price_difference = abs(entry_price - stop_loss_price)
    if price_difference == 0.0:
        raise ValueError("entry_price and stop_loss_price must differ")

    raw_position_size = risk_amount / price_difference
    if not is_valid_float(raw_position_size):
        raise ValueError(
            f"Position size is not finite for risk {risk_amount} "
            f"over price difference {price_difference}"
        )

    tolerance_amount = tolerance_frac * risk_amount

    position_size = raw_position_size
    converged = False
    iterations = 0

    while iterations < max_iterations:
        iterations += 1

        entry_fee, exit_fee, total_fees = calculate_leg_fees(
            position_size, entry_price, stop_loss_price, entry_fee_rate, exit_fee_rate
        )
        actual_risk = position_size * price_difference + total_fees
        if not is_valid_float(actual_risk):
            raise ValueError(f"Risk is not finite for position size {position_size}")

        if not exceeds_tolerance(risk_amount - actual_risk, tolerance_amount):
            converged = True
            break

        if actual_risk > risk_amount:
            position_size *= (risk_amount - tolerance_amount) / actual_risk
        else:
            position_size *= (risk_amount + tolerance_amount) / actual_risk

    if not converged:
        # Лимит исчерпан после коррекции: комиссии пересчитываются для
        # последней оценки размера
        entry_fee, exit_fee, total_fees = calculate_leg_fees(
            position_size, entry_price, stop_loss_price, entry_fee_rate, exit_fee_rate
        )
        actual_risk = position_size * price_difference + total_fees

    return FeeAdjustedSolution(
        raw_position_size=raw_position_size,
        position_size=position_size,
        entry_fee=entry_fee,
        exit_fee=exit_fee,
        total_fees=total_fees,
        actual_risk=actual_risk,
        tolerance_amount=tolerance_amount,
        iterations=iterations,
        converged=converged,
    )


def closed_form_size(
    entry_price: float,
    stop_loss_price: float,
    risk_amount: float,
    entry_fee_rate: float,
    exit_fee_rate: float,
) -> float:
    """
    Точное решение линейного уравнения для размера позиции.

    size × (|entry − stop| + entry × r_in + stop × r_out) = risk

    Комиссии линейны по размеру, поэтому решение существует в явном виде.
    Используется для сверки с итеративным решателем.
    """
    validate_positive(risk_amount, "risk_amount")

    if entry_price == stop_loss_price:
        raise ValueError("entry_price and stop_loss_price must differ")

    unit_cost = calculate_unit_cost(
        entry_price, stop_loss_price, entry_fee_rate, exit_fee_rate
    )
    return risk_amount / unit_cost
