"""
Numerical Safeguards — защитные примитивы для расчёта размера позиции

Модуль обеспечивает численную устойчивость расчётов калькулятора:
- Разбор пользовательского ввода в конечный float (строки из формы или числа)
- Безопасное деление для плеча, ликвидации и средневзвешенной цены
- Сравнение отклонения с толерантностью с учётом машинной точности
- Округление выходных значений до фиксированного числа знаков

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. NaN/Inf никогда не попадают в расчёт (ValueError на входе)
2. Деление на ноль никогда не происходит (возвращается fallback)
3. Все операции детерминированы и воспроизводимы
"""

import math
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Final

# =============================================================================
# EPSILON-ПАРАМЕТРЫ
# =============================================================================

# Epsilon для общих вычислений
EPS_CALC: Final[float] = 1e-12

# Относительная толерантность для сравнения float
EPS_FLOAT_COMPARE_REL: Final[float] = 1e-9

# Максимальное число знаков после запятой для размера позиции
MAX_DECIMAL_PLACES: Final[int] = 8


# =============================================================================
# РАЗБОР И ПРОВЕРКА ВВОДА
# =============================================================================


def is_valid_float(value: float) -> bool:
    """Проверка, что значение конечное (не NaN, не Inf)."""
    return math.isfinite(value)


def parse_finite(value: object, name: str) -> float:
    """
    Разбор значения поля в конечный float.

    Принимает числа и строки в том виде, в котором их вводит пользователь
    ("100", " 95.5 "). Булевы значения отвергаются явно.

    Args:
        value: Исходное значение (str, int, float)
        name: Имя поля (для сообщения об ошибке)

    Returns:
        Конечный float

    Raises:
        ValueError: Если значение не разбирается или NaN/Inf

    Examples:
        >>> parse_finite("100", "entry_price")
        100.0
        >>> parse_finite(95.5, "stop_loss_price")
        95.5
    """
    if isinstance(value, bool) or value is None:
        raise ValueError(f"{name} must be a number, got {value!r}")

    if isinstance(value, str):
        value = value.strip()
        if not value:
            raise ValueError(f"{name} is empty")

    try:
        parsed = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"{name} must be a number, got {value!r}") from None

    if not is_valid_float(parsed):
        raise ValueError(f"{name} must be finite (not NaN/Inf), got {value!r}")

    return parsed


# =============================================================================
# БЕЗОПАСНОЕ ДЕЛЕНИЕ
# =============================================================================


def safe_divide(
    numerator: float,
    denominator: float,
    fallback: float = 0.0,
) -> float:
    """
    Деление без исключений.

    Если знаменатель равен нулю, меньше EPS_CALC по модулю или результат
    не конечен, возвращается fallback.

    Examples:
        >>> safe_divide(10.0, 2.0)
        5.0
        >>> safe_divide(10.0, 0.0)
        0.0
        >>> safe_divide(10.0, 0.0, fallback=float("inf"))
        inf
    """
    if not is_valid_float(numerator) or not is_valid_float(denominator):
        return fallback

    if abs(denominator) < EPS_CALC:
        return fallback

    result = numerator / denominator
    if not is_valid_float(result):
        return fallback

    return result


# =============================================================================
# СРАВНЕНИЕ С ТОЛЕРАНТНОСТЬЮ
# =============================================================================


def exceeds_tolerance(
    deviation: float,
    tolerance: float,
    rel_eps: float = EPS_FLOAT_COMPARE_REL,
) -> bool:
    """
    Проверка, что отклонение строго больше толерантности.

    Отклонение, попавшее ровно на границу толерантности с точностью до
    ошибки округления float, считается допустимым.

    Args:
        deviation: Отклонение (берётся по модулю)
        tolerance: Допустимое отклонение (>= 0)
        rel_eps: Относительный запас на машинную точность

    Returns:
        True если |deviation| > tolerance * (1 + rel_eps)
    """
    return abs(deviation) > tolerance * (1.0 + rel_eps)


# =============================================================================
# ОКРУГЛЕНИЕ
# =============================================================================


def round_half_up(value: float, places: int) -> float:
    """
    Округление до фиксированного числа знаков (round half away from zero).

    Округление выполняется над десятичным представлением значения, а не над
    двоичным, поэтому 2.675 → 2.68.

    Args:
        value: Значение
        places: Число знаков после запятой (0..MAX_DECIMAL_PLACES)

    Returns:
        Округлённое значение

    Examples:
        >>> round_half_up(2.675, 2)
        2.68
        >>> round_half_up(9.78017, 2)
        9.78
        >>> round_half_up(-1.005, 2)
        -1.01
    """
    if not 0 <= places <= MAX_DECIMAL_PLACES:
        raise ValueError(
            f"places must be in [0, {MAX_DECIMAL_PLACES}], got {places}"
        )

    if not is_valid_float(value):
        raise ValueError(f"Cannot round non-finite value {value}")

    quantum = Decimal(1).scaleb(-places)
    try:
        rounded = Decimal(repr(value)).quantize(quantum, rounding=ROUND_HALF_UP)
    except InvalidOperation as e:
        raise ValueError(f"Cannot round {value} to {places} places") from e

    return float(rounded)


# =============================================================================
# ВАЛИДАЦИЯ
# =============================================================================


def validate_positive(value: float, name: str) -> None:
    """
    Валидация, что значение конечное и строго положительное.

    Raises:
        ValueError: Если value <= 0 или NaN/Inf
    """
    if not is_valid_float(value):
        raise ValueError(f"{name} must be a valid float (not NaN/Inf), got {value}")

    if value <= 0:
        raise ValueError(f"{name} must be positive, got {value}")


def validate_non_negative(value: float, name: str) -> None:
    """
    Валидация, что значение конечное и неотрицательное.

    Raises:
        ValueError: Если value < 0 или NaN/Inf
    """
    if not is_valid_float(value):
        raise ValueError(f"{name} must be a valid float (not NaN/Inf), got {value}")

    if value < 0:
        raise ValueError(f"{name} must be non-negative, got {value}")


def validate_in_range(
    value: float,
    name: str,
    min_value: float | None = None,
    max_value: float | None = None,
) -> None:
    """
    Валидация, что значение в заданном диапазоне.

    Raises:
        ValueError: Если value вне диапазона или NaN/Inf
    """
    if not is_valid_float(value):
        raise ValueError(f"{name} must be a valid float (not NaN/Inf), got {value}")

    if min_value is not None and value < min_value:
        raise ValueError(f"{name} must be >= {min_value}, got {value}")

    if max_value is not None and value > max_value:
        raise ValueError(f"{name} must be <= {max_value}, got {value}")
