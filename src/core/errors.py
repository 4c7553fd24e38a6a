"""
Sizing errors — типизированные отказы расчёта размера позиции

Каждая ошибка терминальна для одного вызова: частичный результат не
возвращается, повторов внутри ядра нет. Исчерпание лимита итераций
(решатель и поиск приращения) ошибкой НЕ является.

Вызывающая сторона показывает `message` пользователю и скрывает блок
результатов.
"""

from enum import Enum


class SizingErrorKind(str, Enum):
    """Вид отказа расчёта"""

    INVALID_INPUT = "INVALID_INPUT"
    MISSING_FEE_SELECTION = "MISSING_FEE_SELECTION"
    LEVERAGE_EXCEEDED = "LEVERAGE_EXCEEDED"
    RISK_BUDGET_EXHAUSTED = "RISK_BUDGET_EXHAUSTED"


class SizingError(Exception):
    """
    Базовая ошибка расчёта размера позиции.

    Attributes:
        kind: Вид отказа
        message: Короткое сообщение для пользователя
    """

    kind: SizingErrorKind

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidInput(SizingError):
    """Обязательное числовое поле не разбирается или вне допустимой области."""

    kind = SizingErrorKind.INVALID_INPUT


class MissingFeeSelection(SizingError):
    """Для плеча (entry/exit) не выбран ровно один тип комиссии."""

    kind = SizingErrorKind.MISSING_FEE_SELECTION

    def __init__(self, message: str, leg: str):
        super().__init__(message)
        self.leg = leg


class LeverageExceeded(SizingError):
    """Плечо превышает лимит политики. Результат не формируется."""

    kind = SizingErrorKind.LEVERAGE_EXCEEDED

    def __init__(self, leverage: float, max_leverage: float):
        super().__init__(
            f"Leverage {leverage:.2f}x exceeds {max_leverage:.0f}x. "
            f"Please increase capital to reduce leverage."
        )
        self.leverage = leverage
        self.max_leverage = max_leverage


class RiskBudgetExhausted(SizingError):
    """
    Существующая позиция уже расходует весь бюджет риска, а новый вход
    недостаточно выгоден, чтобы добавить объём.

    existing_risk сообщается вызывающей стороне, чтобы можно было выбрать
    другой stop-loss.
    """

    kind = SizingErrorKind.RISK_BUDGET_EXHAUSTED

    def __init__(self, existing_risk: float, risk_amount: float):
        super().__init__(
            f"Existing position risk {existing_risk:.2f} already consumes "
            f"the risk budget {risk_amount:.2f}. Choose a different stop-loss."
        )
        self.existing_risk = existing_risk
        self.risk_amount = risk_amount
