"""Position Sizer — размер позиции, плечо и ликвидация с учётом комиссий

Стандартный режим:
1. Валидация входа (InvalidInput, MissingFeeSelection)
2. Итеративный подбор размера под целевой риск (position_sizing)
3. max_risk_after_fees = risk − total_fees
4. Плечо; > 100x → LeverageExceeded (результат не формируется)
5. Цена ликвидации и флаг liquidation_before_stop (рекомендательный)
6. Округление: размеры до decimal_places, плечо/комиссии/ликвидация до 2

Режим compounding:
1. existing_risk по тем же ставкам комиссий
2. remaining_risk = max(0, risk − existing_risk)
3. remaining_risk > 0: подбор размера нового плеча под remaining_risk,
   плечо и ликвидация считаются по объединённой позиции и средней цене
4. remaining_risk <= 0: при выгодном входе — ограниченный поиск приращения,
   иначе RiskBudgetExhausted

Вызов не имеет состояния: каждый расчёт зависит только от своих аргументов,
кэшей между вызовами нет.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from pydantic import ValidationError

from src.core.domain.sizing import (
    Direction,
    ExistingPosition,
    SizingResult,
    SolverDiagnostics,
    TradeInputs,
)
from src.core.errors import (
    InvalidInput,
    LeverageExceeded,
    RiskBudgetExhausted,
    SizingError,
    SizingErrorKind,
)
from src.core.math.compounding import (
    MAX_INCREMENT_STEPS,
    combined_position_risk,
    existing_position_risk,
    is_favorable_entry,
    remaining_risk_budget,
    search_favorable_increment,
)
from src.core.math.fees import (
    FeeLeg,
    FeeSchedule,
    FeeSelection,
    calculate_leg_fees,
    resolve_fee_type,
)
from src.core.math.liquidation import (
    MAX_LEVERAGE,
    calculate_leverage,
    calculate_liquidation_price,
    is_liquidation_before_stop,
)
from src.core.math.numerical_safeguards import is_valid_float, round_half_up
from src.core.math.position_sizing import (
    MAX_SOLVER_ITERATIONS,
    RISK_TOLERANCE_FRAC,
    FeeAdjustedSolution,
    solve_fee_adjusted_size,
)

logger = logging.getLogger(__name__)


# =============================================================================
# CONFIG
# =============================================================================


@dataclass(frozen=True)
class PositionSizerConfig:
    """Конфигурация Position Sizer.

    Значения по умолчанию — фиксированные константы политики калькулятора.
    """

    tolerance_frac: float = RISK_TOLERANCE_FRAC
    max_iterations: int = MAX_SOLVER_ITERATIONS
    max_leverage: float = MAX_LEVERAGE
    max_increment_steps: int = MAX_INCREMENT_STEPS

    # Знаков для плеча, комиссий, цен ликвидации и средней цены
    display_decimals: int = 2

    # Оба флажка market/limit на одном плече: False → MissingFeeSelection,
    # True → используется market
    allow_ambiguous_fee_selection: bool = False


# =============================================================================
# OUTCOME
# =============================================================================


@dataclass(frozen=True)
class SizingOutcome:
    """Результат evaluate(): либо SizingResult, либо вид отказа."""

    ok: bool
    result: Optional[SizingResult]
    error_kind: Optional[SizingErrorKind]
    message: str

    # Только для RISK_BUDGET_EXHAUSTED
    existing_risk: Optional[float] = None


# =============================================================================
# INPUT BUILDING
# =============================================================================


def build_trade_inputs(
    entry_price: object,
    stop_loss_price: object,
    risk_amount: object,
    available_capital: object,
    fee_schedule: FeeSchedule,
    entry_selection: FeeSelection,
    exit_selection: FeeSelection,
    decimal_places: int = 2,
    allow_ambiguous: bool = False,
) -> TradeInputs:
    """Сборка TradeInputs из полей формы.

    Числовые поля могут быть строками. Сначала проверяются числа, затем
    выбор типов комиссий.

    Raises:
        InvalidInput: поле не разбирается, не конечно или вне области
        MissingFeeSelection: для плеча не выбран ровно один тип комиссии
    """
    try:
        # Ставки подставляются после проверки выбора типов комиссий
        validated = TradeInputs(
            entry_price=entry_price,
            stop_loss_price=stop_loss_price,
            risk_amount=risk_amount,
            available_capital=available_capital,
            entry_fee_rate=0.0,
            exit_fee_rate=0.0,
            decimal_places=decimal_places,
        )
    except ValidationError as e:
        raise InvalidInput(_format_validation_error(e)) from e

    entry_type = resolve_fee_type(entry_selection, FeeLeg.ENTRY, allow_ambiguous)
    exit_type = resolve_fee_type(exit_selection, FeeLeg.EXIT, allow_ambiguous)

    # FeeSchedule уже гарантирует неотрицательные конечные ставки
    return validated.model_copy(
        update={
            "entry_fee_rate": fee_schedule.rate_for(entry_type),
            "exit_fee_rate": fee_schedule.rate_for(exit_type),
        }
    )


def parse_existing_position(size: object, entry_price: object) -> ExistingPosition:
    """Сборка ExistingPosition из полей формы.

    Raises:
        InvalidInput: поле не разбирается или вне области
    """
    try:
        return ExistingPosition(size=size, entry_price=entry_price)
    except ValidationError as e:
        raise InvalidInput(_format_validation_error(e)) from e


def _format_validation_error(error: ValidationError) -> str:
    """Короткое сообщение по первой ошибке pydantic."""
    first = error.errors()[0]
    field = ".".join(str(part) for part in first.get("loc", ())) or "input"
    return f"Invalid {field}: {first.get('msg', 'invalid value')}"


# =============================================================================
# POSITION SIZER
# =============================================================================


class PositionSizer:
    """Position Sizer: размер позиции под бюджет риска с учётом комиссий.

    Экземпляр хранит только конфигурацию и безопасен для повторных и
    параллельных вызовов.
    """

    def __init__(self, config: PositionSizerConfig | None = None):
        """
        Args:
            config: конфигурация (опционально, используется default)
        """
        self.config = config or PositionSizerConfig()

    def build_inputs(
        self,
        entry_price: object,
        stop_loss_price: object,
        risk_amount: object,
        available_capital: object,
        fee_schedule: FeeSchedule,
        entry_selection: FeeSelection,
        exit_selection: FeeSelection,
        decimal_places: int = 2,
    ) -> TradeInputs:
        """build_trade_inputs с политикой выбора комиссий из конфигурации."""
        return build_trade_inputs(
            entry_price=entry_price,
            stop_loss_price=stop_loss_price,
            risk_amount=risk_amount,
            available_capital=available_capital,
            fee_schedule=fee_schedule,
            entry_selection=entry_selection,
            exit_selection=exit_selection,
            decimal_places=decimal_places,
            allow_ambiguous=self.config.allow_ambiguous_fee_selection,
        )

    # -------------------------------------------------------------------------
    # Стандартный режим
    # -------------------------------------------------------------------------

    def size(self, inputs: TradeInputs) -> SizingResult:
        """Размер позиции под целевой риск.

        Args:
            inputs: параметры сделки

        Returns:
            SizingResult (max_risk_after_fees заполнен)

        Raises:
            InvalidInput: размер не представим конечным числом
            LeverageExceeded: плечо больше лимита
        """
        solution = self._solve(inputs, inputs.risk_amount)
        if not solution.converged:
            logger.warning(
                "Fee-adjusted size did not converge in %d iterations, "
                "using best estimate %.8f (actual risk %.6f, target %.6f)",
                solution.iterations,
                solution.position_size,
                solution.actual_risk,
                inputs.risk_amount,
            )

        max_risk_after_fees = inputs.risk_amount - solution.total_fees

        direction = inputs.direction
        leverage = self._checked_leverage(
            solution.position_size, inputs.entry_price, inputs.available_capital
        )
        liquidation = calculate_liquidation_price(direction, inputs.entry_price, leverage)

        places = inputs.decimal_places
        money = self.config.display_decimals

        return SizingResult(
            direction=direction,
            raw_position_size=round_half_up(solution.raw_position_size, places),
            position_size=round_half_up(solution.position_size, places),
            total_fees=round_half_up(solution.total_fees, money),
            leverage=round_half_up(leverage, money),
            liquidation_price=round_half_up(liquidation, money),
            liquidation_before_stop=is_liquidation_before_stop(
                direction, liquidation, inputs.stop_loss_price
            ),
            decimal_places=places,
            diagnostics=SolverDiagnostics(
                position_size=solution.position_size,
                total_fees=solution.total_fees,
                actual_risk=solution.actual_risk,
                tolerance_amount=solution.tolerance_amount,
                leverage=leverage,
                iterations=solution.iterations,
                converged=solution.converged,
            ),
            max_risk_after_fees=round_half_up(max_risk_after_fees, places),
        )

    # -------------------------------------------------------------------------
    # Режим compounding
    # -------------------------------------------------------------------------

    def size_compounding(
        self,
        inputs: TradeInputs,
        existing: ExistingPosition,
    ) -> SizingResult:
        """Приращение к открытой позиции в рамках общего бюджета риска.

        inputs.risk_amount — общий бюджет для существующей позиции и нового
        плеча. Плечо и ликвидация считаются по объединённой позиции.

        Args:
            inputs: параметры нового плеча (entry_price — цена нового входа)
            existing: открытая позиция против того же stop-loss

        Returns:
            SizingResult (remaining_risk, weighted_average_entry,
            combined_position_size, existing_risk заполнены)

        Raises:
            InvalidInput: риск или размер не представимы конечным числом
            RiskBudgetExhausted: бюджет исчерпан и вход не даёт объёма
            LeverageExceeded: плечо объединённой позиции больше лимита
        """
        stop = inputs.stop_loss_price
        direction = self._position_direction(inputs, existing)

        existing_risk = existing_position_risk(
            existing, stop, inputs.entry_fee_rate, inputs.exit_fee_rate
        )
        if not is_valid_float(existing_risk):
            raise InvalidInput(f"Existing position risk is not finite: {existing_risk}")
        remaining_risk = remaining_risk_budget(inputs.risk_amount, existing_risk)

        if remaining_risk > 0:
            solution = self._solve(inputs, remaining_risk)
            if not solution.converged:
                logger.warning(
                    "Compounding size did not converge in %d iterations, "
                    "using best estimate %.8f",
                    solution.iterations,
                    solution.position_size,
                )

            added_size = solution.position_size
            raw_size = solution.raw_position_size
            added_fees = solution.total_fees
            total_risk = existing_risk + solution.actual_risk
            tolerance_amount = solution.tolerance_amount
            iterations = solution.iterations
            converged = solution.converged
        else:
            added_size, total_risk, iterations = self._favorable_increment(
                inputs, existing, direction, existing_risk
            )
            raw_size = added_size
            _, _, added_fees = calculate_leg_fees(
                added_size,
                inputs.entry_price,
                stop,
                inputs.entry_fee_rate,
                inputs.exit_fee_rate,
            )
            tolerance_amount = 0.0
            converged = True

        combined = combined_position_risk(
            existing,
            added_size,
            inputs.entry_price,
            stop,
            inputs.entry_fee_rate,
            inputs.exit_fee_rate,
        )

        leverage = self._checked_leverage(
            combined.combined_size,
            combined.weighted_average_entry,
            inputs.available_capital,
        )
        liquidation = calculate_liquidation_price(
            direction, combined.weighted_average_entry, leverage
        )

        places = inputs.decimal_places
        money = self.config.display_decimals

        return SizingResult(
            direction=direction,
            raw_position_size=round_half_up(raw_size, places),
            position_size=round_half_up(added_size, places),
            total_fees=round_half_up(added_fees, money),
            leverage=round_half_up(leverage, money),
            liquidation_price=round_half_up(liquidation, money),
            liquidation_before_stop=is_liquidation_before_stop(
                direction, liquidation, stop
            ),
            decimal_places=places,
            diagnostics=SolverDiagnostics(
                position_size=added_size,
                total_fees=added_fees,
                actual_risk=total_risk,
                tolerance_amount=tolerance_amount,
                leverage=leverage,
                iterations=iterations,
                converged=converged,
            ),
            remaining_risk=round_half_up(remaining_risk, places),
            weighted_average_entry=round_half_up(combined.weighted_average_entry, money),
            combined_position_size=round_half_up(combined.combined_size, places),
            existing_risk=round_half_up(existing_risk, places),
        )

    # -------------------------------------------------------------------------
    # Outcome API
    # -------------------------------------------------------------------------

    def evaluate(
        self,
        inputs: TradeInputs,
        existing: ExistingPosition | None = None,
    ) -> SizingOutcome:
        """Расчёт без исключений SizingError.

        Args:
            inputs: параметры сделки
            existing: открытая позиция (режим compounding) или None

        Returns:
            SizingOutcome: ok=True с результатом, либо вид отказа и
            сообщение для пользователя
        """
        try:
            if existing is None:
                result = self.size(inputs)
            else:
                result = self.size_compounding(inputs, existing)
        except SizingError as e:
            return SizingOutcome(
                ok=False,
                result=None,
                error_kind=e.kind,
                message=e.message,
                existing_risk=getattr(e, "existing_risk", None),
            )

        return SizingOutcome(ok=True, result=result, error_kind=None, message="")

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _solve(self, inputs: TradeInputs, risk_amount: float) -> FeeAdjustedSolution:
        """Решатель с параметрами конфигурации; переполнение → InvalidInput."""
        try:
            return solve_fee_adjusted_size(
                entry_price=inputs.entry_price,
                stop_loss_price=inputs.stop_loss_price,
                risk_amount=risk_amount,
                entry_fee_rate=inputs.entry_fee_rate,
                exit_fee_rate=inputs.exit_fee_rate,
                tolerance_frac=self.config.tolerance_frac,
                max_iterations=self.config.max_iterations,
            )
        except ValueError as e:
            raise InvalidInput(f"Cannot size position: {e}") from e

    def _checked_leverage(
        self,
        position_size: float,
        entry_price: float,
        available_capital: float,
    ) -> float:
        leverage = calculate_leverage(position_size, entry_price, available_capital)
        if leverage > self.config.max_leverage:
            logger.info(
                "Rejected sizing: leverage %.2fx exceeds %.0fx",
                leverage,
                self.config.max_leverage,
            )
            raise LeverageExceeded(leverage, self.config.max_leverage)
        return leverage

    @staticmethod
    def _position_direction(
        inputs: TradeInputs,
        existing: ExistingPosition,
    ) -> Direction:
        # Направление объединённой позиции задаёт открытая позиция;
        # если её вход совпадает со стопом, направление задаёт новый вход
        if existing.size > 0 and existing.entry_price != inputs.stop_loss_price:
            return Direction.from_prices(existing.entry_price, inputs.stop_loss_price)
        return inputs.direction

    def _favorable_increment(
        self,
        inputs: TradeInputs,
        existing: ExistingPosition,
        direction: Direction,
        existing_risk: float,
    ) -> tuple[float, float, int]:
        """Поиск приращения при исчерпанном бюджете.

        Returns:
            (increment, total_risk, steps)

        Raises:
            RiskBudgetExhausted: вход невыгоден или поиск не дал объёма
        """
        if not is_favorable_entry(direction, inputs.entry_price, existing.entry_price):
            raise RiskBudgetExhausted(existing_risk, inputs.risk_amount)

        search = search_favorable_increment(
            existing=existing,
            new_entry=inputs.entry_price,
            stop_loss_price=inputs.stop_loss_price,
            risk_amount=inputs.risk_amount,
            entry_fee_rate=inputs.entry_fee_rate,
            exit_fee_rate=inputs.exit_fee_rate,
            max_steps=self.config.max_increment_steps,
        )
        if search.increment <= 0:
            raise RiskBudgetExhausted(existing_risk, inputs.risk_amount)

        logger.debug(
            "Favorable entry admits %.8f additional size in %d steps (step %.8f)",
            search.increment,
            search.steps,
            search.step_size,
        )
        return search.increment, search.total_risk, search.steps
