"""
Тесты для Position Sizer

Проверяет:
1. Сборку TradeInputs из полей формы (InvalidInput, MissingFeeSelection)
2. Стандартный режим: размер, комиссии, max_risk, плечо, ликвидация
3. LeverageExceeded
4. Режим compounding: остаток бюджета и поиск приращения
5. evaluate(): результат или вид отказа без исключений
6. Детерминированность и монотонность по комиссиям
"""

import pytest

from src.core.domain.sizing import Direction, ExistingPosition, TradeInputs
from src.core.errors import (
    InvalidInput,
    LeverageExceeded,
    MissingFeeSelection,
    RiskBudgetExhausted,
    SizingErrorKind,
)
from src.core.math.fees import FeeSchedule, FeeSelection
from src.sizer import PositionSizer, PositionSizerConfig, build_trade_inputs
from src.sizer.position_sizer import parse_existing_position

FEE = 0.00055


def _inputs(**overrides) -> TradeInputs:
    params = {
        "entry_price": 100.0,
        "stop_loss_price": 95.0,
        "risk_amount": 50.0,
        "available_capital": 1000.0,
        "entry_fee_rate": FEE,
        "exit_fee_rate": FEE,
    }
    params.update(overrides)
    return TradeInputs(**params)


@pytest.fixture
def sizer() -> PositionSizer:
    return PositionSizer()


@pytest.fixture
def schedule() -> FeeSchedule:
    return FeeSchedule.from_percent(0.055, 0.02)


# =============================================================================
# INPUT BUILDING
# =============================================================================


class TestBuildTradeInputs:
    """Тесты для build_trade_inputs"""

    def test_form_strings(self, schedule) -> None:
        inputs = build_trade_inputs(
            "100", "95", "50", "1000", schedule, FeeSelection.market(), FeeSelection.limit()
        )

        assert inputs.entry_price == 100.0
        assert inputs.stop_loss_price == 95.0
        assert inputs.entry_fee_rate == pytest.approx(0.00055)
        assert inputs.exit_fee_rate == pytest.approx(0.0002)

    @pytest.mark.parametrize("entry", ["abc", "", "nan", "-inf", None, -100.0, 0.0])
    def test_invalid_entry(self, schedule, entry) -> None:
        with pytest.raises(InvalidInput, match="entry_price") as exc:
            build_trade_inputs(
                entry, 95.0, 50.0, 1000.0, schedule, FeeSelection.market(), FeeSelection.market()
            )
        assert exc.value.kind == SizingErrorKind.INVALID_INPUT

    def test_equal_prices(self, schedule) -> None:
        with pytest.raises(InvalidInput, match="stop_loss_price"):
            build_trade_inputs(
                100.0, 100.0, 50.0, 1000.0, schedule, FeeSelection.market(), FeeSelection.market()
            )

    def test_invalid_decimal_places(self, schedule) -> None:
        with pytest.raises(InvalidInput, match="decimal_places"):
            build_trade_inputs(
                100.0, 95.0, 50.0, 1000.0, schedule,
                FeeSelection.market(), FeeSelection.market(), decimal_places=9,
            )

    def test_missing_entry_fee_selection(self, schedule) -> None:
        none_selected = FeeSelection(is_market=False, is_limit=False)
        with pytest.raises(MissingFeeSelection, match="entry") as exc:
            build_trade_inputs(
                100.0, 95.0, 50.0, 1000.0, schedule, none_selected, FeeSelection.market()
            )
        assert exc.value.leg == "entry"

    def test_invalid_number_reported_before_fee_selection(self, schedule) -> None:
        none_selected = FeeSelection(is_market=False, is_limit=False)
        with pytest.raises(InvalidInput):
            build_trade_inputs(
                "abc", 95.0, 50.0, 1000.0, schedule, none_selected, none_selected
            )

    def test_ambiguous_selection_policy(self, schedule) -> None:
        both = FeeSelection(is_market=True, is_limit=True)

        with pytest.raises(MissingFeeSelection):
            PositionSizer().build_inputs(
                100.0, 95.0, 50.0, 1000.0, schedule, FeeSelection.market(), both
            )

        lenient = PositionSizer(PositionSizerConfig(allow_ambiguous_fee_selection=True))
        inputs = lenient.build_inputs(
            100.0, 95.0, 50.0, 1000.0, schedule, FeeSelection.market(), both
        )
        assert inputs.exit_fee_rate == pytest.approx(0.00055)

    def test_parse_existing_position(self) -> None:
        position = parse_existing_position("5", "100")
        assert position == ExistingPosition(size=5.0, entry_price=100.0)

        with pytest.raises(InvalidInput, match="size"):
            parse_existing_position("-1", "100")


# =============================================================================
# STANDARD MODE
# =============================================================================


class TestStandardSizing:
    """Тесты стандартного режима"""

    def test_standard_example(self, sizer) -> None:
        """100 → 95, риск 50, капитал 1000, комиссии 0.055%"""
        result = sizer.size(_inputs())

        assert result.direction == Direction.SHORT
        assert result.raw_position_size == 10.0
        assert result.position_size == 9.78
        assert result.total_fees == 1.05
        assert result.max_risk_after_fees == 48.95
        assert result.leverage == 0.98
        assert result.liquidation_price == pytest.approx(202.25, abs=0.01)
        assert result.liquidation_before_stop is False
        assert result.decimal_places == 2
        assert not result.is_compounding

    def test_diagnostics(self, sizer) -> None:
        result = sizer.size(_inputs())
        diag = result.diagnostics

        assert diag.converged is True
        assert diag.iterations == 2
        assert abs(50.0 - diag.actual_risk) <= diag.tolerance_amount * (1 + 1e-9)
        assert diag.leverage == pytest.approx(diag.position_size * 100.0 / 1000.0)

    def test_long_direction(self, sizer) -> None:
        result = sizer.size(_inputs(entry_price=95.0, stop_loss_price=100.0))

        assert result.direction == Direction.LONG
        assert result.liquidation_price < 95.0

    def test_zero_fees(self, sizer) -> None:
        result = sizer.size(_inputs(entry_fee_rate=0.0, exit_fee_rate=0.0))

        assert result.position_size == 10.0
        assert result.total_fees == 0.0
        assert result.max_risk_after_fees == 50.0
        assert result.leverage == 1.0
        assert result.diagnostics.iterations == 1

    def test_decimal_places(self, sizer) -> None:
        result = sizer.size(_inputs(decimal_places=4))

        assert result.position_size == pytest.approx(9.7802)
        assert result.total_fees == 1.05

    def test_leverage_exceeded(self, sizer, caplog) -> None:
        """Капитал 1 USD → плечо ~978x"""
        with caplog.at_level("INFO"):
            with pytest.raises(LeverageExceeded, match="exceeds 100x") as exc:
                sizer.size(_inputs(available_capital=1.0))

        assert exc.value.kind == SizingErrorKind.LEVERAGE_EXCEEDED
        assert exc.value.leverage == pytest.approx(978.02, abs=0.01)
        assert "Please increase capital" in exc.value.message
        assert "Rejected sizing" in caplog.text

    def test_leverage_at_limit_allowed(self, sizer) -> None:
        """Ровно 100x допустимо: size 10, entry 100, capital 10"""
        result = sizer.size(_inputs(entry_fee_rate=0.0, exit_fee_rate=0.0, available_capital=10.0))
        assert result.leverage == 100.0

    def test_custom_leverage_limit(self) -> None:
        strict = PositionSizer(PositionSizerConfig(max_leverage=0.5))
        with pytest.raises(LeverageExceeded, match="exceeds"):
            strict.size(_inputs())

    def test_non_finite_size_raises_invalid_input(self, sizer) -> None:
        with pytest.raises(InvalidInput, match="Cannot size position"):
            sizer.size(_inputs(entry_price=1e-300, stop_loss_price=2e-300, risk_amount=1e10))

    def test_iteration_cap_not_an_error(self, caplog) -> None:
        capped = PositionSizer(PositionSizerConfig(max_iterations=1))
        with caplog.at_level("WARNING"):
            result = capped.size(_inputs())

        assert result.diagnostics.converged is False
        assert result.position_size == 9.78
        assert "did not converge" in caplog.text

    def test_deterministic(self, sizer) -> None:
        inputs = _inputs()
        assert sizer.size(inputs) == sizer.size(inputs)

    def test_higher_fees_never_larger_size(self, sizer) -> None:
        sizes = [
            sizer.size(
                _inputs(entry_fee_rate=rate, exit_fee_rate=rate, decimal_places=8)
            ).diagnostics.position_size
            for rate in [0.0002, FEE, 0.001, 0.002]
        ]
        assert sizes == sorted(sizes, reverse=True)
        assert len(set(sizes)) == len(sizes)


# =============================================================================
# COMPOUNDING MODE
# =============================================================================


class TestCompoundingSizing:
    """Тесты режима compounding"""

    def test_remaining_budget(self, sizer) -> None:
        """Позиция 5 @ 100, stop 95, новый вход 98, общий риск 50"""
        existing = ExistingPosition(size=5.0, entry_price=100.0)
        result = sizer.size_compounding(_inputs(entry_price=98.0), existing)

        assert result.is_compounding
        assert result.direction == Direction.SHORT
        assert result.existing_risk == 25.54
        assert result.remaining_risk == 24.46
        assert result.raw_position_size == 8.15
        assert result.position_size == 7.87
        assert result.total_fees == 0.84
        assert result.combined_position_size == 12.87
        assert result.weighted_average_entry == pytest.approx(98.78, abs=0.01)
        assert result.leverage == 1.27
        assert result.max_risk_after_fees is None

    def test_total_risk_conserved(self, sizer) -> None:
        """Риск существующей позиции + нового плеча ≈ общий бюджет"""
        existing = ExistingPosition(size=5.0, entry_price=100.0)
        result = sizer.size_compounding(_inputs(entry_price=98.0), existing)

        assert abs(result.diagnostics.actual_risk - 50.0) <= 0.001 * 50.0 * (1 + 1e-9)

    def test_empty_existing_matches_standard(self, sizer) -> None:
        inputs = _inputs()
        standard = sizer.size(inputs)
        compounding = sizer.size_compounding(inputs, ExistingPosition(size=0.0, entry_price=100.0))

        assert compounding.position_size == standard.position_size
        assert compounding.existing_risk == 0.0
        assert compounding.remaining_risk == 50.0
        assert compounding.combined_position_size == standard.position_size
        assert compounding.weighted_average_entry == 100.0

    def test_favorable_increment_when_budget_exhausted(self, sizer) -> None:
        """
        Позиция 5 @ 100 уже расходует 25.975 из 25.9; вход 94 ниже входа
        шорта → поиск приращения находит 41.5.
        """
        existing = ExistingPosition(size=5.0, entry_price=100.0)
        inputs = _inputs(
            entry_price=94.0, risk_amount=25.9, entry_fee_rate=0.001, exit_fee_rate=0.001
        )

        result = sizer.size_compounding(inputs, existing)

        assert result.direction == Direction.SHORT
        assert result.remaining_risk == 0.0
        assert result.existing_risk == pytest.approx(25.975, abs=0.01)
        assert result.position_size == 41.5
        assert result.combined_position_size == 46.5
        assert result.weighted_average_entry == 94.65
        assert result.leverage == 4.4
        assert result.total_fees == 7.84
        assert result.diagnostics.actual_risk <= 25.9
        assert result.diagnostics.iterations == 84

    def test_unfavorable_entry_exhausted(self, sizer) -> None:
        existing = ExistingPosition(size=5.0, entry_price=100.0)
        inputs = _inputs(
            entry_price=101.0, risk_amount=25.9, entry_fee_rate=0.001, exit_fee_rate=0.001
        )

        with pytest.raises(RiskBudgetExhausted, match="Choose a different stop-loss") as exc:
            sizer.size_compounding(inputs, existing)

        assert exc.value.kind == SizingErrorKind.RISK_BUDGET_EXHAUSTED
        assert exc.value.existing_risk == pytest.approx(25.975)

    def test_favorable_but_no_room_exhausted(self, sizer) -> None:
        """Вход 99 выгоднее 100, но любое приращение превышает бюджет"""
        existing = ExistingPosition(size=5.0, entry_price=100.0)
        inputs = _inputs(
            entry_price=99.0, risk_amount=25.9, entry_fee_rate=0.001, exit_fee_rate=0.001
        )

        with pytest.raises(RiskBudgetExhausted):
            sizer.size_compounding(inputs, existing)

    def test_combined_leverage_exceeded(self, sizer) -> None:
        existing = ExistingPosition(size=5.0, entry_price=100.0)
        with pytest.raises(LeverageExceeded):
            sizer.size_compounding(_inputs(entry_price=98.0, available_capital=5.0), existing)


# =============================================================================
# OUTCOME API
# =============================================================================


class TestEvaluate:
    """Тесты для evaluate"""

    def test_ok(self, sizer) -> None:
        outcome = sizer.evaluate(_inputs())

        assert outcome.ok is True
        assert outcome.error_kind is None
        assert outcome.result.position_size == 9.78

    def test_leverage_exceeded_outcome(self, sizer) -> None:
        outcome = sizer.evaluate(_inputs(available_capital=1.0))

        assert outcome.ok is False
        assert outcome.result is None
        assert outcome.error_kind == SizingErrorKind.LEVERAGE_EXCEEDED
        assert "exceeds 100x" in outcome.message

    def test_budget_exhausted_outcome_reports_existing_risk(self, sizer) -> None:
        outcome = sizer.evaluate(
            _inputs(entry_price=101.0, risk_amount=25.9, entry_fee_rate=0.001, exit_fee_rate=0.001),
            ExistingPosition(size=5.0, entry_price=100.0),
        )

        assert outcome.ok is False
        assert outcome.error_kind == SizingErrorKind.RISK_BUDGET_EXHAUSTED
        assert outcome.existing_risk == pytest.approx(25.975)

    def test_non_finite_size_outcome(self, sizer) -> None:
        """Исчезающе малая разница цен при большом риске → INVALID_INPUT без исключения"""
        outcome = sizer.evaluate(
            _inputs(entry_price=1e-300, stop_loss_price=2e-300, risk_amount=1e10)
        )

        assert outcome.ok is False
        assert outcome.result is None
        assert outcome.error_kind == SizingErrorKind.INVALID_INPUT
        assert "not finite" in outcome.message

    def test_non_finite_existing_risk_outcome(self, sizer) -> None:
        outcome = sizer.evaluate(
            _inputs(entry_price=98.0), ExistingPosition(size=1e300, entry_price=1e300)
        )

        assert outcome.ok is False
        assert outcome.error_kind == SizingErrorKind.INVALID_INPUT

    def test_compounding_outcome(self, sizer) -> None:
        outcome = sizer.evaluate(
            _inputs(entry_price=98.0), ExistingPosition(size=5.0, entry_price=100.0)
        )

        assert outcome.ok is True
        assert outcome.result.is_compounding
