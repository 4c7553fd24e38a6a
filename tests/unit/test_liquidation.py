"""
Тесты для модуля Liquidation

Проверяет:
1. Плечо = notional / capital
2. Цену ликвидации для LONG/SHORT
3. Нулевое плечо (ликвидация недостижима)
4. Флаг ликвидации раньше stop-loss
"""

import pytest

from src.core.domain.sizing import Direction
from src.core.math.liquidation import (
    MAX_LEVERAGE,
    calculate_leverage,
    calculate_liquidation_price,
    is_liquidation_before_stop,
)


class TestLeverage:
    """Тесты для calculate_leverage"""

    def test_leverage(self) -> None:
        assert calculate_leverage(10.0, 100.0, 1000.0) == pytest.approx(1.0)
        assert calculate_leverage(9.780214, 100.0, 1000.0) == pytest.approx(0.9780214)

    def test_over_limit(self) -> None:
        """Капитал 1 USD на позиции ~978 USD → плечо далеко за лимитом"""
        assert calculate_leverage(9.78, 100.0, 1.0) > MAX_LEVERAGE

    def test_zero_capital_rejected(self) -> None:
        with pytest.raises(ValueError, match="available_capital"):
            calculate_leverage(10.0, 100.0, 0.0)


class TestLiquidationPrice:
    """Тесты для calculate_liquidation_price"""

    def test_long(self) -> None:
        assert calculate_liquidation_price(Direction.LONG, 100.0, 2.0) == pytest.approx(50.0)
        assert calculate_liquidation_price(Direction.LONG, 100.0, 10.0) == pytest.approx(90.0)

    def test_short(self) -> None:
        assert calculate_liquidation_price(Direction.SHORT, 100.0, 2.0) == pytest.approx(150.0)
        assert calculate_liquidation_price(Direction.SHORT, 100.0, 0.9780214) == pytest.approx(
            202.24725, abs=1e-4
        )

    def test_leverage_one_long_liquidates_at_zero(self) -> None:
        assert calculate_liquidation_price(Direction.LONG, 100.0, 1.0) == pytest.approx(0.0)

    def test_zero_leverage(self) -> None:
        """Нулевое плечо: LONG → 0, SHORT → inf"""
        assert calculate_liquidation_price(Direction.LONG, 100.0, 0.0) == 0.0
        assert calculate_liquidation_price(Direction.SHORT, 100.0, 0.0) == float("inf")

    def test_higher_leverage_closer_to_entry(self) -> None:
        low = calculate_liquidation_price(Direction.SHORT, 100.0, 5.0)
        high = calculate_liquidation_price(Direction.SHORT, 100.0, 50.0)
        assert 100.0 < high < low


class TestLiquidationBeforeStop:
    """Тесты для is_liquidation_before_stop"""

    def test_long(self) -> None:
        assert is_liquidation_before_stop(Direction.LONG, 99.0, 95.0)
        assert not is_liquidation_before_stop(Direction.LONG, 90.0, 95.0)

    def test_short(self) -> None:
        assert is_liquidation_before_stop(Direction.SHORT, 101.0, 105.0)
        assert not is_liquidation_before_stop(Direction.SHORT, 110.0, 105.0)

    def test_equal_is_not_before(self) -> None:
        assert not is_liquidation_before_stop(Direction.LONG, 95.0, 95.0)
        assert not is_liquidation_before_stop(Direction.SHORT, 95.0, 95.0)
