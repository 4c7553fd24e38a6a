"""
Тесты для модуля Compounding

Проверяет:
1. Риск существующей позиции с комиссиями
2. Остаток бюджета риска
3. Средневзвешенную цену входа
4. Риск объединённой позиции
5. Выгодный вход и ограниченный поиск приращения
"""

import pytest

from src.core.domain.sizing import Direction, ExistingPosition
from src.core.math.compounding import (
    MAX_INCREMENT_STEPS,
    combined_position_risk,
    existing_position_risk,
    is_favorable_entry,
    remaining_risk_budget,
    search_favorable_increment,
    weighted_average_entry,
)

FEE = 0.00055


@pytest.fixture
def existing() -> ExistingPosition:
    """Открытая позиция 5 @ 100"""
    return ExistingPosition(size=5.0, entry_price=100.0)


class TestExistingRisk:
    """Тесты для existing_position_risk / remaining_risk_budget"""

    def test_existing_risk_with_fees(self, existing) -> None:
        """5 × |100 − 95| + 5 × (100 + 95) × 0.00055"""
        assert existing_position_risk(existing, 95.0, FEE, FEE) == pytest.approx(25.53625)

    def test_existing_risk_without_fees(self, existing) -> None:
        assert existing_position_risk(existing, 95.0, 0.0, 0.0) == pytest.approx(25.0)

    def test_empty_position_has_no_risk(self) -> None:
        empty = ExistingPosition(size=0.0, entry_price=100.0)
        assert existing_position_risk(empty, 95.0, FEE, FEE) == 0.0

    def test_remaining_budget(self) -> None:
        assert remaining_risk_budget(50.0, 25.53625) == pytest.approx(24.46375)
        assert remaining_risk_budget(20.0, 25.0) == 0.0


class TestWeightedAverage:
    """Тесты для weighted_average_entry / combined_position_risk"""

    def test_weighted_average(self) -> None:
        assert weighted_average_entry(5.0, 100.0, 5.0, 98.0) == pytest.approx(99.0)
        assert weighted_average_entry(1.0, 100.0, 3.0, 96.0) == pytest.approx(97.0)

    def test_zero_combined_size_returns_new_entry(self) -> None:
        assert weighted_average_entry(0.0, 100.0, 0.0, 98.0) == 98.0

    def test_combined_risk(self, existing) -> None:
        """Комиссии объединённой позиции по средней цене и stop"""
        combined = combined_position_risk(existing, 5.0, 98.0, 95.0, FEE, FEE)

        assert combined.combined_size == pytest.approx(10.0)
        assert combined.weighted_average_entry == pytest.approx(99.0)
        assert combined.total_fees == pytest.approx(10.0 * (99.0 + 95.0) * FEE)
        assert combined.total_risk == pytest.approx(40.0 + combined.total_fees)

    def test_zero_increment_equals_existing_risk(self, existing) -> None:
        combined = combined_position_risk(existing, 0.0, 98.0, 95.0, FEE, FEE)
        assert combined.total_risk == pytest.approx(
            existing_position_risk(existing, 95.0, FEE, FEE)
        )


class TestFavorableEntry:
    """Тесты для is_favorable_entry"""

    def test_long(self) -> None:
        assert is_favorable_entry(Direction.LONG, 101.0, 100.0)
        assert not is_favorable_entry(Direction.LONG, 99.0, 100.0)

    def test_short(self) -> None:
        assert is_favorable_entry(Direction.SHORT, 99.0, 100.0)
        assert not is_favorable_entry(Direction.SHORT, 101.0, 100.0)

    def test_same_price_not_favorable(self) -> None:
        assert not is_favorable_entry(Direction.LONG, 100.0, 100.0)
        assert not is_favorable_entry(Direction.SHORT, 100.0, 100.0)


class TestIncrementSearch:
    """Тесты для search_favorable_increment"""

    def test_search_finds_last_admissible_step(self, existing) -> None:
        """
        Позиция 5 @ 100, stop 95, комиссии 0.1%, бюджет 25.9, новый вход 94.

        Риск объединённой позиции: |25 − inc| + 0.975 + 0.189 × inc.
        Допустимо inc <= 41.99 → шаг 0.5 даёт 41.5.
        """
        search = search_favorable_increment(existing, 94.0, 95.0, 25.9, 0.001, 0.001)

        assert search.step_size == pytest.approx(0.5)
        assert search.increment == pytest.approx(41.5)
        assert search.steps == 84
        assert search.total_risk == pytest.approx(25.3185)
        assert search.total_risk <= 25.9

    def test_step_capped_at_one(self) -> None:
        large = ExistingPosition(size=50.0, entry_price=100.0)
        search = search_favorable_increment(large, 99.0, 95.0, 1000.0, 0.0, 0.0)
        assert search.step_size == 1.0

    def test_no_admissible_step(self, existing) -> None:
        """Каждое приращение увеличивает риск → increment == 0, все шаги пройдены"""
        search = search_favorable_increment(existing, 99.0, 95.0, 25.9, 0.001, 0.001)

        assert search.increment == 0.0
        assert search.steps == MAX_INCREMENT_STEPS

    def test_empty_existing_position(self) -> None:
        empty = ExistingPosition(size=0.0, entry_price=100.0)
        search = search_favorable_increment(empty, 94.0, 95.0, 25.9, 0.001, 0.001)

        assert search.increment == 0.0
        assert search.steps == 0

    def test_respects_max_steps(self, existing) -> None:
        search = search_favorable_increment(
            existing, 94.0, 95.0, 25.9, 0.001, 0.001, max_steps=10
        )
        assert search.steps == 10
        assert search.increment == pytest.approx(5.0)
