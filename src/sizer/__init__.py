"""
Position Sizer — размер позиции под бюджет риска с учётом комиссий.

Стандартный режим и режим compounding (добавление к открытой позиции).
"""

from src.sizer.position_sizer import (
    PositionSizer,
    PositionSizerConfig,
    SizingOutcome,
    build_trade_inputs,
    parse_existing_position,
)

__all__ = [
    "PositionSizer",
    "PositionSizerConfig",
    "SizingOutcome",
    "build_trade_inputs",
    "parse_existing_position",
]
