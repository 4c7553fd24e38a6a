"""
Domain models and value objects.

Входные и выходные записи расчёта размера позиции.
"""

from src.core.domain.sizing import (
    Direction,
    ExistingPosition,
    SizingResult,
    SolverDiagnostics,
    TradeInputs,
)

__all__ = [
    "Direction",
    "ExistingPosition",
    "SizingResult",
    "SolverDiagnostics",
    "TradeInputs",
]
