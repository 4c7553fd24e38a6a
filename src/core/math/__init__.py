"""
Core math modules

Численные примитивы и алгоритмы расчёта размера позиции.
"""

# Numerical Safeguards
from src.core.math.numerical_safeguards import (
    EPS_CALC,
    EPS_FLOAT_COMPARE_REL,
    MAX_DECIMAL_PLACES,
    exceeds_tolerance,
    is_valid_float,
    parse_finite,
    round_half_up,
    safe_divide,
    validate_in_range,
    validate_non_negative,
    validate_positive,
)

# Fees
from src.core.math.fees import (
    DEFAULT_LIMIT_FEE_PCT,
    DEFAULT_MARKET_FEE_PCT,
    FeeLeg,
    FeeSchedule,
    FeeSelection,
    FeeType,
    calculate_leg_fees,
    calculate_unit_cost,
    pct_to_fraction,
    resolve_fee_type,
)

# Position Sizing
from src.core.math.position_sizing import (
    MAX_SOLVER_ITERATIONS,
    RISK_TOLERANCE_FRAC,
    FeeAdjustedSolution,
    closed_form_size,
    solve_fee_adjusted_size,
)

# Liquidation
from src.core.math.liquidation import (
    MAX_LEVERAGE,
    calculate_leverage,
    calculate_liquidation_price,
    is_liquidation_before_stop,
)

# Compounding
from src.core.math.compounding import (
    INCREMENT_STEP_FRAC,
    INCREMENT_STEP_MAX,
    MAX_INCREMENT_STEPS,
    CombinedRisk,
    IncrementSearch,
    combined_position_risk,
    existing_position_risk,
    is_favorable_entry,
    remaining_risk_budget,
    search_favorable_increment,
    weighted_average_entry,
)

__all__ = [
    # Numerical Safeguards — Constants
    "EPS_CALC",
    "EPS_FLOAT_COMPARE_REL",
    "MAX_DECIMAL_PLACES",
    # Numerical Safeguards — Functions
    "exceeds_tolerance",
    "is_valid_float",
    "parse_finite",
    "round_half_up",
    "safe_divide",
    "validate_in_range",
    "validate_non_negative",
    "validate_positive",
    # Fees — Constants
    "DEFAULT_LIMIT_FEE_PCT",
    "DEFAULT_MARKET_FEE_PCT",
    # Fees — Types
    "FeeLeg",
    "FeeSchedule",
    "FeeSelection",
    "FeeType",
    # Fees — Functions
    "calculate_leg_fees",
    "calculate_unit_cost",
    "pct_to_fraction",
    "resolve_fee_type",
    # Position Sizing
    "MAX_SOLVER_ITERATIONS",
    "RISK_TOLERANCE_FRAC",
    "FeeAdjustedSolution",
    "closed_form_size",
    "solve_fee_adjusted_size",
    # Liquidation
    "MAX_LEVERAGE",
    "calculate_leverage",
    "calculate_liquidation_price",
    "is_liquidation_before_stop",
    # Compounding
    "INCREMENT_STEP_FRAC",
    "INCREMENT_STEP_MAX",
    "MAX_INCREMENT_STEPS",
    "CombinedRisk",
    "IncrementSearch",
    "combined_position_risk",
    "existing_position_risk",
    "is_favorable_entry",
    "remaining_risk_budget",
    "search_favorable_increment",
    "weighted_average_entry",
]
