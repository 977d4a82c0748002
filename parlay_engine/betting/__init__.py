"""
Parlay Engine Betting Module

Provides odds evaluation and Kelly staking.
"""

from parlay_engine.betting.odds_eval import (
    american_to_decimal,
    decimal_to_american,
    implied_probability,
    parlay_decimal_odds,
    expected_value,
    edge_percent,
)

from parlay_engine.betting.kelly_staking import (
    KellyResult,
    KellyRecommendation,
    StakeComparison,
    VarianceMetrics,
    TiltAnalysis,
    validate_kelly_inputs,
    kelly_fraction,
    classify_risk,
    calculate_kelly,
    calculate_parlay_kelly,
    compare_to_kelly,
    calculate_variance,
    analyze_tilt,
)

__all__ = [
    "american_to_decimal",
    "decimal_to_american",
    "implied_probability",
    "parlay_decimal_odds",
    "expected_value",
    "edge_percent",
    "KellyResult",
    "KellyRecommendation",
    "StakeComparison",
    "VarianceMetrics",
    "TiltAnalysis",
    "validate_kelly_inputs",
    "kelly_fraction",
    "classify_risk",
    "calculate_kelly",
    "calculate_parlay_kelly",
    "compare_to_kelly",
    "calculate_variance",
    "analyze_tilt",
]
