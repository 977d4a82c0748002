"""
Odds & EV Evaluation Module

Converts between odds formats and computes edge/EV metrics for legs and parlays.

Functions:
    - american_to_decimal: Convert American odds to decimal format
    - decimal_to_american: Convert decimal odds back to American format
    - implied_probability: Calculate implied probability from odds
    - parlay_decimal_odds: Combine leg odds into parlay decimal odds
    - expected_value: Calculate EV in currency units
    - edge_percent: Calculate Kelly-style edge ((p * d - 1) * 100)
"""

from __future__ import annotations
import math
from typing import Iterable


def american_to_decimal(odds: float) -> float:
    """
    Convert American odds to decimal odds.

    Args:
        odds: American odds value (positive or negative, non-zero)

    Returns:
        Decimal odds equivalent

    Raises:
        ValueError: If odds are zero or not finite
    """
    odds = float(odds)
    if odds == 0 or not math.isfinite(odds):
        raise ValueError(f"American odds must be non-zero and finite, got {odds}")
    if odds > 0:
        return 1 + odds / 100
    return 1 + 100 / abs(odds)


def decimal_to_american(decimal_odds: float) -> float:
    """
    Convert decimal odds to American odds.

    Args:
        decimal_odds: Decimal odds (> 1.0)

    Returns:
        American odds (+X for decimal >= 2.0, -X otherwise)
    """
    decimal_odds = float(decimal_odds)
    if decimal_odds <= 1.0:
        raise ValueError(f"Decimal odds must exceed 1.0, got {decimal_odds}")
    if decimal_odds >= 2.0:
        return (decimal_odds - 1) * 100
    return -100 / (decimal_odds - 1)


def implied_probability(odds: float, odds_type: str = "american") -> float:
    """
    Book-implied win probability (vig included) for a single price.

    Args:
        odds: Odds value
        odds_type: Either "american" or "decimal"

    Returns:
        1 / decimal odds

    Raises:
        ValueError: On an unknown odds_type or an unusable price
    """
    if odds_type == "american":
        decimal_odds = american_to_decimal(odds)
    elif odds_type == "decimal":
        decimal_odds = float(odds)
        if decimal_odds <= 1.0:
            raise ValueError(f"Decimal odds must exceed 1.0, got {decimal_odds}")
    else:
        raise ValueError(f"Unknown odds_type '{odds_type}'")
    return 1.0 / decimal_odds


def parlay_decimal_odds(leg_odds: Iterable[float]) -> float:
    """Product of the legs' decimal odds (American input)."""
    result = 1.0
    for odds in leg_odds:
        result *= american_to_decimal(odds)
    return result


def expected_value(
    true_prob: float,
    odds: float,
    stake: float = 1.0,
    odds_type: str = "american"
) -> float:
    """
    Expected profit of a stake in currency units (win pays stake * (d - 1)).

    Args:
        true_prob: True probability of winning (0.0 to 1.0)
        odds: Odds value
        stake: Bet amount
        odds_type: Either "american" or "decimal"

    Returns:
        Expected value in same units as stake
    """
    dec = odds if odds_type == "decimal" else american_to_decimal(odds)
    return true_prob * stake * (dec - 1) - (1 - true_prob) * stake


def edge_percent(true_prob: float, decimal_odds: float) -> float:
    """
    Edge as a percentage of stake: (p * d - 1) * 100.

    Zero exactly when p * d == 1 (the bet is priced fairly).
    """
    return (true_prob * decimal_odds - 1) * 100
