"""
Kelly Staking Module

Turns a win probability, American odds and a bankroll into a risk-bounded stake.
Inputs are validated first; invalid input yields an itemized error list and no
computation, never an exception.

Functions:
    - validate_kelly_inputs: Itemized validation of single-bet inputs
    - kelly_fraction: Raw (uncapped, possibly negative) Kelly fraction
    - calculate_kelly: Stake recommendation for a single bet
    - calculate_parlay_kelly: Stake recommendation for a multi-leg parlay
    - compare_to_kelly: Assess a user's stake against the Kelly stake
    - calculate_variance: Return/variance/ruin metrics for a stake
    - analyze_tilt: Flag streak- and drawdown-driven over-staking
"""

from __future__ import annotations
import logging
import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from parlay_engine.betting.odds_eval import american_to_decimal, edge_percent, expected_value
from parlay_engine.foundation.model_config import KellyPolicy, get_default_kelly_policy

logger = logging.getLogger(__name__)


RISK_CONSERVATIVE = "conservative"
RISK_MODERATE = "moderate"
RISK_AGGRESSIVE = "aggressive"
RISK_RECKLESS = "reckless"

STAKE_OPTIMAL = "optimal"
STAKE_UNDER = "under_betting"
STAKE_OVER = "over_betting"
STAKE_SIGNIFICANTLY_OVER = "significantly_over"

_STAKE_ADVICE: Dict[str, str] = {
    STAKE_OPTIMAL: "Your stake is within the optimal range. Good bankroll management.",
    STAKE_UNDER: "Your stake is conservative. Consider increasing it to capture more expected value.",
    STAKE_OVER: "Your stake exceeds the Kelly optimum. Consider reducing it to manage variance.",
    STAKE_SIGNIFICANTLY_OVER: "Your stake is far above the Kelly optimum. High risk of ruin.",
}


@dataclass(frozen=True)
class KellyResult:
    """Computed stake for one bet (single or parlay)."""
    recommended_stake: float
    full_kelly_fraction: float
    adjusted_kelly_fraction: float
    edge: float
    expected_value: float
    risk_level: str
    decimal_odds: float
    warnings: Tuple[str, ...] = ()
    was_capped: bool = False
    units: Optional[float] = None

    @property
    def warning(self) -> Optional[str]:
        """First warning, or None."""
        return self.warnings[0] if self.warnings else None

    def to_dict(self) -> Dict:
        return {
            "recommended_stake": round(self.recommended_stake, 2),
            "full_kelly_fraction": round(self.full_kelly_fraction, 4),
            "adjusted_kelly_fraction": round(self.adjusted_kelly_fraction, 4),
            "edge": round(self.edge, 4),
            "expected_value": round(self.expected_value, 4),
            "risk_level": self.risk_level,
            "decimal_odds": round(self.decimal_odds, 4),
            "warnings": list(self.warnings),
            "warning": self.warning,
            "was_capped": self.was_capped,
            "units": round(self.units, 2) if self.units is not None else None,
        }


@dataclass(frozen=True)
class KellyRecommendation:
    is_valid: bool
    errors: List[str] = field(default_factory=list)
    result: Optional[KellyResult] = None

    def to_dict(self) -> Dict:
        return {
            "is_valid": self.is_valid,
            "errors": list(self.errors),
            "result": self.result.to_dict() if self.result else None,
        }


@dataclass(frozen=True)
class StakeComparison:
    difference: float
    percent_difference: Optional[float]
    assessment: str
    advice: str

    def to_dict(self) -> Dict:
        return {
            "difference": round(self.difference, 2),
            "percent_difference": round(self.percent_difference, 2) if self.percent_difference is not None else None,
            "assessment": self.assessment,
            "advice": self.advice,
        }


@dataclass(frozen=True)
class VarianceMetrics:
    expected_return: float
    standard_deviation: float
    sharpe_ratio: float
    worst_case_95: float
    best_case_95: float
    risk_of_ruin: float
    max_drawdown_risk: float

    def to_dict(self) -> Dict:
        return {k: round(v, 4) for k, v in self.__dict__.items()}


@dataclass(frozen=True)
class TiltAnalysis:
    is_tilting: bool
    tilt_reason: Optional[str]
    suggested_action: str
    streak_impact: int

    def to_dict(self) -> Dict:
        return dict(self.__dict__)


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def validate_kelly_inputs(
    win_probability,
    american_odds,
    bankroll,
    kelly_multiplier=None,
    max_bet_percent=None,
    policy: Optional[KellyPolicy] = None,
) -> List[str]:
    """
    Validate single-bet Kelly inputs.

    Args:
        win_probability: Estimated probability of winning, strictly in (0, 1)
        american_odds: American odds, non-zero and finite
        bankroll: Current bankroll, at least the policy minimum
        kelly_multiplier: Fraction of full Kelly, in (0, 1] (optional)
        max_bet_percent: Stake cap as a fraction of bankroll, in (0, ceiling] (optional)
        policy: Kelly policy; defaults to the stock policy

    Returns:
        List of human-readable errors; empty when the inputs are valid
    """
    policy = policy or get_default_kelly_policy()
    errors: List[str] = []

    if win_probability is None:
        errors.append("Win probability is required")
    elif not _is_number(win_probability) or not (0 < win_probability < 1):
        errors.append("Win probability must be strictly between 0 and 1")

    if american_odds is None:
        errors.append("Odds are required")
    elif not _is_number(american_odds) or american_odds == 0:
        errors.append("American odds must be non-zero and finite")
    elif -100 < american_odds < 100:
        errors.append("American odds must be <= -100 or >= +100")

    errors.extend(_validate_bankroll(bankroll, kelly_multiplier, max_bet_percent, policy))
    return errors


def _validate_bankroll(bankroll, kelly_multiplier, max_bet_percent, policy: KellyPolicy) -> List[str]:
    errors: List[str] = []
    if bankroll is None:
        errors.append("Bankroll is required")
    elif not _is_number(bankroll) or bankroll < policy.min_bankroll:
        errors.append(f"Minimum bankroll is {policy.min_bankroll:g}")

    if kelly_multiplier is not None:
        if not _is_number(kelly_multiplier) or not (0 < kelly_multiplier <= 1):
            errors.append("Kelly multiplier must be greater than 0 and at most 1")

    if max_bet_percent is not None:
        if not _is_number(max_bet_percent) or not (0 < max_bet_percent <= policy.max_bet_percent_ceiling):
            errors.append(
                f"Max bet percent must be greater than 0 and at most {policy.max_bet_percent_ceiling:g}"
            )
    return errors


def kelly_fraction(true_prob: float, decimal_odds: float) -> float:
    """
    Calculate the raw Kelly fraction f* = (b*p - q) / b.

    Unlike the stake recommendation this is neither capped nor floored at zero; a
    negative value means the bet has negative expectation.

    Args:
        true_prob: True probability of winning (0.0 to 1.0)
        decimal_odds: Decimal odds

    Returns:
        Kelly fraction, or 0.0 when the net odds b are not positive
    """
    b = decimal_odds - 1
    if b <= 0:
        return 0.0
    return (b * true_prob - (1 - true_prob)) / b


def classify_risk(adjusted_fraction: float, policy: Optional[KellyPolicy] = None) -> str:
    policy = policy or get_default_kelly_policy()
    if adjusted_fraction >= policy.reckless_at:
        return RISK_RECKLESS
    if adjusted_fraction >= policy.aggressive_at:
        return RISK_AGGRESSIVE
    if adjusted_fraction >= policy.moderate_at:
        return RISK_MODERATE
    return RISK_CONSERVATIVE


def _compute(
    p: float,
    decimal_odds: float,
    bankroll: float,
    multiplier: float,
    max_bet_percent: float,
    unit_size: Optional[float],
    policy: KellyPolicy,
) -> KellyResult:
    full = kelly_fraction(p, decimal_odds)
    edge = edge_percent(p, decimal_odds)

    scaled = full * multiplier
    was_capped = scaled > max_bet_percent
    adjusted = max(0.0, min(scaled, max_bet_percent))
    stake = bankroll * adjusted
    ev = expected_value(p, decimal_odds, stake=stake, odds_type="decimal")

    warnings: List[str] = []
    if edge <= 0:
        warnings.append("No edge detected - Kelly suggests no bet")
    if full < 0:
        warnings.append("Negative Kelly fraction - the price is worse than your probability")
    if was_capped:
        warnings.append(f"Stake capped at {max_bet_percent:.1%} of bankroll")
    if full > 0.25:
        warnings.append("Full Kelly suggests very aggressive sizing - use fractional Kelly")
    if 0 < edge < 2:
        warnings.append("Thin edge (<2%) - consider passing or reducing stake")

    units = stake / unit_size if unit_size else None

    logger.debug(
        f"Kelly p={p:.4f} d={decimal_odds:.3f} full={full:.4f} adjusted={adjusted:.4f} stake={stake:.2f}"
    )
    return KellyResult(
        recommended_stake=stake,
        full_kelly_fraction=full,
        adjusted_kelly_fraction=adjusted,
        edge=edge,
        expected_value=ev,
        risk_level=classify_risk(adjusted, policy),
        decimal_odds=decimal_odds,
        warnings=tuple(warnings),
        was_capped=was_capped,
        units=units,
    )


def calculate_kelly(
    win_probability: float,
    american_odds: float,
    bankroll: float,
    kelly_multiplier: Optional[float] = None,
    max_bet_percent: Optional[float] = None,
    unit_size: Optional[float] = None,
    policy: Optional[KellyPolicy] = None,
) -> KellyRecommendation:
    """
    Get a fractional-Kelly stake recommendation for a single bet.

    Applies:
        - Kelly multiplier (half Kelly by default)
        - Hard cap of max_bet_percent of bankroll (5% by default)
        - Floor at zero when there is no edge

    Args:
        win_probability: Estimated probability of winning
        american_odds: American odds
        bankroll: Current bankroll
        kelly_multiplier: Fraction of full Kelly (a KellyMode works too)
        max_bet_percent: Stake cap as a fraction of bankroll
        unit_size: Currency value of one unit, for the units field
        policy: Kelly policy; defaults to the stock policy

    Returns:
        KellyRecommendation; result is None when validation fails
    """
    policy = policy or get_default_kelly_policy()
    errors = validate_kelly_inputs(
        win_probability, american_odds, bankroll, kelly_multiplier, max_bet_percent, policy
    )
    if errors:
        logger.debug(f"Kelly input rejected: {errors}")
        return KellyRecommendation(is_valid=False, errors=errors)

    multiplier = float(kelly_multiplier) if kelly_multiplier is not None else policy.default_multiplier
    cap = max_bet_percent if max_bet_percent is not None else policy.default_max_bet_percent
    result = _compute(
        win_probability, american_to_decimal(american_odds), bankroll, multiplier, cap, unit_size, policy
    )
    return KellyRecommendation(is_valid=True, errors=[], result=result)


def calculate_parlay_kelly(
    legs: Sequence[Tuple[float, float]],
    bankroll: float,
    kelly_multiplier: Optional[float] = None,
    correlation_factor: Optional[float] = None,
    unit_size: Optional[float] = None,
    policy: Optional[KellyPolicy] = None,
) -> KellyRecommendation:
    """
    Kelly stake for a parlay.

    The combined probability is the product of the leg probabilities discounted by
    correlation_factor (0.85 by default); the combined price is the product of the
    leg decimal odds. Parlays use the lower parlay cap (3% by default).

    Args:
        legs: (win_probability, american_odds) per leg
        bankroll: Current bankroll
        kelly_multiplier: Fraction of full Kelly
        correlation_factor: Discount applied to the combined probability, in (0, 1]
        unit_size: Currency value of one unit
        policy: Kelly policy

    Returns:
        KellyRecommendation
    """
    policy = policy or get_default_kelly_policy()
    factor = policy.parlay_correlation_discount if correlation_factor is None else correlation_factor

    errors: List[str] = []
    if not legs:
        errors.append("At least one leg is required")
    for i, (prob, odds) in enumerate(legs):
        for err in validate_kelly_inputs(prob, odds, policy.min_bankroll, policy=policy):
            errors.append(f"Leg {i + 1}: {err}")
    if not _is_number(factor) or not (0 < factor <= 1):
        errors.append("Correlation factor must be greater than 0 and at most 1")
    errors.extend(_validate_bankroll(bankroll, kelly_multiplier, None, policy))
    if errors:
        return KellyRecommendation(is_valid=False, errors=errors)

    combined_prob = math.prod(p for p, _ in legs) * factor
    combined_odds = math.prod(american_to_decimal(o) for _, o in legs)
    multiplier = float(kelly_multiplier) if kelly_multiplier is not None else policy.default_multiplier
    result = _compute(
        combined_prob, combined_odds, bankroll, multiplier, policy.parlay_max_bet_percent, unit_size, policy
    )
    return KellyRecommendation(is_valid=True, errors=[], result=result)


def compare_to_kelly(
    user_stake: float,
    kelly_recommended: float,
    policy: Optional[KellyPolicy] = None,
) -> StakeComparison:
    """
    Assess a user's stake against the Kelly-recommended stake.

    Within +/- optimal_tolerance_pct of Kelly is optimal; below is under-betting,
    above is over-betting, and more than significantly_over_multiple times Kelly is
    significantly over. Betting anything when Kelly recommends nothing is
    significantly over, with no percent difference.
    """
    policy = policy or get_default_kelly_policy()
    difference = user_stake - kelly_recommended

    if kelly_recommended <= 0:
        if user_stake > 0:
            assessment, pct = STAKE_SIGNIFICANTLY_OVER, None
        else:
            assessment, pct = STAKE_OPTIMAL, 0.0
        return StakeComparison(difference, pct, assessment, _STAKE_ADVICE[assessment])

    pct = difference / kelly_recommended * 100
    if user_stake > kelly_recommended * policy.significantly_over_multiple:
        assessment = STAKE_SIGNIFICANTLY_OVER
    elif pct > policy.optimal_tolerance_pct:
        assessment = STAKE_OVER
    elif pct < -policy.optimal_tolerance_pct:
        assessment = STAKE_UNDER
    else:
        assessment = STAKE_OPTIMAL
    return StakeComparison(difference, pct, assessment, _STAKE_ADVICE[assessment])


def calculate_variance(
    win_probability: float,
    stake: float,
    decimal_odds: float,
    bankroll: float,
) -> VarianceMetrics:
    """
    Return distribution of a single stake.

    Args:
        win_probability: Probability of winning
        stake: Amount wagered
        decimal_odds: Decimal odds
        bankroll: Current bankroll (> 0)

    Returns:
        VarianceMetrics; risk_of_ruin and max_drawdown_risk are percentages
    """
    b = decimal_odds - 1
    p = win_probability
    q = 1 - p

    expected = p * stake * b - q * stake
    variance = p * (stake * b - expected) ** 2 + q * (-stake - expected) ** 2
    std = math.sqrt(variance)
    sharpe = expected / std if std > 0 else 0.0

    fraction = stake / bankroll if bankroll > 0 else 0.0
    if fraction <= 0:
        ruin = 0.0
    elif q >= p:
        ruin = 100.0
    else:
        # (q/p) ** (1/f), computed in log space to avoid overflow for tiny f
        ruin = min(100.0, math.exp(math.log(q / p) / fraction) * 100)

    return VarianceMetrics(
        expected_return=expected,
        standard_deviation=std,
        sharpe_ratio=sharpe,
        worst_case_95=expected - 1.96 * std,
        best_case_95=expected + 1.96 * std,
        risk_of_ruin=ruin,
        max_drawdown_risk=fraction * 100,
    )


def analyze_tilt(
    win_streak: int,
    loss_streak: int,
    proposed_stake: float,
    bankroll: float,
    peak_bankroll: float,
) -> TiltAnalysis:
    """
    Flag stakes that look emotionally driven.

    Checks, in order (later checks override earlier ones):
        - 3+ straight losses with a stake above 3% of bankroll
        - 4+ straight wins with a stake above 6% of bankroll
        - Drawdown above 20% from peak with a stake above 4% of bankroll
    """
    stake_pct = proposed_stake / bankroll if bankroll > 0 else 0.0
    drawdown_pct = (peak_bankroll - bankroll) / peak_bankroll * 100 if peak_bankroll > 0 else 0.0

    is_tilting = False
    reason: Optional[str] = None
    action = "Proceed with bet"
    impact = 0

    if loss_streak >= 3 and stake_pct > 0.03:
        is_tilting = True
        reason = f"{loss_streak} consecutive losses - potential tilt detected"
        action = "Consider taking a break or reducing stake by 50%"
        impact = -loss_streak * 5

    if win_streak >= 4 and stake_pct > 0.06:
        is_tilting = True
        reason = f"{win_streak} consecutive wins - potential overconfidence"
        action = "Stay disciplined - variance will regress"
        impact = win_streak * 2

    if drawdown_pct > 20 and stake_pct > 0.04:
        is_tilting = True
        reason = f"{drawdown_pct:.1f}% drawdown from peak - chasing losses"
        action = "Reduce stake to rebuild bankroll gradually"
        impact = -15

    if is_tilting:
        logger.warning(f"Tilt detected: {reason}")
    return TiltAnalysis(is_tilting, reason, action, impact)
