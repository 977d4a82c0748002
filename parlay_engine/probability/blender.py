"""
Probability Blender

Combines three estimates of a parlay's win probability into one:

    final = 0.10 * book_implied + 0.40 * ai_adjusted + 0.50 * correlation_adjusted

Missing components are dropped and the remaining weights renormalized so they
always sum to 1. The result carries explicit has_ai_data / has_correlation_data
flags and a 0-100 confidence score built from five factors.
"""

from __future__ import annotations
import logging
import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from parlay_engine.betting.odds_eval import implied_probability
from parlay_engine.ensemble.aggregator import LegConsensus
from parlay_engine.foundation.model_config import (
    BlendPolicy,
    CalibrationPolicy,
    get_default_blend_policy,
)
from parlay_engine.schema import CorrelationInput, LegAnalysis
from parlay_engine.validation.calibrator import apply_calibration_factor

logger = logging.getLogger(__name__)


STATUS_GOOD = "good"
STATUS_WARNING = "warning"
STATUS_CRITICAL = "critical"

LEVEL_HIGH = "high"
LEVEL_MEDIUM = "medium"
LEVEL_LOW = "low"
LEVEL_UNCERTAIN = "uncertain"


@dataclass(frozen=True)
class ConfidenceFactor:
    name: str
    score: int
    max_score: int
    status: str
    description: str

    def to_dict(self) -> Dict:
        return {
            "name": self.name,
            "score": self.score,
            "max_score": self.max_score,
            "status": self.status,
            "description": self.description,
        }


@dataclass(frozen=True)
class BlendedProbability:
    """Final parlay probability with its provenance and confidence rating."""
    book_implied: float
    ai_adjusted: Optional[float]
    correlation_adjusted: Optional[float]
    final_probability: float
    weights: Dict[str, float]
    has_ai_data: bool
    has_correlation_data: bool
    ai_coverage: float
    correlation_impact: float
    confidence_score: int
    confidence_level: str
    confidence_factors: Tuple[ConfidenceFactor, ...] = field(default_factory=tuple)
    correlation_warnings: Tuple[str, ...] = field(default_factory=tuple)
    calibrated_probability: Optional[float] = None

    def to_dict(self) -> Dict:
        def r(v: Optional[float]) -> Optional[float]:
            return round(v, 4) if v is not None else None

        return {
            "book_implied": r(self.book_implied),
            "ai_adjusted": r(self.ai_adjusted),
            "correlation_adjusted": r(self.correlation_adjusted),
            "final_probability": r(self.final_probability),
            "calibrated_probability": r(self.calibrated_probability),
            "weights": {k: round(v, 4) for k, v in self.weights.items()},
            "has_ai_data": self.has_ai_data,
            "has_correlation_data": self.has_correlation_data,
            "ai_coverage": r(self.ai_coverage),
            "correlation_impact": r(self.correlation_impact),
            "confidence_score": self.confidence_score,
            "confidence_level": self.confidence_level,
            "confidence_factors": [f.to_dict() for f in self.confidence_factors],
            "correlation_warnings": list(self.correlation_warnings),
        }


def leg_ai_probability(
    leg: LegAnalysis,
    consensus: Optional[LegConsensus] = None,
    policy: Optional[BlendPolicy] = None,
) -> Optional[float]:
    """
    AI probability for one leg.

    Uses the record's adjusted_probability when present. Otherwise, when the leg
    has ensemble data, the book probability is nudged by the consensus score:
    p_book * (1 + nudge * score / 100). Returns None for an uncovered leg.
    """
    policy = policy or get_default_blend_policy()
    if leg.adjusted_probability is not None:
        return leg.adjusted_probability
    if consensus is None or not consensus.has_data:
        return None
    book = implied_probability(leg.odds)
    nudged = book * (1 + policy.ensemble_nudge * consensus.consensus_score / 100)
    return max(policy.min_probability, min(1 - policy.min_probability, nudged))


def leg_ai_probabilities(
    legs: Sequence[LegAnalysis],
    leg_results: Optional[Sequence[LegConsensus]] = None,
    policy: Optional[BlendPolicy] = None,
) -> List[Optional[float]]:
    """Per-leg AI probabilities aligned with legs; None where a leg is uncovered."""
    if leg_results is not None and len(leg_results) != len(legs):
        raise ValueError(f"Got {len(leg_results)} leg results for {len(legs)} legs")
    return [
        leg_ai_probability(leg, leg_results[i] if leg_results is not None else None, policy)
        for i, leg in enumerate(legs)
    ]


def _status(fraction: float, good_at: float = 0.8, warning_at: float = 0.5) -> str:
    if fraction >= good_at:
        return STATUS_GOOD
    if fraction >= warning_at:
        return STATUS_WARNING
    return STATUS_CRITICAL


def confidence_factors(
    leg_odds: Sequence[float],
    ai_coverage: float,
    correlation_coverage: float,
    warnings: Sequence[str],
    policy: Optional[BlendPolicy] = None,
) -> List[ConfidenceFactor]:
    """
    The five confidence factors, in display order.

    Leg Count, AI Coverage, Correlation Data, Correlation Risk and Odds
    Reliability. Their maxima sum to 100.
    """
    policy = policy or get_default_blend_policy()
    n = len(leg_odds)
    factors: List[ConfidenceFactor] = []

    # Fewer legs, more confidence
    if n <= 3:
        leg_score = policy.leg_count_max
    elif n <= 5:
        leg_score = policy.leg_count_max * 3 // 4
    elif n <= 7:
        leg_score = policy.leg_count_max // 2
    else:
        leg_score = policy.leg_count_max // 4
    factors.append(ConfidenceFactor(
        "Leg Count", leg_score, policy.leg_count_max,
        _status(leg_score / policy.leg_count_max, 0.75, 0.5),
        f"{n} legs in parlay",
    ))

    ai_score = int(round(ai_coverage * policy.ai_coverage_max))
    factors.append(ConfidenceFactor(
        "AI Coverage", ai_score, policy.ai_coverage_max, _status(ai_coverage),
        f"{int(round(ai_coverage * n))}/{n} legs analyzed",
    ))

    corr_score = int(round(correlation_coverage * policy.correlation_data_max))
    factors.append(ConfidenceFactor(
        "Correlation Data", corr_score, policy.correlation_data_max, _status(correlation_coverage),
        "Correlation model available" if correlation_coverage > 0 else "No correlation data",
    ))

    deduction = sum(policy.warning_penalties.get(w, policy.default_warning_penalty) for w in warnings)
    risk_score = max(0, policy.correlation_risk_max - deduction)
    factors.append(ConfidenceFactor(
        "Correlation Risk", risk_score, policy.correlation_risk_max,
        _status(risk_score / policy.correlation_risk_max, 0.75, 0.5),
        f"{len(warnings)} correlation warning(s)" if warnings else "No correlation warnings",
    ))

    extreme = any(abs(o) > policy.extreme_odds for o in leg_odds)
    odds_score = policy.extreme_odds_score if extreme else policy.odds_reliability_max
    factors.append(ConfidenceFactor(
        "Odds Reliability", odds_score, policy.odds_reliability_max,
        STATUS_WARNING if extreme else STATUS_GOOD,
        "Contains extreme odds" if extreme else "Odds in normal range",
    ))
    return factors


def confidence_level(score: float, policy: Optional[BlendPolicy] = None) -> str:
    policy = policy or get_default_blend_policy()
    if score >= policy.high_at:
        return LEVEL_HIGH
    if score >= policy.medium_at:
        return LEVEL_MEDIUM
    if score >= policy.low_at:
        return LEVEL_LOW
    return LEVEL_UNCERTAIN


def blend_weights(has_ai: bool, has_correlation: bool, policy: Optional[BlendPolicy] = None) -> Dict[str, float]:
    """Base weights restricted to present components and renormalized to sum to 1."""
    policy = policy or get_default_blend_policy()
    raw = {"book": policy.weights.book}
    if has_ai:
        raw["ai"] = policy.weights.ai
    if has_correlation:
        raw["correlation"] = policy.weights.correlation
    total = sum(raw.values())
    return {k: v / total for k, v in raw.items()}


def blend_probability(
    leg_odds: Sequence[float],
    ai_leg_probabilities: Optional[Sequence[Optional[float]]] = None,
    correlation: Optional[CorrelationInput] = None,
    calibration_factor: Optional[float] = None,
    policy: Optional[BlendPolicy] = None,
    calibration_policy: Optional[CalibrationPolicy] = None,
) -> BlendedProbability:
    """
    Blend book, AI and correlation probabilities for a parlay.

    Args:
        leg_odds: American odds per leg
        ai_leg_probabilities: Per-leg AI probability aligned with leg_odds (None
            for uncovered legs). Uncovered legs contribute their book probability
            to the AI product.
        correlation: External correlation result; absent probability means no
            correlation component
        calibration_factor: Optional historical correction for calibrated_probability
        policy: Blend policy
        calibration_policy: Calibration policy used to apply the factor

    Returns:
        BlendedProbability

    Raises:
        ValueError: If there are no legs or the AI list is misaligned
    """
    policy = policy or get_default_blend_policy()
    n = len(leg_odds)
    if n == 0:
        raise ValueError("Cannot blend probability for a parlay with no legs")
    ai_legs = list(ai_leg_probabilities) if ai_leg_probabilities is not None else [None] * n
    if len(ai_legs) != n:
        raise ValueError(f"Got {len(ai_legs)} AI probabilities for {n} legs")

    book_legs = [implied_probability(o) for o in leg_odds]
    book_implied = math.prod(book_legs)

    covered = sum(1 for p in ai_legs if p is not None)
    ai_coverage = covered / n
    has_ai = covered > 0
    ai_adjusted = (
        math.prod(p if p is not None else b for p, b in zip(ai_legs, book_legs)) if has_ai else None
    )

    has_corr = correlation is not None and correlation.probability is not None
    corr_prob = correlation.probability if has_corr else None
    corr_warnings = tuple(correlation.warnings) if correlation is not None else ()
    if not has_corr:
        corr_coverage = 0.0
    elif correlation.covered_legs is None:
        corr_coverage = 1.0
    else:
        corr_coverage = min(1.0, correlation.covered_legs / n)

    weights = blend_weights(has_ai, has_corr, policy)
    raw = weights["book"] * book_implied
    if has_ai:
        raw += weights["ai"] * ai_adjusted
    if has_corr:
        raw += weights["correlation"] * corr_prob
    final = max(policy.min_probability, min(policy.max_probability, raw))

    if not has_ai:
        logger.debug("No AI data for any leg; blending without the AI component")
    if not has_corr:
        logger.debug("No correlation probability; blending without the correlation component")

    factors = confidence_factors(leg_odds, ai_coverage, corr_coverage, corr_warnings, policy)
    score = sum(f.score for f in factors)

    calibrated = None
    if calibration_factor is not None:
        calibrated = apply_calibration_factor(final, calibration_factor, calibration_policy)
        calibrated = max(policy.min_probability, min(policy.max_probability, calibrated))

    return BlendedProbability(
        book_implied=book_implied,
        ai_adjusted=ai_adjusted,
        correlation_adjusted=corr_prob,
        final_probability=final,
        weights=weights,
        has_ai_data=has_ai,
        has_correlation_data=has_corr,
        ai_coverage=ai_coverage,
        correlation_impact=(corr_prob - book_implied) if has_corr else 0.0,
        confidence_score=score,
        confidence_level=confidence_level(score, policy),
        confidence_factors=tuple(factors),
        correlation_warnings=corr_warnings,
        calibrated_probability=calibrated,
    )
