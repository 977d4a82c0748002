"""
Ensemble Aggregator

Turns per-leg engine signals into a weighted consensus score on a -100..+100
scale, classifies it, and rolls leg results up into a parlay-level judgment.

Functions:
    - score_signals: Weighted consensus score for one leg's signals
    - aggregate_leg: Full LegConsensus for one leg's signals
    - aggregate_parlay: ParlayConsensus from leg results
    - analyze_legs: Extract + aggregate every leg, then the parlay
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from parlay_engine.ensemble.signals import Signal, SignalStatus, extract_signals
from parlay_engine.foundation.model_config import (
    Classification,
    EngineId,
    EnsemblePolicy,
    get_default_ensemble_policy,
)
from parlay_engine.schema import LegAnalysis

logger = logging.getLogger(__name__)


RISK_LOW = "low"
RISK_MEDIUM = "medium"
RISK_HIGH = "high"
RISK_EXTREME = "extreme"

RECOMMENDATIONS: Dict[Classification, str] = {
    Classification.STRONG_PICK: "Strong consensus to PICK. Engines broadly agree on every leg.",
    Classification.LEAN_PICK: "Lean PICK with moderate confidence. Some engines disagree.",
    Classification.NEUTRAL: "Mixed signals - no clear consensus. Consider passing or reducing stake.",
    Classification.LEAN_FADE: "Lean FADE. Proceed with caution.",
    Classification.STRONG_FADE: "Strong consensus to FADE. Engines see trap signals on this parlay.",
}


@dataclass(frozen=True)
class LegConsensus:
    """Consensus judgment for one leg."""
    leg_index: int
    consensus: Classification
    consensus_score: float
    signals: Tuple[Signal, ...]
    has_data: bool
    agreement_percent: float = 0.0
    weighted_confidence: float = 0.0
    top_contributors: Tuple[EngineId, ...] = ()
    conflicting_signals: Tuple[EngineId, ...] = ()

    def to_dict(self) -> Dict:
        return {
            "leg_index": self.leg_index,
            "consensus": self.consensus.value,
            "consensus_score": round(self.consensus_score, 4),
            "has_data": self.has_data,
            "agreement_percent": round(self.agreement_percent, 4),
            "weighted_confidence": round(self.weighted_confidence, 4),
            "top_contributors": [e.value for e in self.top_contributors],
            "conflicting_signals": [e.value for e in self.conflicting_signals],
            "signals": [s.to_dict() for s in self.signals],
        }


@dataclass(frozen=True)
class ParlayConsensus:
    """Consensus judgment for the whole parlay."""
    overall_consensus: Classification
    overall_score: float
    parlay_risk: str
    weakest_leg: Optional[int]
    strongest_leg: Optional[int]
    recommendation: str
    legs_without_data: Tuple[int, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict:
        return {
            "overall_consensus": self.overall_consensus.value,
            "overall_score": round(self.overall_score, 4),
            "parlay_risk": self.parlay_risk,
            "weakest_leg": self.weakest_leg,
            "strongest_leg": self.strongest_leg,
            "recommendation": self.recommendation,
            "legs_without_data": list(self.legs_without_data),
        }


def _contributions(signals: Sequence[Signal], policy: EnsemblePolicy) -> Tuple[List[Tuple[Signal, float, float]], float]:
    """(signal, weight, contribution) for signals with data, plus their total weight."""
    rows: List[Tuple[Signal, float, float]] = []
    total_weight = 0.0
    for signal in signals:
        if not signal.has_data:
            continue
        weight = policy.weight_for(signal.engine)
        confidence = signal.confidence if signal.confidence is not None else 1.0
        rows.append((signal, weight, signal.status.direction * confidence * weight))
        total_weight += weight
    return rows, total_weight


def score_signals(signals: Sequence[Signal], policy: Optional[EnsemblePolicy] = None) -> Optional[float]:
    """
    Weighted consensus score in [-100, 100].

    Each signal with data contributes direction * confidence * engine weight; the sum
    is normalized by the total weight of engines with data.

    Returns:
        The score, or None when no engine with positive weight has data
    """
    policy = policy or get_default_ensemble_policy()
    rows, total_weight = _contributions(signals, policy)
    if total_weight <= 0:
        return None
    raw = sum(c for _, _, c in rows) / total_weight * 100
    return max(-100.0, min(100.0, raw))


def aggregate_leg(
    signals: Sequence[Signal],
    leg_index: int = 0,
    policy: Optional[EnsemblePolicy] = None,
) -> LegConsensus:
    """
    Aggregate one leg's signals into a LegConsensus.

    A leg with no usable data scores 0, classifies neutral and has has_data=False.
    """
    policy = policy or get_default_ensemble_policy()
    signals = tuple(signals)
    score = score_signals(signals, policy)
    if score is None:
        return LegConsensus(
            leg_index=leg_index,
            consensus=Classification.NEUTRAL,
            consensus_score=0.0,
            signals=signals,
            has_data=False,
        )

    rows, total_weight = _contributions(signals, policy)
    with_data = [s for s, _, _ in rows]
    agrees = sum(1 for s in with_data if s.status is SignalStatus.AGREE)
    disagrees = sum(1 for s in with_data if s.status is SignalStatus.DISAGREE)
    agreement = max(agrees, disagrees) / len(with_data) * 100

    weighted_conf = sum(
        (s.confidence if s.confidence is not None else 1.0) * w for s, w, _ in rows
    ) / total_weight

    ranked = sorted((r for r in rows if r[2] != 0), key=lambda r: abs(r[2]), reverse=True)
    top = tuple(s.engine for s, _, _ in ranked[:policy.top_contributor_count])

    if score > 0:
        conflicting = tuple(s.engine for s in with_data if s.status is SignalStatus.DISAGREE)
    elif score < 0:
        conflicting = tuple(s.engine for s in with_data if s.status is SignalStatus.AGREE)
    else:
        conflicting = ()

    return LegConsensus(
        leg_index=leg_index,
        consensus=policy.thresholds.classify(score),
        consensus_score=score,
        signals=signals,
        has_data=True,
        agreement_percent=agreement,
        weighted_confidence=weighted_conf,
        top_contributors=top,
        conflicting_signals=conflicting,
    )


def _risk_tier(points: int, policy: EnsemblePolicy) -> str:
    risk = policy.risk
    if points >= risk.extreme_at:
        return RISK_EXTREME
    if points >= risk.high_at:
        return RISK_HIGH
    if points >= risk.medium_at:
        return RISK_MEDIUM
    return RISK_LOW


def aggregate_parlay(
    leg_results: Sequence[LegConsensus],
    policy: Optional[EnsemblePolicy] = None,
) -> ParlayConsensus:
    """
    Roll leg consensus results up into a parlay judgment.

    The overall score is the mean leg score. Weakest/strongest leg ties go to the
    lowest index. An empty parlay has no weakest/strongest leg and extreme risk.
    """
    policy = policy or get_default_ensemble_policy()
    if not leg_results:
        logger.warning("Parlay consensus requested for an empty leg set")
        return ParlayConsensus(
            overall_consensus=Classification.NEUTRAL,
            overall_score=0.0,
            parlay_risk=RISK_EXTREME,
            weakest_leg=None,
            strongest_leg=None,
            recommendation=RECOMMENDATIONS[Classification.NEUTRAL],
        )

    scores = [r.consensus_score for r in leg_results]
    overall = sum(scores) / len(scores)
    overall_consensus = policy.thresholds.classify(overall)

    # min/max return the first extreme, so ties resolve to the lowest position
    weakest = min(range(len(scores)), key=lambda i: scores[i])
    strongest = max(range(len(scores)), key=lambda i: scores[i])

    points = 0
    for r in leg_results:
        if not r.has_data:
            points += policy.risk.no_data_points
        elif r.consensus is Classification.STRONG_FADE:
            points += policy.risk.strong_fade_points
        elif r.consensus is Classification.LEAN_FADE:
            points += policy.risk.lean_fade_points

    no_data = tuple(r.leg_index for r in leg_results if not r.has_data)
    if no_data:
        logger.debug(f"Legs without engine data: {list(no_data)}")

    return ParlayConsensus(
        overall_consensus=overall_consensus,
        overall_score=overall,
        parlay_risk=_risk_tier(points, policy),
        weakest_leg=leg_results[weakest].leg_index,
        strongest_leg=leg_results[strongest].leg_index,
        recommendation=RECOMMENDATIONS[overall_consensus],
        legs_without_data=no_data,
    )


def analyze_legs(
    legs: Sequence[LegAnalysis],
    policy: Optional[EnsemblePolicy] = None,
) -> Tuple[List[LegConsensus], ParlayConsensus]:
    """
    Run signal extraction and aggregation over every leg.

    Returns:
        (leg results aligned with legs by index, parlay consensus)
    """
    policy = policy or get_default_ensemble_policy()
    leg_results = [
        aggregate_leg(extract_signals(leg, policy), leg_index=i, policy=policy)
        for i, leg in enumerate(legs)
    ]
    return leg_results, aggregate_parlay(leg_results, policy)
