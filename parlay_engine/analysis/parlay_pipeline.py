"""
Parlay Analysis Pipeline

One call from leg analysis records to consensus, blended probability and stake:

    legs -> signals -> leg consensus -> parlay consensus
         -> per-leg AI probabilities -> blended probability -> Kelly stake

Every stage is recomputed from scratch; nothing is cached between calls.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from parlay_engine.betting.kelly_staking import (
    KellyRecommendation,
    StakeComparison,
    calculate_kelly,
    compare_to_kelly,
)
from parlay_engine.betting.odds_eval import decimal_to_american, parlay_decimal_odds
from parlay_engine.ensemble.aggregator import LegConsensus, ParlayConsensus, analyze_legs
from parlay_engine.foundation.model_config import EngineConfig, get_default_config
from parlay_engine.probability.blender import BlendedProbability, blend_probability, leg_ai_probabilities
from parlay_engine.schema import ParlayRequest

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ParlayAnalysis:
    """Everything computed for one parlay."""
    legs: List[LegConsensus]
    consensus: ParlayConsensus
    probability: Optional[BlendedProbability] = None
    decimal_odds: Optional[float] = None
    kelly: Optional[KellyRecommendation] = None
    stake_comparison: Optional[StakeComparison] = None
    notes: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return {
            "legs": [leg.to_dict() for leg in self.legs],
            "consensus": self.consensus.to_dict(),
            "probability": self.probability.to_dict() if self.probability else None,
            "decimal_odds": round(self.decimal_odds, 4) if self.decimal_odds is not None else None,
            "kelly": self.kelly.to_dict() if self.kelly else None,
            "stake_comparison": self.stake_comparison.to_dict() if self.stake_comparison else None,
            "notes": list(self.notes),
        }


def analyze_parlay(
    request: ParlayRequest,
    config: Optional[EngineConfig] = None,
    user_stake: Optional[float] = None,
) -> ParlayAnalysis:
    """
    Run the full analysis for a parlay.

    Args:
        request: Legs plus optional correlation, bankroll, Kelly multiplier and
            calibration factor
        config: Engine policies; defaults to the stock config
        user_stake: Stake the user intends to place, compared against Kelly

    Returns:
        ParlayAnalysis. probability is None for an empty parlay; kelly is None
        without bankroll settings.
    """
    config = config or get_default_config()
    notes: List[str] = []

    leg_results, consensus = analyze_legs(request.legs, config.ensemble)

    if not request.legs:
        notes.append("No legs supplied")
        return ParlayAnalysis(legs=leg_results, consensus=consensus, notes=notes)

    ai_probs = leg_ai_probabilities(request.legs, leg_results, config.blend)
    blended = blend_probability(
        [leg.odds for leg in request.legs],
        ai_probs,
        correlation=request.correlation,
        calibration_factor=request.calibration_factor,
        policy=config.blend,
        calibration_policy=config.calibration,
    )
    if not blended.has_ai_data:
        notes.append("No AI data for any leg; probability uses book and correlation only")
    if not blended.has_correlation_data:
        notes.append("No correlation data; probability ignores leg dependence")

    decimal_odds = parlay_decimal_odds(leg.odds for leg in request.legs)

    kelly = None
    comparison = None
    if request.bankroll is not None:
        win_prob = blended.calibrated_probability or blended.final_probability
        kelly = calculate_kelly(
            win_prob,
            decimal_to_american(decimal_odds),
            request.bankroll.bankroll_amount,
            kelly_multiplier=request.kelly_multiplier,
            max_bet_percent=request.bankroll.max_bet_percent,
            unit_size=request.bankroll.default_unit_size,
            policy=config.kelly,
        )
        if not kelly.is_valid:
            logger.warning(f"Kelly stake skipped: {'; '.join(kelly.errors)}")
        elif user_stake is not None:
            comparison = compare_to_kelly(user_stake, kelly.result.recommended_stake, config.kelly)

    logger.info(
        f"Parlay of {len(request.legs)} legs: {consensus.overall_consensus.value} "
        f"({consensus.overall_score:.1f}), p={blended.final_probability:.4f} "
        f"[{blended.confidence_level}]"
    )
    return ParlayAnalysis(
        legs=leg_results,
        consensus=consensus,
        probability=blended,
        decimal_odds=decimal_odds,
        kelly=kelly,
        stake_comparison=comparison,
        notes=notes,
    )
