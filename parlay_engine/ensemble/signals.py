"""
Engine Signal Extraction

Maps one leg's analysis record to exactly one Signal per EngineId, in enum order.
A reading that is present becomes agree/disagree/neutral; a missing reading
becomes no_data and is never fabricated.

Numeric readings go through the per-engine ScoreBand table of the ensemble policy.
Categorical readings (sharp, juiced, best bets) have dedicated rules.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional

from parlay_engine.foundation.model_config import (
    ConfigError,
    EngineId,
    EnsemblePolicy,
    ScoreBand,
    get_default_ensemble_policy,
)
from parlay_engine.schema import JuicedLean, LegAnalysis, SharpRecommendation

logger = logging.getLogger(__name__)

SCORE_SCALE_MAX = 100.0


class SignalStatus(str, Enum):
    AGREE = "agree"
    DISAGREE = "disagree"
    NEUTRAL = "neutral"
    NO_DATA = "no_data"

    @property
    def direction(self) -> int:
        """+1 for agree, -1 for disagree, 0 otherwise."""
        if self is SignalStatus.AGREE:
            return 1
        if self is SignalStatus.DISAGREE:
            return -1
        return 0


@dataclass(frozen=True)
class Signal:
    """One engine's normalized reading on one leg."""
    engine: EngineId
    status: SignalStatus
    value: Optional[float] = None
    confidence: Optional[float] = None
    reason: str = ""

    @property
    def has_data(self) -> bool:
        return self.status is not SignalStatus.NO_DATA

    def to_dict(self) -> Dict:
        return {
            "engine": self.engine.value,
            "status": self.status.value,
            "value": round(self.value, 4) if self.value is not None else None,
            "confidence": round(self.confidence, 4) if self.confidence is not None else None,
            "reason": self.reason,
        }


def _no_data(engine: EngineId) -> Signal:
    return Signal(engine=engine, status=SignalStatus.NO_DATA, reason="No data")


def band_confidence(value: float, band: ScoreBand) -> float:
    """
    Normalized distance of value from the band midpoint, in [0, 1].

    The distance is scaled by the room between the midpoint and the end of the
    0-100 scale on the value's side, so the extremes of the scale map to 1.0.
    """
    mid = band.midpoint
    room = SCORE_SCALE_MAX - mid if value >= mid else mid
    if room <= 0:
        return 0.0
    return max(0.0, min(1.0, abs(value - mid) / room))


def classify_band(value: float, band: ScoreBand) -> SignalStatus:
    if band.higher_is_favorable:
        if value >= band.agree_at:
            return SignalStatus.AGREE
        if value <= band.disagree_at:
            return SignalStatus.DISAGREE
    else:
        if value <= band.agree_at:
            return SignalStatus.AGREE
        if value >= band.disagree_at:
            return SignalStatus.DISAGREE
    return SignalStatus.NEUTRAL


def _band_signal(engine: EngineId, value: float, policy: EnsemblePolicy, label: str) -> Signal:
    band = policy.score_bands[engine]
    status = classify_band(value, band)
    return Signal(
        engine=engine,
        status=status,
        value=float(value),
        confidence=band_confidence(value, band),
        reason=f"{label} {value:g} ({status.value})",
    )


# =============================================================================
# EXTRACTORS
# =============================================================================

def _extract_sharp(leg: LegAnalysis, policy: EnsemblePolicy) -> Signal:
    if leg.sharp is None:
        return _no_data(EngineId.SHARP)
    rec = leg.sharp.recommendation
    if rec == SharpRecommendation.PICK:
        status, default = SignalStatus.AGREE, policy.sharp_default_confidence
    elif rec == SharpRecommendation.FADE:
        status, default = SignalStatus.DISAGREE, policy.sharp_default_confidence
    else:
        status, default = SignalStatus.NEUTRAL, policy.neutral_default_confidence
    confidence = leg.sharp.confidence if leg.sharp.confidence is not None else default
    return Signal(EngineId.SHARP, status, None, confidence, f"Sharp money: {rec.value}")


def _extract_pvs(leg: LegAnalysis, policy: EnsemblePolicy) -> Signal:
    if leg.pvs is None:
        return _no_data(EngineId.PVS)
    return _band_signal(EngineId.PVS, leg.pvs.score, policy, "PVS score")


def _extract_hitrate(leg: LegAnalysis, policy: EnsemblePolicy) -> Signal:
    if leg.hit_rate is not None:
        return _band_signal(EngineId.HITRATE, leg.hit_rate.percentage, policy, "Hit rate")
    if leg.usage_projection is not None and leg.usage_projection.hit_rate is not None:
        return _band_signal(EngineId.HITRATE, leg.usage_projection.hit_rate, policy, "Projected hit rate")
    return _no_data(EngineId.HITRATE)


def _extract_juiced(leg: LegAnalysis, policy: EnsemblePolicy) -> Signal:
    if leg.juiced is None:
        return _no_data(EngineId.JUICED)
    lean = leg.juiced.lean
    if lean == JuicedLean.EVEN or leg.side is None:
        return Signal(
            EngineId.JUICED, SignalStatus.NEUTRAL, None, policy.neutral_default_confidence,
            f"Juice leans {lean.value}",
        )
    status = SignalStatus.AGREE if lean.value == leg.side.value else SignalStatus.DISAGREE
    return Signal(
        EngineId.JUICED, status, None, policy.categorical_confidence,
        f"Juice leans {lean.value}, leg is {leg.side.value}",
    )


def _extract_godmode(leg: LegAnalysis, policy: EnsemblePolicy) -> Signal:
    if leg.god_mode is None:
        return _no_data(EngineId.GODMODE)
    return _band_signal(EngineId.GODMODE, leg.god_mode.upset_score, policy, "Upset score")


def _extract_fatigue(leg: LegAnalysis, policy: EnsemblePolicy) -> Signal:
    if leg.fatigue is None:
        return _no_data(EngineId.FATIGUE)
    return _band_signal(EngineId.FATIGUE, leg.fatigue.score, policy, "Fatigue score")


def _extract_trap(leg: LegAnalysis, policy: EnsemblePolicy) -> Signal:
    if leg.trap is None:
        return _no_data(EngineId.TRAP)
    return _band_signal(EngineId.TRAP, leg.trap.score, policy, "Trap score")


def _extract_bestbets(leg: LegAnalysis, policy: EnsemblePolicy) -> Signal:
    if leg.best_bet is None:
        return _no_data(EngineId.BESTBETS)
    if leg.best_bet.is_pick:
        return Signal(EngineId.BESTBETS, SignalStatus.AGREE, None, policy.categorical_confidence, "Listed as a best bet")
    return Signal(
        EngineId.BESTBETS, SignalStatus.NEUTRAL, None, policy.neutral_default_confidence, "Not a best bet"
    )


def _extract_coaching(leg: LegAnalysis, policy: EnsemblePolicy) -> Signal:
    if leg.coaching is None:
        return _no_data(EngineId.COACHING)
    return _band_signal(EngineId.COACHING, leg.coaching.tendency_score, policy, "Coaching tendency")


Extractor = Callable[[LegAnalysis, EnsemblePolicy], Signal]

EXTRACTORS: Dict[EngineId, Extractor] = {
    EngineId.SHARP: _extract_sharp,
    EngineId.PVS: _extract_pvs,
    EngineId.HITRATE: _extract_hitrate,
    EngineId.JUICED: _extract_juiced,
    EngineId.GODMODE: _extract_godmode,
    EngineId.FATIGUE: _extract_fatigue,
    EngineId.TRAP: _extract_trap,
    EngineId.BESTBETS: _extract_bestbets,
    EngineId.COACHING: _extract_coaching,
}

_missing = set(EngineId) - set(EXTRACTORS)
if _missing:
    raise ConfigError(f"No signal extractor registered for: {sorted(e.value for e in _missing)}")


def extract_signals(leg: LegAnalysis, policy: Optional[EnsemblePolicy] = None) -> List[Signal]:
    """
    Produce one Signal per engine for a leg, in EngineId order.

    Args:
        leg: The leg's analysis record
        policy: Ensemble policy with score bands; defaults to the stock policy

    Returns:
        List of len(EngineId) signals
    """
    policy = policy or get_default_ensemble_policy()
    signals = [EXTRACTORS[engine](leg, policy) for engine in EngineId]
    logger.debug(
        f"Extracted {sum(s.has_data for s in signals)}/{len(signals)} signals with data "
        f"for {leg.description or 'leg'}"
    )
    return signals
