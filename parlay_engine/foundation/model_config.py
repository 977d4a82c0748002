"""
Model Configuration Module

Centralized, immutable policy objects for the parlay engine: engine weights,
consensus thresholds, per-engine score bands, calibration grading, blend weights
and Kelly staking limits.

Every policy is a frozen dataclass. Callers pass them into the aggregator, grader,
blender and optimizer explicitly; the get_default_* accessors only supply the
stock values.
"""

from __future__ import annotations
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Tuple


class ConfigError(ValueError):
    """Raised when a policy table violates its invariants."""


class EngineId(str, Enum):
    """Closed set of scoring engines that can emit a leg signal."""
    SHARP = "sharp"
    PVS = "pvs"
    HITRATE = "hitrate"
    JUICED = "juiced"
    GODMODE = "godmode"
    FATIGUE = "fatigue"
    TRAP = "trap"
    BESTBETS = "bestbets"
    COACHING = "coaching"


class Classification(str, Enum):
    STRONG_PICK = "strong_pick"
    LEAN_PICK = "lean_pick"
    NEUTRAL = "neutral"
    LEAN_FADE = "lean_fade"
    STRONG_FADE = "strong_fade"


# =============================================================================
# ENSEMBLE
# =============================================================================

@dataclass(frozen=True)
class EngineWeight:
    """Static contribution of one engine to a leg's consensus score."""
    engine: EngineId
    weight: float
    display_name: str

    def __post_init__(self) -> None:
        if not math.isfinite(self.weight) or self.weight < 0:
            raise ConfigError(f"Engine weight for {self.engine.value} must be non-negative, got {self.weight}")


@dataclass(frozen=True)
class ScoreBand:
    """
    Cutoffs converting a raw 0-100 engine score into agree/disagree/neutral.

    With higher_is_favorable, score >= agree_at agrees and score <= disagree_at
    disagrees. Otherwise the comparison is mirrored (score <= agree_at agrees).
    Scores strictly between the two cutoffs are neutral.
    """
    agree_at: float
    disagree_at: float
    higher_is_favorable: bool = True

    def __post_init__(self) -> None:
        if self.higher_is_favorable and self.agree_at <= self.disagree_at:
            raise ConfigError(f"agree_at ({self.agree_at}) must exceed disagree_at ({self.disagree_at})")
        if not self.higher_is_favorable and self.agree_at >= self.disagree_at:
            raise ConfigError(f"agree_at ({self.agree_at}) must be below disagree_at ({self.disagree_at})")

    @property
    def midpoint(self) -> float:
        return (self.agree_at + self.disagree_at) / 2


@dataclass(frozen=True)
class ConsensusThresholds:
    """Score cutoffs for leg and parlay classification (-100..+100 scale)."""
    strong_pick: float = 50.0
    lean_pick: float = 15.0
    lean_fade: float = -15.0
    strong_fade: float = -50.0

    def __post_init__(self) -> None:
        if not (self.strong_pick > self.lean_pick > self.lean_fade > self.strong_fade):
            raise ConfigError("Consensus thresholds must be strictly decreasing from strong_pick to strong_fade")

    def classify(self, score: float) -> Classification:
        if score >= self.strong_pick:
            return Classification.STRONG_PICK
        if score >= self.lean_pick:
            return Classification.LEAN_PICK
        if score <= self.strong_fade:
            return Classification.STRONG_FADE
        if score <= self.lean_fade:
            return Classification.LEAN_FADE
        return Classification.NEUTRAL


@dataclass(frozen=True)
class ParlayRiskPolicy:
    """Risk points per leg condition and the point totals that open each tier."""
    strong_fade_points: int = 2
    lean_fade_points: int = 1
    no_data_points: int = 1
    medium_at: int = 1
    high_at: int = 2
    extreme_at: int = 4

    def __post_init__(self) -> None:
        if not (0 < self.medium_at < self.high_at < self.extreme_at):
            raise ConfigError("Parlay risk tiers must be strictly increasing")
        if min(self.strong_fade_points, self.lean_fade_points, self.no_data_points) < 0:
            raise ConfigError("Parlay risk points must be non-negative")


DEFAULT_ENGINE_WEIGHTS: Tuple[EngineWeight, ...] = (
    EngineWeight(EngineId.SHARP, 1.0, "Sharp Money"),
    EngineWeight(EngineId.PVS, 0.85, "PVS Score"),
    EngineWeight(EngineId.HITRATE, 0.9, "Hit Rate"),
    EngineWeight(EngineId.JUICED, 0.85, "Juiced Props"),
    EngineWeight(EngineId.GODMODE, 0.75, "God Mode"),
    EngineWeight(EngineId.FATIGUE, 0.8, "Fatigue"),
    EngineWeight(EngineId.TRAP, 0.9, "Trap Scanner"),
    EngineWeight(EngineId.BESTBETS, 0.8, "Best Bets"),
    EngineWeight(EngineId.COACHING, 0.7, "Coaching"),
)

# Engines whose numeric reading is classified through a ScoreBand
BANDED_ENGINES = frozenset({
    EngineId.PVS, EngineId.HITRATE, EngineId.GODMODE,
    EngineId.FATIGUE, EngineId.TRAP, EngineId.COACHING,
})

DEFAULT_SCORE_BANDS: Dict[EngineId, ScoreBand] = {
    EngineId.PVS: ScoreBand(agree_at=65.0, disagree_at=35.0),
    EngineId.HITRATE: ScoreBand(agree_at=70.0, disagree_at=50.0),
    EngineId.GODMODE: ScoreBand(agree_at=70.0, disagree_at=40.0),
    EngineId.FATIGUE: ScoreBand(agree_at=30.0, disagree_at=60.0, higher_is_favorable=False),
    EngineId.TRAP: ScoreBand(agree_at=40.0, disagree_at=60.0, higher_is_favorable=False),
    EngineId.COACHING: ScoreBand(agree_at=60.0, disagree_at=40.0),
}


@dataclass(frozen=True)
class EnsemblePolicy:
    """Everything the signal extractor and aggregator need to score legs."""
    weights: Tuple[EngineWeight, ...] = DEFAULT_ENGINE_WEIGHTS
    score_bands: Dict[EngineId, ScoreBand] = field(default_factory=lambda: dict(DEFAULT_SCORE_BANDS))
    thresholds: ConsensusThresholds = field(default_factory=ConsensusThresholds)
    risk: ParlayRiskPolicy = field(default_factory=ParlayRiskPolicy)
    # Confidence used for categorical readings that carry none of their own
    sharp_default_confidence: float = 0.75
    categorical_confidence: float = 0.6
    neutral_default_confidence: float = 0.5
    top_contributor_count: int = 3

    def __post_init__(self) -> None:
        seen = [w.engine for w in self.weights]
        if len(seen) != len(set(seen)):
            raise ConfigError("Engine weights contain duplicate engines")
        missing = set(EngineId) - set(seen)
        if missing:
            raise ConfigError(f"Engine weights missing for: {sorted(e.value for e in missing)}")
        unbanded = BANDED_ENGINES - set(self.score_bands)
        if unbanded:
            raise ConfigError(f"Score bands missing for: {sorted(e.value for e in unbanded)}")

    def weight_for(self, engine: EngineId) -> float:
        for entry in self.weights:
            if entry.engine == engine:
                return entry.weight
        return 0.0

    def display_name(self, engine: EngineId) -> str:
        for entry in self.weights:
            if entry.engine == engine:
                return entry.display_name
        return engine.value


# =============================================================================
# CALIBRATION
# =============================================================================

@dataclass(frozen=True)
class GradeBand:
    max_brier: float
    grade: str
    label: str
    color: str


DEFAULT_GRADE_SCALE: Tuple[GradeBand, ...] = (
    GradeBand(0.15, "A", "Excellent", "green"),
    GradeBand(0.20, "B", "Good", "blue"),
    GradeBand(0.25, "C", "Average", "yellow"),
    GradeBand(0.32, "D", "Below Average", "orange"),
    GradeBand(math.inf, "F", "Poor", "red"),
)


@dataclass(frozen=True)
class CalibrationPolicy:
    """Bucketing, grading and factor-status settings for the calibration engine."""
    bin_width: float = 0.1
    wilson_confidence: float = 0.95
    grade_scale: Tuple[GradeBand, ...] = DEFAULT_GRADE_SCALE
    uninformative_brier: float = 0.25
    log_loss_epsilon: float = 1e-15
    well_calibrated_low: float = 0.95
    well_calibrated_high: float = 1.05
    min_scope_samples: int = 5
    min_factor_samples: int = 1
    # Clamp applied when a calibration factor corrects a probability
    corrected_floor: float = 0.01
    corrected_ceiling: float = 0.99

    def __post_init__(self) -> None:
        if not (0.0 < self.bin_width <= 0.5):
            raise ConfigError("bin_width must be in (0, 0.5]")
        if abs(1.0 / self.bin_width - round(1.0 / self.bin_width)) > 1e-6:
            raise ConfigError(f"bin_width must divide 1 evenly, got {self.bin_width}")
        if not (0.0 < self.wilson_confidence < 1.0):
            raise ConfigError("wilson_confidence must be in (0, 1)")
        if not self.grade_scale or self.grade_scale[-1].max_brier != math.inf:
            raise ConfigError("grade_scale must end with an open-ended band")
        bounds = [band.max_brier for band in self.grade_scale]
        if any(a >= b for a, b in zip(bounds, bounds[1:])):
            raise ConfigError("grade_scale bounds must be strictly increasing")
        if not (self.well_calibrated_low <= 1.0 <= self.well_calibrated_high):
            raise ConfigError("well-calibrated band must contain 1.0")

    @property
    def num_bins(self) -> int:
        return int(round(1.0 / self.bin_width))


# =============================================================================
# PROBABILITY BLEND
# =============================================================================

@dataclass(frozen=True)
class BlendWeights:
    """
    Base weights for the three probability sources.

    These are hand-set constants. Learning them from historical accuracy the way
    calibration factors are learned is an open item, not implemented.
    """
    book: float = 0.10
    ai: float = 0.40
    correlation: float = 0.50

    def __post_init__(self) -> None:
        if min(self.book, self.ai, self.correlation) < 0:
            raise ConfigError("Blend weights must be non-negative")
        if self.book <= 0:
            raise ConfigError("Book weight must be positive; it is the only always-available source")


@dataclass(frozen=True)
class BlendPolicy:
    weights: BlendWeights = field(default_factory=BlendWeights)
    ensemble_nudge: float = 0.10
    min_probability: float = 0.0001
    max_probability: float = 0.95
    # Confidence levels
    high_at: float = 75.0
    medium_at: float = 50.0
    low_at: float = 25.0
    # Factor maxima (sum to 100)
    leg_count_max: int = 20
    ai_coverage_max: int = 25
    correlation_data_max: int = 20
    correlation_risk_max: int = 20
    odds_reliability_max: int = 15
    extreme_odds: int = 500
    extreme_odds_score: int = 8
    warning_penalties: Dict[str, int] = field(default_factory=lambda: {
        "same_game": 5,
        "same_player": 8,
        "high_correlation": 10,
    })
    default_warning_penalty: int = 5

    def __post_init__(self) -> None:
        if not (self.high_at > self.medium_at > self.low_at > 0):
            raise ConfigError("Confidence level thresholds must be strictly decreasing")
        if not (0 < self.min_probability < self.max_probability <= 1):
            raise ConfigError("Probability clamp must satisfy 0 < min < max <= 1")


# =============================================================================
# KELLY STAKING
# =============================================================================

class KellyMode(float, Enum):
    FULL = 1.0
    HALF = 0.5
    QUARTER = 0.25


@dataclass(frozen=True)
class KellyPolicy:
    min_bankroll: float = 10.0
    default_multiplier: float = KellyMode.HALF.value
    default_max_bet_percent: float = 0.05
    max_bet_percent_ceiling: float = 0.25
    # Risk tiers on the adjusted fraction
    moderate_at: float = 0.02
    aggressive_at: float = 0.05
    reckless_at: float = 0.10
    # Stake comparison
    optimal_tolerance_pct: float = 10.0
    significantly_over_multiple: float = 3.0
    # Parlay staking
    parlay_correlation_discount: float = 0.85
    parlay_max_bet_percent: float = 0.03

    def __post_init__(self) -> None:
        if not self.min_bankroll > 0:
            raise ConfigError(f"min_bankroll must be positive, got {self.min_bankroll}")
        if not (0 < self.max_bet_percent_ceiling <= 1):
            raise ConfigError("max_bet_percent_ceiling must be in (0, 1]")
        # Defaults are applied without per-call validation
        if not (0 < self.default_multiplier <= 1):
            raise ConfigError(f"default_multiplier must be in (0, 1], got {self.default_multiplier}")
        if not (0 < self.default_max_bet_percent <= self.max_bet_percent_ceiling):
            raise ConfigError(
                f"default_max_bet_percent must be in (0, {self.max_bet_percent_ceiling}], "
                f"got {self.default_max_bet_percent}"
            )
        if not (0 < self.parlay_max_bet_percent <= self.max_bet_percent_ceiling):
            raise ConfigError(
                f"parlay_max_bet_percent must be in (0, {self.max_bet_percent_ceiling}], "
                f"got {self.parlay_max_bet_percent}"
            )
        if not (0 < self.parlay_correlation_discount <= 1):
            raise ConfigError("parlay_correlation_discount must be in (0, 1]")
        if not (0 < self.moderate_at < self.aggressive_at < self.reckless_at):
            raise ConfigError("Kelly risk tiers must be strictly increasing")
        if self.significantly_over_multiple <= 1 + self.optimal_tolerance_pct / 100:
            raise ConfigError("significantly_over_multiple must lie above the optimal band")


# =============================================================================
# BUNDLE
# =============================================================================

@dataclass(frozen=True)
class EngineConfig:
    """All policies for one engine run."""
    ensemble: EnsemblePolicy = field(default_factory=EnsemblePolicy)
    calibration: CalibrationPolicy = field(default_factory=CalibrationPolicy)
    blend: BlendPolicy = field(default_factory=BlendPolicy)
    kelly: KellyPolicy = field(default_factory=KellyPolicy)


def get_engine_weights() -> Tuple[EngineWeight, ...]:
    """
    Returns the static per-engine weight table.

    Weights need not sum to 1; the aggregator normalizes by the total weight of
    engines that produced data for a leg.
    """
    return DEFAULT_ENGINE_WEIGHTS


def get_default_ensemble_policy() -> EnsemblePolicy:
    return EnsemblePolicy()


def get_default_calibration_policy() -> CalibrationPolicy:
    return CalibrationPolicy()


def get_default_blend_policy() -> BlendPolicy:
    return BlendPolicy()


def get_default_kelly_policy() -> KellyPolicy:
    return KellyPolicy()


def get_default_config() -> EngineConfig:
    """Returns the stock policy bundle."""
    return EngineConfig()
