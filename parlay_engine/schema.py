"""
Parlay Engine Input Schema

Defines strict Pydantic models for the records the engine consumes: one analysis
record per leg (with an optional sub-record per scoring engine), the user's
bankroll settings and the externally computed correlation result.

A present engine sub-record means that engine produced data for the leg, even when
its value is 0 or False. A missing sub-record (None) means no data.
"""

from pydantic import BaseModel, Field, field_validator
from typing import List, Optional
from enum import Enum


class Side(str, Enum):
    OVER = "over"
    UNDER = "under"


class SharpRecommendation(str, Enum):
    PICK = "pick"
    FADE = "fade"
    NEUTRAL = "neutral"


class JuicedLean(str, Enum):
    OVER = "over"
    UNDER = "under"
    EVEN = "even"


# -----------------------------------------------------------------------------
# Per-engine readings
# -----------------------------------------------------------------------------

class SharpReading(BaseModel):
    """Sharp-money movement on the leg."""
    recommendation: SharpRecommendation = Field(description="pick, fade or neutral")
    confidence: Optional[float] = Field(default=None, ge=0.0, le=1.0, description="Signal confidence (0-1)")


class PvsReading(BaseModel):
    score: float = Field(ge=0.0, le=100.0, description="Player value score (0-100)")


class HitRateReading(BaseModel):
    percentage: float = Field(ge=0.0, le=100.0, description="Historical hit rate in percent")


class UsageProjection(BaseModel):
    """Usage-based projection. Its hit_rate backs up a missing HitRateReading."""
    hit_rate: Optional[float] = Field(default=None, ge=0.0, le=100.0)
    projected_minutes: Optional[float] = None


class JuicedReading(BaseModel):
    lean: JuicedLean = Field(description="Side the juice is leaning toward")


class GodModeReading(BaseModel):
    upset_score: float = Field(ge=0.0, le=100.0, description="Upset likelihood score (0-100)")


class FatigueReading(BaseModel):
    score: float = Field(ge=0.0, le=100.0, description="Fatigue score; higher means more fatigued")


class TrapReading(BaseModel):
    score: float = Field(ge=0.0, le=100.0, description="Trap likelihood; higher means more likely a trap")


class BestBetReading(BaseModel):
    is_pick: bool


class CoachingReading(BaseModel):
    tendency_score: float = Field(ge=0.0, le=100.0)


# -----------------------------------------------------------------------------
# Leg / parlay input
# -----------------------------------------------------------------------------

class LegAnalysis(BaseModel):
    """
    Per-leg analysis record.

    This is the primary input format: one record per leg, in leg order. Every
    engine field is optional.
    """
    description: Optional[str] = Field(default=None, description="Human readable leg, e.g. 'LeBron O 25.5 PTS'")
    odds: float = Field(description="American odds for the leg (e.g., -110, +150)")
    side: Optional[Side] = Field(default=None, description="over/under side of the leg when applicable")
    sport: Optional[str] = None
    bet_type: Optional[str] = None
    adjusted_probability: Optional[float] = Field(
        default=None, gt=0.0, lt=1.0,
        description="Externally computed AI probability for this leg"
    )

    sharp: Optional[SharpReading] = None
    pvs: Optional[PvsReading] = None
    hit_rate: Optional[HitRateReading] = None
    usage_projection: Optional[UsageProjection] = None
    juiced: Optional[JuicedReading] = None
    god_mode: Optional[GodModeReading] = None
    fatigue: Optional[FatigueReading] = None
    trap: Optional[TrapReading] = None
    best_bet: Optional[BestBetReading] = None
    coaching: Optional[CoachingReading] = None

    @field_validator("odds")
    @classmethod
    def _odds_not_zero(cls, v: float) -> float:
        if v == 0 or -100 < v < 100:
            raise ValueError(f"American odds must be <= -100 or >= +100, got {v}")
        return v


class BankrollSettings(BaseModel):
    """User bankroll configuration."""
    bankroll_amount: float = Field(description="Current bankroll in currency units")
    max_bet_percent: float = Field(default=0.05, description="Hard cap on stake as a fraction of bankroll")
    default_unit_size: Optional[float] = Field(default=None, gt=0.0, description="Currency value of one unit")


class CorrelationInput(BaseModel):
    """Output of the external correlation calculator."""
    probability: Optional[float] = Field(default=None, gt=0.0, lt=1.0, description="Correlation-adjusted parlay probability")
    warnings: List[str] = Field(default_factory=list, description="Warning kinds, e.g. 'same_game', 'same_player'")
    covered_legs: Optional[int] = Field(default=None, ge=0, description="Legs covered by correlation data")


class ParlayRequest(BaseModel):
    """Everything needed for one full parlay analysis."""
    legs: List[LegAnalysis] = Field(default_factory=list)
    correlation: Optional[CorrelationInput] = None
    bankroll: Optional[BankrollSettings] = None
    kelly_multiplier: Optional[float] = None
    calibration_factor: Optional[float] = Field(default=None, gt=0.0)
