"""
Calibration Engine

Scores how trustworthy historical probability predictions have been and derives
corrections for future ones:
- Brier score, log loss, Expected/Maximum Calibration Error
- Reliability buckets with Wilson score intervals
- Murphy decomposition of the Brier score
- Letter grades
- Calibration factors per (sport, bet type, confidence level)
- Isotonic regression (pool-adjacent-violators)

Every statistic has a documented value for zero samples, so an empty history
never produces NaN or an exception.
"""

from __future__ import annotations
import logging
import math
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np
from scipy.stats import norm

from parlay_engine.foundation.model_config import CalibrationPolicy, get_default_calibration_policy

logger = logging.getLogger(__name__)


STATUS_WELL_CALIBRATED = "well_calibrated"
STATUS_OVERCONFIDENT = "overconfident"
STATUS_UNDERCONFIDENT = "underconfident"

SCOPE_FIELDS = ("engine", "sport", "bet_type")

# Keeps p * num_bins from rounding just below a bucket boundary
BIN_EPSILON = 1e-9


@dataclass(frozen=True)
class OutcomeRow:
    """One verified prediction: what was predicted and whether it hit."""
    predicted_probability: float
    actual_outcome: bool
    engine: str = "unknown"
    sport: str = "unknown"
    bet_type: str = "unknown"
    confidence_level: Optional[str] = None
    timestamp: Optional[datetime] = None


@dataclass(frozen=True)
class CalibrationBucket:
    """A single reliability bucket."""
    bucket_start: float
    bucket_end: float
    predicted_avg: float
    actual_avg: float
    confidence_lower: float
    confidence_upper: float
    count: int

    @property
    def calibration_error(self) -> float:
        return abs(self.predicted_avg - self.actual_avg)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "bucket_start": round(self.bucket_start, 4),
            "bucket_end": round(self.bucket_end, 4),
            "predicted_avg": round(self.predicted_avg, 4),
            "actual_avg": round(self.actual_avg, 4),
            "confidence_lower": round(self.confidence_lower, 4),
            "confidence_upper": round(self.confidence_upper, 4),
            "count": self.count,
            "calibration_error": round(self.calibration_error, 4),
        }


@dataclass(frozen=True)
class CalibrationGrade:
    grade: str
    label: str
    color: str

    def to_dict(self) -> Dict[str, str]:
        return {"grade": self.grade, "label": self.label, "color": self.color}


NO_GRADE = CalibrationGrade("N/A", "Insufficient Data", "gray")


@dataclass(frozen=True)
class BrierDecomposition:
    """
    Murphy decomposition: brier ~= reliability - resolution + uncertainty.

    The identity is exact when every prediction in a bucket shares one value.
    """
    reliability: float
    resolution: float
    uncertainty: float

    def to_dict(self) -> Dict[str, float]:
        return {
            "reliability": round(self.reliability, 4),
            "resolution": round(self.resolution, 4),
            "uncertainty": round(self.uncertainty, 4),
        }


@dataclass(frozen=True)
class CalibrationFactor:
    """Observed win rate over average predicted probability for one group."""
    sport: str
    bet_type: str
    confidence_level: Optional[str]
    predicted_avg: float
    actual_win_rate: float
    calibration_factor: float
    sample_size: int
    status: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sport": self.sport,
            "bet_type": self.bet_type,
            "confidence_level": self.confidence_level,
            "predicted_avg": round(self.predicted_avg, 4),
            "actual_win_rate": round(self.actual_win_rate, 4),
            "calibration_factor": round(self.calibration_factor, 4),
            "sample_size": self.sample_size,
            "status": self.status,
        }


@dataclass(frozen=True)
class CalibrationReport:
    """Complete calibration analysis for one scope."""
    scope: str
    n_samples: int
    brier_score: float
    log_loss: float
    ece: float  # Expected Calibration Error
    mce: float  # Maximum Calibration Error
    hit_rate: float
    buckets: Tuple[CalibrationBucket, ...]
    grade: CalibrationGrade
    decomposition: BrierDecomposition

    def to_dict(self) -> Dict[str, Any]:
        return {
            "scope": self.scope,
            "n_samples": self.n_samples,
            "brier_score": round(self.brier_score, 4),
            "log_loss": round(self.log_loss, 4),
            "ece": round(self.ece, 4),
            "mce": round(self.mce, 4),
            "hit_rate": round(self.hit_rate, 4),
            "grade": self.grade.to_dict(),
            "decomposition": self.decomposition.to_dict(),
            "buckets": [b.to_dict() for b in self.buckets],
        }


@dataclass(frozen=True)
class IsotonicMap:
    """Monotone step points learned by isotonic regression."""
    x: Tuple[float, ...] = field(default_factory=tuple)
    y: Tuple[float, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, List[float]]:
        return {"x": [round(v, 4) for v in self.x], "y": [round(v, 4) for v in self.y]}


# =============================================================================
# STATELESS HELPERS
# =============================================================================

def bucket_index(probability: float, num_bins: int) -> int:
    """Bucket for a probability; 1.0 falls in the last bucket."""
    idx = int(math.floor(probability * num_bins + BIN_EPSILON))
    return max(0, min(num_bins - 1, idx))


def _parse_outcome(value: Any) -> Optional[bool]:
    """True/False for a boolean or 0/1 outcome, None for anything else."""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)) and value in (0, 1):
        return bool(value)
    return None


def wilson_interval(successes: int, n: int, confidence: float = 0.95) -> Tuple[float, float]:
    """
    Wilson score interval for a binomial proportion.

    Args:
        successes: Number of hits
        n: Number of trials
        confidence: Two-sided confidence level

    Returns:
        (lower, upper) clamped to [0, 1]; (0.0, 1.0) when n is 0
    """
    if n <= 0:
        return 0.0, 1.0
    z = float(norm.ppf(1 - (1 - confidence) / 2))
    phat = successes / n
    denom = 1 + z * z / n
    center = (phat + z * z / (2 * n)) / denom
    margin = z * math.sqrt(phat * (1 - phat) / n + z * z / (4 * n * n)) / denom
    return max(0.0, center - margin), min(1.0, center + margin)


def grade_brier(
    brier_score: float,
    n_samples: int,
    policy: Optional[CalibrationPolicy] = None,
) -> CalibrationGrade:
    """
    Letter grade for a Brier score.

    Returns N/A when there are no samples.
    """
    policy = policy or get_default_calibration_policy()
    if n_samples <= 0:
        return NO_GRADE
    for band in policy.grade_scale:
        if brier_score <= band.max_brier:
            return CalibrationGrade(band.grade, band.label, band.color)
    last = policy.grade_scale[-1]
    return CalibrationGrade(last.grade, last.label, last.color)


def calibration_status(factor: float, policy: Optional[CalibrationPolicy] = None) -> str:
    policy = policy or get_default_calibration_policy()
    if factor < policy.well_calibrated_low:
        return STATUS_OVERCONFIDENT
    if factor > policy.well_calibrated_high:
        return STATUS_UNDERCONFIDENT
    return STATUS_WELL_CALIBRATED


def apply_calibration_factor(
    probability: float,
    factor: float,
    policy: Optional[CalibrationPolicy] = None,
) -> float:
    """
    Scale a probability by a calibration factor.

    If we predict 70% but historically hit 60%, factor = 0.857 and a new 70%
    prediction is treated as 60%. The result is clamped to the policy's
    corrected range.
    """
    policy = policy or get_default_calibration_policy()
    return max(policy.corrected_floor, min(policy.corrected_ceiling, probability * factor))


def isotonic_fit(predictions: Sequence[float], outcomes: Sequence[float]) -> IsotonicMap:
    """
    Fit a non-decreasing map from predicted probability to hit rate (PAVA).

    Adjacent blocks whose hit rates violate monotonicity are pooled until the
    sequence is non-decreasing.
    """
    if len(predictions) == 0:
        return IsotonicMap()
    order = np.argsort(np.asarray(predictions, dtype=float), kind="mergesort")
    xs = np.asarray(predictions, dtype=float)[order]
    ys = np.asarray(outcomes, dtype=float)[order]

    # Each block: [sum_x, sum_y, weight]
    blocks: List[List[float]] = []
    for x, y in zip(xs, ys):
        blocks.append([x, y, 1.0])
        while len(blocks) > 1 and blocks[-2][1] / blocks[-2][2] > blocks[-1][1] / blocks[-1][2]:
            sx, sy, w = blocks.pop()
            blocks[-1][0] += sx
            blocks[-1][1] += sy
            blocks[-1][2] += w

    return IsotonicMap(
        x=tuple(float(b[0] / b[2]) for b in blocks),
        y=tuple(float(b[1] / b[2]) for b in blocks),
    )


def apply_isotonic(probability: float, mapping: IsotonicMap) -> float:
    """Interpolate a probability through an isotonic map; identity if the map is empty."""
    if not mapping.x:
        return probability
    return float(np.interp(probability, mapping.x, mapping.y))


# =============================================================================
# ENGINE
# =============================================================================

class CalibrationEngine:
    """
    Engine for computing calibration metrics over verified outcomes.

    Usage:
        engine = CalibrationEngine()
        engine.add_outcome(OutcomeRow(predicted_probability=0.65, actual_outcome=True))
        engine.add_outcome(OutcomeRow(predicted_probability=0.72, actual_outcome=False))
        report = engine.compute_report()
    """

    def __init__(self, policy: Optional[CalibrationPolicy] = None):
        self.policy = policy or get_default_calibration_policy()
        self._rows: List[OutcomeRow] = []

    def add_outcome(self, row: OutcomeRow) -> None:
        prob = row.predicted_probability
        if not (0.0 <= prob <= 1.0) or math.isnan(prob):
            raise ValueError(f"predicted_probability must be in [0, 1], got {prob}")
        self._rows.append(row)

    def add_outcomes(self, rows: Iterable[OutcomeRow]) -> int:
        count = 0
        for row in rows:
            self.add_outcome(row)
            count += 1
        return count

    def add_predictions_batch(self, records: List[Dict[str, Any]]) -> int:
        """
        Add outcomes from plain dicts.

        Args:
            records: List of dicts with keys:
                - predicted_probability (required)
                - actual_outcome (required; a boolean or 0/1)
                - engine, sport, bet_type, confidence_level (optional)

        Returns:
            Number of valid records added
        """
        added = 0
        for record in records:
            prob = record.get("predicted_probability")
            outcome = _parse_outcome(record.get("actual_outcome"))
            if prob is None or outcome is None:
                logger.debug(f"Skipping unusable outcome record: {record}")
                continue
            self.add_outcome(OutcomeRow(
                predicted_probability=float(prob),
                actual_outcome=outcome,
                engine=record.get("engine") or "unknown",
                sport=record.get("sport") or "unknown",
                bet_type=record.get("bet_type") or "unknown",
                confidence_level=record.get("confidence_level"),
            ))
            added += 1
        return added

    @property
    def rows(self) -> Tuple[OutcomeRow, ...]:
        return tuple(self._rows)

    def _arrays(self) -> Tuple[np.ndarray, np.ndarray]:
        preds = np.fromiter((r.predicted_probability for r in self._rows), dtype=float, count=len(self._rows))
        outs = np.fromiter((1.0 if r.actual_outcome else 0.0 for r in self._rows), dtype=float, count=len(self._rows))
        return preds, outs

    def compute_brier_score(self) -> float:
        """
        Brier Score = (1/N) * sum((predicted - outcome)^2)

        Lower is better. 0.25 is what an uninformative 50% predictor scores, and
        is returned when there are no outcomes.
        """
        if not self._rows:
            return self.policy.uninformative_brier
        preds, outs = self._arrays()
        return float(np.mean((preds - outs) ** 2))

    def compute_log_loss(self) -> float:
        """
        Log Loss = -(1/N) * sum(y*log(p) + (1-y)*log(1-p))

        Probabilities are clamped away from 0 and 1. Returns ln 2 (the loss of a
        constant 50% predictor) when there are no outcomes.
        """
        if not self._rows:
            return math.log(2)
        preds, outs = self._arrays()
        eps = self.policy.log_loss_epsilon
        p = np.clip(preds, eps, 1 - eps)
        return float(-np.mean(outs * np.log(p) + (1 - outs) * np.log(1 - p)))

    def compute_buckets(self) -> List[CalibrationBucket]:
        """Non-empty reliability buckets in ascending order."""
        if not self._rows:
            return []
        num_bins = self.policy.num_bins
        preds, outs = self._arrays()
        idx = np.clip(np.floor(preds * num_bins + BIN_EPSILON).astype(int), 0, num_bins - 1)

        buckets: List[CalibrationBucket] = []
        for b in range(num_bins):
            mask = idx == b
            count = int(mask.sum())
            if count == 0:
                continue
            hits = int(outs[mask].sum())
            lower, upper = wilson_interval(hits, count, self.policy.wilson_confidence)
            buckets.append(CalibrationBucket(
                bucket_start=b / num_bins,
                bucket_end=(b + 1) / num_bins,
                predicted_avg=float(preds[mask].mean()),
                actual_avg=hits / count,
                confidence_lower=lower,
                confidence_upper=upper,
                count=count,
            ))
        return buckets

    def compute_ece(self, buckets: Optional[List[CalibrationBucket]] = None) -> float:
        """ECE = sum((n_bucket / N) * |predicted_avg - actual_avg|); 0 with no outcomes."""
        buckets = self.compute_buckets() if buckets is None else buckets
        total = sum(b.count for b in buckets)
        if total == 0:
            return 0.0
        return sum(b.count / total * b.calibration_error for b in buckets)

    def compute_mce(self, buckets: Optional[List[CalibrationBucket]] = None) -> float:
        """Worst bucket calibration error; 0 with no outcomes."""
        buckets = self.compute_buckets() if buckets is None else buckets
        return max((b.calibration_error for b in buckets), default=0.0)

    def compute_decomposition(self, buckets: Optional[List[CalibrationBucket]] = None) -> BrierDecomposition:
        buckets = self.compute_buckets() if buckets is None else buckets
        total = sum(b.count for b in buckets)
        if total == 0:
            return BrierDecomposition(0.0, 0.0, 0.0)
        base_rate = sum(b.actual_avg * b.count for b in buckets) / total
        reliability = sum(b.count / total * (b.predicted_avg - b.actual_avg) ** 2 for b in buckets)
        resolution = sum(b.count / total * (b.actual_avg - base_rate) ** 2 for b in buckets)
        return BrierDecomposition(reliability, resolution, base_rate * (1 - base_rate))

    def compute_hit_rate(self) -> float:
        """Overall hit rate; 0 with no outcomes."""
        if not self._rows:
            return 0.0
        return sum(1 for r in self._rows if r.actual_outcome) / len(self._rows)

    def compute_report(self, scope: str = "all") -> CalibrationReport:
        """
        Run full calibration analysis.

        Returns:
            CalibrationReport with all metrics, buckets and the grade.
        """
        buckets = self.compute_buckets()
        brier = self.compute_brier_score()
        n = len(self._rows)
        report = CalibrationReport(
            scope=scope,
            n_samples=n,
            brier_score=brier,
            log_loss=self.compute_log_loss(),
            ece=self.compute_ece(buckets),
            mce=self.compute_mce(buckets),
            hit_rate=self.compute_hit_rate(),
            buckets=tuple(buckets),
            grade=grade_brier(brier, n, self.policy),
            decomposition=self.compute_decomposition(buckets),
        )
        logger.info(f"Calibration [{scope}]: n={n} brier={brier:.4f} grade={report.grade.grade}")
        return report

    def compute_calibration_factors(self) -> List[CalibrationFactor]:
        """
        Calibration factor per (sport, bet_type, confidence_level).

        factor = actual_win_rate / predicted_avg, with 1.0 when predicted_avg is 0.
        Factor < 1.0 means we're overconfident in that group; > 1.0 underconfident.
        Groups below the policy's min_factor_samples are skipped.
        """
        groups: Dict[Tuple[str, str, Optional[str]], List[OutcomeRow]] = defaultdict(list)
        for row in self._rows:
            groups[(row.sport, row.bet_type, row.confidence_level)].append(row)

        factors: List[CalibrationFactor] = []
        for (sport, bet_type, level), rows in sorted(groups.items(), key=lambda kv: tuple(str(k) for k in kv[0])):
            n = len(rows)
            if n < self.policy.min_factor_samples:
                continue
            predicted_avg = sum(r.predicted_probability for r in rows) / n
            win_rate = sum(1 for r in rows if r.actual_outcome) / n
            factor = win_rate / predicted_avg if predicted_avg > 0 else 1.0
            factors.append(CalibrationFactor(
                sport=sport,
                bet_type=bet_type,
                confidence_level=level,
                predicted_avg=predicted_avg,
                actual_win_rate=win_rate,
                calibration_factor=factor,
                sample_size=n,
                status=calibration_status(factor, self.policy),
            ))
        return factors

    def fit_isotonic(self) -> IsotonicMap:
        preds, outs = self._arrays()
        return isotonic_fit(preds, outs)


# =============================================================================
# CONVENIENCE
# =============================================================================

def calibration_report(
    rows: Iterable[OutcomeRow],
    scope: str = "all",
    policy: Optional[CalibrationPolicy] = None,
) -> CalibrationReport:
    """Compute a CalibrationReport for a set of outcome rows."""
    engine = CalibrationEngine(policy)
    engine.add_outcomes(rows)
    return engine.compute_report(scope)


def compute_calibration_factors(
    rows: Iterable[OutcomeRow],
    policy: Optional[CalibrationPolicy] = None,
) -> List[CalibrationFactor]:
    engine = CalibrationEngine(policy)
    engine.add_outcomes(rows)
    return engine.compute_calibration_factors()


def scoped_reports(
    rows: Iterable[OutcomeRow],
    by: str = "engine",
    policy: Optional[CalibrationPolicy] = None,
) -> Dict[str, CalibrationReport]:
    """
    One report per distinct value of an outcome field.

    Args:
        rows: Outcome rows
        by: "engine", "sport" or "bet_type"
        policy: Calibration policy; scopes with fewer than min_scope_samples rows
            are left out

    Returns:
        Dict mapping scope value to its report, in sorted key order
    """
    if by not in SCOPE_FIELDS:
        raise ValueError(f"Unknown scope field '{by}'. Expected one of {SCOPE_FIELDS}")
    policy = policy or get_default_calibration_policy()

    grouped: Dict[str, List[OutcomeRow]] = defaultdict(list)
    for row in rows:
        grouped[getattr(row, by)].append(row)

    reports: Dict[str, CalibrationReport] = {}
    for key in sorted(grouped):
        group = grouped[key]
        if len(group) < policy.min_scope_samples:
            logger.debug(f"Skipping {by}={key}: {len(group)} samples < {policy.min_scope_samples}")
            continue
        reports[key] = calibration_report(group, scope=f"{by}:{key}", policy=policy)
    return reports
