"""
Unit tests for the probability blender.

Tests:
- Book/AI/correlation components and weight renormalization
- Final probability clamp
- Confidence factors and levels
"""

import pytest

from conftest import make_leg_result
from parlay_engine.betting.odds_eval import american_to_decimal, implied_probability
from parlay_engine.probability.blender import (
    blend_probability,
    blend_weights,
    confidence_factors,
    confidence_level,
    leg_ai_probabilities,
    leg_ai_probability,
)
from parlay_engine.schema import CorrelationInput, LegAnalysis

BOOK_110 = 1 / american_to_decimal(-110)


class TestWeights:

    def test_all_components(self):
        assert blend_weights(True, True) == pytest.approx({"book": 0.1, "ai": 0.4, "correlation": 0.5})

    def test_missing_correlation_renormalizes(self):
        w = blend_weights(True, False)
        assert w == pytest.approx({"book": 0.2, "ai": 0.8})
        assert sum(w.values()) == pytest.approx(1.0)

    def test_missing_ai_renormalizes(self):
        w = blend_weights(False, True)
        assert w == pytest.approx({"book": 1 / 6, "correlation": 5 / 6})

    def test_book_only(self):
        assert blend_weights(False, False) == {"book": 1.0}


class TestBlend:

    def test_book_only_parlay(self):
        result = blend_probability([-110, -110])
        assert result.book_implied == pytest.approx(implied_probability(-110) ** 2)
        assert result.book_implied == pytest.approx(BOOK_110 ** 2)
        assert result.final_probability == pytest.approx(BOOK_110 ** 2)
        assert not result.has_ai_data
        assert not result.has_correlation_data
        assert result.ai_adjusted is None
        assert result.correlation_adjusted is None
        assert result.ai_coverage == 0.0

    def test_full_blend(self):
        result = blend_probability(
            [100, 100],
            [0.6, 0.6],
            correlation=CorrelationInput(probability=0.3),
        )
        assert result.book_implied == pytest.approx(0.25)
        assert result.ai_adjusted == pytest.approx(0.36)
        expected = 0.1 * 0.25 + 0.4 * 0.36 + 0.5 * 0.3
        assert result.final_probability == pytest.approx(expected)
        assert result.correlation_impact == pytest.approx(0.05)

    def test_without_correlation(self):
        result = blend_probability([100, 100], [0.6, 0.6])
        assert result.weights["book"] + result.weights["ai"] == pytest.approx(1.0)
        assert result.final_probability == pytest.approx(0.2 * 0.25 + 0.8 * 0.36)

    def test_correlation_without_probability_is_absent(self):
        result = blend_probability([100], correlation=CorrelationInput(warnings=["same_game"]))
        assert not result.has_correlation_data
        assert result.correlation_warnings == ("same_game",)

    def test_uncovered_legs_use_book_probability(self):
        result = blend_probability([100, 100], [0.6, None])
        assert result.ai_adjusted == pytest.approx(0.3)
        assert result.ai_coverage == pytest.approx(0.5)
        assert result.has_ai_data

    def test_final_is_clamped(self):
        result = blend_probability([-1000], [0.99], correlation=CorrelationInput(probability=0.99))
        assert result.final_probability == pytest.approx(0.95)

    def test_calibrated_probability(self):
        result = blend_probability([100, 100], calibration_factor=0.8)
        assert result.calibrated_probability == pytest.approx(0.2)
        assert blend_probability([100, 100]).calibrated_probability is None

    def test_empty_parlay_rejected(self):
        with pytest.raises(ValueError):
            blend_probability([])

    def test_misaligned_ai_rejected(self):
        with pytest.raises(ValueError):
            blend_probability([100, 100], [0.5])


class TestLegAiProbability:

    def test_adjusted_probability_wins(self):
        leg = LegAnalysis(odds=100, adjusted_probability=0.58)
        assert leg_ai_probability(leg, make_leg_result(0, 80.0)) == 0.58

    def test_ensemble_nudge(self):
        leg = LegAnalysis(odds=100)
        assert leg_ai_probability(leg, make_leg_result(0, 50.0)) == pytest.approx(0.5 * 1.05)
        assert leg_ai_probability(leg, make_leg_result(0, -100.0)) == pytest.approx(0.45)

    def test_uncovered(self):
        leg = LegAnalysis(odds=100)
        assert leg_ai_probability(leg) is None
        assert leg_ai_probability(leg, make_leg_result(0, 0.0, has_data=False)) is None

    def test_alignment_checked(self):
        with pytest.raises(ValueError):
            leg_ai_probabilities([LegAnalysis(odds=100)], [])


class TestConfidence:

    def _score(self, *args, **kwargs):
        return sum(f.score for f in confidence_factors(*args, **kwargs))

    def test_best_case(self):
        assert self._score([-110, -110], 1.0, 1.0, []) == 100

    def test_no_ai_no_correlation(self):
        assert self._score([-110, -110], 0.0, 0.0, []) == 55

    @pytest.mark.parametrize("n,expected", [(1, 20), (3, 20), (4, 15), (5, 15), (6, 10), (7, 10), (8, 5), (12, 5)])
    def test_leg_count(self, n, expected):
        factor = confidence_factors([-110] * n, 1.0, 1.0, [])[0]
        assert factor.name == "Leg Count"
        assert factor.score == expected

    def test_warning_deductions(self):
        risk = confidence_factors([-110], 1.0, 1.0, ["same_game", "same_player"])[3]
        assert risk.name == "Correlation Risk"
        assert risk.score == 7
        other = confidence_factors([-110], 1.0, 1.0, ["something_else"])[3]
        assert other.score == 15
        floor = confidence_factors([-110], 1.0, 1.0, ["high_correlation"] * 3)[3]
        assert floor.score == 0

    def test_extreme_odds(self):
        odds = confidence_factors([-110, 600], 1.0, 1.0, [])[4]
        assert odds.score == 8
        assert odds.status == "warning"
        assert confidence_factors([-110, 500], 1.0, 1.0, [])[4].score == 15

    def test_partial_ai_coverage(self):
        ai = confidence_factors([-110] * 4, 0.5, 0.0, [])[1]
        assert ai.score == round(0.5 * 25)
        assert ai.status == "warning"

    @pytest.mark.parametrize("score,expected", [
        (100, "high"), (75, "high"), (74, "medium"), (50, "medium"),
        (49, "low"), (25, "low"), (24, "uncertain"), (0, "uncertain"),
    ])
    def test_levels(self, score, expected):
        assert confidence_level(score) == expected

    def test_blend_reports_level(self):
        result = blend_probability([-110] * 8, correlation=CorrelationInput(warnings=["high_correlation"] * 2))
        # leg count 5, odds reliability 15, everything else 0
        assert result.confidence_score == 20
        assert result.confidence_level == "uncertain"

    def test_correlation_coverage(self):
        result = blend_probability([-110] * 4, correlation=CorrelationInput(probability=0.1, covered_legs=2))
        corr = result.confidence_factors[2]
        assert corr.score == 10
