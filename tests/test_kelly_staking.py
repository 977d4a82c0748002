"""
Unit tests for odds helpers and Kelly staking.

Tests:
- Odds conversion and edge
- Input validation (itemized, never raising)
- Kelly fraction, caps, risk tiers and warnings
- Stake comparison, parlay Kelly, variance and tilt
"""

import math

import pytest

from parlay_engine.betting.kelly_staking import (
    analyze_tilt,
    calculate_kelly,
    calculate_parlay_kelly,
    calculate_variance,
    classify_risk,
    compare_to_kelly,
    kelly_fraction,
    validate_kelly_inputs,
)
from parlay_engine.betting.odds_eval import (
    american_to_decimal,
    decimal_to_american,
    edge_percent,
    expected_value,
    implied_probability,
    parlay_decimal_odds,
)
from parlay_engine.foundation.model_config import KellyMode


class TestOddsEval:

    @pytest.mark.parametrize("odds,expected", [
        (150, 2.5),
        (100, 2.0),
        (-100, 2.0),
        (-110, 1 + 100 / 110),
        (-200, 1.5),
    ])
    def test_american_to_decimal(self, odds, expected):
        assert american_to_decimal(odds) == pytest.approx(expected)

    def test_zero_odds_rejected(self):
        with pytest.raises(ValueError):
            american_to_decimal(0)

    def test_decimal_to_american(self):
        assert decimal_to_american(2.5) == pytest.approx(150)
        assert decimal_to_american(1.5) == pytest.approx(-200)

    def test_implied_probability(self):
        assert implied_probability(-110) == pytest.approx(110 / 210)
        assert implied_probability(4.0, odds_type="decimal") == pytest.approx(0.25)

    @pytest.mark.parametrize("odds,odds_type", [(150, "fractional"), (1.0, "decimal"), (0, "american")])
    def test_implied_probability_rejects_bad_input(self, odds, odds_type):
        with pytest.raises(ValueError):
            implied_probability(odds, odds_type=odds_type)

    def test_parlay_decimal_odds(self):
        assert parlay_decimal_odds([100, 150]) == pytest.approx(5.0)

    def test_expected_value(self):
        assert expected_value(0.5, 150, stake=10) == pytest.approx(2.5)

    def test_fair_price_has_zero_edge(self):
        assert edge_percent(0.5, 2.0) == pytest.approx(0.0)


class TestValidation:
    """Invalid input yields an itemized error list and no result."""

    def test_valid_inputs(self):
        assert validate_kelly_inputs(0.55, -110, 1000, 0.5, 0.05) == []

    @pytest.mark.parametrize("prob", [0, 1, -0.2, 1.5, math.nan])
    def test_probability_must_be_open_interval(self, prob):
        errors = validate_kelly_inputs(prob, -110, 1000)
        assert len(errors) == 1
        assert "probability" in errors[0].lower()

    @pytest.mark.parametrize("odds", [0, math.inf, 50, -99])
    def test_bad_odds(self, odds):
        assert len(validate_kelly_inputs(0.5, odds, 1000)) == 1

    def test_minimum_bankroll(self):
        assert validate_kelly_inputs(0.5, -110, 9.99) == ["Minimum bankroll is 10"]
        assert validate_kelly_inputs(0.5, -110, 10) == []

    @pytest.mark.parametrize("multiplier", [0, -0.5, 1.01])
    def test_multiplier_range(self, multiplier):
        assert len(validate_kelly_inputs(0.5, -110, 1000, kelly_multiplier=multiplier)) == 1

    @pytest.mark.parametrize("max_bet", [0, 0.26, -0.01])
    def test_max_bet_range(self, max_bet):
        assert len(validate_kelly_inputs(0.5, -110, 1000, max_bet_percent=max_bet)) == 1

    def test_errors_are_itemized(self):
        errors = validate_kelly_inputs(1.2, 0, 5, kelly_multiplier=2, max_bet_percent=0.5)
        assert len(errors) == 5

    def test_missing_values(self):
        errors = validate_kelly_inputs(None, None, None)
        assert len(errors) == 3

    def test_invalid_returns_no_result(self):
        rec = calculate_kelly(0.0, -110, 1000)
        assert not rec.is_valid
        assert rec.result is None
        assert rec.errors


class TestKellyFraction:

    def test_plus_150_coin_flip(self):
        rec = calculate_kelly(0.5, 150, 1000, kelly_multiplier=1.0, max_bet_percent=0.25)
        assert rec.is_valid
        r = rec.result
        assert r.decimal_odds == pytest.approx(2.5)
        assert r.edge == pytest.approx(25.0)
        assert r.full_kelly_fraction == pytest.approx(1 / 6)
        assert r.adjusted_kelly_fraction == pytest.approx(1 / 6)
        assert r.recommended_stake == pytest.approx(1000 / 6)
        assert r.risk_level == "reckless"
        assert not r.was_capped

    def test_default_half_kelly_is_capped(self):
        r = calculate_kelly(0.5, 150, 1000).result
        assert r.adjusted_kelly_fraction == pytest.approx(0.05)
        assert r.recommended_stake == pytest.approx(50.0)
        assert r.was_capped
        assert any("capped" in w for w in r.warnings)
        assert r.risk_level == "aggressive"

    def test_negative_edge_stakes_nothing(self):
        r = calculate_kelly(0.4, -110, 1000).result
        assert r.edge < 0
        assert r.full_kelly_fraction < 0
        assert r.recommended_stake == 0.0
        assert r.adjusted_kelly_fraction == 0.0
        assert r.warning is not None
        assert len(r.warnings) >= 2
        assert r.risk_level == "conservative"

    def test_fair_price_zero_edge(self):
        r = calculate_kelly(0.5, 100, 1000).result
        assert r.edge == pytest.approx(0.0)
        assert r.full_kelly_fraction == pytest.approx(0.0)
        assert r.recommended_stake == 0.0
        assert r.warning == "No edge detected - Kelly suggests no bet"

    @pytest.mark.parametrize("prob,odds", [
        (0.5, 150), (0.6, -110), (0.9, -120), (0.3, 400), (0.1, 2000), (0.99, -5000),
    ])
    def test_stake_bounded_by_cap(self, prob, odds):
        r = calculate_kelly(prob, odds, 500, kelly_multiplier=1.0, max_bet_percent=0.1).result
        assert 0 <= r.recommended_stake <= 500 * 0.1 + 1e-9

    @pytest.mark.parametrize("prob,decimal_odds", [(0.5, 2.5), (0.3, 4.0), (0.7, 1.6)])
    def test_full_kelly_formula(self, prob, decimal_odds):
        b = decimal_odds - 1
        assert kelly_fraction(prob, decimal_odds) == pytest.approx((prob * b - (1 - prob)) / b)

    def test_kelly_guard_for_non_positive_net_odds(self):
        assert kelly_fraction(0.5, 1.0) == 0.0

    def test_kelly_mode_preset(self):
        r = calculate_kelly(0.6, 100, 1000, kelly_multiplier=KellyMode.QUARTER, max_bet_percent=0.25).result
        # full Kelly = 0.2
        assert r.adjusted_kelly_fraction == pytest.approx(0.05)

    def test_units(self):
        r = calculate_kelly(0.5, 150, 1000, unit_size=10).result
        assert r.units == pytest.approx(5.0)
        assert calculate_kelly(0.5, 150, 1000).result.units is None

    def test_expected_value_of_stake(self):
        r = calculate_kelly(0.5, 150, 1000).result
        assert r.expected_value == pytest.approx(0.5 * 50 * 1.5 - 0.5 * 50)
        assert r.expected_value == pytest.approx(expected_value(0.5, 150, stake=r.recommended_stake))

    @pytest.mark.parametrize("fraction,expected", [
        (0.0, "conservative"),
        (0.0199, "conservative"),
        (0.02, "moderate"),
        (0.0499, "moderate"),
        (0.05, "aggressive"),
        (0.0999, "aggressive"),
        (0.10, "reckless"),
    ])
    def test_risk_levels(self, fraction, expected):
        assert classify_risk(fraction) == expected

    def test_to_dict(self):
        d = calculate_kelly(0.5, 150, 1000).to_dict()
        assert d["is_valid"]
        assert d["result"]["recommended_stake"] == 50.0
        assert d["result"]["warning"] == d["result"]["warnings"][0]


class TestCompareToKelly:

    @pytest.mark.parametrize("user,expected", [
        (100, "optimal"),
        (110, "optimal"),
        (90, "optimal"),
        (80, "under_betting"),
        (150, "over_betting"),
        (300, "over_betting"),
        (301, "significantly_over"),
    ])
    def test_assessment(self, user, expected):
        result = compare_to_kelly(user, 100)
        assert result.assessment == expected
        assert result.difference == pytest.approx(user - 100)
        assert result.percent_difference == pytest.approx(user - 100)

    def test_betting_when_kelly_says_no(self):
        result = compare_to_kelly(10, 0)
        assert result.assessment == "significantly_over"
        assert result.percent_difference is None

    def test_both_zero(self):
        assert compare_to_kelly(0, 0).assessment == "optimal"


class TestParlayKelly:

    def test_two_leg_parlay(self):
        rec = calculate_parlay_kelly([(0.6, 100), (0.6, 100)], 1000)
        assert rec.is_valid
        r = rec.result
        assert r.decimal_odds == pytest.approx(4.0)
        p = 0.36 * 0.85
        assert r.full_kelly_fraction == pytest.approx((3 * p - (1 - p)) / 3)
        assert r.adjusted_kelly_fraction == pytest.approx(0.03)
        assert r.recommended_stake == pytest.approx(30.0)
        assert r.was_capped

    def test_correlation_factor_override(self):
        r = calculate_parlay_kelly([(0.6, 100), (0.6, 100)], 1000, correlation_factor=1.0).result
        assert r.full_kelly_fraction == pytest.approx((3 * 0.36 - 0.64) / 3)

    def test_invalid_leg_reported_by_position(self):
        rec = calculate_parlay_kelly([(0.6, 100), (1.2, 100)], 1000)
        assert not rec.is_valid
        assert rec.errors[0].startswith("Leg 2:")

    def test_no_legs(self):
        assert not calculate_parlay_kelly([], 1000).is_valid


class TestVarianceAndTilt:

    def test_coin_flip_at_even_money(self):
        v = calculate_variance(0.5, 100, 2.0, 1000)
        assert v.expected_return == pytest.approx(0.0)
        assert v.standard_deviation == pytest.approx(100.0)
        assert v.sharpe_ratio == pytest.approx(0.0)
        assert v.risk_of_ruin == 100.0
        assert v.max_drawdown_risk == pytest.approx(10.0)

    def test_positive_edge(self):
        v = calculate_variance(0.6, 100, 2.0, 1000)
        assert v.expected_return == pytest.approx(20.0)
        assert v.standard_deviation == pytest.approx(math.sqrt(9600))
        assert v.worst_case_95 == pytest.approx(20 - 1.96 * math.sqrt(9600))
        assert v.risk_of_ruin == pytest.approx((0.4 / 0.6) ** 10 * 100)

    def test_zero_stake(self):
        v = calculate_variance(0.6, 0, 2.0, 1000)
        assert v.risk_of_ruin == 0.0
        assert v.sharpe_ratio == 0.0

    def test_loss_streak_tilt(self):
        t = analyze_tilt(win_streak=0, loss_streak=3, proposed_stake=50, bankroll=1000, peak_bankroll=1000)
        assert t.is_tilting
        assert t.streak_impact == -15

    def test_win_streak_overconfidence(self):
        t = analyze_tilt(win_streak=5, loss_streak=0, proposed_stake=70, bankroll=1000, peak_bankroll=1000)
        assert t.is_tilting
        assert "overconfidence" in t.tilt_reason

    def test_chasing_losses(self):
        t = analyze_tilt(win_streak=0, loss_streak=1, proposed_stake=50, bankroll=700, peak_bankroll=1000)
        assert t.is_tilting
        assert "drawdown" in t.tilt_reason

    def test_disciplined_stake(self):
        t = analyze_tilt(win_streak=0, loss_streak=4, proposed_stake=10, bankroll=1000, peak_bankroll=1200)
        assert not t.is_tilting
        assert t.tilt_reason is None
