"""Shared fixtures for parlay engine tests."""

import pytest

from parlay_engine.ensemble.aggregator import LegConsensus
from parlay_engine.foundation.model_config import Classification, get_default_config
from parlay_engine.schema import LegAnalysis
from parlay_engine.validation.calibrator import OutcomeRow


@pytest.fixture
def config():
    return get_default_config()


@pytest.fixture
def strong_leg():
    """A leg every engine likes."""
    return LegAnalysis(
        description="LeBron James O 25.5 PTS",
        odds=-110,
        side="over",
        sport="NBA",
        bet_type="points",
        sharp={"recommendation": "pick"},
        pvs={"score": 90},
        hit_rate={"percentage": 85},
        juiced={"lean": "over"},
        fatigue={"score": 10},
        trap={"score": 10},
        best_bet={"is_pick": True},
    )


@pytest.fixture
def weak_leg():
    """A leg every engine dislikes."""
    return LegAnalysis(
        description="Role player O 12.5 PTS",
        odds=120,
        side="over",
        sharp={"recommendation": "fade"},
        pvs={"score": 10},
        hit_rate={"percentage": 30},
        juiced={"lean": "under"},
        fatigue={"score": 90},
        trap={"score": 90},
        coaching={"tendency_score": 10},
    )


@pytest.fixture
def bare_leg():
    """A leg with no engine data at all."""
    return LegAnalysis(odds=-110)


def make_leg_result(index, score, has_data=True, consensus=None):
    """LegConsensus with just the fields the parlay roll-up reads."""
    if consensus is None:
        consensus = get_default_config().ensemble.thresholds.classify(score)
    return LegConsensus(
        leg_index=index,
        consensus=consensus if has_data else Classification.NEUTRAL,
        consensus_score=score if has_data else 0.0,
        signals=(),
        has_data=has_data,
    )


def make_rows(pairs, **fields):
    """OutcomeRows from (predicted_probability, hit) pairs."""
    return [
        OutcomeRow(predicted_probability=p, actual_outcome=bool(hit), **fields)
        for p, hit in pairs
    ]
