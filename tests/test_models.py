"""
Tests for loading verified outcomes from the database.
"""

from datetime import datetime, timedelta

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session

from parlay_engine.validation.calibrator import calibration_report
from parlay_engine.validation.models import Base, VerifiedOutcome, load_outcome_rows

START = datetime(2025, 1, 1, 12, 0, 0)


@pytest.fixture
def session():
    engine = create_engine("sqlite://")
    Base.metadata.create_all(engine)
    with Session(engine) as s:
        s.add_all([
            VerifiedOutcome(engine="sharp", sport="NBA", bet_type="points",
                            predicted_probability=0.6, actual_outcome=True, predicted_at=START),
            VerifiedOutcome(engine="sharp", sport="NBA", bet_type="points",
                            predicted_probability=0.7, actual_outcome=False,
                            predicted_at=START + timedelta(days=1)),
            VerifiedOutcome(engine="trap", sport="NFL", bet_type="spread",
                            predicted_probability=0.55, actual_outcome=True,
                            predicted_at=START + timedelta(days=2)),
            # pending
            VerifiedOutcome(engine="sharp", sport="NBA", predicted_probability=0.5,
                            actual_outcome=None, predicted_at=START + timedelta(days=3)),
            # push
            VerifiedOutcome(engine="sharp", sport="NBA", predicted_probability=0.5,
                            actual_outcome=False, is_push=True, predicted_at=START + timedelta(days=4)),
            # stored as a percentage by mistake
            VerifiedOutcome(engine="trap", sport="NBA", predicted_probability=65.0,
                            actual_outcome=True, predicted_at=START + timedelta(days=5)),
        ])
        s.commit()
        yield s


class TestLoadOutcomeRows:

    def test_skips_unusable_rows(self, session):
        rows = load_outcome_rows(session)
        assert len(rows) == 3
        assert all(0.0 <= r.predicted_probability <= 1.0 for r in rows)

    def test_newest_first(self, session):
        rows = load_outcome_rows(session)
        assert [r.predicted_probability for r in rows] == [0.55, 0.7, 0.6]

    def test_filters(self, session):
        nba = load_outcome_rows(session, sport="NBA")
        assert {r.sport for r in nba} == {"NBA"}
        assert len(nba) == 2
        assert len(load_outcome_rows(session, engine="trap")) == 1
        assert len(load_outcome_rows(session, bet_type="spread")) == 1
        assert len(load_outcome_rows(session, since=START + timedelta(days=1))) == 2

    def test_limit_counts_stored_rows(self, session):
        rows = load_outcome_rows(session, limit=4)
        assert [r.predicted_probability for r in rows] == [0.55, 0.7]

    def test_rows_feed_calibration(self, session):
        report = calibration_report(load_outcome_rows(session, sport="NBA"))
        assert report.n_samples == 2
        assert report.hit_rate == pytest.approx(0.5)


class TestVerifiedOutcome:

    def test_defaults(self, session):
        record = session.query(VerifiedOutcome).filter_by(engine="trap", sport="NFL").one()
        assert len(record.id) == 36
        assert record.is_push is False

    def test_to_outcome_row(self):
        record = VerifiedOutcome(engine="pvs", sport="MLB", bet_type="hits",
                                 predicted_probability=0.4, actual_outcome=True,
                                 is_push=False, predicted_at=START)
        row = record.to_outcome_row()
        assert row.engine == "pvs"
        assert row.actual_outcome is True
        assert row.timestamp == START

    def test_pending_is_not_a_row(self):
        record = VerifiedOutcome(engine="pvs", sport="MLB", predicted_probability=0.4, is_push=False)
        assert record.to_outcome_row() is None
