"""
Verified Outcome Models

SQLAlchemy model for settled predictions and a read-only loader that turns stored
rows into OutcomeRow records for the calibration engine.

The table is owned by whatever service settles bets; this module only reads it.
"""

from __future__ import annotations
import logging
import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy import Boolean, Column, DateTime, Float, Index, String, select
from sqlalchemy.orm import Session, declarative_base

from parlay_engine.validation.calibrator import OutcomeRow

logger = logging.getLogger(__name__)

Base = declarative_base()


class VerifiedOutcome(Base):
    """
    One prediction whose outcome has been verified.

    predicted_probability is stored as a 0-1 fraction. Rows whose outcome is not
    yet known keep actual_outcome NULL and are ignored by the loader.
    """
    __tablename__ = "verified_outcomes"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    engine = Column(String, nullable=False, index=True)
    sport = Column(String, nullable=False, index=True)
    bet_type = Column(String, nullable=False, default="unknown")
    confidence_level = Column(String, nullable=True)

    predicted_probability = Column(Float, nullable=False)
    actual_outcome = Column(Boolean, nullable=True)
    is_push = Column(Boolean, nullable=False, default=False)

    predicted_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    verified_at = Column(DateTime, nullable=True)

    __table_args__ = (
        Index("ix_verified_outcomes_engine_sport", "engine", "sport"),
    )

    def __repr__(self) -> str:
        return f"<VerifiedOutcome {self.id} {self.engine} {self.sport} {self.actual_outcome}>"

    def to_outcome_row(self) -> Optional[OutcomeRow]:
        """OutcomeRow for this record, or None if it cannot be used for calibration."""
        if self.actual_outcome is None or self.is_push:
            return None
        prob = self.predicted_probability
        if prob is None or not (0.0 <= prob <= 1.0):
            return None
        return OutcomeRow(
            predicted_probability=float(prob),
            actual_outcome=bool(self.actual_outcome),
            engine=self.engine,
            sport=self.sport,
            bet_type=self.bet_type or "unknown",
            confidence_level=self.confidence_level,
            timestamp=self.verified_at or self.predicted_at,
        )


def load_outcome_rows(
    session: Session,
    engine: Optional[str] = None,
    sport: Optional[str] = None,
    bet_type: Optional[str] = None,
    since: Optional[datetime] = None,
    limit: Optional[int] = None,
) -> List[OutcomeRow]:
    """
    Read verified outcomes as calibration rows.

    Pending rows, pushes and rows with an out-of-range probability are skipped.

    Args:
        session: Open SQLAlchemy session
        engine: Only rows from this engine
        sport: Only rows for this sport
        bet_type: Only rows of this bet type
        since: Only rows predicted at or after this time
        limit: Maximum number of stored rows to read, newest first

    Returns:
        List of OutcomeRow, newest first
    """
    stmt = select(VerifiedOutcome).where(VerifiedOutcome.actual_outcome.is_not(None))
    if engine is not None:
        stmt = stmt.where(VerifiedOutcome.engine == engine)
    if sport is not None:
        stmt = stmt.where(VerifiedOutcome.sport == sport)
    if bet_type is not None:
        stmt = stmt.where(VerifiedOutcome.bet_type == bet_type)
    if since is not None:
        stmt = stmt.where(VerifiedOutcome.predicted_at >= since)
    stmt = stmt.order_by(VerifiedOutcome.predicted_at.desc())
    if limit is not None:
        stmt = stmt.limit(limit)

    records = session.execute(stmt).scalars().all()
    rows = [r for r in (rec.to_outcome_row() for rec in records) if r is not None]
    skipped = len(records) - len(rows)
    if skipped:
        logger.debug(f"Skipped {skipped} unusable verified outcomes")
    logger.info(f"Loaded {len(rows)} verified outcomes")
    return rows
