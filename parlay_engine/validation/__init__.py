"""
Validation Module

Calibration scoring and correction for engine predictions.

Components:
- calibrator: Brier/log-loss/ECE/MCE, reliability buckets, grades,
  calibration factors and isotonic regression
- models: SQLAlchemy model for verified outcomes and a read-only loader

Usage:
    from parlay_engine.validation import CalibrationEngine, OutcomeRow

    engine = CalibrationEngine()
    engine.add_outcome(OutcomeRow(predicted_probability=0.62, actual_outcome=True, engine="sharp"))
    report = engine.compute_report()
    print(report.grade.grade, report.brier_score)

    # Or straight from the database
    from parlay_engine.validation import load_outcome_rows, scoped_reports
    rows = load_outcome_rows(session, sport="NBA")
    by_engine = scoped_reports(rows, by="engine")
"""

from parlay_engine.validation.calibrator import (
    OutcomeRow,
    CalibrationBucket,
    CalibrationGrade,
    CalibrationFactor,
    CalibrationReport,
    BrierDecomposition,
    IsotonicMap,
    CalibrationEngine,
    bucket_index,
    wilson_interval,
    grade_brier,
    calibration_status,
    apply_calibration_factor,
    isotonic_fit,
    apply_isotonic,
    calibration_report,
    compute_calibration_factors,
    scoped_reports,
)

from parlay_engine.validation.models import (
    Base,
    VerifiedOutcome,
    load_outcome_rows,
)

__all__ = [
    "OutcomeRow",
    "CalibrationBucket",
    "CalibrationGrade",
    "CalibrationFactor",
    "CalibrationReport",
    "BrierDecomposition",
    "IsotonicMap",
    "CalibrationEngine",
    "bucket_index",
    "wilson_interval",
    "grade_brier",
    "calibration_status",
    "apply_calibration_factor",
    "isotonic_fit",
    "apply_isotonic",
    "calibration_report",
    "compute_calibration_factors",
    "scoped_reports",
    "Base",
    "VerifiedOutcome",
    "load_outcome_rows",
]
