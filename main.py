#!/usr/bin/env python3
"""
Parlay Engine CLI

Entry point for running the probability and staking engine from JSON input.

Usage:
    python main.py --analyze parlay.json                 # Consensus, probability and stake
    python main.py --analyze parlay.json --user-stake 25 # ...and compare a stake to Kelly
    python main.py --calibrate outcomes.json --by engine # Calibration report(s)
    python main.py --calibrate-db sqlite:///outcomes.db  # Same, read from a database
    python main.py --kelly --prob 0.55 --odds -110 --bankroll 1000

Results are printed as JSON and optionally written with --output.
"""

import argparse
import json
import logging
import sys
from typing import Any, Dict, List, Optional

from pydantic import ValidationError
from sqlalchemy import create_engine
from sqlalchemy.orm import Session

from parlay_engine.analysis.parlay_pipeline import analyze_parlay
from parlay_engine.betting.kelly_staking import calculate_kelly
from parlay_engine.foundation.config_loader import load_config
from parlay_engine.foundation.model_config import ConfigError, EngineConfig
from parlay_engine.schema import ParlayRequest
from parlay_engine.validation.calibrator import (
    CalibrationEngine,
    OutcomeRow,
    scoped_reports,
)
from parlay_engine.validation.models import load_outcome_rows

logger = logging.getLogger("parlay_engine")


def _read_json(path: str) -> Any:
    with open(path, "r") as f:
        return json.load(f)


def _rows_from_records(records: List[Dict[str, Any]]) -> List[OutcomeRow]:
    engine = CalibrationEngine()
    engine.add_predictions_batch(records)
    return list(engine.rows)


def run_analyze(path: str, config: EngineConfig, user_stake: Optional[float] = None) -> Dict[str, Any]:
    """Analyze a parlay request file."""
    logger.info(f"Analyzing parlay from {path}")
    request = ParlayRequest.model_validate(_read_json(path))
    return analyze_parlay(request, config=config, user_stake=user_stake).to_dict()


def run_calibrate(rows: List[OutcomeRow], config: EngineConfig, by: Optional[str] = None) -> Dict[str, Any]:
    """Calibration report for all rows, plus factors and optional per-scope reports."""
    engine = CalibrationEngine(config.calibration)
    engine.add_outcomes(rows)
    result: Dict[str, Any] = {
        "overall": engine.compute_report().to_dict(),
        "calibration_factors": [f.to_dict() for f in engine.compute_calibration_factors()],
        "isotonic": engine.fit_isotonic().to_dict(),
    }
    if by:
        result["scopes"] = {
            key: report.to_dict()
            for key, report in scoped_reports(rows, by=by, policy=config.calibration).items()
        }
    return result


def run_calibrate_db(url: str, config: EngineConfig, by: Optional[str] = None,
                     sport: Optional[str] = None) -> Dict[str, Any]:
    """Calibration report over verified outcomes stored in a database."""
    db = create_engine(url)
    with Session(db) as session:
        rows = load_outcome_rows(session, sport=sport)
    return run_calibrate(rows, config, by=by)


def run_kelly(prob: float, odds: float, bankroll: float, config: EngineConfig,
              multiplier: Optional[float] = None, max_bet: Optional[float] = None,
              unit_size: Optional[float] = None) -> Dict[str, Any]:
    """Single-bet Kelly stake."""
    return calculate_kelly(
        prob, odds, bankroll,
        kelly_multiplier=multiplier,
        max_bet_percent=max_bet,
        unit_size=unit_size,
        policy=config.kelly,
    ).to_dict()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Parlay probability and staking engine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py --analyze parlay.json --user-stake 20
  python main.py --calibrate outcomes.json --by sport
  python main.py --calibrate-db sqlite:///outcomes.db --sport NBA
  python main.py --kelly --prob 0.5 --odds 150 --bankroll 1000 --multiplier 0.25
        """
    )

    parser.add_argument("--analyze", metavar="FILE",
                        help="Analyze a parlay request (JSON)")
    parser.add_argument("--calibrate", metavar="FILE",
                        help="Calibration report from verified outcomes (JSON list)")
    parser.add_argument("--calibrate-db", metavar="URL",
                        help="Calibration report from a database of verified outcomes")
    parser.add_argument("--kelly", action="store_true",
                        help="Compute a single-bet Kelly stake")

    parser.add_argument("--user-stake", type=float, default=None,
                        help="Stake to compare against Kelly (for --analyze)")
    parser.add_argument("--by", choices=["engine", "sport", "bet_type"], default=None,
                        help="Also report calibration per scope")
    parser.add_argument("--sport", default=None,
                        help="Only use outcomes for this sport (for --calibrate-db)")
    parser.add_argument("--prob", type=float, help="Win probability (for --kelly)")
    parser.add_argument("--odds", type=float, help="American odds (for --kelly)")
    parser.add_argument("--bankroll", type=float, help="Bankroll (for --kelly)")
    parser.add_argument("--multiplier", type=float, default=None,
                        help="Kelly multiplier: 1.0 full, 0.5 half, 0.25 quarter")
    parser.add_argument("--max-bet", type=float, default=None,
                        help="Max stake as a fraction of bankroll")
    parser.add_argument("--unit-size", type=float, default=None,
                        help="Currency value of one unit")

    parser.add_argument("--config", metavar="FILE", default=None,
                        help="YAML policy overrides (default: $PARLAY_ENGINE_CONFIG)")
    parser.add_argument("--output", metavar="FILE", default=None,
                        help="Also write the JSON result to this file")
    parser.add_argument("--verbose", action="store_true",
                        help="Enable verbose output")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the parlay engine CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[logging.StreamHandler(sys.stderr)],
    )

    try:
        config = load_config(args.config)

        if args.analyze:
            result = run_analyze(args.analyze, config, user_stake=args.user_stake)
        elif args.calibrate:
            result = run_calibrate(_rows_from_records(_read_json(args.calibrate)), config, by=args.by)
        elif args.calibrate_db:
            result = run_calibrate_db(args.calibrate_db, config, by=args.by, sport=args.sport)
        elif args.kelly:
            result = run_kelly(args.prob, args.odds, args.bankroll, config,
                               multiplier=args.multiplier, max_bet=args.max_bet,
                               unit_size=args.unit_size)
        else:
            parser.print_help()
            print("\n[INFO] No command specified. Use one of the options above.")
            return 1
    except (OSError, json.JSONDecodeError, ValidationError, ConfigError, ValueError) as e:
        logger.error(f"{type(e).__name__}: {e}")
        return 2

    text = json.dumps(result, indent=2, default=str)
    print(text)
    if args.output:
        with open(args.output, "w") as f:
            f.write(text)
        logger.info(f"Result saved to {args.output}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
