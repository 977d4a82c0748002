"""
Ensemble Module

Signal extraction and weighted consensus across the scoring engines.
"""

from parlay_engine.ensemble.signals import (
    Signal,
    SignalStatus,
    EXTRACTORS,
    band_confidence,
    classify_band,
    extract_signals,
)

from parlay_engine.ensemble.aggregator import (
    LegConsensus,
    ParlayConsensus,
    RECOMMENDATIONS,
    score_signals,
    aggregate_leg,
    aggregate_parlay,
    analyze_legs,
)

__all__ = [
    "Signal",
    "SignalStatus",
    "EXTRACTORS",
    "band_confidence",
    "classify_band",
    "extract_signals",
    "LegConsensus",
    "ParlayConsensus",
    "RECOMMENDATIONS",
    "score_signals",
    "aggregate_leg",
    "aggregate_parlay",
    "analyze_legs",
]
