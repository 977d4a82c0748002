"""
Analysis Module

End-to-end parlay analysis.
"""

from parlay_engine.analysis.parlay_pipeline import ParlayAnalysis, analyze_parlay

__all__ = ["ParlayAnalysis", "analyze_parlay"]
