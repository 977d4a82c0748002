"""
Parlay Engine

Probability and staking engine for multi-leg wagers: engine consensus,
calibration scoring, probability blending and Kelly stake sizing.
"""

__version__ = "1.0.0"
