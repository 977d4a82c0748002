"""
Probability Module

Blends book, AI and correlation probabilities into one parlay estimate.
"""

from parlay_engine.probability.blender import (
    ConfidenceFactor,
    BlendedProbability,
    leg_ai_probability,
    leg_ai_probabilities,
    confidence_factors,
    confidence_level,
    blend_weights,
    blend_probability,
)

__all__ = [
    "ConfidenceFactor",
    "BlendedProbability",
    "leg_ai_probability",
    "leg_ai_probabilities",
    "confidence_factors",
    "confidence_level",
    "blend_weights",
    "blend_probability",
]
