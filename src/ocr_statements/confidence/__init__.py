"""
Confidence scoring module.

Computes a per-transaction confidence from named signals.
Determines review routing based on a threshold.
"""

from .scorer import ConfidenceScorer, ConfidenceThresholds, ScoringWeights

__all__ = [
    "ConfidenceScorer",
    "ConfidenceThresholds",
    "ScoringWeights",
]
