"""Compatibility scoring."""

from .scorer import CompatibilityScorer, CompatibilityScore, FactorScore
from .veto import evaluate_veto

__all__ = ["CompatibilityScorer", "CompatibilityScore", "FactorScore", "evaluate_veto"]
