"""Match insight generation."""

from .generator import InsightGenerator, MatchInsights, MatchQuality, describe_quality

__all__ = ["InsightGenerator", "MatchInsights", "MatchQuality", "describe_quality"]
