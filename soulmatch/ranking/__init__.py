"""Match ranking."""

from .criteria import SoulMatchingCriteria
from .cache import ScoreCache
from .ranker import MatchRanker, MatchResult, RankingResult, attribute_tokens

__all__ = [
    "SoulMatchingCriteria",
    "ScoreCache",
    "MatchRanker",
    "MatchResult",
    "RankingResult",
    "attribute_tokens",
]
