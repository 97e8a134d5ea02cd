"""
Match insight generation.

Insights are a pure transform of a CompatibilityScore breakdown:
- Strong factor: the comparable factor with the highest weighted score
- Growth area: the most divergent of the remaining comparable factors
- Conversation starters: up to 3, from shared interests and values,
  falling back to generic starters when no overlap scored above threshold
- Match quality label with a recommendation
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from ..feature_engineering.tables import (
    QUALITY_BANDS,
    GENERIC_STARTERS,
    SHARED_STARTER_TEMPLATE,
    SHARED_VALUE_TEMPLATE,
    STARTER_OVERLAP_THRESHOLD,
    DEFAULT_CONFIDENCE,
)
from ..scoring.scorer import CompatibilityScore

logger = logging.getLogger(__name__)

STARTER_TEMPLATES = {
    "interests": SHARED_STARTER_TEMPLATE,
    "values": SHARED_VALUE_TEMPLATE,
}


@dataclass(frozen=True)
class MatchQuality:
    """Quality band for a total score."""
    label: str
    recommendation: str


def describe_quality(total_score: float) -> MatchQuality:
    """
    Map a total score to its quality band.

    Bands: exceptional >= 0.9, high >= 0.8, medium >= 0.6, low >= 0.4,
    very_low otherwise.
    """
    for lower, label, recommendation in QUALITY_BANDS:
        if total_score >= lower:
            return MatchQuality(label, recommendation)
    _, label, recommendation = QUALITY_BANDS[-1]
    return MatchQuality(label, recommendation)


@dataclass(frozen=True)
class MatchInsights:
    """
    Human-readable insights for one match.

    Attributes:
        strong_factor: Explanation of the strongest factor (None if nothing comparable)
        growth_factor: Explanation of the growth area (None if fewer than 2 comparable factors)
        starters: Conversation starters
        quality: MatchQuality band
        personalized: False until the user's weight confidence rises above the threshold
        vetoed: True when the score was zeroed by a hard criterion
    """
    strong_factor: Optional[str]
    growth_factor: Optional[str]
    starters: Tuple[str, ...]
    quality: MatchQuality
    personalized: bool = True
    vetoed: bool = False

    def to_strings(self) -> List[str]:
        """Flatten into display lines."""
        lines = []
        if self.vetoed:
            lines.append("Does not meet your must-haves")
        if self.strong_factor:
            lines.append(f"Strongest connection: {self.strong_factor}")
        if self.growth_factor:
            lines.append(f"Growth area: {self.growth_factor}")
        lines.append(f"Match quality: {self.quality.label} - {self.quality.recommendation}")
        if not self.personalized:
            lines.append("We're still learning what matters to you; this match is not yet personalized")
        lines.extend(self.starters)
        return lines

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "strong_factor": self.strong_factor,
            "growth_factor": self.growth_factor,
            "starters": list(self.starters),
            "quality": self.quality.label,
            "recommendation": self.quality.recommendation,
            "personalized": self.personalized,
            "vetoed": self.vetoed
        }


class InsightGenerator:
    """Builds MatchInsights from score breakdowns."""

    def __init__(self, confidence_threshold: float = DEFAULT_CONFIDENCE, max_starters: int = 3):
        self.confidence_threshold = confidence_threshold
        self.max_starters = max_starters

    def generate(self, score: CompatibilityScore) -> MatchInsights:
        """
        Generate insights for a score.

        Args:
            score: CompatibilityScore to explain

        Returns:
            MatchInsights
        """
        quality = describe_quality(score.total_score)
        if score.veto_violated:
            return MatchInsights(None, None, (), quality, vetoed=True)

        comparable = score.comparable_factors()

        strong = None
        if comparable:
            best = max(comparable, key=lambda f: f.weighted_score)
            if best.weighted_score > 0:
                strong = best

        growth = None
        others = [f for f in comparable if strong is None or f.factor != strong.factor]
        if others:
            growth = min(others, key=lambda f: f.raw_score)

        return MatchInsights(
            strong_factor=strong.explanation if strong else None,
            growth_factor=growth.explanation if growth else None,
            starters=self._starters(score),
            quality=quality,
            personalized=score.confidence_level > self.confidence_threshold
        )

    def _starters(self, score: CompatibilityScore) -> Tuple[str, ...]:
        starters: List[str] = []
        for factor_name, template in STARTER_TEMPLATES.items():
            factor = score.breakdown.get(factor_name)
            if factor is None or not factor.comparable or factor.raw_score <= STARTER_OVERLAP_THRESHOLD:
                continue
            for item in factor.shared:
                if len(starters) >= self.max_starters:
                    break
                starters.append(template.format(item=item))

        if not starters:
            starters = list(GENERIC_STARTERS[:self.max_starters])
        return tuple(starters)
