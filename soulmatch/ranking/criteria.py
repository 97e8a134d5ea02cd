"""
Per-request ranking criteria.
"""

import logging
from dataclasses import dataclass, asdict, replace
from typing import Dict, Any

from ..configs.settings import SoulConfig, BLEND_SUM_TOLERANCE
from ..errors import MatchingFailedError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SoulMatchingCriteria:
    """
    Parameters for one ranking request.

    Attributes:
        min_compatibility: Candidates with a lower total score are dropped
        max_results: Number of results returned
        hhc_weight: Weight of the personality sub-score in the blend
        factual_weight: Weight of the factual sub-score in the blend
        blend_sources: Rank on the hhc/factual blend instead of the total score
        diversity_bonus: Maximum boost for near-tied, less similar candidates
        diversity_epsilon: Score band inside which candidates count as tied
        distance_weight_decay: Score retention lost per 50 km
        early_termination: Skip candidates whose score bound is below the cutoff
        max_candidates: Upper bound on scored candidates
        workers: Scoring threads (1 scores inline)
    """
    min_compatibility: float = 0.6
    max_results: int = 20
    hhc_weight: float = 0.6
    factual_weight: float = 0.4
    blend_sources: bool = True
    diversity_bonus: float = 0.1
    diversity_epsilon: float = 0.05
    distance_weight_decay: float = 0.1
    early_termination: bool = False
    max_candidates: int = 1000
    workers: int = 1

    @classmethod
    def from_soul_config(cls, config: SoulConfig, **overrides) -> "SoulMatchingCriteria":
        """Build from the global config, optionally overriding fields for this request."""
        criteria = cls(
            min_compatibility=config.matching.min_compatibility,
            max_results=config.matching.max_results,
            hhc_weight=config.weights.hhc_weight,
            factual_weight=config.weights.factual_weight,
            diversity_bonus=config.matching.diversity_bonus,
            diversity_epsilon=config.matching.diversity_epsilon,
            distance_weight_decay=config.matching.distance_weight_decay,
            max_candidates=config.matching.max_candidates
        )
        return replace(criteria, **overrides) if overrides else criteria

    def validated(self) -> "SoulMatchingCriteria":
        """
        Check the criteria and return them with a blend that sums to 1.

        A blend that does not sum to 1 is normalized and a warning is
        logged; it is not an error.

        Raises:
            MatchingFailedError: If any value is out of range
        """
        if not 0 <= self.min_compatibility <= 1:
            raise MatchingFailedError(f"min_compatibility must be in [0, 1], got {self.min_compatibility}")
        if self.max_results < 0:
            raise MatchingFailedError(f"max_results must be >= 0, got {self.max_results}")
        if self.max_candidates < 1:
            raise MatchingFailedError(f"max_candidates must be >= 1, got {self.max_candidates}")
        if self.workers < 1:
            raise MatchingFailedError(f"workers must be >= 1, got {self.workers}")
        for name in ("diversity_bonus", "diversity_epsilon", "distance_weight_decay"):
            value = getattr(self, name)
            if not 0 <= value <= 1:
                raise MatchingFailedError(f"{name} must be in [0, 1], got {value}")
        if self.hhc_weight < 0 or self.factual_weight < 0:
            raise MatchingFailedError(
                f"Blend weights must be non-negative, got {self.hhc_weight}/{self.factual_weight}")

        total = self.hhc_weight + self.factual_weight
        if total <= 0:
            raise MatchingFailedError("hhc_weight and factual_weight cannot both be 0")
        if abs(total - 1.0) > BLEND_SUM_TOLERANCE:
            logger.warning(f"hhc_weight + factual_weight = {total:.3f}, normalizing to "
                           f"{self.hhc_weight / total:.3f}/{self.factual_weight / total:.3f}")
            return replace(self, hhc_weight=self.hhc_weight / total, factual_weight=self.factual_weight / total)
        return self

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)
