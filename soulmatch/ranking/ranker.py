"""
Match ranking.

Ranking Steps:
1. Score every candidate (skipping and logging candidates that fail)
2. Drop vetoed candidates and those below min_compatibility
3. Base score: hhc/factual blend (or total score), times a distance decay
   (1 - distance_weight_decay) ** (km / 50)
4. Diversity: a candidate within epsilon of another survivor gets
   min(diversity_bonus, epsilon) * (1 - max overlap with higher-ranked candidates)
5. Sort by final score desc, confidence desc, candidate id asc; truncate

An empty candidate set is a valid request and yields an empty result.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Optional, Sequence, Tuple

import numpy as np

from ..errors import InsufficientDataError, MatchingFailedError, ValidationError
from ..feature_engineering.geo import distance_between
from ..feature_engineering.tables import DISTANCE_DECAY_UNIT_KM
from ..insights.generator import InsightGenerator
from ..learning.weights import PreferenceWeightVector
from ..profiles.schema import PartnerPreferences, Profile
from ..scoring.scorer import CompatibilityScore, CompatibilityScorer
from .cache import ScoreCache, content_fingerprint
from .criteria import SoulMatchingCriteria

logger = logging.getLogger(__name__)

TOKEN_FACTS = ("smoking", "drinking", "exercise", "diet", "sleep", "family_plans",
               "relationship_goal", "communication_style")


@dataclass
class MatchResult:
    """
    One ranked candidate.

    Attributes:
        candidate: Candidate profile
        compatibility: CompatibilityScore for the pair
        rank: 1-based position
        final_score: Score the ranking was sorted on
        insights: Display lines for the match
        distance_km: Distance between the two profiles, if known
        diversity_bonus: Bonus added for diversity
    """
    candidate: Profile
    compatibility: CompatibilityScore
    rank: int
    final_score: float
    insights: List[str] = field(default_factory=list)
    distance_km: Optional[float] = None
    diversity_bonus: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "rank": self.rank,
            "candidate_id": self.candidate.user_id,
            "final_score": self.final_score,
            "total_score": self.compatibility.total_score,
            "percentage": self.compatibility.percentage,
            "confidence_level": self.compatibility.confidence_level,
            "distance_km": self.distance_km,
            "diversity_bonus": self.diversity_bonus,
            "insights": list(self.insights)
        }


@dataclass
class RankingResult:
    """
    Outcome of a ranking request.

    Attributes:
        user_id: User the ranking is for
        matches: Ranked MatchResults
        failed: True when the request failed as a whole
        error: Error message when failed
        skipped: Candidate ids skipped because they could not be scored
        scored_count: Number of candidates scored
        terminated_early: True when early termination skipped candidates
    """
    user_id: str
    matches: List[MatchResult] = field(default_factory=list)
    failed: bool = False
    error: Optional[str] = None
    skipped: List[str] = field(default_factory=list)
    scored_count: int = 0
    terminated_early: bool = False

    def candidate_ids(self) -> List[str]:
        return [m.candidate.user_id for m in self.matches]

    def __len__(self) -> int:
        return len(self.matches)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "user_id": self.user_id,
            "failed": self.failed,
            "error": self.error,
            "skipped": list(self.skipped),
            "scored_count": self.scored_count,
            "terminated_early": self.terminated_early,
            "matches": [m.to_dict() for m in self.matches]
        }


@dataclass
class _Scored:
    candidate: Profile
    score: CompatibilityScore
    base: float = 0.0
    distance_km: Optional[float] = None
    bonus: float = 0.0

    @property
    def final(self) -> float:
        return float(np.clip(self.base + self.bonus, 0.0, 1.0))


def attribute_tokens(profile: Profile) -> FrozenSet[str]:
    """Attribute tokens used to measure how alike two candidates are."""
    tokens = set()
    tokens.update(f"interest:{i}" for i in profile.facts.interests)
    tokens.update(f"value:{v}" for v in profile.facts.values)
    tokens.update(f"{axis}:{value}" for axis, value in profile.personality.items() if value)
    for name in TOKEN_FACTS:
        value = getattr(profile.facts, name)
        if value:
            tokens.add(f"{name}:{str(value).lower()}")
    return frozenset(tokens)


def jaccard(a: FrozenSet[str], b: FrozenSet[str]) -> float:
    union = a | b
    return len(a & b) / len(union) if union else 0.0


class MatchRanker:
    """
    Filters, scores, diversifies and orders candidates for one user.

    Scoring is read-only against a weight snapshot, so candidates may be
    scored in parallel (criteria.workers > 1).
    """

    def __init__(
        self,
        scorer: Optional[CompatibilityScorer] = None,
        cache: Optional[ScoreCache] = None,
        insight_generator: Optional[InsightGenerator] = None
    ):
        self.scorer = scorer or CompatibilityScorer()
        self.cache = cache
        self.insight_generator = insight_generator or InsightGenerator()

    def rank(
        self,
        user: Profile,
        candidates: Iterable[Profile],
        weights: Optional[PreferenceWeightVector] = None,
        preferences: Optional[PartnerPreferences] = None,
        criteria: Optional[SoulMatchingCriteria] = None,
        score_bounds: Optional[Callable[[Profile], float]] = None
    ) -> RankingResult:
        """
        Rank candidates for a user.

        Args:
            user: The user's profile
            candidates: Coarse candidate set
            weights: The user's weight snapshot
            preferences: The user's partner preferences
            criteria: SoulMatchingCriteria (defaults if None)
            score_bounds: Optional upper bound on a candidate's total score,
                used when criteria.early_termination is set

        Returns:
            RankingResult (possibly empty)

        Raises:
            MatchingFailedError: If criteria are invalid or the candidate set is malformed
        """
        criteria = (criteria or SoulMatchingCriteria()).validated()
        if not isinstance(user, Profile):
            raise MatchingFailedError(f"user must be a Profile, got {type(user).__name__}")
        weights = weights or PreferenceWeightVector.empty(user.user_id)
        result = RankingResult(user_id=user.user_id)

        pool = self._prepare_pool(user, candidates, criteria, result)
        if criteria.early_termination and score_bounds is not None:
            pool = self._apply_bounds(pool, criteria, score_bounds, result)

        scored = self._score_all(user, pool, weights, preferences, criteria, result)
        result.scored_count = len(scored)

        survivors = [s for s in scored
                     if not s.score.veto_violated and s.score.total_score >= criteria.min_compatibility]
        logger.debug(f"{len(survivors)}/{len(scored)} candidates survived filtering for {user.user_id}")

        for s in survivors:
            s.base = self._base_score(s.score, criteria)
            s.distance_km = distance_between(user.location, s.candidate.location)
            if s.distance_km is not None and criteria.distance_weight_decay > 0:
                retention = (1.0 - criteria.distance_weight_decay) ** (s.distance_km / DISTANCE_DECAY_UNIT_KM)
                s.base = float(np.clip(s.base * retention, 0.0, 1.0))

        self._apply_diversity(survivors, criteria)

        survivors.sort(key=lambda s: (-s.final, -s.score.confidence_level, s.candidate.user_id))
        for position, s in enumerate(survivors[:criteria.max_results], start=1):
            insights = self.insight_generator.generate(s.score).to_strings()
            result.matches.append(MatchResult(
                candidate=s.candidate,
                compatibility=s.score,
                rank=position,
                final_score=s.final,
                insights=insights,
                distance_km=s.distance_km,
                diversity_bonus=s.bonus
            ))

        logger.info(f"Ranked {len(result.matches)} match(es) for {user.user_id} "
                    f"from {len(scored)} scored, {len(result.skipped)} skipped")
        return result

    def _prepare_pool(
        self,
        user: Profile,
        candidates: Iterable[Profile],
        criteria: SoulMatchingCriteria,
        result: RankingResult
    ) -> List[Profile]:
        if candidates is None:
            return []
        if isinstance(candidates, (str, bytes, dict)):
            raise MatchingFailedError(f"Candidate set must be a sequence of profiles, got {type(candidates).__name__}")
        try:
            items = list(candidates)
        except TypeError as e:
            raise MatchingFailedError(f"Candidate set is not iterable: {type(candidates).__name__}") from e

        pool: List[Profile] = []
        seen = set()
        for item in items:
            if not isinstance(item, Profile):
                logger.warning(f"Skipping malformed candidate entry of type {type(item).__name__}")
                result.skipped.append(str(getattr(item, "user_id", item)))
                continue
            if item.user_id == user.user_id or item.user_id in seen:
                continue
            seen.add(item.user_id)
            pool.append(item)

        if len(pool) > criteria.max_candidates:
            logger.info(f"Truncating candidate set from {len(pool)} to {criteria.max_candidates}")
            pool = pool[:criteria.max_candidates]
        return pool

    def _apply_bounds(
        self,
        pool: List[Profile],
        criteria: SoulMatchingCriteria,
        score_bounds: Callable[[Profile], float],
        result: RankingResult
    ) -> List[Profile]:
        bounded = sorted(((score_bounds(c), c) for c in pool), key=lambda pair: -pair[0])
        kept = []
        for bound, candidate in bounded:
            if bound < criteria.min_compatibility:
                result.terminated_early = True
                logger.debug(f"Early termination: remaining {len(bounded) - len(kept)} candidate(s) "
                             f"cannot reach {criteria.min_compatibility}")
                break
            kept.append(candidate)
        return kept

    def _score_all(
        self,
        user: Profile,
        pool: Sequence[Profile],
        weights: PreferenceWeightVector,
        preferences: Optional[PartnerPreferences],
        criteria: SoulMatchingCriteria,
        result: RankingResult
    ) -> List[_Scored]:
        def score_one(candidate: Profile) -> Tuple[Profile, Optional[CompatibilityScore], Optional[str]]:
            key = ""
            if self.cache is not None:
                key = content_fingerprint(user, candidate, preferences)
                cached = self.cache.get(user.user_id, candidate.user_id, weights.version, key)
                if cached is not None:
                    return candidate, cached, None
            try:
                score = self.scorer.score(user, candidate, weights, preferences)
            except (ValidationError, InsufficientDataError) as e:
                return candidate, None, e.message
            if self.cache is not None:
                self.cache.put(score, key)
            return candidate, score, None

        if criteria.workers > 1 and len(pool) > 1:
            with ThreadPoolExecutor(max_workers=criteria.workers) as executor:
                outcomes = list(executor.map(score_one, pool))
        else:
            outcomes = [score_one(c) for c in pool]

        scored = []
        for candidate, score, error in outcomes:
            if score is None:
                logger.warning(f"Skipping candidate {candidate.user_id}: {error}")
                result.skipped.append(candidate.user_id)
                continue
            scored.append(_Scored(candidate=candidate, score=score))
        return scored

    @staticmethod
    def _base_score(score: CompatibilityScore, criteria: SoulMatchingCriteria) -> float:
        if not criteria.blend_sources or score.hhc_score is None or score.factual_score is None:
            return score.total_score
        blended = criteria.hhc_weight * score.hhc_score + criteria.factual_weight * score.factual_score
        return float(np.clip(blended, 0.0, 1.0))

    @staticmethod
    def _apply_diversity(survivors: List[_Scored], criteria: SoulMatchingCriteria) -> None:
        if criteria.diversity_bonus <= 0 or len(survivors) < 2:
            return

        order = sorted(survivors, key=lambda s: (-s.base, -s.score.confidence_level, s.candidate.user_id))
        tokens = {s.candidate.user_id: attribute_tokens(s.candidate) for s in order}
        eps = criteria.diversity_epsilon

        for i, s in enumerate(order):
            near_tie = any(abs(other.base - s.base) <= eps for j, other in enumerate(order) if j != i)
            if not near_tie:
                continue
            higher = order[:i]
            overlap = max((jaccard(tokens[s.candidate.user_id], tokens[h.candidate.user_id]) for h in higher),
                          default=0.0)
            s.bonus = min(criteria.diversity_bonus, eps) * (1.0 - overlap)
