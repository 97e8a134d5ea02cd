"""
Matchmaking service facade.

Wires the scorer, learner, ranker and insight generator to a profile
store and a discovery service, and exposes the four core operations:

    score_compatibility(profile_a, profile_b, weights, preferences)
    record_interaction(user_id, signal)
    rank_candidates(user_id, candidate_ids, criteria)
    generate_insights(score)
"""

import logging
from typing import Callable, List, Optional, Sequence

from .configs.settings import SoulConfig
from .errors import MatchingFailedError, ProfileNotFoundError
from .feature_engineering.factors import FactorRegistry, DEFAULT_REGISTRY
from .insights.generator import InsightGenerator, MatchInsights
from .learning.learner import LearningOutcome, PreferenceWeightLearner
from .learning.milestones import MilestoneStream
from .learning.weights import PreferenceWeightVector, WeightStore
from .profiles.schema import InteractionSignal, LearningMilestone, PartnerPreferences, Profile
from .profiles.store import DiscoveryService, HardFilters, InMemoryProfileStore, PassThroughDiscovery, ProfileStore
from .ranking.cache import ScoreCache
from .ranking.criteria import SoulMatchingCriteria
from .ranking.ranker import MatchRanker, RankingResult
from .scoring.scorer import CompatibilityScore, CompatibilityScorer

logger = logging.getLogger(__name__)


class MatchmakingService:
    """
    Entry point for callers of the matching core.

    Example:
        >>> store = InMemoryProfileStore(profiles, preferences)
        >>> service = MatchmakingService(store)
        >>> result = service.rank_candidates("u1")
        >>> [m.candidate.user_id for m in result.matches]
    """

    def __init__(
        self,
        profile_store: ProfileStore,
        discovery: Optional[DiscoveryService] = None,
        config: Optional[SoulConfig] = None,
        registry: FactorRegistry = DEFAULT_REGISTRY,
        weight_store: Optional[WeightStore] = None,
        milestones: Optional[MilestoneStream] = None,
        cache: Optional[ScoreCache] = None
    ):
        self.config = config or SoulConfig()
        self.config.validate()
        self.profile_store = profile_store
        if discovery is None and isinstance(profile_store, InMemoryProfileStore):
            discovery = PassThroughDiscovery(profile_store)
        self.discovery = discovery

        self.weight_store = weight_store if weight_store is not None else WeightStore()
        self.milestones = milestones if milestones is not None else MilestoneStream()
        self.cache = cache if cache is not None else ScoreCache()
        self.weight_store.add_listener(self.cache.invalidate_user)

        self.scorer = CompatibilityScorer(registry)
        self.learner = PreferenceWeightLearner(self.weight_store, self.config.learning, registry, self.milestones)
        self.insights = InsightGenerator(confidence_threshold=self.config.learning.confidence_threshold)
        self.ranker = MatchRanker(self.scorer, self.cache, self.insights)

        logger.info("MatchmakingService ready")

    def score_compatibility(
        self,
        profile_a: Profile,
        profile_b: Profile,
        weights: Optional[PreferenceWeightVector] = None,
        preferences: Optional[PartnerPreferences] = None
    ) -> CompatibilityScore:
        """Score profile_b for profile_a (see CompatibilityScorer.score)."""
        return self.scorer.score(profile_a, profile_b, weights, preferences)

    def score_users(self, user_id: str, candidate_id: str) -> CompatibilityScore:
        """Score two stored users from user_id's perspective with current weights."""
        user = self.profile_store.get_profile(user_id)
        candidate = self.profile_store.get_profile(candidate_id)
        return self.scorer.score(user, candidate, self.weights(user_id),
                                 self.profile_store.get_preferences(user_id))

    def record_interaction(self, user_id: str, signal: InteractionSignal) -> LearningOutcome:
        """Apply a user's reaction to their weights (see PreferenceWeightLearner)."""
        return self.learner.record_interaction(user_id, signal)

    def start_session(self, user_id: str) -> LearningOutcome:
        """Start a new session: decay, then apply queued signals."""
        return self.learner.start_session(user_id)

    def weights(self, user_id: str) -> PreferenceWeightVector:
        """Current weight snapshot for a user."""
        return self.weight_store.snapshot(user_id)

    def update_preferences(self, preferences: PartnerPreferences) -> None:
        """Replace a user's partner preferences and drop their cached scores."""
        if not isinstance(self.profile_store, InMemoryProfileStore):
            raise TypeError("Preferences can only be updated on an InMemoryProfileStore")
        self.profile_store.set_preferences(preferences)
        self.cache.invalidate_user(preferences.user_id)

    def rank_candidates(
        self,
        user_id: str,
        candidate_ids: Optional[Sequence[str]] = None,
        criteria: Optional[SoulMatchingCriteria] = None,
        score_bounds: Optional[Callable[[Profile], float]] = None
    ) -> RankingResult:
        """
        Rank candidates for a stored user.

        When candidate_ids is None the discovery service supplies them.
        Unknown candidate ids are skipped. An unknown user or invalid
        criteria produce an empty result flagged as failed.

        Args:
            user_id: User to rank for
            candidate_ids: Coarse candidate set, or None to use discovery
            criteria: SoulMatchingCriteria (from config if None)
            score_bounds: Optional per-candidate score upper bound

        Returns:
            RankingResult
        """
        criteria = criteria or SoulMatchingCriteria.from_soul_config(self.config)
        try:
            user = self.profile_store.get_profile(user_id)
            preferences = self.profile_store.get_preferences(user_id)

            if candidate_ids is None:
                if self.discovery is None:
                    raise MatchingFailedError("No candidate ids given and no discovery service configured")
                filters = HardFilters.from_preferences(preferences, limit=criteria.max_candidates)
                candidate_ids = self.discovery.find_candidates(user_id, filters)
            elif isinstance(candidate_ids, str):
                raise MatchingFailedError("candidate_ids must be a sequence of ids, not a string")

            candidates, missing = self.profile_store.get_profiles(candidate_ids)
            for candidate_id in missing:
                logger.warning(f"Skipping unknown candidate {candidate_id}")

            result = self.ranker.rank(user, candidates, self.weights(user_id), preferences, criteria, score_bounds)
            result.skipped.extend(missing)
            return result
        except (ProfileNotFoundError, MatchingFailedError) as e:
            logger.warning(f"Ranking failed for {user_id}: {e.message}")
            return RankingResult(user_id=user_id, failed=True, error=e.message)

    def generate_insights(self, score: CompatibilityScore) -> MatchInsights:
        """Explain a score (see InsightGenerator.generate)."""
        return self.insights.generate(score)

    def drain_milestones(self) -> List[LearningMilestone]:
        """Pending milestones in publish order."""
        return self.milestones.drain()
