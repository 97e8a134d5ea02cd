"""Tests for the matchmaking service facade on the demo data."""

import pytest

from soulmatch.errors import ProfileNotFoundError
from soulmatch.learning import MilestoneStream
from soulmatch.profiles import InMemoryProfileStore, PartnerPreferences, Profile, ProfileStore
from soulmatch.ranking import ScoreCache, SoulMatchingCriteria
from soulmatch.service import MatchmakingService


def test_rank_candidates_uses_discovery_and_veto(demo_service):
    result = demo_service.rank_candidates("u001")
    ids = result.candidate_ids()
    assert not result.failed
    assert ids
    # u004 smokes, u007 is outside the age range, u008 does not match the gender filter
    assert "u004" not in ids
    assert "u007" not in ids
    assert "u008" not in ids
    assert "u001" not in ids
    finals = [m.final_score for m in result.matches]
    assert finals == sorted(finals, reverse=True)


def test_unknown_user_fails_gracefully(demo_service):
    result = demo_service.rank_candidates("nobody")
    assert result.failed
    assert "nobody" in result.error
    assert result.matches == []


def test_unknown_candidates_skipped(demo_service):
    result = demo_service.rank_candidates(
        "u001", ["u002", "ghost"], criteria=SoulMatchingCriteria(min_compatibility=0.0))
    assert result.candidate_ids() == ["u002"]
    assert "ghost" in result.skipped


def test_string_candidate_ids_rejected(demo_service):
    result = demo_service.rank_candidates("u001", "u002")
    assert result.failed


def test_invalid_criteria_reported(demo_service):
    result = demo_service.rank_candidates("u001", criteria=SoulMatchingCriteria(max_candidates=0))
    assert result.failed


def test_vetoed_pair_scores_zero(demo_service):
    score = demo_service.score_users("u001", "u004")
    assert score.veto_violated
    assert score.total_score == 0.0


def test_interaction_bumps_version_and_clears_cache(demo_service, signal_factory):
    demo_service.rank_candidates("u001")
    assert len(demo_service.cache) > 0

    outcome = demo_service.record_interaction("u001", signal_factory("interests", attraction=0.8))
    assert outcome.updated_weights.version == 1
    assert demo_service.weights("u001").weight_for("interests") == pytest.approx(0.68)
    assert demo_service.cache.invalidate_user("u001") == 0


def test_learning_changes_scores(demo_service, signal_factory):
    before = demo_service.score_users("u001", "u003")
    for i in range(5):
        demo_service.record_interaction("u001", signal_factory("values", attraction=1.0, offset=i))
    after = demo_service.score_users("u001", "u003")
    assert after.breakdown["values"].weight_origin == "learned"
    assert after.breakdown["values"].weight > before.breakdown["values"].weight


def test_update_preferences_invalidates(demo_service):
    demo_service.rank_candidates("u002")
    demo_service.update_preferences(PartnerPreferences(user_id="u002"))
    assert demo_service.cache.invalidate_user("u002") == 0
    assert demo_service.profile_store.get_preferences("u002").veto.interested_in_genders == frozenset()


def test_start_session_and_milestones(demo_service, signal_factory):
    demo_service.record_interaction("u001", signal_factory("smoking", reaction="negative", repulsion=0.9))
    outcome = demo_service.start_session("u001")
    assert outcome.applied == 0
    milestones = demo_service.drain_milestones()
    assert [m.type.value for m in milestones] == ["veto_identified"]
    assert demo_service.drain_milestones() == []


def test_generate_insights(demo_service):
    score = demo_service.score_users("u001", "u002")
    insights = demo_service.generate_insights(score)
    assert insights.quality.label


def test_score_compatibility_without_perspective(demo_profiles):
    service = MatchmakingService(InMemoryProfileStore(demo_profiles))
    a, b = demo_profiles[0], demo_profiles[1]
    assert service.score_compatibility(a, b).weight_version == 0


class SingleProfileStore(ProfileStore):

    def __init__(self, profile):
        self.profile = profile

    def get_profile(self, user_id):
        if user_id != self.profile.user_id:
            raise ProfileNotFoundError(f"Profile not found: {user_id}")
        return self.profile

    def get_preferences(self, user_id):
        return None


def test_custom_store_needs_discovery_or_ids():
    service = MatchmakingService(SingleProfileStore(Profile("a", facts={"age": 30})))
    assert service.discovery is None
    assert service.rank_candidates("a").failed
    assert not service.rank_candidates("a", ["b"]).failed
    with pytest.raises(TypeError):
        service.update_preferences(PartnerPreferences(user_id="a"))


def test_supplied_stream_and_cache_are_used(demo_profiles, signal_factory):
    stream, cache = MilestoneStream(), ScoreCache()
    service = MatchmakingService(InMemoryProfileStore(demo_profiles), milestones=stream, cache=cache)
    assert service.learner.stream is stream
    assert service.ranker.cache is cache

    service.record_interaction("u001", signal_factory("smoking", reaction="negative", repulsion=0.9))
    assert len(stream) == 1
    assert [m.type.value for m in service.drain_milestones()] == ["veto_identified"]


def test_edited_candidate_profile_is_rescored(profile_factory, non_smoker_preferences):
    store = InMemoryProfileStore([profile_factory("alice"), profile_factory("bob")], [non_smoker_preferences])
    service = MatchmakingService(store)
    criteria = SoulMatchingCriteria(min_compatibility=0.0)
    assert service.rank_candidates("alice", criteria=criteria).candidate_ids() == ["bob"]

    store.add_profile(profile_factory("bob", smoking="regularly"))
    assert service.score_users("alice", "bob").veto_violated
    assert service.rank_candidates("alice", criteria=criteria).candidate_ids() == []
