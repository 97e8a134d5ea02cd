"""Tests for match insight generation."""

import pytest

from soulmatch.configs import SoulConfig
from soulmatch.feature_engineering.tables import GENERIC_STARTERS
from soulmatch.insights import InsightGenerator, describe_quality
from soulmatch.scoring import CompatibilityScore, CompatibilityScorer


@pytest.fixture
def generator():
    return InsightGenerator()


@pytest.mark.parametrize("total, label", [
    (0.95, "exceptional"),
    (0.9, "exceptional"),
    (0.85, "high"),
    (0.65, "medium"),
    (0.45, "low"),
    (0.1, "very_low"),
    (0.0, "very_low"),
])
def test_quality_bands(total, label):
    assert describe_quality(total).label == label


def test_starters_from_shared_interests(generator, user, twin):
    insights = generator.generate(CompatibilityScorer().score(user, twin))
    assert insights.starters == (
        "I see we both love cooking! What got you into it?",
        "I see we both love hiking! What got you into it?",
        "I see we both love reading! What got you into it?",
    )
    assert insights.quality.label == "exceptional"
    assert not insights.vetoed


def test_values_fill_remaining_starters(user, profile_factory):
    candidate = profile_factory("bea", interests=["hiking", "chess"])
    insights = InsightGenerator(max_starters=3).generate(CompatibilityScorer().score(user, candidate))
    assert insights.starters[0] == "I see we both love hiking! What got you into it?"
    assert insights.starters[1].startswith("It sounds like family matters to both of us")
    assert len(insights.starters) == 3


def test_generic_starters_without_overlap(generator, user, profile_factory):
    candidate = profile_factory("cleo", interests=["chess"], values=["freedom"])
    insights = generator.generate(CompatibilityScorer().score(user, candidate))
    assert insights.starters == GENERIC_STARTERS


def test_strong_and_growth_factors(generator, user, profile_factory):
    candidate = profile_factory("dana", sleep="night_owl")
    insights = generator.generate(CompatibilityScorer().score(user, candidate))
    # virtues and values tie at 0.7; the first registered factor wins
    assert insights.strong_factor == "Closely aligned core virtues"
    assert insights.growth_factor == "Complementary sleep schedule: early_bird and night_owl"


def test_vetoed_score(generator):
    score = CompatibilityScore("a", "b", 0.0, veto_violated=True, veto_reasons=("non_smoker_only",),
                               confidence_level=1.0)
    insights = generator.generate(score)
    assert insights.vetoed
    assert insights.starters == ()
    assert insights.to_strings()[0] == "Does not meet your must-haves"


def test_not_personalized_without_history(user, twin):
    threshold = SoulConfig().learning.confidence_threshold
    insights = InsightGenerator(confidence_threshold=threshold).generate(CompatibilityScorer().score(user, twin))
    assert not insights.personalized
    assert any("not yet personalized" in line for line in insights.to_strings())


def test_personalized_once_weights_are_learned(user, twin, learner, signal_factory):
    learner.record_interaction("alice", signal_factory("values", attraction=0.5))
    score = CompatibilityScorer().score(user, twin, learner.store.snapshot("alice"))
    threshold = SoulConfig().learning.confidence_threshold
    assert score.confidence_level > threshold
    assert InsightGenerator(confidence_threshold=threshold).generate(score).personalized


def test_nothing_comparable(generator, user):
    from soulmatch.profiles import Profile
    insights = generator.generate(CompatibilityScorer().score(user, Profile("blank")))
    assert insights.strong_factor is None
    assert insights.growth_factor is None
    assert insights.starters == GENERIC_STARTERS


def test_to_strings_order(generator, user, twin):
    lines = generator.generate(CompatibilityScorer().score(user, twin)).to_strings()
    assert lines[0].startswith("Strongest connection:")
    assert lines[1].startswith("Growth area:")
    assert lines[2].startswith("Match quality: exceptional")
