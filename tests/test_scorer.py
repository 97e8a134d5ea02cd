"""Tests for compatibility scoring and veto evaluation."""

from datetime import datetime

import pytest

from soulmatch.errors import InsufficientDataError, ValidationError
from soulmatch.learning import PreferenceWeightVector, WeightEntry
from soulmatch.profiles import Location, PartnerPreferences, Profile
from soulmatch.scoring import CompatibilityScore, CompatibilityScorer, evaluate_veto


@pytest.fixture
def scorer():
    return CompatibilityScorer()


def learned(user_id, **weights):
    entries = {name: WeightEntry(weight=w, confidence=0.8, last_updated=datetime(2024, 1, 1))
               for name, w in weights.items()}
    return PreferenceWeightVector(user_id=user_id, entries=entries, version=3)


class TestScore:

    def test_matching_axis_scores_weight_times_match(self, scorer, user, twin, profile_factory):
        mismatch = profile_factory("cleo", personality={"energy": "I", "information": "N",
                                                        "decisions": "T", "structure": "J"})
        matched = scorer.score(user, twin)
        mismatched = scorer.score(user, mismatch)

        factor = matched.breakdown["decisions"]
        assert factor.raw_score == 0.9
        assert factor.weighted_score == pytest.approx(factor.weight * 0.9)
        assert mismatched.breakdown["decisions"].raw_score == 0.4
        assert matched.total_score > mismatched.total_score

    def test_personality_sub_score(self, scorer, user, twin):
        result = scorer.score(user, twin)
        # energy/information match at 1.0, decisions/structure at 0.9, identical virtues
        expected = (0.5 + 0.6 + 0.55 * 0.9 + 0.4 * 0.9 + 0.7) / (0.5 + 0.6 + 0.55 + 0.4 + 0.7)
        assert result.hhc_score == pytest.approx(expected)
        assert result.factual_score == pytest.approx(1.0)

    def test_scores_are_bounded(self, scorer, demo_profiles):
        for a in demo_profiles:
            for b in demo_profiles:
                result = scorer.score(a, b)
                assert 0.0 <= result.total_score <= 1.0
                assert 0.0 <= result.percentage <= 100.0
                assert 0.0 <= result.confidence_level <= 1.0

    def test_scoring_is_idempotent(self, scorer, demo_profiles):
        a, b = demo_profiles[0], demo_profiles[2]
        assert scorer.score(a, b).to_dict() == scorer.score(a, b).to_dict()

    def test_missing_attribute_is_neutral_and_non_comparable(self, scorer, user, profile_factory):
        candidate = profile_factory("dana", diet=None)
        factor = scorer.score(user, candidate).breakdown["diet"]
        assert factor.raw_score == 0.5
        assert not factor.comparable
        assert factor.explanation.startswith("Not enough information")

    def test_no_data_on_either_side(self, scorer):
        with pytest.raises(InsufficientDataError):
            scorer.score(Profile("a"), Profile("b"))

    def test_one_sided_data_is_scored(self, scorer, user):
        result = scorer.score(user, Profile("blank"))
        assert result.total_score == pytest.approx(0.5)
        assert result.comparable_factors() == []
        assert result.confidence_level == 0.0

    def test_non_profile_rejected(self, scorer, user):
        with pytest.raises(ValidationError):
            scorer.score(user, {"user_id": "b"})

    def test_weight_precedence(self, scorer, user, twin):
        prefs = PartnerPreferences(user_id="alice", soft_weights={"values": 0.9, "diet": 0.1})
        weights = learned("alice", diet=0.7)
        result = scorer.score(user, twin, weights, prefs)

        assert result.breakdown["diet"].weight_origin == "learned"
        assert result.breakdown["diet"].weight == 0.7
        assert result.breakdown["values"].weight_origin == "preference"
        assert result.breakdown["values"].weight == 0.9
        assert result.breakdown["age"].weight_origin == "default"
        assert result.weight_version == 3

    def test_weight_on_weak_factor_lowers_total(self, scorer, user, profile_factory):
        candidate = profile_factory("cleo", personality={"energy": "I", "information": "N",
                                                         "decisions": "T", "structure": "J"})
        low = scorer.score(user, candidate, learned("alice", decisions=0.0))
        high = scorer.score(user, candidate, learned("alice", decisions=1.0))
        assert high.total_score < low.total_score

    def test_weight_on_strong_factor_raises_total(self, scorer, user, profile_factory):
        candidate = profile_factory("cleo", personality={"energy": "I", "information": "N",
                                                         "decisions": "T", "structure": "J"})
        baseline = scorer.score(user, candidate)
        assert baseline.breakdown["energy"].raw_score > baseline.total_score

        totals = [scorer.score(user, candidate, learned("alice", energy=w)).total_score
                  for w in (0.0, 0.5, 1.0)]
        assert totals[0] < totals[1] < totals[2]

    def test_confidence_from_learned_weights(self, scorer, user, twin):
        default = scorer.score(user, twin)
        assert default.confidence_level == pytest.approx(0.3)
        personalized = scorer.score(user, twin, learned("alice", **{n: 0.5 for n in default.breakdown}))
        assert personalized.confidence_level == pytest.approx(0.8)

    def test_interest_weights_shape_overlap(self, scorer, user, profile_factory):
        candidate = profile_factory("erin", interests=["hiking", "chess"])
        plain = scorer.score(user, candidate).breakdown["interests"]
        weighted = scorer.score(user, candidate, preferences=PartnerPreferences(
            user_id="alice", interest_weights={"hiking": 1.0, "reading": 0.1, "cooking": 0.1}
        )).breakdown["interests"]
        assert plain.raw_score == pytest.approx(1 / 3)
        assert weighted.raw_score > plain.raw_score
        assert weighted.shared == ("hiking",)

    def test_explanations(self, scorer, user, profile_factory):
        candidate = profile_factory("finn", age=36, personality={"energy": "E", "information": "N",
                                                                 "decisions": "F", "structure": "J"})
        breakdown = scorer.score(user, candidate).breakdown
        assert breakdown["age"].explanation == "Age differs by 6 years"
        assert breakdown["energy"].explanation == "Complementary social energy: I and E"
        assert breakdown["interests"].explanation == "Shared interests: cooking, hiking, reading"

    def test_percentage_rounding(self):
        score = CompatibilityScore(user_id="a", candidate_id="b", total_score=0.82549)
        assert score.percentage == 82.5


class TestVeto:

    def test_veto_zeroes_otherwise_perfect_match(self, scorer, user, profile_factory, non_smoker_preferences):
        smoker = profile_factory("gia", smoking="regularly")
        result = scorer.score(user, smoker, preferences=non_smoker_preferences)
        assert result.total_score == 0.0
        assert result.veto_violated
        assert result.veto_reasons == ("non_smoker_only",)
        assert result.breakdown == {}

    def test_non_smoker_needs_confirmation(self, profile_factory, non_smoker_preferences):
        assert evaluate_veto(non_smoker_preferences, profile_factory("h", smoking=None)) == ["non_smoker_only"]
        assert evaluate_veto(non_smoker_preferences, profile_factory("h", smoking="never")) == []

    def test_range_skipped_when_unknown(self, profile_factory):
        prefs = PartnerPreferences(user_id="alice", desired_age_range=(25, 35))
        assert evaluate_veto(prefs, profile_factory("h", age=None)) == []
        assert evaluate_veto(prefs, profile_factory("h", age=40)) == ["desired_age_range"]

    def test_several_reasons_in_order(self, profile_factory):
        prefs = PartnerPreferences.from_dict({
            "user_id": "alice",
            "desired_height_range": [175, 195],
            "veto": {
                "interested_in_genders": ["man"],
                "must_not_have_children": True,
                "deal_breaker_interests": ["hunting"],
                "minimum_age": 32
            }
        })
        candidate = profile_factory("h", family_plans="has children", interests=["hunting", "hiking"])
        assert evaluate_veto(prefs, candidate) == [
            "interested_in_genders",
            "desired_height_range",
            "must_not_have_children",
            "minimum_age",
            "deal_breaker_interests",
        ]

    def test_required_interests(self, profile_factory):
        prefs = PartnerPreferences.from_dict({"user_id": "alice", "veto": {"required_interests": ["hiking"]}})
        assert evaluate_veto(prefs, profile_factory("h")) == []
        assert evaluate_veto(prefs, profile_factory("h", interests=["chess"])) == ["required_interests"]

    def test_distance_limit(self, user, profile_factory):
        prefs = PartnerPreferences.from_dict({"user_id": "alice", "veto": {"max_distance_km": 100}})
        far = profile_factory("h", location=Location(53.5511, 9.9937))
        near = profile_factory("i", location=Location(52.50, 13.40))
        assert evaluate_veto(prefs, far, user) == ["max_distance_km"]
        assert evaluate_veto(prefs, near, user) == []
        assert evaluate_veto(prefs, profile_factory("j"), user) == []

    def test_no_preferences(self, user):
        assert evaluate_veto(None, user) == []
