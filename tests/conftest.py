"""
Shared fixtures for the matching core tests.
"""

from datetime import datetime, timedelta
from pathlib import Path

import pytest

from soulmatch.configs import LearningConfig, SoulConfig
from soulmatch.data_loading import load_preferences, load_profiles
from soulmatch.learning import MilestoneStream, PreferenceWeightLearner, WeightStore
from soulmatch.profiles import (
    InMemoryProfileStore,
    InteractionSignal,
    Location,
    PartnerPreferences,
    Profile,
)
from soulmatch.service import MatchmakingService

PROJECT_ROOT = Path(__file__).parent.parent
DATA_DIR = PROJECT_ROOT / "data"
CONFIG_PATH = PROJECT_ROOT / "configs" / "config.yaml"

BERLIN = Location(52.52, 13.405, "Berlin")
HAMBURG = Location(53.5511, 9.9937, "Hamburg")

BASE_PERSONALITY = {"energy": "I", "information": "N", "decisions": "F", "structure": "J"}
BASE_VIRTUES = {"kindness": 0.8, "honesty": 0.9, "curiosity": 0.7}
BASE_FACTS = {
    "age": 30,
    "height_cm": 170,
    "gender_identity": "woman",
    "smoking": "never",
    "drinking": "socially",
    "exercise": "regularly",
    "diet": "vegetarian",
    "sleep": "early_bird",
    "family_plans": "wants children",
    "relationship_goal": "long_term",
    "communication_style": "direct",
    "interests": ["hiking", "reading", "cooking"],
    "values": ["honesty", "family"],
}


def build_profile(user_id, personality=None, virtues=None, location=None, **fact_overrides):
    """Profile with the shared baseline attributes, overridable per test."""
    facts = dict(BASE_FACTS)
    facts.update(fact_overrides)
    return Profile(
        user_id=user_id,
        personality=dict(BASE_PERSONALITY) if personality is None else personality,
        virtues=dict(BASE_VIRTUES) if virtues is None else virtues,
        facts=facts,
        location=location
    )


def make_signal(attribute, reaction="positive", attraction=0.0, repulsion=0.0,
                confidence=1.0, candidate_id="c1", offset=0):
    return InteractionSignal(
        timestamp=datetime(2024, 3, 1, 19, 0) + timedelta(minutes=offset),
        candidate_id=candidate_id,
        attribute=attribute,
        reaction=reaction,
        attraction_force=attraction,
        repulsion_force=repulsion,
        confidence_level=confidence
    )


@pytest.fixture
def profile_factory():
    return build_profile


@pytest.fixture
def signal_factory():
    return make_signal


@pytest.fixture
def user():
    return build_profile("alice", location=BERLIN)


@pytest.fixture
def twin():
    """Same attributes as `user` under a different id."""
    return build_profile("bea", location=BERLIN)


@pytest.fixture
def milestone_stream():
    return MilestoneStream()


@pytest.fixture
def learner(milestone_stream):
    return PreferenceWeightLearner(WeightStore(), LearningConfig(), stream=milestone_stream)


@pytest.fixture
def demo_profiles():
    return load_profiles(str(DATA_DIR / "demo_profiles.json"))


@pytest.fixture
def demo_preferences():
    return load_preferences(str(DATA_DIR / "demo_preferences.json"))


@pytest.fixture
def demo_service(demo_profiles, demo_preferences):
    store = InMemoryProfileStore(demo_profiles, demo_preferences)
    return MatchmakingService(store, config=SoulConfig())


@pytest.fixture
def non_smoker_preferences():
    return PartnerPreferences.from_dict({
        "user_id": "alice",
        "veto": {"non_smoker_only": True}
    })
