"""Online preference weight learning."""

from .weights import WeightEntry, PreferenceWeightVector, WeightStore
from .milestones import MilestoneStream
from .learner import PreferenceWeightLearner, LearningOutcome, replay_signals

__all__ = [
    "WeightEntry",
    "PreferenceWeightVector",
    "WeightStore",
    "MilestoneStream",
    "PreferenceWeightLearner",
    "LearningOutcome",
    "replay_signals",
]
