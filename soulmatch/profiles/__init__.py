"""Profile, preference and interaction data model."""

from .schema import (
    PERSONALITY_AXES,
    Reaction,
    MilestoneType,
    Impact,
    Location,
    FactualAttributes,
    Profile,
    VetoCriteria,
    PartnerPreferences,
    InteractionSignal,
    LearningMilestone,
)
from .store import (
    ProfileStore,
    InMemoryProfileStore,
    DiscoveryService,
    PassThroughDiscovery,
    HardFilters,
)

__all__ = [
    "PERSONALITY_AXES",
    "Reaction",
    "MilestoneType",
    "Impact",
    "Location",
    "FactualAttributes",
    "Profile",
    "VetoCriteria",
    "PartnerPreferences",
    "InteractionSignal",
    "LearningMilestone",
    "ProfileStore",
    "InMemoryProfileStore",
    "DiscoveryService",
    "PassThroughDiscovery",
    "HardFilters",
]
