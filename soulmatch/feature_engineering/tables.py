"""
Comparator lookup tables.

Every literal the attribute comparators use lives here so the scoring
behaviour can be reviewed and versioned in one place. Bump TABLES_VERSION
whenever a value changes; it is reported with every compatibility score.

Values are matched case-insensitively.

Table types:
- CategoricalTable: exact-match score plus symmetric "complementary" pairs
- StepTable: ascending (max_delta, score) thresholds with a non-zero floor

Lifestyle matrices are symmetric: where the two directions of a pair
were rated differently, the mean of both directions is used.
"""

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Optional, Tuple

TABLES_VERSION = "2024.1"

NEUTRAL_SCORE = 0.5
DEFAULT_CONFIDENCE = 0.3


@dataclass(frozen=True)
class CategoricalTable:
    """
    Lookup for categorical comparisons.

    Attributes:
        match_score: Score for an exact match (0.8-1.0)
        complementary: Unordered value pair -> score for declared mismatches
    """
    match_score: float = 1.0
    complementary: Dict[FrozenSet[str], float] = field(default_factory=dict)

    def __post_init__(self):
        if not 0.8 <= self.match_score <= 1.0:
            raise ValueError(f"match_score must be in [0.8, 1.0], got {self.match_score}")
        for pair, score in self.complementary.items():
            if len(pair) != 2 or not 0 <= score <= 1:
                raise ValueError(f"Invalid complementary entry {set(pair)} -> {score}")

    def lookup(self, a: str, b: str) -> Optional[float]:
        """Score for a declared mismatch pair, or None."""
        return self.complementary.get(frozenset((a.lower(), b.lower())))


@dataclass(frozen=True)
class StepTable:
    """
    Monotone step function over |a - b|.

    Attributes:
        steps: Ascending (max_delta, score) pairs; first match wins
        floor: Score beyond the last threshold (non-zero)
    """
    steps: Tuple[Tuple[float, float], ...]
    floor: float

    def __post_init__(self):
        thresholds = [t for t, _ in self.steps]
        scores = [s for _, s in self.steps]
        if thresholds != sorted(thresholds):
            raise ValueError("StepTable thresholds must be ascending")
        if scores != sorted(scores, reverse=True):
            raise ValueError("StepTable scores must be non-increasing")
        if not 0 < self.floor <= (scores[-1] if scores else 1.0):
            raise ValueError(f"StepTable floor must be in (0, last score], got {self.floor}")


def _pairs(entries: Dict[Tuple[str, str], float]) -> Dict[FrozenSet[str], float]:
    return {frozenset(x.lower() for x in k): v for k, v in entries.items()}


# Personality axes
PERSONALITY_TABLES: Dict[str, CategoricalTable] = {
    # Introvert/extravert pairs balance each other
    "energy": CategoricalTable(1.0, _pairs({("E", "I"): 0.6})),
    "information": CategoricalTable(1.0),
    "decisions": CategoricalTable(0.9, _pairs({("T", "F"): 0.4})),
    "structure": CategoricalTable(0.9, _pairs({("J", "P"): 0.7})),
}

# Continuous facts
AGE_STEPS = StepTable(steps=((2, 1.0), (5, 0.9), (8, 0.7), (12, 0.5)), floor=0.2)
HEIGHT_STEPS = StepTable(steps=((10, 1.0), (20, 0.8), (30, 0.6)), floor=0.4)

# Lifestyle and communication
LIFESTYLE_TABLES: Dict[str, CategoricalTable] = {
    "smoking": CategoricalTable(1.0, _pairs({
        ("sometimes", "regularly"): 0.5,
    })),
    "drinking": CategoricalTable(1.0, _pairs({
        ("never", "socially"): 0.65,
        ("never", "regularly"): 0.25,
        ("socially", "regularly"): 0.8,
    })),
    "exercise": CategoricalTable(1.0, _pairs({
        ("regularly", "sometimes"): 0.75,
        ("regularly", "never"): 0.25,
        ("sometimes", "never"): 0.55,
    })),
    "diet": CategoricalTable(1.0, _pairs({
        ("vegan", "vegetarian"): 0.85,
        ("vegan", "omnivore"): 0.45,
        ("vegetarian", "omnivore"): 0.65,
    })),
    "sleep": CategoricalTable(1.0, _pairs({
        ("early_bird", "night_owl"): 0.3,
        ("early_bird", "flexible"): 0.7,
        ("night_owl", "flexible"): 0.7,
    })),
    "communication_style": CategoricalTable(1.0, _pairs({
        ("direct", "indirect"): 0.45,
        ("direct", "empathetic"): 0.65,
        ("indirect", "empathetic"): 0.85,
    })),
}

# Life plans
PLAN_TABLES: Dict[str, CategoricalTable] = {
    "family_plans": CategoricalTable(1.0, _pairs({
        ("wants children", "open to children"): 0.6,
        ("open to children", "doesn't want children"): 0.4,
        ("has children", "open to children"): 0.7,
        ("has children", "wants children"): 0.5,
    })),
    "relationship_goal": CategoricalTable(1.0, _pairs({
        ("long_term", "marriage"): 0.8,
        ("long_term", "open"): 0.4,
        ("casual", "open"): 0.6,
    })),
}

# Set factors below this raw score do not produce conversation starters
STARTER_OVERLAP_THRESHOLD = 0.1

# Distance decay applies per this many kilometres
DISTANCE_DECAY_UNIT_KM = 50.0

# Match quality bands: (lower bound, label, recommendation)
QUALITY_BANDS = (
    (0.9, "exceptional", "This is a rare connection. Reach out soon."),
    (0.8, "high", "Strong compatibility across most areas. Worth a conversation."),
    (0.6, "medium", "Good potential with a few areas to explore together."),
    (0.4, "low", "Some common ground, but expect differences in key areas."),
    (0.0, "very_low", "Significant differences; proceed only if something specific stands out."),
)

GENERIC_STARTERS = (
    "What's been the highlight of your week so far?",
    "I'm curious - what's something you're passionate about lately?",
    "What's been inspiring you lately?",
)

SHARED_STARTER_TEMPLATE = "I see we both love {item}! What got you into it?"
SHARED_VALUE_TEMPLATE = "It sounds like {item} matters to both of us. How does it show up in your life?"
