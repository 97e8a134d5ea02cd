"""
Factor registry for compatibility scoring.

A factor is one comparable aspect of two profiles. Each FactorSpec names
where the value lives on a profile, how it is compared, which sub-score it
feeds (personality-derived "hhc" or "factual") and its static default
weight. The registry order is the breakdown order.

Factor Groups:
- Personality (hhc): 4 categorical axes + virtue alignment
- Factual: age, height, lifestyle habits, life plans, interests, values
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional, Tuple

from ..profiles.schema import Profile
from .tables import (
    CategoricalTable,
    StepTable,
    PERSONALITY_TABLES,
    AGE_STEPS,
    HEIGHT_STEPS,
    LIFESTYLE_TABLES,
    PLAN_TABLES,
)

logger = logging.getLogger(__name__)


class AttributeKind(Enum):
    """How a factor's values are compared."""
    CATEGORICAL = "categorical"
    CONTINUOUS = "continuous"
    SET = "set"
    VECTOR = "vector"


class FactorSource(Enum):
    """Sub-score a factor contributes to."""
    HHC = "hhc"
    FACTUAL = "factual"


@dataclass(frozen=True)
class FactorSpec:
    """
    Declaration of one scoring factor.

    Attributes:
        name: Factor name; also the attribute name interaction signals use
        kind: AttributeKind used to pick the comparator
        source: FactorSource the factor feeds
        path: Location on the profile ("personality.<axis>", "virtues", "facts.<field>")
        default_weight: Static weight used when nothing better is known
        label: Human-readable name for explanations
        table: Lookup table for categorical/continuous factors
        unit: Unit for continuous explanations
    """
    name: str
    kind: AttributeKind
    source: FactorSource
    path: str
    default_weight: float
    label: str
    table: Optional[Any] = None
    unit: str = ""

    def extract(self, profile: Profile) -> Any:
        """
        Read this factor's value from a profile.

        Returns:
            The value, or None when the profile does not report it
        """
        section, _, key = self.path.partition(".")
        if section == "personality":
            value = profile.personality.get(key)
            return value if value else None
        if section == "virtues":
            return dict(profile.virtues) if profile.virtues else None
        if section == "facts":
            return profile.facts.get(key)
        raise ValueError(f"Unknown factor path: {self.path}")

    def explain(self, raw: float, value_a: Any, value_b: Any,
                shared: Optional[FrozenSet[str]] = None) -> str:
        """Human-readable explanation of a raw sub-score."""
        if value_a is None or value_b is None:
            return f"Not enough information to compare {self.label}"

        if self.kind == AttributeKind.CATEGORICAL:
            if str(value_a).lower() == str(value_b).lower():
                return f"Same {self.label}: {value_b}"
            if raw > 0:
                return f"Complementary {self.label}: {value_a} and {value_b}"
            return f"Different {self.label}: {value_a} vs {value_b}"

        if self.kind == AttributeKind.CONTINUOUS:
            delta = abs(float(value_a) - float(value_b))
            return f"{self.label.capitalize()} differs by {delta:g}{self.unit}"

        if self.kind == AttributeKind.SET:
            if shared:
                items = ", ".join(sorted(shared)[:3])
                more = f" and {len(shared) - 3} more" if len(shared) > 3 else ""
                return f"Shared {self.label}: {items}{more}"
            return f"No shared {self.label}"

        if raw >= 0.8:
            return f"Closely aligned {self.label}"
        if raw >= 0.5:
            return f"Partly aligned {self.label}"
        return f"Divergent {self.label}"


def _categorical(name: str, source: FactorSource, path: str, weight: float,
                 label: str, table: CategoricalTable) -> FactorSpec:
    return FactorSpec(name, AttributeKind.CATEGORICAL, source, path, weight, label, table)


def _continuous(name: str, path: str, weight: float, label: str,
                table: StepTable, unit: str) -> FactorSpec:
    return FactorSpec(name, AttributeKind.CONTINUOUS, FactorSource.FACTUAL, path, weight, label, table, unit)


def _set(name: str, path: str, weight: float, label: str) -> FactorSpec:
    return FactorSpec(name, AttributeKind.SET, FactorSource.FACTUAL, path, weight, label)


HHC = FactorSource.HHC
FACTUAL = FactorSource.FACTUAL

DEFAULT_FACTORS: Tuple[FactorSpec, ...] = (
    _categorical("energy", HHC, "personality.energy", 0.5, "social energy", PERSONALITY_TABLES["energy"]),
    _categorical("information", HHC, "personality.information", 0.6, "way of taking in information",
                 PERSONALITY_TABLES["information"]),
    _categorical("decisions", HHC, "personality.decisions", 0.55, "decision style", PERSONALITY_TABLES["decisions"]),
    _categorical("structure", HHC, "personality.structure", 0.4, "approach to structure",
                 PERSONALITY_TABLES["structure"]),
    FactorSpec("virtues", AttributeKind.VECTOR, HHC, "virtues", 0.7, "core virtues"),
    _continuous("age", "facts.age", 0.4, "age", AGE_STEPS, " years"),
    _continuous("height", "facts.height_cm", 0.2, "height", HEIGHT_STEPS, " cm"),
    _categorical("smoking", FACTUAL, "facts.smoking", 0.5, "smoking habits", LIFESTYLE_TABLES["smoking"]),
    _categorical("drinking", FACTUAL, "facts.drinking", 0.3, "drinking habits", LIFESTYLE_TABLES["drinking"]),
    _categorical("exercise", FACTUAL, "facts.exercise", 0.3, "exercise habits", LIFESTYLE_TABLES["exercise"]),
    _categorical("diet", FACTUAL, "facts.diet", 0.2, "diet", LIFESTYLE_TABLES["diet"]),
    _categorical("sleep", FACTUAL, "facts.sleep", 0.2, "sleep schedule", LIFESTYLE_TABLES["sleep"]),
    _categorical("family_plans", FACTUAL, "facts.family_plans", 0.6, "family plans", PLAN_TABLES["family_plans"]),
    _categorical("relationship_goal", FACTUAL, "facts.relationship_goal", 0.6, "relationship goal",
                 PLAN_TABLES["relationship_goal"]),
    _categorical("communication_style", FACTUAL, "facts.communication_style", 0.4, "communication style",
                 LIFESTYLE_TABLES["communication_style"]),
    _set("interests", "facts.interests", 0.6, "interests"),
    _set("values", "facts.values", 0.7, "values"),
)


class FactorRegistry:
    """Ordered, name-indexed collection of FactorSpecs."""

    def __init__(self, factors: Optional[Tuple[FactorSpec, ...]] = None):
        factors = DEFAULT_FACTORS if factors is None else tuple(factors)
        self._factors: Dict[str, FactorSpec] = {}
        for factor in factors:
            if factor.name in self._factors:
                raise ValueError(f"Duplicate factor: {factor.name}")
            if not 0 <= factor.default_weight <= 1:
                raise ValueError(f"Default weight for {factor.name} must be in [0, 1]")
            self._factors[factor.name] = factor

    def __iter__(self):
        return iter(self._factors.values())

    def __len__(self) -> int:
        return len(self._factors)

    def __contains__(self, name: str) -> bool:
        return name in self._factors

    def get(self, name: str) -> FactorSpec:
        return self._factors[name]

    def names(self) -> List[str]:
        return list(self._factors)

    def default_weights(self) -> Dict[str, float]:
        """Factor name -> static default weight."""
        return {name: factor.default_weight for name, factor in self._factors.items()}

    def by_source(self, source: FactorSource) -> List[FactorSpec]:
        return [factor for factor in self._factors.values() if factor.source == source]


DEFAULT_REGISTRY = FactorRegistry()
