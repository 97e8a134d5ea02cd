"""
Compatibility scoring between two profiles.

The score is an explainable weighted average of per-factor sub-scores,
viewed from profile A's perspective (A's weights and preferences).

Scoring Steps:
1. Veto: any violated hard criterion returns total 0 without computing factors
2. Factors: comparator sub-score x weight, with an explanation per factor
3. Normalize by the sum of applied weights and clamp to [0, 1]
4. Confidence: mean confidence of the weights applied to comparable factors

Weight Precedence:
    learned weight > soft preference weight > static default

Missing Values:
    A factor missing on either side contributes the neutral score 0.5 and
    is marked non-comparable.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import numpy as np

from ..errors import InsufficientDataError, ValidationError
from ..feature_engineering.comparators import (
    compare_categorical,
    compare_continuous,
    compare_set_overlap,
    compare_vector,
    shared_items,
)
from ..feature_engineering.factors import AttributeKind, FactorRegistry, FactorSource, FactorSpec, DEFAULT_REGISTRY
from ..feature_engineering.tables import NEUTRAL_SCORE, DEFAULT_CONFIDENCE, TABLES_VERSION
from ..learning.weights import PreferenceWeightVector
from ..profiles.schema import PartnerPreferences, Profile
from .veto import evaluate_veto

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FactorScore:
    """
    Breakdown entry for one factor.

    Attributes:
        factor: Factor name
        raw_score: Comparator sub-score in [0, 1]
        weight: Weight applied to the factor
        weighted_score: weight * raw_score
        explanation: Human-readable explanation
        comparable: False when either side lacked the attribute
        source: "hhc" or "factual"
        kind: Comparator kind
        weight_origin: "learned", "preference" or "default"
        confidence: Confidence of the applied weight
        shared: Shared items for set-overlap factors
    """
    factor: str
    raw_score: float
    weight: float
    weighted_score: float
    explanation: str
    comparable: bool
    source: str
    kind: str
    weight_origin: str
    confidence: float
    shared: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "raw_score": self.raw_score,
            "weight": self.weight,
            "weighted_score": self.weighted_score,
            "explanation": self.explanation,
            "comparable": self.comparable,
            "source": self.source,
            "kind": self.kind,
            "weight_origin": self.weight_origin,
            "confidence": self.confidence,
            "shared": list(self.shared)
        }


@dataclass(frozen=True)
class CompatibilityScore:
    """
    Result of scoring one (user, candidate) pair.

    Instances are created fresh per call and never mutated, so they can be
    cached by pair, weight version and profile content.

    Attributes:
        user_id: Perspective the score was computed from
        candidate_id: Candidate that was scored
        total_score: Overall compatibility in [0, 1]
        breakdown: Factor name -> FactorScore (empty when vetoed)
        veto_violated: True when a hard criterion failed
        veto_reasons: Names of the failed criteria
        confidence_level: Mean confidence of applied weights
        hhc_score: Weighted average over personality factors
        factual_score: Weighted average over factual factors
        weight_version: Version of the weight snapshot used
        tables_version: Version of the comparator lookup tables used
    """
    user_id: str
    candidate_id: str
    total_score: float
    breakdown: Dict[str, FactorScore] = field(default_factory=dict)
    veto_violated: bool = False
    veto_reasons: Tuple[str, ...] = ()
    confidence_level: float = DEFAULT_CONFIDENCE
    hhc_score: Optional[float] = None
    factual_score: Optional[float] = None
    weight_version: int = 0
    tables_version: str = TABLES_VERSION

    @property
    def percentage(self) -> float:
        """Total score scaled to [0, 100]."""
        return round(self.total_score * 100.0, 1)

    def comparable_factors(self) -> List[FactorScore]:
        return [f for f in self.breakdown.values() if f.comparable]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "user_id": self.user_id,
            "candidate_id": self.candidate_id,
            "total_score": self.total_score,
            "percentage": self.percentage,
            "veto_violated": self.veto_violated,
            "veto_reasons": list(self.veto_reasons),
            "confidence_level": self.confidence_level,
            "hhc_score": self.hhc_score,
            "factual_score": self.factual_score,
            "weight_version": self.weight_version,
            "tables_version": self.tables_version,
            "breakdown": {name: f.to_dict() for name, f in self.breakdown.items()}
        }


class CompatibilityScorer:
    """
    Scores profile pairs with the registered factors.

    The scorer holds no per-call state and is safe to share between threads.

    Example:
        >>> scorer = CompatibilityScorer()
        >>> result = scorer.score(user, candidate, weights, preferences)
        >>> result.percentage
        82.5
    """

    def __init__(self, registry: FactorRegistry = DEFAULT_REGISTRY):
        self.registry = registry

    def score(
        self,
        profile_a: Profile,
        profile_b: Profile,
        weights: Optional[PreferenceWeightVector] = None,
        preferences: Optional[PartnerPreferences] = None
    ) -> CompatibilityScore:
        """
        Score profile_b as a match for profile_a.

        Args:
            profile_a: The user whose perspective is scored
            profile_b: The candidate
            weights: profile_a's weight snapshot (symmetric default if None)
            preferences: profile_a's partner preferences (no constraints if None)

        Returns:
            CompatibilityScore

        Raises:
            ValidationError: If either profile is missing or lacks identity
            InsufficientDataError: If neither profile reports any scored attribute
        """
        for label, profile in (("profile_a", profile_a), ("profile_b", profile_b)):
            if not isinstance(profile, Profile):
                raise ValidationError(f"{label} must be a Profile, got {type(profile).__name__}")
            if not profile.user_id:
                raise ValidationError(f"{label} has no user_id")

        weights = weights or PreferenceWeightVector.symmetric_default()

        reasons = evaluate_veto(preferences, profile_b, profile_a)
        if reasons:
            return CompatibilityScore(
                user_id=profile_a.user_id,
                candidate_id=profile_b.user_id,
                total_score=0.0,
                veto_violated=True,
                veto_reasons=tuple(reasons),
                confidence_level=1.0,
                weight_version=weights.version
            )

        breakdown: Dict[str, FactorScore] = {}
        any_data = False
        for factor in self.registry:
            value_a = factor.extract(profile_a)
            value_b = factor.extract(profile_b)
            any_data = any_data or value_a is not None or value_b is not None
            breakdown[factor.name] = self._score_factor(factor, value_a, value_b, weights, preferences)

        if not any_data:
            raise InsufficientDataError(
                f"No comparable attributes between {profile_a.user_id} and {profile_b.user_id}",
                context={"user_id": profile_a.user_id, "candidate_id": profile_b.user_id}
            )

        factors = list(breakdown.values())
        comparable = [f for f in factors if f.comparable]
        confidence = round(float(np.mean([f.confidence for f in comparable])), 6) if comparable else 0.0

        result = CompatibilityScore(
            user_id=profile_a.user_id,
            candidate_id=profile_b.user_id,
            total_score=_weighted_average(factors),
            breakdown=breakdown,
            confidence_level=confidence,
            hhc_score=_weighted_average([f for f in factors if f.source == FactorSource.HHC.value]),
            factual_score=_weighted_average([f for f in factors if f.source == FactorSource.FACTUAL.value]),
            weight_version=weights.version
        )
        logger.debug(f"Scored {profile_a.user_id} -> {profile_b.user_id}: {result.total_score:.3f} "
                     f"({len(comparable)}/{len(factors)} comparable)")
        return result

    def _score_factor(
        self,
        factor: FactorSpec,
        value_a: Any,
        value_b: Any,
        weights: PreferenceWeightVector,
        preferences: Optional[PartnerPreferences]
    ) -> FactorScore:
        weight, origin, confidence = _resolve_weight(factor, weights, preferences)

        comparable = value_a is not None and value_b is not None
        shared: Tuple[str, ...] = ()
        if not comparable:
            raw = NEUTRAL_SCORE
        elif factor.kind == AttributeKind.CATEGORICAL:
            raw = compare_categorical(value_a, value_b, factor.table)
        elif factor.kind == AttributeKind.CONTINUOUS:
            raw = compare_continuous(value_a, value_b, factor.table)
        elif factor.kind == AttributeKind.SET:
            item_weights = preferences.interest_weights if preferences and factor.name == "interests" else None
            raw = compare_set_overlap(value_a, value_b, item_weights)
            shared = tuple(sorted(shared_items(value_a, value_b)))
        else:
            comparable = bool(set(value_a) & set(value_b))
            raw = compare_vector(value_a, value_b)

        if comparable:
            explanation = factor.explain(raw, value_a, value_b, frozenset(shared))
        else:
            explanation = f"Not enough information to compare {factor.label}"

        return FactorScore(
            factor=factor.name,
            raw_score=raw,
            weight=weight,
            weighted_score=weight * raw,
            explanation=explanation,
            comparable=comparable,
            source=factor.source.value,
            kind=factor.kind.value,
            weight_origin=origin,
            confidence=confidence,
            shared=shared
        )


def _resolve_weight(
    factor: FactorSpec,
    weights: PreferenceWeightVector,
    preferences: Optional[PartnerPreferences]
) -> Tuple[float, str, float]:
    learned = weights.weight_for(factor.name)
    if learned is not None:
        return learned, "learned", weights.confidence_for(factor.name)
    if preferences is not None and factor.name in preferences.soft_weights:
        return preferences.soft_weights[factor.name], "preference", DEFAULT_CONFIDENCE
    return factor.default_weight, "default", DEFAULT_CONFIDENCE


def _weighted_average(factors: List[FactorScore]) -> float:
    if not factors:
        return 0.0
    total_weight = sum(f.weight for f in factors)
    if total_weight <= 0:
        value = float(np.mean([f.raw_score for f in factors]))
    else:
        value = sum(f.weighted_score for f in factors) / total_weight
    return float(np.clip(value, 0.0, 1.0))
