"""
Attribute comparators for compatibility scoring.

Each comparator takes the two sides' values for one attribute and returns
a similarity in [0, 1]. Comparators are pure: no state, no side effects.

Comparator Types:
- Categorical: exact match or declared complementary pair
- Continuous: step function of the absolute difference
- Set overlap: |A ∩ B| / max(|A|, |B|, 1), optionally interest-weighted
- Vector: 1 - mean absolute difference over shared keys

Missing values are handled by the scorer (neutral score); comparators only
reject values whose shape does not match the declared attribute type.
"""

import logging
from typing import Dict, FrozenSet, Iterable, Optional

import numpy as np

from ..errors import ValidationError
from .tables import CategoricalTable, StepTable, NEUTRAL_SCORE

logger = logging.getLogger(__name__)


def compare_categorical(a: str, b: str, table: CategoricalTable) -> float:
    """
    Compare two categorical values.

    Args:
        a: Value on side A
        b: Value on side B
        table: CategoricalTable with match score and complementary pairs

    Returns:
        table.match_score on exact match, the complementary score when the
        pair is declared, else 0.0

    Raises:
        ValidationError: If either value is not a string
    """
    if not isinstance(a, str) or not isinstance(b, str):
        raise ValidationError(f"Categorical values must be strings, got {type(a).__name__}/{type(b).__name__}")

    a_norm = a.strip().lower()
    b_norm = b.strip().lower()
    if a_norm == b_norm:
        return table.match_score

    score = table.lookup(a_norm, b_norm)
    return score if score is not None else 0.0


def compare_continuous(a: float, b: float, table: StepTable) -> float:
    """
    Compare two numeric values with a step decay on |a - b|.

    Thresholds are evaluated in ascending order and the first one that
    covers the difference wins. Beyond the last threshold the floor applies.

    Raises:
        ValidationError: If either value is not numeric (bools are rejected)
    """
    for value in (a, b):
        if isinstance(value, bool) or not isinstance(value, (int, float, np.integer, np.floating)):
            raise ValidationError(f"Continuous values must be numeric, got {type(value).__name__}")

    delta = abs(float(a) - float(b))
    for max_delta, score in table.steps:
        if delta <= max_delta:
            return score
    return table.floor


def compare_set_overlap(
    a: Iterable[str],
    b: Iterable[str],
    item_weights: Optional[Dict[str, float]] = None
) -> float:
    """
    Overlap ratio of two sets.

    Without weights: |A ∩ B| / max(|A|, |B|, 1). With item_weights (the
    user's per-interest importance) each shared item counts by its weight,
    items not listed count 1.0, and the denominator is the weighted size
    of the larger side.

    Returns:
        Overlap in [0, 1]; 0.0 when either set is empty

    Raises:
        ValidationError: If either side is a plain string or not iterable
    """
    set_a = _as_set(a)
    set_b = _as_set(b)
    if not set_a or not set_b:
        return 0.0

    shared = set_a & set_b
    if not item_weights:
        return len(shared) / max(len(set_a), len(set_b), 1)

    def weigh(items: FrozenSet[str]) -> float:
        return float(sum(item_weights.get(item, 1.0) for item in items))

    denominator = max(weigh(set_a), weigh(set_b))
    if denominator <= 0:
        return 0.0
    return float(np.clip(weigh(shared) / denominator, 0.0, 1.0))


def compare_vector(a: Dict[str, float], b: Dict[str, float]) -> float:
    """
    Alignment of two named score vectors (e.g. virtue scores in [0, 1]).

    Returns:
        1 - mean |a_k - b_k| over shared keys; neutral score when no key is shared

    Raises:
        ValidationError: If either side is not a mapping
    """
    if not isinstance(a, dict) or not isinstance(b, dict):
        raise ValidationError("Vector values must be mappings of name -> score")

    shared = sorted(set(a) & set(b))
    if not shared:
        return NEUTRAL_SCORE

    vec_a = np.array([a[k] for k in shared], dtype=float)
    vec_b = np.array([b[k] for k in shared], dtype=float)
    distance = np.mean(np.abs(vec_a - vec_b))
    return float(np.clip(1.0 - distance, 0.0, 1.0))


def shared_items(a: Iterable[str], b: Iterable[str]) -> FrozenSet[str]:
    """Items present on both sides."""
    return _as_set(a) & _as_set(b)


def _as_set(values: Iterable[str]) -> FrozenSet[str]:
    if values is None:
        return frozenset()
    if isinstance(values, str):
        raise ValidationError("Set values must be a collection, got a plain string")
    try:
        return frozenset(values)
    except TypeError as e:
        raise ValidationError(f"Set values must be iterable, got {type(values).__name__}") from e
