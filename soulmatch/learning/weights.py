"""
Preference weight vectors and their store.

A PreferenceWeightVector is an immutable snapshot of one user's learned
per-factor importance. The learner is the only writer: it builds a new
snapshot and commits it to the WeightStore with a single reference swap,
so scorers holding an older snapshot never see a half-applied update.

Each commit bumps the vector version; score caches key on
(user_id, candidate_id, version) and are also notified through the
store's commit listeners.
"""

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, FrozenSet, List, Optional, Tuple, Any

from ..errors import LearningFailedError

logger = logging.getLogger(__name__)

DEFAULT_VECTOR_ID = "__symmetric_default__"


@dataclass(frozen=True)
class WeightEntry:
    """
    Learned state for one factor.

    Attributes:
        weight: Importance in [0, 1]
        confidence: Confidence in the weight, in [0, 1]
        last_updated: Timestamp of the last applied signal
        recent_deltas: Most recent applied deltas (stabilization window)
        stabilized: True while the recent deltas are all below threshold
        interactions: Number of signals applied to this factor
    """
    weight: float
    confidence: float
    last_updated: datetime
    recent_deltas: Tuple[float, ...] = ()
    stabilized: bool = False
    interactions: int = 0

    def __post_init__(self):
        if not 0.0 <= self.weight <= 1.0:
            raise ValueError(f"weight must be in [0, 1], got {self.weight}")
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"confidence must be in [0, 1], got {self.confidence}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "weight": self.weight,
            "confidence": self.confidence,
            "last_updated": self.last_updated.isoformat(),
            "recent_deltas": list(self.recent_deltas),
            "stabilized": self.stabilized,
            "interactions": self.interactions
        }


@dataclass(frozen=True)
class PreferenceWeightVector:
    """
    Immutable snapshot of one user's learned weights.

    Factors without an entry have no learning history; the scorer falls
    back to soft preference weights and then static defaults for them.

    Attributes:
        user_id: Owner of the vector
        entries: Factor name -> WeightEntry (treat as read-only)
        version: Monotonic commit counter
        touched: Factors updated since the last decay cycle
    """
    user_id: str
    entries: Dict[str, WeightEntry] = field(default_factory=dict)
    version: int = 0
    touched: FrozenSet[str] = frozenset()

    @classmethod
    def empty(cls, user_id: str) -> "PreferenceWeightVector":
        """Vector for a user with no learning history."""
        return cls(user_id=user_id)

    @classmethod
    def symmetric_default(cls) -> "PreferenceWeightVector":
        """Shared vector used when scoring without a user's perspective."""
        return cls(user_id=DEFAULT_VECTOR_ID)

    def weight_for(self, factor: str) -> Optional[float]:
        entry = self.entries.get(factor)
        return entry.weight if entry else None

    def confidence_for(self, factor: str) -> Optional[float]:
        entry = self.entries.get(factor)
        return entry.confidence if entry else None

    @property
    def has_history(self) -> bool:
        return bool(self.entries)

    def evolve(self, entries: Dict[str, WeightEntry], touched: FrozenSet[str]) -> "PreferenceWeightVector":
        """Next snapshot with the given entries and a bumped version."""
        return PreferenceWeightVector(
            user_id=self.user_id,
            entries=dict(entries),
            version=self.version + 1,
            touched=frozenset(touched)
        )

    def weights(self) -> Dict[str, float]:
        """Factor name -> learned weight."""
        return {name: entry.weight for name, entry in self.entries.items()}

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "user_id": self.user_id,
            "version": self.version,
            "entries": {name: entry.to_dict() for name, entry in sorted(self.entries.items())},
            "touched": sorted(self.touched)
        }


CommitListener = Callable[[str, int], None]


class WeightStore:
    """
    In-memory owner of every user's current weight snapshot.

    Reads return the current snapshot without copying. Commits are
    compare-and-swap on the version so a stale writer cannot overwrite a
    newer snapshot.
    """

    def __init__(self):
        self._vectors: Dict[str, PreferenceWeightVector] = {}
        self._lock = threading.Lock()
        self._listeners: List[CommitListener] = []

    def snapshot(self, user_id: str) -> PreferenceWeightVector:
        """Current vector for a user (empty if the user never learned)."""
        with self._lock:
            vector = self._vectors.get(user_id)
        return vector if vector is not None else PreferenceWeightVector.empty(user_id)

    def commit(self, vector: PreferenceWeightVector, expected_version: int) -> None:
        """
        Atomically replace a user's vector.

        Args:
            vector: New snapshot (version must be expected_version + 1)
            expected_version: Version the writer started from

        Raises:
            LearningFailedError: If another commit happened in between
        """
        with self._lock:
            current = self._vectors.get(vector.user_id)
            current_version = current.version if current is not None else 0
            if current_version != expected_version:
                raise LearningFailedError(
                    f"Concurrent weight update for {vector.user_id}",
                    context={"expected": expected_version, "current": current_version}
                )
            self._vectors[vector.user_id] = vector
            listeners = list(self._listeners)

        logger.debug(f"Committed weights for {vector.user_id} at version {vector.version}")
        for listener in listeners:
            listener(vector.user_id, vector.version)

    def add_listener(self, listener: CommitListener) -> None:
        """Register a callback invoked after every commit."""
        with self._lock:
            self._listeners.append(listener)

    def users(self) -> List[str]:
        with self._lock:
            return sorted(self._vectors)
