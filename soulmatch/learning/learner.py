"""
Online preference weight learning.

This module turns a user's reactions to candidates into per-factor
importance weights. Updates are reinforcement-style and bounded.

Key Design Decisions:
- One writer per user: updates for a user are serialized by a per-user lock
- Updates are all-or-nothing: a new snapshot is committed or nothing changes
- Signals past the session cap are queued, never dropped
- Milestones are advisory and published to a stream

Update Rule:
    delta = learning_rate * confidence_level *
            (attraction_force if reaction == positive else -repulsion_force)
    w' = clip(w + delta, 0, 1)
    conf' = conf + (1 - conf) * learning_rate * confidence_level

Decay (per session start, or explicit call), for factors untouched since
the previous cycle, toward the factor's default weight b:
    w > b: w' = b + (w - b) * attraction_decay
    w < b: w' = b - (b - w) * repulsion_decay
Stabilized factors decay at half the rate: decay' = 1 - (1 - decay) / 2
"""

import logging
import math
import threading
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Deque, Dict, List, Optional, Tuple

from ..configs.settings import LearningConfig
from ..errors import LearningFailedError, ValidationError
from ..feature_engineering.factors import AttributeKind, FactorRegistry, DEFAULT_REGISTRY
from ..feature_engineering.tables import DEFAULT_CONFIDENCE
from ..profiles.schema import (
    InteractionSignal,
    LearningMilestone,
    MilestoneType,
    Impact,
    Reaction,
)
from .milestones import MilestoneStream
from .weights import PreferenceWeightVector, WeightEntry, WeightStore

logger = logging.getLogger(__name__)

DISCOVERY_THRESHOLD = 0.8
INTEREST_PIVOT = 0.5
VETO_REPULSION_THRESHOLD = 0.3


@dataclass
class LearningOutcome:
    """
    Result of applying (or queueing) interaction signals.

    Attributes:
        updated_weights: Snapshot after the call
        milestones: Milestones emitted by the call
        applied: Number of signals applied to the weights
        queued: True when the signal was queued behind the session cap
    """
    updated_weights: PreferenceWeightVector
    milestones: List[LearningMilestone] = field(default_factory=list)
    applied: int = 0
    queued: bool = False


@dataclass
class _SessionState:
    applied: int = 0
    pending: Deque[InteractionSignal] = field(default_factory=deque)
    log: List[InteractionSignal] = field(default_factory=list)


class PreferenceWeightLearner:
    """
    Applies interaction signals to users' weight vectors.

    Different users are updated independently; calls for the same user
    are serialized.

    Example:
        >>> learner = PreferenceWeightLearner(WeightStore(), LearningConfig())
        >>> outcome = learner.record_interaction("u1", signal)
        >>> outcome.updated_weights.weight_for("interests")
    """

    def __init__(
        self,
        store: WeightStore,
        config: Optional[LearningConfig] = None,
        registry: FactorRegistry = DEFAULT_REGISTRY,
        stream: Optional[MilestoneStream] = None
    ):
        self.store = store
        self.config = config or LearningConfig()
        self.config.validate()
        self.registry = registry
        self.stream = stream if stream is not None else MilestoneStream()

        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()
        self._sessions: Dict[str, _SessionState] = {}

        logger.info(f"Initialized PreferenceWeightLearner: lr={self.config.learning_rate}, "
                    f"session_cap={self.config.max_interactions_per_session}")

    def record_interaction(self, user_id: str, signal: InteractionSignal) -> LearningOutcome:
        """
        Apply one interaction signal to a user's weights.

        Args:
            user_id: User who reacted
            signal: InteractionSignal describing the reaction

        Returns:
            LearningOutcome with the snapshot after the call

        Raises:
            ValidationError: If user_id is empty
            LearningFailedError: If the signal is malformed; weights are unchanged
        """
        _require_user(user_id)
        self._validate_signal(signal)

        with self._user_lock(user_id):
            session = self._session(user_id)

            if session.applied >= self.config.max_interactions_per_session:
                session.log.append(signal)
                session.pending.append(signal)
                logger.debug(f"Session cap reached for {user_id}; queued signal on {signal.attribute} "
                             f"({len(session.pending)} pending)")
                return LearningOutcome(updated_weights=self.store.snapshot(user_id), queued=True)

            vector, milestones = self._apply_and_commit(user_id, [signal])
            session.applied += 1
            session.log.append(signal)

        return LearningOutcome(updated_weights=vector, milestones=milestones, applied=1)

    def start_session(self, user_id: str) -> LearningOutcome:
        """
        Begin a new session for a user.

        Runs a decay cycle, resets the session counter, then applies queued
        signals from earlier sessions (oldest first) up to the session cap.
        """
        _require_user(user_id)
        with self._user_lock(user_id):
            self._decay_locked(user_id)
            session = self._session(user_id)
            session.applied = 0

            drained: List[InteractionSignal] = []
            while session.pending and len(drained) < self.config.max_interactions_per_session:
                drained.append(session.pending.popleft())

            if not drained:
                return LearningOutcome(updated_weights=self.store.snapshot(user_id))

            try:
                vector, milestones = self._apply_and_commit(user_id, drained)
            except LearningFailedError:
                session.pending.extendleft(reversed(drained))
                raise
            session.applied = len(drained)

        logger.info(f"Applied {len(drained)} queued signal(s) for {user_id}")
        return LearningOutcome(updated_weights=vector, milestones=milestones, applied=len(drained))

    def apply_decay(self, user_id: str) -> PreferenceWeightVector:
        """Run a decay cycle for a user outside of session start."""
        _require_user(user_id)
        with self._user_lock(user_id):
            return self._decay_locked(user_id)

    def interaction_log(self, user_id: str) -> List[InteractionSignal]:
        """Accepted signals for a user in arrival order."""
        with self._user_lock(user_id):
            return list(self._session(user_id).log)

    def pending_count(self, user_id: str) -> int:
        with self._user_lock(user_id):
            return len(self._session(user_id).pending)

    # ------------------------------------------------------------------
    # internals
    # ------------------------------------------------------------------

    def _user_lock(self, user_id: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(user_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[user_id] = lock
            return lock

    def _session(self, user_id: str) -> _SessionState:
        with self._locks_guard:
            return self._sessions.setdefault(user_id, _SessionState())

    def _validate_signal(self, signal: InteractionSignal) -> None:
        if not isinstance(signal, InteractionSignal):
            raise LearningFailedError(f"Expected InteractionSignal, got {type(signal).__name__}")
        if signal.attribute not in self.registry:
            raise LearningFailedError(
                f"Unknown attribute: {signal.attribute}",
                context={"known": self.registry.names()}
            )
        if not signal.candidate_id:
            raise LearningFailedError("Signal candidate_id is required")
        if not isinstance(signal.timestamp, datetime):
            raise LearningFailedError(
                f"Signal timestamp must be a datetime, got {signal.timestamp!r}",
                context={"attribute": signal.attribute, "candidate_id": signal.candidate_id}
            )
        for name in ("attraction_force", "repulsion_force", "confidence_level"):
            value = getattr(signal, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)) or math.isnan(value):
                raise LearningFailedError(f"{name} must be a number, got {value!r}")
            if not 0.0 <= value <= 1.0:
                raise LearningFailedError(
                    f"{name} must be in [0, 1], got {value}",
                    context={"attribute": signal.attribute, "candidate_id": signal.candidate_id}
                )

    def _apply_and_commit(
        self,
        user_id: str,
        signals: List[InteractionSignal]
    ) -> Tuple[PreferenceWeightVector, List[LearningMilestone]]:
        base = self.store.snapshot(user_id)
        entries = dict(base.entries)
        touched = set(base.touched)
        milestones: List[LearningMilestone] = []

        for signal in signals:
            entry, emitted = self._update_entry(user_id, entries.get(signal.attribute), signal)
            entries[signal.attribute] = entry
            touched.add(signal.attribute)
            milestones.extend(emitted)

        vector = base.evolve(entries, frozenset(touched))
        self.store.commit(vector, expected_version=base.version)

        for milestone in milestones:
            self.stream.publish(milestone)
        return vector, milestones

    def _update_entry(
        self,
        user_id: str,
        entry: Optional[WeightEntry],
        signal: InteractionSignal
    ) -> Tuple[WeightEntry, List[LearningMilestone]]:
        cfg = self.config
        factor = self.registry.get(signal.attribute)

        old_weight = entry.weight if entry else factor.default_weight
        old_conf = entry.confidence if entry else DEFAULT_CONFIDENCE
        history = entry.recent_deltas if entry else ()
        was_stabilized = entry.stabilized if entry else False
        interactions = entry.interactions if entry else 0

        force = signal.attraction_force if signal.reaction == Reaction.POSITIVE else -signal.repulsion_force
        delta = cfg.learning_rate * signal.confidence_level * force
        new_weight = min(1.0, max(0.0, old_weight + delta))
        new_conf = min(1.0, old_conf + (1.0 - old_conf) * cfg.learning_rate * signal.confidence_level)

        recent = (history + (new_weight - old_weight,))[-cfg.stabilization_window:]
        stabilized = (
            len(recent) >= cfg.stabilization_window
            and all(abs(d) < cfg.weight_stabilization_threshold for d in recent)
        )

        updated = WeightEntry(
            weight=new_weight,
            confidence=new_conf,
            last_updated=signal.timestamp,
            recent_deltas=recent,
            stabilized=stabilized,
            interactions=interactions + 1
        )

        milestones = []
        attrs = (signal.attribute,)
        if old_weight <= DISCOVERY_THRESHOLD < new_weight and new_conf >= cfg.confidence_threshold:
            impact = Impact.HIGH if factor.default_weight < INTEREST_PIVOT else Impact.MEDIUM
            milestones.append(LearningMilestone(
                user_id, MilestoneType.PREFERENCE_DISCOVERED, attrs, impact,
                f"{factor.label.capitalize()} matters a lot to this user"))
        if signal.reaction == Reaction.NEGATIVE and signal.repulsion_force > VETO_REPULSION_THRESHOLD:
            milestones.append(LearningMilestone(
                user_id, MilestoneType.VETO_IDENTIFIED, attrs, Impact.MEDIUM,
                f"Strong negative reaction to {factor.label}"))
        if stabilized and not was_stabilized:
            milestones.append(LearningMilestone(
                user_id, MilestoneType.WEIGHT_STABILIZED, attrs, Impact.LOW,
                f"Importance of {factor.label} has settled at {new_weight:.2f}"))
        if factor.kind == AttributeKind.SET and (old_weight < INTEREST_PIVOT) != (new_weight < INTEREST_PIVOT):
            direction = "more" if new_weight > old_weight else "less"
            milestones.append(LearningMilestone(
                user_id, MilestoneType.INTEREST_EVOLVED, attrs, Impact.MEDIUM,
                f"Shared {factor.label} now matter {direction} to this user"))

        logger.debug(f"{user_id}: {signal.attribute} {old_weight:.3f} -> {new_weight:.3f} "
                     f"({signal.reaction.value}, conf {new_conf:.3f})")
        return updated, milestones

    def _decay_locked(self, user_id: str) -> PreferenceWeightVector:
        base = self.store.snapshot(user_id)
        if not base.entries and not base.touched:
            return base

        entries: Dict[str, WeightEntry] = {}
        changed = False
        for name, entry in base.entries.items():
            if name in base.touched or name not in self.registry:
                entries[name] = entry
                continue
            decayed = self._decayed_weight(entry, self.registry.get(name).default_weight)
            if decayed != entry.weight:
                changed = True
                entry = WeightEntry(
                    weight=decayed,
                    confidence=entry.confidence,
                    last_updated=entry.last_updated,
                    recent_deltas=entry.recent_deltas,
                    stabilized=entry.stabilized,
                    interactions=entry.interactions
                )
            entries[name] = entry

        if not changed and not base.touched:
            return base

        vector = base.evolve(entries, frozenset())
        self.store.commit(vector, expected_version=base.version)
        logger.debug(f"Decay cycle for {user_id} at version {vector.version}")
        return vector

    def _decayed_weight(self, entry: WeightEntry, baseline: float) -> float:
        weight = entry.weight
        if weight > baseline:
            decay = self.config.attraction_decay
        elif weight < baseline:
            decay = self.config.repulsion_decay
        else:
            return weight
        if entry.stabilized:
            decay = 1.0 - (1.0 - decay) / 2.0
        return min(1.0, max(0.0, baseline + (weight - baseline) * decay))


def _require_user(user_id: str) -> None:
    if not isinstance(user_id, str) or not user_id.strip():
        raise ValidationError("user_id is required")


def replay_signals(
    learner: PreferenceWeightLearner,
    user_id: str,
    signals: List[InteractionSignal],
    new_session_every: Optional[int] = None
) -> List[LearningOutcome]:
    """
    Feed a recorded interaction log through the learner in order.

    Malformed signals are logged and skipped so one bad row does not stop
    a replay.

    Args:
        learner: Learner to apply signals with
        user_id: User the log belongs to
        signals: Signals in arrival order
        new_session_every: Start a new session after this many signals

    Returns:
        One LearningOutcome per accepted signal
    """
    outcomes = []
    for i, signal in enumerate(signals):
        if new_session_every and i > 0 and i % new_session_every == 0:
            learner.start_session(user_id)
        try:
            outcomes.append(learner.record_interaction(user_id, signal))
        except LearningFailedError as e:
            logger.warning(f"Skipping signal {i} for {user_id}: {e.message}")
    logger.info(f"Replayed {len(outcomes)}/{len(signals)} signal(s) for {user_id}")
    return outcomes
