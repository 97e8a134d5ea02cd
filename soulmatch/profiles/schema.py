"""
Data model for profiles, partner preferences and interaction signals.

Profiles are read-only to the matching core. Each profile carries:
- Personality axes (4 enumerated traits): energy, information, decisions, structure
- Virtue scores: named scores in [0, 1]
- Factual attributes: age, height, lifestyle habits, interests, values, ...
- Optional location (latitude/longitude)

PartnerPreferences hold the user's hard veto criteria plus soft weights.
InteractionSignals are immutable reactions the learner consumes.
"""

from dataclasses import dataclass, field, fields
from datetime import datetime
from enum import Enum
from typing import Optional, Dict, Any, FrozenSet, Tuple

from ..errors import ValidationError

PERSONALITY_AXES = ["energy", "information", "decisions", "structure"]

SET_FACTS = ("interests", "values", "languages")


class Reaction(Enum):
    """User reaction carried by an interaction signal."""
    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"


class MilestoneType(Enum):
    """Advisory learning milestone categories."""
    PREFERENCE_DISCOVERED = "preference_discovered"
    WEIGHT_STABILIZED = "weight_stabilized"
    VETO_IDENTIFIED = "veto_identified"
    INTEREST_EVOLVED = "interest_evolved"


class Impact(Enum):
    """Milestone impact levels."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True)
class Location:
    """Geographic position of a profile."""
    latitude: float
    longitude: float
    city: Optional[str] = None

    def __post_init__(self):
        if not -90 <= self.latitude <= 90:
            raise ValidationError(f"latitude must be in [-90, 90], got {self.latitude}")
        if not -180 <= self.longitude <= 180:
            raise ValidationError(f"longitude must be in [-180, 180], got {self.longitude}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {"latitude": self.latitude, "longitude": self.longitude, "city": self.city}


@dataclass
class FactualAttributes:
    """
    Factual attribute bag for one profile.

    Every field is optional; a missing value makes the matching factor
    non-comparable rather than failing the score.

    Attributes:
        age: Age in years
        height_cm: Height in centimetres
        gender_identity: Self-described gender (e.g. "woman", "man", "non_binary")
        smoking: never / sometimes / regularly
        drinking: never / socially / regularly
        exercise: never / sometimes / regularly
        diet: vegan / vegetarian / omnivore
        sleep: early_bird / night_owl / flexible
        family_plans: wants children / open to children / doesn't want children / has children
        relationship_goal: long_term / marriage / open / casual
        communication_style: direct / indirect / empathetic
        education_level: Free-form education level
        interests: Set of interest tags
        values: Set of value tags
        languages: Set of spoken languages
    """
    age: Optional[int] = None
    height_cm: Optional[float] = None
    gender_identity: Optional[str] = None
    smoking: Optional[str] = None
    drinking: Optional[str] = None
    exercise: Optional[str] = None
    diet: Optional[str] = None
    sleep: Optional[str] = None
    family_plans: Optional[str] = None
    relationship_goal: Optional[str] = None
    communication_style: Optional[str] = None
    education_level: Optional[str] = None
    interests: FrozenSet[str] = field(default_factory=frozenset)
    values: FrozenSet[str] = field(default_factory=frozenset)
    languages: FrozenSet[str] = field(default_factory=frozenset)

    def __post_init__(self):
        """Normalize set-valued facts and validate numeric facts."""
        for name in SET_FACTS:
            val = getattr(self, name)
            if val is None:
                val = frozenset()
            if isinstance(val, str):
                raise ValidationError(f"{name} must be a collection of strings, got a plain string")
            setattr(self, name, frozenset(str(v).strip().lower() for v in val if str(v).strip()))

        if self.age is not None:
            if isinstance(self.age, bool) or not isinstance(self.age, (int, float)):
                raise ValidationError(f"age must be numeric, got {type(self.age)}")
            if self.age < 0:
                raise ValidationError(f"age must be non-negative, got {self.age}")
        if self.height_cm is not None:
            if isinstance(self.height_cm, bool) or not isinstance(self.height_cm, (int, float)):
                raise ValidationError(f"height_cm must be numeric, got {type(self.height_cm)}")
            if self.height_cm <= 0:
                raise ValidationError(f"height_cm must be positive, got {self.height_cm}")

    def get(self, name: str) -> Any:
        """Return a fact, treating empty sets as missing."""
        value = getattr(self, name, None)
        if isinstance(value, frozenset) and not value:
            return None
        return value

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary with sorted lists for set facts."""
        result = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, frozenset):
                value = sorted(value)
            result[f.name] = value
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FactualAttributes":
        """Create from dictionary, ignoring None values and unknown keys."""
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in (data or {}).items() if k in known and v is not None})


@dataclass
class Profile:
    """
    Profile of one user as seen by the matching core.

    Attributes:
        user_id: Unique identifier (required)
        personality: Axis name -> trait letter/value (e.g. {"energy": "E"})
        virtues: Virtue name -> score in [0, 1]
        facts: FactualAttributes instance
        location: Optional Location
    """
    user_id: str
    personality: Dict[str, str] = field(default_factory=dict)
    virtues: Dict[str, float] = field(default_factory=dict)
    facts: FactualAttributes = field(default_factory=FactualAttributes)
    location: Optional[Location] = None

    def __post_init__(self):
        """Validate identity and coerce nested dictionaries."""
        if not isinstance(self.user_id, str) or not self.user_id.strip():
            raise ValidationError("Profile user_id is required", context={"user_id": self.user_id})
        if isinstance(self.facts, dict):
            self.facts = FactualAttributes.from_dict(self.facts)
        if isinstance(self.location, dict):
            self.location = Location(**self.location)

        unknown_axes = [a for a in self.personality if a not in PERSONALITY_AXES]
        if unknown_axes:
            raise ValidationError(f"Unknown personality axes: {unknown_axes}",
                                  context={"user_id": self.user_id})
        for name, score in self.virtues.items():
            if isinstance(score, bool) or not isinstance(score, (int, float)) or not 0 <= score <= 1:
                raise ValidationError(f"Virtue {name} must be in [0, 1], got {score}",
                                      context={"user_id": self.user_id})

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "user_id": self.user_id,
            "personality": dict(self.personality),
            "virtues": dict(self.virtues),
            "facts": self.facts.to_dict(),
            "location": self.location.to_dict() if self.location else None
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Profile":
        """Create from dictionary."""
        return cls(
            user_id=data.get("user_id"),
            personality=data.get("personality") or {},
            virtues=data.get("virtues") or {},
            facts=FactualAttributes.from_dict(data.get("facts") or {}),
            location=Location(**data["location"]) if data.get("location") else None
        )


@dataclass
class VetoCriteria:
    """
    Hard constraints; any violation forces the compatibility score to 0.

    Range checks are skipped when the candidate does not report the
    attribute. non_smoker_only and must_want_children need a positive
    confirmation from the candidate.
    """
    non_smoker_only: bool = False
    must_want_children: bool = False
    must_not_have_children: bool = False
    minimum_age: Optional[int] = None
    maximum_age: Optional[int] = None
    minimum_height: Optional[float] = None
    maximum_height: Optional[float] = None
    interested_in_genders: FrozenSet[str] = field(default_factory=frozenset)
    max_distance_km: Optional[float] = None
    deal_breaker_interests: FrozenSet[str] = field(default_factory=frozenset)
    required_interests: FrozenSet[str] = field(default_factory=frozenset)

    def __post_init__(self):
        for name in ("interested_in_genders", "deal_breaker_interests", "required_interests"):
            val = getattr(self, name) or ()
            setattr(self, name, frozenset(str(v).strip().lower() for v in val))
        for low, high in (("minimum_age", "maximum_age"), ("minimum_height", "maximum_height")):
            lo, hi = getattr(self, low), getattr(self, high)
            if lo is not None and hi is not None and lo > hi:
                raise ValidationError(f"{low} ({lo}) is greater than {high} ({hi})")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        result = {}
        for f in fields(self):
            value = getattr(self, f.name)
            result[f.name] = sorted(value) if isinstance(value, frozenset) else value
        return result


@dataclass
class PartnerPreferences:
    """
    What a user is looking for in a partner.

    Attributes:
        user_id: Owner of the preferences
        veto: Hard VetoCriteria
        desired_age_range: Optional (min, max) age; part of the veto set
        desired_height_range: Optional (min, max) height in cm; part of the veto set
        interest_weights: Interest tag -> importance in [0, 1]
        soft_weights: Factor name -> soft preference weight in [0, 1]
    """
    user_id: str
    veto: VetoCriteria = field(default_factory=VetoCriteria)
    desired_age_range: Optional[Tuple[int, int]] = None
    desired_height_range: Optional[Tuple[float, float]] = None
    interest_weights: Dict[str, float] = field(default_factory=dict)
    soft_weights: Dict[str, float] = field(default_factory=dict)

    def __post_init__(self):
        """Validate ranges and weights."""
        if isinstance(self.veto, dict):
            self.veto = VetoCriteria(**self.veto)
        for name in ("desired_age_range", "desired_height_range"):
            rng = getattr(self, name)
            if rng is None:
                continue
            if len(rng) != 2 or rng[0] > rng[1]:
                raise ValidationError(f"{name} must be an ordered (min, max) pair, got {rng}")
            setattr(self, name, (rng[0], rng[1]))
        for mapping_name in ("interest_weights", "soft_weights"):
            for key, weight in getattr(self, mapping_name).items():
                if not 0 <= weight <= 1:
                    raise ValidationError(f"{mapping_name}[{key}] must be in [0, 1], got {weight}")
        self.interest_weights = {k.strip().lower(): v for k, v in self.interest_weights.items()}

    @classmethod
    def none(cls, user_id: str) -> "PartnerPreferences":
        """Preferences with no constraints and no soft weights."""
        return cls(user_id=user_id)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "user_id": self.user_id,
            "veto": self.veto.to_dict(),
            "desired_age_range": list(self.desired_age_range) if self.desired_age_range else None,
            "desired_height_range": list(self.desired_height_range) if self.desired_height_range else None,
            "interest_weights": dict(self.interest_weights),
            "soft_weights": dict(self.soft_weights)
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PartnerPreferences":
        """Create from dictionary."""
        return cls(
            user_id=data["user_id"],
            veto=VetoCriteria(**(data.get("veto") or {})),
            desired_age_range=tuple(data["desired_age_range"]) if data.get("desired_age_range") else None,
            desired_height_range=(tuple(data["desired_height_range"])
                                  if data.get("desired_height_range") else None),
            interest_weights=data.get("interest_weights") or {},
            soft_weights=data.get("soft_weights") or {}
        )


@dataclass(frozen=True)
class InteractionSignal:
    """
    One user reaction to a candidate attribute.

    Range and attribute checks happen in the learner, so a malformed
    signal can be recorded in the log and rejected without side effects.

    Attributes:
        timestamp: When the reaction happened
        candidate_id: Candidate the user reacted to
        attribute: Factor name the reaction is about
        reaction: positive / negative / neutral
        attraction_force: Strength of attraction in [0, 1]
        repulsion_force: Strength of repulsion in [0, 1]
        confidence_level: How sure the signal source is, in [0, 1]
    """
    timestamp: datetime
    candidate_id: str
    attribute: str
    reaction: Reaction
    attraction_force: float = 0.0
    repulsion_force: float = 0.0
    confidence_level: float = 1.0

    def __post_init__(self):
        if isinstance(self.reaction, str):
            try:
                object.__setattr__(self, "reaction", Reaction(self.reaction.strip().lower()))
            except ValueError as e:
                raise ValidationError(f"Unknown reaction: {self.reaction}") from e
        elif not isinstance(self.reaction, Reaction):
            raise ValidationError(f"reaction must be a Reaction, got {type(self.reaction)}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "timestamp": self.timestamp.isoformat(),
            "candidate_id": self.candidate_id,
            "attribute": self.attribute,
            "reaction": self.reaction.value,
            "attraction_force": self.attraction_force,
            "repulsion_force": self.repulsion_force,
            "confidence_level": self.confidence_level
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "InteractionSignal":
        """Create from dictionary; timestamps may be ISO strings."""
        ts = data.get("timestamp")
        if isinstance(ts, str):
            try:
                ts = datetime.fromisoformat(ts)
            except ValueError as e:
                raise ValidationError(f"Invalid signal timestamp: {ts!r}") from e
        if not isinstance(ts, datetime):
            raise ValidationError("Signal timestamp is required", context={"timestamp": ts})
        return cls(
            timestamp=ts,
            candidate_id=str(data["candidate_id"]),
            attribute=str(data["attribute"]),
            reaction=data["reaction"],
            attraction_force=float(data.get("attraction_force", 0.0)),
            repulsion_force=float(data.get("repulsion_force", 0.0)),
            confidence_level=float(data.get("confidence_level", 1.0))
        )


@dataclass(frozen=True)
class LearningMilestone:
    """Advisory event emitted when the learner notices a notable change."""
    user_id: str
    type: MilestoneType
    related_attributes: Tuple[str, ...]
    impact: Impact
    description: str = ""
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "user_id": self.user_id,
            "type": self.type.value,
            "related_attributes": list(self.related_attributes),
            "impact": self.impact.value,
            "description": self.description,
            "timestamp": self.timestamp.isoformat()
        }

