"""
Typed configuration for the matching core.

Every recognised option is a named, typed and defaulted dataclass field.
Defaults match the values the product has shipped with:

    weights:   hhc_weight=0.6, factual_weight=0.4
    learning:  learning_rate=0.1, attraction_decay=0.95, repulsion_decay=0.9,
               confidence_threshold=0.3, max_interactions_per_session=10,
               weight_stabilization_threshold=0.05
    matching:  min_compatibility=0.6, max_candidates=1000,
               diversity_bonus=0.1, distance_weight_decay=0.1
"""

import json
import logging
from dataclasses import dataclass, asdict, field
from typing import Dict, Any, List

from ..errors import ConfigurationError

logger = logging.getLogger(__name__)

BLEND_SUM_TOLERANCE = 0.01


@dataclass
class WeightBlendConfig:
    """
    Blend between the personality-derived (HHC) and factual sub-scores.

    Attributes:
        hhc_weight: Weight for the personality sub-score
        factual_weight: Weight for the factual sub-score
    """
    hhc_weight: float = 0.6
    factual_weight: float = 0.4

    def validate(self) -> None:
        """Validate configuration values."""
        for name in ("hhc_weight", "factual_weight"):
            value = getattr(self, name)
            if not 0 <= value <= 1:
                raise ConfigurationError(f"{name} must be in [0, 1], got {value}")
        if self.hhc_weight + self.factual_weight <= 0:
            raise ConfigurationError("hhc_weight and factual_weight cannot both be 0")

    def sums_to_one(self) -> bool:
        return abs(self.hhc_weight + self.factual_weight - 1.0) <= BLEND_SUM_TOLERANCE

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]):
        """Create from dictionary."""
        return _build_section(cls, d)


@dataclass
class LearningConfig:
    """
    Parameters of the online preference weight update.

    Attributes:
        learning_rate: Step size applied to each signal's force
        attraction_decay: Retention factor for weights above their baseline
        repulsion_decay: Retention factor for weights below their baseline
        confidence_threshold: Confidence needed before a weight counts as personalized
        max_interactions_per_session: Signals applied per session before queueing
        weight_stabilization_threshold: Delta magnitude considered "converged"
        stabilization_window: Number of recent deltas inspected for stabilization
    """
    learning_rate: float = 0.1
    attraction_decay: float = 0.95
    repulsion_decay: float = 0.9
    confidence_threshold: float = 0.3
    max_interactions_per_session: int = 10
    weight_stabilization_threshold: float = 0.05
    stabilization_window: int = 3

    def validate(self) -> None:
        """Validate configuration values."""
        if not 0 < self.learning_rate <= 1:
            raise ConfigurationError(f"learning_rate must be in (0, 1], got {self.learning_rate}")
        for name in ("attraction_decay", "repulsion_decay", "confidence_threshold"):
            value = getattr(self, name)
            if not 0 <= value <= 1:
                raise ConfigurationError(f"{name} must be in [0, 1], got {value}")
        if self.max_interactions_per_session < 1:
            raise ConfigurationError(
                f"max_interactions_per_session must be >= 1, got {self.max_interactions_per_session}"
            )
        if self.weight_stabilization_threshold < 0:
            raise ConfigurationError("weight_stabilization_threshold must be >= 0")
        if self.stabilization_window < 1:
            raise ConfigurationError(f"stabilization_window must be >= 1, got {self.stabilization_window}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]):
        """Create from dictionary."""
        return _build_section(cls, d)


@dataclass
class MatchingConfig:
    """
    Defaults for ranking requests.

    Attributes:
        min_compatibility: Minimum total score a candidate needs to survive
        max_candidates: Upper bound on the coarse candidate set that is scored
        max_results: Number of ranked results returned
        diversity_bonus: Maximum boost for a near-tied, less similar candidate
        diversity_epsilon: Score band inside which candidates count as tied
        distance_weight_decay: Score retention lost per 50 km of distance
    """
    min_compatibility: float = 0.6
    max_candidates: int = 1000
    max_results: int = 20
    diversity_bonus: float = 0.1
    diversity_epsilon: float = 0.05
    distance_weight_decay: float = 0.1

    def validate(self) -> None:
        """Validate configuration values."""
        for name in ("min_compatibility", "diversity_bonus", "diversity_epsilon", "distance_weight_decay"):
            value = getattr(self, name)
            if not 0 <= value <= 1:
                raise ConfigurationError(f"{name} must be in [0, 1], got {value}")
        if self.max_candidates < 1:
            raise ConfigurationError(f"max_candidates must be >= 1, got {self.max_candidates}")
        if self.max_results < 0:
            raise ConfigurationError(f"max_results must be >= 0, got {self.max_results}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]):
        """Create from dictionary."""
        return _build_section(cls, d)


@dataclass
class SoulConfig:
    """
    Complete configuration for the matching core.

    Built from the main YAML config (see configs/config.yaml) with
    SoulConfig.from_config, or from the JSON produced by save().
    """
    weights: WeightBlendConfig = field(default_factory=WeightBlendConfig)
    learning: LearningConfig = field(default_factory=LearningConfig)
    matching: MatchingConfig = field(default_factory=MatchingConfig)
    log_level: str = "INFO"

    def validate(self) -> None:
        """Validate all sections."""
        self.weights.validate()
        self.learning.validate()
        self.matching.validate()

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "global": {"log_level": self.log_level},
            "weights": self.weights.to_dict(),
            "learning": self.learning.to_dict(),
            "matching": self.matching.to_dict()
        }

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "SoulConfig":
        """
        Create from main config dictionary.

        Unknown keys inside a section are rejected so typos surface early
        instead of silently falling back to defaults.

        Args:
            config: Main config dictionary (as returned by load_config)

        Returns:
            SoulConfig instance

        Raises:
            ConfigurationError: If a section contains unknown keys
        """
        config = config or {}
        return cls(
            weights=_build_section(WeightBlendConfig, config.get("weights")),
            learning=_build_section(LearningConfig, config.get("learning")),
            matching=_build_section(MatchingConfig, config.get("matching")),
            log_level=(config.get("global") or {}).get("log_level", "INFO")
        )

    @classmethod
    def from_file(cls, filepath: str) -> "SoulConfig":
        """Load and validate from a YAML config file."""
        from .loader import load_config, validate_config

        config = load_config(filepath)
        for issue in validate_config(config):
            logger.warning(f"Config issue: {issue}")
        soul_config = cls.from_config(config)
        soul_config.validate()
        return soul_config

    def save(self, filepath: str) -> None:
        """Save to JSON file."""
        with open(filepath, "w") as f:
            json.dump(self.to_dict(), f, indent=2)
        logger.info(f"Saved soul config to {filepath}")

    @classmethod
    def load(cls, filepath: str) -> "SoulConfig":
        """Load from JSON file."""
        with open(filepath, "r") as f:
            d = json.load(f)
        return cls.from_config(d)


def _build_section(section_cls, values: Any):
    if values is None:
        return section_cls()
    if not isinstance(values, dict):
        raise ConfigurationError(f"Section for {section_cls.__name__} must be a mapping, got {type(values)}")
    known = set(section_cls.__dataclass_fields__)
    unknown: List[str] = sorted(set(values) - known)
    if unknown:
        raise ConfigurationError(
            f"Unknown {section_cls.__name__} option(s): {unknown}",
            context={"known": sorted(known)}
        )
    return section_cls(**values)
