"""Configuration loading and typed settings."""

from .loader import load_config, validate_config, get_config_value
from .settings import WeightBlendConfig, LearningConfig, MatchingConfig, SoulConfig

__all__ = [
    "load_config",
    "validate_config",
    "get_config_value",
    "WeightBlendConfig",
    "LearningConfig",
    "MatchingConfig",
    "SoulConfig",
]
