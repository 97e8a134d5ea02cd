"""
Configuration loading and validation.

This module loads the YAML configuration file and reports values that
are out of range or inconsistent before they reach the typed config.
"""

import logging
from pathlib import Path
from typing import Dict, Any, List

import yaml

from ..errors import ConfigurationError

logger = logging.getLogger(__name__)

KNOWN_SECTIONS = ["global", "weights", "learning", "matching", "data"]


def load_config(filepath: str) -> Dict[str, Any]:
    """
    Load configuration from YAML file.

    Args:
        filepath: Path to the YAML configuration file

    Returns:
        Configuration dictionary

    Raises:
        FileNotFoundError: If config file doesn't exist
        ConfigurationError: If the file is empty or not a mapping
        yaml.YAMLError: If YAML is invalid
    """
    path = Path(filepath)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {filepath}")

    logger.info(f"Loading configuration from {filepath}")
    with open(filepath, "r") as f:
        config = yaml.safe_load(f)

    if config is None:
        raise ConfigurationError(f"Configuration file is empty: {filepath}")
    if not isinstance(config, dict):
        raise ConfigurationError(f"Configuration root must be a mapping: {filepath}")

    return config


def validate_config(config: Dict[str, Any]) -> List[str]:
    """
    Validate configuration and return list of warnings/errors.

    Args:
        config: Configuration dictionary

    Returns:
        List of warning/error messages (empty if valid)
    """
    issues = []

    for section in config:
        if section not in KNOWN_SECTIONS:
            issues.append(f"Unknown section: {section}")

    # Blend weights should sum to 1; the ranker normalizes otherwise
    if "weights" in config:
        w = config["weights"] or {}
        hhc = w.get("hhc_weight", 0.6)
        factual = w.get("factual_weight", 0.4)
        if hhc < 0 or factual < 0:
            issues.append(f"Blend weights must be non-negative: {hhc}, {factual}")
        elif abs(hhc + factual - 1.0) > 0.01:
            issues.append(f"Blend weights don't sum to 1: {hhc} + {factual}")

    if "learning" in config:
        learning = config["learning"] or {}
        lr = learning.get("learning_rate", 0.1)
        if not 0 < lr <= 1:
            issues.append(f"learning.learning_rate must be in (0, 1], got {lr}")
        for key in ("attraction_decay", "repulsion_decay"):
            value = learning.get(key)
            if value is not None and not 0 <= value <= 1:
                issues.append(f"learning.{key} must be in [0, 1], got {value}")
        cap = learning.get("max_interactions_per_session", 10)
        if cap < 1:
            issues.append(f"learning.max_interactions_per_session must be >= 1, got {cap}")

    if "matching" in config:
        matching = config["matching"] or {}
        min_compat = matching.get("min_compatibility", 0.6)
        if not 0 <= min_compat <= 1:
            issues.append(f"matching.min_compatibility must be in [0, 1], got {min_compat}")
        for key in ("diversity_bonus", "diversity_epsilon", "distance_weight_decay"):
            value = matching.get(key)
            if value is not None and not 0 <= value <= 1:
                issues.append(f"matching.{key} must be in [0, 1], got {value}")

    return issues


def get_config_value(config: Dict[str, Any], path: str, default: Any = None) -> Any:
    """
    Get a nested configuration value using dot notation.

    Args:
        config: Configuration dictionary
        path: Dot-separated path (e.g., "learning.learning_rate")
        default: Default value if path doesn't exist

    Returns:
        Configuration value or default
    """
    keys = path.split(".")
    value = config
    for key in keys:
        if isinstance(value, dict) and key in value:
            value = value[key]
        else:
            return default
    return value
