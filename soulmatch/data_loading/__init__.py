"""Data loading for profiles, preferences and interaction signals."""

from .loaders import load_profiles, load_preferences, load_signals, validate_columns

__all__ = ["load_profiles", "load_preferences", "load_signals", "validate_columns"]
