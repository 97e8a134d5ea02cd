"""
Error taxonomy for the matching core.

All errors derive from SoulError and carry an error_type plus an optional
context dictionary so callers (and the analytics layer) can react to the
failure category without parsing messages.
"""

from enum import Enum
from typing import Any, Dict, Optional


class SoulErrorType(Enum):
    """Failure categories surfaced by the core."""
    VALIDATION_ERROR = "VALIDATION_ERROR"
    LEARNING_FAILED = "LEARNING_FAILED"
    MATCHING_FAILED = "MATCHING_FAILED"
    PROFILE_NOT_FOUND = "PROFILE_NOT_FOUND"
    INSUFFICIENT_DATA = "INSUFFICIENT_DATA"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"


class SoulError(Exception):
    """Base error for the matching core."""

    error_type = SoulErrorType.VALIDATION_ERROR

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "type": self.error_type.value,
            "message": self.message,
            "context": self.context
        }


class ValidationError(SoulError, ValueError):
    """Malformed or missing required profile/signal fields."""
    error_type = SoulErrorType.VALIDATION_ERROR


class LearningFailedError(SoulError):
    """An interaction signal could not be applied; weights are untouched."""
    error_type = SoulErrorType.LEARNING_FAILED


class MatchingFailedError(SoulError):
    """Ranking criteria are invalid or the candidate set is malformed."""
    error_type = SoulErrorType.MATCHING_FAILED


class ProfileNotFoundError(SoulError, KeyError):
    """The profile store has no profile for the requested id."""
    error_type = SoulErrorType.PROFILE_NOT_FOUND

    def __str__(self) -> str:
        return self.message


class InsufficientDataError(SoulError):
    """No attribute at all is comparable between two profiles."""
    error_type = SoulErrorType.INSUFFICIENT_DATA


class ConfigurationError(SoulError, ValueError):
    """Configuration values are out of range or inconsistent."""
    error_type = SoulErrorType.CONFIGURATION_ERROR
