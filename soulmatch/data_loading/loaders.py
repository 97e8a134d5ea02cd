"""
Data loading functions for the matching core.

This module turns profile, preference and interaction-signal files into
the core's data model. The core itself never reads files; loaders are
used by the CLI, the smoke test and batch replays.

Supported formats:
- Profiles: JSON (list of profile objects) or CSV (one row per profile,
  set-valued columns separated by ';', virtue columns prefixed 'virtue_')
- Preferences: JSON (list of preference objects)
- Signals: CSV with one row per interaction
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd

from ..errors import ValidationError
from ..profiles.schema import (
    PERSONALITY_AXES,
    FactualAttributes,
    InteractionSignal,
    Location,
    PartnerPreferences,
    Profile,
)

logger = logging.getLogger(__name__)

SIGNAL_COLUMNS = ["user_id", "timestamp", "candidate_id", "attribute", "reaction",
                  "attraction_force", "repulsion_force", "confidence_level"]
REQUIRED_SIGNAL_VALUES = ["user_id", "timestamp", "candidate_id", "attribute", "reaction"]

SET_SEPARATOR = ";"
VIRTUE_PREFIX = "virtue_"


def _require_file(filepath: str, kind: str) -> Path:
    path = Path(filepath)
    if not path.exists():
        raise FileNotFoundError(f"{kind} file not found: {filepath}")
    return path


def validate_columns(df: pd.DataFrame, required: List[str], kind: str) -> None:
    """
    Check that a DataFrame has the required columns.

    Raises:
        ValidationError: If any column is missing
    """
    missing = [c for c in required if c not in df.columns]
    if missing:
        raise ValidationError(f"{kind} data missing columns: {missing}", context={"columns": list(df.columns)})


def load_profiles(filepath: str) -> List[Profile]:
    """
    Load profiles from JSON or CSV.

    Args:
        filepath: Path to a .json or .csv file

    Returns:
        List of Profile objects in file order

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValidationError: If the file is empty or a row is malformed
    """
    path = _require_file(filepath, "Profile")
    logger.info(f"Loading profiles from {filepath}")

    if path.suffix.lower() == ".json":
        with open(path, "r") as f:
            records = json.load(f)
        if not isinstance(records, list):
            raise ValidationError(f"Profile JSON must be a list: {filepath}")
        profiles = [Profile.from_dict(r) for r in records]
    else:
        df = pd.read_csv(path)
        if df.empty:
            raise ValidationError(f"Profile data file is empty: {filepath}")
        validate_columns(df, ["user_id"], "Profile")
        profiles = [_profile_from_row(row) for row in df.to_dict(orient="records")]

    if not profiles:
        raise ValidationError(f"No profiles in {filepath}")
    logger.info(f"Loaded {len(profiles)} profiles")
    return profiles


def _clean(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, float) and pd.isna(value):
        return None
    if isinstance(value, str) and not value.strip():
        return None
    return value


def _profile_from_row(row: Dict[str, Any]) -> Profile:
    row = {k: _clean(v) for k, v in row.items()}

    personality = {axis: str(row[axis]) for axis in PERSONALITY_AXES if row.get(axis) is not None}
    virtues = {k[len(VIRTUE_PREFIX):]: float(v) for k, v in row.items()
               if k.startswith(VIRTUE_PREFIX) and v is not None}

    fact_fields = set(FactualAttributes.__dataclass_fields__)
    facts: Dict[str, Any] = {}
    for name in fact_fields:
        value = row.get(name)
        if value is None:
            continue
        if name in ("interests", "values", "languages"):
            value = [item.strip() for item in str(value).split(SET_SEPARATOR) if item.strip()]
        elif name == "age":
            value = int(value)
        elif name == "height_cm":
            value = float(value)
        else:
            value = str(value)
        facts[name] = value

    location = None
    if row.get("latitude") is not None and row.get("longitude") is not None:
        location = Location(float(row["latitude"]), float(row["longitude"]), row.get("city"))

    return Profile(
        user_id=str(row["user_id"]),
        personality=personality,
        virtues=virtues,
        facts=FactualAttributes.from_dict(facts),
        location=location
    )


def load_preferences(filepath: str) -> List[PartnerPreferences]:
    """
    Load partner preferences from JSON.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValidationError: If the content is not a list of preference objects
    """
    path = _require_file(filepath, "Preferences")
    logger.info(f"Loading partner preferences from {filepath}")
    with open(path, "r") as f:
        records = json.load(f)
    if not isinstance(records, list):
        raise ValidationError(f"Preferences JSON must be a list: {filepath}")

    preferences = []
    for record in records:
        if "user_id" not in record:
            raise ValidationError("Preference record missing user_id", context={"record": record})
        preferences.append(PartnerPreferences.from_dict(record))
    logger.info(f"Loaded preferences for {len(preferences)} users")
    return preferences


def load_signals(filepath: str, user_id: Optional[str] = None) -> Dict[str, List[InteractionSignal]]:
    """
    Load interaction signals from CSV, grouped by user in timestamp order.

    Rows missing a required value or naming an unknown reaction are logged
    and skipped. Range checks are left to the learner so that replays can
    report and skip malformed signals individually.

    Args:
        filepath: Path to the signals CSV
        user_id: Only return signals for this user

    Returns:
        Dictionary mapping user_id -> list of InteractionSignal

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValidationError: If required columns are missing
    """
    path = _require_file(filepath, "Signal")
    logger.info(f"Loading interaction signals from {filepath}")
    df = pd.read_csv(path, dtype={"user_id": str, "candidate_id": str})
    validate_columns(df, SIGNAL_COLUMNS, "Signal")

    df["timestamp"] = pd.to_datetime(df["timestamp"], errors="coerce")
    if user_id is not None:
        df = df[df["user_id"] == user_id]
    df = df.sort_values(["user_id", "timestamp"], kind="stable")

    grouped: Dict[str, List[InteractionSignal]] = {}
    skipped = 0
    for index, row in zip(df.index, df.to_dict(orient="records")):
        missing = [c for c in REQUIRED_SIGNAL_VALUES if pd.isna(row[c])]
        if missing:
            logger.warning(f"Skipping signal row {index + 1}: missing {missing}")
            skipped += 1
            continue
        try:
            signal = InteractionSignal(
                timestamp=row["timestamp"].to_pydatetime(),
                candidate_id=row["candidate_id"],
                attribute=row["attribute"],
                reaction=row["reaction"],
                attraction_force=float(row["attraction_force"]),
                repulsion_force=float(row["repulsion_force"]),
                confidence_level=float(row["confidence_level"])
            )
        except ValidationError as e:
            logger.warning(f"Skipping signal row {index + 1}: {e.message}")
            skipped += 1
            continue
        grouped.setdefault(row["user_id"], []).append(signal)

    logger.info(f"Loaded {len(df) - skipped} signals for {len(grouped)} users ({skipped} skipped)")
    return grouped
