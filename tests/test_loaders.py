"""Tests for profile, preference and signal loading."""

import json
import logging

import pytest

from soulmatch.data_loading import load_preferences, load_profiles, load_signals
from soulmatch.errors import ValidationError
from soulmatch.profiles import Reaction

from conftest import DATA_DIR

SIGNAL_HEADER = ("user_id,timestamp,candidate_id,attribute,reaction,"
                 "attraction_force,repulsion_force,confidence_level\n")


def test_demo_profiles(demo_profiles):
    assert len(demo_profiles) == 8
    first = demo_profiles[0]
    assert first.user_id == "u001"
    assert first.personality["energy"] == "I"
    assert "jazz" in first.facts.interests
    assert first.location.city == "Berlin"


def test_demo_preferences(demo_preferences):
    by_user = {p.user_id: p for p in demo_preferences}
    assert by_user["u001"].veto.non_smoker_only
    assert by_user["u001"].desired_age_range == (27, 40)
    assert by_user["u002"].veto.must_want_children


def test_profiles_from_csv(tmp_path):
    path = tmp_path / "profiles.csv"
    path.write_text(
        "user_id,age,energy,decisions,interests,virtue_kindness,smoking,latitude,longitude,city\n"
        "p1,31,I,F,hiking;Jazz,0.9,never,52.52,13.405,Berlin\n"
        "p2,,E,,chess,,,,,\n"
    )
    profiles = load_profiles(str(path))
    assert [p.user_id for p in profiles] == ["p1", "p2"]

    p1, p2 = profiles
    assert p1.facts.age == 31
    assert p1.facts.interests == frozenset({"hiking", "jazz"})
    assert p1.virtues == {"kindness": 0.9}
    assert p1.personality == {"energy": "I", "decisions": "F"}
    assert p1.location.city == "Berlin"

    assert p2.facts.age is None
    assert p2.facts.smoking is None
    assert p2.location is None
    assert p2.virtues == {}


def test_profile_json_must_be_list(tmp_path):
    path = tmp_path / "profiles.json"
    path.write_text(json.dumps({"user_id": "u1"}))
    with pytest.raises(ValidationError):
        load_profiles(str(path))


def test_missing_profile_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_profiles(str(tmp_path / "nope.json"))


def test_preference_record_needs_user(tmp_path):
    path = tmp_path / "prefs.json"
    path.write_text(json.dumps([{"veto": {}}]))
    with pytest.raises(ValidationError):
        load_preferences(str(path))


def test_demo_signals_grouped_and_ordered():
    signals = load_signals(str(DATA_DIR / "demo_signals.csv"))
    assert set(signals) == {"u001", "u002"}
    assert len(signals["u001"]) == 8
    timestamps = [s.timestamp for s in signals["u001"]]
    assert timestamps == sorted(timestamps)
    assert signals["u001"][0].reaction == Reaction.POSITIVE
    assert signals["u001"][0].attraction_force == pytest.approx(0.8)


def test_signals_for_one_user():
    signals = load_signals(str(DATA_DIR / "demo_signals.csv"), user_id="u002")
    assert list(signals) == ["u002"]


def test_signals_sorted_by_time(tmp_path):
    path = tmp_path / "signals.csv"
    path.write_text(
        SIGNAL_HEADER
        + "u1,2024-03-02T10:00:00,c2,values,negative,0,0.5,1\n"
        + "u1,2024-03-01T10:00:00,c1,interests,positive,0.7,0,0.9\n"
    )
    signals = load_signals(str(path))["u1"]
    assert [s.candidate_id for s in signals] == ["c1", "c2"]


def test_signal_columns_required(tmp_path):
    path = tmp_path / "signals.csv"
    path.write_text("user_id,timestamp,candidate_id\nu1,2024-03-01T10:00:00,c1\n")
    with pytest.raises(ValidationError):
        load_signals(str(path))


def test_malformed_signal_rows_skipped(tmp_path, caplog):
    path = tmp_path / "signals.csv"
    path.write_text(
        SIGNAL_HEADER
        + "u1,2024-03-01T10:00:00,c1,interests,positive,0.7,0,0.9\n"
        + "u1,2024-03-01T11:00:00,c2,values,,0,0.5,1\n"
        + "u1,2024-03-01T12:00:00,c3,values,ecstatic,0.5,0,1\n"
        + "u1,not-a-time,c4,values,positive,0.5,0,1\n"
        + "u1,2024-03-01T13:00:00,c5,age,negative,0,0.4,1\n"
    )
    with caplog.at_level(logging.WARNING, logger="soulmatch.data_loading.loaders"):
        signals = load_signals(str(path))["u1"]
    assert [s.candidate_id for s in signals] == ["c1", "c5"]
    assert sum("Skipping signal row" in r.message for r in caplog.records) == 3
