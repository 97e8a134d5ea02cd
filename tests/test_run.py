"""End-to-end tests for the command-line runner."""

import json

from soulmatch.run import main, run_matching

from conftest import CONFIG_PATH, DATA_DIR


def demo_args(user_id, *extra):
    return [
        "--config", str(CONFIG_PATH),
        "--user", user_id,
        "--profiles", str(DATA_DIR / "demo_profiles.json"),
        "--preferences", str(DATA_DIR / "demo_preferences.json"),
        *extra
    ]


def test_main_writes_artifacts(tmp_path):
    exit_code = main(demo_args("u001", "--signals", str(DATA_DIR / "demo_signals.csv"),
                               "--output-dir", str(tmp_path)))
    assert exit_code == 0
    assert (tmp_path / "report_u001.json").exists()
    assert (tmp_path / "soul_config.json").exists()

    with open(tmp_path / "ranking_u001.json") as f:
        result = json.load(f)
    assert result["success"]
    assert result["weights"]["version"] > 0
    assert "preference_discovered" in [m["type"] for m in result["milestones"]]


def test_run_without_signals():
    result = run_matching(
        str(CONFIG_PATH), "u002",
        profiles_path=str(DATA_DIR / "demo_profiles.json"),
        preferences_path=str(DATA_DIR / "demo_preferences.json"),
        signals_path=str(DATA_DIR / "missing.csv")
    )
    assert result["success"]
    assert result["milestones"] == []
    assert result["initial_ranking"] == result["final_ranking"]


def test_unknown_user_returns_failure():
    result = run_matching(
        str(CONFIG_PATH), "nobody",
        profiles_path=str(DATA_DIR / "demo_profiles.json")
    )
    assert not result["success"]
    assert main(demo_args("nobody")) == 1


def test_missing_config_returns_failure(tmp_path):
    assert main(["--config", str(tmp_path / "missing.yaml"), "--user", "u001"]) == 1
