"""
Command-line runner for the matching core.

Usage:
    python -m soulmatch.run --config configs/config.yaml --user u001
    soulmatch --user u001 --signals data/demo_signals.csv --output-dir artifacts

The runner performs the following steps:
1. Load and validate configuration
2. Load profiles, partner preferences and (optionally) interaction signals
3. Rank candidates for the user
4. Replay the user's interaction signals through the learner and re-rank
5. Build an evaluation report and write artifacts
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def setup_logging(log_level: str) -> None:
    """Configure logging level from config."""
    level = getattr(logging, log_level.upper(), logging.INFO)
    logging.getLogger().setLevel(level)


def _banner(title: str) -> None:
    logger.info("=" * 60)
    logger.info(title)
    logger.info("=" * 60)


def run_matching(
    config_path: str,
    user_id: str,
    profiles_path: Optional[str] = None,
    preferences_path: Optional[str] = None,
    signals_path: Optional[str] = None,
    output_dir: Optional[str] = None,
    session_size: Optional[int] = None
) -> Dict[str, Any]:
    """
    Rank, learn from signals and re-rank for one user.

    Args:
        config_path: Path to the configuration YAML file
        user_id: User to rank for
        profiles_path: Profiles file (overrides data.profiles)
        preferences_path: Preferences file (overrides data.preferences)
        signals_path: Signals CSV (overrides data.signals)
        output_dir: If provided, write the report and rankings here
        session_size: Start a new learner session after this many signals

    Returns:
        Dictionary with rankings, milestones and the evaluation report
    """
    from .configs import load_config, get_config_value, validate_config, SoulConfig
    from .data_loading import load_profiles, load_preferences, load_signals
    from .evaluation import create_evaluation_report
    from .learning import replay_signals
    from .profiles import InMemoryProfileStore
    from .service import MatchmakingService

    # =========================================================================
    # 1. Load and validate configuration
    # =========================================================================
    _banner("SOUL MATCHING CORE")

    config = load_config(config_path)
    for issue in validate_config(config):
        logger.warning(f"Config issue: {issue}")
    soul_config = SoulConfig.from_config(config)
    soul_config.validate()
    setup_logging(soul_config.log_level)

    profiles_path = profiles_path or get_config_value(config, "data.profiles")
    preferences_path = preferences_path or get_config_value(config, "data.preferences")
    signals_path = signals_path or get_config_value(config, "data.signals")
    if not profiles_path:
        raise ValueError("No profiles file given (--profiles or data.profiles)")

    # =========================================================================
    # 2. Load data
    # =========================================================================
    _banner("STEP 1: Loading Data")
    profiles = load_profiles(profiles_path)
    preferences = []
    if preferences_path and Path(preferences_path).exists():
        preferences = load_preferences(preferences_path)
    elif preferences_path:
        logger.warning(f"Preferences file not found, ranking without constraints: {preferences_path}")

    store = InMemoryProfileStore(profiles, preferences)
    service = MatchmakingService(store, config=soul_config)

    # =========================================================================
    # 3. Initial ranking
    # =========================================================================
    _banner("STEP 2: Ranking Candidates")
    initial = service.rank_candidates(user_id)
    if initial.failed:
        logger.error(f"Ranking failed: {initial.error}")
        return {"success": False, "error": initial.error}
    _log_ranking(initial.to_dict())

    # =========================================================================
    # 4. Learn from interaction signals
    # =========================================================================
    milestones: List[Dict[str, Any]] = []
    final = initial
    if signals_path and Path(signals_path).exists():
        _banner("STEP 3: Learning From Interactions")
        signals = load_signals(signals_path, user_id=user_id).get(user_id, [])
        outcomes = replay_signals(service.learner, user_id, signals,
                                  new_session_every=session_size or soul_config.learning.max_interactions_per_session)
        service.start_session(user_id)
        milestones = [m.to_dict() for m in service.drain_milestones()]
        logger.info(f"Applied {sum(o.applied for o in outcomes)} signal(s), {len(milestones)} milestone(s)")

        final = service.rank_candidates(user_id)
        _log_ranking(final.to_dict())
    elif signals_path:
        logger.warning(f"Signals file not found, skipping learning: {signals_path}")

    # =========================================================================
    # 5. Evaluation and artifacts
    # =========================================================================
    _banner("STEP 4: Evaluation")
    report = create_evaluation_report(
        user_id,
        final.matches,
        previous_ranking=initial.candidate_ids() if final is not initial else None,
        weights=service.weights(user_id),
        confidence_threshold=soul_config.learning.confidence_threshold
    )
    for line in report.summary().split("\n"):
        logger.info(line)

    result = {
        "success": True,
        "user_id": user_id,
        "initial_ranking": initial.to_dict(),
        "final_ranking": final.to_dict(),
        "weights": service.weights(user_id).to_dict(),
        "milestones": milestones,
        "report": report.to_dict()
    }

    if output_dir:
        out = Path(output_dir)
        out.mkdir(parents=True, exist_ok=True)
        report.save(str(out / f"report_{user_id}.json"))
        with open(out / f"ranking_{user_id}.json", "w") as f:
            json.dump(result, f, indent=2, default=str)
        soul_config.save(str(out / "soul_config.json"))
        logger.info(f"Artifacts written to {out}")

    return result


def _log_ranking(ranking: Dict[str, Any]) -> None:
    for match in ranking["matches"]:
        logger.info(f"  #{match['rank']} {match['candidate_id']}: {match['final_score']:.3f} "
                    f"({match['percentage']}%)")
    if not ranking["matches"]:
        logger.info("  No matches above the compatibility threshold")


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the runner."""
    parser = argparse.ArgumentParser(
        description="Rank candidates and learn preference weights for one user"
    )
    parser.add_argument(
        "--config",
        type=str,
        default="configs/config.yaml",
        help="Path to configuration file"
    )
    parser.add_argument("--user", type=str, required=True, help="User id to rank for")
    parser.add_argument("--profiles", type=str, default=None, help="Profiles file (JSON or CSV)")
    parser.add_argument("--preferences", type=str, default=None, help="Partner preferences JSON")
    parser.add_argument("--signals", type=str, default=None, help="Interaction signals CSV to replay")
    parser.add_argument("--session-size", type=int, default=None,
                        help="Signals per learner session during replay")
    parser.add_argument(
        "--output-dir",
        type=str,
        default=None,
        help="Output directory for the report and rankings"
    )

    args = parser.parse_args(argv)

    try:
        result = run_matching(
            args.config,
            args.user,
            profiles_path=args.profiles,
            preferences_path=args.preferences,
            signals_path=args.signals,
            output_dir=args.output_dir,
            session_size=args.session_size
        )
        if result["success"]:
            logger.info("Matching completed successfully!")
            return 0
        logger.error("Matching failed!")
        return 1
    except Exception as e:
        logger.exception(f"Matching failed with error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
