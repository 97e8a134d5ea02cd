"""
Smoke test for data loading, scoring, learning and ranking.

This script validates that:
1. Demo profiles, preferences and signals load correctly
2. Every stored pair can be scored without runtime errors
3. Replaying the demo signals changes the learned weights
4. Ranking returns a well-formed, ordered result

Usage:
    python scripts/smoke_test.py
"""

import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import logging
import numpy as np

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def run_smoke_test():
    """Run smoke tests on the matching core with the demo data."""

    logger.info("=" * 60)
    logger.info("SMOKE TEST: Matching Core")
    logger.info("=" * 60)

    from soulmatch.configs import load_config, SoulConfig
    from soulmatch.data_loading import load_profiles, load_preferences, load_signals
    from soulmatch.errors import SoulError
    from soulmatch.learning import replay_signals
    from soulmatch.profiles import InMemoryProfileStore
    from soulmatch.service import MatchmakingService

    config_path = project_root / "configs" / "config.yaml"
    logger.info(f"Loading config from {config_path}")
    config = load_config(str(config_path))
    soul_config = SoulConfig.from_config(config)

    results = {"loading": {}, "scoring": {}, "learning": {}, "ranking": {}}

    # =========================================================================
    # Test data loading
    # =========================================================================
    logger.info("=" * 60)
    logger.info("TEST 1: Data Loading")
    logger.info("=" * 60)

    try:
        profiles = load_profiles(str(project_root / config["data"]["profiles"]))
        preferences = load_preferences(str(project_root / config["data"]["preferences"]))
        signals = load_signals(str(project_root / config["data"]["signals"]))
        logger.info(f"  Profiles: {len(profiles)}")
        logger.info(f"  Preferences: {len(preferences)}")
        logger.info(f"  Signals: {sum(len(s) for s in signals.values())} for {len(signals)} users")
        results["loading"]["status"] = "PASSED"
    except (SoulError, OSError, ValueError) as e:
        logger.error(f"  LOADING FAILED: {e}")
        results["loading"]["status"] = f"FAILED - {e}"
        return _summarize(results)

    store = InMemoryProfileStore(profiles, preferences)
    service = MatchmakingService(store, config=soul_config)

    # =========================================================================
    # Test scoring every pair
    # =========================================================================
    logger.info("=" * 60)
    logger.info("TEST 2: Pairwise Scoring")
    logger.info("=" * 60)

    try:
        totals = []
        vetoed = 0
        for a in profiles:
            for b in profiles:
                if a.user_id == b.user_id:
                    continue
                score = service.score_users(a.user_id, b.user_id)
                if not 0.0 <= score.total_score <= 1.0:
                    raise ValueError(f"Score out of bounds for {a.user_id}/{b.user_id}: {score.total_score}")
                vetoed += int(score.veto_violated)
                totals.append(score.total_score)
        totals = np.array(totals)
        logger.info(f"  Pairs scored: {len(totals)} ({vetoed} vetoed)")
        logger.info(f"  Score range: [{totals.min():.3f}, {totals.max():.3f}], mean {totals.mean():.3f}")
        results["scoring"]["status"] = "PASSED"
    except (SoulError, ValueError) as e:
        logger.error(f"  SCORING FAILED: {e}")
        results["scoring"]["status"] = f"FAILED - {e}"

    # =========================================================================
    # Test learning
    # =========================================================================
    logger.info("=" * 60)
    logger.info("TEST 3: Learning From Signals")
    logger.info("=" * 60)

    try:
        for user_id, user_signals in signals.items():
            before = service.weights(user_id).weights()
            replay_signals(service.learner, user_id, user_signals)
            after = service.weights(user_id).weights()
            changed = sorted(k for k in after if after[k] != before.get(k))
            logger.info(f"  {user_id}: {len(user_signals)} signals, changed {changed}")
            if not changed:
                raise ValueError(f"No weights changed for {user_id}")
        milestones = service.drain_milestones()
        logger.info(f"  Milestones: {[m.type.value for m in milestones]}")
        results["learning"]["status"] = "PASSED"
    except (SoulError, ValueError) as e:
        logger.error(f"  LEARNING FAILED: {e}")
        results["learning"]["status"] = f"FAILED - {e}"

    # =========================================================================
    # Test ranking
    # =========================================================================
    logger.info("=" * 60)
    logger.info("TEST 4: Ranking")
    logger.info("=" * 60)

    try:
        ranking = service.rank_candidates("u001")
        if ranking.failed:
            raise ValueError(ranking.error)
        finals = [m.final_score for m in ranking.matches]
        if finals != sorted(finals, reverse=True):
            raise ValueError("Ranking is not ordered by final score")
        for match in ranking.matches:
            logger.info(f"  #{match.rank} {match.candidate.user_id}: {match.final_score:.3f}")
            for line in match.insights[:2]:
                logger.info(f"      {line}")
        results["ranking"]["status"] = "PASSED"
    except (SoulError, ValueError) as e:
        logger.error(f"  RANKING FAILED: {e}")
        results["ranking"]["status"] = f"FAILED - {e}"

    return _summarize(results)


def _summarize(results):
    logger.info("=" * 60)
    logger.info("SMOKE TEST SUMMARY")
    logger.info("=" * 60)

    all_passed = True
    for stage, result in results.items():
        status = result.get("status", "NOT RUN")
        logger.info(f"  {stage.upper()}: {status}")
        if status != "PASSED":
            all_passed = False

    if all_passed:
        logger.info("  ALL TESTS PASSED")
        return 0
    else:
        logger.error("  SOME TESTS FAILED")
        return 1


if __name__ == "__main__":
    sys.exit(run_smoke_test())
