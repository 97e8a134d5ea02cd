"""Tests for ranking and learning evaluation metrics."""

import json

import numpy as np
import pytest

from soulmatch.evaluation import (
    compute_ranking_stability,
    compute_score_distribution_stats,
    create_evaluation_report,
    summarize_learning,
    summarize_ranking,
)
from soulmatch.learning import PreferenceWeightVector


class TestScoreDistribution:

    def test_basic_stats(self):
        stats = compute_score_distribution_stats(np.array([0.2, 0.4, 0.6, 0.8]))
        assert stats.mean == pytest.approx(0.5)
        assert stats.min == 0.2
        assert stats.max == 0.8
        assert stats.quantiles["p50"] == pytest.approx(0.5)
        assert set(stats.quantiles) == {"p10", "p25", "p50", "p75", "p90"}

    def test_empty_rejected(self):
        with pytest.raises(ValueError):
            compute_score_distribution_stats(np.array([]))


class TestRankingStability:

    def test_identical(self):
        stability = compute_ranking_stability(["a", "b", "c"], ["a", "b", "c"])
        assert stability.spearman == pytest.approx(1.0)
        assert stability.top_k_jaccard == 1.0
        assert stability.n_common == 3

    def test_reversed(self):
        stability = compute_ranking_stability(["a", "b", "c"], ["c", "b", "a"])
        assert stability.spearman == pytest.approx(-1.0)

    def test_disjoint(self):
        stability = compute_ranking_stability(["a", "b"], ["c", "d"])
        assert stability.n_common == 0
        assert stability.spearman == 1.0
        assert stability.top_k_jaccard == 0.0

    def test_top_k_window(self):
        stability = compute_ranking_stability(["a", "b", "c", "d"], ["a", "c", "b", "d"], top_k=2)
        assert stability.top_k_jaccard == pytest.approx(1 / 3)

    def test_both_empty(self):
        assert compute_ranking_stability([], []).top_k_jaccard == 1.0


class TestSummaries:

    def test_empty_ranking(self):
        insights = summarize_ranking([])
        assert insights.n_matches == 0
        assert insights.facts_vs_personality_balance == 0.5
        assert insights.recommendations

    def test_demo_ranking(self, demo_service):
        result = demo_service.rank_candidates("u001")
        insights = summarize_ranking(result.matches)
        assert insights.n_matches == len(result)
        assert 0.0 < insights.personality_diversity <= 1.0
        assert 0.0 <= insights.facts_vs_personality_balance <= 1.0
        assert sum(insights.quality_distribution.values()) == len(result)

    def test_learning_without_history(self):
        readiness = summarize_learning(PreferenceWeightVector.empty("alice"))
        assert readiness.learned_factors == 0
        assert not readiness.personalized

    def test_learning_at_starting_confidence_not_personalized(self, learner, signal_factory):
        learner.record_interaction("alice", signal_factory("values", attraction=0.5, confidence=0.0))
        readiness = summarize_learning(learner.store.snapshot("alice"), confidence_threshold=0.3)
        assert readiness.learned_factors == 1
        assert readiness.mean_confidence == 0.3
        assert not readiness.personalized

    def test_learning_with_history(self, learner, signal_factory):
        for i in range(3):
            learner.record_interaction("alice", signal_factory("values", attraction=0.1, offset=i))
        readiness = summarize_learning(learner.store.snapshot("alice"), confidence_threshold=0.3)
        assert readiness.learned_factors == 1
        assert readiness.interactions == 3
        assert readiness.stabilized_share == 1.0
        assert readiness.personalized


class TestReport:

    def test_report_round_trip(self, demo_service, tmp_path):
        before = demo_service.rank_candidates("u001")
        after = demo_service.rank_candidates("u001")
        report = create_evaluation_report(
            "u001", after.matches,
            previous_ranking=before.candidate_ids(),
            weights=demo_service.weights("u001")
        )
        assert report.stability.spearman == pytest.approx(1.0)
        assert "Ranking Report: u001" in report.summary()

        path = tmp_path / "report.json"
        report.save(str(path))
        with open(path) as f:
            saved = json.load(f)
        assert saved["user_id"] == "u001"
        assert "stability" in saved

    def test_report_without_matches(self):
        report = create_evaluation_report("u001", [])
        assert report.distribution_stats is None
        assert report.to_dict()["distribution_stats"] is None
