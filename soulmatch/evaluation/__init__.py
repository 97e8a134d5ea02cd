"""Evaluation metrics for rankings and learned weights."""

from .metrics import (
    ScoreDistributionStats,
    RankingStability,
    RankingInsights,
    LearningReadiness,
    EvaluationReport,
    compute_score_distribution_stats,
    compute_ranking_stability,
    summarize_ranking,
    summarize_learning,
    create_evaluation_report,
)

__all__ = [
    "ScoreDistributionStats",
    "RankingStability",
    "RankingInsights",
    "LearningReadiness",
    "EvaluationReport",
    "compute_score_distribution_stats",
    "compute_ranking_stability",
    "summarize_ranking",
    "summarize_learning",
    "create_evaluation_report",
]
