"""
Evaluation metrics for rankings and learned weights.

There is no ground truth for compatibility, so evaluation focuses on:
1. Score distribution analysis
2. Ranking stability (how much a ranking moves after learning)
3. Ranking system insights (quality mix, diversity, facts vs personality)
4. Learning readiness (how settled a user's weights are)

This module DOES NOT claim real-world predictive accuracy.
"""

import json
import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

import numpy as np
from scipy.stats import spearmanr

from ..insights.generator import describe_quality
from ..learning.weights import PreferenceWeightVector
from ..ranking.ranker import MatchResult

logger = logging.getLogger(__name__)


@dataclass
class ScoreDistributionStats:
    """Statistics about score distribution."""
    mean: float
    std: float
    min: float
    max: float
    quantiles: Dict[str, float]  # e.g., {"p10": 0.2, "p50": 0.5, "p90": 0.8}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mean": float(self.mean),
            "std": float(self.std),
            "min": float(self.min),
            "max": float(self.max),
            "quantiles": {k: float(v) for k, v in self.quantiles.items()}
        }


@dataclass
class RankingStability:
    """How much a ranking changed between two runs."""
    n_common: int
    spearman: float
    top_k: int
    top_k_jaccard: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "n_common": int(self.n_common),
            "spearman": float(self.spearman),
            "top_k": int(self.top_k),
            "top_k_jaccard": float(self.top_k_jaccard)
        }


@dataclass
class RankingInsights:
    """System-level view of one ranking."""
    n_matches: int
    average_compatibility: float
    quality_distribution: Dict[str, int]
    personality_diversity: float
    facts_vs_personality_balance: float
    recommendations: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "n_matches": int(self.n_matches),
            "average_compatibility": float(self.average_compatibility),
            "quality_distribution": dict(self.quality_distribution),
            "personality_diversity": float(self.personality_diversity),
            "facts_vs_personality_balance": float(self.facts_vs_personality_balance),
            "recommendations": list(self.recommendations)
        }


@dataclass
class LearningReadiness:
    """Summary of one user's learning state."""
    user_id: str
    learned_factors: int
    interactions: int
    stabilized_share: float
    mean_confidence: float
    personalized: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "learned_factors": int(self.learned_factors),
            "interactions": int(self.interactions),
            "stabilized_share": float(self.stabilized_share),
            "mean_confidence": float(self.mean_confidence),
            "personalized": bool(self.personalized)
        }


@dataclass
class EvaluationReport:
    """
    Evaluation report for one user's ranking.

    Contains distribution statistics, ranking insights and, when available,
    stability and learning readiness.
    """
    user_id: str
    distribution_stats: Optional[ScoreDistributionStats]
    ranking_insights: RankingInsights
    stability: Optional[RankingStability] = None
    learning: Optional[LearningReadiness] = None

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "user_id": self.user_id,
            "distribution_stats": self.distribution_stats.to_dict() if self.distribution_stats else None,
            "ranking_insights": self.ranking_insights.to_dict()
        }
        if self.stability:
            result["stability"] = self.stability.to_dict()
        if self.learning:
            result["learning"] = self.learning.to_dict()
        return result

    def save(self, filepath: str) -> None:
        """Save report to JSON file."""
        with open(filepath, "w") as f:
            json.dump(self.to_dict(), f, indent=2)
        logger.info(f"Saved evaluation report to {filepath}")

    def summary(self) -> str:
        """Generate text summary of the report."""
        insights = self.ranking_insights
        lines = [
            f"Ranking Report: {self.user_id}",
            "=" * 50,
            "",
            f"Matches: {insights.n_matches}",
            f"  Average compatibility: {insights.average_compatibility:.4f}",
            f"  Personality diversity: {insights.personality_diversity:.4f}",
            f"  Facts vs personality:  {insights.facts_vs_personality_balance:.4f}",
        ]
        for label, count in insights.quality_distribution.items():
            lines.append(f"  {label}: {count}")

        if self.distribution_stats:
            lines.extend([
                "",
                "Score Distribution:",
                f"  Mean: {self.distribution_stats.mean:.4f}",
                f"  Std:  {self.distribution_stats.std:.4f}",
                f"  Min:  {self.distribution_stats.min:.4f}",
                f"  Max:  {self.distribution_stats.max:.4f}",
            ])

        if self.stability:
            lines.extend([
                "",
                f"Ranking Stability ({self.stability.n_common} common candidates):",
                f"  Spearman: {self.stability.spearman:.4f}",
                f"  Top-{self.stability.top_k} Jaccard: {self.stability.top_k_jaccard:.4f}",
            ])

        if self.learning:
            lines.extend([
                "",
                "Learning:",
                f"  Learned factors: {self.learning.learned_factors}",
                f"  Interactions: {self.learning.interactions}",
                f"  Stabilized share: {self.learning.stabilized_share:.2%}",
                f"  Mean confidence: {self.learning.mean_confidence:.4f}",
            ])

        if insights.recommendations:
            lines.extend(["", "Recommendations:"])
            lines.extend(f"  - {r}" for r in insights.recommendations)

        return "\n".join(lines)


def compute_score_distribution_stats(
    scores: np.ndarray,
    quantiles: Sequence[float] = (0.1, 0.25, 0.5, 0.75, 0.9)
) -> ScoreDistributionStats:
    """
    Compute distribution statistics for scores.

    Args:
        scores: Array of compatibility scores
        quantiles: Quantile values to compute (default: p10, p25, p50, p75, p90)

    Returns:
        ScoreDistributionStats instance

    Raises:
        ValueError: If scores is empty
    """
    scores = np.asarray(scores, dtype=float)
    if scores.size == 0:
        raise ValueError("Cannot compute distribution stats of an empty score array")

    quantile_dict = {
        f"p{int(q * 100)}": float(np.percentile(scores, q * 100))
        for q in quantiles
    }

    return ScoreDistributionStats(
        mean=float(np.mean(scores)),
        std=float(np.std(scores)),
        min=float(np.min(scores)),
        max=float(np.max(scores)),
        quantiles=quantile_dict
    )


def compute_ranking_stability(before: List[str], after: List[str], top_k: int = 10) -> RankingStability:
    """
    Compare two rankings of candidate ids.

    Args:
        before: Candidate ids in ranked order before
        after: Candidate ids in ranked order after
        top_k: Size of the head compared with Jaccard overlap

    Returns:
        RankingStability; spearman is 1.0 when fewer than 2 ids are shared
    """
    common = [c for c in before if c in set(after)]
    if len(common) >= 2:
        pos_after = {c: i for i, c in enumerate(after)}
        spearman, _ = spearmanr(list(range(len(common))), [pos_after[c] for c in common])
        spearman = float(spearman) if not np.isnan(spearman) else 1.0
    else:
        spearman = 1.0

    top_before = set(before[:top_k])
    top_after = set(after[:top_k])
    union = top_before | top_after
    jaccard = len(top_before & top_after) / len(union) if union else 1.0

    return RankingStability(n_common=len(common), spearman=spearman, top_k=top_k, top_k_jaccard=jaccard)


def summarize_ranking(matches: List[MatchResult]) -> RankingInsights:
    """
    System-level insights for a list of ranked matches.

    personality_diversity is the share of distinct personality types among
    the matches; facts_vs_personality_balance is mean factual sub-score /
    (mean factual + mean personality sub-score), so 0.5 means balanced.
    """
    if not matches:
        return RankingInsights(
            n_matches=0,
            average_compatibility=0.0,
            quality_distribution={},
            personality_diversity=0.0,
            facts_vs_personality_balance=0.5,
            recommendations=["No matches yet; consider widening your preferences"]
        )

    totals = np.array([m.compatibility.total_score for m in matches])
    quality = Counter(describe_quality(t).label for t in totals)

    types = {"".join(m.candidate.personality.get(axis, "?") for axis in sorted(m.candidate.personality))
             for m in matches}
    diversity = len(types) / len(matches)

    hhc = np.mean([m.compatibility.hhc_score or 0.0 for m in matches])
    factual = np.mean([m.compatibility.factual_score or 0.0 for m in matches])
    balance = float(factual / (hhc + factual)) if hhc + factual > 0 else 0.5

    recommendations = []
    average = float(np.mean(totals))
    if average < 0.6:
        recommendations.append("Average compatibility is low; review veto criteria and soft preferences")
    if diversity < 0.3 and len(matches) >= 3:
        recommendations.append("Matches share very similar personalities; consider a higher diversity bonus")
    if balance > 0.7:
        recommendations.append("Ranking leans on factual attributes; completing the personality assessment "
                               "would sharpen results")
    elif balance < 0.3:
        recommendations.append("Ranking leans on personality; adding lifestyle details would sharpen results")

    return RankingInsights(
        n_matches=len(matches),
        average_compatibility=average,
        quality_distribution=dict(sorted(quality.items())),
        personality_diversity=diversity,
        facts_vs_personality_balance=balance,
        recommendations=recommendations
    )


def summarize_learning(vector: PreferenceWeightVector, confidence_threshold: float = 0.3) -> LearningReadiness:
    """Learning readiness for one weight vector."""
    entries = list(vector.entries.values())
    if not entries:
        return LearningReadiness(vector.user_id, 0, 0, 0.0, 0.0, False)

    mean_confidence = round(float(np.mean([e.confidence for e in entries])), 6)
    return LearningReadiness(
        user_id=vector.user_id,
        learned_factors=len(entries),
        interactions=sum(e.interactions for e in entries),
        stabilized_share=sum(1 for e in entries if e.stabilized) / len(entries),
        mean_confidence=mean_confidence,
        personalized=mean_confidence > confidence_threshold
    )


def create_evaluation_report(
    user_id: str,
    matches: List[MatchResult],
    previous_ranking: Optional[List[str]] = None,
    weights: Optional[PreferenceWeightVector] = None,
    confidence_threshold: float = 0.3,
    top_k: int = 10
) -> EvaluationReport:
    """
    Create a complete evaluation report for one ranking.

    Args:
        user_id: User the ranking belongs to
        matches: Ranked matches
        previous_ranking: Earlier ranked candidate ids (for stability)
        weights: The user's weight snapshot (for learning readiness)
        confidence_threshold: Confidence to exceed to count as personalized
        top_k: Head size for stability

    Returns:
        EvaluationReport instance
    """
    dist_stats = None
    if matches:
        dist_stats = compute_score_distribution_stats(np.array([m.final_score for m in matches]))

    stability = None
    if previous_ranking is not None:
        stability = compute_ranking_stability(previous_ranking, [m.candidate.user_id for m in matches], top_k)

    learning = summarize_learning(weights, confidence_threshold) if weights is not None else None

    return EvaluationReport(
        user_id=user_id,
        distribution_stats=dist_stats,
        ranking_insights=summarize_ranking(matches),
        stability=stability,
        learning=learning
    )
