"""Opportunity scoring of candidate keywords."""

from bidding.scoring.scorer import (
    OpportunityScorer,
    ScoringStats,
    ScoringTarget,
    build_attribution,
    compute_score,
)

__all__ = [
    "OpportunityScorer",
    "ScoringStats",
    "ScoringTarget",
    "build_attribution",
    "compute_score",
]
