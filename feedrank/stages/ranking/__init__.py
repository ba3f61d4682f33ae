"""
Personalized ranking: score candidates against a viewer profile and sort.

Public API: rank_candidates, score_candidates, sort_scored.
- core: batch scoring and ordering.
- personalized_scoring: per-item score terms and the eligibility check.
"""

from .core import rank_candidates, score_candidates, sort_scored
from .personalized_scoring import build_scored_item, check_eligible

__all__ = [
    "build_scored_item",
    "check_eligible",
    "rank_candidates",
    "score_candidates",
    "sort_scored",
]
