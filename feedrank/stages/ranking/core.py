"""
Main ranking orchestration: score every candidate, then sort.

Pure transform over an in-memory batch; no I/O. Ties on score go to the newer item.
"""

import logging
from datetime import datetime
from typing import List

from ...models.config import DEFAULT_CONFIG, FeedConfig
from ...models.content import ContentItem
from ...models.profile import PreferenceProfile
from ...models.scoring import ScoredItem
from .personalized_scoring import build_scored_item

logger = logging.getLogger(__name__)


def sort_scored(scored: List[ScoredItem]) -> List[ScoredItem]:
    """Descending by personalized_score, then published_at descending."""
    return sorted(
        scored,
        key=lambda s: (s.personalized_score, s.item.published_at),
        reverse=True,
    )


def score_candidates(
    candidates: List[ContentItem],
    profile: PreferenceProfile,
    now: datetime,
    config: FeedConfig = DEFAULT_CONFIG,
) -> List[ScoredItem]:
    """Annotate each candidate with its personalized score (input order preserved)."""
    return [build_scored_item(item, profile, now, config) for item in candidates]


def rank_candidates(
    candidates: List[ContentItem],
    profile: PreferenceProfile,
    now: datetime,
    config: FeedConfig = DEFAULT_CONFIG,
) -> List[ScoredItem]:
    """Score then sort candidates for one viewer."""
    ranked = sort_scored(score_candidates(candidates, profile, now, config))
    if ranked:
        logger.debug(
            "[ranking] viewer_id=%s candidates=%d top_score=%.3f",
            profile.viewer_id, len(ranked), ranked[0].personalized_score,
        )
    return ranked
