"""
Scoring model — ScoredItem and the score helpers used by the ranking stages.

Contains:
- ScoredItem: an item with its personalized score and per-term breakdown
- freshness_bonus, engagement terms: used by stages/ranking
- popularity_score: used by stages/popularity
"""

import math
from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from ..utils.time import age_days
from .config import DEFAULT_CONFIG, FeedConfig
from .content import ContentItem, ItemSnapshot


def freshness_bonus(
    published_at: datetime,
    now: datetime,
    config: FeedConfig = DEFAULT_CONFIG,
) -> float:
    """Step-then-linear freshness bonus. The 1-day boundary is exclusive."""
    age = age_days(published_at, now)
    if age < config.fresh_bonus_days:
        return config.fresh_bonus
    if age < config.recent_bonus_days:
        return max(0.0, config.recent_bonus_base - config.recent_bonus_slope * age)
    return 0.0


def view_term(views: int, weight: float = 2.0) -> float:
    """weight * ln(views + 1); zero views contributes nothing."""
    return weight * math.log(views + 1)


def popularity_score(
    snapshot: ItemSnapshot,
    now: datetime,
    config: FeedConfig = DEFAULT_CONFIG,
) -> float:
    """
    Viewer-independent popularity: weighted engagement with exponential time decay.

    Items without a publish date have no age to decay from and score 0. Scheduled
    items (published_at in the future) are not decayed until they go live.
    """
    if snapshot.published_at is None:
        return 0.0
    raw = (
        config.popularity_view_weight * snapshot.views
        + config.popularity_like_weight * snapshot.like_count
        + config.popularity_bookmark_weight * snapshot.bookmark_count
        + config.popularity_comment_weight * snapshot.comment_count
    )
    age = max(0.0, age_days(snapshot.published_at, now))
    decay = math.exp(-age / config.popularity_decay_days)
    score = raw * decay
    if snapshot.author_is_creator:
        score *= config.creator_multiplier
    return score


class ScoreBreakdown(BaseModel):
    """Individual additive terms of a personalized score."""

    base_popularity: float = 0.0
    subscription: float = 0.0
    tag_matches: float = 0.0
    views: float = 0.0
    likes: float = 0.0
    bookmarks: float = 0.0
    freshness: float = 0.0

    def total(self) -> float:
        # Summed in the documented term order so results are reproducible.
        return (
            self.base_popularity
            + self.subscription
            + self.tag_matches
            + self.views
            + self.likes
            + self.bookmarks
            + self.freshness
        )


class ScoredItem(BaseModel):
    """An item with its personalized score."""

    item: ContentItem
    personalized_score: float
    breakdown: Optional[ScoreBreakdown] = None
