"""
Per-candidate personalized scoring.

Builds a ScoredItem for one candidate from its counters, the viewer's profile,
and now. Every term is additive and independent.
"""

from datetime import datetime

from ...errors import DataIntegrityError
from ...models.config import FeedConfig
from ...models.content import ContentItem
from ...models.profile import PreferenceProfile
from ...models.scoring import ScoreBreakdown, ScoredItem, freshness_bonus, view_term


def check_eligible(item: ContentItem, now: datetime) -> None:
    """Raise DataIntegrityError if an item that failed eligibility reached scoring."""
    if not item.is_eligible(now):
        raise DataIntegrityError(
            f"ineligible item reached scorer: id={item.id} status={item.status.value} "
            f"published_at={item.published_at}"
        )


def score_breakdown(
    item: ContentItem,
    profile: PreferenceProfile,
    now: datetime,
    config: FeedConfig,
) -> ScoreBreakdown:
    """
    popularity + 50 if subscribed author + 20 per followed tag + 2*ln(views+1)
    + 5 per like + 10 per bookmark + freshness.
    """
    check_eligible(item, now)
    subscribed = item.author_id in profile.subscribed_creators
    matched_tags = len(item.tags & profile.followed_topics)
    return ScoreBreakdown(
        base_popularity=item.popularity_score,
        subscription=config.subscription_bonus if subscribed else 0.0,
        tag_matches=config.tag_match_bonus * matched_tags,
        views=view_term(item.views, config.view_log_weight),
        likes=config.like_weight * item.like_count,
        bookmarks=config.bookmark_weight * item.bookmark_count,
        freshness=freshness_bonus(item.published_at, now, config),
    )


def build_scored_item(
    item: ContentItem,
    profile: PreferenceProfile,
    now: datetime,
    config: FeedConfig,
) -> ScoredItem:
    breakdown = score_breakdown(item, profile, now, config)
    return ScoredItem(
        item=item,
        personalized_score=breakdown.total(),
        breakdown=breakdown,
    )
