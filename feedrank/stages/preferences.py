"""
Viewer preference aggregation.

Reads the viewer's active subscriptions, topic follows, and most recent bookmarks,
and derives favorite topics (bookmark tag frequency) and preferred reading time.
Anonymous viewers get the empty profile without touching the store.

Store failures propagate as RetrievalError: a known viewer whose preferences cannot
be read must not be served an anonymous feed.
"""

import logging
from collections import Counter
from datetime import datetime
from typing import List, Optional

from ..errors import RetrievalError
from ..models.config import DEFAULT_CONFIG, FeedConfig
from ..models.profile import ComputedTopics, FavoriteTopics, NoHistory, PreferenceProfile
from ..models.relations import BookmarkSample
from ..store import ContentStore

logger = logging.getLogger(__name__)


def extract_favorite_topics(
    samples: List[BookmarkSample],
    limit: int = DEFAULT_CONFIG.favorite_topics_limit,
) -> FavoriteTopics:
    """
    Rank tags by how often they occur across bookmarked items.

    Ties keep first-seen order (Counter preserves insertion order and sorted is stable).
    No samples -> NoHistory; samples whose items carry no tags -> ComputedTopics(()).
    """
    if not samples:
        return NoHistory()
    counts: Counter = Counter()
    for sample in samples:
        counts.update(sample.item_tags)
    ranked = sorted(counts.items(), key=lambda kv: kv[1], reverse=True)
    return ComputedTopics(topics=tuple(tag for tag, _ in ranked[:limit]))


def preferred_reading_time(
    samples: List[BookmarkSample],
    default: float = DEFAULT_CONFIG.default_reading_time,
) -> float:
    """Mean reading time over the sample, or default when there is no sample."""
    if not samples:
        return default
    return sum(s.item_reading_time for s in samples) / len(samples)


async def aggregate_preferences(
    store: ContentStore,
    viewer_id: Optional[str],
    now: datetime,
    config: FeedConfig = DEFAULT_CONFIG,
    bookmark_limit: Optional[int] = None,
) -> PreferenceProfile:
    """Build the PreferenceProfile for viewer_id (empty profile when viewer_id is None)."""
    if viewer_id is None:
        return PreferenceProfile.anonymous(config.default_reading_time)

    limit = bookmark_limit if bookmark_limit is not None else config.bookmark_sample_size
    try:
        creators = await store.find_active_subscription_creator_ids(viewer_id, now)
        topics = await store.find_followed_topic_ids(viewer_id)
        samples = await store.find_recent_bookmarks(viewer_id, limit)
    except RetrievalError:
        logger.error("[preferences] READ_FAILED viewer_id=%s", viewer_id)
        raise

    profile = PreferenceProfile(
        viewer_id=viewer_id,
        subscribed_creators=frozenset(creators),
        followed_topics=frozenset(topics),
        bookmarked_items=tuple(s.item_id for s in samples),
        favorite_topics=extract_favorite_topics(samples, config.favorite_topics_limit),
        preferred_reading_time=preferred_reading_time(samples, config.default_reading_time),
    )
    logger.debug(
        "[preferences] viewer_id=%s creators=%d topics=%d bookmarks=%d",
        viewer_id, len(creators), len(topics), len(samples),
    )
    return profile
