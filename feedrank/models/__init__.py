"""Data models for the feed engine."""

from .config import DEFAULT_CONFIG, FeedConfig, resolve_config
from .content import (
    Author,
    ContentItem,
    ItemSnapshot,
    LifecycleStatus,
    Visibility,
    snapshot_of,
)
from .feed import FeedMode, FeedPage, FeedState, PageRequest, SortField, SortOrder, TimeRange
from .profile import ComputedTopics, NoHistory, PreferenceProfile
from .relations import Bookmark, BookmarkSample, Subscription, SubscriptionStatus, TopicFollow
from .scoring import ScoreBreakdown, ScoredItem

__all__ = [
    "DEFAULT_CONFIG",
    "Author",
    "Bookmark",
    "BookmarkSample",
    "ComputedTopics",
    "ContentItem",
    "FeedConfig",
    "FeedMode",
    "FeedPage",
    "FeedState",
    "ItemSnapshot",
    "LifecycleStatus",
    "NoHistory",
    "PageRequest",
    "PreferenceProfile",
    "ScoreBreakdown",
    "ScoredItem",
    "SortField",
    "SortOrder",
    "Subscription",
    "SubscriptionStatus",
    "TimeRange",
    "TopicFollow",
    "Visibility",
    "resolve_config",
    "snapshot_of",
]
