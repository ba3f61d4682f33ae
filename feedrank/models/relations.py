"""
Viewer relationships read by the preference aggregator: subscriptions, topic follows, bookmarks.

These are owned by other collaborators; the feed engine only reads them.
"""

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, NonNegativeInt

from ..utils.time import UtcDatetime, ensure_utc


class SubscriptionStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


class Subscription(BaseModel):
    """Directed subscriber -> creator relationship. One per (subscriber, creator)."""

    model_config = ConfigDict(extra="allow")

    subscriber_id: str
    creator_id: str
    status: SubscriptionStatus = SubscriptionStatus.PENDING
    start_date: Optional[UtcDatetime] = None
    end_date: Optional[UtcDatetime] = None

    def is_current(self, now: datetime) -> bool:
        """Active and, when an end date exists, not yet ended."""
        if self.status != SubscriptionStatus.ACTIVE:
            return False
        if self.end_date is not None and self.end_date <= ensure_utc(now):
            return False
        return True


class TopicFollow(BaseModel):
    """Viewer -> topic follow. Notification preferences are carried but unused by ranking."""

    model_config = ConfigDict(extra="allow")

    user_id: str
    topic_id: str
    notifications: Dict[str, bool] = {}
    created_at: Optional[UtcDatetime] = None


class Bookmark(BaseModel):
    """Viewer -> item bookmark, used only as an interest signal."""

    model_config = ConfigDict(extra="allow")

    user_id: str
    item_id: str
    note: str = ""
    tags: List[str] = []
    created_at: Optional[UtcDatetime] = None


class BookmarkSample(BaseModel):
    """One sampled bookmark joined with the bookmarked item's tags and reading time."""

    item_id: str
    item_tags: List[str] = []
    item_reading_time: NonNegativeInt = 0


__all__ = [
    "Bookmark",
    "BookmarkSample",
    "Subscription",
    "SubscriptionStatus",
    "TopicFollow",
]

