"""
ContentItem model — typed representation of a post for the feed pipeline.

Store adapters build items via ContentItem.model_validate(d) once, at the store
boundary, so the stages can rely on non-null, non-negative counters.
"""

from datetime import datetime
from enum import Enum
from typing import FrozenSet, Optional

from pydantic import BaseModel, ConfigDict, NonNegativeInt

from ..utils.time import UtcDatetime, ensure_utc


class Visibility(str, Enum):
    PUBLIC = "public"
    SUBSCRIBERS = "subscribers"
    PRIVATE = "private"


class LifecycleStatus(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class ContentItem(BaseModel):
    """
    A post as seen by the feed engine.

    like_count is derived from liked_by (set membership) so an unlike is a removal,
    never a decrement below zero. popularity_score is written only by the
    popularity updater.
    """

    model_config = ConfigDict(extra="allow")

    id: str
    slug: str = ""
    author_id: str
    tags: FrozenSet[str] = frozenset()
    category: str = "uncategorized"
    visibility: Visibility = Visibility.PUBLIC
    status: LifecycleStatus = LifecycleStatus.DRAFT
    views: NonNegativeInt = 0
    liked_by: FrozenSet[str] = frozenset()
    bookmark_count: NonNegativeInt = 0
    comment_count: NonNegativeInt = 0
    published_at: Optional[UtcDatetime] = None
    created_at: Optional[UtcDatetime] = None
    popularity_score: float = 0.0
    reading_time: NonNegativeInt = 0

    @property
    def like_count(self) -> int:
        return len(self.liked_by)

    def is_eligible(self, now: datetime) -> bool:
        """Published and already live at `now`."""
        return (
            self.status == LifecycleStatus.PUBLISHED
            and self.published_at is not None
            and self.published_at <= ensure_utc(now)
        )


class ItemSnapshot(BaseModel):
    """Counters read together, in one store read, for a popularity recompute."""

    item_id: str
    views: NonNegativeInt = 0
    like_count: NonNegativeInt = 0
    bookmark_count: NonNegativeInt = 0
    comment_count: NonNegativeInt = 0
    published_at: Optional[UtcDatetime] = None
    author_is_creator: bool = False


class Author(BaseModel):
    """Minimal author record: only the creator flag matters to ranking."""

    model_config = ConfigDict(extra="allow")

    id: str
    username: str = ""
    is_creator: bool = False


def snapshot_of(item: ContentItem, author_is_creator: bool) -> ItemSnapshot:
    """Build the popularity snapshot from a full item record."""
    return ItemSnapshot(
        item_id=item.id,
        views=item.views,
        like_count=item.like_count,
        bookmark_count=item.bookmark_count,
        comment_count=item.comment_count,
        published_at=item.published_at,
        author_is_creator=author_is_creator,
    )


# Fields usable in filters and sorts.
FILTERABLE_FIELDS = frozenset({
    "id",
    "author_id",
    "tags",
    "visibility",
    "status",
    "views",
    "like_count",
    "bookmark_count",
    "comment_count",
    "published_at",
    "popularity_score",
})


__all__ = [
    "Author",
    "ContentItem",
    "FILTERABLE_FIELDS",
    "ItemSnapshot",
    "LifecycleStatus",
    "Visibility",
    "snapshot_of",
]
