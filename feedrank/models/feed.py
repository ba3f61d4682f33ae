"""
Feed request/response models: modes, states, sort and window options, and the page result.
"""

from datetime import timedelta
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from .content import ContentItem
from .scoring import ScoredItem


class FeedMode(str, Enum):
    PERSONALIZED = "personalized"
    SUBSCRIBED = "subscribed"
    POPULAR = "popular"
    TOPIC = "topic"


class FeedState(str, Enum):
    """Per-request pipeline state. Any state may move to FAILED."""

    AGGREGATING = "aggregating"
    QUERYING = "querying"
    SCORING = "scoring"
    SORTING = "sorting"
    DONE = "done"
    FAILED = "failed"


class SortField(str, Enum):
    PUBLISHED_AT = "published_at"
    VIEWS = "views"
    LIKE_COUNT = "like_count"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class TimeRange(str, Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    ALL = "all"

    def window(self) -> Optional[timedelta]:
        """Lookback window on published_at; None means unbounded."""
        return {
            TimeRange.DAY: timedelta(days=1),
            TimeRange.WEEK: timedelta(days=7),
            TimeRange.MONTH: timedelta(days=30),
            TimeRange.ALL: None,
        }[self]


class PageRequest(BaseModel):
    """Validated pagination input. Out-of-range values are rejected, never clamped."""

    page: int = Field(ge=1)
    limit: int = Field(ge=1, le=50)

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit


class FeedPage(BaseModel):
    """One page of a feed. has_more is a heuristic: returned count == limit."""

    mode: FeedMode
    page: int
    limit: int
    items: List[ContentItem] = []
    scored: List[ScoredItem] = []
    has_more: bool = False
