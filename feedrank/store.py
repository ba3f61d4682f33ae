"""
Content Store abstraction.

The feed engine reads items and viewer relationships through this protocol and
writes back only popularity scores. Implementations: in-memory (tests, local
datasets), Firestore (production). Filters are document-store style dicts
(see stages/candidate_query.py); sorts are lists of (field, direction) pairs.

Implementations raise RetrievalError when a read cannot be answered.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol, Set, Tuple

from .models.content import ContentItem, ItemSnapshot
from .models.relations import BookmarkSample

ASCENDING = 1
DESCENDING = -1

Filter = Dict[str, Any]
SortSpec = List[Tuple[str, int]]


class WriteResult(str, Enum):
    OK = "ok"
    NOT_FOUND = "not_found"


class ContentStore(Protocol):
    """Protocol for content store reads and the popularity write-back."""

    async def find_eligible_items(
        self,
        filter: Filter,
        sort: SortSpec,
        skip: int,
        limit: int,
    ) -> List[ContentItem]:
        """Items matching filter, ordered by sort, paginated by skip/limit."""
        ...

    async def find_active_subscription_creator_ids(
        self,
        subscriber_id: str,
        now: datetime,
    ) -> Set[str]:
        """Creators the subscriber currently subscribes to (active, not past end date)."""
        ...

    async def find_followed_topic_ids(self, viewer_id: str) -> Set[str]:
        ...

    async def find_recent_bookmarks(self, viewer_id: str, limit: int) -> List[BookmarkSample]:
        """Most recent bookmarks first, joined with the items' tags and reading times."""
        ...

    async def get_item_snapshot(self, item_id: str) -> Optional[ItemSnapshot]:
        """One consistent read of an item's counters. None if the item does not exist."""
        ...

    async def write_popularity_score(self, item_id: str, score: float) -> WriteResult:
        """Persist popularity_score only. NOT_FOUND if the item is gone."""
        ...

    async def list_item_ids(self, status: Optional[str] = None) -> List[str]:
        """Ids of all items, optionally restricted to a lifecycle status (used by the sweep)."""
        ...
