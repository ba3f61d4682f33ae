"""
In-memory content store.

Implements the ContentStore protocol over plain dicts for local runs, datasets, and
tests. Also implements the collaborator-side engagement mutations (views, likes,
comments, bookmarks) as single-step updates, standing in for the store-level atomic
increments the serving layer performs in production.
"""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set, Tuple, Union

from feedrank.models.content import Author, ContentItem, ItemSnapshot, snapshot_of
from feedrank.models.relations import Bookmark, BookmarkSample, Subscription, TopicFollow
from feedrank.store import Filter, SortSpec, WriteResult

from .filter_eval import query

_NEVER = datetime.min.replace(tzinfo=timezone.utc)


class InMemoryContentStore:
    """Content store backed by in-process dicts. One record per key enforces uniqueness."""

    def __init__(
        self,
        items: Iterable[ContentItem] = (),
        authors: Iterable[Author] = (),
        subscriptions: Iterable[Subscription] = (),
        follows: Iterable[TopicFollow] = (),
        bookmarks: Iterable[Bookmark] = (),
    ):
        self._items: Dict[str, ContentItem] = {}
        self._authors: Dict[str, Author] = {}
        self._subscriptions: Dict[Tuple[str, str], Subscription] = {}
        self._follows: Dict[Tuple[str, str], TopicFollow] = {}
        self._bookmarks: Dict[Tuple[str, str], Bookmark] = {}
        for item in items:
            self.upsert_item(item)
        for author in authors:
            self.upsert_author(author)
        for sub in subscriptions:
            self.upsert_subscription(sub)
        for follow in follows:
            self.follow_topic(follow)
        for bookmark in bookmarks:
            self.add_bookmark(bookmark)

    @classmethod
    def from_json(cls, path: Union[Path, str]) -> "InMemoryContentStore":
        """
        Load a dataset file with top-level keys: items, authors, subscriptions,
        follows, bookmarks (each a list of dicts; all optional).
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Dataset JSON not found: {path}")
        with open(path) as f:
            data = json.load(f)
        return cls(
            items=[ContentItem.model_validate(d) for d in data.get("items", [])],
            authors=[Author.model_validate(d) for d in data.get("authors", [])],
            subscriptions=[Subscription.model_validate(d) for d in data.get("subscriptions", [])],
            follows=[TopicFollow.model_validate(d) for d in data.get("follows", [])],
            bookmarks=[Bookmark.model_validate(d) for d in data.get("bookmarks", [])],
        )

    # ------------------------------------------------------------------
    # Seeding (authoring / relationship collaborators)
    # ------------------------------------------------------------------

    def upsert_item(self, item: ContentItem) -> None:
        self._items[item.id] = item

    def delete_item(self, item_id: str) -> bool:
        return self._items.pop(item_id, None) is not None

    def get_item(self, item_id: str) -> Optional[ContentItem]:
        return self._items.get(item_id)

    def upsert_author(self, author: Author) -> None:
        self._authors[author.id] = author

    def upsert_subscription(self, sub: Subscription) -> None:
        self._subscriptions[(sub.subscriber_id, sub.creator_id)] = sub

    def follow_topic(self, follow: TopicFollow) -> None:
        self._follows[(follow.user_id, follow.topic_id)] = follow

    def unfollow_topic(self, user_id: str, topic_id: str) -> None:
        self._follows.pop((user_id, topic_id), None)

    # ------------------------------------------------------------------
    # Engagement mutations (serving-layer collaborators)
    # ------------------------------------------------------------------

    def _update(self, item_id: str, **changes) -> ContentItem:
        item = self._items[item_id]
        updated = item.model_copy(update=changes)
        self._items[item_id] = updated
        return updated

    def record_view(self, item_id: str) -> ContentItem:
        return self._update(item_id, views=self._items[item_id].views + 1)

    def toggle_like(self, item_id: str, user_id: str) -> ContentItem:
        """Add user_id to the liker set, or remove it if already present."""
        likers = set(self._items[item_id].liked_by)
        likers.symmetric_difference_update({user_id})
        return self._update(item_id, liked_by=frozenset(likers))

    def add_comment(self, item_id: str) -> ContentItem:
        return self._update(item_id, comment_count=self._items[item_id].comment_count + 1)

    def remove_comment(self, item_id: str) -> ContentItem:
        return self._update(item_id, comment_count=max(0, self._items[item_id].comment_count - 1))

    def add_bookmark(self, bookmark: Bookmark) -> bool:
        """Add a bookmark and bump the item's bookmark_count. False if it already existed."""
        key = (bookmark.user_id, bookmark.item_id)
        if key in self._bookmarks:
            return False
        self._bookmarks[key] = bookmark
        if bookmark.item_id in self._items:
            self._update(bookmark.item_id, bookmark_count=self._items[bookmark.item_id].bookmark_count + 1)
        return True

    def remove_bookmark(self, user_id: str, item_id: str) -> bool:
        if self._bookmarks.pop((user_id, item_id), None) is None:
            return False
        if item_id in self._items:
            self._update(item_id, bookmark_count=max(0, self._items[item_id].bookmark_count - 1))
        return True

    # ------------------------------------------------------------------
    # ContentStore protocol
    # ------------------------------------------------------------------

    async def find_eligible_items(
        self,
        filter: Filter,
        sort: SortSpec,
        skip: int,
        limit: int,
    ) -> List[ContentItem]:
        return query(self._items.values(), filter, sort, skip, limit)

    async def find_active_subscription_creator_ids(
        self,
        subscriber_id: str,
        now: datetime,
    ) -> Set[str]:
        return {
            sub.creator_id
            for (subscriber, _), sub in self._subscriptions.items()
            if subscriber == subscriber_id and sub.is_current(now)
        }

    async def find_followed_topic_ids(self, viewer_id: str) -> Set[str]:
        return {topic for (user, topic) in self._follows if user == viewer_id}

    async def find_recent_bookmarks(self, viewer_id: str, limit: int) -> List[BookmarkSample]:
        own = [b for (user, _), b in self._bookmarks.items() if user == viewer_id]
        # Newest first; bookmarks without a timestamp sort last in insertion order.
        own.sort(key=lambda b: b.created_at or _NEVER, reverse=True)
        samples: List[BookmarkSample] = []
        for bookmark in own:
            item = self._items.get(bookmark.item_id)
            if item is None:
                continue
            samples.append(BookmarkSample(
                item_id=item.id,
                item_tags=sorted(item.tags),
                item_reading_time=item.reading_time,
            ))
            if len(samples) >= limit:
                break
        return samples

    async def get_item_snapshot(self, item_id: str) -> Optional[ItemSnapshot]:
        item = self._items.get(item_id)
        if item is None:
            return None
        author = self._authors.get(item.author_id)
        return snapshot_of(item, author_is_creator=bool(author and author.is_creator))

    async def write_popularity_score(self, item_id: str, score: float) -> WriteResult:
        if item_id not in self._items:
            return WriteResult.NOT_FOUND
        self._update(item_id, popularity_score=score)
        return WriteResult.OK

    async def list_item_ids(self, status: Optional[str] = None) -> List[str]:
        return [
            item.id for item in self._items.values()
            if status is None or item.status.value == status
        ]
