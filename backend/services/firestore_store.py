"""
Firestore content store: posts, users, subscriptions, tag_follows, bookmarks collections.

Used when CONTENT_STORE=firestore. Reads go through google.cloud.firestore.AsyncClient.
Documents are validated into feedrank models here, once, so the stages never see
untyped fields; a malformed document is a RetrievalError.

Candidate queries are pushed down as far as Firestore can express them (see
plan_queries): each top-level disjunction fans out into one query per alternative,
the queries run concurrently, and the union is checked against the full filter in
process. Sorting and pagination stay in process because like_count is derived from
the liked_by array and has no stored field to order on.
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Set, Type, TypeVar, Union

from google.api_core.exceptions import GoogleAPICallError, NotFound
from google.cloud.firestore import AsyncClient
from google.cloud.firestore_v1.base_query import FieldFilter
from google.cloud.firestore_v1.query import Query as FirestoreQuery
from google.oauth2 import service_account
from pydantic import BaseModel, ValidationError

from feedrank.errors import RetrievalError
from feedrank.models.content import Author, ContentItem, ItemSnapshot, snapshot_of
from feedrank.models.relations import BookmarkSample, Subscription, SubscriptionStatus
from feedrank.store import Filter, SortSpec, WriteResult

from .filter_eval import query

logger = logging.getLogger(__name__)

POSTS = "posts"
USERS = "users"
SUBSCRIPTIONS = "subscriptions"
TAG_FOLLOWS = "tag_follows"
BOOKMARKS = "bookmarks"

# Firestore limits on disjunction operands (in / array-contains-any).
MAX_DISJUNCTION_VALUES = 30
# Upper bound on concurrent queries one candidate filter may fan out into.
MAX_PUSHDOWN_QUERIES = 8

_ARRAY_FIELDS = frozenset({"tags", "liked_by"})
# Only published_at carries range filters server-side; other ranges are checked in process.
_RANGE_FIELD = "published_at"
_RANGE_OPS = {"$gte": ">=", "$gt": ">", "$lte": "<=", "$lt": "<"}
_MEMBERSHIP_OPS = frozenset({"in", "array_contains", "array_contains_any"})

M = TypeVar("M", bound=BaseModel)


def _project_id_from_credentials_file(credentials_path: Union[Path, str]) -> Optional[str]:
    """Read project_id from a Google service account JSON file if present."""
    path = Path(credentials_path)
    if not path.is_file():
        return None
    with open(path) as f:
        data = json.load(f)
    return data.get("project_id") or data.get("projectId")


def _validate(model: Type[M], data: Dict[str, Any], where: str) -> M:
    try:
        return model.model_validate(data)
    except ValidationError as e:
        logger.error("[store] Malformed document %s: %s", where, e)
        raise RetrievalError(f"Malformed document {where}: {e}") from e


def _item_from_doc(doc) -> ContentItem:
    data = doc.to_dict() or {}
    data["id"] = doc.id
    return _validate(ContentItem, data, f"{POSTS}/{doc.id}")


# ----------------------------------------------------------------------
# Filter pushdown
# ----------------------------------------------------------------------

def _conjuncts(filter: Filter) -> List[Filter]:
    """Flatten nested $and into single-key conjuncts."""
    out: List[Filter] = []
    for key, cond in filter.items():
        if key == "$and":
            for sub in cond:
                out.extend(_conjuncts(sub))
        else:
            out.append({key: cond})
    return out


def _field_filters(conjunct: Filter) -> List[FieldFilter]:
    """Firestore filters implied by one {field: condition} conjunct; [] when none are expressible."""
    (field, cond), = conjunct.items()
    if field.startswith("$"):
        return []
    if not isinstance(cond, dict):
        cond = {"$eq": cond}
    out = []
    for op, value in cond.items():
        if op == "$eq" and field not in _ARRAY_FIELDS:
            out.append(FieldFilter(field, "==", value))
        elif op == "$in" and 0 < len(value) <= MAX_DISJUNCTION_VALUES:
            values = list(value)
            if field not in _ARRAY_FIELDS:
                out.append(FieldFilter(field, "in", values))
            elif len(values) == 1:
                out.append(FieldFilter(field, "array_contains", values[0]))
            else:
                out.append(FieldFilter(field, "array_contains_any", values))
        elif op in _RANGE_OPS and field == _RANGE_FIELD:
            out.append(FieldFilter(field, _RANGE_OPS[op], value))
    return out


def _pushable(filter: Filter) -> List[FieldFilter]:
    out: List[FieldFilter] = []
    for conjunct in _conjuncts(filter):
        if "$or" not in conjunct:
            out.extend(_field_filters(conjunct))
    return out


def _one_membership(filters: List[FieldFilter]) -> List[FieldFilter]:
    """Keep the first in/array-contains filter; Firestore rejects most combinations."""
    kept, seen_membership = [], False
    for f in filters:
        if f.op_string in _MEMBERSHIP_OPS:
            if seen_membership:
                continue
            seen_membership = True
        kept.append(f)
    return kept


def plan_queries(filter: Filter) -> List[List[FieldFilter]]:
    """
    Split filter into Firestore queries whose union contains every match.

    Conjuncts Firestore can express are shared by all queries. Each top-level $or
    multiplies the queries by its alternatives while the count stays within
    MAX_PUSHDOWN_QUERIES; a disjunction that would exceed it is left to in-process
    evaluation. Every pushed filter is implied by the original, so the union is a
    superset and the caller re-checks it with filter_eval.
    """
    shared: List[FieldFilter] = []
    branches: List[List[FieldFilter]] = [[]]
    for conjunct in _conjuncts(filter):
        if "$or" in conjunct:
            alternatives = conjunct["$or"]
            if not alternatives or len(branches) * len(alternatives) > MAX_PUSHDOWN_QUERIES:
                continue
            branches = [b + _pushable(alt) for b in branches for alt in alternatives]
        else:
            shared.extend(_field_filters(conjunct))
    return [_one_membership(shared + b) for b in branches]


class FirestoreContentStore:
    """ContentStore over Firestore. Pass client directly, or credentials to build an AsyncClient."""

    def __init__(
        self,
        client: Optional[Any] = None,
        project_id: Optional[str] = None,
        credentials_path: Optional[Union[Path, str]] = None,
    ):
        if client is None:
            if not credentials_path:
                raise ValueError("FirestoreContentStore requires a client or credentials_path")
            resolved = str(Path(credentials_path).resolve())
            creds = service_account.Credentials.from_service_account_file(resolved)
            proj = project_id or _project_id_from_credentials_file(resolved)
            client = AsyncClient(project=proj, credentials=creds)
        self._db = client

    async def _stream(self, q) -> list:
        try:
            return [doc async for doc in q.stream()]
        except GoogleAPICallError as e:
            logger.error("[store] Firestore read failed: %s", e)
            raise RetrievalError(f"Firestore read failed: {e}") from e

    async def _get(self, collection: str, doc_id: str):
        try:
            return await self._db.collection(collection).document(doc_id).get()
        except GoogleAPICallError as e:
            logger.error("[store] Firestore get failed: %s/%s: %s", collection, doc_id, e)
            raise RetrievalError(f"Firestore get failed for {collection}/{doc_id}: {e}") from e

    async def _get_all(self, collection: str, doc_ids: List[str]) -> Dict[str, Any]:
        """Existing documents by id, fetched in one batched read."""
        if not doc_ids:
            return {}
        refs = [self._db.collection(collection).document(doc_id) for doc_id in doc_ids]
        try:
            return {doc.id: doc async for doc in self._db.get_all(refs) if doc.exists}
        except GoogleAPICallError as e:
            logger.error("[store] Firestore batch get failed: %s: %s", collection, e)
            raise RetrievalError(f"Firestore batch get failed for {collection}: {e}") from e

    def _posts_query(self, filters: List[FieldFilter]):
        q = self._db.collection(POSTS)
        for f in filters:
            q = q.where(filter=f)
        return q

    async def find_eligible_items(
        self,
        filter: Filter,
        sort: SortSpec,
        skip: int,
        limit: int,
    ) -> List[ContentItem]:
        plans = plan_queries(filter)
        batches = await asyncio.gather(*(self._stream(self._posts_query(p)) for p in plans))
        docs = {}
        for batch in batches:
            for doc in batch:
                docs.setdefault(doc.id, doc)
        logger.debug("[store] posts queries=%d docs=%d", len(plans), len(docs))
        items = [_item_from_doc(doc) for doc in docs.values()]
        return query(items, filter, sort, skip, limit)

    async def find_active_subscription_creator_ids(self, subscriber_id: str, now) -> Set[str]:
        q = (
            self._db.collection(SUBSCRIPTIONS)
            .where(filter=FieldFilter("subscriber_id", "==", subscriber_id))
            .where(filter=FieldFilter("status", "==", SubscriptionStatus.ACTIVE.value))
        )
        creators = set()
        for doc in await self._stream(q):
            sub = _validate(Subscription, doc.to_dict() or {}, f"{SUBSCRIPTIONS}/{doc.id}")
            if sub.is_current(now):
                creators.add(sub.creator_id)
        return creators

    async def find_followed_topic_ids(self, viewer_id: str) -> Set[str]:
        q = self._db.collection(TAG_FOLLOWS).where(filter=FieldFilter("user_id", "==", viewer_id))
        topics = set()
        for doc in await self._stream(q):
            topic_id = (doc.to_dict() or {}).get("topic_id")
            if topic_id:
                topics.add(topic_id)
        return topics

    async def find_recent_bookmarks(self, viewer_id: str, limit: int) -> List[BookmarkSample]:
        """
        Newest bookmarks first. Bookmarks whose post is gone are skipped and the read
        pages further back, so up to `limit` samples come back whenever they exist.
        """
        base = (
            self._db.collection(BOOKMARKS)
            .where(filter=FieldFilter("user_id", "==", viewer_id))
            .order_by("created_at", direction=FirestoreQuery.DESCENDING)
        )
        samples: List[BookmarkSample] = []
        last = None
        while len(samples) < limit:
            q = base.start_after(last) if last is not None else base
            page = await self._stream(q.limit(limit))
            if not page:
                break
            last = page[-1]
            item_ids = [(doc.to_dict() or {}).get("item_id") for doc in page]
            posts = await self._get_all(POSTS, [i for i in item_ids if i])
            for item_id in item_ids:
                post = posts.get(item_id) if item_id else None
                if post is None:
                    continue
                item = _item_from_doc(post)
                samples.append(BookmarkSample(
                    item_id=item.id,
                    item_tags=sorted(item.tags),
                    item_reading_time=item.reading_time,
                ))
                if len(samples) >= limit:
                    break
            if len(page) < limit:
                break
        return samples

    async def get_item_snapshot(self, item_id: str) -> Optional[ItemSnapshot]:
        doc = await self._get(POSTS, item_id)
        if not doc.exists:
            return None
        item = _item_from_doc(doc)
        author_doc = await self._get(USERS, item.author_id)
        is_creator = False
        if author_doc.exists:
            data = {**(author_doc.to_dict() or {}), "id": author_doc.id}
            is_creator = _validate(Author, data, f"{USERS}/{author_doc.id}").is_creator
        return snapshot_of(item, author_is_creator=is_creator)

    async def write_popularity_score(self, item_id: str, score: float) -> WriteResult:
        try:
            await self._db.collection(POSTS).document(item_id).update({"popularity_score": score})
        except NotFound:
            return WriteResult.NOT_FOUND
        return WriteResult.OK

    async def list_item_ids(self, status: Optional[str] = None) -> List[str]:
        q = self._db.collection(POSTS)
        if status is not None:
            q = q.where(filter=FieldFilter("status", "==", status))
        return [doc.id for doc in await self._stream(q)]
