"""
Feed composer — runs aggregation, retrieval, scoring, and sorting for one feed request.

Four entry points, one per feed mode:
- get_personalized_feed: profile -> candidate filter -> ranked window -> page slice
- get_subscribed_feed:   profile -> subscribed/followed filter -> caller sort -> page
- get_popular_feed:      public + time window -> engagement sort -> page
- get_topic_feed:        topic filter (visibility by subscription) -> caller sort -> page

Each request walks AGGREGATING -> QUERYING -> SCORING -> SORTING -> DONE, or FAILED
from whichever state raised. Nothing is shared between requests; the composer holds
only its injected collaborators.
"""

import logging
from datetime import datetime
from typing import Callable, List, Optional, Union

from pydantic import ValidationError

from ..errors import FeedError, FeedValidationError
from ..models.config import FeedConfig, resolve_config
from ..models.content import ContentItem
from ..models.feed import (
    FeedMode,
    FeedPage,
    FeedState,
    PageRequest,
    SortField,
    SortOrder,
    TimeRange,
)
from ..models.profile import PreferenceProfile
from ..models.scoring import ScoredItem
from ..store import ASCENDING, DESCENDING, ContentStore, Filter, SortSpec
from ..utils.time import utc_now
from .candidate_query import (
    build_candidate_filter,
    build_popular_filter,
    build_subscribed_filter,
    build_topic_filter,
    eligibility_filter,
)
from .preferences import aggregate_preferences
from .ranking import rank_candidates

logger = logging.getLogger(__name__)

TransitionObserver = Callable[[FeedMode, FeedState], None]

PERSONALIZED_FETCH_SORT: SortSpec = [("popularity_score", DESCENDING), ("published_at", DESCENDING)]
POPULAR_SORT: SortSpec = [
    ("views", DESCENDING),
    ("bookmark_count", DESCENDING),
    ("like_count", DESCENDING),
    ("published_at", DESCENDING),
]


def validate_page(page: int, limit: int) -> PageRequest:
    """page >= 1 and 1 <= limit <= 50; anything else is rejected."""
    try:
        return PageRequest(page=page, limit=limit)
    except ValidationError as exc:
        raise FeedValidationError(f"invalid pagination page={page!r} limit={limit!r}") from exc


def _parse_enum(enum_cls, value, name: str):
    try:
        return enum_cls(value)
    except ValueError as exc:
        allowed = ", ".join(m.value for m in enum_cls)
        raise FeedValidationError(f"invalid {name} {value!r}; expected one of: {allowed}") from exc


def caller_sort(sort_by: SortField, order: SortOrder) -> SortSpec:
    """Caller-selected sort with published_at as tiebreaker."""
    direction = ASCENDING if order == SortOrder.ASC else DESCENDING
    spec: SortSpec = [(sort_by.value, direction)]
    if sort_by != SortField.PUBLISHED_AT:
        spec.append(("published_at", DESCENDING))
    return spec


class _FeedRun:
    """State tracker for one request."""

    def __init__(self, mode: FeedMode, observer: Optional[TransitionObserver]):
        self.mode = mode
        self.state: Optional[FeedState] = None
        self._observer = observer

    def advance(self, state: FeedState) -> None:
        self.state = state
        logger.debug("[feed] mode=%s state=%s", self.mode.value, state.value)
        if self._observer is not None:
            self._observer(self.mode, state)

    def fail(self, error: Exception) -> None:
        failed_in = self.state.value if self.state else "init"
        logger.error("[feed] FAILED mode=%s state=%s error=%s", self.mode.value, failed_in, error)
        self.advance(FeedState.FAILED)


def _page(
    mode: FeedMode,
    request: PageRequest,
    items: List[ContentItem],
    scored: Optional[List[ScoredItem]] = None,
) -> FeedPage:
    return FeedPage(
        mode=mode,
        page=request.page,
        limit=request.limit,
        items=items,
        scored=scored or [],
        has_more=len(items) == request.limit,
    )


class FeedComposer:
    """Entry points for the four feed modes over an injected content store."""

    def __init__(
        self,
        store: ContentStore,
        config: Optional[FeedConfig] = None,
        clock: Callable[[], datetime] = utc_now,
        observer: Optional[TransitionObserver] = None,
    ):
        self._store = store
        self._config = resolve_config(config)
        self._clock = clock
        self._observer = observer

    def fetch_window(self, request: PageRequest) -> int:
        """
        Candidates ranked per personalized request. Depends only on limit, so every
        page of a walk slices the same ranked window and no item repeats or is skipped.
        """
        return max(self._config.candidate_window, request.limit * self._config.fetch_window_multiplier)

    async def get_personalized_feed(
        self,
        viewer_id: Optional[str],
        page: int = 1,
        limit: int = 20,
    ) -> FeedPage:
        request = validate_page(page, limit)
        run = _FeedRun(FeedMode.PERSONALIZED, self._observer)
        now = self._clock()
        try:
            run.advance(FeedState.AGGREGATING)
            profile = await aggregate_preferences(self._store, viewer_id, now, self._config)

            run.advance(FeedState.QUERYING)
            candidate_filter = self.personalized_filter(profile, now)
            candidates = await self._store.find_eligible_items(
                candidate_filter,
                PERSONALIZED_FETCH_SORT,
                0,
                self.fetch_window(request),
            )

            run.advance(FeedState.SCORING)
            ranked = rank_candidates(candidates, profile, now, self._config)

            run.advance(FeedState.SORTING)
            page_slice = ranked[request.skip:request.skip + request.limit]
            result = _page(FeedMode.PERSONALIZED, request, [s.item for s in page_slice], page_slice)
        except FeedError as e:
            run.fail(e)
            raise
        run.advance(FeedState.DONE)
        return result

    def personalized_filter(self, profile: PreferenceProfile, now: datetime) -> Filter:
        """Candidate filter for the personalized feed (exposed for inspection)."""
        base = eligibility_filter(now, profile.subscribed_creators)
        return build_candidate_filter(profile, base, now, self._config)

    async def get_subscribed_feed(
        self,
        viewer_id: str,
        page: int = 1,
        limit: int = 20,
        sort_by: Union[SortField, str] = SortField.PUBLISHED_AT,
        sort_order: Union[SortOrder, str] = SortOrder.DESC,
    ) -> FeedPage:
        request = validate_page(page, limit)
        sort_field = _parse_enum(SortField, sort_by, "sort_by")
        order = _parse_enum(SortOrder, sort_order, "sort_order")
        if not viewer_id:
            raise FeedValidationError("subscribed feed requires a viewer_id")
        run = _FeedRun(FeedMode.SUBSCRIBED, self._observer)
        now = self._clock()
        try:
            run.advance(FeedState.AGGREGATING)
            profile = await aggregate_preferences(self._store, viewer_id, now, self._config)

            run.advance(FeedState.QUERYING)
            base = eligibility_filter(now, profile.subscribed_creators)
            subscribed_filter = build_subscribed_filter(profile, base)
            if subscribed_filter is None:
                logger.info("[feed] subscribed feed empty: viewer_id=%s has no subscriptions or follows", viewer_id)
                items: List[ContentItem] = []
            else:
                items = await self._store.find_eligible_items(
                    subscribed_filter,
                    caller_sort(sort_field, order),
                    request.skip,
                    request.limit,
                )
            run.advance(FeedState.SORTING)
            result = _page(FeedMode.SUBSCRIBED, request, items)
        except FeedError as e:
            run.fail(e)
            raise
        run.advance(FeedState.DONE)
        return result

    async def get_popular_feed(
        self,
        page: int = 1,
        limit: int = 20,
        time_range: Union[TimeRange, str] = TimeRange.WEEK,
    ) -> FeedPage:
        request = validate_page(page, limit)
        window = _parse_enum(TimeRange, time_range, "time_range")
        run = _FeedRun(FeedMode.POPULAR, self._observer)
        now = self._clock()
        try:
            run.advance(FeedState.QUERYING)
            items = await self._store.find_eligible_items(
                build_popular_filter(now, window),
                POPULAR_SORT,
                request.skip,
                request.limit,
            )
            run.advance(FeedState.SORTING)
            result = _page(FeedMode.POPULAR, request, items)
        except FeedError as e:
            run.fail(e)
            raise
        run.advance(FeedState.DONE)
        return result

    async def get_topic_feed(
        self,
        topic_id: str,
        viewer_id: Optional[str] = None,
        page: int = 1,
        limit: int = 20,
        sort_by: Union[SortField, str] = SortField.PUBLISHED_AT,
        sort_order: Union[SortOrder, str] = SortOrder.DESC,
    ) -> FeedPage:
        request = validate_page(page, limit)
        sort_field = _parse_enum(SortField, sort_by, "sort_by")
        order = _parse_enum(SortOrder, sort_order, "sort_order")
        if not topic_id:
            raise FeedValidationError("topic feed requires a topic_id")
        run = _FeedRun(FeedMode.TOPIC, self._observer)
        now = self._clock()
        try:
            creators = None
            if viewer_id is not None:
                run.advance(FeedState.AGGREGATING)
                creators = await self._store.find_active_subscription_creator_ids(viewer_id, now)

            run.advance(FeedState.QUERYING)
            items = await self._store.find_eligible_items(
                build_topic_filter(topic_id, now, creators),
                caller_sort(sort_field, order),
                request.skip,
                request.limit,
            )
            run.advance(FeedState.SORTING)
            result = _page(FeedMode.TOPIC, request, items)
        except FeedError as e:
            run.fail(e)
            raise
        run.advance(FeedState.DONE)
        return result
