"""
Candidate query building: eligibility filters and the personalized candidate disjunction.

Filters are plain dicts in document-store syntax ($and, $or, $in, $gte, $lte, $eq)
so any store adapter can translate or evaluate them. Everything here is pure:
same inputs, same filter, no I/O.

Public entry points: eligibility_filter, build_candidate_filter,
build_subscribed_filter, build_popular_filter, build_topic_filter.
"""

from datetime import datetime, timedelta
from typing import Iterable, List, Optional

from ..errors import DataIntegrityError
from ..models.config import DEFAULT_CONFIG, FeedConfig
from ..models.content import LifecycleStatus, Visibility
from ..models.feed import TimeRange
from ..models.profile import PreferenceProfile
from ..store import Filter
from ..utils.time import ensure_utc


def _visibility_clause(subscribed_creators: Iterable[str]) -> Filter:
    """Public items, plus subscribers-only items from creators the viewer subscribes to."""
    creators = sorted(subscribed_creators)
    if not creators:
        return {"visibility": {"$eq": Visibility.PUBLIC.value}}
    return {
        "$or": [
            {"visibility": {"$eq": Visibility.PUBLIC.value}},
            {
                "$and": [
                    {"visibility": {"$eq": Visibility.SUBSCRIBERS.value}},
                    {"author_id": {"$in": creators}},
                ]
            },
        ]
    }


def eligibility_filter(
    now: datetime,
    subscribed_creators: Iterable[str] = (),
    public_only: bool = False,
) -> Filter:
    """
    Baseline predicate every candidate must satisfy: published, visible, live at now.

    Private items are never visible. Subscribers-only items are visible only when
    their author is in subscribed_creators (and public_only is False).
    """
    visibility = _visibility_clause(() if public_only else subscribed_creators)
    return {
        "$and": [
            {"status": {"$eq": LifecycleStatus.PUBLISHED.value}},
            {"published_at": {"$lte": ensure_utc(now)}},
            visibility,
        ]
    }


def _and(*clauses: Filter) -> Filter:
    return {"$and": list(clauses)}


def _signal_clauses(profile: PreferenceProfile) -> List[Filter]:
    """Clauses for explicit viewer signals; empty sets contribute nothing."""
    clauses: List[Filter] = []
    if profile.subscribed_creators:
        clauses.append({"author_id": {"$in": sorted(profile.subscribed_creators)}})
    if profile.followed_topics:
        clauses.append({"tags": {"$in": sorted(profile.followed_topics)}})
    return clauses


def floor_clauses(now: datetime, config: FeedConfig = DEFAULT_CONFIG) -> List[Filter]:
    """Trending and fresh clauses, always present so new viewers still get results."""
    now = ensure_utc(now)
    trending = _and(
        {"views": {"$gte": config.trending_min_views}},
        {"published_at": {"$gte": now - timedelta(days=config.trending_window_days)}},
    )
    fresh = {"published_at": {"$gte": now - timedelta(hours=config.fresh_window_hours)}}
    return [trending, fresh]


def build_candidate_filter(
    profile: PreferenceProfile,
    base: Filter,
    now: datetime,
    config: FeedConfig = DEFAULT_CONFIG,
) -> Filter:
    """
    base AND (subscribed author OR followed tag OR trending OR fresh).

    Subscription and follow clauses appear only when the profile has them; the two
    floor clauses are always present.
    """
    clauses = _signal_clauses(profile) + floor_clauses(now, config)
    if not clauses:
        raise DataIntegrityError("candidate filter must contain at least one clause")
    return _and(base, {"$or": clauses})


def build_subscribed_filter(profile: PreferenceProfile, base: Filter) -> Optional[Filter]:
    """
    base AND (subscribed author OR followed tag).

    Returns None when the viewer has neither, since an empty disjunction matches nothing.
    """
    clauses = _signal_clauses(profile)
    if not clauses:
        return None
    return _and(base, {"$or": clauses})


def build_popular_filter(now: datetime, time_range: TimeRange) -> Filter:
    """Public, published items within the time window (unbounded for ALL)."""
    base = eligibility_filter(now, public_only=True)
    window = time_range.window()
    if window is None:
        return base
    return _and(base, {"published_at": {"$gte": ensure_utc(now) - window}})


def build_topic_filter(
    topic_id: str,
    now: datetime,
    subscribed_creators: Optional[Iterable[str]] = None,
) -> Filter:
    """
    Items tagged with topic_id. Anonymous viewers (subscribed_creators None) see
    public items only; known viewers also see subscribers-only items from their creators.
    """
    base = eligibility_filter(
        now,
        subscribed_creators=subscribed_creators or (),
        public_only=subscribed_creators is None,
    )
    return _and(base, {"tags": {"$in": [topic_id]}})
