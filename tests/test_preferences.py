"""
Preference Aggregation Tests

Covers favorite-topic extraction (NoHistory vs ComputedTopics), preferred reading
time, and how the aggregator reads subscriptions, follows, and bookmarks.
"""

from datetime import timedelta

import pytest

from feedrank.errors import RetrievalError
from feedrank.models.config import FeedConfig
from feedrank.models.profile import ComputedTopics, NoHistory, PreferenceProfile
from feedrank.models.relations import BookmarkSample, SubscriptionStatus
from feedrank.stages.preferences import (
    aggregate_preferences,
    extract_favorite_topics,
    preferred_reading_time,
)

from .factories import NOW, active_sub, bookmark, follow, make_item, make_store, run


def _sample(item_id, tags, reading_time=0):
    return BookmarkSample(item_id=item_id, item_tags=tags, item_reading_time=reading_time)


class TestFavoriteTopics:
    """Tag frequency ranking over bookmarked items."""

    def test_no_bookmarks_is_no_history(self):
        assert extract_favorite_topics([]) == NoHistory()

    def test_bookmarks_without_tags_is_computed_empty(self):
        result = extract_favorite_topics([_sample("a", []), _sample("b", [])])
        assert result == ComputedTopics(topics=())
        assert result != NoHistory()

    def test_most_frequent_first(self):
        samples = [
            _sample("a", ["python", "web"]),
            _sample("b", ["python"]),
            _sample("c", ["rust", "python", "web"]),
        ]
        assert extract_favorite_topics(samples).topics == ("python", "web", "rust")

    def test_ties_keep_first_seen_order(self):
        samples = [_sample("a", ["b-tag", "a-tag"]), _sample("b", ["c-tag"])]
        assert extract_favorite_topics(samples).topics == ("b-tag", "a-tag", "c-tag")

    def test_limited_to_ten(self):
        samples = [_sample(f"i{n}", [f"t{n}"] * 1) for n in range(15)]
        topics = extract_favorite_topics(samples).topics
        assert len(topics) == 10
        assert topics == tuple(f"t{n}" for n in range(10))


class TestReadingTime:
    def test_default_without_bookmarks(self):
        assert preferred_reading_time([]) == 5.0

    def test_mean_over_sample(self):
        samples = [_sample("a", [], 4), _sample("b", [], 10), _sample("c", [], 1)]
        assert preferred_reading_time(samples) == pytest.approx(5.0)


class TestAggregatePreferences:
    """Reading the viewer's relationships from the store."""

    def test_anonymous_viewer_gets_empty_profile(self):
        profile = run(aggregate_preferences(make_store(), None, NOW))
        assert profile.viewer_id is None
        assert not profile.has_explicit_signals
        assert profile.favorite_topics == NoHistory()
        assert profile.preferred_reading_time == 5.0

    def test_reads_subscriptions_follows_and_bookmarks(self):
        store = make_store(
            items=[
                make_item("a", tags=frozenset({"python"}), reading_time=6),
                make_item("b", tags=frozenset({"python", "web"}), reading_time=2),
            ],
            subscriptions=[active_sub("v", "c1"), active_sub("v", "c2")],
            follows=[follow("v", "rust")],
            bookmarks=[bookmark("v", "a", minutes_ago=10), bookmark("v", "b", minutes_ago=5)],
        )
        profile = run(aggregate_preferences(store, "v", NOW))

        assert profile.subscribed_creators == {"c1", "c2"}
        assert profile.followed_topics == {"rust"}
        assert profile.bookmarked_items == ("b", "a")
        assert profile.favorite_topic_list() == ["python", "web"]
        assert profile.preferred_reading_time == pytest.approx(4.0)

    def test_inactive_and_ended_subscriptions_ignored(self):
        store = make_store(subscriptions=[
            active_sub("v", "cancelled", status=SubscriptionStatus.CANCELLED),
            active_sub("v", "pending", status=SubscriptionStatus.PENDING),
            active_sub("v", "ended", end_date=NOW - timedelta(days=1)),
            active_sub("v", "running", end_date=NOW + timedelta(days=1)),
            active_sub("someone-else", "other"),
        ])
        profile = run(aggregate_preferences(store, "v", NOW))
        assert profile.subscribed_creators == {"running"}

    def test_bookmark_sample_is_most_recent_only(self):
        items = [make_item(f"i{n}", tags=frozenset({f"t{n}"})) for n in range(5)]
        marks = [bookmark("v", f"i{n}", minutes_ago=n) for n in range(5)]
        store = make_store(items=items, bookmarks=marks)
        config = FeedConfig(bookmark_sample_size=2)

        profile = run(aggregate_preferences(store, "v", NOW, config))
        assert profile.bookmarked_items == ("i0", "i1")
        assert profile.favorite_topic_list() == ["t0", "t1"]

    def test_known_viewer_without_history(self):
        profile = run(aggregate_preferences(make_store(), "v", NOW))
        assert profile.viewer_id == "v"
        assert profile.favorite_topics == NoHistory()

    def test_store_failure_propagates(self):
        class BrokenStore:
            async def find_active_subscription_creator_ids(self, viewer_id, now):
                raise RetrievalError("subscriptions unavailable")

        with pytest.raises(RetrievalError):
            run(aggregate_preferences(BrokenStore(), "v", NOW))

    def test_anonymous_never_touches_store(self):
        class ExplodingStore:
            def __getattr__(self, name):
                raise AssertionError(f"unexpected store call: {name}")

        profile = run(aggregate_preferences(ExplodingStore(), None, NOW))
        assert profile.viewer_id is None

    def test_configured_default_reading_time(self):
        config = FeedConfig(default_reading_time=7.5)
        assert run(aggregate_preferences(make_store(), None, NOW, config)).preferred_reading_time == 7.5
        assert run(aggregate_preferences(make_store(), "v", NOW, config)).preferred_reading_time == 7.5
        assert PreferenceProfile().preferred_reading_time == FeedConfig().default_reading_time
