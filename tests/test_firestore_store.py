"""
Firestore Content Store Tests

Runs FirestoreContentStore against an in-process fake AsyncClient to check
document mapping, relationship reads, and error translation.
"""

from datetime import timedelta

import pytest

from backend.services import FirestoreContentStore
from backend.services.firestore_store import MAX_PUSHDOWN_QUERIES, plan_queries
from feedrank.errors import RetrievalError
from feedrank.models.content import LifecycleStatus, Visibility
from feedrank.models.feed import FeedState, TimeRange
from feedrank.models.profile import PreferenceProfile
from feedrank.stages.candidate_query import (
    build_popular_filter,
    build_subscribed_filter,
    build_topic_filter,
    eligibility_filter,
)
from feedrank.stages.orchestrator import PERSONALIZED_FETCH_SORT, FeedComposer
from feedrank.store import DESCENDING, WriteResult

from .factories import NOW, fixed_clock, make_item, make_store, run
from .fake_firestore import FakeAsyncClient


def _post(author="a1", **fields):
    data = {
        "author_id": author,
        "status": "published",
        "visibility": "public",
        "published_at": NOW - timedelta(hours=3),
        "tags": ["python"],
        "views": 10,
        "liked_by": ["u1", "u2"],
        "reading_time": 4,
    }
    data.update(fields)
    return data


@pytest.fixture
def client():
    return FakeAsyncClient({
        "posts": {
            "p1": _post(),
            "p2": _post(author="a2", views=99, tags=["rust", "go"], reading_time=8),
            "draft": _post(status="draft"),
        },
        "users": {
            "a1": {"username": "ada", "is_creator": True},
            "a2": {"username": "bob"},
        },
        "subscriptions": {
            "s1": {"subscriber_id": "v", "creator_id": "a1", "status": "active"},
            "s2": {"subscriber_id": "v", "creator_id": "a2", "status": "cancelled"},
            "s3": {"subscriber_id": "v", "creator_id": "a3", "status": "active",
                   "end_date": NOW - timedelta(days=1)},
        },
        "tag_follows": {
            "f1": {"user_id": "v", "topic_id": "python"},
            "f2": {"user_id": "w", "topic_id": "rust"},
        },
        "bookmarks": {
            "b1": {"user_id": "v", "item_id": "p1", "created_at": NOW - timedelta(hours=2)},
            "b2": {"user_id": "v", "item_id": "p2", "created_at": NOW - timedelta(hours=1)},
            "b3": {"user_id": "v", "item_id": "deleted", "created_at": NOW},
        },
    })


@pytest.fixture
def store(client):
    return FirestoreContentStore(client=client)


class TestReads:
    def test_eligible_items_filtered_and_sorted(self, store):
        items = run(store.find_eligible_items(eligibility_filter(NOW), [("views", DESCENDING)], 0, 10))
        assert [i.id for i in items] == ["p2", "p1"]
        assert items[1].like_count == 2
        assert items[1].tags == {"python"}

    def test_eligible_items_paginated(self, store):
        items = run(store.find_eligible_items(eligibility_filter(NOW), [("views", DESCENDING)], 1, 10))
        assert [i.id for i in items] == ["p1"]

    def test_active_subscriptions_only(self, store):
        assert run(store.find_active_subscription_creator_ids("v", NOW)) == {"a1"}

    def test_followed_topics(self, store):
        assert run(store.find_followed_topic_ids("v")) == {"python"}
        assert run(store.find_followed_topic_ids("nobody")) == set()

    def test_recent_bookmarks_skip_deleted_items(self, store):
        samples = run(store.find_recent_bookmarks("v", 10))
        assert [s.item_id for s in samples] == ["p2", "p1"]
        assert samples[0].item_tags == ["go", "rust"]
        assert samples[0].item_reading_time == 8

    def test_recent_bookmarks_page_past_deleted_items(self, store):
        # The newest bookmark points at a deleted post, so the read pages further back.
        samples = run(store.find_recent_bookmarks("v", 2))
        assert [s.item_id for s in samples] == ["p2", "p1"]

    def test_recent_bookmarks_batch_post_reads(self, store, client):
        run(store.find_recent_bookmarks("v", 10))
        assert client.batch_gets == 1
        assert client.gets == 0

    def test_snapshot_reads_creator_flag(self, store):
        snap = run(store.get_item_snapshot("p1"))
        assert snap.author_is_creator
        assert snap.like_count == 2
        assert not run(store.get_item_snapshot("p2")).author_is_creator

    def test_snapshot_of_missing_item(self, store):
        assert run(store.get_item_snapshot("nope")) is None

    def test_list_item_ids_by_status(self, store):
        assert sorted(run(store.list_item_ids("published"))) == ["p1", "p2"]
        assert len(run(store.list_item_ids())) == 3


class TestWrites:
    def test_write_score(self, store, client):
        assert run(store.write_popularity_score("p1", 3.5)) == WriteResult.OK
        assert client.data["posts"]["p1"]["popularity_score"] == 3.5

    def test_write_to_missing_item(self, store):
        assert run(store.write_popularity_score("nope", 1.0)) == WriteResult.NOT_FOUND


class TestErrors:
    def test_unavailable_store_raises_retrieval_error(self, store, client):
        client.unavailable = True
        with pytest.raises(RetrievalError):
            run(store.find_followed_topic_ids("v"))
        with pytest.raises(RetrievalError):
            run(store.get_item_snapshot("p1"))

    def test_malformed_post_raises_retrieval_error(self, store, client):
        client.data["posts"]["bad"] = _post(views=-5)
        with pytest.raises(RetrievalError):
            run(store.find_eligible_items(eligibility_filter(NOW), [], 0, 10))

    def test_requires_client_or_credentials(self):
        with pytest.raises(ValueError):
            FirestoreContentStore()

    def test_malformed_subscription_raises_retrieval_error(self, store, client):
        client.data["subscriptions"]["bad"] = {"subscriber_id": "v", "status": "active"}
        with pytest.raises(RetrievalError):
            run(store.find_active_subscription_creator_ids("v", NOW))

    def test_malformed_post_in_snapshot_raises_retrieval_error(self, store, client):
        client.data["posts"]["p1"]["views"] = "lots"
        with pytest.raises(RetrievalError):
            run(store.get_item_snapshot("p1"))

    def test_malformed_author_raises_retrieval_error(self, store, client):
        client.data["users"]["a1"]["is_creator"] = {"nested": True}
        with pytest.raises(RetrievalError):
            run(store.get_item_snapshot("p1"))

    def test_malformed_bookmarked_post_raises_retrieval_error(self, store, client):
        client.data["posts"]["p2"]["reading_time"] = "long"
        with pytest.raises(RetrievalError):
            run(store.find_recent_bookmarks("v", 10))

    def test_malformed_document_fails_the_feed_request(self, store, client):
        client.data["subscriptions"]["bad"] = {"subscriber_id": "v", "status": "active"}
        states = []
        composer = FeedComposer(store, clock=fixed_clock, observer=lambda mode, state: states.append(state))
        with pytest.raises(RetrievalError):
            run(composer.get_personalized_feed("v"))
        assert states == [FeedState.AGGREGATING, FeedState.FAILED]


def _triples(filters):
    return [(f.field_path, f.op_string, f.value) for f in filters]


def _doc(item):
    data = item.model_dump(exclude={"id"})
    data["tags"] = sorted(item.tags)
    data["liked_by"] = sorted(item.liked_by)
    data["status"] = item.status.value
    data["visibility"] = item.visibility.value
    return data


class TestQueryPushdown:
    """Filters Firestore can express run server-side; the rest is checked in process."""

    def test_popular_filter_is_a_single_public_query(self):
        plans = plan_queries(build_popular_filter(NOW, TimeRange.WEEK))
        assert len(plans) == 1
        assert _triples(plans[0]) == [
            ("status", "==", "published"),
            ("published_at", "<=", NOW),
            ("visibility", "==", "public"),
            ("published_at", ">=", NOW - timedelta(days=7)),
        ]

    def test_topic_query_reads_only_tagged_posts(self, store, client):
        items = run(store.find_eligible_items(build_topic_filter("python", NOW), [], 0, 20))
        assert [i.id for i in items] == ["p1"]
        assert client.docs_read["posts"] == 1
        _, filters = client.queries[-1]
        assert ("tags", "array_contains", "python") in filters
        assert ("visibility", "==", "public") in filters

    def test_subscribed_filter_fans_out_per_signal(self):
        profile = PreferenceProfile(
            viewer_id="v",
            subscribed_creators=frozenset({"c1", "c2"}),
            followed_topics=frozenset({"python", "rust"}),
        )
        f = build_subscribed_filter(profile, eligibility_filter(NOW, profile.subscribed_creators))
        plans = [_triples(p) for p in plan_queries(f)]
        # Two visibility alternatives times two signal alternatives.
        assert len(plans) == 4
        assert ("visibility", "==", "public") in plans[0]
        assert ("author_id", "in", ["c1", "c2"]) in plans[0]
        assert ("tags", "array_contains_any", ["python", "rust"]) in plans[1]
        for plan in plans:
            assert sum(op in ("in", "array_contains", "array_contains_any") for _, op, _ in plan) <= 1

    def test_wide_disjunction_stays_in_process(self):
        wide = {"$and": [
            {"status": {"$eq": "published"}},
            {"$or": [{"author_id": {"$eq": f"a{n}"}} for n in range(MAX_PUSHDOWN_QUERIES + 1)]},
        ]}
        plans = plan_queries(wide)
        assert [_triples(p) for p in plans] == [[("status", "==", "published")]]

    def test_personalized_results_match_in_process_evaluation(self):
        items = [
            make_item("fresh", age=timedelta(hours=3)),
            make_item("trending", age=timedelta(days=3), views=250),
            make_item("quiet", age=timedelta(days=3), views=5),
            make_item("followed", age=timedelta(days=40), tags=frozenset({"python", "web"})),
            make_item("subscribed", author_id="c1", age=timedelta(days=30)),
            make_item("members", author_id="c1", age=timedelta(days=20), visibility=Visibility.SUBSCRIBERS),
            make_item("other-members", author_id="c2", visibility=Visibility.SUBSCRIBERS),
            make_item("private", author_id="c1", visibility=Visibility.PRIVATE),
            make_item("draft", status=LifecycleStatus.DRAFT),
            make_item("scheduled", age=-timedelta(hours=2), tags=frozenset({"python"})),
        ]
        client = FakeAsyncClient({"posts": {item.id: _doc(item) for item in items}})
        profile = PreferenceProfile(
            viewer_id="v",
            subscribed_creators=frozenset({"c1"}),
            followed_topics=frozenset({"python"}),
        )
        f = FeedComposer(make_store()).personalized_filter(profile, NOW)

        pushed = run(FirestoreContentStore(client=client).find_eligible_items(f, PERSONALIZED_FETCH_SORT, 0, 50))
        local = run(make_store(items=items).find_eligible_items(f, PERSONALIZED_FETCH_SORT, 0, 50))

        assert [i.id for i in pushed] == [i.id for i in local]
        assert {i.id for i in pushed} == {"fresh", "trending", "followed", "subscribed", "members"}
        assert 1 < len(client.queries) <= MAX_PUSHDOWN_QUERIES
