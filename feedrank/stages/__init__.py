"""Pipeline stages: preferences, candidate query, ranking, popularity, feed composition."""

from .candidate_query import (
    build_candidate_filter,
    build_popular_filter,
    build_subscribed_filter,
    build_topic_filter,
    eligibility_filter,
)
from .orchestrator import FeedComposer, validate_page
from .popularity import EngagementEvent, PopularitySweep, PopularityUpdater, UpdateOutcome
from .preferences import aggregate_preferences, extract_favorite_topics, preferred_reading_time
from .ranking import rank_candidates

__all__ = [
    "EngagementEvent",
    "FeedComposer",
    "PopularitySweep",
    "PopularityUpdater",
    "UpdateOutcome",
    "aggregate_preferences",
    "build_candidate_filter",
    "build_popular_filter",
    "build_subscribed_filter",
    "build_topic_filter",
    "eligibility_filter",
    "extract_favorite_topics",
    "preferred_reading_time",
    "rank_candidates",
    "validate_page",
]
