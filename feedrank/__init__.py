"""
Feed ranking engine — personalized, subscribed, popular, and topic feeds.

Single entry point for the feedrank package:
- models/: FeedConfig, ContentItem, PreferenceProfile, ScoredItem, FeedPage
- stages/: preferences, candidate_query, ranking, popularity, orchestrator
- store: ContentStore protocol consumed by the stages
"""

from .errors import (
    DataIntegrityError,
    FeedError,
    FeedValidationError,
    PopularityWriteError,
    RetrievalError,
)
from .models import (
    DEFAULT_CONFIG,
    ContentItem,
    FeedConfig,
    FeedMode,
    FeedPage,
    FeedState,
    PreferenceProfile,
    ScoredItem,
    SortField,
    SortOrder,
    TimeRange,
)
from .stages import (
    EngagementEvent,
    FeedComposer,
    PopularitySweep,
    PopularityUpdater,
    UpdateOutcome,
    aggregate_preferences,
    build_candidate_filter,
    rank_candidates,
)
from .store import ContentStore, WriteResult

__all__ = [
    "DEFAULT_CONFIG",
    "ContentItem",
    "ContentStore",
    "DataIntegrityError",
    "EngagementEvent",
    "FeedComposer",
    "FeedConfig",
    "FeedError",
    "FeedMode",
    "FeedPage",
    "FeedState",
    "FeedValidationError",
    "PopularitySweep",
    "PopularityUpdater",
    "PopularityWriteError",
    "PreferenceProfile",
    "RetrievalError",
    "ScoredItem",
    "SortField",
    "SortOrder",
    "TimeRange",
    "UpdateOutcome",
    "WriteResult",
    "aggregate_preferences",
    "build_candidate_filter",
    "rank_candidates",
]
