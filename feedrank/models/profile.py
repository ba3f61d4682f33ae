"""
PreferenceProfile — the per-request summary of a viewer's explicit and inferred interests.

Favorite topics are a tagged outcome so "never measured" (NoHistory) cannot be
confused with "measured and empty" (ComputedTopics with no topics).
"""

from typing import FrozenSet, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

from .config import DEFAULT_CONFIG


class NoHistory(BaseModel):
    """The viewer has no bookmark history to infer topics from."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["no_history"] = "no_history"


class ComputedTopics(BaseModel):
    """Topics ranked by bookmark tag frequency, most frequent first."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["computed"] = "computed"
    topics: Tuple[str, ...] = ()


FavoriteTopics = Union[NoHistory, ComputedTopics]


class PreferenceProfile(BaseModel):
    """Derived, never persisted. Recomputed for every request."""

    model_config = ConfigDict(frozen=True)

    viewer_id: Optional[str] = None
    subscribed_creators: FrozenSet[str] = frozenset()
    followed_topics: FrozenSet[str] = frozenset()
    bookmarked_items: Tuple[str, ...] = ()
    favorite_topics: FavoriteTopics = Field(default_factory=NoHistory, discriminator="kind")
    preferred_reading_time: float = DEFAULT_CONFIG.default_reading_time

    @classmethod
    def anonymous(cls, default_reading_time: Optional[float] = None) -> "PreferenceProfile":
        if default_reading_time is None:
            default_reading_time = DEFAULT_CONFIG.default_reading_time
        return cls(preferred_reading_time=default_reading_time)

    @property
    def has_explicit_signals(self) -> bool:
        """True if the viewer subscribes to a creator or follows a topic."""
        return bool(self.subscribed_creators or self.followed_topics)

    def favorite_topic_list(self) -> List[str]:
        if isinstance(self.favorite_topics, ComputedTopics):
            return list(self.favorite_topics.topics)
        return []
