"""
Feed configuration — candidate, scoring and popularity parameters.

FeedConfig defaults are defined here. The backend may pass a dict
(e.g. from a feed_config.json file); from_dict() merges it with these defaults.
"""

from typing import Dict, Optional

from pydantic import BaseModel, model_validator


class FeedConfig(BaseModel):
    """Configuration for feed composition and ranking."""

    # -------------------------------------------------------------------------
    # Candidate retrieval
    # -------------------------------------------------------------------------

    # Trending floor clause: items with at least this many views...
    trending_min_views: int = 100
    # ...published within this many days.
    trending_window_days: int = 7
    # Fresh floor clause: items published within this many hours.
    fresh_window_hours: int = 24

    # Personalized mode ranks one candidate window per request and pages slice it.
    # The window holds the top candidate_window items by stored popularity, and
    # never fewer than limit * fetch_window_multiplier.
    candidate_window: int = 1000
    fetch_window_multiplier: int = 3

    # -------------------------------------------------------------------------
    # Preference aggregation
    # -------------------------------------------------------------------------

    # Most-recent bookmarks sampled for favorite topics and reading time.
    bookmark_sample_size: int = 50
    # Favorite topics kept after ranking by bookmark tag frequency.
    favorite_topics_limit: int = 10
    # Preferred reading time (minutes) when the viewer has no bookmarks.
    default_reading_time: float = 5.0

    # -------------------------------------------------------------------------
    # Personalized score
    # score = popularity + subscription + tag matches + log(views) + likes
    #         + bookmarks + freshness
    # -------------------------------------------------------------------------

    subscription_bonus: float = 50.0
    # Per followed tag present on the item.
    tag_match_bonus: float = 20.0
    # Multiplier on ln(views + 1).
    view_log_weight: float = 2.0
    like_weight: float = 5.0
    bookmark_weight: float = 10.0

    # -------------------------------------------------------------------------
    # Freshness bonus
    # age < fresh_bonus_days          -> fresh_bonus
    # age < recent_bonus_days         -> max(0, recent_bonus_base - recent_bonus_slope * age)
    # -------------------------------------------------------------------------

    fresh_bonus_days: float = 1.0
    fresh_bonus: float = 30.0
    recent_bonus_days: float = 7.0
    recent_bonus_base: float = 20.0
    recent_bonus_slope: float = 2.0

    # -------------------------------------------------------------------------
    # Popularity score (viewer independent)
    # raw = views * w_v + likes * w_l + bookmarks * w_b + comments * w_c
    # score = raw * exp(-age_days / popularity_decay_days) [* creator multiplier]
    # -------------------------------------------------------------------------

    popularity_view_weight: float = 0.1
    popularity_like_weight: float = 2.0
    popularity_bookmark_weight: float = 5.0
    popularity_comment_weight: float = 3.0
    popularity_decay_days: float = 7.0
    creator_multiplier: float = 1.2
    # Write attempts before PopularityWriteError.
    popularity_write_attempts: int = 3

    @model_validator(mode="after")
    def freshness_breakpoints_ordered(self):
        if not 0 < self.fresh_bonus_days <= self.recent_bonus_days:
            raise ValueError(
                "Freshness breakpoints must satisfy 0 < fresh_bonus_days <= recent_bonus_days, "
                f"got {self.fresh_bonus_days} and {self.recent_bonus_days}"
            )
        if self.popularity_decay_days <= 0:
            raise ValueError(f"popularity_decay_days must be positive, got {self.popularity_decay_days}")
        if min(self.candidate_window, self.fetch_window_multiplier, self.popularity_write_attempts) < 1:
            raise ValueError("candidate_window, fetch_window_multiplier and popularity_write_attempts must be >= 1")
        return self

    @classmethod
    def from_dict(cls, config_dict: Dict) -> "FeedConfig":
        """Create config from a (possibly grouped) dictionary, e.g. loaded from JSON."""
        flat = {}
        for group in ("candidates", "preferences", "scoring", "freshness", "popularity"):
            if group in config_dict:
                flat.update(config_dict[group])
        flat.update({k: v for k, v in config_dict.items() if not isinstance(v, dict)})
        allowed = set(cls.model_fields)
        filtered = {k: v for k, v in flat.items() if k in allowed}
        return cls.model_validate(filtered)


DEFAULT_CONFIG = FeedConfig()


def resolve_config(config: Optional["FeedConfig"]) -> "FeedConfig":
    """Return config or DEFAULT_CONFIG when none is provided."""
    return config if config is not None else DEFAULT_CONFIG
