"""Feed engine exceptions."""


class FeedError(Exception):
    """Base class for feed engine errors."""


class FeedValidationError(FeedError, ValueError):
    """Caller passed an out-of-range page, limit, time range, or sort field."""


class RetrievalError(FeedError):
    """The content store failed to answer a read."""


class DataIntegrityError(FeedError):
    """An ineligible item (not published, or no publish date) reached the scorer."""


class PopularityWriteError(FeedError):
    """Writing a popularity score kept failing after all retry attempts."""
