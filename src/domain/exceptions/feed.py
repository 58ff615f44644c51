class FeedError(Exception):
    """Base exception for static or realtime feed failures."""


class FeedNetworkError(FeedError):
    """Raised when an upstream feed is unreachable or answers non-2xx."""


class FeedParseError(FeedError):
    """Raised when an archive, table or realtime document cannot be parsed."""


class FeedNotLoaded(FeedError):
    """Raised when no static snapshot has been published yet."""
