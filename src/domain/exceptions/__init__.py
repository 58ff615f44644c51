from .feed import FeedError, FeedNetworkError, FeedNotLoaded, FeedParseError

__all__ = [
    "FeedError",
    "FeedNetworkError",
    "FeedNotLoaded",
    "FeedParseError",
]
