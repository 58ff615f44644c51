from .gtfs_archive_parser import parse_feed_archive, split_csv_line
from .http_static_feed_source import HttpStaticFeedSource
from .local_static_feed_source import LocalStaticFeedSource

__all__ = [
    "HttpStaticFeedSource",
    "LocalStaticFeedSource",
    "parse_feed_archive",
    "split_csv_line",
]
