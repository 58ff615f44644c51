from .realtime_delay_provider import IRealtimeDelayProvider
from .snapshot_cache import ISnapshotCache
from .static_feed_source import IStaticFeedSource

__all__ = [
    "IRealtimeDelayProvider",
    "ISnapshotCache",
    "IStaticFeedSource",
]
