from __future__ import annotations

import os
from functools import lru_cache, partial

from src.adapters.feed import (
    HttpStaticFeedSource,
    LocalStaticFeedSource,
    parse_feed_archive,
)
from src.adapters.persistence import JsonFileSnapshotCache, S3SnapshotCache
from src.adapters.realtime.http_gtfs_realtime_delay_provider import (
    HttpGtfsRealtimeDelayProvider,
)
from src.app.ports.output import (
    IRealtimeDelayProvider,
    ISnapshotCache,
    IStaticFeedSource,
)
from src.app.services.departure_service import DepartureService
from src.app.services.feed_store import FeedStore
from src.config import BoardSettings


@lru_cache(maxsize=1)
def get_settings() -> BoardSettings:
    return BoardSettings.from_env()


def build_feed_store(settings: BoardSettings) -> FeedStore:
    source: IStaticFeedSource = HttpStaticFeedSource()
    if os.getenv("GTFS_ZIP_PATH"):
        source = LocalStaticFeedSource()

    cache: ISnapshotCache = JsonFileSnapshotCache()
    if os.getenv("SNAPSHOT_CACHE_BUCKET"):
        cache = S3SnapshotCache()

    return FeedStore(
        source=source,
        parse_archive=partial(
            parse_feed_archive, relevant_stop_ids=(settings.origin_stop_id,)
        ),
        cache=cache,
        max_age_s=settings.feed_max_age_s,
    )


# One store per process: the snapshot lives in memory between requests.
@lru_cache(maxsize=1)
def get_feed_store() -> FeedStore:
    return build_feed_store(get_settings())


@lru_cache(maxsize=1)
def get_delay_provider() -> IRealtimeDelayProvider:
    return HttpGtfsRealtimeDelayProvider()


def get_departure_service() -> DepartureService:
    return DepartureService(
        feed_store=get_feed_store(),
        delay_provider=get_delay_provider(),
        settings=get_settings(),
    )
