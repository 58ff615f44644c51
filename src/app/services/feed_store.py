from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable

from src.app.ports.output import ISnapshotCache, IStaticFeedSource
from src.domain.exceptions import FeedError, FeedNotLoaded
from src.domain.models import FeedSnapshot, RefreshOutcome

logger = logging.getLogger(__name__)

ArchiveParser = Callable[[bytes], FeedSnapshot]


@dataclass(slots=True)
class FeedStore:
    """Owns the current static snapshot and refreshes it.

    - A new snapshot is published by swapping one reference, only after a
      complete parse; readers keep whatever snapshot they already took.
    - Refreshes are serialized; a failed refresh keeps the previous snapshot.
    - The cache is best-effort: read and write errors are logged only.
    """

    source: IStaticFeedSource
    parse_archive: ArchiveParser
    cache: ISnapshotCache | None = None
    max_age_s: float = 3600.0

    _snapshot: FeedSnapshot | None = field(default=None, init=False, repr=False)
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, init=False, repr=False)

    @property
    def snapshot(self) -> FeedSnapshot | None:
        return self._snapshot

    @property
    def is_refreshing(self) -> bool:
        return self._lock.locked()

    def require_snapshot(self) -> FeedSnapshot:
        snapshot = self._snapshot
        if snapshot is None:
            raise FeedNotLoaded("GTFS data not loaded yet")
        return snapshot

    def publish(self, snapshot: FeedSnapshot) -> None:
        self._snapshot = snapshot

    async def refresh(self, *, force: bool = False) -> RefreshOutcome:
        async with self._lock:
            if not force:
                current = self._snapshot
                if current is not None:
                    age_s = _age_s(current.last_updated)
                    if age_s < self.max_age_s:
                        logger.info(
                            "GTFS data is still fresh (%d minutes old), skipping",
                            round(age_s / 60),
                        )
                        return RefreshOutcome(
                            success=True,
                            origin="memory",
                            last_updated=current.last_updated,
                        )

                cached = await self._load_fresh_cache()
                if cached is not None:
                    self.publish(cached)
                    return RefreshOutcome(
                        success=True, origin="cache", last_updated=cached.last_updated
                    )

            logger.info("Downloading GTFS data...")
            try:
                content = await self.source.fetch_archive()
                snapshot = await asyncio.to_thread(self.parse_archive, content)
            except FeedError as exc:
                previous = self._snapshot
                logger.error("Error updating GTFS data: %s", exc)
                return RefreshOutcome(
                    success=False,
                    origin="none",
                    last_updated=previous.last_updated if previous else None,
                    error=str(exc),
                )

            self.publish(snapshot)
            logger.info(
                "GTFS data updated: %d stops, %d trips, %d stop_times",
                len(snapshot.stops_by_id),
                len(snapshot.trips_by_id),
                len(snapshot.stop_times),
            )
            await self._save_cache(snapshot)
            return RefreshOutcome(
                success=True, origin="network", last_updated=snapshot.last_updated
            )

    async def run_periodic(
        self, *, interval_s: float, refresh_first: bool = True
    ) -> None:
        """Refresh now (optionally) and then every `interval_s` until cancelled."""

        if refresh_first:
            await self._refresh_logged()
        while True:
            await asyncio.sleep(interval_s)
            await self._refresh_logged()

    async def _refresh_logged(self) -> None:
        try:
            await self.refresh(force=False)
        except Exception:
            # Timer must keep running whatever happens upstream.
            logger.exception("Scheduled GTFS refresh crashed")

    async def _load_fresh_cache(self) -> FeedSnapshot | None:
        if self.cache is None:
            return None
        try:
            age_s = await asyncio.to_thread(self.cache.age_s)
            if age_s is None or age_s >= self.max_age_s:
                return None
            logger.info(
                "Loading GTFS data from cache (%d minutes old)...", round(age_s / 60)
            )
            snapshot = await asyncio.to_thread(self.cache.load)
        except Exception as exc:
            logger.warning("Error reading GTFS cache, downloading instead: %s", exc)
            return None

        logger.info(
            "GTFS data loaded from cache: %d stops, %d trips, %d stop_times",
            len(snapshot.stops_by_id),
            len(snapshot.trips_by_id),
            len(snapshot.stop_times),
        )
        return snapshot

    async def _save_cache(self, snapshot: FeedSnapshot) -> None:
        if self.cache is None:
            return
        try:
            await asyncio.to_thread(self.cache.save, snapshot)
        except Exception as exc:
            logger.warning("Error saving GTFS cache: %s", exc)


def _age_s(moment: datetime) -> float:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return (datetime.now(timezone.utc) - moment).total_seconds()
