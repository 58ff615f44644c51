from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from zoneinfo import ZoneInfo

from src.app.ports.output import IRealtimeDelayProvider
from src.app.services.feed_store import FeedStore
from src.config import BoardSettings
from src.domain.algorithms.departures import (
    apply_delays,
    extract_delays,
    find_departures,
)
from src.domain.algorithms.gtfs_time import format_gtfs_time
from src.domain.exceptions import FeedError, FeedNotLoaded
from src.domain.models import Departure, DepartureBoard, RealtimeDelays

logger = logging.getLogger(__name__)

FALLBACK_DEPARTURES: tuple[Departure, ...] = (
    Departure(
        trip_id=None,
        line="6",
        destination="Bremen Hbf",
        origin="Bremen Haferkamp",
        departure_time="15:45:00",
        delay=0,
        is_real=False,
    ),
    Departure(
        trip_id=None,
        line="6",
        destination="Bremen Hbf",
        origin="Bremen Haferkamp",
        departure_time="16:00:00",
        delay=2,
        is_real=False,
    ),
    Departure(
        trip_id=None,
        line="6",
        destination="Bremen Hbf",
        origin="Bremen Haferkamp",
        departure_time="16:15:00",
        delay=0,
        is_real=False,
    ),
)


@dataclass(slots=True)
class DepartureService:
    """Next departures between two stops, merged with realtime delays.

    Never fails because of upstream feeds: without realtime data delays are
    zero, without a static snapshot the fixed fallback board is returned.
    """

    feed_store: FeedStore
    delay_provider: IRealtimeDelayProvider | None = None
    settings: BoardSettings = field(default_factory=BoardSettings)

    def _now(self) -> datetime:
        return datetime.now(ZoneInfo(self.settings.timezone))

    async def get_board(
        self,
        *,
        from_stop_id: str | None = None,
        to_stop_id: str | None = None,
        limit: int | None = None,
        now: datetime | None = None,
    ) -> DepartureBoard:
        from_stop_id = from_stop_id or self.settings.origin_stop_id
        to_stop_id = to_stop_id or self.settings.destination_stop_id
        limit = limit or self.settings.default_limit

        try:
            snapshot = self.feed_store.require_snapshot()
        except FeedNotLoaded as exc:
            logger.warning("Serving fallback departures: %s", exc)
            return fallback_board(message=str(exc))

        now_hms = format_gtfs_time(now or self._now())
        origin_label = (
            self.settings.origin_label
            if from_stop_id == self.settings.origin_stop_id
            else None
        )

        scheduled = find_departures(
            snapshot,
            from_stop_id=from_stop_id,
            to_stop_id=to_stop_id,
            now_hms=now_hms,
            max_results=max(limit, self.settings.scan_limit),
            origin_label=origin_label,
        )

        delays, realtime_available = await self._delays_at(from_stop_id)
        merged = apply_delays(
            scheduled,
            delays,
            routes_by_id=snapshot.routes_by_id,
            line_fallback=self.settings.line_delay_fallback,
        )

        logger.info(
            "Found %d departures after %s, %d with delays",
            len(merged),
            now_hms,
            sum(1 for d in merged if d.delay > 0),
        )

        return DepartureBoard(
            success=True,
            last_updated=snapshot.last_updated,
            routes=tuple(merged[:limit]),
            source=self.settings.source_label,
            realtime_available=realtime_available,
        )

    async def _delays_at(self, stop_id: str) -> tuple[RealtimeDelays, bool]:
        if self.delay_provider is None:
            return RealtimeDelays(), False
        try:
            updates = await self.delay_provider.list_stop_time_updates()
        except FeedError as exc:
            logger.warning("Realtime delays unavailable: %s", exc)
            return RealtimeDelays(), False
        return extract_delays(updates, stop_id=stop_id), True


def fallback_board(*, message: str | None = None) -> DepartureBoard:
    return DepartureBoard(
        success=False,
        last_updated=None,
        routes=FALLBACK_DEPARTURES,
        source="fallback",
        message=message,
        realtime_available=False,
    )
