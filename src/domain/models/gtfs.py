from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from .stop import Stop


@dataclass(frozen=True, slots=True)
class StopTime:
    """One scheduled call of a trip at a stop.

    Times are GTFS HH:MM:SS strings; the hour may exceed 23 for trips running
    past midnight of their service day.
    """

    trip_id: str
    stop_id: str
    stop_sequence: int
    arrival_time: str
    departure_time: str


@dataclass(frozen=True, slots=True)
class GtfsRoute:
    route_id: str
    short_name: str | None = None
    long_name: str | None = None


@dataclass(frozen=True, slots=True)
class GtfsTrip:
    trip_id: str
    route_id: str | None = None
    service_id: str | None = None
    headsign: str | None = None


@dataclass(frozen=True, slots=True)
class FeedSnapshot:
    """One complete build of the static feed.

    Published as a whole and never mutated afterwards; `stop_times` only holds
    rows of trips that serve the relevant stops.
    """

    stops_by_id: dict[str, Stop]
    trips_by_id: dict[str, GtfsTrip]
    routes_by_id: dict[str, GtfsRoute]
    stop_times: tuple[StopTime, ...]
    last_updated: datetime

    def line_for_route(self, route_id: str | None) -> str | None:
        if route_id is None:
            return None
        route = self.routes_by_id.get(route_id)
        return route.short_name if route else None
