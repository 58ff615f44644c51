from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping

from src.domain.exceptions import FeedParseError
from src.domain.models import FeedSnapshot, GtfsRoute, GtfsTrip, Stop, StopTime

FORMAT_VERSION = 1


def snapshot_to_document(snapshot: FeedSnapshot) -> dict[str, Any]:
    """Flat JSON-serializable record of a snapshot (all four tables)."""

    return {
        "version": FORMAT_VERSION,
        "last_updated": snapshot.last_updated.isoformat(),
        "stops": [
            [s.id, s.name, s.lat, s.lon] for s in snapshot.stops_by_id.values()
        ],
        "trips": [
            [t.trip_id, t.route_id, t.service_id, t.headsign]
            for t in snapshot.trips_by_id.values()
        ],
        "routes": [
            [r.route_id, r.short_name, r.long_name]
            for r in snapshot.routes_by_id.values()
        ],
        "stop_times": [
            [
                st.trip_id,
                st.stop_id,
                st.stop_sequence,
                st.arrival_time,
                st.departure_time,
            ]
            for st in snapshot.stop_times
        ],
    }


def snapshot_from_document(doc: Mapping[str, Any]) -> FeedSnapshot:
    if doc.get("version") != FORMAT_VERSION:
        raise FeedParseError(
            f"Unsupported snapshot cache version: {doc.get('version')}"
        )

    try:
        stops = {
            row[0]: Stop(id=row[0], name=row[1], lat=float(row[2]), lon=float(row[3]))
            for row in doc["stops"]
        }
        trips = {
            row[0]: GtfsTrip(
                trip_id=row[0], route_id=row[1], service_id=row[2], headsign=row[3]
            )
            for row in doc["trips"]
        }
        routes = {
            row[0]: GtfsRoute(route_id=row[0], short_name=row[1], long_name=row[2])
            for row in doc["routes"]
        }
        stop_times = tuple(
            StopTime(
                trip_id=row[0],
                stop_id=row[1],
                stop_sequence=int(row[2]),
                arrival_time=row[3],
                departure_time=row[4],
            )
            for row in doc["stop_times"]
        )
        last_updated = datetime.fromisoformat(doc["last_updated"])
    except (KeyError, IndexError, TypeError, ValueError) as exc:
        raise FeedParseError(f"Malformed snapshot cache: {exc}") from exc

    return FeedSnapshot(
        stops_by_id=stops,
        trips_by_id=trips,
        routes_by_id=routes,
        stop_times=stop_times,
        last_updated=last_updated,
    )
