from __future__ import annotations

from dataclasses import replace
from typing import Iterable, Mapping

from src.domain.models import (
    DelayRecord,
    Departure,
    FeedSnapshot,
    GtfsRoute,
    RealtimeDelays,
    StopTime,
    StopTimeUpdate,
)

from .gtfs_time import (
    add_minutes_to_time,
    delay_seconds_to_minutes,
    is_time_after,
    time_to_minutes,
)

UNKNOWN_LINE = "Unknown"
UNKNOWN_DESTINATION = "Ziel unbekannt"


def _group_by_trip(
    stop_times: Iterable[StopTime],
) -> dict[str, list[StopTime]]:
    out: dict[str, list[StopTime]] = {}
    for st in stop_times:
        out.setdefault(st.trip_id, []).append(st)
    return out


def _destination_call(
    calls: list[StopTime], *, to_stop_id: str, after_sequence: int
) -> StopTime | None:
    for st in calls:
        if st.stop_id == to_stop_id and st.stop_sequence > after_sequence:
            return st
    return None


def dedupe_departures(departures: Iterable[Departure]) -> list[Departure]:
    """Drop repeats of the same (line, departure time, destination)."""

    seen: set[tuple[str, str, str]] = set()
    out: list[Departure] = []
    for dep in departures:
        key = (dep.line, dep.departure_time, dep.destination)
        if key in seen:
            continue
        seen.add(key)
        out.append(dep)
    return out


def diversify_by_line(
    departures: list[Departure], *, max_results: int
) -> list[Departure]:
    """One departure per line first, then the rest in their original order."""

    first_per_line: list[int] = []
    used_lines: set[str] = set()
    for i, dep in enumerate(departures):
        if dep.line not in used_lines:
            used_lines.add(dep.line)
            first_per_line.append(i)

    picked = set(first_per_line)
    order = first_per_line + [i for i in range(len(departures)) if i not in picked]
    return [departures[i] for i in order[: max(0, max_results)]]


def find_departures(
    snapshot: FeedSnapshot,
    *,
    from_stop_id: str,
    to_stop_id: str,
    now_hms: str,
    max_results: int = 10,
    origin_label: str | None = None,
) -> list[Departure]:
    """Scheduled departures from one stop that later call at another stop.

    Only departures strictly after `now_hms` (minute granularity, same service
    day) are considered. Trips that reach the destination before the origin
    are excluded.
    """

    calls_by_trip = _group_by_trip(snapshot.stop_times)

    origin_name = origin_label
    if origin_name is None:
        stop = snapshot.stops_by_id.get(from_stop_id)
        origin_name = stop.name if stop else from_stop_id

    candidates: list[tuple[int, Departure]] = []
    for st in snapshot.stop_times:
        if st.stop_id != from_stop_id:
            continue
        try:
            dep_minutes = time_to_minutes(st.departure_time)
            if not is_time_after(st.departure_time, now_hms):
                continue
        except ValueError:
            continue

        arrival = _destination_call(
            calls_by_trip.get(st.trip_id, []),
            to_stop_id=to_stop_id,
            after_sequence=st.stop_sequence,
        )
        if arrival is None:
            continue

        trip = snapshot.trips_by_id.get(st.trip_id)
        line = snapshot.line_for_route(trip.route_id if trip else None)

        candidates.append(
            (
                dep_minutes,
                Departure(
                    trip_id=st.trip_id,
                    line=line or UNKNOWN_LINE,
                    destination=(trip.headsign if trip else None)
                    or UNKNOWN_DESTINATION,
                    origin=origin_name,
                    departure_time=st.departure_time,
                    arrival_time=arrival.arrival_time,
                ),
            )
        )

    candidates.sort(key=lambda c: c[0])
    unique = dedupe_departures(dep for _, dep in candidates)
    return diversify_by_line(unique, max_results=max_results)


def _update_scope(upd: StopTimeUpdate) -> tuple[str, int | str] | None:
    if upd.entity_index is not None:
        return ("entity", upd.entity_index)
    if upd.trip_id:
        return ("trip", upd.trip_id)
    return None


def extract_delays(
    updates: Iterable[StopTimeUpdate], *, stop_id: str
) -> RealtimeDelays:
    """Collect per-trip delays (whole minutes) observed at one stop.

    Only the first update at that stop within each feed entity counts (within
    each trip when the entity is unknown), and only non-zero delays are kept.
    A later entity for the same trip overrides the earlier delay and adds its
    own record. The departure delay wins over the arrival delay.
    """

    by_trip: dict[str, int] = {}
    records: list[DelayRecord] = []
    seen: set[tuple[str, int | str]] = set()

    for upd in updates:
        if upd.stop_id != stop_id:
            continue
        scope = _update_scope(upd)
        if scope is not None:
            if scope in seen:
                continue
            seen.add(scope)

        delay_s = upd.departure_delay_s or upd.arrival_delay_s
        if not delay_s:
            continue

        minutes = delay_seconds_to_minutes(delay_s)
        if upd.trip_id:
            by_trip[upd.trip_id] = minutes
        records.append(
            DelayRecord(
                trip_id=upd.trip_id,
                route_id=upd.route_id,
                stop_id=stop_id,
                delay_minutes=minutes,
            )
        )

    return RealtimeDelays(by_trip=by_trip, records=tuple(records))


def delay_by_line(
    line: str,
    records: Iterable[DelayRecord],
    routes_by_id: Mapping[str, GtfsRoute],
) -> int:
    """Heuristic: first positive delay reported for any trip of the same line.

    Used when trip ids differ between the static and the realtime feed. It may
    attach the delay of another vehicle of the same line.
    """

    for rec in records:
        route = routes_by_id.get(rec.route_id) if rec.route_id else None
        if route is None or route.short_name is None:
            continue
        if route.short_name == line and rec.delay_minutes > 0:
            return rec.delay_minutes
    return 0


def apply_delays(
    departures: Iterable[Departure],
    delays: RealtimeDelays,
    *,
    routes_by_id: Mapping[str, GtfsRoute],
    line_fallback: bool = True,
) -> list[Departure]:
    out: list[Departure] = []
    for dep in departures:
        delay = delays.by_trip.get(dep.trip_id, 0) if dep.trip_id else 0
        if not delay and line_fallback:
            delay = delay_by_line(dep.line, delays.records, routes_by_id)

        out.append(
            replace(
                dep,
                delay=delay,
                actual_departure_time=add_minutes_to_time(dep.departure_time, delay),
            )
        )
    return out
