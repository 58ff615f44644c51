from __future__ import annotations

import io
import logging
import zipfile
import zlib
from datetime import datetime, timezone
from typing import Iterable, Iterator

from src.domain.exceptions import FeedParseError
from src.domain.models import FeedSnapshot, GtfsRoute, GtfsTrip, Stop, StopTime

logger = logging.getLogger(__name__)

REQUIRED_TABLES = ("stops.txt", "trips.txt", "routes.txt", "stop_times.txt")

# What zipfile raises for a member it cannot decompress or decrypt.
_UNREADABLE_MEMBER = (
    zipfile.BadZipFile,
    zlib.error,
    OSError,
    EOFError,
    NotImplementedError,
    RuntimeError,
)


def _clean(field: str) -> str:
    value = field.strip()
    if len(value) >= 2 and value.startswith('"') and value.endswith('"'):
        value = value[1:-1]
    return value


def split_csv_line(line: str) -> list[str]:
    """Split one CSV line on commas that are not inside double quotes.

    Each field loses surrounding whitespace and its enclosing quote pair;
    doubled quotes inside a field are left as they are.
    """

    fields: list[str] = []
    current: list[str] = []
    in_quotes = False
    for ch in line.rstrip("\r\n"):
        if ch == '"':
            in_quotes = not in_quotes
            current.append(ch)
        elif ch == "," and not in_quotes:
            fields.append(_clean("".join(current)))
            current = []
        else:
            current.append(ch)
    fields.append(_clean("".join(current)))
    return fields


class _Table:
    """Header-indexed access to the rows of one GTFS table."""

    def __init__(self, name: str, header: list[str]) -> None:
        self.name = name
        self.columns = {col: i for i, col in enumerate(header) if col}

    def require(self, column: str) -> int:
        idx = self.columns.get(column)
        if idx is None:
            raise FeedParseError(f"{self.name}: missing column {column!r}")
        return idx

    def optional(self, column: str) -> int | None:
        return self.columns.get(column)


def _get(parts: list[str], idx: int | None) -> str:
    if idx is None or idx >= len(parts):
        return ""
    return parts[idx]


def _to_float(raw: str) -> float:
    try:
        return float(raw)
    except ValueError:
        return 0.0


def _iter_lines(archive: zipfile.ZipFile, name: str) -> Iterator[str]:
    try:
        raw = archive.open(name)
    except KeyError as exc:
        raise FeedParseError(f"Archive has no {name}") from exc
    with io.TextIOWrapper(raw, encoding="utf-8-sig", errors="replace") as fp:
        yield from fp


def _read_table(
    archive: zipfile.ZipFile, name: str
) -> tuple[_Table, Iterator[list[str]]]:
    lines = _iter_lines(archive, name)
    header_line = next(lines, "")
    table = _Table(name, split_csv_line(header_line))

    def rows() -> Iterator[list[str]]:
        for line in lines:
            if not line.strip():
                continue
            yield split_csv_line(line)

    return table, rows()


def _parse_stops(archive: zipfile.ZipFile) -> dict[str, Stop]:
    table, rows = _read_table(archive, "stops.txt")
    i_id = table.require("stop_id")
    i_name = table.optional("stop_name")
    i_lat = table.optional("stop_lat")
    i_lon = table.optional("stop_lon")

    stops: dict[str, Stop] = {}
    for parts in rows:
        stop_id = _get(parts, i_id)
        if not stop_id:
            continue
        stops[stop_id] = Stop(
            id=stop_id,
            name=_get(parts, i_name) or stop_id,
            lat=_to_float(_get(parts, i_lat)),
            lon=_to_float(_get(parts, i_lon)),
        )
    return stops


def _parse_trips(archive: zipfile.ZipFile) -> dict[str, GtfsTrip]:
    table, rows = _read_table(archive, "trips.txt")
    i_trip = table.require("trip_id")
    i_route = table.optional("route_id")
    i_service = table.optional("service_id")
    i_headsign = table.optional("trip_headsign")

    trips: dict[str, GtfsTrip] = {}
    for parts in rows:
        trip_id = _get(parts, i_trip)
        if not trip_id:
            continue
        trips[trip_id] = GtfsTrip(
            trip_id=trip_id,
            route_id=_get(parts, i_route) or None,
            service_id=_get(parts, i_service) or None,
            headsign=_get(parts, i_headsign) or None,
        )
    return trips


def _parse_routes(archive: zipfile.ZipFile) -> dict[str, GtfsRoute]:
    table, rows = _read_table(archive, "routes.txt")
    i_route = table.require("route_id")
    i_short = table.optional("route_short_name")
    i_long = table.optional("route_long_name")

    routes: dict[str, GtfsRoute] = {}
    for parts in rows:
        route_id = _get(parts, i_route)
        if not route_id:
            continue
        routes[route_id] = GtfsRoute(
            route_id=route_id,
            short_name=_get(parts, i_short) or None,
            long_name=_get(parts, i_long) or None,
        )
    return routes


def _parse_stop_times(
    archive: zipfile.ZipFile, relevant_stop_ids: frozenset[str]
) -> tuple[StopTime, ...]:
    # Pass 1: trips calling at any relevant stop.
    table, rows = _read_table(archive, "stop_times.txt")
    i_trip = table.require("trip_id")
    i_stop = table.require("stop_id")
    i_seq = table.require("stop_sequence")
    i_arr = table.require("arrival_time")
    i_dep = table.require("departure_time")
    needed = max(i_trip, i_stop, i_seq, i_arr, i_dep) + 1

    relevant_trips: set[str] = set()
    for parts in rows:
        if len(parts) >= needed and parts[i_stop] in relevant_stop_ids:
            relevant_trips.add(parts[i_trip])

    # Pass 2: every call of those trips.
    _, rows = _read_table(archive, "stop_times.txt")
    out: list[StopTime] = []
    skipped = 0
    for parts in rows:
        if len(parts) < needed:
            skipped += 1
            continue
        trip_id = parts[i_trip]
        if trip_id not in relevant_trips:
            continue
        try:
            seq = int(parts[i_seq])
        except ValueError:
            skipped += 1
            continue
        out.append(
            StopTime(
                trip_id=trip_id,
                stop_id=parts[i_stop],
                stop_sequence=seq,
                arrival_time=parts[i_arr],
                departure_time=parts[i_dep],
            )
        )

    if skipped:
        logger.warning("stop_times.txt: skipped %d malformed rows", skipped)

    out.sort(key=lambda st: (st.trip_id, st.stop_sequence))
    return tuple(out)


def parse_feed_archive(
    content: bytes,
    *,
    relevant_stop_ids: Iterable[str],
    updated_at: datetime | None = None,
) -> FeedSnapshot:
    """Build a FeedSnapshot from a zipped GTFS static feed.

    Only stop_times of trips that serve one of `relevant_stop_ids` are kept.
    Raises FeedParseError if the archive or a required table is unusable.
    """

    relevant = frozenset(s for s in relevant_stop_ids if s)

    try:
        archive = zipfile.ZipFile(io.BytesIO(content))
    except zipfile.BadZipFile as exc:
        raise FeedParseError(f"Corrupt GTFS archive: {exc}") from exc

    with archive:
        names = set(archive.namelist())
        missing = [t for t in REQUIRED_TABLES if t not in names]
        if missing:
            raise FeedParseError(f"Archive is missing {', '.join(missing)}")

        try:
            stops = _parse_stops(archive)
            trips = _parse_trips(archive)
            routes = _parse_routes(archive)
            stop_times = _parse_stop_times(archive, relevant)
        except _UNREADABLE_MEMBER as exc:
            raise FeedParseError(f"Unreadable GTFS archive: {exc}") from exc

    logger.info(
        "Parsed %d stops, %d trips, %d routes, %d stop_times",
        len(stops),
        len(trips),
        len(routes),
        len(stop_times),
    )

    return FeedSnapshot(
        stops_by_id=stops,
        trips_by_id=trips,
        routes_by_id=routes,
        stop_times=stop_times,
        last_updated=updated_at or datetime.now(timezone.utc),
    )
