from __future__ import annotations

import io
import zipfile
from datetime import datetime, timezone
from typing import Callable

import pytest

from src.config import BREMEN_HBF_STOP_ID as DEST
from src.config import HAFERKAMP_STOP_ID as ORIGIN
from src.domain.models import FeedSnapshot, GtfsRoute, GtfsTrip, Stop, StopTime

STOPS_TXT = (
    "stop_id,stop_code,stop_name,stop_desc,stop_lat,stop_lon\n"
    f'"{ORIGIN}","","Bremen Haferkamp","",53.0920,8.8120\n'
    f'"{DEST}","","Bremen Hauptbahnhof","",53.0830,8.8130\n'
    '"X1","","Bremen, Domsheide","",53.0750,8.8100\n'
)
ROUTES_TXT = (
    "route_id,agency_id,route_short_name,route_long_name,route_type\n"
    "R6,BSAG,6,Universitaet - Flughafen,0\n"
    "R1,BSAG,1,Huchting - Mahndorf,0\n"
)
TRIPS_TXT = (
    "route_id,service_id,trip_id,trip_headsign\n"
    'R6,S1,T1,"Flughafen"\n'
    "R6,S1,T2,Universitaet\n"
    "R1,S1,T3,Huchting\n"
)
STOP_TIMES_TXT = (
    "trip_id,stop_id,stop_sequence,pickup_type,drop_off_type,"
    "stop_headsign,arrival_time,departure_time\n"
    f"T1,{ORIGIN},1,0,0,,08:00:00,08:00:00\n"
    f"T1,{DEST},2,0,0,,08:10:00,08:10:00\n"
    f"T2,{DEST},1,0,0,,09:00:00,09:00:00\n"
    f"T2,{ORIGIN},2,0,0,,09:10:00,09:10:00\n"
    "T3,X1,1,0,0,,10:00:00,10:00:00\n"
    f"T3,{DEST},2,0,0,,10:05:00,10:05:00\n"
    "\n"
)


def make_zip(tables: dict[str, str]) -> bytes:
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as zf:
        for name, content in tables.items():
            zf.writestr(name, content)
    return buf.getvalue()


@pytest.fixture
def zip_builder() -> Callable[[dict[str, str]], bytes]:
    return make_zip


@pytest.fixture
def gtfs_tables() -> dict[str, str]:
    return {
        "stops.txt": STOPS_TXT,
        "routes.txt": ROUTES_TXT,
        "trips.txt": TRIPS_TXT,
        "stop_times.txt": STOP_TIMES_TXT,
    }


@pytest.fixture
def gtfs_zip(gtfs_tables: dict[str, str]) -> bytes:
    return make_zip(gtfs_tables)


@pytest.fixture
def snapshot_factory() -> Callable[..., FeedSnapshot]:
    def _make(
        *,
        stop_times: tuple[StopTime, ...] = (),
        trips: dict[str, GtfsTrip] | None = None,
        routes: dict[str, GtfsRoute] | None = None,
    ) -> FeedSnapshot:
        return FeedSnapshot(
            stops_by_id={
                ORIGIN: Stop(id=ORIGIN, name="Bremen Haferkamp"),
                DEST: Stop(id=DEST, name="Bremen Hauptbahnhof"),
            },
            trips_by_id=trips or {},
            routes_by_id=routes or {},
            stop_times=stop_times,
            last_updated=datetime(2026, 1, 8, 6, 0, tzinfo=timezone.utc),
        )

    return _make


@pytest.fixture
def damaged_gtfs_zip(gtfs_tables: dict[str, str]) -> bytes:
    """Deflated archive whose stops.txt member has garbled compressed data."""

    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for name, content in gtfs_tables.items():
            zf.writestr(name, content)
    data = bytearray(buf.getvalue())

    with zipfile.ZipFile(io.BytesIO(bytes(data))) as zf:
        info = zf.getinfo("stops.txt")
    # Local file header: 30 fixed bytes, then name and extra field.
    start = info.header_offset + 30 + len(info.filename.encode()) + len(info.extra)
    for i in range(start + 2, start + min(22, info.compress_size)):
        data[i] ^= 0xFF
    return bytes(data)
