from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable

import pytest

from src.adapters.feed.gtfs_archive_parser import parse_feed_archive, split_csv_line
from src.config import BREMEN_HBF_STOP_ID as DEST
from src.config import HAFERKAMP_STOP_ID as ORIGIN
from src.domain.exceptions import FeedParseError

ZipBuilder = Callable[[dict[str, str]], bytes]


def test_split_keeps_quoted_comma_in_one_field() -> None:
    parts = split_csv_line('X1,"","Bremen, Domsheide","",53.07,8.81\r\n')

    assert parts == ["X1", "", "Bremen, Domsheide", "", "53.07", "8.81"]


def test_split_only_strips_the_surrounding_quote_pair() -> None:
    assert split_csv_line('a,"say ""hi""",c') == ["a", 'say ""hi""', "c"]


def test_split_tolerates_trailing_empty_field() -> None:
    assert split_csv_line("a,b,") == ["a", "b", ""]


def test_parse_builds_all_tables(gtfs_zip: bytes) -> None:
    updated = datetime(2026, 1, 8, 6, 0, tzinfo=timezone.utc)
    snapshot = parse_feed_archive(
        gtfs_zip, relevant_stop_ids=[ORIGIN], updated_at=updated
    )

    assert snapshot.last_updated == updated
    assert snapshot.stops_by_id["X1"].name == "Bremen, Domsheide"
    assert snapshot.stops_by_id[ORIGIN].lat == pytest.approx(53.092)
    assert snapshot.trips_by_id["T1"].headsign == "Flughafen"
    assert snapshot.trips_by_id["T1"].route_id == "R6"
    assert snapshot.routes_by_id["R6"].short_name == "6"


def test_parse_keeps_only_trips_serving_relevant_stops(gtfs_zip: bytes) -> None:
    snapshot = parse_feed_archive(gtfs_zip, relevant_stop_ids=[ORIGIN])

    assert {st.trip_id for st in snapshot.stop_times} == {"T1", "T2"}
    # Every call of a relevant trip is kept, not only the origin row.
    t1 = [st for st in snapshot.stop_times if st.trip_id == "T1"]
    assert [(st.stop_id, st.stop_sequence) for st in t1] == [(ORIGIN, 1), (DEST, 2)]
    assert t1[0].departure_time == "08:00:00"


def test_parse_header_only_table_yields_no_rows(
    gtfs_tables: dict[str, str], zip_builder: ZipBuilder
) -> None:
    gtfs_tables["stop_times.txt"] = (
        "trip_id,arrival_time,departure_time,stop_id,stop_sequence\n"
    )
    content = zip_builder(gtfs_tables)
    snapshot = parse_feed_archive(content, relevant_stop_ids=[ORIGIN])

    assert snapshot.stop_times == ()
    assert len(snapshot.trips_by_id) == 3


def test_parse_skips_ragged_rows(
    gtfs_tables: dict[str, str], zip_builder: ZipBuilder
) -> None:
    gtfs_tables["stop_times.txt"] = (
        "trip_id,arrival_time,departure_time,stop_id,stop_sequence\n"
        f"T1,08:00:00,08:00:00,{ORIGIN},1\n"
        "T1,08:05:00\n"
        f"T1,08:10:00,08:10:00,{DEST},x\n"
        f"T1,08:20:00,08:20:00,{DEST},3\n"
    )
    content = zip_builder(gtfs_tables)
    snapshot = parse_feed_archive(content, relevant_stop_ids=[ORIGIN])

    assert [st.stop_sequence for st in snapshot.stop_times] == [1, 3]


def test_parse_tolerates_utf8_bom(
    gtfs_tables: dict[str, str], zip_builder: ZipBuilder
) -> None:
    gtfs_tables["routes.txt"] = "\ufeff" + gtfs_tables["routes.txt"]
    content = zip_builder(gtfs_tables)
    snapshot = parse_feed_archive(content, relevant_stop_ids=[ORIGIN])

    assert "R6" in snapshot.routes_by_id


def test_parse_rejects_missing_table(
    gtfs_tables: dict[str, str], zip_builder: ZipBuilder
) -> None:
    del gtfs_tables["routes.txt"]

    with pytest.raises(FeedParseError, match="routes.txt"):
        parse_feed_archive(zip_builder(gtfs_tables), relevant_stop_ids=[ORIGIN])


def test_parse_rejects_missing_required_column(
    gtfs_tables: dict[str, str], zip_builder: ZipBuilder
) -> None:
    gtfs_tables["stop_times.txt"] = "trip_id,stop_id\nT1,X\n"

    with pytest.raises(FeedParseError, match="stop_sequence"):
        parse_feed_archive(zip_builder(gtfs_tables), relevant_stop_ids=[ORIGIN])


def test_parse_rejects_corrupt_archive() -> None:
    with pytest.raises(FeedParseError):
        parse_feed_archive(b"not a zip file", relevant_stop_ids=[ORIGIN])


def test_damaged_member_raises_parse_error(damaged_gtfs_zip: bytes) -> None:
    with pytest.raises(FeedParseError, match="Unreadable GTFS archive"):
        parse_feed_archive(damaged_gtfs_zip, relevant_stop_ids=[ORIGIN])
