from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime
from functools import partial

from src.adapters.feed.gtfs_archive_parser import parse_feed_archive
from src.app.services.departure_service import (
    FALLBACK_DEPARTURES,
    DepartureService,
)
from src.app.services.feed_store import FeedStore
from src.config import BoardSettings
from src.config import HAFERKAMP_STOP_ID as ORIGIN
from src.domain.exceptions import FeedNetworkError
from src.domain.models import FeedSnapshot, StopTimeUpdate


@dataclass(slots=True)
class FakeSource:
    content: bytes

    async def fetch_archive(self) -> bytes:
        return self.content


@dataclass(slots=True)
class FakeDelayProvider:
    updates: tuple[StopTimeUpdate, ...] = ()
    error: Exception | None = None

    async def list_stop_time_updates(self) -> tuple[StopTimeUpdate, ...]:
        if self.error is not None:
            raise self.error
        return self.updates


def _loaded_store(content: bytes) -> FeedStore:
    store = FeedStore(
        source=FakeSource(content),
        parse_archive=partial(parse_feed_archive, relevant_stop_ids=(ORIGIN,)),
    )
    asyncio.run(store.refresh())
    return store


SEVEN_AM = datetime(2026, 1, 8, 7, 0, 0)


def _never_parsed(content: bytes) -> FeedSnapshot:
    raise AssertionError("no refresh in this test")


def test_fallback_board_when_no_snapshot_yet() -> None:
    store = FeedStore(source=FakeSource(b""), parse_archive=_never_parsed)
    svc = DepartureService(feed_store=store, delay_provider=FakeDelayProvider())

    board = asyncio.run(svc.get_board(now=SEVEN_AM))

    assert board.success is False
    assert board.source == "fallback"
    assert board.routes == FALLBACK_DEPARTURES
    assert all(not d.is_real for d in board.routes)


def test_end_to_end_single_departure_without_realtime(gtfs_zip: bytes) -> None:
    svc = DepartureService(
        feed_store=_loaded_store(gtfs_zip), delay_provider=FakeDelayProvider()
    )

    board = asyncio.run(svc.get_board(now=SEVEN_AM))

    assert board.success is True
    assert board.realtime_available is True
    assert len(board.routes) == 1
    dep = board.routes[0]
    assert dep.trip_id == "T1"
    assert dep.line == "6"
    assert dep.destination == "Flughafen"
    assert dep.origin == "Bremen Haferkamp"
    assert dep.delay == 0
    assert dep.actual_departure_time == "08:00:00"
    assert dep.arrival_time == "08:10:00"


def test_realtime_delay_is_merged(gtfs_zip: bytes) -> None:
    provider = FakeDelayProvider(
        updates=(StopTimeUpdate("T1", "R6", ORIGIN, departure_delay_s=300),)
    )
    svc = DepartureService(feed_store=_loaded_store(gtfs_zip), delay_provider=provider)

    (dep,) = asyncio.run(svc.get_board(now=SEVEN_AM)).routes

    assert dep.delay == 5
    assert dep.actual_departure_time == "08:05:00"


def test_realtime_outage_degrades_to_schedule(gtfs_zip: bytes) -> None:
    provider = FakeDelayProvider(error=FeedNetworkError("gtfsr.vbn.de unreachable"))
    svc = DepartureService(feed_store=_loaded_store(gtfs_zip), delay_provider=provider)

    board = asyncio.run(svc.get_board(now=SEVEN_AM))

    assert board.success is True
    assert board.realtime_available is False
    assert [d.delay for d in board.routes] == [0]


def test_limit_and_custom_stop_pair(gtfs_zip: bytes) -> None:
    svc = DepartureService(
        feed_store=_loaded_store(gtfs_zip),
        settings=BoardSettings(default_limit=3),
    )

    # Reverse direction: T2 serves the main station before Haferkamp.
    board = asyncio.run(
        svc.get_board(
            from_stop_id="000009013925", to_stop_id=ORIGIN, limit=1, now=SEVEN_AM
        )
    )

    assert [d.trip_id for d in board.routes] == ["T2"]
    assert board.routes[0].origin == "Bremen Hauptbahnhof"
    assert board.realtime_available is False


def test_nothing_left_after_last_departure(gtfs_zip: bytes) -> None:
    svc = DepartureService(feed_store=_loaded_store(gtfs_zip))

    board = asyncio.run(svc.get_board(now=datetime(2026, 1, 8, 23, 0, 0)))

    assert board.success is True
    assert board.routes == ()
