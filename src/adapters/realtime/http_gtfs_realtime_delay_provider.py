from __future__ import annotations

import asyncio
import logging
import os
import time
from dataclasses import dataclass, field

import httpx
from google.protobuf import json_format
from google.protobuf.message import DecodeError
from google.transit import gtfs_realtime_pb2

from src.app.ports.output import IRealtimeDelayProvider
from src.domain.exceptions import FeedNetworkError, FeedParseError
from src.domain.models import StopTimeUpdate

logger = logging.getLogger(__name__)

VBN_GTFS_RT_URL = "https://gtfsr.vbn.de/gtfsr_connect.json"


@dataclass(slots=True)
class HttpGtfsRealtimeDelayProvider(IRealtimeDelayProvider):
    """Fetches a GTFS-Realtime TripUpdates feed over HTTP.

    Env vars:
      - GTFS_RT_TRIP_UPDATES_URL: feed URL (default: VBN JSON feed)
      - GTFS_RT_HEADERS: optional headers, as 'Key:Value;Key2:Value2'
      - GTFS_RT_TIMEOUT_S: request timeout (default 10)
      - GTFS_RT_CACHE_TTL_S: in-process cache TTL seconds (default 20, 0 disables)
      - GTFS_RT_FORMAT: json|protobuf|auto (default auto)

    Notes:
      - Cache is per-process and shared across requests.
      - JSON documents use the protobuf JSON mapping (camelCase or snake_case).
    """

    url: str | None = None
    headers_raw: str | None = None
    timeout_s: float = 10.0
    cache_ttl_s: float = 20.0
    payload_format: str | None = None

    # In-process cache
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, init=False, repr=False)
    _cached_at_monotonic: float = field(default=0.0, init=False, repr=False)
    _cached_updates: tuple[StopTimeUpdate, ...] = field(
        default=(), init=False, repr=False
    )

    def __post_init__(self) -> None:
        if self.url is None:
            self.url = os.getenv("GTFS_RT_TRIP_UPDATES_URL") or VBN_GTFS_RT_URL
        if self.headers_raw is None:
            self.headers_raw = os.getenv("GTFS_RT_HEADERS")
        if os.getenv("GTFS_RT_TIMEOUT_S"):
            self.timeout_s = float(os.environ["GTFS_RT_TIMEOUT_S"])
        if os.getenv("GTFS_RT_CACHE_TTL_S"):
            self.cache_ttl_s = float(os.environ["GTFS_RT_CACHE_TTL_S"])
        if self.payload_format is None:
            self.payload_format = (
                (os.getenv("GTFS_RT_FORMAT") or "auto").strip().lower()
            )

    def _headers(self) -> dict[str, str]:
        raw = (self.headers_raw or "").strip()
        if not raw:
            return {}
        headers: dict[str, str] = {}
        for part in raw.split(";"):
            if ":" not in part:
                continue
            k, v = part.split(":", 1)
            k = k.strip()
            if k:
                headers[k] = v.strip()
        return headers

    async def list_stop_time_updates(self) -> tuple[StopTimeUpdate, ...]:
        if not self.url:
            return ()

        async with self._lock:
            now_mono = time.monotonic()
            if (
                self._cached_at_monotonic
                and (now_mono - self._cached_at_monotonic) < self.cache_ttl_s
            ):
                return self._cached_updates

            try:
                async with httpx.AsyncClient(timeout=self.timeout_s) as client:
                    resp = await client.get(self.url, headers=self._headers())
                    resp.raise_for_status()
                    content = resp.content
            except httpx.HTTPError as exc:
                raise FeedNetworkError(f"GTFS-RT request failed: {exc}") from exc

            updates = await asyncio.to_thread(
                parse_trip_updates, content, payload_format=self.payload_format
            )
            logger.debug("GTFS-RT feed yielded %d stop time updates", len(updates))

            self._cached_at_monotonic = time.monotonic()
            self._cached_updates = updates
            return updates


def _decode_feed(
    content: bytes, payload_format: str | None
) -> gtfs_realtime_pb2.FeedMessage:
    fmt = (payload_format or "auto").lower()
    if fmt == "auto":
        fmt = "json" if content.lstrip()[:1] in (b"{", b"[") else "protobuf"

    feed = gtfs_realtime_pb2.FeedMessage()
    try:
        if fmt == "json":
            json_format.Parse(
                content.decode("utf-8-sig"), feed, ignore_unknown_fields=True
            )
        elif fmt == "protobuf":
            feed.ParseFromString(content)
        else:
            raise FeedParseError(f"Unsupported GTFS_RT_FORMAT: {fmt}")
    except (json_format.ParseError, DecodeError, UnicodeDecodeError) as exc:
        raise FeedParseError(f"Invalid GTFS-RT {fmt} payload: {exc}") from exc
    return feed


def parse_trip_updates(
    content: bytes, *, payload_format: str | None = "auto"
) -> tuple[StopTimeUpdate, ...]:
    """Flatten the TripUpdate entities of a feed into stop-level rows."""

    feed = _decode_feed(content, payload_format)

    out: list[StopTimeUpdate] = []
    for index, ent in enumerate(feed.entity):
        if not ent.HasField("trip_update"):
            continue

        tu = ent.trip_update
        trip_id = tu.trip.trip_id or None
        route_id = tu.trip.route_id or None

        for stu in tu.stop_time_update:
            departure_delay = None
            if stu.HasField("departure") and stu.departure.HasField("delay"):
                departure_delay = int(stu.departure.delay)
            arrival_delay = None
            if stu.HasField("arrival") and stu.arrival.HasField("delay"):
                arrival_delay = int(stu.arrival.delay)

            out.append(
                StopTimeUpdate(
                    trip_id=trip_id,
                    route_id=route_id,
                    stop_id=stu.stop_id or None,
                    departure_delay_s=departure_delay,
                    arrival_delay_s=arrival_delay,
                    entity_index=index,
                )
            )

    return tuple(out)
