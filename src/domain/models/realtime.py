from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True, slots=True)
class StopTimeUpdate:
    """A single stop-level prediction from a GTFS-Realtime TripUpdate."""

    trip_id: str | None
    route_id: str | None
    stop_id: str | None
    departure_delay_s: int | None = None
    arrival_delay_s: int | None = None
    # Position of the enclosing feed entity, when known.
    entity_index: int | None = None


@dataclass(frozen=True, slots=True)
class DelayRecord:
    trip_id: str | None
    route_id: str | None
    stop_id: str
    delay_minutes: int


@dataclass(frozen=True, slots=True)
class RealtimeDelays:
    by_trip: dict[str, int] = field(default_factory=dict)
    records: tuple[DelayRecord, ...] = ()
