from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True, slots=True)
class Departure:
    trip_id: str | None
    line: str
    destination: str
    origin: str
    departure_time: str
    arrival_time: str | None = None
    delay: int = 0
    actual_departure_time: str | None = None
    is_real: bool = True


@dataclass(frozen=True, slots=True)
class DepartureBoard:
    """What the departures endpoint returns for one request."""

    success: bool
    last_updated: datetime | None
    routes: tuple[Departure, ...] = field(default_factory=tuple)
    source: str = ""
    message: str | None = None
    realtime_available: bool = False


@dataclass(frozen=True, slots=True)
class RefreshOutcome:
    success: bool
    origin: str  # memory | cache | network | none
    last_updated: datetime | None = None
    error: str | None = None
