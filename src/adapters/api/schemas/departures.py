from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Serialized with camelCase keys, which the display frontend expects."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class DepartureSchema(CamelModel):
    trip_id: str | None = None
    line: str
    destination: str
    origin: str
    departure_time: str
    arrival_time: str | None = None
    delay: int = 0
    actual_departure_time: str | None = None
    is_real: bool = True


class DepartureBoardSchema(CamelModel):
    success: bool
    last_updated: datetime | None = None
    routes: list[DepartureSchema] = []
    source: str
    message: str | None = None
    realtime_available: bool = False


class StatusSchema(CamelModel):
    status: str
    feed_last_updated: datetime | None = None
    stop_count: int = 0
    trip_count: int = 0
    stop_time_count: int = 0
    refreshing: bool = False


class RefreshResponseSchema(CamelModel):
    success: bool
    message: str
    origin: str
    last_updated: datetime | None = None
