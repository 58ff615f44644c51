from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from src.adapters.api.dependencies import get_departure_service, get_feed_store
from src.adapters.api.schemas.departures import (
    DepartureBoardSchema,
    DepartureSchema,
    RefreshResponseSchema,
    StatusSchema,
)
from src.app.services.departure_service import DepartureService
from src.app.services.feed_store import FeedStore

router = APIRouter(tags=["departures"])


@router.get("/departures", response_model=DepartureBoardSchema)
async def get_departures(
    from_stop_id: str | None = Query(default=None, alias="from"),
    to_stop_id: str | None = Query(default=None, alias="to"),
    limit: int | None = Query(default=None, ge=1, le=20),
    service: DepartureService = Depends(get_departure_service),
) -> DepartureBoardSchema:
    board = await service.get_board(
        from_stop_id=from_stop_id, to_stop_id=to_stop_id, limit=limit
    )
    return DepartureBoardSchema(
        success=board.success,
        last_updated=board.last_updated,
        routes=[
            DepartureSchema(
                trip_id=d.trip_id,
                line=d.line,
                destination=d.destination,
                origin=d.origin,
                departure_time=d.departure_time,
                arrival_time=d.arrival_time,
                delay=d.delay,
                actual_departure_time=d.actual_departure_time,
                is_real=d.is_real,
            )
            for d in board.routes
        ],
        source=board.source,
        message=board.message,
        realtime_available=board.realtime_available,
    )


@router.get("/status", response_model=StatusSchema)
def get_status(store: FeedStore = Depends(get_feed_store)) -> StatusSchema:
    snapshot = store.snapshot
    if snapshot is None:
        return StatusSchema(status="running", refreshing=store.is_refreshing)

    return StatusSchema(
        status="running",
        feed_last_updated=snapshot.last_updated,
        stop_count=len(snapshot.stops_by_id),
        trip_count=len(snapshot.trips_by_id),
        stop_time_count=len(snapshot.stop_times),
        refreshing=store.is_refreshing,
    )


@router.post("/refresh", response_model=RefreshResponseSchema)
async def refresh_feed(
    store: FeedStore = Depends(get_feed_store),
) -> RefreshResponseSchema:
    outcome = await store.refresh(force=True)
    if outcome.success:
        message = "GTFS data updated successfully"
    else:
        message = f"Error updating GTFS data: {outcome.error}"
    return RefreshResponseSchema(
        success=outcome.success,
        message=message,
        origin=outcome.origin,
        last_updated=outcome.last_updated,
    )
