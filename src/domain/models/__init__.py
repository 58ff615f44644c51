from .departure import Departure, DepartureBoard, RefreshOutcome
from .gtfs import FeedSnapshot, GtfsRoute, GtfsTrip, StopTime
from .realtime import DelayRecord, RealtimeDelays, StopTimeUpdate
from .stop import Stop

__all__ = [
    "DelayRecord",
    "Departure",
    "DepartureBoard",
    "FeedSnapshot",
    "GtfsRoute",
    "GtfsTrip",
    "RealtimeDelays",
    "RefreshOutcome",
    "Stop",
    "StopTime",
    "StopTimeUpdate",
]
