from __future__ import annotations

from abc import ABC, abstractmethod

from src.domain.models import StopTimeUpdate


class IRealtimeDelayProvider(ABC):
    """Port for obtaining stop-level predictions (GTFS-Realtime TripUpdates)."""

    @abstractmethod
    async def list_stop_time_updates(self) -> tuple[StopTimeUpdate, ...]:
        raise NotImplementedError
